"""
Pytest configuration and fixtures for affiliate ledger tests.

Every test gets its own in-memory SQLite database so service code can commit
and roll back for real without leaking state between tests.
"""
import sys
import pathlib

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from affiliate_ledger.db import Base, get_db  # noqa: E402
from affiliate_ledger import models  # noqa: E402,F401
from affiliate_ledger.core.email_sender import ConsoleEmailSender, set_email_sender  # noqa: E402
from affiliate_ledger.utils.rate_limit import InMemoryRateLimiter, set_rate_limiter  # noqa: E402


@pytest.fixture(scope="function")
def engine():
    """In-memory SQLite shared by every session of one test"""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,  # Set to True for SQL debugging
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """
    Database session for a test.

    Usage:
        def test_something(db: Session):
            affiliate = create_test_affiliate(db)
            ...
    Call db.expire_all() before re-reading rows changed through another
    session (API calls, threads).
    """
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def reset_singletons():
    """Fresh rate limiter and email sender per test"""
    set_rate_limiter(InMemoryRateLimiter())
    set_email_sender(ConsoleEmailSender())
    yield
    set_rate_limiter(None)
    set_email_sender(None)


class RecordingEmailSender(ConsoleEmailSender):
    """Console sender that also keeps every message for assertions"""

    def __init__(self):
        self.sent = []

    def send_email(self, to_email, subject, body_text):
        self.sent.append({"to": to_email, "subject": subject, "body": body_text})
        return super().send_email(to_email, subject, body_text)


@pytest.fixture
def email_outbox():
    sender = RecordingEmailSender()
    set_email_sender(sender)
    return sender.sent


@pytest.fixture
def client(session_factory):
    """FastAPI TestClient with get_db bound to the test database"""
    from fastapi.testclient import TestClient
    from affiliate_ledger.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
