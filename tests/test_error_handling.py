"""
Error-to-HTTP mapping and the global exception handler.
"""
import os
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from affiliate_ledger.core.env import clear_env_cache
from affiliate_ledger.exception_handlers import register_exception_handlers, status_for_error
from affiliate_ledger.services.errors import (
    AffiliateLedgerError,
    AffiliateNotFound,
    AlreadySettled,
    InvalidRequest,
    OrderNotFound,
    ReconciliationFailure,
    TransactionConflict,
    UpstreamUnavailable,
)


@pytest.mark.parametrize(
    "error,status_code",
    [
        (InvalidRequest("missing"), 400),
        (OrderNotFound("o-1"), 404),
        (AffiliateNotFound("XXXX-1"), 404),
        (AlreadySettled("o-1"), 200),
        (TransactionConflict("lost race"), 409),
        (UpstreamUnavailable("db down"), 503),
        (ReconciliationFailure("click update failed"), 500),
        (AffiliateLedgerError("other"), 500),
    ],
)
def test_status_for_error(error, status_code):
    assert status_for_error(error) == status_code


def _app():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    def boom():
        raise RuntimeError("secret connection string")

    @app.get("/settled")
    def settled():
        raise AlreadySettled("o-9")

    return app


@pytest.fixture
def env_name():
    def _set(name):
        patcher = patch.dict(os.environ, {"ENV": name})
        patcher.start()
        clear_env_cache()
        return patcher

    patchers = []
    yield lambda name: patchers.append(_set(name))
    for p in patchers:
        p.stop()
    clear_env_cache()


def test_unhandled_error_hides_details_in_prod(env_name):
    env_name("prod")
    client = TestClient(_app(), raise_server_exceptions=False)

    response = client.get("/boom")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}


def test_unhandled_error_shows_details_locally(env_name):
    env_name("local")
    client = TestClient(_app(), raise_server_exceptions=False)

    response = client.get("/boom")

    assert response.status_code == 500
    assert "secret connection string" in response.json()["detail"]


def test_already_settled_is_reported_as_success():
    client = TestClient(_app())
    response = client.get("/settled")
    assert response.status_code == 200
    assert response.json() == {"success": True, "error": "Order o-9 already settled"}


def test_healthz(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json()["ok"] is True
