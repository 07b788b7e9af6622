"""
Alembic migrations against a fresh SQLite file.
"""
from sqlalchemy import create_engine, inspect

from affiliate_ledger.run_migrations import run_migrations


def test_upgrade_creates_ledger_tables(tmp_path):
    url = f"sqlite:///{tmp_path}/m.db"

    run_migrations(url)

    engine = create_engine(url)
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        assert {"affiliates", "orders", "affiliate_clicks"} <= tables

        order_columns = {c["name"] for c in inspector.get_columns("orders")}
        assert {"conversion_processed", "affiliate_commission", "attribution_method"} <= order_columns
    finally:
        engine.dispose()


def test_upgrade_is_repeatable(tmp_path):
    url = f"sqlite:///{tmp_path}/m.db"

    run_migrations(url)
    run_migrations(url)

    engine = create_engine(url)
    try:
        assert "alembic_version" in inspect(engine).get_table_names()
    finally:
        engine.dispose()
