"""
Run Alembic migrations programmatically.

Safe to call on every startup: Alembic is a no-op when already at head.
"""
from pathlib import Path
import logging
import sys

from alembic import command
from alembic.config import Config

from .core.config import settings

logger = logging.getLogger(__name__)


def run_migrations(database_url: str = None) -> None:
    """Upgrade the schema to head on DATABASE_URL (or the given url)."""
    # alembic.ini sits next to the package directory
    project_root = Path(__file__).resolve().parents[1]
    alembic_ini = project_root / "alembic.ini"

    if not alembic_ini.exists():
        logger.error(f"Alembic config not found at {alembic_ini}")
        raise FileNotFoundError(f"Alembic config not found at {alembic_ini}")

    cfg = Config(str(alembic_ini))
    cfg.set_main_option("script_location", str(project_root / "alembic"))

    database_url = database_url or settings.database_url
    cfg.set_main_option("sqlalchemy.url", database_url)
    cfg.attributes["explicit_url"] = True
    # Keep the app's logging setup
    cfg.attributes["skip_logging_config"] = True

    logger.info(f"Running Alembic migrations to head on {database_url.split('@')[-1]}")
    try:
        command.upgrade(cfg, "head")
        logger.info("Alembic migrations complete.")
    except Exception as e:
        logger.error(f"Migration failed: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    try:
        run_migrations()
        sys.exit(0)
    except Exception as e:
        logger.error(f"Failed to run migrations: {e}", exc_info=True)
        sys.exit(1)
