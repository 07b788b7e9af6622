"""
Affiliate ledger API application.

Run with: uvicorn affiliate_ledger.main:app
"""
import logging
import sys
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables from .env before settings are read
load_dotenv()

from .core.config import settings  # noqa: E402
from .core.env import get_env_name, is_local_env  # noqa: E402
from .exception_handlers import register_exception_handlers  # noqa: E402
from .middleware import LoggingMiddleware, RequestIDMiddleware  # noqa: E402
from .routers import affiliate_clicks, order_conversion, payment_webhook  # noqa: E402
from .run_migrations import run_migrations  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger("affiliate_ledger")


def init_sentry() -> bool:
    """Initialize Sentry outside local environments when SENTRY_DSN is set"""
    if not settings.SENTRY_DSN:
        return False
    if is_local_env():
        logger.info("Sentry DSN configured but not initializing in local environment")
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            integrations=[
                FastApiIntegration(),
                SqlalchemyIntegration(),
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            ],
            traces_sample_rate=0.1,
            environment=get_env_name(),
            send_default_pii=False,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}", exc_info=True)
        return False

    logger.info(f"Sentry error tracking initialized for environment: {get_env_name()}")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        run_migrations()
    logger.info(f"Affiliate ledger started (env={get_env_name()})")
    yield


def create_app() -> FastAPI:
    init_sentry()

    app = FastAPI(title="Affiliate Ledger API", version="1.0.0", lifespan=lifespan)

    # Last added runs first: CORS, request id, then the access log
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    register_exception_handlers(app)

    app.include_router(affiliate_clicks.router)
    app.include_router(order_conversion.router)
    app.include_router(payment_webhook.router)

    @app.get("/healthz")
    def healthz():
        return {"ok": True, "env": get_env_name()}

    return app


app = create_app()
