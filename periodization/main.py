"""Main FastAPI application."""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from periodization import __version__
from periodization.config.settings import get_settings
from periodization.core.error_handlers import domain_error_handler
from periodization.core.exceptions import DomainError
from periodization.core.logging import configure_logging, get_logger
from periodization.db.database import close_all_engines, init_db
from periodization.middleware import RequestIDMiddleware

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    await init_db()
    logger.info("startup_complete", app=app.title)
    yield
    await close_all_engines()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title=settings.app_name,
        description="Program periodization and subscription progression engine",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainError, domain_error_handler)

    from periodization.api.routes import (
        coaching_router,
        health_router,
        progress_router,
        subscriptions_router,
        templates_router,
    )

    app.include_router(health_router)
    app.include_router(templates_router)
    app.include_router(subscriptions_router)
    app.include_router(progress_router)
    app.include_router(coaching_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("periodization.main:app", host="0.0.0.0", port=8000, reload=True)
