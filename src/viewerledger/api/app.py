"""FastAPI application factory for the user service."""

from fastapi import FastAPI

from viewerledger import __version__
from viewerledger.api.errors import setup_error_handlers
from viewerledger.api.health import router as health_router
from viewerledger.api.middleware import RequestIdMiddleware
from viewerledger.database import Store
from viewerledger.users.router import router as users_router


def create_app(store: Store, debug: bool = False) -> FastAPI:
    """Create the user service application on top of an already connected Store."""
    app = FastAPI(
        title="viewerledger user service",
        description="Per-viewer watch-time and currency ledger",
        version=__version__,
        docs_url="/docs" if debug else None,
        redoc_url="/redoc" if debug else None,
    )
    app.state.store = store

    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)

    return app
