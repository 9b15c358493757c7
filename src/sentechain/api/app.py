"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sentechain import __version__
from sentechain.config import get_settings
from sentechain.storage.base import UserStore
from sentechain.storage.database import close_db
from sentechain.storage.factory import create_user_store
from sentechain.web.contracts.auth import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    if getattr(app.state, "user_store", None) is None:
        app.state.user_store = await create_user_store(get_settings())
    logger.info(f"User storage: {app.state.user_store.name}")
    yield
    # Shutdown
    await app.state.user_store.close()
    await close_db()


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return f"{location}: {message}" if location else message


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as ``{"error": message}``."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return _error(400, _validation_message(exc))

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return _error(500, "Something went wrong!")


def create_app(user_store: Optional[UserStore] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        user_store: Store to use instead of the one selected from settings
    """
    settings = get_settings()

    app = FastAPI(
        title="SenteChain API",
        description="Identifier login and wallet address backend",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.user_store = user_store

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Register routes
    from sentechain.api.routers import auth
    from sentechain.api.routes import health

    app.include_router(health.router, tags=["Health"])
    app.include_router(auth.router, tags=["Auth"])

    @app.get("/", tags=["Health"])
    async def root():
        return {
            "message": "SenteChain API",
            "version": __version__,
            "endpoints": {
                "health": "/health",
                "login": "POST /api/auth/login",
                "profile": "GET /api/auth/profile/:walletAddress",
                "search": "GET /api/auth/search?query=",
            },
        }

    return app


# Default app instance
app = create_app()
