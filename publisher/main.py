"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from publisher import __version__
from publisher.api.middleware import RequestLoggingMiddleware
from publisher.api.v1.router import router as v1_router
from publisher.config import settings
from publisher.core.exceptions import (
    CredentialError,
    PersistenceError,
    ProjectNotFoundError,
    ProviderError,
    PublisherError,
    QuotaExceededError,
    ValidationError,
)
from publisher.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

# Checked in order; the first matching class decides the status code
ERROR_STATUS_CODES: list[tuple[type[PublisherError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (CredentialError, status.HTTP_400_BAD_REQUEST),
    (ProjectNotFoundError, status.HTTP_404_NOT_FOUND),
    (ProviderError, status.HTTP_502_BAD_GATEWAY),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_code_for(exc: PublisherError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    configure_logging()
    logger.info(
        "application.starting",
        version=__version__,
        environment=settings.app_env,
        system_credential_configured=bool(settings.vercel_token),
    )

    yield

    logger.info("application.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="App Publisher API",
        description="Publishes generated applications to GitHub and Vercel",
        version=__version__,
        docs_url="/docs" if settings.app_debug else None,
        redoc_url="/redoc" if settings.app_debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(PublisherError)
    async def publisher_error_handler(
        request: Request, exc: PublisherError
    ) -> JSONResponse:
        """Handle application-specific errors."""
        status_code = status_code_for(exc)
        logger.warning(
            "request.publisher_error",
            path=request.url.path,
            error_type=type(exc).__name__,
            status_code=status_code,
        )
        return JSONResponse(
            status_code=status_code,
            content={
                "error": {
                    "code": type(exc).__name__.upper(),
                    "message": exc.message,
                    "details": exc.details,
                },
                "should_upgrade": isinstance(exc, QuotaExceededError),
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected errors."""
        logger.exception("request.unhandled_error", path=request.url.path)

        if settings.is_development:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": {
                        "code": "INTERNAL_ERROR",
                        "message": str(exc),
                        "type": type(exc).__name__,
                    }
                },
            )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                }
            },
        )

    app.include_router(v1_router)

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "publisher.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
