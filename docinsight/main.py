"""FastAPI application factory and global exception handling."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse

from docinsight import __version__ as app_version
from docinsight.analysis.models import AnalysisConfig
from docinsight.api.routes import router
from docinsight.config import get_settings
from docinsight.exceptions import DocumentNotFoundError, PersistenceError

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def create_application() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        description="AI summaries and classification for uploaded documents.",
        version=app_version,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "details": exc.errors()},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        detail = exc.detail
        if isinstance(detail, dict) and "error" in detail:
            payload = detail
        elif detail == "There was an error parsing the body":
            payload = {"error": "invalid_json", "details": detail}
        else:
            payload = {"error": "http_error", "details": detail}
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(DocumentNotFoundError)
    async def not_found_handler(
        request: Request, exc: DocumentNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"error": "not_found", "details": str(exc)},
        )

    @app.exception_handler(PersistenceError)
    async def persistence_handler(request: Request, exc: PersistenceError) -> JSONResponse:
        logger.error(f"Document store error: {exc}")
        return JSONResponse(
            status_code=503,
            content={"error": "storage_unavailable", "details": str(exc)},
        )

    @app.get("/healthz", tags=["health"])
    async def healthz() -> dict[str, Any]:
        config = AnalysisConfig.from_settings(get_settings())
        return {
            "status": "ok",
            "version": app_version,
            "providers": {
                "primary": config.primary_enabled,
                "secondary": config.secondary_enabled,
            },
            "preferred_provider": config.resolve_preferred(),
        }

    app.include_router(router)
    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("docinsight.main:app", host="0.0.0.0", port=8000, reload=True)
