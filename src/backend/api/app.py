from __future__ import annotations

import os
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from common.log import configure_logging, get_logger
from pipelines.config import get_canteen_config
from pipelines.data_source import get_data_source
from pipelines.errors import ProviderUnavailableError
from pipelines.verification import VerificationService

from .eligibility import router as eligibility_router

logger = get_logger(__name__)


def _error_body(code: str, message: str, details: Any = None) -> dict[str, Any]:
    return {"success": False, "error": {"code": code, "message": message, "details": details}}


def _cors_origins() -> list[str]:
    # Comma-separated, e.g. CORS_ORIGINS="http://localhost:3000,https://kiosk.example.com"
    raw = os.getenv("CORS_ORIGINS", "")
    return [o.strip() for o in raw.split(",") if o.strip()] or ["*"]


def build_verification_service() -> VerificationService:
    config = get_canteen_config()
    configure_logging(config.log_level, json_output=config.log_json)
    sources = get_data_source(config.data_source, fixtures_dir=config.fixtures_dir)
    return VerificationService(sources, tz=config.tz)


def create_app(service: VerificationService | None = None) -> FastAPI:
    """Build the API. Without a service, one is assembled from CANTEEN_* settings."""
    app = FastAPI(title="Canteen Eligibility API")
    app.state.verification_service = service or build_verification_service()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        detail = exc.detail
        if isinstance(detail, dict):
            body = _error_body(detail.get("code", "ERROR"), detail.get("message", ""), detail.get("details"))
        else:
            body = _error_body("ERROR", str(detail))
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(request: Request, exc: RequestValidationError):
        details = [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()]
        return JSONResponse(status_code=400, content=_error_body("VALIDATION_ERROR", "Invalid request", details))

    @app.exception_handler(ProviderUnavailableError)
    async def _provider_down(request: Request, exc: ProviderUnavailableError):
        logger.error("provider_unavailable", provider=exc.provider, path=request.url.path)
        return JSONResponse(
            status_code=503,
            content=_error_body("PROVIDER_UNAVAILABLE", str(exc), {"provider": exc.provider}),
        )

    app.include_router(eligibility_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
