import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.v1.blockchain import router as blockchain_router
from api.v1.intent import router as intent_router
from api.v1.verification import router as verification_router
from api.v1.wallet import router as wallet_router
from app.config import get_settings
from app.core.logging import configure_logging
from app.core.middleware import RequestContextMiddleware
from app.intent.errors import DispatchError, IntentValidationError, StorageError
from chain.networks import list_supported_chains

logger = logging.getLogger(__name__)


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    content = {"success": False, "error": error}
    if details and get_settings().IS_DEVELOPMENT:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="IntentFI Service", version="0.1.0")
    app.add_middleware(RequestContextMiddleware)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        return _error(400, f"Invalid request: {field or 'body'} {first.get('msg', '')}".strip())

    @app.exception_handler(IntentValidationError)
    async def _intent_validation(request: Request, exc: IntentValidationError):
        return _error(400, str(exc))

    @app.exception_handler(StorageError)
    async def _storage(request: Request, exc: StorageError):
        logger.warning("storage error path=%s error=%s", request.url.path, exc)
        return _error(500, "Failed to access intent storage", str(exc))

    @app.exception_handler(DispatchError)
    async def _dispatch(request: Request, exc: DispatchError):
        logger.warning("dispatch error path=%s error=%s", request.url.path, exc)
        return _error(500, "Failed to process intent", str(exc))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("unhandled error path=%s", request.url.path)
        return _error(500, "Failed to process intent", f"{type(exc).__name__}: {exc}")

    @app.get("/healthz")
    async def healthz():
        s = get_settings()
        return {
            "ok": True,
            "llm_enabled": s.LLM_ENABLED,
            "primary_llm_model": s.primary_llm_model,
            "secondary_llm_model": s.secondary_llm_model,
            "db_configured": bool(s.DATABASE_URL),
            "signer_configured": bool(s.private_key),
            "chains": list_supported_chains(),
        }

    app.include_router(intent_router)
    app.include_router(blockchain_router)
    app.include_router(wallet_router)
    app.include_router(verification_router)
    return app


app = create_app()
