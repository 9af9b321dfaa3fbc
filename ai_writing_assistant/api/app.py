"""
FastAPI application factory.

Wires the orchestrator, ledger and identity resolver into one app and maps
the error taxonomy to the {success, message, errors?} envelope.
"""

import json
from typing import Any, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config.loader import AppConfig, load_config
from ..core.errors import AssistantError, InvalidInput
from ..core.log import get_logger, set_trace_id
from ..core.orchestrator import RequestOrchestrator
from ..core.quota import QuotaPolicy
from ..sdk.openai_client import ModelInvoker
from ..storage.repository import UsageLedger
from .auth import IdentityResolver, StaticTokenResolver
from .routes import router as ai_router


logger = get_logger(__name__)

API_BASE = "/api"


class UnicodeJSONResponse(JSONResponse):
    """JSON response that keeps Chinese text unescaped."""

    def render(self, content: Any) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            indent=None,
            separators=(",", ":"),
        ).encode("utf-8")


def _error_body(message: str, errors=None) -> dict:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def _validation_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
        errors.append({
            "field": ".".join(location) or "body",
            "message": error.get("msg", "invalid value"),
        })
    return errors


def build_orchestrator(config: AppConfig, invoker: Optional[ModelInvoker] = None) -> RequestOrchestrator:
    ledger = UsageLedger(db_path=config.storage.db_path, pricing=config.pricing)
    ledger.initialize()
    if invoker is None:
        invoker = ModelInvoker(
            model=config.model.name,
            api_key=config.model.api_key,
            base_url=config.model.base_url,
            timeout_seconds=config.model.timeout_seconds,
            max_retries=config.model.max_retries,
        )
    return RequestOrchestrator(
        invoker=invoker,
        ledger=ledger,
        quota_policy=QuotaPolicy(config.quotas, ledger.count_today),
    )


def create_app(
    config: Optional[AppConfig] = None,
    orchestrator: Optional[RequestOrchestrator] = None,
    identity_resolver: Optional[IdentityResolver] = None,
) -> FastAPI:
    """Create the API application.

    Args:
        config: Service configuration (loaded from the environment if None)
        orchestrator: Pre-built orchestrator; built from config if None
        identity_resolver: Token resolver; defaults to the config token map
    """
    config = config or load_config()

    app = FastAPI(
        title="AI Writing Assistant API",
        description="AI-assisted writing aids for public-account articles",
        version="1.0.0",
        docs_url=f"{API_BASE}/docs",
        redoc_url=f"{API_BASE}/redoc",
        openapi_url=f"{API_BASE}/openapi.json",
        default_response_class=UnicodeJSONResponse,
    )
    app.state.config = config
    app.state.orchestrator = orchestrator or build_orchestrator(config)
    app.state.identity_resolver = identity_resolver or StaticTokenResolver(config.tokens)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def attach_trace_id(request: Request, call_next):
        tid = set_trace_id(request.headers.get("X-Request-Id"))
        response = await call_next(request)
        response.headers["X-Request-Id"] = tid
        return response

    @app.exception_handler(AssistantError)
    async def handle_assistant_error(request: Request, exc: AssistantError):
        errors = exc.errors if isinstance(exc, InvalidInput) else None
        return UnicodeJSONResponse(status_code=exc.status_code, content=_error_body(exc.message, errors))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return UnicodeJSONResponse(
            status_code=400,
            content=_error_body("Invalid request parameters", _validation_errors(exc)),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("event=request.failed | path=%s", request.url.path)
        return UnicodeJSONResponse(status_code=500, content=_error_body("Processing failed, please try again later"))

    api_router = APIRouter(prefix=API_BASE)
    api_router.include_router(ai_router)
    app.include_router(api_router)
    return app
