from typing import Optional, TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from api.router import api_router
from api.dependencies.errors import setup_error_handlers
from api.dependencies.rate_limits import setup_rate_limiter
from infrastructure.logging import bind_request_context, get_correlation_id
from infrastructure.services import get_settings
from server.lifespan import lifespan

if TYPE_CHECKING:
    from infrastructure.configuration import Settings
    from modules.localization.context import LocalizationContext

CORRELATION_HEADER = "X-Correlation-ID"


async def request_context_middleware(request: Request, call_next):
    """Bind correlation id, caller and route to every log line of the request."""
    with bind_request_context(
        correlation_id=request.headers.get(CORRELATION_HEADER),
        user_id=request.headers.get("X-User-Id"),
        user_email=request.headers.get("X-User-Email"),
        request_path=request.url.path,
        request_method=request.method,
    ):
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = get_correlation_id()
    return response


def create_app(
    settings: Optional["Settings"] = None,
    context: Optional["LocalizationContext"] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Settings override; the cached settings are used otherwise
        context: Pre-built localization context (tests); built at startup
            otherwise
    """
    settings = settings or get_settings()
    app = FastAPI(title=settings.APP_NAME, version=settings.GIT_SHA, lifespan=lifespan)
    app.state.settings = settings
    if context is not None:
        app.state.localization = context

    setup_rate_limiter(app)
    setup_error_handlers(app)

    allow_origins = ["*"] if settings.is_production else settings.server.CORS_ALLOW_ORIGINS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(request_context_middleware)

    app.include_router(api_router)
    return app


handler = create_app()
