from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .error_handlers import register_error_handlers
from .middleware import REQUEST_ID_HEADER, AccessLogMiddleware, RequestIDMiddleware
from .models import utcnow
from .observability import setup_logging
from .password import PasswordHasher
from .repositories import Store, build_store
from .routers import auth as auth_router
from .routers import todos as todos_router
from .schemas import Envelope, HealthOut
from .services.auth import AuthService
from .services.todos import TodoService
from .settings import Settings, get_settings
from .tokens import TokenManager
from .utils import success_envelope

logger = logging.getLogger(__name__)

HEALTH_CHECK_TIMEOUT_SECONDS = 2.0

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "Registration, login and token refresh."},
    {
        "name": "todos",
        "description": "CRUD operations for the caller's own Todo items. Requires a bearer token.",
    },
]


async def _ping_store(store: Store) -> bool:
    try:
        return await asyncio.wait_for(
            run_in_threadpool(store.ping), timeout=HEALTH_CHECK_TIMEOUT_SECONDS
        )
    except asyncio.TimeoutError:
        logger.warning("store ping timed out after %.1fs", HEALTH_CHECK_TIMEOUT_SECONDS)
        return False


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, store: Optional[Store] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: configuration; loaded from the environment when omitted.
        store: repositories to serve from; built from ``settings`` when omitted.

    Returns:
        The configured application. The store is closed when the app shuts down.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)
    store = store or build_store(settings)

    token_manager = TokenManager(settings.jwt_secret, ttl=timedelta(hours=settings.jwt_expiry_hours))
    hasher = PasswordHasher(settings.bcrypt_cost)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "starting todo api",
            extra={"env": settings.env, "backend": store.backend},
        )
        yield
        logger.info("shutting down todo api")
        store.close()

    app = FastAPI(
        title="Todo Backend",
        description="Multi-user Todo API with token authentication and per-user ownership.",
        version="1.0.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.token_manager = token_manager
    app.state.auth_service = AuthService(store.users, token_manager, hasher)
    app.state.todo_service = TodoService(store.todos)

    # Added innermost first: the access log runs inside the request id scope.
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    allow_all = settings.cors_allow_origins == ["*"] or len(settings.cors_allow_origins) == 0
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    register_error_handlers(app)

    # PUBLIC_INTERFACE
    @app.get(
        "/health",
        response_model=Envelope[HealthOut],
        summary="Health Check",
        tags=["health"],
        responses={503: {"model": Envelope[HealthOut], "description": "Store unreachable"}},
    )
    async def health_check(request: Request) -> JSONResponse:
        """
        Health check endpoint.

        Returns:
            200 with status 'healthy' when the store answers a ping within two
            seconds, 503 with status 'unhealthy' otherwise.
        """
        healthy = await _ping_store(request.app.state.store)
        body = HealthOut(
            status="healthy" if healthy else "unhealthy",
            database="healthy" if healthy else "unhealthy",
            time=utcnow().isoformat().replace("+00:00", "Z"),
        )
        return JSONResponse(
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content=success_envelope(body.model_dump()),
        )

    app.include_router(auth_router.router)
    app.include_router(todos_router.router)
    return app
