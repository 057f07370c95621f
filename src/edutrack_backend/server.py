import logging
from contextlib import asynccontextmanager
from typing import Optional
from aiocache import BaseCache
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from edutrack_backend.api.analytics import analytics_router
from edutrack_backend.api.auth import auth_router
from edutrack_backend.api.courses import course_router
from edutrack_backend.api.enrollments import enrollment_router
from edutrack_backend.api.exceptions import error_body
from edutrack_backend.api.users import user_router
from edutrack_backend.auth.gateway import IdentityGateway
from edutrack_backend.auth.keycloak import KeycloakIdentityGateway
from edutrack_backend.database import Database
from edutrack_backend.permissions.auth import get_current_principal
from edutrack_backend.redis_cache import create_cache
from edutrack_backend.settings import settings

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI):

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(error_body(exc.detail, "Request failed")),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=jsonable_encoder({"error": "Validation failed", "details": exc.errors()})
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"}
        )


def create_app(
    database: Optional[Database] = None,
    identity_gateway: Optional[IdentityGateway] = None,
    cache: Optional[BaseCache] = None,
    create_tables: bool = False
) -> FastAPI:
    """Build the application around explicitly constructed store, gateway and cache clients."""

    database = database or Database()
    identity_gateway = identity_gateway or KeycloakIdentityGateway()
    cache = cache or create_cache()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.connect()
        if create_tables or settings.DEBUG_MODE != "production":
            database.create_all()
        await identity_gateway.initialize()

        app.state.database = database
        app.state.identity = identity_gateway
        app.state.cache = cache

        try:
            yield
        finally:
            await identity_gateway.close()
            await cache.close()
            database.dispose()

    app = FastAPI(title="EduTrack API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.head('/', status_code=204)
    def get_status_head():
        return

    app.include_router(
        auth_router,
        prefix="/auth",
        tags=["auth"]
    )

    app.include_router(
        user_router,
        prefix="/users",
        tags=["users"],
        dependencies=[Depends(get_current_principal)]
    )

    app.include_router(
        course_router,
        prefix="/courses",
        tags=["courses"],
        dependencies=[Depends(get_current_principal)]
    )

    app.include_router(
        enrollment_router,
        prefix="/enrollments",
        tags=["enrollments"],
        dependencies=[Depends(get_current_principal)]
    )

    app.include_router(
        analytics_router,
        prefix="/analytics",
        tags=["analytics"],
        dependencies=[Depends(get_current_principal)]
    )

    return app
