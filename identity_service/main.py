import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from identity_service.apps.router import create_app_router
from identity_service.auth.jwt import TokenManager
from identity_service.auth.middleware import AuthorizationGate
from identity_service.auth.passwords import PasswordHasher
from identity_service.base_microservice import BaseMicroservice, configure_logging
from identity_service.config import Settings
from identity_service.database import create_engine, create_session_factory, init_tables
from identity_service.users.router import create_user_router
from identity_service.users.service import init_default_account

base_service = BaseMicroservice()
access_log = BaseMicroservice("identity_service.http")

DEV_ENVIRONMENTS = ("development", "dev", "test")


async def start_identity_service(app: FastAPI):
    """Create tables and seed the bootstrap account if configured."""
    settings: Settings = app.state.settings

    if settings.uses_dev_secret and settings.environment.lower() not in DEV_ENVIRONMENTS:
        base_service.logger.warning(
            "JWT_SECRET_KEY is not set; using the built-in development secret"
        )

    try:
        await init_tables(app.state.engine)
        base_service.log_event("database.ready", {"url": app.state.engine.url.render_as_string()})

        if settings.bootstrap_enabled:
            async with app.state.session_factory() as session:
                created = await init_default_account(
                    session,
                    app.state.hasher,
                    settings.bootstrap_app_name,
                    settings.bootstrap_admin_email,
                    settings.bootstrap_admin_password,
                )
            if created:
                base_service.log_event("bootstrap.account_created", {
                    "app": settings.bootstrap_app_name,
                    "email": settings.bootstrap_admin_email
                })
    except Exception as e:
        base_service.log_error(e, context="Identity service startup")
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI.
    Handles startup and shutdown events.
    """
    settings: Settings = app.state.settings
    configure_logging(settings.log_level, settings.log_dir)

    base_service.log_event("service.startup", {"environment": settings.environment})
    await start_identity_service(app)

    yield

    base_service.log_event("service.shutdown", {"environment": settings.environment})
    await app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Signing secret, token lifetime and hash work factor are fixed here for
    the lifetime of the process and handed to the components that use them.

    Args:
        settings: Configuration, read from the environment when omitted

    Returns:
        Configured FastAPI app
    """
    if settings is None:
        settings = Settings.from_env()

    hasher = PasswordHasher(settings.hash_work_factor)
    token_manager = TokenManager(settings.jwt_secret, settings.jwt_expiry)
    gate = AuthorizationGate(token_manager)

    app = FastAPI(
        title="Identity Service API",
        description="Multi-tenant user identity microservice",
        version="1.0.0",
        lifespan=lifespan,
    )

    engine = create_engine(settings.database_url)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.hasher = hasher
    app.state.token_manager = token_manager

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Per-client-IP request budget applied to every route
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit] if settings.rate_limit else [],
        enabled=bool(settings.rate_limit),
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Registered last so it is outermost and also sees rate-limited responses
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        access_log.log_event("http.request", {
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            "client": request.client.host if request.client else None,
        })
        return response

    app.include_router(create_user_router(gate, hasher, token_manager))
    app.include_router(create_app_router(gate))

    @app.get("/health", tags=["health"])
    async def health_check():
        """Service health check."""
        return base_service.mcp_response(data={"status": "UP"}, message="Service is healthy")

    return app


app = create_app()

# For running directly with uvicorn
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("identity_service.main:app", host=app.state.settings.host, port=app.state.settings.port)
