import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from sqlmodel import Session

from crud_users import __version__
from crud_users.api.auth import router as auth_router
from crud_users.api.users import router as users_router
from crud_users.auth import hash_password
from crud_users.config import settings
from crud_users.database import engine, init_db
from crud_users.errors import ApiError, normalize_error, register_error_handlers
from crud_users.log import log_requests, setup_logging
from crud_users.middleware import limit_body_size, security_headers
from crud_users.models.user import Role, User
from crud_users.store import UserStore

setup_logging()
logger = logging.getLogger(__name__)


def seed_admin(store: UserStore) -> User | None:
    """Create the bootstrap admin if a password is configured and none exists."""
    if not settings.admin_password:
        return None
    existing = store.find_by_identifier(settings.admin_username)
    if existing:
        return existing
    admin = User(
        name="Admin",
        last_name="Admin",
        phone_number=settings.admin_phone,
        email=settings.admin_email,
        username=settings.admin_username,
        password_hash=hash_password(settings.admin_password),
        role=Role.ADMIN,
    )
    logger.info("Seeding admin user %r", settings.admin_username)
    return store.save(admin)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    with Session(engine) as session:
        seed_admin(UserStore(session))
    logger.info(
        "Server started (environment=%s, prefix=%s)",
        settings.environment,
        settings.api_prefix,
    )
    yield


def handle_rate_limit(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("Rate limit hit by %s (%s)", get_remote_address(request), exc.detail)
    status_code, body = normalize_error(ApiError.rate_limited())
    return JSONResponse(status_code=status_code, content=body)


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[
        f"{settings.rate_limit_max}/{settings.rate_limit_window_minutes} minutes"
    ],
    enabled=settings.rate_limit_enabled,
)

app = FastAPI(title="CRUD Users API", version=__version__, lifespan=lifespan)
app.state.limiter = limiter

register_error_handlers(app)
app.add_exception_handler(RateLimitExceeded, handle_rate_limit)

# Added innermost first; CORS is the outermost layer.
app.middleware("http")(limit_body_size)
app.middleware("http")(log_requests)
app.add_middleware(SlowAPIMiddleware)
app.middleware("http")(security_headers)
app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_minimum_size)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_credentials,
    allow_methods=settings.cors_method_list,
    allow_headers=["*"],
)

app.include_router(auth_router, prefix=settings.api_prefix)
app.include_router(users_router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "environment": settings.environment,
        "version": __version__,
    }
