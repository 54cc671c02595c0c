import logging
import sys
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from app.api.v1 import auth, users

# Ensure app loggers print to stdout so you see them in the terminal
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stdout,
)
logging.getLogger("app").setLevel(logging.DEBUG)
from app.config import settings
from app.core.errors import AppError, PersistenceError, first_error_message
from app.db.session import init_db
from app.schemas.common import respond
from app.services import storage
from prometheus_client import make_asgi_app

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def purge_expired_credentials() -> None:
    """Delete refresh tokens and OTPs whose stored expiry has passed."""
    from app.db.session import async_session_maker
    from app.services.otp import OtpManager
    from app.services.sessions import SessionStore

    async with async_session_maker() as session:
        tokens = await SessionStore(session).purge_expired()
        otps = await OtpManager(session, length=settings.otp_length).purge_expired()
        await session.commit()
    if tokens or otps:
        logger.info("Purged %s expired refresh token(s), %s expired OTP(s)", tokens, otps)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.validate_production_config()
    if settings.app_env == "production":
        from app.services.crypto import get_fernet

        try:
            if get_fernet() is None:
                raise ValueError("empty key")
        except ValueError as e:
            raise RuntimeError(
                "ENCRYPTION_KEY must be a valid Fernet key in production. "
                'Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"'
            ) from e
    await init_db()
    storage.ensure_dirs()

    scheduler.add_job(purge_expired_credentials, "interval", minutes=settings.purge_interval_minutes)
    scheduler.start()
    yield
    scheduler.shutdown()


app = FastAPI(
    title="Accounts API",
    description="User accounts: login, access/refresh tokens, password reset by OTP, profiles",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(GZipMiddleware, minimum_size=500)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return respond(exc.message, code=exc.status_code)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error("Persistence failure on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return respond("Internal server error", code=500)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return respond(first_error_message(list(exc.errors())), code=400)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return respond("Internal server error", code=500)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if getattr(settings, "enable_hsts", False):
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()] if settings.cors_origins else ["*"]
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")

metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)


@app.get("/health")
def health(request: Request):
    return {"status": "ok"}
