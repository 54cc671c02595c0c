"""FastAPI dependencies: token issuer, services, current user from the access token."""

from datetime import timedelta
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.auth import TokenIssuer, UserClaims
from app.core.errors import Forbidden, InvalidToken, Unauthorized
from app.db.session import get_db
from app.services.auth import AuthService
from app.services.mailer import Mailer
from app.services.otp import OtpManager
from app.services.sessions import SessionStore
from app.services.users import UserService


def build_token_issuer(sessions: SessionStore | None = None) -> TokenIssuer:
    return TokenIssuer(
        access_secret=settings.access_token_secret,
        refresh_secret=settings.refresh_token_secret,
        sessions=sessions,
        algorithm=settings.jwt_algorithm,
        access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
        refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
    )


def get_mailer() -> Mailer:
    return Mailer.from_settings()


async def get_auth_service(
    session: Annotated[AsyncSession, Depends(get_db)],
    mailer: Annotated[Mailer, Depends(get_mailer)],
) -> AuthService:
    sessions = SessionStore(session)
    return AuthService(
        session=session,
        issuer=build_token_issuer(sessions),
        sessions=sessions,
        otps=OtpManager(
            session,
            length=settings.otp_length,
            ttl=timedelta(minutes=settings.otp_expire_minutes),
        ),
        mailer=mailer,
        mail_from=settings.mail_from,
    )


async def get_user_service(
    session: Annotated[AsyncSession, Depends(get_db)],
) -> UserService:
    return UserService(session)


async def get_current_user(request: Request) -> UserClaims:
    """Claims of the bearer access token. Stateless: no database lookup."""
    auth_header = request.headers.get("Authorization") or ""
    parts = auth_header.split(" ", 1)
    token = parts[1].strip() if len(parts) == 2 else ""
    if not token:
        raise Unauthorized("Token is required")
    try:
        return build_token_issuer().verify_access_token(token)
    except InvalidToken:
        raise Forbidden("Invalid access token")
