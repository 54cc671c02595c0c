"""Login, refresh, logout, change password and the OTP password-reset flows.

Inputs arrive as validated schemas, so shape errors have already been rejected
before any of these methods touch the database.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import TokenIssuer, UserClaims, hash_password, verify_password
from app.core.errors import (
    BadRequest,
    InternalError,
    InvalidToken,
    MailDeliveryError,
    TokenExpired,
    Unauthorized,
    ValidationError,
)
from app.models.user import User
from app.schemas.auth import (
    ChangePasswordBody,
    ForgotPasswordBody,
    ForgotPasswordChangeBody,
    LoginBody,
    TokenPair,
)
from app.services.mailer import Mailer, render_otp_email
from app.services.otp import OtpManager
from app.services.sessions import SessionStore
from app.services.users import UserStore

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
OTP_SENT = "OTP sent to your email"
# Checked against when the email is unknown so both login failures cost one bcrypt round
_DUMMY_HASH = hash_password("timing-equalization-only")


class AuthService:
    def __init__(
        self,
        session: AsyncSession,
        issuer: TokenIssuer,
        sessions: SessionStore,
        otps: OtpManager,
        mailer: Mailer,
        mail_from: str,
    ) -> None:
        self.session = session
        self.issuer = issuer
        self.sessions = sessions
        self.otps = otps
        self.users = UserStore(session)
        self.mailer = mailer
        self.mail_from = mail_from

    async def _commit(self) -> None:
        # errors roll the request transaction back, so revocations are committed before raising
        await self.users.commit()

    async def login(self, body: LoginBody) -> TokenPair:
        user = await self.users.find_by_email(body.email)
        if user is None:
            verify_password(body.password, _DUMMY_HASH)
            logger.warning("Login failed")
            raise Unauthorized(INVALID_CREDENTIALS)
        if not verify_password(body.password, user.password):
            logger.warning("Login failed")
            raise Unauthorized(INVALID_CREDENTIALS)
        claims = UserClaims.from_user(user)
        access = self.issuer.issue_access_token(claims)
        refresh = await self.issuer.issue_refresh_token(claims)
        await self._commit()
        return TokenPair(access_token=access, refresh_token=refresh)

    async def refresh(self, token: str | None) -> TokenPair:
        """Exchange a stored refresh token for a new access token. The refresh token is returned unchanged."""
        if not token:
            raise BadRequest("Token is required")
        record = await self.sessions.find_by_token(token)
        if record is None:
            raise InvalidToken()
        if self.sessions.is_expired(record):
            await self.sessions.destroy(token)
            await self._commit()
            logger.info("Refresh token past stored expiry revoked: user_id=%s", record.user_id)
            raise InvalidToken()
        try:
            claims = self.issuer.verify_refresh_token(token)
        except (InvalidToken, TokenExpired):
            await self.sessions.destroy(token)
            await self._commit()
            logger.info("Refresh token failed verification and was revoked: user_id=%s", record.user_id)
            raise TokenExpired() from None
        user = await self.users.find_by_id(claims.id)
        if user is None:
            await self.sessions.destroy(token)
            await self._commit()
            raise InvalidToken()
        access = self.issuer.issue_access_token(UserClaims.from_user(user))
        return TokenPair(access_token=access, refresh_token=token)

    async def logout(self, token: str | None) -> None:
        if not token:
            raise Unauthorized("Refresh token is required")
        await self.sessions.destroy(token)
        await self._commit()

    async def change_password(self, user_id: int, body: ChangePasswordBody) -> None:
        if body.old_password == body.new_password:
            raise ValidationError("password and old password should be different")
        user = await self.users.find_by_id(user_id)
        if user is None or not verify_password(body.old_password, user.password):
            raise Unauthorized("Invalid credential")
        await self.users.update({"password": body.new_password}, User.id == user.id)
        await self._commit()
        logger.info("Password changed: user_id=%s", user.id)

    async def forgot_password(self, body: ForgotPasswordBody) -> str:
        """Send a reset code if the email is known. The reply is identical either way."""
        user = await self.users.find_by_email(body.email)
        if user is None:
            return OTP_SENT
        code = await self.otps.issue(user.id)
        await self._commit()
        try:
            await self.mailer.send_mail(
                self.mail_from,
                user.email,
                "Password reset code",
                render_otp_email(user.name, code, int(self.otps.ttl.total_seconds() // 60)),
            )
        except MailDeliveryError as e:
            logger.exception("Forgot password mail failed: user_id=%s", user.id)
            raise InternalError() from e
        return OTP_SENT

    async def forgot_password_change(self, body: ForgotPasswordChangeBody) -> None:
        try:
            user_id = await self.otps.consume(body.email, body.otp)
        except TokenExpired:
            await self._commit()
            raise
        await self.users.update({"password": body.new_password}, User.id == user_id)
        await self._commit()
        logger.info("Password reset with OTP: user_id=%s", user_id)
