from app.models.user import User, UserStatus
from app.models.refresh_token import RefreshToken
from app.models.otp import Otp

__all__ = [
    "User",
    "UserStatus",
    "RefreshToken",
    "Otp",
]
