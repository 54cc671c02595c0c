"""Request/response bodies for the auth endpoints (camelCase on the wire)."""

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from app.core.validation import check_confirmation, check_email, check_otp, check_password


class LoginBody(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return check_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password(v, "password")


class TokenBody(BaseModel):
    """Refresh token sent to /refresh-token and /logout. Presence is checked by the flow."""

    token: str | None = None


class ChangePasswordBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_password: str = Field(alias="oldPassword")
    new_password: str = Field(alias="newPassword")
    confirm_password: str = Field(alias="confirmPassword")

    @field_validator("old_password")
    @classmethod
    def _old(cls, v: str) -> str:
        return check_password(v, "oldPassword")

    @field_validator("new_password")
    @classmethod
    def _new(cls, v: str) -> str:
        return check_password(v, "newPassword")

    @field_validator("confirm_password")
    @classmethod
    def _confirm(cls, v: str, info: ValidationInfo) -> str:
        return check_confirmation(v, info.data.get("new_password"))


class ForgotPasswordBody(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return check_email(v)


class ForgotPasswordChangeBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    otp: str
    new_password: str = Field(alias="newPassword")
    confirm_password: str = Field(alias="confirmPassword")

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return check_email(v)

    @field_validator("otp", mode="before")
    @classmethod
    def _otp(cls, v):
        # numeric JSON values are accepted as long as they have 4-8 digits
        if isinstance(v, int) and not isinstance(v, bool):
            v = str(v)
        if not isinstance(v, str):
            raise ValueError('"otp" must be a 4 to 8 digit number')
        return check_otp(v)

    @field_validator("new_password")
    @classmethod
    def _new(cls, v: str) -> str:
        return check_password(v, "newPassword")

    @field_validator("confirm_password")
    @classmethod
    def _confirm(cls, v: str, info: ValidationInfo) -> str:
        return check_confirmation(v, info.data.get("new_password"))


class TokenPair(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(serialization_alias="accessToken")
    refresh_token: str = Field(serialization_alias="refreshToken")
