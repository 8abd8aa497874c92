from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from boutique.models.user import UserRole

EMAIL_FIELD = Field(min_length=5, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class SignUpRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = EMAIL_FIELD
    password: str = Field(min_length=6, max_length=128)
    full_name: str = Field(min_length=1, max_length=160, validation_alias=AliasChoices("full_name", "nom_complet"))
    phone: str | None = Field(default=None, max_length=32, validation_alias=AliasChoices("phone", "telephone"))
    role: UserRole = UserRole.EMPLOYEE

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=128)


class UserOut(BaseModel):
    id: int
    email: str
    full_name: str | None
    phone: str | None
    role: UserRole
    is_confirmed: bool
    has_pin: bool = False
    created_at: datetime


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class ProfileUpdateRequest(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=160)
    phone: str | None = Field(default=None, max_length=32)
    pin_code: str | None = Field(default=None, pattern=r"^\d{4,8}$")


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=6, max_length=128)


class GenericMessageResponse(BaseModel):
    message: str
