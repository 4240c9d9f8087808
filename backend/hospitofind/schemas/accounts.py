"""Request models for authentication, profile and admin user management."""
import re

from pydantic import BaseModel, ConfigDict, field_validator

from hospitofind.auth.passwords import MIN_PASSWORD_LENGTH
from hospitofind.data.users_repo import VALID_ROLES

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]{3,32}$")


def _email(v: str) -> str:
    v = (v or "").strip().lower()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Please provide a valid email address.")
    return v


def _password(v: str) -> str:
    if not v or len(v) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    return v


class LoginRequest(BaseModel):
    model_config = ConfigDict(validate_default=True)

    email: str = ""
    password: str = ""

    @field_validator("email")
    @classmethod
    def email_present(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if not v:
            raise ValueError("Please fill in email")
        return v

    @field_validator("password")
    @classmethod
    def password_present(cls, v: str) -> str:
        if not v:
            raise ValueError("Please fill in password")
        return v


class RegisterRequest(BaseModel):
    name: str | None = None
    username: str
    email: str
    password: str

    @field_validator("username")
    @classmethod
    def username_format(cls, v: str) -> str:
        v = (v or "").strip()
        if not USERNAME_PATTERN.match(v):
            raise ValueError("Username must be 3-32 letters, digits, dots, dashes or underscores.")
        return v

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        return _email(v)

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return _password(v)


class EmailRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        return _email(v)


class ResetPasswordRequest(BaseModel):
    password: str

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return _password(v)


class Auth0LoginRequest(BaseModel):
    id_token: str
    email: str
    name: str | None = None
    username: str | None = None

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        return _email(v)


class UpdateUserRequest(BaseModel):
    username: str
    name: str | None = None
    email: str | None = None
    password: str | None = None  # current password; required when editing your own profile
    role: str | None = None

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str | None) -> str | None:
        return _email(v) if v else None

    @field_validator("role")
    @classmethod
    def role_valid(cls, v: str | None) -> str | None:
        if v is not None and v not in VALID_ROLES:
            raise ValueError("Invalid role type")
        return v


class UpdatePasswordRequest(BaseModel):
    username: str
    password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def new_password_length(cls, v: str) -> str:
        return _password(v)


class DeleteUserRequest(BaseModel):
    username: str
    password: str | None = None


class AdminCreateUserRequest(RegisterRequest):
    role: str = "user"

    @field_validator("role")
    @classmethod
    def role_valid(cls, v: str) -> str:
        if v not in VALID_ROLES:
            raise ValueError("Invalid role type")
        return v


class UpdateRoleRequest(BaseModel):
    user_id: str
    new_role: str

    @field_validator("new_role")
    @classmethod
    def role_valid(cls, v: str) -> str:
        if v not in VALID_ROLES:
            raise ValueError("Invalid role type")
        return v
