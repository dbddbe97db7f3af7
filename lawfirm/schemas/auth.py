"""
schemas/auth.py
---------------
Pydantic models for registration, login, sessions and two-factor setup.

Security note:
  - Password hashes, 2FA secrets and backup-code hashes never appear in
    any response schema.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from lawfirm.schemas.base import CamelModel, EmailAddress

_PASSWORD_RULES = [
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[0-9]"), "Password must contain at least one number"),
    (re.compile(r"[^A-Za-z0-9]"), "Password must contain at least one special character"),
]


def check_password_strength(value: str) -> str:
    for pattern, message in _PASSWORD_RULES:
        if not pattern.search(value):
            raise ValueError(message)
    return value


class RegisterRequest(CamelModel):
    email: EmailAddress
    password: str = Field(..., min_length=12, max_length=128)
    confirm_password: str
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    organization_name: Optional[str] = Field(default=None, max_length=255)

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        return check_password_strength(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(CamelModel):
    email: EmailAddress
    password: str = Field(..., min_length=1)
    two_factor_code: Optional[str] = None


class MembershipClaim(CamelModel):
    organization_id: str
    organization_name: str
    organization_slug: str
    role: str


class AccountRead(CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str
    status: str
    two_factor_enabled: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: AccountRead


class SessionRead(CamelModel):
    id: str
    email: str
    name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    organizations: List[MembershipClaim]
    expires: datetime

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "SessionRead":
        return cls(
            id=claims["sub"],
            email=claims["email"],
            name=claims["name"],
            first_name=claims.get("firstName"),
            last_name=claims.get("lastName"),
            organizations=claims.get("organizations", []),
            expires=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )


class SessionUpdateRequest(CamelModel):
    """Fields a client may change in its session token. Other keys are ignored."""

    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    # Reload the membership snapshot from the database
    organizations: bool = False

    def to_claims(self) -> Dict[str, Any]:
        return self.model_dump(
            by_alias=True, exclude_unset=True, include={"first_name", "last_name"}
        )


class SessionUpdateResponse(CamelModel):
    access_token: str
    session: SessionRead


class RegisterResponse(CamelModel):
    success: bool = True
    message: str


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class ForgotPasswordRequest(CamelModel):
    email: EmailAddress


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=12, max_length=128)

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        return check_password_strength(v)


class TwoFactorSetupResponse(CamelModel):
    secret: str
    provisioning_uri: str
    qr_code_url: str
    backup_codes: List[str]


class TwoFactorCodeRequest(CamelModel):
    code: str = Field(..., min_length=6, max_length=16)
