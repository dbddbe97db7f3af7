"""
core/security.py
----------------
Password hashing and session token utilities.

Design decisions:
  - bcrypt work factor from settings (12 in production).
  - The session token is a signed JWT carrying the account identity and a
    point-in-time snapshot of its organization memberships. It is never
    re-validated against the database by the route guard, so a membership
    change is only visible after the token is re-issued or updated.
  - Fixed 8 hour lifetime from issuance. Updating a token re-signs it with
    the original iat/exp (no sliding renewal).
"""

import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from lawfirm.core.config import settings
from lawfirm.core.errors import Unauthorized

pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS
)

# Claims an update trigger is never allowed to overwrite
PROTECTED_CLAIMS = frozenset({"sub", "iat", "exp", "iss"})


# ── Password Utilities ────────────────────────────────────────────────────────

def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the plain-text password."""
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """Constant-time comparison of plain password against stored hash."""
    return pwd_context.verify(plain, hashed)


# ── Session Token Utilities ───────────────────────────────────────────────────

def display_name(first_name: str | None, last_name: str | None, email: str) -> str:
    return f"{first_name or ''} {last_name or ''}".strip() or email


def issue_session_token(
    account_id: str,
    email: str,
    first_name: str | None,
    last_name: str | None,
    organizations: Iterable[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> str:
    """
    Mint a session token.

    Args:
        account_id: Account UUID (stored in 'sub').
        email: Account email.
        first_name / last_name: Profile names; 'name' falls back to email.
        organizations: Membership snapshot, one dict per organization
            ({organizationId, organizationName, organizationSlug, role}).
        now: Issuance time; defaults to the current UTC time.

    Returns:
        Signed JWT string.
    """
    issued_at = now or datetime.now(timezone.utc)
    expires = issued_at + timedelta(hours=settings.SESSION_MAX_AGE_HOURS)
    payload: Dict[str, Any] = {
        "sub": account_id,
        "email": email,
        "name": display_name(first_name, last_name, email),
        "firstName": first_name,
        "lastName": last_name,
        "organizations": list(organizations),
        "iat": int(issued_at.timestamp()),
        "exp": int(expires.timestamp()),
        "iss": settings.JWT_ISSUER,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_session_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a session token.

    Raises:
        Unauthorized: If the token is invalid, expired, or tampered with.
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            issuer=settings.JWT_ISSUER,
        )
    except JWTError as exc:
        raise Unauthorized("Invalid session") from exc


def update_session_token(token: str, patch: Dict[str, Any]) -> str:
    """
    Merge a partial payload into an existing token's claims and re-sign it.

    Identity and lifetime claims are kept from the original token.
    """
    claims = decode_session_token(token)
    merged = {
        **claims,
        **{k: v for k, v in patch.items() if k not in PROTECTED_CLAIMS},
    }
    if "firstName" in patch or "lastName" in patch:
        merged["name"] = display_name(
            merged.get("firstName"), merged.get("lastName"), merged["email"]
        )
    return jwt.encode(merged, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def try_decode_session_token(token: str | None) -> Optional[Dict[str, Any]]:
    """Like decode_session_token, but returns None for a missing or bad token."""
    if not token:
        return None
    try:
        return decode_session_token(token)
    except Unauthorized:
        return None


# ── Random Tokens ─────────────────────────────────────────────────────────────

_TOKEN_ALPHABET = string.ascii_letters + string.digits


def generate_token(length: int = 32) -> str:
    """Cryptographically random alphanumeric token of exactly ``length`` chars."""
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(length))
