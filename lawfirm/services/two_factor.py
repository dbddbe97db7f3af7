"""
services/two_factor.py
----------------------
TOTP two-factor authentication.

Codes are RFC 6238 TOTP (30 s step, 6 digits) accepted within one step of
clock skew either side. Backup codes are single-use and stored as bcrypt
hashes; a matching code is removed from the account on use.
"""

import secrets
from dataclasses import dataclass
from typing import List, Optional

import pyotp
from sqlalchemy.ext.asyncio import AsyncSession

from lawfirm.core.errors import InvalidTwoFactorCode, TwoFactorRequired, ValidationError
from lawfirm.core.logging import get_logger
from lawfirm.core.security import pwd_context
from lawfirm.integrations.qr import qr_code_data_url
from lawfirm.models.account import Account

logger = get_logger(__name__)

TOTP_VALID_WINDOW = 1
BACKUP_CODE_COUNT = 10
BACKUP_CODE_LENGTH = 8
BACKUP_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
DEFAULT_ISSUER = "LawFirm Platform"


@dataclass
class TwoFactorSetup:
    secret: str
    provisioning_uri: str
    qr_code_url: str
    backup_codes: List[str]


def generate_secret() -> str:
    return pyotp.random_base32()


def generate_code(secret: str) -> str:
    return pyotp.TOTP(secret).now()


def verify_totp(secret: str, code: str) -> bool:
    if not secret or not code:
        return False
    return pyotp.TOTP(secret).verify(code.strip(), valid_window=TOTP_VALID_WINDOW)


def provisioning_uri(email: str, secret: str, issuer: str = DEFAULT_ISSUER) -> str:
    return pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=issuer)


def generate_backup_codes(count: int = BACKUP_CODE_COUNT) -> List[str]:
    return [
        "".join(secrets.choice(BACKUP_CODE_ALPHABET) for _ in range(BACKUP_CODE_LENGTH))
        for _ in range(count)
    ]


def hash_backup_codes(codes: List[str]) -> List[str]:
    return [pwd_context.hash(code.upper()) for code in codes]


def match_backup_code(code: str, hashed_codes: List[str]) -> int:
    """Index of the hash matching ``code``, or -1."""
    normalized = code.strip().upper()
    for index, hashed in enumerate(hashed_codes):
        if pwd_context.verify(normalized, hashed):
            return index
    return -1


def validate_second_factor(account: Account, code: Optional[str]) -> Optional[int]:
    """
    Check the second factor for a login attempt.

    Returns None when 2FA is disabled or a TOTP code matched, otherwise the
    index of the backup code that matched (the caller consumes it).

    Raises:
        TwoFactorRequired: 2FA enabled and no code submitted.
        InvalidTwoFactorCode: The code matched neither TOTP nor a backup code.
    """
    if not account.two_factor_enabled:
        return None
    if not code:
        raise TwoFactorRequired()

    if verify_totp(account.two_factor_secret or "", code):
        return None

    index = match_backup_code(code, account.two_factor_backup_codes or [])
    if index >= 0:
        logger.info("Backup code used", account_id=account.id)
        return index

    logger.warning("Invalid 2FA code", account_id=account.id)
    raise InvalidTwoFactorCode()


# ── Enrollment ────────────────────────────────────────────────────────────────

async def begin_setup(db: AsyncSession, account: Account) -> TwoFactorSetup:
    """
    Store a fresh (not yet enabled) secret and backup codes.
    2FA is only enforced after enable() confirms a code.
    """
    if account.two_factor_enabled:
        raise ValidationError("Two-factor authentication is already enabled")

    secret = generate_secret()
    backup_codes = generate_backup_codes()
    uri = provisioning_uri(account.email, secret)

    account.two_factor_secret = secret
    account.two_factor_backup_codes = hash_backup_codes(backup_codes)
    await db.flush()

    logger.info("2FA setup initiated", account_id=account.id)
    return TwoFactorSetup(
        secret=secret,
        provisioning_uri=uri,
        qr_code_url=qr_code_data_url(uri),
        backup_codes=backup_codes,
    )


async def enable(db: AsyncSession, account: Account, code: str) -> None:
    if not account.two_factor_secret:
        raise ValidationError("Two-factor setup has not been started")
    if not verify_totp(account.two_factor_secret, code):
        raise InvalidTwoFactorCode()

    account.two_factor_enabled = True
    await db.flush()
    logger.info("2FA enabled", account_id=account.id)


async def disable(db: AsyncSession, account: Account, code: str) -> None:
    if not account.two_factor_enabled:
        raise ValidationError("Two-factor authentication is not enabled")
    validate_second_factor(account, code)

    account.two_factor_enabled = False
    account.two_factor_secret = None
    account.two_factor_backup_codes = []
    await db.flush()
    logger.info("2FA disabled", account_id=account.id)
