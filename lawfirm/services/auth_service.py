"""
services/auth_service.py
------------------------
Credential verification, registration and single-use account tokens.

Lockout policy:
  - A failed password check increments failed_login_attempts; when the
    count before the increment is already 4 (i.e. on the 5th failure)
    locked_until is set to now + 15 minutes.
  - While locked, every attempt fails with AccountLocked without touching
    the counters, even with the right password.
  - The increment and the lock decision happen in one conditional UPDATE,
    so concurrent failures cannot lose counts.
  - A successful login resets both counters and stamps last_login_at.

Email lookup is an exact, case-sensitive match.
"""

from datetime import timedelta

from sqlalchemy import case, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lawfirm.core.config import settings
from lawfirm.core.errors import AccountLocked, InvalidCredentials, ValidationError
from lawfirm.core.logging import get_logger
from lawfirm.core.security import generate_token, hash_password, verify_password
from lawfirm.db.base import as_utc, utcnow
from lawfirm.integrations import email as email_client
from lawfirm.models.account import Account, AccountStatus
from lawfirm.models.verification_token import TokenPurpose, VerificationToken
from lawfirm.schemas.auth import RegisterRequest
from lawfirm.services import two_factor
from lawfirm.services.organization_service import OrganizationService

logger = get_logger(__name__)

MAX_FAILED_ATTEMPTS = 5
LOCKOUT_DURATION = timedelta(minutes=15)
EMAIL_VERIFICATION_TTL = timedelta(hours=24)
PASSWORD_RESET_TTL = timedelta(hours=1)


class AuthService:

    # ── Credential Verifier ──────────────────────────────────────────────────

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Account | None:
        result = await db.execute(
            select(Account)
            .where(Account.email == email)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def record_failed_attempt(db: AsyncSession, account_id: str) -> None:
        """
        Atomically count a failed attempt and lock on the 5th.

        The WHERE clause skips accounts that became locked concurrently.
        """
        now = utcnow()
        await db.execute(
            update(Account)
            .where(
                Account.id == account_id,
                or_(Account.locked_until.is_(None), Account.locked_until <= now),
            )
            .values(
                failed_login_attempts=Account.failed_login_attempts + 1,
                locked_until=case(
                    (
                        Account.failed_login_attempts >= MAX_FAILED_ATTEMPTS - 1,
                        now + LOCKOUT_DURATION,
                    ),
                    else_=None,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        # Must survive the request's rollback on the error raised next
        await db.commit()

    @staticmethod
    async def authenticate(
        db: AsyncSession,
        email: str,
        password: str,
        two_factor_code: str | None = None,
    ) -> Account:
        """
        Verify credentials (and the second factor) for a login attempt.

        Raises:
            InvalidCredentials: Unknown email, no password set, or wrong password.
            AccountLocked: locked_until is in the future.
            TwoFactorRequired: 2FA enabled and no code submitted.
            InvalidTwoFactorCode: Submitted code is wrong.
        """
        account = await AuthService.get_by_email(db, email)
        if account is None or not account.password:
            raise InvalidCredentials()

        now = utcnow()
        locked_until = as_utc(account.locked_until)
        if locked_until is not None and locked_until > now:
            logger.warning("Login attempt on locked account", account_id=account.id)
            raise AccountLocked()

        if not verify_password(password, account.password):
            await AuthService.record_failed_attempt(db, account.id)
            logger.warning(
                "Invalid password",
                account_id=account.id,
                previous_failures=account.failed_login_attempts,
            )
            raise InvalidCredentials()

        backup_index = two_factor.validate_second_factor(account, two_factor_code)
        if backup_index is not None:
            remaining = list(account.two_factor_backup_codes)
            remaining.pop(backup_index)
            account.two_factor_backup_codes = remaining

        account.failed_login_attempts = 0
        account.locked_until = None
        account.last_login_at = now
        await db.flush()

        logger.info("Login succeeded", account_id=account.id)
        return account

    # ── Registration ─────────────────────────────────────────────────────────

    @staticmethod
    async def register(db: AsyncSession, data: RegisterRequest) -> Account:
        """
        Create a PENDING_VERIFICATION account, its organization when a name
        is given, and send the email verification link.

        Raises:
            ValidationError: The email is already registered.
        """
        if await AuthService.get_by_email(db, data.email) is not None:
            raise ValidationError("An account with this email already exists")

        account = Account(
            email=data.email,
            password=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            status=AccountStatus.PENDING_VERIFICATION.value,
        )
        db.add(account)
        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            raise ValidationError("An account with this email already exists") from exc

        if data.organization_name:
            await OrganizationService.create_organization(db, data.organization_name, account)

        token = await AuthService.create_token(db, account.email, TokenPurpose.EMAIL_VERIFICATION)
        verification_url = f"{settings.APP_URL}/verify-email?token={token.token}"
        content = email_client.verification_email(account.first_name, verification_url)
        result = await email_client.send_email(
            to=account.email, subject=content.subject, html=content.html, text=content.text
        )
        if not result.success:
            logger.warning("Verification email not delivered", account_id=account.id, error=result.error)

        logger.info("Account registered", account_id=account.id)
        return account

    # ── Single-use tokens ────────────────────────────────────────────────────

    @staticmethod
    async def create_token(
        db: AsyncSession, identifier: str, purpose: TokenPurpose
    ) -> VerificationToken:
        ttl = (
            EMAIL_VERIFICATION_TTL
            if purpose is TokenPurpose.EMAIL_VERIFICATION
            else PASSWORD_RESET_TTL
        )
        token = VerificationToken(
            identifier=identifier,
            token=generate_token(32),
            type=purpose.value,
            expires=utcnow() + ttl,
        )
        db.add(token)
        await db.flush()
        return token

    @staticmethod
    async def consume_token(
        db: AsyncSession, token: str, purpose: TokenPurpose
    ) -> VerificationToken:
        """
        Mark a token used. Consumption is a conditional UPDATE so a token can
        only ever be consumed once.

        Raises:
            ValidationError: Unknown, expired, already used, or wrong purpose.
        """
        now = utcnow()
        result = await db.execute(
            update(VerificationToken)
            .where(
                VerificationToken.token == token,
                VerificationToken.type == purpose.value,
                VerificationToken.consumed_at.is_(None),
                VerificationToken.expires > now,
            )
            .values(consumed_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ValidationError("Invalid or expired token")

        record = await db.execute(select(VerificationToken).where(VerificationToken.token == token))
        return record.scalar_one()

    @staticmethod
    async def verify_email(db: AsyncSession, token: str) -> Account:
        record = await AuthService.consume_token(db, token, TokenPurpose.EMAIL_VERIFICATION)
        account = await AuthService.get_by_email(db, record.identifier)
        if account is None:
            raise ValidationError("Invalid or expired token")

        account.status = AccountStatus.ACTIVE.value
        account.email_verified_at = utcnow()
        await db.flush()
        logger.info("Email verified", account_id=account.id)
        return account

    @staticmethod
    async def request_password_reset(db: AsyncSession, email: str) -> None:
        """Silently does nothing for unknown emails (no account enumeration)."""
        account = await AuthService.get_by_email(db, email)
        if account is None:
            logger.info("Password reset requested for unknown email")
            return

        token = await AuthService.create_token(db, account.email, TokenPurpose.PASSWORD_RESET)
        reset_url = f"{settings.APP_URL}/reset-password?token={token.token}"
        content = email_client.password_reset_email(account.first_name, reset_url)
        await email_client.send_email(
            to=account.email, subject=content.subject, html=content.html, text=content.text
        )
        logger.info("Password reset requested", account_id=account.id)

    @staticmethod
    async def reset_password(db: AsyncSession, token: str, new_password: str) -> Account:
        record = await AuthService.consume_token(db, token, TokenPurpose.PASSWORD_RESET)
        account = await AuthService.get_by_email(db, record.identifier)
        if account is None:
            raise ValidationError("Invalid or expired token")

        account.password = hash_password(new_password)
        account.failed_login_attempts = 0
        account.locked_until = None
        await db.flush()
        logger.info("Password reset", account_id=account.id)
        return account
