"""Tests for TOTP two-factor authentication."""

import re
import time

import pyotp
import pytest

from conftest import make_account
from lawfirm.core.errors import InvalidTwoFactorCode, TwoFactorRequired, ValidationError
from lawfirm.models import Account
from lawfirm.services import two_factor


def enabled_account(secret: str, backup_codes=None) -> Account:
    return Account(
        id="account-1",
        email="ada@example.com",
        two_factor_enabled=True,
        two_factor_secret=secret,
        two_factor_backup_codes=two_factor.hash_backup_codes(backup_codes or []),
    )


class TestTotp:
    """RFC 6238 codes with one step of clock skew."""

    def test_secret_is_base32(self):
        assert re.fullmatch(r"[A-Z2-7]+", two_factor.generate_secret())

    def test_current_code_valid(self):
        secret = two_factor.generate_secret()
        assert two_factor.verify_totp(secret, two_factor.generate_code(secret))

    def test_previous_step_valid(self):
        secret = two_factor.generate_secret()
        code = pyotp.TOTP(secret).at(time.time() - 30)
        assert two_factor.verify_totp(secret, code)

    def test_far_past_code_invalid(self):
        secret = two_factor.generate_secret()
        code = pyotp.TOTP(secret).at(time.time() - 300)
        assert not two_factor.verify_totp(secret, code)

    def test_empty_inputs(self):
        assert not two_factor.verify_totp("", "123456")
        assert not two_factor.verify_totp(two_factor.generate_secret(), "")

    def test_provisioning_uri(self):
        uri = two_factor.provisioning_uri("ada@example.com", "JBSWY3DPEHPK3PXP")
        assert uri.startswith("otpauth://totp/")
        assert "secret=JBSWY3DPEHPK3PXP" in uri
        assert "issuer=LawFirm%20Platform" in uri


class TestBackupCodes:
    def test_count_and_shape(self):
        codes = two_factor.generate_backup_codes()
        assert len(codes) == 10
        assert all(re.fullmatch(r"[A-Z0-9]{8}", code) for code in codes)

    def test_match_returns_index(self):
        codes = ["AAAA1111", "BBBB2222"]
        hashed = two_factor.hash_backup_codes(codes)
        assert two_factor.match_backup_code("bbbb2222", hashed) == 1
        assert two_factor.match_backup_code("CCCC3333", hashed) == -1


class TestValidateSecondFactor:

    def test_disabled_account_needs_no_code(self):
        account = Account(email="ada@example.com", two_factor_enabled=False)
        assert two_factor.validate_second_factor(account, None) is None

    def test_missing_code_requires_two_factor(self):
        account = enabled_account(two_factor.generate_secret())
        with pytest.raises(TwoFactorRequired) as info:
            two_factor.validate_second_factor(account, None)
        assert info.value.message == "2FA_REQUIRED"

    def test_totp_code(self):
        secret = two_factor.generate_secret()
        account = enabled_account(secret)
        assert two_factor.validate_second_factor(account, two_factor.generate_code(secret)) is None

    def test_backup_code(self):
        account = enabled_account(two_factor.generate_secret(), ["AAAA1111", "BBBB2222"])
        assert two_factor.validate_second_factor(account, "BBBB2222") == 1

    def test_wrong_code(self):
        account = enabled_account(two_factor.generate_secret(), ["AAAA1111"])
        with pytest.raises(InvalidTwoFactorCode):
            two_factor.validate_second_factor(account, "000000")


class TestEnrollment:

    async def test_setup_enable_disable(self, db):
        account = await make_account(db, "ada@example.com")

        setup = await two_factor.begin_setup(db, account)
        assert setup.qr_code_url.startswith("data:image/png;base64,")
        assert len(setup.backup_codes) == 10
        assert not account.two_factor_enabled

        with pytest.raises(InvalidTwoFactorCode):
            await two_factor.enable(db, account, "000000")

        await two_factor.enable(db, account, two_factor.generate_code(setup.secret))
        assert account.two_factor_enabled

        with pytest.raises(ValidationError):
            await two_factor.begin_setup(db, account)

        await two_factor.disable(db, account, setup.backup_codes[0])
        assert not account.two_factor_enabled
        assert account.two_factor_secret is None
        await db.commit()

    async def test_enable_without_setup(self, db):
        account = await make_account(db, "ada@example.com")
        with pytest.raises(ValidationError):
            await two_factor.enable(db, account, "123456")
