"""Shared fixtures: a throwaway SQLite database, the app client and seed data."""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="lawfirm-tests-")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["SECRET_KEY"] = "test-secret-key-0123456789abcdefghijklmnopqrstuvwxyz"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["APP_URL"] = "https://app.example.com"
os.environ["DEBUG"] = "false"
# Force every integration into its unconfigured / mock mode
for _key in (
    "OPENAI_API_KEY",
    "MLFLOW_TRACKING_URI",
    "RESEND_API_KEY",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_PHONE_NUMBER",
):
    os.environ[_key] = ""

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from lawfirm.core.security import hash_password  # noqa: E402
from lawfirm.db.session import AsyncSessionLocal, engine  # noqa: E402
from lawfirm.models import Account, AccountStatus, Base  # noqa: E402
from lawfirm.services import session_service  # noqa: E402
from lawfirm.services.organization_service import OrganizationService  # noqa: E402
from main import app  # noqa: E402

PASSWORD = "Correct-Horse-42!"


@pytest.fixture
async def tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db(tables):
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
async def client(tables):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


async def make_account(db, email: str, first_name: str = "Test", last_name: str = "User") -> Account:
    account = Account(
        email=email,
        password=hash_password(PASSWORD),
        first_name=first_name,
        last_name=last_name,
        status=AccountStatus.ACTIVE.value,
    )
    db.add(account)
    await db.commit()
    return account


async def bearer(db, account: Account) -> dict:
    token = await session_service.issue_for_account(db, account)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def owner(db):
    return await make_account(db, "owner@example.com", "Olivia", "Owner")


@pytest.fixture
async def outsider(db):
    return await make_account(db, "outsider@example.com", "Oscar", "Outsider")


@pytest.fixture
async def organization(db, owner):
    organization = await OrganizationService.create_organization(db, "Acme Legal", owner)
    await db.commit()
    return organization


@pytest.fixture
async def owner_headers(db, owner, organization):
    return await bearer(db, owner)


@pytest.fixture
async def outsider_headers(db, outsider):
    return await bearer(db, outsider)
