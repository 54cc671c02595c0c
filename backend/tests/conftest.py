"""Pytest configuration and shared fixtures for API tests."""

import os
import re
import tempfile

import pytest
import pytest_asyncio
from cryptography.fernet import Fernet
from httpx import ASGITransport, AsyncClient

# Point config at a throw-away SQLite file and storage dir before app imports
_TMP_DIR = tempfile.mkdtemp(prefix="accounts-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR}/test.db")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret")
os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("STORAGE_DIR", os.path.join(_TMP_DIR, "storage"))

import app.models  # noqa: E402,F401
from app.api.deps import build_token_issuer, get_mailer  # noqa: E402
from app.core.auth import UserClaims, hash_password  # noqa: E402
from app.core.errors import MailDeliveryError  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import async_session_maker, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.mailer import Mailer  # noqa: E402

TEST_EMAIL = "auth@test.com"
TEST_PASSWORD = "Auth@1234"

OTP_IN_MAIL = re.compile(r"<b>(\d+)</b>")


class FakeMailer(Mailer):
    """Collects messages instead of talking to SMTP; set fail=True to simulate an outage."""

    def __init__(self) -> None:
        super().__init__(host="localhost", port=25)
        self.sent: list[dict] = []
        self.fail = False

    async def send_mail(self, from_addr: str, to: str, subject: str, html: str) -> None:
        if self.fail:
            raise MailDeliveryError("smtp unavailable")
        self.sent.append({"from": from_addr, "to": to, "subject": subject, "html": html})

    def last_code(self) -> str:
        m = OTP_IN_MAIL.search(self.sent[-1]["html"])
        assert m, "no code in last mail"
        return m.group(1)


@pytest_asyncio.fixture
async def clean_db():
    """Recreate all tables so each test starts from an empty database."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield


@pytest.fixture
def mailer():
    fake = FakeMailer()
    app.dependency_overrides[get_mailer] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_mailer, None)


@pytest_asyncio.fixture
async def client(clean_db, mailer):
    """Yield AsyncClient bound to the app; mail goes to the FakeMailer."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


async def create_user(email: str, password: str, name: str = "tester", **fields) -> User:
    async with async_session_maker() as session:
        user = User(name=name, email=email, password=hash_password(password), **fields)
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


@pytest_asyncio.fixture
async def test_user(clean_db):
    """Create a user via DB (committed) and return (user, access_token)."""
    user = await create_user(TEST_EMAIL, TEST_PASSWORD, name="auth")
    token = build_token_issuer().issue_access_token(UserClaims.from_user(user))
    return user, token


@pytest.fixture
def auth_headers(test_user):
    """Return dict of Authorization header for test_user."""
    _, token = test_user
    return {"Authorization": f"Bearer {token}"}
