"""
Study Hub - Test Configuration and Fixtures
"""
import os
from collections.abc import AsyncGenerator

import pytest
import sse_starlette.sse as sse_module
from faker import Faker
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

# Set testing environment before the app reads its settings
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL_OVERRIDE"] = "sqlite+aiosqlite:///./test_studyhub.db"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-testing"
os.environ["AWS_ACCESS_KEY_ID"] = "test-access-key"
os.environ["AWS_SECRET_ACCESS_KEY"] = "test-secret-key"
os.environ["AWS_S3_BUCKET"] = "test-bucket"
os.environ["ANTHROPIC_API_KEY"] = "test-api-key"
os.environ["BCRYPT_ROUNDS"] = "4"

from studyhub.api.deps import create_access_token, hash_password  # noqa: E402
from studyhub.db.base import Base  # noqa: E402
from studyhub.db.models import User  # noqa: E402
from studyhub.db.session import AsyncSessionLocal, engine, get_db  # noqa: E402
from studyhub.main import app  # noqa: E402
from studyhub.services.chat_service import chat_service  # noqa: E402
from studyhub.services.rate_limiter import rate_limiter  # noqa: E402
from studyhub.services.storage import storage_service  # noqa: E402

fake = Faker()

TEST_PASSWORD = "testpassword123"
EMAIL_DOMAIN = "mail.apu.edu.my"


def institutional_email() -> str:
    return f"{fake.user_name()}{fake.random_int(1000, 9999)}@{EMAIL_DOMAIN}"


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Every test starts with empty rate-limit windows."""
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """Older sse-starlette releases keep a module-level exit event bound to the first event loop."""
    app_status = getattr(sse_module, "AppStatus", None)
    if app_status is not None and hasattr(app_status, "should_exit_event"):
        app_status.should_exit_event = None
    yield


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database for each test"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def make_user(db_session: AsyncSession, **overrides) -> User:
    user = User(
        email=overrides.pop("email", institutional_email()),
        name=overrides.pop("name", fake.first_name()),
        password_hash=hash_password(overrides.pop("password", TEST_PASSWORD)),
        **overrides,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user"""
    return await make_user(db_session)


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second account, for ownership checks"""
    return await make_user(db_session)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Generate authentication headers for test user"""
    return {"Authorization": f"Bearer {create_access_token(test_user.id)}"}


@pytest.fixture
def other_auth_headers(other_user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(other_user.id)}"}


class FakeStorage:
    """Records object storage calls instead of talking to S3."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []

    async def upload_file(self, file_key: str, file_data: bytes, content_type: str) -> None:
        self.objects[file_key] = file_data

    async def delete_file(self, file_key: str) -> None:
        self.deleted.append(file_key)
        self.objects.pop(file_key, None)


@pytest.fixture
def fake_storage(monkeypatch) -> FakeStorage:
    storage = FakeStorage()
    monkeypatch.setattr(storage_service, "upload_file", storage.upload_file)
    monkeypatch.setattr(storage_service, "delete_file", storage.delete_file)
    return storage


class FakeLLM:
    """Stands in for the Anthropic stream; yields canned chunks."""

    def __init__(self, chunks: list[str] | None = None, error: Exception | None = None):
        self.chunks = chunks if chunks is not None else ["Photosynthesis ", "turns light ", "into sugar."]
        self.error = error
        self.calls: list[list[dict]] = []

    async def stream_reply(self, messages: list[dict]):
        self.calls.append(messages)
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


@pytest.fixture
def fake_llm(monkeypatch) -> FakeLLM:
    llm = FakeLLM()
    monkeypatch.setattr(chat_service, "stream_reply", llm.stream_reply)
    return llm
