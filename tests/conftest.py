import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from jose import jwt
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from api.routes import get_query_service
from db.models import Base
from db.session import get_db
from main import app
from services.config import Settings, get_settings
from services.query_service import QueryService
from tests.fakes import FakeLiveDatabase, FakeTranslator

TEST_JWT_SECRET = "test-secret"


@pytest.fixture
def settings():
    return Settings(
        audit_db_url="sqlite+aiosqlite://",
        live_db_type="mysql",
        jwt_secret=TEST_JWT_SECRET,
        jwt_algorithm="HS256",
        translation_cache_enabled=True
    )


# Fresh in-memory audit store for every test
@pytest_asyncio.fixture(scope="function")
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def live_db():
    return FakeLiveDatabase(
        definitions={
            "users": "CREATE TABLE `users` (\n  `id` int NOT NULL,\n  `name` varchar(50) DEFAULT NULL,\n  `ssn` varchar(11) DEFAULT NULL\n) ENGINE=InnoDB",
            "orders": "CREATE TABLE `orders` (\n  `id` int NOT NULL,\n  `user_id` int NOT NULL\n) ENGINE=InnoDB",
        }
    )


@pytest.fixture
def translator():
    return FakeTranslator()


@pytest.fixture
def query_service(settings, db_session, translator, live_db):
    return QueryService(settings, db_session, translator=translator, live_db_factory=live_db)


@pytest_asyncio.fixture(scope="function")
async def client(settings, db_session, query_service):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_query_service] = lambda: query_service

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    token = jwt.encode(
        {"sub": "user-1", "email": "analyst@example.com", "role": "analyst"},
        TEST_JWT_SECRET,
        algorithm="HS256"
    )
    return {"Authorization": f"Bearer {token}"}
