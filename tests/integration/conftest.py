import pytest
import pytest_asyncio
from aiocache import Cache
from aiocache.serializers import JsonSerializer
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from trivia_credits.adapter.repositories import (
    SqlAlchemyCreditAccountRepository,
    SqlAlchemyCreditTransactionRepository,
)
from trivia_credits.adapter.services import (
    AiocacheBalanceCache,
    ConfiguredAccountDirectory,
    LocalPaymentGateway,
    SqlAlchemyUnitOfWork,
)
from trivia_credits.app.services import BalanceStore
from trivia_credits.depends import (
    get_account_directory,
    get_balance_cache,
    get_payment_gateway,
    get_session,
)


@pytest_asyncio.fixture(scope="function")
async def engine():
    """In-memory SQLite database shared by every session of one test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create a new database session for each test"""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def balance_cache():
    """Memory-backed aiocache, emptied after each test"""
    cache = AiocacheBalanceCache(Cache(Cache.MEMORY, serializer=JsonSerializer()), ttl_seconds=60)
    yield cache
    await cache.cache.clear()


@pytest.fixture
def payment_gateway():
    return LocalPaymentGateway()


@pytest.fixture
def store_factory(session_factory, balance_cache):
    """Build a BalanceStore over its own session, like one API request does"""

    def _make(session: AsyncSession) -> BalanceStore:
        return BalanceStore(
            SqlAlchemyUnitOfWork(session),
            SqlAlchemyCreditAccountRepository(session),
            SqlAlchemyCreditTransactionRepository(session),
            balance_cache,
            max_retries=ApplicationConfig.MAX_MUTATION_RETRIES,
        )

    return _make


@pytest_asyncio.fixture
async def client(db_session, balance_cache, payment_gateway):
    """Create test client with database session and collaborator overrides"""
    from trivia_credits.api.app import create_app

    app = create_app(ApplicationConfig)

    # Override the session dependency to use test session
    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_balance_cache] = lambda: balance_cache
    app.dependency_overrides[get_payment_gateway] = lambda: payment_gateway
    app.dependency_overrides[get_account_directory] = lambda: ConfiguredAccountDirectory(["admin_1"])

    # Use ASGITransport for httpx AsyncClient
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
