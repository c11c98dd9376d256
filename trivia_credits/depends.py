from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from trivia_credits.adapter.repositories import (
    SqlAlchemyCreditAccountRepository,
    SqlAlchemyCreditTransactionRepository,
)
from trivia_credits.adapter.services import (
    ConfiguredAccountDirectory,
    SqlAlchemyUnitOfWork,
    create_balance_cache,
    create_payment_gateway,
)
from trivia_credits.app.services import AccountDirectory, BalanceCache, BalanceStore, PaymentGateway

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

# One cache per process, shared by all requests
balance_cache = create_balance_cache(
    ApplicationConfig.CACHE_BACKEND,
    redis_url=ApplicationConfig.REDIS_URL,
    ttl_seconds=ApplicationConfig.BALANCE_CACHE_TTL_SECONDS,
)

payment_gateway = create_payment_gateway(
    ApplicationConfig.PAYMENT_GATEWAY_URL,
    timeout=ApplicationConfig.PAYMENT_GATEWAY_TIMEOUT,
)

account_directory = ConfiguredAccountDirectory(ApplicationConfig.UNRESTRICTED_USER_IDS)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


def get_balance_cache() -> BalanceCache:
    return balance_cache


def get_payment_gateway() -> PaymentGateway:
    return payment_gateway


def get_account_directory() -> AccountDirectory:
    return account_directory


def build_balance_store(session: AsyncSession, cache: BalanceCache) -> BalanceStore:
    return BalanceStore(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyCreditAccountRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
        cache,
        max_retries=ApplicationConfig.MAX_MUTATION_RETRIES,
    )
