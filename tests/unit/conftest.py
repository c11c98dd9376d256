"""Shared fixtures for unit tests

In-memory implementations of the repositories, unit of work and cache.
Account writes apply immediately and are undone on rollback; ledger entries
become visible on commit. Reads yield to the event loop so concurrent
operations interleave between read and write.
"""

import asyncio
from datetime import datetime
from typing import Optional

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from sqlalchemy.exc import IntegrityError

from trivia_credits.app.repositories.credit_account_repository import CreditAccountRepository
from trivia_credits.app.repositories.credit_transaction_repository import CreditTransactionRepository
from trivia_credits.app.services.account_directory import AccountDirectory
from trivia_credits.app.services.balance_cache import BalanceCache
from trivia_credits.app.services.balance_store import BalanceStore
from trivia_credits.app.services.clock import Clock
from trivia_credits.app.services.unit_of_work import UnitOfWork
from trivia_credits.domain.balance import Balance
from trivia_credits.domain.credit_account import CreditAccount
from trivia_credits.domain.credit_transaction import CreditTransaction


class InMemoryDatabase:
    def __init__(self):
        self.accounts: dict[str, CreditAccount] = {}
        self.transactions: list[CreditTransaction] = []
        self.next_transaction_id = 1

    def add_account(
        self,
        user_id: str,
        credits: int = 100,
        purchased_credits: int = 0,
        free_questions: int = 20,
        daily_limit: int = 20,
        last_reset_at: Optional[datetime] = None,
    ) -> CreditAccount:
        account = CreditAccount(
            id=len(self.accounts) + 1,
            user_id=user_id,
            credits=credits,
            purchased_credits=purchased_credits,
            free_questions=free_questions,
            daily_limit=daily_limit,
            last_reset_at=last_reset_at,
            version=0,
        )
        self.accounts[user_id] = account
        return account

    def balance(self, user_id: str) -> Balance:
        return self.accounts[user_id].to_balance()

    def transactions_for(self, user_id: str) -> list[CreditTransaction]:
        return [txn for txn in self.transactions if txn.user_id == user_id]


def _copy(account: CreditAccount) -> CreditAccount:
    return CreditAccount(
        id=account.id,
        user_id=account.user_id,
        credits=account.credits,
        purchased_credits=account.purchased_credits,
        free_questions=account.free_questions,
        daily_limit=account.daily_limit,
        last_reset_at=account.last_reset_at,
        version=account.version,
        created_at=account.created_at,
        updated_at=account.updated_at,
    )


class InMemoryUnitOfWork(UnitOfWork):
    def __init__(self, db: InMemoryDatabase):
        self.db = db
        self.undo: list[tuple[str, Optional[CreditAccount]]] = []
        self.pending: list[CreditTransaction] = []
        self.commits = 0
        self.rollbacks = 0

    async def commit(self):
        self.db.transactions.extend(self.pending)
        self.pending = []
        self.undo = []
        self.commits += 1

    async def rollback(self):
        for user_id, previous in reversed(self.undo):
            if previous is None:
                self.db.accounts.pop(user_id, None)
            else:
                self.db.accounts[user_id] = previous
        self.undo = []
        self.pending = []
        self.rollbacks += 1


class InMemoryCreditAccountRepository(CreditAccountRepository):
    def __init__(self, uow: InMemoryUnitOfWork):
        self.uow = uow
        self.db = uow.db

    async def get_by_user_id(self, user_id: str) -> Optional[CreditAccount]:
        account = self.db.accounts.get(user_id)
        snapshot = _copy(account) if account else None
        await asyncio.sleep(0)
        return snapshot

    async def create(self, account: CreditAccount) -> CreditAccount:
        if account.user_id in self.db.accounts:
            raise IntegrityError("INSERT INTO credit_accounts", {}, Exception("duplicate user_id"))
        account.id = len(self.db.accounts) + 1
        account.version = 0
        self.uow.undo.append((account.user_id, None))
        self.db.accounts[account.user_id] = _copy(account)
        return account

    async def compare_and_swap(self, balance: Balance, expected_version: int) -> bool:
        current = self.db.accounts.get(balance.user_id)
        if current is None or current.version != expected_version:
            return False

        self.uow.undo.append((balance.user_id, current))
        updated = _copy(current)
        updated.credits = balance.credits
        updated.purchased_credits = balance.purchased_credits
        updated.free_questions = balance.free_questions
        updated.daily_limit = balance.daily_limit
        updated.last_reset_at = balance.last_reset_at
        updated.version = expected_version + 1
        self.db.accounts[balance.user_id] = updated
        return True

    async def list_user_ids_due_for_reset(
        self, reset_before: datetime, limit: int, after_user_id: Optional[str] = None
    ) -> list[str]:
        due = sorted(
            user_id
            for user_id, account in self.db.accounts.items()
            if account.last_reset_at is None or account.last_reset_at < reset_before
        )
        if after_user_id is not None:
            due = [user_id for user_id in due if user_id > after_user_id]
        return due[:limit]


class InMemoryCreditTransactionRepository(CreditTransactionRepository):
    def __init__(self, uow: InMemoryUnitOfWork):
        self.uow = uow
        self.db = uow.db

    async def create(self, transaction: CreditTransaction) -> CreditTransaction:
        if transaction.payment_reference and any(
            txn.payment_reference == transaction.payment_reference
            for txn in self.db.transactions + self.uow.pending
        ):
            raise IntegrityError(
                "INSERT INTO credit_transactions", {}, Exception("UNIQUE constraint failed: payment_reference")
            )
        transaction.id = self.db.next_transaction_id
        self.db.next_transaction_id += 1
        self.uow.pending.append(transaction)
        return transaction

    async def get_by_payment_reference(self, payment_reference: str) -> Optional[CreditTransaction]:
        return next(
            (txn for txn in self.db.transactions if txn.payment_reference == payment_reference),
            None,
        )

    async def list_by_user_id(self, user_id: str, limit: int) -> list[CreditTransaction]:
        entries = self.db.transactions_for(user_id)
        return list(reversed(entries))[:limit]


class InMemoryBalanceCache(BalanceCache):
    def __init__(self):
        self.entries: dict[str, Balance] = {}
        self.writes: list[str] = []

    async def get(self, user_id: str) -> Optional[Balance]:
        return self.entries.get(user_id)

    async def set(self, balance: Balance) -> None:
        cached = self.entries.get(balance.user_id)
        if cached is not None and cached.version > balance.version:
            return
        self.entries[balance.user_id] = balance
        self.writes.append(balance.user_id)


class StaticAccountDirectory(AccountDirectory):
    def __init__(self, unrestricted: tuple[str, ...] = ()):
        self.unrestricted = set(unrestricted)

    async def is_unrestricted(self, user_id: str) -> bool:
        return user_id in self.unrestricted


class FixedClock(Clock):
    def __init__(self, moment: datetime):
        self.moment = moment

    def now(self) -> datetime:
        return self.moment


@pytest.fixture
def mock_uow():
    """Mock unit of work"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock()
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    return uow


@pytest.fixture
def db():
    """Empty in-memory database"""
    return InMemoryDatabase()


@pytest.fixture
def cache():
    return InMemoryBalanceCache()


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 15, 12, 0, 0))


@pytest.fixture
def directory():
    return StaticAccountDirectory(unrestricted=("admin_1",))


@pytest.fixture
def make_store(db, cache, clock):
    """Factory for a BalanceStore with its own unit of work over the shared database"""

    def _make(max_retries: int = 3) -> BalanceStore:
        uow = InMemoryUnitOfWork(db)
        return BalanceStore(
            uow,
            InMemoryCreditAccountRepository(uow),
            InMemoryCreditTransactionRepository(uow),
            cache,
            max_retries=max_retries,
            clock=clock,
        )

    return _make


@pytest.fixture
def store(make_store):
    return make_store()


class InMemorySessionFactory:
    """Async sessionmaker stand-in; each session is an in-memory unit of work"""

    def __init__(self, db: InMemoryDatabase):
        self.db = db

    def __call__(self):
        return self

    async def __aenter__(self):
        return InMemoryUnitOfWork(self.db)

    async def __aexit__(self, *args):
        return False


@pytest.fixture
def session_factory(db):
    return InMemorySessionFactory(db)


@pytest.fixture
def in_memory_adapters():
    """Route the worker's SQLAlchemy adapters to the in-memory implementations"""
    worker = "trivia_credits.worker.daily_reset"
    with patch(f"{worker}.SqlAlchemyUnitOfWork", side_effect=lambda session: session), \
            patch(f"{worker}.SqlAlchemyCreditAccountRepository", side_effect=InMemoryCreditAccountRepository), \
            patch(f"{worker}.SqlAlchemyCreditTransactionRepository", side_effect=InMemoryCreditTransactionRepository):
        yield
