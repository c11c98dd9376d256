"""Unit tests for BalanceStore

Tests cover:
- Read-through cache on get_balance
- Atomic mutation: balance update and ledger entry committed together
- Committed balances are written to the cache
- A slow read cannot overwrite a newer cached balance
- Optimistic concurrency: retries and CONCURRENCY_CONFLICT
- Duplicate payment references
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock
from aiocache import Cache
from aiocache.serializers import JsonSerializer
from sqlalchemy.exc import OperationalError

from libs.result import Return, Error
from trivia_credits.adapter.services.balance_cache import AiocacheBalanceCache
from trivia_credits.app.services.balance_store import BalanceChange, BalanceStore
from trivia_credits.domain.credit_transaction import CreditSource, TransactionType
from trivia_credits.domain.deduction import deduct_amount


def deduction_of(required):
    def mutation(balance):
        result = deduct_amount(balance, required)
        if result.is_err():
            return Return.err(result.error)
        return Return.ok(
            BalanceChange(
                new_balance=result.value.new_balance,
                transaction_type=TransactionType.DEDUCTION,
                amount=-required,
            )
        )

    return mutation


@pytest.mark.asyncio
class TestGetBalance:
    async def test_reads_account_and_fills_cache(self, db, cache, store):
        # Arrange
        db.add_account("user_1", credits=100, free_questions=20)

        # Act
        result = await store.get_balance("user_1")

        # Assert
        assert result.is_ok()
        assert result.value.total_credits == 120
        assert cache.entries["user_1"].total_credits == 120

    async def test_serves_cached_balance(self, db, cache, store):
        db.add_account("user_1", credits=100)
        await store.get_balance("user_1")
        db.accounts["user_1"].credits = 0

        result = await store.get_balance("user_1")

        assert result.value.credits == 100

    async def test_missing_account(self, store):
        result = await store.get_balance("ghost")

        assert result.is_err()
        assert result.error.code == "ACCOUNT_NOT_FOUND"

    async def test_storage_failure(self, mock_uow):
        account_repo = MagicMock()
        account_repo.get_by_user_id = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("down")))
        cache = MagicMock()
        cache.get = AsyncMock(return_value=None)
        store = BalanceStore(mock_uow, account_repo, MagicMock(), cache)

        result = await store.get_balance("user_1")

        assert result.is_err()
        assert result.error.code == "STORAGE_ERROR"


@pytest.mark.asyncio
class TestMutateBalance:
    async def test_commits_balance_and_ledger_entry(self, db, cache, store, clock):
        """
        Given: Account with 20 free questions and 100 credits
        When: A 5-credit deduction is applied
        Then: Balance, version and ledger snapshot are updated together
        """
        # Arrange
        db.add_account("user_1", credits=100, free_questions=20)
        await store.get_balance("user_1")

        # Act
        result = await store.mutate_balance("user_1", deduction_of(5))

        # Assert
        assert result.is_ok()
        outcome = result.value
        assert outcome.changed
        assert outcome.balance.free_questions == 15
        assert outcome.balance.version == 1
        assert db.balance("user_1").free_questions == 15
        assert db.accounts["user_1"].version == 1

        [entry] = db.transactions_for("user_1")
        assert entry.amount == -5
        assert entry.free_questions_after == 15
        assert entry.credits_after == 100
        assert entry.created_at == clock.now()
        assert entry.transaction_date == clock.now().date()

        assert cache.entries["user_1"].free_questions == 15
        assert cache.entries["user_1"].version == 1

    async def test_mutation_error_changes_nothing(self, db, cache, store):
        db.add_account("user_1", credits=0, free_questions=1)

        result = await store.mutate_balance("user_1", deduction_of(5))

        assert result.is_err()
        assert result.error.code == "INSUFFICIENT_BALANCE"
        assert db.balance("user_1").free_questions == 1
        assert db.transactions == []
        assert cache.writes == []

    async def test_noop_mutation_writes_nothing(self, db, store):
        db.add_account("user_1")

        result = await store.mutate_balance("user_1", lambda balance: Return.ok(None))

        assert result.is_ok()
        assert not result.value.changed
        assert db.accounts["user_1"].version == 0
        assert db.transactions == []

    async def test_missing_account(self, store):
        result = await store.mutate_balance("ghost", deduction_of(1))

        assert result.error.code == "ACCOUNT_NOT_FOUND"

    async def test_retries_after_version_conflict(self, db, store):
        """
        Given: Another writer changes the balance between read and write
        When: The mutation is applied
        Then: It is recomputed from the fresh balance and succeeds
        """
        # Arrange
        db.add_account("user_1", credits=10, free_questions=0)
        calls = []

        def mutation(balance):
            calls.append(balance.credits)
            if len(calls) == 1:
                # concurrent writer commits in between
                db.accounts["user_1"].credits = 8
                db.accounts["user_1"].version += 1
            return deduction_of(3)(balance)

        # Act
        result = await store.mutate_balance("user_1", mutation)

        # Assert
        assert result.is_ok()
        assert calls == [10, 8]
        assert db.balance("user_1").credits == 5
        assert len(db.transactions) == 1

    async def test_conflict_after_all_retries(self, db, make_store):
        db.add_account("user_1", credits=10, free_questions=0)
        store = make_store(max_retries=2)

        def always_stale(balance):
            db.accounts["user_1"].version += 1
            return deduction_of(1)(balance)

        result = await store.mutate_balance("user_1", always_stale)

        assert result.is_err()
        assert result.error.code == "CONCURRENCY_CONFLICT"
        assert db.transactions == []

    async def test_concurrent_deductions_cannot_overdraw(self, db, make_store):
        """
        Given: Balance totalling 6 credits
        When: Two 5-credit deductions run concurrently
        Then: Exactly one succeeds and the balance never goes negative
        """
        # Arrange
        db.add_account("user_1", credits=5, free_questions=1)

        # Act
        results = await asyncio.gather(
            make_store().mutate_balance("user_1", deduction_of(5)),
            make_store().mutate_balance("user_1", deduction_of(5)),
        )

        # Assert
        succeeded = [r for r in results if r.is_ok()]
        failed = [r for r in results if r.is_err()]
        assert len(succeeded) == 1
        assert len(failed) == 1
        assert failed[0].error.code == "INSUFFICIENT_BALANCE"
        assert db.balance("user_1").total_credits == 1
        assert len(db.transactions) == 1

    async def test_concurrent_credits_are_all_applied(self, db, make_store):
        db.add_account("user_1", credits=0, free_questions=0)

        def bonus(balance):
            return Return.ok(
                BalanceChange(
                    new_balance=balance.with_sources(
                        credits=balance.credits + 10,
                        purchased_credits=balance.purchased_credits,
                        free_questions=balance.free_questions,
                    ),
                    transaction_type=TransactionType.BONUS,
                    amount=10,
                    source=CreditSource.BONUS,
                )
            )

        results = await asyncio.gather(*(make_store(max_retries=5).mutate_balance("user_1", bonus) for _ in range(3)))

        assert all(r.is_ok() for r in results)
        assert db.balance("user_1").credits == 30
        assert [txn.credits_after for txn in db.transactions] == [10, 20, 30]

    async def test_duplicate_payment_reference(self, db, store):
        db.add_account("user_1", credits=0, purchased_credits=0)

        def purchase(balance):
            return Return.ok(
                BalanceChange(
                    new_balance=balance.with_sources(
                        credits=balance.credits,
                        purchased_credits=balance.purchased_credits + 100,
                        free_questions=balance.free_questions,
                    ),
                    transaction_type=TransactionType.PURCHASE,
                    amount=100,
                    source=CreditSource.PURCHASED,
                    payment_reference="pay_1",
                )
            )

        first = await store.mutate_balance("user_1", purchase)
        second = await store.mutate_balance("user_1", purchase)

        assert first.is_ok()
        assert second.is_err()
        assert second.error.code == "DUPLICATE_PAYMENT_REFERENCE"
        assert db.balance("user_1").purchased_credits == 100
        assert db.accounts["user_1"].version == 1

    async def test_storage_failure_rolls_back(self, db, cache, mock_uow):
        account_repo = MagicMock()
        account_repo.get_by_user_id = AsyncMock(return_value=db.add_account("user_1"))
        account_repo.compare_and_swap = AsyncMock(return_value=True)
        transaction_repo = MagicMock()
        transaction_repo.create = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk full")))
        store = BalanceStore(mock_uow, account_repo, transaction_repo, cache)

        result = await store.mutate_balance("user_1", deduction_of(1))

        assert result.is_err()
        assert result.error.code == "STORAGE_ERROR"
        mock_uow.rollback.assert_awaited()
        mock_uow.commit.assert_not_awaited()
        assert cache.writes == []


@pytest.mark.asyncio
class TestCreateAccount:
    async def test_creates_account_with_defaults(self, db, store, clock):
        result = await store.create_account("new_user", credits=100, daily_limit=20)

        assert result.is_ok()
        assert result.value.total_credits == 120
        assert db.accounts["new_user"].last_reset_at == clock.now()

    async def test_existing_account_is_returned_unchanged(self, db, store):
        db.add_account("user_1", credits=7, free_questions=1)

        result = await store.create_account("user_1", credits=100, daily_limit=20)

        assert result.value.credits == 7
        assert len(db.accounts) == 1


@pytest.mark.asyncio
class TestCacheFillRace:
    @pytest.fixture
    def cache(self):
        return AiocacheBalanceCache(Cache(Cache.MEMORY, serializer=JsonSerializer()), ttl_seconds=60)

    async def test_slow_read_cannot_restore_pre_deduction_balance(self, db, make_store):
        """
        Given: A cache miss whose database read loaded credits=10
        When: A 10-credit deduction commits before that read fills the cache
        Then: The late fill is discarded and a fresh read sees 0 credits
        """
        # Arrange
        db.add_account("user_1", credits=10, free_questions=0)
        reader = make_store()
        loaded = asyncio.Event()
        release = asyncio.Event()
        read_account = reader.account_repo.get_by_user_id

        async def paused_read(user_id):
            account = await read_account(user_id)
            loaded.set()
            await release.wait()
            return account

        reader.account_repo.get_by_user_id = paused_read
        pending_read = asyncio.create_task(reader.get_balance("user_1"))
        await loaded.wait()

        # Act
        deducted = await make_store().mutate_balance("user_1", deduction_of(10))
        release.set()
        late = await pending_read
        fresh = await make_store().get_balance("user_1")

        # Assert
        assert deducted.is_ok()
        assert late.value.credits == 10
        assert fresh.value.credits == 0
        assert fresh.value.version == 1

    async def test_mutation_replaces_cached_balance(self, db, make_store):
        db.add_account("user_1", credits=10, free_questions=0)
        await make_store().get_balance("user_1")

        await make_store().mutate_balance("user_1", deduction_of(4))
        result = await make_store().get_balance("user_1")

        assert result.value.credits == 6
