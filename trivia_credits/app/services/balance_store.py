"""Balance Store

Durable per-user balance storage with a read-through cache in front of it.

All balance writes go through mutate_balance(), which applies a pure
mutation function and persists its result atomically:

1. Read the account row (never the cache)
2. Compute the new balance with the mutation function
3. Conditional update WHERE version = <version read>
4. Append the ledger entry in the same unit of work
5. Commit
6. Cache the committed balance before returning

Cache fills from reads never replace a newer cached version, so a read that
raced a commit cannot reinstate the pre-mutation balance.

If step 3 finds the version changed, the unit of work is rolled back and the
whole read/compute/write sequence is retried a bounded number of times.
No in-process lock is held across any await.
"""

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from libs.result import Result, Return, Error
from trivia_credits.app.repositories.credit_account_repository import CreditAccountRepository
from trivia_credits.app.repositories.credit_transaction_repository import CreditTransactionRepository
from trivia_credits.app.services.balance_cache import BalanceCache
from trivia_credits.app.services.clock import Clock, SystemClock
from trivia_credits.app.services.unit_of_work import UnitOfWork
from trivia_credits.domain.balance import Balance
from trivia_credits.domain.credit_account import CreditAccount
from trivia_credits.domain.credit_transaction import CreditSource, CreditTransaction, TransactionType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceChange:
    """Result of a mutation function: the new balance and how to record it"""
    new_balance: Balance
    transaction_type: TransactionType
    amount: int
    source: Optional[CreditSource] = None
    description: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    payment_reference: Optional[str] = None


@dataclass(frozen=True)
class MutationOutcome:
    balance: Balance
    transaction: Optional[CreditTransaction] = None

    @property
    def changed(self) -> bool:
        return self.transaction is not None


# Returns Return.ok(None) when there is nothing to change
Mutation = Callable[[Balance], Result[Optional[BalanceChange]]]


class BalanceStore:
    """
    Balance reads and atomic balance mutations for one unit of work

    Usage:
        store = BalanceStore(uow, account_repo, transaction_repo, cache)
        result = await store.mutate_balance(
            user_id, lambda balance: Return.ok(BalanceChange(...))
        )
    """

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: CreditAccountRepository,
        transaction_repo: CreditTransactionRepository,
        cache: BalanceCache,
        max_retries: int = 3,
        clock: Optional[Clock] = None,
    ):
        self.uow = uow
        self.account_repo = account_repo
        self.transaction_repo = transaction_repo
        self.cache = cache
        self.max_retries = max(1, max_retries)
        self.clock = clock or SystemClock()

    async def get_balance(self, user_id: str) -> Result[Balance]:
        """
        Current balance of a user, served from cache when possible

        Errors:
            ACCOUNT_NOT_FOUND: User has no credit account
            STORAGE_ERROR: Database unavailable
        """
        cached = await self.cache.get(user_id)
        if cached is not None:
            return Return.ok(cached)

        try:
            account = await self.account_repo.get_by_user_id(user_id)
        except SQLAlchemyError as e:
            logger.exception(f"Failed to read balance for user {user_id}")
            return Return.err(self._storage_error("read balance", e))

        if not account:
            return Return.err(self._account_not_found(user_id))

        balance = account.to_balance()
        await self.cache.set(balance)
        return Return.ok(balance)

    async def create_account(
        self,
        user_id: str,
        credits: int,
        daily_limit: int,
        purchased_credits: int = 0,
    ) -> Result[Balance]:
        """Provision an account with default balances (existing accounts are returned as is)"""
        try:
            existing = await self.account_repo.get_by_user_id(user_id)
            if existing:
                return Return.ok(existing.to_balance())

            account = await self.account_repo.create(
                CreditAccount(
                    user_id=user_id,
                    credits=credits,
                    purchased_credits=purchased_credits,
                    free_questions=daily_limit,
                    daily_limit=daily_limit,
                    last_reset_at=self.clock.now(),
                )
            )
            balance = account.to_balance()
            await self.uow.commit()
        except IntegrityError:
            # Created concurrently by another request
            await self.uow.rollback()
            account = await self.account_repo.get_by_user_id(user_id)
            if not account:
                return Return.err(self._account_not_found(user_id))
            return Return.ok(account.to_balance())
        except SQLAlchemyError as e:
            await self.uow.rollback()
            logger.exception(f"Failed to create credit account for user {user_id}")
            return Return.err(self._storage_error("create account", e))

        await self.cache.set(balance)
        logger.info(f"Created credit account for user {user_id}")
        return Return.ok(balance)

    async def mutate_balance(self, user_id: str, mutation: Mutation) -> Result[MutationOutcome]:
        """
        Atomically apply a mutation function to a user's balance

        Args:
            user_id: User identifier
            mutation: Pure function from the current Balance to a BalanceChange,
                Return.ok(None) for no change, or an error

        Returns:
            Result[MutationOutcome]: balance after the mutation and the ledger
            entry written (None when nothing changed)

        Errors:
            ACCOUNT_NOT_FOUND: User has no credit account
            CONCURRENCY_CONFLICT: Version check kept failing after all retries
            DUPLICATE_PAYMENT_REFERENCE: Payment reference already recorded
            STORAGE_ERROR: Database unavailable
            Any error returned by the mutation function
        """
        for attempt in range(1, self.max_retries + 1):
            change: Optional[BalanceChange] = None
            try:
                account = await self.account_repo.get_by_user_id(user_id)
                if not account:
                    await self.uow.rollback()
                    return Return.err(self._account_not_found(user_id))

                current = account.to_balance()
                change_result = mutation(current)

                if change_result.is_err():
                    await self.uow.rollback()
                    return Return.err(change_result.error)

                change = change_result.value
                if change is None:
                    await self.uow.rollback()
                    return Return.ok(MutationOutcome(balance=current))

                swapped = await self.account_repo.compare_and_swap(
                    change.new_balance, expected_version=current.version
                )
                if not swapped:
                    await self.uow.rollback()
                    logger.warning(
                        f"Balance of user {user_id} changed concurrently "
                        f"(attempt {attempt}/{self.max_retries}, version {current.version})"
                    )
                    continue

                transaction = await self.transaction_repo.create(
                    self._to_transaction(user_id, change)
                )
                await self.uow.commit()

            except IntegrityError as e:
                await self.uow.rollback()
                if change is not None and change.payment_reference:
                    return Return.err(
                        Error(
                            code="DUPLICATE_PAYMENT_REFERENCE",
                            message=f"Payment {change.payment_reference} was already credited",
                            reason=str(e.orig) if e.orig else str(e),
                        )
                    )
                logger.exception(f"Integrity error while mutating balance of user {user_id}")
                return Return.err(self._storage_error("mutate balance", e))

            except SQLAlchemyError as e:
                await self.uow.rollback()
                logger.exception(
                    f"Failed to mutate balance of user {user_id} "
                    f"(type={change.transaction_type.value if change else None}, attempt {attempt})"
                )
                return Return.err(self._storage_error("mutate balance", e))

            new_balance = replace(change.new_balance, version=current.version + 1)
            await self.cache.set(new_balance)

            logger.info(
                f"{change.transaction_type.value} of {change.amount} for user {user_id}: "
                f"free={new_balance.free_questions}, purchased={new_balance.purchased_credits}, "
                f"credits={new_balance.credits}"
            )
            return Return.ok(MutationOutcome(balance=new_balance, transaction=transaction))

        return Return.err(
            Error(
                code="CONCURRENCY_CONFLICT",
                message="Credit balance changed during the operation. Please retry.",
                reason=f"version check failed {self.max_retries} times for user {user_id}",
            )
        )

    def _to_transaction(self, user_id: str, change: BalanceChange) -> CreditTransaction:
        now = self.clock.now()
        balance = change.new_balance
        return CreditTransaction(
            user_id=user_id,
            transaction_type=change.transaction_type,
            source=change.source,
            amount=change.amount,
            credits_after=balance.credits,
            purchased_credits_after=balance.purchased_credits,
            free_questions_after=balance.free_questions,
            payment_reference=change.payment_reference,
            description=change.description,
            metadata_json=json.dumps(change.metadata) if change.metadata else None,
            transaction_date=now.date(),
            created_at=now,
        )

    @staticmethod
    def _account_not_found(user_id: str) -> Error:
        return Error(
            code="ACCOUNT_NOT_FOUND",
            message=f"Credit account not found for user {user_id}",
            reason="User may not exist or account not provisioned",
        )

    @staticmethod
    def _storage_error(operation: str, e: Exception) -> Error:
        return Error(
            code="STORAGE_ERROR",
            message=f"Failed to {operation}",
            reason=str(e),
        )
