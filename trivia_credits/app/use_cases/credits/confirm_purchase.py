"""ConfirmPurchase Use Case

Credits a completed payment to a user's purchased credits exactly once.
"""

import logging
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from libs.result import Result, Return, Error
from trivia_credits.app.repositories.credit_transaction_repository import CreditTransactionRepository
from trivia_credits.app.services.balance_store import BalanceChange, BalanceStore
from trivia_credits.domain.balance import Balance
from trivia_credits.domain.credit_transaction import CreditSource, CreditTransaction, TransactionType
from trivia_credits.domain.deduction import apply_credit
from .dtos import BalanceResponseDTO, ConfirmPurchaseCommandDTO, ConfirmPurchaseResponseDTO
from .validation import invalid_input, validate_user_id

logger = logging.getLogger(__name__)


class ConfirmPurchase:
    """
    Use Case: Credit a completed payment

    Business Rules:
    1. Idempotency: a payment_reference is credited at most once
    2. Repeated confirmations return the current balance without crediting again
    3. A reference already credited to another user is rejected

    Flow:
    1. Validate command
    2. Look up the payment reference in the ledger
    3. Credit purchased_credits through BalanceStore.mutate_balance
    4. Treat a unique-constraint race on the reference as a repeat
    """

    def __init__(
        self,
        store: BalanceStore,
        transaction_repo: CreditTransactionRepository,
        max_credits: int = 10000,
    ):
        self.store = store
        self.transaction_repo = transaction_repo
        self.max_credits = max_credits

    async def execute(self, command: ConfirmPurchaseCommandDTO) -> Result[ConfirmPurchaseResponseDTO]:
        """
        Execute purchase confirmation

        Errors:
            INVALID_INPUT: Bad user id, empty reference, credits out of range,
                or reference owned by another user
            ACCOUNT_NOT_FOUND: User has no credit account
            CONCURRENCY_CONFLICT: Balance kept changing underneath the credit
            STORAGE_ERROR: Database unavailable
        """
        error = validate_user_id(command.user_id)
        if error:
            return Return.err(error)
        if not command.payment_reference or not command.payment_reference.strip():
            return Return.err(invalid_input("Payment reference is required"))
        if command.credits <= 0:
            return Return.err(
                invalid_input("Purchased credits must be positive", reason=f"credits={command.credits}")
            )
        if command.credits > self.max_credits:
            return Return.err(
                invalid_input(
                    f"Purchased credits cannot exceed {self.max_credits}",
                    reason=f"credits={command.credits}",
                )
            )

        lookup = await self._find_credit(command)
        if lookup.is_err():
            return Return.err(lookup.error)
        if lookup.value:
            return await self._already_credited(command, lookup.value)

        def mutation(balance: Balance) -> Result[Optional[BalanceChange]]:
            credited = apply_credit(balance, command.credits, CreditSource.PURCHASED)
            if credited.is_err():
                return Return.err(credited.error)

            metadata = {"payment_reference": command.payment_reference, "credits": command.credits}
            if command.package_id:
                metadata["package_id"] = command.package_id

            return Return.ok(
                BalanceChange(
                    new_balance=credited.value,
                    transaction_type=TransactionType.PURCHASE,
                    amount=command.credits,
                    source=CreditSource.PURCHASED,
                    description=f"Purchased {command.credits} credits",
                    metadata=metadata,
                    payment_reference=command.payment_reference,
                )
            )

        outcome_result = await self.store.mutate_balance(command.user_id, mutation)

        if outcome_result.is_err():
            if outcome_result.error.code != "DUPLICATE_PAYMENT_REFERENCE":
                return Return.err(outcome_result.error)

            logger.info(f"Payment {command.payment_reference} was credited concurrently")
            lookup = await self._find_credit(command)
            if lookup.is_err():
                return Return.err(lookup.error)
            if lookup.value is None:
                return Return.err(outcome_result.error)
            return await self._already_credited(command, lookup.value)

        outcome = outcome_result.value
        logger.info(
            f"Credited {command.credits} purchased credits to user {command.user_id} "
            f"(payment {command.payment_reference})"
        )
        return Return.ok(
            ConfirmPurchaseResponseDTO(
                balance=BalanceResponseDTO.from_balance(outcome.balance),
                payment_reference=command.payment_reference,
                credited=command.credits,
                duplicate=False,
                transaction_id=outcome.transaction.id if outcome.transaction else None,
            )
        )

    async def _find_credit(self, command: ConfirmPurchaseCommandDTO) -> Result[Optional[CreditTransaction]]:
        try:
            existing = await self.transaction_repo.get_by_payment_reference(command.payment_reference)
        except SQLAlchemyError as e:
            logger.exception(f"Failed to look up payment {command.payment_reference}")
            return Return.err(Error(code="STORAGE_ERROR", message="Failed to look up payment", reason=str(e)))
        return Return.ok(existing)

    async def _already_credited(
        self, command: ConfirmPurchaseCommandDTO, existing: CreditTransaction
    ) -> Result[ConfirmPurchaseResponseDTO]:
        if existing.user_id != command.user_id:
            logger.warning(
                f"Payment {command.payment_reference} belongs to user {existing.user_id}, "
                f"not {command.user_id}"
            )
            return Return.err(
                invalid_input(
                    "Payment reference belongs to another user",
                    reason=f"payment_reference={command.payment_reference}",
                )
            )

        logger.info(f"Payment {command.payment_reference} already credited, returning current balance")
        return await self._current_balance(command, duplicate=True, transaction_id=existing.id)

    async def _current_balance(
        self,
        command: ConfirmPurchaseCommandDTO,
        duplicate: bool,
        transaction_id: Optional[int] = None,
    ) -> Result[ConfirmPurchaseResponseDTO]:
        balance_result = await self.store.get_balance(command.user_id)
        if balance_result.is_err():
            return Return.err(balance_result.error)

        return Return.ok(
            ConfirmPurchaseResponseDTO(
                balance=BalanceResponseDTO.from_balance(balance_result.value),
                payment_reference=command.payment_reference,
                credited=0,
                duplicate=duplicate,
                transaction_id=transaction_id,
            )
        )
