"""AdjustCredits Use Case

Administrative correction of a single balance source.
"""

import logging
from typing import Optional
from libs.result import Result, Return
from trivia_credits.app.services.balance_store import BalanceChange, BalanceStore
from trivia_credits.domain.balance import Balance
from trivia_credits.domain.credit_transaction import CreditSource, TransactionType
from trivia_credits.domain.deduction import apply_adjustment
from .dtos import AdjustCreditsCommandDTO, BalanceResponseDTO, CreditMutationResponseDTO
from .validation import invalid_input, validate_user_id

logger = logging.getLogger(__name__)

ADJUSTABLE_SOURCES = (CreditSource.FREE_DAILY, CreditSource.PURCHASED, CreditSource.CREDITS)


class AdjustCredits:
    """
    Use Case: Adjust credits (admin)

    Business Rules:
    1. delta is signed and non-zero
    2. The adjusted source never goes below zero
    3. A reason is required and recorded in the ledger

    Errors:
        INVALID_INPUT: Bad user id, zero delta, unknown source or missing reason
        INSUFFICIENT_BALANCE: Negative delta larger than the source
        ACCOUNT_NOT_FOUND: User has no credit account
    """

    def __init__(self, store: BalanceStore):
        self.store = store

    async def execute(self, command: AdjustCreditsCommandDTO) -> Result[CreditMutationResponseDTO]:
        error = validate_user_id(command.user_id)
        if error:
            return Return.err(error)

        source = next((s for s in ADJUSTABLE_SOURCES if s.value == command.source), None)
        if source is None:
            return Return.err(
                invalid_input(
                    f"Unknown credit source '{command.source}'",
                    reason=f"expected one of {[s.value for s in ADJUSTABLE_SOURCES]}",
                )
            )
        if not command.reason or not command.reason.strip():
            return Return.err(invalid_input("Adjustment reason is required"))

        def mutation(balance: Balance) -> Result[Optional[BalanceChange]]:
            adjusted = apply_adjustment(balance, command.delta, source)
            if adjusted.is_err():
                return Return.err(adjusted.error)

            return Return.ok(
                BalanceChange(
                    new_balance=adjusted.value,
                    transaction_type=TransactionType.ADMIN_ADJUSTMENT,
                    amount=command.delta,
                    source=source,
                    description=command.reason,
                    metadata={"reason": command.reason},
                )
            )

        outcome_result = await self.store.mutate_balance(command.user_id, mutation)
        if outcome_result.is_err():
            return Return.err(outcome_result.error)

        outcome = outcome_result.value
        logger.info(f"Adjusted {source.value} of user {command.user_id} by {command.delta}: {command.reason}")
        return Return.ok(
            CreditMutationResponseDTO(
                balance=BalanceResponseDTO.from_balance(outcome.balance),
                transaction_id=outcome.transaction.id if outcome.transaction else None,
            )
        )
