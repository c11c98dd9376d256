"""GrantBonusCredits Use Case

Adds promotional credits to a user's general credits.
"""

import logging
from typing import Optional
from libs.result import Result, Return
from trivia_credits.app.services.balance_store import BalanceChange, BalanceStore
from trivia_credits.domain.balance import Balance
from trivia_credits.domain.credit_transaction import CreditSource, TransactionType
from trivia_credits.domain.deduction import apply_credit
from .dtos import BalanceResponseDTO, CreditMutationResponseDTO, GrantBonusCommandDTO
from .validation import validate_user_id

logger = logging.getLogger(__name__)


class GrantBonusCredits:
    """
    Use Case: Grant bonus credits

    Errors:
        INVALID_INPUT: Bad user id or non-positive amount
        ACCOUNT_NOT_FOUND: User has no credit account
    """

    def __init__(self, store: BalanceStore):
        self.store = store

    async def execute(self, command: GrantBonusCommandDTO) -> Result[CreditMutationResponseDTO]:
        error = validate_user_id(command.user_id)
        if error:
            return Return.err(error)

        def mutation(balance: Balance) -> Result[Optional[BalanceChange]]:
            credited = apply_credit(balance, command.amount, CreditSource.BONUS)
            if credited.is_err():
                return Return.err(credited.error)

            return Return.ok(
                BalanceChange(
                    new_balance=credited.value,
                    transaction_type=TransactionType.BONUS,
                    amount=command.amount,
                    source=CreditSource.BONUS,
                    description=command.reason or f"Bonus of {command.amount} credits",
                    metadata={"reason": command.reason} if command.reason else None,
                )
            )

        outcome_result = await self.store.mutate_balance(command.user_id, mutation)
        if outcome_result.is_err():
            return Return.err(outcome_result.error)

        outcome = outcome_result.value
        logger.info(f"Granted {command.amount} bonus credits to user {command.user_id}")
        return Return.ok(
            CreditMutationResponseDTO(
                balance=BalanceResponseDTO.from_balance(outcome.balance),
                transaction_id=outcome.transaction.id if outcome.transaction else None,
            )
        )
