"""ResetDailyFreeQuestions Use Case

Restores a user's free questions to their daily limit, at most once per
calendar day in the reset timezone.
"""

from datetime import timezone, tzinfo
from typing import Optional
from libs.result import Result, Return
from trivia_credits.app.services.balance_store import BalanceChange, BalanceStore
from trivia_credits.app.services.clock import Clock, SystemClock
from trivia_credits.domain.balance import Balance
from trivia_credits.domain.credit_transaction import CreditSource, TransactionType
from trivia_credits.domain.deduction import apply_daily_reset
from .dtos import BalanceResponseDTO, CreditMutationResponseDTO
from .validation import validate_user_id


class ResetDailyFreeQuestions:
    """
    Use Case: Daily free question reset for one user

    Idempotent per calendar day: a second run on the same day changes nothing
    and writes no ledger entry (changed=False).
    """

    def __init__(self, store: BalanceStore, clock: Optional[Clock] = None, tz: tzinfo = timezone.utc):
        self.store = store
        self.clock = clock or SystemClock()
        self.tz = tz

    async def execute(self, user_id: str) -> Result[CreditMutationResponseDTO]:
        error = validate_user_id(user_id)
        if error:
            return Return.err(error)

        now = self.clock.now()

        def mutation(balance: Balance) -> Result[Optional[BalanceChange]]:
            reset = apply_daily_reset(balance, now, self.tz)
            if reset is None:
                return Return.ok(None)

            return Return.ok(
                BalanceChange(
                    new_balance=reset,
                    transaction_type=TransactionType.DAILY_RESET,
                    amount=reset.free_questions - balance.free_questions,
                    source=CreditSource.FREE_DAILY,
                    description=f"Daily free questions reset to {reset.daily_limit}",
                    metadata={
                        "daily_limit": reset.daily_limit,
                        "previous_free_questions": balance.free_questions,
                    },
                )
            )

        outcome_result = await self.store.mutate_balance(user_id, mutation)
        if outcome_result.is_err():
            return Return.err(outcome_result.error)

        outcome = outcome_result.value
        return Return.ok(
            CreditMutationResponseDTO(
                balance=BalanceResponseDTO.from_balance(outcome.balance),
                transaction_id=outcome.transaction.id if outcome.transaction else None,
                changed=outcome.changed,
            )
        )
