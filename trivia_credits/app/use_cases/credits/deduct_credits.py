"""DeductCredits Use Case

Charges a game session against a user's balance. Free questions are used
first, then purchased credits, then general credits.
"""

import logging
from typing import Mapping, Optional
from libs.result import Result, Return
from trivia_credits.app.services.account_directory import AccountDirectory
from trivia_credits.app.services.balance_store import BalanceChange, BalanceStore
from trivia_credits.domain.balance import Balance
from trivia_credits.domain.credit_transaction import TransactionType
from trivia_credits.domain.deduction import Deduction, DeductionBreakdown, apply_deduction
from trivia_credits.domain.game_mode import CostPolicy, GameMode, session_size_to_wire
from .dtos import BalanceResponseDTO, DeductCommandDTO, DeductResponseDTO, DeductionBreakdownDTO
from .validation import SessionLimits, SessionRequest, validate_session_request

logger = logging.getLogger(__name__)


class DeductCredits:
    """
    Use Case: Deduct credits for a game session

    Business Rules:
    1. Required credits come from the game mode's cost policy
    2. All-or-nothing: an insufficient balance leaves every source untouched
    3. Unrestricted accounts are not charged and get no ledger entry
    4. One ledger entry per charge; source is None when several sources paid

    Flow:
    1. Validate the request
    2. Skip charging for unrestricted accounts
    3. Apply the deduction through BalanceStore.mutate_balance (atomic, retried)
    4. Return the new balance and the per-source breakdown
    """

    def __init__(
        self,
        store: BalanceStore,
        account_directory: AccountDirectory,
        limits: SessionLimits = SessionLimits(),
        policies: Optional[Mapping[GameMode, CostPolicy]] = None,
    ):
        self.store = store
        self.account_directory = account_directory
        self.limits = limits
        self.policies = policies

    async def execute(self, command: DeductCommandDTO) -> Result[DeductResponseDTO]:
        """
        Execute the deduction

        Errors:
            INVALID_INPUT: Bad user id, session size or game mode
            ACCOUNT_NOT_FOUND: User has no credit account
            INSUFFICIENT_BALANCE: Total balance below required credits
            CONCURRENCY_CONFLICT: Balance kept changing underneath the deduction
            STORAGE_ERROR: Database unavailable
        """
        validated = validate_session_request(
            command.user_id, command.session_size, command.game_mode, self.limits, self.policies
        )
        if validated.is_err():
            return Return.err(validated.error)
        request = validated.value

        if await self.account_directory.is_unrestricted(request.user_id):
            return await self._skip_charge(request)

        applied: dict[str, Deduction] = {}

        def mutation(balance: Balance) -> Result[Optional[BalanceChange]]:
            result = apply_deduction(
                balance,
                request.session_size,
                request.game_mode,
                policies=self.policies,
                max_questions_per_request=self.limits.max_questions,
            )
            if result.is_err():
                return Return.err(result.error)

            deduction = result.value
            applied["deduction"] = deduction
            if deduction.required == 0:
                return Return.ok(None)

            return Return.ok(self._to_change(request, deduction, command.reason))

        outcome_result = await self.store.mutate_balance(request.user_id, mutation)
        if outcome_result.is_err():
            if outcome_result.error.code == "INSUFFICIENT_BALANCE":
                logger.info(f"Deduction refused for user {request.user_id}: {outcome_result.error.message}")
            return Return.err(outcome_result.error)

        outcome = outcome_result.value
        deduction = applied["deduction"]

        return Return.ok(
            DeductResponseDTO(
                balance=BalanceResponseDTO.from_balance(outcome.balance),
                required_credits=deduction.required,
                breakdown=DeductionBreakdownDTO.from_breakdown(deduction.breakdown),
                charged=outcome.changed,
                transaction_id=outcome.transaction.id if outcome.transaction else None,
            )
        )

    async def _skip_charge(self, request: SessionRequest) -> Result[DeductResponseDTO]:
        balance_result = await self.store.get_balance(request.user_id)
        if balance_result.is_err():
            return Return.err(balance_result.error)

        logger.info(f"User {request.user_id} is unrestricted, {request.game_mode.value} session not charged")
        return Return.ok(
            DeductResponseDTO(
                balance=BalanceResponseDTO.from_balance(balance_result.value),
                required_credits=0,
                breakdown=DeductionBreakdownDTO.from_breakdown(DeductionBreakdown()),
                charged=False,
            )
        )

    def _to_change(self, request: SessionRequest, deduction: Deduction, reason: Optional[str]) -> BalanceChange:
        sources = deduction.breakdown.sources_used
        metadata = {
            "game_mode": request.game_mode.value,
            "session_size": session_size_to_wire(request.session_size),
            "required_credits": deduction.required,
            "breakdown": deduction.breakdown.to_dict(),
        }
        if reason:
            metadata["reason"] = reason

        return BalanceChange(
            new_balance=deduction.new_balance,
            transaction_type=TransactionType.DEDUCTION,
            amount=-deduction.required,
            source=sources[0] if len(sources) == 1 else None,
            description=(
                f"Credits deducted for {request.game_mode.value} game: "
                f"{deduction.required} credits required"
            ),
            metadata=metadata,
        )
