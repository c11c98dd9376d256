"""CanPlay Use Case

Read-only pre-flight check: can the user afford the session they are about
to start? Nothing is reserved; the deduction later re-validates against the
balance current at that moment.
"""

import logging
from typing import Mapping, Optional
from libs.result import Result, Return
from trivia_credits.app.services.account_directory import AccountDirectory
from trivia_credits.app.services.balance_store import BalanceStore
from trivia_credits.domain.balance import Balance
from trivia_credits.domain.cost_calculator import required_credits
from trivia_credits.domain.game_mode import CostPolicy, GameMode
from .dtos import CanPlayCommandDTO, CanPlayResponseDTO
from .validation import SessionLimits, validate_session_request

logger = logging.getLogger(__name__)


class CanPlay:
    """
    Use Case: Check whether a user can afford a game session

    Business Rules:
    1. Allowed iff total balance (free + purchased + credits) >= required credits
    2. Unrestricted accounts are always allowed
    3. The reason names the first source that covers the whole cost
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

    async def execute(self, command: CanPlayCommandDTO) -> Result[CanPlayResponseDTO]:
        """
        Execute the play check

        Returns:
            Result[CanPlayResponseDTO]: allowed flag, reason and required credits

        Errors:
            INVALID_INPUT: Bad user id, session size or game mode
            ACCOUNT_NOT_FOUND: User has no credit account
            STORAGE_ERROR: Database unavailable
        """
        validated = validate_session_request(
            command.user_id, command.session_size, command.game_mode, self.limits, self.policies
        )
        if validated.is_err():
            return Return.err(validated.error)
        request = validated.value

        required = required_credits(
            request.session_size,
            request.game_mode,
            policies=self.policies,
            max_questions_per_request=self.limits.max_questions,
        )

        if await self.account_directory.is_unrestricted(request.user_id):
            return Return.ok(
                CanPlayResponseDTO(
                    allowed=True,
                    reason="Unrestricted account",
                    required_credits=required,
                )
            )

        balance_result = await self.store.get_balance(request.user_id)
        if balance_result.is_err():
            return Return.err(balance_result.error)
        balance = balance_result.value

        allowed, reason = self._decide(balance, required)
        if not allowed:
            logger.info(
                f"User {request.user_id} cannot play {request.game_mode.value}: "
                f"required={required}, available={balance.total_credits}"
            )

        return Return.ok(
            CanPlayResponseDTO(
                allowed=allowed,
                reason=reason,
                required_credits=required,
                available_credits=balance.total_credits,
            )
        )

    @staticmethod
    def _decide(balance: Balance, required: int) -> tuple[bool, str]:
        if balance.free_questions >= required:
            return True, "Free questions available"
        if balance.purchased_credits >= required:
            return True, "Sufficient purchased credits"
        if balance.total_credits >= required:
            return True, "Sufficient total credits"
        return False, f"Insufficient credits. Required: {required}, Available: {balance.total_credits}"
