"""Get Balance Use Case

Retrieves a user's current credit balance.
"""

from libs.result import Result, Return
from trivia_credits.app.services.balance_store import BalanceStore
from .dtos import BalanceResponseDTO
from .validation import validate_user_id


class GetBalance:
    """
    Get Balance Use Case

    Read-only operation; served from the balance cache when possible.
    """

    def __init__(self, store: BalanceStore):
        self.store = store

    async def execute(self, user_id: str) -> Result[BalanceResponseDTO]:
        """
        Execute get balance operation

        Errors:
            INVALID_INPUT: Empty user id
            ACCOUNT_NOT_FOUND: User has no credit account
            STORAGE_ERROR: Database unavailable
        """
        error = validate_user_id(user_id)
        if error:
            return Return.err(error)

        result = await self.store.get_balance(user_id)
        if result.is_err():
            return Return.err(result.error)

        return Return.ok(BalanceResponseDTO.from_balance(result.value))
