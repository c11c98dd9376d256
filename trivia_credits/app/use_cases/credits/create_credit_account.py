"""CreateCreditAccount Use Case

Provisions a credit account with the default balance for a new user.
Calling it for an existing user returns that user's balance unchanged.
"""

from libs.result import Result, Return
from trivia_credits.app.services.balance_store import BalanceStore
from .dtos import BalanceResponseDTO, CreateAccountCommandDTO
from .validation import validate_user_id


class CreateCreditAccount:
    def __init__(self, store: BalanceStore, default_credits: int = 100, default_daily_limit: int = 20):
        self.store = store
        self.default_credits = default_credits
        self.default_daily_limit = default_daily_limit

    async def execute(self, command: CreateAccountCommandDTO) -> Result[BalanceResponseDTO]:
        error = validate_user_id(command.user_id)
        if error:
            return Return.err(error)

        result = await self.store.create_account(
            command.user_id,
            credits=self.default_credits if command.credits is None else command.credits,
            daily_limit=self.default_daily_limit if command.daily_limit is None else command.daily_limit,
        )
        if result.is_err():
            return Return.err(result.error)

        return Return.ok(BalanceResponseDTO.from_balance(result.value))
