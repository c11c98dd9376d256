"""
List Transactions Use Case

Retrieves the credit ledger of a user, newest first.
"""
import logging
from sqlalchemy.exc import SQLAlchemyError
from libs.result import Result, Return, Error
from trivia_credits.app.repositories.credit_transaction_repository import CreditTransactionRepository
from .dtos import ListTransactionsResponseDTO, TransactionDTO
from .validation import invalid_input, validate_user_id

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class ListTransactions:
    """
    Use case: View credit history

    Transactions are ordered by transaction date, then creation time, most
    recent first. limit must be between 1 and max_limit.
    """

    def __init__(self, transaction_repo: CreditTransactionRepository, max_limit: int = 100):
        """
        Initialize with transaction repository.

        Args:
            transaction_repo: CreditTransactionRepository instance
            max_limit: Largest page a caller may ask for
        """
        self.transaction_repo = transaction_repo
        self.max_limit = max_limit

    async def execute(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> Result[ListTransactionsResponseDTO]:
        """
        List transactions for a user.

        Args:
            user_id: User identifier
            limit: Maximum number of transactions to return

        Returns:
            Result[ListTransactionsResponseDTO]: Most recent transactions
        """
        error = validate_user_id(user_id)
        if error:
            return Return.err(error)

        if limit is None or not 1 <= limit <= self.max_limit:
            return Return.err(
                invalid_input(
                    f"Limit must be between 1 and {self.max_limit}",
                    reason=f"limit={limit}",
                )
            )

        try:
            transactions = await self.transaction_repo.list_by_user_id(user_id, limit=limit)
        except SQLAlchemyError as e:
            logger.exception(f"Failed to list transactions for user {user_id}")
            return Return.err(
                Error(
                    code="STORAGE_ERROR",
                    message="Failed to list transactions",
                    reason=str(e),
                )
            )

        return Return.ok(
            ListTransactionsResponseDTO(
                user_id=user_id,
                transactions=[TransactionDTO.from_transaction(txn) for txn in transactions],
                limit=limit,
            )
        )
