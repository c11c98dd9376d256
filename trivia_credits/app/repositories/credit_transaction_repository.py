"""Credit Transaction Repository Interface

Defines the contract for credit transaction persistence operations.
"""

from abc import ABC, abstractmethod
from typing import Optional
from trivia_credits.domain.credit_transaction import CreditTransaction


class CreditTransactionRepository(ABC):
    """
    Repository interface for CreditTransaction persistence

    Transactions are immutable and append-only for audit trail; there is no
    update or delete. Purchase idempotency is enforced via the unique
    payment_reference.
    """

    @abstractmethod
    async def create(self, transaction: CreditTransaction) -> CreditTransaction:
        """
        Append a credit transaction

        Args:
            transaction: CreditTransaction entity to persist

        Returns:
            Created CreditTransaction with generated ID

        Raises:
            IntegrityError: If payment_reference already exists (duplicate confirmation)
        """
        pass

    @abstractmethod
    async def get_by_payment_reference(self, payment_reference: str) -> Optional[CreditTransaction]:
        """
        Retrieve the transaction that credited a payment

        Args:
            payment_reference: Gateway payment reference

        Returns:
            CreditTransaction if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_by_user_id(self, user_id: str, limit: int) -> list[CreditTransaction]:
        """
        List the most recent transactions of a user, newest first

        Args:
            user_id: User identifier
            limit: Maximum number of transactions to return

        Returns:
            List of CreditTransaction
        """
        pass
