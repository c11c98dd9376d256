"""Credit Account Repository Interface

Defines the contract for credit account persistence operations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from trivia_credits.domain.balance import Balance
from trivia_credits.domain.credit_account import CreditAccount


class CreditAccountRepository(ABC):
    """
    Repository interface for CreditAccount persistence

    Balance writes use optimistic concurrency: a write only succeeds if the
    stored version still equals the version the caller read.
    """

    @abstractmethod
    async def get_by_user_id(self, user_id: str) -> Optional[CreditAccount]:
        """
        Retrieve the account of a user, always reading the stored row

        Args:
            user_id: User identifier

        Returns:
            CreditAccount if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, account: CreditAccount) -> CreditAccount:
        """
        Create a new credit account

        Args:
            account: CreditAccount entity to persist

        Returns:
            Created CreditAccount with generated ID
        """
        pass

    @abstractmethod
    async def compare_and_swap(self, balance: Balance, expected_version: int) -> bool:
        """
        Write all balance sources if the stored version is unchanged

        Args:
            balance: New balance for balance.user_id
            expected_version: Version the balance was computed from

        Returns:
            True if the row was updated (version is now expected_version + 1),
            False if another writer got there first
        """
        pass

    @abstractmethod
    async def list_user_ids_due_for_reset(
        self,
        reset_before: datetime,
        limit: int,
        after_user_id: Optional[str] = None,
    ) -> list[str]:
        """
        List users whose last reset is missing or older than reset_before

        Args:
            reset_before: Start of the current reset day (naive UTC)
            limit: Page size
            after_user_id: Return only user ids sorting after this one

        Returns:
            User ids in ascending order
        """
        pass
