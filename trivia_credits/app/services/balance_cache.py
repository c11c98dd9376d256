"""Balance Cache Interface

Read-through cache for balances, keyed by user id.
"""

from abc import ABC, abstractmethod
from typing import Optional
from trivia_credits.domain.balance import Balance


class BalanceCache(ABC):
    """
    Abstract cache for user balances

    Entries only move forward: set() never replaces a cached balance with one
    of a lower version. A reader that loaded a row before a concurrent commit
    therefore cannot overwrite the balance the writer cached.
    """

    @abstractmethod
    async def get(self, user_id: str) -> Optional[Balance]:
        pass

    @abstractmethod
    async def set(self, balance: Balance) -> None:
        pass
