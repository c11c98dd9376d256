from abc import ABC, abstractmethod


class AccountDirectory(ABC):
    """Role lookup for users (owned by the account service)"""

    @abstractmethod
    async def is_unrestricted(self, user_id: str) -> bool:
        """True for accounts that play without being charged (administrators)"""
        pass
