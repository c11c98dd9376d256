from typing import Iterable
from trivia_credits.app.services.account_directory import AccountDirectory


class ConfiguredAccountDirectory(AccountDirectory):
    """Unrestricted accounts listed in configuration (UNRESTRICTED_USER_IDS)"""

    def __init__(self, unrestricted_user_ids: Iterable[str] = ()):
        self.unrestricted_user_ids = frozenset(unrestricted_user_ids)

    async def is_unrestricted(self, user_id: str) -> bool:
        return user_id in self.unrestricted_user_ids
