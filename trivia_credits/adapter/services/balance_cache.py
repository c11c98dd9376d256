"""Balance Cache Implementations

aiocache-backed read-through cache for balances. Entries are keyed by user
and expire after a TTL. Every committed mutation writes the new balance, and
writes are version-checked compare-and-set operations, so a fill from an older
read can never replace it.
"""

import logging
from typing import Optional
from aiocache import Cache
from aiocache.serializers import JsonSerializer
from trivia_credits.app.services.balance_cache import BalanceCache
from trivia_credits.domain.balance import Balance

logger = logging.getLogger(__name__)

BALANCE_KEY_PREFIX = "credits:balance:"

# Compare-and-set rounds before giving up and dropping the entry
CACHE_WRITE_ATTEMPTS = 3


def _raw_value(value):
    return value


class AiocacheBalanceCache(BalanceCache):
    """
    Balance cache on top of an aiocache backend

    Cache errors never fail a balance operation: a failed read is a miss and
    a failed write is logged.
    """

    def __init__(self, cache: Cache, ttl_seconds: int = 3600):
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(user_id: str) -> str:
        return f"{BALANCE_KEY_PREFIX}{user_id}"

    async def get(self, user_id: str) -> Optional[Balance]:
        try:
            data = await self.cache.get(self._key(user_id))
        except Exception as e:
            logger.warning(f"Balance cache read failed for user {user_id}: {e}")
            return None

        if not data:
            return None
        return Balance.from_dict(data)

    async def set(self, balance: Balance) -> None:
        """
        Cache a balance unless a newer version is already cached

        The write is a compare-and-set against the raw cached value (aiocache
        add for an empty key, set with _cas_token otherwise), so it is atomic
        on both the memory and the redis backend. If every attempt loses a
        race the entry is dropped and the next read goes to the database.
        """
        key = self._key(balance.user_id)
        value = balance.to_dict()

        try:
            for _ in range(CACHE_WRITE_ATTEMPTS):
                raw = await self.cache.get(key, loads_fn=_raw_value)
                if raw is None:
                    try:
                        await self.cache.add(key, value, ttl=self.ttl_seconds)
                        return
                    except ValueError:
                        # filled concurrently
                        continue

                cached = self.cache.serializer.loads(raw)
                if cached and int(cached.get("version", 0)) > balance.version:
                    logger.debug(
                        f"Kept cached balance v{cached.get('version')} for user {balance.user_id}, "
                        f"dropped v{balance.version}"
                    )
                    return

                if await self.cache.set(key, value, ttl=self.ttl_seconds, _cas_token=raw):
                    return

            logger.warning(f"Balance cache contended for user {balance.user_id}, dropping entry")
            await self.cache.delete(key)
        except Exception as e:
            logger.warning(f"Balance cache write failed for user {balance.user_id}: {e}")


class NullBalanceCache(BalanceCache):
    """Cache that never stores anything (caching disabled)"""

    async def get(self, user_id: str) -> Optional[Balance]:
        return None

    async def set(self, balance: Balance) -> None:
        return None


def create_balance_cache(
    backend: str = "redis",
    redis_url: Optional[str] = None,
    ttl_seconds: int = 3600,
) -> BalanceCache:
    """
    Factory function to create the configured balance cache

    Args:
        backend: "redis", "memory" (single process only) or "none"
        redis_url: Redis URL, required for the redis backend
        ttl_seconds: Entry time-to-live

    Returns:
        Configured BalanceCache
    """
    backend = (backend or "redis").lower()

    if backend == "none":
        return NullBalanceCache()

    if backend == "redis":
        if not redis_url:
            raise ValueError("REDIS_URL is required when CACHE_BACKEND is redis")
        cache = Cache.from_url(redis_url)
        cache.serializer = JsonSerializer()
        return AiocacheBalanceCache(cache, ttl_seconds=ttl_seconds)

    if backend == "memory":
        return AiocacheBalanceCache(Cache(Cache.MEMORY, serializer=JsonSerializer()), ttl_seconds=ttl_seconds)

    raise ValueError(f"Unknown CACHE_BACKEND '{backend}'")
