"""
Visited registry: the set of addresses already claimed during a crawl run.
"""

import logging
import uuid
from typing import Optional, Set

import redis.asyncio as redis

from ..crawler.address import Address


class VisitedRegistry:
    """
    In-memory registry shared by every task of one crawl run.

    ``claim`` is the only way in: the membership test and the insert happen
    without a suspension point between them, so on a single event loop no
    two tasks can claim the same address.
    """

    def __init__(self):
        self._visited: Set[Address] = set()

    async def claim(self, address: Address) -> bool:
        """Mark ``address`` visited; True only for the first caller."""
        if address in self._visited:
            return False
        self._visited.add(address)
        return True

    async def size(self) -> int:
        return len(self._visited)

    async def snapshot(self) -> Set[Address]:
        return set(self._visited)

    async def close(self):
        self._visited.clear()


class RedisVisitedRegistry:
    """
    Registry backed by a Redis set, for crawls whose claim must be atomic
    across processes.

    Each run gets its own key. ``SADD`` reports whether the member was new,
    which makes it the test-and-set. The key is removed on ``close``.
    """

    def __init__(self, redis_client: redis.Redis, key_prefix: str = "wordcrawler:visited",
                 run_id: Optional[str] = None):
        self.redis_client = redis_client
        self.key = f"{key_prefix}:{run_id or uuid.uuid4().hex}"
        self.logger = logging.getLogger(__name__)

    async def claim(self, address: Address) -> bool:
        added = await self.redis_client.sadd(self.key, address.url)
        return added == 1

    async def size(self) -> int:
        return await self.redis_client.scard(self.key)

    async def snapshot(self) -> Set[Address]:
        members = await self.redis_client.smembers(self.key)
        return {
            Address.parse(member.decode('utf-8') if isinstance(member, bytes) else member)
            for member in members
        }

    async def close(self):
        await self.redis_client.delete(self.key)
        self.logger.debug(f"Dropped visited set {self.key}")
