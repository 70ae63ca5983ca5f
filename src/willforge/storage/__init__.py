"""
Persistence backends for willforge.
"""

from willforge.storage.memory_store import MemoryStore
from willforge.storage.redis_store import RedisStore, get_redis_store

__all__ = [
    "MemoryStore",
    "RedisStore",
    "get_redis_store",
]
