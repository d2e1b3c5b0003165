"""Infrastructure - backend client and device storage."""

from familysync.infra.backend import IdentityBackend
from familysync.infra.storage import JsonFileStore, LocalStore, RedisStore, create_local_store

__all__ = [
    "IdentityBackend",
    "JsonFileStore",
    "LocalStore",
    "RedisStore",
    "create_local_store",
]
