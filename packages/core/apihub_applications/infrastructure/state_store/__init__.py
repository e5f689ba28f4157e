"""State store implementations."""

from apihub_applications.infrastructure.state_store.memory_store import InMemoryStateStore
from apihub_applications.infrastructure.state_store.mongo_store import MongoStateStore

__all__ = ["InMemoryStateStore", "MongoStateStore"]
