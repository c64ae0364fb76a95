"""Document store implementations."""

from assetdesk.infrastructure.state_store.memory_store import InMemoryDocumentStore
from assetdesk.infrastructure.state_store.mongo_store import MongoDocumentStore

__all__ = ["InMemoryDocumentStore", "MongoDocumentStore"]
