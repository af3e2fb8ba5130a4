"""Persistence gateways for Daybook."""

from daybook.config import get_settings
from daybook.store.base import (
    CollectionRef,
    DocumentRef,
    DocumentSnapshot,
    DocumentStore,
    Subscription,
    Transaction,
    generate_id,
)
from daybook.store.firestore import FirestoreDocumentStore
from daybook.store.memory import InMemoryDocumentStore


def create_store() -> DocumentStore:
    """Build the store selected by ``DAYBOOK_STORE``."""
    settings = get_settings()
    if settings.store_backend == "firestore":
        return FirestoreDocumentStore()
    return InMemoryDocumentStore()


__all__ = [
    "CollectionRef",
    "DocumentRef",
    "DocumentSnapshot",
    "DocumentStore",
    "FirestoreDocumentStore",
    "InMemoryDocumentStore",
    "Subscription",
    "Transaction",
    "create_store",
    "generate_id",
]
