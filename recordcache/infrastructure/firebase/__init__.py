"""Firestore integration: REST client and the document storage adapter."""

from recordcache.infrastructure.firebase._rest_client import FirestoreRESTClient
from recordcache.infrastructure.firebase.client import create_firestore_client
from recordcache.infrastructure.firebase.firestore_storage import FirestoreStorage

__all__ = [
    "FirestoreRESTClient",
    "FirestoreStorage",
    "create_firestore_client",
]
