"""Document store backends"""

from core.config import settings
from application.repositories.document_store import IDocumentStore
from .memory import InMemoryDocumentStore
from .sql import SQLAlchemyDocumentStore


def create_document_store(backend: str = None, database_url: str = None) -> IDocumentStore:
    """Build the store selected by DOCUMENT_STORE_BACKEND"""
    backend = backend or settings.DOCUMENT_STORE_BACKEND
    if backend == "memory":
        return InMemoryDocumentStore()
    return SQLAlchemyDocumentStore.from_url(database_url or settings.DATABASE_URL)


__all__ = [
    "InMemoryDocumentStore",
    "SQLAlchemyDocumentStore",
    "create_document_store",
]
