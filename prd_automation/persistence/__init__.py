"""Persistence — DocumentStore implementations and the Mongo connection."""

from prd_automation.persistence.document_store import (
    DocumentStore,
    InMemoryDocumentStore,
    get_document_store,
)
from prd_automation.persistence.mongo_client import MongoClient

__all__ = ["DocumentStore", "InMemoryDocumentStore", "MongoClient", "get_document_store"]
