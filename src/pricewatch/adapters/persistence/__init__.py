from pricewatch.adapters.persistence.base import DocumentStore
from pricewatch.adapters.persistence.file_store import FileDocumentStore

__all__ = ["DocumentStore", "FileDocumentStore"]
