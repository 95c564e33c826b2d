"""Build the configured storage backend and entity store."""
import logging

from config import Config

from .backends import StorageBackend
from .document_store import DocumentStoreBackend
from .entity_store import EntityStore
from .local_storage import LocalStorageBackend

logger = logging.getLogger(__name__)

BACKENDS = ("local", "document")


def create_backend(config: Config) -> StorageBackend:
    kind = (config.storage_backend or "").lower()
    if kind == "local":
        backend: StorageBackend = LocalStorageBackend(config.local_storage_path)
    elif kind == "document":
        backend = DocumentStoreBackend(config.document_db_path)
    else:
        raise ValueError(f"Unknown storage backend {config.storage_backend!r}. Must be one of {BACKENDS}")
    logger.info("Using %s storage: %s", kind, backend.describe()["path"])
    return backend


def open_store(config: Config) -> EntityStore:
    return EntityStore(create_backend(config), order_number_floor=config.order_number_floor)
