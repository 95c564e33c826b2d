from .backends import StorageBackend, COLLECTIONS
from .local_storage import LocalStorageBackend
from .document_store import DocumentStoreBackend
from .entity_store import EntityStore
from .order_numbers import OrderNumberGenerator
from .calculator import calculate_totals, line_item_for, revise_item, VAT_RATE
from .sync import SyncFacade
from .errors import (
    StoreError, NotFound, DuplicateBudgetCode, DuplicateOrderNumber,
    PersistenceFailure, StaleViewError,
)

__all__ = [
    "StorageBackend", "COLLECTIONS", "LocalStorageBackend", "DocumentStoreBackend",
    "EntityStore", "OrderNumberGenerator", "SyncFacade",
    "calculate_totals", "line_item_for", "revise_item", "VAT_RATE",
    "StoreError", "NotFound", "DuplicateBudgetCode", "DuplicateOrderNumber",
    "PersistenceFailure", "StaleViewError",
]
