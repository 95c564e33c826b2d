"""
Storage capability interface shared by every backing store.

The entity store only ever talks to this interface, so totals, numbering
and synchronisation behave identically whichever backend is plugged in.

Data layout
-----------
  collections  named groups of JSON-compatible documents, each under a
               string key (suppliers, products, companies, budgets, orders)
  counters     named maps of field -> integer, e.g. the per-year order
               counter {"2025": 3}
  meta         small string values such as the seeded data version
"""
from abc import ABC, abstractmethod
from typing import Iterable, Optional

COLLECTIONS = ("suppliers", "products", "companies", "budgets", "orders")

# (collection, key, document) and (collection, key)
Put = tuple[str, str, dict]
Delete = tuple[str, str]


class StorageBackend(ABC):
    """
    Implementations must commit every mutating call durably before returning
    and must raise store.errors.PersistenceFailure for storage-level errors.
    """

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @abstractmethod
    def list_documents(self, collection: str) -> list[dict]:
        """Return copies of all documents in insertion order."""

    @abstractmethod
    def get_document(self, collection: str, key: str) -> Optional[dict]:
        ...

    @abstractmethod
    def put_document(self, collection: str, key: str, data: dict) -> None:
        """Insert or fully replace one document."""

    @abstractmethod
    def delete_document(self, collection: str, key: str) -> bool:
        """Delete one document. Returns True if it existed."""

    @abstractmethod
    def write_batch(
        self,
        puts: Iterable[Put] = (),
        deletes: Iterable[Delete] = (),
        counters: Optional[dict[str, dict[str, int]]] = None,
    ) -> None:
        """Apply all puts, deletes and counter overwrites, or none of them."""

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    @abstractmethod
    def read_counter(self, name: str) -> dict[str, int]:
        ...

    @abstractmethod
    def increment_counter(self, name: str, field: str, minimum: int = 0) -> int:
        """
        Atomically set counters[name][field] to max(current, minimum) + 1 and
        return the new value.
        """

    # ------------------------------------------------------------------
    # Meta / maintenance
    # ------------------------------------------------------------------

    @abstractmethod
    def get_meta(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set_meta(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove all documents and counters. Meta values are kept."""

    @abstractmethod
    def describe(self) -> dict:
        """Backend kind and location, for health checks."""
