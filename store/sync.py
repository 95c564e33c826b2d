"""
Sync facade: the boundary between UI-level callers and the entity store.

Every write runs as "mutate, then refetch the affected collection(s)", so the
lists a caller holds are always a consistent snapshot of the store rather
than an incrementally patched copy. If the write commits but the refetch
fails, StaleViewError is raised carrying the write's result.

Not thread-safe by design of the session model: one operation at a time,
overlapping writes to one record are last-write-wins.
"""
import logging
from typing import Any, Callable, Iterable, Optional, TypeVar, Union

from pydantic import BaseModel

from models.budget import Budget, BudgetPatch
from models.company import Company, CompanyCreate, CompanyPatch
from models.product import Product, ProductCreate, ProductPatch
from models.purchase_order import (
    OrderFilter,
    OrderItem,
    OrderTotals,
    PurchaseOrder,
    PurchaseOrderCreate,
    PurchaseOrderPatch,
)
from models.supplier import Supplier, SupplierCreate, SupplierPatch

from .backends import COLLECTIONS
from .calculator import calculate_totals
from .entity_store import EntityStore
from .errors import NotFound, PersistenceFailure, StaleViewError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
T = TypeVar("T")

Bootstrap = Callable[[EntityStore], Any]


def _coerce(model: type[M], value: Union[M, dict]) -> M:
    """Accept either a model instance or a plain dict from a form/request."""
    if isinstance(value, model):
        return value
    return model.model_validate(value)


class SyncFacade:
    """
    Usage:
        facade = SyncFacade(store, bootstrap=lambda s: ensure_initial_data(s, config))
        facade.load()
        facade.add_supplier({"name": "Acme", "contact_person": "Dana", "phone": "03-555"})
        facade.suppliers   # refreshed list
    """

    def __init__(self, store: EntityStore, bootstrap: Optional[Bootstrap] = None) -> None:
        self.store = store
        self._bootstrap = bootstrap
        self.suppliers: list[Supplier] = []
        self.products: list[Product] = []
        self.companies: list[Company] = []
        self.budgets: list[Budget] = []
        self.orders: list[PurchaseOrder] = []
        self.in_flight = False

    # ------------------------------------------------------------------
    # Loading / refreshing
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Run the one-time bootstrap (if any), then read every collection."""
        if self._bootstrap is not None:
            self._bootstrap(self.store)
        self.refresh_all()

    def refresh(self) -> None:
        """Re-read suppliers, products and orders."""
        self._refresh("suppliers", "products", "orders")

    def refresh_all(self) -> None:
        self._refresh(*COLLECTIONS)

    def _refresh(self, *collections: str) -> None:
        readers = {
            "suppliers": self.store.list_suppliers,
            "products":  self.store.list_products,
            "companies": self.store.list_companies,
            "budgets":   self.store.list_budgets,
            "orders":    self.store.list_orders,
        }
        # Read everything first so a failure leaves the previous view intact
        fresh = {name: readers[name]() for name in collections}
        for name, records in fresh.items():
            setattr(self, name, records)

    def snapshot(self) -> dict[str, list[dict]]:
        """Plain-data copy of the current view."""
        return {
            name: [r.model_dump(mode="json") for r in getattr(self, name)]
            for name in COLLECTIONS
        }

    # ------------------------------------------------------------------
    # Single-record reads (straight from the store, not the cached lists)
    # ------------------------------------------------------------------

    def get_supplier(self, supplier_id: int) -> Optional[Supplier]:
        return self.store.get_supplier(supplier_id)

    def get_product(self, product_id: str) -> Optional[Product]:
        return self.store.get_product(product_id)

    def get_company(self, company_id: str) -> Optional[Company]:
        return self.store.get_company(company_id)

    def get_budget(self, code: int) -> Optional[Budget]:
        return self.store.get_budget(code)

    def get_order(self, order_id: str) -> Optional[PurchaseOrder]:
        return self.store.get_order(order_id)

    # ------------------------------------------------------------------
    # Write plumbing
    # ------------------------------------------------------------------

    def _write(self, operation: str, collections: tuple[str, ...], fn: Callable[[], T]) -> T:
        self.in_flight = True
        try:
            result = fn()
            try:
                self._refresh(*collections)
            except PersistenceFailure as exc:
                logger.warning("%s committed but refresh failed: %s", operation, exc)
                raise StaleViewError(operation, result, exc) from exc
            return result
        finally:
            self.in_flight = False

    def _update(self, entity: str, key: Any, collection: str, fn: Callable[[], Optional[T]]) -> T:
        def run() -> T:
            result = fn()
            if result is None:
                raise NotFound(entity, key)
            return result

        return self._write(f"update {entity} {key}", (collection,), run)

    # ------------------------------------------------------------------
    # Suppliers
    # ------------------------------------------------------------------

    def add_supplier(self, data: Union[SupplierCreate, dict]) -> Supplier:
        data = _coerce(SupplierCreate, data)
        return self._write("add supplier", ("suppliers",), lambda: self.store.add_supplier(data))

    def update_supplier(self, supplier_id: int, patch: Union[SupplierPatch, dict]) -> Supplier:
        patch = _coerce(SupplierPatch, patch)
        return self._update(
            "Supplier", supplier_id, "suppliers",
            lambda: self.store.update_supplier(supplier_id, patch),
        )

    def delete_supplier(self, supplier_id: int) -> bool:
        return self._write(
            f"delete supplier {supplier_id}", ("suppliers",),
            lambda: self.store.delete_supplier(supplier_id),
        )

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def add_product(self, data: Union[ProductCreate, dict]) -> Product:
        data = _coerce(ProductCreate, data)
        return self._write("add product", ("products",), lambda: self.store.add_product(data))

    def update_product(self, product_id: str, patch: Union[ProductPatch, dict]) -> Product:
        patch = _coerce(ProductPatch, patch)
        return self._update(
            "Product", product_id, "products",
            lambda: self.store.update_product(product_id, patch),
        )

    def delete_product(self, product_id: str) -> bool:
        return self._write(
            f"delete product {product_id}", ("products",),
            lambda: self.store.delete_product(product_id),
        )

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------

    def add_company(self, data: Union[CompanyCreate, dict]) -> Company:
        data = _coerce(CompanyCreate, data)
        return self._write("add company", ("companies",), lambda: self.store.add_company(data))

    def update_company(self, company_id: str, patch: Union[CompanyPatch, dict]) -> Company:
        patch = _coerce(CompanyPatch, patch)
        return self._update(
            "Company", company_id, "companies",
            lambda: self.store.update_company(company_id, patch),
        )

    def delete_company(self, company_id: str) -> bool:
        return self._write(
            f"delete company {company_id}", ("companies",),
            lambda: self.store.delete_company(company_id),
        )

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def add_budget(self, budget: Union[Budget, dict]) -> Budget:
        budget = _coerce(Budget, budget)
        return self._write("add budget", ("budgets",), lambda: self.store.add_budget(budget))

    def update_budget(self, code: int, patch: Union[BudgetPatch, dict]) -> Budget:
        patch = _coerce(BudgetPatch, patch)
        return self._update(
            "Budget", code, "budgets",
            lambda: self.store.update_budget(code, patch),
        )

    def delete_budget(self, code: int) -> bool:
        return self._write(
            f"delete budget {code}", ("budgets",),
            lambda: self.store.delete_budget(code),
        )

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def create_order(
        self,
        data: Union[PurchaseOrderCreate, dict],
        order_number: Optional[str] = None,
    ) -> PurchaseOrder:
        data = _coerce(PurchaseOrderCreate, data)
        return self._write(
            "create order", ("orders",),
            lambda: self.store.create_order(data, order_number=order_number),
        )

    def update_order(self, order_id: str, patch: Union[PurchaseOrderPatch, dict]) -> PurchaseOrder:
        patch = _coerce(PurchaseOrderPatch, patch)
        return self._update(
            "Order", order_id, "orders",
            lambda: self.store.update_order(order_id, patch),
        )

    def delete_order(self, order_id: str) -> bool:
        return self._write(
            f"delete order {order_id}", ("orders",),
            lambda: self.store.delete_order(order_id),
        )

    def delete_orders(self, order_ids: Iterable[str]) -> dict[str, bool]:
        ids = list(order_ids)
        return self._write(
            f"delete {len(ids)} orders", ("orders",),
            lambda: self.store.delete_orders(ids),
        )

    def search_orders(self, flt: Union[OrderFilter, dict]) -> list[PurchaseOrder]:
        return self.store.search_orders(_coerce(OrderFilter, flt))

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    def calculate_totals(self, items: Iterable[Union[OrderItem, dict]], add_vat: bool) -> OrderTotals:
        return calculate_totals([_coerce(OrderItem, i) for i in items], add_vat)

    def propose_order_number(self) -> str:
        return self.store.numbers.propose_number()

    def next_order_number(self) -> str:
        return self.store.numbers.next_number()

    def reset_to_defaults(self) -> None:
        """Wipe the store, re-run the bootstrap and reload every collection."""
        self._write("reset", (), self.store.reset)
        self.load()
