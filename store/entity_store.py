"""
Entity store for the purchase-order system.

Owns the five collections (suppliers, products, companies, budgets, orders)
and the per-year order counter, persisting everything through an injected
StorageBackend. Callers always receive fresh model instances built from the
stored documents, never references into backend state.

Id assignment
-------------
  suppliers   max(existing id) + 1, or 1 for an empty collection
  products    "prod-<millis>"   (bumped until unused)
  companies   "comp-<millis>"   (bumped until unused)
  budgets     caller-supplied code; duplicates raise DuplicateBudgetCode
  orders      "order-<order_number>", order_number from OrderNumberGenerator
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, TypeVar, get_args

from pydantic import BaseModel, ValidationError

from models.budget import Budget, BudgetPatch
from models.company import Company, CompanyCreate, CompanyPatch
from models.product import Product, ProductCreate, ProductPatch
from models.purchase_order import (
    ALL_ORDER_STATUSES,
    OrderFilter,
    OrderItem,
    PurchaseOrder,
    PurchaseOrderCreate,
    PurchaseOrderPatch,
)
from models.supplier import Supplier, SupplierCreate, SupplierPatch

from .backends import COLLECTIONS, StorageBackend
from .calculator import calculate_totals
from .errors import DuplicateBudgetCode, NotFound, PersistenceFailure
from .order_numbers import COUNTER_NAME, OrderNumberGenerator

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

RECENT_ORDERS = 5


def _nullable(model: type[BaseModel], name: str) -> bool:
    field = model.model_fields.get(name)
    return field is None or type(None) in get_args(field.annotation)


class EntityStore:
    """
    Usage:
        store = EntityStore(LocalStorageBackend(path))
        supplier = store.add_supplier(SupplierCreate(name="Acme"))
    """

    def __init__(
        self,
        backend: StorageBackend,
        clock: Optional[Callable[[], datetime]] = None,
        order_number_floor: int = 0,
    ) -> None:
        self.backend = backend
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.numbers = OrderNumberGenerator(
            backend,
            existing_numbers=self.order_numbers,
            clock=self._clock,
            floor=order_number_floor,
        )

    # ------------------------------------------------------------------
    # Generic document helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(model: type[M], collection: str, doc: dict) -> M:
        try:
            return model.model_validate(doc)
        except ValidationError as exc:
            raise PersistenceFailure(f"Stored {collection} record is invalid: {exc}") from exc

    def _list(self, collection: str, model: type[M]) -> list[M]:
        docs = self.backend.list_documents(collection)
        logger.debug("Read %d %s", len(docs), collection)
        return [self._validate(model, collection, d) for d in docs]

    def _get(self, collection: str, model: type[M], key: str) -> Optional[M]:
        doc = self.backend.get_document(collection, key)
        return self._validate(model, collection, doc) if doc is not None else None

    def _put(self, collection: str, key: str, record: BaseModel) -> None:
        self.backend.put_document(collection, key, record.model_dump(mode="json"))

    def _merge(
        self,
        collection: str,
        model: type[M],
        key: str,
        patch: BaseModel,
        extra: Optional[Callable[[M, dict], dict]] = None,
    ) -> Optional[M]:
        """
        Shallow-merge the fields the caller set on patch into the stored record.
        An explicit None for a field the record cannot hold empty is ignored.
        Returns the updated record, or None when key does not exist.
        """
        current = self._get(collection, model, key)
        if current is None:
            logger.info("Update skipped, %s/%s not found", collection, key)
            return None
        updates = {
            name: value for name, value in patch.model_dump(exclude_unset=True).items()
            if value is not None or _nullable(model, name)
        }
        if extra is not None:
            updates.update(extra(current, updates))
        merged = model.model_validate({**current.model_dump(), **updates})
        self._put(collection, key, merged)
        logger.info("Updated %s/%s  fields=%s", collection, key, sorted(updates))
        return merged

    def _delete(self, collection: str, key: str) -> bool:
        found = self.backend.delete_document(collection, key)
        if found:
            logger.info("Deleted %s/%s", collection, key)
        else:
            logger.info("Delete skipped, %s/%s not found", collection, key)
        return found

    def _time_id(self, collection: str, prefix: str) -> str:
        millis = int(self._clock().timestamp() * 1000)
        while self.backend.get_document(collection, f"{prefix}-{millis}") is not None:
            millis += 1
        return f"{prefix}-{millis}"

    def _now(self) -> str:
        return self._clock().isoformat()

    def _today(self) -> str:
        return self._clock().date().isoformat()

    # ------------------------------------------------------------------
    # Suppliers
    # ------------------------------------------------------------------

    def list_suppliers(self) -> list[Supplier]:
        return self._list("suppliers", Supplier)

    def get_supplier(self, supplier_id: int) -> Optional[Supplier]:
        return self._get("suppliers", Supplier, str(supplier_id))

    def add_supplier(self, data: SupplierCreate) -> Supplier:
        new_id = max((s.id for s in self.list_suppliers()), default=0) + 1
        supplier = Supplier(id=new_id, **data.model_dump())
        self._put("suppliers", str(new_id), supplier)
        logger.info("Added supplier %d: %s", new_id, supplier.name)
        return supplier

    def update_supplier(self, supplier_id: int, patch: SupplierPatch) -> Optional[Supplier]:
        return self._merge("suppliers", Supplier, str(supplier_id), patch)

    def delete_supplier(self, supplier_id: int) -> bool:
        # Products keep their supplier_id and orders keep their copied
        # supplier details; nothing cascades.
        return self._delete("suppliers", str(supplier_id))

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def list_products(self) -> list[Product]:
        return self._list("products", Product)

    def get_product(self, product_id: str) -> Optional[Product]:
        return self._get("products", Product, product_id)

    def products_by_supplier(self, supplier_id: int) -> list[Product]:
        return [p for p in self.list_products() if p.supplier_id == supplier_id]

    def add_product(self, data: ProductCreate) -> Product:
        product = Product(id=self._time_id("products", "prod"), **data.model_dump())
        self._put("products", product.id, product)
        logger.info("Added product %s: %s", product.id, product.name)
        return product

    def update_product(self, product_id: str, patch: ProductPatch) -> Optional[Product]:
        return self._merge("products", Product, product_id, patch)

    def delete_product(self, product_id: str) -> bool:
        return self._delete("products", product_id)

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------

    def list_companies(self) -> list[Company]:
        return self._list("companies", Company)

    def get_company(self, company_id: str) -> Optional[Company]:
        return self._get("companies", Company, company_id)

    def add_company(self, data: CompanyCreate) -> Company:
        company = Company(id=self._time_id("companies", "comp"), **data.model_dump())
        self._put("companies", company.id, company)
        logger.info("Added company %s: %s", company.id, company.name)
        return company

    def update_company(self, company_id: str, patch: CompanyPatch) -> Optional[Company]:
        return self._merge("companies", Company, company_id, patch)

    def delete_company(self, company_id: str) -> bool:
        return self._delete("companies", company_id)

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def list_budgets(self) -> list[Budget]:
        return self._list("budgets", Budget)

    def get_budget(self, code: int) -> Optional[Budget]:
        return self._get("budgets", Budget, str(code))

    def budgets_by_type(self, budget_type: str) -> list[Budget]:
        return [b for b in self.list_budgets() if b.type == budget_type]

    def add_budget(self, budget: Budget) -> Budget:
        if self.backend.get_document("budgets", str(budget.code)) is not None:
            raise DuplicateBudgetCode(budget.code)
        self._put("budgets", str(budget.code), budget)
        logger.info("Added budget %d (%s)", budget.code, budget.type)
        return budget.model_copy()

    def update_budget(self, code: int, patch: BudgetPatch) -> Optional[Budget]:
        return self._merge("budgets", Budget, str(code), patch)

    def delete_budget(self, code: int) -> bool:
        return self._delete("budgets", str(code))

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def list_orders(self) -> list[PurchaseOrder]:
        """All orders, newest date first."""
        orders = self._list("orders", PurchaseOrder)
        return sorted(orders, key=lambda o: o.date, reverse=True)

    def get_order(self, order_id: str) -> Optional[PurchaseOrder]:
        return self._get("orders", PurchaseOrder, order_id)

    def order_numbers(self) -> list[str]:
        return [d.get("order_number", "") for d in self.backend.list_documents("orders")]

    def order_counter(self) -> dict[int, int]:
        return {int(k): v for k, v in self.backend.read_counter(COUNTER_NAME).items()}

    def orders_by_supplier(self, supplier_id: int) -> list[PurchaseOrder]:
        return [o for o in self.list_orders() if o.supplier_id == supplier_id]

    def search_orders(self, flt: OrderFilter) -> list[PurchaseOrder]:
        """Filter orders the way the orders table does. All criteria are ANDed."""
        needle = (flt.search or "").strip().lower()
        result = []
        for order in self.list_orders():
            if needle and needle not in order.order_number.lower() \
                    and needle not in order.supplier_name.lower():
                continue
            if flt.status and order.status != flt.status:
                continue
            if flt.supplier_id is not None and order.supplier_id != flt.supplier_id:
                continue
            if flt.date_from and order.date[:10] < flt.date_from:
                continue
            if flt.date_to and order.date[:10] > flt.date_to:
                continue
            result.append(order)
        return result

    def draft_order(
        self,
        supplier_id: int,
        company_id: str,
        budget_code: int,
        items: Iterable[OrderItem] = (),
        **fields,
    ) -> PurchaseOrderCreate:
        """
        Build order data from catalog references, copying the supplier,
        company and budget details the order must keep. Payment terms,
        warranty and location default from the company.
        """
        supplier = self.get_supplier(supplier_id)
        if supplier is None:
            raise NotFound("Supplier", supplier_id)
        company = self.get_company(company_id)
        if company is None:
            raise NotFound("Company", company_id)
        budget = self.get_budget(budget_code)
        if budget is None:
            raise NotFound("Budget", budget_code)

        defaults = {
            "date": self._today(),
            "payment_terms": company.payment_terms,
            "warranty_terms": company.warranty_options[0] if company.warranty_options else "",
            "location": company.location,
        }
        return PurchaseOrderCreate(
            supplier_id=supplier.id,
            supplier_name=supplier.name,
            supplier_contact=supplier.contact_person,
            supplier_phone=supplier.phone,
            company_id=company.id,
            company_name=company.name,
            budget_code=budget.code,
            budget_type=budget.type,
            items=list(items),
            **{**defaults, **fields},
        )

    def create_order(
        self,
        data: PurchaseOrderCreate,
        order_number: Optional[str] = None,
    ) -> PurchaseOrder:
        """
        Persist a new order.

        An order without a date is dated from the store clock. Without
        order_number the next counter value is used. A caller-supplied
        number is validated first; DuplicateOrderNumber or ValueError leave
        the orders collection untouched.
        """
        if order_number is not None:
            number = self.numbers.validate_manual(order_number)
        else:
            number = self.numbers.next_number()

        now = self._now()
        totals = calculate_totals(data.items, data.add_vat)
        order = PurchaseOrder(
            **data.model_dump(exclude={"date"}),
            **totals.model_dump(),
            date=data.date or self._today(),
            id=f"order-{number}",
            order_number=number,
            created_at=now,
            updated_at=now,
        )
        self._put("orders", order.id, order)
        logger.info(
            "Created order %s  supplier=%s  total=%.2f  status=%s",
            number, order.supplier_name, order.total, order.status,
        )
        return order

    def update_order(self, order_id: str, patch: PurchaseOrderPatch) -> Optional[PurchaseOrder]:
        """Merge patch into the order, stamp updated_at and keep totals in step."""

        def _derived(current: PurchaseOrder, updates: dict) -> dict:
            derived = {"updated_at": self._now()}
            if "items" in updates or "add_vat" in updates:
                items = patch.items if "items" in updates else current.items
                add_vat = patch.add_vat if "add_vat" in updates else current.add_vat
                derived.update(calculate_totals(items, add_vat).model_dump())
            return derived

        return self._merge("orders", PurchaseOrder, order_id, patch, extra=_derived)

    def delete_order(self, order_id: str) -> bool:
        return self._delete("orders", order_id)

    def delete_orders(self, order_ids: Iterable[str]) -> dict[str, bool]:
        """
        Delete several orders in one batch. Missing ids are reported as False
        rather than raised; either every found order is deleted or none is.
        """
        wanted = list(order_ids)
        existing = {d["id"] for d in self.backend.list_documents("orders")}
        found = [oid for oid in wanted if oid in existing]
        if found:
            self.backend.write_batch(deletes=[("orders", oid) for oid in found])
            logger.info("Deleted %d orders in batch", len(found))
        return {oid: oid in existing for oid in wanted}

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def order_stats(self) -> dict:
        """Dashboard figures: counts by status plus catalog sizes."""
        orders = self.list_orders()
        by_status = {status: 0 for status in ALL_ORDER_STATUSES}
        for order in orders:
            by_status[order.status] += 1
        return {
            "total_orders": len(orders),
            "by_status": by_status,
            "suppliers": len(self.backend.list_documents("suppliers")),
            "products": len(self.backend.list_documents("products")),
            "companies": len(self.backend.list_documents("companies")),
            "recent_orders": [o.order_number for o in orders[:RECENT_ORDERS]],
        }

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def is_empty(self) -> bool:
        return not any(self.backend.list_documents(name) for name in COLLECTIONS)

    def import_records(
        self,
        records: dict[str, list[dict]],
        order_counter: Optional[dict] = None,
    ) -> int:
        """
        Write a full set of records in one batch (used for seeding).

        Every record is validated against its model before anything is
        written. Returns the number of documents written.
        """
        models: dict[str, tuple[type[BaseModel], Callable[[BaseModel], str]]] = {
            "suppliers": (Supplier, lambda r: str(r.id)),
            "products":  (Product, lambda r: r.id),
            "companies": (Company, lambda r: r.id),
            "budgets":   (Budget, lambda r: str(r.code)),
            "orders":    (PurchaseOrder, lambda r: r.id),
        }
        puts = []
        for collection, docs in records.items():
            if collection not in models:
                raise ValueError(f"Unknown collection {collection!r}")
            model, key_of = models[collection]
            for doc in docs:
                record = model.model_validate(doc)
                puts.append((collection, key_of(record), record.model_dump(mode="json")))

        counters = None
        if order_counter is not None:
            counters = {COUNTER_NAME: {str(k): int(v) for k, v in order_counter.items()}}
        self.backend.write_batch(puts=puts, counters=counters)
        logger.info("Imported %d records", len(puts))
        return len(puts)

    def reset(self) -> None:
        """Remove every record and the order counter."""
        self.backend.clear()
