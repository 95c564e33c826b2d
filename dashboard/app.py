"""
Purchase-order API: FastAPI backend for the order screens.

A thin JSON layer over SyncFacade: every write goes through the facade so
the response reflects a freshly refetched view. Pages, forms and printing
live in the front-end and only talk to these routes.

Endpoints
---------
  GET    /api/health                    → liveness probe + backend location
  GET    /api/stats                     → dashboard figures
  GET    /api/order-number              → proposed next order number
  POST   /api/totals                    → subtotal / VAT / total for line items

  GET    /api/suppliers                 → list          POST   → add
  GET    /api/suppliers/{id}            → one           PATCH  → update   DELETE → delete
  (same shape for /api/products, /api/companies, /api/budgets/{code})

  GET    /api/orders                    → list (?search= &status= &supplier_id= &date_from= &date_to=)
  POST   /api/orders                    → create (optional "order_number" for manual numbering)
  GET    /api/orders/{id}               PATCH  /api/orders/{id}   DELETE /api/orders/{id}
  POST   /api/orders/bulk-delete        → delete several orders in one batch

Errors
------
  404 not found · 409 duplicate budget code / order number
  400 malformed input · 503 storage failure
  A write that committed but could not refresh the view returns its normal
  body with the header "X-View-Stale: true".
"""
import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from bootstrap import ensure_initial_data
from config import Config
from models.budget import Budget, BudgetPatch
from models.company import CompanyCreate, CompanyPatch
from models.product import ProductCreate, ProductPatch
from models.purchase_order import (
    OrderFilter,
    OrderItem,
    OrderStatus,
    PurchaseOrderCreate,
    PurchaseOrderPatch,
)
from models.supplier import SupplierCreate, SupplierPatch
from store.errors import (
    DuplicateBudgetCode,
    DuplicateOrderNumber,
    NotFound,
    PersistenceFailure,
    StaleViewError,
)
from store.factory import open_store
from store.sync import SyncFacade

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Facade (lazy, opened and seeded on first request)
# ---------------------------------------------------------------------------
_facade: Optional[SyncFacade] = None


def get_facade() -> SyncFacade:
    global _facade
    if _facade is None:
        config = Config()
        facade = SyncFacade(
            open_store(config),
            bootstrap=lambda s: ensure_initial_data(s, config),
        )
        facade.load()
        _facade = facade
    return _facade


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(title="Purchase Orders", docs_url=None, redoc_url=None)


@app.exception_handler(NotFound)
def _not_found(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(DuplicateBudgetCode)
@app.exception_handler(DuplicateOrderNumber)
def _duplicate(request: Request, exc: Exception):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(PersistenceFailure)
def _persistence_failure(request: Request, exc: PersistenceFailure):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(StaleViewError)
def _stale_view(request: Request, exc: StaleViewError):
    # The write committed, so answer with the route's own success status
    route = request.scope.get("route")
    return JSONResponse(
        status_code=getattr(route, "status_code", None) or 200,
        content=jsonable_encoder(exc.result),
        headers={"X-View-Stale": "true"},
    )


@app.exception_handler(ValueError)
def _bad_value(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


# ── Request models ───────────────────────────────────────────────────────────

class NewOrder(PurchaseOrderCreate):
    order_number: Optional[str] = None   # manual number; validated for uniqueness


class TotalsRequest(BaseModel):
    items: List[OrderItem]
    add_vat: bool = False


class BulkDelete(BaseModel):
    ids: List[str]


def _found(record, entity: str, key):
    if record is None:
        raise HTTPException(status_code=404, detail=f"{entity} not found: {key}")
    return record


def _deleted(found: bool, entity: str, key) -> dict:
    if not found:
        raise HTTPException(status_code=404, detail=f"{entity} not found: {key}")
    return {"deleted": True}


# ── Routes: utility ──────────────────────────────────────────────────────────

@app.get("/api/health")
def health(facade: SyncFacade = Depends(get_facade)):
    return {"status": "ok", **facade.store.backend.describe()}


@app.get("/api/stats")
def stats(facade: SyncFacade = Depends(get_facade)):
    return facade.store.order_stats()


@app.get("/api/order-number")
def order_number(facade: SyncFacade = Depends(get_facade)):
    return {"order_number": facade.propose_order_number()}


@app.post("/api/totals")
def totals(body: TotalsRequest, facade: SyncFacade = Depends(get_facade)):
    return facade.calculate_totals(body.items, body.add_vat)


# ── Routes: suppliers ────────────────────────────────────────────────────────

@app.get("/api/suppliers")
def list_suppliers(facade: SyncFacade = Depends(get_facade)):
    return facade.suppliers


@app.post("/api/suppliers", status_code=201)
def add_supplier(body: SupplierCreate, facade: SyncFacade = Depends(get_facade)):
    return facade.add_supplier(body)


@app.get("/api/suppliers/{supplier_id}")
def get_supplier(supplier_id: int, facade: SyncFacade = Depends(get_facade)):
    return _found(facade.get_supplier(supplier_id), "Supplier", supplier_id)


@app.patch("/api/suppliers/{supplier_id}")
def update_supplier(supplier_id: int, body: SupplierPatch, facade: SyncFacade = Depends(get_facade)):
    return facade.update_supplier(supplier_id, body)


@app.delete("/api/suppliers/{supplier_id}")
def delete_supplier(supplier_id: int, facade: SyncFacade = Depends(get_facade)):
    return _deleted(facade.delete_supplier(supplier_id), "Supplier", supplier_id)


# ── Routes: products ─────────────────────────────────────────────────────────

@app.get("/api/products")
def list_products(
    supplier_id: Optional[int] = Query(default=None),
    facade: SyncFacade = Depends(get_facade),
):
    if supplier_id is not None:
        return [p for p in facade.products if p.supplier_id == supplier_id]
    return facade.products


@app.post("/api/products", status_code=201)
def add_product(body: ProductCreate, facade: SyncFacade = Depends(get_facade)):
    return facade.add_product(body)


@app.get("/api/products/{product_id}")
def get_product(product_id: str, facade: SyncFacade = Depends(get_facade)):
    return _found(facade.get_product(product_id), "Product", product_id)


@app.patch("/api/products/{product_id}")
def update_product(product_id: str, body: ProductPatch, facade: SyncFacade = Depends(get_facade)):
    return facade.update_product(product_id, body)


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, facade: SyncFacade = Depends(get_facade)):
    return _deleted(facade.delete_product(product_id), "Product", product_id)


# ── Routes: companies ────────────────────────────────────────────────────────

@app.get("/api/companies")
def list_companies(facade: SyncFacade = Depends(get_facade)):
    return facade.companies


@app.post("/api/companies", status_code=201)
def add_company(body: CompanyCreate, facade: SyncFacade = Depends(get_facade)):
    return facade.add_company(body)


@app.get("/api/companies/{company_id}")
def get_company(company_id: str, facade: SyncFacade = Depends(get_facade)):
    return _found(facade.get_company(company_id), "Company", company_id)


@app.patch("/api/companies/{company_id}")
def update_company(company_id: str, body: CompanyPatch, facade: SyncFacade = Depends(get_facade)):
    return facade.update_company(company_id, body)


@app.delete("/api/companies/{company_id}")
def delete_company(company_id: str, facade: SyncFacade = Depends(get_facade)):
    return _deleted(facade.delete_company(company_id), "Company", company_id)


# ── Routes: budgets ──────────────────────────────────────────────────────────

@app.get("/api/budgets")
def list_budgets(
    budget_type: Optional[str] = Query(default=None, alias="type"),
    facade: SyncFacade = Depends(get_facade),
):
    if budget_type:
        return [b for b in facade.budgets if b.type == budget_type]
    return facade.budgets


@app.post("/api/budgets", status_code=201)
def add_budget(body: Budget, facade: SyncFacade = Depends(get_facade)):
    return facade.add_budget(body)


@app.get("/api/budgets/{code}")
def get_budget(code: int, facade: SyncFacade = Depends(get_facade)):
    return _found(facade.get_budget(code), "Budget", code)


@app.patch("/api/budgets/{code}")
def update_budget(code: int, body: BudgetPatch, facade: SyncFacade = Depends(get_facade)):
    return facade.update_budget(code, body)


@app.delete("/api/budgets/{code}")
def delete_budget(code: int, facade: SyncFacade = Depends(get_facade)):
    return _deleted(facade.delete_budget(code), "Budget", code)


# ── Routes: orders ───────────────────────────────────────────────────────────

@app.get("/api/orders")
def list_orders(
    search: Optional[str] = Query(default=None),
    status: Optional[OrderStatus] = Query(default=None),
    supplier_id: Optional[int] = Query(default=None),
    date_from: Optional[str] = Query(default=None),
    date_to: Optional[str] = Query(default=None),
    facade: SyncFacade = Depends(get_facade),
):
    if not any(v is not None for v in (search, status, supplier_id, date_from, date_to)):
        return facade.orders
    return facade.search_orders(OrderFilter(
        search=search or None,
        status=status,
        supplier_id=supplier_id,
        date_from=date_from or None,
        date_to=date_to or None,
    ))


@app.post("/api/orders", status_code=201)
def create_order(body: NewOrder, facade: SyncFacade = Depends(get_facade)):
    data = PurchaseOrderCreate.model_validate(body.model_dump(exclude={"order_number"}))
    return facade.create_order(data, order_number=body.order_number)


@app.post("/api/orders/bulk-delete")
def bulk_delete_orders(body: BulkDelete, facade: SyncFacade = Depends(get_facade)):
    return facade.delete_orders(body.ids)


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, facade: SyncFacade = Depends(get_facade)):
    return _found(facade.get_order(order_id), "Order", order_id)


@app.patch("/api/orders/{order_id}")
def update_order(order_id: str, body: PurchaseOrderPatch, facade: SyncFacade = Depends(get_facade)):
    return facade.update_order(order_id, body)


@app.delete("/api/orders/{order_id}")
def delete_order(order_id: str, facade: SyncFacade = Depends(get_facade)):
    return _deleted(facade.delete_order(order_id), "Order", order_id)
