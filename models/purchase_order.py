from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Literal

from .budget import BudgetType


OrderStatus = Literal["draft", "sent", "received", "cancelled"]
ALL_ORDER_STATUSES = ("draft", "sent", "received", "cancelled")

# Hebrew labels shown on printed orders and the orders table
STATUS_LABELS: dict[str, str] = {
    "draft":     "טיוטה",
    "sent":      "נשלחה",
    "received":  "התקבלה",
    "cancelled": "בוטלה",
}


class OrderItem(BaseModel):
    """
    A single line on a Purchase Order.
    Product fields and unit_price are snapshots taken when the line was
    added or edited; they do not follow later catalog changes.
    """
    id: str
    product_id: str = ""
    product_name: str = ""
    description: str = ""
    sku: str = ""
    quantity: int = 1
    unit_price: float = 0.0
    total_price: float = 0.0          # quantity * unit_price


class OrderTotals(BaseModel):
    subtotal: float
    vat_rate: float
    vat_amount: float
    total: float


class PurchaseOrderCreate(BaseModel):
    """
    Everything a caller provides when creating an order.
    Supplier, company and budget details are denormalised copies so that
    later catalog edits or deletes never alter a historical order.
    Totals are computed by the store from items and add_vat.
    """
    date: Optional[str] = None        # YYYY-MM-DD; the store fills in its clock date
    supplier_id: int
    supplier_name: str = ""
    supplier_contact: str = ""
    supplier_phone: str = ""
    company_id: str
    company_name: str = ""
    budget_code: int
    budget_type: BudgetType
    status: Literal["draft", "sent"] = "draft"
    items: List[OrderItem] = Field(default_factory=list)
    add_vat: bool = False             # True: VAT is added on top of the subtotal
    payment_terms: str = ""
    warranty_terms: str = ""
    for_description: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class PurchaseOrder(BaseModel):
    """
    A stored Purchase Order.
    order_number ("YYYY-N") is unique and never changes after creation;
    id is derived from it ("order-YYYY-N").
    """
    id: str
    order_number: str
    date: str                         # YYYY-MM-DD
    supplier_id: int
    supplier_name: str = ""
    supplier_contact: str = ""
    supplier_phone: str = ""
    company_id: str
    company_name: str = ""
    budget_code: int
    budget_type: BudgetType
    status: OrderStatus = "draft"
    items: List[OrderItem] = Field(default_factory=list)
    subtotal: float = 0.0
    vat_rate: float = 0.18
    vat_amount: float = 0.0
    total: float = 0.0
    add_vat: bool = False
    payment_terms: str = ""
    warranty_terms: str = ""
    for_description: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    created_at: str                   # ISO 8601 datetime (UTC)
    updated_at: str


class PurchaseOrderPatch(BaseModel):
    """Partial update for an order. id, order_number and timestamps are fixed."""
    model_config = ConfigDict(extra="forbid")

    date: Optional[str] = None
    supplier_id: Optional[int] = None
    supplier_name: Optional[str] = None
    supplier_contact: Optional[str] = None
    supplier_phone: Optional[str] = None
    company_id: Optional[str] = None
    company_name: Optional[str] = None
    budget_code: Optional[int] = None
    budget_type: Optional[BudgetType] = None
    status: Optional[OrderStatus] = None
    items: Optional[List[OrderItem]] = None
    add_vat: Optional[bool] = None
    payment_terms: Optional[str] = None
    warranty_terms: Optional[str] = None
    for_description: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class OrderFilter(BaseModel):
    """Filters used by the orders table. All criteria are optional and ANDed."""
    search: Optional[str] = None      # substring of order_number or supplier_name
    status: Optional[OrderStatus] = None
    supplier_id: Optional[int] = None
    date_from: Optional[str] = None   # inclusive, YYYY-MM-DD
    date_to: Optional[str] = None     # inclusive, YYYY-MM-DD
