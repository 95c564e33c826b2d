from .supplier import Supplier, SupplierCreate, SupplierPatch
from .product import Product, ProductCreate, ProductPatch, Currency
from .company import Company, CompanyCreate, CompanyPatch
from .budget import Budget, BudgetPatch, BudgetType
from .purchase_order import (
    OrderItem, OrderTotals, OrderFilter, OrderStatus,
    PurchaseOrder, PurchaseOrderCreate, PurchaseOrderPatch,
)

__all__ = [
    "Supplier", "SupplierCreate", "SupplierPatch",
    "Product", "ProductCreate", "ProductPatch", "Currency",
    "Company", "CompanyCreate", "CompanyPatch",
    "Budget", "BudgetPatch", "BudgetType",
    "OrderItem", "OrderTotals", "OrderFilter", "OrderStatus",
    "PurchaseOrder", "PurchaseOrderCreate", "PurchaseOrderPatch",
]
