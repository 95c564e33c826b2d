from pydantic import BaseModel, ConfigDict
from typing import Optional


class SupplierCreate(BaseModel):
    """Supplier fields supplied by the caller; the store assigns the id."""
    name: str
    contact_person: str = ""
    phone: str = ""
    email: Optional[str] = None


class Supplier(SupplierCreate):
    """
    A supplier in the catalog.
    id is numeric and assigned by the store as max(existing ids) + 1.
    """
    id: int


class SupplierPatch(BaseModel):
    """Partial update for a supplier. Unset fields are left untouched."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
