from pydantic import BaseModel, ConfigDict
from typing import Optional, Literal


Currency = Literal["ILS", "USD", "EUR"]

CURRENCY_SYMBOLS: dict[str, str] = {
    "ILS": "₪",
    "USD": "$",
    "EUR": "€",
}


class ProductCreate(BaseModel):
    name: str
    sku: str = ""
    description: str = ""
    currency: Currency = "ILS"
    supplier_id: int                   # Not enforced: supplier deletes do not cascade
    price: float


class Product(ProductCreate):
    """A catalog product. id is time-based, e.g. "prod-1718000000000"."""
    id: str


class ProductPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    sku: Optional[str] = None
    description: Optional[str] = None
    currency: Optional[Currency] = None
    supplier_id: Optional[int] = None
    price: Optional[float] = None
