from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List


class CompanyCreate(BaseModel):
    """A client company that orders are invoiced to."""
    name: str
    registration_number: str = ""
    payment_terms: str = ""            # e.g. "שוטף + 30"
    warranty_options: List[str] = Field(default_factory=list)
    location: Optional[str] = None


class Company(CompanyCreate):
    id: str


class CompanyPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    registration_number: Optional[str] = None
    payment_terms: Optional[str] = None
    warranty_options: Optional[List[str]] = None
    location: Optional[str] = None
