from pydantic import BaseModel, ConfigDict
from typing import Optional, Literal


BudgetType = Literal["expenses", "investments"]


class Budget(BaseModel):
    """
    A budget line. code is the primary key and is chosen by the caller,
    so adding an existing code is rejected by the store.
    """
    code: int
    type: BudgetType
    name: Optional[str] = None
    account_name: Optional[str] = None


class BudgetPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Optional[BudgetType] = None
    name: Optional[str] = None
    account_name: Optional[str] = None
