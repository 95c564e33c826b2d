"""
Typed errors raised by the purchase-order store.

Presentation code catches these to decide on user messaging; the store
itself never retries and never swallows a failure.
"""
from typing import Any, Optional


class StoreError(Exception):
    """Base class for every error the store raises."""


class NotFound(StoreError):
    def __init__(self, entity: str, key: Any) -> None:
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key!r}")


class DuplicateBudgetCode(StoreError):
    def __init__(self, code: int) -> None:
        self.code = code
        super().__init__(f"Budget code {code} already exists")


class DuplicateOrderNumber(StoreError):
    def __init__(self, order_number: str) -> None:
        self.order_number = order_number
        super().__init__(f"Order number {order_number} already exists")


class PersistenceFailure(StoreError):
    """The backing storage rejected a read or a write. See __cause__."""


class StaleViewError(StoreError):
    """
    The write committed but refreshing the caller-visible collections failed.

    result holds whatever the write returned, so the caller can still act on
    it (e.g. navigate to a newly created order) while warning the user that
    the lists on screen may be out of date.
    """

    def __init__(self, operation: str, result: Any, cause: Optional[BaseException] = None) -> None:
        self.operation = operation
        self.result = result
        self.cause = cause
        super().__init__(
            f"{operation} succeeded but the local view could not be refreshed: {cause}"
        )
