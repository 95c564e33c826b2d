"""
Year-scoped sequential order numbers ("2025-1", "2025-2", ...).

Two ways to obtain a number:
  next_number()      mint one from the per-year counter (atomic increment in
                     the backend), raised past any suffix already in use
  propose_number()   suggest max(used suffix, counter, floor) + 1 for a form
                     field without consuming anything; whatever the user
                     finally submits goes through validate_manual()
"""
import logging
import re
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from .backends import StorageBackend
from .errors import DuplicateOrderNumber

logger = logging.getLogger(__name__)

COUNTER_NAME = "orders"
ORDER_NUMBER_RE = re.compile(r"^\s*(\d{4})-(\d+)\s*$")


def parse_order_number(number: str) -> Optional[tuple[int, int]]:
    """Return (year, sequence) or None if number is not in YYYY-N form."""
    m = ORDER_NUMBER_RE.match(number or "")
    if not m:
        return None
    return int(m.group(1)), int(m.group(2))


def format_order_number(year: int, seq: int) -> str:
    return f"{year}-{seq}"


class OrderNumberGenerator:
    """
    Usage:
        numbers = OrderNumberGenerator(backend, existing_numbers=store.order_numbers)
        number = numbers.next_number()
    """

    def __init__(
        self,
        backend: StorageBackend,
        existing_numbers: Callable[[], Iterable[str]],
        clock: Optional[Callable[[], datetime]] = None,
        floor: int = 0,
    ) -> None:
        self.backend = backend
        self._existing_numbers = existing_numbers
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.floor = floor

    def current_year(self) -> int:
        return self._clock().year

    def _used(self) -> set[tuple[int, int]]:
        used = set()
        for number in self._existing_numbers():
            parsed = parse_order_number(number)
            if parsed:
                used.add(parsed)
        return used

    # ------------------------------------------------------------------
    # Counter based
    # ------------------------------------------------------------------

    def next_number(self) -> str:
        """
        Consume and return the next number for the current year: one past the
        highest of the counter, any used suffix and the floor.
        """
        year = self.current_year()
        used = self._used()
        highest = max([seq for y, seq in used if y == year] + [self.floor])
        seq = self.backend.increment_counter(COUNTER_NAME, str(year), minimum=highest)
        logger.debug("Minted order number %s", format_order_number(year, seq))
        return format_order_number(year, seq)

    # ------------------------------------------------------------------
    # Scan based + manual override
    # ------------------------------------------------------------------

    def propose_number(self) -> str:
        """Suggest the next number for the current year without consuming it."""
        year = self.current_year()
        suffixes = [seq for y, seq in self._used() if y == year]
        counter = self.backend.read_counter(COUNTER_NAME).get(str(year), 0)
        return format_order_number(year, max(suffixes + [counter, self.floor]) + 1)

    def validate_manual(self, number: str) -> str:
        """
        Check a caller-supplied number and return it in canonical form.

        Raises ValueError for a malformed number and DuplicateOrderNumber if
        it is already in use ("2025-07" collides with "2025-7").
        """
        parsed = parse_order_number(number)
        if parsed is None:
            raise ValueError(f"Order number must look like YYYY-N, got {number!r}")
        canonical = format_order_number(*parsed)
        if parsed in self._used():
            raise DuplicateOrderNumber(canonical)
        return canonical
