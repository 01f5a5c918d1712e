"""
Order Number Allocation

Display order numbers are short, non-guessable and non-monotonic: a number is
drawn at random from a small range and formatted with a fixed prefix
(``#1234``). The range is small enough that collisions happen, so the writer
inserts with a candidate and asks for a new one whenever the insert trips
the unique constraint on the display-number column, up to ``max_attempts``.
"""

import random
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError

DISPLAY_NUMBER_CONSTRAINT = "uq_orders_display_order_number"
DISPLAY_NUMBER_COLUMN = "display_order_number"


@dataclass(frozen=True)
class DisplayNumber:
    """A candidate order number and its customer-facing text."""
    number: int
    display: str

    def __str__(self) -> str:
        return self.display


class OrderNumberAllocator:
    """
    Draws candidate display numbers.

    Attributes:
        prefix: Fixed leading text (default ``#``)
        low: Smallest number drawn (inclusive)
        high: Largest number drawn (inclusive)
        max_attempts: Insert attempts the writer makes before giving up

    Example:
        >>> allocator = OrderNumberAllocator(low=1000, high=9999)
        >>> allocator.allocate().display
        '#4821'
    """

    def __init__(
        self,
        prefix: str = "#",
        low: int = 1000,
        high: int = 9999,
        max_attempts: int = 5,
        rng: Optional[random.Random] = None,
    ):
        if low > high:
            raise ValueError("low must not exceed high")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.prefix = prefix
        self.low = low
        self.high = high
        self.max_attempts = max_attempts
        # SystemRandom keeps order numbers unpredictable across processes
        self._rng = rng or random.SystemRandom()

    @property
    def capacity(self) -> int:
        """How many distinct numbers the range holds."""
        return self.high - self.low + 1

    def allocate(self) -> DisplayNumber:
        number = self._rng.randint(self.low, self.high)
        return DisplayNumber(number=number, display=f"{self.prefix}{number}")


def is_display_number_collision(exc: IntegrityError) -> bool:
    """
    Whether an integrity error was raised by the display-number unique
    constraint (as opposed to any other constraint).

    PostgreSQL drivers report the constraint name; SQLite only reports the
    offending column in the message text.
    """
    orig = getattr(exc, "orig", None)
    diag = getattr(orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None)
    if constraint_name:
        return constraint_name == DISPLAY_NUMBER_CONSTRAINT

    text = str(orig if orig is not None else exc).lower()
    if "unique" not in text and "duplicate" not in text:
        return False
    return DISPLAY_NUMBER_CONSTRAINT in text or f"orders.{DISPLAY_NUMBER_COLUMN}" in text
