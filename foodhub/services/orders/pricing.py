"""
Price Trust Policy

Order lines carry the unit price the customer saw in their cart. Whether
that price is accepted as-is is decided here and nowhere else, so the policy
can be tightened without touching the order writer.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Mapping, Sequence

from foodhub.core.config import PricePolicyMode
from foodhub.core.exceptions import ValidationError
from foodhub.models import MenuItem
from foodhub.schemas import CartItem


class PricePolicy(ABC):
    """Validates submitted cart prices before an order is written."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def check(
        self,
        items: Sequence[CartItem],
        menu_items: Mapping[str, MenuItem],
        declared_total: Decimal,
    ) -> None:
        """Raise ``ValidationError`` to reject the order."""
        pass


class ClientPricePolicy(PricePolicy):
    """
    Accept the cart snapshot as submitted.

    Protects customers from menu price changes between adding to cart and
    checkout, at the cost of trusting client-submitted prices and totals.
    """

    @property
    def name(self) -> str:
        return "client"

    def check(self, items, menu_items, declared_total) -> None:
        return None


class MenuPricePolicy(PricePolicy):
    """Require every line price to match the current menu price."""

    @property
    def name(self) -> str:
        return "menu"

    def check(self, items, menu_items, declared_total) -> None:
        mismatched = [
            item.id
            for item in items
            if Decimal(menu_items[item.id].price) != item.price
        ]
        if mismatched:
            raise ValidationError(
                "Menu prices have changed for: " + ", ".join(sorted(set(mismatched)))
            )

        subtotal = sum((item.line_total for item in items), Decimal("0"))
        if declared_total < subtotal:
            raise ValidationError("Order total is lower than the sum of its items")


def build_price_policy(mode: PricePolicyMode) -> PricePolicy:
    if mode == PricePolicyMode.MENU:
        return MenuPricePolicy()
    return ClientPricePolicy()
