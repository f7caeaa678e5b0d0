from decimal import Decimal
from typing import Set

from .domain import Cart


def cart_value(cart: Cart) -> Decimal:
    """Sum unitPrice * quantity for all items."""
    return sum((i.unit_price * i.quantity for i in cart.items), Decimal("0"))


def items_count(cart: Cart) -> int:
    return sum(i.quantity for i in cart.items)


def cart_categories(cart: Cart) -> Set[str]:
    return {i.category for i in cart.items}
