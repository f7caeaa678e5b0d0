"""
Request-scoped shopper and cart types.

Built from already validated request data; nothing here re-checks types.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Tuple


def _decimal(value):
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class UserProfile:
    user_id: str
    user_tier: str
    country: str
    lifetime_spend: Decimal = Decimal("0")
    orders_placed: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "UserProfile":
        return cls(
            user_id=data["userId"],
            user_tier=data["userTier"],
            country=data["country"],
            lifetime_spend=_decimal(data.get("lifetimeSpend", 0)),
            orders_placed=int(data.get("ordersPlaced", 0)),
        )


@dataclass(frozen=True)
class CartItem:
    product_id: str
    category: str
    unit_price: Decimal
    quantity: int

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        return cls(
            product_id=data["productId"],
            category=data["category"],
            unit_price=_decimal(data["unitPrice"]),
            quantity=int(data["quantity"]),
        )


@dataclass(frozen=True)
class Cart:
    items: Tuple[CartItem, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "Cart":
        return cls(items=tuple(CartItem.from_dict(i) for i in data.get("items") or []))
