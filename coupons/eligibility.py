"""
Coupon eligibility rules.

A coupon row stores its rules as camelCase JSON; ``EligibilityRules.from_dict``
turns that into typed, independently optional fields. ``check_eligibility``
walks the rules in a fixed order and reports the first one that fails.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import FrozenSet, Optional

from .cart import cart_categories, cart_value, items_count
from .domain import Cart, UserProfile


def _money(value) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError(f"expected a number, got {value!r}")
    return Decimal(str(value))


def _count(value) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or int(value) != value:
        raise TypeError(f"expected an integer, got {value!r}")
    return int(value)


def _tags(value) -> Optional[FrozenSet[str]]:
    if value is None:
        return None
    if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
        raise TypeError(f"expected a list of strings, got {value!r}")
    return frozenset(value)


@dataclass(frozen=True)
class EligibilityRules:
    allowed_user_tiers: Optional[FrozenSet[str]] = None
    min_lifetime_spend: Optional[Decimal] = None
    min_orders_placed: Optional[int] = None
    first_order_only: bool = False
    allowed_countries: Optional[FrozenSet[str]] = None
    min_cart_value: Optional[Decimal] = None
    applicable_categories: Optional[FrozenSet[str]] = None
    excluded_categories: Optional[FrozenSet[str]] = None
    min_items_count: Optional[int] = None

    @classmethod
    def from_dict(cls, data) -> "EligibilityRules":
        """
        Parse the stored eligibility JSON.

        ``None`` and ``{}`` mean "always eligible". Anything that is not a
        mapping, or a field with the wrong shape, raises ``TypeError`` so the
        caller can treat the row as malformed.
        """
        if not data:
            return cls()
        if not isinstance(data, Mapping):
            raise TypeError(f"eligibility must be an object, got {type(data).__name__}")
        return cls(
            allowed_user_tiers=_tags(data.get("allowedUserTiers")),
            min_lifetime_spend=_money(data.get("minLifetimeSpend")),
            min_orders_placed=_count(data.get("minOrdersPlaced")),
            first_order_only=bool(data.get("firstOrderOnly", False)),
            allowed_countries=_tags(data.get("allowedCountries")),
            min_cart_value=_money(data.get("minCartValue")),
            applicable_categories=_tags(data.get("applicableCategories")),
            excluded_categories=_tags(data.get("excludedCategories")),
            min_items_count=_count(data.get("minItemsCount")),
        )


@dataclass(frozen=True)
class EligibilityResult:
    ok: bool
    reason: Optional[str] = None


ELIGIBLE = EligibilityResult(ok=True)


def _fail(reason: str) -> EligibilityResult:
    return EligibilityResult(ok=False, reason=reason)


def check_eligibility(
    rules: EligibilityRules, user: UserProfile, cart: Cart
) -> EligibilityResult:
    # user rules
    if rules.allowed_user_tiers and user.user_tier not in rules.allowed_user_tiers:
        return _fail("User tier not allowed")

    if rules.min_lifetime_spend is not None and user.lifetime_spend < rules.min_lifetime_spend:
        return _fail("Lifetime spend below required threshold")

    if rules.min_orders_placed is not None and user.orders_placed < rules.min_orders_placed:
        return _fail("Not enough past orders")

    if rules.first_order_only and user.orders_placed > 0:
        return _fail("Not a first-time buyer")

    if rules.allowed_countries and user.country not in rules.allowed_countries:
        return _fail("Country not allowed")

    # cart rules
    if rules.min_cart_value is not None and cart_value(cart) < rules.min_cart_value:
        return _fail("Cart value too low")

    if rules.applicable_categories:
        if not cart_categories(cart) & rules.applicable_categories:
            return _fail("No applicable categories in cart")

    if rules.excluded_categories:
        if cart_categories(cart) & rules.excluded_categories:
            return _fail("Cart contains excluded categories")

    if rules.min_items_count is not None and items_count(cart) < rules.min_items_count:
        return _fail("Not enough items in cart")

    return ELIGIBLE
