from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from coupons.domain import Cart, CartItem, UserProfile
from coupons.models import Coupon

NOW = datetime(2024, 12, 15, 12, 0, tzinfo=timezone.utc)


def make_coupon(code="SAVE10", **overrides):
    """Unsaved Coupon row; active around NOW unless dates are overridden."""
    fields = {
        "code": code,
        "description": "",
        "discountType": "FLAT",
        "discountValue": Decimal("10"),
        "maxDiscountAmount": None,
        "startDate": NOW - timedelta(days=30),
        "endDate": NOW + timedelta(days=30),
        "usageLimitPerUser": None,
        "eligibility": {},
    }
    fields.update(overrides)
    return Coupon(**fields)


def make_cart(*items):
    """Each item is (category, unit_price, quantity)."""
    return Cart(
        items=tuple(
            CartItem(product_id=f"p{i}", category=category, unit_price=Decimal(str(price)), quantity=qty)
            for i, (category, price, qty) in enumerate(items, start=1)
        )
    )


@pytest.fixture
def user():
    return UserProfile(
        user_id="u1",
        user_tier="GOLD",
        country="IN",
        lifetime_spend=Decimal("5000"),
        orders_placed=3,
    )


@pytest.fixture
def new_user():
    return UserProfile(user_id="u2", user_tier="NEW", country="IN", lifetime_spend=Decimal("0"), orders_placed=0)


@pytest.fixture
def cart():
    # 2 x 15 electronics + 1 x 10 fashion = 40
    return make_cart(("electronics", "15.00", 2), ("fashion", "10.00", 1))


@pytest.fixture
def no_usage():
    async def lookup(user_id, code):
        return 0

    return lookup
