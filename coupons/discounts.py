from decimal import ROUND_HALF_UP, Decimal

FLAT = "FLAT"
PERCENT = "PERCENT"

CENT = Decimal("0.01")


def compute_discount(coupon, cart_value: Decimal) -> Decimal:
    """
    Discount amount a coupon gives on a cart worth ``cart_value``.

    FLAT coupons return their value as-is. PERCENT coupons take a share of the
    cart and are capped by ``maxDiscountAmount`` when one is set.
    """
    discount_type = str(coupon.discountType).upper()
    value = Decimal(str(coupon.discountValue))

    if discount_type == FLAT:
        return value
    if discount_type == PERCENT:
        raw = value / Decimal(100) * cart_value
        if coupon.maxDiscountAmount is not None:
            return min(raw, Decimal(str(coupon.maxDiscountAmount)))
        return raw
    raise ValueError(f"unknown discount type {coupon.discountType!r}")


def round_money(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
