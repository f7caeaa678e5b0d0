"""
Best-coupon selection.

Every coupon in the catalog goes through the same pipeline: active window,
per-user usage limit, eligibility rules, discount amount, and a positivity
check. Each step either keeps the coupon going or turns it into a ``Skipped``
result. Survivors become ``Candidate`` objects and are ranked by discount
(highest first), then end date (soonest first), then code.

One bad coupon row never fails the whole request: data errors while
evaluating a coupon are logged and the coupon is skipped. Failures of the
usage lookup itself are not data errors and propagate to the caller.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Union

from django.utils import timezone

from .cart import cart_value
from .discounts import compute_discount
from .domain import Cart, UserProfile
from .eligibility import EligibilityRules, check_eligibility

logger = logging.getLogger(__name__)

UsageLookup = Callable[[str, str], Awaitable[int]]

# Errors that mean "this coupon row is malformed", as opposed to a failing collaborator.
MALFORMED_COUPON_ERRORS = (TypeError, ValueError, KeyError, AttributeError, ArithmeticError)

USAGE_LIMIT_REACHED = "Usage limit reached"


@dataclass(frozen=True)
class Candidate:
    coupon: Any
    discount: Decimal


@dataclass(frozen=True)
class Skipped:
    code: str
    reason: str


@dataclass(frozen=True)
class NoWinner:
    discount: Decimal = Decimal("0")


NO_WINNER = NoWinner()


def is_active(coupon, now) -> bool:
    """Both ends of the window are inclusive."""
    return coupon.startDate <= now <= coupon.endDate


def _code_of(coupon) -> str:
    return str(getattr(coupon, "code", "<unknown>"))


def _malformed(coupon, exc: Exception) -> Skipped:
    logger.exception("Error evaluating coupon %s", _code_of(coupon))
    return Skipped(_code_of(coupon), f"Evaluation error: {exc}")


async def evaluate_coupon(
    coupon,
    user: UserProfile,
    cart: Cart,
    usage_lookup: UsageLookup,
    now,
    cart_total: Optional[Decimal] = None,
) -> Union[Candidate, Skipped]:
    """Run one coupon through the pipeline and return a candidate or the reason it was skipped."""
    code = _code_of(coupon)

    try:
        if not is_active(coupon, now):
            return Skipped(code, "Coupon not active")
        limit = coupon.usageLimitPerUser
        if limit is not None:
            limit = int(limit)
    except MALFORMED_COUPON_ERRORS as exc:
        return _malformed(coupon, exc)

    # usage limit per user; absent limit means unlimited
    if limit:
        used = await usage_lookup(user.user_id, coupon.code)
        if used >= limit:
            return Skipped(code, USAGE_LIMIT_REACHED)

    try:
        result = check_eligibility(EligibilityRules.from_dict(coupon.eligibility), user, cart)
        if not result.ok:
            return Skipped(code, result.reason)

        if cart_total is None:
            cart_total = cart_value(cart)
        discount = compute_discount(coupon, cart_total)
    except MALFORMED_COUPON_ERRORS as exc:
        return _malformed(coupon, exc)

    if not discount > 0:
        return Skipped(code, "No discount for this cart")

    return Candidate(coupon=coupon, discount=discount)


def rank_candidates(candidates: Iterable[Candidate]) -> List[Candidate]:
    # highest discount, then earliest end date, then smaller code
    return sorted(
        candidates,
        key=lambda c: (-c.discount, c.coupon.endDate, c.coupon.code),
    )


async def select_best(
    coupons: Iterable,
    user: UserProfile,
    cart: Cart,
    usage_lookup: UsageLookup,
    now=None,
) -> Union[Candidate, NoWinner]:
    """
    Pick the best coupon for ``user`` and ``cart``.

    ``now`` is read once and reused for every coupon in the pass. Returns the
    winning ``Candidate`` or ``NO_WINNER`` when nothing applies.
    """
    if now is None:
        now = timezone.now()
    cart_total = cart_value(cart)

    candidates = []
    for coupon in coupons:
        outcome = await evaluate_coupon(coupon, user, cart, usage_lookup, now, cart_total)
        if isinstance(outcome, Skipped):
            logger.debug("Skipping coupon %s: %s", outcome.code, outcome.reason)
            continue
        candidates.append(outcome)

    if not candidates:
        logger.info("No coupon applies for user %s", user.user_id)
        return NO_WINNER

    best = rank_candidates(candidates)[0]
    logger.info(
        "Best coupon for user %s is %s (discount %s, %d candidates)",
        user.user_id,
        best.coupon.code,
        best.discount,
        len(candidates),
    )
    return best


async def find_best_coupon(store, user: UserProfile, cart: Cart, now=None):
    coupons = await store.get_all_coupons()
    return await select_best(coupons, user, cart, store.get_usage_count, now=now)
