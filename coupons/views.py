import logging

from asgiref.sync import async_to_sync
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from .discounts import round_money
from .domain import Cart, UserProfile
from .engine import USAGE_LIMIT_REACHED, NoWinner, Skipped, evaluate_coupon, find_best_coupon
from .exceptions import DuplicateCouponError, UsageLimitExceededError
from .serializers import (
    ApplyCouponRequestSerializer,
    BestCouponRequestSerializer,
    CouponSerializer,
    CouponUsageSerializer,
    MarkUsedRequestSerializer,
    PublicCouponSerializer,
    format_errors,
)
from .stores import get_coupon_store

logger = logging.getLogger(__name__)


def validation_error(serializer):
    return Response({"error": format_errors(serializer.errors)}, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
def health(request):
    return Response({"status": "ok"})


@api_view(['GET', 'POST'])
def coupons(request):
    if request.method == 'POST':
        return create_coupon(request)
    return list_coupons(request)


def create_coupon(request):
    serializer = CouponSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error(serializer)

    store = get_coupon_store()
    try:
        created = async_to_sync(store.insert_coupon)(serializer.validated_data)
    except DuplicateCouponError:
        return Response({"error": "Coupon code already exists"}, status=status.HTTP_409_CONFLICT)

    return Response({"coupon": PublicCouponSerializer(created).data}, status=status.HTTP_201_CREATED)


def list_coupons(request):
    store = get_coupon_store()
    rows = async_to_sync(store.get_all_coupons)()
    return Response({"coupons": PublicCouponSerializer(rows, many=True).data})


@api_view(['POST'])
def best_coupon(request):
    serializer = BestCouponRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error(serializer)

    user = UserProfile.from_dict(serializer.validated_data["user"])
    cart = Cart.from_dict(serializer.validated_data["cart"])

    result = async_to_sync(find_best_coupon)(get_coupon_store(), user, cart)

    # explicit "no winner" response rather than a missing key
    if isinstance(result, NoWinner):
        return Response({"bestCoupon": None, "discount": 0})

    return Response({
        "bestCoupon": PublicCouponSerializer(result.coupon).data,
        "discount": round_money(result.discount),
    })


@api_view(['POST'])
def mark_coupon_used(request, code):
    """
    Demo helper: bump the usage count of a coupon for a user.
    Body: { "userId": "u1" }
    """
    serializer = MarkUsedRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({"error": "userId is required in the body"}, status=status.HTTP_400_BAD_REQUEST)

    store = get_coupon_store()
    coupon = async_to_sync(store.get_coupon_by_code)(code)
    if coupon is None:
        return Response({"error": "Coupon not found"}, status=status.HTTP_404_NOT_FOUND)

    record = async_to_sync(store.increment_usage)(serializer.validated_data["userId"], code)
    return Response({"usage": CouponUsageSerializer(record).data})


@api_view(['POST'])
def apply_coupon(request):
    """
    Redeem one coupon code for a user: run it through the same checks as
    best-coupon selection, then count the use.

    Request: {"user": <user profile>, "code": "<coupon code>", "cart": {"items": [...]}}
    with "cart" optional (an empty cart by default).
    200 {"applied": code, "discount": amount}; 404 unknown code; 400 {"error": reason}
    when the coupon does not apply or the usage limit is reached.
    """
    serializer = ApplyCouponRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error(serializer)

    data = serializer.validated_data
    user = UserProfile.from_dict(data["user"])
    cart = Cart.from_dict(data.get("cart") or {"items": []})

    # find coupon
    store = get_coupon_store()
    coupon = async_to_sync(store.get_coupon_by_code)(data["code"])
    if coupon is None:
        return Response({"error": "Coupon not found"}, status=status.HTTP_404_NOT_FOUND)

    # same checks as best-coupon selection: window, usage, eligibility, discount
    outcome = async_to_sync(evaluate_coupon)(coupon, user, cart, store.get_usage_count, timezone.now())
    if isinstance(outcome, Skipped):
        return Response({"error": outcome.reason}, status=status.HTTP_400_BAD_REQUEST)

    # the store re-checks the limit under a row lock before recording usage
    try:
        async_to_sync(store.increment_usage)(user.user_id, coupon.code, limit=coupon.usageLimitPerUser)
    except UsageLimitExceededError:
        return Response({"error": USAGE_LIMIT_REACHED}, status=status.HTTP_400_BAD_REQUEST)

    logger.info("User %s applied coupon %s", user.user_id, coupon.code)
    return Response({
        "applied": coupon.code,
        "discount": round_money(outcome.discount),
    })
