import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class CouponError(Exception):
    """Base class for coupon errors callers can branch on."""


class DuplicateCouponError(CouponError):
    def __init__(self, code):
        super().__init__(f"Coupon code already exists: {code}")
        self.code = code


class UsageLimitExceededError(CouponError):
    def __init__(self, user_id, code, limit):
        super().__init__(f"User {user_id} reached the usage limit ({limit}) for {code}")
        self.user_id = user_id
        self.code = code
        self.limit = limit


def api_exception_handler(exc, context):
    """
    DRF exception handler returning ``{"error": ...}`` bodies.

    API exceptions keep their status code; anything else is an unexpected
    failure (database down, bug) and becomes a logged 500.
    """
    response = exception_handler(exc, context)
    if response is not None:
        detail = response.data.get("detail") if isinstance(response.data, dict) else None
        if detail is not None:
            response.data = {"error": str(detail)}
        return response

    request = context.get("request")
    logger.error("Unhandled error on %s", getattr(request, "path", "<unknown>"), exc_info=exc)
    return Response({"error": "Internal Server Error"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
