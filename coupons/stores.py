"""
Coupon catalog and usage storage.

The selection engine only talks to a store through this async interface:

    get_all_coupons()                          -> list[Coupon], newest first
    get_coupon_by_code(code)                   -> Coupon | None
    insert_coupon(data)                        -> Coupon
    get_usage_count(user_id, code)             -> int
    increment_usage(user_id, code, limit=None) -> CouponUsage

Which store a request uses is decided by the ``COUPON_STORE`` setting.
"""

import logging
import threading

from asgiref.sync import sync_to_async
from django.apps import apps
from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.module_loading import import_string

from .exceptions import DuplicateCouponError, UsageLimitExceededError
from .models import Coupon, CouponUsage

logger = logging.getLogger(__name__)


def get_coupon_store():
    """
    Build the store configured in settings; a fresh instance per call.

    In-memory stores all share the catalog kept on the coupons app config.
    """
    store_class = import_string(settings.COUPON_STORE)
    if issubclass(store_class, InMemoryCouponStore):
        return store_class(catalog=apps.get_app_config("coupons").memory_catalog)
    return store_class()


class DjangoCouponStore:
    """Store backed by the Django ORM."""

    async def get_all_coupons(self):
        return [c async for c in Coupon.objects.order_by("-created_at")]

    async def get_coupon_by_code(self, code):
        return await Coupon.objects.filter(code=code).afirst()

    async def insert_coupon(self, data):
        return await sync_to_async(self._insert_coupon)(data)

    def _insert_coupon(self, data):
        try:
            with transaction.atomic():
                coupon = Coupon.objects.create(**data)
        except IntegrityError as exc:
            # unique constraint on code
            if Coupon.objects.filter(code=data.get("code")).exists():
                raise DuplicateCouponError(data.get("code")) from exc
            raise
        logger.info("Created coupon %s", coupon.code)
        return coupon

    async def get_usage_count(self, user_id, code):
        count = await (
            CouponUsage.objects.filter(user_id=user_id, coupon__code=code)
            .values_list("usage_count", flat=True)
            .afirst()
        )
        return count or 0

    async def increment_usage(self, user_id, code, limit=None):
        return await sync_to_async(self._increment_usage)(user_id, code, limit)

    def _increment_usage(self, user_id, code, limit):
        # lock the usage row so a racing request can't slip past the limit
        with transaction.atomic():
            coupon = Coupon.objects.get(code=code)
            usage, _ = CouponUsage.objects.select_for_update().get_or_create(
                coupon=coupon, user_id=user_id
            )
            if limit is not None and usage.usage_count >= limit:
                raise UsageLimitExceededError(user_id, code, limit)

            usage.usage_count = F("usage_count") + 1
            usage.save(update_fields=["usage_count", "updated_at"])
            usage.refresh_from_db()
        return usage


class InMemoryCatalog:
    """
    Coupon rows and usage counters shared by in-memory stores.

    Critical sections never await, so a thread lock works across the event
    loops ``async_to_sync`` starts for each call.
    """

    def __init__(self, coupons=(), usage=None):
        self.coupons = {c.code: c for c in coupons}
        self.usage = dict(usage or {})  # (user_id, code) -> count
        self.lock = threading.Lock()


class InMemoryCouponStore:
    """
    Dict-backed store for tests and demos.

    Stores built over the same ``InMemoryCatalog`` see each other's writes;
    ``get_coupon_store`` hands every request the catalog kept on the app config.
    """

    def __init__(self, coupons=(), usage=None, catalog=None):
        self.catalog = catalog if catalog is not None else InMemoryCatalog(coupons, usage)

    async def get_all_coupons(self):
        with self.catalog.lock:
            return list(reversed(list(self.catalog.coupons.values())))

    async def get_coupon_by_code(self, code):
        return self.catalog.coupons.get(code)

    async def insert_coupon(self, data):
        with self.catalog.lock:
            if data["code"] in self.catalog.coupons:
                raise DuplicateCouponError(data["code"])
            coupon = Coupon(**data)
            coupon.created_at = timezone.now()
            self.catalog.coupons[coupon.code] = coupon
        return coupon

    async def get_usage_count(self, user_id, code):
        return self.catalog.usage.get((user_id, code), 0)

    async def increment_usage(self, user_id, code, limit=None):
        with self.catalog.lock:
            coupon = self.catalog.coupons.get(code)
            if coupon is None:
                raise Coupon.DoesNotExist(f"Coupon {code} does not exist")
            count = self.catalog.usage.get((user_id, code), 0)
            if limit is not None and count >= limit:
                raise UsageLimitExceededError(user_id, code, limit)
            self.catalog.usage[(user_id, code)] = count + 1

        return CouponUsage(
            coupon=coupon,
            user_id=user_id,
            usage_count=count + 1,
            updated_at=timezone.now(),
        )
