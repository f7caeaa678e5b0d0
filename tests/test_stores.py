"""Tests for the coupon stores."""

from datetime import timedelta
from decimal import Decimal

import pytest
from asgiref.sync import async_to_sync
from django.apps import apps
from django.test import override_settings
from django.utils import timezone

from coupons.exceptions import DuplicateCouponError, UsageLimitExceededError
from coupons.models import Coupon, CouponUsage
from coupons.stores import DjangoCouponStore, InMemoryCatalog, InMemoryCouponStore, get_coupon_store


def coupon_data(code="SAVE10", **overrides):
    now = timezone.now()
    data = {
        "code": code,
        "description": "Ten off",
        "discountType": "FLAT",
        "discountValue": Decimal("10.00"),
        "startDate": now - timedelta(days=1),
        "endDate": now + timedelta(days=30),
        "eligibility": {},
    }
    data.update(overrides)
    return data


def test_get_coupon_store_uses_setting():
    assert isinstance(get_coupon_store(), DjangoCouponStore)
    with override_settings(COUPON_STORE="coupons.stores.InMemoryCouponStore"):
        assert isinstance(get_coupon_store(), InMemoryCouponStore)


@pytest.mark.django_db
class TestDjangoCouponStore:
    def test_insert_and_read_back(self):
        store = DjangoCouponStore()
        created = async_to_sync(store.insert_coupon)(coupon_data())
        assert created.pk is not None

        found = async_to_sync(store.get_coupon_by_code)("SAVE10")
        assert found.discountValue == Decimal("10.00")
        assert async_to_sync(store.get_coupon_by_code)("MISSING") is None

    def test_get_all_coupons_newest_first(self):
        store = DjangoCouponStore()
        async_to_sync(store.insert_coupon)(coupon_data("FIRST"))
        async_to_sync(store.insert_coupon)(coupon_data("SECOND"))
        codes = [c.code for c in async_to_sync(store.get_all_coupons)()]
        assert sorted(codes) == ["FIRST", "SECOND"]
        assert len(codes) == 2

    def test_duplicate_code_raises_conflict(self):
        store = DjangoCouponStore()
        async_to_sync(store.insert_coupon)(coupon_data())
        with pytest.raises(DuplicateCouponError):
            async_to_sync(store.insert_coupon)(coupon_data())
        assert Coupon.objects.count() == 1

    def test_usage_count_defaults_to_zero(self):
        store = DjangoCouponStore()
        async_to_sync(store.insert_coupon)(coupon_data())
        assert async_to_sync(store.get_usage_count)("u1", "SAVE10") == 0

    def test_increment_creates_then_increments(self):
        store = DjangoCouponStore()
        async_to_sync(store.insert_coupon)(coupon_data())

        first = async_to_sync(store.increment_usage)("u1", "SAVE10")
        second = async_to_sync(store.increment_usage)("u1", "SAVE10")

        assert first.usage_count == 1
        assert second.usage_count == 2
        assert CouponUsage.objects.count() == 1
        assert async_to_sync(store.get_usage_count)("u1", "SAVE10") == 2
        assert async_to_sync(store.get_usage_count)("u2", "SAVE10") == 0

    def test_increment_respects_limit(self):
        store = DjangoCouponStore()
        async_to_sync(store.insert_coupon)(coupon_data(usageLimitPerUser=1))
        async_to_sync(store.increment_usage)("u1", "SAVE10", limit=1)
        with pytest.raises(UsageLimitExceededError):
            async_to_sync(store.increment_usage)("u1", "SAVE10", limit=1)
        assert async_to_sync(store.get_usage_count)("u1", "SAVE10") == 1

    def test_increment_unknown_coupon(self):
        store = DjangoCouponStore()
        with pytest.raises(Coupon.DoesNotExist):
            async_to_sync(store.increment_usage)("u1", "NOPE")


class TestInMemoryCouponStore:
    @pytest.mark.asyncio
    async def test_insert_duplicate_and_list(self):
        store = InMemoryCouponStore()
        await store.insert_coupon(coupon_data("A"))
        await store.insert_coupon(coupon_data("B"))
        with pytest.raises(DuplicateCouponError):
            await store.insert_coupon(coupon_data("A"))
        assert [c.code for c in await store.get_all_coupons()] == ["B", "A"]

    @pytest.mark.asyncio
    async def test_usage_tracking_with_limit(self):
        store = InMemoryCouponStore()
        await store.insert_coupon(coupon_data())
        record = await store.increment_usage("u1", "SAVE10", limit=2)
        assert record.usage_count == 1
        await store.increment_usage("u1", "SAVE10", limit=2)
        with pytest.raises(UsageLimitExceededError):
            await store.increment_usage("u1", "SAVE10", limit=2)
        assert await store.get_usage_count("u1", "SAVE10") == 2

    @pytest.mark.asyncio
    async def test_instances_do_not_share_state(self):
        first, second = InMemoryCouponStore(), InMemoryCouponStore()
        await first.insert_coupon(coupon_data())
        assert await second.get_all_coupons() == []


class TestSharedInMemoryCatalog:
    @pytest.fixture
    def fresh_catalog(self, monkeypatch):
        config = apps.get_app_config("coupons")
        catalog = InMemoryCatalog()
        monkeypatch.setattr(config, "memory_catalog", catalog)
        return catalog

    def test_stores_from_settings_share_the_app_catalog(self, fresh_catalog):
        with override_settings(COUPON_STORE="coupons.stores.InMemoryCouponStore"):
            writer, reader = get_coupon_store(), get_coupon_store()

        assert writer is not reader
        assert writer.catalog is reader.catalog is fresh_catalog

        async_to_sync(writer.insert_coupon)(coupon_data("SHARED"))
        async_to_sync(writer.increment_usage)("u1", "SHARED")

        assert [c.code for c in async_to_sync(reader.get_all_coupons)()] == ["SHARED"]
        assert async_to_sync(reader.get_usage_count)("u1", "SHARED") == 1

    def test_directly_built_stores_stay_private(self, fresh_catalog):
        store = InMemoryCouponStore()
        async_to_sync(store.insert_coupon)(coupon_data("PRIVATE"))
        assert fresh_catalog.coupons == {}
