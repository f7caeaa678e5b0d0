from decimal import Decimal

from rest_framework import serializers

from .discounts import PERCENT
from .models import Coupon, CouponUsage

# any precision; amounts are only rounded when a discount is presented
MONEY = {"max_digits": None, "decimal_places": None}


def format_errors(errors):
    """Flatten DRF's nested error structure into one readable message."""
    return "; ".join(_flatten(errors, ""))


def _flatten(errors, prefix):
    if isinstance(errors, dict):
        messages = []
        for field, value in errors.items():
            if isinstance(field, int):
                # list items keyed by index (ListSerializer errors)
                path = f"{prefix}[{field}]"
            else:
                name = "" if field == "non_field_errors" else str(field)
                path = f"{prefix}.{name}" if prefix and name else (prefix or name)
            messages.extend(_flatten(value, path))
        return messages
    if isinstance(errors, list):
        messages = []
        for index, value in enumerate(errors):
            if isinstance(value, (dict, list)):
                messages.extend(_flatten(value, f"{prefix}[{index}]"))
            else:
                messages.append(f"{prefix}: {value}" if prefix else str(value))
        return messages
    return [f"{prefix}: {errors}" if prefix else str(errors)]


# Eligibility rules are stored as JSON, so thresholds stay plain numbers here.
class EligibilitySerializer(serializers.Serializer):
    allowedUserTiers = serializers.ListField(child=serializers.CharField(), required=False)
    minLifetimeSpend = serializers.FloatField(min_value=0, required=False)
    minOrdersPlaced = serializers.IntegerField(min_value=0, required=False)
    firstOrderOnly = serializers.BooleanField(required=False)
    allowedCountries = serializers.ListField(child=serializers.CharField(), required=False)
    minCartValue = serializers.FloatField(min_value=0, required=False)
    applicableCategories = serializers.ListField(child=serializers.CharField(), required=False)
    excludedCategories = serializers.ListField(child=serializers.CharField(), required=False)
    minItemsCount = serializers.IntegerField(min_value=0, required=False)


class CouponSerializer(serializers.ModelSerializer):
    """Validates coupon creation payloads. Saving goes through a coupon store."""

    discountValue = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))
    maxDiscountAmount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0.01"), required=False, allow_null=True
    )
    usageLimitPerUser = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    eligibility = EligibilitySerializer(required=False)

    class Meta:
        model = Coupon
        fields = [
            "code",
            "description",
            "discountType",
            "discountValue",
            "maxDiscountAmount",
            "startDate",
            "endDate",
            "usageLimitPerUser",
            "eligibility",
        ]
        # duplicates are reported by the store as a conflict, not as a 400
        extra_kwargs = {"code": {"validators": []}}

    def validate(self, attrs):
        if attrs["startDate"] > attrs["endDate"]:
            raise serializers.ValidationError({"endDate": "endDate must not be before startDate"})
        if attrs["discountType"] == PERCENT and attrs["discountValue"] > 100:
            raise serializers.ValidationError({"discountValue": "Percent discount must be between 0 and 100"})
        attrs["eligibility"] = dict(attrs.get("eligibility") or {})
        return attrs


class PublicCouponSerializer(serializers.ModelSerializer):
    class Meta:
        model = Coupon
        fields = [
            "code",
            "description",
            "discountType",
            "discountValue",
            "maxDiscountAmount",
            "startDate",
            "endDate",
            "usageLimitPerUser",
            "eligibility",
        ]


class UserProfileSerializer(serializers.Serializer):
    userId = serializers.CharField()
    userTier = serializers.CharField()
    country = serializers.CharField()
    lifetimeSpend = serializers.DecimalField(min_value=0, **MONEY)
    ordersPlaced = serializers.IntegerField(min_value=0)


class CartItemSerializer(serializers.Serializer):
    productId = serializers.CharField()
    category = serializers.CharField()
    unitPrice = serializers.DecimalField(min_value=0, **MONEY)
    quantity = serializers.IntegerField(min_value=1)


class CartSerializer(serializers.Serializer):
    items = CartItemSerializer(many=True)


class BestCouponRequestSerializer(serializers.Serializer):
    user = UserProfileSerializer()
    cart = CartSerializer()


class ApplyCouponRequestSerializer(serializers.Serializer):
    user = UserProfileSerializer()
    code = serializers.CharField()
    cart = CartSerializer(required=False)


class MarkUsedRequestSerializer(serializers.Serializer):
    userId = serializers.CharField()


class CouponUsageSerializer(serializers.ModelSerializer):
    userId = serializers.CharField(source="user_id")
    couponCode = serializers.CharField(source="coupon.code")
    usageCount = serializers.IntegerField(source="usage_count")
    updatedAt = serializers.DateTimeField(source="updated_at")

    class Meta:
        model = CouponUsage
        fields = ["userId", "couponCode", "usageCount", "updatedAt"]
