from django.db import models

from .discounts import FLAT, PERCENT


class Coupon(models.Model):
    CODE_MAX = 64
    DISCOUNT_TYPES = [
        (FLAT, "Flat amount"),
        (PERCENT, "Percentage"),
    ]

    code = models.CharField(max_length=CODE_MAX, unique=True)
    description = models.CharField(max_length=255, blank=True)
    discountType = models.CharField(max_length=10, choices=DISCOUNT_TYPES)
    discountValue = models.DecimalField(max_digits=12, decimal_places=2)
    maxDiscountAmount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    startDate = models.DateTimeField()
    endDate = models.DateTimeField()
    usageLimitPerUser = models.PositiveIntegerField(null=True, blank=True)
    eligibility = models.JSONField(default=dict, blank=True)  # camelCase rules, see EligibilityRules

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.code


class CouponUsage(models.Model):
    coupon = models.ForeignKey(Coupon, on_delete=models.CASCADE, related_name="usages")
    user_id = models.CharField(max_length=128, db_index=True)  # stores the userId string from API payload
    usage_count = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["coupon", "user_id"], name="unique_coupon_usage_per_user"),
        ]

    def __str__(self):
        return f"{self.user_id} used {self.coupon.code} {self.usage_count} time(s)"
