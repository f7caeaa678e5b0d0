import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Coupon",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=64, unique=True)),
                ("description", models.CharField(blank=True, max_length=255)),
                ("discountType", models.CharField(choices=[("FLAT", "Flat amount"), ("PERCENT", "Percentage")], max_length=10)),
                ("discountValue", models.DecimalField(decimal_places=2, max_digits=12)),
                ("maxDiscountAmount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("startDate", models.DateTimeField()),
                ("endDate", models.DateTimeField()),
                ("usageLimitPerUser", models.PositiveIntegerField(blank=True, null=True)),
                ("eligibility", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="CouponUsage",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(db_index=True, max_length=128)),
                ("usage_count", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "coupon",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="usages",
                        to="coupons.coupon",
                    ),
                ),
            ],
        ),
        migrations.AddConstraint(
            model_name="couponusage",
            constraint=models.UniqueConstraint(fields=("coupon", "user_id"), name="unique_coupon_usage_per_user"),
        ),
    ]
