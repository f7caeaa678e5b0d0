from django.apps import AppConfig


class CouponsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "coupons"

    def ready(self):
        from .stores import InMemoryCatalog

        # backing state for COUPON_STORE=coupons.stores.InMemoryCouponStore
        self.memory_catalog = InMemoryCatalog()
