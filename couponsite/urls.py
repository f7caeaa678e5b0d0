from django.urls import include, path

from coupons import views

urlpatterns = [
    path("api/health/", views.health, name="health"),
    path("api/coupons/", include("coupons.urls")),
]
