from django.urls import path
from . import views

urlpatterns = [
    path('', views.coupons, name='coupons'),
    path('best/', views.best_coupon, name='best_coupon'),
    path('apply/', views.apply_coupon, name='apply_coupon'),
    path('use/<str:code>/', views.mark_coupon_used, name='mark_coupon_used'),
]
