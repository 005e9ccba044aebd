from django.urls import path

from .views import CheckoutView, OrderCancelView, OrderDetailView, OrderListView

urlpatterns = [
    path("", OrderListView.as_view(), name="api-orders-list"),
    path("checkout/", CheckoutView.as_view(), name="api-orders-checkout"),
    path("<uuid:order_id>/", OrderDetailView.as_view(), name="api-orders-detail"),
    path("<uuid:order_id>/cancel/", OrderCancelView.as_view(), name="api-orders-cancel"),
]
