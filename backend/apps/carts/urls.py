from django.urls import path

from .views import CartItemDetailView, CartItemsView, CartView, SavedItemsView

urlpatterns = [
    path("", CartView.as_view(), name="api-cart"),
    path("items/", CartItemsView.as_view(), name="api-cart-items"),
    path(
        "items/<str:line_id>/",
        CartItemDetailView.as_view(),
        name="api-cart-item-detail",
    ),
    path("saved/", SavedItemsView.as_view(), name="api-cart-saved"),
]
