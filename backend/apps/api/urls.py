from django.urls import path, include

urlpatterns = [
    path("cart/", include("apps.carts.urls")),
    path("orders/", include("apps.orders.urls")),
    path("auth/", include("apps.auth.urls")),
]
