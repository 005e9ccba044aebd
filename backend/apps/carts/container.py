from __future__ import annotations

from apps.catalog.container import build_catalog_lookup

from .repositories import DjangoCartBackend
from .services import CartService


def build_cart_backend() -> DjangoCartBackend:
    return DjangoCartBackend()


def build_cart_service() -> CartService:
    return CartService(backend=build_cart_backend(), catalog=build_catalog_lookup())
