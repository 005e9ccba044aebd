from __future__ import annotations

from apps.carts.container import build_cart_service

from .services import SessionService


def build_session_service() -> SessionService:
    return SessionService(carts=build_cart_service())
