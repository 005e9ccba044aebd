"""Checkout form validation and free-text sanitizing."""
import re
from typing import Dict

from .constants import (
    ADDRESS_MAX_LENGTH,
    ADDRESS_MIN_LENGTH,
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
    PHONE_DIGITS,
    PHONE_PREFIX,
    DeliveryMethod,
    PaymentMethod,
)
from .dtos import CheckoutForm

_ANGLE_BRACKETS = re.compile(r"[<>]")
_JS_PROTOCOL = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+\s*=", re.IGNORECASE)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_NAME_RE = re.compile(r"^[a-zA-Zа-яА-ЯёЁ\s-]+$")
_NON_DIGITS = re.compile(r"\D")


def sanitize_text(value) -> str:
    if not isinstance(value, str):
        return ""
    value = _CONTROL_CHARS.sub("", value.strip())
    value = _ANGLE_BRACKETS.sub("", value)
    value = _JS_PROTOCOL.sub("", value)
    return _EVENT_HANDLER.sub("", value).strip()


def phone_digits(value) -> str:
    return _NON_DIGITS.sub("", value or "")


def validate_name(value: str) -> str:
    name = sanitize_text(value)
    if not (NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH) or not _NAME_RE.match(name):
        return f"Name must contain only letters ({NAME_MIN_LENGTH}-{NAME_MAX_LENGTH} characters)"
    return ""


def validate_phone(value: str) -> str:
    digits = phone_digits(value)
    if len(digits) != PHONE_DIGITS or not digits.startswith(PHONE_PREFIX):
        return "Invalid phone number"
    return ""


def validate_address(value: str) -> str:
    address = sanitize_text(value)
    if not (ADDRESS_MIN_LENGTH <= len(address) <= ADDRESS_MAX_LENGTH):
        return f"Address must be {ADDRESS_MIN_LENGTH} to {ADDRESS_MAX_LENGTH} characters"
    return ""


def validate_checkout_form(form: CheckoutForm) -> Dict[str, str]:
    """Field -> message for every invalid field. Empty means the form is valid."""
    errors = {
        "name": validate_name(form.name),
        "phone": validate_phone(form.phone),
    }
    if form.delivery_method not in DeliveryMethod.values:
        errors["deliveryMethod"] = "Unknown delivery method"
    if form.payment_method not in PaymentMethod.values:
        errors["paymentMethod"] = "Unknown payment method"
    if form.is_delivery:
        errors["address"] = validate_address(form.address)
        if not (form.delivery_time or "").strip():
            errors["deliveryTime"] = "Select a delivery time"
    return {field: message for field, message in errors.items() if message}


def sanitize_form(form: CheckoutForm) -> CheckoutForm:
    delivery = form.is_delivery
    return CheckoutForm(
        name=sanitize_text(form.name),
        phone=sanitize_text(form.phone),
        delivery_method=form.delivery_method,
        payment_method=form.payment_method,
        address=sanitize_text(form.address) if delivery else "",
        delivery_time=sanitize_text(form.delivery_time) if delivery else "",
        comment=sanitize_text(form.comment),
    )
