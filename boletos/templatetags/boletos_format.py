from __future__ import annotations

from decimal import Decimal, InvalidOperation

from django import template
from django.conf import settings

from ..windowing import ticket_label

register = template.Library()


@register.filter
def digits_only(value: str) -> str:
    s = str(value or "")
    return "".join(ch for ch in s if ch.isdigit())


@register.filter
def ticket_number(value, padding=4) -> str:
    """Zero-padded ticket number: {{ 7|ticket_number:raffle.ticket_padding }} -> 0007."""
    try:
        return ticket_label(int(value), int(padding or 4))
    except (TypeError, ValueError):
        return str(value or "")


@register.filter
def money(value) -> str:
    """$1,234.50 style amounts; the symbol comes from BOLETOS_CURRENCY."""
    symbol = getattr(settings, "BOLETOS_CURRENCY", "$")
    try:
        amount = Decimal(str(value if value is not None else 0))
    except (InvalidOperation, ValueError):
        return str(value or "")
    return f"{symbol}{amount:,.2f}"


@register.filter
def ticket_list(values, padding=4) -> str:
    return ", ".join(ticket_number(v, padding) for v in (values or ()))
