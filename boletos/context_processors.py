from __future__ import annotations

from django.conf import settings
from django.core.cache import cache

DEFAULT_APPEARANCE = {
    "site_name": "Boletos",
    "primary_color": "#10b981",
    "background_color": "#020617",
    "logo_url": "",
    "whatsapp": "",
}


def appearance(request):
    """
    Storefront look (name, colors, logo) globally to templates as `appearance`.
    Read-only; configured through BOLETOS_APPEARANCE.
    """
    key = "boletos_appearance_v1"
    data = cache.get(key)
    if data is None:
        configured = getattr(settings, "BOLETOS_APPEARANCE", None) or {}
        data = {**DEFAULT_APPEARANCE, **{k: v for k, v in configured.items() if v not in (None, "")}}
        cache.set(key, data, 60)  # 60s cache
    return {"appearance": data, "currency": getattr(settings, "BOLETOS_CURRENCY", "$")}
