from __future__ import annotations

from django.conf import settings
from django.core.checks import Warning, register

from .api import LISTING_PAGINATED, LISTING_SCROLL


@register()
def storefront_settings(app_configs, **kwargs):
    """Misconfigured storefront settings show up in `manage.py check`."""
    problems = []
    if not (getattr(settings, "BOLETOS_API_URL", "") or "").strip():
        problems.append(
            Warning(
                "BOLETOS_API_URL is empty; raffles cannot be loaded.",
                hint="Set the BOLETOS_API_URL environment variable to the backend base URL.",
                id="boletos.W001",
            )
        )
    mode = getattr(settings, "BOLETOS_LISTING_MODE", LISTING_PAGINATED)
    if mode not in (LISTING_PAGINATED, LISTING_SCROLL):
        problems.append(
            Warning(
                f"BOLETOS_LISTING_MODE={mode!r} is not a known listing mode; '{LISTING_PAGINATED}' is used.",
                id="boletos.W002",
            )
        )
    return problems
