"""
Client for the storefront REST backend (JSON over HTTPS).

- GET  /public/raffles/slug/<slug>
- GET  /public/raffles/<id>/occupied-tickets
- GET  /public/settings
- POST /public/orders

Base URL and timeout come from settings (BOLETOS_API_URL, BOLETOS_API_TIMEOUT).
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass

from django.conf import settings
from django.core.cache import cache

from .catalog import Raffle
from .inventory import OccupancySnapshot

logger = logging.getLogger(__name__)

LISTING_PAGINATED = "paginado"
LISTING_SCROLL = "scroll"
DISPLAY_PREFERENCES_CACHE_KEY = "boletos:display_preferences:v1"


class ApiError(Exception):
    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ApiNotFound(ApiError):
    pass


def _base_url() -> str:
    return (getattr(settings, "BOLETOS_API_URL", "") or "").strip().rstrip("/")


def _request(method: str, path: str, payload: dict | None = None) -> dict | list | None:
    url = f"{_base_url()}{path}"
    data = None
    headers = {"Accept": "application/json"}
    if payload is not None:
        data = json.dumps(payload).encode("utf-8")
        headers["Content-Type"] = "application/json"
    req = urllib.request.Request(url, data=data, headers=headers, method=method)
    timeout = int(getattr(settings, "BOLETOS_API_TIMEOUT", 10) or 10)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            status = int(getattr(resp, "status", 0) or 0)
            if status == 204:
                return None
            body = resp.read().decode("utf-8")
    except urllib.error.HTTPError as e:
        message = ""
        try:
            raw = e.read().decode("utf-8", "ignore")
            try:
                parsed = json.loads(raw)
                message = parsed.get("message") if isinstance(parsed, dict) else ""
                message = message or raw
            except ValueError:
                message = raw
        except OSError:
            message = ""
        if isinstance(message, list):
            message = "; ".join(str(m) for m in message)
        message = str(message or e.reason or "").strip()
        if e.code == 404:
            raise ApiNotFound(message or "Not found", status=404) from e
        raise ApiError(f"HTTP {e.code}: {message}", status=e.code) from e
    except (urllib.error.URLError, TimeoutError, OSError) as e:
        raise ApiError(f"Backend unreachable: {e}") from e
    if not body:
        return None
    try:
        return json.loads(body)
    except ValueError as e:
        raise ApiError("Backend returned invalid JSON", status=status) from e


def get_raffle(slug: str) -> Raffle | None:
    """Raffle by slug, or None when the backend does not know it."""
    try:
        data = _request("GET", f"/public/raffles/slug/{urllib.parse.quote(slug, safe='')}")
    except ApiNotFound:
        return None
    if not isinstance(data, dict) or not data:
        return None
    raffle = Raffle.from_api(data)
    if not raffle.slug:
        raffle = Raffle.from_api({**data, "slug": slug})
    return raffle


def get_occupied_tickets(raffle: Raffle) -> OccupancySnapshot:
    """Snapshot of taken tickets (paid or pending) for the raffle."""
    data = _request("GET", f"/public/raffles/{urllib.parse.quote(raffle.id, safe='')}/occupied-tickets")
    tickets = data.get("tickets") if isinstance(data, dict) else None
    return OccupancySnapshot.build(raffle.total_tickets, tickets or ())


@dataclass(frozen=True)
class DisplayPreferences:
    listing_mode: str = LISTING_PAGINATED
    hide_occupied: bool = False

    @classmethod
    def defaults(cls) -> "DisplayPreferences":
        mode = (getattr(settings, "BOLETOS_LISTING_MODE", LISTING_PAGINATED) or LISTING_PAGINATED).strip()
        if mode not in (LISTING_PAGINATED, LISTING_SCROLL):
            mode = LISTING_PAGINATED
        return cls(listing_mode=mode, hide_occupied=bool(getattr(settings, "BOLETOS_HIDE_OCCUPIED", False)))

    @classmethod
    def from_api(cls, data: dict | None) -> "DisplayPreferences":
        base = cls.defaults()
        prefs = (data or {}).get("displayPreferences") if isinstance(data, dict) else None
        if not isinstance(prefs, dict):
            return base
        mode = prefs.get("listingMode") or base.listing_mode
        if mode not in (LISTING_PAGINATED, LISTING_SCROLL):
            mode = base.listing_mode
        hide = base.hide_occupied
        if prefs.get("paidTicketsVisibility"):
            hide = prefs.get("paidTicketsVisibility") == "no_disponibles"
        return cls(listing_mode=mode, hide_occupied=hide)


def get_display_preferences() -> DisplayPreferences:
    """
    Storefront display preferences, cached for 60s.
    Best effort: backend failures fall back to configured defaults.
    """
    prefs = cache.get(DISPLAY_PREFERENCES_CACHE_KEY)
    if prefs is not None:
        return prefs
    try:
        prefs = DisplayPreferences.from_api(_request("GET", "/public/settings"))
    except ApiError as e:
        logger.warning("Display preferences unavailable, using defaults: %s", e)
        return DisplayPreferences.defaults()
    cache.set(DISPLAY_PREFERENCES_CACHE_KEY, prefs, 60)
    return prefs


def create_order(
    *,
    raffle: Raffle,
    tickets: list[int],
    total,
    customer: dict,
    notes: str = "",
    payment_method: str = "transfer",
) -> dict:
    """
    Submit an order. The backend is the only authority on double sales:
    a rejected order raises ApiError and the caller keeps the selection.
    """
    payload = {
        "raffleId": raffle.id,
        "tickets": [int(t) for t in tickets],
        "total": float(total),
        "paymentMethod": payment_method,
        "notes": notes,
        "userData": customer,
    }
    data = _request("POST", "/public/orders", payload)
    if not isinstance(data, dict):
        raise ApiError("Backend returned no order")
    return data
