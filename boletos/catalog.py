"""
Raffle catalog data as received from the REST API, normalized on ingestion.

Pack records arrive with either a `tickets` or a `q` field for the ticket count
(and sometimes as a JSON string instead of a list). Everything downstream only
sees `Pack.ticket_count`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

logger = logging.getLogger(__name__)

DEFAULT_PRICE_PER_TICKET = Decimal("50")


def _to_decimal(value) -> Decimal:
    # NaN and Infinity are valid JSON for json.loads; treat them as missing.
    try:
        number = Decimal(str(value if value is not None else 0))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return number if number.is_finite() else Decimal("0")


def _to_int(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError, OverflowError):
        return 0


@dataclass(frozen=True)
class Pack:
    ticket_count: int
    price: Decimal
    name: str = ""

    def __post_init__(self) -> None:
        if self.ticket_count < 1:
            raise ValueError("Pack ticket_count must be >= 1")
        if self.price <= 0:
            raise ValueError("Pack price must be > 0")

    @property
    def label(self) -> str:
        return self.name or f"Pack de {self.ticket_count} boletos"

    @classmethod
    def from_api(cls, data: dict) -> "Pack":
        count = _to_int(data.get("tickets")) or _to_int(data.get("q")) or 1
        return cls(
            ticket_count=count,
            price=_to_decimal(data.get("price")),
            name=(data.get("name") or "").strip(),
        )


def parse_packs(raw) -> tuple[Pack, ...]:
    """
    Accepts a list of pack dicts or a JSON string with one.
    Malformed entries are skipped (logged), never fatal.
    """
    if raw is None:
        return ()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring packs: not valid JSON")
            return ()
    if not isinstance(raw, list):
        return ()
    packs = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            packs.append(Pack.from_api(item))
        except (ValueError, ArithmeticError) as e:
            logger.warning("Ignoring pack %r: %s", item, e)
    return tuple(packs)


@dataclass(frozen=True)
class Raffle:
    id: str
    title: str
    slug: str
    total_tickets: int
    price_per_ticket: Decimal
    packs: tuple[Pack, ...] = ()
    bonus_enabled: bool = False
    bonus_multiplier: int = 1
    sold: int = 0
    description: str = ""
    status: str = "active"
    extra: dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, data: dict) -> "Raffle":
        packs = parse_packs(data.get("packs"))
        return cls(
            id=str(data.get("id") or ""),
            title=(data.get("title") or "").strip(),
            slug=(data.get("slug") or "").strip(),
            total_tickets=max(0, _to_int(data.get("tickets"))),
            price_per_ticket=resolve_price_per_ticket(data.get("price"), packs),
            packs=packs,
            bonus_enabled=bool(data.get("boletosConOportunidades")),
            bonus_multiplier=max(1, _to_int(data.get("numeroOportunidades")) or 1),
            sold=_to_int(data.get("sold")),
            description=(data.get("description") or "").strip(),
            status=(data.get("status") or "active"),
            extra=data,
        )

    @property
    def has_tickets(self) -> bool:
        return self.total_tickets > 0

    @property
    def bonus_per_ticket(self) -> int:
        """Extra entries granted per purchased ticket (0 when the raffle has no bonus)."""
        if not self.bonus_enabled or self.bonus_multiplier <= 1:
            return 0
        return self.bonus_multiplier - 1

    @property
    def ticket_padding(self) -> int:
        if self.total_tickets <= 0:
            return 4
        return len(str(self.total_tickets))

    @property
    def sold_percent(self) -> int:
        if self.total_tickets <= 0:
            return 0
        return min(100, int((self.sold / self.total_tickets) * 100))

    def pack_at(self, position: int) -> Pack | None:
        """1-based catalog position, as used in checkout links."""
        if 1 <= position <= len(self.packs):
            return self.packs[position - 1]
        return None

    def pack_position(self, pack: Pack) -> int:
        for i, p in enumerate(self.packs, start=1):
            if p == pack:
                return i
        raise ValueError("Pack is not part of this raffle")

    def find_pack_by_name(self, name: str) -> Pack | None:
        wanted = (name or "").strip().lower()
        if not wanted:
            return None
        for p in self.packs:
            if p.name.lower() == wanted:
                return p
        return None


def resolve_price_per_ticket(price, packs: tuple[Pack, ...]) -> Decimal:
    """
    Raffle price when set; otherwise the price of a single-ticket pack;
    otherwise the storefront default.
    """
    value = _to_decimal(price)
    if value > 0:
        return value
    for p in packs:
        if p.ticket_count == 1:
            return p.price
    return DEFAULT_PRICE_PER_TICKET
