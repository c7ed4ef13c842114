"""
Pack matching and pricing.

This is the only place prices are computed. The raffle page, the checkout page
and the order submission all call `quote()` with the same inputs and therefore
always agree on the total.

Modes:
- individual: no pack, total = tickets x price per ticket
- pack:       explicitly chosen pack, total = pack price x pack quantity
- matched:    no explicit pack but the selection size equals a pack's ticket
              count; that pack's price replaces the per-ticket total
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Sequence

from .catalog import Pack, Raffle

CENTS = Decimal("0.01")


def money(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


class PricingMode(str, Enum):
    INDIVIDUAL = "individual"
    PACK = "pack"
    MATCHED = "matched"


@dataclass(frozen=True)
class Quote:
    mode: PricingMode
    price_per_ticket: Decimal
    ticket_count: int
    subtotal: Decimal
    total: Decimal
    pack: Pack | None = None
    pack_quantity: int = 0
    bonus_tickets: int = 0

    @property
    def applied_automatically(self) -> bool:
        return self.mode is PricingMode.MATCHED

    @property
    def savings(self) -> Decimal:
        """Per-ticket total minus the matched pack price (matched mode only)."""
        if self.mode is not PricingMode.MATCHED:
            return money(0)
        return money(self.subtotal - self.total)

    @property
    def has_savings(self) -> bool:
        return self.savings > 0

    @property
    def unit_equivalent_price(self) -> Decimal:
        if self.ticket_count <= 0:
            return money(0)
        return money(self.total / self.ticket_count)

    @property
    def total_entries(self) -> int:
        return self.ticket_count + self.bonus_tickets

    @property
    def is_empty(self) -> bool:
        return self.ticket_count <= 0


def find_matching_pack(packs: Sequence[Pack], ticket_count: int) -> Pack | None:
    # Duplicate ticket counts in a catalog: first one wins.
    if ticket_count <= 0:
        return None
    for pack in packs:
        if pack.ticket_count == ticket_count:
            return pack
    return None


def bonus_tickets(purchased: int, bonus_per_ticket: int) -> int:
    if purchased <= 0 or bonus_per_ticket <= 0:
        return 0
    return purchased * bonus_per_ticket


def quote(
    *,
    price_per_ticket: Decimal,
    packs: Sequence[Pack] = (),
    selected_count: int = 0,
    pack: Pack | None = None,
    pack_quantity: int = 1,
    bonus_per_ticket: int = 0,
) -> Quote:
    """
    Price a selection (selected_count) or an explicit pack (pack, pack_quantity).
    Pure: same inputs, same Quote.
    """
    price_per_ticket = Decimal(price_per_ticket)
    if pack is not None:
        if pack_quantity < 1:
            raise ValueError("pack_quantity must be >= 1")
        count = pack.ticket_count * pack_quantity
        return Quote(
            mode=PricingMode.PACK,
            price_per_ticket=money(price_per_ticket),
            ticket_count=count,
            subtotal=money(price_per_ticket * count),
            total=money(pack.price * pack_quantity),
            pack=pack,
            pack_quantity=pack_quantity,
            bonus_tickets=bonus_tickets(count, bonus_per_ticket),
        )

    count = max(0, int(selected_count or 0))
    subtotal = money(price_per_ticket * count)
    matched = find_matching_pack(packs, count)
    if matched is not None:
        return Quote(
            mode=PricingMode.MATCHED,
            price_per_ticket=money(price_per_ticket),
            ticket_count=count,
            subtotal=subtotal,
            total=money(matched.price),
            pack=matched,
            pack_quantity=1,
            bonus_tickets=bonus_tickets(count, bonus_per_ticket),
        )
    return Quote(
        mode=PricingMode.INDIVIDUAL,
        price_per_ticket=money(price_per_ticket),
        ticket_count=count,
        subtotal=subtotal,
        total=subtotal,
        bonus_tickets=bonus_tickets(count, bonus_per_ticket),
    )


def quote_for_raffle(raffle: Raffle, *, selected_count: int = 0, pack: Pack | None = None, pack_quantity: int = 1) -> Quote:
    return quote(
        price_per_ticket=raffle.price_per_ticket,
        packs=raffle.packs,
        selected_count=selected_count,
        pack=pack,
        pack_quantity=pack_quantity,
        bonus_per_ticket=raffle.bonus_per_ticket,
    )


@dataclass(frozen=True)
class PackOffer:
    position: int
    pack: Pack
    individual_price: Decimal
    discount: Decimal
    discount_percent: Decimal
    price_per_ticket_in_pack: Decimal


def pack_offer(pack: Pack, price_per_ticket: Decimal, position: int = 0) -> PackOffer:
    """Figures shown next to each pack: what it would cost ticket by ticket and how much it saves."""
    individual = money(Decimal(price_per_ticket) * pack.ticket_count)
    discount = money(individual - pack.price)
    percent = Decimal(0)
    if individual > 0 and discount > 0:
        percent = (discount / individual * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return PackOffer(
        position=position,
        pack=pack,
        individual_price=individual,
        discount=discount,
        discount_percent=percent,
        price_per_ticket_in_pack=money(pack.price / pack.ticket_count),
    )


def pack_offers(raffle: Raffle) -> list[PackOffer]:
    return [pack_offer(p, raffle.price_per_ticket, position=i) for i, p in enumerate(raffle.packs, start=1)]
