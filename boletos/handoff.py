"""
Raffle page -> checkout page hand-off through query parameters.

    ?tickets=7,12,40            individual selection (priced by pack matching)
    ?pack=2&quantity=3          explicit pack, by catalog position (1-based)

Older links carried the pack name instead of its position (`?pack=Pack VIP`);
those are still understood.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping
from urllib.parse import urlencode

from .catalog import Pack, Raffle


@dataclass(frozen=True)
class CheckoutRequest:
    tickets: tuple[int, ...] = ()
    pack: Pack | None = None
    pack_quantity: int = 1

    @property
    def is_empty(self) -> bool:
        return not self.tickets and self.pack is None


def encode(raffle: Raffle, *, tickets: Iterable[int] = (), pack: Pack | None = None, pack_quantity: int = 1) -> dict[str, str]:
    if pack is not None:
        return {"pack": str(raffle.pack_position(pack)), "quantity": str(max(1, int(pack_quantity)))}
    return {"tickets": ",".join(str(t) for t in sorted(set(tickets)))}


def checkout_query(raffle: Raffle, **kwargs) -> str:
    return urlencode(encode(raffle, **kwargs), safe=",")


def _parse_quantity(raw) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return 1
    return max(1, value)


def parse_tickets(raw: str) -> tuple[int, ...]:
    """Comma separated numbers; anything non-numeric is ignored, duplicates collapse."""
    found = set()
    for part in (raw or "").split(","):
        part = part.strip()
        if part.isdecimal():
            found.add(int(part))
    return tuple(sorted(found))


def decode(raffle: Raffle, params: Mapping[str, str]) -> CheckoutRequest:
    raw_pack = (params.get("pack") or "").strip()
    if raw_pack:
        pack = raffle.pack_at(int(raw_pack)) if raw_pack.isdecimal() else None
        if pack is None:
            pack = raffle.find_pack_by_name(raw_pack)
        if pack is not None:
            return CheckoutRequest(pack=pack, pack_quantity=_parse_quantity(params.get("quantity")))
    return CheckoutRequest(tickets=parse_tickets(params.get("tickets") or ""))
