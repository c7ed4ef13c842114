"""
Purchase flow for one raffle view: selection, explicit pack, quick pick.

The flow is kept in the visitor's session (one slot per raffle). The occupancy
snapshot taken when the raffle page was loaded lives in the cache under a
content key, so the session only carries that key. Nothing is persisted
anywhere else and the slot is dropped once an order is created.
"""

from __future__ import annotations

import hashlib
import random

from django.conf import settings
from django.core.cache import cache

from .allocation import allocate
from .catalog import Pack, Raffle
from .handoff import checkout_query
from .inventory import OccupancySnapshot
from .pricing import Quote, quote_for_raffle
from .selection import SelectionState

SESSION_PREFIX = "boletos:flujo:"
SNAPSHOT_CACHE_PREFIX = "boletos:ocupados:"
SNAPSHOT_TIMEOUT = 60 * 60 * 6


class PurchaseFlow:
    def __init__(
        self,
        raffle: Raffle,
        occupancy: OccupancySnapshot,
        *,
        selected=(),
        pack: Pack | None = None,
        pack_quantity: int = 1,
        last_quick_pick: int = 0,
    ):
        self.raffle = raffle
        self.selection = SelectionState(occupancy, selected)
        self.pack = pack
        self.pack_quantity = max(1, int(pack_quantity or 1))
        self.last_quick_pick = max(0, int(last_quick_pick or 0))

    @property
    def occupancy(self) -> OccupancySnapshot:
        return self.selection.occupancy

    def quote(self) -> Quote:
        return quote_for_raffle(
            self.raffle,
            selected_count=len(self.selection),
            pack=self.pack,
            pack_quantity=self.pack_quantity,
        )

    @property
    def is_empty(self) -> bool:
        return self.pack is None and not self.selection

    def toggle(self, ticket: int) -> bool:
        """Manual pick: leaves explicit pack mode. Raises OccupiedTicketSelected / TicketOutOfRange."""
        selected = self.selection.toggle(ticket)
        self.pack = None
        self.pack_quantity = 1
        return selected

    def quick_pick(self, quantity: int, rng: random.Random | None = None) -> list[int]:
        tickets = sorted(allocate(quantity, self.raffle.total_tickets, self.occupancy, rng=rng))
        self.selection.replace_all(tickets)
        self.pack = None
        self.pack_quantity = 1
        self.last_quick_pick = int(quantity)
        return tickets

    def spin_again(self, rng: random.Random | None = None) -> list[int]:
        if self.last_quick_pick < 1:
            raise ValueError("No previous quick pick to repeat")
        return self.quick_pick(self.last_quick_pick, rng=rng)

    def select_pack(self, pack: Pack, quantity: int = 1) -> None:
        if pack not in self.raffle.packs:
            raise ValueError("Pack is not part of this raffle")
        if int(quantity) < 1:
            raise ValueError("quantity must be >= 1")
        self.selection.clear()
        self.pack = pack
        self.pack_quantity = int(quantity)

    def set_pack_quantity(self, quantity: int) -> None:
        if self.pack is None:
            raise ValueError("No pack selected")
        if int(quantity) < 1:
            raise ValueError("quantity must be >= 1")
        self.pack_quantity = int(quantity)

    def clear_pack(self) -> None:
        self.pack = None
        self.pack_quantity = 1
        self.selection.clear()

    def clear_selection(self) -> None:
        self.selection.clear()

    def reconcile(self, occupancy: OccupancySnapshot) -> list[int]:
        return self.selection.reconcile(occupancy)

    def checkout_query(self) -> str:
        if self.pack is not None:
            return checkout_query(self.raffle, pack=self.pack, pack_quantity=self.pack_quantity)
        return checkout_query(self.raffle, tickets=self.selection.tickets)

    def to_session(self) -> dict:
        return {
            "raffle_id": self.raffle.id,
            "snapshot": snapshot_key(self.raffle, self.occupancy),
            "selected": self.selection.tickets,
            "pack": self.raffle.pack_position(self.pack) if self.pack is not None else 0,
            "pack_quantity": self.pack_quantity,
            "last_quick_pick": self.last_quick_pick,
        }

    @classmethod
    def from_session(cls, raffle: Raffle, data: dict | None, occupancy: OccupancySnapshot) -> "PurchaseFlow":
        """
        Rebuild a flow from its session slot. Restored tickets are checked
        against `occupancy`; pass the snapshot the flow was saved with
        (stored_snapshot) and reconcile() a fresh one to learn what was dropped.
        """
        data = data if isinstance(data, dict) and data.get("raffle_id") == raffle.id else {}
        try:
            position = int(data.get("pack") or 0)
        except (TypeError, ValueError):
            position = 0
        return cls(
            raffle,
            occupancy,
            selected=data.get("selected") or (),
            pack=raffle.pack_at(position),
            pack_quantity=data.get("pack_quantity") or 1,
            last_quick_pick=data.get("last_quick_pick") or 0,
        )


def session_key(raffle: Raffle) -> str:
    return f"{SESSION_PREFIX}{raffle.slug or raffle.id}"


def snapshot_key(raffle: Raffle, occupancy: OccupancySnapshot) -> str:
    # Same raffle and same occupied set share one cache entry across visitors.
    digest = hashlib.sha1(",".join(str(t) for t in occupancy.as_list()).encode("ascii")).hexdigest()
    return f"{SNAPSHOT_CACHE_PREFIX}{raffle.id}:{occupancy.total_tickets}:{digest}"


def stored_snapshot(session, raffle: Raffle) -> OccupancySnapshot | None:
    """
    The snapshot the raffle's flow was last saved with, or None when the
    session has no slot for this raffle or the cache entry is gone.
    """
    data = session.get(session_key(raffle))
    if not isinstance(data, dict) or data.get("raffle_id") != raffle.id or not data.get("snapshot"):
        return None
    occupied = cache.get(data["snapshot"])
    if occupied is None:
        return None
    return OccupancySnapshot.build(raffle.total_tickets, occupied)


def load_flow(session, raffle: Raffle, occupancy: OccupancySnapshot) -> PurchaseFlow:
    return PurchaseFlow.from_session(raffle, session.get(session_key(raffle)), occupancy)


def save_flow(session, flow: PurchaseFlow) -> None:
    data = flow.to_session()
    timeout = int(getattr(settings, "SESSION_COOKIE_AGE", SNAPSHOT_TIMEOUT) or SNAPSHOT_TIMEOUT)
    # add() keeps an existing entry; the content behind a key never changes.
    cache.add(data["snapshot"], flow.occupancy.as_list(), timeout)
    session[session_key(flow.raffle)] = data


def discard_flow(session, raffle: Raffle) -> None:
    session.pop(session_key(raffle), None)
