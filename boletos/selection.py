from __future__ import annotations

from typing import Iterable

from .errors import OccupiedTicketSelected, TicketOutOfRange
from .inventory import OccupancySnapshot


class SelectionState:
    """
    Tickets the visitor has tentatively chosen for one raffle.

    Never contains an occupied ticket: toggling an occupied ticket raises
    OccupiedTicketSelected and leaves the selection unchanged.
    """

    def __init__(self, occupancy: OccupancySnapshot, tickets: Iterable[int] = ()):
        self._occupancy = occupancy
        self._selected: set[int] = set()
        # Restored selections (session, links) go through the same checks.
        for t in tickets or ():
            try:
                self._check(t)
            except (OccupiedTicketSelected, TicketOutOfRange):
                continue
            self._selected.add(int(t))

    @property
    def occupancy(self) -> OccupancySnapshot:
        return self._occupancy

    def _check(self, ticket) -> None:
        total = self._occupancy.total_tickets
        if isinstance(ticket, bool) or not isinstance(ticket, int) or not (1 <= ticket <= total):
            raise TicketOutOfRange(ticket, total)
        if ticket in self._occupancy:
            raise OccupiedTicketSelected(ticket)

    def toggle(self, ticket: int) -> bool:
        """Add or remove a ticket. Returns True when the ticket ended up selected."""
        self._check(ticket)
        if ticket in self._selected:
            self._selected.discard(ticket)
            return False
        self._selected.add(ticket)
        return True

    def replace_all(self, tickets: Iterable[int]) -> None:
        """
        Unconditional replacement, used by random allocation and pack clearing.
        The caller guarantees the tickets are free.
        """
        self._selected = {int(t) for t in tickets}

    def clear(self) -> None:
        self._selected = set()

    def reconcile(self, occupancy: OccupancySnapshot) -> list[int]:
        """
        Switch to a fresh occupancy snapshot. Selected tickets that are now
        occupied (or out of range) are dropped and returned.
        """
        self._occupancy = occupancy
        dropped = sorted(
            t for t in self._selected if t in occupancy or not (1 <= t <= occupancy.total_tickets)
        )
        self._selected.difference_update(dropped)
        return dropped

    @property
    def tickets(self) -> list[int]:
        return sorted(self._selected)

    def __contains__(self, ticket) -> bool:
        return ticket in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    def __bool__(self) -> bool:
        return bool(self._selected)
