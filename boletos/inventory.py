"""
Occupancy snapshot and ticket universe.

A raffle has tickets 1..N. The occupancy snapshot is the set of numbers already
taken (paid or reserved) at the time the raffle page was loaded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class OccupancySnapshot:
    total_tickets: int
    tickets: frozenset[int] = frozenset()

    @classmethod
    def build(cls, total_tickets: int, tickets: Iterable) -> "OccupancySnapshot":
        """
        Keep only integers within 1..total_tickets.
        The API may report numbers outside the raffle range (bonus entries,
        stale data); those never enter the snapshot.
        """
        total = max(0, int(total_tickets or 0))
        kept = set()
        for t in tickets or ():
            if isinstance(t, bool):
                continue
            try:
                n = int(t)
            except (TypeError, ValueError):
                continue
            if 1 <= n <= total:
                kept.add(n)
        return cls(total_tickets=total, tickets=frozenset(kept))

    @classmethod
    def empty(cls, total_tickets: int = 0) -> "OccupancySnapshot":
        return cls(total_tickets=max(0, int(total_tickets or 0)))

    def __contains__(self, ticket) -> bool:
        return ticket in self.tickets

    def __len__(self) -> int:
        return len(self.tickets)

    @property
    def available_count(self) -> int:
        return self.total_tickets - len(self.tickets)

    def as_list(self) -> list[int]:
        return sorted(self.tickets)


def available_tickets(total_tickets: int, occupied: OccupancySnapshot) -> list[int]:
    """[1..N] minus the occupied set, ascending."""
    if not total_tickets or total_tickets <= 0:
        return []
    taken = occupied.tickets
    return [t for t in range(1, total_tickets + 1) if t not in taken]


def build_universe(total_tickets: int, occupied: OccupancySnapshot, hide_occupied: bool = False) -> list[int]:
    """
    Ordered list of tickets to display or sample from.

    hide_occupied=True: only available tickets, ascending.
    hide_occupied=False: available tickets ascending, then occupied ascending,
    so every number in 1..N appears exactly once.
    """
    if not total_tickets or total_tickets <= 0:
        return []
    available = available_tickets(total_tickets, occupied)
    if hide_occupied:
        return available
    return available + [t for t in occupied.as_list() if t <= total_tickets]
