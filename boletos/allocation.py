"""
Random allocation of free tickets ("quick pick" and pack fulfillment).

Draws are uniform without replacement using a partial Fisher-Yates shuffle,
so every free ticket has the same chance and the cost is O(available).
"""

from __future__ import annotations

import logging
import random
from typing import Sequence

from .errors import InsufficientAvailability
from .inventory import OccupancySnapshot, available_tickets

logger = logging.getLogger(__name__)

QUICK_PICK_QUANTITIES = (1, 3, 5, 10, 20, 50, 100, 200, 250)

_system_random = random.SystemRandom()


def draw(population: Sequence[int], quantity: int, rng: random.Random | None = None) -> list[int]:
    """
    Pick `quantity` distinct elements of `population` uniformly at random.
    The population is copied, never mutated.
    """
    if quantity < 1:
        raise ValueError("quantity must be >= 1")
    if quantity > len(population):
        raise InsufficientAvailability(requested=quantity, available=len(population))
    rng = rng or _system_random
    pool = list(population)
    n = len(pool)
    for i in range(quantity):
        j = i + rng.randrange(n - i)
        pool[i], pool[j] = pool[j], pool[i]
    return pool[:quantity]


def allocate(quantity: int, total_tickets: int, occupancy: OccupancySnapshot, rng: random.Random | None = None) -> list[int]:
    """
    Draw `quantity` free tickets from 1..total_tickets.

    Raises InsufficientAvailability (with the real available count) when there
    are not enough free tickets; nothing is allocated in that case.
    Each call is an independent draw. Result order is random; sort for display.
    """
    quantity = int(quantity)
    if quantity < 1:
        raise ValueError("quantity must be >= 1")
    available = available_tickets(total_tickets, occupancy)
    if len(available) < quantity:
        logger.info("Allocation of %s tickets refused: %s available", quantity, len(available))
        raise InsufficientAvailability(requested=quantity, available=len(available))
    return draw(available, quantity, rng=rng)
