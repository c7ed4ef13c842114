"""
Display windowing over the ticket universe.

Two interchangeable strategies share the same cell contract:
- Paginator: fixed-size pages (50 tickets), stepped by 1 or by 10.
- ScrollGrid: a logical grid whose column count follows the container width;
  only rows intersecting the visible window are materialized.

Both only read the universe, the occupancy snapshot and the selection.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from math import ceil
from typing import Callable, Container, Sequence

PAGE_SIZE = 50
PAGE_JUMP = 10

CELL_GAP = 12
MIN_CELL_SIZE = 48
DEFAULT_CELL_SIZE = 64
MIN_SCROLL_HEIGHT = 320
VISIBLE_ROWS_TARGET = 6
VIEWPORT_FRACTION = 0.6
OVERSCAN_ROWS = 1

# (min container width, columns); narrower screens get fewer, bigger cells.
COLUMN_BREAKPOINTS = (
    (1024, 10),
    (768, 8),
    (640, 7),
    (480, 6),
    (350, 5),
)
MIN_COLUMNS = 4


class CellState(str, Enum):
    AVAILABLE = "available"
    SELECTED = "selected"
    OCCUPIED = "occupied"


def ticket_label(ticket: int, padding: int) -> str:
    return f"{int(ticket):0{max(1, int(padding or 1))}d}"


@dataclass(frozen=True)
class Cell:
    ticket: int
    state: CellState
    label: str

    @property
    def activatable(self) -> bool:
        return self.state is not CellState.OCCUPIED

    def as_dict(self) -> dict:
        return {"ticket": self.ticket, "state": self.state.value, "label": self.label}


def make_cell(ticket: int, occupied: Container[int], selected: Container[int], padding: int) -> Cell:
    if ticket in occupied:
        state = CellState.OCCUPIED
    elif ticket in selected:
        state = CellState.SELECTED
    else:
        state = CellState.AVAILABLE
    return Cell(ticket=ticket, state=state, label=ticket_label(ticket, padding))


def activate(cell: Cell, on_ticket_activate: Callable[[int], object]):
    """Route a click on a cell to the single activation callback. Occupied cells do nothing."""
    if not cell.activatable:
        return None
    return on_ticket_activate(cell.ticket)


class Paginator:
    def __init__(self, universe_length: int, page: int = 1, page_size: int = PAGE_SIZE):
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.universe_length = max(0, int(universe_length or 0))
        self.page_size = page_size
        self.page = self.clamp(page)

    @property
    def total_pages(self) -> int:
        return max(1, ceil(self.universe_length / self.page_size))

    def clamp(self, page) -> int:
        try:
            page = int(page)
        except (TypeError, ValueError):
            page = 1
        return min(max(1, page), self.total_pages)

    def step(self, delta: int) -> int:
        """Move by delta pages, clamped. Stepping past either end stays on the edge page."""
        self.page = self.clamp(self.page + delta)
        return self.page

    def target(self, delta: int) -> int:
        """Page that step(delta) would land on, without moving."""
        return self.clamp(self.page + delta)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def bounds(self) -> tuple[int, int]:
        start = (self.page - 1) * self.page_size
        return start, min(start + self.page_size, self.universe_length)

    def page_tickets(self, universe: Sequence[int]) -> Sequence[int]:
        start, end = self.bounds
        return universe[start:end]

    def cells(self, universe: Sequence[int], occupied: Container[int], selected: Container[int], padding: int) -> list[Cell]:
        return [make_cell(t, occupied, selected, padding) for t in self.page_tickets(universe)]

    def navigation(self) -> dict:
        return {
            "page": self.page,
            "total_pages": self.total_pages,
            "jump_back": self.target(-PAGE_JUMP),
            "previous": self.target(-1),
            "next": self.target(1),
            "jump_forward": self.target(PAGE_JUMP),
            "has_previous": self.has_previous,
            "has_next": self.has_next,
        }


def columns_for_width(container_width: int) -> int:
    for min_width, columns in COLUMN_BREAKPOINTS:
        if container_width >= min_width:
            return columns
    return MIN_COLUMNS


def grid_index(row: int, col: int, columns: int) -> int:
    return row * columns + col


class ScrollGrid:
    """
    Virtualized grid geometry. Width/height are the measured container width
    and viewport height in CSS pixels; 0 means "not measured yet".
    """

    LOADING = "loading"
    EMPTY = "empty"
    READY = "ready"

    def __init__(self, universe_length: int, container_width: int = 0, viewport_height: int = 800, cell_gap: int = CELL_GAP):
        self.universe_length = max(0, int(universe_length or 0))
        self.container_width = max(0, int(container_width or 0))
        self.viewport_height = max(0, int(viewport_height or 0))
        self.cell_gap = cell_gap
        self.columns = columns_for_width(self.container_width)

    @property
    def cell_size(self) -> int:
        if self.columns <= 0 or self.container_width <= 0:
            return DEFAULT_CELL_SIZE
        total_gap = self.cell_gap * (self.columns - 1)
        usable = max(self.container_width - total_gap, 0)
        return max(usable // self.columns, MIN_CELL_SIZE)

    @property
    def row_height(self) -> int:
        return self.cell_size + self.cell_gap

    @property
    def grid_width(self) -> int:
        return min(self.container_width, self.columns * (self.cell_size + self.cell_gap) - self.cell_gap)

    @property
    def grid_height(self) -> int:
        desired = self.cell_size * VISIBLE_ROWS_TARGET
        by_viewport = int(self.viewport_height * VIEWPORT_FRACTION)
        return max(MIN_SCROLL_HEIGHT, min(desired, by_viewport or desired))

    @property
    def row_count(self) -> int:
        if self.columns <= 0 or self.universe_length <= 0:
            return 0
        return ceil(self.universe_length / self.columns)

    @property
    def status(self) -> str:
        if self.universe_length <= 0:
            return self.EMPTY
        if self.container_width <= 0:
            return self.LOADING
        return self.READY

    def index(self, row: int, col: int) -> int | None:
        """Linear universe index for a grid position, or None outside the universe."""
        if row < 0 or col < 0 or col >= self.columns:
            return None
        i = grid_index(row, col, self.columns)
        if i >= self.universe_length:
            return None
        return i

    def visible_rows(self, scroll_top: int = 0, overscan: int = OVERSCAN_ROWS) -> range:
        if self.status != self.READY:
            return range(0)
        scroll_top = max(0, int(scroll_top or 0))
        first = scroll_top // self.row_height
        last = (scroll_top + self.grid_height) // self.row_height
        first = max(0, first - overscan)
        last = min(self.row_count - 1, last + overscan)
        if first > last:
            return range(0)
        return range(first, last + 1)

    def row_cells(self, row: int, universe: Sequence[int], occupied: Container[int], selected: Container[int], padding: int) -> list[Cell | None]:
        """One grid row; positions past the end of the universe are None (render empty)."""
        cells: list[Cell | None] = []
        for col in range(self.columns):
            i = self.index(row, col)
            cells.append(None if i is None else make_cell(universe[i], occupied, selected, padding))
        return cells

    def window(self, universe: Sequence[int], occupied: Container[int], selected: Container[int], padding: int, scroll_top: int = 0) -> dict:
        rows = [
            {"row": r, "cells": [c.as_dict() if c else None for c in self.row_cells(r, universe, occupied, selected, padding)]}
            for r in self.visible_rows(scroll_top)
        ]
        return {
            "status": self.status,
            "columns": self.columns,
            "cell_size": self.cell_size,
            "cell_gap": self.cell_gap,
            "row_height": self.row_height,
            "row_count": self.row_count,
            "grid_width": self.grid_width,
            "grid_height": self.grid_height,
            "rows": rows,
        }
