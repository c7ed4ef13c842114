"""Tests for the visitor's ticket selection.

Run with: pytest tests/test_selection.py -v
"""

import pytest

from boletos.errors import ErrorCode, OccupiedTicketSelected, TicketOutOfRange
from boletos.inventory import OccupancySnapshot
from boletos.selection import SelectionState


class TestToggle:
    """Tests for manual picks."""

    def test_toggle_twice_removes(self, occupancy):
        """Toggling a selected ticket removes it."""
        selection = SelectionState(occupancy)
        assert selection.toggle(7) is True
        assert selection.toggle(7) is False
        assert selection.tickets == []

    def test_toggle_occupied_is_rejected(self, occupancy):
        """Toggling an occupied ticket raises and leaves the selection unchanged."""
        selection = SelectionState(occupancy, [7])
        with pytest.raises(OccupiedTicketSelected) as exc:
            selection.toggle(10)
        assert exc.value.code is ErrorCode.OCCUPIED_TICKET_SELECTED
        assert exc.value.message == "Este boleto ya está ocupado. Por favor selecciona otro."
        assert selection.tickets == [7]

    @pytest.mark.parametrize("ticket", [0, 101, -1, True, "7"])
    def test_toggle_out_of_range(self, occupancy, ticket):
        """Numbers outside 1..N (and non integers) are rejected."""
        selection = SelectionState(occupancy)
        with pytest.raises(TicketOutOfRange):
            selection.toggle(ticket)
        assert not selection


class TestRestoreAndReconcile:
    """Tests for keeping the selection disjoint from occupancy."""

    def test_restored_selection_drops_invalid_tickets(self, occupancy):
        """Restored tickets that are occupied or out of range are skipped."""
        selection = SelectionState(occupancy, [1, 5, 200, 3])
        assert selection.tickets == [1, 3]

    def test_reconcile_drops_newly_occupied(self, occupancy):
        """A fresh snapshot removes tickets someone else took meanwhile."""
        selection = SelectionState(occupancy, [1, 2, 3])
        fresh = OccupancySnapshot.build(100, [2, 3, 5])
        assert selection.reconcile(fresh) == [2, 3]
        assert selection.tickets == [1]
        assert selection.occupancy is fresh
        assert not set(selection.tickets) & fresh.tickets

    def test_replace_all_and_clear(self, occupancy):
        """replace_all swaps the whole selection; clear empties it."""
        selection = SelectionState(occupancy, [1])
        selection.replace_all([20, 30])
        assert selection.tickets == [20, 30]
        selection.clear()
        assert len(selection) == 0
