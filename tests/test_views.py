"""Tests for the storefront pages (raffle detail, actions, checkout).

The REST backend is patched out; sessions and messages are real.
Run with: pytest tests/test_views.py -v
"""

from unittest.mock import patch

import pytest
from django.core.cache import cache
from django.urls import reverse

from boletos import api
from boletos.flow import SNAPSHOT_CACHE_PREFIX, session_key

SLUG = "rifa-camioneta"


@pytest.fixture
def backend(raffle, occupancy):
    """Patch the REST client with a raffle of 100 tickets, {5, 10, 15} taken."""
    with patch("boletos.api.get_raffle", return_value=raffle) as get_raffle, patch(
        "boletos.api.get_occupied_tickets", return_value=occupancy
    ) as get_occupied, patch(
        "boletos.api.get_display_preferences",
        return_value=api.DisplayPreferences(listing_mode="paginado", hide_occupied=False),
    ) as prefs, patch("boletos.api.create_order", return_value={"folio": "F-001"}) as create_order:
        yield {
            "get_raffle": get_raffle,
            "get_occupied_tickets": get_occupied,
            "get_display_preferences": prefs,
            "create_order": create_order,
        }


def _action(client, **data):
    return client.post(reverse("boletos:raffle_action", args=[SLUG]), data, follow=True)


def _selected(client, raffle):
    return client.session[session_key(raffle)]["selected"]


CUSTOMER = {
    "full_name": "Ana Pérez",
    "phone": "55 1234 5678",
    "district": "CDMX",
    "email": "",
    "purchase_token": "tok-1",
}


class TestRaffleDetail:
    """Tests for the raffle page."""

    def test_unknown_raffle(self, client, backend):
        """Unknown slugs render the not found page."""
        backend["get_raffle"].return_value = None
        response = client.get(reverse("boletos:raffle_detail", args=["nada"]))
        assert response.status_code == 404
        assert "Rifa no encontrada" in response.content.decode()

    def test_backend_down(self, client, backend):
        """Backend failures while loading the raffle answer 503."""
        backend["get_raffle"].side_effect = api.ApiError("down")
        response = client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        assert response.status_code == 503

    def test_paginated_grid(self, client, backend):
        """The first page shows 50 cells out of 2 pages."""
        response = client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        assert response.status_code == 200
        assert len(response.context["cells"]) == 50
        assert response.context["nav"]["total_pages"] == 2
        assert "Página 1 de 2" in response.content.decode()

    def test_page_is_clamped(self, client, backend):
        """Out of range pages land on the last page."""
        response = client.get(reverse("boletos:raffle_detail", args=[SLUG]), {"pagina": 9})
        assert response.context["nav"]["page"] == 2

    def test_hide_occupied_override(self, client, backend):
        """?ocultar=1 removes occupied tickets from the grid."""
        response = client.get(reverse("boletos:raffle_detail", args=[SLUG]), {"ocultar": "1"})
        assert response.context["universe_length"] == 97

    def test_reload_drops_tickets_taken_meanwhile(self, client, backend, raffle):
        """Tickets someone else bought are removed with a warning."""
        from boletos.inventory import OccupancySnapshot

        client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        _action(client, action="toggle", ticket="7")
        backend["get_occupied_tickets"].return_value = OccupancySnapshot.build(100, [5, 7, 10, 15])
        response = client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        assert "Los boletos 7 ya fueron apartados" in response.content.decode()
        assert _selected(client, raffle) == []


class TestRaffleActions:
    """Tests for ticket clicks, quick pick and packs."""

    def test_toggle_available_ticket(self, client, backend, raffle):
        """Clicking a free ticket selects it; clicking again removes it."""
        client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        _action(client, action="toggle", ticket="7")
        assert _selected(client, raffle) == [7]
        _action(client, action="toggle", ticket="7")
        assert _selected(client, raffle) == []

    def test_toggle_occupied_ticket(self, client, backend, raffle):
        """Clicking a taken ticket shows a warning and selects nothing."""
        client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        response = _action(client, action="toggle", ticket="10")
        assert "Este boleto ya está ocupado. Por favor selecciona otro." in response.content.decode()
        assert _selected(client, raffle) == []

    def test_toggle_non_ascii_digit(self, client, backend, raffle):
        """Unicode digits that int() cannot parse are rejected as invalid tickets."""
        client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        response = _action(client, action="toggle", ticket="²")
        assert response.status_code == 200
        assert "no existe en esta rifa" in response.content.decode()
        assert _selected(client, raffle) == []

    def test_toggle_without_page_load_uses_fresh_snapshot(self, client, backend, raffle):
        """A session with no stored snapshot still refuses occupied tickets."""
        response = _action(client, action="toggle", ticket="10")
        assert "Este boleto ya está ocupado. Por favor selecciona otro." in response.content.decode()
        assert _selected(client, raffle) == []
        assert backend["get_occupied_tickets"].called

    def test_toggle_after_snapshot_evicted(self, client, backend, raffle):
        """If the cached snapshot is gone the action fetches a fresh one."""
        client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        cache.delete(client.session[session_key(raffle)]["snapshot"])
        assert client.session[session_key(raffle)]["snapshot"].startswith(SNAPSHOT_CACHE_PREFIX)
        calls = backend["get_occupied_tickets"].call_count
        client.post(reverse("boletos:raffle_action", args=[SLUG]), {"action": "toggle", "ticket": "15"})
        assert _selected(client, raffle) == []
        assert backend["get_occupied_tickets"].call_count == calls + 1

    def test_action_when_occupancy_unavailable(self, client, backend):
        """No snapshot and a failing backend: nothing changes and the visitor is told."""
        backend["get_occupied_tickets"].side_effect = api.ApiError("down")
        response = client.post(reverse("boletos:raffle_action", args=[SLUG]), {"action": "toggle", "ticket": "7"})
        assert response.status_code == 302

    def test_toggle_out_of_range(self, client, backend, raffle):
        """Numbers outside the raffle are rejected."""
        client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        response = _action(client, action="toggle", ticket="500")
        assert "no existe en esta rifa" in response.content.decode()

    def test_quick_pick(self, client, backend, raffle, occupancy):
        """Quick pick selects free tickets and auto-applies a matching pack."""
        client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        response = _action(client, action="quick_pick", quantity="5")
        selected = _selected(client, raffle)
        assert len(selected) == 5
        assert not set(selected) & occupancy.tickets
        assert response.context["quote"].applied_automatically
        assert response.context["checkout_url"].endswith("tickets=" + ",".join(str(t) for t in selected))

    def test_quick_pick_any_quantity(self, client, backend, raffle):
        """Quantities outside the offered list are accepted too."""
        client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        _action(client, action="quick_pick", quantity="7")
        assert len(_selected(client, raffle)) == 7

    def test_quick_pick_rejects_zero(self, client, backend, raffle):
        """Zero is not a quantity."""
        client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        response = _action(client, action="quick_pick", quantity="0")
        assert "Selecciona una cantidad válida." in response.content.decode()
        assert _selected(client, raffle) == []

    def test_quick_pick_insufficient(self, client, backend, raffle):
        """Asking for more than what is left reports how many remain."""
        from boletos.inventory import OccupancySnapshot

        backend["get_occupied_tickets"].return_value = OccupancySnapshot.build(100, range(1, 81))
        client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        response = _action(client, action="quick_pick", quantity="50")
        assert "Solo quedan 20 boletos disponibles." in response.content.decode()
        assert _selected(client, raffle) == []

    def test_select_pack(self, client, backend, raffle):
        """Choosing a pack clears the selection and links to checkout by position."""
        client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        _action(client, action="toggle", ticket="7")
        response = _action(client, action="select_pack", pack="2", quantity="3")
        assert _selected(client, raffle) == []
        assert response.context["quote"].total == 1050
        assert response.context["checkout_url"].endswith("pack=2&quantity=3")

    def test_unknown_pack(self, client, backend):
        """Invalid pack positions are refused."""
        client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        response = _action(client, action="select_pack", pack="9", quantity="1")
        assert "Selecciona un paquete válido." in response.content.decode()

    def test_actions_require_post(self, client, backend):
        """The action endpoint only accepts POST."""
        response = client.get(reverse("boletos:raffle_action", args=[SLUG]))
        assert response.status_code == 405


class TestTicketWindow:
    """Tests for the scroll mode JSON endpoint."""

    def test_window_rows(self, client, backend):
        """A measured container gets geometry and visible rows."""
        client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        response = client.get(
            reverse("boletos:ticket_window", args=[SLUG]), {"ancho": 1024, "alto": 800, "desplazamiento": 0}
        )
        data = response.json()
        assert data["status"] == "ready"
        assert data["columns"] == 10
        assert data["rows"][0]["cells"][0] == {"ticket": 1, "state": "available", "label": "001"}

    def test_unmeasured_container(self, client, backend):
        """Width 0 answers loading without rows."""
        client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        data = client.get(reverse("boletos:ticket_window", args=[SLUG]), {"ancho": 0}).json()
        assert data["status"] == "loading"
        assert data["rows"] == []


class TestCheckout:
    """Tests for the checkout page and order submission."""

    def test_individual_tickets_priced_like_detail_page(self, client, backend):
        """Five tickets match the 5-ticket pack on checkout too."""
        response = client.get(reverse("boletos:checkout", args=[SLUG]), {"tickets": "1,2,3,4,6"})
        assert response.status_code == 200
        assert response.context["tickets"] == [1, 2, 3, 4, 6]
        assert response.context["quote"].total == 200

    def test_non_ascii_digits_in_link(self, client, backend):
        """Unparseable ticket parts in the link are ignored."""
        response = client.get(reverse("boletos:checkout", args=[SLUG]), {"tickets": "1,²"})
        assert response.status_code == 200
        assert response.context["tickets"] == [1]

    def test_occupied_tickets_are_removed(self, client, backend):
        """Tickets taken since the link was made are dropped with a warning."""
        response = client.get(reverse("boletos:checkout", args=[SLUG]), {"tickets": "1,5"})
        assert response.context["tickets"] == [1]
        assert "ya no están disponibles" in response.content.decode()

    def test_pack_gets_random_free_tickets(self, client, backend, occupancy):
        """A pack link draws ticket_count x quantity free tickets."""
        response = client.get(reverse("boletos:checkout", args=[SLUG]), {"pack": "1", "quantity": "2"})
        tickets = response.context["tickets"]
        assert len(tickets) == 10
        assert tickets == sorted(tickets)
        assert not set(tickets) & occupancy.tickets
        assert response.context["quote"].total == 400

    def test_empty_link_goes_back(self, client, backend):
        """Nothing to buy redirects to the raffle page."""
        response = client.get(reverse("boletos:checkout", args=[SLUG]))
        assert response.status_code == 302
        assert response.url == reverse("boletos:raffle_detail", args=[SLUG])

    def test_order_created(self, client, backend, raffle):
        """A valid form creates the order and shows its folio."""
        client.get(reverse("boletos:raffle_detail", args=[SLUG]))
        client.get(reverse("boletos:checkout", args=[SLUG]), {"tickets": "1,2"})
        response = client.post(reverse("boletos:checkout", args=[SLUG]), CUSTOMER)
        assert response.status_code == 302
        assert response.url == reverse("boletos:order_created", args=["F-001"])

        kwargs = backend["create_order"].call_args.kwargs
        assert kwargs["tickets"] == [1, 2]
        assert kwargs["total"] == 100
        assert kwargs["customer"] == {"name": "ANA PÉREZ", "phone": "5512345678", "email": "", "district": "CDMX"}
        assert kwargs["notes"] == "Compra de 2 boletos para Rifa Camioneta"
        assert session_key(raffle) not in client.session

        page = client.get(response.url)
        assert page.status_code == 200
        assert "F-001" in page.content.decode()

    def test_pack_order_notes(self, client, backend):
        """Pack orders describe the pack in the notes."""
        client.get(reverse("boletos:checkout", args=[SLUG]), {"pack": "2", "quantity": "1"})
        client.post(reverse("boletos:checkout", args=[SLUG]), CUSTOMER)
        kwargs = backend["create_order"].call_args.kwargs
        assert kwargs["notes"] == 'Compra de 1 paquete(s) "Pack 10" (10 boletos) para Rifa Camioneta'
        assert len(kwargs["tickets"]) == 10

    def test_double_submit_creates_one_order(self, client, backend):
        """Reposting the same purchase token does not create a second order."""
        client.get(reverse("boletos:checkout", args=[SLUG]), {"tickets": "1"})
        client.post(reverse("boletos:checkout", args=[SLUG]), CUSTOMER)
        client.get(reverse("boletos:checkout", args=[SLUG]), {"tickets": "1"})
        response = client.post(reverse("boletos:checkout", args=[SLUG]), CUSTOMER)
        assert response.url == reverse("boletos:order_created", args=["F-001"])
        assert backend["create_order"].call_count == 1

    def test_failed_order_keeps_tickets(self, client, backend):
        """A rejected order shows the error and keeps the same tickets on the page."""
        backend["create_order"].side_effect = api.ApiError("HTTP 409: ocupado", status=409)
        client.get(reverse("boletos:checkout", args=[SLUG]), {"tickets": "3,4"})
        response = client.post(reverse("boletos:checkout", args=[SLUG]), CUSTOMER)
        assert response.status_code == 409
        assert response.context["tickets"] == [3, 4]
        assert "Tus boletos siguen seleccionados" in response.content.decode()

    def test_invalid_form(self, client, backend):
        """Bad customer data re-renders the form without calling the backend."""
        client.get(reverse("boletos:checkout", args=[SLUG]), {"tickets": "3"})
        response = client.post(reverse("boletos:checkout", args=[SLUG]), dict(CUSTOMER, phone="123"))
        assert response.status_code == 200
        assert "El número debe tener 10 dígitos." in response.content.decode()
        assert backend["create_order"].call_count == 0

    def test_order_page_is_private(self, client, backend):
        """Folios not created in this session are not shown."""
        response = client.get(reverse("boletos:order_created", args=["F-999"]))
        assert response.status_code == 404
