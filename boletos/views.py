from __future__ import annotations

import logging
import uuid

from django.contrib import messages
from django.core.cache import cache
from django.http import Http404, JsonResponse
from django.shortcuts import redirect, render
from django.urls import reverse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from . import api
from .allocation import QUICK_PICK_QUANTITIES, allocate
from .catalog import Raffle
from .errors import (
    BoletosError,
    InvalidRaffleState,
    OccupiedTicketSelected,
    OrderSubmissionFailure,
    TicketOutOfRange,
)
from .flow import discard_flow, load_flow, save_flow, stored_snapshot
from .forms import CheckoutForm, PackForm, QuickPickForm
from .handoff import decode
from .inventory import OccupancySnapshot, build_universe
from .pricing import pack_offers, quote_for_raffle
from .selection import SelectionState
from .windowing import Paginator, ScrollGrid, activate, make_cell

logger = logging.getLogger(__name__)

RAFFLE_SESSION_PREFIX = "boletos:rifa:"
CHECKOUT_SESSION_PREFIX = "boletos:checkout:"
ORDERS_SESSION_KEY = "boletos:pedidos"
ORDER_TOKENS_SESSION_KEY = "boletos:order_tokens"


def _client_ip(request) -> str:
    # Best-effort IP extraction behind proxies.
    xff = (request.META.get("HTTP_X_FORWARDED_FOR") or "").split(",")[0].strip()
    return xff or (request.META.get("REMOTE_ADDR") or "unknown")


def _rate_limit(*, key: str, limit: int, window_seconds: int) -> bool:
    """
    Simple counter-based rate limit using Django cache.
    Returns True if allowed, False if limited.
    """
    now_count = cache.get(key)
    if now_count is None:
        cache.set(key, 1, timeout=window_seconds)
        return True
    now_count = int(now_count) + 1
    if now_count > int(limit):
        return False
    cache.set(key, now_count, timeout=window_seconds)
    return True


def _toast(request, error: BoletosError) -> None:
    messages.error(request, f"{error.title}. {error.message}")


def _not_found(request, status: int = 404, message: str = ""):
    return render(request, "boletos/not_found.html", {"message": message}, status=status)


def _fetch_raffle(request, slug: str) -> Raffle | None:
    """Load the raffle from the backend (page load) and remember it for this visit."""
    raffle = api.get_raffle(slug)
    if raffle is not None:
        request.session[f"{RAFFLE_SESSION_PREFIX}{slug}"] = raffle.extra
    return raffle


def _session_raffle(request, slug: str) -> Raffle | None:
    """Raffle data from the current visit; falls back to the backend if the session lost it."""
    data = request.session.get(f"{RAFFLE_SESSION_PREFIX}{slug}")
    if isinstance(data, dict) and data:
        return Raffle.from_api({**data, "slug": data.get("slug") or slug})
    return _fetch_raffle(request, slug)


def _action_flow(request, raffle: Raffle):
    """
    Flow checked against the snapshot of the last page load. Without one
    (new or expired session) a fresh snapshot is fetched; may raise ApiError.
    """
    occupancy = stored_snapshot(request.session, raffle)
    if occupancy is None:
        occupancy = api.get_occupied_tickets(raffle) if raffle.has_tickets else OccupancySnapshot.empty()
    return load_flow(request.session, raffle, occupancy)


def _hide_occupied(request, prefs: api.DisplayPreferences) -> bool:
    raw = (request.GET.get("ocultar") or request.POST.get("ocultar") or "").strip()
    if raw in ("1", "0"):
        return raw == "1"
    return prefs.hide_occupied


def _detail_url(slug: str, *, page=None, hide=None) -> str:
    url = reverse("boletos:raffle_detail", args=[slug])
    params = []
    if page and str(page).isdecimal():
        params.append(f"pagina={int(page)}")
    if hide is not None:
        params.append(f"ocultar={'1' if hide else '0'}")
    return f"{url}?{'&'.join(params)}" if params else url


@require_GET
def raffle_detail(request, slug: str):
    try:
        raffle = _fetch_raffle(request, slug)
    except api.ApiError as e:
        logger.warning("Raffle %s could not be loaded: %s", slug, e)
        return _not_found(request, status=503, message="No pudimos cargar la rifa. Intenta de nuevo en unos minutos.")
    if raffle is None:
        return _not_found(request)

    stored = stored_snapshot(request.session, raffle)
    if raffle.has_tickets:
        try:
            occupancy = api.get_occupied_tickets(raffle)
        except api.ApiError as e:
            # Keep the previous snapshot; the order API still rejects double sales.
            logger.warning("Occupied tickets for %s unavailable: %s", raffle.id, e)
            messages.warning(request, "No pudimos actualizar los boletos ocupados. Algunos podrían ya no estar disponibles.")
            occupancy = stored if stored is not None else OccupancySnapshot.empty(raffle.total_tickets)
    else:
        occupancy = OccupancySnapshot.empty()
    flow = load_flow(request.session, raffle, stored if stored is not None else occupancy)
    dropped = flow.reconcile(occupancy)
    if dropped:
        labels = ", ".join(str(t) for t in dropped)
        messages.warning(request, f"Los boletos {labels} ya fueron apartados y se quitaron de tu selección.")
    save_flow(request.session, flow)

    prefs = api.get_display_preferences()
    hide = _hide_occupied(request, prefs)
    universe = build_universe(raffle.total_tickets, occupancy, hide_occupied=hide)
    paginator = Paginator(len(universe), page=request.GET.get("pagina") or 1)
    cells = []
    if prefs.listing_mode == api.LISTING_PAGINATED:
        cells = paginator.cells(universe, occupancy, flow.selection, raffle.ticket_padding)

    quote = flow.quote()
    checkout_url = ""
    if not flow.is_empty:
        checkout_url = f"{reverse('boletos:checkout', args=[raffle.slug])}?{flow.checkout_query()}"

    return render(
        request,
        "boletos/raffle_detail.html",
        {
            "raffle": raffle,
            "flow": flow,
            "quote": quote,
            "offers": pack_offers(raffle),
            "listing_mode": prefs.listing_mode,
            "hide_occupied": hide,
            "universe_length": len(universe),
            "available_count": occupancy.available_count,
            "cells": cells,
            "nav": paginator.navigation(),
            "quick_pick_quantities": QUICK_PICK_QUANTITIES,
            "checkout_url": checkout_url,
            "window_url": reverse("boletos:ticket_window", args=[raffle.slug]),
        },
    )


@require_POST
def raffle_action(request, slug: str):
    """
    Every interaction on the raffle page (ticket click, quick pick, pack
    selection) posts here, mutates the session flow and redirects back.
    """
    try:
        raffle = _session_raffle(request, slug)
    except api.ApiError as e:
        logger.warning("Raffle %s could not be loaded: %s", slug, e)
        return _not_found(request, status=503, message="No pudimos cargar la rifa. Intenta de nuevo en unos minutos.")
    if raffle is None:
        return _not_found(request)

    try:
        flow = _action_flow(request, raffle)
    except api.ApiError as e:
        logger.warning("Occupied tickets for %s unavailable: %s", raffle.id, e)
        messages.error(request, "No pudimos verificar los boletos disponibles. Intenta de nuevo.")
        return redirect("boletos:raffle_detail", slug=slug)
    action = (request.POST.get("action") or "").strip()
    try:
        if not raffle.has_tickets:
            raise InvalidRaffleState()
        if action == "toggle":
            raw = (request.POST.get("ticket") or "").strip()
            if not raw.isdecimal():
                raise TicketOutOfRange(raw, raffle.total_tickets)
            ticket = int(raw)
            cell = make_cell(ticket, flow.occupancy, flow.selection, raffle.ticket_padding)
            if not cell.activatable:
                # Occupied cells never activate; a forged click still gets the warning.
                raise OccupiedTicketSelected(ticket)
            activate(cell, flow.toggle)
        elif action == "quick_pick":
            form = QuickPickForm(request.POST)
            if form.is_valid():
                tickets = flow.quick_pick(form.cleaned_data["quantity"])
                messages.success(request, f"¡Listo! Te tocaron {len(tickets)} boletos al azar.")
            else:
                messages.error(request, "Selecciona una cantidad válida.")
        elif action == "spin_again":
            if flow.last_quick_pick:
                tickets = flow.spin_again()
                messages.success(request, f"¡Listo! Te tocaron {len(tickets)} boletos al azar.")
        elif action == "select_pack":
            form = PackForm(request.POST, raffle=raffle)
            if form.is_valid():
                flow.select_pack(form.cleaned_data["pack"], form.cleaned_data["quantity"])
            else:
                messages.error(request, "Selecciona un paquete válido.")
        elif action == "pack_quantity":
            raw = (request.POST.get("quantity") or "").strip()
            if flow.pack is not None and raw.isdecimal() and int(raw) >= 1:
                flow.set_pack_quantity(int(raw))
        elif action == "clear_pack":
            flow.clear_pack()
        elif action == "clear":
            flow.clear_selection()
        else:
            messages.error(request, "Acción no válida.")
    except BoletosError as e:
        _toast(request, e)
    save_flow(request.session, flow)

    hide = None
    raw_hide = (request.POST.get("ocultar") or "").strip()
    if raw_hide in ("1", "0"):
        hide = raw_hide == "1"
    return redirect(_detail_url(slug, page=request.POST.get("pagina") or None, hide=hide))


@require_GET
def ticket_window(request, slug: str):
    """
    Scroll mode: geometry plus the visible rows for the measured container.
    ancho=0 (not measured yet) answers status "loading".
    """
    try:
        raffle = _session_raffle(request, slug)
    except api.ApiError as e:
        logger.warning("Raffle %s could not be loaded: %s", slug, e)
        return JsonResponse({"status": "error"}, status=503)
    if raffle is None:
        return JsonResponse({"status": "not_found"}, status=404)

    try:
        flow = _action_flow(request, raffle)
    except api.ApiError as e:
        logger.warning("Occupied tickets for %s unavailable: %s", raffle.id, e)
        return JsonResponse({"status": "error"}, status=503)

    def _int(name: str, default: int = 0) -> int:
        raw = (request.GET.get(name) or "").strip()
        return int(raw) if raw.isdecimal() else default

    hide = _hide_occupied(request, api.get_display_preferences())
    universe = build_universe(raffle.total_tickets, flow.occupancy, hide_occupied=hide)
    grid = ScrollGrid(len(universe), container_width=_int("ancho"), viewport_height=_int("alto", 800))
    data = grid.window(
        universe,
        flow.occupancy,
        flow.selection,
        raffle.ticket_padding,
        scroll_top=_int("desplazamiento"),
    )
    data["universe_length"] = len(universe)
    return JsonResponse(data)


def _checkout_key(slug: str) -> str:
    return f"{CHECKOUT_SESSION_PREFIX}{slug}"


def _prepare_checkout(request, raffle: Raffle, occupancy: OccupancySnapshot):
    """
    Rebuild the selection from the link parameters. Pack purchases get their
    concrete tickets from a fresh random draw on every load.
    Returns the session state dict, or None when there is nothing to buy.
    """
    wanted = decode(raffle, request.GET)
    if wanted.is_empty:
        return None
    if wanted.pack is not None:
        count = wanted.pack.ticket_count * wanted.pack_quantity
        tickets = sorted(allocate(count, raffle.total_tickets, occupancy))
        logger.info(
            "Assigned %s random tickets for pack %r x%s on raffle %s",
            len(tickets), wanted.pack.label, wanted.pack_quantity, raffle.id,
        )
        return {
            "tickets": tickets,
            "pack": raffle.pack_position(wanted.pack),
            "pack_quantity": wanted.pack_quantity,
        }

    selection = SelectionState(occupancy, wanted.tickets)
    lost = [t for t in wanted.tickets if t not in selection]
    if lost:
        labels = ", ".join(str(t) for t in lost)
        messages.warning(request, f"Los boletos {labels} ya no están disponibles y se quitaron de tu compra.")
    if not selection:
        return None
    return {"tickets": selection.tickets, "pack": 0, "pack_quantity": 1}


def _checkout_quote(raffle: Raffle, state: dict):
    pack = raffle.pack_at(int(state.get("pack") or 0))
    if pack is not None:
        return quote_for_raffle(raffle, pack=pack, pack_quantity=int(state.get("pack_quantity") or 1))
    return quote_for_raffle(raffle, selected_count=len(state.get("tickets") or ()))


def _order_notes(raffle: Raffle, quote) -> str:
    if quote.pack is not None and not quote.applied_automatically:
        return (
            f'Compra de {quote.pack_quantity} paquete(s) "{quote.pack.label}" '
            f"({quote.ticket_count} boletos) para {raffle.title}"
        )
    return f"Compra de {quote.ticket_count} boletos para {raffle.title}"


@require_http_methods(["GET", "POST"])
def checkout(request, slug: str):
    if request.method == "POST":
        return _submit_order(request, slug)

    try:
        raffle = _fetch_raffle(request, slug)
    except api.ApiError as e:
        logger.warning("Raffle %s could not be loaded: %s", slug, e)
        return _not_found(request, status=503, message="No pudimos cargar la rifa. Intenta de nuevo en unos minutos.")
    if raffle is None:
        return _not_found(request)
    if not raffle.has_tickets:
        _toast(request, InvalidRaffleState())
        return redirect("boletos:raffle_detail", slug=slug)

    try:
        occupancy = api.get_occupied_tickets(raffle)
    except api.ApiError as e:
        logger.warning("Occupied tickets for %s unavailable: %s", raffle.id, e)
        messages.error(request, "No pudimos verificar los boletos disponibles. Intenta de nuevo.")
        return redirect("boletos:raffle_detail", slug=slug)

    try:
        state = _prepare_checkout(request, raffle, occupancy)
    except BoletosError as e:
        _toast(request, e)
        return redirect("boletos:raffle_detail", slug=slug)
    if state is None:
        messages.info(request, "Selecciona tus boletos o un paquete para continuar.")
        return redirect("boletos:raffle_detail", slug=slug)

    request.session[_checkout_key(slug)] = state
    return _render_checkout(request, raffle, state, CheckoutForm(initial={"purchase_token": uuid.uuid4().hex}))


def _render_checkout(request, raffle: Raffle, state: dict, form: CheckoutForm, status: int = 200, **extra):
    quote = _checkout_quote(raffle, state)
    context = {
        "raffle": raffle,
        "tickets": state.get("tickets") or [],
        "quote": quote,
        "form": form,
    }
    context.update(extra)
    return render(request, "boletos/checkout.html", context, status=status)


def _submit_order(request, slug: str):
    try:
        raffle = _session_raffle(request, slug)
    except api.ApiError as e:
        logger.warning("Raffle %s could not be loaded: %s", slug, e)
        return _not_found(request, status=503, message="No pudimos cargar la rifa. Intenta de nuevo en unos minutos.")
    if raffle is None:
        return _not_found(request)
    state = request.session.get(_checkout_key(slug))
    if not isinstance(state, dict) or not state.get("tickets"):
        messages.info(request, "Tu selección expiró. Elige tus boletos de nuevo.")
        return redirect("boletos:raffle_detail", slug=slug)

    form = CheckoutForm(request.POST)
    ip = _client_ip(request)
    if not _rate_limit(key=f"rl:checkout:{ip}", limit=8, window_seconds=60):
        return _render_checkout(request, raffle, state, form, status=429, rate_limited=True)

    # Idempotency token to prevent duplicate orders on double-click / slow networks
    token = (request.POST.get("purchase_token") or "").strip()
    tokens = request.session.get(ORDER_TOKENS_SESSION_KEY) or {}
    if isinstance(tokens, dict) and token and token in tokens:
        return redirect("boletos:order_created", folio=tokens[token])

    if not form.is_valid():
        return _render_checkout(request, raffle, state, form)

    quote = _checkout_quote(raffle, state)
    tickets = [int(t) for t in state["tickets"]]
    try:
        order = api.create_order(
            raffle=raffle,
            tickets=tickets,
            total=quote.total,
            customer=form.customer_data(),
            notes=_order_notes(raffle, quote),
        )
    except api.ApiError as e:
        # Selection stays in the session so the visitor can retry as-is.
        logger.warning("Order for raffle %s rejected: %s", raffle.id, e)
        failure = OrderSubmissionFailure(str(e))
        _toast(request, failure)
        return _render_checkout(request, raffle, state, form, status=409 if e.status == 409 else 200, order_error=failure)

    folio = str(order.get("folio") or order.get("id") or uuid.uuid4().hex[:8].upper())
    logger.info("Order %s created for raffle %s (%s tickets)", folio, raffle.id, len(tickets))

    orders = request.session.get(ORDERS_SESSION_KEY) or {}
    if not isinstance(orders, dict):
        orders = {}
    orders[folio] = {
        "raffle_title": raffle.title,
        "raffle_slug": raffle.slug,
        "tickets": order.get("tickets") or tickets,
        "total": str(quote.total),
        "ticket_count": quote.ticket_count,
        "bonus_tickets": quote.bonus_tickets,
        "padding": raffle.ticket_padding,
    }
    # prune oldest entries (insertion order in modern Python)
    while len(orders) > 10:
        orders.pop(next(iter(orders)))
    request.session[ORDERS_SESSION_KEY] = orders

    if token:
        if not isinstance(tokens, dict):
            tokens = {}
        tokens[token] = folio
        while len(tokens) > 30:
            tokens.pop(next(iter(tokens)))
        request.session[ORDER_TOKENS_SESSION_KEY] = tokens

    request.session.pop(_checkout_key(slug), None)
    discard_flow(request.session, raffle)
    return redirect("boletos:order_created", folio=folio)


def order_created(request, folio: str):
    # Only orders created in this session can be viewed.
    orders = request.session.get(ORDERS_SESSION_KEY) or {}
    order = orders.get(folio) if isinstance(orders, dict) else None
    if not order:
        raise Http404()
    return render(request, "boletos/order_created.html", {"folio": folio, "order": order})
