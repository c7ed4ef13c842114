from __future__ import annotations

import random

from django.core.management.base import BaseCommand, CommandError

from boletos import api
from boletos.allocation import allocate
from boletos.errors import BoletosError
from boletos.pricing import quote_for_raffle
from boletos.windowing import ticket_label


class Command(BaseCommand):
    help = "Simula una selección al azar (maquinita) contra los boletos ocupados actuales de una rifa."

    def add_arguments(self, parser):
        parser.add_argument("slug", help="Slug de la rifa.")
        parser.add_argument("cantidad", type=int, help="Cantidad de boletos a sortear.")
        parser.add_argument(
            "--semilla",
            dest="seed",
            type=int,
            default=None,
            help="Semilla para repetir el mismo sorteo. Default: aleatorio del sistema.",
        )

    def handle(self, *args, **options):
        slug = (options["slug"] or "").strip()
        quantity = int(options["cantidad"])
        if quantity < 1:
            raise CommandError("La cantidad debe ser al menos 1.")

        try:
            raffle = api.get_raffle(slug)
            if raffle is None:
                raise CommandError(f"No existe la rifa '{slug}'.")
            occupancy = api.get_occupied_tickets(raffle)
        except api.ApiError as e:
            raise CommandError(f"No se pudo consultar el backend: {e}") from e

        rng = random.Random(options["seed"]) if options["seed"] is not None else None
        try:
            tickets = sorted(allocate(quantity, raffle.total_tickets, occupancy, rng=rng))
        except BoletosError as e:
            raise CommandError(e.message) from e

        quote = quote_for_raffle(raffle, selected_count=len(tickets))
        padding = raffle.ticket_padding

        self.stdout.write(f"Rifa: {raffle.title} ({raffle.total_tickets} boletos, {len(occupancy)} ocupados)")
        self.stdout.write("Boletos: " + ", ".join(ticket_label(t, padding) for t in tickets))
        if quote.applied_automatically:
            self.stdout.write(f"Paquete aplicado: {quote.pack.label} (ahorro {quote.savings})")
        if quote.bonus_tickets:
            self.stdout.write(f"Oportunidades extra: {quote.bonus_tickets}")
        self.stdout.write(self.style.SUCCESS(f"Total: {quote.total}"))
