"""Pytest configuration and shared fixtures."""

import random

import pytest
from django.test import Client

from boletos.catalog import Raffle
from boletos.inventory import OccupancySnapshot

RAFFLE_DATA = {
    "id": "r-100",
    "title": "Rifa Camioneta",
    "slug": "rifa-camioneta",
    "tickets": 100,
    "price": 50,
    "status": "active",
    "packs": [
        {"name": "Pack 5", "tickets": 5, "price": 200},
        {"name": "Pack 10", "q": 10, "price": 350},
    ],
}


@pytest.fixture
def raffle_data() -> dict:
    return dict(RAFFLE_DATA, packs=[dict(p) for p in RAFFLE_DATA["packs"]])


@pytest.fixture
def raffle(raffle_data) -> Raffle:
    return Raffle.from_api(raffle_data)


@pytest.fixture
def occupancy() -> OccupancySnapshot:
    return OccupancySnapshot.build(100, [5, 10, 15])


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def client() -> Client:
    return Client()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()
