"""
URL configuration for boletos_site project.

The storefront is the only app; everything routes to `boletos.urls`.
"""
from django.urls import include, path

urlpatterns = [
    path("", include("boletos.urls")),
]
