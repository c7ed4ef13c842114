"""
Django settings for boletos_site project.

Everything deployment specific comes from the environment. There is no
database: raffles, occupancy and orders live behind the storefront REST API
(BOLETOS_API_URL) and visitor state lives in cache-backed sessions.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env(name: str, default: str = "") -> str:
    return (os.environ.get(name, default) or "").strip()


def _env_bool(name: str, default: bool = False) -> bool:
    raw = _env(name, "1" if default else "0").lower()
    return raw in ("1", "true", "yes", "on")


def _env_json(name: str) -> dict:
    raw = _env(name)
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


SECRET_KEY = _env("DJANGO_SECRET_KEY", "dev-only-insecure-key-change-me")
DEBUG = _env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = [h.strip() for h in _env("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "boletos",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "boletos_site.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.messages.context_processors.messages",
                "boletos.context_processors.appearance",
            ],
        },
    },
]

WSGI_APPLICATION = "boletos_site.wsgi.application"

DATABASES: dict = {}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "boletos",
    }
}

SESSION_ENGINE = "django.contrib.sessions.backends.cache"
SESSION_COOKIE_AGE = 60 * 60 * 6
MESSAGE_STORAGE = "django.contrib.messages.storage.session.SessionStorage"

LANGUAGE_CODE = "es-mx"
TIME_ZONE = "America/Mexico_City"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# Storefront REST backend
BOLETOS_API_URL = _env("BOLETOS_API_URL", "http://localhost:3000/api")
BOLETOS_API_TIMEOUT = int(_env("BOLETOS_API_TIMEOUT", "10") or "10")

# Fallback display preferences when /public/settings is unavailable
BOLETOS_LISTING_MODE = _env("BOLETOS_LISTING_MODE", "paginado") or "paginado"
BOLETOS_HIDE_OCCUPIED = _env_bool("BOLETOS_HIDE_OCCUPIED", False)

BOLETOS_CURRENCY = _env("BOLETOS_CURRENCY", "$") or "$"
BOLETOS_APPEARANCE = _env_json("BOLETOS_APPEARANCE")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "boletos": {
            "handlers": ["console"],
            "level": _env("BOLETOS_LOG_LEVEL", "INFO") or "INFO",
            "propagate": False,
        },
    },
}
