"""Base Django settings for the weather proxy."""
from __future__ import annotations

from pathlib import Path
import os

from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent


def env(name: str, default: str | None = None) -> str:
    """Fetch environment variables while allowing explicit defaults."""

    value = os.environ.get(name, default)
    if value is None:
        raise ImproperlyConfigured(f"Environment variable {name} is required")
    return value


SECRET_KEY = env("DJANGO_SECRET_KEY", "weather-proxy-insecure-dev-key")
DEBUG = os.environ.get("DJANGO_DEBUG", "0") == "1"
ALLOWED_HOSTS = os.environ.get("DJANGO_ALLOWED_HOSTS", "*").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "backend.api",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "backend.urls"

WSGI_APPLICATION = "backend.wsgi.application"

DATABASES: dict = {}

# Weather proxy ------------------------------------------------------------
WEATHER_CACHE_TTL_SECONDS = float(env("WEATHER_CACHE_TTL_SECONDS", "300"))
WEATHER_CACHE_MAX_SIZE = int(env("WEATHER_CACHE_MAX_SIZE", "1000"))
WEATHER_RETRY_MAX_ATTEMPTS = int(env("WEATHER_RETRY_MAX_ATTEMPTS", "3"))
WEATHER_RETRY_WAIT_SECONDS = float(env("WEATHER_RETRY_WAIT_SECONDS", "0.5"))
WEATHER_RETRY_BACKOFF_MULTIPLIER = float(env("WEATHER_RETRY_BACKOFF_MULTIPLIER", "2.0"))
WEATHER_BREAKER_FAILURE_THRESHOLD = int(env("WEATHER_BREAKER_FAILURE_THRESHOLD", "5"))
WEATHER_BREAKER_OPEN_SECONDS = float(env("WEATHER_BREAKER_OPEN_SECONDS", "30"))
WEATHER_HTTP_TIMEOUT_SECONDS = float(env("WEATHER_HTTP_TIMEOUT_SECONDS", "5"))
OPEN_METEO_FORECAST_URL = env("OPEN_METEO_FORECAST_URL", "https://api.open-meteo.com/v1/forecast")
OPEN_METEO_GEOCODING_URL = env("OPEN_METEO_GEOCODING_URL", "https://geocoding-api.open-meteo.com/v1/search")

REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [],
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "default"},
    },
    "root": {
        "handlers": ["console"],
        "level": env("WEATHER_LOG_LEVEL", "INFO"),
    },
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True
