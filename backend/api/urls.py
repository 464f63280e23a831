"""API URL configuration."""
from __future__ import annotations

from django.urls import path

from backend.api.views import CitySearchView, ForecastView, HealthView

urlpatterns = [
    path("v1/weather/forecast", ForecastView.as_view(), name="weather-forecast"),
    path("v1/weather/search", CitySearchView.as_view(), name="weather-search"),
    path("v1/health", HealthView.as_view(), name="health"),
]
