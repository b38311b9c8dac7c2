"""Shared fixtures for the lead gateway test suite."""

import pytest

from lead_gateway.config.settings import get_settings


class FakeClock:
    """Manually advanced millisecond clock for RateLimiter tests."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(start=1_000_000.0)


@pytest.fixture
def lead_form_body() -> dict:
    """A valid lead form submission."""
    return {
        "first_name": "  Jan   Kowalski ",
        "email": "jan@example.com",
        "whatsapp_phone": "+48 600 100 200",
        "citizenship": "POLAND",
        "has_experience": "YES",
        "code_95": "YES, POLISH",
        "start_date": "2026-11-01",
        "cover_letter": "",
        "vacancy_id": "42",
    }


@pytest.fixture
def application_body() -> dict:
    """A valid full application submission."""
    return {
        "token": "cand-token-0123456789",
        "first_name": "Anna",
        "last_name": "O'Neil-Smith",
        "email": "anna@example.com",
        "phone": "+48 600 100 200",
        "viber_phone": "",
        "age": "34",
        "ce_experience_years": "5",
        "europe_experience_years": "3",
        "pesel_status": "YES",
        "medical_certificate": "NO",
        "work_schedule": "4/1",
        "truck_brands": "Volvo, Scania",
        "trailer_types": "Tautliner",
        "countries_driven": "PL, DE, FR",
        "last_employer": "",
        "acceptance": True,
    }


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(CRM_TOKEN="secret", RATE_LIMIT_LEAD_FORM_MAX="2")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    # Always clear cache on teardown so other tests get fresh settings
    get_settings.cache_clear()
