# tests/conftest.py

from datetime import date, datetime, timezone

import pytest

from ramadanclock.calc import Coordinates


@pytest.fixture
def new_york():
    return Coordinates(lat=40.7128, lng=-74.0060)


@pytest.fixture
def ramadan_start():
    """First day of Ramadan 2026 as supplied by the calendar layer."""
    return date(2026, 2, 18)


@pytest.fixture
def arctic():
    # Oulu, Finland: the sun stays above -15 degrees around the summer solstice
    return Coordinates(lat=65.0, lng=25.47)


@pytest.fixture
def fixed_now():
    return datetime(2026, 2, 1, 12, 0, 0, tzinfo=timezone.utc)
