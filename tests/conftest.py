from datetime import datetime, timedelta, timezone

import pytest

from apartments import ApartmentCatalog
from bookings import BookingStore
from database import InMemoryPersistence
from schemas import BookingCreate


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 7, 1, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def adapter():
    return InMemoryPersistence()


@pytest.fixture
def catalog():
    return ApartmentCatalog()


@pytest.fixture
def store(adapter, catalog, clock):
    return BookingStore(adapter, catalog=catalog, clock=clock)


@pytest.fixture
def booking_data():
    def make(apartment_id="apt-1", start="2025-07-15", end="2025-07-18", status="confirmed", **extra):
        fields = {
            "apartment_id": apartment_id,
            "guest_name": "Marie Dubois",
            "start_date": start,
            "end_date": end,
            "status": status,
        }
        fields.update(extra)
        return BookingCreate(**fields)

    return make
