import threading
import time

import pytest
from fastapi.testclient import TestClient

from bookings import BookingStore
from database import InMemoryPersistence
from errors import PersistenceError
from main import create_app


@pytest.fixture
def client(store):
    return TestClient(create_app(store))


def create(client, **overrides):
    payload = {
        "apartmentId": "apt-1",
        "guestName": "Marie Dubois",
        "guestEmail": "marie.dubois@email.com",
        "startDate": "2025-07-15",
        "endDate": "2025-07-18",
        "status": "confirmed",
    }
    payload.update(overrides)
    return client.post("/api/bookings", json=payload)


def test_root_and_status(client):
    assert client.get("/").json() == {"message": "Booking Calendar Backend Running"}
    status = client.get("/test").json()
    assert status["storage"] == "memory"
    assert status["apartments"] == 5
    assert status["bookings"] == 0


def test_apartments(client):
    apartments = client.get("/api/apartments").json()
    assert [a["id"] for a in apartments] == ["apt-1", "apt-2", "apt-3", "apt-4", "apt-5"]
    assert apartments[0]["maxGuests"] == 2
    assert client.get("/api/apartments/apt-3").json()["name"] == "Loft Bastille"
    assert client.get("/api/apartments/apt-9").status_code == 404


def test_create_and_fetch_booking(client):
    response = create(client)
    assert response.status_code == 201
    body = response.json()
    booking = body["booking"]
    assert body["persisted"] is True
    assert booking["apartmentName"] == "Studio Montmartre"
    assert booking["startDate"] == "2025-07-15T00:00:00"

    fetched = client.get(f"/api/bookings/{booking['id']}").json()
    assert fetched == booking
    assert client.get("/api/bookings/unknown").status_code == 404


def test_conflicting_create_returns_409(client):
    create(client)
    response = create(client, startDate="2025-07-17", endDate="2025-07-20")
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "ConflictError"
    assert len(client.get("/api/bookings").json()) == 1


def test_invalid_form_is_rejected(client):
    assert create(client, endDate="2025-07-15").status_code == 422
    assert create(client, guestName="").status_code == 422
    assert create(client, apartmentId="apt-99").status_code == 400


def test_update_extend_and_delete(client):
    booking_id = create(client).json()["booking"]["id"]

    updated = client.patch(f"/api/bookings/{booking_id}", json={"guestName": "Jean Martin"})
    assert updated.status_code == 200
    assert updated.json()["booking"]["guestName"] == "Jean Martin"

    extended = client.post(f"/api/bookings/{booking_id}/extend", json={"endDate": "2025-07-21"})
    assert extended.status_code == 200
    assert extended.json()["booking"]["endDate"] == "2025-07-21T00:00:00"

    assert client.patch("/api/bookings/missing", json={"guestName": "X"}).status_code == 404
    assert client.post("/api/bookings/missing/extend", json={"endDate": "2025-07-21"}).status_code == 404

    deleted = client.delete(f"/api/bookings/{booking_id}")
    assert deleted.status_code == 200
    assert deleted.json()["booking"]["id"] == booking_id
    again = client.delete(f"/api/bookings/{booking_id}")
    assert again.status_code == 200
    assert again.json()["booking"] is None


def test_extend_into_conflict(client):
    first = create(client).json()["booking"]["id"]
    create(client, startDate="2025-07-20", endDate="2025-07-22")
    response = client.post(f"/api/bookings/{first}/extend", json={"endDate": "2025-07-21"})
    assert response.status_code == 409
    assert client.get(f"/api/bookings/{first}").json()["endDate"] == "2025-07-18T00:00:00"


def test_list_filters(client):
    create(client)
    create(client, apartmentId="apt-2", guestName="Jean Martin", status="pending")
    assert len(client.get("/api/bookings", params={"status": "pending"}).json()) == 1
    assert len(client.get("/api/bookings", params={"q": "marie"}).json()) == 1
    assert len(client.get("/api/bookings", params={"apartment_id": "apt-2"}).json()) == 1
    assert len(client.get("/api/bookings", params={"start": "2025-07-18"}).json()) == 0


def test_check_conflict(client):
    booking_id = create(client).json()["booking"]["id"]
    payload = {"apartmentId": "apt-1", "startDate": "2025-07-16", "endDate": "2025-07-17"}
    assert client.post("/api/bookings/check-conflict", json=payload).json() == {"conflict": True}
    payload["excludeId"] = booking_id
    assert client.post("/api/bookings/check-conflict", json=payload).json() == {"conflict": False}


def test_calendar_endpoints(client):
    booking_id = create(client).json()["booking"]["id"]

    active = client.get("/api/calendar/active", params={"date": "2025-07-17", "apartment_id": "apt-1"})
    assert active.json()["id"] == booking_id
    free = client.get("/api/calendar/active", params={"date": "2025-07-18", "apartment_id": "apt-1"})
    assert free.json() is None

    grid = client.get("/api/calendar/week", params={"date": "2025-07-16"}).json()
    assert grid["days"][0] == "2025-07-14"
    assert [cell["booking"] is not None for cell in grid["rows"][0]["cells"]] == [
        False, True, True, True, False, False, False,
    ]


def test_stats(client):
    create(client)
    create(client, apartmentId="apt-2", status="pending")
    assert client.get("/api/stats").json() == {
        "totalBookings": 2,
        "confirmedBookings": 1,
        "pendingBookings": 1,
        "occupancyRate": 50,
    }
    assert client.get("/api/stats/bookings", params={"status": "pending"}).json()["total"] == 1


class BrokenPersistence(InMemoryPersistence):
    def save(self, snapshot):
        raise PersistenceError("storage unavailable")


def test_save_failure_is_reported_as_warning(clock):
    client = TestClient(create_app(BookingStore(BrokenPersistence(), clock=clock)))
    response = create(client)
    assert response.status_code == 201
    assert response.json()["persisted"] is False
    assert response.json()["warning"] == "storage unavailable"
    assert len(client.get("/api/bookings").json()) == 1


def test_invalid_email_is_rejected_on_input(client):
    assert create(client, guestEmail="not-an-email").status_code == 422


def test_guest_names(client):
    create(client, guestName="Sophie Lambert")
    create(client, apartmentId="apt-2", guestName="Jean Martin")
    create(client, apartmentId="apt-3", guestName="Sophie Lambert")
    assert client.get("/api/guests").json() == ["Jean Martin", "Sophie Lambert"]


def test_week_navigation_and_colors(client):
    create(client, startDate="2025-07-22", endDate="2025-07-24")

    grid = client.get("/api/calendar/week", params={"date": "2025-07-16", "weeks": 1}).json()

    assert grid["days"][0] == "2025-07-21"
    assert [cell["color"] for cell in grid["rows"][0]["cells"]][:4] == [None, "#8B5CF6", "#8B5CF6", None]
    previous = client.get("/api/calendar/week", params={"date": "2025-07-16", "weeks": -1}).json()
    assert previous["days"][0] == "2025-07-07"


def test_booking_draft(client):
    create(client)

    draft = client.get("/api/calendar/draft", params={"apartment_id": "apt-1", "date": "2025-07-18"})
    assert draft.status_code == 200
    assert draft.json() == {
        "apartmentId": "apt-1",
        "startDate": "2025-07-18",
        "endDate": "2025-07-19",
        "status": "confirmed",
    }
    taken = client.get("/api/calendar/draft", params={"apartment_id": "apt-1", "date": "2025-07-16"})
    assert taken.status_code == 409
    unknown = client.get("/api/calendar/draft", params={"apartment_id": "apt-9", "date": "2025-07-16"})
    assert unknown.status_code == 404


class SlowPersistence(InMemoryPersistence):
    def __init__(self):
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def save(self, snapshot):
        self.started.set()
        self.release.wait(timeout=5)
        super().save(snapshot)


def test_slow_save_does_not_stall_other_requests(clock):
    adapter = SlowPersistence()
    store = BookingStore(adapter, clock=clock)

    with TestClient(create_app(store)) as client:
        writer = threading.Thread(target=create, args=(client,))
        writer.start()
        try:
            assert adapter.started.wait(timeout=5)

            began = time.monotonic()
            response = client.get("/")
            elapsed = time.monotonic() - began
        finally:
            adapter.release.set()
            writer.join(timeout=10)

    assert response.status_code == 200
    assert elapsed < 2
    assert len(store.list_bookings()) == 1
    assert adapter.save_count == 1
