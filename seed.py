"""
Sample reservations used to populate an empty calendar on first start.

Dates are given as day offsets from ``today`` so the current week always has
something to show.
"""

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from apartments import ApartmentCatalog
from schemas import Booking

SAMPLE_BOOKINGS = [
    # (id, apartment, guest, email, phone, start offset, end offset, status, notes)
    ("1", "apt-1", "Marie Dubois", "marie.dubois@email.com", "+33 1 23 45 67 89", 0, 3, "confirmed", "Arrivée tardive prévue"),
    ("2", "apt-2", "Jean Martin", "j.martin@email.com", "+33 6 12 34 56 78", 1, 5, "confirmed", "Couple avec enfant"),
    ("3", "apt-3", "Sophie Lambert", "sophie.lambert@email.com", None, -1, 2, "pending", "En attente de confirmation de paiement"),
    ("4", "apt-1", "Thomas Rousseau", "thomas.rousseau@email.com", "+33 7 89 12 34 56", 5, 8, "confirmed", "Voyage d'affaires"),
    ("5", "apt-4", "Anna Schmidt", "anna.schmidt@email.com", None, -3, 4, "confirmed", "Touriste allemande - parle français"),
]


def sample_bookings(
    today: date,
    catalog: Optional[ApartmentCatalog] = None,
    now: Optional[datetime] = None,
) -> List[Booking]:
    catalog = catalog or ApartmentCatalog()
    now = now or datetime.now(timezone.utc)
    bookings = []
    for booking_id, apartment_id, guest, email, phone, start, end, status, notes in SAMPLE_BOOKINGS:
        apartment = catalog.get_apartment_by_id(apartment_id)
        if apartment is None:
            continue
        bookings.append(
            Booking(
                id=booking_id,
                apartment_id=apartment_id,
                apartment_name=apartment.name,
                guest_name=guest,
                guest_email=email,
                guest_phone=phone,
                start_date=today + timedelta(days=start),
                end_date=today + timedelta(days=end),
                status=status,
                notes=notes,
                created_at=now,
                updated_at=now,
            )
        )
    return bookings
