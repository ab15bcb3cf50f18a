"""
Listing filters and statistics for the bookings table and dashboard.
"""

from datetime import date, timedelta
from typing import Iterable, List, Optional

from bookings import blocks_calendar, intervals_overlap
from schemas import Booking, BookingStats, DashboardStats

ALL = "all"


def _matches_search(booking: Booking, term: str) -> bool:
    term = term.lower()
    haystack = [booking.guest_name, booking.apartment_name, booking.guest_email or ""]
    return any(term in value.lower() for value in haystack)


def filter_bookings(
    bookings: Iterable[Booking],
    search: Optional[str] = None,
    status: Optional[str] = None,
    apartment_id: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Booking]:
    """Bookings matching every given filter.

    ``start``/``end`` select bookings that occupy at least one day of the
    window, both ends included. ``"all"`` or None disables a filter.
    """
    window_start = start or date.min
    window_end = end + timedelta(days=1) if end is not None and end < date.max else date.max

    result = []
    for booking in bookings:
        if search and not _matches_search(booking, search):
            continue
        if status not in (None, ALL) and booking.status != status:
            continue
        if apartment_id not in (None, ALL) and booking.apartment_id != apartment_id:
            continue
        if (start or end) and not intervals_overlap(
            booking.start_date, booking.end_date, window_start, window_end
        ):
            continue
        result.append(booking)
    return result


def booking_stats(bookings: Iterable[Booking]) -> BookingStats:
    bookings = list(bookings)
    return BookingStats(
        total=len(bookings),
        confirmed=sum(1 for b in bookings if b.status == "confirmed"),
        pending=sum(1 for b in bookings if b.status == "pending"),
        cancelled=sum(1 for b in bookings if b.status == "cancelled"),
    )


def dashboard_stats(bookings: Iterable[Booking]) -> DashboardStats:
    bookings = list(bookings)
    confirmed = sum(1 for b in bookings if b.status == "confirmed")
    # Rounded half up, as percentages are displayed
    occupancy = (confirmed * 200 + max(len(bookings), 1)) // (2 * max(len(bookings), 1))
    return DashboardStats(
        total_bookings=sum(1 for b in bookings if blocks_calendar(b)),
        confirmed_bookings=confirmed,
        pending_bookings=sum(1 for b in bookings if b.status == "pending"),
        occupancy_rate=occupancy,
    )


def upcoming_bookings(bookings: Iterable[Booking], today: date, limit: int = 5) -> List[Booking]:
    upcoming = [b for b in bookings if b.start_date > today and blocks_calendar(b)]
    upcoming.sort(key=lambda b: b.start_date)
    return upcoming[:limit]


def unique_guest_names(bookings: Iterable[Booking]) -> List[str]:
    return sorted({b.guest_name for b in bookings})
