"""
Weekly calendar projection

Turns the booking collection into a week x apartment grid. A cell shows the
booking that occupies that apartment on that day, using the same rule the
store uses to reject overlapping bookings.
"""

from datetime import date, timedelta
from typing import Dict, List

from bookings import BookingStore
from schemas import CalendarCell, CalendarRow, WeekGrid


def week_start(anchor: date) -> date:
    """Monday of the anchor's week."""
    return anchor - timedelta(days=anchor.weekday())


def week_days(anchor: date) -> List[date]:
    start = week_start(anchor)
    return [start + timedelta(days=offset) for offset in range(7)]


def shift_week(anchor: date, weeks: int) -> date:
    return anchor + timedelta(days=7 * weeks)


def build_week_grid(store: BookingStore, anchor: date) -> WeekGrid:
    days = week_days(anchor)
    rows = []
    for apartment in store.catalog.list_apartments():
        cells = []
        for day in days:
            booking = store.find_active_booking(day, apartment.id)
            # A booking that began before this week still gets a label on Monday
            is_start = booking is not None and (booking.start_date == day or day == days[0])
            color = store.catalog.get_apartment_color(booking.apartment_id) if booking else None
            cells.append(CalendarCell(day=day, booking=booking, is_start=is_start, color=color))
        rows.append(CalendarRow(apartment=apartment, cells=cells))
    return WeekGrid(days=days, rows=rows)


def new_booking_defaults(day: date, apartment_id: str) -> Dict[str, object]:
    """Draft form values for a click on an empty cell: one night from ``day``."""
    return {
        "apartment_id": apartment_id,
        "start_date": day,
        "end_date": day + timedelta(days=1),
        "status": "confirmed",
    }
