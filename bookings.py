"""
Booking store

The store owns the booking collection. Every change goes through it: it
checks the change against the bookings already in memory, applies it, then
writes the whole collection through the persistence adapter. A rejected
change touches neither memory nor storage.

Bookings occupy half-open day ranges [start_date, end_date): the check-out
day is free for the next guest. intervals_overlap() is the only place that
compares ranges; conflict checks and calendar lookups both go through it.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError as SchemaError

from apartments import ApartmentCatalog
from database import PersistenceAdapter
from errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from schemas import Booking, BookingCreate, BookingUpdate, Snapshot

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "This apartment is already booked for this period"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def intervals_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    return start_a < end_b and end_a > start_b


def blocks_calendar(booking: Booking) -> bool:
    return booking.status != "cancelled"


def find_active_booking(bookings: Iterable[Booking], day: date, apartment_id: str) -> Optional[Booking]:
    """First non-cancelled booking of the apartment that occupies ``day``."""
    next_day = day + timedelta(days=1)
    for booking in bookings:
        if booking.apartment_id != apartment_id or not blocks_calendar(booking):
            continue
        if intervals_overlap(day, next_day, booking.start_date, booking.end_date):
            return booking
    return None


def schema_error_details(error: SchemaError) -> List[Dict[str, str]]:
    return [
        {"field": ".".join(str(part) for part in err["loc"]) or "booking", "message": err["msg"]}
        for err in error.errors()
    ]


def validate_booking_form(data: Dict[str, Any]) -> BookingCreate:
    """Check raw form input, raising ValidationError instead of pydantic's error."""
    try:
        return BookingCreate.model_validate(data)
    except SchemaError as e:
        details = schema_error_details(e)
        raise ValidationError(
            f"Invalid booking: {details[0]['message']}",
            details={"errors": details},
        ) from e


@dataclass
class MutationResult:
    """Outcome of a successful store change.

    ``persisted`` is False when the change is live in memory but could not be
    written to storage; ``warning`` then says why.
    """

    booking: Optional[Booking] = None
    persisted: bool = True
    warning: Optional[str] = None


class BookingStore:
    def __init__(
        self,
        adapter: PersistenceAdapter,
        catalog: Optional[ApartmentCatalog] = None,
        seed: Optional[Iterable[Booking]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.adapter = adapter
        self.catalog = catalog or ApartmentCatalog()
        self._clock = clock or utcnow
        self._bookings: List[Booking] = []
        self._last_id = 0
        self._lock = threading.RLock()
        self.load_error: Optional[str] = None
        self._load(seed)

    def _load(self, seed: Optional[Iterable[Booking]]) -> None:
        try:
            snapshot = self.adapter.load()
        except PersistenceError as e:
            logger.error("Error loading bookings, starting empty: %s", e.message)
            self.load_error = e.message
            return

        if snapshot is None:
            self._bookings = list(seed or [])
            logger.info("No stored bookings, starting with %d seed bookings", len(self._bookings))
        else:
            self._bookings = list(snapshot.bookings)
            logger.info("Loaded %d bookings from %s", len(self._bookings), self.adapter.describe())

    # Queries

    def list_bookings(self) -> Tuple[Booking, ...]:
        return tuple(self._bookings)

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        for booking in self._bookings:
            if booking.id == booking_id:
                return booking
        return None

    def find_conflict(self, candidate, exclude_id: Optional[str] = None) -> Optional[Booking]:
        """First active booking of the candidate's apartment whose dates overlap it."""
        for booking in self._bookings:
            if booking.id == exclude_id:
                continue
            if booking.apartment_id != candidate.apartment_id or not blocks_calendar(booking):
                continue
            if intervals_overlap(candidate.start_date, candidate.end_date, booking.start_date, booking.end_date):
                return booking
        return None

    def has_conflict(self, candidate, exclude_id: Optional[str] = None) -> bool:
        """True if ``candidate`` (anything with apartment_id, start_date and
        end_date) overlaps an active booking of the same apartment, ignoring
        the booking whose id is ``exclude_id``."""
        return self.find_conflict(candidate, exclude_id) is not None

    def find_active_booking(self, day: date, apartment_id: str) -> Optional[Booking]:
        return find_active_booking(self._bookings, day, apartment_id)

    # Mutations. Each holds the lock from the conflict check until the write finishes.

    def add_booking(self, data: Union[BookingCreate, Dict[str, Any]]) -> MutationResult:
        if not isinstance(data, BookingCreate):
            data = validate_booking_form(data)

        with self._lock:
            apartment = self._require_apartment(data.apartment_id)
            self._reject_conflict(data)

            now = self._clock()
            booking = Booking(
                **data.model_dump(),
                id=self._next_id(now),
                apartment_name=apartment.name,
                created_at=now,
                updated_at=now,
            )
            logger.info(
                "Created booking %s for %s (%s -> %s)",
                booking.id, booking.apartment_id, booking.start_date, booking.end_date,
            )
            return self._commit(self._bookings + [booking], booking)

    def update_booking(self, booking_id: str, changes: Union[BookingUpdate, Dict[str, Any]]) -> MutationResult:
        with self._lock:
            index, existing = self._require_booking(booking_id)

            if not isinstance(changes, BookingUpdate):
                try:
                    changes = BookingUpdate.model_validate(changes)
                except SchemaError as e:
                    details = schema_error_details(e)
                    raise ValidationError(
                        f"Invalid booking changes: {details[0]['message']}",
                        details={"booking_id": booking_id, "errors": details},
                    ) from e

            updates = changes.model_dump(exclude_unset=True)
            if "apartment_id" in updates and updates["apartment_id"] != existing.apartment_id:
                updates["apartment_name"] = self._require_apartment(updates["apartment_id"]).name

            updates["updated_at"] = self._clock()
            try:
                merged = Booking.model_validate({**existing.model_dump(), **updates})
            except SchemaError as e:
                details = schema_error_details(e)
                raise ValidationError(
                    f"Invalid booking: {details[0]['message']}",
                    details={"booking_id": booking_id, "errors": details},
                ) from e

            self._reject_conflict(merged, exclude_id=booking_id)

            bookings = list(self._bookings)
            bookings[index] = merged
            logger.info("Updated booking %s (%s)", booking_id, ", ".join(sorted(updates)))
            return self._commit(bookings, merged)

    def delete_booking(self, booking_id: str) -> MutationResult:
        """Remove a booking. Deleting an unknown id does nothing."""
        with self._lock:
            removed = self.get_booking(booking_id)
            if removed is None:
                logger.info("Delete of unknown booking %s ignored", booking_id)
                return MutationResult()

            bookings = [b for b in self._bookings if b.id != booking_id]
            logger.info("Deleted booking %s", booking_id)
            return self._commit(bookings, removed)

    def extend_booking(self, booking_id: str, new_end_date: date) -> MutationResult:
        return self.update_booking(booking_id, BookingUpdate(end_date=new_end_date))

    # Internals

    def _require_booking(self, booking_id: str) -> Tuple[int, Booking]:
        for index, booking in enumerate(self._bookings):
            if booking.id == booking_id:
                return index, booking
        raise NotFoundError("Booking not found", details={"booking_id": booking_id})

    def _require_apartment(self, apartment_id: str):
        apartment = self.catalog.get_apartment_by_id(apartment_id)
        if apartment is None:
            raise ValidationError("Unknown apartment", details={"apartment_id": apartment_id})
        return apartment

    def _reject_conflict(self, candidate, exclude_id: Optional[str] = None) -> None:
        existing = self.find_conflict(candidate, exclude_id)
        if existing is not None:
            logger.info(
                "Conflict on %s (%s -> %s) with booking %s",
                candidate.apartment_id, candidate.start_date, candidate.end_date, existing.id,
            )
            raise ConflictError(
                CONFLICT_MESSAGE,
                details={"apartment_id": candidate.apartment_id, "conflicting_booking_id": existing.id},
            )

    def _next_id(self, now: datetime) -> str:
        # Millisecond timestamp, bumped past anything already issued or stored
        candidate = max(int(now.timestamp() * 1000), self._last_id + 1)
        taken = {b.id for b in self._bookings}
        while str(candidate) in taken:
            candidate += 1
        self._last_id = candidate
        return str(candidate)

    def _commit(self, bookings: List[Booking], booking: Optional[Booking]) -> MutationResult:
        self._bookings = bookings
        snapshot = Snapshot(bookings=list(bookings), last_updated=self._clock())
        try:
            self.adapter.save(snapshot)
        except PersistenceError as e:
            logger.warning("Error saving bookings: %s", e.message)
            return MutationResult(booking=booking, persisted=False, warning=e.message)
        return MutationResult(booking=booking)
