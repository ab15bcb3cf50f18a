"""
Data schemas for the Booking Calendar

Stored records use camelCase keys (apartmentId, startDate, ...) while Python
code uses snake_case attributes; every model accepts both.
"""

from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Literal
from datetime import date, datetime

BookingStatus = Literal["confirmed", "pending", "cancelled"]


def parse_calendar_day(value):
    """Reduce an ISO date or date-time to its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return value.split("T")[0]
    return value


def blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Catalog

class Apartment(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1, description="Unique apartment id, e.g. apt-1")
    name: str = Field(..., description="Display name")
    description: Optional[str] = None
    max_guests: int = Field(..., ge=1, description="Maximum occupancy")
    color: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$", description="Hex color for display")


# Bookings

class BookingFields(CamelModel):
    """Fields shared by the booking form and the stored booking."""

    apartment_id: str = Field(..., min_length=1, description="ID of the booked apartment")
    guest_name: str = Field(..., min_length=1, description="Guest full name")
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    start_date: date = Field(..., description="Check-in day (inclusive)")
    end_date: date = Field(..., description="Check-out day (exclusive)")
    status: BookingStatus = "confirmed"
    notes: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _calendar_day(cls, value):
        return parse_calendar_day(value)

    @field_validator("guest_email", "guest_phone", "notes", mode="before")
    @classmethod
    def _blank_optional(cls, value):
        return blank_to_none(value)

    @field_validator("guest_name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self

    @field_serializer("start_date", "end_date", when_used="json")
    def _serialize_day(self, value: date) -> str:
        return f"{value.isoformat()}T00:00:00"


class BookingCreate(BookingFields):
    """Form payload for a new booking. The apartment name is copied from the catalog."""

    guest_email: Optional[EmailStr] = None


class BookingUpdate(CamelModel):
    """Partial changes; only the fields that were set are applied."""

    apartment_id: Optional[str] = Field(None, min_length=1)
    guest_name: Optional[str] = Field(None, min_length=1)
    guest_email: Optional[EmailStr] = None
    guest_phone: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[BookingStatus] = None
    notes: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _calendar_day(cls, value):
        return parse_calendar_day(value)

    @field_validator("guest_email", "guest_phone", "notes", mode="before")
    @classmethod
    def _blank_optional(cls, value):
        return blank_to_none(value)


class Booking(BookingFields):
    id: str = Field(..., min_length=1)
    apartment_name: str = Field(..., description="Apartment name at booking time")
    created_at: datetime
    updated_at: datetime


class ExtendRequest(CamelModel):
    end_date: date

    @field_validator("end_date", mode="before")
    @classmethod
    def _calendar_day(cls, value):
        return parse_calendar_day(value)


class ConflictCheck(CamelModel):
    """Dates to test against the calendar, optionally ignoring one booking."""

    apartment_id: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    exclude_id: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _calendar_day(cls, value):
        return parse_calendar_day(value)


class ConflictCheckResult(CamelModel):
    conflict: bool


class MutationResponse(CamelModel):
    booking: Optional[Booking] = None
    persisted: bool = True
    warning: Optional[str] = None


# Persistence

class Snapshot(CamelModel):
    bookings: List[Booking] = Field(default_factory=list)
    last_updated: datetime


# Reporting

class BookingStats(CamelModel):
    total: int
    confirmed: int
    pending: int
    cancelled: int


class DashboardStats(CamelModel):
    total_bookings: int
    confirmed_bookings: int
    pending_bookings: int
    occupancy_rate: int


class CalendarCell(CamelModel):
    day: date
    booking: Optional[Booking] = None
    is_start: bool = False
    color: Optional[str] = None


class CalendarRow(CamelModel):
    apartment: Apartment
    cells: List[CalendarCell]


class WeekGrid(CamelModel):
    days: List[date]
    rows: List[CalendarRow]
