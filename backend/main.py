import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic.alias_generators import to_camel

from bookings import BookingStore, MutationResult
from calendar_grid import build_week_grid, new_booking_defaults, shift_week
from config import build_store, get_settings
from database import STORAGE_KEY
from errors import BookingError
from reports import booking_stats, dashboard_stats, filter_bookings, unique_guest_names, upcoming_bookings
from schemas import (
    Apartment, Booking, BookingCreate, BookingUpdate, ExtendRequest,
    ConflictCheck, ConflictCheckResult, MutationResponse,
    BookingStats, DashboardStats, WeekGrid,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store(request: Request) -> BookingStore:
    return request.app.state.store


def to_response(result: MutationResult) -> MutationResponse:
    return MutationResponse(booking=result.booking, persisted=result.persisted, warning=result.warning)


@router.get("/")
def read_root():
    return {"message": "Booking Calendar Backend Running"}


@router.get("/test")
def test_storage(store: BookingStore = Depends(get_store)):
    response = {
        "backend": "✅ Running",
        "storage": store.adapter.describe(),
        "storage_key": store.adapter.key,
        "load_status": "✅ Loaded",
        "bookings": len(store.list_bookings()),
        "apartments": len(store.catalog),
    }
    if store.load_error:
        response["load_status"] = f"⚠️  Started empty: {store.load_error[:80]}"
    return response


# ======== Apartment Catalog ========

@router.get("/api/apartments", response_model=List[Apartment])
def list_apartments(store: BookingStore = Depends(get_store)):
    return store.catalog.list_apartments()


@router.get("/api/apartments/{apartment_id}", response_model=Apartment)
def get_apartment(apartment_id: str, store: BookingStore = Depends(get_store)):
    apartment = store.catalog.get_apartment_by_id(apartment_id)
    if not apartment:
        raise HTTPException(status_code=404, detail="Apartment not found")
    return apartment


# ======== Bookings ========

@router.get("/api/bookings", response_model=List[Booking])
def list_bookings(
    q: Optional[str] = None,
    status: Optional[str] = None,
    apartment_id: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    store: BookingStore = Depends(get_store),
):
    return filter_bookings(
        store.list_bookings(), search=q, status=status, apartment_id=apartment_id, start=start, end=end,
    )


@router.get("/api/bookings/{booking_id}", response_model=Booking)
def get_booking(booking_id: str, store: BookingStore = Depends(get_store)):
    booking = store.get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


@router.post("/api/bookings", response_model=MutationResponse, status_code=201)
def create_booking(payload: BookingCreate, store: BookingStore = Depends(get_store)):
    try:
        result = store.add_booking(payload)
    except BookingError as e:
        raise e.to_http_exception()
    return to_response(result)


@router.patch("/api/bookings/{booking_id}", response_model=MutationResponse)
def update_booking(booking_id: str, payload: BookingUpdate, store: BookingStore = Depends(get_store)):
    try:
        result = store.update_booking(booking_id, payload)
    except BookingError as e:
        raise e.to_http_exception()
    return to_response(result)


@router.post("/api/bookings/{booking_id}/extend", response_model=MutationResponse)
def extend_booking(booking_id: str, payload: ExtendRequest, store: BookingStore = Depends(get_store)):
    try:
        result = store.extend_booking(booking_id, payload.end_date)
    except BookingError as e:
        raise e.to_http_exception()
    return to_response(result)


@router.delete("/api/bookings/{booking_id}", response_model=MutationResponse)
def delete_booking(booking_id: str, store: BookingStore = Depends(get_store)):
    return to_response(store.delete_booking(booking_id))


@router.post("/api/bookings/check-conflict", response_model=ConflictCheckResult)
def check_conflict(payload: ConflictCheck, store: BookingStore = Depends(get_store)):
    return ConflictCheckResult(conflict=store.has_conflict(payload, exclude_id=payload.exclude_id))


# ======== Calendar ========

@router.get("/api/calendar/active", response_model=Optional[Booking])
def active_booking(apartment_id: str, day: date = Query(..., alias="date"), store: BookingStore = Depends(get_store)):
    return store.find_active_booking(day, apartment_id)


@router.get("/api/calendar/week", response_model=WeekGrid)
def week_grid(
    day: Optional[date] = Query(None, alias="date"),
    weeks: int = 0,
    store: BookingStore = Depends(get_store),
):
    return build_week_grid(store, shift_week(day or date_today(), weeks))


@router.get("/api/calendar/draft")
def booking_draft(apartment_id: str, day: date = Query(..., alias="date"), store: BookingStore = Depends(get_store)):
    if apartment_id not in store.catalog:
        raise HTTPException(status_code=404, detail="Apartment not found")
    if store.find_active_booking(day, apartment_id):
        raise HTTPException(status_code=409, detail="Apartment already booked on this day")
    return {to_camel(field): value for field, value in new_booking_defaults(day, apartment_id).items()}


# ======== Dashboard ========

@router.get("/api/stats", response_model=DashboardStats)
def stats(store: BookingStore = Depends(get_store)):
    return dashboard_stats(store.list_bookings())


@router.get("/api/stats/bookings", response_model=BookingStats)
def filtered_stats(
    q: Optional[str] = None,
    status: Optional[str] = None,
    apartment_id: Optional[str] = None,
    store: BookingStore = Depends(get_store),
):
    return booking_stats(filter_bookings(store.list_bookings(), search=q, status=status, apartment_id=apartment_id))


@router.get("/api/guests", response_model=List[str])
def guest_names(store: BookingStore = Depends(get_store)):
    return unique_guest_names(store.list_bookings())


@router.get("/api/upcoming", response_model=List[Booking])
def upcoming(limit: int = 5, store: BookingStore = Depends(get_store)):
    return upcoming_bookings(store.list_bookings(), date_today(), limit=limit)


# Health for schemas viewer
@router.get("/schema")
def get_schema_names():
    return {
        "collections": [
            "apartment",
            "booking",
        ],
        "storage_key": STORAGE_KEY,
    }


def date_today() -> date:
    return date.today()


def create_app(store: Optional[BookingStore] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "store", None) is None:
            settings = get_settings()
            logging.basicConfig(level=settings.log_level)
            app.state.store = build_store(settings)
        logger.info("Booking calendar ready with %d bookings", len(app.state.store.list_bookings()))
        yield

    app = FastAPI(title="Booking Calendar API", lifespan=lifespan)
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
