"""
Runtime configuration, read from environment variables.
"""

import logging
import os
from datetime import date

from apartments import ApartmentCatalog
from bookings import BookingStore
from database import (
    STORAGE_KEY,
    InMemoryPersistence,
    JsonFilePersistence,
    MongoPersistence,
    PersistenceAdapter,
)
from seed import sample_bookings

logger = logging.getLogger(__name__)

TRUTHY = ("1", "true", "yes", "on")


class Settings:
    def __init__(self):
        self.storage_backend = os.getenv("BOOKING_STORAGE_BACKEND", "file").lower()
        self.storage_path = os.getenv("BOOKING_STORAGE_PATH", "booking-calendar-data.json")
        self.storage_key = os.getenv("BOOKING_STORAGE_KEY", STORAGE_KEY)
        self.database_url = os.getenv("DATABASE_URL")
        self.database_name = os.getenv("DATABASE_NAME", "booking_calendar")
        self.collection_name = os.getenv("BOOKING_COLLECTION", "snapshots")
        self.apartments_file = os.getenv("APARTMENTS_FILE")
        self.seed = os.getenv("BOOKING_SEED", "1").lower() in TRUTHY
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.port = int(os.getenv("PORT", "8000"))


def get_settings() -> Settings:
    return Settings()


def build_adapter(settings: Settings) -> PersistenceAdapter:
    if settings.storage_backend == "memory":
        return InMemoryPersistence(key=settings.storage_key)
    if settings.storage_backend == "mongo":
        if not settings.database_url:
            raise ValueError("DATABASE_URL must be set for the mongo storage backend")
        return MongoPersistence.from_url(
            settings.database_url,
            settings.database_name,
            settings.collection_name,
            key=settings.storage_key,
        )
    if settings.storage_backend == "file":
        return JsonFilePersistence(settings.storage_path, key=settings.storage_key)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")


def build_catalog(settings: Settings) -> ApartmentCatalog:
    if settings.apartments_file:
        return ApartmentCatalog.from_file(settings.apartments_file)
    return ApartmentCatalog()


def build_store(settings: Settings) -> BookingStore:
    catalog = build_catalog(settings)
    adapter = build_adapter(settings)
    seed = sample_bookings(date.today(), catalog) if settings.seed else None
    logger.info("Using %s storage", adapter.describe())
    return BookingStore(adapter, catalog=catalog, seed=seed)
