"""
Apartment catalog

A fixed, ordered list of apartments supplied at start-up. Nothing mutates it
at runtime.
"""

import json
import logging
from typing import Iterable, List, Optional, Tuple

from schemas import Apartment

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#6B7280"

DEFAULT_APARTMENTS: Tuple[Apartment, ...] = (
    Apartment(
        id="apt-1",
        name="Studio Montmartre",
        description="Charmant studio avec vue sur Sacré-Cœur",
        max_guests=2,
        color="#8B5CF6",
    ),
    Apartment(
        id="apt-2",
        name="Appartement Marais",
        description="Appartement 2 pièces dans le quartier historique",
        max_guests=4,
        color="#10B981",
    ),
    Apartment(
        id="apt-3",
        name="Loft Bastille",
        description="Grand loft moderne près de la Place de la Bastille",
        max_guests=6,
        color="#F59E0B",
    ),
    Apartment(
        id="apt-4",
        name="Duplex Champs-Élysées",
        description="Duplex de luxe sur les Champs-Élysées",
        max_guests=8,
        color="#EF4444",
    ),
    Apartment(
        id="apt-5",
        name="Studio Latin",
        description="Studio confortable dans le Quartier Latin",
        max_guests=2,
        color="#3B82F6",
    ),
)


class ApartmentCatalog:
    def __init__(self, apartments: Iterable[Apartment] = DEFAULT_APARTMENTS):
        self._apartments: Tuple[Apartment, ...] = tuple(apartments)
        ids = [apt.id for apt in self._apartments]
        if len(ids) != len(set(ids)):
            raise ValueError("apartment ids must be unique")
        self._by_id = {apt.id: apt for apt in self._apartments}

    @classmethod
    def from_file(cls, path: str) -> "ApartmentCatalog":
        """Load a catalog from a JSON array of apartment records."""
        with open(path, encoding="utf-8") as fh:
            records = json.load(fh)
        apartments = [Apartment.model_validate(record) for record in records]
        logger.info("Loaded %d apartments from %s", len(apartments), path)
        return cls(apartments)

    def list_apartments(self) -> List[Apartment]:
        return list(self._apartments)

    def get_apartment_by_id(self, apartment_id: str) -> Optional[Apartment]:
        return self._by_id.get(apartment_id)

    def get_apartment_color(self, apartment_id: str) -> str:
        apartment = self.get_apartment_by_id(apartment_id)
        return apartment.color if apartment else DEFAULT_COLOR

    def __len__(self) -> int:
        return len(self._apartments)

    def __contains__(self, apartment_id: object) -> bool:
        return apartment_id in self._by_id
