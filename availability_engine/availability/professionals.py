"""
Professional availability.

Narrows a service's candidate professionals to the ones with at least one
open slot on a date. A service without candidates has no professional
constraint and its slots are professional-agnostic.
"""

import logging
from datetime import date
from typing import Iterable, Optional, Protocol

from availability_engine.availability.resolver import AvailabilityResolver
from availability_engine.errors import NotFoundError
from availability_engine.schemas.booking_schema import Professional, Service
from availability_engine.schemas.inventory_schema import InventoryEntry
from availability_engine.schemas.schedule_schema import ScheduleTemplate

logger = logging.getLogger(__name__)


class ProfessionalDirectory(Protocol):
    def get_professional(self, professional_id: str) -> Professional: ...

    def candidates_for(self, service: Service) -> list[Professional]: ...


class InMemoryProfessionalDirectory:
    def __init__(self, professionals: Iterable[Professional] = ()) -> None:
        self._professionals: dict[str, Professional] = {p.id: p for p in professionals}

    def add(self, professional: Professional) -> None:
        self._professionals[professional.id] = professional

    def remove(self, professional_id: str) -> None:
        self._professionals.pop(professional_id, None)

    def get_professional(self, professional_id: str) -> Professional:
        try:
            return self._professionals[professional_id]
        except KeyError:
            raise NotFoundError("Professional", professional_id) from None

    def candidates_for(self, service: Service) -> list[Professional]:
        """Professionals assigned to the service, in the service's order.

        Assigned ids missing from the directory are skipped with a warning;
        the service stays bookable through the remaining ones.
        """
        candidates = []
        for professional_id in service.professional_ids:
            professional = self._professionals.get(professional_id)
            if professional is None:
                logger.warning(
                    "Service %s references unknown professional %s", service.id, professional_id
                )
                continue
            candidates.append(professional)
        return candidates


class ProfessionalAvailabilityFilter:
    """Filters candidate professionals by open slots on a date."""

    def __init__(self, resolver: AvailabilityResolver) -> None:
        self.resolver = resolver

    def eligible_professionals(
        self,
        day: date,
        candidates: Iterable[Professional],
        templates: Iterable[ScheduleTemplate],
        entries: Iterable[InventoryEntry],
        unassigned_blocks_all: Optional[bool] = None,
    ) -> list[Professional]:
        candidates = list(candidates)
        if not candidates:
            return []
        templates = list(templates)
        entries = list(entries)
        return [
            p for p in candidates
            if self.resolver.open_slots(day, templates, entries, p.id, unassigned_blocks_all)
        ]

    def is_eligible(
        self,
        professional_id: str,
        day: date,
        templates: Iterable[ScheduleTemplate],
        entries: Iterable[InventoryEntry],
        unassigned_blocks_all: Optional[bool] = None,
    ) -> bool:
        return bool(self.resolver.open_slots(
            day, templates, entries, professional_id, unassigned_blocks_all
        ))

    def default_professional(self, eligible: list[Professional]) -> Optional[Professional]:
        """Pre-selection for the wizard: the first eligible candidate."""
        return eligible[0] if eligible else None
