"""
Schedule template source.

Templates are authored by staff tooling elsewhere; this engine only reads
them. A service is linked to any number of company-wide templates, and
only ACTIVE templates take part in availability.
"""

import logging
from typing import Protocol

from availability_engine.errors import NotFoundError
from availability_engine.schemas.booking_schema import Service
from availability_engine.schemas.schedule_schema import ScheduleTemplate

logger = logging.getLogger(__name__)


class ScheduleTemplateStore(Protocol):
    def get_service(self, service_id: str) -> Service: ...

    def get_template(self, template_id: str) -> ScheduleTemplate: ...

    def templates_for_service(self, service_id: str) -> list[ScheduleTemplate]: ...


class InMemoryScheduleTemplateStore:
    """Dict-backed template source for tests, demos and embedding."""

    def __init__(self) -> None:
        self._services: dict[str, Service] = {}
        self._templates: dict[str, ScheduleTemplate] = {}
        self._links: dict[str, list[str]] = {}

    def add_service(self, service: Service) -> None:
        self._services[service.id] = service
        self._links.setdefault(service.id, [])

    def add_template(self, template: ScheduleTemplate, *service_ids: str) -> None:
        self._templates[template.id] = template
        for service_id in service_ids:
            self.link(service_id, template.id)

    def link(self, service_id: str, template_id: str) -> None:
        linked = self._links.setdefault(service_id, [])
        if template_id not in linked:
            linked.append(template_id)

    def remove_template(self, template_id: str) -> None:
        self._templates.pop(template_id, None)

    def get_service(self, service_id: str) -> Service:
        try:
            return self._services[service_id]
        except KeyError:
            raise NotFoundError("Service", service_id) from None

    def get_template(self, template_id: str) -> ScheduleTemplate:
        try:
            return self._templates[template_id]
        except KeyError:
            raise NotFoundError("Schedule template", template_id) from None

    def templates_for_service(self, service_id: str) -> list[ScheduleTemplate]:
        """Active templates linked to a service, in link order."""
        self.get_service(service_id)
        result = []
        for template_id in self._links.get(service_id, []):
            template = self._templates.get(template_id)
            if template is None:
                logger.warning(
                    "Service %s links missing schedule template %s", service_id, template_id
                )
                continue
            if template.is_active:
                result.append(template)
        return result
