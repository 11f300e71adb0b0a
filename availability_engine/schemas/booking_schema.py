"""Service, professional and contact models consumed by a booking session."""

from pydantic import BaseModel, Field
from typing import Optional


class Service(BaseModel):
    """A bookable service and the professionals allowed to deliver it."""
    id: str
    company_id: str
    name: str
    price: Optional[float] = None
    duration_minutes: Optional[int] = None
    professional_ids: list[str] = Field(default_factory=list)
    # None falls back to AvailabilityConfig.unassigned_blocks_all
    unassigned_blocks_all: Optional[bool] = None

    @property
    def has_professional_constraint(self) -> bool:
        return bool(self.professional_ids)


class Professional(BaseModel):
    """Staff member from the professional directory."""
    id: str
    company_id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class ContactDetails(BaseModel):
    """Client contact form as entered in the booking wizard."""
    name: str = ""
    phone: str = ""
    identity: str = ""
    email: Optional[str] = None
    comment: Optional[str] = None
