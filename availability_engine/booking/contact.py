"""
Contact form validation for the details step.

Each field has a validator and a normalizer; failures are collected per
field so the form can show every message at once.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from availability_engine.config import ContactConfig, settings
from availability_engine.errors import ValidationError
from availability_engine.schemas.booking_schema import ContactDetails
from availability_engine.utils import normalize_phone

logger = logging.getLogger(__name__)

# Validation thresholds
MIN_NAME_LENGTH = 2
MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15
MIN_IDENTITY_LENGTH = 3

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _validate_name(value: str) -> bool:
    return len(value.strip()) >= MIN_NAME_LENGTH


def _validate_phone(value: str) -> bool:
    digits = re.sub(r"[^\d]", "", value)
    return MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS


def _validate_identity(value: str) -> bool:
    return len(value.strip()) >= MIN_IDENTITY_LENGTH


def _validate_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value.strip()))


@dataclass(frozen=True)
class ContactField:
    """Schema for a single contact form field."""

    name: str
    display_name: str
    validator: Callable[[str], bool]
    normalizer: Callable[[str], str] = str.strip


CONTACT_FIELDS: list[ContactField] = [
    ContactField("name", "name", _validate_name),
    ContactField("phone", "phone number", _validate_phone, normalize_phone),
    ContactField("identity", "identity number", _validate_identity,
                 lambda v: v.strip().upper()),
    ContactField("email", "email", _validate_email, lambda v: v.strip().lower()),
]


def validate_contact(
    contact: Union[ContactDetails, dict[str, Any]],
    config: Optional[ContactConfig] = None,
) -> ContactDetails:
    """
    Validate and normalize the contact form.

    Name and phone are always required; identity and email follow the
    contact config. Optional fields are validated only when filled in.

    Returns:
        A normalized copy of the contact details.

    Raises:
        ValidationError: with one message per failing field.
    """
    config = config or settings.contact
    if isinstance(contact, dict):
        contact = ContactDetails(**contact)

    required = {"name", "phone"}
    if config.require_identity:
        required.add("identity")
    if config.require_email:
        required.add("email")

    errors: dict[str, str] = {}
    normalized: dict[str, Any] = {}
    for defn in CONTACT_FIELDS:
        raw = getattr(contact, defn.name) or ""
        if not raw.strip():
            if defn.name in required:
                errors[defn.name] = f"Please enter your {defn.display_name}."
            else:
                normalized[defn.name] = None if defn.name == "email" else ""
            continue
        if not defn.validator(raw):
            errors[defn.name] = f"The {defn.display_name} '{raw}' doesn't look right."
            continue
        normalized[defn.name] = defn.normalizer(raw)

    if errors:
        logger.debug("Contact validation failed for fields: %s", sorted(errors))
        raise ValidationError(errors)

    comment = (contact.comment or "").strip() or None
    return ContactDetails(comment=comment, **normalized)
