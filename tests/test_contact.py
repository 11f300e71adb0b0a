"""Tests for contact form validation."""

import pytest

from availability_engine.booking.contact import validate_contact
from availability_engine.config import ContactConfig
from availability_engine.errors import ValidationError
from availability_engine.schemas.booking_schema import ContactDetails
from tests.conftest import CONTACT


class TestValidContact:
    def test_normalizes_fields(self):
        result = validate_contact({
            "name": "  Ana Rojas ",
            "phone": "+56 9 1234-5678",
            "identity": " 12.345.678-k ",
            "email": " Ana@Example.COM ",
        })
        assert result.name == "Ana Rojas"
        assert result.phone == "+56912345678"
        assert result.identity == "12.345.678-K"
        assert result.email == "ana@example.com"

    def test_accepts_model_instance(self):
        result = validate_contact(ContactDetails(**CONTACT))
        assert result.name == "Ana Rojas"

    def test_optional_email_may_be_blank(self):
        result = validate_contact({**CONTACT, "email": "   "})
        assert result.email is None

    def test_comment_trimmed(self):
        assert validate_contact({**CONTACT, "comment": "  first visit "}).comment == "first visit"
        assert validate_contact({**CONTACT, "comment": "   "}).comment is None


class TestMissingFields:
    def test_all_required_fields_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_contact({})
        assert set(exc_info.value.field_errors) == {"name", "phone", "identity"}
        assert exc_info.value.field_errors["phone"] == "Please enter your phone number."

    def test_identity_optional_when_configured(self):
        config = ContactConfig(require_email=False, require_identity=False)
        result = validate_contact({"name": "Ana Rojas", "phone": "912345678"}, config)
        assert result.identity == ""

    def test_email_required_when_configured(self):
        config = ContactConfig(require_email=True, require_identity=True)
        data = {k: v for k, v in CONTACT.items() if k != "email"}
        with pytest.raises(ValidationError) as exc_info:
            validate_contact(data, config)
        assert set(exc_info.value.field_errors) == {"email"}


class TestInvalidFields:
    @pytest.mark.parametrize("field,value", [
        ("name", "A"),
        ("phone", "12345"),
        ("phone", "+1 234 567 890 123 456"),
        ("identity", "12"),
        ("email", "not-an-email"),
    ])
    def test_rejected(self, field, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_contact({**CONTACT, field: value})
        assert list(exc_info.value.field_errors) == [field]
        assert value in exc_info.value.field_errors[field]

    def test_error_message_joins_fields(self):
        with pytest.raises(ValidationError, match="name: "):
            validate_contact({**CONTACT, "name": "A"})
