"""
Unit tests for field validation helpers and the exception hierarchy.
"""

import pytest

from campus.core.exceptions import (
    CampusException, DuplicateEntityError, InvalidStateError, ResourceNotFoundError, ValidationError,
)
from campus.core.validation import (
    is_in_range, is_not_blank, is_positive, is_valid_email, is_valid_id, is_valid_phone, require,
)


class TestValidators:
    """Tests for the boolean validators."""

    @pytest.mark.parametrize("email, expected", [
        ("student@campus.edu", True),
        ("first.last+tag@mail.example.org", True),
        ("no-at-sign.edu", False),
        ("user@nodot", False),
        ("", False),
        (None, False),
    ])
    def test_email(self, email, expected):
        assert is_valid_email(email) is expected

    @pytest.mark.parametrize("phone, expected", [
        ("+1-555-0201", True),
        ("(020) 7946 0958", False),
        ("+44 20 7946 0958", True),
        ("abc", False),
        (None, False),
    ])
    def test_phone(self, phone, expected):
        assert is_valid_phone(phone) is expected

    @pytest.mark.parametrize("value, expected", [
        ("EV001", True),
        ("PAY000123", True),
        ("ev001", False),
        ("EVENT001", False),
        ("EV01", False),
    ])
    def test_id(self, value, expected):
        assert is_valid_id(value) is expected

    def test_numeric_helpers(self):
        assert is_positive(0.5) is True
        assert is_positive(0) is False
        assert is_in_range(40, 0, 100) is True
        assert is_in_range(101, 0, 100) is False

    def test_blank(self):
        assert is_not_blank("x") is True
        assert is_not_blank("   ") is False
        assert is_not_blank(None) is False

    def test_require(self):
        require(True, "never raised")
        with pytest.raises(ValidationError, match="Capacity must be positive"):
            require(False, "Capacity must be positive")


class TestExceptions:
    """Tests for the exception hierarchy."""

    @pytest.mark.parametrize("error_class", [
        ValidationError, InvalidStateError, ResourceNotFoundError, DuplicateEntityError,
    ])
    def test_all_derive_from_campus_exception(self, error_class):
        assert issubclass(error_class, CampusException)

    def test_error_details(self):
        error = ValidationError("Bad value", error_code="E100", details={"field": "capacity"})

        assert str(error) == "Bad value"
        assert error.error_code == "E100"
        assert error.details == {"field": "capacity"}
