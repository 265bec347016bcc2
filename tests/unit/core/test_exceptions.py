#!/usr/bin/env python3
"""
Unit Tests for Custom Exceptions
Tests for gad_procurement/core/exceptions.py
"""

import pytest
from datetime import datetime

from gad_procurement.core.exceptions import (
    AppException,
    ValidationException,
    AuthenticationException,
    NotFoundException,
    ConflictException,
    AlreadyExistsException,
    InvalidStateException,
)


class TestAppException:
    """Test base AppException"""

    def test_default_values(self):
        """Test exception with default values"""
        exc = AppException("Test error")
        assert exc.message == "Test error"
        assert exc.code == "app_error"
        assert exc.status_code == 500
        assert exc.details == {}

    def test_all_parameters(self):
        exc = AppException(
            message="Full error",
            code="full_error",
            status_code=418,
            details={"detail": "info"}
        )
        assert exc.message == "Full error"
        assert exc.code == "full_error"
        assert exc.status_code == 418
        assert exc.details == {"detail": "info"}

    def test_timestamp_is_iso_utc(self):
        """Test exception timestamp is an aware ISO string"""
        exc = AppException("Test error")
        parsed = datetime.fromisoformat(exc.timestamp)
        assert parsed.tzinfo is not None

    def test_str_is_message(self):
        assert str(AppException("Boom")) == "Boom"


class TestSubclasses:
    """Test error codes and HTTP statuses of each subclass"""

    def test_validation_exception(self):
        exc = ValidationException("Bad input", details={"field": "name"})
        assert exc.status_code == 400
        assert exc.code == "validation_error"
        assert exc.details == {"field": "name"}

    def test_authentication_exception_default_message(self):
        exc = AuthenticationException()
        assert exc.status_code == 401
        assert exc.message == "Authentication failed"

    def test_not_found_exception(self):
        exc = NotFoundException("Access")
        assert exc.status_code == 404
        assert exc.code == "not_found"
        assert exc.message == "Access not found"

    def test_already_exists_is_conflict(self):
        exc = AlreadyExistsException("Duplicate")
        assert isinstance(exc, ConflictException)
        assert exc.status_code == 409
        assert exc.code == "already_exists"

    def test_invalid_state_is_conflict(self):
        exc = InvalidStateException("Already inactive")
        assert isinstance(exc, ConflictException)
        assert exc.status_code == 409
        assert exc.code == "invalid_state"

    def test_all_are_app_exceptions(self):
        for exc in [
            ValidationException("x"),
            AuthenticationException(),
            NotFoundException(),
            AlreadyExistsException("x"),
            InvalidStateException("x"),
        ]:
            assert isinstance(exc, AppException)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
