"""
Tests for arrival.exceptions module.
"""

import logging

import pytest

from arrival.exceptions import (
    ArrivalError,
    BackendConnectionError,
    BackendHTTPError,
    ChecklistGateError,
    ConfigurationError,
    MissingRequiredFieldError,
    UnexpectedContentTypeError,
    UnexpectedShapeError,
    ValidationError,
    exception_to_http_status,
)


class TestArrivalError:
    def test_to_dict(self):
        exc = ArrivalError("Something broke", detail="more", request_id="req-1")

        assert exc.to_dict() == {
            "error": "arrival_arrivalerror",
            "message": "Something broke",
            "detail": "more",
            "request_id": "req-1",
        }
        assert str(exc) == "Something broke: more"

    def test_request_id_generated(self):
        assert ArrivalError("x").request_id

    def test_log_uses_structured_extra(self, caplog):
        exc = ValidationError("Bad input", field="name")

        with caplog.at_level(logging.WARNING, logger="arrival.exceptions"):
            exc.log(logging.WARNING)

        record = caplog.records[-1]
        assert record.getMessage() == "Bad input"
        assert record.error_code == "validation_error"
        assert record.exception_type == "ValidationError"


class TestValidationErrors:
    def test_missing_field_default_label(self):
        exc = MissingRequiredFieldError("term_label")
        assert str(exc) == "Term label is required"
        assert exc.field == "term_label"

    def test_missing_field_custom_label(self):
        assert str(MissingRequiredFieldError("content", label="Message")) == "Message is required"

    def test_gate_error_is_validation_error(self):
        exc = ChecklistGateError("step-1", reason="Your document is waiting for review.")
        assert isinstance(exc, ValidationError)
        assert str(exc) == "Your document is waiting for review."


class TestBackendErrors:
    def test_http_error_prefers_backend_detail(self):
        assert str(BackendHTTPError("Load students", 404, backend_detail="Not here")) == "Not here"
        assert str(BackendHTTPError("Load students", 500)) == "Load students failed (500)"

    def test_connection_error_message(self):
        exc = BackendConnectionError("Send message", reason="timed out")
        assert str(exc) == "Send message failed: could not reach the backend: timed out"
        assert exc.error_code == "backend_unreachable"

    def test_shape_and_content_type(self):
        assert str(UnexpectedShapeError("programs")) == "Unexpected programs response shape"
        exc = UnexpectedContentTypeError("students", content_type="text/html")
        assert exc.message == "Backend did not return JSON for students"


class TestHttpStatusMapping:
    @pytest.mark.parametrize(
        "exc, status",
        [
            (ValidationError("x"), 400),
            (ChecklistGateError("s", reason="r"), 400),
            (BackendHTTPError("Load", 503), 502),
            (UnexpectedShapeError("x"), 502),
            (ConfigurationError("x"), 500),
            (ArrivalError("x"), 500),
        ],
    )
    def test_mapping(self, exc, status):
        assert exception_to_http_status(exc) == status
