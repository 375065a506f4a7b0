"""
Tests for usim.exceptions module.
"""

import pytest

from usim.exceptions import (
    ConfigurationError,
    HandlerError,
    NotFoundError,
    PayloadTooLargeError,
    ScreenNotFoundError,
    UnknownEventError,
    UploadNotFoundError,
    UploadStorageError,
    UsimError,
    ValidationError,
    exception_to_http_status,
    handle_exception,
)


class TestStatusMapping:
    @pytest.mark.parametrize(
        "exc, status",
        [
            (ValidationError("bad", field="event"), 400),
            (PayloadTooLargeError(max_size_mb=1), 413),
            (UnknownEventError("nope"), 400),
            (ScreenNotFoundError("x"), 404),
            (UploadNotFoundError("abc"), 404),
            (NotFoundError("gone"), 404),
            (HandlerError(handler="dashboard.on_increment"), 500),
            (ConfigurationError("bad config"), 500),
            (UploadStorageError(operation="write"), 500),
            (UsimError("generic"), 500),
        ],
    )
    def test_status(self, exc, status):
        assert exception_to_http_status(exc) == status


class TestEnvelope:
    def test_unknown_event_envelope(self):
        data = UnknownEventError("nonexistent.event", screen="dashboard", request_id="rid-1").to_dict()
        assert data["error"] == "unknown_event"
        assert "nonexistent.event" in data["detail"]
        assert "dashboard" in data["detail"]
        assert data["request_id"] == "rid-1"

    def test_validation_error_prefixes_field(self):
        exc = ValidationError("must be an object", field="parameters")
        assert exc.message == "parameters: must be an object"
        assert exc.error_code == "validation_error"

    def test_payload_too_large_is_validation_error(self):
        exc = PayloadTooLargeError(max_size_mb=2.5)
        assert isinstance(exc, ValidationError)
        assert exc.error_code == "payload_too_large"
        assert "2.5MB" in exc.message

    def test_screen_not_found_truncates_long_identifier(self):
        exc = ScreenNotFoundError("a" * 500)
        assert exc.screen == "a" * 500
        assert len(exc.detail) < 300

    def test_handler_error_keeps_cause(self):
        try:
            try:
                raise KeyError("missing")
            except KeyError as cause:
                raise HandlerError(handler="h", reason="KeyError") from cause
        except HandlerError as exc:
            assert isinstance(exc.__cause__, KeyError)
            assert exc.detail == "Handler: h; Reason: KeyError"


class TestHandleException:
    def test_usim_error_passthrough(self):
        data = handle_exception(UploadNotFoundError("abc"), request_id="rid-2")
        assert data["error"] == "upload_not_found"
        assert data["request_id"] == "rid-2"

    def test_file_not_found_maps_to_not_found(self):
        assert handle_exception(FileNotFoundError("x"))["error"] == "not_found"

    def test_unknown_exception_is_generic(self):
        data = handle_exception(RuntimeError("boom"), request_id="rid-3")
        assert data["error"] == "usim_usimerror"
        assert data["request_id"] == "rid-3"
