"""
Unit Tests for the error taxonomy and response envelope
"""
from portal.core.exceptions import (
    GENERIC_ERROR_MESSAGE,
    BadRequestError,
    BatchWriteError,
    NotFoundError,
    UpstreamError,
    UpstreamUnavailableError,
    ValidationError,
    error_response,
)


class TestErrorResponse:

    def test_bad_request(self):
        body = error_response(BadRequestError("Missing academic period"))

        assert body == {
            "success": False,
            "error": "Bad Request",
            "message": "Missing academic period",
            "code": "BAD_REQUEST",
        }

    def test_not_found_carries_resource(self):
        error = NotFoundError("class", 9)
        body = error_response(error)

        assert error.status_code == 404
        assert body["code"] == "CLASS_NOT_FOUND"
        assert body["details"] == {"resource_kind": "class", "resource_id": "9"}

    def test_validation_errors_forwarded(self):
        body = error_response(ValidationError(field_errors={"section": ["Required"]}))

        assert body["validationErrors"] == {"section": ["Required"]}
        assert "details" not in body

    def test_upstream_server_error_is_generic(self):
        error = UpstreamError(503, "upstream stack trace", endpoint="/api/classes/1")
        body = error_response(error)

        assert error.status_code == 500
        assert body["message"] == GENERIC_ERROR_MESSAGE
        assert "details" not in body

    def test_upstream_client_error_passes_through(self):
        error = UpstreamError(403, "Grades are finalized")

        assert error.status_code == 403
        assert error_response(error)["message"] == "Grades are finalized"

    def test_unavailable_is_502(self):
        error = UpstreamUnavailableError(endpoint="/api/classes/1")

        assert error.status_code == 502
        assert error_response(error)["code"] == "UPSTREAM_UNAVAILABLE"

    def test_batch_write_lists_failed_ids(self):
        body = error_response(BatchWriteError("1 of 3 failed", failed_ids=["8"], succeeded=2))

        assert body["details"] == {"failedEnrollmentIds": ["8"], "succeeded": 2}
