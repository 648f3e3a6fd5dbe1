"""
Unit tests for the HTTP error taxonomy.
"""

import json

import pytest

from lambdahttp.errors import (
    HTTPBadRequestError,
    HTTPClientError,
    HTTPError,
    HTTPInternalServerError,
    HTTPMethodNotAllowedError,
    HTTPNotFoundError,
    HTTPPayloadTooLargeError,
    HTTPServerError,
    HTTPServiceUnavailableError,
    HTTPUnauthorizedError,
    error_for_status,
)


class TestHTTPError:
    """Tests for the HTTPError base class."""

    def test_defaults_to_500(self):
        """Test that a bare HTTPError is a 500 with the reason phrase."""
        error = HTTPError()
        assert error.status == 500
        assert error.message == "Internal Server Error"

    @pytest.mark.parametrize("status", [0, -1, 600, 1000])
    def test_out_of_range_status_becomes_500(self, status):
        """Test that statuses outside 1..599 are replaced by 500."""
        assert HTTPError("x", status).status == 500

    def test_low_status_is_kept(self):
        """Test that statuses in 1..99 survive construction."""
        assert HTTPError("x", 42).status == 42

    def test_subclass_default_status(self):
        """Test that named subclasses carry their own status."""
        assert HTTPNotFoundError().status == 404
        assert HTTPUnauthorizedError().status == 401
        assert HTTPServiceUnavailableError().status == 503

    def test_branches(self):
        """Test client/server classification."""
        assert isinstance(HTTPBadRequestError(), HTTPClientError)
        assert isinstance(HTTPInternalServerError(), HTTPServerError)
        assert HTTPBadRequestError().is_client_error
        assert not HTTPBadRequestError().is_server_error
        assert HTTPInternalServerError().is_server_error

    def test_cause(self):
        """Test that cause is stored as __cause__."""
        original = KeyError("id")
        error = HTTPNotFoundError("No user", cause=original)
        assert error.cause is original
        assert error.__cause__ is original

    def test_to_dict_without_details(self):
        """Test that details are omitted when not given."""
        assert HTTPNotFoundError("nope").to_dict() == {"error": {"message": "nope", "status": 404}}

    def test_to_dict_with_details(self):
        """Test that details are included."""
        error = HTTPPayloadTooLargeError("too big", details={"contentLength": 10})
        assert error.to_dict()["error"]["details"] == {"contentLength": 10}

    def test_repr(self):
        assert repr(HTTPNotFoundError("x")) == "HTTPNotFoundError('x', status=404)"


class TestErrorResponse:
    """Tests for converting errors to responses."""

    def test_response_shape(self):
        """Test that the response body matches the error wire format."""
        response = HTTPBadRequestError("bad").response

        assert response.status == 400
        assert response.headers["Content-Type"] == "application/json"
        assert response.json() == {"error": {"message": "bad", "status": 400}}

    def test_response_carries_headers(self):
        """Test that error headers are copied onto the response."""
        error = HTTPMethodNotAllowedError("no", headers={"Allow": "GET, OPTIONS"})
        assert error.response.headers["allow"] == "GET, OPTIONS"

    def test_response_does_not_leak_cause(self):
        """Test that the cause never reaches the body."""
        error = HTTPInternalServerError("An unknown error occurred", cause=ValueError("db password wrong"))
        assert "password" not in error.response.text()

    def test_to_json(self):
        assert json.loads(HTTPNotFoundError("x").to_json())["error"]["status"] == 404

    def test_each_response_is_fresh(self):
        """Test that .response builds a new object each time."""
        error = HTTPNotFoundError()
        first = error.response
        first.headers["X-Mutated"] = "1"
        assert "x-mutated" not in error.response.headers


class TestErrorForStatus:
    """Tests for error_for_status()."""

    def test_known_status(self):
        error = error_for_status(404, "gone fishing")
        assert type(error) is HTTPNotFoundError
        assert error.message == "gone fishing"

    def test_unknown_client_status(self):
        error = error_for_status(499)
        assert type(error) is HTTPClientError
        assert error.status == 499

    def test_unknown_server_status(self):
        error = error_for_status(599)
        assert type(error) is HTTPServerError
        assert error.status == 599
