"""
=============================================================================
HTTP ERROR TAXONOMY
=============================================================================

Exceptions that know how to become HTTP responses.

Every pre-dispatch check in the pipeline raises one of these, and route
handlers are free to raise them too. The dispatcher catches them at a
single boundary and calls ``error.response``.

=============================================================================
HIERARCHY
=============================================================================

    Exception
     └── HTTPError                      status 1..599, default 500
          ├── HTTPClientError           4xx (classification only)
          │    ├── HTTPBadRequestError              400
          │    ├── HTTPUnauthorizedError            401
          │    ├── HTTPForbiddenError               403
          │    ├── HTTPNotFoundError                404
          │    ├── HTTPMethodNotAllowedError        405
          │    ├── ...
          │    └── HTTPUnavailableForLegalReasonsError 451
          └── HTTPServerError           5xx (classification only)
               ├── HTTPInternalServerError          500
               ├── HTTPNotImplementedError          501
               ├── ...
               └── HTTPVariantAlsoNegotiatesError   506

=============================================================================
WIRE FORMAT
=============================================================================

    HTTP/1.1 413 Payload Too Large
    Content-Type: application/json

    {"error": {"message": "Max Content-Length is 50000 - sent 65536.",
               "status": 413,
               "details": {"contentLength": 65536, "maxContentLength": 50000}}}

``details`` is omitted when there is nothing to report. The ``cause`` of
an error is kept on ``__cause__`` for logging and is never serialized.

=============================================================================
INTERVIEW QUESTIONS ABOUT ERROR RESPONSES
=============================================================================

Q: "Why not just return str(exception) to the client?"
A: "Unexpected exceptions carry internals: file paths, SQL, stack
   fragments. Only errors raised on purpose (HTTPError) choose their
   own message. Everything else is reported as a generic 500 and the
   original exception goes to the log."

Q: "Why clamp an invalid status to 500 instead of raising?"
A: "The error is already on its way to becoming a response. Raising a
   second exception while reporting the first would lose both."

=============================================================================
"""

import json
from typing import Any, Dict, Mapping, Optional, Type

from .http.headers import Headers
from .http.status_codes import HTTPStatus, is_error_status, reason_phrase


class InvalidInputError(TypeError):
    """Raised when a request wrapper is given something it cannot wrap."""


class PolicyError(ValueError):
    """Raised at registration time for an inconsistent handler policy."""


class HTTPError(Exception):
    """
    Base class for errors that map onto an HTTP status.

    Args:
        message: Client-visible message. Defaults to the reason phrase.
        status: HTTP status. Anything outside 1..599 becomes 500.
        headers: Extra response headers (``Allow`` for a 405, for example).
        details: JSON-serializable diagnostic payload.
        cause: Upstream exception, stored as ``__cause__``.

    Usage:
        raise HTTPError("Upstream failed", 502, cause=exc)

        try:
            ...
        except KeyError as exc:
            raise HTTPNotFoundError(f"No user {user_id}") from exc
    """

    default_status: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: Optional[str] = None,
        status: Optional[int] = None,
        *,
        headers: Optional[Mapping[str, str]] = None,
        details: Any = None,
        cause: Optional[BaseException] = None,
    ):
        if status is None:
            status = self.default_status
        self.status = int(status) if is_error_status(int(status)) else int(HTTPStatus.INTERNAL_SERVER_ERROR)
        self.message = message if message is not None else reason_phrase(self.status)
        self.headers = Headers(headers)
        self.details = details
        if cause is not None:
            self.__cause__ = cause
        super().__init__(self.message)

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status < 600

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"message": self.message, "status": self.status}
        if self.details is not None:
            error["details"] = self.details
        return {"error": error}

    def to_json(self) -> str:
        from .http.response import json_default

        return json.dumps(self.to_dict(), default=json_default)

    @property
    def response(self):
        """A fresh JSON response carrying this error's status and headers."""
        from .http.response import json_response

        return json_response(self.to_dict(), status=self.status, headers=self.headers)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status={self.status})"


class HTTPClientError(HTTPError):
    default_status = HTTPStatus.BAD_REQUEST


class HTTPServerError(HTTPError):
    default_status = HTTPStatus.INTERNAL_SERVER_ERROR


# ─────────────────────────────────────────────────────────────────────────
# 4xx
# ─────────────────────────────────────────────────────────────────────────

class HTTPBadRequestError(HTTPClientError):
    default_status = HTTPStatus.BAD_REQUEST


class HTTPUnauthorizedError(HTTPClientError):
    default_status = HTTPStatus.UNAUTHORIZED


class HTTPPaymentRequiredError(HTTPClientError):
    default_status = HTTPStatus.PAYMENT_REQUIRED


class HTTPForbiddenError(HTTPClientError):
    default_status = HTTPStatus.FORBIDDEN


class HTTPNotFoundError(HTTPClientError):
    default_status = HTTPStatus.NOT_FOUND


class HTTPMethodNotAllowedError(HTTPClientError):
    default_status = HTTPStatus.METHOD_NOT_ALLOWED


class HTTPNotAcceptableError(HTTPClientError):
    default_status = HTTPStatus.NOT_ACCEPTABLE


class HTTPProxyAuthenticationRequiredError(HTTPClientError):
    default_status = HTTPStatus.PROXY_AUTHENTICATION_REQUIRED


class HTTPRequestTimeoutError(HTTPClientError):
    default_status = HTTPStatus.REQUEST_TIMEOUT


class HTTPConflictError(HTTPClientError):
    default_status = HTTPStatus.CONFLICT


class HTTPGoneError(HTTPClientError):
    default_status = HTTPStatus.GONE


class HTTPLengthRequiredError(HTTPClientError):
    default_status = HTTPStatus.LENGTH_REQUIRED


class HTTPPreconditionFailedError(HTTPClientError):
    default_status = HTTPStatus.PRECONDITION_FAILED


class HTTPPayloadTooLargeError(HTTPClientError):
    default_status = HTTPStatus.PAYLOAD_TOO_LARGE


class HTTPURITooLongError(HTTPClientError):
    default_status = HTTPStatus.URI_TOO_LONG


class HTTPUnsupportedMediaTypeError(HTTPClientError):
    default_status = HTTPStatus.UNSUPPORTED_MEDIA_TYPE


class HTTPRangeNotSatisfiableError(HTTPClientError):
    default_status = HTTPStatus.RANGE_NOT_SATISFIABLE


class HTTPExpectationFailedError(HTTPClientError):
    default_status = HTTPStatus.EXPECTATION_FAILED


class HTTPImATeapotError(HTTPClientError):
    default_status = HTTPStatus.IM_A_TEAPOT


class HTTPMisdirectedRequestError(HTTPClientError):
    default_status = HTTPStatus.MISDIRECTED_REQUEST


class HTTPPreconditionRequiredError(HTTPClientError):
    default_status = HTTPStatus.PRECONDITION_REQUIRED


class HTTPTooManyRequestsError(HTTPClientError):
    default_status = HTTPStatus.TOO_MANY_REQUESTS


class HTTPRequestHeaderFieldsTooLargeError(HTTPClientError):
    default_status = HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE


class HTTPUnavailableForLegalReasonsError(HTTPClientError):
    default_status = HTTPStatus.UNAVAILABLE_FOR_LEGAL_REASONS


# ─────────────────────────────────────────────────────────────────────────
# 5xx
# ─────────────────────────────────────────────────────────────────────────

class HTTPInternalServerError(HTTPServerError):
    default_status = HTTPStatus.INTERNAL_SERVER_ERROR


class HTTPNotImplementedError(HTTPServerError):
    default_status = HTTPStatus.NOT_IMPLEMENTED


class HTTPBadGatewayError(HTTPServerError):
    default_status = HTTPStatus.BAD_GATEWAY


class HTTPServiceUnavailableError(HTTPServerError):
    default_status = HTTPStatus.SERVICE_UNAVAILABLE


class HTTPGatewayTimeoutError(HTTPServerError):
    default_status = HTTPStatus.GATEWAY_TIMEOUT


class HTTPVersionNotSupportedError(HTTPServerError):
    default_status = HTTPStatus.HTTP_VERSION_NOT_SUPPORTED


class HTTPVariantAlsoNegotiatesError(HTTPServerError):
    default_status = HTTPStatus.VARIANT_ALSO_NEGOTIATES


_ERRORS_BY_STATUS: Dict[int, Type[HTTPError]] = {
    int(cls.default_status): cls
    for cls in (
        HTTPBadRequestError, HTTPUnauthorizedError, HTTPPaymentRequiredError,
        HTTPForbiddenError, HTTPNotFoundError, HTTPMethodNotAllowedError,
        HTTPNotAcceptableError, HTTPProxyAuthenticationRequiredError,
        HTTPRequestTimeoutError, HTTPConflictError, HTTPGoneError,
        HTTPLengthRequiredError, HTTPPreconditionFailedError,
        HTTPPayloadTooLargeError, HTTPURITooLongError,
        HTTPUnsupportedMediaTypeError, HTTPRangeNotSatisfiableError,
        HTTPExpectationFailedError, HTTPImATeapotError,
        HTTPMisdirectedRequestError, HTTPPreconditionRequiredError,
        HTTPTooManyRequestsError, HTTPRequestHeaderFieldsTooLargeError,
        HTTPUnavailableForLegalReasonsError, HTTPInternalServerError,
        HTTPNotImplementedError, HTTPBadGatewayError,
        HTTPServiceUnavailableError, HTTPGatewayTimeoutError,
        HTTPVersionNotSupportedError, HTTPVariantAlsoNegotiatesError,
    )
}


def error_for_status(status: int, message: Optional[str] = None, **kwargs) -> HTTPError:
    """
    Build the most specific error class for a status.

        >>> error_for_status(404, "gone fishing")
        HTTPNotFoundError('gone fishing', status=404)

    Unknown 4xx/5xx codes fall back to the branch classes.
    """
    cls = _ERRORS_BY_STATUS.get(status)
    if cls is not None:
        return cls(message, **kwargs)
    if 400 <= status < 500:
        return HTTPClientError(message, status, **kwargs)
    if 500 <= status < 600:
        return HTTPServerError(message, status, **kwargs)
    return HTTPError(message, status, **kwargs)
