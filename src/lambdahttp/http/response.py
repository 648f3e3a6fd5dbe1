"""
=============================================================================
HTTP RESPONSE
=============================================================================

The response object every handler result is coerced into, a fluent
builder for constructing one, and the JSON serializer registry used by
every JSON body this package writes.

=============================================================================
RESPONSE SHAPES
=============================================================================

    ┌───────────────┬────────┬─────────────────┬──────────────────────────┐
    │ Factory       │ Status │ Headers         │ Notes                    │
    ├───────────────┼────────┼─────────────────┼──────────────────────────┤
    │ HTTPResponse  │ 100-599│ mutable         │ str body → text/plain    │
    │ json_response │ any    │ mutable         │ application/json         │
    │ no_content    │ 204    │ mutable         │ never has a body         │
    │ redirect      │ 3xx    │ IMMUTABLE       │ Location set             │
    │ error_response│ 0      │ IMMUTABLE       │ network-error shape      │
    └───────────────┴────────┴─────────────────┴──────────────────────────┘

The two immutable shapes matter to the CORS injector: it cannot add
headers to them and does not try.

=============================================================================
SERIALIZER REGISTRY
=============================================================================

``json.dumps`` only knows dicts, lists, strings, numbers, booleans and
None. Handlers routinely return richer values (a FormData echo, a set of
tags, a timestamp). Instead of teaching those types to serialize
themselves, converters are registered per type:

    register_serializer(Decimal, str)
    json_response({"price": Decimal("9.99")})   # {"price": "9.99"}

Lookup walks the value's MRO, so a converter for a base class also
covers its subclasses.

=============================================================================
"""

import dataclasses
import json
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional, Union

from .form_data import Blob, File, FormData
from .headers import CONTENT_TYPE, LOCATION, Headers, HeadersInit
from .mime_types import JSON_CONTENT_TYPE, TEXT_CONTENT_TYPE
from .status_codes import (
    MAX_STATUS,
    MIN_STATUS,
    NULL_BODY_STATUSES,
    REDIRECT_STATUSES,
    HTTPStatus,
    reason_phrase,
)


# =============================================================================
# JSON SERIALIZERS
# =============================================================================

_SERIALIZERS: Dict[type, Callable[[Any], Any]] = {}


def register_serializer(cls: type, fn: Callable[[Any], Any]) -> None:
    """Register ``fn`` to turn instances of ``cls`` into JSON-able data."""
    _SERIALIZERS[cls] = fn


def json_default(obj: Any) -> Any:
    """``default=`` hook for ``json.dumps``."""
    for cls in type(obj).__mro__:
        fn = _SERIALIZERS.get(cls)
        if fn is not None:
            return fn(obj)
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def dumps(data: Any) -> str:
    return json.dumps(data, default=json_default, ensure_ascii=False, allow_nan=False)


register_serializer(Headers, lambda h: h.to_dict())
register_serializer(Blob, lambda b: {"size": b.size, "type": b.type})
register_serializer(File, lambda f: {"name": f.name, "type": f.type, "size": f.size})
register_serializer(FormData, lambda fd: fd.to_dict())
register_serializer(set, sorted)
register_serializer(frozenset, sorted)
register_serializer(datetime, lambda d: d.isoformat())
register_serializer(date, lambda d: d.isoformat())


# =============================================================================
# RESPONSE
# =============================================================================

BodyInit = Union[str, bytes, bytearray, memoryview, Blob, None]


class HTTPResponse:
    """
    A response produced by a handler or by the pipeline.

    Args:
        body: ``str`` (sent as UTF-8 text/plain), bytes-like, ``Blob``
              (its type becomes the Content-Type) or ``None``.
        status: 100..599.
        headers: Anything ``Headers`` accepts.

    Raises:
        ValueError: status out of range.
        TypeError: a body on a 101/204/205/304 response.
    """

    def __init__(
        self,
        body: BodyInit = None,
        status: int = HTTPStatus.OK,
        headers: HeadersInit = None,
        status_text: Optional[str] = None,
    ):
        status = int(status)
        if not MIN_STATUS <= status <= MAX_STATUS:
            raise ValueError(f"Response status must be in {MIN_STATUS}..{MAX_STATUS}, got {status}")
        self.status = status
        self.status_text = status_text if status_text is not None else reason_phrase(status)
        self.headers = headers.copy(immutable=False) if isinstance(headers, Headers) else Headers(headers)
        self.type = "default"
        self.redirected = False
        self.url = ""
        self.body: Optional[bytes] = None

        if body is not None:
            if status in NULL_BODY_STATUSES:
                raise TypeError(f"Response with status {status} cannot have a body")
            if isinstance(body, str):
                self.body = body.encode("utf-8")
                if CONTENT_TYPE not in self.headers:
                    self.headers[CONTENT_TYPE] = TEXT_CONTENT_TYPE
            elif isinstance(body, Blob):
                self.body = body.bytes()
                if body.type and CONTENT_TYPE not in self.headers:
                    self.headers[CONTENT_TYPE] = body.type
            elif isinstance(body, (bytes, bytearray, memoryview)):
                self.body = bytes(body)
            else:
                raise TypeError(f"Unsupported response body type: {type(body).__name__}")

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header and return self for chaining."""
        self.headers[name] = value
        return self

    def text(self) -> str:
        return (self.body or b"").decode("utf-8")

    def json(self) -> Any:
        return json.loads(self.text())

    def clone(self) -> "HTTPResponse":
        copy = HTTPResponse.__new__(HTTPResponse)
        copy.__dict__.update(self.__dict__)
        copy.headers = self.headers.copy()
        return copy

    def __repr__(self) -> str:
        return f"<HTTPResponse [{self.status}] type={self.type}>"


# =============================================================================
# BUILDER
# =============================================================================

class ResponseBuilder:
    """
    Fluent builder for responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .header("X-Request-Id", request_id)
            .json({"id": 7})
            .build())

    Every method except ``build()`` returns the builder.
    """

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers = Headers()
        self._body: BodyInit = None

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: HeadersInit) -> "ResponseBuilder":
        for name, value in Headers(headers).items():
            self._headers[name] = value
        return self

    def text(self, text: str) -> "ResponseBuilder":
        self._body = text
        if CONTENT_TYPE not in self._headers:
            self._headers[CONTENT_TYPE] = TEXT_CONTENT_TYPE
        return self

    def html(self, html: str) -> "ResponseBuilder":
        self._body = html
        self._headers[CONTENT_TYPE] = "text/html;charset=UTF-8"
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        """
        Serialize ``data`` through the serializer registry.

        Interview insight: ``allow_nan=False`` keeps NaN and Infinity out
        of the body. Python would happily emit them, but they are not
        JSON and most clients reject the whole document.
        """
        self._body = dumps(data)
        if CONTENT_TYPE not in self._headers:
            self._headers[CONTENT_TYPE] = JSON_CONTENT_TYPE
        return self

    def blob(self, blob: Blob) -> "ResponseBuilder":
        self._body = blob
        return self

    def no_cache(self) -> "ResponseBuilder":
        self._headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(self._body, status=self._status, headers=self._headers)


# =============================================================================
# FACTORIES
# =============================================================================

def json_response(data: Any, status: int = HTTPStatus.OK, headers: HeadersInit = None) -> HTTPResponse:
    return ResponseBuilder().status(status).headers(headers).json(data).build()


def no_content(headers: HeadersInit = None) -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.NO_CONTENT).headers(headers).build()


def redirect(url: str, status: int = HTTPStatus.FOUND) -> HTTPResponse:
    """
    Redirect to ``url``. The resulting header set is immutable.

    Raises:
        ValueError: ``status`` is not 301, 302, 303, 307 or 308.
    """
    if status not in REDIRECT_STATUSES:
        raise ValueError(f"Invalid redirect status: {status}")
    response = HTTPResponse(status=status)
    response.headers = Headers({LOCATION: str(url)}, immutable=True)
    return response


def error_response() -> HTTPResponse:
    """The network-error response: status 0, no body, immutable headers."""
    response = HTTPResponse.__new__(HTTPResponse)
    response.status = 0
    response.status_text = ""
    response.headers = Headers(immutable=True)
    response.type = "error"
    response.redirected = False
    response.url = ""
    response.body = None
    return response
