"""
=============================================================================
RESPONSE COERCION
=============================================================================

Route handlers may return almost anything. ``to_response`` turns the
result into an ``HTTPResponse``:

    ┌──────────────────────────────┬───────────────────────────────────────┐
    │ Handler returns              │ Response                              │
    ├──────────────────────────────┼───────────────────────────────────────┤
    │ None                         │ 204, empty                            │
    │ int / finite float           │ empty, status clamped to 100..599     │
    │ str                          │ 200, text/plain                       │
    │ bytes-like                   │ 200, application/octet-stream         │
    │ Blob / File                  │ 200, Content-Type = blob.type         │
    │ Headers                      │ 204 carrying those headers            │
    │ urllib.parse SplitResult /   │ 302 redirect to that URL              │
    │   ParseResult                │                                       │
    │ HTTPResponse                 │ unchanged                             │
    │ HTTPError (returned)         │ error.response                        │
    │ other exception (returned)   │ raises HTTPInternalServerError        │
    │ dict, list, dataclass, ...   │ 200, application/json                 │
    │ anything not serializable    │ raises HTTPInternalServerError        │
    └──────────────────────────────┴───────────────────────────────────────┘

``bool`` is an ``int`` subclass in Python, but ``return True`` from a
handler is almost certainly a bug, so booleans are refused rather than
turned into a 100 Continue.

=============================================================================
"""

import math
from typing import Any
from urllib.parse import ParseResult, SplitResult

from ..errors import HTTPError, HTTPInternalServerError
from ..http.form_data import Blob
from ..http.headers import CONTENT_TYPE, Headers
from ..http.mime_types import OCTET_STREAM
from ..http.response import HTTPResponse, json_response, no_content, redirect
from ..http.status_codes import clamp_status


def _unsupported(result: Any) -> HTTPInternalServerError:
    return HTTPInternalServerError(f"Could not create a response from a {type(result).__name__}")


def to_response(result: Any) -> HTTPResponse:
    """
    Coerce a handler result into a response.

    Raises:
        HTTPInternalServerError: for returned exceptions and for values
            that have no response representation. The original value
            (when it is an exception) is attached as ``__cause__``.
    """
    if result is None:
        return no_content()

    if isinstance(result, HTTPResponse):
        return result

    if isinstance(result, bool):
        raise _unsupported(result)

    if isinstance(result, (int, float)):
        if isinstance(result, float) and not math.isfinite(result):
            raise _unsupported(result)
        return HTTPResponse(status=clamp_status(result))

    if isinstance(result, str):
        return HTTPResponse(result)

    if isinstance(result, Blob):
        return HTTPResponse(result)

    if isinstance(result, (bytes, bytearray, memoryview)):
        return HTTPResponse(result, headers={CONTENT_TYPE: OCTET_STREAM})

    if isinstance(result, Headers):
        return no_content(result)

    if isinstance(result, (SplitResult, ParseResult)):
        return redirect(result.geturl())

    if isinstance(result, HTTPError):
        return result.response

    if isinstance(result, BaseException):
        raise HTTPInternalServerError("Something broke :(", cause=result)

    try:
        return json_response(result)
    except (TypeError, ValueError) as exc:
        raise _unsupported(result) from exc
