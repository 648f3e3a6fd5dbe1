"""
Request factories for tests.

Browsers attach fetch metadata (``Sec-Fetch-*``, ``Referer``) and a
``Content-Length`` to every request; the normalizer depends on those.
These helpers build requests that look the same, so tests exercise the
same code paths real traffic does.

    request = make_request("/api/items", method="DELETE", token=jwt_token)
    request = json_request({"name": "x"}, "/api/items")
"""

import json
from typing import Any, Mapping, Optional, Union
from urllib.parse import urlencode, urljoin, urlsplit, urlunsplit

from .http.headers import (
    AUTHORIZATION,
    CONTENT_LENGTH,
    CONTENT_TYPE,
    REFERER,
    SEC_FETCH_DEST,
    SEC_FETCH_MODE,
    Headers,
    HeadersInit,
)
from .http.mime_types import JSON_CONTENT_TYPE
from .http.request import AbortSignal, HTTPRequest


DEFAULT_BASE_URL = "http://localhost:8888"


def make_request(
    url: str = "/",
    method: str = "GET",
    headers: HeadersInit = None,
    body: Union[bytes, str, None] = None,
    token: Optional[str] = None,
    search_params: Optional[Mapping[str, Any]] = None,
    referrer: Optional[str] = None,
    mode: str = "cors",
    destination: str = "empty",
    signal: Optional[AbortSignal] = None,
    base_url: str = DEFAULT_BASE_URL,
) -> HTTPRequest:
    """
    Build a browser-like ``HTTPRequest``.

    Relative URLs are resolved against ``base_url``. ``referrer``
    defaults to the base URL, making the request same-origin unless an
    ``Origin`` or ``Sec-Fetch-Site`` header says otherwise. Headers
    passed explicitly always win over the generated ones.
    """
    full_url = urljoin(base_url.rstrip("/") + "/", url)
    if search_params:
        parts = urlsplit(full_url)
        query = "&".join(filter(None, [parts.query, urlencode(search_params, doseq=True)]))
        full_url = urlunsplit(parts._replace(query=query))

    generated = Headers({
        SEC_FETCH_DEST: destination,
        SEC_FETCH_MODE: mode,
        REFERER: referrer if referrer is not None else base_url,
    })
    if token:
        generated[AUTHORIZATION] = f"Bearer {token}"
    if body is not None:
        raw = body.encode("utf-8") if isinstance(body, str) else bytes(body)
        generated[CONTENT_LENGTH] = str(len(raw))
    for name, value in Headers(headers).items():
        generated[name] = value

    return HTTPRequest(
        full_url,
        method=method,
        headers=generated,
        body=body,
        signal=signal,
        mode=mode,
        destination=destination,
        referrer=generated[REFERER],
    )


def json_request(data: Any, url: str = "/", method: str = "POST", **kwargs) -> HTTPRequest:
    """A ``make_request`` with a JSON body and Content-Type."""
    headers = Headers(kwargs.pop("headers", None))
    if CONTENT_TYPE not in headers:
        headers[CONTENT_TYPE] = JSON_CONTENT_TYPE
    return make_request(url, method=method, headers=headers, body=json.dumps(data), **kwargs)
