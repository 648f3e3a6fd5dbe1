"""
=============================================================================
NORMALIZED REQUEST
=============================================================================

Wraps a raw ``HTTPRequest`` once and exposes the interpreted view that
the validation pipeline and route handlers work with.

=============================================================================
WHAT GETS DERIVED
=============================================================================

    ┌──────────────────────┬─────────────────────────────────────────────┐
    │ Attribute            │ Source                                      │
    ├──────────────────────┼─────────────────────────────────────────────┤
    │ url                  │ request URL, host rewritten (see below)     │
    │ accepted_types       │ Accept, essences only, order kept           │
    │ content_type_essence │ Content-Type without parameters, "" if none │
    │ content_length       │ Content-Length as int, None if absent/bad   │
    │ cookies              │ Cookie header (+ platform store for writes) │
    │ destination          │ Sec-Fetch-Dest  → else platform metadata    │
    │ mode                 │ Sec-Fetch-Mode  → else platform metadata    │
    │ referrer             │ Referer         → else platform metadata    │
    │ referrer_policy      │ Referrer-Policy → else platform metadata    │
    │ credentials          │ "include" if Cookie or Authorization sent   │
    │ is_same_origin       │ see SAME-ORIGIN below                       │
    │ is_cors              │ mode == "cors" and an Origin header         │
    └──────────────────────┴─────────────────────────────────────────────┘

Everything is computed in ``__init__``. After that the object refuses
attribute assignment, so a handler cannot change what the pipeline
already validated.

The body is never touched during construction. It is read on demand by
``data()``, ``json()``, ``text()``, ``form_data()``, ``blob()`` or
``read()``, and like the raw request it can only be read once.

=============================================================================
HOST REWRITE
=============================================================================

Serverless platforms often invoke functions with an internal URL. The
public host is recovered in this order, first hit wins:

    1. context.site.url       (platform knows the deployed site)
    2. Host request header
    3. the URL as received

=============================================================================
SAME-ORIGIN
=============================================================================

Rules are tried top to bottom, the first that applies decides:

    1. Sec-Fetch-Site present and not "same-origin"      → cross-origin
    2. file: URL with a file: referrer                   → same-origin
    3. Origin header whose origin equals ours            → same-origin
    4. referrer is "client" / "about:client"             → cross-origin
    5. referrer is a URL                                 → origins equal?
    6. anything else                                     → cross-origin

=============================================================================
INTERVIEW QUESTIONS
=============================================================================

Q: "Why trust Sec-Fetch-* headers over the platform's request metadata?"
A: "Browsers set Sec-Fetch-* themselves and page scripts cannot forge
   them. Serverless runtimes, on the other hand, rebuild the request
   object and routinely lose mode/destination/referrer along the way."

Q: "Why does a missing Content-Length become None and not 0?"
A: "Zero is a legitimate length. The pipeline has to tell 'client said
   zero' apart from 'client said nothing' to enforce Length-Required."

=============================================================================
"""

import re
from typing import Any, Iterable, Optional, Pattern, Tuple, Union
from urllib.parse import parse_qs, urljoin, urlsplit, urlunsplit

from .context import lookup
from .errors import InvalidInputError
from .http.cookies import RequestCookies
from .http.form_data import Blob, FormData
from .http.headers import (
    ACCEPT,
    AUTHORIZATION,
    CONTENT_LENGTH,
    CONTENT_TYPE,
    COOKIE,
    HOST,
    ORIGIN,
    REFERER,
    REFERRER_POLICY,
    SEC_FETCH_DEST,
    SEC_FETCH_MODE,
    SEC_FETCH_SITE,
    Headers,
)
from .http.mime_types import get_essence, is_form_type, is_json_type, is_text_type, parse_accept
from .http.request import HTTPRequest
from .http.response import HTTPResponse, redirect


DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}
UNKNOWN_CLIENT_REFERRERS = frozenset({"client", "about:client"})

_CONTENT_LENGTH = re.compile(r"^\s*(\d+)")


def url_origin(url: Optional[str]) -> Optional[str]:
    """
    Serialize the origin (scheme, host, port) of ``url``.

    Default ports are dropped, non-network schemes have the opaque
    origin ``"null"``, and strings that are not URLs give ``None``.

        >>> url_origin("HTTPS://Example.com:443/a?b")
        'https://example.com'
        >>> url_origin("file:///tmp/x.html")
        'null'
    """
    if not url:
        return None
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return None
    scheme = parts.scheme.lower()
    if not scheme:
        return None
    if scheme not in DEFAULT_PORTS:
        return "null"
    host = parts.hostname
    if not host:
        return None
    if ":" in host:
        host = f"[{host}]"
    if port is None or port == DEFAULT_PORTS[scheme]:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def _effective_url(url: str, headers: Headers, context: Any) -> str:
    parts = urlsplit(url)
    if parts.scheme not in DEFAULT_PORTS:
        return url

    host = ""
    site_url = lookup(context, "site", "url")
    if site_url:
        host = urlsplit(str(site_url)).netloc
    if not host:
        host = headers.get(HOST, "").strip()
    if not host:
        return url
    return urlunsplit(parts._replace(netloc=host.rpartition("@")[2]))


def parse_content_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    match = _CONTENT_LENGTH.match(value)
    return int(match.group(1)) if match else None


class NormalizedRequest:
    """
    Interpreted, read-only view of an ``HTTPRequest``.

    Args:
        request: The raw request. Its body must not have been read.
        context: Opaque platform context (site URL, geo, request id,
                 client IP, cookie store). Defaults to ``{}``.

    Raises:
        InvalidInputError: ``request`` is not an ``HTTPRequest`` or its
                           body was already consumed.
    """

    def __init__(self, request: HTTPRequest, context: Any = None):
        if not isinstance(request, HTTPRequest):
            raise InvalidInputError(f"Cannot create a NormalizedRequest from {type(request).__name__}")
        if request.body_used:
            raise InvalidInputError("Request body has already been used and is unreadable")

        headers = request.headers
        self._request = request
        self.context = context if context is not None else {}
        self.method = request.method
        self.url = _effective_url(request.url, headers, self.context)
        self.origin = url_origin(self.url)

        self.accepted_types: Tuple[str, ...] = tuple(parse_accept(headers.get(ACCEPT)))
        self.accepts_all = not self.accepted_types or "*/*" in self.accepted_types
        self.content_type_essence = get_essence(headers.get(CONTENT_TYPE))
        self.content_length = parse_content_length(headers.get(CONTENT_LENGTH))

        self.destination = headers.get(SEC_FETCH_DEST) or request.destination
        self.mode = headers.get(SEC_FETCH_MODE) or request.mode
        self.referrer = headers.get(REFERER) or request.referrer
        self.referrer_policy = headers.get(REFERRER_POLICY) or request.referrer_policy
        self.credentials = "include" if COOKIE in headers or AUTHORIZATION in headers else "omit"

        self.cookies = RequestCookies(headers.get(COOKIE), lookup(self.context, "cookies"))
        self.is_same_origin = self._same_origin(headers)
        self.is_cors = self.mode == "cors" and ORIGIN in headers
        self._frozen = True

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError(f"NormalizedRequest is read-only (cannot set {name!r})")
        super().__setattr__(name, value)

    def _same_origin(self, headers: Headers) -> bool:
        fetch_site = headers.get(SEC_FETCH_SITE)
        if fetch_site is not None and fetch_site != "same-origin":
            return False
        if self.origin == "null" and self.protocol == "file:" and self.referrer.startswith("file:"):
            return True
        if ORIGIN in headers and url_origin(headers[ORIGIN]) == self.origin:
            return True
        if self.referrer in UNKNOWN_CLIENT_REFERRERS:
            return False
        referrer_origin = url_origin(self.referrer)
        if referrer_origin is not None:
            return referrer_origin == self.origin
        return False

    # ─────────────────────────────────────────────────────────────────────
    # Pass-through
    # ─────────────────────────────────────────────────────────────────────

    @property
    def raw(self) -> HTTPRequest:
        return self._request

    @property
    def headers(self) -> Headers:
        return self._request.headers

    @property
    def signal(self):
        return self._request.signal

    @property
    def body_used(self) -> bool:
        return self._request.body_used

    @property
    def has_body(self) -> bool:
        return self._request.has_body

    # ─────────────────────────────────────────────────────────────────────
    # URL components
    # ─────────────────────────────────────────────────────────────────────

    @property
    def protocol(self) -> str:
        return urlsplit(self.url).scheme + ":"

    @property
    def host(self) -> str:
        return urlsplit(self.url).netloc.rpartition("@")[2]

    @property
    def hostname(self) -> str:
        return urlsplit(self.url).hostname or ""

    @property
    def port(self) -> str:
        parts = urlsplit(self.url)
        if parts.port is None or parts.port == DEFAULT_PORTS.get(parts.scheme):
            return ""
        return str(parts.port)

    @property
    def pathname(self) -> str:
        return urlsplit(self.url).path or "/"

    @property
    def search(self) -> str:
        query = urlsplit(self.url).query
        return f"?{query}" if query else ""

    @property
    def hash(self) -> str:
        fragment = urlsplit(self.url).fragment
        return f"#{fragment}" if fragment else ""

    @property
    def username(self) -> str:
        return urlsplit(self.url).username or ""

    @property
    def password(self) -> str:
        return urlsplit(self.url).password or ""

    @property
    def search_params(self) -> dict:
        """Query parameters as ``{name: [values]}``, blanks kept."""
        return parse_qs(urlsplit(self.url).query, keep_blank_values=True)

    # ─────────────────────────────────────────────────────────────────────
    # Classification
    # ─────────────────────────────────────────────────────────────────────

    @property
    def is_json(self) -> bool:
        return is_json_type(self.content_type_essence)

    @property
    def is_form_data(self) -> bool:
        return is_form_type(self.content_type_essence)

    @property
    def is_text(self) -> bool:
        return is_text_type(self.content_type_essence)

    def accepts(self, candidate: Union[str, Pattern, Iterable[str]]) -> bool:
        """
        Content negotiation against the Accept header.

        ``candidate`` may be a media type, a compiled regex tested against
        each accepted type, or an iterable of media types (any match).
        """
        if self.accepts_all:
            return True
        if isinstance(candidate, str):
            return candidate.lower() in self.accepted_types
        if hasattr(candidate, "search"):
            return any(candidate.search(mime) for mime in self.accepted_types)
        try:
            return any(str(item).lower() in self.accepted_types for item in candidate)
        except TypeError:
            return False

    # ─────────────────────────────────────────────────────────────────────
    # Platform metadata
    # ─────────────────────────────────────────────────────────────────────

    @property
    def geo(self) -> Any:
        return lookup(self.context, "geo", default={})

    @property
    def ip_address(self) -> str:
        return lookup(self.context, "ip", default="::1")

    @property
    def request_id(self) -> str:
        return str(lookup(self.context, "requestId", default="0"))

    # ─────────────────────────────────────────────────────────────────────
    # Body
    # ─────────────────────────────────────────────────────────────────────

    async def read(self) -> bytes:
        return await self._request.read()

    async def text(self) -> str:
        return await self._request.text()

    async def json(self) -> Any:
        return await self._request.json()

    async def form_data(self) -> FormData:
        return await self._request.form_data()

    async def blob(self) -> Blob:
        return await self._request.blob()

    async def data(self) -> Union[None, Any, FormData, str, Blob]:
        """
        Parse the body according to its Content-Type.

        No Content-Type gives ``None``. JSON-family types (including any
        ``+json`` suffix) are parsed, forms become ``FormData``,
        ``text/plain`` becomes ``str`` and everything else a ``Blob``.
        """
        essence = self.content_type_essence
        if essence == "":
            return None
        if is_json_type(essence):
            return await self.json()
        if is_form_type(essence):
            return await self.form_data()
        if is_text_type(essence):
            return await self.text()
        return await self.blob()

    # ─────────────────────────────────────────────────────────────────────
    # Cookies
    # ─────────────────────────────────────────────────────────────────────

    def get_cookie(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.cookies.get(name, default)

    def set_cookie(self, name: str, value: str, **attributes) -> None:
        self.cookies.set(name, value, **attributes)

    def delete_cookie(self, name: str, path: str = "/") -> None:
        self.cookies.delete(name, path=path)

    # ─────────────────────────────────────────────────────────────────────
    # Misc
    # ─────────────────────────────────────────────────────────────────────

    def redirect(self, url: str, status: int = 302) -> HTTPResponse:
        """Redirect relative to this request's URL."""
        return redirect(urljoin(self.url, url), status)

    def clone(self) -> "NormalizedRequest":
        """An independent wrapper with its own readable body, same context."""
        return NormalizedRequest(self._request.clone(), self.context)

    def __repr__(self) -> str:
        return f"<NormalizedRequest {self.method} {self.url}>"
