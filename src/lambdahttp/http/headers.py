"""
=============================================================================
HEADER SET
=============================================================================

A case-insensitive, insertion-ordered header collection shared by
requests and responses, plus the header names the middleware reads and
writes.

=============================================================================
WHY NOT A PLAIN DICT?
=============================================================================

HTTP header names are case-insensitive (RFC 7230 §3.2):

    headers["Content-Type"]     ─┐
    headers["content-type"]     ─┼──►  same field
    headers["CONTENT-TYPE"]     ─┘

A plain dict would treat those as three keys. ``Headers`` stores every
name lower-cased, so lookups, ``in`` checks and deletions all agree.

Repeated fields are folded into a single comma-separated value, which is
how the wire format combines them:

    h.append("Vary", "Origin")
    h.append("Vary", "Accept")
    h["vary"]  →  "Origin, Accept"

``Set-Cookie`` is the exception: cookie dates contain commas, so each
value is also kept separately and returned by ``get_set_cookie()``.

=============================================================================
IMMUTABLE HEADER SETS
=============================================================================

Redirect responses and network-error responses carry *immutable* header
sets. Any mutation raises ``TypeError``; the CORS injector checks
``headers.immutable`` up front and leaves those responses alone.

=============================================================================
"""

from typing import Dict, Iterable, Iterator, List, Mapping, MutableMapping, Optional, Tuple, Union


# =============================================================================
# HEADER NAMES
# =============================================================================

ACCEPT = "accept"
ALLOW = "allow"
AUTHORIZATION = "authorization"
CONTENT_LENGTH = "content-length"
CONTENT_TYPE = "content-type"
COOKIE = "cookie"
HOST = "host"
LOCATION = "location"
ORIGIN = "origin"
REFERER = "referer"
REFERRER_POLICY = "referrer-policy"
SET_COOKIE = "set-cookie"
VARY = "vary"

SEC_FETCH_DEST = "sec-fetch-dest"
SEC_FETCH_MODE = "sec-fetch-mode"
SEC_FETCH_SITE = "sec-fetch-site"
SEC_FETCH_USER = "sec-fetch-user"

ACCESS_CONTROL_ALLOW_CREDENTIALS = "access-control-allow-credentials"
ACCESS_CONTROL_ALLOW_HEADERS = "access-control-allow-headers"
ACCESS_CONTROL_ALLOW_METHODS = "access-control-allow-methods"
ACCESS_CONTROL_ALLOW_ORIGIN = "access-control-allow-origin"
ACCESS_CONTROL_EXPOSE_HEADERS = "access-control-expose-headers"
ACCESS_CONTROL_MAX_AGE = "access-control-max-age"
ACCESS_CONTROL_REQUEST_HEADERS = "access-control-request-headers"
ACCESS_CONTROL_REQUEST_METHOD = "access-control-request-method"


HeadersInit = Union["Headers", Mapping[str, str], Iterable[Tuple[str, str]], None]


class Headers(MutableMapping):
    """
    Case-insensitive header collection.

    Accepts another ``Headers``, a mapping, or an iterable of
    ``(name, value)`` pairs. Iterating yields lower-cased names.

        >>> h = Headers({"Content-Type": "text/plain"})
        >>> h["CONTENT-TYPE"]
        'text/plain'
        >>> "content-type" in h
        True
    """

    def __init__(self, init: HeadersInit = None, immutable: bool = False):
        self._items: Dict[str, str] = {}
        self._set_cookies: List[str] = []
        self._immutable = False
        if isinstance(init, Headers):
            self._items = dict(init._items)
            self._set_cookies = list(init._set_cookies)
        elif init is not None:
            pairs = init.items() if isinstance(init, Mapping) else init
            for name, value in pairs:
                self.append(name, value)
        self._immutable = immutable

    @property
    def immutable(self) -> bool:
        return self._immutable

    def _guard(self) -> None:
        if self._immutable:
            raise TypeError("Headers are immutable")

    # ─────────────────────────────────────────────────────────────────────
    # Mapping protocol
    # ─────────────────────────────────────────────────────────────────────

    def __getitem__(self, name: str) -> str:
        return self._items[name.lower()]

    def __setitem__(self, name: str, value) -> None:
        self._guard()
        key = name.lower()
        self._items[key] = str(value)
        if key == SET_COOKIE:
            self._set_cookies = [str(value)]

    def __delitem__(self, name: str) -> None:
        self._guard()
        key = name.lower()
        del self._items[key]
        if key == SET_COOKIE:
            self._set_cookies = []

    def __contains__(self, name) -> bool:
        return isinstance(name, str) and name.lower() in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other) -> bool:
        if isinstance(other, Headers):
            return self._items == other._items
        if isinstance(other, Mapping):
            return self._items == {k.lower(): str(v) for k, v in other.items()}
        return NotImplemented

    def __repr__(self) -> str:
        return f"Headers({self._items!r})"

    # ─────────────────────────────────────────────────────────────────────
    # Fetch-style helpers
    # ─────────────────────────────────────────────────────────────────────

    def append(self, name: str, value) -> None:
        """Add a value, folding it into an existing field with ``", "``."""
        self._guard()
        key = name.lower()
        value = str(value)
        if key in self._items:
            self._items[key] = f"{self._items[key]}, {value}"
        else:
            self._items[key] = value
        if key == SET_COOKIE:
            self._set_cookies.append(value)

    def set(self, name: str, value) -> "Headers":
        """Set a header and return self so calls can be chained."""
        self[name] = value
        return self

    def has(self, name: str) -> bool:
        return name in self

    def get_list(self, name: str) -> list:
        """Split a comma-separated field into trimmed, non-empty parts."""
        value = self.get(name)
        if not value:
            return []
        return [part.strip() for part in value.split(",") if part.strip()]

    def copy(self, immutable: Optional[bool] = None) -> "Headers":
        return Headers(self, immutable=self._immutable if immutable is None else immutable)

    def get_set_cookie(self) -> List[str]:
        """Each Set-Cookie value on its own; they cannot be comma-folded safely."""
        return list(self._set_cookies)

    def to_dict(self) -> Dict[str, str]:
        return dict(self._items)


def join_header_list(values: Iterable[str]) -> str:
    """Render a list of header names or methods as one field value."""
    return ", ".join(values)
