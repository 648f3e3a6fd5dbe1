"""
=============================================================================
REQUEST COOKIES
=============================================================================

Read access to the ``Cookie`` header plus a small write path.

    Cookie: theme=dark; session=abc%20123; theme=light
            ───┬──────  ────────┬───────  ─────┬─────
               │                │               └── last occurrence wins
               │                └── values are percent-decoded
               └── overwritten

Writes go to the platform cookie store when one is supplied in the
invocation context. Without a store they are queued as ``Set-Cookie``
lines that the dispatcher copies onto the outgoing response.

=============================================================================
"""

from http.cookies import Morsel, SimpleCookie
from typing import Any, Dict, Iterator, List, Mapping, Optional
from urllib.parse import unquote


def parse_cookie_header(header: Optional[str]) -> Dict[str, str]:
    """
    Parse a ``Cookie`` header into a dict.

        >>> parse_cookie_header("a=1; b=hello%20world; a=2")
        {'a': '2', 'b': 'hello world'}
    """
    cookies: Dict[str, str] = {}
    if not header:
        return cookies
    for pair in header.split(";"):
        name, sep, value = pair.strip().partition("=")
        if not sep or not name:
            continue
        cookies[unquote(name.strip())] = unquote(value.strip())
    return cookies


def make_cookie(name: str, value: str, **attributes) -> Morsel:
    """
    Build one cookie as an ``http.cookies.Morsel``.

    Keyword names follow ``Morsel`` attributes, with underscores for
    dashes: ``max_age=3600, http_only=True, same_site="Lax"``.
    """
    jar = SimpleCookie()
    jar[name] = value
    morsel = jar[name]
    for key, attr in attributes.items():
        if attr is None or attr is False:
            continue
        morsel_key = {"http_only": "httponly", "same_site": "samesite", "max_age": "max-age"}.get(key, key)
        morsel[morsel_key] = attr
    return morsel


def render_set_cookie(name: str, value: str, **attributes) -> str:
    """Render one ``Set-Cookie`` value; see ``make_cookie`` for attributes."""
    return make_cookie(name, value, **attributes).OutputString()


class RequestCookies(Mapping):
    """
    Cookies sent with a request.

    Behaves as a read-only mapping of the parsed header. Names missing
    from the header are looked up with ``store.get(name)``. ``set`` and
    ``delete`` update the header view and forward to the store as
    ``store.set(morsel)`` and ``store.delete(name)``.
    """

    def __init__(self, header: Optional[str] = None, store: Any = None):
        self._values = parse_cookie_header(header)
        self._store = store
        self.pending: List[str] = []

    @property
    def store(self) -> Any:
        return self._store

    def __getitem__(self, name: str) -> str:
        if name in self._values:
            return self._values[name]
        if self._store is not None and hasattr(self._store, "get"):
            cookie = self._store.get(name)
            if cookie is not None:
                return getattr(cookie, "value", cookie)
        raise KeyError(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def set(self, name: str, value: str, **attributes) -> None:
        self._values[name] = value
        if self._store is not None and hasattr(self._store, "set"):
            self._store.set(make_cookie(name, value, **attributes))
        else:
            attributes.setdefault("path", "/")
            self.pending.append(render_set_cookie(name, value, **attributes))

    def delete(self, name: str, path: str = "/") -> None:
        self._values.pop(name, None)
        if self._store is not None and hasattr(self._store, "delete"):
            self._store.delete(name)
        else:
            self.pending.append(
                render_set_cookie(name, "", path=path, expires="Thu, 01 Jan 1970 00:00:00 GMT", max_age=0)
            )
