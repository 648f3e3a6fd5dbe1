"""
Invocation context helpers.

The platform passes an opaque context alongside every request: site
URL, client IP, request id, geo data, maybe a cookie store. Its shape is
not ours to assume, so every read goes through ``lookup``, which accepts
dicts and attribute objects alike and returns a default as soon as a
step is missing.

For local development ``dev_context()`` builds a context that looks
like a real one. It returns a new dict on every call; pass it to
``create_handler(..., default_context=dev_context())`` or straight to
the dispatcher.
"""

from typing import Any, Dict, Mapping


_MISSING = object()


def lookup(context: Any, *path: str, default: Any = None) -> Any:
    """
    Walk ``path`` through nested mappings or attributes.

        >>> lookup({"site": {"url": "https://example.com"}}, "site", "url")
        'https://example.com'
        >>> lookup(None, "site", "url", default="-")
        '-'
    """
    current = context
    for key in path:
        if current is None:
            return default
        if isinstance(current, Mapping):
            current = current.get(key, _MISSING)
        else:
            current = getattr(current, key, _MISSING)
        if current is _MISSING:
            return default
    return default if current is None else current


def dev_context(
    site_url: str = "http://localhost:8888",
    ip: str = "::1",
    request_id: str = "0",
) -> Dict[str, Any]:
    """A fresh development context mimicking the platform's shape."""
    return {
        "account": {"id": "0"},
        "deploy": {"context": "dev", "id": "0", "published": False},
        "flags": {},
        "geo": {
            "city": "Los Angeles",
            "country": {"code": "US", "name": "United States"},
            "subdivision": {"code": "CA", "name": "California"},
            "timezone": "America/Los_Angeles",
            "latitude": 34.0522,
            "longitude": -118.2437,
            "postalCode": "90001",
        },
        "ip": ip,
        "params": {},
        "requestId": request_id,
        "server": {"region": "dev"},
        "site": {"id": "0", "name": "dev-server", "url": site_url},
    }
