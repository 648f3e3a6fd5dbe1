"""
Origin allow-list evaluation.

Works out the request's origin (``Origin`` header, else the origin of the
referrer) and checks it against ``Policy.allow_origins``. Anything the
policy does not explicitly match is refused; only an unset policy is
permissive.
"""

from typing import Any, Optional, Union

from ..http.headers import ORIGIN
from ..http.request import HTTPRequest
from ..normalized import NormalizedRequest, url_origin


AnyRequest = Union[NormalizedRequest, HTTPRequest]


def request_origin(request: AnyRequest) -> Optional[str]:
    """
    The serialized ``Origin`` header, or the referrer's origin when the
    header is absent. Works on raw and normalized requests alike.
    """
    header = request.headers.get(ORIGIN, "").strip()
    if header:
        return url_origin(header) or header
    origin = url_origin(request.referrer)
    return origin if origin not in (None, "null") else None


def matches_origin(policy: Any, origin: Optional[str]) -> bool:
    """
    Check one origin string against an origin policy.

        >>> matches_origin(None, "https://a.com")
        True
        >>> matches_origin(["https://a.com"], "https://b.com")
        False
    """
    if policy is None:
        return True
    if isinstance(policy, str):
        return policy == "*" or policy == origin
    if origin is None:
        return isinstance(policy, (list, tuple, set, frozenset)) and "*" in policy
    if hasattr(policy, "search"):
        return policy.search(origin) is not None
    if hasattr(policy, "match"):
        return bool(policy.match(origin))
    if hasattr(policy, "test"):
        return bool(policy.test(origin))
    if isinstance(policy, (list, tuple, set, frozenset)):
        return "*" in policy or origin in policy
    if callable(policy):
        return bool(policy(origin))
    return False


def is_allowed_origin(request: AnyRequest, allow_origins: Any = None) -> bool:
    """Is the request's origin permitted by ``allow_origins``?"""
    return matches_origin(allow_origins, request_origin(request))
