"""
=============================================================================
CORS (Cross-Origin Resource Sharing) HEADERS
=============================================================================

Post-processes every response the dispatcher produces, success or
error, and fills in the Access-Control-* headers the policy calls for.

=============================================================================
WHAT GETS SET, IN ORDER
=============================================================================

    1. Access-Control-Allow-Credentials: true
         if policy.allow_credentials and the handler did not set it

    2. Access-Control-Allow-Origin
         credentials on + origin allowed + ACAO unset or "*"
             → echo the request origin (and add Vary: Origin)
         otherwise, ACAO unset + (no origin policy, or origin allowed)
             → "*"

    3. Access-Control-Allow-Headers
         policy.allow_headers, else echo Access-Control-Request-Headers

    4. Access-Control-Expose-Headers
         policy.expose_headers

    5. Allow (405 responses only, even without an Origin header)

Headers the handler already set are never overwritten.

=============================================================================
WHEN NOTHING HAPPENS
=============================================================================

    - request without an Origin header (except rule 5)
    - status 0 network-error responses
    - redirects and any other response with an immutable header set

=============================================================================
INTERVIEW QUESTIONS ABOUT CORS
=============================================================================

Q: "Why can't you use * with credentials?"
A: "Browsers refuse a credentialed response whose Allow-Origin is '*'.
   The server must name the exact origin. If a handler forces '*'
   while credentials are on, the credentials header is removed rather
   than sending a combination no browser will accept."

Q: "Why add Vary: Origin when echoing the origin?"
A: "The response now differs per Origin. Without Vary a shared cache
   could serve origin A's response, with A's Allow-Origin, to B."

Q: "Why does a preflight answer without an Origin header still list
   Allow-Headers?"
A: "Preflights are answered by the synthetic OPTIONS handler, which
   describes the endpoint regardless of who asks. Tools and proxies
   inspect those headers too."

=============================================================================
"""

import logging
from typing import Any, Callable, Iterable, Optional, Sequence

from ..config import Policy
from ..http.headers import (
    ACCESS_CONTROL_ALLOW_CREDENTIALS,
    ACCESS_CONTROL_ALLOW_HEADERS,
    ACCESS_CONTROL_ALLOW_METHODS,
    ACCESS_CONTROL_ALLOW_ORIGIN,
    ACCESS_CONTROL_EXPOSE_HEADERS,
    ACCESS_CONTROL_MAX_AGE,
    ACCESS_CONTROL_REQUEST_HEADERS,
    ALLOW,
    ORIGIN,
    VARY,
    Headers,
    join_header_list,
)
from ..http.response import HTTPResponse, no_content
from ..http.status_codes import HTTPStatus
from .origin import AnyRequest, is_allowed_origin, request_origin


logger = logging.getLogger(__name__)


def add_cors_headers(
    response: HTTPResponse,
    request: AnyRequest,
    policy: Policy,
    methods: Optional[Sequence[str]] = None,
) -> HTTPResponse:
    """
    Attach CORS headers to ``response`` in place and return it.

    Best effort: a failure is logged and the response is returned as it
    was at that point.

    Args:
        response: Response to decorate.
        request: Raw or normalized request it answers.
        policy: Endpoint policy.
        methods: Supported methods, used for ``Allow`` on a 405.
    """
    if response.status == 0 or response.headers.immutable:
        return response

    try:
        headers = response.headers

        if ORIGIN in request.headers:
            origin = request_origin(request)
            allowed = is_allowed_origin(request, policy.allow_origins)

            # ─────────────────────────────────────────────────────────────
            # 1. Credentials
            # ─────────────────────────────────────────────────────────────
            if policy.allow_credentials and ACCESS_CONTROL_ALLOW_CREDENTIALS not in headers:
                headers[ACCESS_CONTROL_ALLOW_CREDENTIALS] = "true"

            # ─────────────────────────────────────────────────────────────
            # 2. Allow-Origin
            # ─────────────────────────────────────────────────────────────
            if (
                ACCESS_CONTROL_ALLOW_CREDENTIALS in headers
                and origin
                and allowed
                and headers.get(ACCESS_CONTROL_ALLOW_ORIGIN, "*") == "*"
            ):
                headers[ACCESS_CONTROL_ALLOW_ORIGIN] = origin
                _vary_on_origin(headers)
            elif ACCESS_CONTROL_ALLOW_ORIGIN not in headers and (policy.allow_origins is None or allowed):
                headers[ACCESS_CONTROL_ALLOW_ORIGIN] = "*"

            # A credentialed response may never carry a wildcard origin
            if (
                headers.get(ACCESS_CONTROL_ALLOW_CREDENTIALS) == "true"
                and headers.get(ACCESS_CONTROL_ALLOW_ORIGIN) == "*"
            ):
                del headers[ACCESS_CONTROL_ALLOW_CREDENTIALS]

            # ─────────────────────────────────────────────────────────────
            # 3. Allow-Headers
            # ─────────────────────────────────────────────────────────────
            if ACCESS_CONTROL_ALLOW_HEADERS not in headers:
                if policy.allow_headers:
                    headers[ACCESS_CONTROL_ALLOW_HEADERS] = join_header_list(policy.allow_headers)
                elif ACCESS_CONTROL_REQUEST_HEADERS in request.headers:
                    headers[ACCESS_CONTROL_ALLOW_HEADERS] = request.headers[ACCESS_CONTROL_REQUEST_HEADERS]

            # ─────────────────────────────────────────────────────────────
            # 4. Expose-Headers
            # ─────────────────────────────────────────────────────────────
            if policy.expose_headers and ACCESS_CONTROL_EXPOSE_HEADERS not in headers:
                headers[ACCESS_CONTROL_EXPOSE_HEADERS] = join_header_list(policy.expose_headers)

        # ─────────────────────────────────────────────────────────────────
        # 5. Allow on 405
        # ─────────────────────────────────────────────────────────────────
        if response.status == HTTPStatus.METHOD_NOT_ALLOWED and methods and ALLOW not in headers:
            headers[ALLOW] = join_header_list(methods)
    except Exception:
        logger.exception("Failed to add CORS headers to %s response", response.status)

    return response


def _vary_on_origin(headers: Headers) -> None:
    if "origin" not in (value.lower() for value in headers.get_list(VARY)):
        headers.append(VARY, "Origin")


def create_options_handler(
    methods: Iterable[str],
    allow_headers: Iterable[str] = (),
    max_age: Optional[int] = None,
) -> Callable[..., Any]:
    """
    Build the synthetic preflight handler.

    The response is a 204 whose ``Allow`` and
    ``Access-Control-Allow-Methods`` list ``methods`` plus ``OPTIONS``,
    upper-cased.
    """
    allow = join_header_list([*(m.upper() for m in methods if m.upper() != "OPTIONS"), "OPTIONS"])
    allow_headers = tuple(allow_headers)

    async def options_handler(request, context=None) -> HTTPResponse:
        response = no_content({ALLOW: allow, ACCESS_CONTROL_ALLOW_METHODS: allow})
        if allow_headers:
            response.headers[ACCESS_CONTROL_ALLOW_HEADERS] = join_header_list(allow_headers)
        elif ACCESS_CONTROL_REQUEST_HEADERS in request.headers:
            response.headers[ACCESS_CONTROL_ALLOW_HEADERS] = request.headers[ACCESS_CONTROL_REQUEST_HEADERS]
        if max_age is not None:
            response.headers[ACCESS_CONTROL_MAX_AGE] = str(max_age)
        return response

    return options_handler
