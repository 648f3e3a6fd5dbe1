"""
=============================================================================
VALIDATION PIPELINE (THE DISPATCHER)
=============================================================================

``create_handler`` turns a method → handler mapping plus a ``Policy``
into one async callable that the serverless platform invokes for every
request.

=============================================================================
REQUEST FLOW
=============================================================================

    raw request
        │
        ▼
    ┌────────────────────┐  405 + Allow
    │ method registered? │────────────────────────────────┐
    ├────────────────────┤  401                           │
    │ bearer JWT         │────────────────────────────────┤
    ├────────────────────┤  401 (Authorization) / 400     │
    │ required headers   │────────────────────────────────┤
    ├────────────────────┤  413                           │
    │ Content-Length max │────────────────────────────────┤
    ├────────────────────┤  411                           │
    │ Content-Length set │────────────────────────────────┤
    ├────────────────────┤  400                           │
    │ search params      │────────────────────────────────┤
    ├────────────────────┤                                │
    │ NormalizedRequest  │                                │
    ├────────────────────┤  403                           │
    │ same-origin / CORS │────────────────────────────────┤
    ├────────────────────┤  403 Disallowed Origin         │
    │ origin allow-list  │────────────────────────────────┤
    ├────────────────────┤  401                           │
    │ credentials        │────────────────────────────────┤
    ├────────────────────┤  408 if aborted                │
    │ handler(req, ctx)  │────────────────────────────────┤
    ├────────────────────┤  500 if not coercible          │
    │ to_response()      │────────────────────────────────┤
    └─────────┬──────────┘                                ▼
              │                               ┌──────────────────────┐
              │                               │ policy.logger(err)   │
              │                               │ err.response         │
              │                               └──────────┬───────────┘
              ▼                                          ▼
    ┌─────────────────────────────────────────────────────────────────┐
    │ queued Set-Cookie lines  +  add_cors_headers()  →  response      │
    └─────────────────────────────────────────────────────────────────┘

Checks run strictly in this order, so a request that fails several of
them always gets the same error. There is exactly one ``except`` that
turns failures into responses, and nothing escapes it.

=============================================================================
SYNTHETIC HANDLERS
=============================================================================

    OPTIONS   added unless supplied: 204 with Allow and
              Access-Control-Allow-Methods
    HEAD      added when GET exists and HEAD does not: empty 204

The ``Allow`` list is the declared methods plus OPTIONS. The synthetic
HEAD is not advertised.

=============================================================================
HANDLER SIGNATURE
=============================================================================

    def handler(request: NormalizedRequest, context) -> result
    async def handler(request: NormalizedRequest, context) -> result
    def handler(request: NormalizedRequest) -> result      # also fine

``result`` can be anything ``to_response`` understands.

=============================================================================
INTERVIEW QUESTIONS
=============================================================================

Q: "Why is a missing Authorization header a 401 but a missing X-Foo a 400?"
A: "401 tells the client to authenticate and retry; that is the right
   signal when the credential itself is missing. Any other missing
   header is a malformed request."

Q: "Why is the origin allow-list checked after normalization?"
A: "Deciding whether a request is cross-origin needs the derived view:
   Sec-Fetch-Site, the Origin header, the referrer and the rewritten
   host all feed into it."

=============================================================================
"""

import asyncio
import dataclasses
import inspect
import logging
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

from ..auth import bearer_token
from ..config import Policy
from ..errors import (
    HTTPBadRequestError,
    HTTPError,
    HTTPForbiddenError,
    HTTPInternalServerError,
    HTTPLengthRequiredError,
    HTTPMethodNotAllowedError,
    HTTPPayloadTooLargeError,
    HTTPRequestTimeoutError,
    HTTPUnauthorizedError,
    InvalidInputError,
    PolicyError,
)
from ..http.headers import ALLOW, AUTHORIZATION, CONTENT_LENGTH, SET_COOKIE, join_header_list
from ..http.request import AbortSignal, HTTPRequest
from ..http.response import HTTPResponse, no_content
from ..normalized import NormalizedRequest, parse_content_length
from .coercion import to_response
from .cors import add_cors_headers, create_options_handler
from .origin import is_allowed_origin, request_origin


logger = logging.getLogger(__name__)

Handler = Callable[..., Any]
DispatchFn = Callable[..., Awaitable[HTTPResponse]]

NO_BODY_METHODS = frozenset({"HEAD", "GET", "OPTIONS", "DELETE"})
PREFLIGHT_EXEMPT = frozenset({"OPTIONS", "HEAD"})


async def _head_handler(request, context=None) -> HTTPResponse:
    return no_content()


def bind_handler(handler: Handler) -> Handler:
    """Adapt one-argument handlers to the ``(request, context)`` call."""
    try:
        params = list(inspect.signature(handler).parameters.values())
    except (TypeError, ValueError):
        return handler

    positional = [
        p for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    if any(p.kind == inspect.Parameter.VAR_POSITIONAL for p in params) or len(positional) >= 2:
        return handler
    return lambda request, context=None: handler(request)


def _merge_names(*groups) -> Tuple[str, ...]:
    merged: Dict[str, str] = {}
    for group in groups:
        for name in group:
            merged.setdefault(name.lower(), name)
    return tuple(merged.values())


class RequestHandler:
    """
    Registered endpoint: a frozen handler table plus its policy.

    Instances are async callables:

        dispatch = RequestHandler({"GET": get_item}, Policy(...))
        response = await dispatch(request, context)

    Nothing on the instance changes after ``__init__``, so one instance
    serves any number of concurrent requests.

    Raises:
        PolicyError: no handlers, a non-callable handler, or an invalid
                     policy.
    """

    def __init__(
        self,
        handlers: Mapping[str, Handler],
        policy: Optional[Policy] = None,
        default_context: Any = None,
    ):
        if not isinstance(handlers, Mapping):
            raise PolicyError("Handlers must be a mapping of HTTP method to handler function")

        table: Dict[str, Handler] = {}
        for method, handler in handlers.items():
            if not callable(handler):
                raise PolicyError(f"Handler for {method} is not callable")
            table[str(method).upper()] = bind_handler(handler)
        if not table:
            raise PolicyError("No methods given")

        policy = policy if policy is not None else Policy()
        policy.validate()

        # ─────────────────────────────────────────────────────────────────
        # Required headers (and Authorization, when credentials or a JWT
        # are required) must also be allowed in cross-origin requests
        # ─────────────────────────────────────────────────────────────────
        auth_header = ("Authorization",) if policy.require_credentials or policy.require_jwt else ()
        allow_headers = _merge_names(policy.allow_headers, policy.require_headers, auth_header)
        self.policy = dataclasses.replace(policy, allow_headers=allow_headers)

        declared = [m for m in table if m != "OPTIONS"]
        self.methods: Tuple[str, ...] = (*declared, "OPTIONS")
        self.allow = join_header_list(self.methods)

        if "GET" in table and "HEAD" not in table:
            table["HEAD"] = _head_handler
        if "OPTIONS" not in table:
            table["OPTIONS"] = create_options_handler(declared, allow_headers, policy.max_age)

        self.handlers = MappingProxyType(table)
        self.default_context = default_context

    # =====================================================================
    # ENTRY POINT
    # =====================================================================

    async def __call__(self, request: HTTPRequest, context: Any = None) -> HTTPResponse:
        if context is None:
            context = self.default_context

        normalized: Optional[NormalizedRequest] = None
        try:
            normalized = self._check(request, context)
            result = await self._invoke(normalized, context)
            response = to_response(result)
            if response.status == 0:
                raise HTTPInternalServerError("An unknown error occurred")
        except Exception as error:
            response = self._error_response(error, normalized if normalized is not None else request)

        if normalized is not None:
            self._flush_cookies(response, normalized)
        if isinstance(request, HTTPRequest):
            add_cors_headers(response, request, self.policy, self.methods)
        return response

    # =====================================================================
    # PRE-DISPATCH CHECKS
    # =====================================================================

    def _check(self, request: HTTPRequest, context: Any) -> NormalizedRequest:
        if not isinstance(request, HTTPRequest):
            raise InvalidInputError(f"Expected an HTTPRequest, got {type(request).__name__}")

        policy = self.policy
        method = request.method
        headers = request.headers

        if method not in self.handlers:
            raise HTTPMethodNotAllowedError(
                f"Unsupported request method: {method}",
                headers={ALLOW: self.allow},
            )

        if policy.require_jwt and method != "OPTIONS":
            authorization = headers.get(AUTHORIZATION)
            if bearer_token(authorization) is None:
                raise HTTPUnauthorizedError("Missing bearer token in Authorization header.")
            if policy.jwt_decoder(authorization) is None:
                raise HTTPUnauthorizedError("Invalid bearer token.")

        if policy.require_headers and method not in PREFLIGHT_EXEMPT:
            missing = [name for name in policy.require_headers if name not in headers]
            if any(name.lower() == AUTHORIZATION for name in missing):
                raise HTTPUnauthorizedError("Missing required Authorization header.")
            if missing:
                raise HTTPBadRequestError(
                    "Request is missing required headers.",
                    details={"missingHeaders": missing},
                )

        content_length = parse_content_length(headers.get(CONTENT_LENGTH))
        if (
            policy.max_content_length is not None
            and content_length is not None
            and content_length > policy.max_content_length
        ):
            raise HTTPPayloadTooLargeError(
                f"Max Content-Length is {policy.max_content_length} - sent {content_length}.",
                details={"contentLength": content_length, "maxContentLength": policy.max_content_length},
            )

        if (
            policy.require_content_length
            and method not in NO_BODY_METHODS
            and request.has_body
            and CONTENT_LENGTH not in headers
        ):
            raise HTTPLengthRequiredError("Request is missing required Content-Length header.")

        if policy.require_search_params and method != "OPTIONS":
            params = parse_qs(urlsplit(request.url).query, keep_blank_values=True)
            missing = [name for name in policy.require_search_params if name not in params]
            if missing:
                raise HTTPBadRequestError(
                    "Request is missing required search params.",
                    details={"missingSearchParams": missing},
                )

        normalized = NormalizedRequest(request, context)

        if policy.require_same_origin and not normalized.is_same_origin:
            raise HTTPForbiddenError("Must be a same-origin request.")

        if policy.require_cors and not normalized.is_cors:
            raise HTTPForbiddenError("Must be a CORS request.")

        origin = request_origin(normalized)
        if (
            policy.allow_origins is not None
            and origin is not None
            and not normalized.is_same_origin
            and not is_allowed_origin(normalized, policy.allow_origins)
        ):
            raise HTTPForbiddenError(f"Disallowed Origin: {origin}.")

        if policy.require_credentials and method != "OPTIONS" and normalized.credentials != "include":
            raise HTTPUnauthorizedError(f"{normalized.url} requires credentials.")

        return normalized

    # =====================================================================
    # DISPATCH
    # =====================================================================

    async def _invoke(self, request: NormalizedRequest, context: Any) -> Any:
        signal = request.signal
        if signal.aborted:
            raise _aborted(signal)

        try:
            result = self.handlers[request.method](request, context)
        except asyncio.CancelledError as exc:
            raise HTTPInternalServerError("An unknown error occurred", cause=exc)
        if inspect.isawaitable(result):
            result = await self._race(result, signal)
        return result

    @staticmethod
    async def _race(awaitable: Awaitable[Any], signal: AbortSignal) -> Any:
        """Await the handler unless the abort signal fires first."""
        task = asyncio.ensure_future(awaitable)
        watcher = asyncio.ensure_future(signal.wait())
        try:
            await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            watcher.cancel()
            if not task.done():
                task.cancel()
        if signal.aborted and (not task.done() or task.cancelled()):
            raise _aborted(signal)
        if task.done():
            try:
                return task.result()
            except asyncio.CancelledError as exc:
                # The handler was cancelled from inside, not by the signal.
                raise HTTPInternalServerError("An unknown error occurred", cause=exc)
        raise _aborted(signal)

    # =====================================================================
    # ERROR MAPPING
    # =====================================================================

    def _error_response(self, error: Exception, request: Any) -> HTTPResponse:
        self._log(error, request)

        if not isinstance(error, HTTPError):
            error = HTTPInternalServerError("An unknown error occurred", cause=error)
        try:
            return error.response
        except Exception:
            logger.exception(f"Could not build a response for {error!r}")
            return HTTPInternalServerError("An unknown error occurred").response

    def _log(self, error: Exception, request: Any) -> None:
        sink = self.policy.logger
        if sink is None:
            if not isinstance(error, HTTPError):
                logger.error(f"Unhandled error: {error!r}", exc_info=error)
            return
        try:
            sink(error, request)
        except Exception:
            logger.exception("Error logger raised")

    @staticmethod
    def _flush_cookies(response: HTTPResponse, request: NormalizedRequest) -> None:
        if request.cookies.pending and not response.headers.immutable:
            for line in request.cookies.pending:
                response.headers.append(SET_COOKIE, line)


def _aborted(signal: AbortSignal) -> HTTPRequestTimeoutError:
    reason = signal.reason
    cause = reason if isinstance(reason, BaseException) else None
    return HTTPRequestTimeoutError("Request was aborted before a response was ready.", cause=cause)


def create_handler(
    handlers: Mapping[str, Handler],
    policy: Optional[Policy] = None,
    default_context: Any = None,
    **options,
) -> RequestHandler:
    """
    Register handlers and return the dispatcher.

    Policy fields may be passed directly as keyword arguments, or
    layered on top of an existing policy:

        dispatch = create_handler(
            {"GET": list_items, "POST": create_item},
            allow_origins=["https://app.example.com"],
            allow_credentials=True,
            max_content_length=50_000,
        )

    Args:
        handlers: HTTP method (any case) → handler.
        policy: Base policy. Defaults to ``Policy()``.
        default_context: Context used when the caller passes none.
        **options: ``Policy`` fields overriding ``policy``.
    """
    if options:
        policy = dataclasses.replace(policy, **options) if policy is not None else Policy(**options)
    return RequestHandler(handlers, policy, default_context)
