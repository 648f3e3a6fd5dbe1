"""
=============================================================================
AWS LAMBDA ADAPTERS
=============================================================================

Translate between API Gateway / Lambda function URL events and the
package's ``HTTPRequest`` / ``HTTPResponse``.

    event (dict) ──► request_from_event ──► HTTPRequest
                                                │
                                    dispatch(request, context)
                                                │
    dict ◄── response_to_event ◄── HTTPResponse ┘

=============================================================================
EVENT SHAPES
=============================================================================

    Payload v1 (REST API)                 Payload v2 (HTTP API, function URL)
    ─────────────────────                 ───────────────────────────────────
    httpMethod                            requestContext.http.method
    path                                  rawPath
    multiValueQueryStringParameters       rawQueryString
    headers / multiValueHeaders           headers (comma-folded)
    Cookie header                         cookies: [...]
    isBase64Encoded + body                isBase64Encoded + body

=============================================================================
USAGE
=============================================================================

    # functions/items.py
    dispatch = create_handler({"GET": list_items}, allow_origins="*")
    lambda_handler = create_lambda_handler(dispatch)

=============================================================================
"""

import asyncio
import base64
import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

from .http.headers import CONTENT_TYPE, COOKIE, HOST, SET_COOKIE, Headers
from .http.mime_types import get_essence, is_json_type
from .http.request import BODYLESS_METHODS, HTTPRequest
from .http.response import HTTPResponse


logger = logging.getLogger(__name__)

TEXT_TYPES = frozenset({
    "application/javascript",
    "application/x-www-form-urlencoded",
    "application/xml",
    "image/svg+xml",
})


def _event_method(event: Dict[str, Any]) -> str:
    http = (event.get("requestContext") or {}).get("http") or {}
    return (http.get("method") or event.get("httpMethod") or "GET").upper()


def _event_path(event: Dict[str, Any]) -> str:
    http = (event.get("requestContext") or {}).get("http") or {}
    return event.get("rawPath") or http.get("path") or event.get("path") or "/"


def _event_query(event: Dict[str, Any]) -> str:
    if "rawQueryString" in event:
        return event.get("rawQueryString") or ""
    multi = event.get("multiValueQueryStringParameters")
    if multi:
        return urlencode(multi, doseq=True)
    single = event.get("queryStringParameters")
    if single:
        return urlencode(single)
    return ""


def _event_headers(event: Dict[str, Any]) -> Headers:
    headers = Headers()
    multi = event.get("multiValueHeaders") or {}
    for name, values in multi.items():
        for value in values or ():
            headers.append(name, value)
    for name, value in (event.get("headers") or {}).items():
        if name not in headers and value is not None:
            headers[name] = value
    cookies = event.get("cookies")
    if cookies and COOKIE not in headers:
        headers[COOKIE] = "; ".join(cookies)
    return headers


def request_from_event(event: Dict[str, Any]) -> HTTPRequest:
    """
    Build an ``HTTPRequest`` from a v1 or v2 proxy event.

    The URL is rebuilt from ``X-Forwarded-Proto`` and ``Host`` (or the
    request context's domain name) so it matches what the client used.
    """
    headers = _event_headers(event)
    method = _event_method(event)

    domain = headers.get(HOST) or (event.get("requestContext") or {}).get("domainName") or "localhost"
    scheme = headers.get("x-forwarded-proto", "https").split(",")[0].strip()
    url = f"{scheme}://{domain}{_event_path(event)}"
    query = _event_query(event)
    if query:
        url = f"{url}?{query}"

    body = event.get("body")
    if body is not None:
        body = base64.b64decode(body) if event.get("isBase64Encoded") else body.encode("utf-8")
    if method in BODYLESS_METHODS:
        body = None

    return HTTPRequest(url, method=method, headers=headers, body=body)


def context_from_event(event: Dict[str, Any], lambda_context: Any = None) -> Dict[str, Any]:
    """The platform context handlers see: request id, client ip, site url."""
    request_context = event.get("requestContext") or {}
    identity = request_context.get("identity") or {}
    http = request_context.get("http") or {}
    headers = _event_headers(event)

    request_id = request_context.get("requestId") or getattr(lambda_context, "aws_request_id", None) or "0"
    context: Dict[str, Any] = {
        "requestId": request_id,
        "ip": http.get("sourceIp") or identity.get("sourceIp") or "::1",
        "params": event.get("pathParameters") or {},
    }
    host = headers.get(HOST) or request_context.get("domainName")
    if host:
        scheme = headers.get("x-forwarded-proto", "https").split(",")[0].strip()
        context["site"] = {"url": f"{scheme}://{host}"}
    return context


def _is_text(content_type: Optional[str]) -> bool:
    essence = get_essence(content_type)
    return essence.startswith("text/") or is_json_type(essence) or essence in TEXT_TYPES


def response_to_event(response: HTTPResponse, multi_value: bool = False) -> Dict[str, Any]:
    """
    Convert a response to the Lambda proxy result dict.

    Text bodies are returned as text, anything else base64-encoded.
    ``Set-Cookie`` lines are kept apart: in ``multiValueHeaders`` when
    ``multi_value`` is set (payload v1), else in ``cookies`` (v2).
    """
    status = response.status or 500
    headers = {name: value for name, value in response.headers.items() if name != SET_COOKIE}
    cookies: List[str] = response.headers.get_set_cookie()

    body = response.body or b""
    if _is_text(response.headers.get(CONTENT_TYPE)):
        encoded, is_base64 = body.decode("utf-8"), False
    else:
        encoded, is_base64 = base64.b64encode(body).decode("ascii"), bool(body)

    result: Dict[str, Any] = {
        "statusCode": status,
        "headers": headers,
        "body": encoded,
        "isBase64Encoded": is_base64,
    }
    if cookies:
        if multi_value:
            result["multiValueHeaders"] = {"Set-Cookie": cookies}
        else:
            result["cookies"] = cookies
    return result


def create_lambda_handler(dispatch: Callable[..., Any], multi_value: bool = False) -> Callable[..., Dict[str, Any]]:
    """
    Wrap an async dispatcher as a synchronous Lambda entry point.

    Each invocation runs on its own event loop via ``asyncio.run``.
    """

    def lambda_handler(event: Dict[str, Any], lambda_context: Any = None) -> Dict[str, Any]:
        request = request_from_event(event)
        context = context_from_event(event, lambda_context)
        logger.debug(f"{request.method} {request.url} ({context['requestId']})")
        response = asyncio.run(dispatch(request, context))
        return response_to_event(response, multi_value=multi_value or "multiValueHeaders" in event)

    return lambda_handler
