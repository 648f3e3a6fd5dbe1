"""
HTTP primitives: status codes, headers, media types, bodies, and the raw
request and response objects the middleware works on.
"""

from .status_codes import HTTPStatus, clamp_status
from .headers import Headers
from .mime_types import get_essence, is_json_type, parse_accept
from .form_data import Blob, File, FormData
from .cookies import RequestCookies
from .response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    json_default,
    json_response,
    no_content,
    redirect,
    register_serializer,
)
from .request import AbortSignal, HTTPRequest

__all__ = [
    "HTTPStatus",
    "clamp_status",
    "Headers",
    "get_essence",
    "is_json_type",
    "parse_accept",
    "Blob",
    "File",
    "FormData",
    "RequestCookies",
    "HTTPResponse",
    "ResponseBuilder",
    "error_response",
    "json_default",
    "json_response",
    "no_content",
    "redirect",
    "register_serializer",
    "AbortSignal",
    "HTTPRequest",
]
