"""
=============================================================================
LAMBDAHTTP - HTTP Middleware for Serverless Functions
=============================================================================

Wraps a table of per-method handler functions in a validation pipeline
so each deployed function gets consistent CORS, origin checks, size
limits, error responses and response coercion without repeating them.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        REQUEST LIFECYCLE                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   platform ──► HTTPRequest ──► RequestHandler                       │
    │                                    │                                │
    │            1. VALIDATION           │  method, JWT, headers, size,   │
    │                                    │  search params                 │
    │            2. NORMALIZATION        │  NormalizedRequest             │
    │            3. ORIGIN POLICY        │  same-origin, CORS, allow-list │
    │            4. DISPATCH             │  handler(request, context)     │
    │            5. COERCION             │  result → HTTPResponse         │
    │            6. ERROR MAPPING        │  HTTPError → JSON error body   │
    │            7. CORS INJECTION       │  Access-Control-* headers      │
    │                                    ▼                                │
    │                              HTTPResponse ──► platform              │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    lambdahttp/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # Dev server (python -m lambdahttp)
    ├── adapters.py          # AWS Lambda event <-> request/response
    ├── auth.py              # Bearer JWT decoding (PyJWT)
    ├── config.py            # Policy and DevServerConfig dataclasses
    ├── context.py           # Platform context lookups, dev context
    ├── errors.py            # HTTPError taxonomy
    ├── loader.py            # URL path → handler module
    ├── normalized.py        # NormalizedRequest
    ├── testing.py           # Request factories for tests
    ├── http/                # HTTP primitives
    │   ├── request.py       # HTTPRequest, AbortSignal
    │   ├── response.py      # HTTPResponse, builders, JSON serializers
    │   ├── headers.py       # Case-insensitive Headers
    │   ├── cookies.py       # Cookie parsing and Set-Cookie rendering
    │   ├── form_data.py     # FormData, Blob, File, form parsers
    │   ├── status_codes.py  # HTTP status enums
    │   └── mime_types.py    # Media type helpers
    └── middleware/          # The pipeline
        ├── pipeline.py      # RequestHandler / create_handler
        ├── origin.py        # Origin policy evaluation
        ├── coercion.py      # Response coercion
        ├── cors.py          # CORS headers, OPTIONS handler
        └── logging.py       # ErrorLogger

=============================================================================
QUICK START
=============================================================================

    from lambdahttp import create_handler, ErrorLogger, HTTPNotFoundError

    async def get_item(request, context):
        item_id = request.search_params.get("id", [None])[0]
        if item_id is None:
            raise HTTPNotFoundError("No such item")
        return {"id": item_id}

    async def create_item(request, context):
        data = await request.json()
        return {"created": data}

    handler = create_handler(
        {"GET": get_item, "POST": create_item},
        allow_origins=["https://app.example.com"],
        allow_credentials=True,
        max_content_length=50_000,
        logger=ErrorLogger(),
    )

    response = await handler(request, context)

=============================================================================
"""

__version__ = "1.0.0"

from .http import (
    AbortSignal,
    Blob,
    File,
    FormData,
    Headers,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    ResponseBuilder,
    json_response,
    no_content,
    redirect,
    register_serializer,
)
from .errors import (
    HTTPBadRequestError,
    HTTPClientError,
    HTTPError,
    HTTPForbiddenError,
    HTTPInternalServerError,
    HTTPMethodNotAllowedError,
    HTTPNotFoundError,
    HTTPServerError,
    HTTPUnauthorizedError,
    InvalidInputError,
    PolicyError,
    error_for_status,
)
from .config import DevServerConfig, Policy
from .context import dev_context, lookup
from .normalized import NormalizedRequest
from .middleware import (
    ErrorLogger,
    RequestHandler,
    add_cors_headers,
    create_handler,
    is_allowed_origin,
    to_response,
)
from .loader import fetch_module, load_module_handler
from .adapters import create_lambda_handler

__all__ = [
    "__version__",
    "AbortSignal",
    "Blob",
    "File",
    "FormData",
    "Headers",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "ResponseBuilder",
    "json_response",
    "no_content",
    "redirect",
    "register_serializer",
    "HTTPBadRequestError",
    "HTTPClientError",
    "HTTPError",
    "HTTPForbiddenError",
    "HTTPInternalServerError",
    "HTTPMethodNotAllowedError",
    "HTTPNotFoundError",
    "HTTPServerError",
    "HTTPUnauthorizedError",
    "InvalidInputError",
    "PolicyError",
    "error_for_status",
    "DevServerConfig",
    "Policy",
    "dev_context",
    "lookup",
    "NormalizedRequest",
    "ErrorLogger",
    "RequestHandler",
    "add_cors_headers",
    "create_handler",
    "is_allowed_origin",
    "to_response",
    "fetch_module",
    "load_module_handler",
    "create_lambda_handler",
]
