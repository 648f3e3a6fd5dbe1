"""
=============================================================================
MIDDLEWARE PACKAGE
=============================================================================

The request pipeline that wraps every registered function:

    ┌──────────────────────────────────────────────────────────────────┐
    │  pipeline.py   validation checks, dispatch, error mapping        │
    │  origin.py     origin policy evaluation                          │
    │  coercion.py   handler result → HTTPResponse                     │
    │  cors.py       Access-Control-* headers, synthetic OPTIONS       │
    │  logging.py    ready-made error logger                           │
    └──────────────────────────────────────────────────────────────────┘

Unlike a classic middleware chain, the stages are fixed and run in a
fixed order. A policy switches checks on or off; it cannot reorder them.

=============================================================================
"""

from .origin import is_allowed_origin, matches_origin, request_origin
from .coercion import to_response
from .cors import add_cors_headers, create_options_handler
from .logging import ErrorLog, ErrorLogger, configure_logging
from .pipeline import RequestHandler, create_handler

__all__ = [
    "is_allowed_origin",
    "matches_origin",
    "request_origin",
    "to_response",
    "add_cors_headers",
    "create_options_handler",
    "ErrorLog",
    "ErrorLogger",
    "configure_logging",
    "RequestHandler",
    "create_handler",
]
