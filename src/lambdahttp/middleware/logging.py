"""
=============================================================================
ERROR LOGGING
=============================================================================

A ready-made ``Policy.logger`` sink.

The dispatcher calls ``policy.logger(error, request)`` for every request
that ends in an error, before the error response is built. ``ErrorLogger``
turns that call into one structured log line on the
``lambdahttp.errors`` logger.

=============================================================================
LEVELS
=============================================================================

    ┌─────────────────────────────┬───────────────┬──────────────────────┐
    │ Error                       │ Default level │ Traceback            │
    ├─────────────────────────────┼───────────────┼──────────────────────┤
    │ HTTPError 4xx               │ INFO          │ no                   │
    │ HTTPError 5xx               │ ERROR         │ yes                  │
    │ anything else (a bug)       │ ERROR         │ yes                  │
    └─────────────────────────────┴───────────────┴──────────────────────┘

A rejected request (bad origin, missing header, body too large) is the
client's problem and routine in production. It gets logged, but not at
a level that pages anyone.

=============================================================================
USAGE
=============================================================================

    # Human readable
    Policy(logger=ErrorLogger())

    # One JSON object per line, for CloudWatch / ELK / Datadog
    Policy(logger=ErrorLogger(log_format="json"))

    # Route the channel somewhere specific
    logging.getLogger("lambdahttp.errors").addHandler(file_handler)

=============================================================================
"""

import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Optional

from ..errors import HTTPError


# ═══════════════════════════════════════════════════════════════════════════
# Namespaced so error output can be configured apart from everything else
# ═══════════════════════════════════════════════════════════════════════════
logger = logging.getLogger("lambdahttp.errors")


@dataclass
class ErrorLog:
    """
    One failed request.

    request_id:  platform request id ("0" in development)
    method, url: what was asked for
    client_ip:   caller address from the platform context
    status:      status of the error response
    error_type:  exception class name
    message:     exception message
    cause:       "Type: message" of the upstream cause, if any
    timestamp:   when the error was logged
    """

    request_id: str
    method: str
    url: str
    client_ip: str
    status: int
    error_type: str
    message: str
    cause: Optional[str]
    timestamp: str

    def to_dict(self) -> dict:
        return asdict(self)

    def to_text(self) -> str:
        text = (
            f'{self.client_ip} [{self.timestamp}] "{self.method} {self.url}" '
            f"{self.status} {self.error_type}: {self.message} (request {self.request_id})"
        )
        if self.cause:
            text += f" caused by {self.cause}"
        return text


def build_error_log(error: BaseException, request: Any = None) -> ErrorLog:
    status = error.status if isinstance(error, HTTPError) else 500
    cause = error.__cause__
    return ErrorLog(
        request_id=str(getattr(request, "request_id", "-")),
        method=getattr(request, "method", "-"),
        url=getattr(request, "url", "-"),
        client_ip=str(getattr(request, "ip_address", "-")),
        status=status,
        error_type=type(error).__name__,
        message=str(error),
        cause=f"{type(cause).__name__}: {cause}" if cause is not None else None,
        timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
    )


class ErrorLogger:
    """
    Callable error sink for ``Policy.logger``.

    Args:
        log_format: "text" or "json".
        log_level: Level for server errors and unexpected exceptions.
        client_error_level: Level for 4xx ``HTTPError``s.
        include_traceback: Attach the traceback to server-side errors.
    """

    def __init__(
        self,
        log_format: str = "text",
        log_level: int = logging.ERROR,
        client_error_level: int = logging.INFO,
        include_traceback: bool = True,
    ):
        self.log_format = log_format
        self.log_level = log_level
        self.client_error_level = client_error_level
        self.include_traceback = include_traceback

    def __call__(self, error: BaseException, request: Any = None) -> None:
        entry = build_error_log(error, request)
        client_error = isinstance(error, HTTPError) and error.is_client_error
        level = self.client_error_level if client_error else self.log_level

        exc_info = None
        if self.include_traceback and not client_error:
            exc_info = (type(error), error, error.__traceback__)

        if self.log_format == "json":
            logger.log(level, json.dumps(entry.to_dict()), exc_info=exc_info)
        else:
            logger.log(level, entry.to_text(), exc_info=exc_info)


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup for the development server."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("lambdahttp").setLevel(numeric)
