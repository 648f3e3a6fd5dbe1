"""
=============================================================================
DEVELOPMENT SERVER CLI
=============================================================================

Serves a directory of function modules over HTTP, the way the platform
would after a deploy.

=============================================================================
USAGE
=============================================================================

    # Serve ./functions on localhost:8888
    python -m lambdahttp --functions ./functions

    # Custom port, listen on all interfaces (containers)
    python -m lambdahttp -f ./functions --host 0.0.0.0 --port 3000

    # Access log as JSON lines
    python -m lambdahttp -f ./functions --log-format json

    GET http://localhost:8888/api/echo   →   ./functions/api/echo.py:handler

=============================================================================
WHAT IT IS NOT
=============================================================================

The standard library's ``ThreadingHTTPServer`` handles the sockets. It
is fine for local development and tests and nothing else: no TLS, no
keep-alive tuning, no limits.

Each request runs the handler on a fresh event loop (``asyncio.run``)
inside the worker thread, mirroring one invocation per request on the
platform.

=============================================================================
"""

import argparse
import asyncio
import json
import logging
import sys
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional

from . import __version__
from .config import DevServerConfig
from .context import dev_context
from .http.headers import CONTENT_LENGTH, SET_COOKIE
from .http.request import BODYLESS_METHODS, HTTPRequest
from .http.response import HTTPResponse
from .loader import fetch_module
from .middleware.logging import configure_logging


logger = logging.getLogger("lambdahttp.server")


def make_request_handler(config: DevServerConfig) -> type:
    """Build a ``BaseHTTPRequestHandler`` subclass bound to ``config``."""

    class FunctionRequestHandler(BaseHTTPRequestHandler):
        server_version = f"lambdahttp/{__version__}"

        def _read_body(self) -> Optional[bytes]:
            length = int(self.headers.get(CONTENT_LENGTH) or 0)
            if length <= 0:
                return None
            return self.rfile.read(length)

        def _handle(self) -> None:
            start = time.time()
            body = self._read_body()
            method = self.command.upper()
            request = HTTPRequest(
                f"{config.site_url}{self.path}",
                method=method,
                headers=list(self.headers.items()),
                body=None if method in BODYLESS_METHODS else body,
            )
            context = dev_context(config.site_url, ip=self.client_address[0])
            response = asyncio.run(fetch_module(request, config.functions_dir, context))
            self._send(response, method)
            self._log_access(request, response, (time.time() - start) * 1000)

        def _send(self, response: HTTPResponse, method: str) -> None:
            self.send_response(response.status or 500, response.status_text or None)
            for name, value in response.headers.items():
                if name != SET_COOKIE:
                    self.send_header(name, value)
            for cookie in response.headers.get_set_cookie():
                self.send_header("Set-Cookie", cookie)
            body = response.body or b""
            if CONTENT_LENGTH not in response.headers:
                self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            if body and method != "HEAD":
                self.wfile.write(body)

        def _log_access(self, request: HTTPRequest, response: HTTPResponse, duration_ms: float) -> None:
            if config.log_format == "json":
                logger.info(json.dumps({
                    "client": self.client_address[0],
                    "method": request.method,
                    "path": self.path,
                    "status": response.status,
                    "duration_ms": round(duration_ms, 2),
                }))
            else:
                logger.info(
                    f'{self.client_address[0]} "{request.method} {self.path}" '
                    f"{response.status} {duration_ms:.2f}ms"
                )

        # http.server's own per-request log line duplicates ours
        def log_message(self, format, *args):
            logger.debug(format % args)

        do_GET = do_HEAD = do_POST = do_PUT = do_PATCH = do_DELETE = do_OPTIONS = _handle

    return FunctionRequestHandler


def run(config: DevServerConfig) -> None:
    """Serve until interrupted."""
    server = ThreadingHTTPServer((config.host, config.port), make_request_handler(config))
    logger.info(f"Serving {config.functions_dir} on {config.site_url}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.server_close()


def main(argv=None) -> int:
    """
    CLI entry point.

    Arguments default to the LAMBDA_HTTP_* environment variables read by
    ``DevServerConfig.from_env()``.
    """
    defaults = DevServerConfig.from_env()

    parser = argparse.ArgumentParser(
        prog="lambdahttp",
        description="Local development server for lambdahttp function modules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m lambdahttp -f ./functions                 # Serve ./functions
  python -m lambdahttp -f ./functions --port 3000     # Custom port
  python -m lambdahttp -f ./functions --host 0.0.0.0  # All interfaces
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})",
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # FUNCTION ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--functions", "-f",
        default=defaults.functions_dir,
        help="Directory containing handler modules (default: current directory)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=defaults.log_format,
        help="Access log format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"lambdahttp {__version__}",
    )

    args = parser.parse_args(argv)

    config = DevServerConfig(
        host=args.host,
        port=args.port,
        functions_dir=args.functions,
        log_level=args.log_level,
        log_format=args.log_format,
    )
    try:
        config.validate()
    except ValueError as exc:
        parser.error(str(exc))

    configure_logging(config.log_level)
    run(config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
