"""
=============================================================================
FUNCTION MODULE LOADER
=============================================================================

Maps a request path onto a handler module on disk, the way the platform
maps deployed function files onto URLs. Used by the development server
and by tests; production invocations go straight to the dispatcher.

    GET /api/echo?x=1
          │
          ▼
    <root>/api/echo.py          (or <root>/api/echo/index.py)
          │
          ▼
    module.handler(request, context)

=============================================================================
FAILURES
=============================================================================

    ┌──────────────────────────────────────┬────────────────────────────┐
    │ Problem                              │ Error                      │
    ├──────────────────────────────────────┼────────────────────────────┤
    │ no file for the path                 │ 404 HTTPNotFoundError      │
    │ path escapes the functions root      │ 404 HTTPNotFoundError      │
    │ module has a syntax error            │ 500 HTTPInternalServerError│
    │ module raises while importing        │ 500 HTTPInternalServerError│
    │ no callable ``handler`` attribute    │ 501 HTTPNotImplementedError│
    └──────────────────────────────────────┴────────────────────────────┘

``fetch_module`` turns every one of these into a JSON error response.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    GET /../../etc/passwd

The candidate path is resolved (following ``..`` and symlinks) and must
still lie inside the functions root, otherwise the module is reported
as missing.

=============================================================================
"""

import importlib.util
import inspect
import logging
import re
from pathlib import Path
from typing import Any, Callable, Optional, Union
from urllib.parse import unquote, urlsplit

from .errors import HTTPError, HTTPInternalServerError, HTTPNotFoundError, HTTPNotImplementedError
from .http.request import HTTPRequest
from .http.response import HTTPResponse
from .middleware.coercion import to_response
from .middleware.pipeline import bind_handler


logger = logging.getLogger(__name__)

_UNSAFE_NAME = re.compile(r"[^0-9A-Za-z_]")


def resolve_module_path(path: str, root: Union[str, Path]) -> Path:
    """
    Find the module file that serves URL ``path``.

    Raises:
        HTTPNotFoundError: no such module, or the path leaves ``root``.
    """
    root_dir = Path(root).resolve()
    relative = unquote(path).strip("/")

    candidates = []
    if relative:
        candidates.append(root_dir / f"{relative}.py")
        candidates.append(root_dir / relative / "index.py")
    else:
        candidates.append(root_dir / "index.py")

    for candidate in candidates:
        full_path = candidate.resolve()
        try:
            full_path.relative_to(root_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {path}")
            break
        if full_path.is_file():
            return full_path

    raise HTTPNotFoundError(f"No module found for {path}")


def load_module_handler(path: str, root: Union[str, Path]) -> Callable[..., Any]:
    """
    Import the module serving ``path`` and return its ``handler``.

    The module is executed fresh on every call and never registered in
    ``sys.modules``, so edits show up on the next request.
    """
    module_path = resolve_module_path(path, root)
    name = "lambdahttp_function_" + _UNSAFE_NAME.sub("_", str(module_path.relative_to(Path(root).resolve())))

    spec = importlib.util.spec_from_file_location(name, module_path)
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except SyntaxError as exc:
        raise HTTPInternalServerError(f"Syntax error in {path}", cause=exc)
    except Exception as exc:
        raise HTTPInternalServerError(f"Error importing {path}", cause=exc)

    handler = getattr(module, "handler", None)
    if not callable(handler):
        raise HTTPNotImplementedError(f"{path} does not export a handler")

    logger.debug(f"Loaded handler from {module_path}")
    return handler


async def fetch_module(
    request: HTTPRequest,
    root: Union[str, Path],
    context: Optional[Any] = None,
) -> HTTPResponse:
    """
    Load the handler for ``request`` and run it.

    Handlers built with ``create_handler`` return responses themselves.
    Plain functions are called with ``(request, context)`` and their
    result goes through ``to_response``.

        response = await fetch_module(make_request("/api/echo"), "functions")
    """
    try:
        handler = load_module_handler(urlsplit(request.url).path, root)
        result = bind_handler(handler)(request, context)
        if inspect.isawaitable(result):
            result = await result
        return to_response(result)
    except HTTPError as error:
        if error.is_server_error:
            logger.error(f"{request.method} {request.url} failed: {error}", exc_info=error)
        try:
            return error.response
        except Exception:
            logger.exception(f"Could not build a response for {error!r}")
            return HTTPInternalServerError("An unknown error occurred").response
    except Exception as exc:
        logger.exception(f"{request.method} {request.url} failed")
        return HTTPInternalServerError("An unknown error occurred", cause=exc).response
