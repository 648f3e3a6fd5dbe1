"""
=============================================================================
RAW HTTP REQUEST
=============================================================================

The request as the platform hands it over: method, absolute URL,
headers, an optional body, fetch metadata and an abort signal.

Nothing here is derived or cached. ``NormalizedRequest`` (normalized.py)
wraps one of these and adds the interpreted view.

=============================================================================
BODY LIFECYCLE
=============================================================================

A body can be read exactly once:

    request.body_used   False
          │
          │  await request.json()
          ▼
    request.body_used   True  ──►  await request.text()  raises TypeError
                                    request.clone()        raises TypeError

Clone *before* reading if two readers need the body.

=============================================================================
ABORT SIGNALS
=============================================================================

The host runtime may give up on a request (client disconnect, platform
deadline). It calls ``request.signal.abort(reason)``; the dispatcher
races the route handler against ``signal.wait()`` and cancels the
handler when the signal wins.

=============================================================================
"""

import asyncio
import json
from typing import Any, Callable, List, Optional, Union
from urllib.parse import urlsplit

from .form_data import Blob, FormData, parse_form
from .headers import CONTENT_TYPE, Headers, HeadersInit


BODYLESS_METHODS = frozenset({"GET", "HEAD"})


class AbortSignal:
    """
    One-shot cancellation flag that coroutines can wait on.

        signal = AbortSignal()
        ...
        signal.abort("client went away")
        signal.aborted   # True
    """

    def __init__(self):
        self._aborted = False
        self._reason: Any = None
        self._event: Optional[asyncio.Event] = None
        self._callbacks: List[Callable[[Any], None]] = []

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Any:
        return self._reason

    def abort(self, reason: Any = None) -> None:
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason if reason is not None else "The operation was aborted."
        if self._event is not None:
            self._event.set()
        for callback in self._callbacks:
            callback(self._reason)

    def add_listener(self, callback: Callable[[Any], None]) -> None:
        self._callbacks.append(callback)

    async def wait(self) -> Any:
        """Block until the signal fires and return the abort reason."""
        if not self._aborted:
            if self._event is None:
                self._event = asyncio.Event()
            await self._event.wait()
        return self._reason

    @classmethod
    def timeout(cls, seconds: float) -> "AbortSignal":
        """A signal that aborts itself after ``seconds`` on the running loop."""
        signal = cls()
        asyncio.get_running_loop().call_later(seconds, signal.abort, "The operation timed out.")
        return signal


class HTTPRequest:
    """
    A raw inbound request.

    Args:
        url: Absolute URL (``https://host/path?query``).
        method: HTTP method, upper-cased on construction.
        headers: Anything ``Headers`` accepts.
        body: ``bytes``/``str``/``Blob`` or ``None``. GET and HEAD
              requests cannot have one.
        signal: Abort signal shared with clones.
        mode, credentials, destination, referrer, referrer_policy:
              Fetch metadata as reported by the platform. The
              normalizer prefers the matching ``Sec-Fetch-*`` /
              ``Referer`` headers when they are present.
    """

    def __init__(
        self,
        url: str,
        method: str = "GET",
        headers: HeadersInit = None,
        body: Union[bytes, bytearray, str, Blob, None] = None,
        signal: Optional[AbortSignal] = None,
        mode: str = "cors",
        credentials: str = "same-origin",
        destination: str = "",
        referrer: str = "about:client",
        referrer_policy: str = "",
    ):
        parts = urlsplit(str(url))
        if not parts.scheme:
            raise ValueError(f"Request URL must be absolute: {url!r}")
        self.url = parts.geturl()
        self.method = method.upper()
        self.headers = Headers(headers)

        if isinstance(body, str):
            body = body.encode("utf-8")
        elif isinstance(body, Blob):
            if body.type and CONTENT_TYPE not in self.headers:
                self.headers[CONTENT_TYPE] = body.type
            body = body.bytes()
        elif body is not None:
            body = bytes(body)
        if body is not None and self.method in BODYLESS_METHODS:
            raise TypeError(f"Request with {self.method} method cannot have a body")
        self._body: Optional[bytes] = body
        self._body_used = False

        self.signal = signal if signal is not None else AbortSignal()
        self.mode = mode
        self.credentials = credentials
        self.destination = destination
        self.referrer = referrer
        self.referrer_policy = referrer_policy

    @property
    def has_body(self) -> bool:
        return self._body is not None

    @property
    def body_used(self) -> bool:
        return self._body_used

    # ─────────────────────────────────────────────────────────────────────
    # Body readers (single use)
    # ─────────────────────────────────────────────────────────────────────

    async def read(self) -> bytes:
        if self._body_used:
            raise TypeError("Body has already been consumed")
        if self._body is None:
            return b""
        self._body_used = True
        return self._body

    async def text(self) -> str:
        return (await self.read()).decode("utf-8")

    async def json(self) -> Any:
        return json.loads(await self.text())

    async def blob(self) -> Blob:
        return Blob(await self.read(), self.headers.get(CONTENT_TYPE, ""))

    async def form_data(self) -> FormData:
        return parse_form(await self.read(), self.headers.get(CONTENT_TYPE, ""))

    def clone(self) -> "HTTPRequest":
        if self._body_used:
            raise TypeError("Cannot clone a request whose body has been consumed")
        return HTTPRequest(
            self.url,
            method=self.method,
            headers=self.headers.copy(),
            body=self._body,
            signal=self.signal,
            mode=self.mode,
            credentials=self.credentials,
            destination=self.destination,
            referrer=self.referrer,
            referrer_policy=self.referrer_policy,
        )

    def __repr__(self) -> str:
        return f"<HTTPRequest {self.method} {self.url}>"
