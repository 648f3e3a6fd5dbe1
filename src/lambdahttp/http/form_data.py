"""
=============================================================================
FORM DATA AND BLOBS
=============================================================================

Containers for request bodies that are not JSON or plain text.

    Content-Type                          Parsed into
    ────────────────────────────────────  ──────────────────────────────
    application/x-www-form-urlencoded     FormData (str values)
    multipart/form-data; boundary=...     FormData (str and File values)
    anything unrecognised                 Blob

Multipart bodies are handed to the standard library ``email`` parser,
which already understands MIME boundaries, per-part headers and
transfer encodings.

=============================================================================
"""

import time
from email.parser import BytesParser
from email.policy import HTTP
from typing import Dict, Iterator, List, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlencode

from .mime_types import FORM_URLENCODED, MULTIPART_FORM_DATA, get_essence


class Blob:
    """Immutable bytes with a media type."""

    def __init__(self, data: Union[bytes, bytearray, memoryview, str] = b"", type: str = ""):
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._data = bytes(data)
        self.type = type.lower()

    @property
    def size(self) -> int:
        return len(self._data)

    def bytes(self) -> bytes:
        return self._data

    def text(self, encoding: str = "utf-8") -> str:
        return self._data.decode(encoding, errors="replace")

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other) -> bool:
        if isinstance(other, Blob):
            return self._data == other._data and self.type == other.type
        return NotImplemented

    def __repr__(self) -> str:
        return f"{type(self).__name__}(size={self.size}, type={self.type!r})"


class File(Blob):
    """A Blob with a file name, as found in multipart uploads."""

    def __init__(
        self,
        data: Union[bytes, bytearray, memoryview, str],
        name: str,
        type: str = "",
        last_modified: Optional[int] = None,
    ):
        super().__init__(data, type)
        self.name = name
        self.last_modified = last_modified if last_modified is not None else int(time.time() * 1000)


FormValue = Union[str, File]


class FormData:
    """
    Ordered multi-map of form fields.

        >>> fd = FormData([("tag", "a"), ("tag", "b")])
        >>> fd.get("tag"), fd.get_all("tag")
        ('a', ['a', 'b'])
    """

    def __init__(self, entries: Optional[List[Tuple[str, FormValue]]] = None):
        self._entries: List[Tuple[str, FormValue]] = list(entries or [])

    def append(self, name: str, value: FormValue) -> None:
        self._entries.append((name, value if isinstance(value, Blob) else str(value)))

    def set(self, name: str, value: FormValue) -> None:
        self.delete(name)
        self.append(name, value)

    def get(self, name: str, default=None) -> Optional[FormValue]:
        for key, value in self._entries:
            if key == name:
                return value
        return default

    def get_all(self, name: str) -> List[FormValue]:
        return [value for key, value in self._entries if key == name]

    def has(self, name: str) -> bool:
        return any(key == name for key, _ in self._entries)

    def delete(self, name: str) -> None:
        self._entries = [(key, value) for key, value in self._entries if key != name]

    def keys(self) -> List[str]:
        seen: Dict[str, None] = {}
        for key, _ in self._entries:
            seen.setdefault(key, None)
        return list(seen)

    def items(self) -> Iterator[Tuple[str, FormValue]]:
        return iter(list(self._entries))

    def __contains__(self, name) -> bool:
        return self.has(name)

    def __iter__(self) -> Iterator[Tuple[str, FormValue]]:
        return self.items()

    def __len__(self) -> int:
        return len(self._entries)

    def to_dict(self) -> Dict[str, List[FormValue]]:
        """Group values by name, the shape used for JSON output."""
        return {key: self.get_all(key) for key in self.keys()}

    def to_urlencoded(self) -> str:
        return urlencode([(k, v) for k, v in self._entries if isinstance(v, str)])


def parse_urlencoded(body: bytes) -> FormData:
    return FormData(parse_qsl(body.decode("utf-8"), keep_blank_values=True))


def parse_multipart(body: bytes, content_type: str) -> FormData:
    """
    Split a ``multipart/form-data`` body into fields and files.

    The Content-Type header (with its boundary) is prepended so the
    payload reads as a standalone MIME message.

    Raises:
        ValueError: if the body is not a multipart message.
    """
    head = f"Content-Type: {content_type}\r\n\r\n".encode("latin-1")
    message = BytesParser(policy=HTTP).parsebytes(head + body)
    if not message.is_multipart():
        raise ValueError("Body is not a valid multipart/form-data message")

    form = FormData()
    for part in message.iter_parts():
        name = part.get_param("name", header="content-disposition")
        if name is None:
            continue
        payload = part.get_payload(decode=True) or b""
        filename = part.get_filename()
        if filename is None:
            form.append(name, payload.decode(part.get_content_charset() or "utf-8"))
        else:
            form.append(name, File(payload, filename, type=part.get_content_type()))
    return form


def parse_form(body: bytes, content_type: str) -> FormData:
    """Dispatch on the essence of ``content_type``."""
    essence = get_essence(content_type)
    if essence == FORM_URLENCODED:
        return parse_urlencoded(body)
    if essence == MULTIPART_FORM_DATA:
        return parse_multipart(body, content_type)
    raise ValueError(f"Cannot parse {essence or 'untyped'} body as form data")
