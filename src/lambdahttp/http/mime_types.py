"""
=============================================================================
CONTENT-TYPE CLASSIFICATION
=============================================================================

Helpers that reduce a ``Content-Type`` / ``Accept`` value to its MIME
essence and decide which body parser applies.

=============================================================================
ESSENCE
=============================================================================

The essence is ``type/subtype`` without parameters, lower-cased:

    Content-Type: Application/JSON; charset=UTF-8
                  └──────┬───────┘
                     essence  →  "application/json"

=============================================================================
PARSE STRATEGY
=============================================================================

    ┌────────────────────────────────────────┬──────────────────────────┐
    │ Essence                                │ data() returns           │
    ├────────────────────────────────────────┼──────────────────────────┤
    │ ""  (no Content-Type)                  │ None                     │
    │ application/json, text/json,           │ parsed JSON              │
    │ application/ld+json, anything +json    │                          │
    │ multipart/form-data,                   │ FormData                 │
    │ application/x-www-form-urlencoded      │                          │
    │ text/plain                             │ str                      │
    │ anything else                          │ Blob (raw bytes)         │
    └────────────────────────────────────────┴──────────────────────────┘

Unknown types always fall through to raw bytes.

=============================================================================
"""

from typing import Optional


APPLICATION_JSON = "application/json"
APPLICATION_LD_JSON = "application/ld+json"
TEXT_JSON = "text/json"
TEXT_PLAIN = "text/plain"
TEXT_HTML = "text/html"
MULTIPART_FORM_DATA = "multipart/form-data"
FORM_URLENCODED = "application/x-www-form-urlencoded"
OCTET_STREAM = "application/octet-stream"

JSON_TYPES = frozenset({APPLICATION_JSON, TEXT_JSON, APPLICATION_LD_JSON})
FORM_TYPES = frozenset({MULTIPART_FORM_DATA, FORM_URLENCODED})

# Content-Type values written by the response helpers
JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain;charset=UTF-8"


def get_essence(content_type: Optional[str]) -> str:
    """
    Strip parameters and lower-case a media type.

        >>> get_essence("Text/Plain; charset=utf-8")
        'text/plain'
        >>> get_essence(None)
        ''
    """
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def get_parameter(content_type: Optional[str], name: str) -> Optional[str]:
    """Read one parameter (``boundary``, ``charset``) from a media type."""
    if not content_type:
        return None
    for part in content_type.split(";")[1:]:
        key, sep, value = part.partition("=")
        if sep and key.strip().lower() == name.lower():
            return value.strip().strip('"')
    return None


def is_json_type(essence: str) -> bool:
    return essence in JSON_TYPES or essence.endswith("+json")


def is_form_type(essence: str) -> bool:
    return essence in FORM_TYPES


def is_text_type(essence: str) -> bool:
    """Only ``text/plain`` is read as text; other ``text/*`` stay bytes."""
    return essence == TEXT_PLAIN


def parse_accept(value: Optional[str]) -> list:
    """
    Turn an ``Accept`` header into an ordered list of essences.

    Quality values are dropped, order is preserved, empty items skipped:

        >>> parse_accept("text/html, application/json;q=0.9, */*;q=0.8")
        ['text/html', 'application/json', '*/*']
    """
    if not value:
        return []
    types = []
    for item in value.split(","):
        essence = get_essence(item)
        if essence:
            types.append(essence)
    return types
