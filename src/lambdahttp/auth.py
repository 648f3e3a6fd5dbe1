"""
Bearer-token decoding for the ``require_jwt`` check.

The pipeline only needs to know that a well-formed JWT was sent. Whether
its signature is trusted is a decision for the route handler (or a
custom ``Policy.jwt_decoder``), because only the handler knows which
keys and audiences apply. The default decoder therefore parses the token
with PyJWT and skips verification entirely.
"""

import logging
from typing import Any, Callable, Dict, Optional

import jwt


logger = logging.getLogger(__name__)

DecodedToken = Dict[str, Any]
TokenDecoder = Callable[[str], Optional[DecodedToken]]


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the token from ``Authorization: Bearer <token>``.

        >>> bearer_token("Bearer abc.def.ghi")
        'abc.def.ghi'
        >>> bearer_token("Basic dXNlcjpwYXNz") is None
        True
    """
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def decode_token(authorization: Optional[str]) -> Optional[DecodedToken]:
    """
    Decode a bearer JWT without verifying it.

    Returns:
        ``{"header", "payload", "signature", "data"}`` where ``data`` is
        the signed ``header.payload`` segment, or ``None`` if the value
        is not a bearer token or not a decodable JWT.
    """
    token = bearer_token(authorization)
    if token is None:
        return None
    try:
        header = jwt.get_unverified_header(token)
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        logger.debug("Rejected bearer token: %s", exc)
        return None
    data, _, signature = token.rpartition(".")
    return {"header": header, "payload": payload, "signature": signature, "data": data}
