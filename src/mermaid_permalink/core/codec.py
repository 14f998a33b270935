"""
Reversible token codec.

A token is the URL-safe base64 form of the canonical source's UTF-8 bytes with
padding removed, so it can sit in a URL path segment without escaping.
"""

import base64
import binascii
import re

from .errors import DecodeFailure

TOKEN_ALPHABET = re.compile(r"[A-Za-z0-9_-]*")


def encode(canonical: str) -> str:
    """Encode canonical diagram text as a URL-safe token."""
    raw = base64.urlsafe_b64encode(canonical.encode("utf-8"))
    return raw.decode("ascii").rstrip("=")


def decode(token: str) -> str:
    """
    Decode a token back into diagram text.

    Only the exact form produced by ``encode`` is accepted, so each diagram
    has a single token and therefore a single cache key.

    Raises:
        DecodeFailure: If the token uses characters outside the URL-safe
            alphabet, is not valid base64, does not hold UTF-8 text, or is
            not the canonical encoding of its text.
    """
    if not is_valid_token(token):
        raise DecodeFailure("token contains characters outside the URL-safe alphabet", details=token[:64])

    padded = token + "=" * (-len(token) % 4)
    try:
        data = base64.b64decode(padded, altchars=b"-_", validate=True)
    except binascii.Error as e:
        raise DecodeFailure("token is not valid base64", details=str(e)) from e

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeFailure("token does not contain UTF-8 text", details=str(e)) from e

    # Non-zero trailing bits decode to the same bytes as the canonical token
    if encode(text) != token:
        raise DecodeFailure("token is not in canonical form", details=token[:64])
    return text


def is_valid_token(token: str) -> bool:
    """Whether the token only uses URL-path-safe characters."""
    return TOKEN_ALPHABET.fullmatch(token) is not None
