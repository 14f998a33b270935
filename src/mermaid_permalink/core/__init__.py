"""Pure addressing logic: canonicalization, token codec, formats and errors."""

from .canonicalizer import canonicalize
from .codec import decode, encode, is_valid_token
from .errors import CacheIOFailure, DecodeFailure, DiagramLinkError, InputError, RenderFailure
from .formats import RenderFormat

__all__ = [
    "canonicalize",
    "encode",
    "decode",
    "is_valid_token",
    "RenderFormat",
    "DiagramLinkError",
    "InputError",
    "DecodeFailure",
    "RenderFailure",
    "CacheIOFailure",
]
