"""Submission service: canonicalize, encode and build render URLs."""

from dataclasses import dataclass
from typing import Dict, Optional

from ...core.canonicalizer import canonicalize
from ...core.codec import encode
from ...core.errors import InputError
from ...core.formats import RenderFormat

RENDER_PATH_TEMPLATE = "/render/{format}/{token}"


def render_path(fmt: RenderFormat, token: str) -> str:
    return RENDER_PATH_TEMPLATE.format(format=fmt.value, token=token)


@dataclass(frozen=True)
class SubmissionResult:
    """Token and URLs returned once to the submitter; never persisted."""
    token: str
    canonical_source: str
    urls: Dict[RenderFormat, str]


class SubmissionService:
    """Turns raw diagram source into a permanent URL per format."""

    def __init__(self, public_base_url: Optional[str] = None):
        self.public_base_url = public_base_url

    def submit(self, raw_source: Optional[str], request_base_url: str) -> SubmissionResult:
        """
        Canonicalize and encode submitted source.

        Args:
            raw_source: Diagram source from the request body
            request_base_url: Origin of the incoming request, used when no
                public base URL is configured

        Returns:
            SubmissionResult with one URL per supported format

        Raises:
            InputError: If the source is missing, blank, or holds nothing but
                comments and fences
        """
        if raw_source is None or not raw_source.strip():
            raise InputError("Diagram source is required", details="The 'code' field must be non-empty text")

        canonical = canonicalize(raw_source)
        if not canonical:
            raise InputError(
                "Diagram source is empty after cleaning",
                details="Only comment lines or code fences were submitted",
            )

        token = encode(canonical)
        base_url = (self.public_base_url or request_base_url).rstrip("/")
        urls = {fmt: base_url + render_path(fmt, token) for fmt in RenderFormat}

        return SubmissionResult(token=token, canonical_source=canonical, urls=urls)
