"""
Diagram source normalization.

Pasted diagrams often arrive wrapped in a markdown fence and preceded by a
heading or comment lines. The canonical form drops all of that so that the
same diagram always maps to the same token.
"""

import re
from typing import List, Optional

COMMENT_MARKER = "#"
CLOSING_FENCE = "```"
OPENING_FENCE = re.compile(r"^```\s*mermaid\s*$", re.IGNORECASE)


def _drop_leading_noise(lines: List[str]) -> None:
    """Remove blank/comment lines and opening fences from the head, in place."""
    while lines:
        first = lines[0].strip()
        if first == "" or first.startswith(COMMENT_MARKER):
            lines.pop(0)
        elif OPENING_FENCE.match(first):
            # A comment may follow the fence, so keep going after dropping it
            lines.pop(0)
        else:
            break


def _drop_trailing_noise(lines: List[str]) -> None:
    """Remove blank lines and closing fences from the tail, in place."""
    while lines:
        last = lines[-1].strip()
        if last == "" or last == CLOSING_FENCE:
            lines.pop()
        else:
            break


def canonicalize(raw: Optional[str]) -> str:
    """
    Normalize raw diagram source into its canonical text.

    Args:
        raw: Diagram source as typed or pasted by a user

    Returns:
        Source without leading comment/blank lines, without the surrounding
        fence and without surrounding whitespace. Applying this function to
        its own output returns the output unchanged.
    """
    if not raw:
        return ""

    lines = raw.strip().split("\n")
    _drop_leading_noise(lines)
    _drop_trailing_noise(lines)

    return "\n".join(lines).strip()
