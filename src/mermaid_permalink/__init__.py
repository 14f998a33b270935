"""
Permanent, content-addressed URLs for Mermaid diagrams.

Diagram source is normalized, encoded into a URL-safe token, and rendered to
SVG or PNG on first request; the rendered artifact is cached from then on.
"""

__version__ = "1.0.0"
