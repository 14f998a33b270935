"""Render engine that draws Mermaid diagrams in headless Chromium."""

import html
import logging
import re
from typing import Protocol

from playwright.async_api import async_playwright

from ...core.errors import RenderFailure
from ...core.formats import RenderFormat
from ..models.config import APIConfig

logger = logging.getLogger(__name__)

CONTAINER_SELECTOR = "#container"

# mermaid.render throws on syntax errors instead of drawing the error diagram
RENDER_SCRIPT = """
async (source) => {
    const { svg } = await mermaid.render('diagram', source);
    document.querySelector('#container').innerHTML = svg;
    const element = document.querySelector('#container svg');
    return element ? element.outerHTML : null;
}
"""

VOID_BR = re.compile(r"<br\s*>", re.IGNORECASE)


class DiagramRenderer(Protocol):
    """Turns canonical diagram text into image bytes."""

    async def render(self, source: str, fmt: RenderFormat) -> bytes:
        ...


def build_page_html(script_url: str, theme: str) -> str:
    """HTML shell that loads Mermaid and provides the render container."""
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <script src="{html.escape(script_url)}"></script>
  <style>
    body {{ margin: 0; padding: 20px; background: white; }}
    #container {{ display: inline-block; }}
  </style>
</head>
<body>
  <div id="container"></div>
  <script>
    mermaid.initialize({{ startOnLoad: false, theme: '{html.escape(theme)}' }});
  </script>
</body>
</html>"""


def make_xml_compliant(svg: str) -> str:
    """SVG is XML, so HTML-style void ``<br>`` tags must be self-closing."""
    return VOID_BR.sub("<br/>", svg)


class PlaywrightRenderer:
    """
    Renders diagrams with Mermaid.js in a headless browser.

    A fresh browser is launched for each render and closed on every exit path,
    so no state is shared between unrelated diagrams.
    """

    def __init__(self, config: APIConfig):
        self.config = config
        self.page_html = build_page_html(config.mermaid_script_url, config.mermaid_theme)

    async def render(self, source: str, fmt: RenderFormat) -> bytes:
        """
        Render diagram source in the requested format.

        Args:
            source: Canonical Mermaid source
            fmt: Output format

        Returns:
            UTF-8 SVG document or PNG bytes
        """
        timeout_ms = self.config.render_timeout_seconds * 1000

        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=True)
            try:
                page = await browser.new_page(
                    viewport={
                        "width": self.config.viewport_width,
                        "height": self.config.viewport_height,
                    }
                )
                page.set_default_timeout(timeout_ms)

                await page.set_content(self.page_html, wait_until="networkidle")
                svg = await page.evaluate(RENDER_SCRIPT, source)
                if not svg:
                    raise RenderFailure("SVG not found")

                if fmt.is_vector:
                    return make_xml_compliant(svg).encode("utf-8")

                container = await page.query_selector(CONTAINER_SELECTOR)
                if container is None:
                    raise RenderFailure("Container not found")
                return await container.screenshot(type="png")
            finally:
                await browser.close()
