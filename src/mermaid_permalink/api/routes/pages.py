"""Landing page with the diagram editor."""

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from ...resources import load_index_html

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
@router.get("/index.html", response_class=HTMLResponse, include_in_schema=False)
async def index():
    """Serve the editor page."""
    return HTMLResponse(load_index_html())
