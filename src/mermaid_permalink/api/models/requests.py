"""Request models for the API."""

from typing import Optional
from pydantic import BaseModel, Field


class SubmissionRequest(BaseModel):
    """Diagram source submitted for a permanent URL."""
    code: Optional[str] = Field(default=None, description="Mermaid diagram source")
