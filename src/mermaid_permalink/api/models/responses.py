"""Response models for the API."""

from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


class SubmissionResponse(BaseModel):
    """Token and ready-to-use render URLs for a submitted diagram."""
    model_config = ConfigDict(populate_by_name=True)

    token: str
    cleaned_code: str = Field(alias="cleanedCode")
    svg_url: str = Field(alias="svgUrl")
    png_url: str = Field(alias="pngUrl")


class ErrorResponse(BaseModel):
    """Error response model."""
    success: bool = False
    error: Dict[str, Any]
    timestamp: datetime


def error_detail(code: str, message: str, details: Optional[str] = None) -> Dict[str, Any]:
    """Build the ``error`` payload carried by HTTPException details."""
    return {"code": code, "message": message, "details": details}
