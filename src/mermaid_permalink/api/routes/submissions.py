"""Submission endpoint: diagram source in, permanent URLs out."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from ...core.errors import InputError
from ...core.formats import RenderFormat
from ..models.config import APIConfig
from ..models.requests import SubmissionRequest
from ..models.responses import SubmissionResponse, error_detail
from ..services.submission import SubmissionService

router = APIRouter()


def get_config(request: Request) -> APIConfig:
    """Get API configuration."""
    return request.app.state.config


def get_submission_service(config: APIConfig = Depends(get_config)) -> SubmissionService:
    """Get submission service instance."""
    return SubmissionService(public_base_url=config.public_base_url)


@router.options("/submissions", status_code=204, include_in_schema=False)
async def submissions_preflight():
    """Answer bare OPTIONS requests; CORS preflights are handled by the middleware."""
    return Response(status_code=204)


@router.post("/submissions", response_model=SubmissionResponse)
async def create_submission(
    body: SubmissionRequest,
    request: Request,
    submission_service: SubmissionService = Depends(get_submission_service)
):
    """
    Clean diagram source and return its token and render URLs.

    Nothing is stored or rendered here; the first visit to a URL renders it.
    """
    try:
        result = submission_service.submit(body.code, str(request.base_url))
    except InputError as e:
        raise HTTPException(
            status_code=400,
            detail=error_detail(e.code, e.message, e.details)
        )

    return SubmissionResponse(
        token=result.token,
        cleaned_code=result.canonical_source,
        svg_url=result.urls[RenderFormat.SVG],
        png_url=result.urls[RenderFormat.PNG],
    )
