"""Video upload API router.

Thin HTTP adapter over the rendition pipeline: accepts a multipart upload,
runs the pipeline in a worker thread and returns the manifest.
"""

from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from postpic.modules.transcoding.exceptions import (
    FatalPosterError,
    IntakeError,
    PipelineError,
    ProbeError,
    WorkspaceError,
)
from postpic.modules.transcoding.schemas import Manifest, PipelineErrorResponse
from postpic.modules.transcoding.service import RenditionPipeline, create_pipeline

router = APIRouter(prefix="/videos", tags=["videos"])

# Upload problems are the client's; everything else is ours
ERROR_STATUS = {
    IntakeError: status.HTTP_400_BAD_REQUEST,
    ProbeError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    WorkspaceError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    FatalPosterError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@lru_cache
def get_pipeline() -> RenditionPipeline:
    """Process-wide pipeline built from settings."""
    return create_pipeline()


@router.post("", response_model=Manifest, status_code=status.HTTP_201_CREATED)
async def upload_video(
    file: UploadFile = File(...),
    owner_id: Optional[str] = Form(None),
    pipeline: RenditionPipeline = Depends(get_pipeline),
):
    """Upload a video and produce its rendition ladder."""
    try:
        return await run_in_threadpool(
            pipeline.process_upload,
            file.file,
            owner_id=owner_id,
        )
    except PipelineError as e:
        body = PipelineErrorResponse(
            detail=str(e),
            error=type(e).__name__,
            asset_id=e.asset_id,
        )
        raise HTTPException(
            status_code=ERROR_STATUS.get(type(e), status.HTTP_500_INTERNAL_SERVER_ERROR),
            detail=body.model_dump(),
        )
    finally:
        await file.close()
