# routers/router.py
"""
FastAPI Router for the upload ingress
"""

from uuid import uuid4

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Request,
    UploadFile,
    status
)
from fastapi.responses import PlainTextResponse

from core.config import settings
from core.logger import logger
from core.rate_limiter import limit_param, limiter
from schemas.request_models import HealthResponse


# ============================================================================
# ROUTER CONFIGURATION
# ============================================================================

router = APIRouter(
    prefix="/api/v1",
    tags=["Upload"],
    responses={
        429: {"description": "Too Many Requests"},
        500: {"description": "Internal Server Error"}
    }
)


def get_s3(request: Request):
    """S3 client created by the lifespan hook."""
    return request.app.state.s3


def get_sqs(request: Request):
    return getattr(request.app.state, "sqs", None)


# ============================================================================
# HEALTH CHECK ENDPOINTS
# ============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Service Health Check",
    description="Validates object storage and queue connectivity"
)
@limiter.limit(limit_param)
def check_health(request: Request, s3=Depends(get_s3), sqs=Depends(get_sqs)) -> HealthResponse:
    health_status = HealthResponse(
        status="healthy",
        message="Upload ingress is operational"
    )

    try:
        s3.head_bucket(Bucket=settings.UPLOAD_BUCKET)
        health_status.s3_status = "connected"
    except (ClientError, BotoCoreError) as e:
        logger.error(f"S3 health check failed: {e}")
        health_status.s3_status = f"error: {str(e)[:100]}"
        health_status.status = "degraded"

    if sqs is not None and settings.SQS_QUEUE_URL:
        try:
            sqs.get_queue_attributes(
                QueueUrl=settings.SQS_QUEUE_URL,
                AttributeNames=["QueueArn"]
            )
            health_status.sqs_status = "connected"
        except (ClientError, BotoCoreError) as e:
            logger.error(f"SQS health check failed: {e}")
            health_status.sqs_status = f"error: {str(e)[:100]}"
            health_status.status = "degraded"
    else:
        health_status.sqs_status = "disabled"

    return health_status


# ============================================================================
# UPLOAD ENDPOINTS
# ============================================================================

@router.post(
    "/upload",
    response_class=PlainTextResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload Video",
    description="Stream a video to object storage; the bucket notification queues it for transcoding"
)
@limiter.limit(limit_param)
def upload_video(
    request: Request,
    video: UploadFile = File(...),
    s3=Depends(get_s3),
) -> PlainTextResponse:
    """
    Stores the multipart field `video` as `upload-<uuid>.mp4` in the upload bucket.
    upload_fileobj streams in parts, so large files are never held in memory.
    """
    file_name = f"upload-{uuid4()}.mp4"

    try:
        s3.upload_fileobj(
            video.file,
            settings.UPLOAD_BUCKET,
            file_name,
            ExtraArgs={"ContentType": "video/mp4"},
        )
    except (ClientError, BotoCoreError) as e:
        logger.error(f"S3 upload failed key={file_name}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Upload failed"
        )
    finally:
        video.file.close()

    logger.info(f"Upload stored bucket={settings.UPLOAD_BUCKET} key={file_name} original={video.filename}")
    return PlainTextResponse(f"Uploaded as {file_name}")
