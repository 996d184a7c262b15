from contextlib import asynccontextmanager

from fastapi import FastAPI

from core.aws_client import get_s3_client, get_sqs_client
from core.config import settings
from core.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Creates the AWS clients the upload ingress needs and keeps them on app.state.
    The queue client is only used by the health check.
    """
    app.state.s3 = get_s3_client()
    app.state.sqs = get_sqs_client() if settings.SQS_QUEUE_URL else None
    logger.info(f"Lifespan startup: uploads go to s3://{settings.UPLOAD_BUCKET}")
    yield
    logger.info("Lifespan shutdown.")
