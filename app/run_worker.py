# run_worker.py
"""Container entry point for one transcoding job. Reads SOURCE_KEY from the environment."""
import os
import sys

import boto3

from core.aws_client import get_s3_client
from core.config import settings
from core.logger import logger
from services.transcoder import Transcoder


def worker_s3_client():
    """Prefer credentials forwarded by the dispatcher, else the task role / settings."""
    access_key = os.getenv("ACCESS_KEY_ID")
    secret_key = os.getenv("SECRET_ACCESS_KEY")
    if access_key and secret_key:
        return boto3.client(
            "s3",
            region_name=os.getenv("REGION") or settings.AWS_REGION,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            aws_session_token=os.getenv("SESSION_TOKEN"),
        )
    return get_s3_client()


def main() -> int:
    source_key = os.getenv("SOURCE_KEY")
    if not source_key:
        logger.error("SOURCE_KEY environment variable not set")
        return 1

    transcoder = Transcoder(
        worker_s3_client(),
        source_bucket=settings.SOURCE_BUCKET,
        dest_bucket=settings.DEST_BUCKET,
        ffmpeg_bin=settings.FFMPEG_BIN,
        tmp_root=settings.WORKER_TMP_DIR,
    )
    try:
        transcoder.run(source_key)
    except Exception as e:
        logger.exception(f"Transcoding job failed for {source_key}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
