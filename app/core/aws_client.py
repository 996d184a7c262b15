# core/aws_client.py
"""
Centralized AWS client factory to ensure proper credential handling.
Explicit credentials from settings / environment win; otherwise boto3's
default chain (profile, task role) applies.
"""
import boto3
from botocore.config import Config
from typing import Dict, Optional
from core.config import settings
from core.logger import logger
import os


def resolve_credentials() -> Dict[str, Optional[str]]:
    """Credentials from settings (which loads from .env), falling back to the environment."""
    return {
        "aws_access_key_id": getattr(settings, 'AWS_ACCESS_KEY_ID', None) or os.getenv('AWS_ACCESS_KEY_ID'),
        "aws_secret_access_key": getattr(settings, 'AWS_SECRET_ACCESS_KEY', None) or os.getenv('AWS_SECRET_ACCESS_KEY'),
        "aws_session_token": getattr(settings, 'AWS_SESSION_TOKEN', None) or os.getenv('AWS_SESSION_TOKEN'),
    }


def _build_client(service: str, region: str, config: Optional[Config] = None):
    label = service.upper()
    try:
        client = boto3.client(service, region_name=region, config=config, **resolve_credentials())
        logger.info(f"{label} client initialized region={region}")
        return client
    except Exception as e:
        logger.error(f"Failed to initialize {label} client: {str(e)}")
        raise


def get_sqs_client():
    """SQS client; read timeout outlasts the longest long-poll."""
    return _build_client(
        "sqs",
        settings.SQS_REGION,
        Config(read_timeout=max(30, settings.SQS_WAIT_TIME_SECONDS + 10), connect_timeout=10),
    )


def get_ecs_client():
    """ECS client with SDK retries off: one launch attempt per submit."""
    return _build_client(
        "ecs",
        settings.AWS_REGION,
        Config(connect_timeout=10, retries={'max_attempts': 0}),
    )


def get_s3_client():
    return _build_client("s3", settings.AWS_REGION)


def validate_aws_credentials() -> bool:
    """Validate that AWS credentials are available from settings, environment or the default chain."""
    credentials = resolve_credentials()

    if credentials["aws_access_key_id"] and credentials["aws_secret_access_key"]:
        logger.info("AWS credentials found in settings/environment")
        return True

    if boto3.Session().get_credentials() is not None:
        logger.info("AWS credentials resolved from the default provider chain")
        return True

    logger.warning("Missing AWS credentials in settings, environment and default profile")
    logger.info("Set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY in .env, "
                "or configure AWS CLI with 'aws configure'")
    return False
