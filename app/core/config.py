# core/config.py
import json

from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Annotated, Optional, List


class Settings(BaseSettings):
    """
    Centralized process configuration.
    Loaded from the environment and an optional .env file; there are no CLI flags.
    """

    # ------------------------------------------------------------
    # Project / Runtime
    # ------------------------------------------------------------
    PROJECT_NAME: str = "Video Transcode Pipeline"
    DEBUG: bool = False
    ENABLE_CORS: bool = False
    LOG_FILE: Optional[str] = Field(
        default=None,
        description="Also write logs to this file (interactive mode keeps the console clean)"
    )

    # HTTP / API
    FRONTEND_ENDPOINT: str = ""
    BACKEND_ENDPOINT: str = ""
    RATE_LIMIT_MIN: str = "10"

    # ------------------------------------------------------------
    # AWS Core
    # ------------------------------------------------------------
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_SESSION_TOKEN: Optional[str] = None

    # ------------------------------------------------------------
    # Messaging (SQS)
    # ------------------------------------------------------------
    SQS_QUEUE_URL: str = ""
    SQS_REGION: str = "us-east-1"
    SQS_MAX_MESSAGES: int = Field(
        default=5,
        description="Messages requested per receive call (SQS allows 1-10)"
    )
    SQS_WAIT_TIME_SECONDS: int = Field(
        default=10,
        description="Long-poll wait per receive call (SQS allows 0-20)"
    )
    POLL_ERROR_BACKOFF_SECONDS: float = 2.0

    # ------------------------------------------------------------
    # Dispatcher
    # ------------------------------------------------------------
    DISPATCH_MODE: str = Field(
        default="auto",
        description="'auto' launches every decoded job; 'interactive' waits for an operator"
    )
    UI_TICK_SECONDS: float = 0.05
    DECODE_OBJECT_KEYS: bool = Field(
        default=False,
        description="Percent-decode object keys from notifications before use"
    )

    # ------------------------------------------------------------
    # Job Launch
    # ------------------------------------------------------------
    LAUNCH_BACKEND: str = Field(
        default="ecs",
        description="'ecs' runs a Fargate task; 'local' starts a container with the local runtime"
    )
    PASS_CREDENTIALS: bool = Field(
        default=False,
        description="Forward AWS credentials to the launched container as environment entries"
    )
    JOB_LOCALE: str = "C.UTF-8"

    # ECS (remote orchestrator)
    ECS_CLUSTER: str = "0306"
    ECS_TASK_DEFINITION: str = "video-transcoder:1"
    ECS_CONTAINER_NAME: str = "video-transcoder"
    ECS_LAUNCH_TYPE: str = "FARGATE"
    ECS_SUBNETS: Annotated[List[str], NoDecode] = Field(
        default=[],
        description="Comma-separated subnet ids for awsvpc placement"
    )
    ECS_SECURITY_GROUPS: Annotated[List[str], NoDecode] = []
    ECS_ASSIGN_PUBLIC_IP: bool = True

    # Local container runtime
    LOCAL_RUNTIME_BIN: str = "docker"
    LOCAL_IMAGE: str = "video-transcoder:latest"

    # ------------------------------------------------------------
    # S3 Storage
    # ------------------------------------------------------------
    SOURCE_BUCKET: str = "temp-video-storage-0306"
    DEST_BUCKET: str = "perm-video-storage-0306"
    UPLOAD_BUCKET: str = "temp-video-storage-0306"

    # ------------------------------------------------------------
    # Transcoding worker
    # ------------------------------------------------------------
    FFMPEG_BIN: str = "ffmpeg"
    WORKER_TMP_DIR: str = "/tmp"

    @field_validator("ECS_SUBNETS", "ECS_SECURITY_GROUPS", mode="before")
    @classmethod
    def split_id_list(cls, value):
        # env values arrive as "subnet-a,subnet-b" or a JSON array
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                return json.loads(text)
            return [item.strip() for item in text.split(",") if item.strip()]
        return value

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
