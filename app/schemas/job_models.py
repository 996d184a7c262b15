# schemas/job_models.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from enum import Enum
from uuid import uuid4


class JobStatus(str, Enum):
    """Dispatch lifecycle of a single job"""
    PENDING = "pending"
    LAUNCHING = "launching"
    LAUNCHED = "launched"
    FAILED = "failed"


class Job(BaseModel):
    """
    One unit of transcoding work derived from a notification record.
    Only status changes after creation; it is set by the dispatcher.
    """
    job_id: str = Field(default_factory=lambda: uuid4().hex[:12])
    bucket: str
    key: str
    ack_token: str
    message_id: str = ""
    status: JobStatus = JobStatus.PENDING

    @property
    def source_uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


# ============================================================================
# LAUNCH MODELS
# ============================================================================

class EnvironmentEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: str


class LaunchRequest(BaseModel):
    job: Job
    environment: List[EnvironmentEntry] = []

    def as_env(self) -> dict:
        return {entry.name: entry.value for entry in self.environment}


class LaunchFailureKind(str, Enum):
    """Why a backend refused a launch"""
    CREDENTIALS = "credentials"
    NETWORK_PLACEMENT = "network_placement"
    CAPACITY = "capacity"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    REJECTED = "rejected"


class LaunchFailure(BaseModel):
    kind: LaunchFailureKind
    message: str


class LaunchResult(BaseModel):
    """Either a backend handle (task ARN / container id) or a typed failure."""
    handle: Optional[str] = None
    failure: Optional[LaunchFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None and bool(self.handle)

    @classmethod
    def launched(cls, handle: str) -> "LaunchResult":
        return cls(handle=handle)

    @classmethod
    def failed(cls, kind: LaunchFailureKind, message: str) -> "LaunchResult":
        return cls(failure=LaunchFailure(kind=kind, message=message))

