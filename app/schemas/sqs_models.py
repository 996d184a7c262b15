# app/schemas/sqs_models.py
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import List


class RawMessage(BaseModel):
    """One received queue message. ack_token is the SQS receipt handle."""
    model_config = ConfigDict(frozen=True)

    body: str
    ack_token: str
    message_id: str = ""
    receive_count: int = 1


# ============================================================================
# S3 EVENT NOTIFICATION PAYLOAD
# ============================================================================

class S3Bucket(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str


class S3Object(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str


class S3Entity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    bucket: S3Bucket
    object: S3Object


class S3EventRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    s3: S3Entity


class S3EventNotification(BaseModel):
    """
    Body published by S3 to the queue.
    AWS spells the array "Records"; lowercase "records" is accepted as well.
    """
    model_config = ConfigDict(extra="ignore")

    records: List[S3EventRecord] = Field(
        ...,
        validation_alias=AliasChoices("Records", "records"),
    )
