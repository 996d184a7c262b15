# services/event_decoder.py
from typing import List
from urllib.parse import unquote_plus

from pydantic import ValidationError

from core.errors import DecodeError
from schemas.job_models import Job
from schemas.sqs_models import RawMessage, S3EventNotification


class EventDecoder:
    """Turns an S3 notification body into one Job per record."""

    def __init__(self, decode_keys: bool = False):
        # S3 percent-encodes keys in notifications; off by default, keys pass through unchanged
        self.decode_keys = decode_keys

    def decode(self, body: str, ack_token: str = "", message_id: str = "") -> List[Job]:
        """
        Parse a notification payload.

        Raises:
            DecodeError: body is not JSON, not an object, or a record lacks
                s3.bucket.name / s3.object.key
        """
        try:
            event = S3EventNotification.model_validate_json(body)
        except ValidationError as e:
            raise DecodeError(f"Unrecognized notification payload: {e.error_count()} error(s)", body=body) from e

        jobs = []
        for record in event.records:
            key = record.s3.object.key
            if self.decode_keys:
                key = unquote_plus(key)
            jobs.append(Job(
                bucket=record.s3.bucket.name,
                key=key,
                ack_token=ack_token,
                message_id=message_id,
            ))
        return jobs

    def decode_message(self, message: RawMessage) -> List[Job]:
        return self.decode(message.body, ack_token=message.ack_token, message_id=message.message_id)
