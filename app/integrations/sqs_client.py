# app/integrations/sqs_client.py
from abc import ABC, abstractmethod
from typing import List

from botocore.exceptions import BotoCoreError, ClientError

from core.errors import AckError, PollError
from core.logger import logger
from schemas.sqs_models import RawMessage

# delete_message errors meaning the message is already gone
_STALE_RECEIPT_CODE = "ReceiptHandleIsInvalid"


def _is_stale_receipt(error: ClientError) -> bool:
    details = error.response.get("Error", {})
    code = details.get("Code", "")
    if code == _STALE_RECEIPT_CODE:
        return True
    # expired handles come back as InvalidParameterValue naming the receipt handle
    message = details.get("Message", "").lower().replace(" ", "")
    return code == "InvalidParameterValue" and "receipthandle" in message


class MessageSource(ABC):
    """Receive and acknowledge queue messages."""

    @abstractmethod
    def poll(self, max_messages: int, wait_seconds: int) -> List[RawMessage]:
        """Block up to wait_seconds; return 0..max_messages messages. Raises PollError."""

    @abstractmethod
    def ack(self, token: str) -> None:
        """Remove a message. Unknown tokens are a no-op. Raises AckError."""


class SqsMessageSource(MessageSource):
    """MessageSource over an SQS queue. Un-acked messages return after the visibility timeout."""

    def __init__(self, client, queue_url: str):
        self._sqs = client
        self.queue_url = queue_url

    def poll(self, max_messages: int, wait_seconds: int) -> List[RawMessage]:
        params = {
            "QueueUrl": self.queue_url,
            "MaxNumberOfMessages": min(max(max_messages, 1), 10),
            "WaitTimeSeconds": min(max(wait_seconds, 0), 20),
            "AttributeNames": ["ApproximateReceiveCount"],
        }
        try:
            resp = self._sqs.receive_message(**params)
        except (ClientError, BotoCoreError) as e:
            raise PollError(f"SQS receive failed: {e}") from e

        messages = []
        for msg in resp.get("Messages", []):
            receipt = msg.get("ReceiptHandle")
            if not receipt:
                logger.warning("SQS message %s has no receipt handle, skipping", msg.get("MessageId"))
                continue
            attributes = msg.get("Attributes", {})
            messages.append(RawMessage(
                body=msg.get("Body", ""),
                ack_token=receipt,
                message_id=msg.get("MessageId", ""),
                receive_count=int(attributes.get("ApproximateReceiveCount", 1)),
            ))

        if messages:
            logger.debug("SQS receive ok count=%d", len(messages))
        return messages

    def ack(self, token: str) -> None:
        try:
            self._sqs.delete_message(QueueUrl=self.queue_url, ReceiptHandle=token)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if _is_stale_receipt(e):
                logger.info("SQS delete skipped, receipt no longer valid (%s)", code)
                return
            raise AckError(f"SQS delete failed: {code or e}") from e
        except BotoCoreError as e:
            raise AckError(f"SQS delete failed: {e}") from e
        logger.info("SQS delete ok receipt=%s...", token[:16])
