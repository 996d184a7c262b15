from __future__ import annotations

import json
import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional

import pytest


# Ensure `import core...` / `import services...` work when running `pytest` from repo root.
APP_ROOT = Path(__file__).resolve().parents[1] / "app"
sys.path.insert(0, str(APP_ROOT))

from core.config import Settings  # noqa: E402
from integrations.sqs_client import MessageSource  # noqa: E402
from schemas.job_models import LaunchFailureKind, LaunchRequest, LaunchResult  # noqa: E402
from schemas.sqs_models import RawMessage  # noqa: E402
from services.job_launcher import JobLauncher  # noqa: E402


def s3_event(*records: tuple[str, str], key_name: str = "records") -> str:
    return json.dumps({
        key_name: [
            {"s3": {"bucket": {"name": bucket}, "object": {"key": key}}}
            for bucket, key in records
        ]
    })


class FakeSource(MessageSource):
    """Serves queued batches one per poll, then empty polls."""

    def __init__(self, batches: Optional[List[List[RawMessage]]] = None):
        self.batches = list(batches or [])
        self.acked: List[str] = []
        self.polls = 0
        self._lock = threading.Lock()

    def poll(self, max_messages: int, wait_seconds: int) -> List[RawMessage]:
        with self._lock:
            self.polls += 1
            if self.batches:
                return self.batches.pop(0)[:max_messages]
        return []

    def ack(self, token: str) -> None:
        with self._lock:
            self.acked.append(token)


class FakeLauncher(JobLauncher):
    """Launches succeed unless the object key is listed in fail_keys."""

    name = "fake"

    def __init__(self, fail_keys: Optional[Dict[str, LaunchFailureKind]] = None):
        self.fail_keys = fail_keys or {}
        self.requests: List[LaunchRequest] = []
        self._lock = threading.Lock()

    def submit(self, request: LaunchRequest) -> LaunchResult:
        with self._lock:
            self.requests.append(request)
            count = len(self.requests)
        kind = self.fail_keys.get(request.job.key)
        if kind is not None:
            return LaunchResult.failed(kind, f"refused {request.job.key}")
        return LaunchResult.launched(f"task-{count}")


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        SQS_QUEUE_URL="https://sqs.us-east-1.amazonaws.com/000000000000/test-queue",
        SQS_MAX_MESSAGES=5,
        SQS_WAIT_TIME_SECONDS=0,
        POLL_ERROR_BACKOFF_SECONDS=0.01,
        DEST_BUCKET="dest-bucket",
        PASS_CREDENTIALS=False,
    )


@pytest.fixture()
def fake_launcher() -> FakeLauncher:
    return FakeLauncher()
