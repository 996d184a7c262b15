from __future__ import annotations

import io
import re

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

from core.rate_limiter import limiter
from main import app
from routers.router import get_s3, get_sqs


class FakeS3:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploads = []

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):
        if self.fail:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")
        self.uploads.append((bucket, key, fileobj.read(), ExtraArgs))

    def head_bucket(self, Bucket):
        if self.fail:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadBucket")
        return {}


@pytest.fixture()
def client_with(monkeypatch):
    limiter.reset()
    monkeypatch.setattr(limiter, "enabled", False)

    def _make(s3: FakeS3) -> TestClient:
        app.dependency_overrides[get_s3] = lambda: s3
        app.dependency_overrides[get_sqs] = lambda: None
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


def test_upload_streams_video_to_bucket(client_with) -> None:
    s3 = FakeS3()
    resp = client_with(s3).post(
        "/api/v1/upload",
        files={"video": ("holiday.mov", io.BytesIO(b"\x00\x01video-bytes"), "video/quicktime")},
    )

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    match = re.fullmatch(r"Uploaded as (upload-[0-9a-f-]{36}\.mp4)", resp.text)
    assert match

    bucket, key, data, extra = s3.uploads[0]
    assert key == match.group(1)
    assert data == b"\x00\x01video-bytes"
    assert extra == {"ContentType": "video/mp4"}


def test_upload_requires_video_field(client_with) -> None:
    s3 = FakeS3()
    resp = client_with(s3).post(
        "/api/v1/upload",
        files={"file": ("clip.mp4", io.BytesIO(b"data"), "video/mp4")},
    )
    assert resp.status_code == 422
    assert s3.uploads == []


def test_upload_storage_failure(client_with) -> None:
    resp = client_with(FakeS3(fail=True)).post(
        "/api/v1/upload",
        files={"video": ("clip.mp4", io.BytesIO(b"data"), "video/mp4")},
    )
    assert resp.status_code == 500
    assert resp.json()["detail"] == "Upload failed"


@pytest.mark.parametrize("fail, expected", [(False, "healthy"), (True, "degraded")])
def test_health(client_with, fail: bool, expected: str) -> None:
    resp = client_with(FakeS3(fail=fail)).get("/api/v1/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == expected
    assert body["sqs_status"] == "disabled"


def test_root(client_with) -> None:
    resp = client_with(FakeS3()).get("/", headers={"x-request-id": "req-42"})
    assert resp.json()["status"] == "running"
    assert resp.headers["x-request-id"] == "req-42"
