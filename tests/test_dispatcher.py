from __future__ import annotations

import threading

import pytest

from conftest import FakeLauncher, FakeSource, s3_event
from core.errors import AckError, LaunchError, PollError
from schemas.job_models import Job, JobStatus, LaunchFailure, LaunchFailureKind
from schemas.sqs_models import RawMessage
from services.dispatcher import Dispatcher


def _message(body: str, token: str = "rh-1", message_id: str = "m-1") -> RawMessage:
    return RawMessage(body=body, ack_token=token, message_id=message_id)


def _dispatcher(test_settings, source, launcher) -> Dispatcher:
    return Dispatcher(source=source, launcher=launcher, settings=test_settings)


# ------------------------------------------------------------
# Interactive mode
# ------------------------------------------------------------

def test_scenario_a_manual_launch_acks_original_token(test_settings, fake_launcher) -> None:
    body = '{"records":[{"s3":{"bucket":{"name":"b"},"object":{"key":"movie.mp4"}}}]}'
    source = FakeSource([[_message(body, token="receipt-A")]])
    dispatcher = _dispatcher(test_settings, source, fake_launcher)

    assert dispatcher.poll_into_registry() == 1
    snap = dispatcher.registry.snapshot()
    assert [(j.bucket, j.key) for j in snap.jobs] == [("b", "movie.mp4")]
    assert source.acked == []

    thread = dispatcher.launch_selected()
    thread.join(timeout=5)

    assert source.acked == ["receipt-A"]
    assert len(dispatcher.registry) == 0
    request = fake_launcher.requests[0]
    assert request.job.status == JobStatus.LAUNCHED
    assert request.as_env()["SOURCE_KEY"] == "movie.mp4"


def test_scenario_b_malformed_body_is_skipped(test_settings, fake_launcher) -> None:
    source = FakeSource([[_message("{not json")]])
    dispatcher = _dispatcher(test_settings, source, fake_launcher)

    assert dispatcher.poll_into_registry() == 0
    assert len(dispatcher.registry) == 0
    assert source.acked == []
    assert fake_launcher.requests == []


def test_scenario_c_two_records_are_independent(test_settings, fake_launcher) -> None:
    source = FakeSource([[_message(s3_event(("b", "one.mp4"), ("b", "two.mp4")))]])
    dispatcher = _dispatcher(test_settings, source, fake_launcher)

    assert dispatcher.poll_into_registry() == 2
    dispatcher.launch_selected().join(timeout=5)

    remaining = dispatcher.registry.snapshot()
    assert [j.key for j in remaining.jobs] == ["two.mp4"]
    assert remaining.jobs[0].status == JobStatus.PENDING
    assert source.acked == ["rh-1"]


def test_launch_selected_on_empty_registry_does_nothing(test_settings, fake_launcher) -> None:
    dispatcher = _dispatcher(test_settings, FakeSource(), fake_launcher)
    assert dispatcher.launch_selected() is None
    assert fake_launcher.requests == []


def test_failed_manual_launch_drops_job_without_ack(test_settings) -> None:
    launcher = FakeLauncher(fail_keys={"bad.mp4": LaunchFailureKind.CAPACITY})
    source = FakeSource([[_message(s3_event(("b", "bad.mp4")))]])
    dispatcher = _dispatcher(test_settings, source, launcher)

    dispatcher.poll_into_registry()
    dispatcher.launch_selected().join(timeout=5)

    assert len(dispatcher.registry) == 0
    assert source.acked == []
    assert launcher.requests[0].job.status == JobStatus.FAILED


def test_zero_record_message_is_acked_by_poller(test_settings, fake_launcher) -> None:
    source = FakeSource([[_message('{"Records": []}', token="empty")]])
    dispatcher = _dispatcher(test_settings, source, fake_launcher)

    assert dispatcher.poll_into_registry() == 0
    assert source.acked == ["empty"]


def test_concurrent_launches_all_ack(test_settings, fake_launcher) -> None:
    batch = [_message(s3_event(("b", f"{i}.mp4")), token=f"rh-{i}", message_id=f"m-{i}") for i in range(5)]
    source = FakeSource([batch])
    dispatcher = _dispatcher(test_settings, source, fake_launcher)

    dispatcher.poll_into_registry()
    threads = [dispatcher.launch_selected() for _ in range(5)]
    assert dispatcher.launch_selected() is None
    dispatcher.wait_for_launches(timeout=5)

    assert all(not t.is_alive() for t in threads)
    assert sorted(source.acked) == sorted(f"rh-{i}" for i in range(5))


# ------------------------------------------------------------
# Automatic mode
# ------------------------------------------------------------

def test_automatic_acks_when_every_job_launched(test_settings, fake_launcher) -> None:
    source = FakeSource([[_message(s3_event(("b", "a.mp4"), ("b", "b.mp4")))]])
    dispatcher = _dispatcher(test_settings, source, fake_launcher)

    assert dispatcher.run_automatic_cycle() == 1
    assert source.acked == ["rh-1"]
    assert len(fake_launcher.requests) == 2
    assert len(dispatcher.registry) == 0


def test_automatic_leaves_message_unacked_if_any_job_fails(test_settings) -> None:
    launcher = FakeLauncher(fail_keys={"b.mp4": LaunchFailureKind.CREDENTIALS})
    source = FakeSource([[
        _message(s3_event(("b", "a.mp4"), ("b", "b.mp4")), token="mixed"),
        _message(s3_event(("b", "c.mp4")), token="clean", message_id="m-2"),
    ]])
    dispatcher = _dispatcher(test_settings, source, launcher)

    assert dispatcher.run_automatic_cycle() == 1
    assert source.acked == ["clean"]
    assert [r.job.key for r in launcher.requests] == ["a.mp4", "b.mp4", "c.mp4"]
    assert len(dispatcher.registry) == 0


def test_automatic_skips_undecodable_messages(test_settings, fake_launcher) -> None:
    source = FakeSource([[
        _message("{not json", token="bad"),
        _message(s3_event(("b", "ok.mp4")), token="good", message_id="m-2"),
    ]])
    dispatcher = _dispatcher(test_settings, source, fake_launcher)

    dispatcher.run_automatic_cycle()
    assert source.acked == ["good"]


def test_launcher_exception_counts_as_failure(test_settings) -> None:
    class ExplodingLauncher(FakeLauncher):
        def submit(self, request):
            raise RuntimeError("boom")

    source = FakeSource([[_message(s3_event(("b", "a.mp4")))]])
    dispatcher = _dispatcher(test_settings, source, ExplodingLauncher())

    assert dispatcher.run_automatic_cycle() == 0
    assert source.acked == []


def test_ack_error_is_logged_not_raised(test_settings, fake_launcher) -> None:
    class FailingAckSource(FakeSource):
        def ack(self, token):
            raise AckError("delete failed")

    source = FailingAckSource([[_message(s3_event(("b", "a.mp4")))]])
    dispatcher = _dispatcher(test_settings, source, fake_launcher)

    assert dispatcher.run_automatic_cycle() == 0
    assert len(fake_launcher.requests) == 1


def test_poll_errors_do_not_stop_the_loop(test_settings, fake_launcher) -> None:
    class FlakySource(FakeSource):
        def poll(self, max_messages, wait_seconds):
            self.polls += 1
            if self.polls <= 2:
                raise PollError("network down")
            if self.polls == 3:
                return [_message(s3_event(("b", "late.mp4")))]
            dispatcher.stop()
            return []

    source = FlakySource()
    dispatcher = _dispatcher(test_settings, source, fake_launcher)

    runner = threading.Thread(target=dispatcher.run_automatic)
    runner.start()
    runner.join(timeout=5)

    assert not runner.is_alive()
    assert source.polls == 4
    assert source.acked == ["rh-1"]


def test_background_poller_fills_registry(test_settings, fake_launcher) -> None:
    source = FakeSource([[_message(s3_event(("b", "bg.mp4")))]])
    dispatcher = _dispatcher(test_settings, source, fake_launcher)

    poller = dispatcher.start_poller()
    for _ in range(500):
        if len(dispatcher.registry):
            break
        threading.Event().wait(0.01)
    dispatcher.stop()
    poller.join(timeout=5)

    assert [j.key for j in dispatcher.registry.snapshot().jobs] == ["bg.mp4"]
    assert fake_launcher.requests == []
    assert source.acked == []


@pytest.mark.parametrize("ok", [True, False])
def test_launch_and_ack_reports_outcome(test_settings, ok: bool) -> None:
    launcher = FakeLauncher() if ok else FakeLauncher(fail_keys={"x.mp4": LaunchFailureKind.REJECTED})
    source = FakeSource()
    dispatcher = _dispatcher(test_settings, source, launcher)
    job = Job(bucket="b", key="x.mp4", ack_token="tok")

    assert dispatcher.launch_and_ack(job) is ok
    assert source.acked == (["tok"] if ok else [])


def test_launcher_raising_launch_error_keeps_its_failure_kind(test_settings) -> None:
    class RaisingLauncher(FakeLauncher):
        def submit(self, request):
            raise LaunchError(LaunchFailure(kind=LaunchFailureKind.NETWORK_PLACEMENT, message="no subnet"))

    source = FakeSource()
    dispatcher = _dispatcher(test_settings, source, RaisingLauncher())
    result = dispatcher.launch(Job(bucket="b", key="x.mp4", ack_token="tok"))

    assert result.failure.kind == LaunchFailureKind.NETWORK_PLACEMENT
    assert source.acked == []
