# services/dispatcher.py
"""
Queue-to-backend job dispatcher.

Per message:  Received -> Decoded -> Enqueued x N
Per job:      Pending -> Launching -> Launched (ack) | Failed (no ack)

Automatic mode launches every decoded job right away and acks a message only
when all of its jobs launched. Interactive mode runs a background poller that
only enqueues; the operator picks jobs and each launch acks its own message.
Nothing spans poll, launch and ack, so delivery is at-least-once: a crash
between launch and ack means the message comes back and is launched again.
"""
import threading
from typing import Callable, List, Optional, Tuple

from core.config import Settings
from core.errors import AckError, DecodeError, LaunchError, PollError
from core.logger import logger
from integrations.sqs_client import MessageSource
from schemas.job_models import Job, JobStatus, LaunchFailureKind, LaunchRequest, LaunchResult
from schemas.sqs_models import RawMessage
from services.event_decoder import EventDecoder
from services.job_launcher import JobLauncher, build_launch_request
from services.job_registry import JobRegistry
from utils.log_event import log_job_event


class Dispatcher:
    """Drives poll -> decode -> enqueue -> launch -> ack."""

    def __init__(
        self,
        source: MessageSource,
        launcher: JobLauncher,
        settings: Settings,
        registry: Optional[JobRegistry] = None,
        decoder: Optional[EventDecoder] = None,
        request_builder: Optional[Callable[[Job], LaunchRequest]] = None,
    ):
        self.source = source
        self.launcher = launcher
        self.settings = settings
        self.registry = registry if registry is not None else JobRegistry()
        self.decoder = decoder or EventDecoder(decode_keys=settings.DECODE_OBJECT_KEYS)
        self.request_builder = request_builder or (lambda job: build_launch_request(job, settings))

        self._stop = threading.Event()
        self._poller: Optional[threading.Thread] = None
        self._launches: List[threading.Thread] = []

    # ------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------

    def receive(self) -> List[Tuple[RawMessage, List[Job]]]:
        """
        One long-poll plus decode. Messages that fail to decode are logged and
        dropped from this cycle without an ack, so the queue redelivers them.

        Raises:
            PollError: the queue could not be reached
        """
        messages = self.source.poll(self.settings.SQS_MAX_MESSAGES, self.settings.SQS_WAIT_TIME_SECONDS)

        decoded = []
        for message in messages:
            try:
                jobs = self.decoder.decode_message(message)
            except DecodeError as e:
                log_job_event(
                    "decode_failed",
                    message_id=message.message_id,
                    receive_count=message.receive_count,
                    error=str(e),
                    body=message.body[:500],
                )
                continue

            for job in jobs:
                log_job_event("job_received", job, receive_count=message.receive_count)
            decoded.append((message, jobs))
        return decoded

    def launch(self, job: Job) -> LaunchResult:
        """Submit one job. Never raises; the outcome is in the result and in job.status."""
        job.status = JobStatus.LAUNCHING
        log_job_event("job_launching", job, backend=self.launcher.name)

        try:
            result = self.launcher.submit(self.request_builder(job))
        except LaunchError as e:
            result = LaunchResult(failure=e.failure)
        except Exception as e:
            logger.exception(f"Launcher raised for job {job.job_id}: {e}")
            result = LaunchResult.failed(LaunchFailureKind.REJECTED, str(e))

        if result.ok:
            job.status = JobStatus.LAUNCHED
            log_job_event("job_launched", job, handle=result.handle)
        else:
            job.status = JobStatus.FAILED
            log_job_event("job_failed", job, kind=result.failure.kind.value, error=result.failure.message)
        return result

    def ack(self, token: str, message_id: str = "") -> bool:
        """Delete a message; failures are logged and reported as False."""
        try:
            self.source.ack(token)
        except AckError as e:
            log_job_event("ack_failed", message_id=message_id, error=str(e))
            return False
        log_job_event("message_acked", message_id=message_id)
        return True

    def launch_and_ack(self, job: Job) -> bool:
        """Launch one job and ack its originating message if the launch succeeded."""
        result = self.launch(job)
        if not result.ok:
            return False
        return self.ack(job.ack_token, job.message_id)

    # ------------------------------------------------------------
    # Automatic mode
    # ------------------------------------------------------------

    def dispatch_message(self, message: RawMessage, jobs: List[Job]) -> bool:
        """
        Launch every job from one message; ack only if all of them launched.
        A message that decoded to zero jobs has nothing left to do and is acked.
        """
        all_launched = True
        for job in jobs:
            self.registry.push(job)
            self.registry.remove(job.job_id)
            if not self.launch(job).ok:
                all_launched = False

        if not all_launched:
            logger.warning(
                f"Message {message.message_id} left un-acked; "
                f"{sum(j.status != JobStatus.LAUNCHED for j in jobs)} of {len(jobs)} job(s) failed"
            )
            return False
        return self.ack(message.ack_token, message.message_id)

    def run_automatic_cycle(self) -> int:
        """One poll; returns the number of messages acked."""
        acked = 0
        for message, jobs in self.receive():
            if self.dispatch_message(message, jobs):
                acked += 1
        return acked

    def run_automatic(self) -> None:
        logger.info("Listening for S3 events on SQS (automatic mode)...")
        self._loop(self.run_automatic_cycle)

    # ------------------------------------------------------------
    # Interactive mode
    # ------------------------------------------------------------

    def poll_into_registry(self) -> int:
        """One poll that only enqueues; returns the number of jobs pushed."""
        pushed = 0
        for message, jobs in self.receive():
            if not jobs:
                self.ack(message.ack_token, message.message_id)
                continue
            for job in jobs:
                self.registry.push(job)
                pushed += 1
        return pushed

    def run_poller(self) -> None:
        logger.info("Background poller started (interactive mode)")
        self._loop(self.poll_into_registry)

    def start_poller(self) -> threading.Thread:
        if self._poller and self._poller.is_alive():
            return self._poller
        self._stop.clear()
        self._poller = threading.Thread(target=self.run_poller, name="sqs-poller", daemon=True)
        self._poller.start()
        return self._poller

    def launch_selected(self) -> Optional[threading.Thread]:
        """
        Pop the selected job and launch it on its own thread.
        Returns None when nothing is selected. Launches are not cancellable.
        """
        job = self.registry.remove_selected()
        if job is None:
            return None

        thread = threading.Thread(
            target=self.launch_and_ack,
            args=(job,),
            name=f"launch-{job.job_id}",
            daemon=True,
        )
        self._launches = [t for t in self._launches if t.is_alive()]
        self._launches.append(thread)
        thread.start()
        return thread

    def wait_for_launches(self, timeout: Optional[float] = None) -> None:
        for thread in list(self._launches):
            thread.join(timeout)
        self._launches = [t for t in self._launches if t.is_alive()]

    # ------------------------------------------------------------
    # Loop control
    # ------------------------------------------------------------

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def _loop(self, cycle: Callable[[], int]) -> None:
        while not self._stop.is_set():
            try:
                cycle()
            except PollError as e:
                log_job_event("poll_failed", error=str(e))
                self._stop.wait(self.settings.POLL_ERROR_BACKOFF_SECONDS)
            except Exception as e:
                logger.exception(f"Dispatch cycle failed: {e}")
                self._stop.wait(self.settings.POLL_ERROR_BACKOFF_SECONDS)
        logger.info("Dispatch loop stopped")
