# services/job_launcher.py
from abc import ABC, abstractmethod
from typing import List

from core.aws_client import get_ecs_client, resolve_credentials
from core.config import Settings
from core.errors import FatalConfigError
from core.logger import logger
from schemas.job_models import EnvironmentEntry, Job, LaunchRequest, LaunchResult


class JobLauncher(ABC):
    """
    Submits a job to a compute backend.

    Each submit() makes exactly one launch attempt. There is no retry and no
    deduplication: submitting the same job twice starts two tasks. Failures
    come back as a typed LaunchResult, never as a silent success. A launcher
    may instead raise LaunchError carrying the LaunchFailure; the dispatcher
    records it exactly like a failed result.
    """

    name: str = "launcher"

    @abstractmethod
    def submit(self, request: LaunchRequest) -> LaunchResult:
        ...


def build_launch_request(job: Job, settings: Settings) -> LaunchRequest:
    """Environment handed to the transcoding container for one job."""
    entries: List[EnvironmentEntry] = [
        EnvironmentEntry(name="SOURCE_KEY", value=job.key),
        EnvironmentEntry(name="SOURCE_BUCKET", value=job.bucket),
        EnvironmentEntry(name="DEST_BUCKET", value=settings.DEST_BUCKET),
        EnvironmentEntry(name="LANG", value=settings.JOB_LOCALE),
    ]

    if settings.PASS_CREDENTIALS:
        credentials = resolve_credentials()
        entries.extend([
            EnvironmentEntry(name="ACCESS_KEY_ID", value=credentials["aws_access_key_id"] or ""),
            EnvironmentEntry(name="SECRET_ACCESS_KEY", value=credentials["aws_secret_access_key"] or ""),
            EnvironmentEntry(name="REGION", value=settings.AWS_REGION),
        ])
        if credentials["aws_session_token"]:
            entries.append(EnvironmentEntry(name="SESSION_TOKEN", value=credentials["aws_session_token"]))

    return LaunchRequest(job=job, environment=entries)


def get_job_launcher(settings: Settings) -> JobLauncher:
    """Pick the launch backend named by LAUNCH_BACKEND."""
    backend = settings.LAUNCH_BACKEND.lower()

    if backend == "ecs":
        from integrations.ecs_launcher import EcsTaskLauncher

        if not settings.ECS_SUBNETS:
            raise FatalConfigError("ECS_SUBNETS must list at least one subnet for awsvpc placement")
        logger.info(f"Launch backend: ECS cluster={settings.ECS_CLUSTER} task={settings.ECS_TASK_DEFINITION}")
        return EcsTaskLauncher(
            get_ecs_client(),
            cluster=settings.ECS_CLUSTER,
            task_definition=settings.ECS_TASK_DEFINITION,
            container_name=settings.ECS_CONTAINER_NAME,
            subnets=settings.ECS_SUBNETS,
            security_groups=settings.ECS_SECURITY_GROUPS,
            assign_public_ip=settings.ECS_ASSIGN_PUBLIC_IP,
            launch_type=settings.ECS_LAUNCH_TYPE,
        )

    if backend == "local":
        from integrations.local_runtime import LocalContainerLauncher

        logger.info(f"Launch backend: local {settings.LOCAL_RUNTIME_BIN} image={settings.LOCAL_IMAGE}")
        return LocalContainerLauncher(
            image=settings.LOCAL_IMAGE,
            runtime_bin=settings.LOCAL_RUNTIME_BIN,
        )

    raise FatalConfigError(f"Unknown LAUNCH_BACKEND '{settings.LAUNCH_BACKEND}' (expected 'ecs' or 'local')")
