# integrations/local_runtime.py
import os
import subprocess
from typing import List, Optional

from core.logger import logger
from schemas.job_models import LaunchFailureKind, LaunchRequest, LaunchResult
from services.job_launcher import JobLauncher


class LocalContainerLauncher(JobLauncher):
    """Starts the transcoder image with the local container runtime (docker or podman)."""

    name = "local"

    def __init__(self, image: str, runtime_bin: str = "docker", timeout: Optional[float] = 60.0):
        self.image = image
        self.runtime_bin = runtime_bin
        self.timeout = timeout

    def build_command(self, request: LaunchRequest) -> List[str]:
        # values travel through the child environment, not argv
        cmd = [self.runtime_bin, "run", "--detach", "--rm"]
        for entry in request.environment:
            cmd.extend(["-e", entry.name])
        cmd.append(self.image)
        return cmd

    def submit(self, request: LaunchRequest) -> LaunchResult:
        cmd = self.build_command(request)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env={**os.environ, **request.as_env()},
            )
        except FileNotFoundError:
            return LaunchResult.failed(
                LaunchFailureKind.BACKEND_UNAVAILABLE,
                f"container runtime '{self.runtime_bin}' not found",
            )
        except subprocess.TimeoutExpired:
            return LaunchResult.failed(
                LaunchFailureKind.BACKEND_UNAVAILABLE,
                f"{self.runtime_bin} run did not return within {self.timeout}s",
            )

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            return LaunchResult.failed(
                LaunchFailureKind.REJECTED,
                stderr[-500:] or f"{self.runtime_bin} exited with status {result.returncode}",
            )

        lines = (result.stdout or "").strip().splitlines()
        container_id = lines[-1].strip() if lines else ""
        if not container_id:
            return LaunchResult.failed(LaunchFailureKind.REJECTED, "runtime returned no container id")

        logger.info(f"Local container started job={request.job.job_id} container={container_id[:12]}")
        return LaunchResult.launched(container_id)
