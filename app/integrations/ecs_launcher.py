# integrations/ecs_launcher.py
from typing import Any, Dict, List, Sequence

from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError, NoCredentialsError

from core.logger import logger
from schemas.job_models import LaunchFailureKind, LaunchRequest, LaunchResult
from services.job_launcher import JobLauncher

_CREDENTIAL_CODES = {
    "AccessDeniedException",
    "UnrecognizedClientException",
    "InvalidClientTokenId",
    "ExpiredTokenException",
    "ExpiredToken",
    "SignatureDoesNotMatch",
}
_CAPACITY_CODES = {
    "ThrottlingException",
    "LimitExceededException",
    "ServerException",
    "PlatformTaskDefinitionIncompatibilityException",
}
_PLACEMENT_HINTS = ("subnet", "security group", "securitygroup", "vpc", "networkconfiguration", "eni")


def _classify_client_error(error: ClientError) -> LaunchFailureKind:
    code = error.response.get("Error", {}).get("Code", "")
    message = error.response.get("Error", {}).get("Message", "").lower()

    if code in _CREDENTIAL_CODES:
        return LaunchFailureKind.CREDENTIALS
    if code in _CAPACITY_CODES:
        return LaunchFailureKind.CAPACITY
    if code == "InvalidParameterException" and any(hint in message for hint in _PLACEMENT_HINTS):
        return LaunchFailureKind.NETWORK_PLACEMENT
    if code in ("ClusterNotFoundException", "ServiceUnavailableException"):
        return LaunchFailureKind.BACKEND_UNAVAILABLE
    return LaunchFailureKind.REJECTED


def _classify_task_failure(reason: str) -> LaunchFailureKind:
    reason_lower = reason.lower()
    if reason_lower.startswith("resource:") or "capacity" in reason_lower:
        return LaunchFailureKind.CAPACITY
    if any(hint in reason_lower for hint in _PLACEMENT_HINTS):
        return LaunchFailureKind.NETWORK_PLACEMENT
    return LaunchFailureKind.REJECTED


class EcsTaskLauncher(JobLauncher):
    """Runs a one-shot task on ECS with awsvpc networking."""

    name = "ecs"

    def __init__(
        self,
        client,
        cluster: str,
        task_definition: str,
        container_name: str,
        subnets: Sequence[str],
        security_groups: Sequence[str] = (),
        assign_public_ip: bool = True,
        launch_type: str = "FARGATE",
    ):
        self._ecs = client
        self.cluster = cluster
        self.task_definition = task_definition
        self.container_name = container_name
        self.subnets = list(subnets)
        self.security_groups = list(security_groups)
        self.assign_public_ip = assign_public_ip
        self.launch_type = launch_type

    def build_run_task_params(self, request: LaunchRequest) -> Dict[str, Any]:
        vpc_config: Dict[str, Any] = {
            "subnets": self.subnets,
            "assignPublicIp": "ENABLED" if self.assign_public_ip else "DISABLED",
        }
        if self.security_groups:
            vpc_config["securityGroups"] = self.security_groups

        environment: List[Dict[str, str]] = [
            {"name": entry.name, "value": entry.value} for entry in request.environment
        ]

        return {
            "cluster": self.cluster,
            "taskDefinition": self.task_definition,
            "launchType": self.launch_type,
            "count": 1,
            "networkConfiguration": {"awsvpcConfiguration": vpc_config},
            "overrides": {
                "containerOverrides": [
                    {"name": self.container_name, "environment": environment}
                ]
            },
        }

    def submit(self, request: LaunchRequest) -> LaunchResult:
        params = self.build_run_task_params(request)
        try:
            resp = self._ecs.run_task(**params)
        except NoCredentialsError as e:
            return LaunchResult.failed(LaunchFailureKind.CREDENTIALS, str(e))
        except EndpointConnectionError as e:
            return LaunchResult.failed(LaunchFailureKind.BACKEND_UNAVAILABLE, str(e))
        except ClientError as e:
            kind = _classify_client_error(e)
            return LaunchResult.failed(kind, e.response.get("Error", {}).get("Message", str(e)))
        except BotoCoreError as e:
            return LaunchResult.failed(LaunchFailureKind.BACKEND_UNAVAILABLE, str(e))

        tasks = resp.get("tasks") or []
        if tasks and tasks[0].get("taskArn"):
            task_arn = tasks[0]["taskArn"]
            logger.info(f"ECS run_task ok job={request.job.job_id} task={task_arn}")
            return LaunchResult.launched(task_arn)

        failures = resp.get("failures") or []
        if failures:
            reason = failures[0].get("reason", "unknown")
            detail = failures[0].get("detail")
            message = f"{reason}: {detail}" if detail else reason
            return LaunchResult.failed(_classify_task_failure(reason), message)

        return LaunchResult.failed(LaunchFailureKind.REJECTED, "No task ARN returned from ECS")
