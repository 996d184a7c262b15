import json
from datetime import datetime, timezone
from core.logger import logger
from schemas.job_models import Job

_WARN_EVENTS = {"job_failed", "decode_failed", "ack_failed", "poll_failed"}


def log_job_event(event: str, job: Job = None, **fields) -> dict:
    """
    Structured log line for job lifecycle transitions.
    Failure events go out at WARNING, everything else at INFO.
    """
    log_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event,
    }
    if job is not None:
        log_data.update({
            "job_id": job.job_id,
            "status": job.status.value,
            "source": job.source_uri,
            "message_id": job.message_id,
        })
    log_data.update(fields)

    line = json.dumps(log_data, default=str)
    if event in _WARN_EVENTS:
        logger.warning(line)
    else:
        logger.info(line)

    return log_data
