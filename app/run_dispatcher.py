# run_dispatcher.py
"""
Dispatcher entry point. All configuration comes from the environment / .env:

    DISPATCH_MODE=auto          launch every uploaded video as it arrives
    DISPATCH_MODE=interactive   list pending uploads and launch on selection

Exit status 1 on startup configuration errors; per-message errors never stop it.
"""
import curses
import sys

from botocore.exceptions import BotoCoreError, ClientError

from core.aws_client import get_sqs_client, validate_aws_credentials
from core.config import Settings, settings
from core.errors import FatalConfigError
from core.logger import logger, use_file_only
from integrations.sqs_client import SqsMessageSource
from services.dispatcher import Dispatcher
from services.interactive_front import InteractiveFront
from services.job_launcher import get_job_launcher
from services.terminal import CursesTerminal

DISPATCH_MODES = ("auto", "interactive")


def validate_dispatch_config(config: Settings) -> None:
    if not config.SQS_QUEUE_URL:
        raise FatalConfigError("SQS_QUEUE_URL is not set")
    if config.DISPATCH_MODE not in DISPATCH_MODES:
        raise FatalConfigError(f"DISPATCH_MODE must be one of {DISPATCH_MODES}, got '{config.DISPATCH_MODE}'")
    if not validate_aws_credentials():
        raise FatalConfigError("No AWS credentials available")


def check_queue(client, queue_url: str) -> None:
    """Fail fast if the queue is unreachable with the configured credentials."""
    try:
        client.get_queue_attributes(QueueUrl=queue_url, AttributeNames=["QueueArn"])
    except (ClientError, BotoCoreError) as e:
        raise FatalConfigError(f"SQS queue {queue_url} unreachable: {e}") from e


def build_dispatcher(config: Settings) -> Dispatcher:
    validate_dispatch_config(config)

    sqs = get_sqs_client()
    check_queue(sqs, config.SQS_QUEUE_URL)

    return Dispatcher(
        source=SqsMessageSource(sqs, config.SQS_QUEUE_URL),
        launcher=get_job_launcher(config),
        settings=config,
    )


def run_interactive(dispatcher: Dispatcher, config: Settings) -> None:
    if config.LOG_FILE:
        use_file_only()
    else:
        logger.warning("LOG_FILE not set; log lines will be drawn over the job list")

    dispatcher.start_poller()

    def _front(screen):
        InteractiveFront(dispatcher, CursesTerminal(screen), tick_seconds=config.UI_TICK_SECONDS).run()

    try:
        curses.wrapper(_front)
    finally:
        dispatcher.stop()
        logger.info("Waiting for in-flight launches to finish")
        dispatcher.wait_for_launches()


def main() -> int:
    try:
        dispatcher = build_dispatcher(settings)
    except FatalConfigError as e:
        logger.error(f"Startup failed: {e}")
        return 1

    try:
        if settings.DISPATCH_MODE == "interactive":
            run_interactive(dispatcher, settings)
        else:
            dispatcher.run_automatic()
    except KeyboardInterrupt:
        dispatcher.stop()
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
