"""
Queue processor command.

Runs one bounded batch of due jobs and prints the summary as JSON.
Intended for cron or manual use when the HTTP trigger is not exposed.

Usage:
    convoflow-process --limit 10
    convoflow-process --type structure_recompute
    python -m convoflow.scripts.process_queue --limit 5

Dependencies: convoflow.application.services, convoflow.observability
System role: CLI trigger for the queue processor
"""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from convoflow.application.services import build_queue_processor
from convoflow.boundary.db.connection import get_async_engine
from convoflow.boundary.db.models.job_model import JobType
from convoflow.configs import get_settings
from convoflow.models.job import ProcessQueueResult
from convoflow.observability import configure_logging, set_correlation_id

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="convoflow-process",
        description="Process due import and structure recompute jobs",
    )
    parser.add_argument("--limit", type=int, default=None, help="Maximum jobs to attempt")
    parser.add_argument(
        "--type",
        choices=[job_type.value for job_type in JobType],
        default=None,
        help="Restrict the batch to one job type",
    )
    return parser.parse_args(argv)


async def run(limit: int | None, job_type: JobType | None) -> ProcessQueueResult:
    processor = build_queue_processor(get_settings())
    try:
        return await processor.process_queue(limit=limit, job_type=job_type)
    finally:
        await get_async_engine().dispose()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    load_dotenv()
    args = parse_args(argv)
    configure_logging(get_settings().log_level)
    set_correlation_id()

    job_type = JobType(args.type) if args.type else None
    try:
        result = asyncio.run(run(args.limit, job_type))
    except Exception as e:
        logger.error(f"{__name__}:main - Batch aborted: {type(e).__name__}: {e}")
        return 1

    print(result.model_dump_json())
    return 0 if not result.failed else 2


if __name__ == "__main__":
    sys.exit(main())
