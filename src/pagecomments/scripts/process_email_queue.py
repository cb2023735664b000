"""Deliver queued notification emails.

Usage:
    Cron (every minute): python -m pagecomments.scripts.process_email_queue
    Daemon:              python -m pagecomments.scripts.process_email_queue --daemon

Single-pass mode exits 0 when it processed at least one email and 1 when
the queue had nothing due.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import random

from pagecomments.core.logging import configure_logging
from pagecomments.services.email_queue import EmailQueueWorker

logger = logging.getLogger(__name__)

# Chance that a single cron pass also runs cleanup.
SINGLE_RUN_CLEANUP_CHANCE = 0.01


def run_once(worker: EmailQueueWorker, batch_size: int | None, cleanup: bool) -> int:
    processed = worker.drain_batch(batch_size)
    if cleanup or random.random() < SINGLE_RUN_CLEANUP_CHANCE:
        worker.cleanup_old_emails()
    return processed


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Process the notification email queue")
    parser.add_argument("--daemon", action="store_true", help="Keep polling until interrupted")
    parser.add_argument("--batch-size", type=int, default=None, help="Emails per pass")
    parser.add_argument("--cleanup", action="store_true", help="Always run cleanup after the pass")
    args = parser.parse_args(argv)
    configure_logging()

    worker = EmailQueueWorker()
    if args.daemon:
        logger.info("Email queue processor starting in daemon mode")
        try:
            asyncio.run(worker.run_forever())
        except KeyboardInterrupt:
            logger.info("Email queue processor interrupted")
        return 0

    processed = run_once(worker, args.batch_size, args.cleanup)
    return 0 if processed > 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
