"""Notification queue consumer.

The API only ever inserts rows into ``email_queue``; this worker is the sole
path that talks to the mail transport. It can run as a single pass (cron) or
as an asyncio loop inside the API process or a dedicated daemon.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pagecomments.core.settings import settings
from pagecomments.db.session import SessionLocal
from pagecomments.db.time import utcnow
from pagecomments.models import EmailQueueItem
from pagecomments.models.email_queue import (
    EMAIL_STATUS_FAILED,
    EMAIL_STATUS_PENDING,
    EMAIL_STATUS_SENT,
)
from pagecomments.services.mailer import MailTransport, get_mail_transport

logger = logging.getLogger(__name__)


@dataclass
class DrainStats:
    """Outcome counters for one batch."""

    sent: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.sent + self.failed


class EmailQueueWorker:
    """Drains pending notification emails through a mail transport.

    Items are claimed one at a time with a conditional update on
    ``claimed_until`` so concurrent workers never send the same row twice.
    Failed deliveries are retried up to ``EMAIL_QUEUE_MAX_ATTEMPTS`` times; the
    retry delay is measured from the item's original enqueue time.
    """

    def __init__(
        self, transport: MailTransport | None = None, db_session: Session | None = None
    ) -> None:
        """Initialize the worker.

        Args:
            transport: Mail transport to deliver through. Defaults to SMTP.
            db_session: Optional database session. If None, creates new sessions as needed.
        """
        self.transport = transport or get_mail_transport()
        self._db_session = db_session
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()
        self.last_stats = DrainStats()

    async def start(self) -> None:
        """Start the background polling loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background polling loop after the current batch."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def run_forever(self) -> None:
        """Run the polling loop in the foreground until :meth:`stop` is called."""
        self._stopping.clear()
        await self._run()

    async def _run(self) -> None:
        idle = max(0.1, float(settings.email_queue_idle_seconds))
        cleanup_every = max(1, settings.email_queue_cleanup_every)
        cycles = 0
        logger.info("Email queue worker started (idle %.1fs)", idle)

        while not self._stopping.is_set():
            try:
                await asyncio.to_thread(self.drain_batch)
                cycles += 1
                if cycles >= cleanup_every:
                    cycles = 0
                    await asyncio.to_thread(self.cleanup_old_emails)
            except SQLAlchemyError as e:
                logger.error("Email queue worker encountered database error: %s", e, exc_info=True)
            except Exception:
                logger.exception("Email queue worker batch failed")

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=idle)
            except asyncio.TimeoutError:
                continue

        logger.info("Email queue worker stopped")

    def drain_batch(self, batch_size: int | None = None) -> int:
        """Deliver up to ``batch_size`` due items and return how many were processed."""
        if self._db_session:
            return self._drain_with_session(self._db_session, batch_size)
        with SessionLocal() as db:
            return self._drain_with_session(db, batch_size)

    def _due_ids(self, db: Session, now: datetime, limit: int) -> list[int]:
        retry_cutoff = now - timedelta(seconds=settings.email_queue_retry_delay_seconds)
        return list(
            db.scalars(
                select(EmailQueueItem.id)
                .where(
                    EmailQueueItem.status == EMAIL_STATUS_PENDING,
                    EmailQueueItem.attempts < settings.email_queue_max_attempts,
                    or_(
                        EmailQueueItem.last_error.is_(None),
                        EmailQueueItem.created_at <= retry_cutoff,
                    ),
                    or_(
                        EmailQueueItem.claimed_until.is_(None),
                        EmailQueueItem.claimed_until < now,
                    ),
                )
                .order_by(EmailQueueItem.created_at, EmailQueueItem.id)
                .limit(limit)
            )
        )

    def _claim(self, db: Session, item_id: int, now: datetime) -> bool:
        """Take an exclusive lease on one row; False if another worker holds it."""
        lease_until = now + timedelta(seconds=settings.email_queue_claim_seconds)
        result = db.execute(
            update(EmailQueueItem)
            .where(
                EmailQueueItem.id == item_id,
                EmailQueueItem.status == EMAIL_STATUS_PENDING,
                or_(
                    EmailQueueItem.claimed_until.is_(None),
                    EmailQueueItem.claimed_until < now,
                ),
            )
            .values(claimed_until=lease_until)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount == 1

    def _drain_with_session(self, db: Session, batch_size: int | None) -> int:
        limit = batch_size or settings.email_queue_batch_size
        now = utcnow()
        stats = DrainStats()

        for item_id in self._due_ids(db, now, limit):
            if not self._claim(db, item_id, now):
                logger.debug("Email %s already claimed by another worker", item_id)
                continue

            item = db.get(EmailQueueItem, item_id)
            if item is None:
                continue
            db.refresh(item)

            if self._deliver(item):
                item.status = EMAIL_STATUS_SENT
                item.sent_at = utcnow()
                item.last_error = None
                stats.sent += 1
                logger.info("Email sent to %s (type: %s)", item.recipient_email, item.email_type)
            else:
                stats.failed += 1
            item.claimed_until = None
            db.commit()

        if stats.processed:
            logger.info(
                "Email queue: Processed %d emails (%d sent, %d failed)",
                stats.processed,
                stats.sent,
                stats.failed,
            )
        self.last_stats = stats
        return stats.processed

    def _deliver(self, item: EmailQueueItem) -> bool:
        error: str | None = None
        try:
            delivered = bool(
                self.transport.send(
                    item.recipient_email, item.subject, item.body, item.recipient_name
                )
            )
        except Exception as exc:
            # A transport failure of any kind counts as a failed attempt.
            delivered = False
            error = str(exc) or type(exc).__name__

        if delivered:
            return True

        item.attempts += 1
        max_attempts = settings.email_queue_max_attempts
        item.last_error = f"Failed to send email (attempt {item.attempts})"
        if error:
            item.last_error += f": {error}"
        if item.attempts >= max_attempts:
            item.status = EMAIL_STATUS_FAILED
        logger.warning(
            "Email failed to %s (attempt %d/%d)", item.recipient_email, item.attempts, max_attempts
        )
        return False

    def cleanup_old_emails(self) -> tuple[int, int]:
        """Delete old sent and failed rows; return (sent_deleted, failed_deleted)."""
        if self._db_session:
            return self._cleanup_with_session(self._db_session)
        with SessionLocal() as db:
            return self._cleanup_with_session(db)

    def _cleanup_with_session(self, db: Session) -> tuple[int, int]:
        now = utcnow()
        sent_cutoff = now - timedelta(days=settings.email_queue_sent_retention_days)
        failed_cutoff = now - timedelta(days=settings.email_queue_failed_retention_days)

        sent_deleted = db.execute(
            delete(EmailQueueItem).where(
                EmailQueueItem.status == EMAIL_STATUS_SENT,
                EmailQueueItem.sent_at < sent_cutoff,
            )
        ).rowcount
        failed_deleted = db.execute(
            delete(EmailQueueItem).where(
                EmailQueueItem.status == EMAIL_STATUS_FAILED,
                EmailQueueItem.created_at < failed_cutoff,
            )
        ).rowcount
        db.commit()

        if sent_deleted or failed_deleted:
            logger.info(
                "Email queue cleanup: Deleted %d sent and %d failed emails",
                sent_deleted,
                failed_deleted,
            )
        return sent_deleted, failed_deleted
