"""Scheduled housekeeping: sessions, login history and the email queue."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from pagecomments.services.auth import prune_expired
from pagecomments.services.email_queue import EmailQueueWorker
from pagecomments.services.mailer import MailTransport

logger = logging.getLogger(__name__)


@dataclass
class MaintenanceReport:
    sessions_deleted: int = 0
    attempts_deleted: int = 0
    sent_emails_deleted: int = 0
    failed_emails_deleted: int = 0


def run_maintenance(db: Session, transport: MailTransport | None = None) -> MaintenanceReport:
    """Run every cleanup task once against ``db``."""
    sessions_deleted, attempts_deleted = prune_expired(db)
    worker = EmailQueueWorker(transport=transport, db_session=db)
    sent_deleted, failed_deleted = worker.cleanup_old_emails()

    report = MaintenanceReport(
        sessions_deleted=sessions_deleted,
        attempts_deleted=attempts_deleted,
        sent_emails_deleted=sent_deleted,
        failed_emails_deleted=failed_deleted,
    )
    logger.info("Maintenance finished: %s", report)
    return report
