# tests/test_maintenance.py
from datetime import timedelta

from sqlalchemy import func, select

from pagecomments.db.time import utcnow
from pagecomments.models import AdminSession, EmailQueueItem, LoginAttempt
from pagecomments.models.email_queue import EMAIL_STATUS_FAILED, EMAIL_STATUS_SENT
from pagecomments.services.maintenance import MaintenanceReport, run_maintenance


def test_run_maintenance_cleans_everything(
    db_session, make_admin_session, make_email, mail_transport
) -> None:
    now = utcnow()
    make_admin_session(lifetime=timedelta(seconds=-1))
    live = make_admin_session()
    db_session.add(LoginAttempt(ip_address="10.0.0.1", attempted_at=now - timedelta(days=30)))
    db_session.commit()
    make_email(status=EMAIL_STATUS_SENT, sent_at=now - timedelta(days=45))
    make_email(status=EMAIL_STATUS_FAILED, created_at=now - timedelta(days=10))
    make_email()

    report = run_maintenance(db_session, transport=mail_transport)

    assert report == MaintenanceReport(
        sessions_deleted=1,
        attempts_deleted=1,
        sent_emails_deleted=1,
        failed_emails_deleted=1,
    )
    assert db_session.scalars(select(AdminSession.token)).all() == [live.token]
    assert db_session.scalar(select(func.count(EmailQueueItem.id))) == 1
    assert mail_transport.sent == []


def test_run_maintenance_on_clean_database(db_session, mail_transport) -> None:
    assert run_maintenance(db_session, transport=mail_transport) == MaintenanceReport()
