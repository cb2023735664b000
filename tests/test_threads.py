# tests/test_threads.py
from datetime import timedelta

import pytest

from pagecomments.core.errors import ValidationError
from pagecomments.db.time import utcnow
from pagecomments.models.comment import (
    STATUS_APPROVED,
    STATUS_DELETED,
    STATUS_PENDING,
    STATUS_SPAM,
)
from pagecomments.services.threads import (
    MAX_THREAD_LIMIT,
    assemble_thread,
    excerpt,
    recent_comments,
)

PAGE = "/blog/hello/"


@pytest.fixture()
def base_time():
    return utcnow() - timedelta(hours=1)


def test_replies_nest_under_parents_oldest_first(db_session, make_comment, base_time) -> None:
    root = make_comment(content="root comment", created_at=base_time)
    second = make_comment(content="second root", created_at=base_time + timedelta(minutes=1))
    reply = make_comment(
        content="reply to root", parent_id=root.id, created_at=base_time + timedelta(minutes=2)
    )
    nested = make_comment(
        content="reply to reply", parent_id=reply.id, created_at=base_time + timedelta(minutes=3)
    )

    page = assemble_thread(db_session, PAGE, viewer_is_admin=False)

    assert [node.id for node in page.tree] == [root.id, second.id]
    assert [node.id for node in page.tree[0].replies] == [reply.id]
    assert [node.id for node in page.tree[0].replies[0].replies] == [nested.id]
    assert page.total == 4
    assert not page.has_more


def test_anonymous_viewers_only_see_approved_without_email(
    db_session, make_comment, base_time
) -> None:
    make_comment(content="visible", created_at=base_time)
    for status in (STATUS_PENDING, STATUS_SPAM, STATUS_DELETED):
        make_comment(content=status, status=status, created_at=base_time)

    page = assemble_thread(db_session, PAGE, viewer_is_admin=False)

    assert [node.content for node in page.tree] == ["visible"]
    assert page.tree[0].author_email is None
    assert "author_email" not in page.tree[0].model_dump()


def test_admin_sees_pending_and_emails(db_session, make_comment, base_time) -> None:
    make_comment(content="approved", created_at=base_time)
    make_comment(content="pending", status=STATUS_PENDING, created_at=base_time)
    make_comment(content="spam", status=STATUS_SPAM, created_at=base_time)

    page = assemble_thread(db_session, PAGE, viewer_is_admin=True)

    assert sorted(node.content for node in page.tree) == ["approved", "pending"]
    assert all(node.author_email == "alice@example.org" for node in page.tree)


def test_pagination_drops_replies_whose_parent_is_on_another_page(
    db_session, make_comment, base_time
) -> None:
    root = make_comment(content="first", created_at=base_time)
    later_root = make_comment(content="second", created_at=base_time + timedelta(minutes=1))
    make_comment(content="reply", parent_id=root.id, created_at=base_time + timedelta(minutes=2))

    page = assemble_thread(db_session, PAGE, viewer_is_admin=False, limit=2, offset=1)

    assert [node.id for node in page.tree] == [later_root.id]
    assert page.total == 3
    assert not page.has_more

    first_page = assemble_thread(db_session, PAGE, viewer_is_admin=False, limit=1)
    assert first_page.has_more


def test_other_pages_are_not_included(db_session, make_comment) -> None:
    make_comment(page_url="/elsewhere/")
    page = assemble_thread(db_session, PAGE, viewer_is_admin=False)
    assert page.tree == []
    assert page.total == 0


def test_limit_is_clamped(db_session) -> None:
    assert assemble_thread(db_session, PAGE, viewer_is_admin=False, limit=50000).limit == (
        MAX_THREAD_LIMIT
    )
    assert assemble_thread(db_session, PAGE, viewer_is_admin=False, limit=0).limit == 1
    assert assemble_thread(db_session, PAGE, viewer_is_admin=False, offset=-5).offset == 0


def test_url_is_required(db_session) -> None:
    with pytest.raises(ValidationError) as excinfo:
        assemble_thread(db_session, "", viewer_is_admin=False)
    assert excinfo.value.message == "URL is required"


def test_excerpt() -> None:
    assert excerpt("short") == "short"
    assert excerpt("x" * 151) == "x" * 150 + "..."


def test_recent_comments_newest_first(db_session, make_comment, base_time) -> None:
    make_comment(content="old", page_url="/a/", created_at=base_time)
    make_comment(content="new", page_url="/b/", created_at=base_time + timedelta(minutes=5))
    make_comment(content="hidden", status=STATUS_PENDING, created_at=base_time)

    recent = recent_comments(db_session)

    assert [item.content for item in recent] == ["new", "old"]
    assert recent[0].page_url == "/b/"
    assert len(recent_comments(db_session, limit=1)) == 1
    assert len(recent_comments(db_session, limit=0)) == 1
