# tests/test_adapters.py
import json
from datetime import UTC, datetime

import pytest
from sqlalchemy import select

from pagecomments.adapters import (
    ImportedComment,
    build_disqus_export,
    fix_imported_urls,
    import_comments,
    parse_disqus_export,
    parse_talkyard_export,
)
from pagecomments.adapters.disqus_export import WXR_FOOTER, WXR_HEADER, cdata
from pagecomments.adapters.importing import DEFAULT_AUTHOR_EMAIL, strip_html
from pagecomments.adapters.talkyard_import import page_url_from_path
from pagecomments.adapters.url_repair import host_slug, repair_url
from pagecomments.models import Comment
from pagecomments.models.comment import STATUS_APPROVED, STATUS_DELETED

DISQUS_XML = b"""<?xml version="1.0" encoding="utf-8"?>
<disqus xmlns="http://disqus.com" xmlns:dsq="http://disqus.com/disqus-internals">
  <thread dsq:id="100">
    <link>https://blog.example.org/2012/03/04/hello/</link>
    <title>Hello</title>
  </thread>
  <post dsq:id="2">
    <message><![CDATA[<p>I agree &amp; disagree</p>]]></message>
    <createdAt>2012-03-04T11:00:00Z</createdAt>
    <isDeleted>false</isDeleted>
    <isSpam>false</isSpam>
    <author><name>Bob</name><email>bob@example.org</email></author>
    <thread dsq:id="100"/>
    <parent dsq:id="1"/>
  </post>
  <post dsq:id="1">
    <message><![CDATA[<p>First!</p>]]></message>
    <createdAt>2012-03-04T10:00:00Z</createdAt>
    <isDeleted>false</isDeleted>
    <isSpam>false</isSpam>
    <author><name>Alice</name></author>
    <thread dsq:id="100"/>
  </post>
  <post dsq:id="3">
    <message>buy now</message>
    <createdAt>2012-03-04T12:00:00Z</createdAt>
    <isSpam>true</isSpam>
    <thread dsq:id="100"/>
  </post>
  <post dsq:id="4">
    <message>orphan thread</message>
    <createdAt>2012-03-04T12:00:00Z</createdAt>
    <thread dsq:id="999"/>
  </post>
</disqus>
"""

TALKYARD_EXPORT = {
    "pagePaths": [
        {
            "pageId": "5",
            "value": "/-5/comments-for-https-blog-example-org-2012-03-04-hello",
            "canonical": True,
        },
        {"pageId": "6", "value": "/-6/imported-from-disqus", "canonical": True},
    ],
    "members": [{"id": 100, "fullName": "Alice", "primaryEmailAddress": "alice@example.org"}],
    "guests": [{"id": -3, "guestName": "Gus", "emailAddress": "gus@example.org"}],
    "posts": [
        {"id": 10, "pageId": "5", "nr": 0, "approvedSource": "Title", "createdAt": 1331000000000},
        {"id": 11, "pageId": "5", "nr": 1, "approvedSource": "Body", "createdAt": 1331000000000},
        {
            "id": 13,
            "pageId": "5",
            "nr": 3,
            "parentNr": 2,
            "createdById": -3,
            "approvedSource": "<p>Reply</p>",
            "createdAt": 1331000200000,
        },
        {
            "id": 12,
            "pageId": "5",
            "nr": 2,
            "parentNr": 1,
            "createdById": 100,
            "approvedSource": "<p>Hi &lt;there&gt;</p>",
            "createdAt": 1331000100000,
        },
        {"id": 14, "pageId": "5", "nr": 4, "approvedSource": "gone", "deletedStatus": 1},
        {"id": 15, "pageId": "5", "nr": 5, "approvedSource": "<p></p>"},
        {"id": 16, "pageId": "404", "nr": 2, "approvedSource": "lost"},
    ],
}


def test_strip_html() -> None:
    assert strip_html("<p>Fish &amp; <b>chips</b></p>") == "Fish & chips"
    assert strip_html("") == ""


class TestDisqusImport:
    def test_parse(self) -> None:
        records = parse_disqus_export(DISQUS_XML)

        assert [record.source_id for record in records] == ["1", "2"]
        first, reply = records
        assert first.page_url == "https://blog.example.org/2012/03/04/hello/"
        assert first.content == "First!"
        assert first.author_email == DEFAULT_AUTHOR_EMAIL
        assert first.created_at == datetime(2012, 3, 4, 10, tzinfo=UTC)
        assert reply.content == "I agree & disagree"
        assert reply.source_parent_id == "1"
        assert reply.author_name == "Bob"

    def test_invalid_xml(self) -> None:
        with pytest.raises(ValueError):
            parse_disqus_export(b"<disqus><post>")

    def test_import_maps_parents(self, db_session) -> None:
        report = import_comments(db_session, parse_disqus_export(DISQUS_XML))

        assert report.imported == 2
        assert report.orphaned == []
        assert report.pages == {"https://blog.example.org/2012/03/04/hello/"}
        first, reply = db_session.scalars(select(Comment).order_by(Comment.created_at)).all()
        assert reply.parent_id == first.id
        assert {first.status, reply.status} == {STATUS_APPROVED}

    def test_missing_parent_becomes_top_level(self, db_session) -> None:
        record = ImportedComment(
            source_id="9",
            source_parent_id="8",
            page_url="/p/",
            content="hello",
            created_at=datetime(2020, 1, 1, tzinfo=UTC),
        )

        report = import_comments(db_session, [record])

        assert report.orphaned == ["9"]
        assert db_session.scalar(select(Comment.parent_id)) is None


class TestTalkyardImport:
    def test_page_url_from_path(self) -> None:
        assert (
            page_url_from_path("/-5/comments-for-https-blog-example-org-post")
            == "http/blog/example/org/post"
        )
        assert page_url_from_path("/-5/comments-for-about") == "/about"
        assert page_url_from_path("/plain/") == "/plain/"

    def test_parse(self) -> None:
        records = parse_talkyard_export(TALKYARD_EXPORT)

        assert [record.source_id for record in records] == ["12", "13"]
        post, reply = records
        assert post.page_url == "http/blog/example/org/2012/03/04/hello"
        assert post.author_name == "Alice"
        assert post.author_email == "alice@example.org"
        assert post.content == "Hi <there>"
        assert post.source_parent_id is None
        assert post.created_at == datetime.fromtimestamp(1331000100, tz=UTC)
        assert reply.author_name == "Gus"
        assert reply.source_parent_id == "12"

    def test_parse_raw_json(self) -> None:
        assert len(parse_talkyard_export(json.dumps(TALKYARD_EXPORT))) == 2

    def test_import_then_repair_urls(self, db_session) -> None:
        import_comments(db_session, parse_talkyard_export(TALKYARD_EXPORT))

        report = fix_imported_urls(db_session, "blog.example.org")

        assert report.comments_updated == 2
        assert set(db_session.scalars(select(Comment.page_url)).all()) == {
            "/2012/03/04/hello/"
        }


class TestUrlRepair:
    def test_host_slug(self) -> None:
        assert host_slug("Blog.Example.org") == "blogexampleorg"

    def test_repair_url(self) -> None:
        host = "blog.example.org"
        assert repair_url("httpblogexampleorg20120304my/post", host) == "/2012/03/04/my-post/"
        assert repair_url("https/blog/example/org/2012/03/04/hello", host) == "/2012/03/04/hello/"
        assert repair_url("/2012/03/04/hello/", host) is None
        assert repair_url("httpotherhost20120304post", host) is None

    def test_dry_run_and_internal_pages(self, db_session, make_comment) -> None:
        make_comment(page_url="httpblogexampleorg20120304my/post")
        make_comment(page_url="/-7/imported-from-disqus")

        report = fix_imported_urls(db_session, "blog.example.org", dry_run=True)

        assert report.rewrites == {"httpblogexampleorg20120304my/post": "/2012/03/04/my-post/"}
        assert report.skipped == ["/-7/imported-from-disqus"]
        assert report.comments_updated == 0
        assert "httpblogexampleorg20120304my/post" in db_session.scalars(
            select(Comment.page_url)
        ).all()


class TestDisqusExport:
    def test_cdata_splits_terminator(self) -> None:
        assert cdata("a]]>b") == "<![CDATA[a]]]]><![CDATA[>b]]>"
        assert cdata(None) == "<![CDATA[]]>"

    def test_one_chunk_per_page_and_hidden_statuses_skipped(self) -> None:
        created = datetime(2024, 5, 6, 7, 8, 9, tzinfo=UTC)
        comments = [
            Comment(id=1, page_url="/a/", author_name="A & B", author_email="a@example.org",
                    content="one", status=STATUS_APPROVED, created_at=created),
            Comment(id=2, page_url="/a/", author_name="C", author_email="c@example.org",
                    content="gone", status=STATUS_DELETED, created_at=created),
            Comment(id=3, page_url="/b/", author_name="D", author_email="d@example.org",
                    content="three", status=STATUS_APPROVED, created_at=created),
        ]

        chunks = list(build_disqus_export(comments))

        assert chunks[0] == WXR_HEADER
        assert chunks[-1] == WXR_FOOTER
        assert len(chunks) == 4
        assert "A &amp; B" in chunks[1]
        assert "gone" not in chunks[1]
        assert "<wp:comment_date_gmt>2024-05-06 07:08:09</wp:comment_date_gmt>" in chunks[1]
