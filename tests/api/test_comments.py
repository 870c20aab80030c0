"""Comment intake, email verification, listing and moderation."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mysteria.comments.service import SUBMITTED_MESSAGE, hash_token
from mysteria.db.models import Comment, UserReputation
from mysteria.email.service import EMAIL_RATE_LIMITED, EmailService
from mysteria.errors import VerificationFailedError
from mysteria.timeutils import utcnow


def _payload(article, **overrides):
    payload = {
        "articleId": str(article.id),
        "name": "Ana Hoxha",
        "email": "Ana@Example.com",
        "content": "I saw the same light over the bay in 1998.",
    }
    payload.update(overrides)
    return payload


def _sent_token(mock_email_service) -> str:
    _to, template, context = mock_email_service.send_template.call_args.args
    assert template == "comment_verification"
    return context["verify_url"].split("token=", 1)[1]


async def _stored_comments(db_session):
    db_session.expire_all()
    result = await db_session.execute(select(Comment))
    return list(result.unique().scalars())


class TestSubmitComment:
    async def test_submit_stores_pending_comment_and_sends_link(
        self, client, db_session, published_article, mock_email_service
    ):
        response = await client.post("/api/v1/submit-comment", json=_payload(published_article))
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": SUBMITTED_MESSAGE}

        comments = await _stored_comments(db_session)
        assert len(comments) == 1
        comment = comments[0]
        assert comment.email == "ana@example.com"
        assert comment.is_approved is False
        assert comment.is_email_verified is False

        to, _template, context = mock_email_service.send_template.call_args.args
        assert to == "ana@example.com"
        assert context["verify_url"].startswith("https://api.test/api/v1/verify-comment?token=")
        assert context["expires_hours"] == 24
        # Only the digest is stored.
        assert comment.verification_token == hash_token(_sent_token(mock_email_service))

    async def test_missing_fields(self, client, db_session, published_article, mock_email_service):
        for blank in ("name", "email", "content"):
            response = await client.post("/api/v1/submit-comment", json=_payload(published_article, **{blank: ""}))
            assert response.status_code == 400
            assert response.json() == {"error": "Missing required fields"}
        mock_email_service.send_template.assert_not_awaited()
        assert await _stored_comments(db_session) == []

    async def test_invalid_email(self, client, published_article, mock_email_service):
        response = await client.post("/api/v1/submit-comment", json=_payload(published_article, email="nope"))
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid email format"}

    async def test_content_too_long(self, client, published_article, mock_email_service):
        response = await client.post(
            "/api/v1/submit-comment", json=_payload(published_article, content="x" * 5001)
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Content must be less than 5000 characters"}

    async def test_markup_stripped(self, client, db_session, published_article, mock_email_service):
        response = await client.post(
            "/api/v1/submit-comment",
            json=_payload(published_article, content="<script>alert(1)</script>Spooky <b>indeed</b>"),
        )
        assert response.status_code == 200
        comments = await _stored_comments(db_session)
        assert comments[0].content == "alert(1)Spooky indeed"

    async def test_unknown_article(self, client, mock_email_service, published_article):
        response = await client.post(
            "/api/v1/submit-comment",
            json=_payload(published_article, articleId="00000000-0000-0000-0000-000000000000"),
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Article not found"}

    async def test_unpublished_article(self, client, db_session, published_article, mock_email_service):
        published_article.published = False
        await db_session.commit()
        response = await client.post("/api/v1/submit-comment", json=_payload(published_article))
        assert response.status_code == 404

    async def test_reply_to_reply_rejected(self, client, db_session, published_article, mock_email_service):
        parent = Comment(
            article_id=published_article.id, name="P", email="p@example.com", content="top", is_approved=True
        )
        db_session.add(parent)
        await db_session.flush()
        reply = Comment(
            article_id=published_article.id,
            parent_comment_id=parent.id,
            name="R",
            email="r@example.com",
            content="reply",
            is_approved=True,
        )
        db_session.add(reply)
        await db_session.commit()

        ok = await client.post(
            "/api/v1/submit-comment", json=_payload(published_article, parentCommentId=str(parent.id))
        )
        assert ok.status_code == 200

        nested = await client.post(
            "/api/v1/submit-comment", json=_payload(published_article, parentCommentId=str(reply.id))
        )
        assert nested.status_code == 400
        assert nested.json() == {"error": "Invalid parent comment"}

    async def test_email_failure_stores_nothing(self, client, db_session, published_article, mock_email_service):
        mock_email_service.send_template.return_value = False
        response = await client.post("/api/v1/submit-comment", json=_payload(published_article))
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to send verification email. Please try again later."}
        assert await _stored_comments(db_session) == []

    async def test_email_quota_returns_429_and_stores_nothing_extra(
        self, client, db_session, published_article, fake_redis, monkeypatch
    ):
        provider = AsyncMock()
        provider.send = AsyncMock(return_value=True)
        service = EmailService(provider=provider, redis=fake_redis, max_per_hour=5)
        monkeypatch.setattr("mysteria.comments.router.get_email_service", lambda *a, **kw: service)

        for _ in range(5):
            ok = await client.post("/api/v1/submit-comment", json=_payload(published_article))
            assert ok.status_code == 200

        response = await client.post("/api/v1/submit-comment", json=_payload(published_article))
        assert response.status_code == 429
        assert response.json() == {"error": EMAIL_RATE_LIMITED}
        assert provider.send.await_count == 5
        assert len(await _stored_comments(db_session)) == 5

    async def test_storage_failure_sends_no_link(
        self, client, db_session, published_article, mock_email_service, monkeypatch
    ):
        with monkeypatch.context() as m:
            m.setattr(AsyncSession, "commit", AsyncMock(side_effect=SQLAlchemyError("disk full")))
            response = await client.post("/api/v1/submit-comment", json=_payload(published_article))
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to submit comment"}
        mock_email_service.send_template.assert_not_awaited()
        assert await _stored_comments(db_session) == []

    async def test_undeliverable_email(self, client, published_article, mock_email_service, monkeypatch):
        monkeypatch.setattr(
            "mysteria.comments.service.check_deliverability",
            AsyncMock(side_effect=VerificationFailedError("Disposable email addresses are not allowed.")),
        )
        response = await client.post("/api/v1/submit-comment", json=_payload(published_article))
        assert response.status_code == 400
        assert response.json() == {"error": "Disposable email addresses are not allowed."}
        mock_email_service.send_template.assert_not_awaited()


class TestVerifyComment:
    async def test_verify_publishes_once(self, client, db_session, published_article, mock_email_service):
        await client.post("/api/v1/submit-comment", json=_payload(published_article))
        token = _sent_token(mock_email_service)

        response = await client.get("/api/v1/verify-comment", params={"token": token})
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "Email Verified!" in response.text

        comment = (await _stored_comments(db_session))[0]
        assert comment.is_approved is True
        assert comment.is_email_verified is True
        assert comment.verification_token is None

        again = await client.get("/api/v1/verify-comment", params={"token": token})
        assert again.status_code == 404

    async def test_verify_credits_reputation(self, client, db_session, published_article, mock_email_service):
        await client.post("/api/v1/submit-comment", json=_payload(published_article))
        await client.get("/api/v1/verify-comment", params={"token": _sent_token(mock_email_service)})

        db_session.expire_all()
        reputation = (
            await db_session.execute(select(UserReputation).where(UserReputation.email == "ana@example.com"))
        ).scalar_one()
        assert reputation.approved_comments == 1
        assert reputation.reputation_score == 2
        assert reputation.badge_level == "newcomer"

    async def test_missing_token(self, client):
        response = await client.get("/api/v1/verify-comment")
        assert response.status_code == 400
        assert "Invalid Verification Link" in response.text

    async def test_unknown_token(self, client):
        response = await client.get("/api/v1/verify-comment", params={"token": "not-a-real-token"})
        assert response.status_code == 404
        assert "Invalid or Expired Link" in response.text

    async def test_expired_token(self, client, db_session, published_article, mock_email_service):
        await client.post("/api/v1/submit-comment", json=_payload(published_article))
        comment = (await _stored_comments(db_session))[0]
        comment.verification_expires_at = utcnow() - timedelta(minutes=1)
        await db_session.commit()

        response = await client.get("/api/v1/verify-comment", params={"token": _sent_token(mock_email_service)})
        assert response.status_code == 400
        assert "Link Expired" in response.text

        db_session.expire_all()
        assert (await _stored_comments(db_session))[0].is_approved is False


class TestListComments:
    async def test_only_approved_with_nested_replies(self, client, db_session, published_article):
        parent = Comment(
            article_id=published_article.id, name="Top", email="top@example.com", content="first", is_approved=True
        )
        pending = Comment(
            article_id=published_article.id, name="Wait", email="w@example.com", content="pending", is_approved=False
        )
        db_session.add_all([parent, pending])
        await db_session.flush()
        db_session.add(
            Comment(
                article_id=published_article.id,
                parent_comment_id=parent.id,
                name="Reply",
                email="reply@example.com",
                content="second",
                is_approved=True,
            )
        )
        await db_session.commit()

        response = await client.get(f"/api/v1/articles/{published_article.id}/comments")
        assert response.status_code == 200
        data = response.json()
        assert [c["name"] for c in data] == ["Top"]
        assert [r["name"] for r in data[0]["replies"]] == ["Reply"]
        assert "email" not in data[0]
        assert data[0]["badge_level"] == "newcomer"

    async def test_invalid_article_id(self, client):
        response = await client.get("/api/v1/articles/not-a-uuid/comments")
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid article ID"}


class TestModeration:
    async def _pending(self, db_session, article, email="mod@example.com"):
        comment = Comment(article_id=article.id, name="Mod", email=email, content="awaiting", is_approved=False)
        db_session.add(comment)
        await db_session.commit()
        return comment

    async def test_admin_routes_require_token(self, client):
        response = await client.get("/api/v1/admin/comments")
        assert response.status_code == 401
        assert response.json() == {"error": "Missing authorization header"}

    async def test_list_pending(self, client, db_session, published_article, admin_headers):
        await self._pending(db_session, published_article)
        response = await client.get("/api/v1/admin/comments", params={"status": "pending"}, headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["email"] == "mod@example.com"
        assert data[0]["article_title"] == "The Haunted Lighthouse"

    async def test_approve_is_idempotent(self, client, db_session, published_article, admin_headers):
        comment = await self._pending(db_session, published_article)
        for _ in range(2):
            response = await client.post(f"/api/v1/admin/comments/{comment.id}/approve", headers=admin_headers)
            assert response.status_code == 200

        db_session.expire_all()
        reputation = (
            await db_session.execute(select(UserReputation).where(UserReputation.email == "mod@example.com"))
        ).scalar_one()
        assert reputation.approved_comments == 1

    async def test_delete_removes_replies(self, client, db_session, published_article, admin_headers):
        parent = await self._pending(db_session, published_article)
        db_session.add(
            Comment(
                article_id=published_article.id,
                parent_comment_id=parent.id,
                name="R",
                email="r@example.com",
                content="reply",
            )
        )
        await db_session.commit()

        response = await client.delete(f"/api/v1/admin/comments/{parent.id}", headers=admin_headers)
        assert response.status_code == 200
        assert await _stored_comments(db_session) == []

    async def test_unknown_comment(self, client, admin_headers):
        response = await client.post(
            "/api/v1/admin/comments/00000000-0000-0000-0000-000000000000/approve", headers=admin_headers
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Comment not found"}
