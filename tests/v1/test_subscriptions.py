# tests/v1/test_subscriptions.py
from sqlalchemy import func, select

from pagecomments.api.v1.endpoints.unsubscribe import (
    ALREADY_UNSUBSCRIBED_MESSAGE,
    INVALID_LINK_MESSAGE,
    NOT_FOUND_MESSAGE,
    SUCCESS_MESSAGE,
)
from pagecomments.models import Subscription


def _active(db_session, subscription_id: int) -> int:
    return db_session.scalar(select(Subscription.active).where(Subscription.id == subscription_id))


class TestUnsubscribePage:
    def test_confirmation_page(self, client, make_subscription) -> None:
        subscription = make_subscription()

        response = client.get("/unsubscribe", params={"token": subscription.token})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Yes, Unsubscribe" in response.text
        assert "reader@example.org" in response.text
        assert f'value="{subscription.token}"' in response.text

    def test_unknown_token(self, client) -> None:
        response = client.get("/unsubscribe", params={"token": "missing"})
        assert INVALID_LINK_MESSAGE in response.text
        assert "Yes, Unsubscribe" not in response.text

    def test_inactive_subscription_shows_invalid_link(self, client, make_subscription) -> None:
        subscription = make_subscription(active=0)
        response = client.get("/unsubscribe", params={"token": subscription.token})
        assert INVALID_LINK_MESSAGE in response.text

    def test_confirm_deactivates_once(self, client, db_session, make_subscription) -> None:
        subscription = make_subscription()
        form = {"token": subscription.token, "confirm": "1"}

        first = client.post("/unsubscribe", data=form)
        assert first.status_code == 200
        assert SUCCESS_MESSAGE in first.text
        assert _active(db_session, subscription.id) == 0

        second = client.post("/unsubscribe", data=form)
        assert ALREADY_UNSUBSCRIBED_MESSAGE in second.text
        assert INVALID_LINK_MESSAGE not in second.text
        assert second.text.count('class="message error"') == 1

    def test_unknown_token_on_confirm(self, client) -> None:
        response = client.post("/unsubscribe", data={"token": "missing", "confirm": "1"})
        assert NOT_FOUND_MESSAGE in response.text
        assert INVALID_LINK_MESSAGE not in response.text

    def test_post_without_confirm_shows_form_again(
        self, client, db_session, make_subscription
    ) -> None:
        subscription = make_subscription()
        response = client.post("/unsubscribe", data={"token": subscription.token})
        assert "Yes, Unsubscribe" in response.text
        assert _active(db_session, subscription.id) == 1

    def test_markup_is_escaped(self, client, make_subscription) -> None:
        subscription = make_subscription(page_url="/<script>alert(1)</script>/")
        response = client.get("/unsubscribe", params={"token": subscription.token})
        assert "<script>alert(1)</script>" not in response.text
        assert "&lt;script&gt;" in response.text


class TestSubscriptionAdmin:
    def test_list(self, client, make_subscription, admin_auth) -> None:
        make_subscription(email="a@example.org")
        make_subscription(email="b@example.org")

        data = client.get("/api/subscriptions").json()

        assert data["total"] == 2
        assert {row["email"] for row in data["subscriptions"]} == {
            "a@example.org",
            "b@example.org",
        }

    def test_toggle(self, client, db_session, make_subscription, admin_auth) -> None:
        subscription = make_subscription()

        response = client.post(
            "/api/toggle_subscription",
            json={"token": subscription.token, "active": 0, "csrf_token": admin_auth.csrf_token},
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Subscription updated"
        assert _active(db_session, subscription.id) == 0

    def test_toggle_requires_csrf(self, client, db_session, make_subscription, admin_auth) -> None:
        subscription = make_subscription()
        response = client.post(
            "/api/toggle_subscription", json={"token": subscription.token, "active": 0}
        )
        assert response.status_code == 403
        assert _active(db_session, subscription.id) == 1

    def test_toggle_unknown_token(self, client, admin_auth) -> None:
        response = client.post(
            "/api/toggle_subscription",
            json={"token": "missing", "active": 1, "csrf_token": admin_auth.csrf_token},
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Subscription not found"}

    def test_delete(self, client, db_session, make_subscription, admin_auth) -> None:
        subscription = make_subscription()

        response = client.delete(
            "/api/delete_subscription",
            params={"token": subscription.token, "csrf_token": admin_auth.csrf_token},
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Subscription deleted"
        assert db_session.scalar(select(func.count(Subscription.id))) == 0
