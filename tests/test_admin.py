from datetime import datetime, timedelta, timezone

from helpers import OWNER_ID, seed_business
from orderbot.models import ChatbotSettings, WebhookLog
from orderbot.services.usage_service import METRIC_AI_REPLIES, increment_usage

HEADERS = {"X-Admin-Token": "admin-secret"}


class TestAdminAuth:
    def test_missing_token_is_rejected(self, client):
        response = client.get(f"/admin/usage/{OWNER_ID}")
        assert response.status_code == 401

    def test_unconfigured_token_is_server_error(self, client, mock_env):
        mock_env.admin_token = None
        response = client.get(f"/admin/usage/{OWNER_ID}", headers=HEADERS)
        assert response.status_code == 500


class TestTriggerUpdate:
    def test_saves_unambiguous_triggers(self, client, db_session):
        response = client.put(
            f"/admin/chatbot/{OWNER_ID}/triggers",
            headers=HEADERS,
            json={"triggers": [{"keyword": " Price ", "response": "From Rs 499"}, {"keyword": "hours", "response": "9-6"}]},
        )

        assert response.status_code == 200
        assert response.json()["ok"] is True
        chatbot = db_session.query(ChatbotSettings).filter_by(owner_id=OWNER_ID).one()
        assert chatbot.keyword_triggers == [
            {"keyword": "Price", "response": "From Rs 499"},
            {"keyword": "hours", "response": "9-6"},
        ]

    def test_conflicting_triggers_are_refused(self, client, db_session):
        seed_business(db_session, keyword_triggers=[{"keyword": "old", "response": "kept"}])

        response = client.put(
            f"/admin/chatbot/{OWNER_ID}/triggers",
            headers=HEADERS,
            json={"triggers": [{"keyword": "price", "response": "A"}, {"keyword": "PRICE", "response": "B"}]},
        )

        assert response.status_code == 409
        body = response.json()
        assert body["ok"] is False
        assert body["conflicts"][0]["kind"] == "duplicate"
        db_session.expire_all()
        chatbot = db_session.query(ChatbotSettings).filter_by(owner_id=OWNER_ID).one()
        assert chatbot.keyword_triggers == [{"keyword": "old", "response": "kept"}]


class TestWebhookLogCleanup:
    def test_deletes_old_processed_logs(self, client, db_session):
        old = datetime.now(timezone.utc) - timedelta(days=30)
        db_session.add_all(
            [
                WebhookLog(event_id="a", processed=True, created_at=old),
                WebhookLog(event_id="b", processed=False, created_at=old),
            ]
        )
        db_session.commit()

        response = client.post("/admin/webhook-logs/cleanup", headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {"deleted": 1, "older_than_days": 7}


class TestUsageSummary:
    def test_reports_current_counters(self, client, db_session):
        seed_business(db_session, plan_id="growth")
        increment_usage(db_session, OWNER_ID, METRIC_AI_REPLIES, amount=4)
        db_session.commit()

        response = client.get(f"/admin/usage/{OWNER_ID}", headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["plan_id"] == "growth"
        daily = next(entry for entry in body["usage"] if entry["period"] == "daily")
        assert (daily["count"], daily["limit"]) == (4, 1000)
