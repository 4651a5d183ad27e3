"""
HTTP tests for the webhook and notification endpoints.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

import api_server
from conftest import make_messenger, text_update

WEBHOOK_HEADERS = {"X-Telegram-Bot-Api-Secret-Token": "webhook-secret"}
NOTIFY_HEADERS = {"X-Notifications-Secret": "notify-secret"}


@pytest.fixture
def client():
    return TestClient(api_server.app)


@pytest.fixture
def fake_processor(monkeypatch):
    processor = MagicMock()
    processor.process_update = AsyncMock(return_value=True)
    monkeypatch.setattr(api_server, "processor", processor)
    return processor


@pytest.fixture
def notifications(monkeypatch):
    service = api_server.bot_context.notifications
    monkeypatch.setattr(service, "messenger", make_messenger())
    yield service
    service.disconnect_all()


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["app"] == api_server.settings.app_name
        assert "sessions" in data


class TestTelegramWebhook:

    def test_update_is_processed(self, client, fake_processor):
        update = text_update(42, "/start")

        response = client.post("/telegram/webhook", json=update, headers=WEBHOOK_HEADERS)

        assert response.status_code == 200
        fake_processor.process_update.assert_awaited_once_with(update)

    def test_bad_secret_is_forbidden(self, client, fake_processor):
        response = client.post("/telegram/webhook", json=text_update(42, "hi"),
                               headers={"X-Telegram-Bot-Api-Secret-Token": "wrong"})

        assert response.status_code == 403
        fake_processor.process_update.assert_not_awaited()

    def test_invalid_json_still_answers_200(self, client, fake_processor):
        response = client.post("/telegram/webhook", content=b"not json", headers=WEBHOOK_HEADERS)

        assert response.status_code == 200
        fake_processor.process_update.assert_not_awaited()

    def test_handler_failure_still_answers_200(self, client, fake_processor):
        fake_processor.process_update.side_effect = RuntimeError("boom")

        response = client.post("/telegram/webhook", json=text_update(42, "hi"), headers=WEBHOOK_HEADERS)

        assert response.status_code == 200

    def test_disabled_bot_ignores_updates(self, client, fake_processor, monkeypatch):
        monkeypatch.setattr(api_server.settings, "telegram_bot_token", "")

        response = client.post("/telegram/webhook", json=text_update(42, "hi"))

        assert response.status_code == 200
        fake_processor.process_update.assert_not_awaited()


class TestNotificationEvents:

    def test_deposit_is_delivered(self, client, notifications):
        notifications.subscribe("org-1", "42")
        event = {"organizationId": "org-1", "event": "deposit", "data": {"amount": 10, "network": "BASE"}}

        response = client.post("/notifications/events", json=event, headers=NOTIFY_HEADERS)

        assert response.status_code == 200
        assert response.json() == {"status": True, "message": "Event 'deposit' processed", "data": {"delivered": 1}}
        notifications.messenger.send_message.assert_awaited_once()

    def test_wrong_secret(self, client, notifications):
        response = client.post("/notifications/events", json={"organizationId": "org-1", "event": "deposit"},
                               headers={"X-Notifications-Secret": "nope"})

        assert response.status_code == 403
        assert response.json()["status"] is False

    def test_malformed_event(self, client, notifications):
        response = client.post("/notifications/events", json={"event": "deposit"}, headers=NOTIFY_HEADERS)

        assert response.status_code == 422

    def test_not_configured(self, client, notifications, monkeypatch):
        monkeypatch.setattr(api_server.settings, "notifications_secret", "")

        response = client.post("/notifications/events", json={"organizationId": "org-1", "event": "deposit"},
                               headers=NOTIFY_HEADERS)

        assert response.status_code == 503
