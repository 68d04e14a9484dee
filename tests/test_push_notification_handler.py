import base64
import json
from unittest.mock import MagicMock

import pytest
from conftest import RecordingProvider, api_gateway_event

import push_notification_handler
from models.notification import Platform
from services.dispatch_coordinator import DispatchCoordinator


@pytest.fixture
def providers(monkeypatch):
    android = RecordingProvider(Platform.ANDROID)
    ios = RecordingProvider(Platform.IOS)
    coordinator = DispatchCoordinator({Platform.ANDROID: android, Platform.IOS: ios})
    monkeypatch.setattr(push_notification_handler, "dispatcher", coordinator)
    return {"android": android, "ios": ios}


def _body(**overrides):
    body = {
        "user_id": "user-123",
        "title": "New follower",
        "body": "Alex started following you",
        "type": "follow",
        "target_id": "user-456",
        "device_tokens": [
            {"token": "a1", "platform": "android"},
            {"token": "a2", "platform": "android"},
            {"token": "i1", "platform": "ios"},
        ],
    }
    body.update(overrides)
    return body


def _invoke(event, context):
    response = push_notification_handler.lambda_handler(event, context)
    return response["statusCode"], response["body"]


def test_valid_request_returns_outcomes_in_order(providers, lambda_context) -> None:
    status, raw = _invoke(api_gateway_event(body=_body()), lambda_context)

    body = json.loads(raw)
    assert status == 200
    assert body["success"] is True
    assert body["message"] == "Notification sent successfully"
    assert body["sent_to"] == 3
    assert [o["token"] for o in body["outcomes"]] == ["a1", "a2", "i1"]
    assert len(providers["android"].calls) == 1
    assert len(providers["ios"].calls) == 1


def test_partial_failure_is_still_200(providers, lambda_context) -> None:
    providers["android"].error = "FCM request timed out after 5.0s"

    status, raw = _invoke(api_gateway_event(body=_body()), lambda_context)

    body = json.loads(raw)
    assert status == 200
    assert body["success"] is True
    assert body["delivered"] == 1
    assert body["failed"] == 2
    assert [o["status"] for o in body["outcomes"]] == ["failed", "failed", "sent"]


def test_unrecognized_platform_does_not_fail_request(providers, lambda_context) -> None:
    tokens = [{"token": "a1", "platform": "android"}, {"token": "w1", "platform": "windows"}]

    status, raw = _invoke(api_gateway_event(body=_body(device_tokens=tokens)), lambda_context)

    body = json.loads(raw)
    assert status == 200
    assert body["outcomes"][1] == {"token": "w1", "platform": "other", "status": "failed", "error": "unsupported platform"}


def test_zero_device_tokens_is_rejected(providers, lambda_context) -> None:
    status, raw = _invoke(api_gateway_event(body=_body(device_tokens=[])), lambda_context)

    assert status == 400
    assert json.loads(raw)["success"] is False
    assert providers["android"].calls == []
    assert providers["ios"].calls == []


def test_missing_title_is_rejected(providers, lambda_context) -> None:
    body = _body()
    del body["title"]

    status, raw = _invoke(api_gateway_event(body=body), lambda_context)

    assert status == 400
    assert "title" in json.loads(raw)["error"]


@pytest.mark.parametrize("event", [
    api_gateway_event(body="{not json"),
    api_gateway_event(body=None),
    api_gateway_event(body=""),
    api_gateway_event(body=base64.b64encode(b"\xff\xfe{").decode(), base64_encoded=True),
    api_gateway_event(body="[" * 100000 + "]" * 100000),
], ids=["not-json", "missing", "empty", "invalid-utf8", "deeply-nested"])
def test_malformed_or_empty_body_is_rejected(providers, lambda_context, event) -> None:
    status, raw = _invoke(event, lambda_context)

    assert status == 400
    assert json.loads(raw)["success"] is False
    assert providers["android"].calls == []
    assert providers["ios"].calls == []


@pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"])
def test_other_methods_are_not_allowed(providers, lambda_context, method) -> None:
    status, raw = _invoke(api_gateway_event(method=method), lambda_context)

    assert status == 405
    assert raw == "Method not allowed"
    assert providers["android"].calls == []
    assert providers["ios"].calls == []


def test_unexpected_error_returns_generic_500(monkeypatch, lambda_context) -> None:
    broken = MagicMock()
    broken.dispatch.side_effect = RuntimeError("database password is hunter2")
    monkeypatch.setattr(push_notification_handler, "dispatcher", broken)

    status, raw = _invoke(api_gateway_event(body=_body()), lambda_context)

    assert status == 500
    assert json.loads(raw) == {"success": False, "error": "Failed to send notification"}


def test_health(lambda_context) -> None:
    status, raw = _invoke(api_gateway_event(method="GET", path="/health"), lambda_context)

    assert status == 200
    assert json.loads(raw)["status"] == "healthy"


def test_error_outside_dispatch_returns_generic_500(providers, monkeypatch, lambda_context) -> None:
    def explode(payload):
        raise RuntimeError("validator bug with internal detail")

    monkeypatch.setattr(push_notification_handler, "parse_notification_request", explode)

    status, raw = _invoke(api_gateway_event(body=_body()), lambda_context)

    assert status == 500
    assert json.loads(raw) == {"success": False, "error": "Failed to send notification"}
    assert providers["android"].calls == []


def test_unknown_path_keeps_404(lambda_context) -> None:
    status, _ = _invoke(api_gateway_event(method="GET", path="/unknown"), lambda_context)

    assert status == 404
