import json
import os
import time
from dataclasses import dataclass

import pytest

os.environ.setdefault("AWS_DEFAULT_REGION", "ap-south-1")
os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "1")
os.environ.setdefault("POWERTOOLS_METRICS_NAMESPACE", "PushNotifications")
for _key in ("FCM_SERVER_KEY", "FCM_SERVICE_ACCOUNT_FILE", "APNS_KEY_ID", "APNS_TEAM_ID",
             "APNS_PRIVATE_KEY", "APNS_BUNDLE_ID"):
    os.environ.pop(_key, None)

from models.notification import DeliveryOutcome, DeviceToken, NotificationRequest  # noqa: E402
from services.push_provider import ProviderError, PushProvider  # noqa: E402


class RecordingProvider(PushProvider):
    """Provider double that records each batch it receives"""

    def __init__(self, platform, name=None, error=None, delay=0.0, rejected=()):
        super().__init__(timeout=1.0)
        self.platform = platform
        self.name = name or f"fake-{platform}"
        self.error = error
        self.delay = delay
        self.rejected = set(rejected)
        self.calls = []

    def _send_batch(self, tokens, title, body, notification_type, target_id):
        self.calls.append({
            "tokens": list(tokens),
            "title": title,
            "body": body,
            "type": notification_type,
            "target_id": target_id,
        })
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise ProviderError(self.error)
        return [
            DeliveryOutcome.failure(token, self.platform, "rejected")
            if token in self.rejected
            else DeliveryOutcome.success(token, self.platform)
            for token in tokens
        ]


@dataclass
class FakeLambdaContext:
    function_name: str = "push-notification-dispatch"
    memory_limit_in_mb: int = 128
    invoked_function_arn: str = "arn:aws:lambda:ap-south-1:123456789012:function:push-notification-dispatch"
    aws_request_id: str = "52fdfc07-2182-154f-163f-5f0f9a621d72"


@pytest.fixture
def lambda_context():
    return FakeLambdaContext()


@pytest.fixture
def make_request():
    def _make(tokens, **overrides):
        fields = {
            "user_id": "user-123",
            "title": "New follower",
            "body": "Alex started following you",
            "type": "follow",
            "target_id": "user-456",
        }
        fields.update(overrides)
        return NotificationRequest(
            device_tokens=[DeviceToken(token, platform) for token, platform in tokens],
            **fields
        )
    return _make


def api_gateway_event(method="POST", body=None, path="/send-push-notification", base64_encoded=False):
    if body is not None and not isinstance(body, str):
        body = json.dumps(body)
    return {
        "resource": path,
        "path": path,
        "httpMethod": method,
        "headers": {"Content-Type": "application/json"},
        "multiValueHeaders": {"Content-Type": ["application/json"]},
        "queryStringParameters": None,
        "multiValueQueryStringParameters": None,
        "pathParameters": None,
        "stageVariables": None,
        "requestContext": {
            "requestId": "c6af9ac6-7b61-11e6-9a41-93e8deadbeef",
            "stage": "dev",
            "httpMethod": method,
            "path": f"/dev{path}",
            "resourcePath": path,
            "identity": {"sourceIp": "127.0.0.1"},
        },
        "body": body,
        "isBase64Encoded": base64_encoded,
    }
