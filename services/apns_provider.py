"""iOS delivery through the APNs HTTP/2 provider API with token-based auth"""
import time
import urllib.parse
from typing import List, Optional
import httpx
import jwt
from aws_lambda_powertools import Logger
from models.notification import DeliveryOutcome, Platform
from services.push_provider import PushProvider

logger = Logger()

APNS_PRODUCTION_URL = "https://api.push.apple.com"
APNS_SANDBOX_URL = "https://api.sandbox.push.apple.com"

# Apple rejects provider tokens older than an hour
TOKEN_REFRESH_SECONDS = 50 * 60

EXPIRED_TOKEN_REASONS = ("ExpiredProviderToken", "InvalidProviderToken")


class ApnsProvider(PushProvider):
    """
    APNs has no batch endpoint, so a batch is sent one request per device
    token, one after another, over a client kept for the container.
    Per-token rejections (BadDeviceToken, Unregistered, ...) fail only that
    token; a transport error fails every token that has not been answered yet.
    """

    name = "apns"
    platform = Platform.IOS

    def __init__(
        self,
        key_id: str,
        team_id: str,
        private_key: str,
        bundle_id: str,
        use_sandbox: bool = False,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None
    ):
        super().__init__(timeout=timeout)
        self.key_id = key_id
        self.team_id = team_id
        self.private_key = private_key
        self.bundle_id = bundle_id
        self.base_url = APNS_SANDBOX_URL if use_sandbox else APNS_PRODUCTION_URL
        self._client = client
        self._token = None
        self._token_issued_at = 0

    def is_configured(self) -> bool:
        return all([self.key_id, self.team_id, self.private_key, self.bundle_id])

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(http2=True, timeout=self.timeout)
        return self._client

    def provider_token(self) -> str:
        """ES256 provider token, cached until it is close to expiry"""
        now = int(time.time())
        if self._token and now - self._token_issued_at < TOKEN_REFRESH_SECONDS:
            return self._token

        self._token = jwt.encode(
            {"iss": self.team_id, "iat": now},
            self.private_key,
            algorithm="ES256",
            headers={"kid": self.key_id}
        )
        self._token_issued_at = now
        logger.info("🔑 Generated new APNs provider token")
        return self._token

    def _invalidate_token(self):
        self._token = None
        self._token_issued_at = 0

    @staticmethod
    def build_payload(title: str, body: str, notification_type: str, target_id: Optional[str]) -> dict:
        return {
            "aps": {
                "alert": {"title": title, "body": body},
                "sound": "default"
            },
            "type": notification_type or "",
            "target_id": target_id or ""
        }

    def _headers(self) -> dict:
        return {
            "authorization": f"bearer {self.provider_token()}",
            "apns-topic": self.bundle_id,
            "apns-push-type": "alert",
            "apns-priority": "10"
        }

    @staticmethod
    def _reason(response: httpx.Response) -> str:
        try:
            reason = response.json().get("reason")
        except ValueError:
            reason = None
        return reason or f"HTTP {response.status_code}"

    def _send_batch(self, tokens, title, body, notification_type, target_id) -> List[DeliveryOutcome]:
        payload = self.build_payload(title, body, notification_type, target_id)
        headers = self._headers()
        outcomes = []

        logger.info(f"📤 Sending APNs notification to {len(tokens)} iOS devices")
        for position, token in enumerate(tokens):
            try:
                response = self.client.post(
                    f"{self.base_url}/3/device/{urllib.parse.quote(token, safe='')}",
                    json=payload,
                    headers=headers
                )
            except httpx.TimeoutException:
                error = f"APNs request timed out after {self.timeout}s"
                logger.error(f"❌ {error}, failing {len(tokens) - position} remaining tokens")
                outcomes.extend(self.fail_all(tokens[position:], error))
                break
            except httpx.HTTPError as e:
                error = f"APNs request failed: {str(e)}"
                logger.error(f"❌ {error}, failing {len(tokens) - position} remaining tokens")
                outcomes.extend(self.fail_all(tokens[position:], error))
                break

            if response.status_code == 200:
                outcomes.append(DeliveryOutcome.success(token, self.platform))
                continue

            reason = self._reason(response)
            if reason in EXPIRED_TOKEN_REASONS:
                self._invalidate_token()
            outcomes.append(DeliveryOutcome.failure(token, self.platform, reason))

        sent = sum(1 for outcome in outcomes if outcome.sent)
        logger.info(f"✅ APNs accepted {sent} of {len(tokens)} notifications")
        return outcomes
