"""Android delivery through the FCM HTTP API authenticated with a server key"""
from typing import List, Optional
import requests
from aws_lambda_powertools import Logger
from models.notification import DeliveryOutcome, Platform
from services.push_provider import ProviderError, PushProvider

logger = Logger()

FCM_SEND_URL = "https://fcm.googleapis.com/fcm/send"

# FCM rejects requests with more registration ids than this
MAX_REGISTRATION_IDS = 1000


class FcmProvider(PushProvider):
    """Sends one request per batch of registration ids"""

    name = "fcm"
    platform = Platform.ANDROID

    def __init__(self, server_key: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        super().__init__(timeout=timeout)
        self.server_key = server_key
        # Reused across invocations of a warm container
        self.session = session or requests.Session()

    def is_configured(self) -> bool:
        return bool(self.server_key)

    @staticmethod
    def build_payload(
        tokens: List[str],
        title: str,
        body: str,
        notification_type: str,
        target_id: Optional[str]
    ) -> dict:
        return {
            "registration_ids": tokens,
            "priority": "high",
            "notification": {
                "title": title,
                "body": body,
                "sound": "default"
            },
            # FCM data values must be strings
            "data": {
                "type": notification_type or "",
                "target_id": target_id or ""
            }
        }

    def _send_batch(self, tokens, title, body, notification_type, target_id) -> List[DeliveryOutcome]:
        outcomes = []
        for start in range(0, len(tokens), MAX_REGISTRATION_IDS):
            chunk = tokens[start:start + MAX_REGISTRATION_IDS]
            try:
                outcomes.extend(self._send_chunk(chunk, title, body, notification_type, target_id))
            except ProviderError as e:
                logger.error(f"❌ FCM chunk of {len(chunk)} failed: {str(e)}")
                outcomes.extend(self.fail_all(chunk, str(e)))
        return outcomes

    def _send_chunk(self, tokens, title, body, notification_type, target_id) -> List[DeliveryOutcome]:
        payload = self.build_payload(tokens, title, body, notification_type, target_id)

        logger.info(f"📤 Sending FCM message to {len(tokens)} Android devices")
        try:
            response = self.session.post(
                FCM_SEND_URL,
                json=payload,
                headers={
                    "Authorization": f"key={self.server_key}",
                    "Content-Type": "application/json"
                },
                timeout=self.timeout
            )
        except requests.Timeout:
            raise ProviderError(f"FCM request timed out after {self.timeout}s")
        except requests.RequestException as e:
            raise ProviderError(f"FCM request failed: {str(e)}")

        if response.status_code < 200 or response.status_code >= 300:
            raise ProviderError(f"FCM returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            raise ProviderError("FCM returned a malformed response")

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list) or len(results) != len(tokens):
            raise ProviderError("FCM response did not include a result per token")

        outcomes = []
        for token, result in zip(tokens, results):
            error = result.get("error") if isinstance(result, dict) else "malformed result"
            if error:
                outcomes.append(DeliveryOutcome.failure(token, self.platform, str(error)))
            else:
                outcomes.append(DeliveryOutcome.success(token, self.platform))

        logger.info(f"✅ FCM accepted {data.get('success', 0)} of {len(tokens)} messages")
        return outcomes
