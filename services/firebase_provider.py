"""Android delivery through the Firebase Admin SDK (FCM HTTP v1)"""
from typing import List, Optional
import firebase_admin
from firebase_admin import credentials, messaging
from aws_lambda_powertools import Logger
from models.notification import DeliveryOutcome, Platform
from services.push_provider import PushProvider

logger = Logger()

FIREBASE_APP_NAME = "push-notification-dispatch"

# send_each_for_multicast accepts at most 500 tokens per call
MAX_MULTICAST_TOKENS = 500


class FirebaseProvider(PushProvider):
    """Sends one multicast message per batch using a service account"""

    name = "firebase"
    platform = Platform.ANDROID

    def __init__(self, service_account_file: str, timeout: float = 5.0):
        super().__init__(timeout=timeout)
        self.service_account_file = service_account_file
        self._app = None

    def is_configured(self) -> bool:
        return bool(self.service_account_file)

    def _get_app(self):
        """Initialize the Firebase app once per container"""
        if self._app is not None:
            return self._app

        try:
            self._app = firebase_admin.get_app(FIREBASE_APP_NAME)
        except ValueError:
            logger.info(f"📄 Loading Firebase service account from: {self.service_account_file}")
            cred = credentials.Certificate(self.service_account_file)
            self._app = firebase_admin.initialize_app(
                cred,
                options={"httpTimeout": self.timeout},
                name=FIREBASE_APP_NAME
            )
            logger.info("✅ Firebase Admin SDK initialized successfully")
        return self._app

    @staticmethod
    def build_message(
        tokens: List[str],
        title: str,
        body: str,
        notification_type: str,
        target_id: Optional[str]
    ) -> messaging.MulticastMessage:
        return messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=title, body=body),
            data={
                "type": notification_type or "",
                "target_id": target_id or ""
            },
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(sound="default")
            )
        )

    def _send_batch(self, tokens, title, body, notification_type, target_id) -> List[DeliveryOutcome]:
        app = self._get_app()
        outcomes = []

        for start in range(0, len(tokens), MAX_MULTICAST_TOKENS):
            chunk = tokens[start:start + MAX_MULTICAST_TOKENS]
            message = self.build_message(chunk, title, body, notification_type, target_id)

            logger.info(f"📤 Sending Firebase multicast to {len(chunk)} Android devices")
            batch_response = messaging.send_each_for_multicast(message, app=app)

            for token, response in zip(chunk, batch_response.responses):
                if response.success:
                    outcomes.append(DeliveryOutcome.success(token, self.platform))
                else:
                    outcomes.append(DeliveryOutcome.failure(token, self.platform, str(response.exception)))

            logger.info(f"✅ Firebase accepted {batch_response.success_count} of {len(chunk)} messages")

        return outcomes
