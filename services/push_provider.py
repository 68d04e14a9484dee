"""Base class for push notification provider adapters"""
from abc import ABC, abstractmethod
from typing import List, Optional
from aws_lambda_powertools import Logger
from models.notification import DeliveryOutcome, Platform

logger = Logger()


class ProviderError(Exception):
    """Provider call failed for the whole batch (transport, HTTP status, credentials)"""


class PushProvider(ABC):
    """
    Sends one notification to a batch of device tokens of a single platform

    Subclasses implement _send_batch and may raise ProviderError or any
    transport exception from it; send() converts every failure into failed
    DeliveryOutcome entries so nothing escapes the adapter.
    """

    name = "base"
    platform = Platform.OTHER

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout

    def is_configured(self) -> bool:
        """Whether the credentials needed to call the provider are present"""
        return True

    @abstractmethod
    def _send_batch(
        self,
        tokens: List[str],
        title: str,
        body: str,
        notification_type: str,
        target_id: Optional[str]
    ) -> List[DeliveryOutcome]:
        raise NotImplementedError

    def fail_all(self, tokens: List[str], error: str) -> List[DeliveryOutcome]:
        return [DeliveryOutcome.failure(token, self.platform, error) for token in tokens]

    def send(
        self,
        tokens: List[str],
        title: str,
        body: str,
        notification_type: str = "",
        target_id: Optional[str] = None
    ) -> List[DeliveryOutcome]:
        """
        Deliver a notification to every token of the batch

        Args:
            tokens: Device tokens for this provider's platform, in request order
            title: Notification title
            body: Notification body
            notification_type: Application-defined notification type
            target_id: Optional id of the entity the notification refers to

        Returns:
            One DeliveryOutcome per token, in the same order
        """
        if not tokens:
            return []

        if not self.is_configured():
            logger.error(f"❌ {self.name} credentials not configured, failing {len(tokens)} tokens")
            return self.fail_all(tokens, f"{self.name} credentials not configured")

        try:
            outcomes = self._send_batch(tokens, title, body, notification_type, target_id)
        except ProviderError as e:
            logger.error(f"❌ {self.name} batch of {len(tokens)} failed: {str(e)}")
            return self.fail_all(tokens, str(e))
        except Exception as e:
            logger.error(f"❌ {self.name} batch of {len(tokens)} failed: {str(e)}", exc_info=True)
            return self.fail_all(tokens, f"{self.name} request failed: {str(e)}")

        if len(outcomes) != len(tokens):
            logger.error(f"❌ {self.name} returned {len(outcomes)} outcomes for {len(tokens)} tokens")
            return self.fail_all(tokens, f"{self.name} returned an incomplete result")

        return outcomes
