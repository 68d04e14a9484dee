"""Notification request and delivery outcome models"""
from dataclasses import dataclass
from typing import List, Optional


class Platform:
    """Device platforms a token can belong to"""

    ANDROID = "android"
    IOS = "ios"
    OTHER = "other"

    RECOGNIZED = (ANDROID, IOS)

    @staticmethod
    def normalize(value) -> str:
        """Map a raw platform string onto a known platform, falling back to OTHER"""
        if not isinstance(value, str):
            return Platform.OTHER
        platform = value.strip().lower()
        return platform if platform in Platform.RECOGNIZED else Platform.OTHER


class DeliveryStatus:
    SENT = "sent"
    FAILED = "failed"


class DeviceToken:
    """A provider-issued device token and the platform it belongs to"""

    def __init__(self, token: str, platform: str = Platform.OTHER):
        self.token = token
        self.platform = platform

    def __repr__(self) -> str:
        # Tokens are credentials for the device, keep them out of reprs and logs
        return f"DeviceToken(platform={self.platform!r}, token={self.token[:6]}...)"


class NotificationRequest:
    """Validated inbound notification request"""

    def __init__(
        self,
        user_id: str,
        title: str,
        body: str,
        device_tokens: List[DeviceToken],
        type: str = "",
        target_id: Optional[str] = None
    ):
        self.user_id = user_id
        self.title = title
        self.body = body
        self.type = type
        self.target_id = target_id
        self.device_tokens = device_tokens

    def platform_counts(self) -> dict:
        """Number of tokens per platform, safe to log"""
        counts = {}
        for device in self.device_tokens:
            counts[device.platform] = counts.get(device.platform, 0) + 1
        return counts


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of delivering a notification to one device token"""

    token: str
    platform: str
    status: str
    error: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.status == DeliveryStatus.SENT

    @classmethod
    def success(cls, token: str, platform: str) -> "DeliveryOutcome":
        return cls(token=token, platform=platform, status=DeliveryStatus.SENT)

    @classmethod
    def failure(cls, token: str, platform: str, error: str) -> "DeliveryOutcome":
        return cls(token=token, platform=platform, status=DeliveryStatus.FAILED, error=error)

    def to_dict(self) -> dict:
        return {
            'token': self.token,
            'platform': self.platform,
            'status': self.status,
            'error': self.error
        }


class DispatchResult:
    """Outcomes of one dispatch, in the same order as the request's device tokens"""

    def __init__(self, outcomes: List[DeliveryOutcome]):
        self.outcomes = list(outcomes)

    @property
    def sent_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.sent)

    @property
    def failed_count(self) -> int:
        return len(self.outcomes) - self.sent_count

    @property
    def overall_success(self) -> bool:
        """True when at least one device was reached"""
        return self.sent_count > 0

    @property
    def message(self) -> str:
        if self.outcomes and self.failed_count == 0:
            return "Notification sent successfully"
        if self.overall_success:
            return "Notification partially sent"
        return "Notification delivery failed"

    def to_dict(self) -> dict:
        """Serialize to the API response body"""
        return {
            'success': self.overall_success,
            'message': self.message,
            'sent_to': len(self.outcomes),
            'delivered': self.sent_count,
            'failed': self.failed_count,
            'outcomes': [outcome.to_dict() for outcome in self.outcomes]
        }
