"""Partitioning of device tokens into per-platform provider batches"""
from typing import Dict, List, Tuple
from models.notification import DeliveryOutcome, NotificationRequest
from services.push_provider import PushProvider

UNSUPPORTED_PLATFORM = "unsupported platform"


class ProviderBatch:
    """Tokens of one platform and the provider that will deliver them"""

    def __init__(self, platform: str, provider: PushProvider):
        self.platform = platform
        self.provider = provider
        self.entries: List[Tuple[int, str]] = []

    @property
    def indexes(self) -> List[int]:
        return [index for index, _ in self.entries]

    @property
    def tokens(self) -> List[str]:
        return [token for _, token in self.entries]


class RoutingPlan:
    """Provider batches plus outcomes already decided for unroutable tokens"""

    def __init__(self):
        self.batches: List[ProviderBatch] = []
        self.rejected: Dict[int, DeliveryOutcome] = {}


class PlatformRouter:
    """Selects the registered provider for each platform present in a request"""

    def __init__(self, providers: Dict[str, PushProvider]):
        self.providers = dict(providers)

    def route(self, request: NotificationRequest) -> RoutingPlan:
        """
        Group the request's tokens by platform, preserving input order

        Args:
            request: Validated notification request

        Returns:
            RoutingPlan with one batch per platform that has a provider
        """
        plan = RoutingPlan()
        batches: Dict[str, ProviderBatch] = {}

        for index, device in enumerate(request.device_tokens):
            provider = self.providers.get(device.platform)
            if provider is None:
                plan.rejected[index] = DeliveryOutcome.failure(
                    device.token, device.platform, UNSUPPORTED_PLATFORM
                )
                continue

            batch = batches.get(device.platform)
            if batch is None:
                batch = ProviderBatch(device.platform, provider)
                batches[device.platform] = batch
                plan.batches.append(batch)
            batch.entries.append((index, device.token))

        return plan
