"""Fan-out of a notification to the platform providers and fan-in of their outcomes"""
import concurrent.futures
import time
from typing import Dict, List
from aws_lambda_powertools import Logger
from config.push_config import DEFAULT_DISPATCH_TIMEOUT_SECONDS, PushConfig
from models.notification import DeliveryOutcome, DispatchResult, NotificationRequest, Platform
from services.apns_provider import ApnsProvider
from services.fcm_provider import FcmProvider
from services.firebase_provider import FirebaseProvider
from services.platform_router import PlatformRouter, ProviderBatch
from services.push_provider import PushProvider

logger = Logger()


class DispatchCoordinator:
    """Sends a validated notification to every device token of the request"""

    def __init__(
        self,
        providers: Dict[str, PushProvider],
        dispatch_timeout: float = DEFAULT_DISPATCH_TIMEOUT_SECONDS
    ):
        self.router = PlatformRouter(providers)
        self.dispatch_timeout = dispatch_timeout

    @classmethod
    def from_config(cls, config: PushConfig) -> "DispatchCoordinator":
        """Build the default provider registry from the push configuration"""
        if config.fcm_service_account_file:
            android = FirebaseProvider(
                service_account_file=config.fcm_service_account_file,
                timeout=config.provider_timeout
            )
        else:
            android = FcmProvider(server_key=config.fcm_server_key, timeout=config.provider_timeout)

        ios = ApnsProvider(
            key_id=config.apns_key_id,
            team_id=config.apns_team_id,
            private_key=config.apns_private_key,
            bundle_id=config.apns_bundle_id,
            use_sandbox=config.apns_use_sandbox,
            timeout=config.provider_timeout
        )

        return cls(
            providers={Platform.ANDROID: android, Platform.IOS: ios},
            dispatch_timeout=config.dispatch_timeout
        )

    def dispatch(self, request: NotificationRequest) -> DispatchResult:
        """
        Deliver the notification through every required provider concurrently

        Args:
            request: Validated notification request

        Returns:
            DispatchResult with one outcome per device token, in request order
        """
        logger.info(
            f"📱 Dispatching '{request.type}' notification for user {request.user_id}: "
            f"{len(request.device_tokens)} devices {request.platform_counts()}"
        )

        plan = self.router.route(request)
        outcomes_by_index: Dict[int, DeliveryOutcome] = dict(plan.rejected)

        if plan.rejected:
            logger.warning(f"⚠️ {len(plan.rejected)} devices on unsupported platforms")

        if plan.batches:
            start_time = time.time()
            for batch, outcomes in self._run_batches(plan.batches, request):
                for index, outcome in zip(batch.indexes, outcomes):
                    outcomes_by_index[index] = outcome
            logger.info(f"Provider calls finished in {time.time() - start_time:.2f}s")

        result = DispatchResult([outcomes_by_index[i] for i in range(len(request.device_tokens))])
        logger.info(
            f"Dispatch complete for user {request.user_id}: "
            f"sent={result.sent_count}, failed={result.failed_count}"
        )
        return result

    def _run_batches(self, batches: List[ProviderBatch], request: NotificationRequest):
        """Run every batch in its own thread and collect (batch, outcomes) pairs"""
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=len(batches))
        try:
            future_to_batch = {
                executor.submit(
                    batch.provider.send,
                    batch.tokens,
                    request.title,
                    request.body,
                    request.type,
                    request.target_id
                ): batch
                for batch in batches
            }

            done, _ = concurrent.futures.wait(future_to_batch, timeout=self.dispatch_timeout)

            results = []
            for future, batch in future_to_batch.items():
                results.append((batch, self._collect(future, batch, future in done)))
            return results
        finally:
            # Provider calls still in flight are left to finish on their own
            executor.shutdown(wait=False)

    def _collect(self, future, batch: ProviderBatch, finished: bool) -> List[DeliveryOutcome]:
        provider = batch.provider
        if not finished:
            logger.error(
                f"❌ {provider.name} did not answer within {self.dispatch_timeout}s, "
                f"failing {len(batch.entries)} devices"
            )
            return provider.fail_all(batch.tokens, f"{provider.name} timed out")

        try:
            outcomes = future.result()
        except Exception as e:
            logger.error(f"❌ {provider.name} raised while sending: {str(e)}", exc_info=True)
            return provider.fail_all(batch.tokens, f"{provider.name} request failed")

        if len(outcomes) != len(batch.entries):
            logger.error(f"❌ {provider.name} returned {len(outcomes)} outcomes for {len(batch.entries)} devices")
            return provider.fail_all(batch.tokens, f"{provider.name} returned an incomplete result")

        return outcomes
