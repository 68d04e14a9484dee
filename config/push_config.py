"""Push provider configuration loaded once per Lambda container"""
import os
from typing import List, Optional
from aws_lambda_powertools import Logger
from utils.ssm import get_secret

logger = Logger()

# Options every deployment is expected to provide
REQUIRED_OPTIONS = ('fcm_server_key', 'apns_key_id', 'apns_team_id')

DEFAULT_PROVIDER_TIMEOUT_SECONDS = 5.0
DEFAULT_DISPATCH_TIMEOUT_SECONDS = 10.0


class PushConfig:
    """Credentials and endpoints injected into the provider adapters"""

    def __init__(
        self,
        fcm_server_key: str = "",
        apns_key_id: str = "",
        apns_team_id: str = "",
        apns_private_key: str = "",
        apns_bundle_id: str = "",
        apns_use_sandbox: bool = False,
        fcm_service_account_file: Optional[str] = None,
        provider_timeout: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS,
        dispatch_timeout: float = DEFAULT_DISPATCH_TIMEOUT_SECONDS
    ):
        self.fcm_server_key = fcm_server_key
        self.apns_key_id = apns_key_id
        self.apns_team_id = apns_team_id
        self.apns_private_key = apns_private_key
        self.apns_bundle_id = apns_bundle_id
        self.apns_use_sandbox = apns_use_sandbox
        self.fcm_service_account_file = fcm_service_account_file
        self.provider_timeout = provider_timeout
        self.dispatch_timeout = dispatch_timeout

    def missing_options(self) -> List[str]:
        """Names of required options that are empty"""
        return [name for name in REQUIRED_OPTIONS if not getattr(self, name)]

    def __repr__(self) -> str:
        # Never render secrets
        return (
            f"PushConfig(fcm_server_key={'set' if self.fcm_server_key else 'unset'}, "
            f"apns_key_id={'set' if self.apns_key_id else 'unset'}, "
            f"apns_team_id={'set' if self.apns_team_id else 'unset'}, "
            f"apns_sandbox={self.apns_use_sandbox}, "
            f"provider_timeout={self.provider_timeout}, dispatch_timeout={self.dispatch_timeout})"
        )


def _float_env(env_key: str, default: float) -> float:
    raw = os.environ.get(env_key)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {env_key}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {env_key}={raw!r}, using {default}")
        return default
    return value


def _bool_env(env_key: str) -> bool:
    return os.environ.get(env_key, '').strip().lower() in ('1', 'true', 'yes')


def load_push_config() -> PushConfig:
    """
    Build the push configuration from environment variables

    Each credential variable may hold either the value itself or an SSM
    parameter path, which is resolved with decryption.

    Returns:
        PushConfig for this process
    """
    config = PushConfig(
        fcm_server_key=get_secret('FCM_SERVER_KEY'),
        apns_key_id=get_secret('APNS_KEY_ID'),
        apns_team_id=get_secret('APNS_TEAM_ID'),
        # .p8 keys are often stored with escaped newlines
        apns_private_key=get_secret('APNS_PRIVATE_KEY').replace('\\n', '\n'),
        apns_bundle_id=get_secret('APNS_BUNDLE_ID'),
        apns_use_sandbox=_bool_env('APNS_USE_SANDBOX'),
        fcm_service_account_file=os.environ.get('FCM_SERVICE_ACCOUNT_FILE') or None,
        provider_timeout=_float_env('PUSH_PROVIDER_TIMEOUT_SECONDS', DEFAULT_PROVIDER_TIMEOUT_SECONDS),
        dispatch_timeout=_float_env('PUSH_DISPATCH_TIMEOUT_SECONDS', DEFAULT_DISPATCH_TIMEOUT_SECONDS)
    )

    missing = config.missing_options()
    if missing:
        logger.warning(f"⚠️ Push configuration incomplete, missing: {', '.join(missing)}")
    else:
        logger.info(f"✅ Push configuration loaded: {config!r}")

    return config
