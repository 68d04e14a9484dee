"""SSM parameter helper with caching and SecureString support."""
import os
import boto3
from aws_lambda_powertools import Logger

logger = Logger()
_ssm_client = None
_cache = {}


def _client():
    global _ssm_client
    if _ssm_client is None:
        _ssm_client = boto3.client('ssm')
    return _ssm_client


def _parameter_prefix() -> str:
    return os.environ.get('SSM_PARAMETER_PREFIX', '/push-notifications/')


def _resolve_ssm(value: str) -> str:
    if not value:
        return value
    if not value.startswith(_parameter_prefix()):
        return value
    if value in _cache:
        return _cache[value]
    try:
        resp = _client().get_parameter(Name=value, WithDecryption=True)
        resolved = resp.get("Parameter", {}).get("Value", "")
        _cache[value] = resolved
        return resolved
    except Exception as e:
        logger.error(f"Failed to read SSM parameter {value}: {str(e)}")
        return ""


def get_secret(env_key: str, default: str = "") -> str:
    """Read env var; if it looks like an SSM path, resolve it."""
    raw = os.environ.get(env_key, default)
    return _resolve_ssm(raw)


def clear_cache():
    """Forget resolved parameters (used on config reload and in tests)"""
    _cache.clear()
