"""Validation of inbound notification requests"""
from typing import Any
from models.notification import DeviceToken, NotificationRequest, Platform


class InvalidRequestError(Exception):
    """Raised when the notification request is missing fields or malformed"""


def _required_string(payload: dict, field: str) -> str:
    value = payload.get(field)
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequestError(f"Missing required field: {field}")
    return value


def _optional_string(payload: dict, field: str, default=None):
    value = payload.get(field)
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidRequestError(f"Field {field} must be a string")
    return value


def _parse_device_token(entry: Any, position: int) -> DeviceToken:
    if not isinstance(entry, dict):
        raise InvalidRequestError(f"device_tokens[{position}] must be an object")

    token = entry.get('token')
    if not isinstance(token, str) or not token.strip():
        raise InvalidRequestError(f"device_tokens[{position}] is missing a token")

    # Unknown platforms are routed to OTHER instead of failing the batch
    return DeviceToken(token=token.strip(), platform=Platform.normalize(entry.get('platform')))


def parse_notification_request(payload: Any) -> NotificationRequest:
    """
    Build a NotificationRequest from a decoded JSON payload

    Args:
        payload: Decoded request body

    Returns:
        NotificationRequest

    Raises:
        InvalidRequestError: If required fields are missing or malformed
    """
    if not isinstance(payload, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    user_id = _required_string(payload, 'user_id')
    title = _required_string(payload, 'title')
    body = _required_string(payload, 'body')
    notification_type = _optional_string(payload, 'type', default="")
    target_id = _optional_string(payload, 'target_id')

    raw_tokens = payload.get('device_tokens')
    if not isinstance(raw_tokens, list) or not raw_tokens:
        raise InvalidRequestError("Missing required field: device_tokens")

    device_tokens = [_parse_device_token(entry, i) for i, entry in enumerate(raw_tokens)]

    return NotificationRequest(
        user_id=user_id,
        title=title,
        body=body,
        type=notification_type,
        target_id=target_id or None,
        device_tokens=device_tokens
    )
