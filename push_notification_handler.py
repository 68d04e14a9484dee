"""
Lambda function to send a push notification to a user's devices
Uses AWS Lambda Power Tools for API Gateway integration

Expected body (POST /send-push-notification):
{
  "user_id": "user-123",
  "title": "New follower",
  "body": "Alex started following you",
  "type": "follow",
  "target_id": "user-456",
  "device_tokens": [
    {"token": "fcm-registration-id", "platform": "android"},
    {"token": "apns-device-token", "platform": "ios"}
  ]
}
"""
import json
from aws_lambda_powertools import Logger, Tracer, Metrics
from aws_lambda_powertools.event_handler import APIGatewayRestResolver, Response, content_types
from aws_lambda_powertools.event_handler.exceptions import ServiceError
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.typing import LambdaContext
from config.push_config import load_push_config
from services.dispatch_coordinator import DispatchCoordinator
from services.request_validator import InvalidRequestError, parse_notification_request

SERVICE_NAME = "push-notification-dispatch"
NOTIFICATION_PATH = "/send-push-notification"

logger = Logger(service=SERVICE_NAME)
tracer = Tracer(service=SERVICE_NAME)
metrics = Metrics(namespace="PushNotifications", service=SERVICE_NAME)

app = APIGatewayRestResolver()

# Providers keep their connections and credentials for the life of the container
dispatcher = DispatchCoordinator.from_config(load_push_config())


@app.post(NOTIFICATION_PATH)
@tracer.capture_method
def send_push_notification():
    """Validate the request and dispatch it to the device platforms"""
    metrics.add_metric(name="NotificationRequests", unit="Count", value=1)

    try:
        raw_body = app.current_event.decoded_body
        if not raw_body:
            metrics.add_metric(name="InvalidNotificationRequests", unit="Count", value=1)
            return {"success": False, "error": "Request body is required"}, 400
        payload = json.loads(raw_body)
    except (ValueError, RecursionError):
        logger.warning("Rejected notification request with malformed JSON")
        metrics.add_metric(name="InvalidNotificationRequests", unit="Count", value=1)
        return {"success": False, "error": "Malformed JSON body"}, 400

    try:
        request = parse_notification_request(payload)
    except InvalidRequestError as e:
        logger.warning(f"Rejected notification request: {str(e)}")
        metrics.add_metric(name="InvalidNotificationRequests", unit="Count", value=1)
        return {"success": False, "error": str(e)}, 400

    try:
        result = dispatcher.dispatch(request)
    except Exception:
        logger.error("Error sending push notification", exc_info=True)
        return {"success": False, "error": "Failed to send notification"}, 500

    metrics.add_metric(name="NotificationsSent", unit="Count", value=result.sent_count)
    metrics.add_metric(name="NotificationsFailed", unit="Count", value=result.failed_count)

    return result.to_dict(), 200


@app.route(NOTIFICATION_PATH, method=["GET", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"])
def method_not_allowed():
    """Only POST is accepted on the notification endpoint"""
    logger.warning(f"Rejected {app.current_event.http_method} {NOTIFICATION_PATH}")
    return Response(
        status_code=405,
        content_type=content_types.TEXT_PLAIN,
        body="Method not allowed"
    )


@app.exception_handler(Exception)
def handle_unexpected_error(ex: Exception):
    """Answer every unhandled fault with JSON instead of failing the invocation"""
    if isinstance(ex, ServiceError):
        # Router errors such as 404 keep their status
        return Response(
            status_code=ex.status_code,
            content_type=content_types.APPLICATION_JSON,
            body=json.dumps({"statusCode": ex.status_code, "message": ex.msg})
        )

    logger.error("Unhandled error in notification handler", exc_info=True)
    return Response(
        status_code=500,
        content_type=content_types.APPLICATION_JSON,
        body=json.dumps({"success": False, "error": "Failed to send notification"})
    )


@app.get("/health")
def get_health():
    """Health check endpoint"""
    return {"status": "healthy", "service": SERVICE_NAME}


@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@tracer.capture_lambda_handler
@metrics.log_metrics(capture_cold_start_metric=True)
def lambda_handler(event: dict, context: LambdaContext) -> dict:
    """
    Main Lambda handler function
    """
    return app.resolve(event, context)
