import os
import json
import logging
from typing import Any, Dict

import httpx

logger = logging.getLogger(__name__)

EXCHANGE = os.getenv("EVENT_EXCHANGE", "hosting.events")

# In Lambda set this to the deployed notification function URL
NOTIFY_URL_INTERNAL = os.getenv("NOTIFY_URL_INTERNAL", "http://notification:8000").rstrip("/")
SERVICE_API_KEY = os.getenv("SERVICE_API_KEY", "")
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10"))

# event_type -> notification-service function path
HTTP_ROUTES = {
    "order.created": "/notify-new-order",
}

# Reuse AWS client across invocations (Lambda-friendly)
_sqs_client = None


def publish(event_type: str, payload: Dict[str, Any], *, safe: bool = False) -> None:
    """
    Publish an event to the configured backend.

    safe=True: swallow exceptions (log only). Used for side effects that run
    after a committed write, like the new-order alert.
    """
    backend = os.getenv("EVENT_BACKEND", "http").strip().lower()  # http | rabbitmq | sqs

    try:
        if backend == "http":
            _publish_http(event_type, payload)
            return

        if backend == "rabbitmq":
            _publish_rabbitmq(event_type, payload)
            return

        if backend == "sqs":
            _publish_sqs(event_type, payload)
            return

        raise RuntimeError(f"Unsupported EVENT_BACKEND={backend}")

    except Exception as e:
        if safe:
            logger.exception("event publish failed type=%s error=%s", event_type, repr(e))
            return
        raise


def _publish_http(event_type: str, payload: Dict[str, Any]) -> None:
    path = HTTP_ROUTES.get(event_type)
    if not path:
        raise RuntimeError(f"No HTTP route for event_type={event_type}")

    headers = {"X-Service-Key": SERVICE_API_KEY} if SERVICE_API_KEY else {}
    with httpx.Client(timeout=HTTP_TIMEOUT) as client:
        r = client.post(f"{NOTIFY_URL_INTERNAL}{path}", json=payload, headers=headers)
    r.raise_for_status()
    logger.info("event delivered type=%s status=%s", event_type, r.status_code)


def _publish_rabbitmq(event_type: str, payload: Dict[str, Any]) -> None:
    # Import here so Lambda zip can omit pika if you only use SQS/HTTP
    import pika

    rabbitmq_url = os.getenv("RABBITMQ_URL")
    if not rabbitmq_url:
        raise RuntimeError("RABBITMQ_URL is not set")

    params = pika.URLParameters(rabbitmq_url)

    # Prevent Lambda from hanging too long on network issues
    params.heartbeat = int(os.getenv("RABBITMQ_HEARTBEAT", "30"))
    params.blocked_connection_timeout = float(os.getenv("RABBITMQ_BLOCKED_TIMEOUT", "5"))

    socket_timeout = os.getenv("RABBITMQ_SOCKET_TIMEOUT")
    if socket_timeout is not None:
        params.socket_timeout = float(socket_timeout)

    conn = pika.BlockingConnection(params)
    try:
        ch = conn.channel()
        ch.exchange_declare(exchange=EXCHANGE, exchange_type="topic", durable=True)

        body = json.dumps({"type": event_type, "payload": payload}).encode("utf-8")
        ch.basic_publish(
            exchange=EXCHANGE,
            routing_key=event_type,
            body=body,
            properties=pika.BasicProperties(delivery_mode=2),
        )
    finally:
        if conn.is_open:
            conn.close()


def _publish_sqs(event_type: str, payload: Dict[str, Any]) -> None:
    global _sqs_client
    import boto3

    queue_url = os.getenv("SQS_QUEUE_URL")
    if not queue_url:
        raise RuntimeError("SQS_QUEUE_URL is not set")

    if _sqs_client is None:
        _sqs_client = boto3.client("sqs")

    _sqs_client.send_message(
        QueueUrl=queue_url,
        MessageBody=json.dumps({"type": event_type, "payload": payload}),
        MessageAttributes={
            "type": {"DataType": "String", "StringValue": event_type}
        },
    )
