"""
Queue entry point for notification-service.

Messages are the envelopes shared.events puts on SQS:

    {"type": "order.created", "payload": {...}}

where the payload has the same shape /notify-new-order accepts.
"""
import json
import logging
from typing import Any, Dict, List, Tuple

import pydantic

from shared.errors import InvalidInputError
from .dispatcher import send_new_order_alert
from .schemas import NewOrderIn

logger = logging.getLogger(__name__)


def handle_event(event_type: str, payload: Dict[str, Any]) -> None:
    if event_type != "order.created":
        logger.info("Ignoring event_type=%s", event_type)
        return

    try:
        alert = NewOrderIn.model_validate(payload)
    except pydantic.ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(p) for p in err.get("loc", ()))
        raise InvalidInputError(f"Bad order.created payload field={field}: {err['msg']}") from None

    send_new_order_alert(alert.model_dump(mode="json"))


def read_envelope(raw: Any) -> Tuple[str, Dict[str, Any]]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise InvalidInputError("Message body is not JSON") from None
    if not isinstance(raw, dict):
        raise InvalidInputError("Message body is not an object")

    event_type, payload = raw.get("type"), raw.get("payload")
    if not isinstance(event_type, str) or not isinstance(payload, dict):
        raise InvalidInputError("Message needs a string type and an object payload")
    return event_type, payload


def handle_batch(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Process one SQS batch. Only the failed message ids are returned, so SQS
    redelivers those (and eventually dead-letters them) and nothing else.
    """
    failed: List[str] = []
    for record in records:
        message_id = record.get("messageId", "")
        try:
            handle_event(*read_envelope(record.get("body")))
        except InvalidInputError as e:
            logger.warning("Rejected message id=%s reason=%s", message_id, e)
            failed.append(message_id)
        except Exception as e:
            logger.exception("Failed message id=%s error=%s", message_id, repr(e))
            failed.append(message_id)

    logger.info("SQS batch size=%s failed=%s", len(records), len(failed))
    return {"batchItemFailures": [{"itemIdentifier": m} for m in failed if m]}


def lambda_handler(event: Any, context: Any) -> Dict[str, Any]:
    if isinstance(event, dict) and isinstance(event.get("Records"), list):
        return handle_batch(event["Records"])

    # direct invoke with a bare envelope
    try:
        handle_event(*read_envelope(event))
    except InvalidInputError as e:
        logger.warning("Unsupported event: %s", e)
        return {"ok": False, "error": str(e)}
    return {"ok": True, "source": "direct"}
