import os
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from shared.errors import ValidationError
from . import emailer
from .templates import STATUS_SUBJECTS, new_order_alert, status_email

logger = logging.getLogger(__name__)

OPERATOR_EMAIL = os.getenv("OPERATOR_EMAIL", "orders@localhost")
ORDERS_FROM = os.getenv("ORDERS_FROM_EMAIL") or None
STATUS_FROM = os.getenv("STATUS_FROM_EMAIL") or None


@dataclass(frozen=True)
class BroadcastResult:
    successful: int
    failed: int
    total_emails: int

    def as_dict(self) -> Dict[str, int]:
        return {"successful": self.successful, "failed": self.failed, "totalEmails": self.total_emails}


def send_new_order_alert(order: Dict[str, Any]) -> None:
    subject, html = new_order_alert(order)
    emailer.send_email(OPERATOR_EMAIL, subject, html, from_email=ORDERS_FROM)
    logger.info("Sent new order alert order=%s", order.get("orderNumber"))


def check_status_request(status: str, reason: Optional[str]) -> Optional[str]:
    if status not in STATUS_SUBJECTS:
        raise ValidationError("status", f"Unknown hosting status: {status}")
    reason = (reason or "").strip() or None
    if status == "offline" and not reason:
        raise ValidationError("reason", "A reason is required when the hosting is offline")
    return reason


def unique_recipients(emails: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for e in emails:
        key = (e or "").strip().lower()
        if key and key not in seen:
            seen.add(key)
            out.append(e.strip())
    return out


async def broadcast_status(status: str, reason: Optional[str], recipients: Iterable[str]) -> BroadcastResult:
    """
    One email per unique address, all sent concurrently. Every send is
    awaited; individual failures are counted, never re-raised.
    """
    reason = check_status_request(status, reason)
    subject, html = status_email(status, reason)
    targets = unique_recipients(recipients)

    results = await asyncio.gather(
        *(asyncio.to_thread(emailer.send_email, to, subject, html, STATUS_FROM) for to in targets),
        return_exceptions=True,
    )

    failed = 0
    for to, res in zip(targets, results):
        if isinstance(res, BaseException):
            failed += 1
            logger.error("Status email to %s failed: %r", to, res)

    result = BroadcastResult(successful=len(targets) - failed, failed=failed, total_emails=len(targets))
    logger.info("Status broadcast status=%s successful=%s failed=%s", status, result.successful, result.failed)
    return result
