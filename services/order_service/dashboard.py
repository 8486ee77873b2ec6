import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Sequence

from shared.errors import PersistenceError, ValidationError
from .models import Order

logger = logging.getLogger(__name__)

STATUS_FILTERS = ("all", "paid", "pending")
BROADCAST_STATUSES = ("online", "offline", "maintenance")


@dataclass(frozen=True)
class OrderStats:
    total: int
    paid: int
    pending: int
    revenue: Decimal


def compute_stats(orders: Iterable[Order]) -> OrderStats:
    total = paid = 0
    revenue = Decimal("0.00")
    for o in orders:
        total += 1
        if o.is_paid:
            paid += 1
            revenue += Decimal(o.total_amount)
    return OrderStats(total=total, paid=paid, pending=total - paid, revenue=revenue)


def _matches(order: Order, needle: str) -> bool:
    return any(needle in (value or "").lower() for value in (order.full_name, order.email, order.order_number))


def filter_orders(orders: Sequence[Order], search: str = "", status: str = "all") -> List[Order]:
    if status not in STATUS_FILTERS:
        raise ValidationError("status", f"Unknown status filter: {status}")

    needle = (search or "").strip().lower()
    out = []
    for o in orders:
        if status == "paid" and not o.is_paid:
            continue
        if status == "pending" and o.is_paid:
            continue
        if needle and not _matches(o, needle):
            continue
        out.append(o)
    return out


def validate_broadcast(status: str, reason: Optional[str]) -> Optional[str]:
    """Return the cleaned reason, or raise before anything is sent."""
    if status not in BROADCAST_STATUSES:
        raise ValidationError("status", f"Unknown hosting status: {status}")

    reason = (reason or "").strip() or None
    if status == "offline" and not reason:
        raise ValidationError("reason", "A reason is required when the hosting is offline")
    return reason


class OrderBoard:
    """
    Admin view over a snapshot of orders.

    Only user actions mutate the snapshot, and only through mark_paid.
    """

    def __init__(self, orders: Sequence[Order]):
        self._orders: List[Order] = list(orders)
        self.selected: Optional[Order] = None

    @property
    def orders(self) -> List[Order]:
        return list(self._orders)

    @property
    def stats(self) -> OrderStats:
        return compute_stats(self._orders)

    def view(self, search: str = "", status: str = "all") -> List[Order]:
        return filter_orders(self._orders, search, status)

    def select(self, order_id: str) -> Optional[Order]:
        self.selected = next((o for o in self._orders if o.id == order_id), None)
        return self.selected

    def close(self) -> None:
        self.selected = None

    def mark_paid(self, order_id: str, persist: Callable[[str], object]) -> Order:
        """
        Persist first. The snapshot changes only after the write succeeded;
        on failure it stays as it was and the error propagates.
        """
        idx = next((i for i, o in enumerate(self._orders) if o.id == order_id), None)
        if idx is None:
            raise ValidationError("order_id", f"Unknown order: {order_id}")

        current = self._orders[idx]
        if current.is_paid:
            return current

        try:
            persist(order_id)
        except PersistenceError:
            logger.warning("mark paid failed id=%s", order_id)
            raise

        current.is_paid = True
        if self.selected is not None and self.selected.id == order_id:
            self.close()
        return current
