import os
import logging
import secrets
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

import pydantic
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shared.errors import PersistenceError, ValidationError
from .models import Order
from .pricing import compute_total
from .schemas import OrderCreateIn

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = os.getenv("ORDER_NUMBER_PREFIX", "TR")

# no 0/O, 1/I/L: customers type this into free-text payment notes
_ALPHABET = "23456789ABCDEFGHJKMNPQRSTUVWXYZ"
_SUFFIX_LEN = 8
_MAX_NUMBER_ATTEMPTS = 5


def generate_order_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(_SUFFIX_LEN))
    return f"{ORDER_NUMBER_PREFIX}-{now:%y%m%d}-{suffix}"


def validate_order_fields(data: Mapping[str, Any]) -> OrderCreateIn:
    """Validate raw intake values, reporting the first failing field."""
    try:
        return OrderCreateIn.model_validate(dict(data))
    except pydantic.ValidationError as e:
        err = e.errors()[0]
        field = str(err["loc"][0]) if err.get("loc") else "form"
        raise ValidationError(field, err["msg"]) from None


def build_order(fields: OrderCreateIn) -> Order:
    return Order(
        order_number=generate_order_number(),
        plan=fields.plan,
        wordpress=fields.wordpress,
        duration=fields.duration,
        full_name=fields.full_name,
        email=str(fields.email),
        total_amount=compute_total(fields.plan, fields.wordpress, fields.duration),
        is_paid=False,
    )


def _is_number_collision(e: IntegrityError) -> bool:
    # sqlite: "UNIQUE constraint failed: orders.order_number"
    # postgres: duplicate key ... constraint "ix_orders_order_number"
    return "order_number" in str(e.orig)


def insert_order(db: Session, fields: OrderCreateIn) -> Order:
    """
    Persist a new order in a single transaction.

    An order_number collision hits the unique constraint; retry with a fresh
    number. Any other failure rolls back and leaves nothing behind.
    """
    for attempt in range(1, _MAX_NUMBER_ATTEMPTS + 1):
        order = build_order(fields)
        try:
            db.add(order)
            db.commit()
            db.refresh(order)
            logger.info("Order created number=%s total=%s", order.order_number, order.total_amount)
            return order
        except IntegrityError as e:
            db.rollback()
            if not _is_number_collision(e):
                logger.exception("Order insert rejected error=%s", repr(e))
                raise PersistenceError("Failed to create order") from e
            logger.warning("order_number collision attempt=%s number=%s", attempt, order.order_number)
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Order insert failed error=%s", repr(e))
            raise PersistenceError("Failed to create order") from e

    raise PersistenceError("Could not allocate a unique order number")


def list_orders(db: Session) -> List[Order]:
    try:
        return list(db.scalars(select(Order).order_by(Order.created_at.desc())).all())
    except SQLAlchemyError as e:
        logger.exception("Order fetch failed error=%s", repr(e))
        raise PersistenceError("Failed to fetch orders") from e


def get_order(db: Session, order_id: str) -> Optional[Order]:
    try:
        return db.get(Order, order_id)
    except SQLAlchemyError as e:
        logger.exception("Order lookup failed id=%s error=%s", order_id, repr(e))
        raise PersistenceError("Failed to fetch order") from e


def mark_order_paid(db: Session, order_id: str) -> Optional[Order]:
    """
    One-way pending -> paid transition. Returns None when the order does not
    exist; an already paid order is returned unchanged.
    """
    try:
        order = db.get(Order, order_id)
        if order is None:
            return None
        if order.is_paid:
            return order

        order.is_paid = True
        db.commit()
        db.refresh(order)
        logger.info("Order marked paid number=%s", order.order_number)
        return order
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Order update failed id=%s error=%s", order_id, repr(e))
        raise PersistenceError("Failed to update order") from e
