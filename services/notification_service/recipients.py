import logging
from typing import List

from sqlalchemy import column, select, table, true
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.errors import PersistenceError

logger = logging.getLogger(__name__)

# Only the columns this service reads; order-service owns the table
orders = table("orders", column("email"), column("is_paid"))


def paid_customer_emails(db: Session) -> List[str]:
    """Distinct addresses of every customer with at least one paid order."""
    stmt = (
        select(orders.c.email)
        .where(orders.c.is_paid == true())
        .distinct()
        .order_by(orders.c.email)
    )
    try:
        return [row for row in db.scalars(stmt).all() if row]
    except SQLAlchemyError as e:
        logger.exception("Recipient lookup failed error=%s", repr(e))
        raise PersistenceError("Failed to fetch paid orders") from e
