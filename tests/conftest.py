import os
import tempfile

# Service modules read their settings at import time
_tmp = tempfile.mkdtemp(prefix="hosting-orders-")
os.environ["DATABASE_URL"] = f"sqlite:///{_tmp}/test.db"
os.environ.pop("ORDERS_DATABASE_URL", None)
os.environ["JWT_SECRET"] = "test-secret"
os.environ["AUTH_SESSION_BACKOFF"] = "0"
os.environ["SERVICE_API_KEY"] = ""
os.environ["OPERATOR_EMAIL"] = "operator@example.com"

from datetime import datetime, timedelta, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402

from auth_service import db as auth_db  # noqa: E402
from order_service import db as order_db  # noqa: E402
from order_service.models import Order  # noqa: E402


@pytest.fixture(autouse=True)
def _tables():
    order_db.init_schema()
    auth_db.init_schema()
    yield
    order_db.Base.metadata.drop_all(bind=order_db.engine)
    auth_db.Base.metadata.drop_all(bind=auth_db.engine)


@pytest.fixture
def db():
    session = order_db.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_order(db):
    counter = {"n": 0}
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def _make(**kw):
        counter["n"] += 1
        n = counter["n"]
        values = dict(
            order_number=f"TR-250101-TEST{n:04d}",
            plan="basic",
            wordpress=False,
            duration=1,
            full_name=f"Customer {n}",
            email=f"customer{n}@example.com",
            total_amount=Decimal("2.00"),
            is_paid=False,
            created_at=base + timedelta(minutes=n),
        )
        values.update(kw)
        order = Order(**values)
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    return _make
