import os
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

import httpx
from fastapi import FastAPI, Body, Depends, HTTPException, BackgroundTasks, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from shared.errors import ValidationError, register_error_handlers
from shared.events import publish
from .db import SessionLocal, init_schema
from .dashboard import OrderBoard, validate_broadcast
from .guard import require_admin_session
from .intake import Confirmed, Form, submit
from .models import Order
from .orders import get_order, list_orders, mark_order_paid
from .pricing import CURRENCY, compute_total, list_plans, monthly_rate
from .schemas import (
    BroadcastIn, BroadcastOut, OrderConfirmationOut, OrderListOut, OrderOut,
    OrderStatsOut, PaymentInstructionsOut, PlanOut, QuoteIn, QuoteOut,
    StatusFilter,
)
from . import upstream

logger = logging.getLogger(__name__)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Keep cold start lightweight for Lambda.
    Schema creation only when INIT_SCHEMA=true (local/dev).
    """
    if os.getenv("INIT_SCHEMA", "false").lower() == "true":
        init_schema()
    client = httpx.AsyncClient(timeout=upstream.HTTP_TIMEOUT)
    upstream.set_http_client(client)
    yield
    try:
        await client.aclose()
    finally:
        upstream.set_http_client(None)


app = FastAPI(title="order-service", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in prod
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


def to_out(o: Order) -> OrderOut:
    return OrderOut.model_validate(o)


def to_confirmation(state: Confirmed) -> OrderConfirmationOut:
    return OrderConfirmationOut(
        order=to_out(state.order),
        monthly_rate=float(state.monthly_rate),
        payment=PaymentInstructionsOut(
            url=state.payment.url,
            amount=float(state.payment.amount),
            currency=CURRENCY,
            reference=state.payment.reference,
        ),
    )


# Public landing page
@app.get("/plans", response_model=list[PlanOut])
def plans():
    return [PlanOut(plan=p["plan"], monthly_rate=float(p["monthly_rate"]), currency=p["currency"]) for p in list_plans()]


@app.post("/orders/quote", response_model=QuoteOut)
def quote(payload: QuoteIn):
    total = compute_total(payload.plan, payload.wordpress, payload.duration)
    return QuoteOut(
        plan=payload.plan,
        wordpress=payload.wordpress,
        duration=payload.duration,
        monthly_rate=float(monthly_rate(payload.plan, payload.wordpress)),
        total_amount=float(total),
        currency=CURRENCY,
    )


@app.post("/orders", status_code=201, response_model=OrderConfirmationOut)
def create_order(
    background_tasks: BackgroundTasks,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
):
    def dispatch(alert: Dict[str, Any]) -> None:
        # Runs after the response; publish(safe=True) only logs failures
        background_tasks.add_task(publish, "order.created", alert, safe=True)

    result = submit(Form(payload), db, dispatch)

    if isinstance(result, Confirmed):
        return to_confirmation(result)

    err = result.error
    if isinstance(err, ValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": err.message, "field": err.field, "values": result.form.values},
        )
    return JSONResponse(status_code=500, content={"error": err.message})


# Admin dashboard
@app.get("/admin/orders", response_model=OrderListOut)
def admin_list(
    search: str = Query(default=""),
    status: StatusFilter = Query(default="all"),
    session: dict = Depends(require_admin_session),
    db: Session = Depends(get_db),
):
    board = OrderBoard(list_orders(db))
    stats = board.stats
    return OrderListOut(
        orders=[to_out(o) for o in board.view(search, status)],
        stats=OrderStatsOut(
            total=stats.total,
            paid=stats.paid,
            pending=stats.pending,
            revenue=float(stats.revenue),
        ),
    )


@app.get("/admin/orders/{order_id}", response_model=OrderOut)
def admin_get(order_id: str, session: dict = Depends(require_admin_session), db: Session = Depends(get_db)):
    order = get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Not found")
    return to_out(order)


@app.post("/admin/orders/{order_id}/pay", response_model=OrderOut)
def admin_mark_paid(order_id: str, session: dict = Depends(require_admin_session), db: Session = Depends(get_db)):
    order = mark_order_paid(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Not found")
    logger.info("Order %s marked paid by %s", order.order_number, session.get("email"))
    return to_out(order)


@app.post("/admin/status-broadcast", response_model=BroadcastOut)
async def admin_broadcast(payload: BroadcastIn, session: dict = Depends(require_admin_session)):
    reason = validate_broadcast(payload.status, payload.reason)
    result = await upstream.request_status_broadcast(payload.status, reason)
    logger.info(
        "Status broadcast status=%s successful=%s failed=%s",
        payload.status, result.get("successful"), result.get("failed"),
    )
    return BroadcastOut(
        successful=int(result.get("successful", 0)),
        failed=int(result.get("failed", 0)),
        totalEmails=int(result.get("totalEmails", 0)),
    )


@app.get("/health")
def health():
    return {"ok": True}
