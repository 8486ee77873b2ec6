import os
import asyncio
import logging

from fastapi import FastAPI, Depends, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.errors import DeliveryError, PersistenceError, ValidationError
from .db import SessionLocal
from .dispatcher import broadcast_status, check_status_request, send_new_order_alert
from .recipients import paid_customer_emails
from .schemas import NewOrderIn, StatusEmailIn

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

SERVICE_API_KEY = os.getenv("SERVICE_API_KEY", "")

app = FastAPI(title="notification-service")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type", "x-service-key"],
)


def require_service_key(x_service_key: str = Header(default="")) -> None:
    # open when no key is configured (local/dev)
    if SERVICE_API_KEY and x_service_key != SERVICE_API_KEY:
        raise HTTPException(status_code=401, detail="Invalid service key")

@app.exception_handler(RequestValidationError)
async def _bad_body(request: Request, exc: RequestValidationError):
    err = exc.errors()[0] if exc.errors() else {}
    loc = [str(p) for p in err.get("loc", ()) if p != "body"]
    return JSONResponse(status_code=400, content={"error": err.get("msg", "Invalid request"), "field": ".".join(loc)})

@app.exception_handler(ValidationError)
async def _invalid(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": exc.message, "field": exc.field})

@app.post("/notify-new-order", dependencies=[Depends(require_service_key)])
async def notify_new_order(payload: NewOrderIn):
    logger.info("New order notification order=%s", payload.orderNumber)
    try:
        await asyncio.to_thread(send_new_order_alert, payload.model_dump(mode="json"))
    except DeliveryError as e:
        logger.error("notify-new-order failed: %s", e)
        return JSONResponse(status_code=500, content={"error": e.message})

    return {"message": "Order notification sent successfully"}

def _load_recipients():
    with SessionLocal() as db:
        return paid_customer_emails(db)

@app.post("/send-status-email", dependencies=[Depends(require_service_key)])
async def send_status_email(payload: StatusEmailIn):
    logger.info("Status email request status=%s", payload.status)
    reason = check_status_request(payload.status, payload.reason)

    try:
        emails = await asyncio.to_thread(_load_recipients)
    except PersistenceError as e:
        return JSONResponse(status_code=500, content={"error": e.message})

    if not emails:
        return {"message": "No paid orders found", "successful": 0, "failed": 0, "totalEmails": 0}

    result = await broadcast_status(payload.status, reason, emails)
    return {"message": "Status emails sent", **result.as_dict()}

@app.get("/health")
def health():
    return {"ok": True}
