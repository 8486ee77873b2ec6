from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .pricing import MAX_DURATION_MONTHS

Plan = Literal["basic", "pro"]
StatusFilter = Literal["all", "paid", "pending"]
HostingStatus = Literal["online", "offline", "maintenance"]


class OrderCreateIn(BaseModel):
    full_name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    plan: Plan
    wordpress: bool = False
    duration: int = Field(gt=0, le=MAX_DURATION_MONTHS)

    @field_validator("full_name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("duration", mode="before")
    @classmethod
    def duration_not_bool(cls, v):
        if isinstance(v, bool):
            raise ValueError("Duration must be a whole number of months")
        return v


class QuoteIn(BaseModel):
    plan: Plan
    wordpress: bool = False
    duration: int = Field(gt=0, le=MAX_DURATION_MONTHS)


class QuoteOut(BaseModel):
    plan: str
    wordpress: bool
    duration: int
    monthly_rate: float
    total_amount: float
    currency: str


class PlanOut(BaseModel):
    plan: str
    monthly_rate: float
    currency: str


class OrderOut(BaseModel):
    id: str
    order_number: str
    plan: str
    wordpress: bool
    duration: int
    full_name: str
    email: str
    total_amount: float
    is_paid: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentInstructionsOut(BaseModel):
    url: str
    amount: float
    currency: str
    reference: str


class OrderConfirmationOut(BaseModel):
    order: OrderOut
    monthly_rate: float
    payment: PaymentInstructionsOut


class OrderStatsOut(BaseModel):
    total: int
    paid: int
    pending: int
    revenue: float


class OrderListOut(BaseModel):
    orders: list[OrderOut]
    stats: OrderStatsOut


class BroadcastIn(BaseModel):
    status: HostingStatus
    reason: Optional[str] = None


class BroadcastOut(BaseModel):
    successful: int
    failed: int
    totalEmails: int
