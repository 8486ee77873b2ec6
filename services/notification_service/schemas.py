from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class NewOrderIn(BaseModel):
    orderNumber: str = Field(min_length=1)
    fullName: str = Field(min_length=1)
    email: EmailStr
    plan: str
    wordpress: bool
    duration: int = Field(gt=0)
    totalAmount: float = Field(ge=0)


class StatusEmailIn(BaseModel):
    status: str
    reason: Optional[str] = None
