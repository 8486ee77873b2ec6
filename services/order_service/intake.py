"""
Order intake as explicit states:

    Form -> Submitting -> Confirmed | Failed

The new-order alert is handed to a dispatcher only after the order row is
committed. The dispatcher is fire-and-forget; its failures never turn a
created order into a failed submission.
"""
import os
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Union

import pydantic
from sqlalchemy.orm import Session

from shared.errors import InvalidInputError, PersistenceError, ValidationError
from .models import Order
from .orders import insert_order, validate_order_fields
from .pricing import compute_total, monthly_rate

logger = logging.getLogger(__name__)

PAYMENT_URL = os.getenv("PAYMENT_URL", "https://streamelements.com/jetomit_bio_offi/tip")

FORM_FIELDS = ("full_name", "email", "plan", "wordpress", "duration")

# same coercion OrderCreateIn applies, so "false" never prices the add-on
_wordpress_flag = pydantic.TypeAdapter(bool)


@dataclass(frozen=True)
class Form:
    values: Dict[str, Any] = field(default_factory=dict)

    def update(self, **changes: Any) -> "Form":
        return Form({**self.values, **changes})

    def quote(self) -> Optional[Decimal]:
        """Live total for the current values, None while they cannot be priced."""
        try:
            wordpress = _wordpress_flag.validate_python(self.values.get("wordpress", False))
            return compute_total(self.values.get("plan"), wordpress, self.values.get("duration"))
        except (pydantic.ValidationError, InvalidInputError):
            return None


@dataclass(frozen=True)
class Submitting:
    form: Form


@dataclass(frozen=True)
class PaymentInstructions:
    url: str
    amount: Decimal
    reference: str


@dataclass(frozen=True)
class Confirmed:
    order: Order
    payment: PaymentInstructions

    @property
    def monthly_rate(self) -> Decimal:
        return monthly_rate(self.order.plan, self.order.wordpress)


@dataclass(frozen=True)
class Failed:
    form: Form
    error: Union[ValidationError, PersistenceError]


IntakeState = Union[Form, Submitting, Confirmed, Failed]

Dispatch = Callable[[Dict[str, Any]], None]


def new_order_payload(order: Order) -> Dict[str, Any]:
    """Body of the notify-new-order function."""
    return {
        "orderNumber": order.order_number,
        "fullName": order.full_name,
        "email": order.email,
        "plan": order.plan,
        "wordpress": order.wordpress,
        "duration": order.duration,
        "totalAmount": float(order.total_amount),
    }


def submit(form: Form, db: Session, dispatch: Dispatch) -> Union[Confirmed, Failed]:
    state: IntakeState = Submitting(form)
    logger.info("Order submission started plan=%s", form.values.get("plan"))

    try:
        fields = validate_order_fields({k: form.values.get(k) for k in FORM_FIELDS if k in form.values})
        order = insert_order(db, fields)
    except (ValidationError, PersistenceError) as e:
        logger.info("Order submission failed error=%s", e)
        return Failed(state.form, e)

    # committed: from here on the order exists regardless of the alert
    try:
        dispatch(new_order_payload(order))
    except Exception as e:
        logger.exception("New order alert not dispatched order=%s error=%s", order.order_number, repr(e))

    return Confirmed(
        order=order,
        payment=PaymentInstructions(url=PAYMENT_URL, amount=order.total_amount, reference=order.order_number),
    )
