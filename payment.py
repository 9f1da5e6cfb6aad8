from enum import Enum
from typing import Optional

from settings import FRONTEND_URL


class PaymentOutcome(str, Enum):
    SUCCESS = "success"
    PENDING = "pending"
    FAILURE = "failure"


def classify_payment(status: Optional[str]) -> PaymentOutcome:
    if status == "approved":
        return PaymentOutcome.SUCCESS
    if status in ("pending", "in_process"):
        return PaymentOutcome.PENDING
    return PaymentOutcome.FAILURE


_VIEWS = {
    PaymentOutcome.SUCCESS: {
        "title": "Payment confirmed!",
        "message": "Your payment went through. Your game keys have been sent to your email "
                   "and are available under My Orders.",
        "actions": [("View my orders", "/orders"), ("Continue shopping", "/")],
    },
    PaymentOutcome.PENDING: {
        "title": "Payment pending",
        "message": "Your payment is still being processed. You will get an email as soon as it is confirmed.",
        "actions": [("View my orders", "/orders"), ("Back to store", "/")],
    },
    PaymentOutcome.FAILURE: {
        "title": "Payment not processed",
        "message": "We could not process your payment. Please try again or choose another payment method.",
        "actions": [("Try again", "/checkout"), ("Back to store", "/")],
    },
}


def callback_view(outcome: PaymentOutcome, base_url: str = FRONTEND_URL) -> dict:
    view = _VIEWS[outcome]
    return {
        "state": outcome.value,
        "title": view["title"],
        "message": view["message"],
        "actions": [{"label": label, "href": f"{base_url}{path}"} for label, path in view["actions"]],
    }
