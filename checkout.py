import logging
from dataclasses import dataclass

from api_client import BackendClient
from cart import CartStore
from settings import CHECKOUT_REDIRECT_DELAY

logger = logging.getLogger(__name__)


class EmptyCartError(Exception):
    pass


@dataclass
class CheckoutResult:
    order_id: int
    payment_link: str
    redirect_delay: float
    message: str

    def to_dict(self) -> dict:
        return {
            "orderId": self.order_id,
            "paymentLink": self.payment_link,
            "redirectDelay": self.redirect_delay,
            "message": self.message,
        }


def submit_order(cart: CartStore, client: BackendClient, token: str,
                 redirect_delay: float = CHECKOUT_REDIRECT_DELAY) -> CheckoutResult:
    """
    Turn the cart into an order and hand back the payment redirect.

    The cart is cleared only after the backend has accepted the order; if
    the call fails the ApiError propagates and the cart is left as it was.
    Never retried here, a second attempt could create a second order.
    """
    if cart.is_empty():
        raise EmptyCartError("Your cart is empty. Add games before checking out.")

    res = client.create_order(token, cart.to_order_input())
    cart.clear_cart()
    logger.info("Order %s created, redirecting to payment", res.order_id)
    return CheckoutResult(
        order_id=res.order_id,
        payment_link=res.payment_link,
        redirect_delay=redirect_delay,
        message=f"Order #{res.order_id} created. Redirecting to payment...",
    )
