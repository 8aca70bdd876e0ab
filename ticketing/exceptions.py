# ticketing/exceptions.py
from typing import Any, Dict, Optional

from ticketing.config import SUPPORT_EMAIL


class TicketingError(Exception):
    """Base class for every failure the service reports to a caller."""

    status_code = 500
    message = "Something went wrong."

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, **self.extra}


# Bad input, rejected immediately and never retried.
class ValidationError(TicketingError):
    status_code = 400
    message = "Invalid request."


class EmptyCart(ValidationError):
    message = "Cart is empty."


class MissingBuyerEmail(ValidationError):
    message = "Buyer email is required."


class CurrencyMismatch(ValidationError):
    message = "All items must be in the same currency."


class UnsupportedCurrency(ValidationError):
    message = "Currency is not supported by the payment gateway."


class InvalidAmount(ValidationError):
    message = "Invalid total amount."


class UnknownEvent(ValidationError):
    message = "Event not found."


class UnknownTicketType(ValidationError):
    message = "Ticket type not found."


class PriceMismatch(ValidationError):
    message = "Ticket price has changed. Please refresh your cart."


class SoldOut(ValidationError):
    message = "Not enough tickets left."


class MaxPerOrderExceeded(ValidationError):
    message = "Too many tickets of this type in one order."


class InvalidQrPayload(ValidationError):
    message = "Unreadable ticket code."


# Payment gateway
class GatewayError(TicketingError):
    status_code = 502
    message = "Payment gateway error."


class GatewayInitFailed(GatewayError):
    message = "Could not start the payment. Please try again."


class GatewayVerifyFailed(GatewayError):
    message = "Could not verify the payment."


class MissingCredential(GatewayError):
    status_code = 500
    message = "Payment gateway secret is not configured."


class SignatureError(TicketingError):
    status_code = 401
    message = "Invalid signature."


class InvalidSignature(SignatureError):
    pass


# Storage
class StoreError(TicketingError):
    status_code = 503
    message = "Storage backend unavailable."


class ConflictError(StoreError):
    """A transaction kept colliding with concurrent writes and ran out of attempts."""

    status_code = 409
    message = "Too many concurrent updates. Please retry."


class OrderNotFound(TicketingError):
    status_code = 404
    message = "Order not found."


class ReconciliationFailed(TicketingError):
    """Payment is confirmed but the order could not be settled."""

    status_code = 500

    def __init__(self, order_id: str, reference: str):
        super().__init__(
            f"Your payment was received but we could not issue your tickets yet. "
            f"Contact {SUPPORT_EMAIL} with order {order_id} (reference {reference}).",
            orderId=order_id,
            reference=reference,
        )
        self.order_id = order_id
        self.reference = reference


# Redemption and ownership
class TicketNotFound(TicketingError):
    status_code = 404
    message = "Ticket not found."


class NotAuthorized(TicketingError):
    status_code = 403
    message = "Not authorized for this ticket."


class InvalidTicket(TicketingError):
    status_code = 409
    message = "Ticket is not valid for this action."


class AccessInviteNotFound(TicketingError):
    status_code = 404
    message = "Invite not found."


# Catalogue management
class EventNotFound(TicketingError):
    status_code = 404
    message = "Event not found."
