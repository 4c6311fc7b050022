# app/core/order_status.py
"""
Order status vocabulary and state machine.

`OrderStatus` is the single canonical representation; it is what gets
persisted in `orders.status`. The public tracking endpoint speaks a second
vocabulary (`TrackingStatus`), and the helpers below are the only place the
two are translated.

Flow (system tokens):

    pending_admin_review -> invoice_sent -> invoice_accepted
        -> [paypal_credentials_shared -> payment_pending]
        -> payment_submitted -> payment_verified | payment_rejected
        -> confirmed -> shipped -> delivered

`cancelled` is reachable from every non-terminal status.
"""
from enum import Enum


class OrderStatus(str, Enum):
    PENDING_ADMIN_REVIEW = "pending_admin_review"
    INVOICE_SENT = "invoice_sent"
    INVOICE_ACCEPTED = "invoice_accepted"
    INVOICE_DECLINED = "invoice_declined"
    PAYPAL_CREDENTIALS_SHARED = "paypal_credentials_shared"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_SUBMITTED = "payment_submitted"
    PAYMENT_VERIFIED = "payment_verified"
    PAYMENT_REJECTED = "payment_rejected"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    SHIPPED = "shipped"
    DELIVERED = "delivered"


class TrackingStatus(str, Enum):
    CHECKOUT_REQUEST = "checkout_request"
    INVOICE_GENERATED = "invoice_generated"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    PAYPAL_SHARED = "paypal_shared"
    PAYMENT_SUBMITTED = "payment_submitted"
    VERIFIED = "verified"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    VERIFIED = "verified"
    FAILED = "failed"


_SYSTEM_VALUES = frozenset(s.value for s in OrderStatus)
_TRACKING_VALUES = frozenset(s.value for s in TrackingStatus)
PAYMENT_STATUS_VALUES = frozenset(s.value for s in PaymentStatus)

_TRACKING_TO_SYSTEM: dict[TrackingStatus, OrderStatus] = {
    TrackingStatus.CHECKOUT_REQUEST: OrderStatus.PENDING_ADMIN_REVIEW,
    TrackingStatus.INVOICE_GENERATED: OrderStatus.INVOICE_SENT,
    TrackingStatus.ACCEPTED: OrderStatus.INVOICE_ACCEPTED,
    TrackingStatus.DECLINED: OrderStatus.INVOICE_DECLINED,
    TrackingStatus.PAYPAL_SHARED: OrderStatus.PAYPAL_CREDENTIALS_SHARED,
    TrackingStatus.PAYMENT_SUBMITTED: OrderStatus.PAYMENT_SUBMITTED,
    TrackingStatus.VERIFIED: OrderStatus.PAYMENT_VERIFIED,
    TrackingStatus.CONFIRMED: OrderStatus.CONFIRMED,
    TrackingStatus.CANCELLED: OrderStatus.CANCELLED,
}

# Derived from the forward table so the two can never drift apart.
# payment_pending has no tracking token of its own and folds into paypal_shared.
_SYSTEM_TO_TRACKING: dict[OrderStatus, TrackingStatus] = {
    system: tracking for tracking, system in _TRACKING_TO_SYSTEM.items()
}
_SYSTEM_TO_TRACKING[OrderStatus.PAYMENT_PENDING] = TrackingStatus.PAYPAL_SHARED

# System statuses whose round trip through the tracking vocabulary is lossy.
LOSSY_SYSTEM_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.PAYMENT_PENDING})

# Declared order of the tracking steps (declined/cancelled are off-path).
TRACKING_STEP_ORDER: tuple[TrackingStatus, ...] = (
    TrackingStatus.CHECKOUT_REQUEST,
    TrackingStatus.INVOICE_GENERATED,
    TrackingStatus.ACCEPTED,
    TrackingStatus.PAYPAL_SHARED,
    TrackingStatus.PAYMENT_SUBMITTED,
    TrackingStatus.VERIFIED,
    TrackingStatus.CONFIRMED,
)

TRACKING_STEP_DESCRIPTIONS: dict[TrackingStatus, str] = {
    TrackingStatus.CHECKOUT_REQUEST: "Checkout request placed",
    TrackingStatus.INVOICE_GENERATED: "Invoice generated by admin",
    TrackingStatus.ACCEPTED: "User accepted invoice",
    TrackingStatus.PAYPAL_SHARED: "PayPal credentials shared",
    TrackingStatus.PAYMENT_SUBMITTED: "User payment submitted",
    TrackingStatus.VERIFIED: "Admin verification completed",
    TrackingStatus.CONFIRMED: "Order confirmed",
}

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
)

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING_ADMIN_REVIEW: frozenset(
        {OrderStatus.INVOICE_SENT, OrderStatus.CANCELLED}
    ),
    OrderStatus.INVOICE_SENT: frozenset(
        {
            OrderStatus.INVOICE_SENT,
            OrderStatus.INVOICE_ACCEPTED,
            OrderStatus.INVOICE_DECLINED,
            OrderStatus.CANCELLED,
        }
    ),
    OrderStatus.INVOICE_ACCEPTED: frozenset(
        {
            OrderStatus.PAYPAL_CREDENTIALS_SHARED,
            OrderStatus.PAYMENT_SUBMITTED,
            OrderStatus.CANCELLED,
        }
    ),
    OrderStatus.INVOICE_DECLINED: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.PAYPAL_CREDENTIALS_SHARED: frozenset(
        {
            OrderStatus.PAYMENT_PENDING,
            OrderStatus.PAYMENT_SUBMITTED,
            OrderStatus.CANCELLED,
        }
    ),
    OrderStatus.PAYMENT_PENDING: frozenset(
        {OrderStatus.PAYMENT_SUBMITTED, OrderStatus.CANCELLED}
    ),
    OrderStatus.PAYMENT_SUBMITTED: frozenset(
        {
            OrderStatus.PAYMENT_VERIFIED,
            OrderStatus.PAYMENT_REJECTED,
            OrderStatus.CONFIRMED,
            OrderStatus.CANCELLED,
        }
    ),
    OrderStatus.PAYMENT_REJECTED: frozenset(
        {OrderStatus.PAYMENT_SUBMITTED, OrderStatus.CANCELLED}
    ),
    OrderStatus.PAYMENT_VERIFIED: frozenset(
        {OrderStatus.CONFIRMED, OrderStatus.CANCELLED}
    ),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# payment_status implied by moving an order into one of these statuses.
PAYMENT_STATUS_ON_ENTRY: dict[OrderStatus, PaymentStatus] = {
    OrderStatus.PAYMENT_VERIFIED: PaymentStatus.VERIFIED,
    OrderStatus.CONFIRMED: PaymentStatus.VERIFIED,
    OrderStatus.INVOICE_DECLINED: PaymentStatus.FAILED,
    OrderStatus.CANCELLED: PaymentStatus.FAILED,
}

# Statuses from which a customer may (re)submit payment details.
PAYABLE_STATUSES: frozenset[OrderStatus] = frozenset(
    {
        OrderStatus.INVOICE_ACCEPTED,
        OrderStatus.PAYPAL_CREDENTIALS_SHARED,
        OrderStatus.PAYMENT_PENDING,
        OrderStatus.PAYMENT_REJECTED,
    }
)


def _coerce(token: str | Enum) -> str:
    if isinstance(token, Enum):
        return token.value
    return token


def map_to_system_status(token: str | Enum) -> str:
    """
    Translate a tracking token into the persisted system token.

    Tokens that are not tracking tokens (including system tokens) pass
    through unchanged.
    """
    value = _coerce(token)
    try:
        return _TRACKING_TO_SYSTEM[TrackingStatus(value)].value
    except ValueError:
        return value


def map_from_system_status(token: str | Enum) -> str:
    """
    Translate a system token into the tracking vocabulary.

    Tokens without a tracking counterpart (shipped, delivered,
    payment_rejected) pass through unchanged.
    """
    value = _coerce(token)
    try:
        system = OrderStatus(value)
    except ValueError:
        return value
    tracking = _SYSTEM_TO_TRACKING.get(system)
    return tracking.value if tracking is not None else value


def is_known_status(token: str) -> bool:
    """True if token belongs to either vocabulary."""
    return token in _SYSTEM_VALUES or token in _TRACKING_VALUES


def parse_status(token: str | Enum) -> OrderStatus:
    """
    Accept a token from either vocabulary and return the canonical status.

    Raises:
        ValueError: if the token is in neither vocabulary.
    """
    value = _coerce(token)
    if not is_known_status(value):
        raise ValueError(f"Invalid status value: {value!r}")
    return OrderStatus(map_to_system_status(value))


def _tracking_position(token: str | Enum) -> int:
    tracking = map_from_system_status(token)
    try:
        return TRACKING_STEP_ORDER.index(TrackingStatus(tracking))
    except ValueError:
        return -1


def has_reached_status(current: str | Enum, target: str | Enum) -> bool:
    """
    Whether `current` is at or past `target` in the declared step order.

    Both arguments may come from either vocabulary. Off-path tokens
    (declined, cancelled, shipped, ...) never count as reached.
    """
    current_idx = _tracking_position(current)
    target_idx = _tracking_position(target)
    if current_idx < 0 or target_idx < 0:
        return False
    return current_idx >= target_idx


def can_transition(current: str | Enum, new: str | Enum) -> bool:
    try:
        current_status = OrderStatus(_coerce(current))
        new_status = OrderStatus(_coerce(new))
    except ValueError:
        return False
    return new_status in ALLOWED_TRANSITIONS[current_status]
