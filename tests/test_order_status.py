import pytest

from app.core.order_status import (
    LOSSY_SYSTEM_STATUSES,
    OrderStatus,
    TrackingStatus,
    can_transition,
    has_reached_status,
    is_known_status,
    map_from_system_status,
    map_to_system_status,
    parse_status,
)


def test_tracking_tokens_map_to_system():
    assert map_to_system_status("checkout_request") == "pending_admin_review"
    assert map_to_system_status("invoice_generated") == "invoice_sent"
    assert map_to_system_status("paypal_shared") == "paypal_credentials_shared"
    assert map_to_system_status(TrackingStatus.VERIFIED) == "payment_verified"


def test_unknown_tokens_pass_through():
    assert map_to_system_status("shipped") == "shipped"
    assert map_to_system_status("nonsense") == "nonsense"
    assert map_from_system_status("payment_rejected") == "payment_rejected"


def test_payment_pending_folds_into_paypal_shared():
    assert map_from_system_status(OrderStatus.PAYMENT_PENDING) == "paypal_shared"


@pytest.mark.parametrize("status", [s for s in OrderStatus if s not in LOSSY_SYSTEM_STATUSES])
def test_round_trip_is_lossless(status):
    assert map_to_system_status(map_from_system_status(status)) == status.value


def test_parse_status_accepts_both_vocabularies():
    assert parse_status("accepted") == OrderStatus.INVOICE_ACCEPTED
    assert parse_status("invoice_accepted") == OrderStatus.INVOICE_ACCEPTED
    with pytest.raises(ValueError):
        parse_status("teleported")


def test_is_known_status():
    assert is_known_status("declined")
    assert is_known_status("delivered")
    assert not is_known_status("lost")


def test_has_reached_status_uses_step_order():
    assert has_reached_status("payment_submitted", "accepted")
    assert has_reached_status("confirmed", "confirmed")
    assert not has_reached_status("invoice_sent", "payment_submitted")
    # Off-path statuses never count.
    assert not has_reached_status("cancelled", "checkout_request")
    assert not has_reached_status("shipped", "confirmed")


def test_transition_table():
    assert can_transition("pending_admin_review", "invoice_sent")
    assert can_transition("invoice_sent", "invoice_sent")
    assert can_transition("confirmed", "shipped")
    assert can_transition("shipped", "cancelled")
    assert not can_transition("pending_admin_review", "confirmed")
    assert not can_transition("delivered", "cancelled")
    assert not can_transition("cancelled", "pending_admin_review")
    assert not can_transition("bogus", "cancelled")


@pytest.mark.parametrize(
    "status",
    [s for s in OrderStatus if s not in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)],
)
def test_every_open_status_can_be_cancelled(status):
    assert can_transition(status, OrderStatus.CANCELLED)


def test_confirmed_has_passed_invoice_generation():
    assert has_reached_status("confirmed", "invoice_generated")
