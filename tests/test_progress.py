from types import SimpleNamespace

import pytest

from app.services.progress_service import build_step_statuses

from .conftest import API, auth_header


def _order(status, payment_submission=None, invoiced_at=None):
    return SimpleNamespace(
        id="o-1",
        status=status,
        payment_submission=payment_submission,
        invoiced_at=invoiced_at,
    )


@pytest.mark.parametrize(
    "status, completed",
    [
        ("pending_admin_review", 1),
        ("invoice_sent", 2),
        ("invoice_accepted", 3),
        ("paypal_credentials_shared", 4),
        ("payment_pending", 4),
        ("payment_submitted", 5),
        ("payment_verified", 6),
        ("confirmed", 7),
        ("delivered", 7),
    ],
)
def test_steps_follow_status(status, completed):
    steps = build_step_statuses(_order(status))
    assert steps == ["completed"] * completed + ["pending"] * (7 - completed)


def test_rejected_payment_cancels_remaining_steps():
    steps = build_step_statuses(_order("payment_rejected"))
    assert steps == ["completed"] * 5 + ["canceled"] * 2


@pytest.mark.parametrize(
    "submission, invoiced_at, completed",
    [
        ({"transaction_id": "x"}, "2024-01-01", 5),
        (None, "2024-01-01", 2),
        (None, None, 1),
    ],
)
def test_cancelled_order_cut_off(submission, invoiced_at, completed):
    steps = build_step_statuses(_order("cancelled", submission, invoiced_at))
    assert steps == ["completed"] * completed + ["canceled"] * (7 - completed)


# -------- Endpoints --------


def _new_order(client, headers, product):
    resp = client.post(
        f"{API}/orders/create-order",
        json={"items": [{"id": str(product.id), "quantity": 1}]},
        headers=headers,
    )
    return resp.json()["local_order_id"]


def test_progress_tracks_status_changes(client, customer_headers, admin_headers, make_product):
    order_id = _new_order(client, customer_headers, make_product())

    progress = client.get(f"{API}/orders/{order_id}/progress", headers=customer_headers).json()
    assert progress["completed_steps"] == 1
    assert progress["overall_status"] == "in_progress"
    assert progress["current_step"]["step_number"] == 2

    client.post(f"{API}/orders/{order_id}/invoice", json={}, headers=admin_headers)

    progress = client.get(f"{API}/orders/{order_id}/progress", headers=customer_headers).json()
    assert progress["completed_steps"] == 2
    assert progress["progress_percentage"] == 29
    assert progress["steps"][1]["completed_at"] is not None


def test_cancel_marks_progress_canceled(client, customer_headers, admin_headers, make_product):
    order_id = _new_order(client, customer_headers, make_product())

    client.post(f"{API}/orders/{order_id}/cancel", headers=admin_headers)

    progress = client.get(f"{API}/orders/{order_id}/progress", headers=admin_headers).json()
    assert progress["overall_status"] == "canceled"
    assert [s["status"] for s in progress["steps"]] == ["completed"] + ["canceled"] * 6


def test_progress_hidden_from_other_customers(client, customer_headers, other_customer, make_product):
    order_id = _new_order(client, customer_headers, make_product())

    resp = client.get(f"{API}/orders/{order_id}/progress", headers=auth_header(other_customer))
    assert resp.status_code == 404

    resp = client.get(f"{API}/orders/{order_id}/progress")
    assert resp.status_code == 401


def test_sync_endpoint(client, customer_headers, make_product):
    order_id = _new_order(client, customer_headers, make_product())

    resp = client.post(f"{API}/orders/{order_id}/progress/sync", headers=customer_headers)

    assert resp.status_code == 200
    assert resp.json()["total_steps"] == 7


def test_manual_step_rules(client, customer_headers, admin_headers, make_product):
    order_id = _new_order(client, customer_headers, make_product())
    url = f"{API}/orders/{order_id}/progress"

    resp = client.patch(f"{url}/4", json={"status": "completed"}, headers=admin_headers)
    assert resp.status_code == 400

    resp = client.patch(f"{url}/2", json={"status": "completed"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["completed_steps"] == 2

    resp = client.patch(f"{url}/1", json={"status": "pending"}, headers=admin_headers)
    assert resp.status_code == 400

    resp = client.patch(f"{url}/5", json={"status": "canceled"}, headers=admin_headers)
    statuses = [s["status"] for s in resp.json()["steps"]]
    assert statuses == ["completed", "completed", "pending", "pending", "canceled", "canceled", "canceled"]


def test_manual_step_out_of_range(client, customer_headers, admin_headers, make_product):
    order_id = _new_order(client, customer_headers, make_product())

    resp = client.patch(
        f"{API}/orders/{order_id}/progress/8",
        json={"status": "completed"},
        headers=admin_headers,
    )
    assert resp.status_code == 400
