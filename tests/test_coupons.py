from datetime import datetime, timedelta, timezone
from decimal import Decimal

from .conftest import API


def _create(client, admin_headers, **overrides):
    payload = {"code": "summer15", "discount_type": "percentage", "discount_value": "15"}
    payload.update(overrides)
    resp = client.post(f"{API}/coupons", json=payload, headers=admin_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_create_normalizes_code_and_rejects_duplicates(client, admin_headers):
    coupon = _create(client, admin_headers)
    assert coupon["code"] == "SUMMER15"
    assert coupon["uses_count"] == 0

    resp = client.post(
        f"{API}/coupons",
        json={"code": "SUMMER15", "discount_type": "fixed", "discount_value": "5"},
        headers=admin_headers,
    )
    assert resp.status_code == 409


def test_percentage_over_100_rejected(client, admin_headers):
    resp = client.post(
        f"{API}/coupons",
        json={"code": "TOOMUCH", "discount_type": "percentage", "discount_value": "150"},
        headers=admin_headers,
    )
    assert resp.status_code == 400


def test_validate_coupon(client, admin_headers, customer_headers):
    _create(client, admin_headers, min_order_amount="50")

    resp = client.post(
        f"{API}/coupons/validate",
        json={"code": "summer15", "order_amount": "80"},
        headers=customer_headers,
    )
    body = resp.json()
    assert body["valid"] is True
    assert Decimal(body["discount_amount"]) == Decimal("12.00")

    resp = client.post(
        f"{API}/coupons/validate",
        json={"code": "SUMMER15", "order_amount": "20"},
        headers=customer_headers,
    )
    body = resp.json()
    assert resp.status_code == 200
    assert body["valid"] is False
    assert body["message"] == "Minimum order amount of $50.00 required"


def test_expired_and_exhausted_coupons(client, admin_headers, customer_headers):
    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    _create(client, admin_headers, code="OLD", expires_at=past)
    _create(client, admin_headers, code="ONCE", max_uses=1)

    def check(code):
        return client.post(
            f"{API}/coupons/validate",
            json={"code": code, "order_amount": "100"},
            headers=customer_headers,
        ).json()

    assert check("OLD")["message"] == "Coupon has expired"
    assert check("ONCE")["valid"] is True
    assert check("GHOST")["message"] == "Coupon not found or inactive"


def test_assign_and_list_my_coupons(client, admin_headers, customer, customer_headers):
    coupon = _create(client, admin_headers)

    resp = client.post(
        f"{API}/coupons/{coupon['id']}/assign",
        json={"user_id": str(customer.id)},
        headers=admin_headers,
    )
    assert resp.status_code == 201

    again = client.post(
        f"{API}/coupons/{coupon['id']}/assign",
        json={"user_id": str(customer.id)},
        headers=admin_headers,
    )
    assert again.status_code == 409

    mine = client.get(f"{API}/coupons/me", headers=customer_headers).json()
    assert [c["coupon"]["code"] for c in mine] == ["SUMMER15"]
    assert mine[0]["used_at"] is None


def test_update_delete_and_stats(client, admin_headers):
    coupon = _create(client, admin_headers)

    resp = client.patch(
        f"{API}/coupons/{coupon['id']}",
        json={"is_active": False},
        headers=admin_headers,
    )
    assert resp.json()["is_active"] is False

    stats = client.get(f"{API}/coupons/stats", headers=admin_headers).json()
    assert stats["total_coupons"] == 1
    assert stats["active_coupons"] == 0

    assert client.delete(f"{API}/coupons/{coupon['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"{API}/coupons/{coupon['id']}", headers=admin_headers).status_code == 404


def test_admin_lists_coupons(client, admin_headers):
    _create(client, admin_headers)
    _create(client, admin_headers, code="track20", discount_type="fixed", discount_value="20")

    resp = client.get(f"{API}/coupons", params={"limit": 10}, headers=admin_headers)

    assert resp.status_code == 200
    assert {c["code"] for c in resp.json()} == {"SUMMER15", "TRACK20"}


def test_coupon_admin_routes_require_admin(client, customer_headers):
    assert client.get(f"{API}/coupons", headers=customer_headers).status_code == 403
