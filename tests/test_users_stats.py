import uuid
from datetime import datetime, timezone
from decimal import Decimal

from app.models.user import User

from .conftest import API, make_token


# -------- Auth --------


def test_first_request_provisions_profile(client, session):
    user_id = uuid.uuid4()
    headers = {"Authorization": f"Bearer {make_token(user_id, 'new.driver@example.com')}"}

    resp = client.get(f"{API}/users/me", headers=headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == str(user_id)
    assert body["name"] == "new.driver"
    assert body["role"] == "user"
    assert session.get(User, user_id) is not None


def test_invalid_token_rejected(client):
    resp = client.get(f"{API}/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid or expired token"


def test_missing_token_rejected(client):
    assert client.get(f"{API}/users/me").status_code == 401


# -------- Profile --------


def test_update_profile(client, customer_headers):
    resp = client.patch(
        f"{API}/users/me",
        json={"name": "  Jordan  ", "phone": "555-0100"},
        headers=customer_headers,
    )

    assert resp.status_code == 200
    assert resp.json()["name"] == "Jordan"
    assert resp.json()["phone"] == "555-0100"


def test_create_me_rejects_other_email(client, customer_headers):
    resp = client.post(
        f"{API}/users/me",
        json={"email": "imposter@example.com"},
        headers=customer_headers,
    )
    assert resp.status_code == 400


# -------- Admin user management --------


def test_admin_changes_role(client, customer, admin_headers):
    resp = client.patch(
        f"{API}/users/{customer.id}/role",
        json={"role": "admin"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["role"] == "admin"


def test_admin_cannot_demote_or_delete_self(client, admin, admin_headers):
    resp = client.patch(
        f"{API}/users/{admin.id}/role",
        json={"role": "user"},
        headers=admin_headers,
    )
    assert resp.status_code == 400

    assert client.delete(f"{API}/users/{admin.id}", headers=admin_headers).status_code == 400


def test_list_users_by_role(client, customer, admin, admin_headers):
    resp = client.get(f"{API}/users", params={"role": "user"}, headers=admin_headers)
    assert [u["email"] for u in resp.json()] == [customer.email]


def test_delete_user(client, customer, admin_headers):
    assert client.delete(f"{API}/users/{customer.id}", headers=admin_headers).status_code == 204
    assert client.get(f"{API}/users/{customer.id}", headers=admin_headers).status_code == 404


def test_user_admin_routes_require_admin(client, customer_headers):
    assert client.get(f"{API}/users", headers=customer_headers).status_code == 403


# -------- Dashboard --------


def test_dashboard_stats(client, customer, customer_headers, admin_headers, make_product):
    wheel = make_product(name="Forged Wheel", price="25.00", stock=3)
    intake = make_product(name="Cold Air Intake", price="10.00", stock=40)

    def place(product, quantity):
        resp = client.post(
            f"{API}/orders/create-order",
            json={"items": [{"id": str(product.id), "quantity": quantity}]},
            headers=customer_headers,
        )
        return resp.json()["local_order_id"]

    place(wheel, 2)
    place(intake, 1)
    cancelled = place(intake, 5)
    client.post(f"{API}/orders/{cancelled}/cancel", headers=admin_headers)

    now = datetime.now(timezone.utc)
    resp = client.get(
        f"{API}/admin/stats",
        params={"year": now.year, "month": now.month},
        headers=admin_headers,
    )

    assert resp.status_code == 200, resp.text
    stats = resp.json()
    assert stats["total_customers"] == 1
    assert stats["total_orders"] == 3
    # 54.12 + 10.82; the cancelled order does not count
    assert Decimal(stats["total_revenue"]) == Decimal("64.94")
    assert stats["pending_review_count"] == 2
    assert stats["status_counts"]["cancelled"] == 1
    assert stats["low_stock_count"] == 1
    assert sum(day["order_count"] for day in stats["daily_sales"]) == 2
    assert stats["top_products"][0]["name"] == "Forged Wheel"
    assert stats["top_products"][0]["total_quantity"] == 2
    assert len(stats["latest_orders"]) == 3


def test_dashboard_rejects_bad_month(client, admin_headers):
    resp = client.get(f"{API}/admin/stats", params={"month": 13}, headers=admin_headers)
    assert resp.status_code == 400


def test_dashboard_requires_admin(client, customer_headers):
    assert client.get(f"{API}/admin/stats", headers=customer_headers).status_code == 403
