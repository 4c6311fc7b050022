import pytest

from app.core import email_client
from app.core.email_client import EmailDeliveryError
from app.schemas.notification import ProductInfo
from app.services import notification_service
from app.services.notification_service import render_new_listing_email

from .conftest import API


@pytest.fixture()
def sent(monkeypatch):
    """Capture outgoing mail; addresses containing 'bounce' fail."""
    outbox: list[tuple[str, str]] = []

    def _send(to_email, subject, text_body, html_body=None):
        if "bounce" in to_email:
            raise EmailDeliveryError(f"mailbox {to_email} rejected")
        outbox.append((to_email, subject))
        return "smtp"

    monkeypatch.setattr(notification_service, "send_email", _send)
    return outbox


def test_unconfigured_backend_only_logs():
    assert email_client.get_backend_name() == "log"
    assert email_client.send_email("a@example.com", "Hi", "body") == "log"


def test_listing_email_escapes_html():
    subject, text, html = render_new_listing_email(
        "<Sam>",
        ProductInfo(name="Nitrous <Kit>", price="499.5", url="https://shop.test/p/1"),
    )

    assert "Nitrous <Kit>" in subject
    assert "&lt;Kit&gt;" in html
    assert "&lt;Sam&gt;" in html
    assert "$499.50" in text


# -------- Raw sends --------


def test_send_notification(client, admin_headers, sent):
    resp = client.post(
        f"{API}/sendNotification",
        json={"to": "driver@example.com", "subject": "Hello", "html": "<p>Hi</p>"},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "backend": "smtp", "message": "Email sent successfully"}
    assert sent == [("driver@example.com", "Hello")]


def test_send_notification_missing_fields(client, admin_headers, sent):
    resp = client.post(f"{API}/sendNotification", json={"to": "x@example.com"}, headers=admin_headers)

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Missing required fields: to, subject, html"


def test_send_notification_delivery_failure(client, admin_headers, sent):
    resp = client.post(
        f"{API}/sendNotification",
        json={"to": "bounce@example.com", "subject": "Hello", "html": "<p>Hi</p>"},
        headers=admin_headers,
    )
    assert resp.status_code == 500


def test_bulk_notifications_partial_failure(client, admin_headers, sent):
    payload = {
        "users": [
            {"email": "one@example.com", "name": "One"},
            {"email": "bounce@example.com"},
            {"email": "two@example.com"},
        ],
        "product_info": {"name": "Cat-back Exhaust", "price": "650"},
    }

    resp = client.post(f"{API}/sendBulkNotifications", json=payload, headers=admin_headers)

    assert resp.status_code == 207
    summary = resp.json()["summary"]
    assert summary["total_users"] == 3
    assert summary["success_count"] == 2
    assert summary["failed_recipients"] == ["bounce@example.com"]
    assert [to for to, _ in sent] == ["one@example.com", "two@example.com"]


def test_bulk_notifications_skip_header_injection(client, admin_headers):
    injected = "bad@example.com\r\nBcc: victim@example.com"
    payload = {
        "users": [{"email": injected}, {"email": "ok@example.com"}],
        "product_info": {"name": "Coilover Kit"},
    }

    resp = client.post(f"{API}/sendBulkNotifications", json=payload, headers=admin_headers)

    assert resp.status_code == 207
    summary = resp.json()["summary"]
    assert summary["success_count"] == 1
    assert summary["failed_recipients"] == [injected]


def test_send_email_rejects_line_breaks_in_headers():
    with pytest.raises(EmailDeliveryError):
        email_client.send_email("a@example.com\nBcc: b@example.com", "Hi", "body")
    with pytest.raises(EmailDeliveryError):
        email_client.send_email("a@example.com", "Hi\r\nX-Spam: yes", "body")


def test_smtp_header_errors_become_delivery_errors(monkeypatch):
    def _no_connection():
        raise AssertionError("SMTP must not be contacted")

    monkeypatch.setattr(email_client, "_open_smtp", _no_connection)

    with pytest.raises(EmailDeliveryError):
        email_client._send_via_smtp("a@example.com\r\nBcc: b@example.com", "Hi", "body", None)


def test_bulk_notifications_all_delivered(client, admin_headers, sent):
    payload = {
        "users": [{"email": "one@example.com"}],
        "product_info": {"name": "Strut Bar"},
    }

    resp = client.post(f"{API}/sendBulkNotifications", json=payload, headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json()["summary"]["fail_count"] == 0


def test_bulk_notifications_requires_users(client, admin_headers):
    resp = client.post(
        f"{API}/sendBulkNotifications",
        json={"users": [], "product_info": {"name": "Strut Bar"}},
        headers=admin_headers,
    )
    assert resp.status_code == 400


def test_raw_sends_are_admin_only(client, customer_headers):
    resp = client.post(
        f"{API}/sendNotification",
        json={"to": "a@example.com", "subject": "s", "html": "h"},
        headers=customer_headers,
    )
    assert resp.status_code == 403


# -------- Subscriptions and listing announcements --------


def test_subscription_round_trip(client, customer, customer_headers):
    url = f"{API}/notifications/subscription"

    assert client.get(url, headers=customer_headers).json()["subscribed_to_new_products"] is False
    assert client.delete(url, headers=customer_headers).status_code == 404

    resp = client.put(url, json={"subscribed_to_new_products": True}, headers=customer_headers)
    assert resp.json() == {
        "user_id": str(customer.id),
        "email": customer.email,
        "subscribed_to_new_products": True,
    }

    resp = client.delete(url, headers=customer_headers)
    assert resp.json()["subscribed_to_new_products"] is False


def test_new_listing_notifies_each_subscriber_once(
    client, customer_headers, admin_headers, make_product, sent
):
    client.put(
        f"{API}/notifications/subscription",
        json={"subscribed_to_new_products": True},
        headers=customer_headers,
    )
    product = make_product(name="Big Brake Kit")
    payload = {"kind": "product", "item_id": str(product.id)}

    first = client.post(f"{API}/notifications/new-listing", json=payload, headers=admin_headers)
    second = client.post(f"{API}/notifications/new-listing", json=payload, headers=admin_headers)

    assert first.json()["success_count"] == 1
    assert second.json()["total_users"] == 0
    assert len(sent) == 1
    assert "Big Brake Kit" in sent[0][1]


def test_new_listing_unknown_item(client, admin_headers):
    resp = client.post(
        f"{API}/notifications/new-listing",
        json={"kind": "part", "item_id": "00000000-0000-0000-0000-000000000000"},
        headers=admin_headers,
    )
    assert resp.status_code == 404


# -------- Contact form --------


def test_contact_form(client, sent):
    resp = client.post(
        f"{API}/contact",
        json={
            "first_name": "Alex",
            "email": "alex@example.com",
            "subject": "Fitment",
            "message": "Will this fit a 2015 WRX?",
        },
    )

    assert resp.status_code == 200
    assert resp.json() == {"message": "Email sent successfully!"}
    assert sent[0][1] == "New Contact Form Submission: Fitment"


def test_contact_form_rejects_bad_email(client):
    resp = client.post(
        f"{API}/contact",
        json={"first_name": "Alex", "email": "nope", "subject": "x", "message": "y"},
    )
    assert resp.status_code == 422
