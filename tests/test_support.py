from datetime import datetime, timedelta, timezone

from .conftest import API, auth_header


def _open_ticket(client, headers, **overrides):
    payload = {"subject": "Wrong bolt pattern", "description": "Wheels do not fit my car"}
    payload.update(overrides)
    resp = client.post(f"{API}/support/tickets", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


# -------- Tickets --------


def test_customer_opens_ticket(client, customer_headers):
    ticket = _open_ticket(client, customer_headers, priority="high")

    assert ticket["ticket_number"].startswith("TKT-")
    assert ticket["status"] == "open"
    assert ticket["priority"] == "high"

    mine = client.get(f"{API}/support/tickets/me", headers=customer_headers).json()
    assert [t["id"] for t in mine] == [ticket["id"]]


def test_ticket_for_someone_elses_order(client, customer_headers, other_customer, make_product):
    resp = client.post(
        f"{API}/orders/create-order",
        json={"items": [{"id": str(make_product().id), "quantity": 1}]},
        headers=auth_header(other_customer),
    )
    order_id = resp.json()["local_order_id"]

    resp = client.post(
        f"{API}/support/tickets",
        json={"subject": "Where is it", "description": "Late", "order_id": order_id},
        headers=customer_headers,
    )
    assert resp.status_code == 404


def test_ticket_visibility(client, customer_headers, other_customer, admin_headers):
    ticket = _open_ticket(client, customer_headers)
    url = f"{API}/support/tickets/{ticket['id']}"

    assert client.get(url, headers=auth_header(other_customer)).status_code == 404
    assert client.get(url, headers=admin_headers).status_code == 200


def test_admin_reply_moves_ticket_in_progress(client, customer_headers, admin_headers):
    ticket = _open_ticket(client, customer_headers)
    url = f"{API}/support/tickets/{ticket['id']}/messages"

    client.post(url, json={"message": "Here are photos"}, headers=customer_headers)
    resp = client.post(url, json={"message": "We will exchange them"}, headers=admin_headers)

    body = resp.json()
    assert body["status"] == "in_progress"
    assert [m["is_admin"] for m in body["messages"]] == [False, True]


def test_ticket_lifecycle(client, customer_headers, admin, admin_headers):
    ticket = _open_ticket(client, customer_headers)
    base = f"{API}/support/tickets/{ticket['id']}"

    resp = client.post(f"{base}/assign", json={"admin_id": str(admin.id)}, headers=admin_headers)
    assert resp.json()["assigned_to"] == str(admin.id)
    assert resp.json()["status"] == "in_progress"

    resp = client.post(f"{base}/resolve", headers=admin_headers)
    assert resp.json()["status"] == "resolved"
    assert resp.json()["resolved_at"] is not None
    assert client.post(f"{base}/resolve", headers=admin_headers).status_code == 400

    resp = client.post(f"{base}/close", headers=admin_headers)
    assert resp.json()["status"] == "closed"

    resp = client.post(
        f"{base}/messages",
        json={"message": "One more thing"},
        headers=customer_headers,
    )
    assert resp.status_code == 400

    resp = client.post(f"{base}/reopen", headers=admin_headers)
    assert resp.json()["status"] == "open"
    assert resp.json()["resolved_at"] is None


def test_assign_requires_admin_assignee(client, customer, customer_headers, admin_headers):
    ticket = _open_ticket(client, customer_headers)

    resp = client.post(
        f"{API}/support/tickets/{ticket['id']}/assign",
        json={"admin_id": str(customer.id)},
        headers=admin_headers,
    )
    assert resp.status_code == 400


def test_ticket_search_and_stats(client, customer_headers, admin_headers):
    _open_ticket(client, customer_headers, subject="Exhaust rattle", priority="urgent")
    _open_ticket(client, customer_headers, subject="Invoice question")

    found = client.get(
        f"{API}/support/tickets",
        params={"q": "rattle"},
        headers=admin_headers,
    ).json()
    assert [t["subject"] for t in found] == ["Exhaust rattle"]

    stats = client.get(f"{API}/support/tickets/stats", headers=admin_headers).json()
    assert stats["total"] == 2
    assert stats["open"] == 2
    assert stats["urgent"] == 1


def test_ticket_admin_routes_require_admin(client, customer_headers):
    assert client.get(f"{API}/support/tickets", headers=customer_headers).status_code == 403


# -------- Chat --------


def test_chat_conversation(client, customer, customer_headers, admin_headers):
    resp = client.post(f"{API}/support/chat", json={"message": "Do you ship to Canada?"}, headers=customer_headers)
    assert resp.status_code == 201
    first = resp.json()
    conversation_id = first["conversation_id"]
    assert conversation_id.startswith(f"conv_{customer.id}_")
    assert first["is_admin"] is False

    summaries = client.get(f"{API}/support/chat", headers=admin_headers).json()
    assert summaries[0]["conversation_id"] == conversation_id
    assert summaries[0]["unread_count"] == 1
    assert summaries[0]["user_email"] == customer.email

    resp = client.post(
        f"{API}/support/chat/{conversation_id}/messages",
        json={"message": "Yes we do"},
        headers=admin_headers,
    )
    reply = resp.json()
    assert reply["is_admin"] is True
    assert reply["user_id"] == str(customer.id)

    messages = client.get(
        f"{API}/support/chat/{conversation_id}/messages",
        headers=customer_headers,
    ).json()
    assert [m["message"] for m in messages] == ["Do you ship to Canada?", "Yes we do"]

    mine = client.get(f"{API}/support/chat", headers=customer_headers).json()
    assert mine[0]["unread_count"] == 0


def test_chat_is_private(client, customer_headers, other_customer):
    resp = client.post(f"{API}/support/chat", json={"message": "hello"}, headers=customer_headers)
    conversation_id = resp.json()["conversation_id"]

    resp = client.get(
        f"{API}/support/chat/{conversation_id}/messages",
        headers=auth_header(other_customer),
    )
    assert resp.status_code == 404


def test_chat_poll_accepts_offset_timestamps(client, customer_headers):
    resp = client.post(f"{API}/support/chat", json={"message": "Any news?"}, headers=customer_headers)
    conversation_id = resp.json()["conversation_id"]
    url = f"{API}/support/chat/{conversation_id}/messages"
    berlin = timezone(timedelta(hours=2))

    earlier = (datetime.now(timezone.utc) - timedelta(minutes=1)).astimezone(berlin)
    newer = client.get(url, params={"after": earlier.isoformat()}, headers=customer_headers).json()
    assert [m["message"] for m in newer] == ["Any news?"]

    later = (datetime.now(timezone.utc) + timedelta(minutes=1)).astimezone(berlin)
    assert client.get(url, params={"after": later.isoformat()}, headers=customer_headers).json() == []
