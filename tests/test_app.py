import importlib

from .conftest import API


def test_application_mounts_every_router():
    module = importlib.import_module("app.main")
    paths = {route.path for route in module.app.routes}

    for path in (
        f"{API}/orders/{{order_id}}/status",
        f"{API}/coupons",
        f"{API}/users",
        f"{API}/cart",
        f"{API}/support/chat",
        f"{API}/sendBulkNotifications",
    ):
        assert path in paths


def test_health_check(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
