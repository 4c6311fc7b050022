from decimal import Decimal

from .conftest import API


# -------- Products --------


def test_admin_creates_product_with_generated_slug(client, admin_headers):
    payload = {"name": "Turbo Kit  GT-35", "price": "1299.00", "stock_quantity": 4}

    first = client.post(f"{API}/products", json=payload, headers=admin_headers)
    second = client.post(f"{API}/products", json=payload, headers=admin_headers)

    assert first.status_code == 201, first.text
    assert first.json()["slug"] == "turbo-kit-gt-35"
    assert second.json()["slug"] == "turbo-kit-gt-35-2"
    assert first.json()["stock_status"] == "low-stock"


def test_customer_cannot_create_product(client, customer_headers):
    resp = client.post(
        f"{API}/products",
        json={"name": "Intake", "price": "10"},
        headers=customer_headers,
    )
    assert resp.status_code == 403


def test_list_hides_inactive_products(client, make_product):
    make_product(name="Visible Muffler")
    make_product(name="Hidden Muffler", is_active=False)

    names = [p["name"] for p in client.get(f"{API}/products").json()]

    assert names == ["Visible Muffler"]


def test_get_product_by_slug(client, make_product):
    product = make_product(name="Coilover Set")

    resp = client.get(f"{API}/products/slug/coilover-set")

    assert resp.status_code == 200
    assert resp.json()["id"] == str(product.id)
    assert client.get(f"{API}/products/slug/nope").status_code == 404


def test_stock_adjustment(client, admin_headers, make_product):
    product = make_product(stock=3)
    url = f"{API}/products/{product.id}/stock"

    resp = client.post(url, json={"delta": 10}, headers=admin_headers)
    assert resp.json()["stock_quantity"] == 13

    resp = client.post(url, json={"delta": -20}, headers=admin_headers)
    assert resp.status_code == 400


def test_low_stock_listing(client, admin_headers, make_product):
    make_product(name="Plenty", stock=50)
    make_product(name="Scarce", stock=2)

    resp = client.get(f"{API}/products/low-stock", headers=admin_headers)

    assert [p["name"] for p in resp.json()] == ["Scarce"]


def test_hero_image_upload(client, admin_headers, make_product, fake_storage):
    product = make_product()

    resp = client.post(
        f"{API}/products/{product.id}/hero-image",
        files={"file": ("hero.jpg", b"jpegbytes", "image/jpeg")},
        headers=admin_headers,
    )

    assert resp.status_code == 200, resp.text
    assert resp.json()["hero_image_url"] == f"https://storage.test/products/{product.id}/hero.jpg"


def test_create_product_with_notify_emails_subscribers(
    client, admin_headers, customer_headers
):
    client.put(
        f"{API}/notifications/subscription",
        json={"subscribed_to_new_products": True},
        headers=customer_headers,
    )

    resp = client.post(
        f"{API}/products?notify=true",
        json={"name": "Carbon Hood", "price": "899.00", "stock_quantity": 2},
        headers=admin_headers,
    )
    assert resp.status_code == 201


# -------- Parts --------


def test_part_crud(client, admin_headers):
    resp = client.post(
        f"{API}/parts",
        json={
            "name": "Oil Filter",
            "price": "12.50",
            "stock_quantity": 40,
            "specifications": {"thread": "3/4-16"},
        },
        headers=admin_headers,
    )
    assert resp.status_code == 201, resp.text
    part_id = resp.json()["id"]
    assert resp.json()["specifications"] == {"thread": "3/4-16"}

    resp = client.patch(f"{API}/parts/{part_id}", json={"price": "14.00"}, headers=admin_headers)
    assert Decimal(resp.json()["price"]) == Decimal("14.00")

    assert client.get(f"{API}/parts/{part_id}").status_code == 200
    assert client.delete(f"{API}/parts/{part_id}", headers=admin_headers).status_code == 204
    assert client.get(f"{API}/parts/{part_id}").status_code == 404


# -------- Catalog search --------


def test_search_spans_products_and_parts(client, make_product, make_part):
    make_product(name="Brake Rotor Pair", brand="Brembo", category="brakes")
    make_part(name="Brake Pad Set", brand="Brembo")
    make_product(name="Exhaust Tip", brand="Borla")

    resp = client.get(f"{API}/catalog/search", params={"q": "brake"})

    body = resp.json()
    assert body["total"] == 2
    assert [(i["name"], i["kind"]) for i in body["items"]] == [
        ("Brake Pad Set", "part"),
        ("Brake Rotor Pair", "product"),
    ]


def test_search_category_excludes_parts(client, make_product, make_part):
    make_product(name="Brake Rotor Pair", category="brakes")
    make_part(name="Brake Pad Set")

    body = client.get(f"{API}/catalog/search", params={"category": "brakes"}).json()

    assert [i["kind"] for i in body["items"]] == ["product"]


def test_search_price_range(client, make_product):
    make_product(name="Cheap Clip", price="5.00")
    make_product(name="Big Brake Kit", price="2500.00")

    body = client.get(
        f"{API}/catalog/search",
        params={"min_price": "10", "max_price": "3000"},
    ).json()
    assert [i["name"] for i in body["items"]] == ["Big Brake Kit"]

    resp = client.get(f"{API}/catalog/search", params={"min_price": "10", "max_price": "5"})
    assert resp.status_code == 400


# -------- Cart --------


def test_cart_add_merge_and_totals(client, customer_headers, make_product, make_part):
    product = make_product(price="30.00", stock=10)
    part = make_part(price="12.50", stock=10)

    client.post(
        f"{API}/cart",
        json={"item_id": str(product.id), "quantity": 1},
        headers=customer_headers,
    )
    client.post(
        f"{API}/cart",
        json={"item_id": str(product.id), "quantity": 1},
        headers=customer_headers,
    )
    resp = client.post(
        f"{API}/cart",
        json={"item_id": str(part.id), "quantity": 2, "is_part": True},
        headers=customer_headers,
    )

    cart = resp.json()
    assert cart["total_quantity"] == 4
    assert Decimal(cart["subtotal"]) == Decimal("85.00")
    assert Decimal(cart["shipping"]) == Decimal("0.00")
    assert Decimal(cart["tax"]) == Decimal("7.01")
    assert Decimal(cart["total"]) == Decimal("92.01")
    quantities = sorted(item["quantity"] for item in cart["items"])
    assert quantities == [2, 2]


def test_cart_rejects_more_than_stock(client, customer_headers, make_product):
    product = make_product(stock=2)

    resp = client.post(
        f"{API}/cart",
        json={"item_id": str(product.id), "quantity": 3},
        headers=customer_headers,
    )

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Not enough stock available (only 2 left)"


def test_cart_update_and_remove(client, customer_headers, make_product):
    product = make_product(stock=10)
    client.post(
        f"{API}/cart",
        json={"item_id": str(product.id), "quantity": 1},
        headers=customer_headers,
    )

    resp = client.patch(
        f"{API}/cart/{product.id}",
        json={"quantity": 5},
        headers=customer_headers,
    )
    assert resp.json()["total_quantity"] == 5

    resp = client.delete(f"{API}/cart/{product.id}", headers=customer_headers)
    assert resp.json()["items"] == []
    assert Decimal(resp.json()["total"]) == Decimal("0")

    resp = client.delete(f"{API}/cart/{product.id}", headers=customer_headers)
    assert resp.status_code == 404


def test_cart_requires_customer(client, admin_headers):
    assert client.get(f"{API}/cart").status_code == 401
    assert client.get(f"{API}/cart", headers=admin_headers).status_code == 403
