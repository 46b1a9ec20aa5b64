"""Categories and products"""
from storefront.models.product import Category, Product


def test_categories_listed_by_name(client, admin):
    _, headers = admin
    for name in ("Shoes", "Bags", "Watches"):
        assert client.post("/api/categories", json={"name": name}, headers=headers).status_code == 201

    names = [category["name"] for category in client.get("/api/categories").json()]
    assert names == ["Bags", "Shoes", "Watches"]


def test_category_writes_require_admin(client, customer):
    _, headers = customer
    assert client.post("/api/categories", json={"name": "Shoes"}).status_code == 401
    assert client.post("/api/categories", json={"name": "Shoes"}, headers=headers).status_code == 403


def test_duplicate_category_conflicts(client, admin):
    _, headers = admin
    assert client.post("/api/categories", json={"name": "Shoes"}, headers=headers).status_code == 201
    assert client.post("/api/categories", json={"name": "Shoes"}, headers=headers).status_code == 409


def test_update_and_get_category(client, admin):
    _, headers = admin
    category = client.post("/api/categories", json={"name": "Shoes"}, headers=headers).json()

    response = client.put(
        f"/api/categories/{category['id']}",
        json={"description": "Everything for your feet"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Shoes"

    fetched = client.get(f"/api/categories/{category['id']}").json()
    assert fetched["description"] == "Everything for your feet"


def test_missing_category_is_404(client, admin):
    _, headers = admin
    assert client.get("/api/categories/nope").status_code == 404
    assert client.put("/api/categories/nope", json={"name": "X"}, headers=headers).status_code == 404
    assert client.delete("/api/categories/nope", headers=headers).status_code == 404


def test_delete_unused_category(client, admin):
    _, headers = admin
    category = client.post("/api/categories", json={"name": "Shoes"}, headers=headers).json()
    assert client.delete(f"/api/categories/{category['id']}", headers=headers).status_code == 200
    assert client.get("/api/categories").json() == []


def test_delete_category_with_products_conflicts_and_changes_nothing(client, admin, products, db):
    _, headers = admin
    category_id = products["A"]["category_id"]

    response = client.delete(f"/api/categories/{category_id}", headers=headers)
    assert response.status_code == 409

    assert db.get(Category, category_id) is not None
    assert db.query(Product).filter(Product.category_id == category_id).count() == 2


def test_product_creation_creates_category_by_name(client, products):
    assert products["A"]["category_name"] == "Accessories"
    assert products["A"]["category_id"] == products["B"]["category_id"]
    assert [category["name"] for category in client.get("/api/categories").json()] == ["Accessories"]


def test_zero_offer_price_means_no_offer(client, admin):
    _, headers = admin
    response = client.post(
        "/api/products",
        json={"name": "Mug", "price": 500, "offer_price": 0, "category": "Kitchen"},
        headers=headers,
    )
    assert response.status_code == 201
    assert response.json()["offer_price"] is None


def test_negative_price_rejected(client, admin):
    _, headers = admin
    response = client.post(
        "/api/products",
        json={"name": "Mug", "price": -1, "category": "Kitchen"},
        headers=headers,
    )
    assert response.status_code == 400


def test_filter_products(client, products):
    assert {p["name"] for p in client.get("/api/products").json()} == {"Phone case", "Charger"}
    assert [p["name"] for p in client.get("/api/products", params={"q": "charg"}).json()] == ["Charger"]
    assert len(client.get("/api/products", params={"category": "Accessories"}).json()) == 2
    category_id = products["A"]["category_id"]
    assert len(client.get("/api/products", params={"category": category_id}).json()) == 2


def test_empty_product_search_returns_empty_list(client, products):
    response = client.get("/api/products", params={"q": "submarine"})
    assert response.status_code == 200
    assert response.json() == []
    assert client.get("/api/products", params={"category": "Garden"}).json() == []


def test_get_update_product(client, admin, products):
    _, headers = admin
    product_id = products["A"]["id"]

    response = client.put(f"/api/products/{product_id}", json={"price": 1200, "stock": 3}, headers=headers)
    assert response.status_code == 200
    assert response.json()["price"] == 1200
    assert response.json()["stock"] == 3

    assert client.get(f"/api/products/{product_id}").json()["price"] == 1200
    assert client.get("/api/products/nope").status_code == 404


def test_delete_product_in_a_cart_conflicts(client, admin, customer, products):
    _, admin_headers = admin
    user, headers = customer
    product_id = products["A"]["id"]
    client.post(f"/api/cart/{user.id}", json={"product_id": product_id}, headers=headers)

    assert client.delete(f"/api/products/{product_id}", headers=admin_headers).status_code == 409
    assert client.delete(f"/api/products/{products['B']['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/products/{products['B']['id']}").status_code == 404
