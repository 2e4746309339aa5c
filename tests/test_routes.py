from decimal import Decimal

import pytest

from models.review import Review


@pytest.fixture
def category(client, admin_headers):
    return client.post("/categories/", json={"name": "Fiction", "slug": "fiction"}, headers=admin_headers).json()


@pytest.fixture
def brand(client, admin_headers):
    return client.post("/brands/", json={"name": "Penguin", "slug": "penguin"}, headers=admin_headers).json()


def _book(**overrides):
    data = {"name": "Dune", "slug": "dune", "price": "120000", "stock": 3, "author": "Frank Herbert", "isbn": "9780441013593"}
    data.update(overrides)
    return data


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestCatalogRoutes:
    def test_create_and_fetch_product(self, client, admin_headers, category, brand):
        response = client.post(
            "/products/", json=_book(category_id=category["id"], brand_id=brand["id"]), headers=admin_headers
        )

        assert response.status_code == 201
        assert Decimal(response.json()["price"]) == Decimal("120000")
        fetched = client.get("/products/dune").json()
        assert fetched["category_id"] == category["id"]
        assert fetched["brand_id"] == brand["id"]

    def test_duplicate_slug(self, client, admin_headers):
        client.post("/products/", json=_book(), headers=admin_headers)

        response = client.post("/products/", json=_book(name="Dune 2"), headers=admin_headers)

        assert response.status_code == 409

    def test_unknown_category(self, client, admin_headers):
        response = client.post("/products/", json=_book(category_id=77), headers=admin_headers)

        assert response.status_code == 404

    def test_customer_cannot_create(self, client, auth_headers):
        response = client.post("/products/", json=_book(), headers=auth_headers)

        assert response.status_code == 403

    def test_list_filters(self, client, admin_headers, category):
        client.post("/products/", json=_book(category_id=category["id"]), headers=admin_headers)
        client.post("/products/", json=_book(name="Emma", slug="emma", author="Jane Austen", isbn=None), headers=admin_headers)

        assert len(client.get("/products/").json()) == 2
        assert [p["slug"] for p in client.get(f"/products/?category_id={category['id']}").json()] == ["dune"]
        assert [p["slug"] for p in client.get("/products/?q=austen").json()] == ["emma"]
        assert [p["slug"] for p in client.get("/products/?q=9780441013593").json()] == ["dune"]

    def test_search_matches_description(self, client, admin_headers):
        client.post("/products/", json=_book(description="Spice, sandworms and desert politics"), headers=admin_headers)
        client.post("/products/", json=_book(name="Emma", slug="emma", isbn=None), headers=admin_headers)

        assert [p["slug"] for p in client.get("/products/?q=sandworms").json()] == ["dune"]

    def test_price_range_and_sort(self, client, admin_headers):
        for name, price in (("Cheap", "30000"), ("Middle", "80000"), ("Pricey", "200000")):
            client.post("/products/", json=_book(name=name, slug=name.lower(), price=price, isbn=None), headers=admin_headers)

        in_range = client.get("/products/?min_price=50000&max_price=100000").json()
        assert [p["slug"] for p in in_range] == ["middle"]
        ascending = client.get("/products/?sort=price_asc").json()
        assert [p["slug"] for p in ascending] == ["cheap", "middle", "pricey"]
        descending = client.get("/products/?sort=price_desc").json()
        assert [p["slug"] for p in descending] == ["pricey", "middle", "cheap"]

    def test_unknown_sort_rejected(self, client):
        assert client.get("/products/?sort=cheapest").status_code == 422

    def test_popular_sort_follows_sales(self, client, auth_headers, book_a, book_b, db_session_override):
        client.post("/cart/", json={"product_id": book_b.id, "quantity": 3}, headers=auth_headers)
        assert client.post("/orders/", headers=auth_headers).status_code == 201

        popular = client.get("/products/?sort=popular").json()

        assert [p["slug"] for p in popular] == ["book-b", "book-a"]
        assert popular[0]["sold_count"] == 3
        assert popular[1]["sold_count"] == 0

    def test_rating_sort(self, client, book_a, book_b, db_session_override):
        book_a.rating = Decimal("4.5")
        book_b.rating = Decimal("3.0")
        db_session_override.commit()

        assert [p["slug"] for p in client.get("/products/?sort=rating").json()] == ["book-a", "book-b"]


class TestSearchSuggestions:
    def test_matches_active_names(self, client, book_a, book_b, inactive_book):
        response = client.get("/search/suggestions?q=book")

        assert response.status_code == 200
        data = response.json()
        assert [s["name"] for s in data] == ["Book A", "Book B"]
        assert set(data[0]) == {"id", "name", "thumbnail", "price"}
        assert data[0]["thumbnail"] == book_a.thumbnail

    @pytest.mark.parametrize("q", ["", "b", " b "])
    def test_short_query_returns_nothing(self, client, book_a, q):
        assert client.get("/search/suggestions", params={"q": q}).json() == []

    def test_at_most_five(self, client, admin_headers):
        for i in range(7):
            client.post("/products/", json=_book(name=f"Dune {i}", slug=f"dune-{i}", isbn=None), headers=admin_headers)

        assert len(client.get("/search/suggestions?q=dune").json()) == 5

    def test_deactivated_product_hidden(self, client, admin_headers):
        product = client.post("/products/", json=_book(), headers=admin_headers).json()

        response = client.patch(f"/products/{product['id']}", json={"is_active": False}, headers=admin_headers)

        assert response.status_code == 200
        assert client.get("/products/dune").status_code == 404
        assert client.get("/products/").json() == []

    def test_delete_product(self, client, admin_headers):
        product = client.post("/products/", json=_book(), headers=admin_headers).json()

        assert client.delete(f"/products/{product['id']}", headers=admin_headers).status_code == 204
        assert client.delete(f"/products/{product['id']}", headers=admin_headers).status_code == 404

    def test_categories_and_brands(self, client, admin_headers, category, brand):
        child = client.post(
            "/categories/", json={"name": "Sci-Fi", "slug": "sci-fi", "parent_id": category["id"]}, headers=admin_headers
        )
        assert child.status_code == 201
        assert child.json()["parent_id"] == category["id"]
        assert len(client.get("/categories/").json()) == 2

        self_parent = client.patch(f"/categories/{category['id']}", json={"parent_id": category["id"]}, headers=admin_headers)
        assert self_parent.status_code == 422

        assert client.post("/brands/", json={"name": "Other", "slug": "penguin"}, headers=admin_headers).status_code == 409
        renamed = client.patch(f"/brands/{brand['id']}", json={"name": "Penguin Books"}, headers=admin_headers)
        assert renamed.json()["name"] == "Penguin Books"
        assert client.delete(f"/brands/{brand['id']}", headers=admin_headers).status_code == 204
        assert client.get("/brands/").json() == []


class TestReviewRoutes:
    def test_review_lifecycle(self, client, auth_headers, other_headers, admin_headers, book_a, db_session_override):
        first = client.post("/reviews/", json={"product_id": book_a.id, "rating": 5, "title": "Great"}, headers=auth_headers)
        second = client.post("/reviews/", json={"product_id": book_a.id, "rating": 2}, headers=other_headers)
        assert first.status_code == 201
        assert first.json()["is_approved"] is False

        assert client.get(f"/reviews/product/{book_a.id}").json() == []

        for review in (first.json(), second.json()):
            response = client.put(f"/reviews/{review['id']}/approve", headers=admin_headers)
            assert response.status_code == 200

        assert len(client.get(f"/reviews/product/{book_a.id}").json()) == 2
        db_session_override.refresh(book_a)
        assert book_a.rating == Decimal("3.5")
        assert book_a.rating_count == 2

    def test_one_review_per_product(self, client, auth_headers, book_a):
        client.post("/reviews/", json={"product_id": book_a.id, "rating": 4}, headers=auth_headers)

        response = client.post("/reviews/", json={"product_id": book_a.id, "rating": 3}, headers=auth_headers)

        assert response.status_code == 409

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, client, auth_headers, book_a, db_session_override, rating):
        response = client.post("/reviews/", json={"product_id": book_a.id, "rating": rating}, headers=auth_headers)

        assert response.status_code == 422
        assert db_session_override.query(Review).count() == 0

    def test_unknown_product(self, client, auth_headers):
        response = client.post("/reviews/", json={"product_id": 321, "rating": 4}, headers=auth_headers)

        assert response.status_code == 404

    def test_approve_requires_admin(self, client, auth_headers, book_a):
        review = client.post("/reviews/", json={"product_id": book_a.id, "rating": 4}, headers=auth_headers).json()

        assert client.put(f"/reviews/{review['id']}/approve", headers=auth_headers).status_code == 403


class TestWishlistRoutes:
    def test_add_is_idempotent(self, client, auth_headers, book_a):
        first = client.post("/wishlist/", json={"product_id": book_a.id}, headers=auth_headers)
        again = client.post("/wishlist/", json={"product_id": book_a.id}, headers=auth_headers)

        assert first.status_code == 201
        assert again.status_code == 200
        assert again.json()["id"] == first.json()["id"]
        items = client.get("/wishlist/", headers=auth_headers).json()
        assert len(items) == 1
        assert items[0]["product"]["slug"] == "book-a"

    def test_remove(self, client, auth_headers, book_a):
        client.post("/wishlist/", json={"product_id": book_a.id}, headers=auth_headers)

        assert client.delete(f"/wishlist/{book_a.id}", headers=auth_headers).status_code == 204
        assert client.delete(f"/wishlist/{book_a.id}", headers=auth_headers).status_code == 404

    def test_unknown_product(self, client, auth_headers):
        response = client.post("/wishlist/", json={"product_id": 999}, headers=auth_headers)

        assert response.status_code == 404
