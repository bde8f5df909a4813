"""
Unit tests for product catalog endpoints
"""
import pytest
from fastapi import status
from app.models.models import Product
from conftest import make_product


def product_payload(**overrides):
    payload = {
        "title": "Linen Sofa",
        "sku": "sofa-linen-3",
        "price": 1200,
        "currency": "USD",
        "shortDescription": "Three seater linen sofa",
        "description": "A deep three seater sofa upholstered in washed linen.",
        "dimensions": {"width": "220cm", "depth": "95cm", "height": "80cm"},
        "materials": ["Fabric", " Wood "],
        "mainImage": "https://images.example.com/sofa.jpg",
        "videoUrl": "https://www.youtube.com/watch?v=abc123",
        "tags": ["Sofa", " Linen"],
        "category": "Living-Room",
        "featured": True
    }
    payload.update(overrides)
    return payload


@pytest.mark.unit
class TestPublicProducts:
    """Tests for storefront catalog endpoints"""

    def test_list_only_active(self, client, db):
        make_product(db, title="Active Chair", sku="CHAIR-1", category="office")
        make_product(db, title="Hidden Chair", sku="CHAIR-2", category="office", status="inactive")

        response = client.get("/api/products")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert [p["title"] for p in data["products"]] == ["Active Chair"]
        assert data["pagination"]["totalCount"] == 1

    def test_default_limit_from_configuration(self, client, db):
        for i in range(14):
            make_product(db, title=f"Stool {i}", sku=f"STOOL-{i}")

        response = client.get("/api/products")

        data = response.json()
        assert len(data["products"]) == 12
        assert data["pagination"]["total"] == 2

    def test_search_and_category(self, client, db):
        make_product(db, title="Walnut Desk", sku="DESK-1", category="office",
                     short_description="Writing desk for a study", tags=["walnut"])
        make_product(db, title="Low Bed", sku="BED-1", category="bedroom",
                     short_description="Platform bed with slats", tags=["oak"])

        by_query = client.get("/api/products?q=WALNUT").json()
        by_tag = client.get("/api/products?q=oak").json()
        by_category = client.get("/api/products?category=bedroom").json()

        assert [p["title"] for p in by_query["products"]] == ["Walnut Desk"]
        assert [p["title"] for p in by_tag["products"]] == ["Low Bed"]
        assert [p["title"] for p in by_category["products"]] == ["Low Bed"]

    def test_sort_by_price(self, client, db):
        make_product(db, title="Cheap", sku="P-1", price=10)
        make_product(db, title="Dear", sku="P-2", price=1000)

        ascending = client.get("/api/products?sort=price-asc").json()["products"]
        descending = client.get("/api/products?sort=price-desc").json()["products"]

        assert [p["title"] for p in ascending] == ["Cheap", "Dear"]
        assert [p["title"] for p in descending] == ["Dear", "Cheap"]

    def test_featured(self, client, db):
        make_product(db, title="Star Lamp", sku="LAMP-1", category="lighting", featured=True)
        make_product(db, title="Plain Lamp", sku="LAMP-2", category="lighting")

        response = client.get("/api/products/featured")

        assert [p["title"] for p in response.json()["products"]] == ["Star Lamp"]

    def test_categories(self, client, db):
        make_product(db, sku="D-1", category="dining")
        make_product(db, sku="D-2", category="dining")
        make_product(db, sku="L-1", category="living-room")

        response = client.get("/api/products/categories")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["categories"] == [
            {"id": "dining", "name": "Dining", "count": 2},
            {"id": "living-room", "name": "Living room", "count": 1},
        ]

    def test_get_product(self, client, test_product):
        response = client.get(f"/api/products/{test_product.id}")

        assert response.status_code == status.HTTP_200_OK
        product = response.json()["product"]
        assert product["sku"] == "OAK-TABLE-01"
        assert product["formattedPrice"] == "RWF 450,000"
        assert product["dimensionsString"] == "180cm × 90cm × 75cm"

    def test_get_missing_product(self, client):
        response = client.get("/api/products/9999")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_related(self, client, db, test_product):
        for i in range(5):
            make_product(db, title=f"Chair {i}", sku=f"DINING-CHAIR-{i}", category="dining")
        make_product(db, title="Desk", sku="DESK-9", category="office")

        response = client.get(f"/api/products/{test_product.id}/related")

        related = response.json()["products"]
        assert len(related) == 4
        assert all(p["category"] == "dining" for p in related)
        assert all(p["id"] != test_product.id for p in related)


@pytest.mark.unit
class TestAdminProducts:
    """Tests for catalog management"""

    def test_create_product(self, client, admin_headers):
        response = client.post("/api/products/admin", headers=admin_headers, json=product_payload())

        assert response.status_code == status.HTTP_201_CREATED
        product = response.json()["product"]
        assert product["sku"] == "SOFA-LINEN-3"
        assert product["category"] == "living-room"
        assert product["tags"] == ["sofa", "linen"]
        assert product["materials"] == ["Fabric", "Wood"]
        assert product["videoUrl"] == "https://www.youtube.com/embed/abc123"
        assert product["formattedPrice"] == "$1,200.00"
        assert product["rating"] == 0

    def test_create_requires_auth(self, client):
        response = client.post("/api/products/admin", json=product_payload())

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_duplicate_sku(self, client, test_product, admin_headers):
        response = client.post(
            "/api/products/admin",
            headers=admin_headers,
            json=product_payload(sku="oak-table-01")
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "OAK-TABLE-01" in response.json()["detail"]

    @pytest.mark.parametrize("field,value", [
        ("category", "garage"),
        ("currency", "GBP"),
        ("price", -1),
        ("sku", "BAD SKU!"),
        ("videoUrl", "https://example.com/video.mp4"),
        ("mainImage", "not-a-url"),
        ("shortDescription", "short"),
    ])
    def test_invalid_fields(self, client, admin_headers, field, value):
        response = client.post(
            "/api/products/admin",
            headers=admin_headers,
            json=product_payload(**{field: value})
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_admin_list_includes_inactive(self, client, db, admin_headers):
        make_product(db, sku="A-1")
        make_product(db, sku="A-2", status="discontinued")

        response = client.get("/api/products/admin", headers=admin_headers)

        assert len(response.json()["products"]) == 2

    def test_update_product(self, client, test_product, admin_headers):
        response = client.put(
            f"/api/products/admin/{test_product.id}",
            headers=admin_headers,
            json={"price": 500000, "inStock": False}
        )

        assert response.status_code == status.HTTP_200_OK
        product = response.json()["product"]
        assert product["price"] == 500000
        assert product["inStock"] is False

    def test_update_to_taken_sku(self, client, db, test_product, admin_headers):
        make_product(db, sku="OTHER-1")

        response = client.put(
            f"/api/products/admin/{test_product.id}",
            headers=admin_headers,
            json={"sku": "OTHER-1"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_update_missing_product(self, client, admin_headers):
        response = client.put("/api/products/admin/9999", headers=admin_headers, json={"price": 1})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delete_product(self, client, db, test_product, admin_headers):
        product_id = test_product.id

        response = client.delete(f"/api/products/admin/{product_id}", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        assert db.query(Product).filter(Product.id == product_id).first() is None
