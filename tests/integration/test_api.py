"""
API tests for the purchase-order JSON endpoints.
"""
import pytest
from fastapi.testclient import TestClient

from dashboard.app import app, get_facade


@pytest.fixture
def client(facade):
    app.dependency_overrides[get_facade] = lambda: facade
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(client, catalog, facade):
    """Client whose facade view includes the catalog fixture records."""
    facade.refresh_all()
    return client


def _order_body(catalog, **overrides) -> dict:
    body = {
        "date": "2025-03-10",
        "supplier_id": catalog["supplier"].id,
        "supplier_name": catalog["supplier"].name,
        "company_id": catalog["company"].id,
        "company_name": catalog["company"].name,
        "budget_code": catalog["budget"].code,
        "budget_type": "expenses",
        "items": [{
            "id": "item-1", "product_id": catalog["product"].id, "product_name": "מסך",
            "quantity": 3, "unit_price": 100, "total_price": 300,
        }],
        "add_vat": True,
    }
    body.update(overrides)
    return body


@pytest.mark.api
class TestCatalogRoutes:
    """Supplier, product, company and budget endpoints."""

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_supplier_crud(self, client, sample_supplier):
        resp = client.post("/api/suppliers", json=sample_supplier)
        assert resp.status_code == 201
        supplier_id = resp.json()["id"]
        assert supplier_id == 1

        resp = client.patch(f"/api/suppliers/{supplier_id}", json={"phone": "04-1234567"})
        assert resp.status_code == 200
        assert resp.json()["phone"] == "04-1234567"
        assert resp.json()["name"] == sample_supplier["name"]

        assert [s["id"] for s in client.get("/api/suppliers").json()] == [1]
        assert client.delete(f"/api/suppliers/{supplier_id}").json() == {"deleted": True}
        assert client.get(f"/api/suppliers/{supplier_id}").status_code == 404

    def test_update_missing_is_404(self, client):
        assert client.patch("/api/suppliers/99", json={"name": "x"}).status_code == 404
        assert client.patch("/api/orders/order-2025-9", json={"notes": "x"}).status_code == 404

    def test_delete_missing_is_404(self, client):
        assert client.delete("/api/products/prod-404").status_code == 404

    def test_patch_rejects_unknown_field(self, client, sample_supplier):
        client.post("/api/suppliers", json=sample_supplier)
        assert client.patch("/api/suppliers/1", json={"id": 7}).status_code == 422

    def test_products_by_supplier(self, client):
        client.post("/api/products", json={"name": "A", "supplier_id": 1, "price": 10})
        client.post("/api/products", json={"name": "B", "supplier_id": 2, "price": 20})
        names = [p["name"] for p in client.get("/api/products", params={"supplier_id": 2}).json()]
        assert names == ["B"]

    def test_duplicate_budget_is_409(self, client):
        assert client.post("/api/budgets", json={"code": 4100, "type": "expenses"}).status_code == 201
        resp = client.post("/api/budgets", json={"code": 4100, "type": "investments"})
        assert resp.status_code == 409

    def test_budgets_by_type(self, client):
        client.post("/api/budgets", json={"code": 4100, "type": "expenses"})
        client.post("/api/budgets", json={"code": 7100, "type": "investments"})
        codes = [b["code"] for b in client.get("/api/budgets", params={"type": "investments"}).json()]
        assert codes == [7100]

    def test_company_crud(self, client, sample_company):
        resp = client.post("/api/companies", json=sample_company)
        assert resp.status_code == 201
        company_id = resp.json()["id"]
        resp = client.patch(f"/api/companies/{company_id}", json={"location": "חיפה"})
        assert resp.json()["location"] == "חיפה"
        assert client.get(f"/api/companies/{company_id}").json()["name"] == sample_company["name"]


@pytest.mark.api
class TestOrderRoutes:
    """Order endpoints."""

    def test_create_and_fetch(self, seeded, catalog):
        resp = seeded.post("/api/orders", json=_order_body(catalog))
        assert resp.status_code == 201
        order = resp.json()
        assert order["order_number"] == "2025-1"
        assert (order["subtotal"], order["vat_amount"], order["total"]) == (300, 54, 354)

        assert seeded.get(f"/api/orders/{order['id']}").json() == order

    def test_manual_number(self, seeded, catalog):
        resp = seeded.post("/api/orders", json=_order_body(catalog, order_number="2025-40"))
        assert resp.json()["id"] == "order-2025-40"

        resp = seeded.post("/api/orders", json=_order_body(catalog, order_number="2025-040"))
        assert resp.status_code == 409

        resp = seeded.post("/api/orders", json=_order_body(catalog, order_number="forty"))
        assert resp.status_code == 400

    def test_order_number_proposal(self, seeded, catalog):
        assert seeded.get("/api/order-number").json() == {"order_number": "2025-1"}
        seeded.post("/api/orders", json=_order_body(catalog))
        assert seeded.get("/api/order-number").json() == {"order_number": "2025-2"}

    def test_update_recomputes(self, seeded, catalog):
        order = seeded.post("/api/orders", json=_order_body(catalog)).json()
        resp = seeded.patch(f"/api/orders/{order['id']}", json={"add_vat": False, "status": "sent"})
        assert resp.status_code == 200
        assert resp.json()["total"] == 300
        assert resp.json()["status"] == "sent"

    def test_filters(self, seeded, catalog):
        seeded.post("/api/orders", json=_order_body(catalog, date="2025-01-01"))
        seeded.post("/api/orders", json=_order_body(catalog, date="2025-03-01", status="sent"))

        assert len(seeded.get("/api/orders").json()) == 2
        sent = seeded.get("/api/orders", params={"status": "sent"}).json()
        assert [o["order_number"] for o in sent] == ["2025-2"]
        recent = seeded.get("/api/orders", params={"date_from": "2025-02-01"}).json()
        assert [o["date"] for o in recent] == ["2025-03-01"]

    def test_bulk_delete(self, seeded, catalog):
        first = seeded.post("/api/orders", json=_order_body(catalog)).json()
        resp = seeded.post("/api/orders/bulk-delete", json={"ids": [first["id"], "order-1-1"]})
        assert resp.json() == {first["id"]: True, "order-1-1": False}
        assert seeded.get("/api/orders").json() == []

    def test_stats(self, seeded, catalog):
        seeded.post("/api/orders", json=_order_body(catalog))
        stats = seeded.get("/api/stats").json()
        assert stats["total_orders"] == 1
        assert stats["by_status"]["draft"] == 1

    def test_totals(self, client):
        resp = client.post("/api/totals", json={
            "items": [{"id": "item-1", "quantity": 2, "unit_price": 50, "total_price": 100}],
            "add_vat": True,
        })
        assert resp.json() == {"subtotal": 100, "vat_rate": 0.18, "vat_amount": 18, "total": 118}


@pytest.mark.api
def test_stale_view_header(flaky):
    """A committed write whose refresh fails returns its body with X-View-Stale."""
    backend, facade = flaky
    app.dependency_overrides[get_facade] = lambda: facade
    try:
        backend.fail_lists = True
        resp = TestClient(app).post("/api/budgets", json={"code": 4100, "type": "expenses"})
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 201
    assert resp.headers["X-View-Stale"] == "true"
    assert resp.json()["code"] == 4100


def test_stale_view_on_update(flaky):
    """A stale update keeps the PATCH route's plain 200."""
    backend, facade = flaky
    facade.add_budget({"code": 4100, "type": "expenses"})
    app.dependency_overrides[get_facade] = lambda: facade
    try:
        backend.fail_lists = True
        resp = TestClient(app).patch("/api/budgets/4100", json={"name": "אחזקה"})
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 200
    assert resp.headers["X-View-Stale"] == "true"
    assert resp.json()["name"] == "אחזקה"
