"""Tests for the HTTP layer and its error status mapping."""

from fastapi.testclient import TestClient

from tests.conftest import inventory_payload, order_payload


class TestRootAndHealth:

    def test_root(self, client: TestClient):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["health"] == "/health"

    def test_health(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["remote_store"] == "healthy"
        assert data["cache_entries"] == 0
        assert data["profile_store"] == "healthy"
        assert "broker" in data

    def test_health_degraded_when_remote_down(self, client: TestClient, remote):
        remote.go_offline()
        data = client.get("/health").json()
        assert data["status"] == "degraded"
        assert data["remote_store"] == "unhealthy"


class TestCollections:

    def test_raw_read_reports_backend(self, client: TestClient):
        first = client.get("/api/collections/menu").json()
        second = client.get("/api/collections/menu").json()

        assert first["backend"] == "remote"
        assert second["backend"] == "cache"
        assert second["cached"] is True

    def test_fallback_is_reported(self, client: TestClient, remote):
        remote.go_offline()
        data = client.get("/api/collections/orders").json()
        assert data["backend"] == "local"
        assert data["fallback"] is True

    def test_document_collection(self, client: TestClient):
        data = client.get("/api/collections/analytics").json()
        assert data["records"]["fullRecord"]["totalOrders"] == 0

    def test_unknown_collection_is_400(self, client: TestClient):
        response = client.get("/api/collections/reservations")
        assert response.status_code == 400
        assert response.json()["error"] == "validation"


class TestOrderEndpoints:

    def test_create_list_and_analytics(self, client: TestClient):
        response = client.post("/api/orders", json=order_payload())
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["order"]["total"] == 330
        assert "analyticsWarning" not in body

        listing = client.get("/api/orders").json()
        assert listing["total"] == 1

        analytics = client.get("/api/analytics").json()
        assert analytics["fullRecord"]["totalOrders"] == 1

    def test_total_mismatch_is_400(self, client: TestClient):
        response = client.post("/api/orders", json=order_payload(total=1))
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "validation"
        assert body["context"]["errors"]

    def test_unknown_order_is_404(self, client: TestClient):
        response = client.get("/api/orders/ghost")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_status_flow(self, client: TestClient):
        client.post("/api/orders", json=order_payload(id="o1"))

        ok = client.put("/api/orders/o1/status", json={"status": "ready"})
        assert ok.status_code == 200
        assert ok.json()["order"]["status"] == "ready"

        backwards = client.put("/api/orders/o1/status", json={"status": "pending"})
        assert backwards.status_code == 400

        missing = client.put("/api/orders/o1/status", json={})
        assert missing.status_code == 400

    def test_cancel(self, client: TestClient):
        client.post("/api/orders", json=order_payload(id="o1"))
        response = client.post(
            "/api/orders/o1/cancel",
            json={"cancellationReason": "Kitchen closed", "cancelledBy": "Ravi"},
        )
        assert response.status_code == 200
        assert response.json()["order"]["status"] == "cancelled"

    def test_statistics(self, client: TestClient):
        client.post("/api/orders", json=order_payload())
        data = client.get("/api/order-statistics", params={"period": "today"}).json()
        assert data["statistics"]["totalOrders"] == 1

        assert client.get("/api/order-statistics", params={"period": "decade"}).status_code == 400

    def test_clear(self, client: TestClient):
        client.post("/api/orders", json=order_payload())
        assert client.delete("/api/orders").status_code == 200
        assert client.get("/api/orders").json()["total"] == 0


class TestInventoryEndpoints:

    def test_duplicate_is_409(self, client: TestClient):
        assert client.post("/api/inventory", json=inventory_payload()).status_code == 200

        response = client.post("/api/inventory", json=inventory_payload(name="SUGAR"))
        assert response.status_code == 409
        assert response.json()["error"] == "duplicate_conflict"
        assert len(client.get("/api/inventory").json()["inventory"]) == 1

    def test_bulk_stock(self, client: TestClient):
        item = client.post("/api/inventory", json=inventory_payload()).json()["item"]

        response = client.put("/api/inventory/stock", json=[
            {"id": item["id"], "delta": -17},
            {"id": "inv_missing", "delta": 1},
        ])
        body = response.json()
        assert body["updated"] == 1
        assert body["skipped"] == 1
        assert body["skippedIds"] == ["inv_missing"]

    def test_bulk_stock_needs_a_list(self, client: TestClient):
        response = client.put("/api/inventory/stock", json={"id": "x", "delta": 1})
        assert response.status_code == 400

    def test_delete_requires_id(self, client: TestClient):
        assert client.delete("/api/inventory").status_code == 400


class TestMenuEndpoints:

    def test_menu_and_availability(self, client: TestClient):
        client.post("/api/menu", json={"itemNo": 1, "name": "Dosa", "category": "South Indian", "price": 120})
        assert client.get("/api/menu").json()["menu"][0]["itemNo"] == "1"
        assert "South Indian" in client.get("/api/menu", params={"grouped": True}).json()["menu"]

        client.post("/api/menu-availability", json={"itemNo": "1", "available": False})
        assert client.get("/api/menu-availability").json()["items"] == {"1": {"available": False}}

        bulk = client.put("/api/menu-availability", json=[{"available": True}, {"itemNo": "1", "price": 110}])
        assert bulk.json()["skipped"] == 1


class TestStaffEndpoints:

    def test_tasks(self, client: TestClient):
        task = client.post("/api/tasks", json={"title": "Restock napkins"}).json()["task"]
        assert task["status"] == "pending"

        moved = client.put(f"/api/tasks/{task['id']}/status", json={"status": "completed"})
        assert moved.json()["task"]["status"] == "completed"

        assert client.put(f"/api/tasks/{task['id']}/status", json={"status": "done"}).status_code == 400
        assert client.delete(f"/api/tasks/{task['id']}").status_code == 200
        assert client.get("/api/tasks").json()["tasks"] == []

    def test_credentials(self, client: TestClient):
        users = [
            {"username": "ravi", "password": "pw1", "role": "waiter"},
            {"username": "priya", "password": "pw2", "role": "admin"},
        ]
        assert client.post("/api/credentials", json={"users": users}).json()["saved"] == 2
        first_ids = {u["username"]: u["id"] for u in client.get("/api/credentials").json()["users"]}

        client.post("/api/credentials", json={"users": users[:1]})
        remaining = client.get("/api/credentials").json()["users"]
        assert [u["id"] for u in remaining] == [first_ids["ravi"]]

        duplicate = client.post("/api/credentials", json={"users": users + users[:1]})
        assert duplicate.status_code == 409


class TestMigrationEndpoints:

    def test_report_then_run(self, client: TestClient):
        client.post("/api/orders", json=order_payload(id="o1", customerPhone="9876543210"))

        report = client.get("/api/migration/report").json()
        assert report["totalOrders"] == 1
        assert report["migratable"][0]["bestMatchProfileId"] == "cust_asha"

        stats = client.post("/api/migration/run", json=report).json()
        assert stats["migrated"] == 1

    def test_stale_report_is_409(self, client: TestClient):
        stale = {"generatedAt": "2020-01-01T00:00:00Z", "totalOrders": 0}
        response = client.post("/api/migration/run", json=stale)
        assert response.status_code == 409
        assert response.json()["error"] == "stale_report"


class TestOperationsEndpoints:

    def test_cache_info_and_clear(self, client: TestClient):
        client.get("/api/menu")
        entries = client.get("/api/cache").json()["entries"]
        assert "collection:menu" in entries

        client.delete("/api/cache")
        assert client.get("/api/cache").json()["entries"] == {}

    def test_export(self, client: TestClient, exporter):
        client.post("/api/orders", json=order_payload())
        result = client.post("/api/export/orders").json()
        assert result["success"] is True
        assert result["rows"] == 1
        assert exporter.orders_file.exists()

    def test_unknown_export(self, client: TestClient):
        assert client.post("/api/export/payroll").status_code == 400
