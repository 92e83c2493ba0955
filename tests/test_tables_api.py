import unittest
from unittest import mock

from fastapi.testclient import TestClient

from tests.base import SqliteStoreTestCase

from engdesk.core.config import settings
from engdesk.core.deps import get_data_store
from engdesk.main import app


class TablesApiTests(SqliteStoreTestCase):
    def setUp(self):
        super().setUp()
        self.seed_projects(
            {"number": 3, "name": "Library", "status": "Active"},
            {"number": 1, "name": "School", "status": "Active"},
            {"number": 2, "name": "Clinic", "status": "Closed"},
        )
        app.dependency_overrides[get_data_store] = lambda: self.store
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()

    def test_list_with_filter_and_order_query_string(self):
        response = self.client.get("/api/tables/projects?filter.status.eq=Active&order.number=asc")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([row["number"] for row in response.json()], [1, 3])

    def test_list_with_limit_offset_and_desc_order(self):
        response = self.client.get("/api/tables/projects?order.number=desc&limit=1&offset=1")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([row["number"] for row in response.json()], [2])

    def test_list_rejects_unknown_operator(self):
        response = self.client.get("/api/tables/projects?filter.status.approx=Active")
        self.assertEqual(response.status_code, 400)
        self.assertIn("approx", response.json()["error"])

    def test_query_body_with_null_comparison_is_400(self):
        response = self.client.post(
            "/api/tables/projects/query",
            json={"query": {"filter": [{"column": "number", "operator": "gt", "value": None}]}},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())

    def test_unknown_table_is_500_with_store_message(self):
        response = self.client.get("/api/tables/unicorns")
        self.assertEqual(response.status_code, 500)
        self.assertIn("unicorns", response.json()["error"])

    def test_table_allowlist(self):
        with mock.patch.object(settings, "DATA_TABLES", "clients"):
            response = self.client.get("/api/tables/projects")
        self.assertEqual(response.status_code, 404)

    def test_query_with_json_body(self):
        response = self.client.post(
            "/api/tables/projects/query",
            json={
                "query": {
                    "filter": [{"column": "status", "value": "Active"}],
                    "order": [{"column": "number", "ascending": False}],
                }
            },
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual([row["number"] for row in response.json()], [3, 1])

    def test_query_body_with_bad_operator_is_400(self):
        response = self.client.post(
            "/api/tables/projects/query",
            json={"query": {"filter": [{"column": "status", "operator": "between", "value": "x"}]}},
        )
        self.assertEqual(response.status_code, 400)

    def test_create_returns_201_with_generated_id(self):
        response = self.client.post("/api/tables/projects", json={"number": 5, "name": "Bridge", "status": "Active"})
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["name"], "Bridge")
        self.assertIsInstance(body["id"], int)

        fetched = self.client.get(f"/api/tables/projects/{body['id']}")
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.json()["number"], 5)

    def test_create_requires_body_fields(self):
        response = self.client.post("/api/tables/projects", json={})
        self.assertEqual(response.status_code, 400)

    def test_create_constraint_failure_is_500(self):
        response = self.client.post("/api/tables/projects", json={"number": 6})
        self.assertEqual(response.status_code, 500)
        self.assertIn("error", response.json())

    def test_update_and_missing_update(self):
        created = self.client.post("/api/tables/projects", json={"number": 7, "name": "Dock", "status": "Active"}).json()
        response = self.client.put(f"/api/tables/projects/{created['id']}", json={"status": "Closed"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "Closed")

        missing = self.client.put("/api/tables/projects/99999", json={"status": "Closed"})
        self.assertEqual(missing.status_code, 404)
        self.assertIn("error", missing.json())

    def test_update_by_alternate_id_column(self):
        response = self.client.put("/api/tables/projects/2?id_column=number", json={"status": "Active"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["number"], 2)
        self.assertEqual(response.json()["status"], "Active")

    def test_delete_and_missing_delete(self):
        created = self.client.post("/api/tables/projects", json={"number": 8, "name": "Silo", "status": "Active"}).json()
        response = self.client.delete(f"/api/tables/projects/{created['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True})

        again = self.client.delete(f"/api/tables/projects/{created['id']}")
        self.assertEqual(again.status_code, 404)

    def test_health_db(self):
        response = self.client.get("/health/db")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})


if __name__ == "__main__":
    unittest.main()
