import unittest
from decimal import Decimal
from unittest import mock

import fakes  # noqa: F401

from fastapi import HTTPException
from fastapi.testclient import TestClient
from psycopg_pool import PoolTimeout

from fintrack.db.pool import DB_POOL
from fintrack.main import app
from fintrack.models.assets import AssetView, PaginationMeta
from fintrack.services.assets import ServiceResult

GOLD_VIEW = AssetView(
    id=1,
    name="Gold Bar",
    category_id=1,
    category="Precious Metals",
    amount=Decimal("10"),
    purchase_price=Decimal("55.50"),
    status="active",
    total_purchase_price=Decimal("555.00"),
)


class AssetRouteTests(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(app)
        patcher = mock.patch("fintrack.routers.assets.require_api_user", return_value=7)
        self.require_user = patcher.start()
        self.addCleanup(patcher.stop)

    def test_unauthorized_identity_uses_envelope(self):
        self.require_user.side_effect = HTTPException(status_code=401, detail="not authorized")
        with mock.patch("fintrack.routers.assets.get_asset") as get_asset:
            resp = self.client.get("/v1/asset/1")
        get_asset.assert_not_called()
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"status_code": 401, "message": "not authorized", "data": None})

    def test_list_passes_filters_and_renders_envelope(self):
        result = ServiceResult(
            200,
            "success",
            [GOLD_VIEW],
            PaginationMeta(page=1, limit=5, total=1, total_pages=1),
        )
        with mock.patch("fintrack.routers.assets.list_assets", return_value=result) as list_assets:
            resp = self.client.get(
                "/v1/asset/list",
                params={"category": "Precious", "sort": "amount desc", "page": 1, "limit": 5},
            )

        self.assertEqual(resp.status_code, 200)
        user_id, query = list_assets.call_args.args
        self.assertEqual(user_id, 7)
        self.assertEqual(query.category, "Precious")
        self.assertEqual(query.sort, "amount desc")
        self.assertEqual((query.page, query.limit), (1, 5))
        self.assertIsNone(query.name)

        body = resp.json()
        self.assertEqual(body["status_code"], 200)
        self.assertEqual(body["message"], "success")
        self.assertEqual(Decimal(body["data"][0]["total_purchase_price"]), Decimal("555.00"))
        self.assertEqual(body["pagination"], {"page": 1, "limit": 5, "total": 1, "total_pages": 1})

    def test_list_without_limit_has_no_pagination_key(self):
        with mock.patch("fintrack.routers.assets.list_assets", return_value=ServiceResult(200, "success", [])):
            resp = self.client.get("/v1/asset/list")
        self.assertNotIn("pagination", resp.json())

    def test_submit_returns_created(self):
        payload = {
            "name": "Gold Bar",
            "category_id": 1,
            "amount": "10",
            "purchase_price": "55.50",
            "status": "active",
        }

        def fake_submit(user_id, request):
            return ServiceResult(201, "success", request)

        with mock.patch("fintrack.routers.assets.submit_asset", side_effect=fake_submit):
            resp = self.client.post("/v1/asset/submit", json=payload)

        self.assertEqual(resp.status_code, 201)
        data = resp.json()["data"]
        self.assertEqual(data["name"], "Gold Bar")
        self.assertNotIn("id", data)

    def test_submit_validation_failure_never_reaches_service(self):
        payload = {"name": "", "category_id": 1, "amount": "0", "purchase_price": "-1", "status": "lost"}
        with mock.patch("fintrack.routers.assets.submit_asset") as submit:
            resp = self.client.post("/v1/asset/submit", json=payload)

        submit.assert_not_called()
        self.assertEqual(resp.status_code, 422)
        body = resp.json()
        self.assertEqual(body["message"], "validation error")
        fields = {err["field"] for err in body["data"]["errors"]}
        self.assertEqual(fields, {"name", "amount", "purchase_price", "status"})

    def test_get_and_update_map_service_status(self):
        with mock.patch(
            "fintrack.routers.assets.get_asset",
            return_value=ServiceResult(404, "data not found"),
        ) as get_asset:
            resp = self.client.get("/v1/asset/12")
        self.assertEqual(resp.status_code, 404)
        get_asset.assert_called_once_with(7, 12)

        with mock.patch(
            "fintrack.routers.assets.update_asset_fields",
            return_value=ServiceResult(200, "success", GOLD_VIEW),
        ) as update:
            resp = self.client.put("/v1/asset/1", json={"amount": "12.5"})
        self.assertEqual(resp.status_code, 200)
        user_id, asset_id, payload = update.call_args.args
        self.assertEqual((user_id, asset_id), (7, 1))
        self.assertEqual(payload.amount, Decimal("12.5"))
        self.assertIsNone(payload.name)

    def test_update_rejects_unknown_fields(self):
        with mock.patch("fintrack.routers.assets.update_asset_fields") as update:
            resp = self.client.put("/v1/asset/1", json={"user_id": 8})
        update.assert_not_called()
        self.assertEqual(resp.status_code, 422)

    def test_delete(self):
        with mock.patch(
            "fintrack.routers.assets.remove_asset",
            return_value=ServiceResult(200, "success"),
        ) as remove:
            resp = self.client.delete("/v1/asset/3")
        self.assertEqual(resp.status_code, 200)
        remove.assert_called_once_with(7, 3)

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"ok": True})


class AuthGuardTests(unittest.TestCase):
    def test_request_without_authorization_header_is_rejected_before_lookup(self):
        client = TestClient(app)
        with mock.patch("fintrack.services.auth.get_api_user_by_token") as lookup:
            resp = client.get("/v1/asset/list")
        lookup.assert_not_called()
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["message"], "not authorized")

    def test_key_lookup_storage_failure_uses_envelope(self):
        client = TestClient(app, raise_server_exceptions=False)
        with mock.patch.object(DB_POOL, "connection", side_effect=PoolTimeout("couldn't get a connection")), \
                mock.patch("fintrack.routers.assets.list_assets") as list_assets, \
                self.assertLogs("fintrack.services.assets", level="ERROR") as logs:
            resp = client.get("/v1/asset/list", headers={"Authorization": "Bearer ftk_x"})

        list_assets.assert_not_called()
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"status_code": 500, "message": "internal server error", "data": None})
        self.assertIn("get_api_user_by_token", logs.output[0])

    def test_key_lookup_with_closed_pool_uses_envelope(self):
        client = TestClient(app, raise_server_exceptions=False)
        with self.assertLogs("fintrack.services.assets", level="ERROR"):
            resp = client.get("/v1/asset/1", headers={"Authorization": "Bearer ftk_x"})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["message"], "internal server error")


if __name__ == "__main__":
    unittest.main()
