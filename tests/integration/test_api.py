import pytest
from datetime import timedelta
from decimal import Decimal
from httpx import AsyncClient
from fastapi import status

from partsledger.auth.jwt_handler import create_access_token
from partsledger.utils.date_time import utc_now

API = "/api/v1"


async def create_component(client, headers, part_number="U-ESP32-S3", name="ESP32-S3 module"):
    response = await client.post(
        f"{API}/inventory/component/",
        json={"part_number": part_number, "name": name, "category": "IC"},
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


async def create_location(client, headers, code="A-01"):
    response = await client.post(
        f"{API}/inventory/location/",
        json={"code": code, "name": f"Shelf {code}"},
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


@pytest.mark.asyncio
class TestAuth:
    """Bearer token handling"""

    async def test_health_is_public(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "healthy"
        assert "X-Process-Time" in response.headers

    async def test_missing_token(self, client: AsyncClient):
        response = await client.get(f"{API}/inventory/component/")
        assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)

    async def test_invalid_token(self, client: AsyncClient):
        response = await client.get(
            f"{API}/inventory/component/", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_expired_token(self, client: AsyncClient):
        token = create_access_token("op-9", expires_delta=timedelta(minutes=-5))
        response = await client.get(f"{API}/inventory/component/", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_sweeps_require_admin(self, client: AsyncClient, auth_headers, admin_headers):
        """Operators cannot trigger sweeps; admins can"""
        denied = await client.post(f"{API}/monitor/stock-sweep", headers=auth_headers)
        assert denied.status_code == status.HTTP_403_FORBIDDEN

        allowed = await client.post(f"{API}/monitor/stock-sweep", headers=admin_headers)
        assert allowed.status_code == status.HTTP_200_OK
        assert allowed.json()["sweep"] == "stock"


@pytest.mark.asyncio
class TestInventoryApi:
    """Catalog and stock endpoints"""

    async def test_component_crud(self, client: AsyncClient, auth_headers, admin_headers):
        component = await create_component(client, auth_headers)
        assert component["status"] == "ACTIVE"
        assert component["created_by"] == "operator"

        duplicate = await client.post(
            f"{API}/inventory/component/",
            json={"part_number": "U-ESP32-S3", "name": "Again", "category": "IC"},
            headers=auth_headers,
        )
        assert duplicate.status_code == status.HTTP_409_CONFLICT
        assert duplicate.json()["detail"]["code"] == "duplicate_key"

        updated = await client.put(
            f"{API}/inventory/component/{component['id']}",
            json={"status": "DEPRECATED"},
            headers=auth_headers,
        )
        assert updated.json()["status"] == "DEPRECATED"

        forbidden = await client.delete(f"{API}/inventory/component/{component['id']}", headers=auth_headers)
        assert forbidden.status_code == status.HTTP_403_FORBIDDEN

        deleted = await client.delete(f"{API}/inventory/component/{component['id']}", headers=admin_headers)
        assert deleted.status_code == status.HTTP_204_NO_CONTENT

        missing = await client.get(f"{API}/inventory/component/{component['id']}", headers=auth_headers)
        assert missing.status_code == status.HTTP_404_NOT_FOUND

    async def test_component_with_stock_cannot_be_deleted(self, client: AsyncClient, auth_headers, admin_headers):
        component = await create_component(client, auth_headers)
        location = await create_location(client, auth_headers)
        await client.post(
            f"{API}/inventory/stock/adjust",
            json={"component_id": component["id"], "location_id": location["id"], "delta": 3, "reason": "Opening"},
            headers=auth_headers,
        )

        response = await client.delete(f"{API}/inventory/component/{component['id']}", headers=admin_headers)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["detail"]["dependents"]["stock_records"] == 1

    async def test_adjust_and_history(self, client: AsyncClient, auth_headers):
        """Adjustments show up in the ledger history and replay cleanly"""
        component = await create_component(client, auth_headers)
        location = await create_location(client, auth_headers)
        payload = {"component_id": component["id"], "location_id": location["id"], "delta": 12, "reason": "Opening"}

        added = await client.post(f"{API}/inventory/stock/adjust", json=payload, headers=auth_headers)
        assert added.status_code == status.HTTP_200_OK
        assert added.json()["new_qty"] == 12

        too_much = await client.post(
            f"{API}/inventory/stock/adjust", json={**payload, "delta": -20, "reason": "Scrap"}, headers=auth_headers
        )
        assert too_much.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert too_much.json()["detail"]["code"] == "invalid_operation"

        record = await client.get(
            f"{API}/inventory/stock/component/{component['id']}/location/{location['id']}", headers=auth_headers
        )
        assert record.json()["quantity"] == 12
        assert record.json()["component"]["part_number"] == "U-ESP32-S3"

        history = await client.get(
            f"{API}/inventory/transaction/history/{component['id']}/{location['id']}", headers=auth_headers
        )
        assert len(history.json()) == 1
        assert history.json()[0]["performed_by"] == "operator"

        replay = await client.get(
            f"{API}/inventory/transaction/replay/{component['id']}/{location['id']}", headers=auth_headers
        )
        assert replay.json()["consistent"] is True

    async def test_count_and_low_stock_report(self, client: AsyncClient, auth_headers):
        component = await create_component(client, auth_headers)
        location = await create_location(client, auth_headers)
        created = await client.post(
            f"{API}/inventory/stock/",
            json={"component_id": component["id"], "location_id": location["id"], "quantity": 20, "minimum_stock": 10},
            headers=auth_headers,
        )
        assert created.status_code == status.HTTP_201_CREATED
        record_id = created.json()["id"]

        counted = await client.post(
            f"{API}/inventory/stock/{record_id}/count", json={"counted_qty": 7}, headers=auth_headers
        )
        assert counted.json()["discrepancy"] == -13
        assert counted.json()["status"] == "LOW_STOCK"
        assert counted.json()["alert_id"] is not None

        report = await client.get(f"{API}/inventory/stock/low-stock", headers=auth_headers)
        assert report.json()["count"] == 1
        assert report.json()["items"][0]["stock_record_id"] == record_id


@pytest.mark.asyncio
class TestPurchaseOrderApi:
    """Purchase order flow over HTTP"""

    async def test_order_confirm_and_receive(self, client: AsyncClient, auth_headers):
        component = await create_component(client, auth_headers)
        location = await create_location(client, auth_headers)
        supplier = await client.post(
            f"{API}/purchase/supplier/", json={"code": "mouser", "name": "Mouser"}, headers=auth_headers
        )
        assert supplier.json()["code"] == "MOUSER"

        created = await client.post(
            f"{API}/purchase/purchase-order/",
            json={
                "supplier_id": supplier.json()["id"],
                "expected_delivery": (utc_now() + timedelta(days=5)).date().isoformat(),
                "lines": [{"component_id": component["id"], "quantity_ordered": 10, "unit_price": "3.20"}],
            },
            headers=auth_headers,
        )
        assert created.status_code == status.HTTP_201_CREATED
        po = created.json()
        assert po["po_number"] == f"PO-{utc_now().year}-001"
        assert Decimal(po["subtotal"]) == Decimal("32.00")
        line_id = po["lines"][0]["id"]

        early = await client.post(
            f"{API}/purchase/purchase-order/{po['id']}/receive",
            json={"receipts": [{"line_id": line_id, "quantity": 1, "location_id": location["id"]}]},
            headers=auth_headers,
        )
        assert early.status_code == status.HTTP_409_CONFLICT
        assert early.json()["detail"]["code"] == "invalid_state"

        for target in ("SUBMITTED", "CONFIRMED"):
            moved = await client.put(
                f"{API}/purchase/purchase-order/{po['id']}/status", json={"status": target}, headers=auth_headers
            )
            assert moved.json()["status"] == target

        over = await client.post(
            f"{API}/purchase/purchase-order/{po['id']}/receive",
            json={"receipts": [{"line_id": line_id, "quantity": 11, "location_id": location["id"]}]},
            headers=auth_headers,
        )
        assert over.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert over.json()["detail"]["code"] == "over_receipt"

        received = await client.post(
            f"{API}/purchase/purchase-order/{po['id']}/receive",
            json={"receipts": [{"line_id": line_id, "quantity": 10, "location_id": location["id"]}]},
            headers=auth_headers,
        )
        assert received.status_code == status.HTTP_200_OK
        assert received.json()["status"] == "RECEIVED"
        assert received.json()["fully_received"] is True

        stock = await client.get(
            f"{API}/inventory/stock/component/{component['id']}/location/{location['id']}", headers=auth_headers
        )
        assert stock.json()["quantity"] == 10

        entries = await client.get(
            f"{API}/inventory/transaction/reference/PURCHASE_ORDER/{po['po_number']}", headers=auth_headers
        )
        assert len(entries.json()) == 1
        assert entries.json()[0]["transaction_type"] == "RECEIVE"


@pytest.mark.asyncio
class TestAlertApi:
    """Alerts raised by sweeps and handled by operators"""

    async def test_sweep_alert_acknowledge_resolve(self, client: AsyncClient, auth_headers, admin_headers):
        component = await create_component(client, auth_headers)
        location = await create_location(client, auth_headers)
        await client.post(
            f"{API}/inventory/stock/",
            json={"component_id": component["id"], "location_id": location["id"], "quantity": 0, "minimum_stock": 4},
            headers=auth_headers,
        )

        sweep = await client.post(f"{API}/monitor/stock-sweep", headers=admin_headers)
        assert sweep.json()["alerts_created"] == 1

        active = await client.get(f"{API}/alerts/alert/active", headers=auth_headers)
        alert = active.json()[0]
        assert alert["alert_type"] == "OUT_OF_STOCK"
        assert alert["trigger_context"]["trigger"] == "stock_monitor"

        pending = await client.get(f"{API}/alerts/notification/pending", headers=auth_headers)
        assert pending.json()[0]["alert_id"] == alert["id"]

        acked = await client.post(f"{API}/alerts/alert/{alert['id']}/acknowledge", headers=auth_headers)
        assert acked.json()["status"] == "ACKNOWLEDGED"

        resolved = await client.post(
            f"{API}/alerts/alert/{alert['id']}/resolve", json={"notes": "Reel ordered"}, headers=auth_headers
        )
        assert resolved.json()["status"] == "RESOLVED"
        assert resolved.json()["resolved_by"] == "operator"

        again = await client.post(f"{API}/alerts/alert/{alert['id']}/acknowledge", headers=auth_headers)
        assert again.status_code == status.HTTP_409_CONFLICT


@pytest.mark.asyncio
class TestSourcingAndCostingApi:
    """Supplier prices feed the product cost estimate"""

    async def test_supplier_price_drives_estimate(self, client: AsyncClient, auth_headers):
        component = await create_component(client, auth_headers)
        supplier = await client.post(
            f"{API}/purchase/supplier/", json={"code": "lcsc", "name": "LCSC"}, headers=auth_headers
        )
        link = await client.post(
            f"{API}/purchase/component-supplier/",
            json={
                "component_id": component["id"],
                "supplier_id": supplier.json()["id"],
                "unit_price": "4.50",
                "is_preferred": True,
            },
            headers=auth_headers,
        )
        assert link.status_code == status.HTTP_201_CREATED
        assert link.json()["supplier_code"] == "LCSC"
        assert link.json()["part_number"] == "U-ESP32-S3"

        listed = await client.get(
            f"{API}/purchase/component-supplier/component/{component['id']}", headers=auth_headers
        )
        assert [l["id"] for l in listed.json()] == [link.json()["id"]]

        await client.post(
            f"{API}/inventory/bom/",
            json={"product_name": "Weather Station", "component_id": component["id"], "quantity_per_unit": 1},
            headers=auth_headers,
        )
        estimate = await client.get(
            f"{API}/inventory/costing/estimate/Weather Station", params={"quantity": 4}, headers=auth_headers
        )
        assert estimate.status_code == status.HTTP_200_OK
        assert Decimal(estimate.json()["material_cost"]) == Decimal("18")
        assert estimate.json()["line_items"][0]["source"] == "SUPPLIER_PREFERRED"

        snapshot = await client.post(
            f"{API}/inventory/costing/snapshot",
            json={"product_name": "Weather Station", "quantity": 4, "overhead_cost": "2.00"},
            headers=auth_headers,
        )
        assert snapshot.status_code == status.HTTP_201_CREATED
        assert Decimal(snapshot.json()["cost_per_unit"]) == Decimal("5")

        history = await client.get(
            f"{API}/inventory/costing/history", params={"product_name": "Weather Station"}, headers=auth_headers
        )
        assert len(history.json()) == 1

        removed = await client.delete(
            f"{API}/purchase/component-supplier/{link.json()['id']}", headers=auth_headers
        )
        assert removed.status_code == status.HTTP_204_NO_CONTENT
