"""Inventory ledger tests: stock classification, manual counts, movements and low-stock alerts."""

import pytest
from httpx import AsyncClient

from conftest import set_stock
from packtrack.services.inventory import stock_status


@pytest.mark.unit
class TestStockStatus:

    def test_no_threshold_is_normal(self):
        assert stock_status(0, None) == "normal"

    def test_at_or_below_minimum_is_critical(self):
        assert stock_status(10, 10) == "critical"
        assert stock_status(-5, 10) == "critical"

    def test_within_warning_band(self):
        assert stock_status(12, 10, warning_ratio=1.2) == "warning"
        assert stock_status(13, 10, warning_ratio=1.2) == "normal"

    def test_zero_minimum(self):
        assert stock_status(0, 0) == "critical"
        assert stock_status(1, 0) == "normal"


@pytest.mark.integration
@pytest.mark.asyncio
class TestManualCount:

    async def test_count_writes_delta_to_ledger(self, client: AsyncClient, network, depot_headers):
        first = await set_stock(client, depot_headers, network.depot.id, network.crate.id, 100)
        assert first["inventory"]["quantity"] == 100
        assert first["inventory"]["lastCountedAt"] is not None
        assert first["movement"]["quantity"] == 100
        assert first["movement"]["direction"] == "in"
        assert first["movement"]["movementType"] == "adjustment"

        second = await set_stock(client, depot_headers, network.depot.id, network.crate.id, 80)
        assert second["movement"]["quantity"] == -20
        assert second["movement"]["direction"] == "out"

    async def test_unchanged_count_appends_no_movement(
        self, client: AsyncClient, network, depot_headers
    ):
        await set_stock(client, depot_headers, network.depot.id, network.crate.id, 50)
        again = await set_stock(client, depot_headers, network.depot.id, network.crate.id, 50)
        assert again["movement"] is None

        movements = await client.get(
            "/api/packaging/movements",
            params={"siteId": network.depot.id},
            headers=depot_headers,
        )
        assert movements.json()["pagination"]["total"] == 1

    async def test_damaged_only_change_is_recorded(
        self, client: AsyncClient, network, depot_headers
    ):
        await set_stock(client, depot_headers, network.depot.id, network.crate.id, 50)
        response = await client.put(
            f"/api/packaging/inventory/{network.depot.id}/{network.crate.id}",
            json={"quantity": 50, "quantityDamaged": 4},
            headers=depot_headers,
        )

        movement = response.json()["movement"]
        assert movement["quantity"] == 0
        assert movement["quantityDamaged"] == 4

    async def test_negative_count_rejected(self, client: AsyncClient, network, depot_headers):
        response = await client.put(
            f"/api/packaging/inventory/{network.depot.id}/{network.crate.id}",
            json={"quantity": -1},
            headers=depot_headers,
        )
        assert response.status_code == 400

    async def test_unknown_site(self, client: AsyncClient, network, depot_headers):
        response = await client.put(
            f"/api/packaging/inventory/nowhere/{network.crate.id}",
            json={"quantity": 5},
            headers=depot_headers,
        )
        assert response.status_code == 404

    async def test_readonly_cannot_count(self, client: AsyncClient, network, readonly_headers):
        response = await client.put(
            f"/api/packaging/inventory/{network.depot.id}/{network.crate.id}",
            json={"quantity": 5},
            headers=readonly_headers,
        )
        assert response.status_code == 403

    async def test_site_route_records_count(self, client: AsyncClient, network, farm_headers):
        response = await client.put(
            f"/api/sites/{network.farm.id}/inventory/{network.bin.id}",
            json={"quantity": 12, "notes": "Monthly stocktake"},
            headers=farm_headers,
        )
        assert response.status_code == 200
        assert response.json()["movement"]["notes"] == "Monthly stocktake"


@pytest.mark.integration
@pytest.mark.asyncio
class TestLowStockAlerts:

    async def _threshold(self, client, headers, network, minimum=50, alert_enabled=True):
        response = await client.put(
            "/api/config/thresholds",
            json={
                "siteId": network.depot.id,
                "packagingTypeId": network.crate.id,
                "minThreshold": minimum,
                "maxThreshold": 500,
                "alertEnabled": alert_enabled,
            },
            headers=headers,
        )
        assert response.status_code == 200, response.text
        return response.json()["threshold"]

    async def _open_alerts(self, client, headers) -> list[dict]:
        summary = await client.get("/api/dashboard/summary", headers=headers)
        return [a for a in summary.json()["alerts"] if a["alertType"] == "low_stock"]

    async def test_drop_to_minimum_opens_one_alert(
        self, client: AsyncClient, network, admin_headers
    ):
        await set_stock(client, admin_headers, network.depot.id, network.crate.id, 100)
        await self._threshold(client, admin_headers, network)

        await set_stock(client, admin_headers, network.depot.id, network.crate.id, 40)
        await set_stock(client, admin_headers, network.depot.id, network.crate.id, 30)

        alerts = await self._open_alerts(client, admin_headers)
        assert len(alerts) == 1
        assert alerts[0]["severity"] == "critical"
        assert alerts[0]["siteId"] == network.depot.id

    async def test_acknowledged_alert_allows_a_new_one(
        self, client: AsyncClient, network, admin_headers
    ):
        await set_stock(client, admin_headers, network.depot.id, network.crate.id, 100)
        await self._threshold(client, admin_headers, network)
        await set_stock(client, admin_headers, network.depot.id, network.crate.id, 40)

        alert = (await self._open_alerts(client, admin_headers))[0]
        ack = await client.post(
            f"/api/dashboard/alerts/{alert['id']}/acknowledge", headers=admin_headers
        )
        assert ack.status_code == 200
        assert ack.json()["alert"]["isAcknowledged"] is True

        await set_stock(client, admin_headers, network.depot.id, network.crate.id, 20)
        assert len(await self._open_alerts(client, admin_headers)) == 1

    async def test_disabled_threshold_raises_nothing(
        self, client: AsyncClient, network, admin_headers
    ):
        await set_stock(client, admin_headers, network.depot.id, network.crate.id, 100)
        await self._threshold(client, admin_headers, network, alert_enabled=False)
        await set_stock(client, admin_headers, network.depot.id, network.crate.id, 10)

        assert await self._open_alerts(client, admin_headers) == []

    async def test_threshold_range_validated(self, client: AsyncClient, network, admin_headers):
        response = await client.put(
            "/api/config/thresholds",
            json={
                "siteId": network.depot.id,
                "packagingTypeId": network.crate.id,
                "minThreshold": 100,
                "maxThreshold": 50,
            },
            headers=admin_headers,
        )
        assert response.status_code == 400

    async def test_balance_status_in_dashboard(self, client: AsyncClient, network, admin_headers):
        await self._threshold(client, admin_headers, network, minimum=50)
        await set_stock(client, admin_headers, network.depot.id, network.crate.id, 55)

        summary = (await client.get("/api/dashboard/summary", headers=admin_headers)).json()
        row = next(
            b for b in summary["siteBalances"]
            if b["siteId"] == network.depot.id and b["packagingTypeCode"] == "CRATE-20"
        )
        assert row["status"] == "warning"
        assert row["minThreshold"] == 50
        assert any(b["siteId"] == network.depot.id for b in summary["lowStock"])
