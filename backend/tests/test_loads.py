"""Load lifecycle tests: create, dispatch, receipt, farm waypoint, duplicate, cancel, delete."""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient

from conftest import DISPATCH_DATE, create_load, set_stock


def _crate_load(network, quantity: int = 40, **extra) -> dict:
    body = {
        "originSiteId": network.farm.id,
        "destinationSiteId": network.depot.id,
        "scheduledDepartureTime": "08:00:00",
        "estimatedArrivalTime": "12:00:00",
        "packaging": [{"packagingTypeId": network.crate.id, "quantity": quantity}],
    }
    body.update(extra)
    return body


async def _inventory(client: AsyncClient, headers: dict, site_id: str) -> dict:
    response = await client.get(f"/api/sites/{site_id}/inventory", headers=headers)
    assert response.status_code == 200
    return {row["packagingTypeCode"]: row for row in response.json()["inventory"]}


@pytest.mark.integration
@pytest.mark.asyncio
class TestCreateLoad:

    async def test_create_scheduled_load(self, client: AsyncClient, network, dispatcher_headers):
        response = await client.post(
            "/api/loads/", json={"dispatchDate": DISPATCH_DATE.isoformat(), **_crate_load(network)},
            headers=dispatcher_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["loadNumber"] == "BV261012"
        load = data["load"]
        assert load["status"] == "scheduled"
        assert load["hasDiscrepancy"] is False
        assert load["expectedFarmArrivalTime"] == "14:00:00"
        assert load["expectedFarmDepartureTime"] == "17:00:00"
        assert load["originSite"]["code"] == "BV"

    async def test_same_day_loads_get_letter_suffixes(
        self, client: AsyncClient, network, dispatcher_headers
    ):
        first = await create_load(client, dispatcher_headers, **_crate_load(network))
        second = await create_load(client, dispatcher_headers, **_crate_load(network))
        third = await create_load(client, dispatcher_headers, **_crate_load(network))

        assert first["loadNumber"] == "BV261012"
        assert second["loadNumber"] == "BV261012A"
        assert third["loadNumber"] == "BV261012B"

    async def test_origin_and_destination_must_differ(
        self, client: AsyncClient, network, dispatcher_headers
    ):
        response = await client.post(
            "/api/loads/",
            json={
                "dispatchDate": DISPATCH_DATE.isoformat(),
                **_crate_load(network, destinationSiteId=network.farm.id),
            },
            headers=dispatcher_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ROUTE"

    async def test_packaging_lines_required(self, client: AsyncClient, network, dispatcher_headers):
        response = await client.post(
            "/api/loads/",
            json={
                "dispatchDate": DISPATCH_DATE.isoformat(),
                **_crate_load(network, packaging=[]),
            },
            headers=dispatcher_headers,
        )
        assert response.status_code == 400

    async def test_unknown_packaging_type(self, client: AsyncClient, network, dispatcher_headers):
        response = await client.post(
            "/api/loads/",
            json={
                "dispatchDate": DISPATCH_DATE.isoformat(),
                **_crate_load(network, packaging=[{"packagingTypeId": "nope", "quantity": 5}]),
            },
            headers=dispatcher_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PACKAGING_TYPE"

    async def test_readonly_cannot_create(self, client: AsyncClient, network, readonly_headers):
        response = await client.post(
            "/api/loads/",
            json={"dispatchDate": DISPATCH_DATE.isoformat(), **_crate_load(network)},
            headers=readonly_headers,
        )
        assert response.status_code == 403

    async def test_get_load_detail(self, client: AsyncClient, network, dispatcher_headers):
        load = await create_load(client, dispatcher_headers, **_crate_load(network))

        response = await client.get(f"/api/loads/{load['id']}", headers=dispatcher_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["load"]["id"] == load["id"]
        assert data["packaging"][0]["quantityDispatched"] == 40
        assert data["packaging"][0]["packagingType"]["code"] == "CRATE-20"
        assert data["backloadPackaging"] == []

    async def test_get_unknown_load(self, client: AsyncClient, network, dispatcher_headers):
        response = await client.get("/api/loads/missing", headers=dispatcher_headers)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"

    async def test_list_filters_by_status(self, client: AsyncClient, network, dispatcher_headers):
        load = await create_load(client, dispatcher_headers, **_crate_load(network))
        await create_load(client, dispatcher_headers, **_crate_load(network))
        await client.post(f"/api/loads/{load['id']}/cancel", headers=dispatcher_headers)

        response = await client.get(
            "/api/loads/", params={"status": "scheduled"}, headers=dispatcher_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 1
        assert data["loads"][0]["totalDispatched"] == 40
        assert data["loads"][0]["packagingCount"] == 1


@pytest.mark.integration
@pytest.mark.asyncio
class TestDispatchAndReceipt:

    async def test_dispatch_debits_origin_and_classifies_timing(
        self, client: AsyncClient, network, dispatcher_headers
    ):
        await set_stock(client, dispatcher_headers, network.farm.id, network.crate.id, 100)
        load = await create_load(client, dispatcher_headers, **_crate_load(network))

        response = await client.post(
            f"/api/loads/{load['id']}/confirm-dispatch",
            json={"actualDepartureTime": f"{DISPATCH_DATE.isoformat()}T08:20:00"},
            headers=dispatcher_headers,
        )

        assert response.status_code == 200
        dispatched = response.json()["load"]
        assert dispatched["status"] == "departed"
        assert dispatched["onTimeStatus"] == "delayed"
        assert dispatched["confirmedDispatchBy"] is not None

        stock = await _inventory(client, dispatcher_headers, network.farm.id)
        assert stock["CRATE-20"]["quantity"] == 60
        assert stock["CRATE-20"]["totalDispatched"] == 40

        movements = await client.get(
            "/api/packaging/movements",
            params={"loadId": load["id"]},
            headers=dispatcher_headers,
        )
        rows = movements.json()["movements"]
        assert len(rows) == 1
        assert rows[0]["movementType"] == "dispatch"
        assert rows[0]["quantity"] == -40
        assert rows[0]["direction"] == "out"
        assert rows[0]["referenceNumber"] == load["loadNumber"]

    @pytest.mark.parametrize("departed_at, expected", [
        ("07:50:00", "early"),
        ("07:55:00", "early"),
        ("07:55:01", "on_time"),
        ("08:03:00", "on_time"),
        ("08:04:59", "on_time"),
        ("08:05:00", "delayed"),
    ])
    async def test_five_minute_window_edges(
        self, client: AsyncClient, network, dispatcher_headers, departed_at, expected
    ):
        load = await create_load(client, dispatcher_headers, **_crate_load(network))

        response = await client.post(
            f"/api/loads/{load['id']}/confirm-dispatch",
            json={"actualDepartureTime": f"{DISPATCH_DATE.isoformat()}T{departed_at}"},
            headers=dispatcher_headers,
        )
        assert response.json()["load"]["onTimeStatus"] == expected

    async def test_dispatch_may_drive_balance_negative(
        self, client: AsyncClient, network, dispatcher_headers
    ):
        load = await create_load(client, dispatcher_headers, **_crate_load(network, quantity=25))
        response = await client.post(
            f"/api/loads/{load['id']}/confirm-dispatch", headers=dispatcher_headers
        )

        assert response.status_code == 200
        stock = await _inventory(client, dispatcher_headers, network.farm.id)
        assert stock["CRATE-20"]["quantity"] == -25

    async def test_dispatch_twice_is_rejected(self, client: AsyncClient, network, dispatcher_headers):
        load = await create_load(client, dispatcher_headers, **_crate_load(network))
        await client.post(f"/api/loads/{load['id']}/confirm-dispatch", headers=dispatcher_headers)

        again = await client.post(
            f"/api/loads/{load['id']}/confirm-dispatch", headers=dispatcher_headers
        )
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "INVALID_TRANSITION"

    async def test_receipt_without_lines_receives_everything(
        self, client: AsyncClient, network, dispatcher_headers, depot_headers
    ):
        load = await create_load(client, dispatcher_headers, **_crate_load(network))
        await client.post(f"/api/loads/{load['id']}/confirm-dispatch", headers=dispatcher_headers)

        response = await client.post(
            f"/api/loads/{load['id']}/confirm-receipt", headers=depot_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["hasDiscrepancy"] is False
        assert data["load"]["status"] == "completed"

        stock = await _inventory(client, depot_headers, network.depot.id)
        assert stock["CRATE-20"]["quantity"] == 40
        assert stock["CRATE-20"]["totalReceived"] == 40

    async def test_receipt_with_damage_and_missing_flags_discrepancy(
        self, client: AsyncClient, network, dispatcher_headers, depot_headers
    ):
        load = await create_load(client, dispatcher_headers, **_crate_load(network))
        await client.post(f"/api/loads/{load['id']}/confirm-dispatch", headers=dispatcher_headers)
        detail = await client.get(f"/api/loads/{load['id']}", headers=depot_headers)
        line_id = detail.json()["packaging"][0]["id"]

        response = await client.post(
            f"/api/loads/{load['id']}/confirm-receipt",
            json={
                "packaging": [{
                    "id": line_id,
                    "quantityReceived": 35,
                    "quantityDamaged": 2,
                    "quantityMissing": 3,
                }],
                "actualArrivalTime": f"{DISPATCH_DATE.isoformat()}T12:30:00",
                "discrepancyNotes": "Three crates short, two cracked",
            },
            headers=depot_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["hasDiscrepancy"] is True
        assert data["load"]["onTimeStatus"] == "delayed"
        assert data["load"]["discrepancyNotes"] == "Three crates short, two cracked"

        stock = await _inventory(client, depot_headers, network.depot.id)
        assert stock["CRATE-20"]["quantity"] == 35
        assert stock["CRATE-20"]["quantityDamaged"] == 2

        summary = await client.get("/api/dashboard/summary", headers=depot_headers)
        alerts = summary.json()["alerts"]
        assert [a["alertType"] for a in alerts] == ["discrepancy"]
        assert alerts[0]["loadId"] == load["id"]

    async def test_receipt_clears_departure_timing_when_arrival_unclassified(
        self, client: AsyncClient, network, dispatcher_headers, depot_headers
    ):
        no_eta = await create_load(
            client, dispatcher_headers, **_crate_load(network, estimatedArrivalTime=None)
        )
        no_actual = await create_load(client, dispatcher_headers, **_crate_load(network))
        for load in (no_eta, no_actual):
            dispatched = await client.post(
                f"/api/loads/{load['id']}/confirm-dispatch",
                json={"actualDepartureTime": f"{DISPATCH_DATE.isoformat()}T09:00:00"},
                headers=dispatcher_headers,
            )
            assert dispatched.json()["load"]["onTimeStatus"] == "delayed"

        first = await client.post(
            f"/api/loads/{no_eta['id']}/confirm-receipt",
            json={"actualArrivalTime": f"{DISPATCH_DATE.isoformat()}T12:00:00"},
            headers=depot_headers,
        )
        second = await client.post(
            f"/api/loads/{no_actual['id']}/confirm-receipt", headers=depot_headers
        )

        assert first.json()["load"]["status"] == "completed"
        assert first.json()["load"]["onTimeStatus"] is None
        assert second.json()["load"]["onTimeStatus"] is None

    async def test_receipt_rejects_lines_from_other_loads(
        self, client: AsyncClient, network, dispatcher_headers, depot_headers
    ):
        load = await create_load(client, dispatcher_headers, **_crate_load(network))
        await client.post(f"/api/loads/{load['id']}/confirm-dispatch", headers=dispatcher_headers)

        response = await client.post(
            f"/api/loads/{load['id']}/confirm-receipt",
            json={"packaging": [{"id": "someone-else", "quantityReceived": 1}]},
            headers=depot_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_LINE"

    async def test_receipt_before_dispatch_is_rejected(
        self, client: AsyncClient, network, dispatcher_headers, depot_headers
    ):
        load = await create_load(client, dispatcher_headers, **_crate_load(network))
        response = await client.post(
            f"/api/loads/{load['id']}/confirm-receipt", headers=depot_headers
        )
        assert response.status_code == 409

    async def test_farm_user_cannot_confirm_receipt(
        self, client: AsyncClient, network, dispatcher_headers, farm_headers
    ):
        load = await create_load(client, dispatcher_headers, **_crate_load(network))
        await client.post(f"/api/loads/{load['id']}/confirm-dispatch", headers=dispatcher_headers)

        response = await client.post(
            f"/api/loads/{load['id']}/confirm-receipt", headers=farm_headers
        )
        assert response.status_code == 403

    async def test_backload_credits_backload_site(
        self, client: AsyncClient, network, dispatcher_headers, depot_headers
    ):
        load = await create_load(
            client,
            dispatcher_headers,
            originSiteId=network.depot.id,
            destinationSiteId=network.market.id,
            packaging=[{"packagingTypeId": network.bin.id, "quantity": 10}],
            backloadSiteId=network.farm.id,
            backloadPackaging=[{
                "packagingTypeId": network.crate.id,
                "quantityReturned": 15,
                "quantityDamaged": 1,
            }],
        )
        await client.post(f"/api/loads/{load['id']}/confirm-dispatch", headers=dispatcher_headers)
        await client.post(f"/api/loads/{load['id']}/confirm-receipt", headers=depot_headers)

        stock = await _inventory(client, depot_headers, network.farm.id)
        assert stock["CRATE-20"]["quantity"] == 15
        assert stock["CRATE-20"]["quantityDamaged"] == 1
        assert stock["CRATE-20"]["totalReturned"] == 15


@pytest.mark.integration
@pytest.mark.asyncio
class TestFarmWaypoint:

    async def test_late_farm_arrival_is_overtime(self, client: AsyncClient, network, farm_headers):
        load = await create_load(client, farm_headers, **_crate_load(network))

        response = await client.post(
            f"/api/loads/{load['id']}/confirm-farm-arrival",
            json={"actualTime": f"{DISPATCH_DATE.isoformat()}T14:30:00"},
            headers=farm_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["overtimeMinutes"] == 30
        assert data["isOvertime"] is True
        assert data["load"]["hasOvertime"] is True

    async def test_early_farm_departure_has_no_overtime(
        self, client: AsyncClient, network, farm_headers
    ):
        load = await create_load(client, farm_headers, **_crate_load(network))

        response = await client.post(
            f"/api/loads/{load['id']}/confirm-farm-departure",
            json={"actualTime": f"{DISPATCH_DATE.isoformat()}T16:10:00"},
            headers=farm_headers,
        )

        data = response.json()
        assert data["overtimeMinutes"] == 0
        assert data["isOvertime"] is False
        assert data["load"]["hasOvertime"] is False

    async def test_waypoint_rejected_on_closed_load(
        self, client: AsyncClient, network, dispatcher_headers
    ):
        load = await create_load(client, dispatcher_headers, **_crate_load(network))
        await client.post(f"/api/loads/{load['id']}/cancel", headers=dispatcher_headers)

        response = await client.post(
            f"/api/loads/{load['id']}/confirm-farm-arrival", headers=dispatcher_headers
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "LOAD_CLOSED"


@pytest.mark.integration
@pytest.mark.asyncio
class TestUpdateDuplicateCancelDelete:

    async def test_update_applies_only_given_fields(
        self, client: AsyncClient, network, dispatcher_headers
    ):
        load = await create_load(client, dispatcher_headers, **_crate_load(network, notes="keep"))

        response = await client.put(
            f"/api/loads/{load['id']}",
            json={"destinationSiteId": network.market.id},
            headers=dispatcher_headers,
        )

        assert response.status_code == 200
        updated = response.json()["load"]
        assert updated["destinationSiteId"] == network.market.id
        assert updated["notes"] == "keep"
        assert updated["version"] > load["version"]

    async def test_manual_status_cannot_skip_confirmation(
        self, client: AsyncClient, network, dispatcher_headers
    ):
        load = await create_load(client, dispatcher_headers, **_crate_load(network))
        response = await client.put(
            f"/api/loads/{load['id']}", json={"status": "completed"}, headers=dispatcher_headers
        )
        assert response.status_code == 409

    async def test_manual_status_loading(self, client: AsyncClient, network, dispatcher_headers):
        load = await create_load(client, dispatcher_headers, **_crate_load(network))
        response = await client.put(
            f"/api/loads/{load['id']}", json={"status": "loading"}, headers=dispatcher_headers
        )
        assert response.status_code == 200
        assert response.json()["load"]["status"] == "loading"

    async def test_closed_load_only_accepts_notes(
        self, client: AsyncClient, network, dispatcher_headers
    ):
        load = await create_load(client, dispatcher_headers, **_crate_load(network))
        await client.post(f"/api/loads/{load['id']}/cancel", headers=dispatcher_headers)

        blocked = await client.put(
            f"/api/loads/{load['id']}",
            json={"destinationSiteId": network.market.id},
            headers=dispatcher_headers,
        )
        assert blocked.status_code == 409
        assert blocked.json()["error"]["code"] == "LOAD_CLOSED"

        notes = await client.put(
            f"/api/loads/{load['id']}", json={"notes": "Truck broke down"}, headers=dispatcher_headers
        )
        assert notes.status_code == 200

    async def test_duplicate_copies_lines_onto_new_date(
        self, client: AsyncClient, network, dispatcher_headers
    ):
        load = await create_load(
            client, dispatcher_headers, **_crate_load(network, expectedArrivalDate="2026-10-13")
        )

        response = await client.post(
            f"/api/loads/{load['id']}/duplicate",
            json={"dispatchDate": "2026-10-19"},
            headers=dispatcher_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["loadNumber"] == "BV261019"
        assert data["load"]["status"] == "scheduled"
        assert data["load"]["expectedArrivalDate"] == "2026-10-20"

        detail = await client.get(f"/api/loads/{data['load']['id']}", headers=dispatcher_headers)
        assert detail.json()["packaging"][0]["quantityDispatched"] == 40

    async def test_cancel_then_dispatch_rejected(self, client: AsyncClient, network, dispatcher_headers):
        load = await create_load(client, dispatcher_headers, **_crate_load(network))

        cancelled = await client.post(
            f"/api/loads/{load['id']}/cancel",
            json={"reason": "Rain"},
            headers=dispatcher_headers,
        )
        assert cancelled.status_code == 200
        assert cancelled.json()["load"]["status"] == "cancelled"
        assert "Cancelled: Rain" in cancelled.json()["load"]["notes"]

        response = await client.post(
            f"/api/loads/{load['id']}/confirm-dispatch", headers=dispatcher_headers
        )
        assert response.status_code == 409

    async def test_delete_scheduled_load(self, client: AsyncClient, network, admin_headers):
        load = await create_load(client, admin_headers, **_crate_load(network))

        response = await client.delete(f"/api/loads/{load['id']}", headers=admin_headers)
        assert response.status_code == 200
        missing = await client.get(f"/api/loads/{load['id']}", headers=admin_headers)
        assert missing.status_code == 404

    async def test_delete_dispatched_load_refused(self, client: AsyncClient, network, admin_headers):
        load = await create_load(client, admin_headers, **_crate_load(network))
        await client.post(f"/api/loads/{load['id']}/confirm-dispatch", headers=admin_headers)

        response = await client.delete(f"/api/loads/{load['id']}", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "LOAD_NOT_DELETABLE"

        kept = await client.get(f"/api/loads/{load['id']}", headers=admin_headers)
        assert kept.status_code == 200
        assert kept.json()["load"]["status"] == "departed"
        assert len(kept.json()["packaging"]) == 1
        assert kept.json()["packaging"][0]["quantityDispatched"] == 40

    async def test_dispatcher_cannot_delete(self, client: AsyncClient, network, dispatcher_headers):
        load = await create_load(client, dispatcher_headers, **_crate_load(network))
        response = await client.delete(f"/api/loads/{load['id']}", headers=dispatcher_headers)
        assert response.status_code == 403


@pytest.mark.integration
@pytest.mark.asyncio
class TestLiveTracking:

    async def _fleet(self, client: AsyncClient, admin_headers: dict) -> tuple[dict, dict]:
        vehicle = await client.post(
            "/api/config/vehicles",
            json={"registration": "23H", "name": "Truck 23H",
                  "telematicsAssetId": 40112, "telematicsAssetCode": "TG-23H"},
            headers=admin_headers,
        )
        assert vehicle.status_code == 201, vehicle.text
        driver = await client.post(
            "/api/config/drivers",
            json={"firstName": "Peter", "lastName": "Farai", "phone": "+263771000111"},
            headers=admin_headers,
        )
        return vehicle.json()["vehicle"], driver.json()["driver"]

    async def test_open_loads_from_yesterday_and_today(
        self, client: AsyncClient, network, admin_headers, dispatcher_headers
    ):
        vehicle, driver = await self._fleet(client, admin_headers)
        await client.put(
            f"/api/sites/{network.farm.id}",
            json={"latitude": -22.21, "longitude": 30.0},
            headers=admin_headers,
        )
        today = date.today()

        tracked = await create_load(
            client, dispatcher_headers,
            **_crate_load(network, dispatchDate=today.isoformat(),
                          vehicleId=vehicle["id"], driverId=driver["id"]),
        )
        yesterday = await create_load(
            client, dispatcher_headers,
            **_crate_load(network, dispatchDate=(today - timedelta(days=1)).isoformat()),
        )
        await client.post(f"/api/loads/{yesterday['id']}/confirm-dispatch", headers=dispatcher_headers)
        await create_load(
            client, dispatcher_headers,
            **_crate_load(network, dispatchDate=(today - timedelta(days=2)).isoformat()),
        )
        cancelled = await create_load(
            client, dispatcher_headers, **_crate_load(network, dispatchDate=today.isoformat())
        )
        await client.post(f"/api/loads/{cancelled['id']}/cancel", headers=dispatcher_headers)

        response = await client.get("/api/loads/tracking/active", headers=dispatcher_headers)

        assert response.status_code == 200
        active = response.json()["activeLoads"]
        assert [row["loadId"] for row in active] == [tracked["id"], yesterday["id"]]
        assert active[1]["status"] == "departed"

        row = active[0]
        assert row["origin"]["latitude"] == -22.21
        assert row["destination"]["code"] == "HRE"
        assert row["vehicle"]["telematicsAssetId"] == 40112
        assert row["vehicle"]["telematicsAssetCode"] == "TG-23H"
        assert row["driver"] == {"id": driver["id"], "name": "Peter Farai", "phone": "+263771000111"}
        assert active[1]["vehicle"] is None

    async def test_requires_authentication(self, client: AsyncClient, network):
        response = await client.get("/api/loads/tracking/active")
        assert response.status_code == 401
