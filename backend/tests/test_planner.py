"""Dispatch planner tests: schedules, weekly view, demand roll-up and promotion to loads."""

from datetime import date

import pytest
from httpx import AsyncClient

from packtrack.services.planner import week_bounds


def _schedule(network, **extra) -> dict:
    body = {
        "dispatchDate": "2026-10-14",
        "dispatchTime": "07:30:00",
        "originSiteId": network.farm.id,
        "destinationSiteId": network.depot.id,
        "crates": 40,
        "bins": 5,
        "boxes": 10,
        "customerName": "Mbare Fresh",
    }
    body.update(extra)
    return body


async def _create(client: AsyncClient, headers: dict, body: dict) -> dict:
    response = await client.post("/api/planner/schedules", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["schedule"]


@pytest.mark.unit
class TestWeekBounds:

    def test_defaults_to_monday_of_current_week(self):
        start, end = week_bounds(today=date(2026, 10, 17))
        assert start == date(2026, 10, 12)
        assert end == date(2026, 10, 18)

    def test_explicit_start_used_as_given(self):
        start, end = week_bounds(date(2026, 10, 14))
        assert start == date(2026, 10, 14)
        assert end == date(2026, 10, 20)


@pytest.mark.integration
@pytest.mark.asyncio
class TestSchedules:

    async def test_create_schedule(self, client: AsyncClient, network, dispatcher_headers):
        schedule = await _create(client, dispatcher_headers, _schedule(network))

        assert schedule["status"] == "planned"
        assert schedule["crates"] == 40
        assert schedule["loadId"] is None
        assert schedule["originSite"]["code"] == "BV"

    async def test_same_origin_and_destination_rejected(
        self, client: AsyncClient, network, dispatcher_headers
    ):
        response = await client.post(
            "/api/planner/schedules",
            json=_schedule(network, destinationSiteId=network.farm.id),
            headers=dispatcher_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_unknown_site_rejected(self, client: AsyncClient, network, dispatcher_headers):
        response = await client.post(
            "/api/planner/schedules",
            json=_schedule(network, destinationSiteId="nowhere"),
            headers=dispatcher_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_SITE"

    async def test_farm_user_cannot_plan(self, client: AsyncClient, network, farm_headers):
        response = await client.post(
            "/api/planner/schedules", json=_schedule(network), headers=farm_headers
        )
        assert response.status_code == 403

    async def test_update_rejects_unknown_status(
        self, client: AsyncClient, network, dispatcher_headers
    ):
        schedule = await _create(client, dispatcher_headers, _schedule(network))

        response = await client.put(
            f"/api/planner/schedules/{schedule['id']}",
            json={"status": "shipped"},
            headers=dispatcher_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATUS"

    async def test_update_fields(self, client: AsyncClient, network, dispatcher_headers):
        schedule = await _create(client, dispatcher_headers, _schedule(network))

        response = await client.put(
            f"/api/planner/schedules/{schedule['id']}",
            json={"crates": 60, "status": "packaging_sent"},
            headers=dispatcher_headers,
        )
        assert response.status_code == 200
        updated = response.json()["schedule"]
        assert updated["crates"] == 60
        assert updated["bins"] == 5
        assert updated["status"] == "packaging_sent"

    async def test_week_view_has_seven_days(self, client: AsyncClient, network, dispatcher_headers):
        schedule = await _create(client, dispatcher_headers, _schedule(network))
        await _create(client, dispatcher_headers, _schedule(network, dispatchDate="2026-10-21"))

        response = await client.get(
            "/api/planner/schedules/week",
            params={"weekStart": "2026-10-12"},
            headers=dispatcher_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["weekStart"] == "2026-10-12"
        assert data["weekEnd"] == "2026-10-18"
        assert len(data["days"]) == 7
        assert data["days"][0]["dayName"] == "Monday"
        assert [s["id"] for s in data["days"][2]["schedules"]] == [schedule["id"]]
        assert sum(len(d["schedules"]) for d in data["days"]) == 1

    async def test_packaging_demand_excludes_cancelled(
        self, client: AsyncClient, network, dispatcher_headers
    ):
        await _create(client, dispatcher_headers, _schedule(network))
        cancelled = await _create(client, dispatcher_headers, _schedule(network, crates=100))
        await client.put(
            f"/api/planner/schedules/{cancelled['id']}",
            json={"status": "cancelled"},
            headers=dispatcher_headers,
        )

        response = await client.get("/api/planner/packaging-demand", headers=dispatcher_headers)
        demand = response.json()["demand"]
        assert len(demand) == 1
        assert demand[0]["siteCode"] == "BV"
        assert demand[0]["totalCrates"] == 40
        assert demand[0]["totalBins"] == 5
        assert demand[0]["dispatchCount"] == 1

    async def test_only_admin_deletes(self, client: AsyncClient, network, dispatcher_headers, admin_headers):
        schedule = await _create(client, dispatcher_headers, _schedule(network))

        denied = await client.delete(
            f"/api/planner/schedules/{schedule['id']}", headers=dispatcher_headers
        )
        assert denied.status_code == 403

        deleted = await client.delete(
            f"/api/planner/schedules/{schedule['id']}", headers=admin_headers
        )
        assert deleted.status_code == 200
        missing = await client.get(
            f"/api/planner/schedules/{schedule['id']}", headers=admin_headers
        )
        assert missing.status_code == 404


@pytest.mark.integration
@pytest.mark.asyncio
class TestPromotion:

    async def test_create_load_from_schedule(self, client: AsyncClient, network, dispatcher_headers):
        schedule = await _create(client, dispatcher_headers, _schedule(network))

        response = await client.post(
            f"/api/planner/schedules/{schedule['id']}/create-load", headers=dispatcher_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["loadNumber"] == "BV261014"
        assert data["load"]["scheduledDepartureTime"] == "07:30:00"

        detail = await client.get(f"/api/loads/{data['load']['id']}", headers=dispatcher_headers)
        lines = {
            line["packagingType"]["code"]: line["quantityDispatched"]
            for line in detail.json()["packaging"]
        }
        # boxes have no packaging mapping and are skipped
        assert lines == {"CRATE-20": 40, "BIN-500": 5}

        promoted = await client.get(
            f"/api/planner/schedules/{schedule['id']}", headers=dispatcher_headers
        )
        assert promoted.json()["schedule"]["status"] == "confirmed"
        assert promoted.json()["schedule"]["loadNumber"] == "BV261014"

    async def test_promotion_happens_once(self, client: AsyncClient, network, dispatcher_headers):
        schedule = await _create(client, dispatcher_headers, _schedule(network))
        await client.post(
            f"/api/planner/schedules/{schedule['id']}/create-load", headers=dispatcher_headers
        )

        again = await client.post(
            f"/api/planner/schedules/{schedule['id']}/create-load", headers=dispatcher_headers
        )
        assert again.status_code == 400
        assert again.json()["error"]["code"] == "SCHEDULE_ALREADY_PROMOTED"

    async def test_cancelled_schedule_cannot_be_promoted(
        self, client: AsyncClient, network, dispatcher_headers
    ):
        schedule = await _create(client, dispatcher_headers, _schedule(network))
        await client.put(
            f"/api/planner/schedules/{schedule['id']}",
            json={"status": "cancelled"},
            headers=dispatcher_headers,
        )

        response = await client.post(
            f"/api/planner/schedules/{schedule['id']}/create-load", headers=dispatcher_headers
        )
        assert response.status_code == 400

    async def test_deleting_the_load_returns_schedule_to_planning(
        self, client: AsyncClient, network, dispatcher_headers, admin_headers
    ):
        schedule = await _create(client, dispatcher_headers, _schedule(network))
        created = await client.post(
            f"/api/planner/schedules/{schedule['id']}/create-load", headers=dispatcher_headers
        )
        load_id = created.json()["load"]["id"]

        deleted = await client.delete(f"/api/loads/{load_id}", headers=admin_headers)
        assert deleted.status_code == 200

        reverted = (await client.get(
            f"/api/planner/schedules/{schedule['id']}", headers=dispatcher_headers
        )).json()["schedule"]
        assert reverted["status"] == "planned"
        assert reverted["loadId"] is None
