"""Sites and admin configuration tests."""

import pytest
from httpx import AsyncClient

from conftest import TEST_PASSWORD
from packtrack.models.user import UserRole


@pytest.mark.integration
@pytest.mark.asyncio
class TestSites:

    async def test_list_and_search(self, client: AsyncClient, network, readonly_headers):
        response = await client.get("/api/sites/", params={"search": "depot"}, headers=readonly_headers)

        assert response.status_code == 200
        sites = response.json()["sites"]
        assert [s["code"] for s in sites] == ["HRE"]
        assert sites[0]["siteTypeName"] == "Depot"

    async def test_filter_by_type(self, client: AsyncClient, network, readonly_headers):
        response = await client.get(
            "/api/sites/",
            params={"siteTypeId": network.farm.site_type_id},
            headers=readonly_headers,
        )
        assert sorted(s["code"] for s in response.json()["sites"]) == ["BV", "CBC"]

    async def test_site_types(self, client: AsyncClient, network, readonly_headers):
        response = await client.get("/api/sites/types", headers=readonly_headers)
        assert [t["name"] for t in response.json()["siteTypes"]] == ["Depot", "Farm", "Market"]

    async def test_admin_creates_site(self, client: AsyncClient, network, admin_headers):
        response = await client.post(
            "/api/sites/",
            json={"code": "BYO", "name": "Bulawayo Depot", "siteTypeId": network.depot.site_type_id},
            headers=admin_headers,
        )

        assert response.status_code == 201
        site = response.json()["site"]
        assert site["siteTypeName"] == "Depot"
        assert site["country"] == "Zimbabwe"
        assert site["isActive"] is True

    async def test_duplicate_code(self, client: AsyncClient, network, admin_headers):
        response = await client.post(
            "/api/sites/", json={"code": "HRE", "name": "Second Harare"}, headers=admin_headers
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE_RECORD"

    async def test_dispatcher_cannot_create(self, client: AsyncClient, network, dispatcher_headers):
        response = await client.post(
            "/api/sites/", json={"code": "NEW", "name": "New Site"}, headers=dispatcher_headers
        )
        assert response.status_code == 403

    async def test_update_and_deactivate(self, client: AsyncClient, network, admin_headers):
        updated = await client.put(
            f"/api/sites/{network.market.id}",
            json={"city": "Harare", "contactName": "Mr Moyo"},
            headers=admin_headers,
        )
        assert updated.json()["site"]["city"] == "Harare"
        assert updated.json()["site"]["contactName"] == "Mr Moyo"

        deleted = await client.delete(f"/api/sites/{network.market.id}", headers=admin_headers)
        assert deleted.json()["message"] == "Site MBR deactivated"

        active = await client.get("/api/sites/", params={"active": True}, headers=admin_headers)
        assert "MBR" not in [s["code"] for s in active.json()["sites"]]

    async def test_unknown_site(self, client: AsyncClient, network, readonly_headers):
        response = await client.get("/api/sites/nowhere", headers=readonly_headers)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


@pytest.mark.integration
@pytest.mark.asyncio
class TestUsers:

    async def test_admin_creates_user_who_can_log_in(self, client: AsyncClient, users, admin_headers):
        response = await client.post(
            "/api/config/users",
            json={
                "email": "Clerk@PackTrack.co.zw",
                "password": "clerkpass1",
                "firstName": "Nyasha",
                "lastName": "Clerk",
                "role": "depot_user",
            },
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["user"]["email"] == "clerk@packtrack.co.zw"

        login = await client.post(
            "/api/auth/login", json={"email": "clerk@packtrack.co.zw", "password": "clerkpass1"}
        )
        assert login.status_code == 200

    async def test_duplicate_email(self, client: AsyncClient, users, admin_headers):
        response = await client.post(
            "/api/config/users",
            json={
                "email": "farm@packtrack.co.zw",
                "password": TEST_PASSWORD,
                "firstName": "Again",
                "lastName": "Farm",
            },
            headers=admin_headers,
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE_RECORD"

    async def test_password_reset_revokes_existing_tokens(
        self, client: AsyncClient, users, admin_headers, farm_headers
    ):
        farm_user = users[UserRole.FARM_USER]
        response = await client.put(
            f"/api/config/users/{farm_user.id}",
            json={"password": "brandnew99"},
            headers=admin_headers,
        )
        assert response.status_code == 200

        me = await client.get("/api/auth/me", headers=farm_headers)
        assert me.status_code == 401

    async def test_admin_cannot_deactivate_self(self, client: AsyncClient, users, admin_headers):
        admin = users[UserRole.ADMIN]
        response = await client.delete(f"/api/config/users/{admin.id}", headers=admin_headers)
        assert response.status_code == 400

    async def test_non_admin_denied(self, client: AsyncClient, users, dispatcher_headers):
        response = await client.get("/api/config/users", headers=dispatcher_headers)
        assert response.status_code == 403


@pytest.mark.integration
@pytest.mark.asyncio
class TestReferenceData:

    async def test_vehicle_lifecycle(self, client: AsyncClient, users, admin_headers):
        created = await client.post(
            "/api/config/vehicles",
            json={"registration": "23H", "name": "Truck 23H", "capacityKg": 8000},
            headers=admin_headers,
        )
        assert created.status_code == 201
        vehicle_id = created.json()["vehicle"]["id"]

        duplicate = await client.post(
            "/api/config/vehicles", json={"registration": "23H"}, headers=admin_headers
        )
        assert duplicate.status_code == 409

        await client.delete(f"/api/config/vehicles/{vehicle_id}", headers=admin_headers)
        listed = await client.get(
            "/api/config/vehicles", params={"active": False}, headers=admin_headers
        )
        assert [v["registration"] for v in listed.json()["vehicles"]] == ["23H"]

    async def test_config_all_lists_active_rows(
        self, client: AsyncClient, users, admin_headers, readonly_headers
    ):
        await client.post(
            "/api/config/channels", json={"code": "RETAIL", "name": "Retail"}, headers=admin_headers
        )
        await client.post(
            "/api/config/drivers", json={"firstName": "Peter", "lastName": "Farai"}, headers=admin_headers
        )

        response = await client.get("/api/config/all", headers=readonly_headers)

        assert response.status_code == 200
        data = response.json()
        assert [c["code"] for c in data["channels"]] == ["RETAIL"]
        assert [d["firstName"] for d in data["drivers"]] == ["Peter"]
        assert data["vehicles"] == []
