"""
Tests for tenant-scoped scheduling resources, plan quotas and travel estimates.
"""

from __future__ import annotations

import uuid

import pytest
from sqlmodel import select

from conftest import seed_member, seed_org, sign_in
from scheduler.models.resources import Crew, Depot
from scheduler.services.travel import (
    PostcodeHashEstimator,
    calculate_start_time,
    extract_postcode,
)


class FixedEstimator:
    def __init__(self, minutes: int):
        self.minutes = minutes

    def travel_minutes(self, from_postcode, to_postcode) -> int:
        return self.minutes


async def _create_depot(client, name: str = "North Yard", address: str = "1 Yard Lane, LS1 4AP"):
    return await client.post("/api/depots", json={"name": name, "address": address})


# ---------------------------------------------------------------------------
# Depots and crews
# ---------------------------------------------------------------------------

class TestDepots:
    @pytest.mark.asyncio
    async def test_create_depot_adds_default_crews(self, client, session_factory):
        admin, org, _ = await seed_org(session_factory)
        sign_in(client, admin.id, org.id)

        resp = await _create_depot(client)
        assert resp.status_code == 201
        depot = resp.json()
        assert depot["organizationId"] == str(org.id)

        crews = (await client.get("/api/crews")).json()
        assert sorted((c["name"], c["shift"]) for c in crews) == [
            ("Day Shift", "day"),
            ("Night Shift", "night"),
        ]
        assert all(c["depotId"] == depot["id"] for c in crews)

    @pytest.mark.asyncio
    async def test_booker_can_read_but_not_write(self, client, session_factory):
        _, org, _ = await seed_org(session_factory)
        booker, _ = await seed_member(session_factory, org, role="user")
        sign_in(client, booker.id, org.id)

        assert (await client.get("/api/depots")).status_code == 200
        resp = await _create_depot(client)
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"

    @pytest.mark.asyncio
    async def test_operations_can_write(self, client, session_factory):
        _, org, _ = await seed_org(session_factory)
        ops, _ = await seed_member(session_factory, org, role="operations")
        sign_in(client, ops.id, org.id)
        assert (await _create_depot(client)).status_code == 201

    @pytest.mark.asyncio
    async def test_starter_depot_limit(self, client, session_factory):
        admin, org, _ = await seed_org(session_factory, plan="starter")
        sign_in(client, admin.id, org.id)

        assert (await _create_depot(client, "First")).status_code == 201
        resp = await _create_depot(client, "Second")
        assert resp.status_code == 403
        error = resp.json()["error"]
        assert error["code"] == "quota_exceeded"
        assert error["resource"] == "depots"
        assert error["currentUsage"] == 1
        assert error["limit"] == 1

    @pytest.mark.asyncio
    async def test_pro_plan_has_no_depot_limit(self, client, session_factory):
        admin, org, _ = await seed_org(session_factory, plan="pro")
        sign_in(client, admin.id, org.id)
        for i in range(3):
            assert (await _create_depot(client, f"Depot {i}")).status_code == 201

    @pytest.mark.asyncio
    async def test_archive_frees_quota_and_archives_crews(self, client, session_factory):
        admin, org, _ = await seed_org(session_factory, plan="starter")
        sign_in(client, admin.id, org.id)
        first = (await _create_depot(client, "First")).json()

        resp = await client.delete(f"/api/depots/{first['id']}")
        assert resp.status_code == 200
        assert resp.json()["archivedAt"] is not None
        assert (await client.get("/api/crews")).json() == []
        assert (await client.get("/api/depots")).json() == []
        archived = (await client.get("/api/depots", params={"include_archived": "true"})).json()
        assert [d["id"] for d in archived] == [first["id"]]

        assert (await _create_depot(client, "Second")).status_code == 201

        # Restoring would exceed the plan again
        resp = await client.post(f"/api/depots/{first['id']}/restore")
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "quota_exceeded"

    @pytest.mark.asyncio
    async def test_restore(self, client, session_factory):
        admin, org, _ = await seed_org(session_factory, plan="starter")
        sign_in(client, admin.id, org.id)
        depot = (await _create_depot(client)).json()
        await client.delete(f"/api/depots/{depot['id']}")

        resp = await client.post(f"/api/depots/{depot['id']}/restore")
        assert resp.status_code == 200
        assert resp.json()["archivedAt"] is None

    @pytest.mark.asyncio
    async def test_update(self, client, session_factory):
        admin, org, _ = await seed_org(session_factory)
        sign_in(client, admin.id, org.id)
        depot = (await _create_depot(client)).json()

        resp = await client.patch(f"/api/depots/{depot['id']}", json={"name": "Renamed"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Renamed"
        assert resp.json()["address"] == depot["address"]

    @pytest.mark.asyncio
    async def test_other_tenant_depot_is_not_found(self, client, session_factory):
        owner_b, org_b, _ = await seed_org(session_factory)
        sign_in(client, owner_b.id, org_b.id)
        foreign = (await _create_depot(client)).json()

        client.cookies.clear()
        admin_a, org_a, _ = await seed_org(session_factory)
        sign_in(client, admin_a.id, org_a.id)

        assert (await client.patch(f"/api/depots/{foreign['id']}", json={"name": "x"})).status_code == 404
        assert (await client.delete(f"/api/depots/{foreign['id']}")).status_code == 404
        assert (await client.get("/api/depots")).json() == []

        async with session_factory() as s:
            depot = (await s.execute(select(Depot).where(Depot.id == uuid.UUID(foreign["id"])))).scalar_one()
        assert depot.name == "North Yard"
        assert depot.archived_at is None


class TestCrews:
    @pytest.mark.asyncio
    async def test_create_update_archive(self, client, session_factory):
        admin, org, _ = await seed_org(session_factory)
        sign_in(client, admin.id, org.id)
        depot = (await _create_depot(client)).json()

        resp = await client.post(
            "/api/crews", json={"name": "Jetting", "depotId": depot["id"], "shift": "night"}
        )
        assert resp.status_code == 201
        crew = resp.json()
        assert crew["shift"] == "night"

        resp = await client.patch(f"/api/crews/{crew['id']}", json={"shift": "day"})
        assert resp.json()["shift"] == "day"

        resp = await client.delete(f"/api/crews/{crew['id']}")
        assert resp.json()["archivedAt"] is not None
        names = [c["name"] for c in (await client.get("/api/crews")).json()]
        assert "Jetting" not in names

    @pytest.mark.asyncio
    async def test_starter_crew_limit_counts_default_crews(self, client, session_factory):
        admin, org, _ = await seed_org(session_factory, plan="starter")
        sign_in(client, admin.id, org.id)
        depot = (await _create_depot(client)).json()

        ok = await client.post("/api/crews", json={"name": "Third", "depotId": depot["id"]})
        assert ok.status_code == 201
        resp = await client.post("/api/crews", json={"name": "Fourth", "depotId": depot["id"]})
        assert resp.status_code == 403
        assert resp.json()["error"]["resource"] == "crews"

    @pytest.mark.asyncio
    async def test_crew_on_foreign_depot(self, client, session_factory):
        owner_b, org_b, _ = await seed_org(session_factory)
        sign_in(client, owner_b.id, org_b.id)
        foreign = (await _create_depot(client)).json()

        client.cookies.clear()
        admin_a, org_a, _ = await seed_org(session_factory)
        sign_in(client, admin_a.id, org_a.id)
        resp = await client.post("/api/crews", json={"name": "Sneaky", "depotId": foreign["id"]})
        assert resp.status_code == 404

        async with session_factory() as s:
            crews = (await s.execute(select(Crew).where(Crew.name == "Sneaky"))).scalars().all()
        assert crews == []


# ---------------------------------------------------------------------------
# Employees and vehicles
# ---------------------------------------------------------------------------

class TestEmployeesAndVehicles:
    @pytest.mark.asyncio
    async def test_employee_lifecycle(self, client, session_factory):
        admin, org, _ = await seed_org(session_factory)
        sign_in(client, admin.id, org.id)
        depot = (await _create_depot(client)).json()

        resp = await client.post(
            "/api/employees",
            json={
                "name": "Pat Jones",
                "depotId": depot["id"],
                "jobRole": "supervisor",
                "homePostcode": "LS6 2AB",
                "startsFromHome": True,
            },
        )
        assert resp.status_code == 201
        employee = resp.json()
        assert employee["status"] == "active"
        assert employee["jobRole"] == "supervisor"
        assert employee["startsFromHome"] is True

        resp = await client.patch(f"/api/employees/{employee['id']}", json={"status": "holiday"})
        assert resp.json()["status"] == "holiday"

        resp = await client.delete(f"/api/employees/{employee['id']}")
        assert resp.json() == {"success": True}
        assert (await client.get("/api/employees")).json() == []

    @pytest.mark.asyncio
    async def test_vehicle_lifecycle(self, client, session_factory):
        admin, org, _ = await seed_org(session_factory)
        sign_in(client, admin.id, org.id)
        depot = (await _create_depot(client)).json()

        resp = await client.post(
            "/api/vehicles",
            json={"name": "Van 1", "depotId": depot["id"], "vehicleType": "CCTV", "color": "#ff0000"},
        )
        assert resp.status_code == 201
        vehicle = resp.json()
        assert vehicle["vehicleType"] == "CCTV"

        resp = await client.patch(f"/api/vehicles/{vehicle['id']}", json={"status": "maintenance"})
        assert resp.json()["status"] == "maintenance"

        assert (await client.delete(f"/api/vehicles/{vehicle['id']}")).status_code == 200
        assert (await client.delete(f"/api/vehicles/{vehicle['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_status_rejected(self, client, session_factory):
        admin, org, _ = await seed_org(session_factory)
        sign_in(client, admin.id, org.id)
        depot = (await _create_depot(client)).json()

        resp = await client.post(
            "/api/employees", json={"name": "X", "depotId": depot["id"], "status": "retired"}
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_booker_cannot_delete(self, client, session_factory):
        admin, org, _ = await seed_org(session_factory)
        sign_in(client, admin.id, org.id)
        depot = (await _create_depot(client)).json()
        vehicle = (
            await client.post(
                "/api/vehicles", json={"name": "Van", "depotId": depot["id"], "vehicleType": "Jetter"}
            )
        ).json()

        client.cookies.clear()
        booker, _ = await seed_member(session_factory, org)
        sign_in(client, booker.id, org.id)
        assert (await client.delete(f"/api/vehicles/{vehicle['id']}")).status_code == 403
        assert len((await client.get("/api/vehicles")).json()) == 1


# ---------------------------------------------------------------------------
# Travel time
# ---------------------------------------------------------------------------

class TestPostcodes:
    @pytest.mark.parametrize(
        "address,expected",
        [
            ("10 Downing St, London sw1a 2aa", "SW1A2AA"),
            ("Unit 4, Leeds LS11 5DJ", "LS115DJ"),
            ("M1 1AE", "M11AE"),
            ("No postcode here", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract(self, address, expected):
        assert extract_postcode(address) == expected


class TestTravelEstimate:
    def test_hash_estimator(self):
        estimator = PostcodeHashEstimator()
        assert estimator.travel_minutes("SW1A1AA", "EC1A1BB") == 52
        assert estimator.travel_minutes("SW1A1AA", "SW1A1AA") == 20
        assert estimator.travel_minutes(None, "EC1A1BB") == 45

    def test_estimator_range(self):
        estimator = PostcodeHashEstimator()
        for a, b in [("LS11AA", "M11AE"), ("B11AA", "ZE29ZZ"), ("EH11YZ", "CF101AA")]:
            assert 20 <= estimator.travel_minutes(a, b) <= 89

    def test_start_time_subtracts_travel_and_buffer(self):
        result = calculate_start_time(
            "08:00", "Depot, SW1A 1AA", "Job at EC1A 1BB", 15, FixedEstimator(30)
        )
        assert result == "07:15"

    def test_start_time_wraps_midnight(self):
        assert calculate_start_time("00:10", "SW1A 1AA", "EC1A 1BB", 15, FixedEstimator(30)) == "23:25"

    def test_unknown_postcode_keeps_default(self):
        assert calculate_start_time("08:00", "somewhere", "EC1A 1BB") == "08:00"
        assert calculate_start_time("08:00", "SW1A 1AA", None) == "08:00"

    @pytest.mark.asyncio
    async def test_endpoint(self, client, session_factory):
        user, org, _ = await seed_org(session_factory)
        sign_in(client, user.id, org.id)

        resp = await client.get(
            "/api/travel-time",
            params={"from": "Depot SW1A 1AA", "to": "Job EC1A 1BB", "startTime": "08:00"},
        )
        assert resp.status_code == 200
        assert resp.json() == {
            "fromPostcode": "SW1A1AA",
            "toPostcode": "EC1A1BB",
            "travelMinutes": 52,
            "startTime": "06:53",
        }

    @pytest.mark.asyncio
    async def test_endpoint_rejects_bad_time(self, client, session_factory):
        user, org, _ = await seed_org(session_factory)
        sign_in(client, user.id, org.id)
        resp = await client.get("/api/travel-time", params={"startTime": "8am"})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_endpoint_requires_session(self, client):
        assert (await client.get("/api/travel-time")).status_code == 401
