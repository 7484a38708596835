"""Integration tests for location and service management."""

from tests.fixtures.booking_fixtures import LOCATION_HOURS, OTHER_TENANT_ID

LOCATIONS = "/api/v1/locations"
SERVICES = "/api/v1/services"


async def test_create_location(client, tenant_headers):
    response = await client.post(
        f"{LOCATIONS}/",
        json={
            "name": "Harbour Studio",
            "timezone": "Europe/Lisbon",
            "operating_hours": LOCATION_HOURS,
        },
        headers=tenant_headers,
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["timezone"] == "Europe/Lisbon"
    assert body["operating_hours"]["2"]["blocks"] == [
        {"start": "08:00", "end": "12:00"},
        {"start": "13:00", "end": "17:00"},
    ]
    assert body["operating_hours"]["6"]["enabled"] is False


async def test_create_location_validation(client, tenant_headers):
    bad_zone = await client.post(
        f"{LOCATIONS}/",
        json={"name": "Nowhere", "timezone": "Mars/Olympus"},
        headers=tenant_headers,
    )
    inverted = await client.post(
        f"{LOCATIONS}/",
        json={
            "name": "Backwards",
            "operating_hours": {
                "1": {"enabled": True, "blocks": [{"start": "18:00", "end": "09:00"}]}
            },
        },
        headers=tenant_headers,
    )

    assert bad_zone.status_code == 422
    assert inverted.status_code == 422


async def test_list_is_tenant_scoped(client, tenant_headers, location):
    mine = await client.get(f"{LOCATIONS}/", headers=tenant_headers)
    theirs = await client.get(f"{LOCATIONS}/", headers={"X-Tenant-ID": OTHER_TENANT_ID})

    assert [loc["name"] for loc in mine.json()] == ["Downtown Studio"]
    assert theirs.json() == []


async def test_update_location(client, tenant_headers, location):
    response = await client.put(
        f"{LOCATIONS}/{location.id}",
        json={"name": "Downtown Flagship"},
        headers=tenant_headers,
    )

    assert response.json()["name"] == "Downtown Flagship"
    assert response.json()["operating_hours"]["1"]["enabled"] is True


async def test_delete_location(client, tenant_headers, location, service, staff):
    response = await client.delete(f"{LOCATIONS}/{location.id}", headers=tenant_headers)
    service_after = await client.get(f"{SERVICES}/{service.id}", headers=tenant_headers)
    staff_after = await client.get(f"/api/v1/staff/{staff.id}", headers=tenant_headers)

    assert response.json() == {"message": "Location deleted successfully"}
    assert service_after.json()["location_ids"] == []
    assert staff_after.json()["schedules_by_location"] == {}


async def test_create_service(client, tenant_headers, location):
    response = await client.post(
        f"{SERVICES}/",
        json={
            "name": "Beard Trim",
            "duration_minutes": 20,
            "buffer_time_minutes": 10,
            "price": "15.00",
            "location_ids": [str(location.id)],
        },
        headers=tenant_headers,
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["location_ids"] == [str(location.id)]
    assert body["total_duration_minutes"] == 30


async def test_service_duration_must_be_positive(client, tenant_headers):
    response = await client.post(
        f"{SERVICES}/",
        json={"name": "Instant", "duration_minutes": 0},
        headers=tenant_headers,
    )

    assert response.status_code == 422


async def test_list_services_at_location(client, tenant_headers, location, service):
    await client.post(
        f"{SERVICES}/",
        json={"name": "Home Visit", "duration_minutes": 60},
        headers=tenant_headers,
    )

    at_location = await client.get(
        f"{SERVICES}/", params={"location_id": str(location.id)}, headers=tenant_headers
    )
    everything = await client.get(f"{SERVICES}/", headers=tenant_headers)

    assert [s["name"] for s in at_location.json()] == ["Haircut"]
    assert [s["name"] for s in everything.json()] == ["Haircut", "Home Visit"]


async def test_update_and_delete_service(client, tenant_headers, service):
    updated = await client.put(
        f"{SERVICES}/{service.id}",
        json={"buffer_time_minutes": 15},
        headers=tenant_headers,
    )
    deleted = await client.delete(f"{SERVICES}/{service.id}", headers=tenant_headers)
    missing = await client.get(f"{SERVICES}/{service.id}", headers=tenant_headers)

    assert updated.json()["total_duration_minutes"] == 75
    assert deleted.status_code == 200
    assert missing.status_code == 404


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
