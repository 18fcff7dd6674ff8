"""
Tests for the administrator endpoints.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_admin_endpoints_require_admin(client: AsyncClient, auth_headers, test_show):
    response = await client.get(f"/api/v1/admin/shows/{test_show.id}/seats", headers=auth_headers)
    assert response.status_code == 403

    anonymous = await client.get(f"/api/v1/admin/shows/{test_show.id}/seats")
    assert anonymous.status_code == 401


@pytest.mark.asyncio
async def test_admin_seat_map_shows_owners(
    client: AsyncClient, admin_headers, auth_headers, test_user, test_show
):
    await client.post(f"/api/v1/shows/{test_show.id}/seats/A1/hold", headers=auth_headers)
    booking = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["A2"]},
        headers=auth_headers,
    )

    response = await client.get(f"/api/v1/admin/shows/{test_show.id}/seats", headers=admin_headers)
    assert response.status_code == 200
    seats = {seat["seat_label"]: seat for seat in response.json()}
    assert seats["A1"]["hold_owner"] == test_user.id
    assert seats["A2"]["booking_id"] == booking.json()["id"]
    assert seats["A3"]["hold_owner"] is None


@pytest.mark.asyncio
async def test_admin_force_release(client: AsyncClient, admin_headers, auth_headers, test_show):
    await client.post(f"/api/v1/shows/{test_show.id}/seats/B1/hold", headers=auth_headers)

    response = await client.post(
        f"/api/v1/admin/shows/{test_show.id}/seats/B1/release", headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["released"] is True


@pytest.mark.asyncio
async def test_admin_cancel_any_booking(client: AsyncClient, admin_headers, auth_headers, test_show):
    booking = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["C1", "C2"]},
        headers=auth_headers,
    )

    response = await client.delete(
        f"/api/v1/admin/bookings/{booking.json()['id']}", headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["seats_released"] == 2


@pytest.mark.asyncio
async def test_admin_sweep_without_expired_holds(client: AsyncClient, admin_headers, auth_headers, test_show):
    await client.post(f"/api/v1/shows/{test_show.id}/seats/D1/hold", headers=auth_headers)

    response = await client.post("/api/v1/admin/maintenance/sweep", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"released": 0}
