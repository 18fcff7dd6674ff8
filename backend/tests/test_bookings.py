"""
Tests for booking endpoints: purchase, conflicts, idempotent retries and cancellation.
"""

import asyncio
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import exc

from app.services.booking_service import ReservationCoordinator
from tests.utils import auth_headers_for, create_user


async def seat_status(client: AsyncClient, show_id: int) -> dict:
    response = await client.get(f"/api/v1/shows/{show_id}/seats/")
    return {seat["seat_label"]: seat["status"] for seat in response.json()}


@pytest.mark.asyncio
async def test_book_seats(client: AsyncClient, auth_headers, test_user, test_show):
    """Successful booking marks every requested seat booked."""
    response = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["A1", "A2"]},
        headers=auth_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["show_id"] == test_show.id
    assert data["user_id"] == test_user.id
    assert data["seat_labels"] == ["A1", "A2"]
    assert Decimal(data["total_amount"]) == Decimal("500.00")
    assert data["status"] == "confirmed"
    assert data["replayed"] is False

    statuses = await seat_status(client, test_show.id)
    assert statuses["A1"] == "booked"
    assert statuses["A2"] == "booked"
    assert statuses["A3"] == "available"


@pytest.mark.asyncio
async def test_book_seats_lowercase_labels(client: AsyncClient, auth_headers, test_show):
    response = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["b3"]},
        headers=auth_headers,
    )
    assert response.status_code == 201
    assert response.json()["seat_labels"] == ["B3"]


@pytest.mark.asyncio
async def test_book_seats_unauthenticated(client: AsyncClient, test_show):
    """Unauthenticated booking returns 401."""
    response = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["A1"]},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_book_taken_seat(client: AsyncClient, auth_headers, other_headers, test_show):
    """Booking a seat someone else booked returns 409 naming the seat."""
    first = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["C2"]},
        headers=other_headers,
    )
    assert first.status_code == 201

    response = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["C1", "C2", "C3"]},
        headers=auth_headers,
    )
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "SeatConflictError"
    assert body["seats"] == ["C2"]

    # Nothing from the failed request stuck
    statuses = await seat_status(client, test_show.id)
    assert statuses["C1"] == "available"
    assert statuses["C3"] == "available"


@pytest.mark.asyncio
async def test_book_unknown_seat(client: AsyncClient, auth_headers, test_show):
    response = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["Z99"]},
        headers=auth_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_book_missing_show(client: AsyncClient, auth_headers):
    response = await client.post(
        "/api/v1/bookings/",
        json={"show_id": 99999, "seat_labels": ["A1"]},
        headers=auth_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_book_too_many_seats(client: AsyncClient, auth_headers, test_show):
    """More than 10 seats in one request returns 422."""
    response = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": [f"D{i}" for i in range(1, 11)] + ["E1"]},
        headers=auth_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_book_wrong_total(client: AsyncClient, auth_headers, test_show):
    response = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["A1", "A2"], "total_amount": "250.00"},
        headers=auth_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_idempotent_retry(client: AsyncClient, auth_headers, test_show):
    """Repeating a request with the same Idempotency-Key returns the original booking."""
    headers = {**auth_headers, "Idempotency-Key": "order-7"}
    payload = {"show_id": test_show.id, "seat_labels": ["F1", "F2"]}

    first = await client.post("/api/v1/bookings/", json=payload, headers=headers)
    second = await client.post("/api/v1/bookings/", json=payload, headers=headers)

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["replayed"] is True

    bookings = await client.get("/api/v1/bookings/", headers=auth_headers)
    assert len(bookings.json()) == 1


@pytest.mark.asyncio
async def test_idempotency_key_reused_for_other_seats(client: AsyncClient, auth_headers, test_show):
    """Reusing a key for a different selection returns 422 and books nothing."""
    headers = {**auth_headers, "Idempotency-Key": "order-8"}

    first = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["A1"]},
        headers=headers,
    )
    assert first.status_code == 201

    response = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["B5", "B6"]},
        headers=headers,
    )
    assert response.status_code == 422

    statuses = await seat_status(client, test_show.id)
    assert statuses["B5"] == "available"
    assert statuses["B6"] == "available"


@pytest.mark.asyncio
async def test_concurrent_booking_same_seats(client: AsyncClient, database, test_show):
    """Parallel requests for the same seats produce exactly one booking."""
    users = [await create_user(database, f"buyer{i}") for i in range(5)]

    responses = await asyncio.gather(*(
        client.post(
            "/api/v1/bookings/",
            json={"show_id": test_show.id, "seat_labels": ["E5", "E6"]},
            headers=auth_headers_for(user),
        )
        for user in users
    ))

    codes = sorted(r.status_code for r in responses)
    assert codes == [201, 409, 409, 409, 409]


@pytest.mark.asyncio
async def test_cancel_booking(client: AsyncClient, auth_headers, test_show):
    """Cancelling returns the seats to available."""
    create = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["G1", "G2"]},
        headers=auth_headers,
    )
    booking_id = create.json()["id"]

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "cancelled"
    assert data["seats_released"] == 2

    statuses = await seat_status(client, test_show.id)
    assert statuses["G1"] == "available"
    assert statuses["G2"] == "available"

    detail = await client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    assert detail.json()["status"] == "cancelled"
    assert detail.json()["cancelled_at"] is not None


@pytest.mark.asyncio
async def test_cancel_twice(client: AsyncClient, auth_headers, test_show):
    """Second cancellation returns 409."""
    create = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["G3"]},
        headers=auth_headers,
    )
    booking_id = create.json()["id"]

    await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "AlreadyCancelledError"


@pytest.mark.asyncio
async def test_cancel_other_users_booking(client: AsyncClient, auth_headers, other_headers, test_show):
    create = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["G4"]},
        headers=auth_headers,
    )

    response = await client.delete(f"/api/v1/bookings/{create.json()['id']}", headers=other_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_and_get_bookings(client: AsyncClient, auth_headers, other_headers, test_show):
    first = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["H1"]},
        headers=auth_headers,
    )
    second = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["H3", "H2"]},
        headers=auth_headers,
    )

    response = await client.get("/api/v1/bookings/", headers=auth_headers)
    assert response.status_code == 200
    ids = [b["id"] for b in response.json()]
    assert ids == [second.json()["id"], first.json()["id"]]

    detail = await client.get(f"/api/v1/bookings/{second.json()['id']}", headers=auth_headers)
    assert detail.json()["seat_labels"] == ["H2", "H3"]

    hidden = await client.get(f"/api/v1/bookings/{first.json()['id']}", headers=other_headers)
    assert hidden.status_code == 404


@pytest.mark.asyncio
async def test_statement_timeout_returns_503(client: AsyncClient, auth_headers, test_show, monkeypatch):
    """A timed-out booking transaction is reported as retryable."""

    class QueryCanceled(Exception):
        sqlstate = "57014"

    async def timed_out(self, session, *args):
        raise exc.DBAPIError("UPDATE seats ...", {}, QueryCanceled("canceling statement due to statement timeout"))

    monkeypatch.setattr(ReservationCoordinator, "_book", timed_out)

    response = await client.post(
        "/api/v1/bookings/",
        json={"show_id": test_show.id, "seat_labels": ["J1"]},
        headers=auth_headers,
    )
    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert response.json()["error"] == "StorageError"
