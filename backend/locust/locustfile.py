"""
Locust Load Test Suite

Show creation is admin only, so point the run at an existing show:
  SHOW_ID=1 locust -f locustfile.py --tags contention  # Same seats, many buyers
  SHOW_ID=1 locust -f locustfile.py --tags holds       # Hold/release churn
  locust -f locustfile.py --tags throughput            # Cached show listing
  locust -f locustfile.py --tags edge                  # Bad input
"""

import os
import random
import string

from locust import HttpUser, between, events, tag, task

SHOW_ID = int(os.environ.get("SHOW_ID", "1"))
ROWS = "ABCDEFGHIJ"
PASSWORD = "loadtest123"

# Seats every ContentionUser fights over
HOT_SEATS = ["E5", "E6"]


def random_email():
    return f"load_{random.randint(10000, 999999)}@test.com"


def random_username():
    return "u_" + "".join(random.choices(string.ascii_lowercase, k=8))


def random_seat():
    return f"{random.choice(ROWS)}{random.randint(1, 10)}"


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Load testing show {SHOW_ID}")
    print("=" * 60)


class AuthenticatedUser(HttpUser):
    abstract = True

    def on_start(self):
        email = random_email()
        self.client.post("/api/v1/auth/register", json={
            "email": email,
            "username": random_username(),
            "password": PASSWORD,
        })
        resp = self.client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
        if resp.status_code == 200:
            self.headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
        else:
            self.headers = {}


class ContentionUser(AuthenticatedUser):
    """
    TEST 1: Contention - many users -> the same two seats

    Run: SHOW_ID=1 locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After test, verify no seat belongs to two bookings:
      SELECT booking_id, COUNT(*) FROM seats WHERE show_id = X
      AND status = 'booked' GROUP BY booking_id;
    E5 and E6 must share exactly one booking_id.
    """
    wait_time = between(0, 0.1)

    @tag("contention")
    @task
    def book_hot_seats(self):
        if not self.headers:
            return
        with self.client.post(
            "/api/v1/bookings/",
            json={"show_id": SHOW_ID, "seat_labels": HOT_SEATS},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class HoldChurnUser(AuthenticatedUser):
    """
    TEST 2: Holds - block, then book or release

    Run: SHOW_ID=1 locust -f locustfile.py --tags holds -u 50 -r 10 --run-time 60s
    """
    wait_time = between(0.2, 1)

    @tag("holds")
    @task(3)
    def hold_and_release(self):
        if not self.headers:
            return
        seat = random_seat()
        with self.client.post(
            f"/api/v1/shows/{SHOW_ID}/seats/{seat}/hold",
            headers=self.headers,
            name="/api/v1/shows/{id}/seats/{label}/hold",
            catch_response=True,
        ) as resp:
            if resp.status_code == 409:
                resp.success()
                return
        self.client.post(
            f"/api/v1/shows/{SHOW_ID}/seats/{seat}/release",
            headers=self.headers,
            name="/api/v1/shows/{id}/seats/{label}/release",
        )

    @tag("holds")
    @task(1)
    def hold_then_book(self):
        if not self.headers:
            return
        seat = random_seat()
        hold = self.client.post(
            f"/api/v1/shows/{SHOW_ID}/seats/{seat}/hold",
            headers=self.headers,
            name="/api/v1/shows/{id}/seats/{label}/hold",
        )
        if hold.status_code != 200:
            return
        with self.client.post(
            "/api/v1/bookings/",
            json={"show_id": SHOW_ID, "seat_labels": [seat]},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 3: Throughput - cache effectiveness on the show listing

    Run twice, with and without Redis, and compare P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_shows_cached(self):
        page = random.randint(1, 5)
        self.client.get(f"/api/v1/shows/?page={page}&page_size=20", name="/api/v1/shows/ [cached]")

    @tag("throughput", "read")
    @task(5)
    def seat_map(self):
        self.client.get(f"/api/v1/shows/{SHOW_ID}/seats/", name="/api/v1/shows/{id}/seats/")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(AuthenticatedUser):
    """
    TEST 4: Edge cases - bad input must come back as 4xx, never 5xx
    """
    wait_time = between(0.5, 1.5)

    def expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_show(self):
        with self.client.post(
            "/api/v1/bookings/",
            json={"show_id": 999999, "seat_labels": ["A1"]},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self.expect(resp, (422,))

    @tag("edge")
    @task
    def unknown_seat(self):
        with self.client.post(
            "/api/v1/bookings/",
            json={"show_id": SHOW_ID, "seat_labels": ["Z42"]},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self.expect(resp, (422,))

    @tag("edge")
    @task
    def empty_selection(self):
        with self.client.post(
            "/api/v1/bookings/",
            json={"show_id": SHOW_ID, "seat_labels": []},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self.expect(resp, (422,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/bookings/",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self.expect(resp, (400, 422))

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post(
            "/api/v1/bookings/",
            json={"show_id": SHOW_ID, "seat_labels": ["A1"]},
            catch_response=True,
        ) as resp:
            self.expect(resp, (401,))
