"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags seats        # Race for a small trip's seats
  locust -f locustfile.py --tags throughput   # Listing and cached dashboard
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests
"""

import random
from datetime import date, timedelta

import httpx
from locust import HttpUser, between, events, tag, task

RACE_TRIP_SEATS = 10

# Shared state
TRIP_IDS = []
RACE_TRIP_ID = None


def random_phone():
    return f"410-{random.randint(200, 999)}-{random.randint(1000, 9999)}"


def future_trip(destination, capacity):
    return {
        "destination": destination,
        "date": (date.today() + timedelta(days=random.randint(7, 90))).isoformat(),
        "time": "09:00",
        "bus_capacity": capacity,
        "price": 35,
        "departure_location": "Superior Tours Office, Baltimore",
    }


def register_patron(client):
    """Create a throwaway patron; returns its id or None."""
    resp = client.post(
        "/api/v1/patrons/",
        json={"name": f"Load Patron {random.randint(1, 10**6)}", "phone": random_phone()},
        name="/api/v1/patrons/ [register]",
    )
    return resp.json()["id"] if resp.status_code == 201 else None


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: seat race on a {RACE_TRIP_SEATS}-seat trip")
    print("=" * 60)


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    """Verify nothing was overbooked."""
    if not RACE_TRIP_ID or environment.host is None:
        return
    resp = httpx.get(f"{environment.host}/api/v1/trips/{RACE_TRIP_ID}/seats")
    if resp.status_code != 200:
        print(f"\n! Could not read seat map: {resp.status_code}")
        return

    body = resp.json()
    booked = [seat["seat_number"] for seat in body["seat_map"] if seat["is_booked"]]
    ok = len(booked) <= RACE_TRIP_SEATS and len(booked) == len(set(booked))
    print(f"\n{'✓' if ok else '✗'} Trip {RACE_TRIP_ID}: {len(booked)}/{RACE_TRIP_SEATS} seats booked\n")


class SeatRaceUser(HttpUser):
    """
    TEST 1: Concurrency - many patrons -> 10 seats

    Run: locust -f locustfile.py --tags seats -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT seat_number, COUNT(*) FROM bookings WHERE trip_id = X GROUP BY 1;
    Every count should be 1 and there should be at most 10 rows.
    """

    wait_time = between(0, 0.1)

    def on_start(self):
        global RACE_TRIP_ID
        self.patron_id = register_patron(self.client)

        if not RACE_TRIP_ID:
            resp = self.client.post(
                "/api/v1/trips/",
                json=future_trip("Seat Race Casino Run", RACE_TRIP_SEATS),
                name="/api/v1/trips/ [setup]",
            )
            if resp.status_code == 201:
                RACE_TRIP_ID = resp.json()["id"]
                print(f"\n✓ Created trip {RACE_TRIP_ID} with {RACE_TRIP_SEATS} seats\n")

    @tag("seats")
    @task
    def grab_a_seat(self):
        """All users fight for the same 10 seats."""
        if not RACE_TRIP_ID or not self.patron_id:
            return

        with self.client.post(
            f"/api/v1/trips/{RACE_TRIP_ID}/book",
            json={"patron_id": self.patron_id, "seat_number": random.randint(1, RACE_TRIP_SEATS)},
            name="/api/v1/trips/{id}/book",
            catch_response=True,
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: seat taken or already booked
            elif resp.status_code == 503:
                resp.success()  # Expected under heavy contention: retry later
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - listing and dashboard cache

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again
    """

    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_trips(self):
        page = random.randint(1, 3)
        resp = self.client.get(f"/api/v1/trips/?page={page}&limit=20", name="/api/v1/trips/")
        if resp.status_code == 200:
            for trip in resp.json().get("trips", []):
                if trip["id"] not in TRIP_IDS:
                    TRIP_IDS.append(trip["id"])

    @tag("throughput", "read")
    @task(5)
    def dashboard_stats(self):
        self.client.get("/api/v1/trips/dashboard/stats", name="/api/v1/trips/dashboard/stats [cached]")

    @tag("throughput", "read")
    @task(3)
    def seat_map(self):
        if TRIP_IDS:
            self.client.get(f"/api/v1/trips/{random.choice(TRIP_IDS)}/seats", name="/api/v1/trips/{id}/seats")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """

    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_trip(self):
        with self.client.post(
            "/api/v1/trips/999999/book",
            json={"patron_id": 1, "seat_number": 1},
            name="/api/v1/trips/{id}/book [missing]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def seat_zero(self):
        with self.client.post(
            "/api/v1/trips/1/book",
            json={"patron_id": 1, "seat_number": 0},
            name="/api/v1/trips/{id}/book [seat 0]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def seat_out_of_range(self):
        with self.client.post(
            "/api/v1/trips/1/book",
            json={"patron_id": 1, "seat_number": 999},
            name="/api/v1/trips/{id}/book [seat 999]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [400, 404])

    @tag("edge")
    @task
    def past_trip(self):
        body = future_trip("Yesterday Tour", 10)
        body["date"] = (date.today() - timedelta(days=1)).isoformat()
        with self.client.post(
            "/api/v1/trips/", json=body, name="/api/v1/trips/ [past]", catch_response=True
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/patrons/",
            data="not json at all",
            headers={"Content-Type": "application/json"},
            name="/api/v1/patrons/ [garbage]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [400, 422])
