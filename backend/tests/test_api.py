from datetime import date, timedelta

from clinic_booking.models.generated import Bookings, Shifts, SitewideBreaks, t_shift_services
from clinic_booking.services.availability import get_availability_config

from conftest import DAY, iso

DAY_PARAMS = {"serviceId": 10, "locationId": 1, "date": DAY.isoformat()}


def _starts(response):
    return [s["startTime"] for s in response.json()["slots"]]


def _lock_body(hour, minute=0, token="session-a"):
    return {
        "serviceId": 10,
        "locationId": 1,
        "staffId": 7,
        "shiftId": 100,
        "startTime": iso(hour, minute),
        "endTime": iso(hour, minute + 30),
        "sessionToken": token,
    }


class TestDayEndpoint:

    def test_lists_slots_in_camel_case(self, client, clinic):
        response = client.get("/availability", params=DAY_PARAMS)

        assert response.status_code == 200
        slots = response.json()["slots"]
        assert len(slots) == 31
        assert slots[0] == {
            "shiftId": 100,
            "staffId": 7,
            "startTime": iso(9),
            "endTime": iso(9, 30),
        }
        assert slots[-1]["startTime"] == iso(16, 30)

    def test_sets_shared_cache_headers(self, client, clinic):
        response = client.get("/availability", params=DAY_PARAMS)
        assert response.headers["cache-control"] == get_availability_config().cache_control_header

    def test_second_request_served_from_cache(self, client, clinic, db, caches):
        client.get("/availability", params=DAY_PARAMS)
        assert len(caches.day) == 1

        db.add(Bookings(id=1, shift_id=100, service_id=10, location_id=1, staff_id=7,
                        start_time=iso(9), end_time=iso(9, 30), status="confirmed"))
        db.commit()

        # Cached until invalidated
        assert iso(9) in _starts(client.get("/availability", params=DAY_PARAMS))

        client.post("/availability/invalidate", params={"serviceId": 10, "locationId": 1})
        assert iso(9) not in _starts(client.get("/availability", params=DAY_PARAMS))

    def test_no_cache_header_bypasses_cache(self, client, clinic, caches):
        response = client.get("/availability", params=DAY_PARAMS, headers={"Cache-Control": "no-cache"})

        assert response.headers["cache-control"] == "no-store"
        assert len(caches.day) == 0

    def test_cache_buster_param_bypasses_cache(self, client, clinic, caches):
        response = client.get("/availability", params={**DAY_PARAMS, "_t": "1700000000"})

        assert response.headers["cache-control"] == "no-store"
        assert len(caches.day) == 0

    def test_exclude_booking_frees_its_slot(self, client, clinic, db):
        db.add(Bookings(id=55, shift_id=100, service_id=10, location_id=1, staff_id=7,
                        start_time=iso(10), end_time=iso(10, 30), status="confirmed"))
        db.commit()

        assert iso(10) not in _starts(client.get("/availability", params=DAY_PARAMS))

        response = client.get("/availability", params={**DAY_PARAMS, "excludeBookingId": 55})
        assert iso(10) in _starts(response)
        assert response.headers["cache-control"] == "no-store"

    def test_cancelled_booking_does_not_block(self, client, clinic, db):
        db.add(Bookings(id=56, shift_id=100, service_id=10, location_id=1, staff_id=7,
                        start_time=iso(10), end_time=iso(10, 30), status="cancelled"))
        db.commit()
        assert iso(10) in _starts(client.get("/availability", params=DAY_PARAMS))

    def test_sitewide_break_blocks_overlapping_slots(self, client, clinic, db):
        db.add(SitewideBreaks(id=1, name="Lunch", start_time="12:00:00", end_time="12:30:00"))
        db.commit()

        starts = _starts(client.get("/availability", params=DAY_PARAMS))
        assert len(starts) == 28
        assert iso(11, 30) in starts
        assert iso(12, 30) in starts

    def test_recurring_shift_contributes_slots(self, client, clinic, db):
        first_tuesday = date(2030, 1, 1)
        db.add(Shifts(
            id=200,
            staff_id=8,
            location_id=1,
            start_time=iso(13, 0, first_tuesday),
            end_time=iso(15, 0, first_tuesday),
            is_recurring=1,
            recurrence_rule="FREQ=WEEKLY;BYDAY=TU",
        ))
        db.flush()
        db.execute(t_shift_services.insert().values(shift_id=200, service_id=10))
        db.commit()

        slots = client.get("/availability", params=DAY_PARAMS).json()["slots"]
        recurring = [s for s in slots if s["shiftId"] == 200]
        assert len(recurring) == 7
        assert recurring[0]["startTime"] == iso(13)
        assert recurring[0]["staffId"] == 8

    def test_missing_parameters(self, client, clinic):
        response = client.get("/availability", params={"serviceId": 10, "locationId": 1})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing serviceId, locationId, or date"}

    def test_malformed_date(self, client, clinic):
        response = client.get("/availability", params={**DAY_PARAMS, "date": "2030-13-40"})
        assert response.status_code == 400
        assert "error" in response.json()

    def test_unknown_service(self, client, clinic):
        response = client.get("/availability", params={**DAY_PARAMS, "serviceId": 999})
        assert response.status_code == 404
        assert response.json() == {"error": "Service not found"}

    def test_non_numeric_service_id(self, client, clinic):
        response = client.get("/availability", params={**DAY_PARAMS, "serviceId": "abc"})
        assert response.status_code == 400
        assert "serviceId" in response.json()["error"]

    def test_unparseable_twin_flag(self, client, clinic):
        response = client.get("/availability", params={**DAY_PARAMS, "isTwin": "maybe"})
        assert response.status_code == 400
        assert "isTwin" in response.json()["error"]

    def test_other_location_has_no_slots(self, client, clinic):
        response = client.get("/availability", params={**DAY_PARAMS, "locationId": 2})
        assert response.status_code == 200
        assert response.json() == {"slots": []}


class TestHeatmapEndpoint:

    def test_counts_per_day(self, client, clinic):
        response = client.get("/availability/heatmap", params={
            "serviceId": 10,
            "locationId": 1,
            "start": (DAY - timedelta(days=1)).isoformat(),
            "end": (DAY + timedelta(days=1)).isoformat(),
        })

        assert response.status_code == 200
        assert response.json() == {"days": [
            {"date": "2030-01-14", "availableSlots": 0},
            {"date": "2030-01-15", "availableSlots": 31},
            {"date": "2030-01-16", "availableSlots": 0},
        ]}

    def test_missing_parameters(self, client, clinic):
        response = client.get("/availability/heatmap", params={"serviceId": 10, "locationId": 1})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing serviceId, locationId, start, or end"}

    def test_non_numeric_location_id(self, client, clinic):
        response = client.get("/availability/heatmap", params={
            "serviceId": 10, "locationId": "x", "start": "2030-01-14", "end": "2030-01-16",
        })
        assert response.status_code == 400
        assert "locationId" in response.json()["error"]

    def test_inverted_range(self, client, clinic):
        response = client.get("/availability/heatmap", params={
            "serviceId": 10, "locationId": 1, "start": "2030-01-16", "end": "2030-01-14",
        })
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid range"}


class TestLockEndpoints:

    def test_lock_hides_slot_from_availability(self, client, clinic, clock):
        client.get("/availability", params=DAY_PARAMS)

        response = client.post("/bookings/lock", json=_lock_body(10))
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["expiresAt"] == iso(8, 30, DAY - timedelta(days=1))

        starts = _starts(client.get("/availability", params=DAY_PARAMS))
        assert iso(10) not in starts
        assert iso(9, 45) not in starts
        assert iso(10, 30) in starts

    def test_lock_expires(self, client, clinic, clock):
        client.post("/bookings/lock", json=_lock_body(10))
        clock.now += timedelta(minutes=31)
        assert iso(10) in _starts(client.get("/availability", params=DAY_PARAMS))

    def test_other_session_gets_conflict(self, client, clinic):
        client.post("/bookings/lock", json=_lock_body(10))

        response = client.post("/bookings/lock", json=_lock_body(10, 15, token="session-b"))
        assert response.status_code == 409
        assert response.json() == {"error": "SLOT_LOCKED"}

    def test_same_session_can_relock(self, client, clinic):
        client.post("/bookings/lock", json=_lock_body(10))
        assert client.post("/bookings/lock", json=_lock_body(10)).status_code == 200

    def test_booked_slot_cannot_be_locked(self, client, clinic, db):
        db.add(Bookings(id=2, shift_id=100, service_id=10, location_id=1, staff_id=7,
                        start_time=iso(11), end_time=iso(11, 30), status="confirmed"))
        db.commit()

        response = client.post("/bookings/lock", json=_lock_body(11))
        assert response.status_code == 409
        assert response.json() == {"error": "SLOT_BOOKED"}

    def test_release_frees_slot(self, client, clinic):
        client.post("/bookings/lock", json=_lock_body(10))

        response = client.delete("/bookings/lock", params={"sessionToken": "session-a"})
        assert response.json() == {"success": True}
        assert iso(10) in _starts(client.get("/availability", params=DAY_PARAMS))

    def test_release_requires_token(self, client, clinic):
        assert client.delete("/bookings/lock").status_code == 400

    def test_incomplete_lock_body(self, client, clinic):
        body = {k: v for k, v in _lock_body(10).items() if k != "sessionToken"}
        response = client.post("/bookings/lock", json=body)
        assert response.status_code == 400
        assert "sessionToken" in response.json()["error"]

    def test_inverted_lock_window(self, client, clinic):
        body = {**_lock_body(10), "endTime": iso(9)}
        response = client.post("/bookings/lock", json=body)
        assert response.status_code == 400


class TestInvalidateEndpoint:

    def test_reports_deleted_keys(self, client, clinic):
        client.get("/availability", params=DAY_PARAMS)

        response = client.post("/availability/invalidate", params={"serviceId": 10, "locationId": 1})
        assert response.status_code == 200
        assert response.json() == {"serviceId": 10, "locationId": 1, "deletedKeys": 1}

    def test_location_requires_service(self, client, clinic):
        response = client.post("/availability/invalidate", params={"locationId": 1})
        assert response.status_code == 400


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
