"""Public HTTP surface: booking, lookup, cancellation, catalog."""

import logging
from datetime import timedelta

from sqlalchemy.exc import OperationalError

from app import RedactTokenFilter
from models import db
from models.audit_log import AuditLog
from models.booking import Booking
from reservations import engine
from reservations.errors import Unavailable
from routes import booking as booking_routes
from tests.conftest import booking_payload, make_service, make_slot, make_staff


def _book(client, service, staff, slot, **overrides):
    return client.post("/create-booking", json=booking_payload(service, staff, slot, **overrides))


class TestCreateBooking:

    def test_success_returns_id_and_token(self, client, catalog):
        resp = _book(client, *catalog)

        assert resp.status_code == 200
        body = resp.get_json()
        assert set(body) == {"bookingId", "cancelToken"}
        assert isinstance(body["bookingId"], int)
        assert len(body["cancelToken"]) >= 43

    def test_bookings_alias(self, client, catalog):
        service, staff, slot = catalog
        resp = client.post("/bookings", json=booking_payload(service, staff, slot))
        assert resp.status_code == 200

    def test_invalid_email(self, client, catalog):
        resp = _book(client, *catalog, customerEmail="nope")

        assert resp.status_code == 400
        body = resp.get_json()
        assert body["code"] == "invalid_request"
        assert "customerEmail" in body["details"]
        assert Booking.query.count() == 0

    def test_non_json_body(self, client, catalog):
        resp = client.post("/create-booking", data="hello", content_type="text/plain")
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "invalid_request"

    def test_slot_taken(self, client, catalog):
        assert _book(client, *catalog).status_code == 200

        resp = _book(client, *catalog, customerName="Bob Stone", customerEmail="bob@example.com")

        assert resp.status_code == 409
        body = resp.get_json()
        assert body["code"] == "slot_taken"
        assert body["error"] == "This time slot has already been booked. Please select another time."
        assert AuditLog.query.filter_by(action="BOOKING_FAIL_ALREADY_BOOKED").count() == 1

    def test_storage_outage_is_503(self, client, catalog, monkeypatch):
        def down(payload):
            raise Unavailable()

        monkeypatch.setattr(engine, "claim", down)
        resp = _book(client, *catalog)

        assert resp.status_code == 503
        assert resp.get_json()["code"] == "unavailable"
        assert resp.headers["Retry-After"] == "5"

    def test_notification_failure_still_succeeds(self, client, catalog, monkeypatch):
        from reservations import notifications

        def broken(*args):
            raise RuntimeError("mail server on fire")

        monkeypatch.setattr(notifications, "notify_booking_created", broken)
        resp = _book(client, *catalog)

        assert resp.status_code == 200
        assert Booking.query.count() == 1

    def test_rate_limited(self, app, client, catalog):
        app.config["BOOKING_RATE_MAX_REQUESTS"] = 2
        client.post("/create-booking", json={})
        client.post("/create-booking", json={})

        resp = client.post("/create-booking", json={})

        assert resp.status_code == 429
        assert resp.get_json()["retry_after_seconds"] >= 1

    def test_loose_ids_are_rejected(self, client, catalog):
        service, staff, slot = catalog
        resp = _book(client, service, staff, slot, serviceId=True, staffId=str(staff.id), timeslotId=float(slot.id))

        assert resp.status_code == 400
        assert {"serviceId", "staffId", "timeslotId"} <= set(resp.get_json()["details"])
        assert Booking.query.count() == 0

    def test_audit_failure_keeps_booking_reply(self, client, catalog, monkeypatch):
        def audit_down(*args, **kwargs):
            raise OperationalError("INSERT INTO audit_logs", {}, Exception("database is locked"))

        monkeypatch.setattr(booking_routes, "log_event", audit_down)

        created = _book(client, *catalog)
        assert created.status_code == 200
        assert len(created.get_json()["cancelToken"]) >= 43

        taken = _book(client, *catalog, customerName="Bob Stone", customerEmail="bob@example.com")
        assert taken.status_code == 409
        assert taken.get_json()["code"] == "slot_taken"

        body = created.get_json()
        cancel = client.post(f"/bookings/{body['bookingId']}/cancel", json={"token": body["cancelToken"]})
        assert cancel.status_code == 200
        assert cancel.get_json()["status"] == "CANCELLED"
        assert AuditLog.query.count() == 0

    def test_token_never_reaches_audit_log(self, client, catalog):
        body = _book(client, *catalog).get_json()
        client.post(f"/bookings/{body['bookingId']}/cancel", json={"token": body["cancelToken"]})

        rows = AuditLog.query.all()
        assert {r.action for r in rows} >= {"BOOKING_CREATE", "BOOKING_CANCEL"}
        for r in rows:
            assert body["cancelToken"] not in (r.metadata_json or "")
            assert body["cancelToken"] not in (r.entity_id or "")


class TestManageBooking:

    def test_lookup_with_header(self, client, catalog):
        service, staff, slot = catalog
        created = _book(client, service, staff, slot).get_json()

        resp = client.get(f"/bookings/{created['bookingId']}", headers={"X-Cancel-Token": created["cancelToken"]})

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["bookingId"] == created["bookingId"]
        assert body["status"] == "CONFIRMED"
        assert body["service"]["name"] == service.name
        assert body["timeslot"]["id"] == slot.id
        assert created["cancelToken"] not in resp.get_data(as_text=True)

    def test_wrong_token_and_unknown_id_look_alike(self, client, catalog):
        created = _book(client, *catalog).get_json()

        wrong = client.get(f"/bookings/{created['bookingId']}", headers={"X-Cancel-Token": "guess"})
        unknown = client.get("/bookings/99999", headers={"X-Cancel-Token": created["cancelToken"]})
        garbage = client.get("/bookings/abc", headers={"X-Cancel-Token": created["cancelToken"]})
        missing = client.get(f"/bookings/{created['bookingId']}")

        for resp in (wrong, unknown, garbage, missing):
            assert resp.status_code == 404
            assert resp.get_json() == {"error": "Booking not found", "code": "not_found"}

    def test_cancel_is_idempotent(self, client, catalog):
        created = _book(client, *catalog).get_json()
        url = f"/bookings/{created['bookingId']}/cancel"

        first = client.post(url, json={"token": created["cancelToken"], "reason": "Sick"})
        second = client.post(url, json={"token": created["cancelToken"]})

        assert first.status_code == 200
        assert first.get_json()["alreadyCancelled"] is False
        assert first.get_json()["status"] == "CANCELLED"
        assert second.status_code == 200
        assert second.get_json()["alreadyCancelled"] is True
        assert AuditLog.query.filter_by(action="BOOKING_CANCEL").count() == 1

    def test_cancel_with_header_token(self, client, catalog):
        created = _book(client, *catalog).get_json()

        resp = client.post(
            f"/bookings/{created['bookingId']}/cancel",
            headers={"X-Cancel-Token": created["cancelToken"]},
        )
        assert resp.status_code == 200

    def test_cancel_with_wrong_token(self, client, catalog):
        created = _book(client, *catalog).get_json()

        resp = client.post(f"/bookings/{created['bookingId']}/cancel", json={"token": "guess"})

        assert resp.status_code == 404
        assert db.session.get(Booking, created["bookingId"]).status == "CONFIRMED"

    def test_cancel_link_endpoint(self, client, catalog):
        created = _book(client, *catalog).get_json()

        resp = client.post("/cancel", json={"booking": str(created["bookingId"]), "token": created["cancelToken"]})

        assert resp.status_code == 200
        assert resp.get_json()["message"] == "Cancelled"

    def test_completed_booking_cancel_conflict(self, client, catalog):
        created = _book(client, *catalog).get_json()
        engine.transition(created["bookingId"], "COMPLETED")

        resp = client.post("/cancel", json={"booking": created["bookingId"], "token": created["cancelToken"]})

        assert resp.status_code == 409
        assert resp.get_json()["code"] == "invalid_transition"


class TestTwoCustomers:

    def test_slot_changes_hands_after_cancellation(self, client, catalog):
        service, staff, slot = catalog

        alice = _book(client, service, staff, slot).get_json()
        bob = _book(client, service, staff, slot, customerName="Bob Stone", customerEmail="bob@example.com")
        assert bob.status_code == 409

        cancel = client.post(f"/bookings/{alice['bookingId']}/cancel", json={"token": alice["cancelToken"]})
        assert cancel.status_code == 200

        bob = _book(client, service, staff, slot, customerName="Bob Stone", customerEmail="bob@example.com")
        assert bob.status_code == 200
        assert bob.get_json()["bookingId"] != alice["bookingId"]

        # Alice's token still opens her (cancelled) booking only
        resp = client.get(f"/bookings/{bob.get_json()['bookingId']}", headers={"X-Cancel-Token": alice["cancelToken"]})
        assert resp.status_code == 404


class TestAvailabilityEndpoint:

    def test_lists_free_slots(self, client, catalog):
        service, staff, slot = catalog
        later = make_slot(staff, start=slot.start_time + timedelta(minutes=30))
        _book(client, service, staff, slot)

        resp = client.get("/timeslots/available")

        assert resp.status_code == 200
        assert [s["id"] for s in resp.get_json()] == [later.id]

    def test_filters(self, client, catalog):
        _, staff, slot = catalog
        other = make_staff("Sarah Chen")
        make_slot(other, start=slot.start_time)

        by_staff = client.get(f"/timeslots/available?staff_id={staff.id}").get_json()
        by_day = client.get(f"/timeslots/available?date={slot.start_time.date().isoformat()}").get_json()

        assert [s["id"] for s in by_staff] == [slot.id]
        assert len(by_day) == 2

    def test_bad_date(self, client, catalog):
        resp = client.get("/timeslots/available?date=tomorrow")
        assert resp.status_code == 400


class TestCatalog:

    def test_services_and_staff(self, client, catalog):
        make_service("Paint Correction", price_cents=25000, duration_min=240)
        make_service("Retired Wax", active=False)
        make_staff("Zed Retired", active=False)

        services = client.get("/services").get_json()
        staff = client.get("/staff").get_json()

        assert [s["name"] for s in services] == ["Express Wash", "Paint Correction"]
        assert [s["name"] for s in staff] == ["Mike Johnson"]

    def test_health_and_headers(self, client):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.get_json() == {"status": "ok"}
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"
        assert resp.headers["Cache-Control"] == "no-store"


class TestLogRedaction:

    def test_token_query_values_are_masked(self):
        record = logging.LogRecord(
            "werkzeug", logging.INFO, __file__, 1,
            '"GET /cancel?booking=%s&token=%s HTTP/1.1" 200', (7, "s3cret-value"), None,
        )

        RedactTokenFilter().filter(record)

        assert "s3cret-value" not in record.getMessage()
        assert "token=[REDACTED]" in record.getMessage()
        assert "booking=7" in record.getMessage()
