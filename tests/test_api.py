"""
API tests for the campus REST endpoints.

Tests:
- Service endpoints (root, health, statistics)
- Event, exam, hostel, transport and report routes
- Mapping of domain errors onto HTTP status codes
"""

import os
from datetime import date, timedelta

import pytest

from campus import __version__

TODAY = date.today()


def _event_payload(**overrides):
    payload = {
        "name": "Robotics Showcase",
        "event_type": "exhibition",
        "category": "technical",
        "requires_registration": True,
        "max_capacity": 1,
    }
    payload.update(overrides)
    return payload


class TestServiceEndpoints:
    """Tests for root, health and aggregate endpoints."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["version"] == __version__

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_statistics(self, seeded_client):
        response = seeded_client.get("/statistics")

        assert response.status_code == 200
        stats = response.json()["statistics"]
        assert stats["events"]["total_events"] == 6
        assert stats["hostel"]["total_rooms"] == 125
        assert stats["transport"]["total_vehicles"] == 3

    def test_alerts_on_empty_platform(self, client):
        response = client.get("/alerts")

        assert response.json() == {"events": [], "exams": [], "hostel": [], "transport": []}

    def test_notifications_start_empty(self, client):
        assert client.get("/notifications").json() == []


class TestEventRoutes:
    """Tests for /events."""

    def test_create_and_get(self, client):
        response = client.post("/events", json=_event_payload())

        assert response.status_code == 201
        event_id = response.json()["id"]
        assert event_id == "EV001"
        assert client.get(f"/events/{event_id}").json()["name"] == "Robotics Showcase"

    def test_invalid_payload(self, client):
        response = client.post("/events", json=_event_payload(name=""))

        assert response.status_code == 422

    def test_unknown_event(self, client):
        assert client.get("/events/EV999").status_code == 404

    def test_registration_respects_capacity(self, client):
        event_id = client.post("/events", json=_event_payload()).json()["id"]

        first = client.post(f"/events/{event_id}/register", json={"participant_id": "S001"})
        second = client.post(f"/events/{event_id}/register", json={"participant_id": "S002"})

        assert first.json() == {"success": True, "message": "Registered"}
        assert second.json()["success"] is False

    def test_registration_not_required(self, client):
        event_id = client.post("/events", json=_event_payload(requires_registration=False)).json()["id"]

        response = client.post(f"/events/{event_id}/register", json={"participant_id": "S001"})

        assert response.status_code == 400

    def test_schedule(self, client):
        event_id = client.post("/events", json=_event_payload()).json()["id"]

        response = client.post(f"/events/{event_id}/schedule", json={
            "event_date": (TODAY + timedelta(days=3)).isoformat(),
            "start_time": "10:00",
            "end_time": "12:00",
            "venue": "Exhibition Hall",
        })

        assert response.status_code == 200
        assert response.json()["status"] == "scheduled"

    def test_schedule_rejects_reversed_times(self, client):
        event_id = client.post("/events", json=_event_payload()).json()["id"]

        response = client.post(f"/events/{event_id}/schedule", json={
            "event_date": TODAY.isoformat(),
            "start_time": "12:00",
            "end_time": "10:00",
            "venue": "Exhibition Hall",
        })

        assert response.status_code == 400

    def test_filter_by_status(self, seeded_client):
        response = seeded_client.get("/events", params={"event_status": "completed"})

        assert [e["id"] for e in response.json()] == ["EV006"]

    def test_delete(self, client):
        event_id = client.post("/events", json=_event_payload()).json()["id"]

        assert client.delete(f"/events/{event_id}").json()["success"] is True
        assert client.get(f"/events/{event_id}").status_code == 404


class TestExamRoutes:
    """Tests for /exams."""

    def test_create_and_enroll(self, client):
        response = client.post("/exams", json={
            "name": "Algorithms Final",
            "course_id": "CS301",
            "course_name": "Algorithms",
            "exam_type": "final",
        })

        assert response.status_code == 201
        exam_id = response.json()["id"]
        enrolled = client.post(f"/exams/{exam_id}/enroll", json={"student_id": "S101"})
        again = client.post(f"/exams/{exam_id}/enroll", json={"student_id": "S101"})

        assert enrolled.json()["success"] is True
        assert again.json()["success"] is False

    def test_unknown_exam(self, client):
        assert client.get("/exams/E999").status_code == 404


class TestHostelRoutes:
    """Tests for /hostel."""

    def test_room_allocation_flow(self, client):
        created = client.post("/hostel/rooms", json={
            "room_id": "C101", "block_id": "BLK-C", "floor": 1, "room_type": "single", "monthly_rent": 1100.0,
        })
        assert created.status_code == 201

        allocation = client.post("/hostel/allocations", json={"student_id": "S101", "room_id": "C101"})
        assert allocation.status_code == 201
        assert allocation.json()["status"] == "active"
        assert allocation.json()["monthly_rent"] == 1100.0

        full = client.post("/hostel/allocations", json={"student_id": "S102", "room_id": "C101"})
        assert full.status_code == 400

        released = client.post("/hostel/deallocations", json={"student_id": "S101"})
        assert released.json()["status"] == "completed"

    def test_duplicate_room(self, client):
        payload = {"room_id": "C101", "block_id": "BLK-C", "floor": 1, "room_type": "single"}
        client.post("/hostel/rooms", json=payload)

        assert client.post("/hostel/rooms", json=payload).status_code == 409

    def test_deallocate_without_allocation(self, client):
        response = client.post("/hostel/deallocations", json={"student_id": "S404"})

        assert response.status_code == 404

    def test_record_payment(self, client):
        response = client.post("/hostel/payments", json={
            "student_id": "S101", "amount": 500.0, "payment_type": "monthly_rent",
        })

        assert response.status_code == 201
        assert response.json()["status"] == "completed"
        assert response.json()["receipt_number"].startswith("RCP")


class TestTransportRoutes:
    """Tests for /transport."""

    def _bus(self, registration="CMP-100"):
        return {
            "vehicle_type": "bus",
            "registration_number": registration,
            "model": "Citaro",
            "manufacturer": "Mercedes",
            "year": 2022,
            "capacity": 45,
        }

    def test_create_vehicle(self, client):
        response = client.post("/transport/vehicles", json=self._bus())

        assert response.status_code == 201
        assert response.json()["id"] == "V001"

    def test_duplicate_registration(self, client):
        client.post("/transport/vehicles", json=self._bus())

        assert client.post("/transport/vehicles", json=self._bus()).status_code == 409

    def test_unsupported_vehicle_type(self, client):
        payload = self._bus()
        payload["vehicle_type"] = "car"

        assert client.post("/transport/vehicles", json=payload).status_code == 400

    def test_driver_license_type_validated(self, client):
        response = client.post("/transport/drivers", json={
            "name": "Grace Okafor",
            "license_number": "DL555001",
            "license_type": "MOTORBIKE",
            "license_expiry": (TODAY + timedelta(days=900)).isoformat(),
        })

        assert response.status_code == 422

    def test_route_without_vehicles_has_empty_schedule(self, client):
        route_id = client.post("/transport/routes", json={
            "name": "Science Park Shuttle", "start_point": "Main Gate", "end_point": "Science Park",
        }).json()["id"]

        assert client.get(f"/transport/routes/{route_id}/schedule").json() == []

    def test_unknown_route(self, client):
        assert client.get("/transport/routes/R999").status_code == 404
        assert client.get("/transport/routes/R999/schedule").status_code == 404

    def test_sample_route_schedule(self, seeded_client):
        response = seeded_client.get("/transport/routes/R001/schedule")

        assert response.status_code == 200
        assert len(response.json()) == 33


class TestReportRoutes:
    """Tests for /reports."""

    def test_generate_and_export(self, seeded_client, report_generator):
        created = seeded_client.post("/reports", json={"report_type": "system_report"})

        assert created.status_code == 201
        report = created.json()
        assert report["status"] == "completed"
        assert report["name"] == "System Report"

        exported = seeded_client.post(f"/reports/{report['id']}/export",
                                      json={"format": "json", "file_name": "overview.json"})

        assert exported.status_code == 200
        body = exported.json()
        assert body["report_id"] == report["id"]
        assert body["format"] == "json"
        assert body["path"] == os.path.join(os.path.realpath(report_generator.export_dir), "overview.json")
        assert os.path.exists(body["path"])

    def test_export_without_file_name(self, seeded_client, report_generator):
        report_id = seeded_client.post("/reports", json={"report_type": "hostel_report"}).json()["id"]

        exported = seeded_client.post(f"/reports/{report_id}/export", json={"format": "csv"})

        assert exported.status_code == 200
        assert os.path.dirname(exported.json()["path"]) == os.path.realpath(report_generator.export_dir)

    def test_export_absolute_path_rejected(self, seeded_client, tmp_path):
        report_id = seeded_client.post("/reports", json={"report_type": "system_report"}).json()["id"]
        target = tmp_path / "outside" / "overview.json"

        response = seeded_client.post(f"/reports/{report_id}/export",
                                      json={"format": "json", "file_name": str(target)})

        assert response.status_code == 400
        assert not target.exists()

    @pytest.mark.parametrize("file_name", ["../overview.json", "a/../../overview.json"])
    def test_export_parent_segments_rejected(self, seeded_client, tmp_path, file_name):
        report_id = seeded_client.post("/reports", json={"report_type": "system_report"}).json()["id"]

        response = seeded_client.post(f"/reports/{report_id}/export",
                                      json={"format": "json", "file_name": file_name})

        assert response.status_code == 400
        assert not (tmp_path / "overview.json").exists()

    def test_export_unknown_report(self, client):
        response = client.post("/reports/R999/export", json={"format": "json"})

        assert response.status_code == 404

    def test_unsupported_report_type(self, client):
        response = client.post("/reports", json={"report_type": "library_report"})

        assert response.status_code == 400

    def test_unknown_report(self, client):
        assert client.get("/reports/R999").status_code == 404
