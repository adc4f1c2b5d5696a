"""
Script to add sample data to the campus platform via its REST API.
Make sure the server is running before executing this script.

Usage:
    python add_data.py
"""

import json
import os
import sys
from datetime import date, timedelta
from typing import Any, Dict, Optional

import requests


def _console_supports_utf8() -> bool:
    enc = getattr(sys.stdout, "encoding", None)
    return enc is not None and "utf" in enc.lower()


_OK_CHAR = "✓" if _console_supports_utf8() else "[OK]"
_FAIL_CHAR = "✗" if _console_supports_utf8() else "[FAIL]"
_INFO_CHAR = "ℹ" if _console_supports_utf8() else "[INFO]"


def _detect_base_url() -> str:
    """Determine a reachable BASE_URL.

    Priority: environment variable `CAMPUS_BASE_URL`, then common local ports.
    If nothing responds, fall back to http://127.0.0.1:8000.
    """
    env = os.environ.get("CAMPUS_BASE_URL")
    if env:
        return env

    candidates = [
        "http://127.0.0.1:8000",
        "http://127.0.0.1:8888",
        "http://localhost:8000",
        "http://localhost:8888",
    ]

    for c in candidates:
        try:
            resp = requests.get(f"{c}/health", timeout=0.5)
            if resp.status_code == 200:
                return c
        except requests.exceptions.RequestException:
            continue

    return candidates[0]


BASE_URL = os.environ.get("CAMPUS_BASE_URL", "http://127.0.0.1:8000")


def check_server() -> bool:
    """Check if the server is running."""
    try:
        response = requests.get(f"{BASE_URL}/health", timeout=2)
        if response.status_code == 200:
            print(f"{_OK_CHAR} Server is running")
            return True
        print(f"{_FAIL_CHAR} Health check returned {response.status_code}")
    except requests.exceptions.RequestException:
        print(f"{_FAIL_CHAR} Server is not running!")
    print("\nPlease start the server first:")
    print("  python -m campus.main --rest-port 8000")
    return False


def _post(path: str, data: Dict[str, Any], label: str,
          expected: int = 201) -> Optional[Dict[str, Any]]:
    """POST ``data`` and report the outcome. Returns the JSON body on success."""
    try:
        response = requests.post(f"{BASE_URL}{path}", json=data, timeout=10)
    except requests.exceptions.RequestException as e:
        print(f"{_FAIL_CHAR} Error creating {label}: {e}")
        return None
    if response.status_code == expected:
        print(f"{_OK_CHAR} Created {label}")
        return response.json()
    print(f"{_FAIL_CHAR} Failed to create {label}: {response.text}")
    return None


def create_event(name, event_type, category, description, organizer_name, max_capacity,
                 requires_registration=True, registration_fee=0.0):
    """Create a new event."""
    data = {
        "name": name,
        "event_type": event_type,
        "category": category,
        "description": description,
        "organizer_name": organizer_name,
        "max_capacity": max_capacity,
        "requires_registration": requires_registration,
        "registration_fee": registration_fee,
    }
    return _post("/events", data, f"event: {name}")


def schedule_event(event_id, event_date, start_time, end_time, venue):
    data = {
        "event_date": event_date.isoformat(),
        "start_time": start_time,
        "end_time": end_time,
        "venue": venue,
    }
    return _post(f"/events/{event_id}/schedule", data, f"schedule for {event_id}", expected=200)


def register_participant(event_id, participant_id):
    """Register a participant for an event."""
    result = _post(f"/events/{event_id}/register", {"participant_id": participant_id},
                   f"registration {participant_id} -> {event_id}", expected=200)
    if result is not None and not result.get("success"):
        print(f"{_INFO_CHAR} {participant_id} not registered: {result.get('message')}")
    return result


def create_exam(name, course_id, course_name, exam_type, instructor):
    """Create a new exam."""
    data = {
        "name": name,
        "course_id": course_id,
        "course_name": course_name,
        "exam_type": exam_type,
        "instructor": instructor,
    }
    return _post("/exams", data, f"exam: {name}")


def enroll_student(exam_id, student_id):
    return _post(f"/exams/{exam_id}/enroll", {"student_id": student_id},
                 f"enrollment {student_id} -> {exam_id}", expected=200)


def create_room(room_id, block_id, floor, room_type, monthly_rent):
    """Create a hostel room."""
    data = {
        "room_id": room_id,
        "block_id": block_id,
        "floor": floor,
        "room_type": room_type,
        "monthly_rent": monthly_rent,
    }
    return _post("/hostel/rooms", data, f"room: {room_id}")


def allocate_room(student_id, room_id):
    return _post("/hostel/allocations", {"student_id": student_id, "room_id": room_id},
                 f"allocation {student_id} -> {room_id}")


def create_vehicle(vehicle_type, registration_number, model, manufacturer, year, capacity):
    """Create a bus or van."""
    data = {
        "vehicle_type": vehicle_type,
        "registration_number": registration_number,
        "model": model,
        "manufacturer": manufacturer,
        "year": year,
        "capacity": capacity,
    }
    return _post("/transport/vehicles", data, f"{vehicle_type}: {registration_number}")


def create_driver(name, license_number, license_type, license_expiry, experience_years):
    data = {
        "name": name,
        "license_number": license_number,
        "license_type": license_type,
        "license_expiry": license_expiry.isoformat(),
        "experience_years": experience_years,
    }
    return _post("/transport/drivers", data, f"driver: {name}")


def create_route(name, start_point, end_point, stops):
    data = {"name": name, "start_point": start_point, "end_point": end_point, "stops": stops}
    return _post("/transport/routes", data, f"route: {name}")


def assign_vehicle(route_id, vehicle_id):
    return _post(f"/transport/routes/{route_id}/vehicles", {"vehicle_id": vehicle_id},
                 f"assignment {vehicle_id} -> {route_id}", expected=200)


def assign_driver(vehicle_id, driver_id):
    return _post(f"/transport/vehicles/{vehicle_id}/driver", {"driver_id": driver_id},
                 f"assignment {driver_id} -> {vehicle_id}", expected=200)


def get_statistics():
    """Print the combined platform statistics."""
    try:
        response = requests.get(f"{BASE_URL}/statistics", timeout=10)
    except requests.exceptions.RequestException as e:
        print(f"{_FAIL_CHAR} Error getting statistics: {e}")
        return None
    if response.status_code != 200:
        print(f"{_FAIL_CHAR} Failed to get statistics: {response.text}")
        return None
    stats = response.json()
    print(f"\n{'='*60}")
    print("System Statistics")
    print(f"{'='*60}")
    print(json.dumps(stats['statistics'], indent=2))
    return stats


def main():
    """Main execution."""
    global BASE_URL
    BASE_URL = _detect_base_url()

    print("="*60)
    print("Campus Platform - Data Addition Script")
    print("="*60)
    print()

    if not check_server():
        sys.exit(1)

    print("\n" + "="*60)
    print("Adding Sample Data...")
    print("="*60 + "\n")

    today = date.today()
    students = ["S101", "S102", "S103", "S104"]

    print("Creating events...")
    fair = create_event("Career Fair", "exhibition", "professional",
                        "Meet employers from across the region", "Careers Office", 200)
    lecture = create_event("Guest Lecture on Robotics", "lecture", "technical",
                           "Invited talk on autonomous systems", "Engineering Faculty", 3)
    if fair:
        schedule_event(fair["id"], today + timedelta(days=20), "10:00", "16:00", "Exhibition Hall")
    if lecture:
        schedule_event(lecture["id"], today + timedelta(days=5), "15:00", "16:30", "Lecture Hall B")
        for student in students:
            register_participant(lecture["id"], student)

    print("\nCreating exams...")
    exam = create_exam("Algorithms Final", "CS301", "Algorithms", "final", "T020")
    if exam:
        for student in students:
            enroll_student(exam["id"], student)

    print("\nCreating hostel rooms...")
    create_room("C101", "BLK-C", 1, "single", 1100.0)
    create_room("C102", "BLK-C", 1, "double", 750.0)
    allocate_room("S101", "C101")
    allocate_room("S102", "C102")

    print("\nCreating transport...")
    bus = create_vehicle("bus", "CMP-100", "Citaro", "Mercedes", 2022, 45)
    driver = create_driver("Grace Okafor", "DL555001", "CDL-B", today + timedelta(days=900), 6)
    route = create_route("Science Park Shuttle", "Main Gate", "Science Park", ["Library", "Medical School"])
    if bus and route:
        assign_vehicle(route["id"], bus["id"])
    if bus and driver:
        assign_driver(bus["id"], driver["id"])

    get_statistics()

    print("\n" + "="*60)
    print(f"{_OK_CHAR} Sample data added successfully!")
    print("="*60)
    print("\nYou can now:")
    print(f"  - View API docs: {BASE_URL}/docs")
    print(f"  - List events: curl {BASE_URL}/events")
    print(f"  - Route schedule: curl {BASE_URL}/transport/routes/<route_id>/schedule")
    print(f"  - Get statistics: curl {BASE_URL}/statistics")
    print()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print(f"\n\n{_FAIL_CHAR} Interrupted by user")
        sys.exit(1)
