"""
Pytest configuration and fixtures for testing.

Provides:
- An in-memory SQLite database per test
- Managers wired to that database and a shared notification service
- A seeded variant with the demonstration data loaded
- A FastAPI TestClient over the REST API
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from campus.api import CampusRestAPI
from campus.persistence import (
    AllocationRepository, DriverRepository, EventRepository, ExamRepository, HostelBlockRepository,
    MaintenanceRepository, PaymentRepository, ReportRepository, RoomRepository, RouteRepository,
    SQLiteDatabase, VehicleRepository,
)
from campus.services import (
    EventManager, ExamManager, HostelManager, NotificationService, ReportGenerator, TransportManager,
)

TODAY = date.today()


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def database():
    """Fresh in-memory database, closed after the test."""
    db = SQLiteDatabase(":memory:")
    yield db
    db.close()


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def notifications():
    return NotificationService()


@pytest.fixture
def event_manager(database, notifications):
    return EventManager(EventRepository(database), notifications)


@pytest.fixture
def exam_manager(database, notifications):
    return ExamManager(ExamRepository(database), notifications)


@pytest.fixture
def hostel_manager(database, notifications):
    return HostelManager(
        RoomRepository(database),
        HostelBlockRepository(database),
        AllocationRepository(database),
        PaymentRepository(database),
        notification_service=notifications,
    )


@pytest.fixture
def transport_manager(database, notifications):
    return TransportManager(
        VehicleRepository(database),
        DriverRepository(database),
        RouteRepository(database),
        MaintenanceRepository(database),
        notification_service=notifications,
    )


@pytest.fixture
def report_generator(event_manager, exam_manager, hostel_manager, transport_manager, database, tmp_path):
    """Report generator exporting into a per-test directory."""
    return ReportGenerator(event_manager, exam_manager, hostel_manager, transport_manager,
                           ReportRepository(database), export_dir=str(tmp_path / "reports"))


@pytest.fixture
def seeded(event_manager, exam_manager, hostel_manager, transport_manager):
    """Every manager loaded with the demonstration data as of TODAY."""
    event_manager.load_sample_data(TODAY)
    exam_manager.load_sample_data(TODAY)
    hostel_manager.load_sample_data(TODAY)
    transport_manager.load_sample_data(TODAY)
    return {
        "events": event_manager,
        "exams": exam_manager,
        "hostel": hostel_manager,
        "transport": transport_manager,
    }


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
def api(event_manager, exam_manager, hostel_manager, transport_manager, report_generator, notifications):
    return CampusRestAPI(event_manager, exam_manager, hostel_manager, transport_manager,
                         report_generator, notifications)


@pytest.fixture
def client(api):
    """TestClient over an empty platform."""
    return TestClient(api.app)


@pytest.fixture
def seeded_client(seeded, api):
    """TestClient over a platform with the demonstration data loaded."""
    return TestClient(api.app)
