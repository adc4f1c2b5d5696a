"""
Main entry point for the campus platform.
"""

import threading
import time
from typing import Any, Dict, Optional

from .api.rest_api import CampusRestAPI
from .config import load_config
from .core.enums import EventCategory, EventType
from .core.exceptions import CampusException
from .persistence import DatabaseFactory, SQLiteDatabase
from .persistence.repositories import (
    AllocationRepository, DriverRepository, EventRepository, ExamRepository, HostelBlockRepository,
    MaintenanceRepository, PaymentRepository, ReportRepository, RoomRepository, RouteRepository,
    VehicleRepository,
)
from .services import (
    EventManager, ExamManager, HostelManager, NotificationService, ReportGenerator, TransportManager,
)
from .utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


class CampusPlatform:
    """Main platform class that wires the managers, reports and API together."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self._config = config if config is not None else load_config()
        self._database = None
        self._notifications = None
        self._event_manager = None
        self._exam_manager = None
        self._hostel_manager = None
        self._transport_manager = None
        self._report_generator = None
        self._rest_api = None
        self._rest_thread = None

        self._initialize_platform()

    def _initialize_platform(self):
        """Initialize the platform with all services."""
        configure_logging(self._config.get('log_level', 'INFO'))
        print("Initializing campus platform...")

        db_type = self._config.get('database_type', 'sqlite')
        db_config = self._config.get('database_config', {})
        self._database = DatabaseFactory.create_database(db_type, **db_config)
        print(f"✓ Database initialized: {db_type}")

        self._notifications = NotificationService(max_history=self._config.get('max_notifications', 500))
        print("✓ Notification service initialized")

        self._event_manager = EventManager(EventRepository(self._database), self._notifications)
        self._exam_manager = ExamManager(ExamRepository(self._database), self._notifications)
        self._hostel_manager = HostelManager(
            RoomRepository(self._database),
            HostelBlockRepository(self._database),
            AllocationRepository(self._database),
            PaymentRepository(self._database),
            notification_service=self._notifications,
        )
        self._transport_manager = TransportManager(
            VehicleRepository(self._database),
            DriverRepository(self._database),
            RouteRepository(self._database),
            MaintenanceRepository(self._database),
            notification_service=self._notifications,
        )
        print("✓ Managers initialized")

        self._report_generator = ReportGenerator(
            self._event_manager,
            self._exam_manager,
            self._hostel_manager,
            self._transport_manager,
            ReportRepository(self._database),
            export_dir=self._config.get('reports_dir', 'reports'),
        )
        print("✓ Report generator initialized")

        self._rest_api = CampusRestAPI(
            self._event_manager,
            self._exam_manager,
            self._hostel_manager,
            self._transport_manager,
            self._report_generator,
            self._notifications,
        )
        print("✓ REST API initialized")

        if self._config.get('load_sample_data', False):
            self.load_sample_data()

        print("✓ Campus platform initialized successfully!")

    @property
    def config(self) -> Dict[str, Any]:
        return self._config

    @property
    def database(self) -> SQLiteDatabase:
        return self._database

    @property
    def event_manager(self) -> EventManager:
        return self._event_manager

    @property
    def exam_manager(self) -> ExamManager:
        return self._exam_manager

    @property
    def hostel_manager(self) -> HostelManager:
        return self._hostel_manager

    @property
    def transport_manager(self) -> TransportManager:
        return self._transport_manager

    @property
    def report_generator(self) -> ReportGenerator:
        return self._report_generator

    @property
    def notifications(self) -> NotificationService:
        return self._notifications

    @property
    def rest_api(self) -> CampusRestAPI:
        return self._rest_api

    def load_sample_data(self):
        """Populate every manager with demonstration data."""
        print("Loading sample data...")
        self._event_manager.load_sample_data()
        self._exam_manager.load_sample_data()
        self._hostel_manager.load_sample_data()
        self._transport_manager.load_sample_data()
        print("✓ Sample data loaded")

    def start_rest_server(self, host: Optional[str] = None, port: Optional[int] = None):
        """Start the REST server."""
        if self._rest_thread is not None:
            print("REST server already running")
            return

        import uvicorn

        host = host or self._config.get('rest_host', '0.0.0.0')
        port = port or self._config.get('rest_port', 8000)

        def run_server():
            uvicorn.run(
                self._rest_api.app,
                host=host,
                port=port,
                log_level=self._config.get('log_level', 'INFO').lower()
            )

        # Start server in a separate thread
        self._rest_thread = threading.Thread(target=run_server, daemon=True)
        self._rest_thread.start()

        print(f"✓ REST server started on {host}:{port}")
        print(f"  - REST API: http://localhost:{port}")
        print(f"  - API Docs: http://localhost:{port}/docs")

    def stop_platform(self):
        """Stop the platform and close its database, whether or not a server was started."""
        if self._database.is_closed:
            print("Platform already stopped")
            return

        print("Stopping campus platform...")
        self._database.close()
        print("✓ Campus platform stopped")

    def publish_alerts(self) -> int:
        """Push every manager's current alerts to the notification service."""
        return sum(manager.publish_alerts() for manager in (
            self._event_manager, self._exam_manager, self._hostel_manager, self._transport_manager,
        ))

    def run_demo(self):
        """Run a demonstration of the platform."""
        print("Running campus platform demonstration...")

        if self._event_manager.count() == 0:
            self.load_sample_data()

        print("\n=== Platform Statistics ===")
        print(f"Events: {self._event_manager.get_statistics()}")
        print(f"Exams: {self._exam_manager.get_statistics()}")
        print(f"Hostel: {self._hostel_manager.get_statistics()}")
        print(f"Transport: {self._transport_manager.get_statistics()}")

        print("\n=== Event Demo ===")
        event = self._event_manager.create_event(
            "Campus Hackathon", EventType.COMPETITION, EventCategory.TECHNICAL,
            description="24-hour coding challenge", organizer_id="T001",
            organizer_name="Computer Science Club", max_capacity=2, requires_registration=True,
        )
        for participant in ("S001", "S002", "S003"):
            registered = self._event_manager.register_participant(event.id, participant)
            print(f"Register {participant} for {event.id}: {registered}")

        print("\n=== Exam Demo ===")
        analysis = self._exam_manager.generate_results_analysis("E006")
        print(f"Physics midterm pass rate: {analysis['pass_percentage']:.1f}% "
              f"(average {analysis['average_marks']:.1f})")

        print("\n=== Hostel Demo ===")
        try:
            allocation = self._hostel_manager.allocate_room("S003", "A102")
            print(f"Allocated {allocation.room_id} to {allocation.student_id} ({allocation.id})")
        except CampusException as e:
            print(f"Allocation failed: {e}")

        print("\n=== Transport Demo ===")
        schedule = self._transport_manager.get_route_schedule("R001")
        print(f"Route R001 has {len(schedule)} daily services")
        if schedule:
            first = schedule[0]
            print(f"First departure {first.departure_time} on {first.vehicle_id} driven by {first.driver_id}")

        print("\n=== Reports ===")
        report = self._report_generator.generate_system_overview_report(generated_by="demo")
        print(f"Generated {report.name} ({report.id}), {report.file_size} bytes")

        published = self.publish_alerts()
        print(f"\nPublished {published} alerts")
        for notification in self._notifications.get_unread()[:5]:
            print(f"  [{notification.notification_type.value}] {notification.message}")

        print("\n✓ Demo completed")


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Campus Management Platform")
    parser.add_argument("--rest-port", type=int, help="REST server port")
    parser.add_argument("--demo", action="store_true", help="Run demo mode")
    parser.add_argument("--config", type=str, help="Configuration file path")

    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except CampusException as e:
        parser.error(str(e))
    if args.rest_port:
        config['rest_port'] = args.rest_port

    platform = CampusPlatform(config)

    try:
        if args.demo:
            platform.run_demo()
        else:
            platform.start_rest_server()

            # Keep running
            print("\nPlatform is running. Press Ctrl+C to stop.")
            while True:
                time.sleep(1)

    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        platform.stop_platform()


if __name__ == "__main__":
    main()
