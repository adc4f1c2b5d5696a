"""
REST API implementation for the campus platform using FastAPI.
"""

import threading
from contextlib import contextmanager
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .. import __version__
from ..core.enums import (
    EventCategory, EventStatus, EventType, ExamStatus, ExamType, PaymentType,
    ReportCategory, ReportFormat, ReportType, RoomType, RouteType, VehicleType,
)
from ..core.exceptions import (
    CampusException, DuplicateEntityError, InvalidStateError, ResourceNotFoundError, ValidationError,
)
from ..services import (
    EventManager, ExamManager, HostelManager, NotificationService, ReportGenerator, TransportManager,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)


# Pydantic models for API
class EventCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    event_type: EventType
    category: EventCategory
    description: Optional[str] = Field(None, max_length=1000)
    organizer_id: Optional[str] = None
    organizer_name: Optional[str] = None
    max_capacity: Optional[int] = Field(None, ge=1, le=100000)
    registration_fee: Optional[float] = Field(None, ge=0)
    requires_registration: Optional[bool] = None
    is_public: Optional[bool] = None


class EventUpdate(BaseModel):
    description: Optional[str] = Field(None, max_length=1000)
    max_capacity: Optional[int] = Field(None, ge=1, le=100000)
    registration_fee: Optional[float] = Field(None, ge=0)
    is_public: Optional[bool] = None


class EventScheduleRequest(BaseModel):
    event_date: date
    start_time: time
    end_time: time
    venue: str = Field(..., min_length=1, max_length=200)


class ReasonRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class ParticipantRequest(BaseModel):
    participant_id: str = Field(..., min_length=1, max_length=20)


class ExamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    course_id: str = Field(..., min_length=1, max_length=20)
    course_name: str = Field(..., min_length=1, max_length=200)
    exam_type: ExamType
    instructor: Optional[str] = None
    duration: Optional[int] = Field(None, ge=1, le=600)
    max_marks: Optional[float] = Field(None, gt=0)
    passing_marks: Optional[float] = Field(None, ge=0)


class ExamScheduleRequest(BaseModel):
    exam_date: date
    start_time: time
    venue: str = Field(..., min_length=1, max_length=200)


class EnrollmentRequest(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=20)


class ResultRequest(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=20)
    marks: float = Field(..., ge=0)
    evaluated_by: Optional[str] = None


class RoomCreate(BaseModel):
    room_id: str = Field(..., min_length=1, max_length=20)
    block_id: str = Field(..., min_length=1, max_length=20)
    floor: int = Field(..., ge=0, le=100)
    room_type: RoomType
    monthly_rent: Optional[float] = Field(None, ge=0)


class AllocationRequest(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=20)
    room_id: str = Field(..., min_length=1, max_length=20)
    expected_check_out_date: Optional[date] = None
    monthly_rent: Optional[float] = Field(None, ge=0)
    check_in: bool = True


class DeallocationRequest(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=20)


class PaymentRequest(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=20)
    amount: float = Field(..., gt=0)
    payment_type: PaymentType
    payment_method: str = Field("cash", min_length=1, max_length=50)
    received_by: Optional[str] = None
    description: Optional[str] = None


class VehicleCreate(BaseModel):
    vehicle_type: VehicleType
    registration_number: str = Field(..., min_length=1, max_length=20)
    model: str = Field(..., min_length=1, max_length=100)
    manufacturer: str = Field(..., min_length=1, max_length=100)
    year: int = Field(..., ge=1900, le=2100)
    capacity: int = Field(..., ge=1, le=200)


class DriverCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    license_number: str = Field(..., min_length=1, max_length=30)
    license_type: str = Field(..., pattern=r'^(CDL-A|CDL-B|REGULAR)$')
    license_expiry: date
    experience_years: int = Field(0, ge=0, le=60)
    phone: Optional[str] = None
    email: Optional[str] = None


class RouteCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    start_point: str = Field(..., min_length=1, max_length=200)
    end_point: str = Field(..., min_length=1, max_length=200)
    stops: List[str] = Field(default_factory=list)
    route_type: RouteType = RouteType.LINEAR
    fare: Optional[float] = Field(None, ge=0)


class VehicleAssignment(BaseModel):
    vehicle_id: str = Field(..., min_length=1, max_length=20)


class DriverAssignment(BaseModel):
    driver_id: str = Field(..., min_length=1, max_length=20)


class ReportRequest(BaseModel):
    report_type: ReportType
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    category: ReportCategory = ReportCategory.OPERATIONAL
    parameters: Dict[str, Any] = Field(default_factory=dict)
    generated_by: Optional[str] = None


class ExportRequest(BaseModel):
    format: ReportFormat
    file_name: Optional[str] = Field(None, min_length=1, max_length=200)


class OperationResponse(BaseModel):
    success: bool
    message: str


class StatisticsResponse(BaseModel):
    success: bool
    message: str
    statistics: Dict[str, Any]


class CampusRestAPI:
    """REST API implementation for the campus platform."""

    def __init__(self, event_manager: EventManager, exam_manager: ExamManager,
                 hostel_manager: HostelManager, transport_manager: TransportManager,
                 report_generator: ReportGenerator,
                 notification_service: Optional[NotificationService] = None):
        self._events = event_manager
        self._exams = exam_manager
        self._hostel = hostel_manager
        self._transport = transport_manager
        self._reports = report_generator
        self._notifications = notification_service

        self._lock = threading.RLock()

        # Create FastAPI app
        self.app = FastAPI(
            title="Campus Management API",
            description="Events, exams, hostel and transport management for a university campus",
            version=__version__,
            docs_url="/docs",
            redoc_url="/redoc"
        )

        # Add CORS middleware
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._setup_routes()

    @contextmanager
    def _guard(self):
        """Serialize a request and map domain errors onto HTTP status codes."""
        try:
            with self._lock:
                yield
        except HTTPException:
            raise
        except (ValidationError, InvalidStateError) as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except ResourceNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except DuplicateEntityError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        except CampusException as e:
            logger.error("Request failed: %s", e)
            raise HTTPException(status_code=500, detail=f"Internal error: {str(e)}") from e
        except Exception as e:
            logger.exception("Unexpected error while handling request")
            raise HTTPException(status_code=500, detail=f"Internal error: {str(e)}") from e

    def _setup_routes(self):
        """Setup API routes."""

        @self.app.get("/", response_model=Dict[str, str])
        async def root():
            """Root endpoint."""
            return {
                "message": "Campus Management API",
                "version": __version__,
                "docs": "/docs"
            }

        @self.app.get("/health", response_model=Dict[str, str])
        async def health_check():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

        self._setup_event_routes()
        self._setup_exam_routes()
        self._setup_hostel_routes()
        self._setup_transport_routes()
        self._setup_report_routes()

        @self.app.get("/statistics", response_model=StatisticsResponse)
        async def get_statistics():
            """Statistics from every manager."""
            with self._guard():
                return StatisticsResponse(
                    success=True,
                    message="Statistics retrieved successfully",
                    statistics={
                        "events": self._events.get_statistics(),
                        "exams": self._exams.get_statistics(),
                        "hostel": self._hostel.get_statistics(),
                        "transport": self._transport.get_statistics(),
                        "reports": self._reports.get_statistics(),
                    }
                )

        @self.app.get("/alerts", response_model=Dict[str, List[str]])
        async def get_alerts():
            with self._guard():
                return {
                    "events": self._events.get_alerts(),
                    "exams": self._exams.get_alerts(),
                    "hostel": self._hostel.get_alerts(),
                    "transport": self._transport.get_alerts(),
                }

        @self.app.get("/notifications", response_model=List[Dict[str, Any]])
        async def list_notifications(recipient: Optional[str] = None, unread_only: bool = False):
            if self._notifications is None:
                return []
            with self._guard():
                if unread_only:
                    notifications = self._notifications.get_unread(recipient)
                else:
                    notifications = self._notifications.get_notifications(recipient)
                return [n.to_dict() for n in notifications]

    # Events

    def _setup_event_routes(self):
        @self.app.post("/events", status_code=status.HTTP_201_CREATED)
        async def create_event(event_data: EventCreate):
            """Create a new event."""
            with self._guard():
                event = self._events.create_event(**event_data.model_dump())
                return event.to_dict()

        @self.app.get("/events")
        async def list_events(event_status: Optional[EventStatus] = None,
                              event_type: Optional[EventType] = None,
                              skip: int = 0, limit: int = 100):
            """List events, optionally filtered by status or type."""
            with self._guard():
                if event_status is not None:
                    events = self._events.get_events_by_status(event_status)
                elif event_type is not None:
                    events = self._events.get_events_by_type(event_type)
                else:
                    events = self._events.get_all()
                return [e.to_dict() for e in events[skip:skip + limit]]

        @self.app.get("/events/upcoming")
        async def upcoming_events():
            with self._guard():
                return [e.to_dict() for e in self._events.get_upcoming_events()]

        @self.app.get("/events/alerts", response_model=List[str])
        async def event_alerts():
            with self._guard():
                return self._events.get_alerts()

        @self.app.get("/events/reports/summary")
        async def event_summary():
            """Event statistics with attendance and registration analysis."""
            with self._guard():
                return {
                    "statistics": self._events.get_statistics(),
                    "attendance": self._events.generate_attendance_analysis(),
                    "registrations": self._events.generate_registration_statistics(),
                    "categories": self._events.generate_category_report(),
                }

        @self.app.get("/events/{event_id}")
        async def get_event(event_id: str):
            with self._guard():
                return self._events.get(event_id).to_dict()

        @self.app.put("/events/{event_id}")
        async def update_event(event_id: str, event_data: EventUpdate):
            with self._guard():
                event = self._events.get(event_id)
                for field, value in event_data.model_dump(exclude_none=True).items():
                    setattr(event, field, value)
                return self._events.update(event).to_dict()

        @self.app.delete("/events/{event_id}", response_model=OperationResponse)
        async def delete_event(event_id: str):
            with self._guard():
                self._events.delete(event_id)
                return OperationResponse(success=True, message=f"Event {event_id} deleted")

        @self.app.post("/events/{event_id}/schedule")
        async def schedule_event(event_id: str, request: EventScheduleRequest):
            with self._guard():
                event = self._events.schedule_event(event_id, request.event_date, request.start_time,
                                                    request.end_time, request.venue)
                return event.to_dict()

        @self.app.post("/events/{event_id}/start")
        async def start_event(event_id: str):
            with self._guard():
                return self._events.start_event(event_id).to_dict()

        @self.app.post("/events/{event_id}/complete")
        async def complete_event(event_id: str):
            with self._guard():
                return self._events.complete_event(event_id).to_dict()

        @self.app.post("/events/{event_id}/cancel")
        async def cancel_event(event_id: str, request: ReasonRequest):
            with self._guard():
                return self._events.cancel_event(event_id, request.reason).to_dict()

        @self.app.post("/events/{event_id}/register", response_model=OperationResponse)
        async def register_participant(event_id: str, request: ParticipantRequest):
            """Register a participant; success is False when the event is full or closed."""
            with self._guard():
                registered = self._events.register_participant(event_id, request.participant_id)
                message = "Registered" if registered else "Registration rejected"
                return OperationResponse(success=registered, message=message)

        @self.app.delete("/events/{event_id}/participants/{participant_id}", response_model=OperationResponse)
        async def unregister_participant(event_id: str, participant_id: str):
            with self._guard():
                removed = self._events.unregister_participant(event_id, participant_id)
                return OperationResponse(success=removed, message="Unregistered" if removed else "Not registered")

        @self.app.post("/events/{event_id}/attendance", response_model=OperationResponse)
        async def mark_attendance(event_id: str, request: ParticipantRequest):
            with self._guard():
                marked = self._events.mark_attendance(event_id, request.participant_id)
                return OperationResponse(success=marked,
                                         message="Attendance recorded" if marked else "Attendance rejected")

    # Exams

    def _setup_exam_routes(self):
        @self.app.post("/exams", status_code=status.HTTP_201_CREATED)
        async def create_exam(exam_data: ExamCreate):
            with self._guard():
                return self._exams.create_exam(**exam_data.model_dump()).to_dict()

        @self.app.get("/exams")
        async def list_exams(exam_status: Optional[ExamStatus] = None, course_id: Optional[str] = None):
            with self._guard():
                if exam_status is not None:
                    exams = self._exams.get_exams_by_status(exam_status)
                elif course_id is not None:
                    exams = self._exams.get_exams_by_course(course_id)
                else:
                    exams = self._exams.get_all()
                return [e.to_dict() for e in exams]

        @self.app.get("/exams/upcoming")
        async def upcoming_exams():
            with self._guard():
                return [e.to_dict() for e in self._exams.get_upcoming_exams()]

        @self.app.get("/exams/{exam_id}")
        async def get_exam(exam_id: str):
            with self._guard():
                return self._exams.get(exam_id).to_dict()

        @self.app.delete("/exams/{exam_id}", response_model=OperationResponse)
        async def delete_exam(exam_id: str):
            with self._guard():
                self._exams.delete(exam_id)
                return OperationResponse(success=True, message=f"Exam {exam_id} deleted")

        @self.app.post("/exams/{exam_id}/schedule")
        async def schedule_exam(exam_id: str, request: ExamScheduleRequest):
            with self._guard():
                return self._exams.schedule_exam(exam_id, request.exam_date, request.start_time,
                                                 request.venue).to_dict()

        @self.app.post("/exams/{exam_id}/start")
        async def start_exam(exam_id: str):
            with self._guard():
                return self._exams.start_exam(exam_id).to_dict()

        @self.app.post("/exams/{exam_id}/end")
        async def end_exam(exam_id: str):
            with self._guard():
                return self._exams.end_exam(exam_id).to_dict()

        @self.app.post("/exams/{exam_id}/publish")
        async def publish_results(exam_id: str):
            with self._guard():
                return self._exams.publish_results(exam_id).to_dict()

        @self.app.post("/exams/{exam_id}/enroll", response_model=OperationResponse)
        async def enroll_student(exam_id: str, request: EnrollmentRequest):
            with self._guard():
                enrolled = self._exams.enroll_student(exam_id, request.student_id)
                return OperationResponse(success=enrolled,
                                         message="Enrolled" if enrolled else "Already enrolled")

        @self.app.post("/exams/{exam_id}/results", status_code=status.HTTP_201_CREATED)
        async def add_result(exam_id: str, request: ResultRequest):
            with self._guard():
                result = self._exams.add_result(exam_id, request.student_id, request.marks,
                                                request.evaluated_by)
                return result.to_dict()

        @self.app.get("/exams/{exam_id}/results")
        async def get_results(exam_id: str):
            with self._guard():
                exam = self._exams.get(exam_id)
                return [r.to_dict() for r in exam.results.values()]

        @self.app.get("/exams/{exam_id}/analysis")
        async def results_analysis(exam_id: str):
            with self._guard():
                return self._exams.generate_results_analysis(exam_id)

    # Hostel

    def _setup_hostel_routes(self):
        @self.app.post("/hostel/rooms", status_code=status.HTTP_201_CREATED)
        async def create_room(room_data: RoomCreate):
            with self._guard():
                return self._hostel.create_room(**room_data.model_dump()).to_dict()

        @self.app.get("/hostel/rooms")
        async def list_rooms(available_only: bool = False, block_id: Optional[str] = None):
            with self._guard():
                if available_only:
                    rooms = self._hostel.get_available_rooms()
                elif block_id is not None:
                    rooms = self._hostel.get_rooms_by_block(block_id)
                else:
                    rooms = self._hostel.get_all()
                return [r.to_dict() for r in rooms]

        @self.app.get("/hostel/rooms/{room_id}")
        async def get_room(room_id: str):
            with self._guard():
                return self._hostel.get(room_id).to_dict()

        @self.app.get("/hostel/blocks")
        async def list_blocks():
            with self._guard():
                return [b.to_dict() for b in self._hostel.get_all_blocks()]

        @self.app.post("/hostel/allocations", status_code=status.HTTP_201_CREATED)
        async def allocate_room(request: AllocationRequest):
            with self._guard():
                allocation = self._hostel.allocate_room(
                    request.student_id, request.room_id,
                    expected_check_out_date=request.expected_check_out_date,
                    monthly_rent=request.monthly_rent,
                )
                if request.check_in:
                    allocation = self._hostel.check_in(allocation.id)
                return allocation.to_dict()

        @self.app.post("/hostel/deallocations")
        async def deallocate_room(request: DeallocationRequest):
            with self._guard():
                return self._hostel.deallocate_room(request.student_id).to_dict()

        @self.app.get("/hostel/allocations")
        async def list_allocations(student_id: Optional[str] = None):
            with self._guard():
                if student_id is not None:
                    allocations = self._hostel.get_allocations_by_student(student_id)
                else:
                    allocations = self._hostel.get_all_allocations()
                return [a.to_dict() for a in allocations]

        @self.app.post("/hostel/payments", status_code=status.HTTP_201_CREATED)
        async def record_payment(request: PaymentRequest):
            with self._guard():
                return self._hostel.record_payment(**request.model_dump()).to_dict()

        @self.app.get("/hostel/payments")
        async def list_payments(student_id: Optional[str] = None):
            with self._guard():
                if student_id is not None:
                    payments = self._hostel.get_payments_by_student(student_id)
                else:
                    payments = self._hostel.get_all_payments()
                return [p.to_dict() for p in payments]

        @self.app.get("/hostel/statistics", response_model=StatisticsResponse)
        async def hostel_statistics():
            with self._guard():
                return StatisticsResponse(success=True, message="Hostel statistics",
                                          statistics=self._hostel.get_statistics())

    # Transport

    def _setup_transport_routes(self):
        @self.app.post("/transport/vehicles", status_code=status.HTTP_201_CREATED)
        async def create_vehicle(vehicle_data: VehicleCreate):
            with self._guard():
                args = (vehicle_data.registration_number, vehicle_data.model, vehicle_data.manufacturer,
                        vehicle_data.year, vehicle_data.capacity)
                if vehicle_data.vehicle_type == VehicleType.BUS:
                    vehicle = self._transport.create_bus(*args)
                elif vehicle_data.vehicle_type == VehicleType.VAN:
                    vehicle = self._transport.create_van(*args)
                else:
                    raise ValidationError(f"Unsupported vehicle type: {vehicle_data.vehicle_type.value}")
                return vehicle.to_dict()

        @self.app.get("/transport/vehicles")
        async def list_vehicles(available_only: bool = False):
            with self._guard():
                vehicles = self._transport.get_available_vehicles() if available_only else self._transport.get_all()
                return [v.to_dict() for v in vehicles]

        @self.app.get("/transport/vehicles/{vehicle_id}")
        async def get_vehicle(vehicle_id: str):
            with self._guard():
                return self._transport.get(vehicle_id).to_dict()

        @self.app.delete("/transport/vehicles/{vehicle_id}", response_model=OperationResponse)
        async def delete_vehicle(vehicle_id: str):
            with self._guard():
                self._transport.delete(vehicle_id)
                return OperationResponse(success=True, message=f"Vehicle {vehicle_id} deleted")

        @self.app.post("/transport/vehicles/{vehicle_id}/driver")
        async def assign_driver(vehicle_id: str, request: DriverAssignment):
            with self._guard():
                return self._transport.assign_driver_to_vehicle(request.driver_id, vehicle_id).to_dict()

        @self.app.get("/transport/vehicles/{vehicle_id}/schedule")
        async def vehicle_schedule(vehicle_id: str):
            with self._guard():
                self._transport.get(vehicle_id)
                return [e.to_dict() for e in self._transport.get_vehicle_schedule(vehicle_id)]

        @self.app.post("/transport/drivers", status_code=status.HTTP_201_CREATED)
        async def create_driver(driver_data: DriverCreate):
            with self._guard():
                return self._transport.create_driver(**driver_data.model_dump()).to_dict()

        @self.app.get("/transport/drivers")
        async def list_drivers():
            with self._guard():
                return [d.to_dict() for d in self._transport.get_all_drivers()]

        @self.app.get("/transport/drivers/{driver_id}")
        async def get_driver(driver_id: str):
            with self._guard():
                driver = self._transport.get_driver(driver_id)
                if driver is None:
                    raise HTTPException(status_code=404, detail="Driver not found")
                return driver.to_dict()

        @self.app.post("/transport/routes", status_code=status.HTTP_201_CREATED)
        async def create_route(route_data: RouteCreate):
            with self._guard():
                return self._transport.create_route(**route_data.model_dump()).to_dict()

        @self.app.get("/transport/routes")
        async def list_routes(stop: Optional[str] = None):
            with self._guard():
                routes = self._transport.get_routes_by_stop(stop) if stop else self._transport.get_all_routes()
                return [r.to_dict() for r in routes]

        @self.app.get("/transport/routes/{route_id}")
        async def get_route(route_id: str):
            with self._guard():
                route = self._transport.get_route(route_id)
                if route is None:
                    raise HTTPException(status_code=404, detail="Route not found")
                return route.to_dict()

        @self.app.post("/transport/routes/{route_id}/vehicles")
        async def assign_vehicle(route_id: str, request: VehicleAssignment):
            with self._guard():
                return self._transport.assign_vehicle_to_route(request.vehicle_id, route_id).to_dict()

        @self.app.delete("/transport/routes/{route_id}/vehicles/{vehicle_id}")
        async def unassign_vehicle(route_id: str, vehicle_id: str):
            with self._guard():
                vehicle = self._transport.get(vehicle_id)
                if vehicle.assigned_route_id != route_id:
                    raise ValidationError(f"Vehicle {vehicle_id} is not assigned to route {route_id}")
                return self._transport.unassign_vehicle_from_route(vehicle_id).to_dict()

        @self.app.get("/transport/routes/{route_id}/schedule")
        async def route_schedule(route_id: str):
            with self._guard():
                return [e.to_dict() for e in self._transport.get_route_schedule(route_id)]

        @self.app.get("/transport/statistics", response_model=StatisticsResponse)
        async def transport_statistics():
            with self._guard():
                return StatisticsResponse(success=True, message="Transport statistics",
                                          statistics=self._transport.get_statistics())

    # Reports

    def _setup_report_routes(self):
        @self.app.post("/reports", status_code=status.HTTP_201_CREATED)
        async def generate_report(request: ReportRequest):
            with self._guard():
                name = request.name or request.report_type.value.replace("_", " ").title()
                report = self._reports.generate_custom_report(name, request.report_type, request.category,
                                                              request.parameters, request.generated_by)
                return report.to_dict()

        @self.app.get("/reports")
        async def list_reports(report_type: Optional[ReportType] = None):
            with self._guard():
                if report_type is not None:
                    reports = self._reports.get_reports_by_type(report_type)
                else:
                    reports = self._reports.get_all_reports()
                return [r.to_dict() for r in reports]

        @self.app.get("/reports/{report_id}")
        async def get_report(report_id: str):
            with self._guard():
                report = self._reports.get_report(report_id)
                if report is None:
                    raise HTTPException(status_code=404, detail="Report not found")
                return report.to_dict()

        @self.app.post("/reports/{report_id}/export", response_model=Dict[str, str])
        async def export_report(report_id: str, request: ExportRequest):
            with self._guard():
                report = self._reports.get_report(report_id)
                if report is None:
                    raise HTTPException(status_code=404, detail="Report not found")
                path = self._reports.export_report(report, request.format, request.file_name)
                return {"report_id": report_id, "format": request.format.value, "path": path}
