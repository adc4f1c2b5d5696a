"""
Enumerations and constants for the campus management system.
"""

from enum import Enum
from typing import Dict, Set


# Events

class EventType(Enum):
    """Types of campus events."""
    CONFERENCE = "conference"
    WORKSHOP = "workshop"
    SEMINAR = "seminar"
    LECTURE = "lecture"
    MEETING = "meeting"
    CULTURAL = "cultural"
    SPORTS = "sports"
    COMPETITION = "competition"
    ORIENTATION = "orientation"
    GRADUATION = "graduation"
    EXHIBITION = "exhibition"
    FAIR = "fair"
    FESTIVAL = "festival"
    CEREMONY = "ceremony"
    TRAINING = "training"
    WEBINAR = "webinar"
    HACKATHON = "hackathon"
    SYMPOSIUM = "symposium"
    PANEL_DISCUSSION = "panel_discussion"
    NETWORKING = "networking"


class EventCategory(Enum):
    """Broad categories used to group events."""
    ACADEMIC = "academic"
    CULTURAL = "cultural"
    SPORTS = "sports"
    SOCIAL = "social"
    PROFESSIONAL = "professional"
    TECHNICAL = "technical"
    ADMINISTRATIVE = "administrative"
    RECREATIONAL = "recreational"
    COMMUNITY = "community"
    FUNDRAISING = "fundraising"


class EventStatus(Enum):
    """Lifecycle status of an event."""
    PLANNED = "planned"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    POSTPONED = "postponed"
    REGISTRATION_OPEN = "registration_open"
    REGISTRATION_CLOSED = "registration_closed"
    FULL = "full"


# Exams

class ExamType(Enum):
    """Types of examinations."""
    QUIZ = "quiz"
    MIDTERM = "midterm"
    FINAL = "final"
    PRACTICAL = "practical"
    ASSIGNMENT = "assignment"
    PROJECT = "project"
    PRESENTATION = "presentation"
    VIVA = "viva"
    MAKEUP = "makeup"
    SUPPLEMENTARY = "supplementary"


class ExamStatus(Enum):
    """Lifecycle status of an exam."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    POSTPONED = "postponed"
    RESULTS_PENDING = "results_pending"
    RESULTS_PUBLISHED = "results_published"


# Hostel

_ROOM_TYPE_SPECS: Dict[str, tuple] = {
    "single": (1, 800.0, 12.0),
    "double": (2, 600.0, 16.0),
    "triple": (3, 450.0, 20.0),
    "quad": (4, 350.0, 24.0),
}


class RoomType(Enum):
    """Hostel room types with their default occupancy and rent."""
    SINGLE = "single"
    DOUBLE = "double"
    TRIPLE = "triple"
    QUAD = "quad"

    @property
    def capacity(self) -> int:
        return _ROOM_TYPE_SPECS[self.value][0]

    @property
    def base_rent(self) -> float:
        return _ROOM_TYPE_SPECS[self.value][1]

    @property
    def area(self) -> float:
        """Floor area in square metres."""
        return _ROOM_TYPE_SPECS[self.value][2]


class RoomStatus(Enum):
    """Status of a hostel room."""
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    UNDER_MAINTENANCE = "under_maintenance"
    OUT_OF_ORDER = "out_of_order"
    RESERVED = "reserved"
    CLEANING = "cleaning"


class AllocationStatus(Enum):
    """Status of a room allocation."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class PaymentStatus(Enum):
    """Status of a hostel payment."""
    PENDING = "pending"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIAL = "partial"
    FAILED = "failed"


class PaymentType(Enum):
    """Kinds of hostel charges."""
    MONTHLY_RENT = "monthly_rent"
    SECURITY_DEPOSIT = "security_deposit"
    MAINTENANCE_FEE = "maintenance_fee"
    LATE_FEE = "late_fee"
    UTILITY_BILL = "utility_bill"
    DAMAGE_CHARGE = "damage_charge"
    CLEANING_FEE = "cleaning_fee"
    OTHER = "other"


# Transport

class VehicleType(Enum):
    """Types of campus vehicles."""
    BUS = "bus"
    VAN = "van"
    CAR = "car"
    TRUCK = "truck"
    MOTORCYCLE = "motorcycle"
    BICYCLE = "bicycle"


class DriverStatus(Enum):
    """Duty status of a driver."""
    AVAILABLE = "available"
    ON_DUTY = "on_duty"
    OFF_DUTY = "off_duty"
    ON_LEAVE = "on_leave"


class VanPurpose(Enum):
    """Configured purpose of a van."""
    PASSENGER = "passenger"
    CARGO = "cargo"
    MIXED = "mixed"


class RouteType(Enum):
    """Shape of a bus route."""
    LINEAR = "linear"
    CIRCULAR = "circular"
    EXPRESS = "express"


class MaintenanceStatus(Enum):
    """Status of a maintenance record."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MaintenancePriority(Enum):
    """Priority of a maintenance record."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


LICENSE_VEHICLE_TYPES: Dict[str, Set[VehicleType]] = {
    "CDL-A": {VehicleType.BUS, VehicleType.TRUCK, VehicleType.VAN, VehicleType.CAR},
    "CDL-B": {VehicleType.BUS, VehicleType.VAN, VehicleType.CAR},
    "REGULAR": {VehicleType.VAN, VehicleType.CAR},
}


# Reports

class ReportType(Enum):
    """Subject of a report."""
    STUDENT_REPORT = "student_report"
    COURSE_REPORT = "course_report"
    FINANCIAL_REPORT = "financial_report"
    ATTENDANCE_REPORT = "attendance_report"
    PERFORMANCE_REPORT = "performance_report"
    INVENTORY_REPORT = "inventory_report"
    EVENT_REPORT = "event_report"
    EXAM_REPORT = "exam_report"
    TRANSPORT_REPORT = "transport_report"
    HOSTEL_REPORT = "hostel_report"
    LIBRARY_REPORT = "library_report"
    SYSTEM_REPORT = "system_report"
    CUSTOM_REPORT = "custom_report"


class ReportFormat(Enum):
    """Output formats a report can be rendered to."""
    PDF = "pdf"
    EXCEL = "excel"
    CSV = "csv"
    HTML = "html"
    JSON = "json"
    XML = "xml"
    TXT = "txt"


class ReportStatus(Enum):
    """Generation status of a report."""
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"


class ReportCategory(Enum):
    """Audience-oriented report categories."""
    ACADEMIC = "academic"
    ADMINISTRATIVE = "administrative"
    FINANCIAL = "financial"
    OPERATIONAL = "operational"
    STATISTICAL = "statistical"
    COMPLIANCE = "compliance"
    PERFORMANCE = "performance"
    ANALYTICS = "analytics"


class NotificationType(Enum):
    """Kinds of notifications published by the managers."""
    INFO = "info"
    WARNING = "warning"
    ALERT = "alert"
    REMINDER = "reminder"
