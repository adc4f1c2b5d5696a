"""
Core module containing the domain entities, enums and exceptions.
"""

from .abstract_entity import AbstractEntity
from .enums import *
from .events import Event
from .exams import Exam, ExamResult
from .exceptions import *
from .hostel import Allocation, HostelBlock, Payment, Room
from .interfaces import Manageable, Repository
from .reports import Report
from .transport import Bus, Driver, MaintenanceRecord, Route, Van, Vehicle, vehicle_from_dict

__all__ = [
    # Entities
    "AbstractEntity",
    "Event",
    "Exam",
    "ExamResult",
    "Room",
    "HostelBlock",
    "Allocation",
    "Payment",
    "Vehicle",
    "Bus",
    "Van",
    "Driver",
    "Route",
    "MaintenanceRecord",
    "Report",
    "vehicle_from_dict",

    # Interfaces
    "Manageable",
    "Repository",

    # Enums
    "EventType",
    "EventCategory",
    "EventStatus",
    "ExamType",
    "ExamStatus",
    "RoomType",
    "RoomStatus",
    "AllocationStatus",
    "PaymentStatus",
    "PaymentType",
    "VehicleType",
    "DriverStatus",
    "VanPurpose",
    "RouteType",
    "MaintenanceStatus",
    "MaintenancePriority",
    "ReportType",
    "ReportFormat",
    "ReportStatus",
    "ReportCategory",
    "NotificationType",

    # Exceptions
    "CampusException",
    "ValidationError",
    "InvalidStateError",
    "ResourceNotFoundError",
    "DuplicateEntityError",
    "SchedulingError",
    "PersistenceError",
    "ConfigurationError",
    "ReportGenerationError",
]
