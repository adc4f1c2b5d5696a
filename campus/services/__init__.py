"""
Services module containing the domain managers and cross-cutting services.
"""

from .base_manager import BaseManager
from .event_manager import EventManager
from .exam_manager import ExamManager
from .hostel_manager import HostelManager
from .transport_manager import TransportManager
from .route_scheduler import BusRouteScheduler, ScheduleEntry
from .notification_service import Notification, NotificationService
from .report_generator import ReportGenerator

__all__ = [
    "BaseManager",
    "EventManager",
    "ExamManager",
    "HostelManager",
    "TransportManager",
    "BusRouteScheduler",
    "ScheduleEntry",
    "Notification",
    "NotificationService",
    "ReportGenerator",
]
