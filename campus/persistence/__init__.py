"""
Persistence module for entity storage and repositories.
"""

from .database import DatabaseManager, SQLiteDatabase, DatabaseFactory
from .repositories import (
    BaseRepository, EventRepository, ExamRepository, RoomRepository, HostelBlockRepository,
    AllocationRepository, PaymentRepository, VehicleRepository, DriverRepository,
    RouteRepository, MaintenanceRepository, ReportRepository,
)

__all__ = [
    "DatabaseManager",
    "SQLiteDatabase",
    "DatabaseFactory",
    "BaseRepository",
    "EventRepository",
    "ExamRepository",
    "RoomRepository",
    "HostelBlockRepository",
    "AllocationRepository",
    "PaymentRepository",
    "VehicleRepository",
    "DriverRepository",
    "RouteRepository",
    "MaintenanceRepository",
    "ReportRepository",
]
