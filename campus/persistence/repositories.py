"""
Repository pattern implementations for data access.
"""

import json
import threading
from abc import abstractmethod
from datetime import date
from typing import Any, Dict, Generic, List, Optional, TypeVar

from ..core.abstract_entity import AbstractEntity
from ..core.enums import (
    AllocationStatus, EventCategory, EventStatus, EventType, ExamStatus, ExamType,
    MaintenanceStatus, PaymentStatus, ReportType, RoomStatus, RoomType, VehicleType,
)
from ..core.events import Event
from ..core.exams import Exam
from ..core.exceptions import CampusException, PersistenceError
from ..core.hostel import Allocation, HostelBlock, Payment, Room
from ..core.interfaces import Repository
from ..core.reports import Report
from ..core.transport import Driver, MaintenanceRecord, Route, Vehicle, vehicle_from_dict
from .database import DatabaseManager

T = TypeVar('T', bound=AbstractEntity)


def _status_value(entity: AbstractEntity) -> str:
    status = getattr(entity, "status", "active")
    return status.value if hasattr(status, "value") else str(status)


class BaseRepository(Repository[T], Generic[T]):
    """Base repository storing entities as JSON rows in the ``entities`` table."""

    def __init__(self, database: DatabaseManager, entity_type: str):
        self._database = database
        self._entity_type = entity_type
        self._lock = threading.RLock()

    @property
    def entity_type(self) -> str:
        return self._entity_type

    def save(self, entity: T) -> T:
        """Insert or update an entity."""
        with self._lock:
            try:
                payload = json.dumps(entity.to_dict(), default=str)
                if self.exists(entity.id):
                    query = """
                        UPDATE entities
                        SET data = ?, updated_at = ?, version = ?, status = ?
                        WHERE id = ? AND type = ?
                    """
                    params = (
                        payload,
                        entity.updated_at.isoformat(),
                        entity.version,
                        _status_value(entity),
                        entity.id,
                        self._entity_type,
                    )
                else:
                    query = """
                        INSERT INTO entities (id, type, data, created_at, updated_at, version, status)
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                    """
                    params = (
                        entity.id,
                        self._entity_type,
                        payload,
                        entity.created_at.isoformat(),
                        entity.updated_at.isoformat(),
                        entity.version,
                        _status_value(entity),
                    )
                self._database.execute_update(query, params)
                return entity
            except PersistenceError:
                raise
            except (TypeError, ValueError) as e:
                raise PersistenceError(f"Failed to save {self._entity_type}: {str(e)}") from e

    def find_by_id(self, entity_id: str) -> Optional[T]:
        """Find entity by ID."""
        with self._lock:
            query = "SELECT data FROM entities WHERE id = ? AND type = ?"
            results = self._database.execute_query(query, (entity_id, self._entity_type))
            if results:
                return self._load(results[0]["data"])
            return None

    def find_all(self, filters: Optional[Dict[str, Any]] = None) -> List[T]:
        """Find all entities matching filters.

        ``status`` is matched in SQL; any other key is compared against the
        entity's serialized field of the same name.
        """
        with self._lock:
            query = "SELECT data FROM entities WHERE type = ?"
            params: List[Any] = [self._entity_type]
            extra: Dict[str, Any] = {}

            for key, value in (filters or {}).items():
                if hasattr(value, "value"):
                    value = value.value
                if key == "status":
                    query += " AND status = ?"
                    params.append(value)
                else:
                    extra[key] = value

            query += " ORDER BY created_at, id"
            rows = self._database.execute_query(query, tuple(params))

            entities = []
            for row in rows:
                data = self._decode(row["data"])
                if all(data.get(key) == value for key, value in extra.items()):
                    entities.append(self._build(data))
            return entities

    def delete(self, entity_id: str) -> bool:
        """Delete an entity by ID."""
        with self._lock:
            query = "DELETE FROM entities WHERE id = ? AND type = ?"
            return self._database.execute_update(query, (entity_id, self._entity_type)) > 0

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """Count entities matching filters."""
        with self._lock:
            if filters and set(filters) - {"status"}:
                return len(self.find_all(filters))
            query = "SELECT COUNT(*) AS count FROM entities WHERE type = ?"
            params: List[Any] = [self._entity_type]
            if filters:
                status = filters["status"]
                query += " AND status = ?"
                params.append(status.value if hasattr(status, "value") else status)
            results = self._database.execute_query(query, tuple(params))
            return results[0]["count"] if results else 0

    def exists(self, entity_id: str) -> bool:
        query = "SELECT 1 FROM entities WHERE id = ? AND type = ?"
        return bool(self._database.execute_query(query, (entity_id, self._entity_type)))

    def _decode(self, raw: str) -> Dict[str, Any]:
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise PersistenceError(f"Corrupt {self._entity_type} record: {str(e)}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Corrupt {self._entity_type} record: expected a JSON object")
        return data

    def _build(self, data: Dict[str, Any]) -> T:
        try:
            return self._entity_from_dict(data)
        except (KeyError, TypeError, ValueError, CampusException) as e:
            raise PersistenceError(f"Corrupt {self._entity_type} record: {str(e)}") from e

    def _load(self, raw: str) -> T:
        return self._build(self._decode(raw))

    @abstractmethod
    def _entity_from_dict(self, data: Dict[str, Any]) -> T:
        """Convert dictionary to entity instance."""
        pass


class EventRepository(BaseRepository[Event]):
    """Repository for Event entities."""

    def __init__(self, database: DatabaseManager):
        super().__init__(database, "event")

    def _entity_from_dict(self, data: Dict[str, Any]) -> Event:
        return Event.from_dict(data)

    def find_by_status(self, status: EventStatus) -> List[Event]:
        return self.find_all({"status": status})

    def find_by_type(self, event_type: EventType) -> List[Event]:
        return self.find_all({"event_type": event_type})

    def find_by_category(self, category: EventCategory) -> List[Event]:
        return self.find_all({"category": category})

    def find_by_date(self, on: date) -> List[Event]:
        return [e for e in self.find_all() if e.event_date == on]


class ExamRepository(BaseRepository[Exam]):
    """Repository for Exam entities."""

    def __init__(self, database: DatabaseManager):
        super().__init__(database, "exam")

    def _entity_from_dict(self, data: Dict[str, Any]) -> Exam:
        return Exam.from_dict(data)

    def find_by_status(self, status: ExamStatus) -> List[Exam]:
        return self.find_all({"status": status})

    def find_by_type(self, exam_type: ExamType) -> List[Exam]:
        return self.find_all({"exam_type": exam_type})

    def find_by_course(self, course_id: str) -> List[Exam]:
        return self.find_all({"course_id": course_id})

    def find_by_student(self, student_id: str) -> List[Exam]:
        return [e for e in self.find_all() if student_id in e.enrolled_students]


class RoomRepository(BaseRepository[Room]):
    """Repository for hostel Room entities."""

    def __init__(self, database: DatabaseManager):
        super().__init__(database, "room")

    def _entity_from_dict(self, data: Dict[str, Any]) -> Room:
        return Room.from_dict(data)

    def find_by_block(self, block_id: str) -> List[Room]:
        return self.find_all({"block_id": block_id})

    def find_by_status(self, status: RoomStatus) -> List[Room]:
        return self.find_all({"status": status})

    def find_by_type(self, room_type: RoomType) -> List[Room]:
        return self.find_all({"room_type": room_type})

    def find_by_occupant(self, student_id: str) -> Optional[Room]:
        return next((r for r in self.find_all() if student_id in r.occupants), None)


class HostelBlockRepository(BaseRepository[HostelBlock]):
    """Repository for HostelBlock entities."""

    def __init__(self, database: DatabaseManager):
        super().__init__(database, "hostel_block")

    def _entity_from_dict(self, data: Dict[str, Any]) -> HostelBlock:
        return HostelBlock.from_dict(data)


class AllocationRepository(BaseRepository[Allocation]):
    """Repository for room Allocation entities."""

    def __init__(self, database: DatabaseManager):
        super().__init__(database, "allocation")

    def _entity_from_dict(self, data: Dict[str, Any]) -> Allocation:
        return Allocation.from_dict(data)

    def find_by_student(self, student_id: str) -> List[Allocation]:
        return self.find_all({"student_id": student_id})

    def find_by_status(self, status: AllocationStatus) -> List[Allocation]:
        return self.find_all({"status": status})

    def find_current_for_student(self, student_id: str) -> Optional[Allocation]:
        """The student's approved or active allocation, if any."""
        current = (AllocationStatus.APPROVED, AllocationStatus.ACTIVE)
        return next((a for a in self.find_by_student(student_id) if a.status in current), None)


class PaymentRepository(BaseRepository[Payment]):
    """Repository for hostel Payment entities."""

    def __init__(self, database: DatabaseManager):
        super().__init__(database, "payment")

    def _entity_from_dict(self, data: Dict[str, Any]) -> Payment:
        return Payment.from_dict(data)

    def find_by_student(self, student_id: str) -> List[Payment]:
        return self.find_all({"student_id": student_id})

    def find_by_status(self, status: PaymentStatus) -> List[Payment]:
        return self.find_all({"status": status})


class VehicleRepository(BaseRepository[Vehicle]):
    """Repository for Vehicle entities; buses and vans share the table."""

    def __init__(self, database: DatabaseManager):
        super().__init__(database, "vehicle")

    def _entity_from_dict(self, data: Dict[str, Any]) -> Vehicle:
        return vehicle_from_dict(data)

    def find_by_type(self, vehicle_type: VehicleType) -> List[Vehicle]:
        return self.find_all({"vehicle_type": vehicle_type})

    def find_by_registration(self, registration_number: str) -> Optional[Vehicle]:
        found = self.find_all({"registration_number": registration_number})
        return found[0] if found else None


class DriverRepository(BaseRepository[Driver]):
    """Repository for Driver entities."""

    def __init__(self, database: DatabaseManager):
        super().__init__(database, "driver")

    def _entity_from_dict(self, data: Dict[str, Any]) -> Driver:
        return Driver.from_dict(data)

    def find_by_vehicle(self, vehicle_id: str) -> Optional[Driver]:
        found = self.find_all({"assigned_vehicle_id": vehicle_id})
        return found[0] if found else None


class RouteRepository(BaseRepository[Route]):
    """Repository for Route entities."""

    def __init__(self, database: DatabaseManager):
        super().__init__(database, "route")

    def _entity_from_dict(self, data: Dict[str, Any]) -> Route:
        return Route.from_dict(data)

    def find_active(self) -> List[Route]:
        return self.find_all({"status": "active"})

    def find_by_stop(self, stop: str) -> List[Route]:
        return [r for r in self.find_all() if stop in r.stops]


class MaintenanceRepository(BaseRepository[MaintenanceRecord]):
    """Repository for vehicle MaintenanceRecord entities."""

    def __init__(self, database: DatabaseManager):
        super().__init__(database, "maintenance")

    def _entity_from_dict(self, data: Dict[str, Any]) -> MaintenanceRecord:
        return MaintenanceRecord.from_dict(data)

    def find_by_vehicle(self, vehicle_id: str) -> List[MaintenanceRecord]:
        return self.find_all({"vehicle_id": vehicle_id})

    def find_by_status(self, status: MaintenanceStatus) -> List[MaintenanceRecord]:
        return self.find_all({"status": status})


class ReportRepository(BaseRepository[Report]):
    """Repository for generated Report entities."""

    def __init__(self, database: DatabaseManager):
        super().__init__(database, "report")

    def _entity_from_dict(self, data: Dict[str, Any]) -> Report:
        return Report.from_dict(data)

    def find_by_type(self, report_type: ReportType) -> List[Report]:
        return self.find_all({"report_type": report_type})
