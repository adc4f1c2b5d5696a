"""
Hostel entities: rooms, blocks, allocations and payments.
"""

from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from .abstract_entity import AbstractEntity, to_iso, parse_date, parse_datetime
from .enums import AllocationStatus, PaymentStatus, PaymentType, RoomStatus, RoomType
from .exceptions import InvalidStateError, ValidationError


DEFAULT_AMENITIES = ["Bed", "Study Table", "Chair", "Wardrobe", "Fan"]
DEFAULT_SECURITY_DEPOSIT = 500.0

_DUE_DAYS = {
    PaymentType.MONTHLY_RENT: 30,
    PaymentType.SECURITY_DEPOSIT: 7,
    PaymentType.MAINTENANCE_FEE: 15,
    PaymentType.LATE_FEE: 3,
}


class Room(AbstractEntity):
    """A hostel room that holds up to ``capacity`` students."""

    def __init__(self, room_id: str, block_id: str, floor: int, room_type: RoomType,
                 room_number: Optional[str] = None):
        super().__init__(room_id)
        if floor < 0:
            raise ValidationError("Floor cannot be negative")
        self._room_number = room_number or room_id
        self._block_id = block_id
        self._floor = floor
        self._room_type = room_type
        self._capacity = room_type.capacity
        self._monthly_rent = room_type.base_rent
        self._status = RoomStatus.AVAILABLE
        self._occupants: List[str] = []
        self._amenities: List[str] = list(DEFAULT_AMENITIES)
        self._has_attached_bathroom = True
        self._has_balcony = False
        self._facing = "North"
        self._maintenance_notes: Optional[str] = None
        self._last_maintenance: Optional[datetime] = None

    @property
    def room_number(self) -> str:
        return self._room_number

    @property
    def block_id(self) -> str:
        return self._block_id

    @property
    def floor(self) -> int:
        return self._floor

    @property
    def room_type(self) -> RoomType:
        return self._room_type

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def status(self) -> RoomStatus:
        return self._status

    @property
    def monthly_rent(self) -> float:
        return self._monthly_rent

    @monthly_rent.setter
    def monthly_rent(self, value: float) -> None:
        if value < 0:
            raise ValidationError("Monthly rent cannot be negative")
        self._monthly_rent = value
        self.touch()

    @property
    def occupants(self) -> List[str]:
        return list(self._occupants)

    @property
    def current_occupancy(self) -> int:
        return len(self._occupants)

    @property
    def amenities(self) -> List[str]:
        return list(self._amenities)

    @property
    def has_attached_bathroom(self) -> bool:
        return self._has_attached_bathroom

    @property
    def has_balcony(self) -> bool:
        return self._has_balcony

    @property
    def facing(self) -> str:
        return self._facing

    @property
    def maintenance_notes(self) -> Optional[str]:
        return self._maintenance_notes

    @property
    def last_maintenance(self) -> Optional[datetime]:
        return self._last_maintenance

    def set_features(self, has_attached_bathroom: Optional[bool] = None,
                     has_balcony: Optional[bool] = None, facing: Optional[str] = None) -> None:
        if has_attached_bathroom is not None:
            self._has_attached_bathroom = has_attached_bathroom
        if has_balcony is not None:
            self._has_balcony = has_balcony
        if facing is not None:
            self._facing = facing
        self.touch()

    def is_available(self) -> bool:
        return self._status == RoomStatus.AVAILABLE and len(self._occupants) < self._capacity

    def is_full(self) -> bool:
        return len(self._occupants) >= self._capacity

    def allocate_to_student(self, student_id: str) -> None:
        if not self.is_available():
            raise InvalidStateError(f"Room {self.id} is not available for allocation")
        if student_id in self._occupants:
            raise ValidationError(f"Student {student_id} is already allocated to room {self.id}")

        self._occupants.append(student_id)
        if self.is_full():
            self._status = RoomStatus.OCCUPIED
        self.touch()

    def deallocate_student(self, student_id: str) -> None:
        if student_id not in self._occupants:
            raise ValidationError(f"Student {student_id} is not allocated to room {self.id}")

        self._occupants.remove(student_id)
        if not self._occupants or self._status == RoomStatus.OCCUPIED:
            self._status = RoomStatus.AVAILABLE
        self.touch()

    def start_maintenance(self, notes: Optional[str] = None) -> None:
        self._status = RoomStatus.UNDER_MAINTENANCE
        self._maintenance_notes = notes
        self._last_maintenance = datetime.now()
        self.touch()

    def complete_maintenance(self) -> None:
        if self._status != RoomStatus.UNDER_MAINTENANCE:
            raise InvalidStateError(f"Room {self.id} is not under maintenance")
        self._status = RoomStatus.OCCUPIED if self.is_full() else RoomStatus.AVAILABLE
        self.touch()

    def set_status(self, status: RoomStatus) -> None:
        self._status = status
        self.touch()

    def add_amenity(self, amenity: str) -> None:
        if amenity not in self._amenities:
            self._amenities.append(amenity)
            self.touch()

    def remove_amenity(self, amenity: str) -> None:
        if amenity in self._amenities:
            self._amenities.remove(amenity)
            self.touch()

    @property
    def rent_per_person(self) -> float:
        return self._monthly_rent / self._capacity

    @property
    def actual_rent_per_person(self) -> float:
        occupancy = len(self._occupants)
        return self._monthly_rent / occupancy if occupancy else self._monthly_rent

    @property
    def available_spaces(self) -> int:
        return self._capacity - len(self._occupants)

    @property
    def occupancy_rate(self) -> float:
        return len(self._occupants) / self._capacity * 100

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data.update({
            "room_number": self._room_number,
            "block_id": self._block_id,
            "floor": self._floor,
            "room_type": self._room_type.value,
            "capacity": self._capacity,
            "monthly_rent": self._monthly_rent,
            "status": self._status.value,
            "occupants": list(self._occupants),
            "amenities": list(self._amenities),
            "has_attached_bathroom": self._has_attached_bathroom,
            "has_balcony": self._has_balcony,
            "facing": self._facing,
            "maintenance_notes": self._maintenance_notes,
            "last_maintenance": to_iso(self._last_maintenance),
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Room":
        room = cls(data["id"], data["block_id"], data["floor"], RoomType(data["room_type"]), data.get("room_number"))
        room._capacity = data.get("capacity", room._capacity)
        room._monthly_rent = data.get("monthly_rent", room._monthly_rent)
        room._status = RoomStatus(data["status"])
        room._occupants = list(data.get("occupants", []))
        room._amenities = list(data.get("amenities", DEFAULT_AMENITIES))
        room._has_attached_bathroom = data.get("has_attached_bathroom", True)
        room._has_balcony = data.get("has_balcony", False)
        room._facing = data.get("facing", "North")
        room._maintenance_notes = data.get("maintenance_notes")
        room._last_maintenance = parse_datetime(data.get("last_maintenance"))
        room._restore_base(data)
        return room


class HostelBlock(AbstractEntity):
    """A hostel building grouping rooms by floor."""

    def __init__(self, block_id: str, name: str, description: Optional[str] = None,
                 total_floors: int = 1, rooms_per_floor: int = 0):
        super().__init__(block_id)
        self._name = name
        self._description = description
        self._total_floors = total_floors
        self._rooms_per_floor = rooms_per_floor
        self._warden_id: Optional[str] = None
        self._facilities: List[str] = []
        self._room_ids: List[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> Optional[str]:
        return self._description

    @property
    def total_floors(self) -> int:
        return self._total_floors

    @property
    def rooms_per_floor(self) -> int:
        return self._rooms_per_floor

    @property
    def warden_id(self) -> Optional[str]:
        return self._warden_id

    @property
    def facilities(self) -> List[str]:
        return list(self._facilities)

    @property
    def room_ids(self) -> List[str]:
        return list(self._room_ids)

    @property
    def status(self) -> str:
        return "active"

    def assign_warden(self, warden_id: str) -> None:
        self._warden_id = warden_id
        self.touch()

    def add_facility(self, facility: str) -> None:
        if facility not in self._facilities:
            self._facilities.append(facility)
            self.touch()

    def add_room(self, room: Room) -> None:
        if room.block_id != self.id:
            raise ValidationError(f"Room {room.id} does not belong to block {self.id}")
        if room.id not in self._room_ids:
            self._room_ids.append(room.id)
            self.touch()

    def remove_room(self, room_id: str) -> bool:
        if room_id not in self._room_ids:
            return False
        self._room_ids.remove(room_id)
        self.touch()
        return True

    def summarize(self, rooms: Iterable[Room]) -> Dict[str, Any]:
        """Occupancy figures for this block computed from ``rooms``."""
        own = [room for room in rooms if room.id in self._room_ids]
        total_capacity = sum(room.capacity for room in own)
        occupied = sum(room.current_occupancy for room in own)
        return {
            "block_id": self.id,
            "name": self._name,
            "total_rooms": len(own),
            "total_capacity": total_capacity,
            "current_occupancy": occupied,
            "available_capacity": total_capacity - occupied,
            "occupancy_rate": occupied / total_capacity * 100 if total_capacity else 0.0,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data.update({
            "name": self._name,
            "description": self._description,
            "total_floors": self._total_floors,
            "rooms_per_floor": self._rooms_per_floor,
            "warden_id": self._warden_id,
            "facilities": list(self._facilities),
            "room_ids": list(self._room_ids),
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HostelBlock":
        block = cls(data["id"], data["name"], data.get("description"),
                    data.get("total_floors", 1), data.get("rooms_per_floor", 0))
        block._warden_id = data.get("warden_id")
        block._facilities = list(data.get("facilities", []))
        block._room_ids = list(data.get("room_ids", []))
        block._restore_base(data)
        return block


class Allocation(AbstractEntity):
    """A student's stay in a room, from request through check-out."""

    def __init__(self, allocation_id: str, student_id: str, room_id: str,
                 allocation_date: Optional[date] = None):
        super().__init__(allocation_id)
        self._student_id = student_id
        self._room_id = room_id
        self._allocation_date = allocation_date or date.today()
        self._status = AllocationStatus.PENDING
        self._check_in_date: Optional[date] = None
        self._check_out_date: Optional[date] = None
        self._expected_check_out_date: Optional[date] = None
        self._monthly_rent = 0.0
        self._security_deposit = DEFAULT_SECURITY_DEPOSIT
        self._security_deposit_paid = False
        self._security_deposit_refunded = False
        self._approved_by: Optional[str] = None
        self._notes: Optional[str] = None

    @property
    def student_id(self) -> str:
        return self._student_id

    @property
    def room_id(self) -> str:
        return self._room_id

    @property
    def allocation_date(self) -> date:
        return self._allocation_date

    @property
    def status(self) -> AllocationStatus:
        return self._status

    @property
    def check_in_date(self) -> Optional[date]:
        return self._check_in_date

    @property
    def check_out_date(self) -> Optional[date]:
        return self._check_out_date

    @property
    def expected_check_out_date(self) -> Optional[date]:
        return self._expected_check_out_date

    @expected_check_out_date.setter
    def expected_check_out_date(self, value: Optional[date]) -> None:
        self._expected_check_out_date = value
        self.touch()

    @property
    def monthly_rent(self) -> float:
        return self._monthly_rent

    @monthly_rent.setter
    def monthly_rent(self, value: float) -> None:
        if value < 0:
            raise ValidationError("Monthly rent cannot be negative")
        self._monthly_rent = value
        self.touch()

    @property
    def security_deposit(self) -> float:
        return self._security_deposit

    @property
    def security_deposit_paid(self) -> bool:
        return self._security_deposit_paid

    @property
    def security_deposit_refunded(self) -> bool:
        return self._security_deposit_refunded

    @property
    def approved_by(self) -> Optional[str]:
        return self._approved_by

    @property
    def notes(self) -> Optional[str]:
        return self._notes

    def add_note(self, note: str) -> None:
        self._notes = f"{self._notes}; {note}" if self._notes else note
        self.touch()

    def approve(self, approved_by: str) -> None:
        if self._status != AllocationStatus.PENDING:
            raise InvalidStateError("Only pending allocations can be approved")
        self._status = AllocationStatus.APPROVED
        self._approved_by = approved_by
        self.touch()

    def reject(self, reason: str) -> None:
        if self._status != AllocationStatus.PENDING:
            raise InvalidStateError("Only pending allocations can be rejected")
        self._status = AllocationStatus.REJECTED
        self.add_note(f"Rejected: {reason}")

    def pay_security_deposit(self) -> None:
        self._security_deposit_paid = True
        self.touch()

    def check_in(self, on: Optional[date] = None) -> None:
        if self._status != AllocationStatus.APPROVED:
            raise InvalidStateError("Student must have approved allocation to check in")
        if not self._security_deposit_paid:
            raise InvalidStateError("Security deposit must be paid before check-in")
        self._check_in_date = on or date.today()
        self._status = AllocationStatus.ACTIVE
        self.touch()

    def check_out(self, on: Optional[date] = None) -> None:
        if self._status != AllocationStatus.ACTIVE:
            raise InvalidStateError("Only active allocations can be checked out")
        self._check_out_date = on or date.today()
        self._status = AllocationStatus.COMPLETED
        self.touch()

    def cancel(self, reason: str) -> None:
        if self._status == AllocationStatus.COMPLETED:
            raise InvalidStateError("Cannot cancel completed allocation")
        self._status = AllocationStatus.CANCELLED
        self.add_note(f"Cancelled: {reason}")

    def refund_security_deposit(self) -> None:
        if self._status != AllocationStatus.COMPLETED:
            raise InvalidStateError("Security deposit can only be refunded after check-out")
        if not self._security_deposit_paid:
            raise InvalidStateError("Security deposit was never paid")
        self._security_deposit_refunded = True
        self.touch()

    def extend_stay(self, new_check_out_date: date, reason: str) -> None:
        if self._status != AllocationStatus.ACTIVE:
            raise InvalidStateError("Can only extend active allocations")
        if self._expected_check_out_date and new_check_out_date <= self._expected_check_out_date:
            raise ValidationError("New check-out date must be after the current one")
        self._expected_check_out_date = new_check_out_date
        self.add_note(f"Extended until {new_check_out_date.isoformat()}: {reason}")

    def is_active(self) -> bool:
        return self._status == AllocationStatus.ACTIVE

    def is_overstaying(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return (self._expected_check_out_date is not None and today > self._expected_check_out_date
                and self._status == AllocationStatus.ACTIVE)

    def days_stayed(self, today: Optional[date] = None) -> int:
        if self._check_in_date is None:
            return 0
        end = self._check_out_date or today or date.today()
        return (end - self._check_in_date).days

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data.update({
            "student_id": self._student_id,
            "room_id": self._room_id,
            "allocation_date": to_iso(self._allocation_date),
            "status": self._status.value,
            "check_in_date": to_iso(self._check_in_date),
            "check_out_date": to_iso(self._check_out_date),
            "expected_check_out_date": to_iso(self._expected_check_out_date),
            "monthly_rent": self._monthly_rent,
            "security_deposit": self._security_deposit,
            "security_deposit_paid": self._security_deposit_paid,
            "security_deposit_refunded": self._security_deposit_refunded,
            "approved_by": self._approved_by,
            "notes": self._notes,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Allocation":
        allocation = cls(data["id"], data["student_id"], data["room_id"], parse_date(data.get("allocation_date")))
        allocation._status = AllocationStatus(data["status"])
        allocation._check_in_date = parse_date(data.get("check_in_date"))
        allocation._check_out_date = parse_date(data.get("check_out_date"))
        allocation._expected_check_out_date = parse_date(data.get("expected_check_out_date"))
        allocation._monthly_rent = data.get("monthly_rent", 0.0)
        allocation._security_deposit = data.get("security_deposit", DEFAULT_SECURITY_DEPOSIT)
        allocation._security_deposit_paid = data.get("security_deposit_paid", False)
        allocation._security_deposit_refunded = data.get("security_deposit_refunded", False)
        allocation._approved_by = data.get("approved_by")
        allocation._notes = data.get("notes")
        allocation._restore_base(data)
        return allocation


class Payment(AbstractEntity):
    """A hostel charge and its settlement."""

    def __init__(self, payment_id: str, student_id: str, allocation_id: Optional[str],
                 payment_type: PaymentType, amount: float, issued_on: Optional[date] = None):
        super().__init__(payment_id)
        if amount <= 0:
            raise ValidationError("Payment amount must be positive")
        self._student_id = student_id
        self._allocation_id = allocation_id
        self._payment_type = payment_type
        self._amount = amount
        self._status = PaymentStatus.PENDING
        self._due_date = (issued_on or date.today()) + timedelta(days=_DUE_DAYS.get(payment_type, 15))
        self._payment_date: Optional[date] = None
        self._payment_method: Optional[str] = None
        self._transaction_id: Optional[str] = None
        self._received_by: Optional[str] = None
        self._receipt_number: Optional[str] = None
        self._late_fee = 0.0
        self._discount = 0.0
        self._description: Optional[str] = None
        self._notes: Optional[str] = None

    @property
    def student_id(self) -> str:
        return self._student_id

    @property
    def allocation_id(self) -> Optional[str]:
        return self._allocation_id

    @property
    def payment_type(self) -> PaymentType:
        return self._payment_type

    @property
    def amount(self) -> float:
        return self._amount

    @property
    def status(self) -> PaymentStatus:
        return self._status

    @property
    def due_date(self) -> date:
        return self._due_date

    @property
    def payment_date(self) -> Optional[date]:
        return self._payment_date

    @property
    def payment_method(self) -> Optional[str]:
        return self._payment_method

    @property
    def transaction_id(self) -> Optional[str]:
        return self._transaction_id

    @property
    def received_by(self) -> Optional[str]:
        return self._received_by

    @property
    def receipt_number(self) -> Optional[str]:
        return self._receipt_number

    @property
    def late_fee(self) -> float:
        return self._late_fee

    @property
    def discount(self) -> float:
        return self._discount

    @property
    def final_amount(self) -> float:
        return self._amount + self._late_fee - self._discount

    @property
    def description(self) -> Optional[str]:
        return self._description

    @description.setter
    def description(self, value: Optional[str]) -> None:
        self._description = value
        self.touch()

    @property
    def notes(self) -> Optional[str]:
        return self._notes

    def add_note(self, note: str) -> None:
        self._notes = f"{self._notes}; {note}" if self._notes else note
        self.touch()

    def process(self, payment_method: str, transaction_id: Optional[str] = None,
                received_by: Optional[str] = None) -> None:
        if self._status not in (PaymentStatus.PENDING, PaymentStatus.OVERDUE):
            raise InvalidStateError("Only pending or overdue payments can be processed")
        self._payment_method = payment_method
        self._transaction_id = transaction_id
        self._received_by = received_by
        self._payment_date = date.today()
        self._receipt_number = f"RCP{self.id}"
        self._status = PaymentStatus.COMPLETED
        self.touch()

    def add_late_fee(self, amount: float) -> None:
        if amount <= 0:
            raise ValidationError("Late fee must be positive")
        self._late_fee += amount
        self.touch()

    def apply_discount(self, amount: float, reason: str) -> None:
        if amount < 0 or amount > self._amount + self._late_fee:
            raise ValidationError("Discount must be between 0 and the amount due")
        self._discount = amount
        self.add_note(f"Discount applied: {reason}")

    def cancel(self, reason: str) -> None:
        if self._status == PaymentStatus.COMPLETED:
            raise InvalidStateError("Cannot cancel completed payment")
        self._status = PaymentStatus.CANCELLED
        self.add_note(f"Cancelled: {reason}")

    def refund(self, reason: str) -> None:
        if self._status != PaymentStatus.COMPLETED:
            raise InvalidStateError("Only completed payments can be refunded")
        self._status = PaymentStatus.REFUNDED
        self.add_note(f"Refunded: {reason}")

    def is_overdue(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self._status == PaymentStatus.PENDING and today > self._due_date

    def days_overdue(self, today: Optional[date] = None) -> int:
        today = today or date.today()
        return (today - self._due_date).days if self.is_overdue(today) else 0

    def mark_overdue(self, today: Optional[date] = None) -> bool:
        if not self.is_overdue(today):
            return False
        self._status = PaymentStatus.OVERDUE
        self.touch()
        return True

    def extend_due_date(self, new_due_date: date, reason: str) -> None:
        self._due_date = new_due_date
        if self._status == PaymentStatus.OVERDUE:
            self._status = PaymentStatus.PENDING
        self.add_note(f"Due date extended: {reason}")

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data.update({
            "student_id": self._student_id,
            "allocation_id": self._allocation_id,
            "payment_type": self._payment_type.value,
            "amount": self._amount,
            "status": self._status.value,
            "due_date": to_iso(self._due_date),
            "payment_date": to_iso(self._payment_date),
            "payment_method": self._payment_method,
            "transaction_id": self._transaction_id,
            "received_by": self._received_by,
            "receipt_number": self._receipt_number,
            "late_fee": self._late_fee,
            "discount": self._discount,
            "final_amount": self.final_amount,
            "description": self._description,
            "notes": self._notes,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Payment":
        payment = cls(data["id"], data["student_id"], data.get("allocation_id"),
                      PaymentType(data["payment_type"]), data["amount"])
        payment._status = PaymentStatus(data["status"])
        payment._due_date = parse_date(data.get("due_date")) or payment._due_date
        payment._payment_date = parse_date(data.get("payment_date"))
        payment._payment_method = data.get("payment_method")
        payment._transaction_id = data.get("transaction_id")
        payment._received_by = data.get("received_by")
        payment._receipt_number = data.get("receipt_number")
        payment._late_fee = data.get("late_fee", 0.0)
        payment._discount = data.get("discount", 0.0)
        payment._description = data.get("description")
        payment._notes = data.get("notes")
        payment._restore_base(data)
        return payment
