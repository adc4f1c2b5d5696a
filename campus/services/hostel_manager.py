"""
Hostel management service: rooms, blocks, allocations and payments.
"""

from collections import Counter
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from ..core.enums import AllocationStatus, PaymentStatus, PaymentType, RoomStatus, RoomType
from ..core.exceptions import DuplicateEntityError, InvalidStateError, ResourceNotFoundError
from ..core.hostel import Allocation, HostelBlock, Payment, Room
from ..persistence.repositories import (
    AllocationRepository, HostelBlockRepository, PaymentRepository, RoomRepository,
)
from .base_manager import BaseManager
from .notification_service import NotificationService


class HostelManager(BaseManager[Room]):
    """Manages hostel rooms and the allocations and payments attached to them.

    Rooms are the primary managed entity. Blocks, allocations and payments
    live in their own repositories and are reached through the domain
    operations below.
    """

    entity_label = "Room"

    def __init__(self, room_repository: RoomRepository, block_repository: HostelBlockRepository,
                 allocation_repository: AllocationRepository, payment_repository: PaymentRepository,
                 notification_service: Optional[NotificationService] = None):
        super().__init__(room_repository, notification_service)
        self._blocks = block_repository
        self._allocations = allocation_repository
        self._payments = payment_repository
        self._logger.info("HostelManager initialized")

    # Rooms

    def create(self, room: Room) -> Room:
        with self._lock:
            room = super().create(room)
            block = self._blocks.find_by_id(room.block_id)
            if block is not None:
                block.add_room(room)
                self._blocks.save(block)
            return room

    def delete(self, room_id: str) -> bool:
        with self._lock:
            room = self.get(room_id)
            if room.occupants:
                raise InvalidStateError(f"Room {room_id} still has occupants")
            block = self._blocks.find_by_id(room.block_id)
            if block is not None and block.remove_room(room_id):
                self._blocks.save(block)
            return super().delete(room_id)

    def create_room(self, room_id: str, block_id: str, floor: int, room_type: RoomType,
                    monthly_rent: Optional[float] = None) -> Room:
        room = Room(room_id, block_id, floor, room_type)
        if monthly_rent is not None:
            room.monthly_rent = monthly_rent
        return self.create(room)

    def start_room_maintenance(self, room_id: str, notes: Optional[str] = None) -> Room:
        return self._modify(room_id, lambda r: r.start_maintenance(notes))

    def complete_room_maintenance(self, room_id: str) -> Room:
        return self._modify(room_id, lambda r: r.complete_maintenance())

    # Blocks

    def add_block(self, block: HostelBlock) -> HostelBlock:
        with self._lock:
            if self._blocks.exists(block.id):
                raise DuplicateEntityError(f"Hostel block {block.id} already exists")
            self._blocks.save(block)
        self._logger.info("Added hostel block %s", block.id)
        return block

    def get_block(self, block_id: str) -> Optional[HostelBlock]:
        return self._blocks.find_by_id(block_id)

    def get_all_blocks(self) -> List[HostelBlock]:
        return self._blocks.find_all()

    def get_block_summary(self, block_id: str) -> Dict[str, Any]:
        block = self._require(self._blocks, block_id, "Hostel block")
        return block.summarize(self._repository.find_by_block(block_id))

    # Allocations

    def allocate_room(self, student_id: str, room_id: str, allocation_date: Optional[date] = None,
                      expected_check_out_date: Optional[date] = None,
                      monthly_rent: Optional[float] = None, approved_by: str = "system") -> Allocation:
        """Place a student in a room and record an approved allocation."""
        with self._lock:
            room = self.get(room_id)
            if self._allocations.find_current_for_student(student_id) is not None:
                raise InvalidStateError(f"Student {student_id} already has a room allocation")
            if not room.is_available():
                self._logger.warning("Room %s is not available for %s", room_id, student_id)
                raise InvalidStateError(f"Room {room_id} is not available for allocation")

            allocation = Allocation(self._next_id(self._allocations, "AL"), student_id, room_id, allocation_date)
            allocation.monthly_rent = monthly_rent if monthly_rent is not None else room.rent_per_person
            allocation.expected_check_out_date = expected_check_out_date
            allocation.approve(approved_by)
            room.allocate_to_student(student_id)

            self._repository.save(room)
            self._allocations.save(allocation)
        self._logger.info("Allocated room %s to %s (%s)", room_id, student_id, allocation.id)
        return allocation

    def check_in(self, allocation_id: str, pay_deposit: bool = True, on: Optional[date] = None) -> Allocation:
        with self._lock:
            allocation = self._require(self._allocations, allocation_id, "Allocation")
            if pay_deposit and not allocation.security_deposit_paid:
                allocation.pay_security_deposit()
            allocation.check_in(on)
            self._allocations.save(allocation)
            return allocation

    def deallocate_room(self, student_id: str, on: Optional[date] = None) -> Allocation:
        """Close the student's current allocation and free their bed."""
        with self._lock:
            allocation = self._allocations.find_current_for_student(student_id)
            if allocation is None:
                raise ResourceNotFoundError(f"No current allocation for student {student_id}")
            room = self.get(allocation.room_id)

            if allocation.status == AllocationStatus.ACTIVE:
                allocation.check_out(on)
            else:
                allocation.cancel("Room deallocated before check-in")
            room.deallocate_student(student_id)

            self._repository.save(room)
            self._allocations.save(allocation)
        self._logger.info("Deallocated room %s from %s", room.id, student_id)
        return allocation

    def transfer_student(self, student_id: str, new_room_id: str) -> Allocation:
        """Move a student to another room, keeping their rent terms."""
        with self._lock:
            current = self._allocations.find_current_for_student(student_id)
            if current is None:
                raise ResourceNotFoundError(f"No current allocation for student {student_id}")
            new_room = self.get(new_room_id)
            if not new_room.is_available():
                raise InvalidStateError(f"Room {new_room_id} is not available for transfer")

            was_active = current.status == AllocationStatus.ACTIVE
            deposit_paid = current.security_deposit_paid
            expected = current.expected_check_out_date
            self.deallocate_room(student_id)
            allocation = self.allocate_room(student_id, new_room_id,
                                            expected_check_out_date=expected,
                                            approved_by=current.approved_by or "system")
            allocation.add_note(f"Transferred from room {current.room_id}")
            if deposit_paid:
                allocation.pay_security_deposit()
            if was_active:
                allocation.check_in()
            self._allocations.save(allocation)
        self._logger.info("Transferred %s from %s to %s", student_id, current.room_id, new_room_id)
        return allocation

    def get_allocation(self, allocation_id: str) -> Optional[Allocation]:
        return self._allocations.find_by_id(allocation_id)

    def get_all_allocations(self) -> List[Allocation]:
        return self._allocations.find_all()

    def get_allocations_by_student(self, student_id: str) -> List[Allocation]:
        return self._allocations.find_by_student(student_id)

    def get_allocations_by_status(self, status: AllocationStatus) -> List[Allocation]:
        return self._allocations.find_by_status(status)

    # Payments

    def record_payment(self, student_id: str, amount: float, payment_type: PaymentType,
                       payment_method: str = "cash", received_by: Optional[str] = None,
                       description: Optional[str] = None) -> Payment:
        """Record a payment that has already been received."""
        with self._lock:
            payment = self._new_payment(student_id, amount, payment_type, description)
            payment.process(payment_method, received_by=received_by)
            self._payments.save(payment)
        self._logger.info("Recorded payment %s of %.2f from %s", payment.id, amount, student_id)
        return payment

    def create_pending_payment(self, student_id: str, amount: float, payment_type: PaymentType,
                               description: Optional[str] = None, issued_on: Optional[date] = None) -> Payment:
        with self._lock:
            payment = self._new_payment(student_id, amount, payment_type, description, issued_on)
            self._payments.save(payment)
            return payment

    def process_payment(self, payment_id: str, payment_method: str,
                        transaction_id: Optional[str] = None, received_by: Optional[str] = None) -> Payment:
        with self._lock:
            payment = self._require(self._payments, payment_id, "Payment")
            payment.process(payment_method, transaction_id, received_by)
            self._payments.save(payment)
        self._logger.info("Processed payment %s", payment_id)
        return payment

    def mark_overdue_payments(self, today: Optional[date] = None) -> List[Payment]:
        overdue = []
        with self._lock:
            for payment in self._payments.find_by_status(PaymentStatus.PENDING):
                if payment.mark_overdue(today):
                    self._payments.save(payment)
                    overdue.append(payment)
        if overdue:
            self._logger.warning("%d payments are now overdue", len(overdue))
        return overdue

    def _new_payment(self, student_id: str, amount: float, payment_type: PaymentType,
                     description: Optional[str], issued_on: Optional[date] = None) -> Payment:
        current = self._allocations.find_current_for_student(student_id)
        payment = Payment(self._next_id(self._payments, "PAY"), student_id,
                          current.id if current else None, payment_type, amount, issued_on)
        payment.description = description
        return payment

    def get_payment(self, payment_id: str) -> Optional[Payment]:
        return self._payments.find_by_id(payment_id)

    def get_all_payments(self) -> List[Payment]:
        return self._payments.find_all()

    def get_payments_by_student(self, student_id: str) -> List[Payment]:
        return self._payments.find_by_student(student_id)

    def get_payments_by_status(self, status: PaymentStatus) -> List[Payment]:
        return self._payments.find_by_status(status)

    # Room finders

    def get_available_rooms(self) -> List[Room]:
        return [r for r in self.get_all() if r.is_available()]

    def get_rooms_by_block(self, block_id: str) -> List[Room]:
        return self._repository.find_by_block(block_id)

    def get_rooms_by_floor(self, block_id: str, floor: int) -> List[Room]:
        return [r for r in self.get_rooms_by_block(block_id) if r.floor == floor]

    def get_rooms_by_type(self, room_type: RoomType) -> List[Room]:
        return self._repository.find_by_type(room_type)

    def get_rooms_by_status(self, status: RoomStatus) -> List[Room]:
        return self._repository.find_by_status(status)

    def get_rooms_by_rent_range(self, minimum: float, maximum: float) -> List[Room]:
        return [r for r in self.get_all() if minimum <= r.monthly_rent <= maximum]

    def find_student_room(self, student_id: str) -> Optional[Room]:
        return self._repository.find_by_occupant(student_id)

    # Statistics and reports

    def get_statistics(self) -> Dict[str, Any]:
        rooms = self.get_all()
        allocations = self.get_all_allocations()
        payments = self.get_all_payments()
        occupied = [r for r in rooms if r.status == RoomStatus.OCCUPIED]
        return {
            "total_rooms": len(rooms),
            "available_rooms": sum(1 for r in rooms if r.status == RoomStatus.AVAILABLE),
            "occupied_rooms": len(occupied),
            "maintenance_rooms": sum(1 for r in rooms if r.status == RoomStatus.UNDER_MAINTENANCE),
            "total_capacity": sum(r.capacity for r in rooms),
            "current_occupancy": sum(r.current_occupancy for r in rooms),
            "occupancy_rate": len(occupied) / len(rooms) * 100 if rooms else 0.0,
            "total_allocations": len(allocations),
            "active_allocations": sum(1 for a in allocations if a.status == AllocationStatus.ACTIVE),
            "total_revenue": sum(p.final_amount for p in payments if p.status == PaymentStatus.COMPLETED),
            "current_monthly_revenue": sum(r.monthly_rent for r in occupied),
            "pending_payments": sum(1 for p in payments if p.status == PaymentStatus.PENDING),
            "overdue_payments": sum(1 for p in payments if p.status == PaymentStatus.OVERDUE),
            "rooms_by_status": dict(Counter(r.status.value for r in rooms)),
            "rooms_by_type": dict(Counter(r.room_type.value for r in rooms)),
        }

    def generate_occupancy_report(self) -> Dict[str, Any]:
        rooms = self.get_all()
        by_type: Dict[str, Dict[str, int]] = {}
        for room in rooms:
            entry = by_type.setdefault(room.room_type.value, {"rooms": 0, "occupants": 0, "capacity": 0})
            entry["rooms"] += 1
            entry["occupants"] += room.current_occupancy
            entry["capacity"] += room.capacity
        return {
            "blocks": [block.summarize(rooms) for block in self.get_all_blocks()],
            "by_type": by_type,
            "available_rooms": [r.id for r in rooms if r.is_available()],
        }

    def generate_financial_report(self) -> Dict[str, Any]:
        payments = self.get_all_payments()
        completed = [p for p in payments if p.status == PaymentStatus.COMPLETED]
        outstanding = [p for p in payments if p.status in (PaymentStatus.PENDING, PaymentStatus.OVERDUE)]
        by_type: Dict[str, float] = {}
        for payment in completed:
            by_type[payment.payment_type.value] = by_type.get(payment.payment_type.value, 0.0) + payment.final_amount
        return {
            "total_collected": sum(p.final_amount for p in completed),
            "total_outstanding": sum(p.final_amount for p in outstanding),
            "late_fees": sum(p.late_fee for p in payments),
            "discounts": sum(p.discount for p in payments),
            "collected_by_type": by_type,
            "payments_completed": len(completed),
            "payments_outstanding": len(outstanding),
        }

    def get_alerts(self, today: Optional[date] = None) -> List[str]:
        today = today or date.today()
        alerts = []
        for payment in self.get_all_payments():
            if payment.status == PaymentStatus.OVERDUE or payment.is_overdue(today):
                alerts.append(f"Overdue payment: {payment.id} from {payment.student_id} "
                              f"({payment.final_amount:.2f} due {payment.due_date.isoformat()})")
        for room in self.get_rooms_by_status(RoomStatus.UNDER_MAINTENANCE):
            alerts.append(f"Room under maintenance: {room.id}")
        for allocation in self.get_allocations_by_status(AllocationStatus.ACTIVE):
            if allocation.is_overstaying(today):
                alerts.append(f"Overstaying student: {allocation.student_id} in room {allocation.room_id}")
        return alerts

    def load_sample_data(self, today: Optional[date] = None) -> None:
        today = today or date.today()
        if self._blocks.exists("BLK-A"):
            return

        block_a = HostelBlock("BLK-A", "Block A", "Main Campus Block A", total_floors=4, rooms_per_floor=20)
        block_b = HostelBlock("BLK-B", "Block B", "Main Campus Block B", total_floors=3, rooms_per_floor=15)

        rooms = []
        for floor in range(1, 5):
            for number in range(1, 21):
                room = Room(f"A{floor}{number:02d}", "BLK-A", floor, RoomType.DOUBLE)
                room.monthly_rent = 800.0
                block_a.add_room(room)
                rooms.append(room)
        for floor in range(1, 4):
            for number in range(1, 16):
                room = Room(f"B{floor}{number:02d}", "BLK-B", floor, RoomType.SINGLE)
                room.monthly_rent = 1200.0
                block_b.add_room(room)
                rooms.append(room)

        self._blocks.save(block_a)
        self._blocks.save(block_b)
        for room in rooms:
            self._repository.save(room)

        first = self.allocate_room("S001", "A101", today - timedelta(days=60), monthly_rent=800.0)
        self.check_in(first.id, on=today - timedelta(days=60))
        second = self.allocate_room("S002", "B201", today - timedelta(days=30), monthly_rent=1200.0)
        self.check_in(second.id, on=today - timedelta(days=30))

        self.record_payment("S001", 800.0, PaymentType.MONTHLY_RENT, description="Monthly rent for A101")
        self.record_payment("S002", 1200.0, PaymentType.MONTHLY_RENT, description="Monthly rent for B201")
        self._logger.info("Loaded sample hostel data")
