"""
Unit tests for hostel management.

Tests:
- Room creation and block membership
- Allocation, check-in, deallocation and transfer
- Payments and overdue handling
- Statistics and alerts over the sample data
"""

from datetime import date, timedelta

import pytest

from campus.core.enums import AllocationStatus, PaymentStatus, PaymentType, RoomStatus, RoomType
from campus.core.exceptions import (
    DuplicateEntityError, InvalidStateError, ResourceNotFoundError, ValidationError,
)
from campus.core.hostel import Allocation, HostelBlock, Payment, Room

TODAY = date.today()


@pytest.fixture
def block_c(hostel_manager):
    hostel_manager.add_block(HostelBlock("BLK-C", "Block C", "East wing", total_floors=2, rooms_per_floor=4))
    hostel_manager.create_room("C101", "BLK-C", 1, RoomType.SINGLE)
    hostel_manager.create_room("C102", "BLK-C", 1, RoomType.DOUBLE, monthly_rent=900.0)
    return hostel_manager.get_block("BLK-C")


class TestRooms:
    """Tests for rooms and blocks."""

    def test_room_type_defaults(self, hostel_manager):
        room = hostel_manager.create_room("X001", "BLK-X", 0, RoomType.TRIPLE)

        assert room.capacity == 3
        assert room.monthly_rent == RoomType.TRIPLE.base_rent
        assert room.status == RoomStatus.AVAILABLE

    def test_rooms_join_their_block(self, block_c):
        assert block_c.room_ids == ["C101", "C102"]

    def test_duplicate_room_rejected(self, hostel_manager, block_c):
        with pytest.raises(DuplicateEntityError):
            hostel_manager.create_room("C101", "BLK-C", 1, RoomType.SINGLE)

    def test_duplicate_block_rejected(self, hostel_manager, block_c):
        with pytest.raises(DuplicateEntityError):
            hostel_manager.add_block(HostelBlock("BLK-C", "Again"))

    def test_negative_floor_rejected(self, hostel_manager):
        with pytest.raises(ValidationError):
            hostel_manager.create_room("Z001", "BLK-Z", -1, RoomType.SINGLE)

    def test_block_summary(self, hostel_manager, block_c):
        hostel_manager.allocate_room("S001", "C102")

        summary = hostel_manager.get_block_summary("BLK-C")

        assert summary["total_rooms"] == 2
        assert summary["total_capacity"] == 3
        assert summary["current_occupancy"] == 1
        assert summary["available_capacity"] == 2

    def test_unknown_block_summary(self, hostel_manager):
        with pytest.raises(ResourceNotFoundError):
            hostel_manager.get_block_summary("BLK-404")

    def test_maintenance_takes_room_out_of_service(self, hostel_manager, block_c):
        room = hostel_manager.start_room_maintenance("C101", "Broken window")

        assert room.status == RoomStatus.UNDER_MAINTENANCE
        assert [r.id for r in hostel_manager.get_available_rooms()] == ["C102"]

        assert hostel_manager.complete_room_maintenance("C101").status == RoomStatus.AVAILABLE

    def test_emptied_room_leaves_maintenance(self, hostel_manager, block_c):
        hostel_manager.allocate_room("S001", "C101")
        hostel_manager.start_room_maintenance("C101", "Leaking tap")

        hostel_manager.deallocate_room("S001")

        room = hostel_manager.get("C101")
        assert room.occupants == []
        assert room.status == RoomStatus.AVAILABLE
        assert "C101" in [r.id for r in hostel_manager.get_available_rooms()]

    def test_partly_occupied_room_stays_under_maintenance(self):
        room = Room("D201", "BLK-D", 2, RoomType.DOUBLE)
        room.allocate_to_student("S001")
        room.allocate_to_student("S002")
        room.start_maintenance("Repainting")

        room.deallocate_student("S001")

        assert room.status == RoomStatus.UNDER_MAINTENANCE
        assert room.occupants == ["S002"]

    def test_full_room_frees_a_bed(self):
        room = Room("D202", "BLK-D", 2, RoomType.DOUBLE)
        room.allocate_to_student("S001")
        room.allocate_to_student("S002")
        assert room.status == RoomStatus.OCCUPIED

        room.deallocate_student("S002")

        assert room.status == RoomStatus.AVAILABLE
        assert room.is_available() is True

    def test_cannot_delete_occupied_room(self, hostel_manager, block_c):
        hostel_manager.allocate_room("S001", "C101")

        with pytest.raises(InvalidStateError):
            hostel_manager.delete("C101")

    def test_delete_room_leaves_block(self, hostel_manager, block_c):
        assert hostel_manager.delete("C101") is True
        assert hostel_manager.get_block("BLK-C").room_ids == ["C102"]


class TestAllocations:
    """Tests for the allocation lifecycle."""

    def test_allocate_room(self, hostel_manager, block_c):
        allocation = hostel_manager.allocate_room("S001", "C102")

        assert allocation.id == "AL001"
        assert allocation.status == AllocationStatus.APPROVED
        assert allocation.monthly_rent == 450.0
        assert hostel_manager.get("C102").occupants == ["S001"]
        assert hostel_manager.find_student_room("S001").id == "C102"

    def test_room_fills_up(self, hostel_manager, block_c):
        hostel_manager.allocate_room("S001", "C101")

        assert hostel_manager.get("C101").status == RoomStatus.OCCUPIED
        with pytest.raises(InvalidStateError):
            hostel_manager.allocate_room("S002", "C101")

    def test_one_allocation_per_student(self, hostel_manager, block_c):
        hostel_manager.allocate_room("S001", "C101")

        with pytest.raises(InvalidStateError):
            hostel_manager.allocate_room("S001", "C102")

    def test_unknown_room(self, hostel_manager):
        with pytest.raises(ResourceNotFoundError):
            hostel_manager.allocate_room("S001", "NOPE")

    def test_check_in_pays_deposit(self, hostel_manager, block_c):
        allocation = hostel_manager.allocate_room("S001", "C101")

        checked_in = hostel_manager.check_in(allocation.id, on=TODAY)

        assert checked_in.status == AllocationStatus.ACTIVE
        assert checked_in.security_deposit_paid is True
        assert checked_in.check_in_date == TODAY

    def test_check_in_requires_deposit(self, hostel_manager, block_c):
        allocation = hostel_manager.allocate_room("S001", "C101")

        with pytest.raises(InvalidStateError):
            hostel_manager.check_in(allocation.id, pay_deposit=False)

    def test_deallocate_active_allocation(self, hostel_manager, block_c):
        allocation = hostel_manager.allocate_room("S001", "C101")
        hostel_manager.check_in(allocation.id)

        closed = hostel_manager.deallocate_room("S001", on=TODAY)

        assert closed.status == AllocationStatus.COMPLETED
        assert closed.check_out_date == TODAY
        assert hostel_manager.get("C101").status == RoomStatus.AVAILABLE

    def test_deallocate_before_check_in_cancels(self, hostel_manager, block_c):
        hostel_manager.allocate_room("S001", "C101")

        closed = hostel_manager.deallocate_room("S001")

        assert closed.status == AllocationStatus.CANCELLED
        assert hostel_manager.get("C101").occupants == []

    def test_deallocate_without_allocation(self, hostel_manager):
        with pytest.raises(ResourceNotFoundError):
            hostel_manager.deallocate_room("S404")

    def test_transfer_keeps_active_stay(self, hostel_manager, block_c):
        first = hostel_manager.allocate_room("S001", "C101")
        hostel_manager.check_in(first.id)

        moved = hostel_manager.transfer_student("S001", "C102")

        assert moved.room_id == "C102"
        assert moved.status == AllocationStatus.ACTIVE
        assert moved.security_deposit_paid is True
        assert "Transferred from room C101" in moved.notes
        assert hostel_manager.get("C101").occupants == []
        assert hostel_manager.get_allocation(first.id).status == AllocationStatus.COMPLETED

    def test_transfer_to_full_room(self, hostel_manager, block_c):
        hostel_manager.allocate_room("S001", "C101")
        hostel_manager.allocate_room("S002", "C102")

        with pytest.raises(InvalidStateError):
            hostel_manager.transfer_student("S002", "C101")


class TestPayments:
    """Tests for payments."""

    def test_record_payment(self, hostel_manager, block_c):
        allocation = hostel_manager.allocate_room("S001", "C101")

        payment = hostel_manager.record_payment("S001", 800.0, PaymentType.MONTHLY_RENT, "card")

        assert payment.id == "PAY001"
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.receipt_number == "RCPPAY001"
        assert payment.allocation_id == allocation.id

    def test_amount_must_be_positive(self):
        with pytest.raises(ValidationError):
            Payment("PAY100", "S001", None, PaymentType.OTHER, 0)

    def test_overdue_then_processed(self, hostel_manager):
        pending = hostel_manager.create_pending_payment("S001", 120.0, PaymentType.MAINTENANCE_FEE,
                                                        issued_on=TODAY - timedelta(days=30))

        overdue = hostel_manager.mark_overdue_payments(TODAY)
        assert [p.id for p in overdue] == [pending.id]
        assert hostel_manager.get_payment(pending.id).status == PaymentStatus.OVERDUE

        processed = hostel_manager.process_payment(pending.id, "bank_transfer", "TX-1")
        assert processed.status == PaymentStatus.COMPLETED
        assert processed.transaction_id == "TX-1"

    def test_completed_payment_cannot_be_processed_again(self, hostel_manager):
        payment = hostel_manager.record_payment("S001", 50.0, PaymentType.CLEANING_FEE)

        with pytest.raises(InvalidStateError):
            hostel_manager.process_payment(payment.id, "cash")

    def test_financial_report(self, hostel_manager):
        hostel_manager.record_payment("S001", 300.0, PaymentType.MONTHLY_RENT)
        hostel_manager.create_pending_payment("S002", 75.0, PaymentType.UTILITY_BILL)

        report = hostel_manager.generate_financial_report()

        assert report["total_collected"] == 300.0
        assert report["total_outstanding"] == 75.0
        assert report["collected_by_type"] == {"monthly_rent": 300.0}


class TestPaymentEntity:
    """Tests for charges, discounts and settlement on a single payment."""

    @pytest.mark.parametrize("payment_type, days", [
        (PaymentType.MONTHLY_RENT, 30),
        (PaymentType.SECURITY_DEPOSIT, 7),
        (PaymentType.MAINTENANCE_FEE, 15),
        (PaymentType.LATE_FEE, 3),
        (PaymentType.UTILITY_BILL, 15),
    ])
    def test_due_date_depends_on_type(self, payment_type, days):
        payment = Payment("PAY100", "S001", None, payment_type, 100.0, issued_on=date(2024, 3, 1))

        assert payment.due_date == date(2024, 3, 1) + timedelta(days=days)
        assert payment.status == PaymentStatus.PENDING

    def test_late_fees_accumulate(self):
        payment = Payment("PAY100", "S001", None, PaymentType.MONTHLY_RENT, 800.0)

        payment.add_late_fee(25.0)
        payment.add_late_fee(15.0)

        assert payment.late_fee == 40.0
        assert payment.final_amount == 840.0

    def test_late_fee_must_be_positive(self):
        payment = Payment("PAY100", "S001", None, PaymentType.MONTHLY_RENT, 800.0)

        with pytest.raises(ValidationError):
            payment.add_late_fee(0)

    def test_discount_reduces_final_amount(self):
        payment = Payment("PAY100", "S001", None, PaymentType.MONTHLY_RENT, 800.0)
        payment.add_late_fee(50.0)

        payment.apply_discount(100.0, "Scholarship")

        assert payment.discount == 100.0
        assert payment.final_amount == 750.0
        assert payment.notes == "Discount applied: Scholarship"

    @pytest.mark.parametrize("amount", [-1.0, 800.01])
    def test_discount_out_of_range(self, amount):
        payment = Payment("PAY100", "S001", None, PaymentType.MONTHLY_RENT, 800.0)

        with pytest.raises(ValidationError):
            payment.apply_discount(amount, "Too generous")

        assert payment.discount == 0.0

    def test_cancel_pending_payment(self):
        payment = Payment("PAY100", "S001", None, PaymentType.CLEANING_FEE, 40.0)

        payment.cancel("Charged twice")

        assert payment.status == PaymentStatus.CANCELLED
        assert payment.notes == "Cancelled: Charged twice"

    def test_cannot_cancel_completed_payment(self):
        payment = Payment("PAY100", "S001", None, PaymentType.CLEANING_FEE, 40.0)
        payment.process("cash")

        with pytest.raises(InvalidStateError):
            payment.cancel("Too late")

    def test_refund_completed_payment(self):
        payment = Payment("PAY100", "S001", None, PaymentType.SECURITY_DEPOSIT, 500.0)
        payment.process("card", "TX-9")

        payment.refund("Left before move-in")

        assert payment.status == PaymentStatus.REFUNDED
        assert payment.notes == "Refunded: Left before move-in"

    def test_only_completed_payments_refund(self):
        payment = Payment("PAY100", "S001", None, PaymentType.SECURITY_DEPOSIT, 500.0)

        with pytest.raises(InvalidStateError):
            payment.refund("Nothing paid yet")

    def test_extending_due_date_clears_overdue(self):
        payment = Payment("PAY100", "S001", None, PaymentType.LATE_FEE, 30.0, issued_on=date(2024, 3, 1))
        assert payment.mark_overdue(date(2024, 3, 10)) is True
        assert payment.status == PaymentStatus.OVERDUE

        payment.extend_due_date(date(2024, 3, 31), "Hardship")

        assert payment.status == PaymentStatus.PENDING
        assert payment.due_date == date(2024, 3, 31)
        assert payment.is_overdue(date(2024, 3, 10)) is False
        assert payment.notes == "Due date extended: Hardship"


class TestAllocationEntity:
    """Tests for allocation transitions outside the manager happy path."""

    def _active(self, expected_check_out=None):
        allocation = Allocation("AL100", "S001", "C101", allocation_date=date(2024, 1, 10))
        allocation.approve("warden")
        allocation.pay_security_deposit()
        allocation.check_in(date(2024, 1, 15))
        allocation.expected_check_out_date = expected_check_out
        return allocation

    def test_reject_pending_allocation(self):
        allocation = Allocation("AL100", "S001", "C101")

        allocation.reject("Block reserved for first years")

        assert allocation.status == AllocationStatus.REJECTED
        assert allocation.notes == "Rejected: Block reserved for first years"

    def test_cannot_reject_approved_allocation(self):
        allocation = Allocation("AL100", "S001", "C101")
        allocation.approve("warden")

        with pytest.raises(InvalidStateError):
            allocation.reject("Changed mind")

    def test_extend_stay(self):
        allocation = self._active(expected_check_out=date(2024, 6, 30))

        allocation.extend_stay(date(2024, 8, 31), "Summer research")

        assert allocation.expected_check_out_date == date(2024, 8, 31)
        assert allocation.notes == "Extended until 2024-08-31: Summer research"

    def test_extend_stay_must_move_forward(self):
        allocation = self._active(expected_check_out=date(2024, 6, 30))

        with pytest.raises(ValidationError):
            allocation.extend_stay(date(2024, 6, 30), "Same day")

    def test_extend_stay_requires_active_allocation(self):
        allocation = Allocation("AL100", "S001", "C101")

        with pytest.raises(InvalidStateError):
            allocation.extend_stay(date(2024, 8, 31), "Not moved in")

    def test_refund_deposit_after_check_out(self):
        allocation = self._active()
        allocation.check_out(date(2024, 6, 30))

        allocation.refund_security_deposit()

        assert allocation.security_deposit_refunded is True

    def test_refund_deposit_requires_check_out(self):
        allocation = self._active()

        with pytest.raises(InvalidStateError):
            allocation.refund_security_deposit()

        assert allocation.security_deposit_refunded is False


class TestHostelSampleData:
    """Tests over the sample hostel data."""

    def test_statistics(self, seeded, hostel_manager):
        stats = hostel_manager.get_statistics()

        assert stats["total_rooms"] == 125
        assert stats["occupied_rooms"] == 1
        assert stats["total_capacity"] == 205
        assert stats["current_occupancy"] == 2
        assert stats["active_allocations"] == 2
        assert stats["total_revenue"] == 2000.0
        assert stats["current_monthly_revenue"] == 1200.0
        assert stats["rooms_by_type"] == {"double": 80, "single": 45}

    def test_rooms_by_block_and_floor(self, seeded, hostel_manager):
        assert len(hostel_manager.get_rooms_by_block("BLK-B")) == 45
        assert len(hostel_manager.get_rooms_by_floor("BLK-A", 2)) == 20

    def test_sample_data_loaded_once(self, seeded, hostel_manager):
        hostel_manager.load_sample_data(TODAY)

        assert hostel_manager.count() == 125
        assert len(hostel_manager.get_all_allocations()) == 2

    def test_shared_double_room(self, seeded, hostel_manager):
        allocation = hostel_manager.allocate_room("S003", "A101")

        assert allocation.monthly_rent == 400.0
        assert hostel_manager.get("A101").status == RoomStatus.OCCUPIED

    def test_alerts(self, seeded, hostel_manager):
        hostel_manager.start_room_maintenance("B305")
        hostel_manager.create_pending_payment("S001", 60.0, PaymentType.LATE_FEE,
                                              issued_on=TODAY - timedelta(days=10))

        alerts = hostel_manager.get_alerts(TODAY)

        assert any(a.startswith("Overdue payment: PAY003 from S001") for a in alerts)
        assert "Room under maintenance: B305" in alerts
