"""
Unit tests for event management.

Tests:
- Event creation and type defaults
- Scheduling lifecycle
- Registration capacity and attendance
- Queries, statistics and alerts over the sample data
"""

from datetime import date, time, timedelta

import pytest

from campus.core.enums import EventCategory, EventStatus, EventType, NotificationType
from campus.core.events import Event
from campus.core.exceptions import (
    DuplicateEntityError, InvalidStateError, ResourceNotFoundError, ValidationError,
)

TODAY = date.today()


def _scheduled_workshop(event_manager, capacity=50, days_ahead=10):
    event = event_manager.create_event("Python Workshop", EventType.WORKSHOP, EventCategory.TECHNICAL,
                                       max_capacity=capacity)
    return event_manager.schedule_event(event.id, TODAY + timedelta(days=days_ahead),
                                        time(14, 0), time(17, 0), "Lab 2")


class TestEventCreation:
    """Tests for creating events."""

    def test_ids_are_sequential(self, event_manager):
        """Event ids follow the EV prefix with a three digit counter."""
        first = event_manager.create_event("Career Fair", EventType.FAIR, EventCategory.PROFESSIONAL)
        second = event_manager.create_event("Book Club", EventType.MEETING, EventCategory.SOCIAL)

        assert first.id == "EV001"
        assert second.id == "EV002"
        assert event_manager.count() == 2

    def test_type_defaults_applied(self, event_manager):
        """Conference events default to registration with a fee."""
        event = event_manager.create_event("AI Summit", EventType.CONFERENCE, EventCategory.TECHNICAL)

        assert event.max_capacity == 200
        assert event.requires_registration is True
        assert event.registration_fee == 50.0
        assert event.status == EventStatus.PLANNED

    def test_explicit_values_override_defaults(self, event_manager):
        """Arguments given to create_event win over the type defaults."""
        event = event_manager.create_event("Git Basics", EventType.WORKSHOP, EventCategory.TECHNICAL,
                                           max_capacity=10, registration_fee=0.0, is_public=False)

        assert event.max_capacity == 10
        assert event.registration_fee == 0.0
        assert event.is_public is False

    def test_blank_name_rejected(self, event_manager):
        """An event needs a non-blank name."""
        with pytest.raises(ValidationError):
            event_manager.create_event("   ", EventType.SEMINAR, EventCategory.ACADEMIC)

    def test_duplicate_id_rejected(self, event_manager):
        """Creating an entity whose id is taken raises DuplicateEntityError."""
        event_manager.create_event("Open Day", EventType.FAIR, EventCategory.COMMUNITY)

        with pytest.raises(DuplicateEntityError):
            event_manager.create(Event("EV001", "Another", EventType.FAIR, EventCategory.COMMUNITY))

    def test_invalid_contact_email_rejected(self):
        """Contact details are validated."""
        event = Event("EV100", "Alumni Meetup", EventType.NETWORKING, EventCategory.SOCIAL)

        with pytest.raises(ValidationError):
            event.set_contact(email="not-an-email")


class TestEventLifecycle:
    """Tests for moving events through their statuses."""

    def test_full_lifecycle(self, event_manager):
        """planned -> scheduled -> in_progress -> completed."""
        event = _scheduled_workshop(event_manager)
        assert event.status == EventStatus.SCHEDULED
        assert event.venue == "Lab 2"

        assert event_manager.start_event(event.id).status == EventStatus.IN_PROGRESS
        assert event_manager.complete_event(event.id).status == EventStatus.COMPLETED
        assert event_manager.get(event.id).status == EventStatus.COMPLETED

    def test_schedule_requires_start_before_end(self, event_manager):
        event = event_manager.create_event("Late Talk", EventType.LECTURE, EventCategory.ACADEMIC)

        with pytest.raises(ValidationError):
            event_manager.schedule_event(event.id, TODAY, time(17, 0), time(9, 0), "Hall")

    def test_start_requires_scheduled_event(self, event_manager):
        event = event_manager.create_event("Unplanned", EventType.LECTURE, EventCategory.ACADEMIC)

        with pytest.raises(InvalidStateError):
            event_manager.start_event(event.id)

    def test_cannot_cancel_completed_event(self, event_manager):
        event = _scheduled_workshop(event_manager)
        event_manager.start_event(event.id)
        event_manager.complete_event(event.id)

        with pytest.raises(InvalidStateError):
            event_manager.cancel_event(event.id, "Too late")

    def test_cancel_records_reason(self, event_manager):
        event = _scheduled_workshop(event_manager)

        cancelled = event_manager.cancel_event(event.id, "Speaker unavailable")

        assert cancelled.status == EventStatus.CANCELLED
        assert "Speaker unavailable" in cancelled.notes

    def test_postpone_moves_date_and_records_reason(self, event_manager):
        event = _scheduled_workshop(event_manager)
        new_date = TODAY + timedelta(days=20)

        postponed = event_manager.postpone_event(event.id, new_date, time(9, 0), time(11, 0), "Venue flooded")

        assert postponed.status == EventStatus.POSTPONED
        assert postponed.event_date == new_date
        assert postponed.start_time == time(9, 0)
        assert postponed.end_time == time(11, 0)
        assert "Postponed: Venue flooded" in postponed.notes
        assert event_manager.get(event.id).status == EventStatus.POSTPONED

    def test_postpone_requires_start_before_end(self, event_manager):
        event = _scheduled_workshop(event_manager)

        with pytest.raises(ValidationError):
            event_manager.postpone_event(event.id, TODAY, time(11, 0), time(9, 0), "Clash")

        assert event_manager.get(event.id).status == EventStatus.SCHEDULED

    def test_cannot_postpone_cancelled_event(self, event_manager):
        event = _scheduled_workshop(event_manager)
        event_manager.cancel_event(event.id, "Speaker unavailable")

        with pytest.raises(InvalidStateError):
            event_manager.postpone_event(event.id, TODAY, time(9, 0), time(11, 0), "Retry")

    def test_cannot_postpone_completed_event(self, event_manager):
        event = _scheduled_workshop(event_manager)
        event_manager.start_event(event.id)
        event_manager.complete_event(event.id)

        with pytest.raises(InvalidStateError):
            event_manager.postpone_event(event.id, TODAY, time(9, 0), time(11, 0), "Retry")

    def test_unknown_event(self, event_manager):
        """read returns None while get and delete raise."""
        assert event_manager.read("EV999") is None
        with pytest.raises(ResourceNotFoundError):
            event_manager.get("EV999")
        with pytest.raises(ResourceNotFoundError):
            event_manager.delete("EV999")

    def test_delete_event(self, event_manager):
        event = event_manager.create_event("Temporary", EventType.MEETING, EventCategory.ADMINISTRATIVE)

        assert event_manager.delete(event.id) is True
        assert event_manager.read(event.id) is None


class TestRegistration:
    """Tests for participant registration and attendance."""

    def test_capacity_limit(self, event_manager):
        """Registration returns False once the event is full."""
        event = _scheduled_workshop(event_manager, capacity=2)

        assert event_manager.register_participant(event.id, "S001") is True
        assert event_manager.register_participant(event.id, "S002") is True
        assert event_manager.register_participant(event.id, "S003") is False
        assert event_manager.get(event.id).registered_participants == ["S001", "S002"]

    def test_duplicate_registration(self, event_manager):
        event = _scheduled_workshop(event_manager)

        assert event_manager.register_participant(event.id, "S001") is True
        assert event_manager.register_participant(event.id, "S001") is False

    def test_registration_not_required(self, event_manager):
        """Open events reject registration outright."""
        event = event_manager.create_event("Night Market", EventType.CULTURAL, EventCategory.CULTURAL)

        with pytest.raises(InvalidStateError):
            event_manager.register_participant(event.id, "S001")

    def test_unregister(self, event_manager):
        event = _scheduled_workshop(event_manager)
        event_manager.register_participant(event.id, "S001")

        assert event_manager.unregister_participant(event.id, "S001") is True
        assert event_manager.unregister_participant(event.id, "S001") is False

    def test_attendance_requires_started_event(self, event_manager):
        event = _scheduled_workshop(event_manager)

        with pytest.raises(InvalidStateError):
            event_manager.mark_attendance(event.id, "S001")

    def test_attendance(self, event_manager):
        event = _scheduled_workshop(event_manager)
        event_manager.register_participant(event.id, "S001")
        event_manager.register_participant(event.id, "S002")
        event_manager.start_event(event.id)

        assert event_manager.mark_attendance(event.id, "S001") is True
        assert event_manager.mark_attendance(event.id, "S001") is False

        stored = event_manager.get(event.id)
        assert stored.attendees == ["S001"]
        assert stored.attendance_rate == 50.0


class TestEventQueries:
    """Tests for finders, statistics and alerts over the sample data."""

    def test_sample_data_loaded_once(self, event_manager):
        event_manager.load_sample_data(TODAY)
        event_manager.load_sample_data(TODAY)

        assert event_manager.count() == 6

    def test_upcoming_events_sorted_by_date(self, seeded, event_manager):
        upcoming = event_manager.get_upcoming_events(TODAY)

        assert [e.id for e in upcoming] == ["EV004", "EV002", "EV001", "EV003", "EV005"]

    def test_filters(self, seeded, event_manager):
        assert [e.id for e in event_manager.get_events_by_type(EventType.WORKSHOP)] == ["EV004"]
        assert [e.id for e in event_manager.get_events_by_status(EventStatus.COMPLETED)] == ["EV006"]
        assert [e.id for e in event_manager.get_events_by_organizer("T001")] == ["EV001"]
        assert [e.id for e in event_manager.search_by_name("tech")] == ["EV001"]

    def test_advanced_search(self, seeded, event_manager):
        results = event_manager.advanced_search(is_public=False)

        assert [e.id for e in results] == ["EV005"]

    def test_statistics(self, seeded, event_manager):
        stats = event_manager.get_statistics()

        assert stats["total_events"] == 6
        assert stats["scheduled_events"] == 5
        assert stats["completed_events"] == 1
        assert stats["total_registrations"] == 13
        assert stats["total_attendees"] == 4

    def test_attendance_analysis(self, seeded, event_manager):
        analysis = event_manager.generate_attendance_analysis()

        assert analysis["completed_events"] == 1
        assert analysis["average_attendance_rate"] == 80.0

    def test_monthly_schedule_window(self, seeded, event_manager):
        schedule = event_manager.generate_monthly_schedule(days=20, today=TODAY)

        assert set(schedule) == {(TODAY + timedelta(days=10)).isoformat(),
                                 (TODAY + timedelta(days=15)).isoformat()}

    def test_alerts_for_events_within_a_week(self, event_manager):
        _scheduled_workshop(event_manager, days_ahead=3)

        alerts = event_manager.get_alerts(TODAY)

        assert len(alerts) == 1
        assert alerts[0].startswith("Upcoming event: Python Workshop")

    def test_publish_alerts(self, event_manager, notifications):
        _scheduled_workshop(event_manager, days_ahead=2)

        assert event_manager.publish_alerts(TODAY) == 1

        published = notifications.get_notifications()
        assert len(published) == 1
        assert published[0].notification_type == NotificationType.ALERT
        assert published[0].source == "EventManager"
