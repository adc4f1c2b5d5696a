"""
Event management service.
"""

from collections import Counter
from datetime import date, time, timedelta
from typing import Any, Dict, List, Optional

from ..core.enums import EventCategory, EventStatus, EventType
from ..core.events import Event
from ..persistence.repositories import EventRepository
from .base_manager import BaseManager
from .notification_service import NotificationService

ALERT_WINDOW_DAYS = 7
NEAR_CAPACITY_RATE = 90.0


class EventManager(BaseManager[Event]):
    """Creates, schedules and reports on campus events."""

    entity_label = "Event"
    id_prefix = "EV"

    def __init__(self, repository: EventRepository,
                 notification_service: Optional[NotificationService] = None):
        super().__init__(repository, notification_service)
        self._logger.info("EventManager initialized")

    def create_event(self, name: str, event_type: EventType, category: EventCategory,
                     description: Optional[str] = None, organizer_id: Optional[str] = None,
                     organizer_name: Optional[str] = None, max_capacity: Optional[int] = None,
                     registration_fee: Optional[float] = None,
                     requires_registration: Optional[bool] = None,
                     is_public: Optional[bool] = None) -> Event:
        with self._lock:
            event = Event(self._next_id(), name, event_type, category)
            event.description = description
            if organizer_id or organizer_name:
                event.set_organizer(organizer_id, organizer_name)
            if max_capacity is not None:
                event.max_capacity = max_capacity
            if registration_fee is not None:
                event.registration_fee = registration_fee
            if requires_registration is not None:
                event.requires_registration = requires_registration
            if is_public is not None:
                event.is_public = is_public
            return self.create(event)

    # Finders

    def get_upcoming_events(self, today: Optional[date] = None) -> List[Event]:
        upcoming = [e for e in self.get_all() if e.is_upcoming(today)]
        return sorted(upcoming, key=lambda e: (e.event_date, e.start_time or time.min))

    def get_todays_events(self, today: Optional[date] = None) -> List[Event]:
        return [e for e in self.get_all() if e.is_today(today)]

    def get_events_by_status(self, status: EventStatus) -> List[Event]:
        return self._repository.find_by_status(status)

    def get_events_by_type(self, event_type: EventType) -> List[Event]:
        return self._repository.find_by_type(event_type)

    def get_events_by_category(self, category: EventCategory) -> List[Event]:
        return self._repository.find_by_category(category)

    def get_events_by_organizer(self, organizer_id: str) -> List[Event]:
        return self._repository.find_all({"organizer_id": organizer_id})

    def get_events_by_venue(self, venue: str) -> List[Event]:
        return [e for e in self.get_all() if e.venue and e.venue.lower() == venue.lower()]

    def search_by_name(self, text: str) -> List[Event]:
        needle = text.lower()
        return [e for e in self.get_all() if needle in e.name.lower()]

    def search_by_organizer(self, text: str) -> List[Event]:
        needle = text.lower()
        return [e for e in self.get_all() if e.organizer_name and needle in e.organizer_name.lower()]

    def advanced_search(self, name: Optional[str] = None, is_public: Optional[bool] = None,
                        requires_registration: Optional[bool] = None,
                        max_fee: Optional[float] = None) -> List[Event]:
        """Events matching every criterion that is given."""
        results = []
        for event in self.get_all():
            if name and name.lower() not in event.name.lower():
                continue
            if is_public is not None and event.is_public != is_public:
                continue
            if requires_registration is not None and event.requires_registration != requires_registration:
                continue
            if max_fee is not None and event.registration_fee > max_fee:
                continue
            results.append(event)
        return results

    # Lifecycle

    def schedule_event(self, event_id: str, event_date: date, start_time: time,
                       end_time: time, venue: str) -> Event:
        event = self._modify(event_id, lambda e: e.schedule(event_date, start_time, end_time, venue))
        self._logger.info("Scheduled event %s on %s at %s", event_id, event_date, venue)
        return event

    def start_event(self, event_id: str) -> Event:
        return self._modify(event_id, lambda e: e.start())

    def complete_event(self, event_id: str) -> Event:
        return self._modify(event_id, lambda e: e.complete())

    def cancel_event(self, event_id: str, reason: str) -> Event:
        event = self._modify(event_id, lambda e: e.cancel(reason))
        self._logger.info("Cancelled event %s: %s", event_id, reason)
        return event

    def postpone_event(self, event_id: str, new_date: date, new_start: time,
                       new_end: time, reason: str) -> Event:
        return self._modify(event_id, lambda e: e.postpone(new_date, new_start, new_end, reason))

    def register_participant(self, event_id: str, participant_id: str) -> bool:
        with self._lock:
            event = self.get(event_id)
            registered = event.register_participant(participant_id)
            if registered:
                self._repository.save(event)
            else:
                self._logger.warning("Registration of %s for event %s rejected", participant_id, event_id)
            return registered

    def unregister_participant(self, event_id: str, participant_id: str) -> bool:
        with self._lock:
            event = self.get(event_id)
            removed = event.unregister_participant(participant_id)
            if removed:
                self._repository.save(event)
            return removed

    def mark_attendance(self, event_id: str, participant_id: str) -> bool:
        with self._lock:
            event = self.get(event_id)
            marked = event.mark_attendance(participant_id)
            if marked:
                self._repository.save(event)
            return marked

    # Statistics and reports

    def get_statistics(self) -> Dict[str, Any]:
        events = self.get_all()
        by_status = Counter(e.status.value for e in events)
        return {
            "total_events": len(events),
            "planned_events": by_status.get(EventStatus.PLANNED.value, 0),
            "scheduled_events": by_status.get(EventStatus.SCHEDULED.value, 0),
            "in_progress_events": by_status.get(EventStatus.IN_PROGRESS.value, 0),
            "completed_events": by_status.get(EventStatus.COMPLETED.value, 0),
            "cancelled_events": by_status.get(EventStatus.CANCELLED.value, 0),
            "postponed_events": by_status.get(EventStatus.POSTPONED.value, 0),
            "total_registrations": sum(len(e.registered_participants) for e in events),
            "total_attendees": sum(e.current_attendees for e in events),
            "type_distribution": dict(Counter(e.event_type.value for e in events)),
        }

    def generate_attendance_analysis(self) -> Dict[str, Any]:
        completed = self.get_events_by_status(EventStatus.COMPLETED)
        if not completed:
            return {"completed_events": 0, "average_attendance_rate": 0.0,
                    "average_capacity_utilization": 0.0, "events": []}
        return {
            "completed_events": len(completed),
            "average_attendance_rate": sum(e.attendance_rate for e in completed) / len(completed),
            "average_capacity_utilization": sum(e.capacity_utilization for e in completed) / len(completed),
            "events": [
                {
                    "event_id": e.id,
                    "name": e.name,
                    "registered": len(e.registered_participants),
                    "attended": e.current_attendees,
                    "attendance_rate": e.attendance_rate,
                    "capacity_utilization": e.capacity_utilization,
                }
                for e in completed
            ],
        }

    def generate_registration_statistics(self) -> Dict[str, Any]:
        events = [e for e in self.get_all() if e.requires_registration]
        total_capacity = sum(e.max_capacity for e in events)
        total_registrations = sum(len(e.registered_participants) for e in events)
        return {
            "registration_events": len(events),
            "total_capacity": total_capacity,
            "total_registrations": total_registrations,
            "overall_registration_rate": total_registrations / total_capacity * 100 if total_capacity else 0.0,
            "expected_revenue": sum(e.expected_revenue for e in events),
            "full_events": [e.id for e in events if e.is_full()],
        }

    def generate_category_report(self) -> Dict[str, Dict[str, int]]:
        report: Dict[str, Dict[str, int]] = {}
        for event in self.get_all():
            entry = report.setdefault(event.category.value,
                                      {"events": 0, "registrations": 0, "attendees": 0})
            entry["events"] += 1
            entry["registrations"] += len(event.registered_participants)
            entry["attendees"] += event.current_attendees
        return report

    def generate_monthly_schedule(self, days: int = 30, today: Optional[date] = None) -> Dict[str, List[Dict[str, Any]]]:
        """Upcoming events within ``days``, grouped by ISO date."""
        today = today or date.today()
        horizon = today + timedelta(days=days)
        schedule: Dict[str, List[Dict[str, Any]]] = {}
        for event in self.get_upcoming_events(today):
            if event.event_date > horizon:
                continue
            schedule.setdefault(event.event_date.isoformat(), []).append({
                "event_id": event.id,
                "name": event.name,
                "start_time": event.start_time.isoformat() if event.start_time else None,
                "end_time": event.end_time.isoformat() if event.end_time else None,
                "venue": event.venue,
            })
        return schedule

    def get_alerts(self, today: Optional[date] = None) -> List[str]:
        today = today or date.today()
        horizon = today + timedelta(days=ALERT_WINDOW_DAYS)
        alerts = []
        for event in self.get_all():
            if event.is_upcoming(today) and event.event_date <= horizon:
                alerts.append(f"Upcoming event: {event.name} on {event.event_date.isoformat()}")
            if event.is_today(today):
                alerts.append(f"Event today: {event.name} at {event.venue}")
            if (event.requires_registration and event.status == EventStatus.SCHEDULED
                    and event.registration_rate >= NEAR_CAPACITY_RATE):
                alerts.append(f"Event nearly full: {event.name} ({event.registration_rate:.0f}% registered)")
            if event.is_overdue(today):
                alerts.append(f"Overdue event: {event.name} was scheduled for {event.event_date.isoformat()}")
        return alerts

    def load_sample_data(self, today: Optional[date] = None) -> None:
        today = today or date.today()

        tech = Event("EV001", "Annual Tech Conference", EventType.CONFERENCE, EventCategory.TECHNICAL)
        tech.description = "Annual technology conference featuring AI and machine learning"
        tech.schedule(today + timedelta(days=30), time(9, 0), time(17, 0), "Main Auditorium")
        tech.set_organizer("T001", "Dr. Smith")
        tech.add_speaker("Prof. Johnson - AI Expert")
        tech.add_speaker("Dr. Williams - ML Researcher")
        tech.add_sponsor("TechCorp Inc.")
        tech.set_contact("techconf@campus.edu", "+1-555-0123")
        tech.registration_fee = 75.0
        for participant in ("S001", "S002", "S003", "F001", "F002"):
            tech.register_participant(participant)

        cultural = Event("EV002", "International Cultural Night", EventType.CULTURAL, EventCategory.CULTURAL)
        cultural.description = "Performances from around the world"
        cultural.schedule(today + timedelta(days=15), time(18, 0), time(22, 0), "Campus Plaza")
        cultural.set_organizer("S001", "Student Council")
        for tag in ("Multicultural", "Performance", "Food"):
            cultural.add_tag(tag)

        sports = Event("EV003", "Annual Sports Day", EventType.SPORTS, EventCategory.SPORTS)
        sports.description = "Inter-department sports competition"
        sports.schedule(today + timedelta(days=45), time(8, 0), time(18, 0), "Sports Complex")
        sports.set_organizer("SP001", "Sports Department")
        sports.requires_registration = True
        sports.registration_fee = 10.0
        sports.add_sponsor("SportsCorp")

        workshop = Event("EV004", "Web Development Workshop", EventType.WORKSHOP, EventCategory.TECHNICAL)
        workshop.description = "Hands-on workshop on modern web development"
        workshop.schedule(today + timedelta(days=10), time(14, 0), time(17, 0), "Computer Lab 1")
        workshop.set_organizer("T002", "Prof. Davis")
        workshop.add_speaker("John Doe - Full Stack Developer")
        workshop.max_capacity = 30
        workshop.set_contact("webdev@campus.edu")
        for participant in ("S004", "S005", "S006"):
            workshop.register_participant(participant)

        graduation = Event("EV005", "Graduation Ceremony", EventType.GRADUATION, EventCategory.ACADEMIC)
        graduation.description = "Annual graduation ceremony"
        graduation.schedule(today + timedelta(days=60), time(10, 0), time(12, 0), "Main Stadium")
        graduation.set_organizer("ADMIN001", "Academic Office")
        graduation.is_public = False
        graduation.requires_registration = True
        graduation.max_capacity = 2000
        graduation.add_speaker("Chancellor Dr. Brown")

        orientation = Event("EV006", "Orientation Session", EventType.ORIENTATION, EventCategory.ACADEMIC)
        orientation.description = "New student orientation session"
        orientation.schedule(today - timedelta(days=7), time(9, 0), time(12, 0), "Lecture Hall A")
        orientation.set_organizer("ADMIN002", "Student Affairs")
        for participant in ("S001", "S002", "S003", "S004", "S005"):
            orientation.register_participant(participant)
        orientation.start()
        for participant in ("S001", "S002", "S003", "S004"):
            orientation.mark_attendance(participant)
        orientation.complete()

        for event in (tech, cultural, sports, workshop, graduation, orientation):
            if not self._repository.exists(event.id):
                self._repository.save(event)
        self._logger.info("Loaded sample events")
