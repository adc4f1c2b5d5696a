"""
Campus event entity.
"""

from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from .abstract_entity import AbstractEntity, to_iso, parse_date, parse_time
from .enums import EventCategory, EventStatus, EventType
from .exceptions import InvalidStateError, ValidationError
from .validation import is_valid_email, is_valid_phone


_TYPE_DEFAULTS: Dict[EventType, Dict[str, Any]] = {
    EventType.CONFERENCE: {"max_capacity": 200, "requires_registration": True, "registration_fee": 50.0},
    EventType.WORKSHOP: {"max_capacity": 50, "requires_registration": True, "registration_fee": 25.0},
    EventType.SEMINAR: {"max_capacity": 100, "requires_registration": True},
    EventType.CULTURAL: {"max_capacity": 500, "is_public": True},
    EventType.SPORTS: {"max_capacity": 1000, "is_public": True},
    EventType.MEETING: {"max_capacity": 20, "is_public": False},
    EventType.ORIENTATION: {"max_capacity": 300, "requires_registration": True},
}

_CATEGORY_TAGS: Dict[EventCategory, List[str]] = {
    EventCategory.ACADEMIC: ["Academic", "Educational"],
    EventCategory.CULTURAL: ["Cultural", "Entertainment"],
    EventCategory.SPORTS: ["Sports", "Competition"],
    EventCategory.SOCIAL: ["Social", "Networking"],
    EventCategory.PROFESSIONAL: ["Professional", "Career"],
}


class Event(AbstractEntity):
    """A campus event with a scheduling lifecycle and participant tracking.

    Status moves planned -> scheduled -> in_progress -> completed. Events can
    be cancelled at any point before completion and postponed while still
    open. Capacity and fee defaults depend on the event type.
    """

    def __init__(self, event_id: str, name: str, event_type: EventType, category: EventCategory):
        super().__init__(event_id)
        if not name or not name.strip():
            raise ValidationError("Event name cannot be empty")
        self._name = name
        self._description: Optional[str] = None
        self._event_type = event_type
        self._category = category
        self._event_date: Optional[date] = None
        self._start_time: Optional[time] = None
        self._end_time: Optional[time] = None
        self._venue: Optional[str] = None
        self._organizer_id: Optional[str] = None
        self._organizer_name: Optional[str] = None
        self._status = EventStatus.PLANNED
        self._is_public = True
        self._requires_registration = False
        self._registration_fee = 0.0
        self._max_capacity = 100
        self._registered_participants: List[str] = []
        self._attendees: List[str] = []
        self._speakers: List[str] = []
        self._sponsors: List[str] = []
        self._tags: List[str] = []
        self._additional_info: Dict[str, str] = {}
        self._contact_email: Optional[str] = None
        self._contact_phone: Optional[str] = None
        self._notes: Optional[str] = None

        self._apply_defaults()

    def _apply_defaults(self) -> None:
        defaults = _TYPE_DEFAULTS.get(self._event_type, {})
        self._max_capacity = defaults.get("max_capacity", self._max_capacity)
        self._requires_registration = defaults.get("requires_registration", self._requires_registration)
        self._registration_fee = defaults.get("registration_fee", self._registration_fee)
        self._is_public = defaults.get("is_public", self._is_public)
        self._tags.extend(_CATEGORY_TAGS.get(self._category, []))

    # Properties

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        if not value or not value.strip():
            raise ValidationError("Event name cannot be empty")
        self._name = value
        self.touch()

    @property
    def description(self) -> Optional[str]:
        return self._description

    @description.setter
    def description(self, value: Optional[str]) -> None:
        self._description = value
        self.touch()

    @property
    def event_type(self) -> EventType:
        return self._event_type

    @property
    def category(self) -> EventCategory:
        return self._category

    @property
    def status(self) -> EventStatus:
        return self._status

    @property
    def event_date(self) -> Optional[date]:
        return self._event_date

    @property
    def start_time(self) -> Optional[time]:
        return self._start_time

    @property
    def end_time(self) -> Optional[time]:
        return self._end_time

    @property
    def venue(self) -> Optional[str]:
        return self._venue

    @venue.setter
    def venue(self, value: Optional[str]) -> None:
        self._venue = value
        self.touch()

    @property
    def organizer_id(self) -> Optional[str]:
        return self._organizer_id

    @property
    def organizer_name(self) -> Optional[str]:
        return self._organizer_name

    def set_organizer(self, organizer_id: str, organizer_name: str) -> None:
        self._organizer_id = organizer_id
        self._organizer_name = organizer_name
        self.touch()

    @property
    def max_capacity(self) -> int:
        return self._max_capacity

    @max_capacity.setter
    def max_capacity(self, value: int) -> None:
        if value <= 0:
            raise ValidationError("Max capacity must be positive")
        self._max_capacity = value
        self.touch()

    @property
    def registration_fee(self) -> float:
        return self._registration_fee

    @registration_fee.setter
    def registration_fee(self, value: float) -> None:
        if value < 0:
            raise ValidationError("Registration fee cannot be negative")
        self._registration_fee = value
        self.touch()

    @property
    def requires_registration(self) -> bool:
        return self._requires_registration

    @requires_registration.setter
    def requires_registration(self, value: bool) -> None:
        self._requires_registration = value
        self.touch()

    @property
    def is_public(self) -> bool:
        return self._is_public

    @is_public.setter
    def is_public(self, value: bool) -> None:
        self._is_public = value
        self.touch()

    @property
    def contact_email(self) -> Optional[str]:
        return self._contact_email

    @property
    def contact_phone(self) -> Optional[str]:
        return self._contact_phone

    def set_contact(self, email: Optional[str] = None, phone: Optional[str] = None) -> None:
        if email is not None and not is_valid_email(email):
            raise ValidationError(f"Invalid contact email: {email}")
        if phone is not None and not is_valid_phone(phone):
            raise ValidationError(f"Invalid contact phone: {phone}")
        self._contact_email = email
        self._contact_phone = phone
        self.touch()

    @property
    def registered_participants(self) -> List[str]:
        return list(self._registered_participants)

    @property
    def attendees(self) -> List[str]:
        return list(self._attendees)

    @property
    def current_attendees(self) -> int:
        return len(self._attendees)

    @property
    def speakers(self) -> List[str]:
        return list(self._speakers)

    @property
    def sponsors(self) -> List[str]:
        return list(self._sponsors)

    @property
    def tags(self) -> List[str]:
        return list(self._tags)

    @property
    def additional_info(self) -> Dict[str, str]:
        return dict(self._additional_info)

    @property
    def notes(self) -> Optional[str]:
        return self._notes

    # Lifecycle

    def schedule(self, event_date: date, start_time: time, end_time: time, venue: str) -> None:
        if self._status != EventStatus.PLANNED:
            raise InvalidStateError("Only planned events can be scheduled")
        if start_time >= end_time:
            raise ValidationError("Start time must be before end time")

        self._event_date = event_date
        self._start_time = start_time
        self._end_time = end_time
        self._venue = venue
        self._status = EventStatus.SCHEDULED
        self.touch()

    def start(self) -> None:
        if self._status != EventStatus.SCHEDULED:
            raise InvalidStateError("Only scheduled events can be started")
        self._status = EventStatus.IN_PROGRESS
        self.touch()

    def complete(self) -> None:
        if self._status != EventStatus.IN_PROGRESS:
            raise InvalidStateError("Only in-progress events can be completed")
        self._status = EventStatus.COMPLETED
        self.touch()

    def cancel(self, reason: str) -> None:
        if self._status == EventStatus.COMPLETED:
            raise InvalidStateError("Cannot cancel completed event")
        self._status = EventStatus.CANCELLED
        self.add_note(f"Cancelled: {reason}")

    def postpone(self, new_date: date, new_start: time, new_end: time, reason: str) -> None:
        if self._status in (EventStatus.COMPLETED, EventStatus.CANCELLED):
            raise InvalidStateError("Cannot postpone completed or cancelled event")
        if new_start >= new_end:
            raise ValidationError("Start time must be before end time")

        self._event_date = new_date
        self._start_time = new_start
        self._end_time = new_end
        self._status = EventStatus.POSTPONED
        self.add_note(f"Postponed: {reason}")

    # Participants

    def register_participant(self, participant_id: str) -> bool:
        """Register a participant. Returns False when full or already registered."""
        if not self._requires_registration:
            raise InvalidStateError("This event does not require registration")
        if len(self._registered_participants) >= self._max_capacity:
            return False
        if participant_id in self._registered_participants:
            return False

        self._registered_participants.append(participant_id)
        self.touch()
        return True

    def unregister_participant(self, participant_id: str) -> bool:
        if participant_id not in self._registered_participants:
            return False
        self._registered_participants.remove(participant_id)
        self.touch()
        return True

    def mark_attendance(self, participant_id: str) -> bool:
        if self._status not in (EventStatus.IN_PROGRESS, EventStatus.COMPLETED):
            raise InvalidStateError("Can only mark attendance for ongoing or completed events")
        if participant_id in self._attendees:
            return False

        self._attendees.append(participant_id)
        self.touch()
        return True

    def remove_attendance(self, participant_id: str) -> bool:
        if participant_id not in self._attendees:
            return False
        self._attendees.remove(participant_id)
        self.touch()
        return True

    # Speakers, sponsors, tags, info

    def add_speaker(self, speaker: str) -> None:
        if speaker not in self._speakers:
            self._speakers.append(speaker)
            self.touch()

    def remove_speaker(self, speaker: str) -> None:
        if speaker in self._speakers:
            self._speakers.remove(speaker)
            self.touch()

    def add_sponsor(self, sponsor: str) -> None:
        if sponsor not in self._sponsors:
            self._sponsors.append(sponsor)
            self.touch()

    def remove_sponsor(self, sponsor: str) -> None:
        if sponsor in self._sponsors:
            self._sponsors.remove(sponsor)
            self.touch()

    def add_tag(self, tag: str) -> None:
        if tag not in self._tags:
            self._tags.append(tag)
            self.touch()

    def remove_tag(self, tag: str) -> None:
        if tag in self._tags:
            self._tags.remove(tag)
            self.touch()

    def add_additional_info(self, key: str, value: str) -> None:
        self._additional_info[key] = value
        self.touch()

    def remove_additional_info(self, key: str) -> None:
        if self._additional_info.pop(key, None) is not None:
            self.touch()

    def add_note(self, note: str) -> None:
        self._notes = f"{self._notes}; {note}" if self._notes else note
        self.touch()

    # Queries

    def is_upcoming(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self._event_date is not None and self._event_date > today

    def is_today(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self._event_date is not None and self._event_date == today

    def is_overdue(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return (self._event_date is not None and self._event_date < today
                and self._status == EventStatus.SCHEDULED)

    def is_full(self) -> bool:
        return self._requires_registration and len(self._registered_participants) >= self._max_capacity

    @property
    def available_spots(self) -> int:
        taken = len(self._registered_participants) if self._requires_registration else len(self._attendees)
        return max(0, self._max_capacity - taken)

    @property
    def registration_rate(self) -> float:
        if not self._requires_registration or self._max_capacity == 0:
            return 0.0
        return len(self._registered_participants) / self._max_capacity * 100

    @property
    def attendance_rate(self) -> float:
        if not self._registered_participants:
            return 0.0
        return len(self._attendees) / len(self._registered_participants) * 100

    @property
    def capacity_utilization(self) -> float:
        if self._max_capacity == 0:
            return 0.0
        return len(self._attendees) / self._max_capacity * 100

    @property
    def duration_minutes(self) -> int:
        if self._start_time is None or self._end_time is None:
            return 0
        start = datetime.combine(date.min, self._start_time)
        end = datetime.combine(date.min, self._end_time)
        return int((end - start).total_seconds() // 60)

    @property
    def expected_revenue(self) -> float:
        return len(self._registered_participants) * self._registration_fee

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data.update({
            "name": self._name,
            "description": self._description,
            "event_type": self._event_type.value,
            "category": self._category.value,
            "event_date": to_iso(self._event_date),
            "start_time": to_iso(self._start_time),
            "end_time": to_iso(self._end_time),
            "venue": self._venue,
            "organizer_id": self._organizer_id,
            "organizer_name": self._organizer_name,
            "status": self._status.value,
            "is_public": self._is_public,
            "requires_registration": self._requires_registration,
            "registration_fee": self._registration_fee,
            "max_capacity": self._max_capacity,
            "current_attendees": self.current_attendees,
            "registered_participants": list(self._registered_participants),
            "attendees": list(self._attendees),
            "speakers": list(self._speakers),
            "sponsors": list(self._sponsors),
            "tags": list(self._tags),
            "additional_info": dict(self._additional_info),
            "contact_email": self._contact_email,
            "contact_phone": self._contact_phone,
            "notes": self._notes,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        event = cls(data["id"], data["name"], EventType(data["event_type"]), EventCategory(data["category"]))
        event._description = data.get("description")
        event._event_date = parse_date(data.get("event_date"))
        event._start_time = parse_time(data.get("start_time"))
        event._end_time = parse_time(data.get("end_time"))
        event._venue = data.get("venue")
        event._organizer_id = data.get("organizer_id")
        event._organizer_name = data.get("organizer_name")
        event._status = EventStatus(data["status"])
        event._is_public = data.get("is_public", True)
        event._requires_registration = data.get("requires_registration", False)
        event._registration_fee = data.get("registration_fee", 0.0)
        event._max_capacity = data.get("max_capacity", 100)
        event._registered_participants = list(data.get("registered_participants", []))
        event._attendees = list(data.get("attendees", []))
        event._speakers = list(data.get("speakers", []))
        event._sponsors = list(data.get("sponsors", []))
        event._tags = list(data.get("tags", []))
        event._additional_info = dict(data.get("additional_info", {}))
        event._contact_email = data.get("contact_email")
        event._contact_phone = data.get("contact_phone")
        event._notes = data.get("notes")
        event._restore_base(data)
        return event
