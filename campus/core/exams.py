"""
Exam and exam result entities.
"""

from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple

from .abstract_entity import AbstractEntity, to_iso, parse_date, parse_time, parse_datetime
from .enums import ExamStatus, ExamType
from .exceptions import InvalidStateError, ValidationError


DEFAULT_INSTRUCTIONS = (
    "1. Read all questions carefully\n"
    "2. Attempt all questions\n"
    "3. Write clearly and legibly\n"
    "4. Manage your time effectively"
)

PASS_PERCENTAGE = 40.0

# (minimum percentage, grade, grade points), highest first
GRADE_SCALE: List[Tuple[float, str, float]] = [
    (90.0, "A+", 4.0),
    (85.0, "A", 3.7),
    (80.0, "A-", 3.3),
    (75.0, "B+", 3.0),
    (70.0, "B", 2.7),
    (65.0, "B-", 2.3),
    (60.0, "C+", 2.0),
    (55.0, "C", 1.7),
    (50.0, "C-", 1.3),
    (40.0, "D", 1.0),
]

_REMARKS: List[Tuple[float, str]] = [
    (90.0, "Outstanding performance"),
    (80.0, "Excellent performance"),
    (70.0, "Good performance"),
    (60.0, "Satisfactory performance"),
    (40.0, "Pass"),
]


class ExamResult:
    """Marks obtained by one student in one exam, with derived grade data."""

    def __init__(self, student_id: str, exam_id: str, marks: float, max_marks: float,
                 evaluated_by: Optional[str] = None):
        if max_marks <= 0:
            raise ValidationError("Maximum marks must be positive")
        self._student_id = student_id
        self._exam_id = exam_id
        self._max_marks = max_marks
        self._marks = 0.0
        self._evaluated_by = evaluated_by
        self._evaluated_at = datetime.now()
        self._is_absent = False
        self._is_malpractice = False
        self._malpractice_details: Optional[str] = None
        self._comments: Optional[str] = None
        self._set_marks(marks)

    def _set_marks(self, marks: float) -> None:
        if marks < 0 or marks > self._max_marks:
            raise ValidationError(f"Marks must be between 0 and {self._max_marks}")
        self._marks = marks

    @property
    def student_id(self) -> str:
        return self._student_id

    @property
    def exam_id(self) -> str:
        return self._exam_id

    @property
    def marks(self) -> float:
        return self._marks

    @property
    def max_marks(self) -> float:
        return self._max_marks

    @property
    def evaluated_by(self) -> Optional[str]:
        return self._evaluated_by

    @property
    def evaluated_at(self) -> datetime:
        return self._evaluated_at

    @property
    def is_absent(self) -> bool:
        return self._is_absent

    @property
    def is_malpractice(self) -> bool:
        return self._is_malpractice

    @property
    def malpractice_details(self) -> Optional[str]:
        return self._malpractice_details

    @property
    def comments(self) -> Optional[str]:
        return self._comments

    @comments.setter
    def comments(self, value: Optional[str]) -> None:
        self._comments = value

    @property
    def percentage(self) -> float:
        return self._marks * 100 / self._max_marks

    @property
    def grade(self) -> str:
        if self._is_absent:
            return "AB"
        if self._is_malpractice:
            return "MP"
        pct = self.percentage
        for threshold, letter, _ in GRADE_SCALE:
            if pct >= threshold:
                return letter
        return "F"

    @property
    def grade_points(self) -> float:
        if self._is_absent or self._is_malpractice:
            return 0.0
        pct = self.percentage
        for threshold, _, points in GRADE_SCALE:
            if pct >= threshold:
                return points
        return 0.0

    @property
    def passed(self) -> bool:
        return self.percentage >= PASS_PERCENTAGE and not self._is_absent and not self._is_malpractice

    @property
    def remarks(self) -> str:
        if self._is_absent:
            return "Absent"
        if self._is_malpractice:
            return "Malpractice detected"
        pct = self.percentage
        for threshold, text in _REMARKS:
            if pct >= threshold:
                return text
        return "Fail - Needs improvement"

    def update_marks(self, marks: float, evaluated_by: Optional[str] = None) -> None:
        self._set_marks(marks)
        self._is_absent = False
        if evaluated_by is not None:
            self._evaluated_by = evaluated_by
        self._evaluated_at = datetime.now()

    def mark_absent(self) -> None:
        self._is_absent = True
        self._marks = 0.0
        self._evaluated_at = datetime.now()

    def mark_malpractice(self, details: str) -> None:
        self._is_malpractice = True
        self._malpractice_details = details
        self._marks = 0.0
        self._evaluated_at = datetime.now()

    def is_excellent(self) -> bool:
        return self.percentage >= 85

    def is_good(self) -> bool:
        return 70 <= self.percentage < 85

    def is_satisfactory(self) -> bool:
        return 60 <= self.percentage < 70

    def needs_improvement(self) -> bool:
        return self.percentage < 60 and not self._is_absent and not self._is_malpractice

    def to_dict(self) -> Dict[str, Any]:
        return {
            "student_id": self._student_id,
            "exam_id": self._exam_id,
            "marks": self._marks,
            "max_marks": self._max_marks,
            "percentage": round(self.percentage, 2),
            "grade": self.grade,
            "grade_points": self.grade_points,
            "passed": self.passed,
            "remarks": self.remarks,
            "evaluated_by": self._evaluated_by,
            "evaluated_at": to_iso(self._evaluated_at),
            "is_absent": self._is_absent,
            "is_malpractice": self._is_malpractice,
            "malpractice_details": self._malpractice_details,
            "comments": self._comments,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExamResult":
        result = cls(data["student_id"], data["exam_id"], data["marks"], data["max_marks"],
                     data.get("evaluated_by"))
        result._evaluated_at = parse_datetime(data.get("evaluated_at")) or result._evaluated_at
        result._is_absent = data.get("is_absent", False)
        result._is_malpractice = data.get("is_malpractice", False)
        result._malpractice_details = data.get("malpractice_details")
        result._comments = data.get("comments")
        return result


class Exam(AbstractEntity):
    """An exam for a course, with enrolment, invigilation and results."""

    def __init__(self, exam_id: str, name: str, course_id: str, course_name: str, exam_type: ExamType):
        super().__init__(exam_id)
        if not name or not name.strip():
            raise ValidationError("Exam name cannot be empty")
        self._name = name
        self._course_id = course_id
        self._course_name = course_name
        self._exam_type = exam_type
        self._instructor: Optional[str] = None
        self._exam_date: Optional[date] = None
        self._start_time: Optional[time] = None
        self._end_time: Optional[time] = None
        self._venue: Optional[str] = None
        self._status = ExamStatus.SCHEDULED
        self._duration = 180
        self._max_marks = 100.0
        self._passing_marks = 40.0
        self._is_online = False
        self._online_platform: Optional[str] = None
        self._exam_link: Optional[str] = None
        self._instructions = DEFAULT_INSTRUCTIONS
        self._allowed_materials: List[str] = []
        self._invigilators: List[str] = []
        self._enrolled_students: List[str] = []
        self._results: Dict[str, ExamResult] = {}
        self._notes: Optional[str] = None

        self._apply_defaults()

    def _apply_defaults(self) -> None:
        if self._exam_type in (ExamType.MIDTERM, ExamType.FINAL):
            self._allowed_materials += ["Pen/Pencil", "Calculator (if applicable)"]
        elif self._exam_type == ExamType.QUIZ:
            self._allowed_materials.append("Pen/Pencil")
            self._duration = 60
            self._max_marks = 50.0
            self._passing_marks = 20.0
        elif self._exam_type == ExamType.PRACTICAL:
            self._allowed_materials += ["Lab Manual", "Calculator"]
            self._duration = 240
        elif self._exam_type == ExamType.ASSIGNMENT:
            self._duration = 7 * 24 * 60
            self._is_online = True

    @property
    def name(self) -> str:
        return self._name

    @property
    def course_id(self) -> str:
        return self._course_id

    @property
    def course_name(self) -> str:
        return self._course_name

    @property
    def exam_type(self) -> ExamType:
        return self._exam_type

    @property
    def instructor(self) -> Optional[str]:
        return self._instructor

    @instructor.setter
    def instructor(self, value: Optional[str]) -> None:
        self._instructor = value
        self.touch()

    @property
    def status(self) -> ExamStatus:
        return self._status

    @property
    def exam_date(self) -> Optional[date]:
        return self._exam_date

    @property
    def start_time(self) -> Optional[time]:
        return self._start_time

    @property
    def end_time(self) -> Optional[time]:
        return self._end_time

    @property
    def venue(self) -> Optional[str]:
        return self._venue

    @property
    def duration(self) -> int:
        """Duration in minutes."""
        return self._duration

    @duration.setter
    def duration(self, minutes: int) -> None:
        if minutes <= 0:
            raise ValidationError("Duration must be positive")
        self._duration = minutes
        if self._exam_date and self._start_time:
            self._end_time = self._compute_end_time()
        self.touch()

    @property
    def max_marks(self) -> float:
        return self._max_marks

    @property
    def passing_marks(self) -> float:
        return self._passing_marks

    def set_marking_scheme(self, max_marks: float, passing_marks: float) -> None:
        if max_marks <= 0:
            raise ValidationError("Maximum marks must be positive")
        if passing_marks < 0 or passing_marks > max_marks:
            raise ValidationError("Passing marks must be between 0 and maximum marks")
        if self._results:
            raise InvalidStateError("Cannot change marking scheme after results are recorded")
        self._max_marks = max_marks
        self._passing_marks = passing_marks
        self.touch()

    @property
    def is_online(self) -> bool:
        return self._is_online

    @property
    def online_platform(self) -> Optional[str]:
        return self._online_platform

    @property
    def exam_link(self) -> Optional[str]:
        return self._exam_link

    @property
    def instructions(self) -> str:
        return self._instructions

    @instructions.setter
    def instructions(self, value: str) -> None:
        self._instructions = value
        self.touch()

    @property
    def allowed_materials(self) -> List[str]:
        return list(self._allowed_materials)

    @property
    def invigilators(self) -> List[str]:
        return list(self._invigilators)

    @property
    def enrolled_students(self) -> List[str]:
        return list(self._enrolled_students)

    @property
    def results(self) -> Dict[str, ExamResult]:
        return dict(self._results)

    @property
    def notes(self) -> Optional[str]:
        return self._notes

    def _add_note(self, note: str) -> None:
        self._notes = f"{self._notes}; {note}" if self._notes else note

    def _compute_end_time(self) -> time:
        start = datetime.combine(self._exam_date, self._start_time)
        return (start + timedelta(minutes=self._duration)).time()

    # Lifecycle

    def schedule(self, exam_date: date, start_time: time, venue: str) -> None:
        if self._status not in (ExamStatus.SCHEDULED, ExamStatus.POSTPONED):
            raise InvalidStateError("Only scheduled or postponed exams can be rescheduled")
        self._exam_date = exam_date
        self._start_time = start_time
        self._end_time = self._compute_end_time()
        self._venue = venue
        self._status = ExamStatus.SCHEDULED
        self.touch()

    def start_exam(self) -> None:
        if self._status != ExamStatus.SCHEDULED:
            raise InvalidStateError("Only scheduled exams can be started")
        self._status = ExamStatus.IN_PROGRESS
        self.touch()

    def end_exam(self) -> None:
        if self._status != ExamStatus.IN_PROGRESS:
            raise InvalidStateError("Only in-progress exams can be ended")
        self._status = ExamStatus.COMPLETED
        self.touch()

    def cancel(self, reason: str) -> None:
        if self._status == ExamStatus.COMPLETED:
            raise InvalidStateError("Cannot cancel completed exam")
        self._status = ExamStatus.CANCELLED
        self._add_note(f"Cancelled: {reason}")
        self.touch()

    def postpone(self, new_date: date, new_start: time, reason: str) -> None:
        if self._status in (ExamStatus.COMPLETED, ExamStatus.CANCELLED):
            raise InvalidStateError("Cannot postpone completed or cancelled exam")
        self._exam_date = new_date
        self._start_time = new_start
        self._end_time = self._compute_end_time()
        self._status = ExamStatus.POSTPONED
        self._add_note(f"Postponed: {reason}")
        self.touch()

    def mark_results_pending(self) -> None:
        if self._status != ExamStatus.COMPLETED:
            raise InvalidStateError("Only completed exams can await results")
        self._status = ExamStatus.RESULTS_PENDING
        self.touch()

    def publish_results(self) -> None:
        if self._status not in (ExamStatus.COMPLETED, ExamStatus.RESULTS_PENDING):
            raise InvalidStateError("Results can only be published for completed exams")
        self._status = ExamStatus.RESULTS_PUBLISHED
        self.touch()

    # Enrollment and results

    def enroll_student(self, student_id: str) -> bool:
        if student_id in self._enrolled_students:
            return False
        self._enrolled_students.append(student_id)
        self.touch()
        return True

    def unenroll_student(self, student_id: str) -> bool:
        if student_id not in self._enrolled_students:
            return False
        self._enrolled_students.remove(student_id)
        self._results.pop(student_id, None)
        self.touch()
        return True

    def add_result(self, student_id: str, marks: float, evaluated_by: Optional[str] = None) -> ExamResult:
        if student_id not in self._enrolled_students:
            raise ValidationError(f"Student {student_id} is not enrolled in exam {self.id}")
        result = ExamResult(student_id, self.id, marks, self._max_marks, evaluated_by)
        self._results[student_id] = result
        self.touch()
        return result

    def update_result(self, student_id: str, marks: float, evaluated_by: Optional[str] = None) -> ExamResult:
        result = self._results.get(student_id)
        if result is None:
            raise ValidationError(f"No result recorded for student {student_id}")
        result.update_marks(marks, evaluated_by)
        self.touch()
        return result

    def get_result(self, student_id: str) -> Optional[ExamResult]:
        return self._results.get(student_id)

    def mark_absent(self, student_id: str) -> ExamResult:
        result = self._results.get(student_id) or self.add_result(student_id, 0)
        result.mark_absent()
        self.touch()
        return result

    def add_invigilator(self, invigilator_id: str) -> None:
        if invigilator_id not in self._invigilators:
            self._invigilators.append(invigilator_id)
            self.touch()

    def remove_invigilator(self, invigilator_id: str) -> None:
        if invigilator_id in self._invigilators:
            self._invigilators.remove(invigilator_id)
            self.touch()

    def add_allowed_material(self, material: str) -> None:
        if material not in self._allowed_materials:
            self._allowed_materials.append(material)
            self.touch()

    def remove_allowed_material(self, material: str) -> None:
        if material in self._allowed_materials:
            self._allowed_materials.remove(material)
            self.touch()

    def set_online(self, platform: str, link: str) -> None:
        self._is_online = True
        self._online_platform = platform
        self._exam_link = link
        self._venue = f"Online - {platform}"
        self.touch()

    def set_offline(self, venue: str) -> None:
        self._is_online = False
        self._online_platform = None
        self._exam_link = None
        self._venue = venue
        self.touch()

    # Queries

    def is_upcoming(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self._exam_date is not None and self._exam_date > today

    def is_today(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self._exam_date is not None and self._exam_date == today

    def is_overdue(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return (self._exam_date is not None and self._exam_date < today
                and self._status == ExamStatus.SCHEDULED)

    def has_pending_results(self) -> bool:
        return self._status == ExamStatus.COMPLETED and len(self._results) < len(self._enrolled_students)

    @property
    def average_marks(self) -> float:
        if not self._results:
            return 0.0
        return sum(r.marks for r in self._results.values()) / len(self._results)

    @property
    def highest_marks(self) -> float:
        return max((r.marks for r in self._results.values()), default=0.0)

    @property
    def lowest_marks(self) -> float:
        return min((r.marks for r in self._results.values()), default=0.0)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self._results.values() if r.marks >= self._passing_marks)

    @property
    def failed_count(self) -> int:
        return len(self._results) - self.passed_count

    @property
    def pass_percentage(self) -> float:
        if not self._results:
            return 0.0
        return self.passed_count / len(self._results) * 100

    def grade_distribution(self) -> Dict[str, int]:
        distribution: Dict[str, int] = {}
        for result in self._results.values():
            distribution[result.grade] = distribution.get(result.grade, 0) + 1
        return distribution

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data.update({
            "name": self._name,
            "course_id": self._course_id,
            "course_name": self._course_name,
            "exam_type": self._exam_type.value,
            "instructor": self._instructor,
            "exam_date": to_iso(self._exam_date),
            "start_time": to_iso(self._start_time),
            "end_time": to_iso(self._end_time),
            "venue": self._venue,
            "status": self._status.value,
            "duration": self._duration,
            "max_marks": self._max_marks,
            "passing_marks": self._passing_marks,
            "is_online": self._is_online,
            "online_platform": self._online_platform,
            "exam_link": self._exam_link,
            "instructions": self._instructions,
            "allowed_materials": list(self._allowed_materials),
            "invigilators": list(self._invigilators),
            "enrolled_students": list(self._enrolled_students),
            "results": {sid: r.to_dict() for sid, r in self._results.items()},
            "notes": self._notes,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Exam":
        exam = cls(data["id"], data["name"], data["course_id"], data["course_name"], ExamType(data["exam_type"]))
        exam._instructor = data.get("instructor")
        exam._exam_date = parse_date(data.get("exam_date"))
        exam._start_time = parse_time(data.get("start_time"))
        exam._end_time = parse_time(data.get("end_time"))
        exam._venue = data.get("venue")
        exam._status = ExamStatus(data["status"])
        exam._duration = data.get("duration", exam._duration)
        exam._max_marks = data.get("max_marks", exam._max_marks)
        exam._passing_marks = data.get("passing_marks", exam._passing_marks)
        exam._is_online = data.get("is_online", False)
        exam._online_platform = data.get("online_platform")
        exam._exam_link = data.get("exam_link")
        exam._instructions = data.get("instructions", DEFAULT_INSTRUCTIONS)
        exam._allowed_materials = list(data.get("allowed_materials", []))
        exam._invigilators = list(data.get("invigilators", []))
        exam._enrolled_students = list(data.get("enrolled_students", []))
        exam._results = {sid: ExamResult.from_dict(r) for sid, r in data.get("results", {}).items()}
        exam._notes = data.get("notes")
        exam._restore_base(data)
        return exam
