"""
Exam management service.
"""

from collections import Counter
from datetime import date, time, timedelta
from typing import Any, Dict, List, Optional

from ..core.enums import ExamStatus, ExamType
from ..core.exams import Exam, ExamResult
from ..persistence.repositories import ExamRepository
from .base_manager import BaseManager
from .notification_service import NotificationService

ALERT_WINDOW_DAYS = 7


class ExamManager(BaseManager[Exam]):
    """Schedules exams, tracks enrolment and analyses results."""

    entity_label = "Exam"
    id_prefix = "E"

    def __init__(self, repository: ExamRepository,
                 notification_service: Optional[NotificationService] = None):
        super().__init__(repository, notification_service)
        self._logger.info("ExamManager initialized")

    def create_exam(self, name: str, course_id: str, course_name: str, exam_type: ExamType,
                    instructor: Optional[str] = None, duration: Optional[int] = None,
                    max_marks: Optional[float] = None, passing_marks: Optional[float] = None) -> Exam:
        with self._lock:
            exam = Exam(self._next_id(), name, course_id, course_name, exam_type)
            exam.instructor = instructor
            if duration is not None:
                exam.duration = duration
            if max_marks is not None or passing_marks is not None:
                exam.set_marking_scheme(max_marks if max_marks is not None else exam.max_marks,
                                        passing_marks if passing_marks is not None else exam.passing_marks)
            return self.create(exam)

    # Finders

    def get_upcoming_exams(self, today: Optional[date] = None) -> List[Exam]:
        upcoming = [e for e in self.get_all() if e.is_upcoming(today)]
        return sorted(upcoming, key=lambda e: (e.exam_date, e.start_time or time.min))

    def get_todays_exams(self, today: Optional[date] = None) -> List[Exam]:
        return [e for e in self.get_all() if e.is_today(today)]

    def get_overdue_exams(self, today: Optional[date] = None) -> List[Exam]:
        return [e for e in self.get_all() if e.is_overdue(today)]

    def get_exams_by_status(self, status: ExamStatus) -> List[Exam]:
        return self._repository.find_by_status(status)

    def get_exams_by_type(self, exam_type: ExamType) -> List[Exam]:
        return self._repository.find_by_type(exam_type)

    def get_exams_by_course(self, course_id: str) -> List[Exam]:
        return self._repository.find_by_course(course_id)

    def get_exams_by_instructor(self, instructor: str) -> List[Exam]:
        return self._repository.find_all({"instructor": instructor})

    def get_exams_for_student(self, student_id: str) -> List[Exam]:
        return self._repository.find_by_student(student_id)

    def search_by_name(self, text: str) -> List[Exam]:
        needle = text.lower()
        return [e for e in self.get_all() if needle in e.name.lower() or needle in e.course_name.lower()]

    # Lifecycle

    def schedule_exam(self, exam_id: str, exam_date: date, start_time: time, venue: str) -> Exam:
        exam = self._modify(exam_id, lambda e: e.schedule(exam_date, start_time, venue))
        self._logger.info("Scheduled exam %s on %s at %s", exam_id, exam_date, venue)
        return exam

    def start_exam(self, exam_id: str) -> Exam:
        return self._modify(exam_id, lambda e: e.start_exam())

    def end_exam(self, exam_id: str) -> Exam:
        return self._modify(exam_id, lambda e: e.end_exam())

    def cancel_exam(self, exam_id: str, reason: str) -> Exam:
        return self._modify(exam_id, lambda e: e.cancel(reason))

    def postpone_exam(self, exam_id: str, new_date: date, new_start: time, reason: str) -> Exam:
        return self._modify(exam_id, lambda e: e.postpone(new_date, new_start, reason))

    def publish_results(self, exam_id: str) -> Exam:
        exam = self._modify(exam_id, lambda e: e.publish_results())
        self._logger.info("Published results for exam %s", exam_id)
        return exam

    # Enrollment and results

    def enroll_student(self, exam_id: str, student_id: str) -> bool:
        with self._lock:
            exam = self.get(exam_id)
            enrolled = exam.enroll_student(student_id)
            if enrolled:
                self._repository.save(exam)
            return enrolled

    def unenroll_student(self, exam_id: str, student_id: str) -> bool:
        with self._lock:
            exam = self.get(exam_id)
            removed = exam.unenroll_student(student_id)
            if removed:
                self._repository.save(exam)
            return removed

    def add_result(self, exam_id: str, student_id: str, marks: float,
                   evaluated_by: Optional[str] = None) -> ExamResult:
        with self._lock:
            exam = self.get(exam_id)
            result = exam.add_result(student_id, marks, evaluated_by)
            self._repository.save(exam)
            return result

    def update_result(self, exam_id: str, student_id: str, marks: float,
                      evaluated_by: Optional[str] = None) -> ExamResult:
        with self._lock:
            exam = self.get(exam_id)
            result = exam.update_result(student_id, marks, evaluated_by)
            self._repository.save(exam)
            return result

    def mark_absent(self, exam_id: str, student_id: str) -> ExamResult:
        with self._lock:
            exam = self.get(exam_id)
            result = exam.mark_absent(student_id)
            self._repository.save(exam)
            return result

    def get_student_results(self, student_id: str) -> List[ExamResult]:
        results = []
        for exam in self.get_exams_for_student(student_id):
            result = exam.get_result(student_id)
            if result is not None:
                results.append(result)
        return results

    # Statistics and reports

    def get_statistics(self) -> Dict[str, Any]:
        exams = self.get_all()
        by_status = Counter(e.status.value for e in exams)
        return {
            "total_exams": len(exams),
            "scheduled_exams": by_status.get(ExamStatus.SCHEDULED.value, 0),
            "in_progress_exams": by_status.get(ExamStatus.IN_PROGRESS.value, 0),
            "completed_exams": by_status.get(ExamStatus.COMPLETED.value, 0),
            "cancelled_exams": by_status.get(ExamStatus.CANCELLED.value, 0),
            "results_published": by_status.get(ExamStatus.RESULTS_PUBLISHED.value, 0),
            "total_enrollments": sum(len(e.enrolled_students) for e in exams),
            "total_results": sum(len(e.results) for e in exams),
            "type_distribution": dict(Counter(e.exam_type.value for e in exams)),
        }

    def generate_results_analysis(self, exam_id: str) -> Dict[str, Any]:
        exam = self.get(exam_id)
        results = list(exam.results.values())
        return {
            "exam_id": exam.id,
            "name": exam.name,
            "course_id": exam.course_id,
            "enrolled_students": len(exam.enrolled_students),
            "results_recorded": len(results),
            "passed": exam.passed_count,
            "failed": exam.failed_count,
            "pass_percentage": exam.pass_percentage,
            "average_marks": exam.average_marks,
            "highest_marks": exam.highest_marks,
            "lowest_marks": exam.lowest_marks,
            "grade_distribution": exam.grade_distribution(),
            "excellent": sum(1 for r in results if r.is_excellent()),
            "good": sum(1 for r in results if r.is_good()),
            "satisfactory": sum(1 for r in results if r.is_satisfactory()),
            "needs_improvement": sum(1 for r in results if r.needs_improvement()),
        }

    def generate_performance_statistics(self) -> Dict[str, Any]:
        graded = [e for e in self.get_all()
                  if e.status in (ExamStatus.COMPLETED, ExamStatus.RESULTS_PENDING, ExamStatus.RESULTS_PUBLISHED)
                  and e.results]
        if not graded:
            return {"exams_with_results": 0, "average_pass_percentage": 0.0, "average_marks": 0.0}
        return {
            "exams_with_results": len(graded),
            "average_pass_percentage": sum(e.pass_percentage for e in graded) / len(graded),
            "average_marks": sum(e.average_marks for e in graded) / len(graded),
            "best_exam": max(graded, key=lambda e: e.pass_percentage).id,
        }

    def generate_course_report(self) -> Dict[str, Dict[str, Any]]:
        report: Dict[str, Dict[str, Any]] = {}
        for exam in self.get_all():
            entry = report.setdefault(exam.course_id, {
                "course_name": exam.course_name, "exams": 0, "enrollments": 0, "results": 0,
            })
            entry["exams"] += 1
            entry["enrollments"] += len(exam.enrolled_students)
            entry["results"] += len(exam.results)
        return report

    def generate_instructor_report(self) -> Dict[str, Dict[str, Any]]:
        report: Dict[str, Dict[str, Any]] = {}
        for exam in self.get_all():
            entry = report.setdefault(exam.instructor or "unassigned", {"exams": 0, "courses": []})
            entry["exams"] += 1
            if exam.course_id not in entry["courses"]:
                entry["courses"].append(exam.course_id)
        return report

    def get_alerts(self, today: Optional[date] = None) -> List[str]:
        today = today or date.today()
        horizon = today + timedelta(days=ALERT_WINDOW_DAYS)
        alerts = []
        for exam in self.get_all():
            if exam.is_upcoming(today) and exam.exam_date <= horizon:
                alerts.append(f"Upcoming exam: {exam.name} on {exam.exam_date.isoformat()}")
            if exam.is_today(today):
                alerts.append(f"Exam today: {exam.name} at {exam.venue}")
            if exam.has_pending_results():
                missing = len(exam.enrolled_students) - len(exam.results)
                alerts.append(f"Results pending: {exam.name} ({missing} students without marks)")
        return alerts

    def load_sample_data(self, today: Optional[date] = None) -> None:
        today = today or date.today()

        midterm = Exam("E001", "Data Structures Midterm", "CS101", "Data Structures", ExamType.MIDTERM)
        midterm.schedule(today + timedelta(days=7), time(9, 0), "Room A-101")
        midterm.instructor = "T001"
        midterm.add_invigilator("T002")
        midterm.add_invigilator("T003")
        for student in ("S001", "S002", "S003", "S004", "S005"):
            midterm.enroll_student(student)

        quiz = Exam("E002", "Java Programming Quiz", "CS102", "Java Programming", ExamType.QUIZ)
        quiz.schedule(today + timedelta(days=3), time(14, 0), "Lab B-201")
        quiz.instructor = "T004"
        quiz.add_invigilator("T005")
        for student in ("S001", "S002", "S006", "S007"):
            quiz.enroll_student(student)

        final = Exam("E003", "Database Systems Final", "CS201", "Database Systems", ExamType.FINAL)
        final.schedule(today + timedelta(days=21), time(10, 0), "Hall C-301")
        final.instructor = "T006"
        for student in ("S003", "S004", "S008", "S009", "S010"):
            final.enroll_student(student)

        practical = Exam("E004", "Chemistry Lab Practical", "CH101", "General Chemistry", ExamType.PRACTICAL)
        practical.schedule(today + timedelta(days=5), time(13, 0), "Chemistry Lab")
        practical.instructor = "T009"
        for student in ("S005", "S006", "S011", "S012"):
            practical.enroll_student(student)

        assignment = Exam("E005", "Mathematics Assignment", "MA101", "Calculus I", ExamType.ASSIGNMENT)
        assignment.schedule(today + timedelta(days=14), time(0, 0), "Online")
        assignment.set_online("Moodle", "https://moodle.campus.edu/assignment/ma101")
        assignment.instructor = "T011"
        for student in ("S007", "S008", "S013", "S014"):
            assignment.enroll_student(student)

        physics = Exam("E006", "Physics Midterm", "PH101", "Physics I", ExamType.MIDTERM)
        physics.schedule(today - timedelta(days=7), time(11, 0), "Room D-102")
        physics.instructor = "T012"
        for student in ("S001", "S002", "S003", "S004", "S005"):
            physics.enroll_student(student)
        physics.start_exam()
        physics.end_exam()
        for student, marks in (("S001", 85), ("S002", 78), ("S003", 92), ("S004", 65), ("S005", 35)):
            physics.add_result(student, marks, "T012")

        for exam in (midterm, quiz, final, practical, assignment, physics):
            if not self._repository.exists(exam.id):
                self._repository.save(exam)
        self._logger.info("Loaded sample exams")
