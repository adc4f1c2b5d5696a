"""
Cross-domain report generation and export.
"""

import html
import json
import os
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

import pandas as pd

from ..core.enums import ReportCategory, ReportFormat, ReportType
from ..core.exceptions import InvalidStateError, ResourceNotFoundError, ValidationError
from ..core.reports import Report
from ..persistence.repositories import ReportRepository
from ..utils.logger import get_logger
from .base_manager import next_sequence_id
from .event_manager import EventManager
from .exam_manager import ExamManager
from .hostel_manager import HostelManager
from .transport_manager import TransportManager

logger = get_logger(__name__)

EXPORT_FORMATS = (ReportFormat.JSON, ReportFormat.CSV, ReportFormat.TXT, ReportFormat.HTML)


def flatten(data: Any, prefix: str = "") -> List[Tuple[str, Any]]:
    """Flatten nested dicts and lists into dotted ``(key, value)`` rows."""
    if isinstance(data, dict):
        rows = []
        for key, value in data.items():
            rows.extend(flatten(value, f"{prefix}.{key}" if prefix else str(key)))
        return rows
    if isinstance(data, list):
        rows = []
        for index, value in enumerate(data):
            rows.extend(flatten(value, f"{prefix}[{index}]"))
        return rows
    return [(prefix, data)]


class ReportGenerator:
    """Builds reports from the domain managers and stores them.

    Every ``generate_*`` method creates a Report, runs its builder and
    saves the result, so failed generations are recorded too.
    """

    def __init__(self, event_manager: EventManager, exam_manager: ExamManager,
                 hostel_manager: HostelManager, transport_manager: TransportManager,
                 repository: ReportRepository, export_dir: str = "reports"):
        self._events = event_manager
        self._exams = exam_manager
        self._hostel = hostel_manager
        self._transport = transport_manager
        self._repository = repository
        self._export_dir = export_dir
        self._lock = threading.RLock()
        self._builders: Dict[ReportType, Callable[[], Dict[str, Any]]] = {
            ReportType.SYSTEM_REPORT: self._system_overview,
            ReportType.FINANCIAL_REPORT: self._financial,
            ReportType.EVENT_REPORT: self._event,
            ReportType.EXAM_REPORT: self._exam,
            ReportType.HOSTEL_REPORT: self._hostel_data,
            ReportType.TRANSPORT_REPORT: self._transport_data,
            ReportType.ATTENDANCE_REPORT: self._events.generate_attendance_analysis,
            ReportType.PERFORMANCE_REPORT: self._exams.generate_performance_statistics,
            ReportType.COURSE_REPORT: self._exams.generate_course_report,
        }
        logger.info("ReportGenerator initialized")

    @property
    def export_dir(self) -> str:
        return self._export_dir

    @property
    def supported_types(self) -> List[ReportType]:
        return list(self._builders)

    # Builders

    def _system_overview(self) -> Dict[str, Any]:
        return {
            "events": self._events.get_statistics(),
            "exams": self._exams.get_statistics(),
            "hostel": self._hostel.get_statistics(),
            "transport": self._transport.get_statistics(),
        }

    def _financial(self) -> Dict[str, Any]:
        hostel = self._hostel.generate_financial_report()
        event_revenue = self._events.generate_registration_statistics()["expected_revenue"]
        maintenance_cost = self._transport.get_statistics()["total_maintenance_cost"]
        return {
            "hostel": hostel,
            "event_registration_revenue": event_revenue,
            "transport_maintenance_cost": maintenance_cost,
            "net_income": hostel["total_collected"] + event_revenue - maintenance_cost,
        }

    def _event(self) -> Dict[str, Any]:
        return {
            "statistics": self._events.get_statistics(),
            "attendance": self._events.generate_attendance_analysis(),
            "registrations": self._events.generate_registration_statistics(),
            "categories": self._events.generate_category_report(),
        }

    def _exam(self) -> Dict[str, Any]:
        return {
            "statistics": self._exams.get_statistics(),
            "performance": self._exams.generate_performance_statistics(),
            "courses": self._exams.generate_course_report(),
            "instructors": self._exams.generate_instructor_report(),
        }

    def _hostel_data(self) -> Dict[str, Any]:
        return {
            "statistics": self._hostel.get_statistics(),
            "occupancy": self._hostel.generate_occupancy_report(),
            "financial": self._hostel.generate_financial_report(),
        }

    def _transport_data(self) -> Dict[str, Any]:
        return {
            "statistics": self._transport.get_statistics(),
            "fleet": self._transport.generate_fleet_report(),
        }

    # Generation

    def _run(self, name: str, report_type: ReportType, category: ReportCategory,
             builder: Callable[[], Dict[str, Any]], parameters: Optional[Dict[str, Any]] = None,
             generated_by: Optional[str] = None) -> Report:
        with self._lock:
            report_id = next_sequence_id(self._repository.find_all(), "R")
            report = Report(report_id, name, report_type, category, generated_by)
            report.format = ReportFormat.JSON
            for key, value in (parameters or {}).items():
                report.add_parameter(key, value)
            try:
                report.generate(builder)
            finally:
                self._repository.save(report)
        logger.info("Generated %s report %s", report_type.value, report.id)
        return report

    def generate_system_overview_report(self, generated_by: Optional[str] = None) -> Report:
        return self._run("System Overview", ReportType.SYSTEM_REPORT, ReportCategory.ADMINISTRATIVE,
                         self._system_overview, generated_by=generated_by)

    def generate_financial_report(self, generated_by: Optional[str] = None) -> Report:
        return self._run("Financial Summary", ReportType.FINANCIAL_REPORT, ReportCategory.FINANCIAL,
                         self._financial, generated_by=generated_by)

    def generate_event_report(self, generated_by: Optional[str] = None) -> Report:
        return self._run("Event Report", ReportType.EVENT_REPORT, ReportCategory.OPERATIONAL,
                         self._event, generated_by=generated_by)

    def generate_exam_report(self, generated_by: Optional[str] = None) -> Report:
        return self._run("Exam Report", ReportType.EXAM_REPORT, ReportCategory.ACADEMIC,
                         self._exam, generated_by=generated_by)

    def generate_hostel_report(self, generated_by: Optional[str] = None) -> Report:
        return self._run("Hostel Report", ReportType.HOSTEL_REPORT, ReportCategory.OPERATIONAL,
                         self._hostel_data, generated_by=generated_by)

    def generate_transport_report(self, generated_by: Optional[str] = None) -> Report:
        return self._run("Transport Report", ReportType.TRANSPORT_REPORT, ReportCategory.OPERATIONAL,
                         self._transport_data, generated_by=generated_by)

    def generate_custom_report(self, name: str, report_type: ReportType, category: ReportCategory,
                               parameters: Optional[Dict[str, Any]] = None,
                               generated_by: Optional[str] = None) -> Report:
        """Generate a named report using the builder registered for ``report_type``.

        CUSTOM_REPORT gathers the sections listed in ``parameters["sections"]``
        (any of events, exams, hostel, transport), defaulting to all of them.
        """
        if report_type == ReportType.CUSTOM_REPORT:
            builder = self._custom_builder(parameters or {})
        else:
            builder = self._builders.get(report_type)
            if builder is None:
                raise ValidationError(f"Unsupported report type: {report_type.value}")
        return self._run(name, report_type, category, builder, parameters, generated_by)

    def _custom_builder(self, parameters: Dict[str, Any]) -> Callable[[], Dict[str, Any]]:
        sections = {
            "events": self._event,
            "exams": self._exam,
            "hostel": self._hostel_data,
            "transport": self._transport_data,
        }
        requested = parameters.get("sections") or list(sections)
        unknown = [s for s in requested if s not in sections]
        if unknown:
            raise ValidationError(f"Unknown report sections: {', '.join(unknown)}")
        return lambda: {section: sections[section]() for section in requested}

    # Lookup

    def get_report(self, report_id: str) -> Optional[Report]:
        return self._repository.find_by_id(report_id)

    def get_all_reports(self) -> List[Report]:
        return self._repository.find_all()

    def get_reports_by_type(self, report_type: ReportType) -> List[Report]:
        return self._repository.find_by_type(report_type)

    def delete_report(self, report_id: str) -> bool:
        if not self._repository.delete(report_id):
            raise ResourceNotFoundError(f"Report {report_id} not found")
        return True

    # Export

    def _export_path(self, report: Report, report_format: ReportFormat, file_name: Optional[str]) -> str:
        """Resolve ``file_name`` inside the export directory."""
        file_name = file_name or report.build_file_name(report_format)
        segments = file_name.replace("\\", "/").split("/")
        if os.path.isabs(file_name) or ".." in segments:
            raise ValidationError(f"Export file name must be relative to the reports directory: {file_name}")

        base = os.path.realpath(self._export_dir)
        path = os.path.realpath(os.path.join(base, file_name))
        try:
            inside = os.path.commonpath([base, path]) == base
        except ValueError:
            inside = False
        if not inside or path == base:
            raise ValidationError(f"Export file name escapes the reports directory: {file_name}")

        if os.path.isdir(path):
            path = os.path.join(path, report.build_file_name(report_format))
        return path

    def export_report(self, report: Report, report_format: ReportFormat,
                      file_name: Optional[str] = None) -> str:
        """Write a ready report into the export directory.

        ``file_name`` is relative to the export directory and may name a
        subdirectory; a generated name is used when it is omitted.
        Returns the path written.
        """
        if report_format not in EXPORT_FORMATS:
            raise ValidationError(f"Export format {report_format.value} is not supported")
        if not report.is_ready():
            raise InvalidStateError(f"Report {report.id} has not been generated")

        path = self._export_path(report, report_format, file_name)
        os.makedirs(os.path.dirname(path), exist_ok=True)

        if report_format == ReportFormat.JSON:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(report.content, f, indent=2, default=str)
        elif report_format == ReportFormat.CSV:
            self._frame(report).to_csv(path, index=False)
        elif report_format == ReportFormat.HTML:
            with open(path, "w", encoding="utf-8") as f:
                f.write(self._render_html(report))
        else:
            with open(path, "w", encoding="utf-8") as f:
                f.write(self._render_text(report))

        logger.info("Exported report %s as %s to %s", report.id, report_format.value, path)
        return path

    @staticmethod
    def _frame(report: Report) -> pd.DataFrame:
        return pd.DataFrame(flatten(report.content["data"]), columns=["key", "value"])

    def _render_text(self, report: Report) -> str:
        content = report.content
        lines = [
            content["title"],
            "=" * len(content["title"]),
            f"Type: {content['report_type']}",
            f"Category: {content['category']}",
            f"Generated by: {content['generated_by']} at {content['generated_at']}",
            "",
        ]
        lines.extend(f"{key}: {value}" for key, value in flatten(content["data"]))
        return "\n".join(lines) + "\n"

    def _render_html(self, report: Report) -> str:
        content = report.content
        title = html.escape(content["title"])
        meta = html.escape(f"{content['report_type']} | {content['category']} | generated {content['generated_at']}")
        table = self._frame(report).to_html(index=False, border=0)
        return (
            "<html><head><meta charset=\"utf-8\">"
            f"<title>{title}</title></head><body>"
            f"<h1>{title}</h1>"
            f"<p>{meta}</p>"
            f"{table}</body></html>\n"
        )

    def get_statistics(self) -> Dict[str, Any]:
        reports = self.get_all_reports()
        by_type: Dict[str, int] = {}
        for report in reports:
            by_type[report.report_type.value] = by_type.get(report.report_type.value, 0) + 1
        return {
            "total_reports": len(reports),
            "ready_reports": sum(1 for r in reports if r.is_ready()),
            "reports_by_type": by_type,
            "last_generated": max((r.generated_at.isoformat() for r in reports if r.generated_at), default=None),
        }
