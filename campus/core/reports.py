"""
Report entity.
"""

import json
import re
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .abstract_entity import AbstractEntity, to_iso, parse_datetime
from .enums import ReportCategory, ReportFormat, ReportStatus, ReportType
from .exceptions import InvalidStateError, ReportGenerationError


class Report(AbstractEntity):
    """A generated (or scheduled) report whose content is a JSON-ready dict."""

    def __init__(self, report_id: str, name: str, report_type: ReportType, category: ReportCategory,
                 generated_by: Optional[str] = None):
        super().__init__(report_id)
        self._name = name
        self._description: Optional[str] = None
        self._report_type = report_type
        self._category = category
        self._generated_by = generated_by or "system"
        self._generated_at: Optional[datetime] = None
        self._status = ReportStatus.PENDING
        self._format = ReportFormat.PDF
        self._parameters: Dict[str, Any] = {}
        self._recipients: List[str] = []
        self._metadata: Dict[str, str] = {}
        self._content: Optional[Dict[str, Any]] = None
        self._file_name: Optional[str] = None
        self._file_path: Optional[str] = None
        self._file_size = 0
        self._is_scheduled = False
        self._schedule_frequency: Optional[str] = None
        self._next_run: Optional[datetime] = None
        self._execution_count = 0
        self._error_message: Optional[str] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> Optional[str]:
        return self._description

    @description.setter
    def description(self, value: Optional[str]) -> None:
        self._description = value
        self.touch()

    @property
    def report_type(self) -> ReportType:
        return self._report_type

    @property
    def category(self) -> ReportCategory:
        return self._category

    @property
    def generated_by(self) -> str:
        return self._generated_by

    @property
    def generated_at(self) -> Optional[datetime]:
        return self._generated_at

    @property
    def status(self) -> ReportStatus:
        return self._status

    @property
    def format(self) -> ReportFormat:
        return self._format

    @format.setter
    def format(self, value: ReportFormat) -> None:
        self._format = value
        self.touch()

    @property
    def parameters(self) -> Dict[str, Any]:
        return dict(self._parameters)

    @property
    def recipients(self) -> List[str]:
        return list(self._recipients)

    @property
    def metadata(self) -> Dict[str, str]:
        return dict(self._metadata)

    @property
    def content(self) -> Optional[Dict[str, Any]]:
        return self._content

    @property
    def file_name(self) -> Optional[str]:
        return self._file_name

    @property
    def file_path(self) -> Optional[str]:
        return self._file_path

    @property
    def file_size(self) -> int:
        return self._file_size

    @property
    def is_scheduled(self) -> bool:
        return self._is_scheduled

    @property
    def schedule_frequency(self) -> Optional[str]:
        return self._schedule_frequency

    @property
    def next_run(self) -> Optional[datetime]:
        return self._next_run

    @property
    def execution_count(self) -> int:
        return self._execution_count

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    def generate(self, builder: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
        """Run ``builder`` and store its output as the report content.

        A failing builder leaves the report FAILED and raises
        ReportGenerationError.
        """
        if self._status == ReportStatus.GENERATING:
            raise InvalidStateError("Report is already being generated")

        self._status = ReportStatus.GENERATING
        self._generated_at = datetime.now()
        self._error_message = None
        try:
            body = builder()
        except Exception as e:
            self._status = ReportStatus.FAILED
            self._error_message = str(e)
            self.touch()
            raise ReportGenerationError(f"Failed to generate report {self.id}: {e}") from e

        self._content = {
            "title": self._name.upper(),
            "report_type": self._report_type.value,
            "category": self._category.value,
            "generated_by": self._generated_by,
            "generated_at": to_iso(self._generated_at),
            "parameters": dict(self._parameters),
            "data": body,
        }
        self._file_name = self.build_file_name()
        self._file_path = f"reports/{self._file_name}"
        self._file_size = len(json.dumps(self._content, default=str))
        self._status = ReportStatus.COMPLETED
        self._execution_count += 1
        self.touch()
        return self._content

    def build_file_name(self, report_format: Optional[ReportFormat] = None) -> str:
        report_format = report_format or self._format
        stamp = (self._generated_at or datetime.now()).strftime("%Y%m%d_%H%M%S")
        safe_name = re.sub(r"[^a-zA-Z0-9]", "_", self._name)
        return f"{safe_name}_{stamp}.{report_format.value}"

    def schedule(self, frequency: str, next_run: datetime) -> None:
        self._is_scheduled = True
        self._schedule_frequency = frequency
        self._next_run = next_run
        if self._status == ReportStatus.PENDING:
            self._status = ReportStatus.SCHEDULED
        self.touch()

    def unschedule(self) -> None:
        self._is_scheduled = False
        self._schedule_frequency = None
        self._next_run = None
        if self._status == ReportStatus.SCHEDULED:
            self._status = ReportStatus.PENDING
        self.touch()

    def cancel(self) -> None:
        if self._status == ReportStatus.GENERATING:
            raise InvalidStateError("Cannot cancel a report while it is generating")
        self.unschedule()
        self._status = ReportStatus.CANCELLED
        self.touch()

    def add_recipient(self, recipient: str) -> None:
        if recipient not in self._recipients:
            self._recipients.append(recipient)
            self.touch()

    def remove_recipient(self, recipient: str) -> None:
        if recipient in self._recipients:
            self._recipients.remove(recipient)
            self.touch()

    def add_parameter(self, key: str, value: Any) -> None:
        self._parameters[key] = value
        self.touch()

    def remove_parameter(self, key: str) -> None:
        if self._parameters.pop(key, None) is not None:
            self.touch()

    def add_metadata(self, key: str, value: str) -> None:
        self._metadata[key] = value
        self.touch()

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now()
        return self._is_scheduled and self._next_run is not None and self._next_run < now

    def is_ready(self) -> bool:
        return self._status == ReportStatus.COMPLETED and self._content is not None

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data.update({
            "name": self._name,
            "description": self._description,
            "report_type": self._report_type.value,
            "category": self._category.value,
            "generated_by": self._generated_by,
            "generated_at": to_iso(self._generated_at),
            "status": self._status.value,
            "format": self._format.value,
            "parameters": dict(self._parameters),
            "recipients": list(self._recipients),
            "metadata": dict(self._metadata),
            "content": self._content,
            "file_name": self._file_name,
            "file_path": self._file_path,
            "file_size": self._file_size,
            "is_scheduled": self._is_scheduled,
            "schedule_frequency": self._schedule_frequency,
            "next_run": to_iso(self._next_run),
            "execution_count": self._execution_count,
            "error_message": self._error_message,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Report":
        report = cls(data["id"], data["name"], ReportType(data["report_type"]),
                     ReportCategory(data["category"]), data.get("generated_by"))
        report._description = data.get("description")
        report._generated_at = parse_datetime(data.get("generated_at"))
        report._status = ReportStatus(data["status"])
        report._format = ReportFormat(data.get("format", ReportFormat.PDF.value))
        report._parameters = dict(data.get("parameters", {}))
        report._recipients = list(data.get("recipients", []))
        report._metadata = dict(data.get("metadata", {}))
        report._content = data.get("content")
        report._file_name = data.get("file_name")
        report._file_path = data.get("file_path")
        report._file_size = data.get("file_size", 0)
        report._is_scheduled = data.get("is_scheduled", False)
        report._schedule_frequency = data.get("schedule_frequency")
        report._next_run = parse_datetime(data.get("next_run"))
        report._execution_count = data.get("execution_count", 0)
        report._error_message = data.get("error_message")
        report._restore_base(data)
        return report
