"""
Unit tests for report generation and export.

Tests:
- Report entity lifecycle
- Generation of each domain report
- Failure handling
- Export to JSON, CSV, TXT and HTML files
"""

import json
import os
from datetime import datetime, timedelta

import pytest

from campus.core.enums import ReportCategory, ReportFormat, ReportStatus, ReportType
from campus.core.exceptions import (
    InvalidStateError, ReportGenerationError, ResourceNotFoundError, ValidationError,
)
from campus.core.reports import Report
from campus.services.report_generator import flatten


class TestReportEntity:
    """Tests for the Report entity itself."""

    def test_generate_wraps_content(self):
        report = Report("R100", "Weekly Digest", ReportType.CUSTOM_REPORT, ReportCategory.ANALYTICS, "admin")
        report.add_parameter("week", 12)

        content = report.generate(lambda: {"visits": 3})

        assert report.is_ready() is True
        assert content["title"] == "WEEKLY DIGEST"
        assert content["generated_by"] == "admin"
        assert content["parameters"] == {"week": 12}
        assert content["data"] == {"visits": 3}
        assert report.execution_count == 1

    def test_failed_builder(self):
        report = Report("R101", "Broken", ReportType.CUSTOM_REPORT, ReportCategory.ANALYTICS)

        with pytest.raises(ReportGenerationError):
            report.generate(lambda: {}["missing"])

        assert report.status == ReportStatus.FAILED
        assert report.is_ready() is False
        assert "missing" in report.error_message

    def test_file_name_is_sanitized(self):
        report = Report("R102", "Fees & Dues 2024", ReportType.FINANCIAL_REPORT, ReportCategory.FINANCIAL)
        report.generate(lambda: {})

        name = report.build_file_name(ReportFormat.CSV)

        assert name.startswith("Fees___Dues_2024_")
        assert name.endswith(".csv")

    def test_scheduling(self):
        report = Report("R103", "Nightly", ReportType.SYSTEM_REPORT, ReportCategory.OPERATIONAL)
        now = datetime.now()

        report.schedule("daily", now - timedelta(hours=1))
        assert report.status == ReportStatus.SCHEDULED
        assert report.is_overdue(now) is True

        report.unschedule()
        assert report.status == ReportStatus.PENDING
        assert report.is_overdue(now) is False

    def test_cancel(self):
        report = Report("R104", "Nightly", ReportType.SYSTEM_REPORT, ReportCategory.OPERATIONAL)
        report.schedule("daily", datetime.now())

        report.cancel()

        assert report.status == ReportStatus.CANCELLED
        assert report.is_scheduled is False


class TestReportGeneration:
    """Tests for the report generator."""

    def test_system_overview(self, seeded, report_generator):
        report = report_generator.generate_system_overview_report("admin")

        assert report.id == "R001"
        assert report.format == ReportFormat.JSON
        assert report.is_ready() is True
        data = report.content["data"]
        assert data["events"]["total_events"] == 6
        assert data["hostel"]["total_rooms"] == 125
        assert data["transport"]["total_vehicles"] == 3

    def test_reports_are_persisted(self, seeded, report_generator):
        first = report_generator.generate_hostel_report()
        second = report_generator.generate_transport_report()

        assert second.id == "R002"
        stored = report_generator.get_report(first.id)
        assert stored.status == ReportStatus.COMPLETED
        assert stored.content["title"] == "HOSTEL REPORT"
        assert [r.id for r in report_generator.get_reports_by_type(ReportType.TRANSPORT_REPORT)] == ["R002"]

    def test_financial_summary(self, seeded, report_generator):
        data = report_generator.generate_financial_report().content["data"]

        assert data["hostel"]["total_collected"] == 2000.0
        assert data["transport_maintenance_cost"] == 250.0
        assert data["net_income"] == pytest.approx(2000.0 + data["event_registration_revenue"] - 250.0)

    def test_exam_and_event_reports(self, seeded, report_generator):
        exam = report_generator.generate_exam_report()
        event = report_generator.generate_event_report()

        assert exam.content["data"]["statistics"]["total_results"] == 5
        assert event.content["data"]["attendance"]["completed_events"] == 1

    def test_custom_report_sections(self, seeded, report_generator):
        report = report_generator.generate_custom_report(
            "Housing and Buses", ReportType.CUSTOM_REPORT, ReportCategory.OPERATIONAL,
            parameters={"sections": ["hostel", "transport"]})

        assert set(report.content["data"]) == {"hostel", "transport"}
        assert report.parameters == {"sections": ["hostel", "transport"]}

    def test_custom_report_unknown_section(self, report_generator):
        with pytest.raises(ValidationError):
            report_generator.generate_custom_report("Bad", ReportType.CUSTOM_REPORT, ReportCategory.OPERATIONAL,
                                                    parameters={"sections": ["library"]})

    def test_unsupported_type(self, report_generator):
        with pytest.raises(ValidationError):
            report_generator.generate_custom_report("Books", ReportType.LIBRARY_REPORT, ReportCategory.ACADEMIC)

    def test_registered_builder_type(self, seeded, report_generator):
        report = report_generator.generate_custom_report("Attendance", ReportType.ATTENDANCE_REPORT,
                                                         ReportCategory.ANALYTICS)

        assert report.content["data"]["completed_events"] == 1

    def test_failure_is_recorded(self, monkeypatch, event_manager, report_generator):
        def broken():
            raise RuntimeError("statistics unavailable")

        monkeypatch.setattr(event_manager, "get_statistics", broken)

        with pytest.raises(ReportGenerationError):
            report_generator.generate_event_report()

        stored = report_generator.get_report("R001")
        assert stored.status == ReportStatus.FAILED
        assert stored.error_message == "statistics unavailable"

    def test_statistics(self, seeded, report_generator):
        report_generator.generate_system_overview_report()
        report_generator.generate_hostel_report()

        stats = report_generator.get_statistics()

        assert stats["total_reports"] == 2
        assert stats["ready_reports"] == 2
        assert stats["reports_by_type"] == {"system_report": 1, "hostel_report": 1}
        assert stats["last_generated"] is not None

    def test_delete_report(self, report_generator):
        report = report_generator.generate_custom_report("Empty", ReportType.CUSTOM_REPORT,
                                                         ReportCategory.ANALYTICS)

        assert report_generator.delete_report(report.id) is True
        with pytest.raises(ResourceNotFoundError):
            report_generator.delete_report(report.id)


class TestReportExport:
    """Tests for writing reports to disk."""

    @pytest.fixture
    def overview(self, seeded, report_generator):
        return report_generator.generate_system_overview_report()

    @pytest.fixture
    def export_dir(self, report_generator):
        return os.path.realpath(report_generator.export_dir)

    def test_json_default_name(self, report_generator, overview, export_dir):
        path = report_generator.export_report(overview, ReportFormat.JSON)

        assert os.path.dirname(path) == export_dir
        assert path.endswith(overview.build_file_name(ReportFormat.JSON))
        with open(path, encoding="utf-8") as f:
            assert json.load(f)["title"] == "SYSTEM OVERVIEW"

    def test_json_into_subdirectory(self, report_generator, overview, export_dir):
        path = report_generator.export_report(overview, ReportFormat.JSON, "exports/overview.json")

        assert path == os.path.join(export_dir, "exports", "overview.json")
        assert os.path.exists(path)

    def test_csv(self, report_generator, overview):
        path = report_generator.export_report(overview, ReportFormat.CSV, "overview.csv")

        with open(path, encoding="utf-8") as f:
            lines = f.read().splitlines()
        assert lines[0] == "key,value"
        assert "events.total_events,6" in lines

    def test_text(self, report_generator, overview):
        path = report_generator.export_report(overview, ReportFormat.TXT, "overview.txt")

        with open(path, encoding="utf-8") as f:
            lines = f.read().splitlines()
        assert lines[0] == "SYSTEM OVERVIEW"
        assert "hostel.total_rooms: 125" in lines

    def test_html(self, report_generator, overview):
        path = report_generator.export_report(overview, ReportFormat.HTML, "overview.html")

        with open(path, encoding="utf-8") as f:
            html = f.read()
        assert "<h1>SYSTEM OVERVIEW</h1>" in html
        assert "<table" in html

    def test_html_escapes_title(self, report_generator):
        report = report_generator.generate_custom_report("<script>x</script>", ReportType.CUSTOM_REPORT,
                                                         ReportCategory.ANALYTICS)

        path = report_generator.export_report(report, ReportFormat.HTML, "escaped.html")

        with open(path, encoding="utf-8") as f:
            html = f.read()
        assert "<SCRIPT>" not in html
        assert "<h1>&lt;SCRIPT&gt;X&lt;/SCRIPT&gt;</h1>" in html

    def test_absolute_path_rejected(self, report_generator, overview, tmp_path):
        target = tmp_path / "outside" / "overview.json"

        with pytest.raises(ValidationError):
            report_generator.export_report(overview, ReportFormat.JSON, str(target))

        assert not target.exists()

    @pytest.mark.parametrize("file_name", [
        "../overview.json",
        "exports/../../overview.json",
        "..\\overview.json",
    ])
    def test_parent_segments_rejected(self, report_generator, overview, tmp_path, file_name):
        with pytest.raises(ValidationError):
            report_generator.export_report(overview, ReportFormat.JSON, file_name)

        assert not (tmp_path / "overview.json").exists()

    def test_unsupported_format(self, report_generator, overview):
        with pytest.raises(ValidationError):
            report_generator.export_report(overview, ReportFormat.PDF)

    def test_report_must_be_generated(self, report_generator):
        pending = Report("R900", "Pending", ReportType.SYSTEM_REPORT, ReportCategory.OPERATIONAL)

        with pytest.raises(InvalidStateError):
            report_generator.export_report(pending, ReportFormat.JSON)


class TestFlatten:
    """Tests for flattening nested report data."""

    def test_nested(self):
        assert flatten({"a": {"b": 1}, "c": [2]}) == [("a.b", 1), ("c[0]", 2)]

    def test_scalar(self):
        assert flatten(5, "total") == [("total", 5)]
