"""
Tests for the sample data loading script.

HTTP calls are replaced with fakes so no server is needed.
"""

import pytest
import requests

import add_data


class FakeResponse:
    def __init__(self, status_code, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        return self._body


@pytest.fixture
def calls(monkeypatch):
    """Record POSTs and answer them with a 201 echoing an id."""
    recorded = []

    def fake_post(url, json=None, timeout=None):
        recorded.append((url, json))
        return FakeResponse(201, {"id": "EV001", **(json or {})})

    monkeypatch.setattr(add_data, "BASE_URL", "http://campus.test")
    monkeypatch.setattr(requests, "post", fake_post)
    return recorded


class TestPost:
    """Tests for the POST helper."""

    def test_success_returns_body(self, calls):
        body = add_data.create_event("Career Fair", "exhibition", "professional",
                                     "Employers on campus", "Careers Office", 200)

        url, payload = calls[0]
        assert url == "http://campus.test/events"
        assert payload["max_capacity"] == 200
        assert body["id"] == "EV001"

    def test_unexpected_status_returns_none(self, monkeypatch, capsys):
        monkeypatch.setattr(requests, "post", lambda url, json=None, timeout=None:
                            FakeResponse(409, text="already exists"))

        assert add_data._post("/hostel/rooms", {}, "room: C101") is None
        assert "already exists" in capsys.readouterr().out

    def test_connection_error_returns_none(self, monkeypatch):
        def refuse(url, json=None, timeout=None):
            raise requests.exceptions.ConnectionError("refused")

        monkeypatch.setattr(requests, "post", refuse)

        assert add_data._post("/events", {}, "event") is None

    def test_assignment_expects_ok(self, monkeypatch):
        monkeypatch.setattr(requests, "post", lambda url, json=None, timeout=None:
                            FakeResponse(200, {"id": "V001", "assigned_route_id": "R001"}))

        result = add_data.assign_vehicle("R001", "V001")

        assert result["assigned_route_id"] == "R001"


class TestServerDetection:
    """Tests for locating and checking the server."""

    def test_environment_wins(self, monkeypatch):
        monkeypatch.setenv("CAMPUS_BASE_URL", "http://campus.example:9000")

        assert add_data._detect_base_url() == "http://campus.example:9000"

    def test_first_healthy_candidate(self, monkeypatch):
        monkeypatch.delenv("CAMPUS_BASE_URL", raising=False)

        def fake_get(url, timeout=None):
            if url.startswith("http://127.0.0.1:8888"):
                return FakeResponse(200, {"status": "healthy"})
            raise requests.exceptions.ConnectionError("refused")

        monkeypatch.setattr(requests, "get", fake_get)

        assert add_data._detect_base_url() == "http://127.0.0.1:8888"

    def test_fallback_when_nothing_responds(self, monkeypatch):
        monkeypatch.delenv("CAMPUS_BASE_URL", raising=False)

        def refuse(url, timeout=None):
            raise requests.exceptions.ConnectionError("refused")

        monkeypatch.setattr(requests, "get", refuse)

        assert add_data._detect_base_url() == "http://127.0.0.1:8000"

    def test_check_server(self, monkeypatch):
        monkeypatch.setattr(requests, "get", lambda url, timeout=None: FakeResponse(503))

        assert add_data.check_server() is False
