"""
Unit tests for the persistence layer.

Tests:
- SQLite database helpers and error mapping
- Repository save, lookup, filtering and deletion
- Entity state surviving a round trip through storage
"""

from datetime import date, time, timedelta

import pytest

from campus.core.enums import EventCategory, EventStatus, EventType, RoomType
from campus.core.events import Event
from campus.core.exceptions import ConfigurationError, PersistenceError
from campus.core.hostel import Room
from campus.core.transport import Bus, Van
from campus.persistence import (
    DatabaseFactory, EventRepository, RoomRepository, SQLiteDatabase, VehicleRepository,
)

TODAY = date.today()


@pytest.fixture
def events(database):
    return EventRepository(database)


def _event(event_id, name="Orientation", event_type=EventType.ORIENTATION):
    return Event(event_id, name, event_type, EventCategory.ACADEMIC)


class TestSQLiteDatabase:
    """Tests for the SQLite database wrapper."""

    def test_schema_created(self, database):
        assert database.table_exists("entities") is True
        assert database.table_exists("missing") is False

    def test_sql_errors_become_persistence_errors(self, database):
        with pytest.raises(PersistenceError):
            database.execute_query("SELECT * FROM missing")

    def test_transaction(self, database):
        insert = "INSERT INTO entities (id, type, data) VALUES (?, ?, ?)"
        assert database.execute_transaction([
            (insert, ("A1", "note", "{}")),
            (insert, ("A2", "note", "{}")),
        ]) is True

        rows = database.execute_query("SELECT id FROM entities WHERE type = ? ORDER BY id", ("note",))
        assert [r["id"] for r in rows] == ["A1", "A2"]

    def test_file_database_persists(self, tmp_path):
        path = str(tmp_path / "campus.db")
        EventRepository(SQLiteDatabase(path)).save(_event("EV001"))

        reopened = EventRepository(SQLiteDatabase(path))

        assert reopened.find_by_id("EV001").name == "Orientation"

    def test_factory(self):
        db = DatabaseFactory.create_database("memory")
        assert isinstance(db, SQLiteDatabase)
        assert db.database_path == ":memory:"
        db.close()

    def test_closed_database_rejects_queries(self, tmp_path):
        db = SQLiteDatabase(str(tmp_path / "campus.db"))

        db.close()

        assert db.is_closed is True
        with pytest.raises(PersistenceError):
            db.table_exists("entities")

    def test_factory_rejects_unknown_type(self):
        with pytest.raises(ConfigurationError):
            DatabaseFactory.create_database("oracle")


class TestBaseRepository:
    """Tests for generic repository behaviour."""

    def test_save_and_find(self, events):
        event = _event("EV001")
        event.schedule(TODAY + timedelta(days=3), time(9, 0), time(11, 0), "Main Hall")
        event.register_participant("S001")

        events.save(event)
        stored = events.find_by_id("EV001")

        assert stored == event
        assert stored.status == EventStatus.SCHEDULED
        assert stored.event_date == TODAY + timedelta(days=3)
        assert stored.start_time == time(9, 0)
        assert stored.registered_participants == ["S001"]
        assert stored.version == event.version

    def test_save_updates_existing(self, events):
        event = _event("EV001")
        events.save(event)

        event.name = "Orientation Day"
        events.save(event)

        assert events.count() == 1
        assert events.find_by_id("EV001").name == "Orientation Day"

    def test_missing_entity(self, events):
        assert events.find_by_id("EV404") is None
        assert events.delete("EV404") is False
        assert events.exists("EV404") is False

    def test_delete(self, events):
        events.save(_event("EV001"))

        assert events.delete("EV001") is True
        assert events.count() == 0

    def test_filters(self, events):
        workshop = _event("EV001", "Git Basics", EventType.WORKSHOP)
        workshop.schedule(TODAY, time(9, 0), time(10, 0), "Lab")
        events.save(workshop)
        events.save(_event("EV002", "Welcome Talk", EventType.LECTURE))
        events.save(_event("EV003", "Rust Basics", EventType.WORKSHOP))

        assert [e.id for e in events.find_by_type(EventType.WORKSHOP)] == ["EV001", "EV003"]
        assert [e.id for e in events.find_by_status(EventStatus.PLANNED)] == ["EV002", "EV003"]
        assert [e.id for e in events.find_all({"status": EventStatus.PLANNED,
                                               "event_type": EventType.WORKSHOP})] == ["EV003"]
        assert events.count({"status": EventStatus.SCHEDULED}) == 1
        assert events.count({"event_type": "lecture"}) == 1
        assert [e.id for e in events.find_by_date(TODAY)] == ["EV001"]

    def test_types_are_isolated(self, database, events):
        rooms = RoomRepository(database)
        events.save(_event("X001"))
        rooms.save(Room("X001", "BLK-A", 1, RoomType.SINGLE))

        assert isinstance(events.find_by_id("X001"), Event)
        assert isinstance(rooms.find_by_id("X001"), Room)
        assert events.count() == 1

    def test_corrupt_record(self, database, events):
        database.execute_update("INSERT INTO entities (id, type, data) VALUES (?, ?, ?)",
                                ("EV009", "event", "{not json"))

        with pytest.raises(PersistenceError):
            events.find_by_id("EV009")

    @pytest.mark.parametrize("raw", [
        "{not json",
        "[]",
        '{"id": "EV010"}',
        '{"id": "EV010", "name": "Talk", "event_type": "gala", "category": "academic"}',
    ])
    def test_corrupt_record_in_listing(self, database, events, raw):
        events.save(_event("EV001"))
        database.execute_update("INSERT INTO entities (id, type, data) VALUES (?, ?, ?)",
                                ("EV010", "event", raw))

        with pytest.raises(PersistenceError):
            events.find_all()


class TestDomainRepositories:
    """Tests for repository-specific finders."""

    def test_vehicle_subclass_restored(self, database):
        vehicles = VehicleRepository(database)
        bus = Bus("V001", "BUS001", "Citaro", "Mercedes", 2021, 40)
        bus.set_wifi(True)
        vehicles.save(bus)
        vehicles.save(Van("V002", "VAN001", "Transit", "Ford", 2020, 9))

        stored = vehicles.find_by_id("V001")

        assert isinstance(stored, Bus)
        assert stored.has_wifi is True
        assert "WiFi" in stored.amenities
        assert isinstance(vehicles.find_by_registration("VAN001"), Van)
        assert vehicles.find_by_registration("NOPE") is None

    def test_room_finders(self, database):
        rooms = RoomRepository(database)
        single = Room("A101", "BLK-A", 1, RoomType.SINGLE)
        single.allocate_to_student("S001")
        rooms.save(single)
        rooms.save(Room("B101", "BLK-B", 1, RoomType.DOUBLE))

        assert [r.id for r in rooms.find_by_block("BLK-B")] == ["B101"]
        assert [r.id for r in rooms.find_by_type(RoomType.SINGLE)] == ["A101"]
        assert rooms.find_by_occupant("S001").id == "A101"
        assert rooms.find_by_occupant("S999") is None
