from datetime import date, datetime, time
from typing import Any, Dict, Optional


def to_iso(value) -> Optional[str]:
    """Serialize a date, time or datetime for storage; ``None`` passes through."""
    return value.isoformat() if value is not None else None


def parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def parse_time(value: Optional[str]) -> Optional[time]:
    return time.fromisoformat(value) if value else None


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class AbstractEntity:
    """
    Base class for all domain objects with:
    - identifier assigned by the owning manager
    - created/updated timestamps
    - versioning
    """

    def __init__(self, entity_id: str):
        self._id = entity_id
        self._created_at = datetime.now()
        self._updated_at = self._created_at
        self._version = 1

    @property
    def id(self) -> str:
        return self._id

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    @property
    def version(self) -> int:
        return self._version

    def touch(self):
        self._updated_at = datetime.now()
        self._version += 1

    def _base_dict(self) -> Dict[str, Any]:
        return {
            "id": self._id,
            "created_at": to_iso(self._created_at),
            "updated_at": to_iso(self._updated_at),
            "version": self._version,
        }

    def _restore_base(self, data: Dict[str, Any]) -> None:
        self._created_at = parse_datetime(data.get("created_at")) or self._created_at
        self._updated_at = parse_datetime(data.get("updated_at")) or self._updated_at
        self._version = data.get("version", 1)

    def to_dict(self) -> Dict[str, Any]:
        return self._base_dict()

    def __eq__(self, other):
        return type(other) is type(self) and other.id == self.id

    def __hash__(self):
        return hash((type(self).__name__, self._id))

    def __repr__(self):
        return f"{type(self).__name__}(id={self._id!r})"
