"""
Abstract interfaces shared by the persistence and service layers.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar('T')


class Repository(ABC, Generic[T]):
    """Abstract base class for repositories."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Save an entity."""
        pass

    @abstractmethod
    def find_by_id(self, entity_id: str) -> Optional[T]:
        """Find entity by ID."""
        pass

    @abstractmethod
    def find_all(self, filters: Optional[Dict[str, Any]] = None) -> List[T]:
        """Find all entities matching filters."""
        pass

    @abstractmethod
    def delete(self, entity_id: str) -> bool:
        """Delete an entity by ID."""
        pass


class Manageable(ABC, Generic[T]):
    """CRUD contract implemented by every domain manager."""

    @abstractmethod
    def create(self, entity: T) -> T:
        """Register a new entity; duplicates are rejected."""
        pass

    @abstractmethod
    def read(self, entity_id: str) -> Optional[T]:
        """Return the entity or ``None``."""
        pass

    @abstractmethod
    def update(self, entity: T) -> T:
        """Replace a stored entity."""
        pass

    @abstractmethod
    def delete(self, entity_id: str) -> bool:
        """Remove an entity."""
        pass

    @abstractmethod
    def get_all(self) -> List[T]:
        """Return every stored entity."""
        pass
