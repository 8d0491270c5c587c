# Rev 0.2.0
"""Project entity and list orderings (schema v1)"""
from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional


# What the editor offers; the store accepts any integer.
PRIORITY_RANGE = range(1, 6)


@dataclass(frozen=True)
class Project:
    id: Optional[int]
    name: str
    due_date: datetime
    priority: int

    def with_id(self, project_id: int) -> "Project":
        return replace(self, id=project_id)

    @property
    def display_name(self) -> str:
        return self.name or "Anonymous"


class ProjectOrdering(Enum):
    BY_NAME = "by_name"
    BY_DUE_DATE = "by_due_date"
    BY_PRIORITY = "by_priority"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def order_by(self) -> str:
        """SQL ORDER BY clause for the project table."""
        return _ORDER_BY[self]

    @classmethod
    def parse(cls, value: str | None, default: "ProjectOrdering | None" = None) -> "ProjectOrdering":
        try:
            return cls(value)
        except ValueError:
            return default or cls.BY_PRIORITY


_LABELS = {
    ProjectOrdering.BY_NAME: "Name",
    ProjectOrdering.BY_DUE_DATE: "Due date",
    ProjectOrdering.BY_PRIORITY: "Priority",
}

# Ties on the primary key fall back to insertion order (id)
_ORDER_BY = {
    ProjectOrdering.BY_NAME: "name COLLATE NOCASE ASC, id ASC",
    ProjectOrdering.BY_DUE_DATE: "due_date DESC, id ASC",
    ProjectOrdering.BY_PRIORITY: "priority DESC, id ASC",
}
