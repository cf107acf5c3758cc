"""List filtering shared by every entity collection.

A list request carries an optional free-text ``search`` plus optional
equality filters: ``status`` everywhere, and a secondary discriminator
(``type`` for orders, ``priority`` for tickets). An absent filter means
"no constraint". It is never sent as an empty string and never matched as one.

The same ``ListFilter`` is used on both sides of the wire:
- the client turns UI selections into query params with ``to_params()``
- the API applies it to a SQLAlchemy statement with ``apply_list_filter()``
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy import Select, or_
from sqlalchemy.orm import InstrumentedAttribute

# Sentinel the filter dropdowns use for "no constraint"
ALL = "all"


def _normalize(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    value = str(value).strip()
    if not value or value == ALL:
        return None
    return value


@dataclass(frozen=True)
class ListFilter:
    """Search text and equality filters for one list request."""

    search: str | None = None
    status: str | None = None
    type: str | None = None
    priority: str | None = None

    def __post_init__(self) -> None:
        # Frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "search", _normalize(self.search))
        object.__setattr__(self, "status", _normalize(self.status))
        object.__setattr__(self, "type", _normalize(self.type))
        object.__setattr__(self, "priority", _normalize(self.priority))

    @classmethod
    def from_selection(
        cls,
        search_term: str = "",
        status: str = ALL,
        type: str = ALL,
        priority: str = ALL,
    ) -> ListFilter:
        """Build a filter from UI state, where ``"all"`` means unfiltered."""
        return cls(search=search_term, status=status, type=type, priority=priority)

    def to_params(self) -> dict[str, str]:
        """Query params for the request; unset filters are omitted entirely."""
        params = {
            "search": self.search,
            "status": self.status,
            "type": self.type,
            "priority": self.priority,
        }
        return {key: value for key, value in params.items() if value is not None}

    @property
    def is_empty(self) -> bool:
        return not self.to_params()


@dataclass(frozen=True)
class FilterSpec:
    """Which columns an entity searches and filters on."""

    search_columns: Sequence[InstrumentedAttribute]
    status_column: InstrumentedAttribute
    discriminators: dict[str, InstrumentedAttribute] = field(default_factory=dict)


def search_pattern(term: str) -> str:
    """ILIKE pattern for a case-insensitive substring match.

    LIKE wildcards typed by the user are escaped so they match literally.
    """
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def apply_list_filter(stmt: Select, filters: FilterSpec, list_filter: ListFilter) -> Select:
    """Add the search and equality constraints of ``list_filter`` to ``stmt``.

    Discriminators not declared by ``filters`` (e.g. ``priority`` on orders) are
    ignored rather than rejected.
    """
    if list_filter.search:
        pattern = search_pattern(list_filter.search)
        stmt = stmt.where(
            or_(*(column.ilike(pattern, escape="\\") for column in filters.search_columns))
        )

    if list_filter.status:
        stmt = stmt.where(filters.status_column == list_filter.status)

    for name, column in filters.discriminators.items():
        value = getattr(list_filter, name)
        if value:
            stmt = stmt.where(column == value)

    return stmt
