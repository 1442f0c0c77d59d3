"""
Field metadata (per-entity view configuration)
==============================================

Every entity list is driven by one table describing its fields:
- which fields the free-text search looks at,
- how a field compares when sorting (numeric, text or ISO date),
- how a field matches when filtering (equality, membership, range),
- the default sort and the columns written by CSV export.

The view engine itself is generic; this table is the only place that knows
what a donor or an event looks like.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

# compare modes
NUMERIC = "numeric"
TEXT = "text"
DATE = "date"

# match modes
EQUALS = "equals"
MEMBER = "member"
RANGE = "range"

ASCENDING = "ascending"
DESCENDING = "descending"


@dataclass(frozen=True)
class Range:
    """Inclusive range filter value; either end may be open (None)."""
    low: Any = None
    high: Any = None


@dataclass(frozen=True)
class SortSpec:
    key: str
    direction: str = ASCENDING

    @property
    def descending(self) -> bool:
        return self.direction == DESCENDING


@dataclass(frozen=True)
class FieldSpec:
    name: str
    compare: str = TEXT
    # None means the field is not filterable
    match: Optional[str] = None
    searchable: bool = False
    sortable: bool = True


@dataclass(frozen=True)
class EntityConfig:
    name: str
    fields: Tuple[FieldSpec, ...]
    default_sort: Optional[SortSpec] = None
    export_fields: Tuple[str, ...] = ()
    # columns shown by the CLI `show` command
    display_fields: Tuple[str, ...] = ()

    def field(self, name: str) -> Optional[FieldSpec]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def search_fields(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.searchable)

    @property
    def sortable_fields(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.sortable)

    @property
    def filterable_fields(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.match is not None)


DONORS = EntityConfig(
    name="donors",
    fields=(
        FieldSpec("id", NUMERIC),
        FieldSpec("name", searchable=True),
        FieldSpec("email", searchable=True),
        FieldSpec("donor_type", match=EQUALS),
        FieldSpec("country", match=EQUALS),
        FieldSpec("joined_date", DATE, match=RANGE),
        FieldSpec("total_donated", NUMERIC, match=RANGE),
    ),
    default_sort=SortSpec("total_donated", DESCENDING),
    export_fields=("id", "name", "email", "phone", "donor_type", "address",
                   "country", "joined_date", "total_donated"),
    display_fields=("id", "name", "email", "donor_type", "total_donated", "joined_date"),
)

PROJECTS = EntityConfig(
    name="projects",
    fields=(
        FieldSpec("id", NUMERIC),
        FieldSpec("name", searchable=True),
        FieldSpec("status", match=EQUALS),
        FieldSpec("location", match=EQUALS),
        FieldSpec("start_date", DATE, match=RANGE),
        FieldSpec("end_date", DATE, match=RANGE),
        FieldSpec("budget", NUMERIC, match=RANGE),
        FieldSpec("total_donations", NUMERIC),
        FieldSpec("beneficiaries_helped", NUMERIC),
        FieldSpec("team_members", NUMERIC, match=MEMBER, sortable=False),
    ),
    export_fields=("id", "name", "description", "status", "start_date", "end_date",
                   "budget", "total_donations", "beneficiaries_helped", "location",
                   "project_lead_id"),
    display_fields=("id", "name", "status", "budget", "total_donations", "end_date"),
)

BENEFICIARIES = EntityConfig(
    name="beneficiaries",
    fields=(
        FieldSpec("id", NUMERIC),
        FieldSpec("name", searchable=True),
        FieldSpec("email", searchable=True),
        FieldSpec("status", match=EQUALS),
        FieldSpec("gender", match=EQUALS),
        FieldSpec("project_ids", NUMERIC, match=MEMBER, sortable=False),
        FieldSpec("joined_date", DATE, match=RANGE),
        FieldSpec("age", NUMERIC, match=RANGE),
        FieldSpec("household_size", NUMERIC),
    ),
    default_sort=SortSpec("joined_date", DESCENDING),
    export_fields=("id", "name", "email", "phone", "address", "joined_date", "status",
                   "project_ids", "age", "gender", "household_size"),
    display_fields=("id", "name", "email", "status", "project_ids", "joined_date"),
)

STAFF = EntityConfig(
    name="staff",
    fields=(
        FieldSpec("id", NUMERIC),
        FieldSpec("name", searchable=True),
        FieldSpec("email", searchable=True),
        FieldSpec("role", match=EQUALS),
        FieldSpec("status", match=EQUALS),
        FieldSpec("assigned_project_ids", NUMERIC, match=MEMBER, sortable=False),
        FieldSpec("joined_date", DATE, match=RANGE),
    ),
    default_sort=SortSpec("name", ASCENDING),
    export_fields=("id", "name", "email", "role", "phone", "joined_date", "status",
                   "address", "assigned_project_ids"),
    display_fields=("id", "name", "email", "role", "status", "joined_date"),
)

EVENTS = EntityConfig(
    name="events",
    fields=(
        FieldSpec("id", NUMERIC),
        FieldSpec("title", searchable=True),
        FieldSpec("location", searchable=True),
        FieldSpec("date", DATE, match=RANGE),
        FieldSpec("project_id", NUMERIC, match=EQUALS),
        FieldSpec("budget", NUMERIC, match=RANGE),
        FieldSpec("participants", NUMERIC),
    ),
    default_sort=SortSpec("date", ASCENDING),
    export_fields=("id", "title", "description", "date", "location", "budget",
                   "project_id", "participants"),
    display_fields=("id", "title", "date", "location", "budget", "participants"),
)

DONATIONS = EntityConfig(
    name="donations",
    fields=(
        FieldSpec("id", NUMERIC),
        FieldSpec("donor_id", NUMERIC, match=EQUALS),
        FieldSpec("project_id", NUMERIC, match=EQUALS),
        FieldSpec("amount", NUMERIC, match=RANGE),
        FieldSpec("date", DATE, match=RANGE),
        FieldSpec("payment_method", match=EQUALS, searchable=True),
    ),
    default_sort=SortSpec("date", DESCENDING),
    export_fields=("id", "donor_id", "project_id", "amount", "date", "payment_method"),
    display_fields=("id", "donor_id", "project_id", "amount", "date", "payment_method"),
)

ENTITY_CONFIGS: Dict[str, EntityConfig] = {
    c.name: c for c in (DONORS, PROJECTS, BENEFICIARIES, STAFF, EVENTS, DONATIONS)
}


def get_config(entity: str) -> EntityConfig:
    try:
        return ENTITY_CONFIGS[entity.lower().strip()]
    except KeyError:
        raise ValueError(f"entity must be one of: {', '.join(ENTITY_CONFIGS)}") from None
