"""
Repositories (entity collections)
=================================

Each repository owns one ordered collection of records and is passed
explicitly to whoever needs it (views, reports, the CLI). There is no global
registry.

Records are frozen, so an edit builds a new record with the same id and
swaps it into the same position. Every mutation bumps `revision`, which the
view engine uses to know when its cached view is stale.

There is no delete: records are only ever appended or replaced.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Dict, Generic, Iterable, Iterator, List, Optional, TypeVar

from .log import get_logger
from .models import Beneficiary, Donation, Donor, Event, Project, StaffMember

log = get_logger(__name__)

R = TypeVar("R")


class Repository(Generic[R]):
    """Ordered, in-memory collection of records of one entity type."""

    def __init__(self, name: str, records: Optional[Iterable[R]] = None) -> None:
        self.name = name
        self._records: List[R] = list(records or [])
        self._pos: Dict[int, int] = {}
        for i, r in enumerate(self._records):
            if r.id in self._pos:
                raise ValueError(f"{name}: duplicate id {r.id}")
            self._pos[r.id] = i
        self.revision = 0

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[R]:
        return iter(self._records)

    def all(self) -> List[R]:
        """Snapshot of the collection in its stored order."""
        return self._records[:]

    def get(self, record_id: int) -> Optional[R]:
        i = self._pos.get(record_id)
        return None if i is None else self._records[i]

    def next_id(self) -> int:
        """max(existing id) + 1, or 1 for an empty collection."""
        return max(self._pos, default=0) + 1

    def append(self, record: R) -> R:
        """Store `record` under a freshly assigned id and return the stored copy.

        Whatever id the caller put on the record is ignored.
        """
        new_id = self.next_id()
        stored = replace(record, id=new_id)
        self._pos[new_id] = len(self._records)
        self._records.append(stored)
        self.revision += 1
        log.info("%s: added id=%s", self.name, new_id)
        return stored

    def replace(self, record_id: int, **changes) -> R:
        """Replace the fields of an existing record (everything except `id`)."""
        i = self._pos.get(record_id)
        if i is None:
            raise KeyError(f"{self.name}: no record with id {record_id}")
        changes.pop("id", None)
        updated = replace(self._records[i], **changes)
        self._records[i] = updated
        self.revision += 1
        log.info("%s: updated id=%s fields=%s", self.name, record_id, sorted(changes))
        return updated

    def replace_all(self, records: Iterable[R]) -> None:
        """Bulk swap used for derived-field recomputation; ids must be unchanged."""
        new = list(records)
        if [r.id for r in new] != [r.id for r in self._records]:
            raise ValueError(f"{self.name}: replace_all must keep the same ids in the same order")
        self._records = new
        self.revision += 1


@dataclass
class Organization:
    """All collections of one organization, passed around by reference."""
    donors: Repository[Donor] = field(default_factory=lambda: Repository("donors"))
    projects: Repository[Project] = field(default_factory=lambda: Repository("projects"))
    beneficiaries: Repository[Beneficiary] = field(default_factory=lambda: Repository("beneficiaries"))
    staff: Repository[StaffMember] = field(default_factory=lambda: Repository("staff"))
    events: Repository[Event] = field(default_factory=lambda: Repository("events"))
    donations: Repository[Donation] = field(default_factory=lambda: Repository("donations"))

    def collection(self, name: str) -> Repository:
        key = name.lower().strip()
        repo = self.collections().get(key)
        if repo is None:
            raise ValueError(f"unknown collection: {name!r}")
        return repo

    def collections(self) -> Dict[str, Repository]:
        return {
            "donors": self.donors,
            "projects": self.projects,
            "beneficiaries": self.beneficiaries,
            "staff": self.staff,
            "events": self.events,
            "donations": self.donations,
        }

    def is_empty(self) -> bool:
        return all(len(r) == 0 for r in self.collections().values())

    def recompute_totals(self) -> None:
        """Derive donor and project donation totals from the donation ledger."""
        donor_totals: Dict[int, float] = {}
        project_totals: Dict[int, float] = {}
        for d in self.donations:
            donor_totals[d.donor_id] = donor_totals.get(d.donor_id, 0) + d.amount
            if d.project_id is not None:
                project_totals[d.project_id] = project_totals.get(d.project_id, 0) + d.amount
        self.donors.replace_all(replace(d, total_donated=donor_totals.get(d.id, 0)) for d in self.donors)
        self.projects.replace_all(replace(p, total_donations=project_totals.get(p.id, 0)) for p in self.projects)
        log.debug("recomputed totals for %d donors, %d projects", len(self.donors), len(self.projects))
