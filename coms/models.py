"""
Data model (entity records)
===========================

Each entity the organization tracks is a small immutable record with a
stable integer `id`. We keep them frozen (`frozen=True`) so that:
- records cannot be accidentally modified while a view is built from them, and
- edits go through the repository, which swaps in a new record with the same id.

Dates are ISO strings (YYYY-MM-DD), exactly as they are entered and exported.
"""

from dataclasses import dataclass, fields, asdict
from typing import Any, Dict, Optional, Tuple

DONOR_TYPES = ("Recurring", "One-Time", "Major Sponsor")
PAYMENT_METHODS = ("Credit Card", "PayPal", "Bank Transfer")
PROJECT_STATUSES = ("Active", "Completed", "Pending", "On Hold")
PERSON_STATUSES = ("Active", "Inactive")
STAFF_ROLES = ("Admin", "Staff", "Volunteer")
GENDERS = ("Male", "Female", "Other", "Prefer not to say")
SUPPORT_TYPES = ("Financial", "Food", "Health", "Education")


@dataclass(frozen=True)
class Donor:
    id: int
    name: str
    email: str
    phone: str = ""
    donor_type: str = "One-Time"
    address: str = ""
    country: str = ""
    joined_date: str = ""
    total_donated: float = 0


@dataclass(frozen=True)
class Donation:
    id: int
    donor_id: int
    # None for a general (unrestricted) donation
    project_id: Optional[int]
    amount: float
    date: str
    payment_method: str = "Credit Card"
    receipt_url: Optional[str] = None


@dataclass(frozen=True)
class Milestone:
    name: str
    completed: bool = False
    due_date: str = ""


@dataclass(frozen=True)
class ProjectExpense:
    id: int
    description: str
    amount: float
    date: str


@dataclass(frozen=True)
class Project:
    """One funded project.

    `team_members` and `project_lead_id` refer to StaffMember ids.
    """
    id: int
    name: str
    description: str = ""
    status: str = "Pending"
    start_date: str = ""
    end_date: str = ""
    budget: float = 0
    total_donations: float = 0
    beneficiaries_helped: int = 0
    location: str = ""
    milestones: Tuple[Milestone, ...] = ()
    team_members: Tuple[int, ...] = ()
    project_lead_id: int = 0
    expenses: Tuple[ProjectExpense, ...] = ()

    def total_expenses(self) -> float:
        return sum(e.amount for e in self.expenses)


@dataclass(frozen=True)
class BeneficiarySupport:
    date: str
    type: str
    project_id: int
    amount: Optional[float] = None


@dataclass(frozen=True)
class Beneficiary:
    id: int
    name: str
    email: str
    phone: str = ""
    address: str = ""
    joined_date: str = ""
    status: str = "Active"
    project_ids: Tuple[int, ...] = ()
    age: int = 0
    gender: str = "Prefer not to say"
    household_size: int = 1
    notes: str = ""
    support_history: Tuple[BeneficiarySupport, ...] = ()


@dataclass(frozen=True)
class StaffMember:
    id: int
    name: str
    email: str
    role: str = "Volunteer"
    phone: str = ""
    joined_date: str = ""
    status: str = "Active"
    address: str = "Not specified"
    bio: str = ""
    assigned_project_ids: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Event:
    id: int
    title: str
    description: str = ""
    date: str = ""
    location: str = ""
    budget: float = 0
    # None for a general event not tied to a project
    project_id: Optional[int] = None
    participants: int = 0


ENTITY_TYPES = {
    "donors": Donor,
    "donations": Donation,
    "projects": Project,
    "beneficiaries": Beneficiary,
    "staff": StaffMember,
    "events": Event,
}

# Nested record types used when rebuilding records from plain dicts (JSON/XLSX)
_NESTED = {
    (Project, "milestones"): Milestone,
    (Project, "expenses"): ProjectExpense,
    (Beneficiary, "support_history"): BeneficiarySupport,
}


def field_names(cls) -> Tuple[str, ...]:
    return tuple(f.name for f in fields(cls))


def to_dict(record: Any) -> Dict[str, Any]:
    """Plain-dict form of a record (nested records become dicts, tuples lists)."""
    if isinstance(record, dict):
        return dict(record)
    out = asdict(record)
    for k, v in out.items():
        if isinstance(v, tuple):
            out[k] = list(v)
    return out


def from_dict(cls, data: Dict[str, Any]):
    """Build a record of type `cls` from a dict, ignoring unknown keys.

    Lists become tuples and nested dicts become their record types, so the
    result is hashable and frozen like records created in code.
    """
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        v = data[f.name]
        nested = _NESTED.get((cls, f.name))
        if nested is not None and v is not None:
            v = tuple(item if isinstance(item, nested) else from_dict(nested, item) for item in v)
        elif isinstance(v, list):
            v = tuple(v)
        kwargs[f.name] = v
    return cls(**kwargs)
