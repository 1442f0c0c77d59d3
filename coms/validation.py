"""
Record validation
=================

Checks a record before it is added or edited, the way the entry forms do.
The view engine never validates: anything that reaches a repository through
the CLI has passed `check()` first.

Each validator returns {field: message}; an empty dict means the record is
fine. `check()` raises ValidationError carrying that dict.
"""

from __future__ import annotations
from datetime import date
from typing import Any, Callable, Dict
import re

from .models import (SUPPORT_TYPES, Beneficiary, Donation, Donor, Event, Project, ProjectExpense,
                     StaffMember)

_EMAIL_RE = re.compile(r"^\S+@\S+\.\S+$")


class ValidationError(ValueError):
    def __init__(self, errors: Dict[str, str]) -> None:
        self.errors = dict(errors)
        detail = "; ".join(f"{k}: {v}" for k, v in sorted(self.errors.items()))
        super().__init__(f"invalid record ({detail})")


def _blank(v: Any) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())


def _is_date(v: Any) -> bool:
    try:
        date.fromisoformat(str(v))
    except ValueError:
        return False
    return True


def _person(r, errors: Dict[str, str]) -> None:
    if _blank(r.name):
        errors["name"] = "Name is required"
    if _blank(r.email):
        errors["email"] = "Email is required"
    elif not _EMAIL_RE.match(r.email):
        errors["email"] = "Invalid email format"
    if _blank(r.joined_date):
        errors["joined_date"] = "Joined date is required"
    elif not _is_date(r.joined_date):
        errors["joined_date"] = "Joined date must be YYYY-MM-DD"


def validate_donor(d: Donor) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    _person(d, errors)
    if _blank(d.country):
        errors["country"] = "Country is required"
    return errors


def validate_beneficiary(b: Beneficiary) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    _person(b, errors)
    if any(s.type not in SUPPORT_TYPES for s in b.support_history):
        errors["support_history"] = f"Support type must be one of: {', '.join(SUPPORT_TYPES)}"
    return errors


def validate_staff(s: StaffMember) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    _person(s, errors)
    return errors


def validate_project(p: Project) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if _blank(p.name):
        errors["name"] = "Project name is required"
    if _blank(p.description):
        errors["description"] = "Description is required"
    if _blank(p.start_date):
        errors["start_date"] = "Start date is required"
    if _blank(p.end_date):
        errors["end_date"] = "End date is required"
    if not _blank(p.start_date) and not _blank(p.end_date):
        if _is_date(p.start_date) and _is_date(p.end_date):
            if date.fromisoformat(p.end_date) < date.fromisoformat(p.start_date):
                errors["end_date"] = "End date cannot be before start date"
        else:
            errors["end_date"] = "Dates must be YYYY-MM-DD"
    if not p.budget or p.budget <= 0:
        errors["budget"] = "Budget must be a positive number"
    if not p.project_lead_id:
        errors["project_lead_id"] = "A project lead must be assigned"
    if any(_blank(m.name) or _blank(m.due_date) for m in p.milestones):
        errors["milestones"] = "All milestones must have a name and a due date."
    if any(validate_expense(e) for e in p.expenses):
        errors["expenses"] = "Every expense needs a description, a positive amount and a YYYY-MM-DD date."
    return errors


def validate_expense(e: ProjectExpense) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if _blank(e.description):
        errors["description"] = "Description is required."
    if e.amount is None or e.amount <= 0:
        errors["amount"] = "Amount must be positive."
    if _blank(e.date):
        errors["date"] = "Date is required"
    elif not _is_date(e.date):
        errors["date"] = "Date must be YYYY-MM-DD"
    return errors


def validate_event(e: Event) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if _blank(e.title):
        errors["title"] = "Event title is required"
    if _blank(e.date):
        errors["date"] = "Date is required"
    elif not _is_date(e.date):
        errors["date"] = "Date must be YYYY-MM-DD"
    if _blank(e.location):
        errors["location"] = "Location is required"
    if e.budget is not None and e.budget < 0:
        errors["budget"] = "Budget cannot be negative"
    return errors


def validate_donation(d: Donation) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if not d.donor_id:
        errors["donor_id"] = "A donor must be selected"
    if d.amount is None or d.amount <= 0:
        errors["amount"] = "Amount must be a positive number"
    if _blank(d.date):
        errors["date"] = "Date is required"
    elif not _is_date(d.date):
        errors["date"] = "Date must be YYYY-MM-DD"
    return errors


VALIDATORS: Dict[type, Callable[[Any], Dict[str, str]]] = {
    Donor: validate_donor,
    Beneficiary: validate_beneficiary,
    StaffMember: validate_staff,
    Project: validate_project,
    ProjectExpense: validate_expense,
    Event: validate_event,
    Donation: validate_donation,
}


def validate(record: Any) -> Dict[str, str]:
    fn = VALIDATORS.get(type(record))
    return fn(record) if fn else {}


def check(record: Any) -> Any:
    """Return `record` unchanged, or raise ValidationError."""
    errors = validate(record)
    if errors:
        raise ValidationError(errors)
    return record
