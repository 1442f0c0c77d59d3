"""
Mock data source
================

Generates a plausible organization to work with when no dataset file is
given. Everything is drawn from one seeded `random.Random`, and dates are
relative to `today`, so the same seed and day always give the same data.

Donor and project donation totals are not drawn: they are derived from the
generated donations (`Organization.recompute_totals`).
"""

from __future__ import annotations
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence
import random

from .log import get_logger
from .models import (DONOR_TYPES, GENDERS, PAYMENT_METHODS, PERSON_STATUSES, PROJECT_STATUSES,
                     STAFF_ROLES, Beneficiary, Donation, Donor, Event, Milestone, Project,
                     ProjectExpense, StaffMember)
from .repository import Organization, Repository

log = get_logger(__name__)

DEFAULT_COUNTS = {
    "donors": 100,
    "projects": 25,
    "beneficiaries": 500,
    "staff": 20,
    "events": 20,
    "donations": 1000,
}

FIRST_NAMES = ["Liam", "Olivia", "Noah", "Emma", "Oliver", "Ava", "Elijah", "Charlotte", "William", "Sophia",
               "James", "Amelia", "Benjamin", "Isabella", "Lucas", "Mia", "Henry", "Evelyn", "Alexander", "Harper"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis", "Rodriguez", "Martinez",
              "Hernandez", "Lopez", "Gonzalez", "Wilson", "Anderson", "Thomas", "Taylor", "Moore", "Jackson", "Martin"]
COMPANY_NAMES = ["Innovate Inc.", "Quantum Solutions", "Starlight Foundation", "Vertex Industries", "Apex Global",
                 "Procyon Solutions", "Orion Group", "Nebula Corp", "Jupiter Enterprises", "Pulsar Systems"]
DOMAINS = ["example.com", "mail.com", "inbox.com", "tech.net", "services.org"]
STREETS = ["Main St", "Oak Ave", "Pine Rd", "Maple Dr", "Elm St", "Cedar Ln", "Birch Rd", "Willow Way"]
CITIES = ["Anytown", "Otherville", "Big City", "Smalltown", "Metropolis", "Springfield", "Rivertown", "Lakeside"]
COUNTRIES = ["USA", "Canada", "UK", "Australia", "Germany", "France"]
PROJECT_NAMES = ["Clean Water Initiative", "Youth Mentorship Program", "Urban Farming Initiative",
                 "Digital Literacy for Seniors", "Community Health Clinic"]
EVENT_TITLES = ["Community Cleanup Day", "Tech Skills Workshop", "Annual Fundraising Gala",
                "Local Food Drive", "Health and Wellness Fair"]


class _Gen:
    def __init__(self, seed: int, today: date) -> None:
        self.rng = random.Random(seed)
        self.today = today

    def pick(self, seq: Sequence):
        return seq[self.rng.randrange(len(seq))]

    def day_between(self, start: date, end: date) -> str:
        span = max((end - start).days, 0)
        return (start + timedelta(days=self.rng.randint(0, span))).isoformat()

    def person(self) -> tuple:
        first, last = self.pick(FIRST_NAMES), self.pick(LAST_NAMES)
        email = f"{first.lower()}.{last.lower()}@{self.pick(DOMAINS)}"
        return f"{first} {last}", email

    def phone(self) -> str:
        r = self.rng
        return f"{r.randint(100, 999)}-{r.randint(100, 999)}-{r.randint(1000, 9999)}"

    def address(self) -> str:
        return f"{self.rng.randint(1, 999)} {self.pick(STREETS)}, {self.pick(CITIES)}"


def generate_donors(g: _Gen, count: int) -> List[Donor]:
    out: List[Donor] = []
    for i in range(1, count + 1):
        if g.rng.random() < 0.2:
            name = g.pick(COMPANY_NAMES)
            email = "contact@" + name.lower().replace(" ", "").replace(".", "").replace(",", "") + ".org"
        else:
            name, email = g.person()
        out.append(Donor(
            id=i, name=name, email=email, phone=g.phone(),
            donor_type=g.pick(DONOR_TYPES), address=g.address(), country=g.pick(COUNTRIES),
            joined_date=g.day_between(date(2021, 1, 1), g.today),
        ))
    return out


def generate_staff(g: _Gen, count: int) -> List[StaffMember]:
    out: List[StaffMember] = []
    for i in range(1, count + 1):
        name, email = g.person()
        out.append(StaffMember(
            id=i, name=name, email=email, role=g.pick(STAFF_ROLES), phone=g.phone(),
            joined_date=g.day_between(date(2020, 1, 1), g.today),
            status="Active" if g.rng.random() < 0.85 else "Inactive",
            address=g.address(), bio="Member profile.",
        ))
    return out


def generate_projects(g: _Gen, count: int, staff_ids: Sequence[int]) -> List[Project]:
    out: List[Project] = []
    for i in range(1, count + 1):
        start = date.fromisoformat(g.day_between(date(2022, 1, 1), g.today))
        end = start + timedelta(days=g.rng.randint(90, 730))
        team = tuple(sorted(g.rng.sample(list(staff_ids), min(len(staff_ids), g.rng.randint(1, 3))))) if staff_ids else ()
        milestones = tuple(
            Milestone(name=f"Phase {k}", completed=g.rng.random() < 0.5,
                      due_date=g.day_between(start, end))
            for k in range(1, g.rng.randint(1, 4) + 1)
        )
        budget = g.rng.randint(25_000, 75_000)
        expenses = tuple(
            ProjectExpense(id=k, description=f"Expense {k}", amount=g.rng.randint(200, budget // 10),
                           date=g.day_between(start, min(end, g.today)))
            for k in range(1, g.rng.randint(0, 4) + 1)
        )
        out.append(Project(
            id=i, name=g.pick(PROJECT_NAMES), description="A project description.",
            status=g.pick(PROJECT_STATUSES), start_date=start.isoformat(), end_date=end.isoformat(),
            budget=budget, beneficiaries_helped=g.rng.randint(0, 199), location=g.pick(CITIES),
            milestones=milestones, team_members=team, project_lead_id=team[0] if team else 0,
            expenses=expenses,
        ))
    return out


def generate_beneficiaries(g: _Gen, count: int, project_ids: Sequence[int]) -> List[Beneficiary]:
    out: List[Beneficiary] = []
    for i in range(1, count + 1):
        name, email = g.person()
        pids = tuple(sorted(g.rng.sample(list(project_ids), min(len(project_ids), g.rng.randint(1, 2))))) if project_ids else ()
        out.append(Beneficiary(
            id=i, name=name, email=email, phone=g.phone(), address=g.address(),
            joined_date=g.day_between(date(2022, 1, 1), g.today), status=g.pick(PERSON_STATUSES),
            project_ids=pids, age=g.rng.randint(18, 67), gender=g.pick(GENDERS[:3]),
            household_size=g.rng.randint(1, 4), notes="Notes.",
        ))
    return out


def generate_events(g: _Gen, count: int, project_ids: Sequence[int]) -> List[Event]:
    out: List[Event] = []
    for i in range(1, count + 1):
        out.append(Event(
            id=i, title=g.pick(EVENT_TITLES), description="An event description.",
            date=g.day_between(g.today - timedelta(days=180), g.today + timedelta(days=180)),
            location=g.pick(CITIES), budget=g.rng.randint(1, 10) * 500,
            project_id=g.pick(project_ids) if project_ids and g.rng.random() < 0.7 else None,
            participants=g.rng.randint(10, 250),
        ))
    return out


def generate_donations(g: _Gen, count: int, donor_ids: Sequence[int],
                       project_ids: Sequence[int]) -> List[Donation]:
    if not donor_ids:
        return []
    out: List[Donation] = []
    for i in range(1, count + 1):
        out.append(Donation(
            id=i, donor_id=g.pick(donor_ids),
            project_id=g.pick(project_ids) if project_ids and g.rng.random() > 0.3 else None,
            amount=g.rng.randint(20, 519),
            date=g.day_between(date(2023, 1, 1), g.today),
            payment_method=g.pick(PAYMENT_METHODS),
        ))
    return out


def generate_organization(seed: int = 42, today: Optional[date] = None,
                          counts: Optional[Dict[str, int]] = None) -> Organization:
    """Build a full organization with consistent cross-references."""
    n = dict(DEFAULT_COUNTS)
    n.update(counts or {})
    g = _Gen(seed, today or date.today())

    donors = generate_donors(g, n["donors"])
    staff = generate_staff(g, n["staff"])
    projects = generate_projects(g, n["projects"], [s.id for s in staff])
    project_ids = [p.id for p in projects]
    beneficiaries = generate_beneficiaries(g, n["beneficiaries"], project_ids)
    events = generate_events(g, n["events"], project_ids)
    donations = generate_donations(g, n["donations"], [d.id for d in donors], project_ids)

    org = Organization(
        donors=Repository("donors", donors),
        projects=Repository("projects", projects),
        beneficiaries=Repository("beneficiaries", beneficiaries),
        staff=Repository("staff", staff),
        events=Repository("events", events),
        donations=Repository("donations", donations),
    )
    org.recompute_totals()
    log.info("generated mock organization (seed=%s): %s", seed,
             ", ".join(f"{k}={len(v)}" for k, v in org.collections().items()))
    return org
