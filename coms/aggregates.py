"""
Aggregates (dashboard and report numbers)
=========================================

`compute_aggregates` is the generic companion of the view engine: sums,
counts and group-by tallies over any (possibly filtered) list of records.
Every declared aggregate is present in the result, and an empty input gives
zeros, never NaN or a ZeroDivisionError.

The dashboard/report/funding summaries below are the organization-level
numbers shown on the home screen and in the DOCX report. They are built from
`compute_aggregates` and the view engine's filter/sort stages.
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import math

from .dsa import top_k
from .engine import apply_filters, apply_sort, get_field
from .fields import ASCENDING, DESCENDING, EVENTS, Range, SortSpec
from .models import Donor, Event, Project, StaffMember

# Volunteer hours are not tracked per person; each volunteer counts as this many
VOLUNTEER_HOURS_EACH = 42.5
IMPACT_SCORE_CAP = 99


@dataclass(frozen=True)
class AggregateSpec:
    """What to compute. Keys are the output names.

    - sums:         name -> field
    - counts:       name -> None (count records) or (field, value) to count matches
    - distinct:     name -> field (number of distinct non-empty values; list
                    fields count their members)
    - group_counts: name -> field; emits "name.<value>" for each value seen,
                    or "name" = 0 when nothing was seen
    - means:        name -> field
    - ratios:       name -> (numerator name, denominator name), from the above
    """
    sums: Mapping[str, str] = field(default_factory=dict)
    counts: Mapping[str, Optional[Tuple[str, Any]]] = field(default_factory=dict)
    distinct: Mapping[str, str] = field(default_factory=dict)
    group_counts: Mapping[str, str] = field(default_factory=dict)
    means: Mapping[str, str] = field(default_factory=dict)
    ratios: Mapping[str, Tuple[str, str]] = field(default_factory=dict)


def _number(v: Any) -> Optional[float]:
    if isinstance(v, bool) or v is None:
        return None
    if isinstance(v, (int, float)):
        return v if math.isfinite(v) else None
    return None


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0 when the denominator is 0."""
    if not denominator:
        return 0
    out = numerator / denominator
    return out if math.isfinite(out) else 0


def compute_aggregates(records: Iterable[Any], spec: AggregateSpec) -> Dict[str, float]:
    rows = list(records)
    out: Dict[str, float] = {}

    for name, f in spec.sums.items():
        out[name] = sum(n for n in (_number(get_field(r, f)) for r in rows) if n is not None)

    for name, cond in spec.counts.items():
        if cond is None:
            out[name] = len(rows)
        else:
            f, wanted = cond
            out[name] = sum(1 for r in rows if get_field(r, f) == wanted)

    for name, f in spec.distinct.items():
        seen: set = set()
        for r in rows:
            v = get_field(r, f)
            if isinstance(v, (list, tuple, set, frozenset)):
                seen.update(v)
            else:
                seen.add(v)
        out[name] = len(seen - {None, ""})

    for name, f in spec.group_counts.items():
        tally: Counter = Counter()
        for r in rows:
            v = get_field(r, f)
            if isinstance(v, (list, tuple, set, frozenset)):
                tally.update(v)
            elif v is not None:
                tally[v] += 1
        if not tally:
            out[name] = 0
        for value, n in tally.items():
            out[f"{name}.{value}"] = n

    for name, f in spec.means.items():
        nums = [n for n in (_number(get_field(r, f)) for r in rows) if n is not None]
        out[name] = safe_ratio(sum(nums), len(nums))

    for name, (num, den) in spec.ratios.items():
        out[name] = safe_ratio(out.get(num, 0), out.get(den, 0))

    return out


# ---------------- Organization summaries ----------------
@dataclass
class Activity:
    kind: str
    text: str
    date: str


@dataclass
class DashboardSummary:
    total_donations: float
    active_projects: int
    total_beneficiaries: int
    active_donors: int
    # [(YYYY-MM, total)] for the last six calendar months, oldest first
    monthly_donations: List[Tuple[str, float]]
    project_status: Dict[str, int]
    top_donors: List[Donor]
    upcoming_events: List[Event]
    recent_activity: List[Activity]


def _last_months(today: date, n: int) -> List[str]:
    y, m = today.year, today.month
    out: List[str] = []
    for _ in range(n):
        out.append(f"{y:04d}-{m:02d}")
        m -= 1
        if m == 0:
            y, m = y - 1, 12
    return out[::-1]


def dashboard_summary(org, today: Optional[date] = None) -> DashboardSummary:
    today = today or date.today()
    donations = org.donations.all()
    projects = org.projects.all()

    agg = compute_aggregates(donations, AggregateSpec(
        sums={"total": "amount"},
        distinct={"donors": "donor_id"},
    ))
    status = compute_aggregates(projects, AggregateSpec(group_counts={"status": "status"}))
    project_status = {k.split(".", 1)[1]: int(v) for k, v in status.items() if "." in k}

    months = _last_months(today, 6)
    by_month = {m: 0 for m in months}
    for d in donations:
        key = d.date[:7]
        if key in by_month:
            by_month[key] += d.amount

    upcoming = apply_filters(org.events.all(), {"date": Range(low=today.isoformat())}, EVENTS)
    upcoming = apply_sort(upcoming, SortSpec("date", ASCENDING), EVENTS)[:3]

    return DashboardSummary(
        total_donations=agg["total"],
        active_projects=project_status.get("Active", 0),
        total_beneficiaries=len(org.beneficiaries),
        active_donors=int(agg["donors"]),
        monthly_donations=[(m, by_month[m]) for m in months],
        project_status=project_status,
        top_donors=top_k(org.donors, 4, key=lambda d: d.total_donated),
        upcoming_events=upcoming,
        recent_activity=recent_activity(org),
    )


def recent_activity(org, limit: int = 4) -> List[Activity]:
    donors = {d.id: d for d in org.donors}
    newest = SortSpec("date", DESCENDING)
    out: List[Activity] = []
    for d in apply_sort(org.donations.all(), newest)[:2]:
        who = donors[d.donor_id].name if d.donor_id in donors else "a donor"
        out.append(Activity("donation", f"New donation of ${d.amount:,.0f} from {who}.", d.date))
    for p in apply_sort(org.projects.all(), SortSpec("start_date", DESCENDING))[:1]:
        out.append(Activity("project", f"Project '{p.name}' is now {p.status}.", p.start_date))
    for s in apply_sort(org.staff.all(), SortSpec("joined_date", DESCENDING))[:1]:
        out.append(Activity("staff", f"New {s.role} {s.name} joined.", s.joined_date))
    return apply_sort(out, newest)[:limit]


@dataclass
class ReportSummary:
    total_beneficiaries: int
    active_projects: int
    completed_projects: int
    volunteer_hours: float
    total_income: float
    total_expenses: float
    impact_score: int


def report_summary(org) -> ReportSummary:
    projects = org.projects.all()
    p = compute_aggregates(projects, AggregateSpec(
        counts={"all": None, "active": ("status", "Active"), "completed": ("status", "Completed")},
        ratios={"completed_share": ("completed", "all")},
    ))
    volunteers = compute_aggregates(org.staff, AggregateSpec(counts={"n": ("role", "Volunteer")}))["n"]
    volunteer_hours = volunteers * VOLUNTEER_HOURS_EACH
    income = compute_aggregates(org.donations, AggregateSpec(sums={"total": "amount"}))["total"]
    expenses = sum(pr.total_expenses() for pr in projects)
    beneficiaries = len(org.beneficiaries)

    raw = (p["completed_share"] * 30
           + (beneficiaries / 1000) * 20
           + safe_ratio(income - expenses, income) * 30
           + (volunteer_hours / 1000) * 20)
    # round half up
    score = math.floor(raw + 0.5)
    return ReportSummary(
        total_beneficiaries=beneficiaries,
        active_projects=int(p["active"]),
        completed_projects=int(p["completed"]),
        volunteer_hours=volunteer_hours,
        total_income=income,
        total_expenses=expenses,
        impact_score=min(score, IMPACT_SCORE_CAP),
    )


@dataclass
class FundingSummary:
    total_budget: float
    total_donations: float
    fully_funded_count: int
    fully_funded_value: float
    overall_percentage: float


def funding_percentage(project: Project) -> float:
    """Share of budget raised, in percent; completed projects count as 100."""
    if project.status == "Completed":
        return 100.0
    return safe_ratio(project.total_donations, project.budget) * 100


def funding_summary(projects: Sequence[Project]) -> FundingSummary:
    funded = [p for p in projects if p.total_donations >= p.budget]
    agg = compute_aggregates(projects, AggregateSpec(
        sums={"budget": "budget", "donations": "total_donations"},
        ratios={"share": ("donations", "budget")},
    ))
    return FundingSummary(
        total_budget=agg["budget"],
        total_donations=agg["donations"],
        fully_funded_count=len(funded),
        fully_funded_value=sum(p.budget for p in funded),
        overall_percentage=agg["share"] * 100,
    )


@dataclass
class ProjectDetail:
    project: Project
    # raised / budget in percent, not capped and not forced to 100 for completed projects
    funding_percentage: float
    lead: Optional[StaffMember]
    team: List[StaffMember]
    milestones_completed: int
    total_expenses: float


def project_detail(org, project_id: int) -> ProjectDetail:
    """Everything the single-project screen shows, with staff ids resolved."""
    p = org.projects.get(project_id)
    if p is None:
        raise KeyError(f"projects: no record with id {project_id}")
    staff = {s.id: s for s in org.staff}
    return ProjectDetail(
        project=p,
        funding_percentage=safe_ratio(p.total_donations, p.budget) * 100,
        lead=staff.get(p.project_lead_id),
        team=[staff[i] for i in p.team_members if i in staff],
        milestones_completed=sum(1 for m in p.milestones if m.completed),
        total_expenses=p.total_expenses(),
    )
