"""
Aggregate tests: compute_aggregates plus the dashboard / report / funding summaries.
"""

import math
from dataclasses import replace
from datetime import date

import pytest

from coms.aggregates import (AggregateSpec, compute_aggregates, dashboard_summary, funding_percentage,
                             funding_summary, project_detail, recent_activity, report_summary,
                             safe_ratio)
from coms.models import Beneficiary, Milestone, ProjectExpense
from coms.repository import Organization, Repository

from conftest import TODAY

SPEC = AggregateSpec(
    sums={"total": "amount"},
    counts={"n": None, "active": ("status", "Active")},
    distinct={"statuses": "status"},
    group_counts={"status": "status"},
    means={"avg": "amount"},
    ratios={"active_share": ("active", "n")},
)


def test_empty_input_gives_zeros():
    out = compute_aggregates([], SPEC)
    assert out == {"total": 0, "n": 0, "active": 0, "statuses": 0, "status": 0, "avg": 0, "active_share": 0}
    assert all(math.isfinite(v) for v in out.values())


def test_aggregates_over_sample(sample_records):
    out = compute_aggregates(sample_records, SPEC)
    assert out["total"] == 260
    assert out["n"] == 3
    assert out["active"] == 2
    assert out["statuses"] == 2
    assert out["status.Active"] == 2
    assert out["status.Inactive"] == 1
    assert out["avg"] == pytest.approx(260 / 3)
    assert out["active_share"] == pytest.approx(2 / 3)


def test_group_counts_expand_id_lists():
    rows = [{"project_ids": (1, 2)}, {"project_ids": (2,)}]
    out = compute_aggregates(rows, AggregateSpec(group_counts={"p": "project_ids"}))
    assert out == {"p.1": 1, "p.2": 2}


def test_distinct_counts_list_members():
    rows = [{"project_ids": [1, 2]}, {"project_ids": (2, 3)}, {"project_ids": []}, {"project_ids": None}]
    out = compute_aggregates(rows, AggregateSpec(distinct={"p": "project_ids"}))
    assert out == {"p": 3}


def test_group_counts_with_nothing_seen_is_zero():
    rows = [{"status": None}, {"project_ids": []}]
    out = compute_aggregates(rows, AggregateSpec(group_counts={"s": "status", "p": "project_ids"}))
    assert out == {"s": 0, "p": 0}


def test_non_numeric_values_are_skipped():
    rows = [{"amount": 5}, {"amount": None}, {"amount": "n/a"}, {"amount": float("nan")}, {"amount": True}]
    out = compute_aggregates(rows, AggregateSpec(sums={"s": "amount"}, means={"m": "amount"}))
    assert out == {"s": 5, "m": 5}


@pytest.mark.parametrize("num, den, expected", [(1, 4, 0.25), (5, 0, 0), (0, 0, 0)])
def test_safe_ratio(num, den, expected):
    assert safe_ratio(num, den) == expected


# ============================================================================
# Dashboard
# ============================================================================


def test_dashboard_numbers(tiny_org):
    dash = dashboard_summary(tiny_org, today=TODAY)
    assert dash.total_donations == 1100
    assert dash.active_projects == 1
    assert dash.total_beneficiaries == 2
    assert dash.active_donors == 2
    assert dash.project_status == {"Active": 1, "Completed": 1}


def test_dashboard_monthly_window(tiny_org):
    months = dashboard_summary(tiny_org, today=TODAY).monthly_donations
    assert [m for m, _ in months] == ["2025-01", "2025-02", "2025-03", "2025-04", "2025-05", "2025-06"]
    assert dict(months) == {"2025-01": 0, "2025-02": 100, "2025-03": 0, "2025-04": 0,
                            "2025-05": 300, "2025-06": 700}


def test_dashboard_months_cross_year_boundary(tiny_org):
    months = dashboard_summary(tiny_org, today=date(2025, 2, 1)).monthly_donations
    assert [m for m, _ in months] == ["2024-09", "2024-10", "2024-11", "2024-12", "2025-01", "2025-02"]


def test_dashboard_top_donors_and_upcoming_events(tiny_org):
    dash = dashboard_summary(tiny_org, today=TODAY)
    assert [d.id for d in dash.top_donors] == [2, 1, 3]
    assert [e.id for e in dash.upcoming_events] == [3, 2]


def test_recent_activity_newest_first(tiny_org):
    acts = recent_activity(tiny_org)
    assert len(acts) == 4
    assert [a.date for a in acts] == sorted((a.date for a in acts), reverse=True)
    assert acts[0].kind == "donation"
    assert "Apex Global" in acts[0].text


def test_dashboard_on_empty_organization():
    dash = dashboard_summary(Organization(), today=TODAY)
    assert dash.total_donations == 0
    assert dash.active_donors == 0
    assert dash.project_status == {}
    assert dash.active_projects == 0
    assert dash.top_donors == []
    assert dash.upcoming_events == []
    assert dash.recent_activity == []


# ============================================================================
# Report / funding
# ============================================================================


def test_report_summary(tiny_org):
    rep = report_summary(tiny_org)
    assert rep.total_income == 1100
    assert rep.total_expenses == 0
    assert rep.completed_projects == 1
    assert rep.volunteer_hours == 42.5
    # 0.5*30 + 2/1000*20 + 1.0*30 + 42.5/1000*20 = 45.89
    assert rep.impact_score == 46


def test_report_summary_empty_is_zero():
    rep = report_summary(Organization())
    assert rep.impact_score == 0
    assert rep.total_income == 0


def test_impact_score_is_capped(tiny_org):
    many = [Beneficiary(id=i, name=f"B{i}", email=f"b{i}@example.org") for i in range(1, 5001)]
    tiny_org.beneficiaries = Repository("beneficiaries", many)
    assert report_summary(tiny_org).impact_score == 99


def test_funding(tiny_org):
    projects = tiny_org.projects.all()
    assert [funding_percentage(p) for p in projects] == [100.0, 100.0]
    fund = funding_summary(projects)
    assert fund.total_budget == 1500
    assert fund.total_donations == 1000
    assert fund.fully_funded_count == 1
    assert fund.fully_funded_value == 1000
    assert fund.overall_percentage == pytest.approx(1000 / 1500 * 100)


def test_funding_percentage_zero_budget(tiny_org):
    p = replace(tiny_org.projects.get(1), budget=0, total_donations=0)
    assert funding_percentage(p) == 0
    assert funding_summary([p]).overall_percentage == 0


def test_project_detail(tiny_org):
    tiny_org.projects.replace(
        1, budget=4000, team_members=(2, 1, 7),
        milestones=(Milestone("Survey", True, "2024-02-01"), Milestone("Drill", False, "2024-09-01")),
        expenses=(ProjectExpense(2, "Pipes", 150, "2025-05-01"), ProjectExpense(1, "Pumps", 400, "2025-03-01")))
    d = project_detail(tiny_org, 1)
    assert d.funding_percentage == 25
    assert d.lead.name == "Olivia Brown"
    # unknown staff ids are left out
    assert [s.id for s in d.team] == [2, 1]
    assert d.milestones_completed == 1
    assert d.total_expenses == 550


def test_project_detail_raw_share_and_missing_lead(tiny_org):
    tiny_org.projects.replace(2, project_lead_id=9)
    d = project_detail(tiny_org, 2)
    assert d.funding_percentage == 0
    assert d.lead is None
    with pytest.raises(KeyError):
        project_detail(tiny_org, 99)
