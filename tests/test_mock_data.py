"""
Mock data source tests: determinism and referential consistency.
"""

from coms.mock_data import DEFAULT_COUNTS, generate_organization
from coms.models import to_dict
from coms.validation import validate

from conftest import SMALL_COUNTS, TODAY


def _snapshot(org):
    return {k: [to_dict(r) for r in repo] for k, repo in org.collections().items()}


def test_same_seed_same_data():
    a = generate_organization(seed=11, today=TODAY, counts=SMALL_COUNTS)
    b = generate_organization(seed=11, today=TODAY, counts=SMALL_COUNTS)
    assert _snapshot(a) == _snapshot(b)


def test_different_seed_differs():
    a = generate_organization(seed=11, today=TODAY, counts=SMALL_COUNTS)
    b = generate_organization(seed=12, today=TODAY, counts=SMALL_COUNTS)
    assert _snapshot(a) != _snapshot(b)


def test_default_counts():
    org = generate_organization(seed=1, today=TODAY)
    assert {k: len(v) for k, v in org.collections().items()} == DEFAULT_COUNTS


def test_ids_are_sequential(mock_org):
    for repo in mock_org.collections().values():
        assert [r.id for r in repo] == list(range(1, len(repo) + 1))


def test_cross_references_resolve(mock_org):
    donor_ids = {d.id for d in mock_org.donors}
    project_ids = {p.id for p in mock_org.projects}
    staff_ids = {s.id for s in mock_org.staff}
    assert all(d.donor_id in donor_ids for d in mock_org.donations)
    assert all(d.project_id is None or d.project_id in project_ids for d in mock_org.donations)
    assert all(set(p.team_members) <= staff_ids and p.project_lead_id in p.team_members
               for p in mock_org.projects)
    assert all(set(b.project_ids) <= project_ids for b in mock_org.beneficiaries)


def test_totals_match_donations(mock_org):
    for donor in mock_org.donors:
        expected = sum(d.amount for d in mock_org.donations if d.donor_id == donor.id)
        assert donor.total_donated == expected


def test_generated_records_are_valid(mock_org):
    for name in ("donors", "beneficiaries", "staff", "events", "donations", "projects"):
        for r in mock_org.collection(name):
            assert validate(r) == {}, (name, r.id)


def test_dates_not_after_today(mock_org):
    today = TODAY.isoformat()
    assert all(d.date <= today for d in mock_org.donations)
    assert all(d.joined_date <= today for d in mock_org.donors)
