"""
Shared fixtures for the COMS test suite.
"""

from datetime import date

import pytest

from coms.engine import Workspace
from coms.mock_data import generate_organization
from coms.models import Beneficiary, Donation, Donor, Event, Project, StaffMember
from coms.repository import Organization, Repository

TODAY = date(2025, 6, 15)

SMALL_COUNTS = {
    "donors": 12,
    "projects": 6,
    "beneficiaries": 30,
    "staff": 5,
    "events": 8,
    "donations": 60,
}


@pytest.fixture
def sample_records():
    """The three-record collection used throughout the view-engine examples."""
    return [
        {"id": 1, "status": "Active", "amount": 50},
        {"id": 2, "status": "Inactive", "amount": 200},
        {"id": 3, "status": "Active", "amount": 10},
    ]


@pytest.fixture
def mock_org():
    return generate_organization(seed=7, today=TODAY, counts=SMALL_COUNTS)


@pytest.fixture
def tiny_org():
    """A hand-built organization with easy-to-check numbers."""
    donors = [
        Donor(id=1, name="Ada Lovelace", email="ada@example.org", donor_type="Recurring",
              country="UK", joined_date="2023-01-10"),
        Donor(id=2, name="Apex Global", email="contact@apexglobal.org", donor_type="Major Sponsor",
              country="USA", joined_date="2022-05-01"),
        Donor(id=3, name="Bob Stone", email="bob@example.com", donor_type="One-Time",
              country="Canada", joined_date="2024-03-03"),
    ]
    projects = [
        Project(id=1, name="Clean Water Initiative", description="Wells.", status="Active",
                start_date="2024-01-01", end_date="2025-12-31", budget=1000,
                team_members=(1, 2), project_lead_id=1),
        Project(id=2, name="Youth Mentorship Program", description="Mentors.", status="Completed",
                start_date="2023-01-01", end_date="2023-12-31", budget=500,
                team_members=(2,), project_lead_id=2),
    ]
    staff = [
        StaffMember(id=1, name="Olivia Brown", email="olivia@example.org", role="Admin",
                    joined_date="2021-02-02"),
        StaffMember(id=2, name="Liam Davis", email="liam@example.org", role="Volunteer",
                    joined_date="2022-07-07"),
    ]
    beneficiaries = [
        Beneficiary(id=1, name="Emma Jones", email="emma@example.org", joined_date="2024-02-02",
                    project_ids=(1,), age=30, gender="Female"),
        Beneficiary(id=2, name="Noah Smith", email="noah@example.org", joined_date="2024-04-04",
                    status="Inactive", project_ids=(1, 2), age=45, gender="Male"),
    ]
    events = [
        Event(id=1, title="Local Food Drive", date="2025-05-01", location="Anytown", budget=500),
        Event(id=2, title="Annual Fundraising Gala", date="2025-07-01", location="Metropolis",
              budget=2000, project_id=1),
        Event(id=3, title="Tech Skills Workshop", date="2025-06-20", location="Lakeside", budget=0),
    ]
    donations = [
        Donation(id=1, donor_id=1, project_id=1, amount=300, date="2025-05-20"),
        Donation(id=2, donor_id=2, project_id=1, amount=700, date="2025-06-01",
                 payment_method="Bank Transfer"),
        Donation(id=3, donor_id=1, project_id=None, amount=100, date="2025-02-14",
                 payment_method="PayPal"),
    ]
    org = Organization(
        donors=Repository("donors", donors),
        projects=Repository("projects", projects),
        beneficiaries=Repository("beneficiaries", beneficiaries),
        staff=Repository("staff", staff),
        events=Repository("events", events),
        donations=Repository("donations", donations),
    )
    org.recompute_totals()
    return org


@pytest.fixture
def workspace(tiny_org):
    return Workspace(tiny_org, page_size=2)
