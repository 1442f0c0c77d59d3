"""
Loader tests: column matching, blanks and type conversion.
"""

import pandas as pd
import pytest

from coms.loader import load_organization, parse_fields, records_from_frame


def test_column_name_variants_and_blanks():
    df = pd.DataFrame({
        "ID": [1, 2],
        "Name": ["Ada", "Bob"],
        "E-mail": ["ada@example.org", "bob@example.org"],
        "Donor Type": ["Recurring", None],
        "Total Donated": [10.0, float("nan")],
    })
    donors = records_from_frame(df, "donors")
    assert [d.id for d in donors] == [1, 2]
    assert donors[0].email == "ada@example.org"
    assert donors[0].donor_type == "Recurring"
    assert donors[0].total_donated == 10
    # blanks fall back to the record defaults
    assert donors[1].donor_type == "One-Time"
    assert donors[1].total_donated == 0


def test_missing_required_column():
    df = pd.DataFrame({"name": ["Ada"]})
    with pytest.raises(KeyError, match="email"):
        records_from_frame(df, "donors")


def test_missing_ids_follow_row_order():
    df = pd.DataFrame({"name": ["Ada", "Bob"], "email": ["a@x.org", "b@x.org"]})
    assert [d.id for d in records_from_frame(df, "staff")] == [1, 2]


def test_id_lists_accept_json_or_plain_text():
    df = pd.DataFrame({
        "id": [1, 2, 3],
        "name": ["A", "B", "C"],
        "email": ["a@x.org", "b@x.org", "c@x.org"],
        "project_ids": ["[1, 2]", "3; 4", ""],
    })
    assert [b.project_ids for b in records_from_frame(df, "beneficiaries")] == [(1, 2), (3, 4), ()]


def test_optional_project_stays_none():
    df = pd.DataFrame({
        "id": [1], "donor_id": [4], "project_id": [None], "amount": ["25.5"], "date": ["2024-03-01"],
    })
    (d,) = records_from_frame(df, "donations")
    assert d.project_id is None
    assert d.amount == 25.5


def test_csv_directory_with_export_file_names(tmp_path):
    (tmp_path / "COMS_Donors_Export.csv").write_text(
        "id,name,email,country,joined_date\r\n7,Ada,ada@example.org,UK,2024-01-01\r\n", encoding="utf-8")
    (tmp_path / "notes.csv").write_text("a,b\r\n1,2\r\n", encoding="utf-8")
    org = load_organization(str(tmp_path))
    assert [d.name for d in org.donors] == ["Ada"]
    assert org.donors.next_id() == 8
    assert len(org.projects) == 0


def test_blank_required_cell_stops_the_load(tmp_path):
    (tmp_path / "donors.csv").write_text(
        "id,name,email,country,joined_date\r\n1,Ada,ada@example.org,UK,2024-01-01\r\n", encoding="utf-8")
    (tmp_path / "donations.csv").write_text(
        "id,donor_id,project_id,amount,date\r\n1,1,,,2024-01-01\r\n", encoding="utf-8")
    with pytest.raises(ValueError, match=r"donations row 2 \(id 1\).*amount"):
        load_organization(str(tmp_path))


def test_invalid_cell_names_the_row(tmp_path):
    (tmp_path / "staff.csv").write_text(
        "id,name,email,joined_date\r\n1,Olivia,olivia@example.org,2021-02-02\r\n"
        "2,Liam,not-an-email,2022-07-07\r\n", encoding="utf-8")
    with pytest.raises(ValueError, match=r"staff row 3 \(id 2\).*Invalid email format"):
        load_organization(str(tmp_path))


def test_parse_fields_converts_by_type():
    out = parse_fields("projects", {"budget": "1500", "team_members": "1,2", "name": " Wells "})
    assert out == {"budget": 1500, "team_members": [1, 2], "name": "Wells"}
    with pytest.raises(KeyError):
        parse_fields("projects", {"colour": "red"})
