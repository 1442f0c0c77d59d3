"""
Export tests: CSV cell rules, JSON, and the Excel workbook round trip.
"""

import json

import pytest

from coms.engine import CollectionView
from coms.export import csv_rows, write_csv, write_json
from coms.fields import DONORS, PROJECTS
from coms.loader import load_csv_dir, load_workbook
from coms.models import to_dict


def test_csv_rows_cell_rules():
    records = [{"id": 1, "name": "Ada", "tags": [1, 2], "ok": True, "amount": 10.0, "note": None}]
    rows = csv_rows(records, ["id", "name", "tags", "ok", "amount", "note", "missing"])
    assert rows[0] == ["id", "name", "tags", "ok", "amount", "note", "missing"]
    assert rows[1] == ["1", "Ada", "[1,2]", "true", "10", "", ""]


def test_write_csv_quotes_and_crlf(tmp_path):
    path = tmp_path / "out.csv"
    write_csv([{"id": 1, "name": 'Say "hi", ok'}, {"id": 2, "name": "two\nlines"}], str(path), ["id", "name"])
    raw = path.read_bytes().decode("utf-8")
    assert raw == 'id,name\r\n1,"Say ""hi"", ok"\r\n2,"two\nlines"\r\n'


def test_empty_export_still_has_header(tmp_path):
    path = tmp_path / "empty.csv"
    write_csv([], str(path), DONORS.export_fields)
    assert path.read_bytes().decode("utf-8") == ",".join(DONORS.export_fields) + "\r\n"


def test_nested_values_are_json_in_csv(tiny_org):
    rows = csv_rows(tiny_org.projects, ["id", "team_members"])
    assert rows[1] == ["1", "[1,2]"]


def test_view_export_uses_current_view(tiny_org, tmp_path):
    view = CollectionView(tiny_org.donors, DONORS)
    view.filter("country", "UK")
    path = tmp_path / "sub" / "donors.csv"
    assert view.export_csv(str(path)) == 1
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0].split(",") == list(DONORS.export_fields)
    assert lines[1].startswith("1,Ada Lovelace,ada@example.org")


def test_write_json_keeps_nested_fields(tiny_org, tmp_path):
    path = tmp_path / "projects.json"
    view = CollectionView(tiny_org.projects, PROJECTS)
    assert view.export_json(str(path)) == 2
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data[0]["team_members"] == [1, 2]
    assert data == [to_dict(p) for p in tiny_org.projects]


def test_workbook_round_trip(mock_org, tmp_path):
    pytest.importorskip("openpyxl")
    from coms.export import write_workbook

    path = tmp_path / "org.xlsx"
    write_workbook(mock_org, str(path))
    loaded = load_workbook(str(path))
    for name, repo in mock_org.collections().items():
        assert [to_dict(r) for r in loaded.collection(name)] == [to_dict(r) for r in repo], name


def test_csv_directory_round_trip(tiny_org, tmp_path):
    from coms.export import organization_frames

    for name, df in organization_frames(tiny_org).items():
        df.to_csv(tmp_path / f"{name}.csv", index=False)
    loaded = load_csv_dir(str(tmp_path))
    assert [to_dict(d) for d in loaded.donations] == [to_dict(d) for d in tiny_org.donations]
    assert [to_dict(p) for p in loaded.projects] == [to_dict(p) for p in tiny_org.projects]


def test_write_json_empty(tmp_path):
    path = tmp_path / "none.json"
    write_json([], str(path))
    assert json.loads(path.read_text(encoding="utf-8")) == []
