"""
DOCX report tests (skipped when python-docx / matplotlib are not installed).
"""

import pytest

from coms.engine import CollectionView
from coms.fields import DONORS
from coms.repository import Organization

from conftest import TODAY

docx = pytest.importorskip("docx")
pytest.importorskip("matplotlib")

from coms.report import ReportConfig, generate_docx_report  # noqa: E402


def _text(path):
    d = docx.Document(str(path))
    return "\n".join(p.text for p in d.paragraphs)


def test_report_contents(mock_org, tmp_path):
    view = CollectionView(mock_org.donors, DONORS)
    view.filter("country", "UK")
    cfg = ReportConfig(organization_name="Helping Hands", command_log=["use donors", "filter country UK"],
                       today=TODAY)
    path = generate_docx_report(mock_org, str(tmp_path / "out" / "report.docx"), config=cfg, view=view)
    text = _text(path)
    assert "Helping Hands" in text
    assert "Key figures" in text
    assert "Current view: donors" in text
    assert "filter country UK" in text
    assert "Report date: 2025-06-15" in text
    assert len(docx.Document(path).inline_shapes) == 3


def test_report_without_donations_skips_empty_charts(tiny_org, tmp_path):
    org = Organization(donors=tiny_org.donors, projects=tiny_org.projects)
    path = generate_docx_report(org, str(tmp_path / "r.docx"), config=ReportConfig(today=TODAY))
    # only the project status pie has data
    assert len(docx.Document(path).inline_shapes) == 1
    assert "No upcoming events." in _text(path)


def test_empty_organization_rejected(tmp_path):
    with pytest.raises(ValueError):
        generate_docx_report(Organization(), str(tmp_path / "r.docx"))
