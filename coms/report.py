from __future__ import annotations

"""
COMS report generator
---------------------
This module generates a DOCX report for an organization: headline numbers,
funding, charts and key tables, plus an optional preview of the list the user
was looking at.

Design goals:
- Keep COMS usable even if report dependencies are missing (lazy imports).
- Only draw charts that have data behind them (no empty pies or histograms).
- Reuse the same aggregates the dashboard shows, so numbers always agree.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, List, Optional, Sequence, Tuple
import math
import os
import tempfile

from .aggregates import dashboard_summary, funding_percentage, funding_summary, report_summary
from .engine import get_field
from .log import get_logger

log = get_logger(__name__)


# -----------------------------
# Configuration
# -----------------------------

@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "Organization Impact Report"
    subtitle: str = "Community Organization Management System"
    organization_name: str = "Our Organization"

    # How many rows to show in preview tables
    max_rows_preview: int = 15

    # Optional: list of CLI commands used to create the current view
    command_log: Optional[List[str]] = None

    # Fixed "today" for reproducible reports (defaults to the real date)
    today: Optional[date] = None


# -----------------------------
# Helpers for clean numeric plots
# -----------------------------

def _safe_floats(values: Sequence[Any]) -> List[float]:
    """Convert a list with Nones to clean floats (skip NaN/inf)."""
    out: List[float] = []
    for v in values:
        if v is None:
            continue
        try:
            fv = float(v)
        except (TypeError, ValueError):
            continue
        if math.isfinite(fv):
            out.append(fv)
    return out


def _choose_bins(n: int) -> int:
    """Simple bin heuristic (keeps charts readable for small samples)."""
    if n <= 20:
        return 10
    if n <= 100:
        return 15
    return 30


def _money(v: float) -> str:
    return f"${v:,.0f}"


# -----------------------------
# Main entry point used by CLI
# -----------------------------

def generate_docx_report(
    org,
    out_path: str,
    *,
    config: Optional[ReportConfig] = None,
    view=None,
) -> str:
    """
    Generate a DOCX report + charts for an organization.

    `view` (a CollectionView) adds a preview of the records currently listed.
    """
    config = config or ReportConfig()

    # Lazy imports: only required when "report" is used.
    try:
        from docx import Document
        from docx.shared import Pt, Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e

    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        import numpy as np
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib (and numpy).\n"
            "Install with: python -m pip install matplotlib numpy"
        ) from e

    if org.is_empty():
        raise ValueError("No records to report on (organization is empty).")

    today = config.today or date.today()

    # -----------------------------
    # 1) Compute numbers
    # -----------------------------
    dash = dashboard_summary(org, today=today)
    rep = report_summary(org)
    fund = funding_summary(org.projects.all())
    amounts = _safe_floats([d.amount for d in org.donations])

    # -----------------------------
    # 2) Create charts
    # -----------------------------
    tmpdir = tempfile.mkdtemp(prefix="coms_report_")
    # Each chart is: (title, file_path, caption)
    chart_paths: List[Tuple[str, str, str]] = []

    def _save(filename: str) -> str:
        path = os.path.join(tmpdir, filename)
        plt.tight_layout()
        plt.savefig(path, dpi=200)
        plt.close()
        return path

    if any(total for _, total in dash.monthly_donations):
        plt.figure()
        plt.bar([m for m, _ in dash.monthly_donations], [t for _, t in dash.monthly_donations])
        plt.title("Donations, last six months")
        plt.ylabel("Amount (US$)")
        chart_paths.append((
            "Donations, last six months",
            _save("monthly_donations.png"),
            "Monthly totals of all donations received.",
        ))

    if dash.project_status:
        plt.figure()
        labels = list(dash.project_status)
        plt.pie([dash.project_status[k] for k in labels], labels=labels, autopct="%1.0f%%")
        plt.title("Projects by status")
        chart_paths.append((
            "Projects by status",
            _save("project_status.png"),
            "Share of projects in each status.",
        ))

    if amounts:
        # log10 so a few large gifts do not flatten the rest
        x = np.log10(np.array(amounts) + 1.0)
        plt.figure()
        _, _, patches = plt.hist(x, bins=_choose_bins(len(x)), edgecolor="black", linewidth=0.8)
        for i, p in enumerate(patches):
            p.set_facecolor("C0" if i % 2 == 0 else "C1")
        plt.title("Distribution of donation amounts (log10 scale)")
        plt.xlabel("log10(amount + 1)")
        plt.ylabel("Count")
        chart_paths.append((
            "Distribution of donation amounts",
            _save("donation_amounts.png"),
            "How gift sizes are spread; bars alternate colors to separate bins.",
        ))

    # -----------------------------
    # 3) Build DOCX report
    # -----------------------------
    doc = Document()

    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)

    def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
        p = doc.add_paragraph()
        r = p.add_run(text)
        r.bold = bold
        r.italic = italic
        r.font.size = Pt(size)
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER

    def _table(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        t = doc.add_table(rows=1, cols=len(headers))
        for i, h in enumerate(headers):
            t.rows[0].cells[i].text = h
        for row in rows:
            cells = t.add_row().cells
            for i, v in enumerate(row):
                cells[i].text = "" if v is None else str(v)

    _center_title(config.title, 22, bold=True)
    _center_title(config.subtitle, 12, italic=True)
    _center_title(config.organization_name, 12)

    doc.add_paragraph("")
    doc.add_heading("Key figures", level=1)
    _table(("Metric", "Value"), [
        ("Total income", _money(rep.total_income)),
        ("Total expenses", _money(rep.total_expenses)),
        ("Active donors", dash.active_donors),
        ("Beneficiaries", rep.total_beneficiaries),
        ("Projects", f"{rep.active_projects} active / {rep.completed_projects} completed"),
        ("Volunteer hours", f"{rep.volunteer_hours:,.1f}"),
        ("Impact score", rep.impact_score),
    ])

    doc.add_paragraph("")
    doc.add_heading("Funding", level=1)
    doc.add_paragraph(
        f"{_money(fund.total_donations)} raised against {_money(fund.total_budget)} budgeted "
        f"({fund.overall_percentage:.1f}%). {fund.fully_funded_count} projects are fully funded "
        f"({_money(fund.fully_funded_value)})."
    )
    _table(("Project", "Status", "Budget", "Raised", "Funded"), [
        (p.name, p.status, _money(p.budget), _money(p.total_donations), f"{funding_percentage(p):.0f}%")
        for p in org.projects
    ])

    doc.add_paragraph("")
    doc.add_heading("Visualizations", level=1)
    for title, path, caption in chart_paths:
        doc.add_paragraph(title)
        doc.add_picture(path, width=Inches(6.5))
        doc.add_paragraph(caption)
        doc.add_paragraph("")

    doc.add_heading("Top donors", level=1)
    _table(("Name", "Type", "Country", "Total donated"), [
        (d.name, d.donor_type, d.country, _money(d.total_donated)) for d in dash.top_donors
    ])

    doc.add_paragraph("")
    doc.add_heading("Upcoming events", level=1)
    if dash.upcoming_events:
        _table(("Date", "Title", "Location", "Budget"), [
            (e.date, e.title, e.location, _money(e.budget)) for e in dash.upcoming_events
        ])
    else:
        doc.add_paragraph("No upcoming events.")

    if view is not None:
        doc.add_paragraph("")
        doc.add_heading(f"Current view: {view.config.name}", level=1)
        st = view.state
        doc.add_paragraph(
            f"Filters: {st.filters or 'none'} | Search: {st.search or 'none'} | "
            f"Sort: {f'{st.sort.key} {st.sort.direction}' if st.sort else 'none'} | "
            f"Matching records: {view.total}"
        )
        cols = view.config.display_fields
        _table(cols, [[get_field(r, c) for c in cols] for r in view.rows()[:config.max_rows_preview]])

    if config.command_log:
        doc.add_paragraph("")
        doc.add_heading("Command log (reproducibility)", level=1)
        for line in config.command_log:
            doc.add_paragraph(line, style="List Bullet")

    # -----------------------------
    # Reproducibility footer
    # -----------------------------
    doc.add_paragraph("")
    doc.add_heading("Reproducibility footer", level=1)
    from . import __version__ as coms_version
    doc.add_paragraph(f"COMS version: {coms_version}")
    doc.add_paragraph(f"Report date: {today.isoformat()}")
    doc.add_paragraph(
        "Records: " + ", ".join(f"{k}={len(v)}" for k, v in org.collections().items())
    )

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    doc.save(out_path)
    log.info("report written to %s (%d charts)", out_path, len(chart_paths))
    return out_path
