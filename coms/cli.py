"""
COMS Command Line Interface (CLI)
=================================

This file provides the interactive terminal program you run like:

    python -m coms.cli                      (mock organization)
    python -m coms.cli --xlsx "org.xlsx"    (workbook written by `export xlsx`)

It demonstrates:
- Argument parsing (argparse) on top of environment settings
- A REPL loop (Read-Eval-Print Loop) for commands
- Mapping user commands to view-engine and repository operations

Nothing is written back to the dataset file; changes live in memory until
you export them.
"""

from __future__ import annotations
from collections import Counter
from dataclasses import MISSING, fields
from datetime import date
import argparse, shlex

from .aggregates import (dashboard_summary, funding_percentage, funding_summary, project_detail,
                         report_summary)
from .config import Settings
from .engine import Workspace, get_field
from .fields import RANGE, Range
from .log import configure, get_logger
from .models import ENTITY_TYPES, ProjectExpense, from_dict, to_dict
from .query_lang import coerce_for_field
from .validation import ValidationError, check

log = get_logger(__name__)

HELP_TEXT = """
COMS commands (grouped)
-----------------------

1) Lists
   use <entity>                     (donors, projects, beneficiaries, staff, events, donations)
   show [n]                         (current page, or its first n rows)
   page <n> | next | prev
   stats
   values <field> [prefix]          (example: values country)

2) Filtering / search / sorting (every change goes back to page 1)
   filter <field> <value>           (example: filter status Active)
   filter <field> <low> [<high>]    (range fields, example: filter joined_date 2023-01-01)
   filter <field> All               (remove one filter)
   where "<expr>"                   (example: where "status == Active and age >= 18")
   search <text>                    (name/e-mail/... contains text; `search` alone clears)
   sort <field>                     (again on the same field flips the direction)
   clear                            (remove all filters)
   reset                            (filters, search and sort back to defaults)
   undo | redo

3) Records
   add <field=value> ...            (example: add name="Ada Lovelace" email=ada@example.org ...)
   edit <id> <field=value> ...      (example: edit 12 status=Inactive)
   project <id>                     (funding, lead, team, milestones and expenses of one project)
   expense <project_id> description="..." amount=<n> [date=YYYY-MM-DD]

4) Overview
   dashboard
   funding

5) Export / report
   export csv "<out.csv>"           (current view, all pages)
   export json "<out.json>"         (current view, all pages)
   export xlsx "<out.xlsx>"         (whole organization)
   report "<out.docx>"

6) Exit
   quit
"""

# Commands that do not change anything are left out of the command log
_READ_ONLY = ("help", "show", "values", "stats", "project", "dashboard", "funding", "quit", "exit")


def main(argv=None):
    """Entry point for the COMS CLI.

    1) Resolve settings (env, then flags)
    2) Load dataset or generate mock data
    3) Start an interactive REPL
    """
    ap = argparse.ArgumentParser(prog="coms", description="Community Organization Management System")
    src = ap.add_mutually_exclusive_group()
    src.add_argument("--xlsx", help="Workbook with one sheet per collection")
    src.add_argument("--csv-dir", help="Directory with one CSV per collection")
    ap.add_argument("--seed", type=int, help="Seed for the mock organization")
    ap.add_argument("--page-size", type=int, help="Rows per page (default 50)")
    ap.add_argument("--log-level", help="DEBUG, INFO, WARNING, ...")
    ap.add_argument("--log-file", help="Write logs to this file instead of stderr")
    args = ap.parse_args(argv)

    settings = Settings.from_env().with_overrides(
        seed=args.seed, page_size=args.page_size, log_level=args.log_level,
        log_file=args.log_file, data_path=args.xlsx or args.csv_dir,
    )
    configure(settings.log_level, settings.log_file)

    ws = build_workspace(settings)
    print(f"Loaded {', '.join(f'{len(r)} {k}' for k, r in ws.org.collections().items())}. Type 'help' for commands.")
    while True:
        try:
            line = input(f"coms:{ws.current}> ")
        except EOFError:
            break
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.lower() in ("quit", "exit"):
            break
        # Keep a lightweight log of commands for the report (reproducibility).
        if stripped.split()[0].lower() not in _READ_ONLY:
            ws.command_log.append(stripped)
        try:
            handle(ws, stripped)
        except ValidationError as e:
            print("Error: record not saved")
            for name, msg in sorted(e.errors.items()):
                print(f"  {name}: {msg}")
        except Exception as e:
            log.debug("command failed: %s", stripped, exc_info=True)
            print(f"Error: {e}")


def build_workspace(settings: Settings) -> Workspace:
    if settings.data_path:
        from .loader import load_organization
        print("Loading dataset...")
        org = load_organization(settings.data_path)
    else:
        from .mock_data import generate_organization
        org = generate_organization(seed=settings.seed)
    return Workspace(org, page_size=settings.page_size)


def handle(ws: Workspace, line: str) -> None:
    """Handle one CLI command line.

    This parses the command and calls the appropriate view or repository method.
    """
    view = ws.view

    # allow where/search without needing shell-style quoting
    lowered = line.lower()
    if lowered.startswith("where "):
        view.where(_unquote(line[len("where "):].strip()))
        print(f"Applied where-filter. Matching={view.total}")
        return
    if lowered == "search" or lowered.startswith("search "):
        query = _unquote(line[len("search"):].strip())
        view.search(query)
        print(f"Search {query!r}. Matching={view.total}" if query else f"Search cleared. Matching={view.total}")
        return

    parts = shlex.split(line)
    cmd = parts[0].lower()

    if cmd == "help":
        print(HELP_TEXT)
        return

    if cmd == "use":
        if len(parts) < 2:
            raise ValueError("usage: use <entity>")
        v = ws.use(parts[1])
        print(f"Now listing {v.config.name}. Matching={v.total}")
        return

    if cmd == "show":
        res = view.result()
        rows = res.records[:int(parts[1])] if len(parts) >= 2 else res.records
        if not rows:
            print(f"No {view.config.name} found matching your criteria.")
            return
        _print_rows(view, rows)
        print(f"Page {res.page + 1}/{max(res.page_count, 1)} | {res.total} matching")
        return

    if cmd == "page":
        if len(parts) < 2:
            raise ValueError("usage: page <n>")
        shown = view.goto(int(parts[1]) - 1)
        print(f"Page {shown + 1}/{max(view.page_count, 1)}")
        return

    if cmd in ("next", "prev"):
        shown = view.next_page() if cmd == "next" else view.prev_page()
        print(f"Page {shown + 1}/{max(view.page_count, 1)}")
        return

    if cmd == "stats":
        st = view.state
        print(f"{view.config.name}: {view.total} matching of {len(view.source)} | page {st.page + 1}/{max(view.page_count, 1)}")
        print(f"Filters: {st.filters or 'none'} | Search: {st.search or 'none'} | "
              f"Sort: {f'{st.sort.key} {st.sort.direction}' if st.sort else 'none'}")
        return

    if cmd == "values":
        if len(parts) < 2:
            raise ValueError("usage: values <field> [prefix]")
        field = parts[1]
        prefix = parts[2].lower() if len(parts) >= 3 else ""
        counts: Counter = Counter()
        for r in view.source:
            v = get_field(r, field)
            for item in (v if isinstance(v, (list, tuple)) else [v]):
                if item is not None and item != "":
                    counts[item] += 1
        if not counts:
            raise ValueError(f"no values for field {field!r} in {view.config.name}")
        vals = sorted((k for k in counts if str(k).lower().startswith(prefix)), key=str)
        for k in vals[:50]:
            print(f"{k} ({counts[k]})")
        if len(vals) > 50:
            print(f"... ({len(vals)} total, showing 50)")
        return

    if cmd == "filter":
        if len(parts) < 3:
            raise ValueError("usage: filter <field> <value> [<high>]")
        field = parts[1]
        spec = view.config.field(field)
        if spec is None or spec.match is None:
            raise ValueError(f"filter field must be one of: {', '.join(view.config.filterable_fields)}")
        raw = parts[2:]
        if raw[0] == "All" or raw[0] == "":
            value = None
        elif spec.match == RANGE:
            low = coerce_for_field(raw[0], spec.compare) if raw[0] != "-" else None
            high = coerce_for_field(raw[1], spec.compare) if len(raw) >= 2 else None
            value = Range(low, high)
        else:
            value = coerce_for_field(raw[0], spec.compare)
        view.filter(field, value)
        print(f"Filtered {field}={_describe(value)}. Matching={view.total}")
        return

    if cmd == "sort":
        if len(parts) < 2:
            raise ValueError("usage: sort <field>")
        field = parts[1]
        if field not in view.config.sortable_fields:
            raise ValueError(f"sort field must be one of: {', '.join(view.config.sortable_fields)}")
        s = view.sort_by(field)
        print(f"Sorted {view.config.name} by {s.key} ({s.direction}). Showing 10:")
        _print_rows(view, view.page_rows()[:10])
        return

    if cmd == "clear":
        view.clear_filters()
        print(f"Filters cleared. Matching={view.total}")
        return

    if cmd == "reset":
        view.reset()
        print("View reset.")
        return

    if cmd == "undo":
        print("Undone." if view.undo() else "Nothing to undo.")
        return

    if cmd == "redo":
        print("Redone." if view.redo() else "Nothing to redo.")
        return

    if cmd == "add":
        stored = add_record(ws, _assignments(parts[1:]))
        print(f"Added {view.config.name} id={stored.id}.")
        return

    if cmd == "edit":
        if len(parts) < 3:
            raise ValueError("usage: edit <id> <field=value> ...")
        updated = edit_record(ws, int(parts[1]), _assignments(parts[2:]))
        print(f"Updated {view.config.name} id={updated.id}.")
        return

    if cmd == "project":
        if len(parts) < 2:
            raise ValueError("usage: project <id>")
        _print_project(ws, int(parts[1]))
        return

    if cmd == "expense":
        if len(parts) < 3:
            raise ValueError('usage: expense <project_id> description="..." amount=<n> [date=YYYY-MM-DD]')
        expense = add_expense(ws, int(parts[1]), _assignments(parts[2:]))
        print(f"Added expense id={expense.id} to project {parts[1]}.")
        return

    if cmd == "dashboard":
        _print_dashboard(ws)
        return

    if cmd == "funding":
        fund = funding_summary(ws.org.projects.all())
        print(f"Raised ${fund.total_donations:,.0f} of ${fund.total_budget:,.0f} ({fund.overall_percentage:.1f}%)")
        print(f"Fully funded: {fund.fully_funded_count} projects (${fund.fully_funded_value:,.0f})")
        for p in ws.org.projects:
            print(f"[{p.id}] {p.name} | {p.status} | {funding_percentage(p):.0f}% funded")
        return

    if cmd == "report":
        # report "<path.docx>"
        from .report import generate_docx_report, ReportConfig
        if len(parts) < 2:
            raise ValueError('usage: report "<path.docx>"')
        cfg = ReportConfig(command_log=ws.command_log)
        path = generate_docx_report(ws.org, parts[1], config=cfg, view=view)
        print(f"Report written to {path}")
        return

    if cmd == "export":
        # export <csv|json|xlsx> "<path>"
        if len(parts) < 3:
            print('Usage: export csv "out.csv"  OR  export json "out.json"  OR  export xlsx "out.xlsx"')
            return
        fmt = parts[1].lower()
        out_path = parts[2]

        if fmt not in ("csv", "json", "xlsx"):
            print("Unknown export format. Use: csv, json or xlsx")
            return

        if fmt == "xlsx":
            from .export import write_workbook
            write_workbook(ws.org, out_path)
            print(f"Exported workbook to {out_path}")
            return

        if view.total == 0:
            print("Nothing to export: current view is empty.")
            return

        if fmt == "csv":
            n = view.export_csv(out_path)
            print(f"Exported {n} {view.config.name} to {out_path}")
            return

        n = view.export_json(out_path)
        print(f"Exported {n} {view.config.name} to {out_path}")
        return

    print("Unknown command. Type 'help'.")
    return


# ---------------- Record entry ----------------
def add_record(ws: Workspace, raw: dict):
    """Validate and append a new record to the current collection."""
    from .loader import parse_fields
    entity = ws.current
    cls = ENTITY_TYPES[entity]
    data = parse_fields(entity, raw)
    # required fields the user left out become blanks for validation to report
    for f in fields(cls):
        if f.default is MISSING and f.default_factory is MISSING:
            data.setdefault(f.name, None)
    data["id"] = 0
    record = check(from_dict(cls, data))
    stored = ws.org.collection(entity).append(record)
    if entity == "donations":
        ws.org.recompute_totals()
    return stored


def edit_record(ws: Workspace, record_id: int, raw: dict):
    """Validate and apply changes to an existing record of the current collection."""
    from .loader import parse_fields
    entity = ws.current
    repo = ws.org.collection(entity)
    current = repo.get(record_id)
    if current is None:
        raise KeyError(f"{entity}: no record with id {record_id}")
    merged = to_dict(current)
    merged.update(parse_fields(entity, raw))
    merged["id"] = record_id
    candidate = check(from_dict(type(current), merged))
    changes = {f.name: getattr(candidate, f.name) for f in fields(candidate) if f.name != "id"}
    updated = repo.replace(record_id, **changes)
    if entity == "donations":
        ws.org.recompute_totals()
    return updated


def add_expense(ws: Workspace, project_id: int, raw: dict) -> ProjectExpense:
    """Validate an expense and log it against a project, newest first."""
    from .loader import parse_fields
    repo = ws.org.projects
    project = repo.get(project_id)
    if project is None:
        raise KeyError(f"projects: no record with id {project_id}")
    data = parse_fields(ProjectExpense, raw)
    data.setdefault("description", None)
    data.setdefault("amount", None)
    if not data.get("date"):
        data["date"] = date.today().isoformat()
    data["id"] = max((e.id for e in project.expenses), default=0) + 1
    expense = check(from_dict(ProjectExpense, data))
    # stable: the new expense goes above older ones on the same day
    expenses = sorted((expense,) + project.expenses, key=lambda e: e.date, reverse=True)
    repo.replace(project_id, expenses=tuple(expenses))
    return expense


# ---------------- Output helpers ----------------
def _assignments(tokens) -> dict:
    out = {}
    for t in tokens:
        if "=" not in t:
            raise ValueError(f"expected field=value, got {t!r}")
        k, v = t.split("=", 1)
        out[k.strip()] = v
    return out


def _unquote(s: str) -> str:
    if len(s) >= 2 and s[0] in ('"', "'") and s[-1] == s[0]:
        return s[1:-1]
    return s


def _describe(value) -> str:
    if value is None:
        return "All"
    if isinstance(value, Range):
        return f"{value.low if value.low is not None else '...'}..{value.high if value.high is not None else '...'}"
    return str(value)


def _print_rows(view, rows):
    cols = view.config.display_fields
    for r in rows:
        print(" | ".join(f"{c}={get_field(r, c)}" for c in cols))


def _print_project(ws: Workspace, project_id: int) -> None:
    d = project_detail(ws.org, project_id)
    p = d.project
    print(f"[{p.id}] {p.name} | {p.status} | {p.location or 'no location'} | {p.start_date} to {p.end_date}")
    print(f"Raised ${p.total_donations:,.0f} of ${p.budget:,.0f} goal ({d.funding_percentage:.0f}% funded) | "
          f"Expenses ${d.total_expenses:,.0f}")
    print(f"Lead: {d.lead.name if d.lead else 'N/A'}")
    print("Team: " + (", ".join(f"{s.name} ({s.role})" for s in d.team) or "none"))
    print(f"Milestones ({d.milestones_completed}/{len(p.milestones)} done):")
    for m in p.milestones:
        print(f"  [{'x' if m.completed else ' '}] {m.name} (due {m.due_date})")
    if not p.expenses:
        print("No expenses logged for this project yet.")
        return
    print("Expenses:")
    for e in p.expenses:
        print(f"  {e.date}  {e.description}  -${e.amount:,.0f}")


def _print_dashboard(ws: Workspace) -> None:
    dash = dashboard_summary(ws.org, today=date.today())
    rep = report_summary(ws.org)
    print(f"Total donations: ${dash.total_donations:,.0f} | Active projects: {dash.active_projects} | "
          f"Beneficiaries: {dash.total_beneficiaries} | Active donors: {dash.active_donors}")
    print("Donations by month: " + ", ".join(f"{m}=${t:,.0f}" for m, t in dash.monthly_donations))
    print("Projects by status: " + ", ".join(f"{k}={v}" for k, v in dash.project_status.items()))
    print("Top donors: " + ", ".join(f"{d.name} (${d.total_donated:,.0f})" for d in dash.top_donors))
    print("Upcoming events: " + (", ".join(f"{e.date} {e.title}" for e in dash.upcoming_events) or "none"))
    for a in dash.recent_activity:
        print(f"  {a.date}  {a.text}")
    print(f"Impact score: {rep.impact_score} | Income ${rep.total_income:,.0f} | Expenses ${rep.total_expenses:,.0f}")


if __name__ == "__main__":
    main()
