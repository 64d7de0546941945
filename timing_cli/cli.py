"""
Timing CLI - Opinionated command-line interface.

This layer provides the user-facing CLI commands, using the SDK layer
for all operations. It handles:
- Argument parsing
- TTY detection for human vs machine output
- Pretty formatting for human output
- JSON output for piping/automation
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from typing import Any

import httpx

from timing_cli.core.client import CLIError
from timing_cli.core.types import Project, TimeEntry, TimerFound
from timing_cli.sdk import TimingClient

# =============================================================================
# Output Helpers
# =============================================================================


def is_tty() -> bool:
    """Check if stdout is a TTY (human) or pipe (LLM/machine)."""
    return sys.stdout.isatty()


def json_output(data: Any, pretty: bool = False) -> None:
    """Print JSON output."""
    indent = 2 if pretty or is_tty() else None
    print(json.dumps(data, indent=indent, default=str))


def error_output(error: CLIError) -> None:
    """Print error and exit."""
    json_output(error.to_dict())
    sys.exit(1)


def success_output(data: Any) -> None:
    """Print success output."""
    json_output(data)


def table_output(
    headers: list[str],
    rows: list[list[str]],
    widths: list[int],
) -> None:
    """Print a formatted table for human output."""
    # Header
    header_line = "  ".join(h.ljust(w) if i < len(widths) else h for i, (h, w) in enumerate(zip(headers, widths)))
    print(header_line)
    print("-" * len(header_line))

    # Rows
    for row in rows:
        row_line = "  ".join(
            str(v)[:w].ljust(w) if i < len(widths) else str(v) for i, (v, w) in enumerate(zip(row, widths))
        )
        print(row_line)


def entries_table(entries: list[TimeEntry]) -> None:
    """Print time entries as a table."""
    table_output(
        ["ID", "Start", "Duration", "Project", "Title"],
        [
            [e.id or "", e.start_date or "", _format_duration(e.duration), e.project or "", e.title or ""]
            for e in entries
        ],
        [20, 26, 10, 28, 40],
    )


def print_tree(projects: list[Project], depth: int = 0) -> None:
    """Print a project hierarchy as an indented tree."""
    for project in projects:
        archived = " (archived)" if project.is_archived else ""
        print(f"{'  ' * depth}{project.title or project.ref}{archived}  [{project.id}]")
        print_tree(project.children, depth + 1)


def _format_duration(seconds: float | None) -> str:
    if seconds is None:
        return ""
    minutes, _ = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours}:{minutes:02d}"


# =============================================================================
# CLI Commands
# =============================================================================


async def cmd_projects_list(client: TimingClient, args: argparse.Namespace) -> None:
    """List projects."""
    try:
        projects = await client.projects.list(
            title=args.title,
            team_id=args.team,
            hide_archived=args.hide_archived or None,
        )
        if is_tty():
            if not projects:
                print("No projects found.")
                return
            table_output(
                ["ID", "Title", "Parent"],
                [[p.id or "", p.title or "", p.parent or ""] for p in projects],
                [20, 40, 28],
            )
        else:
            success_output({"data": [asdict(p) for p in projects], "total_count": len(projects)})
    except CLIError as e:
        error_output(e)


async def cmd_projects_tree(client: TimingClient, args: argparse.Namespace) -> None:
    """Show the project hierarchy."""
    try:
        projects = await client.projects.list_hierarchy(
            team_id=args.team,
            hide_archived=args.hide_archived or None,
        )
        if is_tty():
            print_tree(projects)
        else:
            success_output({"data": [asdict(p) for p in projects]})
    except CLIError as e:
        error_output(e)


async def cmd_projects_get(client: TimingClient, args: argparse.Namespace) -> None:
    """Get a project by ID."""
    try:
        project = await client.projects.get(args.project_id)
        success_output(asdict(project))
    except CLIError as e:
        error_output(e)


async def cmd_projects_create(client: TimingClient, args: argparse.Namespace) -> None:
    """Create a project."""
    try:
        created = await client.projects.create(
            args.title,
            parent=args.parent,
            color=args.color,
            productivity_score=args.productivity_score,
            is_archived=args.archived or None,
        )
        success_output({"data": asdict(created.data), "entries_params": created.entries_params})
    except CLIError as e:
        error_output(e)


async def cmd_projects_update(client: TimingClient, args: argparse.Namespace) -> None:
    """Update a project."""
    try:
        project = await client.projects.update(
            args.project_id,
            title=args.title,
            parent=args.parent,
            color=args.color,
            productivity_score=args.productivity_score,
            is_archived=args.archived,
        )
        success_output(asdict(project))
    except CLIError as e:
        error_output(e)


async def cmd_projects_delete(client: TimingClient, args: argparse.Namespace) -> None:
    """Delete a project and its children."""
    try:
        await client.projects.delete(args.project_id)
        success_output({"deleted": True, "project_id": args.project_id})
    except CLIError as e:
        error_output(e)


async def cmd_teams_list(client: TimingClient, args: argparse.Namespace) -> None:
    """List teams."""
    try:
        teams = await client.teams.list()
        if is_tty():
            if not teams:
                print("No teams found.")
                return
            table_output(["ID", "Name"], [[t.id or "", t.name or ""] for t in teams], [20, 40])
        else:
            success_output({"data": [asdict(t) for t in teams]})
    except CLIError as e:
        error_output(e)


async def cmd_teams_members(client: TimingClient, args: argparse.Namespace) -> None:
    """List active members of a team."""
    try:
        members = await client.teams.members(args.team_id)
        if is_tty():
            table_output(
                ["Reference", "Name", "Email"],
                [[m.ref or "", m.name or "", m.email or ""] for m in members],
                [28, 30, 40],
            )
        else:
            success_output({"data": [asdict(m) for m in members]})
    except CLIError as e:
        error_output(e)


async def cmd_report(client: TimingClient, args: argparse.Namespace) -> None:
    """Generate a report."""
    try:
        rows = await client.reports.generate(
            include_app_usage=args.app_usage or None,
            include_team_members=args.team_members or None,
            start_date_min=args.start,
            start_date_max=args.end,
            projects=args.project,
            include_child_projects=args.child_projects or None,
            search_query=args.search,
            columns=args.column,
            project_grouping_level=args.grouping_level,
            timespan_grouping_mode=args.timespan,
            sort=args.sort,
        )
        if is_tty():
            if not rows:
                print("No data in range.")
                return
            keys = sorted({k for row in rows for k in row.columns})
            table_output(
                ["Duration", *keys],
                [[_format_duration(r.duration), *[r.columns.get(k, "") for k in keys]] for r in rows],
                [10, *[30 for _ in keys]],
            )
        else:
            success_output({"data": [asdict(r) for r in rows]})
    except CLIError as e:
        error_output(e)


async def cmd_entries_list(client: TimingClient, args: argparse.Namespace) -> None:
    """List time entries."""
    try:
        page = await client.time_entries.list(
            start_date_min=args.start,
            start_date_max=args.end,
            projects=args.project,
            search_query=args.search,
            is_running=args.running or None,
            page=args.page,
        )
        if is_tty():
            if not page.data:
                print("No time entries found.")
                return
            entries_table(page.data)
            if page.has_more:
                print(f"\nMore entries available: {page.links.next}")
        else:
            success_output(
                {
                    "data": [asdict(e) for e in page.data],
                    "links": asdict(page.links),
                    "meta": page.meta,
                }
            )
    except CLIError as e:
        error_output(e)


async def cmd_entries_get(client: TimingClient, args: argparse.Namespace) -> None:
    """Get a time entry by ID."""
    try:
        entry = await client.time_entries.get(args.activity_id)
        success_output(asdict(entry))
    except CLIError as e:
        error_output(e)


async def cmd_entries_create(client: TimingClient, args: argparse.Namespace) -> None:
    """Create a time entry."""
    try:
        entry = await client.time_entries.create(
            args.start_date,
            args.end_date,
            project=args.project,
            title=args.title,
            notes=args.notes,
            replace_existing=args.replace or None,
        )
        success_output(asdict(entry))
    except CLIError as e:
        error_output(e)


async def cmd_entries_update(client: TimingClient, args: argparse.Namespace) -> None:
    """Update a time entry."""
    try:
        entry = await client.time_entries.update(
            args.activity_id,
            start_date=args.start_date,
            end_date=args.end_date,
            project=args.project,
            title=args.title,
            notes=args.notes,
        )
        success_output(asdict(entry))
    except CLIError as e:
        error_output(e)


async def cmd_entries_delete(client: TimingClient, args: argparse.Namespace) -> None:
    """Delete a time entry."""
    try:
        await client.time_entries.delete(args.activity_id)
        success_output({"deleted": True, "activity_id": args.activity_id})
    except CLIError as e:
        error_output(e)


async def cmd_entries_latest(client: TimingClient, args: argparse.Namespace) -> None:
    """Show the latest time entry."""
    try:
        activity_id = await client.time_entries.latest()
        if activity_id is None:
            success_output({"data": None})
            return
        entry = await client.time_entries.get(activity_id)
        success_output(asdict(entry))
    except CLIError as e:
        error_output(e)


async def cmd_entries_running(client: TimingClient, args: argparse.Namespace) -> None:
    """Show the running timer, if any."""
    try:
        timer = await client.time_entries.running()
        if isinstance(timer, TimerFound):
            success_output({"running": True, "data": asdict(timer.entry)})
        else:
            success_output({"running": False, "body": timer.body})
    except CLIError as e:
        error_output(e)


async def cmd_entries_start(client: TimingClient, args: argparse.Namespace) -> None:
    """Start a timer, stopping any running one."""
    try:
        entry = await client.time_entries.start(
            project=args.project,
            title=args.title,
            notes=args.notes,
        )
        success_output(asdict(entry))
    except CLIError as e:
        error_output(e)


async def cmd_entries_stop(client: TimingClient, args: argparse.Namespace) -> None:
    """Stop the running timer."""
    try:
        entry = await client.time_entries.stop()
        success_output(asdict(entry))
    except CLIError as e:
        error_output(e)


# =============================================================================
# Main CLI
# =============================================================================


def _add_project_fields(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--parent", help="Parent project reference")
    parser.add_argument("--color", help="Hex color, e.g. #FF0000")
    parser.add_argument("--productivity-score", type=float, help="Productivity score between -1 and 1")


def _add_entry_fields(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--project", help="Project reference, e.g. /projects/1")
    parser.add_argument("--title", help="Entry title")
    parser.add_argument("--notes", help="Entry notes")


def create_parser() -> argparse.ArgumentParser:  # noqa: PLR0915
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="Timing CLI - Command-line interface for the Timing web API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Output Modes:
  TTY (human):  Pretty tables
  Pipe (LLM):   Full JSON

Examples:
  timing projects tree
  timing entries start --project /projects/1 --title "Code review"
  timing entries running
  timing entries list --from 2024-07-01 --to 2024-07-31 | jq '.data[].title'
  timing report --column project --column day
""",
    )
    parser.add_argument("--base-url", help="API base URL (overrides TIMING_BASE_URL)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log HTTP requests to stderr")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # ========== Projects ==========
    projects = subparsers.add_parser("projects", help="List and manage projects")
    projects.set_defaults(func=lambda _c, _a: projects.print_help())
    projects_sub = projects.add_subparsers(dest="subcommand")

    p_list = projects_sub.add_parser("list", help="List projects")
    p_list.add_argument("--title", help="Filter by title")
    p_list.add_argument("--team", help="Team ID or reference")
    p_list.add_argument("--hide-archived", action="store_true", help="Leave out archived projects")
    p_list.set_defaults(func=cmd_projects_list)

    p_tree = projects_sub.add_parser("tree", help="Show the project hierarchy")
    p_tree.add_argument("--team", help="Team ID or reference")
    p_tree.add_argument("--hide-archived", action="store_true", help="Leave out archived projects")
    p_tree.set_defaults(func=cmd_projects_tree)

    p_get = projects_sub.add_parser("get", help="Get project details")
    p_get.add_argument("project_id", help="Project ID or reference")
    p_get.set_defaults(func=cmd_projects_get)

    p_create = projects_sub.add_parser("create", help="Create a project")
    p_create.add_argument("title", help="Project title")
    _add_project_fields(p_create)
    p_create.add_argument("--archived", action="store_true", help="Create the project archived")
    p_create.set_defaults(func=cmd_projects_create)

    p_update = projects_sub.add_parser("update", help="Update a project")
    p_update.add_argument("project_id", help="Project ID or reference")
    p_update.add_argument("--title", help="New title")
    _add_project_fields(p_update)
    archive = p_update.add_mutually_exclusive_group()
    archive.add_argument("--archive", dest="archived", action="store_const", const=True, help="Archive the project")
    archive.add_argument(
        "--unarchive", dest="archived", action="store_const", const=False, help="Unarchive the project"
    )
    p_update.set_defaults(func=cmd_projects_update)

    p_delete = projects_sub.add_parser("delete", help="Delete a project and its children")
    p_delete.add_argument("project_id", help="Project ID or reference")
    p_delete.set_defaults(func=cmd_projects_delete)

    # ========== Teams ==========
    teams = subparsers.add_parser("teams", help="List teams and members")
    teams.set_defaults(func=lambda _c, _a: teams.print_help())
    teams_sub = teams.add_subparsers(dest="subcommand")

    t_list = teams_sub.add_parser("list", help="List your teams")
    t_list.set_defaults(func=cmd_teams_list)

    t_members = teams_sub.add_parser("members", help="List active team members")
    t_members.add_argument("team_id", help="Team ID or reference")
    t_members.set_defaults(func=cmd_teams_members)

    # ========== Report ==========
    report = subparsers.add_parser("report", help="Generate a report")
    report.add_argument("--from", dest="start", help="Minimum start date (defaults to 30 days ago)")
    report.add_argument("--to", dest="end", help="Maximum start date (defaults to today)")
    report.add_argument("--project", action="append", help="Project reference (repeatable)")
    report.add_argument("--child-projects", action="store_true", help="Include child projects")
    report.add_argument("--column", action="append", help="Column to group by (repeatable)")
    report.add_argument("--sort", action="append", help="Sort column (repeatable)")
    report.add_argument("--search", help="Search query")
    report.add_argument("--grouping-level", type=int, help="Project grouping level")
    report.add_argument("--timespan", help="Timespan grouping mode (e.g. day, week, month)")
    report.add_argument("--app-usage", action="store_true", help="Include app usage")
    report.add_argument("--team-members", action="store_true", help="Include team members' data")
    report.set_defaults(func=cmd_report)

    # ========== Time Entries ==========
    entries = subparsers.add_parser("entries", help="Manage time entries and the timer")
    entries.set_defaults(func=lambda _c, _a: entries.print_help())
    entries_sub = entries.add_subparsers(dest="subcommand")

    e_list = entries_sub.add_parser("list", help="List time entries")
    e_list.add_argument("--from", dest="start", help="Minimum start date (defaults to 30 days ago)")
    e_list.add_argument("--to", dest="end", help="Maximum start date (defaults to today)")
    e_list.add_argument("--project", action="append", help="Project reference (repeatable)")
    e_list.add_argument("--search", help="Search query")
    e_list.add_argument("--running", action="store_true", help="Only the running entry")
    e_list.add_argument("--page", type=int, help="Page number")
    e_list.set_defaults(func=cmd_entries_list)

    e_get = entries_sub.add_parser("get", help="Get time entry details")
    e_get.add_argument("activity_id", help="Time entry ID or reference")
    e_get.set_defaults(func=cmd_entries_get)

    e_create = entries_sub.add_parser("create", help="Create a time entry")
    e_create.add_argument("start_date", help="ISO 8601 start")
    e_create.add_argument("end_date", help="ISO 8601 end")
    _add_entry_fields(e_create)
    e_create.add_argument("--replace", action="store_true", help="Replace overlapping entries")
    e_create.set_defaults(func=cmd_entries_create)

    e_update = entries_sub.add_parser("update", help="Update a time entry")
    e_update.add_argument("activity_id", help="Time entry ID or reference")
    e_update.add_argument("--start-date", help="ISO 8601 start")
    e_update.add_argument("--end-date", help="ISO 8601 end")
    _add_entry_fields(e_update)
    e_update.set_defaults(func=cmd_entries_update)

    e_delete = entries_sub.add_parser("delete", help="Delete a time entry")
    e_delete.add_argument("activity_id", help="Time entry ID or reference")
    e_delete.set_defaults(func=cmd_entries_delete)

    e_latest = entries_sub.add_parser("latest", help="Show the latest time entry")
    e_latest.set_defaults(func=cmd_entries_latest)

    e_running = entries_sub.add_parser("running", help="Show the running timer")
    e_running.set_defaults(func=cmd_entries_running)

    e_start = entries_sub.add_parser("start", help="Start a timer (stops the running one)")
    _add_entry_fields(e_start)
    e_start.set_defaults(func=cmd_entries_start)

    e_stop = entries_sub.add_parser("stop", help="Stop the running timer")
    e_stop.set_defaults(func=cmd_entries_stop)

    return parser


async def run(args: argparse.Namespace) -> None:
    """Run the selected command with a client that is closed afterwards."""
    async with TimingClient(base_url=args.base_url) as client:
        result = args.func(client, args)
        # Help printers are plain callables
        if asyncio.iscoroutine(result):
            try:
                await result
            except httpx.TransportError as e:
                error_output(CLIError(f"Connection error: {e}"))


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if not args.command:
        parser.print_help()
        sys.exit(0)

    asyncio.run(run(args))


if __name__ == "__main__":
    main()
