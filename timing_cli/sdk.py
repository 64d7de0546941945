"""
Timing SDK - High-level client with nice ergonomics.

This layer provides a clean, typed, async interface for the Timing API.
Built on top of the core APIClient.
"""

import builtins
import logging
from datetime import date
from typing import Any

import httpx

from timing_cli.core.client import (
    DEFAULT_TIMEOUT,
    APIClient,
    TimingError,
    bool_to_int,
    entry_id_from_reference,
)
from timing_cli.core.types import (
    CreatedProject,
    Project,
    ReportRow,
    RunningTimer,
    Team,
    TeamMember,
    TimeEntry,
    TimeEntryPage,
    TimerFound,
    TimerNotRunning,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _isoformat(value: date | str | None) -> str | None:
    """Serialize a date/datetime argument; strings pass through untouched."""
    if value is None or isinstance(value, str):
        return value
    return value.isoformat()


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    """Drop unset fields from a request body."""
    return {k: v for k, v in data.items() if v is not None}


def _listed(values: builtins.list[Any] | None) -> builtins.list[str] | None:
    """Encode a list-valued filter; an empty list counts as unset."""
    if not values:
        return None
    return [str(v) for v in values]


class TimingClient:
    """
    High-level Timing API client with typed async methods.

    Example:
        async with TimingClient(api_key="...") as timing:
            created = await timing.projects.create("Client work")
            entry = await timing.time_entries.start(project=created.data.ref)
            page = await timing.time_entries.list(**created.entries_params)
            await timing.time_entries.stop()

    """

    entry_id_from_reference = staticmethod(entry_id_from_reference)

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Timing client.

        Args:
            api_key: Timing API key (or TIMING_API_KEY env var)
            base_url: API base URL (or TIMING_BASE_URL env var)
            timeout: Request timeout in seconds
            transport: Custom httpx transport

        """
        self._client = APIClient(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

        # Sub-clients for different domains
        self.projects = ProjectOperations(self._client)
        self.reports = ReportOperations(self._client)
        self.teams = TeamOperations(self._client)
        self.time_entries = TimeEntryOperations(self._client)

    @property
    def base_url(self) -> str:
        """Get the API base URL."""
        return self._client.base_url

    async def aclose(self) -> None:
        """Release the underlying HTTP connections."""
        await self._client.aclose()

    async def __aenter__(self) -> "TimingClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()


# =============================================================================
# Project Operations
# =============================================================================


class ProjectOperations:
    """Operations for managing projects."""

    def __init__(self, client: APIClient):
        self._client = client

    async def list_hierarchy(
        self,
        team_id: str | int | None = None,
        hide_archived: bool | None = None,
    ) -> builtins.list[Project]:
        """
        Return the complete project hierarchy.

        Args:
            team_id: Team ID or reference to restrict the listing to
            hide_archived: Leave out archived projects and their children

        Returns:
            Root projects with fully populated children

        """
        result = await self._client.get(
            f"{API_PREFIX}/projects/hierarchy",
            {
                "team_id": entry_id_from_reference(team_id) if team_id is not None else None,
                "hide_archived": bool_to_int(hide_archived),
            },
        )
        return [Project.from_dict(item) for item in result.get("data") or []]

    async def list(
        self,
        title: str | None = None,
        team_id: str | int | None = None,
        hide_archived: bool | None = None,
    ) -> builtins.list[Project]:
        """
        Return a list containing all projects.

        Args:
            title: Filter by project title
            team_id: Team ID or reference to restrict the listing to
            hide_archived: Leave out archived projects and their children

        Returns:
            Projects; their children are reference-only stubs

        """
        result = await self._client.get(
            f"{API_PREFIX}/projects",
            {
                "title": title,
                "team_id": entry_id_from_reference(team_id) if team_id is not None else None,
                "hide_archived": bool_to_int(hide_archived),
            },
        )
        return [Project.from_dict(item) for item in result.get("data") or []]

    async def create(
        self,
        title: str,
        parent: str | builtins.list[str] | None = None,
        color: str | None = None,
        productivity_score: float | None = None,
        is_archived: bool | None = None,
    ) -> CreatedProject:
        """
        Create a new project.

        Args:
            title: Project title
            parent: Parent project reference (or title chain)
            color: Hex color, e.g. "#FF0000"
            productivity_score: Between -1 and 1
            is_archived: Create the project archived

        Returns:
            CreatedProject; entries_params is ready to pass to time_entries.list()
            when the server links the new project's time entries

        """
        result = await self._client.post(
            f"{API_PREFIX}/projects",
            _compact(
                {
                    "title": title,
                    "parent": parent,
                    "color": color,
                    "productivity_score": productivity_score,
                    "is_archived": is_archived,
                }
            ),
        )
        project = Project.from_dict(result.get("data") or {})

        entries_params = None
        if (result.get("links") or {}).get("time-entries") and project.ref:
            entries_params = {"projects": [project.ref]}

        return CreatedProject(data=project, entries_params=entries_params)

    async def get(self, project_id: str | int) -> Project:
        """
        Display the specified project.

        Child projects are provided as references only.

        Args:
            project_id: The ID or full reference of the project

        """
        result = await self._client.get(f"{API_PREFIX}/projects/{entry_id_from_reference(project_id)}")
        return Project.from_dict(result["data"])

    async def update(
        self,
        project_id: str | int,
        title: str | None = None,
        parent: str | builtins.list[str] | None = None,
        color: str | None = None,
        productivity_score: float | None = None,
        is_archived: bool | None = None,
    ) -> Project:
        """
        Update the specified project.

        Args:
            project_id: The ID or full reference of the project
            title: New title
            parent: New parent project reference
            color: New hex color
            productivity_score: New productivity score
            is_archived: Archive or unarchive the project

        Returns:
            The updated Project

        """
        result = await self._client.put(
            f"{API_PREFIX}/projects/{entry_id_from_reference(project_id)}",
            _compact(
                {
                    "title": title,
                    "parent": parent,
                    "color": color,
                    "productivity_score": productivity_score,
                    "is_archived": is_archived,
                }
            ),
        )
        return Project.from_dict(result["data"])

    async def delete(self, project_id: str | int) -> None:
        """Delete the specified project and all of its children."""
        await self._client.delete(f"{API_PREFIX}/projects/{entry_id_from_reference(project_id)}")


# =============================================================================
# Report Operations
# =============================================================================


class ReportOperations:
    """Operations for generating reports."""

    def __init__(self, client: APIClient):
        self._client = client

    async def generate(  # noqa: PLR0913
        self,
        include_app_usage: bool | None = None,
        include_team_members: bool | None = None,
        team_members: builtins.list[str] | None = None,
        start_date_min: date | str | None = None,
        start_date_max: date | str | None = None,
        projects: builtins.list[str] | None = None,
        include_child_projects: bool | None = None,
        search_query: str | None = None,
        columns: builtins.list[str] | None = None,
        project_grouping_level: int | None = None,
        include_project_data: bool | None = None,
        timespan_grouping_mode: str | None = None,
        sort: builtins.list[str] | None = None,
    ) -> builtins.list[ReportRow]:
        """
        Generate a report that can contain both time entries and app usage.

        Each row holds the total duration (in seconds) for its grouping columns.
        Without both start_date_min and start_date_max the server reports on
        midnight (UTC) 30 days ago through end of day (UTC) today.

        Fetching large amounts of app usage is expensive server-side; avoid
        requesting it frequently.

        Returns:
            List of ReportRow

        """
        result = await self._client.get(
            f"{API_PREFIX}/report",
            {
                "include_app_usage": include_app_usage,
                "include_team_members": include_team_members,
                "team_members[]": _listed(team_members),
                "start_date_min": _isoformat(start_date_min),
                "start_date_max": _isoformat(start_date_max),
                "projects[]": _listed(projects),
                "include_child_projects": include_child_projects,
                "search_query": search_query,
                "columns[]": _listed(columns),
                "project_grouping_level": project_grouping_level,
                "include_project_data": include_project_data,
                "timespan_grouping_mode": timespan_grouping_mode,
                "sort[]": _listed(sort),
            },
        )
        return [ReportRow.from_dict(row) for row in result.get("data") or []]


# =============================================================================
# Team Operations
# =============================================================================


class TeamOperations:
    """Operations for teams and their members."""

    def __init__(self, client: APIClient):
        self._client = client

    async def list(self) -> builtins.list[Team]:
        """Return all the teams you are a member of."""
        result = await self._client.get(f"{API_PREFIX}/teams")
        return [Team.from_dict(item) for item in result.get("data") or []]

    async def members(self, team_id: str | int) -> builtins.list[TeamMember]:
        """
        Return all active members of the given team.

        Members with pending invitations are excluded.

        Args:
            team_id: The ID or full reference of the team

        """
        result = await self._client.get(f"{API_PREFIX}/teams/{entry_id_from_reference(team_id)}/members")
        return [TeamMember.from_dict(item) for item in result.get("data") or []]


# =============================================================================
# Time Entry Operations
# =============================================================================


class TimeEntryOperations:
    """Operations for time entries and the running timer."""

    def __init__(self, client: APIClient):
        self._client = client

    async def start(
        self,
        project: str | None = None,
        title: str | None = None,
        notes: str | None = None,
        start_date: date | str | None = None,
    ) -> TimeEntry:
        """
        Start a new timer.

        This also stops the currently running timer if there is one.
        The title and project fields cannot both be empty.

        """
        result = await self._client.post(
            f"{API_PREFIX}/time-entries/start",
            _compact(
                {
                    "project": project,
                    "title": title,
                    "notes": notes,
                    "start_date": _isoformat(start_date),
                }
            ),
        )
        return TimeEntry.from_dict(result["data"])

    async def stop(self) -> TimeEntry:
        """Stop the currently running timer."""
        result = await self._client.put(f"{API_PREFIX}/time-entries/stop")
        return TimeEntry.from_dict(result["data"])

    async def latest(self) -> str | None:
        """
        Look up the latest time entry through its redirect.

        Returns:
            The entry's bare ID (usable with get()), or None when the server
            did not redirect

        """
        response = await self._client.request(
            "GET",
            f"{API_PREFIX}/time-entries/latest",
            follow_redirects=False,
        )
        location = response.headers.get("location")
        if response.is_redirect and location:
            return entry_id_from_reference(location)

        logger.debug("Latest time entry lookup did not redirect (status %s)", response.status_code)
        return None

    async def running(self) -> RunningTimer:
        """
        Show the currently running timer.

        A 404 from the server means no timer is running and is returned as
        TimerNotRunning carrying the parsed error body; other errors propagate.

        """
        try:
            result = await self._client.get(f"{API_PREFIX}/time-entries/running")
        except TimingError as e:
            if e.status != 404:
                raise
            return TimerNotRunning(body=e.body)

        return TimerFound(entry=TimeEntry.from_dict(result["data"]))

    async def list(  # noqa: PLR0913
        self,
        start_date_min: date | str | None = None,
        start_date_max: date | str | None = None,
        projects: builtins.list[str] | None = None,
        include_child_projects: bool | None = None,
        search_query: str | None = None,
        is_running: bool | None = None,
        include_project_data: bool | None = None,
        include_team_members: bool | None = None,
        team_members: builtins.list[str] | None = None,
        page: int | None = None,
    ) -> TimeEntryPage:
        """
        Return a page of time entries, ordered descending by start_date.

        Without both start_date_min and start_date_max the server returns
        entries from midnight (UTC) 30 days ago through end of day (UTC) today.

        The project filter goes out as `project[]`; the service ignores the
        documented `projects[]` name for this endpoint.

        Returns:
            TimeEntryPage with the envelope's links and meta

        """
        result = await self._client.get(
            f"{API_PREFIX}/time-entries",
            {
                "start_date_min": _isoformat(start_date_min),
                "start_date_max": _isoformat(start_date_max),
                "project[]": _listed(projects),
                "include_child_projects": include_child_projects,
                "search_query": search_query,
                "is_running": is_running,
                "include_project_data": include_project_data,
                "include_team_members": include_team_members,
                "team_members[]": _listed(team_members),
                "page": page,
            },
        )
        return TimeEntryPage.from_dict(result)

    async def create(
        self,
        start_date: date | str,
        end_date: date | str,
        project: str | None = None,
        title: str | None = None,
        notes: str | None = None,
        replace_existing: bool | None = None,
    ) -> TimeEntry:
        """
        Create a new time entry.

        The title and project fields can not both be empty.

        Args:
            start_date: Start of the entry
            end_date: End of the entry
            project: Project reference
            title: Entry title
            notes: Free-form notes
            replace_existing: Replace overlapping entries

        """
        result = await self._client.post(
            f"{API_PREFIX}/time-entries",
            _compact(
                {
                    "start_date": _isoformat(start_date),
                    "end_date": _isoformat(end_date),
                    "project": project,
                    "title": title,
                    "notes": notes,
                    "replace_existing": replace_existing,
                }
            ),
        )
        return TimeEntry.from_dict(result["data"])

    async def get(self, activity_id: str | int) -> TimeEntry:
        """Display the specified time entry (ID or full reference)."""
        result = await self._client.get(f"{API_PREFIX}/time-entries/{entry_id_from_reference(activity_id)}")
        return TimeEntry.from_dict(result["data"])

    async def update(
        self,
        activity_id: str | int,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
        project: str | None = None,
        title: str | None = None,
        notes: str | None = None,
        replace_existing: bool | None = None,
    ) -> TimeEntry:
        """
        Update the specified time entry.

        Omitted fields will not be updated. A time entry's title and project
        fields can not both be empty.

        """
        result = await self._client.put(
            f"{API_PREFIX}/time-entries/{entry_id_from_reference(activity_id)}",
            _compact(
                {
                    "start_date": _isoformat(start_date),
                    "end_date": _isoformat(end_date),
                    "project": project,
                    "title": title,
                    "notes": notes,
                    "replace_existing": replace_existing,
                }
            ),
        )
        return TimeEntry.from_dict(result["data"])

    async def delete(self, activity_id: str | int) -> None:
        """Delete the specified time entry."""
        await self._client.delete(f"{API_PREFIX}/time-entries/{entry_id_from_reference(activity_id)}")
