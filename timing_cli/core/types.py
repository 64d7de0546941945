"""
Core types for the Timing API.

These dataclasses provide type safety and IDE support for API responses.
Entities are identified by their `self` reference (stored as `ref`).
"""

from dataclasses import dataclass, field
from typing import Any

# =============================================================================
# Envelope
# =============================================================================


def _ref(value: Any) -> str | None:
    """Extract a reference string from either a bare string or a {"self": ...} stub."""
    if isinstance(value, dict):
        return value.get("self")
    return value


def _expanded(value: Any) -> dict[str, Any] | None:
    """Return a related object only when it carries fields besides its `self` reference."""
    if isinstance(value, dict) and value.keys() - {"self"}:
        return value
    return None


@dataclass
class Links:
    """Related-resource and pagination links from a response envelope."""

    first: str | None = None
    last: str | None = None
    prev: str | None = None
    next: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Links":
        """Create from API response dict."""
        data = dict(data or {})
        return cls(
            first=data.pop("first", None),
            last=data.pop("last", None),
            prev=data.pop("prev", None),
            next=data.pop("next", None),
            extra=data,
        )


# =============================================================================
# Project Types
# =============================================================================


@dataclass
class Project:
    """
    A Timing project.

    Children returned by a flat listing are reference-only stubs (only `ref`
    set); the hierarchy endpoint returns them fully populated.
    """

    ref: str | None
    title: str | None = None
    title_chain: list[str] = field(default_factory=list)
    color: str | None = None
    icon: str | None = None
    productivity_score: float | None = None
    is_archived: bool = False
    notes: str | None = None
    team_id: str | None = None
    parent: str | None = None
    children: list["Project"] = field(default_factory=list)

    @property
    def id(self) -> str | None:
        """Bare ID taken from the reference."""
        return self.ref.rsplit("/", 1)[-1] if self.ref else None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        """Create from API response dict."""
        return cls(
            ref=data.get("self"),
            title=data.get("title"),
            title_chain=data.get("title_chain") or [],
            color=data.get("color"),
            icon=data.get("icon"),
            productivity_score=data.get("productivity_score"),
            is_archived=bool(data.get("is_archived", False)),
            notes=data.get("notes"),
            team_id=data.get("team_id"),
            parent=_ref(data.get("parent")),
            children=[cls.from_dict(child) for child in data.get("children") or []],
        )


@dataclass
class CreatedProject:
    """Result of creating a project."""

    data: Project
    entries_params: dict[str, Any] | None = None


# =============================================================================
# Time Entry Types
# =============================================================================


@dataclass
class TimeEntry:
    """
    A time entry (activity).

    `project_data` holds the full project object when the server expanded it
    (include_project_data); a bare `{"self": ...}` stub leaves it None.
    """

    ref: str | None
    start_date: str | None = None
    end_date: str | None = None
    duration: float | None = None
    project: str | None = None
    title: str | None = None
    notes: str | None = None
    is_running: bool = False
    creator_name: str | None = None
    custom_fields: dict[str, Any] = field(default_factory=dict)
    project_data: dict[str, Any] | None = None

    @property
    def id(self) -> str | None:
        """Bare ID taken from the reference."""
        return self.ref.rsplit("/", 1)[-1] if self.ref else None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeEntry":
        """Create from API response dict."""
        project = data.get("project")
        return cls(
            ref=data.get("self"),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            duration=data.get("duration"),
            project=_ref(project),
            title=data.get("title"),
            notes=data.get("notes"),
            is_running=bool(data.get("is_running", False)),
            creator_name=data.get("creator_name"),
            custom_fields=data.get("custom_fields") or {},
            project_data=_expanded(project),
        )


@dataclass
class TimeEntryPage:
    """One page of time entries, with the envelope's links and meta."""

    data: list[TimeEntry]
    links: Links = field(default_factory=Links)
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def has_more(self) -> bool:
        """Check if the server advertises a next page."""
        return self.links.next is not None

    @classmethod
    def from_dict(cls, envelope: dict[str, Any]) -> "TimeEntryPage":
        """Create from a full response envelope."""
        return cls(
            data=[TimeEntry.from_dict(item) for item in envelope.get("data") or []],
            links=Links.from_dict(envelope.get("links")),
            meta=envelope.get("meta") or {},
        )


@dataclass
class TimerFound:
    """A timer is running."""

    entry: TimeEntry


@dataclass
class TimerNotRunning:
    """No timer is running; carries the parsed 404 body."""

    body: Any = None


RunningTimer = TimerFound | TimerNotRunning


# =============================================================================
# Team Types
# =============================================================================


@dataclass
class Team:
    """A team the authenticated user belongs to."""

    ref: str | None
    name: str | None = None

    @property
    def id(self) -> str | None:
        """Bare ID taken from the reference."""
        return self.ref.rsplit("/", 1)[-1] if self.ref else None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Team":
        """Create from API response dict."""
        return cls(ref=data.get("self"), name=data.get("name"))


@dataclass
class TeamMember:
    """An active member of a team."""

    ref: str | None
    name: str | None = None
    email: str | None = None
    team: str | None = None

    @property
    def id(self) -> str | None:
        """Bare ID taken from the reference."""
        return self.ref.rsplit("/", 1)[-1] if self.ref else None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TeamMember":
        """Create from API response dict."""
        return cls(
            ref=data.get("self"),
            name=data.get("name"),
            email=data.get("email"),
            team=_ref(data.get("team")),
        )


# =============================================================================
# Report Types
# =============================================================================


@dataclass
class ReportRow:
    """One aggregated report row: total duration plus the requested grouping columns."""

    duration: float = 0
    columns: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReportRow":
        """Create from API response dict."""
        columns = {k: v for k, v in data.items() if k != "duration"}
        return cls(duration=data.get("duration") or 0, columns=columns)
