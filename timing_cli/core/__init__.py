"""
Core layer - Raw types and HTTP client.

This layer provides:
- Typed dataclasses for the Timing API payloads
- Low-level async HTTP client with auth and error handling
"""

from timing_cli.core.client import (
    APIClient,
    CLIError,
    TimingError,
    ValidationError,
    bool_to_int,
    entry_id_from_reference,
)
from timing_cli.core.types import (
    CreatedProject,
    Links,
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

__all__ = [
    "APIClient",
    "CLIError",
    "CreatedProject",
    "Links",
    "Project",
    "ReportRow",
    "RunningTimer",
    "Team",
    "TeamMember",
    "TimeEntry",
    "TimeEntryPage",
    "TimerFound",
    "TimerNotRunning",
    "TimingError",
    "ValidationError",
    "bool_to_int",
    "entry_id_from_reference",
]
