"""Tests for the SDK layer, run against a mock transport."""

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from timing_cli.core.client import UNSUCCESSFUL_MESSAGE, TimingError, ValidationError
from timing_cli.core.types import CreatedProject, Project, TimeEntry, TimerFound, TimerNotRunning
from timing_cli.sdk import TimingClient

ENTRY = {
    "self": "/time-entries/3694122002305638144",
    "start_date": "2024-07-05T20:00:05.000000+00:00",
    "end_date": "2024-07-05T20:00:19.000000+00:00",
    "duration": 14,
    "project": {"self": "/projects/3618024099524456192"},
    "title": None,
    "notes": None,
    "is_running": True,
    "creator_name": "someone@example.com",
    "custom_fields": {},
}

PROJECT = {
    "self": "/projects/1",
    "team_id": None,
    "title": "Client Work",
    "title_chain": ["Client Work"],
    "color": "#FF0000",
    "productivity_score": 1,
    "is_archived": False,
    "parent": None,
    "children": [{"self": "/projects/2"}],
}


def body_of(request: httpx.Request) -> dict:
    return json.loads(request.content)


# =============================================================================
# Projects
# =============================================================================


def test_list_projects_without_hide_archived(fake_api):
    client, api = fake_api(httpx.Response(200, json={"data": [PROJECT]}))

    projects = asyncio.run(client.projects.list())

    assert api.last.method == "GET"
    assert api.last.url.path == "/api/v1/projects"
    assert "hide_archived" not in api.last.url.params
    assert "team_id" not in api.last.url.params
    assert projects[0].ref == "/projects/1"
    assert projects[0].id == "1"
    # Flat listings carry children as reference-only stubs
    assert projects[0].children == [Project(ref="/projects/2")]


@pytest.mark.parametrize(("flag", "wire"), [(True, "1"), (False, "0")])
def test_list_projects_hide_archived_as_integer(fake_api, flag, wire):
    client, api = fake_api(httpx.Response(200, json={"data": []}))

    asyncio.run(client.projects.list(hide_archived=flag))

    assert api.last.url.params["hide_archived"] == wire


def test_list_projects_normalizes_team_reference(fake_api):
    client, api = fake_api(httpx.Response(200, json={"data": []}))

    asyncio.run(client.projects.list(title="Client", team_id="/teams/7"))

    assert api.last.url.params["team_id"] == "7"
    assert api.last.url.params["title"] == "Client"


def test_list_projects_missing_data_is_empty(fake_api):
    client, _ = fake_api(httpx.Response(200, json={}))
    assert asyncio.run(client.projects.list()) == []


def test_list_hierarchy(fake_api):
    tree = {
        "self": "/projects/1",
        "title": "Root",
        "children": [
            {"self": "/projects/2", "title": "Child", "parent": {"self": "/projects/1"}, "children": []},
        ],
    }
    client, api = fake_api(httpx.Response(200, json={"data": [tree]}))

    projects = asyncio.run(client.projects.list_hierarchy(hide_archived=True))

    assert api.last.url.path == "/api/v1/projects/hierarchy"
    assert api.last.url.params["hide_archived"] == "1"
    child = projects[0].children[0]
    assert child.title == "Child"
    assert child.parent == "/projects/1"


def test_create_project_with_time_entries_link(fake_api):
    envelope = {
        "data": {"self": "/projects/9", "title": "New"},
        "links": {"time-entries": "https://web.timingapp.com/api/v1/time-entries?project[]=/projects/9"},
    }
    client, api = fake_api(httpx.Response(201, json=envelope))

    created = asyncio.run(client.projects.create("New", color="#00FF00"))

    assert api.last.method == "POST"
    assert api.last.url.path == "/api/v1/projects"
    assert body_of(api.last) == {"title": "New", "color": "#00FF00"}
    assert isinstance(created, CreatedProject)
    assert created.data.ref == "/projects/9"
    assert created.entries_params == {"projects": ["/projects/9"]}


@pytest.mark.parametrize(
    "envelope",
    [
        {"data": {"self": "/projects/9", "title": "New"}},
        {"data": {"self": "/projects/9"}, "links": {}},
        {"data": {"title": "New"}, "links": {"time-entries": "/time-entries"}},
    ],
)
def test_create_project_without_entries_params(fake_api, envelope):
    client, _ = fake_api(httpx.Response(201, json=envelope))

    created = asyncio.run(client.projects.create("New"))

    assert created.entries_params is None


def test_show_project_accepts_reference(fake_api):
    client, api = fake_api(httpx.Response(200, json={"data": PROJECT}))

    project = asyncio.run(client.projects.get("/projects/1"))

    assert api.last.url.path == "/api/v1/projects/1"
    assert project.title == "Client Work"
    assert project.color == "#FF0000"


def test_update_project_sends_only_given_fields(fake_api):
    client, api = fake_api(httpx.Response(200, json={"data": {**PROJECT, "is_archived": True}}))

    project = asyncio.run(client.projects.update(1, is_archived=True))

    assert api.last.method == "PUT"
    assert api.last.url.path == "/api/v1/projects/1"
    assert body_of(api.last) == {"is_archived": True}
    assert project.is_archived is True


def test_delete_project(fake_api):
    client, api = fake_api(httpx.Response(204))

    assert asyncio.run(client.projects.delete("/projects/5")) is None
    assert api.last.method == "DELETE"
    assert api.last.url.path == "/api/v1/projects/5"


def test_delete_project_failure_raises(fake_api):
    client, _ = fake_api(httpx.Response(404, json={"message": "Not found"}))

    with pytest.raises(TimingError) as exc_info:
        asyncio.run(client.projects.delete(5))
    assert exc_info.value.status == 404


# =============================================================================
# Reports and teams
# =============================================================================


def test_generate_report(fake_api):
    rows = [
        {"duration": 3600, "project": {"self": "/projects/1"}, "timespan": "2024-07-01"},
        {"duration": 60.5, "project": {"self": "/projects/2"}, "timespan": "2024-07-01"},
    ]
    client, api = fake_api(httpx.Response(200, json={"data": rows}))

    report = asyncio.run(
        client.reports.generate(
            columns=["project", "timespan"],
            projects=["/projects/1", "/projects/2"],
            start_date_min="2024-07-01",
            timespan_grouping_mode="day",
        )
    )

    params = api.last.url.params
    assert api.last.url.path == "/api/v1/report"
    assert params.get_list("columns[]") == ["project", "timespan"]
    assert params.get_list("projects[]") == ["/projects/1", "/projects/2"]
    assert params["start_date_min"] == "2024-07-01"
    assert "start_date_max" not in params
    assert report[0].duration == 3600
    assert report[1].columns["project"] == {"self": "/projects/2"}


def test_generate_report_leaves_date_range_to_server(fake_api):
    client, api = fake_api(httpx.Response(200, json={"data": []}))

    assert asyncio.run(client.reports.generate()) == []
    assert "start_date_min" not in api.last.url.params
    assert "start_date_max" not in api.last.url.params


def test_list_teams_and_members(fake_api):
    client, api = fake_api(
        httpx.Response(200, json={"data": [{"self": "/teams/3", "name": "Studio"}]}),
        httpx.Response(
            200,
            json={"data": [{"self": "/users/5", "name": "Sam", "email": "sam@example.com", "team": {"self": "/teams/3"}}]},
        ),
    )

    async def go():
        teams = await client.teams.list()
        members = await client.teams.members(teams[0].ref)
        return teams, members

    teams, members = asyncio.run(go())

    assert teams[0].id == "3"
    assert api.requests[1].url.path == "/api/v1/teams/3/members"
    assert members[0].email == "sam@example.com"
    assert members[0].team == "/teams/3"


# =============================================================================
# Timer
# =============================================================================


def test_start_timer(fake_api):
    client, api = fake_api(httpx.Response(201, json={"data": ENTRY}))

    entry = asyncio.run(client.time_entries.start(project="/projects/3618024099524456192", title="Review"))

    assert api.last.method == "POST"
    assert api.last.url.path == "/api/v1/time-entries/start"
    assert body_of(api.last) == {"project": "/projects/3618024099524456192", "title": "Review"}
    assert entry.is_running is True
    assert entry.project == "/projects/3618024099524456192"


def test_stop_timer(fake_api):
    client, api = fake_api(httpx.Response(200, json={"data": {**ENTRY, "is_running": False}}))

    entry = asyncio.run(client.time_entries.stop())

    assert api.last.method == "PUT"
    assert api.last.url.path == "/api/v1/time-entries/stop"
    assert entry.is_running is False


def test_latest_follows_location(fake_api):
    client, api = fake_api(httpx.Response(302, headers={"location": "/time-entries/42"}))

    assert asyncio.run(client.time_entries.latest()) == "42"
    # The redirect itself is not followed
    assert len(api.requests) == 1


def test_latest_without_redirect_is_none(fake_api):
    client, _ = fake_api(httpx.Response(200, json={"data": None}))

    assert asyncio.run(client.time_entries.latest()) is None


def test_running_timer_found(fake_api):
    client, _ = fake_api(httpx.Response(200, json={"data": ENTRY}))

    timer = asyncio.run(client.time_entries.running())

    assert isinstance(timer, TimerFound)
    assert timer.entry.ref == ENTRY["self"]


def test_running_timer_through_redirect(fake_api):
    client, api = fake_api(
        httpx.Response(302, headers={"location": "/api/v1/time-entries/3694122002305638144"}),
        httpx.Response(200, json={"data": ENTRY}),
    )

    timer = asyncio.run(client.time_entries.running())

    assert isinstance(timer, TimerFound)
    assert api.requests[1].url.path == "/api/v1/time-entries/3694122002305638144"


def test_running_timer_not_found_is_data(fake_api):
    body = {"message": "No timer is currently running."}
    client, _ = fake_api(httpx.Response(404, json=body))

    timer = asyncio.run(client.time_entries.running())

    assert timer == TimerNotRunning(body=body)


def test_running_timer_other_errors_raise(fake_api):
    client, _ = fake_api(httpx.Response(500, json={"message": "boom"}))

    with pytest.raises(TimingError) as exc_info:
        asyncio.run(client.time_entries.running())
    assert exc_info.value.message == UNSUCCESSFUL_MESSAGE


# =============================================================================
# Time entries
# =============================================================================


def test_list_time_entries_uses_project_wire_name(fake_api):
    envelope = {
        "data": [ENTRY],
        "links": {"first": "https://timing.test/api/v1/time-entries?page=1", "next": "https://timing.test/api/v1/time-entries?page=2"},
        "meta": {"current_page": 1, "per_page": 100},
    }
    client, api = fake_api(httpx.Response(200, json=envelope))

    page = asyncio.run(client.time_entries.list(projects=["/projects/9"]))

    params = api.last.url.params
    assert params.get_list("project[]") == ["/projects/9"]
    assert "projects[]" not in params
    assert "start_date_min" not in params
    assert "start_date_max" not in params
    assert page.data[0].id == "3694122002305638144"
    assert page.has_more is True
    assert page.meta["per_page"] == 100


def test_list_time_entries_from_created_project(fake_api):
    client, api = fake_api(
        httpx.Response(201, json={"data": {"self": "/projects/9"}, "links": {"time-entries": "/time-entries"}}),
        httpx.Response(200, json={"data": [], "links": {}, "meta": {}}),
    )

    async def go():
        created = await client.projects.create("Test New")
        return await client.time_entries.list(**created.entries_params)

    page = asyncio.run(go())

    assert api.last.url.params.get_list("project[]") == ["/projects/9"]
    assert page.data == []
    assert page.has_more is False


def test_create_time_entry_serializes_datetimes(fake_api):
    start = datetime(2024, 7, 1, 9, 0, tzinfo=timezone.utc)
    end = datetime(2024, 7, 1, 10, 30, tzinfo=timezone.utc)
    client, api = fake_api(httpx.Response(201, json={"data": ENTRY}))

    asyncio.run(client.time_entries.create(start, end, title="Planning"))

    assert body_of(api.last) == {
        "start_date": "2024-07-01T09:00:00+00:00",
        "end_date": "2024-07-01T10:30:00+00:00",
        "title": "Planning",
    }


def test_update_and_delete_time_entry(fake_api):
    client, api = fake_api(
        httpx.Response(200, json={"data": {**ENTRY, "notes": "done"}}),
        httpx.Response(204),
    )

    async def go():
        entry = await client.time_entries.update("/time-entries/3694122002305638144", notes="done")
        await client.time_entries.delete(entry.ref)
        return entry

    entry = asyncio.run(go())

    assert api.requests[0].method == "PUT"
    assert api.requests[0].url.path == "/api/v1/time-entries/3694122002305638144"
    assert body_of(api.requests[0]) == {"notes": "done"}
    assert api.requests[1].method == "DELETE"
    assert entry.notes == "done"


def test_create_then_show_round_trip(fake_api):
    created = {**ENTRY, "title": "Round trip", "is_running": False}
    client, api = fake_api(
        httpx.Response(201, json={"data": created}),
        httpx.Response(200, json={"data": created}),
    )

    async def go():
        entry = await client.time_entries.create(
            "2024-07-05T20:00:05+00:00",
            "2024-07-05T20:00:19+00:00",
            project="/projects/3618024099524456192",
            title="Round trip",
        )
        return entry, await client.time_entries.get(TimingClient.entry_id_from_reference(entry.ref))

    entry, shown = asyncio.run(go())

    assert api.requests[1].url.path == "/api/v1/time-entries/3694122002305638144"
    assert (shown.ref, shown.title, shown.project) == (entry.ref, entry.title, entry.project)


def test_malformed_reference_never_reaches_the_wire(fake_api):
    client, api = fake_api()

    with pytest.raises(ValidationError):
        asyncio.run(client.time_entries.get("/time-entries/"))
    assert api.requests == []


def test_concurrent_calls_are_independent():
    def handler(request):
        activity_id = request.url.path.rsplit("/", 1)[-1]
        return httpx.Response(200, json={"data": {"self": f"/time-entries/{activity_id}"}})

    client = TimingClient(api_key="k", base_url="https://timing.test", transport=httpx.MockTransport(handler))

    async def go():
        async with client:
            return await asyncio.gather(*(client.time_entries.get(i) for i in range(5)))

    entries = asyncio.run(go())

    assert [e.ref for e in entries] == [f"/time-entries/{i}" for i in range(5)]
    assert all(isinstance(e, TimeEntry) for e in entries)


def test_time_entry_project_data_only_when_expanded():
    stub = TimeEntry.from_dict(ENTRY)
    expanded = TimeEntry.from_dict({**ENTRY, "project": {"self": "/projects/1", "title": "Work"}})

    assert stub.project_data is None
    assert expanded.project == "/projects/1"
    assert expanded.project_data == {"self": "/projects/1", "title": "Work"}


def test_team_member_id(fake_api):
    client, _ = fake_api(httpx.Response(200, json={"data": [{"self": "/users/5", "name": "Sam"}]}))

    members = asyncio.run(client.teams.members(3))

    assert members[0].id == "5"
