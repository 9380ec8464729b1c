"""
Tests for event CRUD, filtering and the popularity ranking.
"""

import pytest
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient
from prometheus_client import REGISTRY


def _future(days: int = 30) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def _event_payload(**overrides) -> dict:
    payload = {
        "title": "Python Conference 2026",
        "description": "Annual Python gathering",
        "date": _future(30),
        "end_date": _future(31),
        "category": "tech",
        "location": "Convention Center",
        "max_attendees": 500,
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_admin_creates_event(client: AsyncClient, admin_headers, admin_user):
    response = await client.post("/api/events", json=_event_payload(), headers=admin_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Python Conference 2026"
    assert data["max_attendees"] == 500
    assert data["current_attendees"] == 0
    assert data["created_by"] == admin_user.id


@pytest.mark.asyncio
async def test_non_admin_cannot_create_event(client: AsyncClient, auth_headers):
    response = await client.post("/api/events", json=_event_payload(), headers=auth_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Admin access required"}


@pytest.mark.asyncio
async def test_create_event_unauthenticated(client: AsyncClient):
    response = await client.post("/api/events", json=_event_payload())
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_event_end_before_start(client: AsyncClient, admin_headers):
    response = await client.post(
        "/api/events",
        json=_event_payload(date=_future(10), end_date=_future(9)),
        headers=admin_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_event_invalid_capacity(client: AsyncClient, admin_headers):
    response = await client.post("/api/events", json=_event_payload(max_attendees=0), headers=admin_headers)
    assert response.status_code == 400
    assert "max_attendees" in response.json()["error"]


@pytest.mark.asyncio
async def test_list_events_requires_auth(client: AsyncClient, test_event):
    response = await client.get("/api/events")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_events_ordered_by_date(client: AsyncClient, auth_headers, make_event):
    later = await make_event(title="Later", days_ahead=20)
    sooner = await make_event(title="Sooner", days_ahead=5)

    response = await client.get("/api/events", headers=auth_headers)
    assert response.status_code == 200
    assert [e["id"] for e in response.json()] == [sooner.id, later.id]


@pytest.mark.asyncio
async def test_filter_by_category(client: AsyncClient, auth_headers, make_event):
    await make_event(title="Jazz Night", category="music")
    await make_event(title="Hackathon", category="tech")
    await make_event(title="Marathon", category="sports")

    response = await client.get("/api/events", params={"category": "music,sports"}, headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert {e["category"] for e in data} == {"music", "sports"}
    assert {e["title"] for e in data} == {"Jazz Night", "Marathon"}


@pytest.mark.asyncio
async def test_combined_filters_are_intersective(client: AsyncClient, auth_headers, make_event):
    match = await make_event(title="Jazz in Berlin", category="music", location="Berlin")
    await make_event(title="Jazz in Paris", category="music", location="Paris")
    await make_event(title="Code in Berlin", category="tech", location="Berlin")

    response = await client.get(
        "/api/events",
        params={"category": "music", "location": "Berlin"},
        headers=auth_headers,
    )
    assert [e["id"] for e in response.json()] == [match.id]


@pytest.mark.asyncio
async def test_filter_by_date_range(client: AsyncClient, auth_headers, make_event):
    await make_event(title="Next Week", days_ahead=7)
    in_range = await make_event(title="Next Month", days_ahead=30)
    await make_event(title="Next Year", days_ahead=365)

    response = await client.get(
        "/api/events",
        params={"start_date": _future(20), "end_date": _future(60)},
        headers=auth_headers,
    )
    assert [e["id"] for e in response.json()] == [in_range.id]


@pytest.mark.asyncio
async def test_search_matches_title_or_description(client: AsyncClient, auth_headers, make_event):
    by_title = await make_event(title="Rust Workshop", description="Systems programming", days_ahead=3)
    by_description = await make_event(title="Evening Meetup", description="Talks about rust and wasm", days_ahead=4)
    await make_event(title="Gardening", description="Tomatoes", days_ahead=5)

    response = await client.get("/api/events", params={"search": "rust"}, headers=auth_headers)
    assert [e["id"] for e in response.json()] == [by_title.id, by_description.id]


@pytest.mark.asyncio
async def test_filter_by_creator(client: AsyncClient, auth_headers, make_event, test_user):
    mine = await make_event(title="Mine", created_by=test_user.id)
    await make_event(title="Admin's")

    response = await client.get("/api/events", params={"created_by": test_user.id}, headers=auth_headers)
    assert [e["id"] for e in response.json()] == [mine.id]


@pytest.mark.asyncio
async def test_invalid_filter_date_is_400(client: AsyncClient, auth_headers):
    response = await client.get("/api/events", params={"start_date": "not-a-date"}, headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_reports_attendee_counts(client: AsyncClient, auth_headers, other_headers, test_event):
    await client.post("/api/bookings", json={"event_id": test_event.id}, headers=auth_headers)
    await client.post("/api/bookings", json={"event_id": test_event.id}, headers=other_headers)

    response = await client.get("/api/events", headers=auth_headers)
    assert response.json()[0]["current_attendees"] == 2


@pytest.mark.asyncio
async def test_get_event(client: AsyncClient, test_event):
    response = await client.get(f"/api/events/{test_event.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == test_event.id
    assert data["title"] == "Test Concert"
    assert data["current_attendees"] == 0


@pytest.mark.asyncio
async def test_get_event_not_found(client: AsyncClient):
    response = await client.get("/api/events/99999")
    assert response.status_code == 404
    assert response.json() == {"error": "Event not found"}


@pytest.mark.asyncio
async def test_admin_updates_event(client: AsyncClient, admin_headers, test_event):
    response = await client.patch(
        f"/api/events/{test_event.id}",
        json={"title": "Renamed", "max_attendees": 50},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Renamed"
    assert data["max_attendees"] == 50
    assert data["location"] == "Berlin"


@pytest.mark.asyncio
async def test_creator_can_update_own_event(client: AsyncClient, auth_headers, make_event, test_user):
    event = await make_event(created_by=test_user.id)
    response = await client.patch(f"/api/events/{event.id}", json={"location": "Hamburg"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["location"] == "Hamburg"


@pytest.mark.asyncio
async def test_other_user_cannot_update_event(client: AsyncClient, auth_headers, test_event):
    response = await client.patch(f"/api/events/{test_event.id}", json={"title": "Mine now"}, headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_capacity_below_bookings(client: AsyncClient, admin_headers, auth_headers, other_headers, test_event):
    await client.post("/api/bookings", json={"event_id": test_event.id}, headers=auth_headers)
    await client.post("/api/bookings", json={"event_id": test_event.id}, headers=other_headers)

    response = await client.patch(f"/api/events/{test_event.id}", json={"max_attendees": 1}, headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_missing_event(client: AsyncClient, admin_headers):
    response = await client.patch("/api/events/99999", json={"title": "Ghost"}, headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_event_removes_bookings(client: AsyncClient, admin_headers, auth_headers, test_event):
    await client.post("/api/bookings", json={"event_id": test_event.id}, headers=auth_headers)

    response = await client.delete(f"/api/events/{test_event.id}", headers=admin_headers)
    assert response.status_code == 200

    assert (await client.get(f"/api/events/{test_event.id}")).status_code == 404
    bookings = await client.get("/api/bookings", headers=auth_headers)
    assert bookings.json() == []


@pytest.mark.asyncio
async def test_non_admin_cannot_delete_event(client: AsyncClient, auth_headers, test_event):
    response = await client.delete(f"/api/events/{test_event.id}", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_popular_events_ranked_by_bookings(client: AsyncClient, make_event, auth_headers, other_headers):
    quiet = await make_event(title="Quiet", days_ahead=1)
    busy = await make_event(title="Busy", days_ahead=2)
    medium = await make_event(title="Medium", days_ahead=3)

    for headers in (auth_headers, other_headers):
        await client.post("/api/bookings", json={"event_id": busy.id}, headers=headers)
    await client.post("/api/bookings", json={"event_id": medium.id}, headers=auth_headers)

    response = await client.get("/api/events/popular", params={"limit": 2})
    assert response.status_code == 200
    data = response.json()
    assert [e["id"] for e in data] == [busy.id, medium.id]
    assert [e["current_attendees"] for e in data] == [2, 1]
    assert quiet.id not in {e["id"] for e in data}


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(client: AsyncClient, auth_headers, make_event):
    percent = await make_event(title="100% Jazz", days_ahead=3)
    await make_event(title="1000 Jazz Cats", days_ahead=4)
    underscore = await make_event(title="snake_case talks", days_ahead=5)
    await make_event(title="snakeXcase talks", days_ahead=6)

    response = await client.get("/api/events", params={"search": "100%"}, headers=auth_headers)
    assert [e["id"] for e in response.json()] == [percent.id]

    response = await client.get("/api/events", params={"search": "snake_case"}, headers=auth_headers)
    assert [e["id"] for e in response.json()] == [underscore.id]


@pytest.mark.asyncio
async def test_delete_event_counts_as_admin_action(client: AsyncClient, admin_headers, test_event):
    labels = {"action": "delete_event"}
    before = REGISTRY.get_sample_value("eventhub_admin_actions_total", labels) or 0.0

    response = await client.delete(f"/api/events/{test_event.id}", headers=admin_headers)
    assert response.status_code == 200
    assert REGISTRY.get_sample_value("eventhub_admin_actions_total", labels) == before + 1
