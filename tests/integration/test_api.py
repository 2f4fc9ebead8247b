"""HTTP endpoint tests: users, study time, dashboard, sessions, health."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from studyhub.db.models import GroupMember, SessionParticipant, StudyGroup, StudySession
from studyhub.exceptions import ConcurrentUpdate


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_readiness_without_redis(client: AsyncClient) -> None:
    response = await client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"database": "ok", "redis": "disabled"}


@pytest.mark.asyncio
async def test_version(client: AsyncClient) -> None:
    response = await client.get("/version")
    assert response.json()["version"] == "0.1.0"


@pytest.mark.asyncio
async def test_request_id_echoed(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "abc-123"})
    assert response.headers["x-request-id"] == "abc-123"


@pytest.mark.asyncio
async def test_unknown_path_json_404(client: AsyncClient) -> None:
    response = await client.get("/nope")
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}


# ---------------------------------------------------------------------------
# Auth boundary
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/api/v1/dashboard", "/api/v1/users/stats", "/api/v1/users/me"])
async def test_requires_auth(client: AsyncClient, path: str) -> None:
    response = await client.get(path)
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_rejects_garbage_token(client: AsyncClient) -> None:
    response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


# ---------------------------------------------------------------------------
# Study time
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_record_study_time(authed_client: AsyncClient) -> None:
    response = await authed_client.post("/api/v1/users/study-time", json={"duration": 75})
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Study time updated"
    assert data["newAchievements"] == ["first-hour"]
    assert data["stats"]["totalStudyTime"] == 75
    assert data["stats"]["sessionsCompleted"] == 1
    assert data["stats"]["streak"] == 1
    assert data["stats"]["achievements"] == ["first-hour"]

    again = await authed_client.post("/api/v1/users/study-time", json={"duration": 5})
    assert again.json()["newAchievements"] == []
    assert again.json()["stats"]["totalStudyTime"] == 80


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{}, {"duration": 0}, {"duration": -3}, {"duration": "abc"}, {"duration": 2.5}])
async def test_record_study_time_invalid(authed_client: AsyncClient, body: dict) -> None:
    response = await authed_client.post("/api/v1/users/study-time", json=body)
    assert response.status_code == 400
    assert "detail" in response.json()

    stats = await authed_client.get("/api/v1/users/stats")
    assert stats.json()["sessionsCompleted"] == 0


@pytest.mark.asyncio
async def test_record_study_time_conflict_is_409(authed_client: AsyncClient, monkeypatch) -> None:
    async def _conflict(*_args, **_kwargs):
        raise ConcurrentUpdate

    monkeypatch.setattr("studyhub.users.router.record_study_time_for_user", _conflict)
    response = await authed_client.post("/api/v1/users/study-time", json={"duration": 10})
    assert response.status_code == 409
    assert response.json() == {"detail": ConcurrentUpdate.default_detail}


@pytest.mark.asyncio
async def test_stats_endpoint(authed_client: AsyncClient) -> None:
    await authed_client.post("/api/v1/users/study-time", json={"duration": 30})
    response = await authed_client.get("/api/v1/users/stats")
    assert response.status_code == 200
    data = response.json()
    assert data["totalStudyTime"] == 30
    assert data["totalGroups"] == 0
    assert data["ownedGroups"] == 0
    assert data["joinDate"].startswith("2026-01-05")


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_dashboard_empty(authed_client: AsyncClient) -> None:
    response = await authed_client.get("/api/v1/dashboard")
    assert response.status_code == 200
    assert response.json() == {
        "recentGroups": [],
        "upcomingSessions": [],
        "stats": {
            "totalStudyTime": 0,
            "sessionsCompleted": 0,
            "streak": 0,
            "achievements": [],
            "lastStudyDate": None,
        },
        "todayProgress": 0,
        "weekProgress": 0,
        "weeklyGoal": 300,
    }


@pytest.mark.asyncio
async def test_dashboard_shape(authed_client: AsyncClient, db_session, user, user_factory) -> None:
    bob = await user_factory("bob", "Bob", "Builder")
    now = datetime.now(timezone.utc)
    group = StudyGroup(name="Linear Algebra", subject="Math", owner_id=bob.id, created_at=now, updated_at=now)
    db_session.add(group)
    await db_session.flush()
    eigenvalues = StudySession(title="Eigenvalues", group_id=group.id, host_id=bob.id,
                               scheduled_start=now + timedelta(days=1), status="scheduled")
    db_session.add_all([
        GroupMember(group_id=group.id, user_id=user.id, is_active=True, joined_at=now),
        GroupMember(group_id=group.id, user_id=bob.id, role="owner", is_active=True, joined_at=now),
        eigenvalues,
        StudySession(title="Solo review", host_id=user.id,
                     scheduled_start=now + timedelta(days=2), status="scheduled"),
        StudySession(title="Bob's private", host_id=bob.id,
                     scheduled_start=now + timedelta(hours=12), status="scheduled"),
    ])
    await db_session.flush()
    db_session.add(SessionParticipant(session_id=eigenvalues.id, user_id=user.id, joined_at=now))
    await db_session.commit()
    await authed_client.post("/api/v1/users/study-time", json={"duration": 20})

    data = (await authed_client.get("/api/v1/dashboard")).json()
    assert data["recentGroups"][0]["name"] == "Linear Algebra"
    assert data["recentGroups"][0]["memberCount"] == 2
    assert set(data["recentGroups"][0]) == {"id", "name", "subject", "memberCount", "lastActivity"}
    assert [s["title"] for s in data["upcomingSessions"]] == ["Eigenvalues", "Solo review"]
    assert data["upcomingSessions"][0]["hostName"] == "Bob Builder"
    assert data["upcomingSessions"][1]["groupName"] == "Unknown Group"
    assert set(data["upcomingSessions"][0]) == {"id", "title", "groupName", "time", "hostName"}
    assert data["stats"]["totalStudyTime"] == 20
    # Direct submissions do not create session participation.
    assert data["todayProgress"] == 0


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_me(authed_client: AsyncClient, user) -> None:
    data = (await authed_client.get("/api/v1/users/me")).json()
    assert data["id"] == user.id
    assert data["username"] == "alice"
    assert data["firstName"] == "Alice"


@pytest.mark.asyncio
async def test_profile_by_id(authed_client: AsyncClient, db_session, user) -> None:
    now = datetime.now(timezone.utc)
    group = StudyGroup(name="Biology", subject="Science", owner_id=user.id, privacy="private",
                       created_at=now, updated_at=now)
    db_session.add(group)
    await db_session.flush()
    db_session.add(GroupMember(group_id=group.id, user_id=user.id, role="owner", is_active=True, joined_at=now))
    await db_session.commit()

    data = (await authed_client.get(f"/api/v1/users/profile/{user.id}")).json()
    assert data["groups"] == [{"id": group.id, "name": "Biology", "subject": "Science", "privacy": "private"}]


@pytest.mark.asyncio
async def test_profile_not_found(authed_client: AsyncClient) -> None:
    response = await authed_client.get("/api/v1/users/profile/98765")
    assert response.status_code == 404
    assert response.json() == {"detail": "User not found"}


@pytest.mark.asyncio
async def test_update_profile(authed_client: AsyncClient) -> None:
    response = await authed_client.put("/api/v1/users/profile", json={
        "firstName": "  Alicia ",
        "bio": "Night owl",
        "studyPreferences": {"subjects": ["math"]},
    })
    assert response.status_code == 200
    data = response.json()
    assert data["firstName"] == "Alicia"
    assert data["lastName"] == "Liddell"
    assert data["bio"] == "Night owl"
    assert data["studyPreferences"] == {"subjects": ["math"]}


@pytest.mark.asyncio
async def test_update_profile_blank_name(authed_client: AsyncClient) -> None:
    response = await authed_client.put("/api/v1/users/profile", json={"lastName": "   "})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_search(authed_client: AsyncClient, user_factory) -> None:
    await user_factory("bobby", "Robert", "Tables")
    await user_factory("carol", "Carol", "Danvers")

    response = await authed_client.get("/api/v1/users/search", params={"q": "ROB"})
    assert response.status_code == 200
    assert [u["username"] for u in response.json()] == ["bobby"]


@pytest.mark.asyncio
async def test_search_limit(authed_client: AsyncClient, user_factory) -> None:
    for i in range(4):
        await user_factory(f"student{i}", "Stu", "Dent")
    response = await authed_client.get("/api/v1/users/search", params={"q": "stu", "limit": 2})
    assert len(response.json()) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("q", ["", "a", "  b  "])
async def test_search_query_too_short(authed_client: AsyncClient, q: str) -> None:
    response = await authed_client.get("/api/v1/users/search", params={"q": q})
    assert response.status_code == 400


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_complete_session_endpoint(authed_client: AsyncClient, db_session, user) -> None:
    session = StudySession(
        title="Mock exam",
        host_id=user.id,
        scheduled_start=datetime.now(timezone.utc) - timedelta(minutes=10),
        status="active",
    )
    db_session.add(session)
    await db_session.commit()

    response = await authed_client.post(f"/api/v1/sessions/{session.id}/complete")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "completed"
    assert data["participants"] == []

    again = await authed_client.post(f"/api/v1/sessions/{session.id}/complete")
    assert again.status_code == 400
