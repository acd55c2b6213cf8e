"""End-to-end flows over the HTTP API with bearer tokens per role."""

from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.security import create_access_token
from app.core.models import ApplicationRecord, SponsorRecord


def _auth(user_id: str, role: str) -> dict:
    token = create_access_token(subject={"sub": user_id, "role": role})
    return {"Authorization": f"Bearer {token}"}


STAFF = _auth("staff-1", "STAFF")
SP1 = _auth("SP1", "SPONSOR")
SP2 = _auth("SP2", "SPONSOR")
S1 = _auth("S1", "STUDENT")
S2 = _auth("S2", "STUDENT")

POSTING = {
    "title": "Backend Intern",
    "description": "Python services",
    "level": "Basic",
    "target_subject": "CS",
    "opening_date": "2025-03-01",
    "closing_date": "2025-04-30",
    "slots": 1,
}


async def _setup_people(client: AsyncClient) -> None:
    for payload in (
        {"id": "S1", "name": "Asha", "year_of_study": 3, "subject": "CS"},
        {"id": "S2", "name": "Ben", "year_of_study": 1, "subject": "cs"},
    ):
        response = await client.post("/api/v1/directory/students", json=payload, headers=STAFF)
        assert response.status_code == 201

    response = await client.post(
        "/api/v1/directory/sponsors/me",
        json={"name": "Ann Lee", "company_name": "Acme", "position": "HR"},
        headers=SP1,
    )
    assert response.status_code == 201
    assert response.json()["status"] == "Pending"

    response = await client.post("/api/v1/directory/sponsors/SP1/approve", headers=STAFF)
    assert response.status_code == 200
    assert response.json()["status"] == "Approved"


async def _approved_posting(client: AsyncClient, **overrides) -> dict:
    response = await client.post("/api/v1/opportunities", json={**POSTING, **overrides}, headers=SP1)
    assert response.status_code == 201, response.text
    opp_id = response.json()["id"]
    response = await client.post(f"/api/v1/opportunities/{opp_id}/approve", headers=STAFF)
    assert response.status_code == 200
    return response.json()


async def test_missing_or_bad_token_is_401(client: AsyncClient) -> None:
    response = await client.get("/api/v1/opportunities")
    assert response.status_code == 401
    response = await client.get("/api/v1/opportunities", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


async def test_wrong_role_is_403(client: AsyncClient) -> None:
    response = await client.post("/api/v1/directory/students", json={}, headers=S1)
    assert response.status_code == 403


async def test_unapproved_sponsor_cannot_post(client: AsyncClient, db_session: AsyncSession) -> None:
    response = await client.post(
        "/api/v1/directory/sponsors/me",
        json={"name": "Bo", "company_name": "Globex"},
        headers=SP2,
    )
    assert response.status_code == 201
    row = await db_session.get(SponsorRecord, "SP2")
    assert row is not None and row.status == "Pending"

    response = await client.post("/api/v1/opportunities", json=POSTING, headers=SP2)
    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "PERMISSION_DENIED"


async def test_invalid_posting_is_400(client: AsyncClient) -> None:
    await _setup_people(client)
    response = await client.post("/api/v1/opportunities", json={**POSTING, "slots": 11}, headers=SP1)
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_OPPORTUNITY"


async def test_full_placement_flow(client: AsyncClient, db_session: AsyncSession) -> None:
    await _setup_people(client)
    opp = await _approved_posting(client)
    assert opp["visible"] is True
    assert opp["sponsor_name"] == "Acme"

    listing = await client.get("/api/v1/opportunities", headers=S2)
    assert [o["id"] for o in listing.json()] == [opp["id"]]

    response = await client.post("/api/v1/applications", json={"opportunity_id": opp["id"]}, headers=S2)
    assert response.status_code == 201
    assert response.json()["status"] == "Pending"

    response = await client.post("/api/v1/applications", json={"opportunity_id": opp["id"]}, headers=S2)
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "DUPLICATE_APPLICATION"

    response = await client.post(
        f"/api/v1/applications/{opp['id']}/S2/decision", json={"outcome": "Successful"}, headers=SP1
    )
    assert response.status_code == 200
    assert response.json()["status"] == "Successful"

    response = await client.post(f"/api/v1/applications/{opp['id']}/S2/accept", headers=S2)
    assert response.status_code == 200
    assert response.json()["status"] == "Accepted"

    response = await client.get(f"/api/v1/opportunities/{opp['id']}", headers=STAFF)
    body = response.json()
    assert body["status"] == "Filled"
    assert body["accepted_count"] == 1

    row = await db_session.get(ApplicationRecord, ("S2", opp["id"]))
    assert row.status == "Accepted"


async def test_accept_without_offer_is_409(client: AsyncClient) -> None:
    await _setup_people(client)
    opp = await _approved_posting(client)
    await client.post("/api/v1/applications", json={"opportunity_id": opp["id"]}, headers=S1)

    response = await client.post(f"/api/v1/applications/{opp['id']}/S1/accept", headers=S1)
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "INVALID_TRANSITION"


async def test_junior_level_gate(client: AsyncClient) -> None:
    await _setup_people(client)
    opp = await _approved_posting(client, level="Advanced")

    listing = await client.get("/api/v1/opportunities", headers=S2)
    assert listing.json() == []

    response = await client.post("/api/v1/applications", json={"opportunity_id": opp["id"]}, headers=S2)
    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "INELIGIBLE_LEVEL"


async def test_listing_filters(client: AsyncClient) -> None:
    await _setup_people(client)
    await _approved_posting(client, title="zeta", level="Intermediate")
    await _approved_posting(client, title="Alpha")

    response = await client.get("/api/v1/opportunities", params={"level": "intermediate"}, headers=S1)
    assert [o["title"] for o in response.json()] == ["zeta"]

    response = await client.get("/api/v1/opportunities", headers=SP1)
    assert [o["title"] for o in response.json()] == ["Alpha", "zeta"]

    response = await client.get("/api/v1/opportunities", params={"level": "Expert"}, headers=S1)
    assert response.status_code == 400


async def test_withdrawal_flow(client: AsyncClient, db_session: AsyncSession) -> None:
    await _setup_people(client)
    opp = await _approved_posting(client)
    await client.post("/api/v1/applications", json={"opportunity_id": opp["id"]}, headers=S1)

    response = await client.post(f"/api/v1/applications/{opp['id']}/S1/withdrawal", headers=S1)
    assert response.status_code == 200
    assert response.json()["withdrawal_requested"] is True

    response = await client.post(f"/api/v1/applications/{opp['id']}/S1/withdrawal", headers=S1)
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "ALREADY_REQUESTED"

    response = await client.get("/api/v1/applications/withdrawals", headers=STAFF)
    assert [(a["student_id"], a["opportunity_id"]) for a in response.json()] == [("S1", opp["id"])]

    response = await client.post(f"/api/v1/applications/{opp['id']}/S1/withdrawal/approve", headers=STAFF)
    assert response.status_code == 204

    response = await client.get("/api/v1/applications/my", headers=S1)
    assert response.json() == []
    result = await db_session.execute(select(ApplicationRecord))
    assert result.scalars().all() == []


async def test_sponsor_sees_only_own_applications(client: AsyncClient) -> None:
    await _setup_people(client)
    opp = await _approved_posting(client)
    await client.post("/api/v1/applications", json={"opportunity_id": opp["id"]}, headers=S1)

    response = await client.get(f"/api/v1/opportunities/{opp['id']}/applications", headers=SP1)
    assert [a["student_id"] for a in response.json()] == ["S1"]

    await client.post("/api/v1/directory/sponsors/me", json={"name": "Bo", "company_name": "Globex"}, headers=SP2)
    response = await client.get(f"/api/v1/opportunities/{opp['id']}/applications", headers=SP2)
    assert response.status_code == 403


async def test_listing_filters_are_remembered_until_reset(client: AsyncClient) -> None:
    await _setup_people(client)
    await _approved_posting(client, title="zeta", level="Intermediate")
    await _approved_posting(client, title="Alpha")

    response = await client.get("/api/v1/opportunities", params={"level": "Intermediate"}, headers=S1)
    assert [o["title"] for o in response.json()] == ["zeta"]

    response = await client.get("/api/v1/opportunities", headers=S1)
    assert [o["title"] for o in response.json()] == ["zeta"]
    response = await client.get("/api/v1/opportunities/filters/me", headers=S1)
    assert response.json()["level"] == "Intermediate"

    # another user's listing is unaffected
    response = await client.get("/api/v1/opportunities", headers=STAFF)
    assert [o["title"] for o in response.json()] == ["Alpha", "zeta"]

    response = await client.delete("/api/v1/opportunities/filters/me", headers=S1)
    assert response.status_code == 200
    assert response.json() == {"level": None, "subject": None, "status": None, "closing_by": None}

    response = await client.get("/api/v1/opportunities", headers=S1)
    assert [o["title"] for o in response.json()] == ["Alpha", "zeta"]
