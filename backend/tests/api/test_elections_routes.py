import pytest
from httpx import AsyncClient
from uuid import uuid4


async def _create_election(api_client: AsyncClient, admin_headers, names=("X", "Y")):
	response = await api_client.post(
		"/api/elections",
		json={
			"title": "Student Union President",
			"description": "Annual election",
			"start_date": "2026-05-01T08:00:00Z",
			"end_date": "2026-05-03T18:00:00Z",
			"candidates": [
				{"name": name, "department": "Engineering", "year": "3rd Year", "platform": ["Longer library hours"]}
				for name in names
			],
			"eligible_voters": 50,
		},
		headers=admin_headers,
	)
	assert response.status_code == 201
	return response.json()


def _student():
	return {"X-User-Id": str(uuid4()), "X-User-Roles": "student"}


@pytest.mark.asyncio
async def test_second_vote_is_rejected(api_client: AsyncClient, admin_headers):
	election = await _create_election(api_client, admin_headers)
	x, y = election["candidates"]
	voter = _student()

	first = await api_client.post(f"/api/elections/{election['id']}/vote", json={"candidateId": x["id"]}, headers=voter)
	assert first.status_code == 200
	assert first.json()["message"] == "Vote cast successfully"
	assert first.json()["election"]["total_votes"] == 1
	assert first.json()["election"]["has_voted"] is True

	second = await api_client.post(f"/api/elections/{election['id']}/vote", json={"candidateId": y["id"]}, headers=voter)
	assert second.status_code == 409
	assert second.json()["detail"] == "You have already voted in this election"

	current = await api_client.get(f"/api/elections/{election['id']}", headers=voter)
	body = current.json()
	assert body["total_votes"] == 1
	assert body["has_voted"] is True
	assert [c["votes"] for c in body["candidates"]] == [1, 0]


@pytest.mark.asyncio
async def test_vote_requires_authentication(api_client: AsyncClient, admin_headers):
	election = await _create_election(api_client, admin_headers)

	response = await api_client.post(
		f"/api/elections/{election['id']}/vote", json={"candidateId": election["candidates"][0]["id"]}
	)

	assert response.status_code == 401


@pytest.mark.asyncio
async def test_vote_unknown_candidate(api_client: AsyncClient, admin_headers):
	election = await _create_election(api_client, admin_headers)

	response = await api_client.post(
		f"/api/elections/{election['id']}/vote", json={"candidateId": str(uuid4())}, headers=_student()
	)

	assert response.status_code == 404
	assert response.json()["detail"] == "Candidate not found"


@pytest.mark.asyncio
async def test_announce_is_admin_only_and_idempotent(api_client: AsyncClient, admin_headers):
	election = await _create_election(api_client, admin_headers, names=("A", "B", "C"))
	a, b, c = election["candidates"]
	for candidate in (b, c, b, c, a):
		response = await api_client.post(
			f"/api/elections/{election['id']}/vote", json={"candidateId": candidate["id"]}, headers=_student()
		)
		assert response.status_code == 200

	forbidden = await api_client.post(f"/api/elections/{election['id']}/announce", headers=_student())
	assert forbidden.status_code == 403

	first = await api_client.post(f"/api/elections/{election['id']}/announce", headers=admin_headers)
	second = await api_client.post(f"/api/elections/{election['id']}/announce", headers=admin_headers)
	assert first.status_code == 200
	assert second.status_code == 200
	assert first.json()["results_announced_at"] == second.json()["results_announced_at"]
	ranking = second.json()["ranking"]
	assert [r["candidate"]["name"] for r in ranking] == ["B", "C", "A"]
	assert [r["rank"] for r in ranking] == [1, 1, 3]
	assert second.json()["status"] == "Completed"

	closed = await api_client.post(
		f"/api/elections/{election['id']}/vote", json={"candidateId": a["id"]}, headers=_student()
	)
	assert closed.status_code == 400
	assert closed.json()["detail"] == "Voting has closed for this election"


@pytest.mark.asyncio
async def test_results_are_public(api_client: AsyncClient, admin_headers):
	election = await _create_election(api_client, admin_headers)

	response = await api_client.get(f"/api/elections/{election['id']}/results")

	assert response.status_code == 200
	assert response.json()["total_votes"] == 0
	assert response.json()["winners"] == []


@pytest.mark.asyncio
async def test_create_with_single_candidate(api_client: AsyncClient, admin_headers):
	response = await api_client.post(
		"/api/elections",
		json={
			"title": "Treasurer",
			"description": "Mid-year vacancy",
			"start_date": "2026-05-01T08:00:00Z",
			"end_date": "2026-05-02T08:00:00Z",
			"candidates": [{"name": "Solo", "department": "Law", "year": "4th Year"}],
		},
		headers=admin_headers,
	)

	assert response.status_code == 400
	assert response.json()["detail"] == "At least two candidates are required"


@pytest.mark.asyncio
async def test_status_lifecycle_moves_forward(api_client: AsyncClient, admin_headers):
	election = await _create_election(api_client, admin_headers)

	ongoing = await api_client.patch(
		f"/api/elections/{election['id']}/status", json={"status": "Ongoing"}, headers=admin_headers
	)
	assert ongoing.status_code == 200
	assert ongoing.json()["status"] == "Ongoing"

	back = await api_client.patch(
		f"/api/elections/{election['id']}/status", json={"status": "Pending"}, headers=admin_headers
	)
	assert back.status_code == 400


@pytest.mark.asyncio
async def test_list_filters_by_status(api_client: AsyncClient, admin_headers):
	election = await _create_election(api_client, admin_headers)

	pending = await api_client.get("/api/elections", params={"status": "Pending"})
	completed = await api_client.get("/api/elections", params={"status": "Completed"})

	assert [e["id"] for e in pending.json()] == [election["id"]]
	assert pending.json()[0]["has_voted"] is None
	assert completed.json() == []
