import pytest
from httpx import AsyncClient
from uuid import uuid4

JOIN_FORM = {"fullName": "Abebe Kebede", "department": "Computer Science", "year": "2nd Year"}


async def _create_club(api_client: AsyncClient, admin_headers, name="Chess Club"):
	response = await api_client.post(
		"/api/clubs",
		json={"name": name, "description": "Weekly games", "category": "Games"},
		headers=admin_headers,
	)
	assert response.status_code == 201
	return response.json()


@pytest.mark.asyncio
async def test_join_approve_leave_flow(api_client: AsyncClient, admin_headers):
	club = await _create_club(api_client, admin_headers)
	student = {"X-User-Id": str(uuid4()), "X-User-Roles": "student"}

	join = await api_client.post(f"/api/clubs/{club['id']}/join", json=JOIN_FORM, headers=student)
	assert join.status_code == 200
	body = join.json()
	assert body["success"] is True
	assert body["message"] == "Join request submitted successfully. Waiting for admin approval."
	membership_id = body["membership"]["id"]
	assert body["membership"]["status"] == "pending"

	pending = await api_client.get(f"/api/clubs/{club['id']}/join-requests", headers=admin_headers)
	assert pending.status_code == 200
	assert [m["id"] for m in pending.json()] == [membership_id]

	approve = await api_client.patch(
		f"/api/clubs/{club['id']}/members/{membership_id}/approve", headers=admin_headers
	)
	assert approve.status_code == 200
	assert approve.json()["message"] == "Member approved successfully"

	detail = await api_client.get(f"/api/clubs/{club['id']}", headers=student)
	assert detail.json()["member_count"] == 1
	# Member lists are only shown to administrators.
	assert detail.json()["members"] == []

	leave = await api_client.post(f"/api/clubs/{club['id']}/leave", headers=student)
	assert leave.status_code == 200
	assert leave.json()["message"] == "Successfully left the club"

	again = await api_client.post(f"/api/clubs/{club['id']}/leave", headers=student)
	assert again.status_code == 400
	assert again.json()["detail"] == "You are not a member of this club"


@pytest.mark.asyncio
async def test_join_inactive_club(api_client: AsyncClient, admin_headers):
	club = await _create_club(api_client, admin_headers)
	update = await api_client.put(
		f"/api/clubs/{club['id']}", json={"status": "pending_approval"}, headers=admin_headers
	)
	assert update.status_code == 200

	response = await api_client.post(
		f"/api/clubs/{club['id']}/join",
		json=JOIN_FORM,
		headers={"X-User-Id": str(uuid4()), "X-User-Roles": "student"},
	)

	assert response.status_code == 400
	body = response.json()
	assert body["success"] is False
	assert body["detail"] == "Cannot join inactive club"
	assert body["request_id"]


@pytest.mark.asyncio
async def test_join_requires_authentication(api_client: AsyncClient, admin_headers):
	club = await _create_club(api_client, admin_headers)

	response = await api_client.post(f"/api/clubs/{club['id']}/join", json=JOIN_FORM)

	assert response.status_code == 401


@pytest.mark.asyncio
async def test_approve_requires_admin(api_client: AsyncClient, admin_headers):
	club = await _create_club(api_client, admin_headers)
	student = {"X-User-Id": str(uuid4()), "X-User-Roles": "student"}
	join = await api_client.post(f"/api/clubs/{club['id']}/join", json=JOIN_FORM, headers=student)
	membership_id = join.json()["membership"]["id"]

	response = await api_client.patch(
		f"/api/clubs/{club['id']}/members/{membership_id}/approve", headers=student
	)

	assert response.status_code == 403


@pytest.mark.asyncio
async def test_stale_if_match_is_conflict(api_client: AsyncClient, admin_headers):
	club = await _create_club(api_client, admin_headers)

	response = await api_client.put(
		f"/api/clubs/{club['id']}",
		json={"description": "Renamed"},
		headers={**admin_headers, "If-Match": f'"{club["version"] + 1}"'},
	)
	assert response.status_code == 409
	assert response.json()["detail"] == "version_mismatch"

	ok = await api_client.put(
		f"/api/clubs/{club['id']}",
		json={"description": "Renamed"},
		headers={**admin_headers, "If-Match": str(club["version"])},
	)
	assert ok.status_code == 200
	assert ok.json()["version"] == club["version"] + 1


@pytest.mark.asyncio
async def test_list_clubs_hides_inactive_from_students(api_client: AsyncClient, admin_headers):
	await _create_club(api_client, admin_headers, "Active Club")
	dormant = await _create_club(api_client, admin_headers, "Dormant Club")
	await api_client.put(f"/api/clubs/{dormant['id']}", json={"status": "inactive"}, headers=admin_headers)

	public = await api_client.get("/api/clubs")
	admin_view = await api_client.get("/api/clubs", headers=admin_headers)

	assert [c["name"] for c in public.json()["clubs"]] == ["Active Club"]
	assert admin_view.json()["total"] == 2
	hidden = await api_client.get(f"/api/clubs/{dormant['id']}")
	assert hidden.status_code == 404


@pytest.mark.asyncio
async def test_club_stats_overview(api_client: AsyncClient, admin_headers):
	await _create_club(api_client, admin_headers)

	response = await api_client.get("/api/clubs/stats/overview", headers=admin_headers)

	assert response.status_code == 200
	assert response.json()["total_clubs"] == 1
	assert response.json()["active_clubs"] == 1


@pytest.mark.asyncio
async def test_join_form_rejects_blank_answers(api_client: AsyncClient, admin_headers):
	club = await _create_club(api_client, admin_headers)
	student = {"X-User-Id": str(uuid4()), "X-User-Roles": "student"}

	blank = await api_client.post(
		f"/api/clubs/{club['id']}/join", json={**JOIN_FORM, "fullName": "   "}, headers=student
	)
	padded = await api_client.post(
		f"/api/clubs/{club['id']}/join", json={**JOIN_FORM, "fullName": "  Abebe Kebede  "}, headers=student
	)

	assert blank.status_code == 422
	assert padded.status_code == 200
	assert padded.json()["membership"]["full_name"] == "Abebe Kebede"
