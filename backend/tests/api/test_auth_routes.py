import pytest
from httpx import AsyncClient

REGISTRATION = {
	"name": "Selam Alemu",
	"username": "dbu10203040",
	"password": "s3cure-pass",
	"department": "Computer Science",
	"year": "2nd Year",
	"phoneNumber": "+251911000000",
}


@pytest.mark.asyncio
async def test_register_login_and_profile(api_client: AsyncClient):
	register = await api_client.post("/api/auth/register", json=REGISTRATION)
	assert register.status_code == 201
	assert register.json()["user"]["phone_number"] == "+251911000000"

	login = await api_client.post(
		"/api/auth/login", json={"username": "DBU10203040", "password": "s3cure-pass"}
	)
	assert login.status_code == 200
	token = login.json()["token"]

	profile = await api_client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
	assert profile.status_code == 200
	body = profile.json()
	assert body["user"]["username"] == "dbu10203040"
	assert body["joined_clubs"] == []
	assert body["voted_elections"] == []


@pytest.mark.asyncio
async def test_login_with_wrong_password(api_client: AsyncClient):
	await api_client.post("/api/auth/register", json=REGISTRATION)

	response = await api_client.post(
		"/api/auth/login", json={"username": "dbu10203040", "password": "not-the-one"}
	)

	assert response.status_code == 401
	assert response.json()["detail"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_duplicate_registration(api_client: AsyncClient):
	await api_client.post("/api/auth/register", json=REGISTRATION)

	response = await api_client.post("/api/auth/register", json=REGISTRATION)

	assert response.status_code == 400
	assert response.json()["detail"] == "User already exists with this username or email"


@pytest.mark.asyncio
async def test_change_password_endpoint(api_client: AsyncClient):
	register = await api_client.post("/api/auth/register", json=REGISTRATION)
	headers = {"Authorization": f"Bearer {register.json()['token']}"}

	response = await api_client.put(
		"/api/auth/change-password",
		json={"currentPassword": "s3cure-pass", "newPassword": "another-pass"},
		headers=headers,
	)

	assert response.status_code == 200
	assert response.json()["message"] == "Password changed successfully"


@pytest.mark.asyncio
async def test_profile_rejects_garbage_token(api_client: AsyncClient):
	response = await api_client.get("/api/auth/profile", headers={"Authorization": "Bearer not-a-jwt"})

	assert response.status_code == 401
	assert response.json()["detail"] == "invalid_token"


@pytest.mark.asyncio
async def test_missing_fields_are_validation_errors(api_client: AsyncClient):
	response = await api_client.post("/api/auth/register", json={"username": "dbu10203040"})

	assert response.status_code == 422
	assert response.json()["detail"] == "validation_error"
