import pytest
from uuid import uuid4

from campushub.domain import container
from campushub.domain.exceptions import ConflictError, LockedError, NotFoundError, UnauthorizedError, ValidationError
from campushub.domain.identity import schemas, service
from campushub.domain.identity.models import UserRole
from campushub.domain.identity.provisioning import ensure_default_admin
from campushub.infra import jwt as jwt_helper
from campushub.settings import settings


def _register_payload(**overrides):
	data = dict(
		name="Selam Alemu",
		username="DBU12345678",
		password="s3cure-pass",
		department="Computer Science",
		year="2nd Year",
		email="Selam@DBU.edu.et",
	)
	data.update(overrides)
	return schemas.RegisterRequest(**data)


@pytest.mark.asyncio
async def test_register_normalises_and_issues_token():
	response = await service.register(_register_payload())

	assert response.success is True
	assert response.message == "User registered successfully"
	assert response.user.username == "dbu12345678"
	assert response.user.email == "selam@dbu.edu.et"
	assert response.user.role == UserRole.STUDENT
	claims = jwt_helper.decode_access(response.token)
	assert claims["sub"] == str(response.user.id)
	assert claims["roles"] == ["student"]


@pytest.mark.asyncio
async def test_register_rejects_bad_username():
	with pytest.raises(ValidationError) as exc:
		await service.register(_register_payload(username="student42"))
	assert exc.value.detail == "Username must start with dbu followed by 8 digits"


@pytest.mark.asyncio
async def test_register_rejects_short_password():
	with pytest.raises(ValidationError):
		await service.register(_register_payload(password="short"))


@pytest.mark.asyncio
async def test_register_duplicate_username():
	await service.register(_register_payload())
	with pytest.raises(ConflictError) as exc:
		await service.register(_register_payload(email="other@dbu.edu.et"))
	assert exc.value.detail == "User already exists with this username or email"


@pytest.mark.asyncio
async def test_login_success_resets_attempts():
	await service.register(_register_payload())
	with pytest.raises(UnauthorizedError):
		await service.login(schemas.LoginRequest(username="dbu12345678", password="wrong-pass"))

	response = await service.login(schemas.LoginRequest(username="dbu12345678", password="s3cure-pass"))

	assert response.message == "Login successful"
	assert response.user.last_login is not None
	user = await container.users().find_by_username("dbu12345678")
	assert user.login_attempts == 0


@pytest.mark.asyncio
async def test_login_unknown_user():
	with pytest.raises(UnauthorizedError) as exc:
		await service.login(schemas.LoginRequest(username="dbu00000000", password="whatever1"))
	assert exc.value.detail == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_locks_after_repeated_failures(monkeypatch):
	monkeypatch.setattr(settings, "login_max_attempts", 3)
	await service.register(_register_payload())
	bad = schemas.LoginRequest(username="dbu12345678", password="wrong-pass")

	for _ in range(3):
		with pytest.raises(UnauthorizedError):
			await service.login(bad)

	# Even the right password is refused while locked.
	with pytest.raises(LockedError) as exc:
		await service.login(schemas.LoginRequest(username="dbu12345678", password="s3cure-pass"))
	assert exc.value.status_code == 423


@pytest.mark.asyncio
async def test_change_password_checks_current():
	registered = await service.register(_register_payload())
	user_id = registered.user.id

	with pytest.raises(ValidationError) as exc:
		await service.change_password(
			user_id, schemas.ChangePasswordRequest(current_password="nope-nope", new_password="brand-new-pass")
		)
	assert exc.value.detail == "Current password is incorrect"

	await service.change_password(
		user_id, schemas.ChangePasswordRequest(current_password="s3cure-pass", new_password="brand-new-pass")
	)
	response = await service.login(schemas.LoginRequest(username="dbu12345678", password="brand-new-pass"))
	assert response.user.id == user_id


@pytest.mark.asyncio
async def test_change_password_rejects_short_new_password():
	registered = await service.register(_register_payload())
	with pytest.raises(ValidationError) as exc:
		await service.change_password(
			registered.user.id, schemas.ChangePasswordRequest(current_password="s3cure-pass", new_password="tiny")
		)
	assert exc.value.detail == "New password must be at least 8 characters"


@pytest.mark.asyncio
async def test_update_profile_validates_year():
	registered = await service.register(_register_payload())
	with pytest.raises(ValidationError):
		await service.update_profile(registered.user.id, schemas.ProfileUpdateRequest(year="9th Year"))

	updated = await service.update_profile(
		registered.user.id, schemas.ProfileUpdateRequest(department="Mathematics", address="Block 12")
	)
	assert updated.department == "Mathematics"
	assert updated.address == "Block 12"


@pytest.mark.asyncio
async def test_ensure_default_admin_is_idempotent():
	created = await ensure_default_admin(username="dbu99999999", email="admin@dbu.edu.et", password="admin-pass-1")
	again = await ensure_default_admin(username="dbu99999999", email="admin@dbu.edu.et", password="admin-pass-1")

	assert created is not None
	assert created.role == UserRole.ADMIN
	assert again is None


@pytest.mark.asyncio
async def test_ensure_default_admin_skips_without_settings():
	assert await ensure_default_admin() is None
	assert await container.users().find_by_username("dbu99999999") is None


@pytest.mark.asyncio
async def test_profile_lists_joined_clubs_and_votes():
	registered = await service.register(_register_payload())

	profile = await service.get_profile(registered.user.id)

	assert profile.joined_clubs == []
	assert profile.voted_elections == []
	assert profile.user.id == registered.user.id


@pytest.mark.asyncio
async def test_profile_unknown_user():
	with pytest.raises(NotFoundError):
		await service.get_profile(uuid4())
