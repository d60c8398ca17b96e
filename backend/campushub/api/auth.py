"""Account endpoints: register, login, profile and password change."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from campushub.api.deps import user_uuid
from campushub.api.errors import to_http_error
from campushub.domain.identity import schemas, service
from campushub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_endpoint(payload: schemas.RegisterRequest) -> schemas.AuthResponse:
	try:
		return await service.register(payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/login", response_model=schemas.AuthResponse)
async def login_endpoint(payload: schemas.LoginRequest) -> schemas.AuthResponse:
	try:
		return await service.login(payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/profile", response_model=schemas.ProfileResponse)
async def profile_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.ProfileResponse:
	try:
		return await service.get_profile(user_uuid(auth_user))
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/profile", response_model=schemas.UserOut)
async def update_profile_endpoint(
	payload: schemas.ProfileUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.UserOut:
	try:
		return await service.update_profile(user_uuid(auth_user), payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/change-password", response_model=schemas.MessageResponse)
async def change_password_endpoint(
	payload: schemas.ChangePasswordRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.MessageResponse:
	try:
		await service.change_password(user_uuid(auth_user), payload)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.MessageResponse(message="Password changed successfully")


__all__ = ["router"]
