"""FastAPI routes for clubs and club membership."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from campushub.api.deps import expected_version, user_uuid
from campushub.api.errors import to_http_error
from campushub.domain.clubs import schemas
from campushub.domain.clubs.membership import MembershipManager
from campushub.domain.clubs.models import ClubStatus
from campushub.domain.clubs.service import ClubService
from campushub.infra.auth import AuthenticatedUser, get_admin_user, get_current_user, get_optional_user

router = APIRouter(prefix="/clubs", tags=["clubs"])

_club_service = ClubService()
_membership = MembershipManager()

JOIN_SUBMITTED = "Join request submitted successfully. Waiting for admin approval."


@router.get("/stats/overview", response_model=schemas.ClubStatsResponse)
async def club_stats_endpoint(
	auth_user: AuthenticatedUser = Depends(get_admin_user),
) -> schemas.ClubStatsResponse:
	try:
		stats = await _club_service.club_stats(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.ClubStatsResponse.from_domain(stats)


@router.get("", response_model=schemas.ClubListResponse)
async def list_clubs_endpoint(
	category: Optional[str] = Query(default=None, max_length=60),
	status_filter: Optional[ClubStatus] = Query(default=None, alias="status"),
	search: Optional[str] = Query(default=None, max_length=100),
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=20, ge=1, le=100),
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> schemas.ClubListResponse:
	try:
		result = await _club_service.list_clubs(
			auth_user,
			category=category,
			status=status_filter,
			search=search,
			page=page,
			limit=limit,
		)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.ClubListResponse.from_page(result)


@router.post("", response_model=schemas.ClubResponse, status_code=status.HTTP_201_CREATED)
async def create_club_endpoint(
	payload: schemas.ClubCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_admin_user),
) -> schemas.ClubResponse:
	try:
		club = await _club_service.create_club(auth_user, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.ClubResponse.from_domain(club)


@router.get("/{club_id}", response_model=schemas.ClubDetailResponse)
async def get_club_endpoint(
	club_id: UUID,
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> schemas.ClubDetailResponse:
	try:
		club = await _club_service.get_club(club_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.ClubDetailResponse.from_club(club, include_members=bool(auth_user and auth_user.is_admin))


@router.put("/{club_id}", response_model=schemas.ClubResponse)
async def update_club_endpoint(
	club_id: UUID,
	payload: schemas.ClubUpdateRequest,
	version: Optional[int] = Depends(expected_version),
	auth_user: AuthenticatedUser = Depends(get_admin_user),
) -> schemas.ClubResponse:
	try:
		club = await _club_service.update_club(auth_user, club_id, payload, expected_version=version)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.ClubResponse.from_domain(club)


@router.delete("/{club_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_club_endpoint(
	club_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_admin_user),
) -> Response:
	try:
		await _club_service.delete_club(auth_user, club_id)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{club_id}/join", response_model=schemas.MembershipActionResponse)
async def join_club_endpoint(
	club_id: UUID,
	payload: schemas.JoinClubRequest,
	version: Optional[int] = Depends(expected_version),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.MembershipActionResponse:
	try:
		membership = await _membership.request_join(
			club_id,
			user_uuid(auth_user),
			full_name=payload.full_name,
			department=payload.department,
			year=payload.year,
			background=payload.background,
			expected_version=version,
		)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.MembershipActionResponse(
		message=JOIN_SUBMITTED,
		membership=schemas.MembershipSchema.from_domain(membership),
	)


@router.get("/{club_id}/join-requests", response_model=List[schemas.MembershipSchema])
async def list_join_requests_endpoint(
	club_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_admin_user),
) -> List[schemas.MembershipSchema]:
	try:
		pending = await _membership.list_pending_requests(club_id)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return [schemas.MembershipSchema.from_domain(m) for m in pending]


@router.patch("/{club_id}/members/{membership_id}/approve", response_model=schemas.MembershipActionResponse)
async def approve_member_endpoint(
	club_id: UUID,
	membership_id: UUID,
	version: Optional[int] = Depends(expected_version),
	auth_user: AuthenticatedUser = Depends(get_admin_user),
) -> schemas.MembershipActionResponse:
	try:
		membership = await _membership.approve_member(club_id, membership_id, expected_version=version)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.MembershipActionResponse(
		message="Member approved successfully",
		membership=schemas.MembershipSchema.from_domain(membership),
	)


@router.patch("/{club_id}/members/{membership_id}/reject", response_model=schemas.MembershipActionResponse)
async def reject_member_endpoint(
	club_id: UUID,
	membership_id: UUID,
	version: Optional[int] = Depends(expected_version),
	auth_user: AuthenticatedUser = Depends(get_admin_user),
) -> schemas.MembershipActionResponse:
	try:
		membership = await _membership.reject_member(club_id, membership_id, expected_version=version)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.MembershipActionResponse(
		message="Member rejected",
		membership=schemas.MembershipSchema.from_domain(membership),
	)


@router.post("/{club_id}/leave", response_model=schemas.MembershipActionResponse)
async def leave_club_endpoint(
	club_id: UUID,
	version: Optional[int] = Depends(expected_version),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.MembershipActionResponse:
	try:
		await _membership.leave_club(club_id, user_uuid(auth_user), expected_version=version)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.MembershipActionResponse(message="Successfully left the club")


__all__ = ["router"]
