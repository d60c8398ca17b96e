"""FastAPI routes for elections, voting and results."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from campushub.api.deps import expected_version, user_uuid
from campushub.api.errors import to_http_error
from campushub.domain.elections import schemas
from campushub.domain.elections.models import ElectionStatus
from campushub.domain.elections.service import ElectionTally
from campushub.infra.auth import AuthenticatedUser, get_admin_user, get_current_user, get_optional_user

router = APIRouter(prefix="/elections", tags=["elections"])

_tally = ElectionTally()


@router.get("/stats/overview", response_model=schemas.ElectionStatsResponse)
async def election_stats_endpoint(
	auth_user: AuthenticatedUser = Depends(get_admin_user),
) -> schemas.ElectionStatsResponse:
	try:
		stats = await _tally.election_stats(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.ElectionStatsResponse.from_domain(stats)


@router.get("", response_model=List[schemas.ElectionResponse])
async def list_elections_endpoint(
	status_filter: Optional[ElectionStatus] = Query(default=None, alias="status"),
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> List[schemas.ElectionResponse]:
	try:
		elections = await _tally.list_elections(status_filter)
		if auth_user is None:
			return [schemas.ElectionResponse.from_domain(e) for e in elections]
		voter = user_uuid(auth_user)
		return [
			schemas.ElectionResponse.from_domain(e, has_voted=await _tally.has_voted(e.id, voter))
			for e in elections
		]
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("", response_model=schemas.ElectionResponse, status_code=status.HTTP_201_CREATED)
async def create_election_endpoint(
	payload: schemas.ElectionCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_admin_user),
) -> schemas.ElectionResponse:
	try:
		election = await _tally.create_election(auth_user, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.ElectionResponse.from_domain(election)


@router.get("/{election_id}", response_model=schemas.ElectionResponse)
async def get_election_endpoint(
	election_id: UUID,
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> schemas.ElectionResponse:
	try:
		election = await _tally.get_election(election_id)
		has_voted = await _tally.has_voted(election_id, user_uuid(auth_user)) if auth_user else None
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.ElectionResponse.from_domain(election, has_voted=has_voted)


@router.put("/{election_id}", response_model=schemas.ElectionResponse)
async def update_election_endpoint(
	election_id: UUID,
	payload: schemas.ElectionUpdateRequest,
	version: Optional[int] = Depends(expected_version),
	auth_user: AuthenticatedUser = Depends(get_admin_user),
) -> schemas.ElectionResponse:
	try:
		election = await _tally.update_election(auth_user, election_id, payload, expected_version=version)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.ElectionResponse.from_domain(election)


@router.patch("/{election_id}/status", response_model=schemas.ElectionResponse)
async def update_status_endpoint(
	election_id: UUID,
	payload: schemas.ElectionStatusRequest,
	version: Optional[int] = Depends(expected_version),
	auth_user: AuthenticatedUser = Depends(get_admin_user),
) -> schemas.ElectionResponse:
	try:
		election = await _tally.update_status(auth_user, election_id, payload.status, expected_version=version)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.ElectionResponse.from_domain(election)


@router.delete("/{election_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_election_endpoint(
	election_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_admin_user),
) -> Response:
	try:
		await _tally.delete_election(auth_user, election_id)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{election_id}/vote", response_model=schemas.VoteResponse)
async def cast_vote_endpoint(
	election_id: UUID,
	payload: schemas.VoteRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.VoteResponse:
	try:
		election = await _tally.cast_vote(election_id, user_uuid(auth_user), payload.candidate_id)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.VoteResponse(election=schemas.ElectionResponse.from_domain(election, has_voted=True))


# Non-admins get 403 from the service rather than from a route guard.
@router.post("/{election_id}/announce", response_model=schemas.ElectionResultsResponse)
async def announce_results_endpoint(
	election_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.ElectionResultsResponse:
	try:
		results = await _tally.announce_results(auth_user, election_id)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.ElectionResultsResponse.from_domain(results)


@router.get("/{election_id}/results", response_model=schemas.ElectionResultsResponse)
async def results_endpoint(election_id: UUID) -> schemas.ElectionResultsResponse:
	try:
		results = await _tally.results(election_id)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return schemas.ElectionResultsResponse.from_domain(results)


__all__ = ["router"]
