"""Ranking and result computation over an election's candidate counters."""

from __future__ import annotations

from typing import List, Sequence

from campushub.domain.elections.models import Candidate, Election, ElectionResults, RankedCandidate


def rank_candidates(candidates: Sequence[Candidate]) -> List[Candidate]:
	"""Order candidates by votes, highest first.

	``sorted`` is stable, so tied candidates keep their listing order.
	"""
	return sorted(candidates, key=lambda candidate: candidate.votes, reverse=True)


def share(votes: int, total: int) -> float:
	if total <= 0:
		return 0.0
	return round(votes / total * 100, 1)


def build_results(election: Election) -> ElectionResults:
	ordered = rank_candidates(election.candidates)
	ranking: List[RankedCandidate] = []
	# Competition ranking: ties share a rank and the next rank skips.
	for index, candidate in enumerate(ordered):
		if index and candidate.votes == ordered[index - 1].votes:
			rank = ranking[-1].rank
		else:
			rank = index + 1
		ranking.append(RankedCandidate(rank=rank, candidate=candidate, percentage=share(candidate.votes, election.total_votes)))
	top = ordered[0].votes if ordered else 0
	winners = [candidate for candidate in ordered if top > 0 and candidate.votes == top]
	return ElectionResults(
		election_id=election.id,
		title=election.title,
		status=election.status,
		total_votes=election.total_votes,
		ranking=ranking,
		winners=winners,
		results_announced_at=election.results_announced_at,
	)
