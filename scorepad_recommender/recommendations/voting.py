"""
Weighted positional voting.

Each voter is an entity plus the factor tag it votes under. For one
relation kind, a voter walks its ranked list and hands out positional
points — 5 for its first valid candidate, then 4, 3, 2, and 1 for every
later one — scaled by the voter's confidence in that list and the global
weight of its factor:

    score(candidate) += max(1, 5 - k) * confidence * factor_weight

``k`` counts *valid* votes only: ignored ids (e.g. players already seated)
are skipped without consuming a slot, so the next candidate inherits the
higher score ("dynamic backfill").
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from scorepad_recommender.models.entity import Entity
from scorepad_recommender.taxonomy.relation_taxonomy import DEFAULT_WEIGHT, Factor

MAX_SCORE_BASE = 5
DEFAULT_CANDIDATE_LIMIT = 5


@dataclass(frozen=True)
class Voter:
    """One ballot source for a scoring pass.

    Attributes:
        entity: Entity whose ranked lists are read.
        factor: Tag selecting the global weight applied to this ballot.
    """

    entity: Entity
    factor: Factor


def calculate_scores(
    voters: Iterable[Voter],
    weights: Mapping[str, float],
    relation_kind: str,
    ignore_ids: Iterable[str] = (),
    candidate_limit: int = DEFAULT_CANDIDATE_LIMIT,
) -> dict[str, float]:
    """Sum weighted positional votes per candidate.

    Args:
        voters: Ballot sources. Voters without a list for ``relation_kind``
            abstain.
        weights: Factor → global weight (missing factors weigh 1.0).
        relation_kind: Which ranked list each voter reads.
        ignore_ids: Candidates that may not receive votes.
        candidate_limit: Maximum valid votes per voter.

    Returns:
        Candidate id → score. Insertion order is first-seen order.
    """
    ignored = set(ignore_ids)
    scores: dict[str, float] = {}

    for voter in voters:
        candidates = voter.entity.meta.relations.get(relation_kind)
        if not candidates:
            continue

        confidence = voter.entity.meta.confidence_for(relation_kind)
        factor_weight = weights.get(str(voter.factor), DEFAULT_WEIGHT)

        valid_votes = 0
        for candidate in candidates:
            if valid_votes >= candidate_limit:
                break
            if candidate.id in ignored:
                continue
            base = max(1, MAX_SCORE_BASE - valid_votes)
            scores[candidate.id] = scores.get(candidate.id, 0.0) + base * confidence * factor_weight
            valid_votes += 1

    return scores


def rank_candidates(scores: Mapping[str, float]) -> list[str]:
    """Return candidate ids by score, descending; ties keep first-seen order."""
    return [cid for cid, _ in sorted(scores.items(), key=lambda kv: kv[1], reverse=True)]


def best_candidate(scores: Mapping[str, float]) -> tuple[str, float] | None:
    """Return the highest-scoring ``(id, score)``; the first seen wins ties."""
    best: tuple[str, float] | None = None
    for cid, score in scores.items():
        if score > 0 and (best is None or score > best[1]):
            best = (cid, score)
    return best
