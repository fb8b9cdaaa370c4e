"""Repository for the ``weight_configs`` table."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Optional

from scorepad_recommender.db.repositories.base import BaseRepository, dump_json, load_json
from scorepad_recommender.learning.bounds import clamp_scalar, stored_scalar
from scorepad_recommender.taxonomy.relation_taxonomy import WeightDomain, default_weights


class WeightConfigRepository(BaseRepository):
    """Persisted global factor weights, one row per domain.

    Stored values are merged over the domain defaults on read, so a domain
    that gained a factor after its row was written still reports it.
    """

    def get_stored(self, domain: WeightDomain) -> Optional[dict[str, float]]:
        """Return the stored mapping for ``domain``, or ``None``.

        Non-finite values are dropped and the rest are clamped to [0.2, 5.0].
        """
        row = self.fetchone(
            "SELECT weights FROM weight_configs WHERE domain_id = ?;", (str(domain),)
        )
        if row is None:
            return None
        stored = load_json(row["weights"], {})
        if not isinstance(stored, dict):
            return {}
        scalars = {str(k): stored_scalar(v) for k, v in stored.items()}
        return {k: v for k, v in scalars.items() if v is not None}

    def get(self, domain: WeightDomain) -> dict[str, float]:
        """Return the effective weights: defaults overlaid with stored values."""
        weights = default_weights(domain)
        weights.update(self.get_stored(domain) or {})
        return weights

    def save(self, domain: WeightDomain, weights: Mapping[str, float], updated_at: int) -> None:
        """Persist ``weights`` for ``domain``; values are clamped to [0.2, 5.0]."""
        clamped = {str(k): clamp_scalar(float(v)) for k, v in weights.items()}
        self.execute(
            """
            INSERT INTO weight_configs (domain_id, weights, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT (domain_id) DO UPDATE SET
                weights    = excluded.weights,
                updated_at = excluded.updated_at;
            """,
            (str(domain), dump_json(clamped), updated_at),
        )

    def clear(self) -> int:
        return self.execute("DELETE FROM weight_configs;").rowcount
