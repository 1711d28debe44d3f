"""Deterministic percentage sampling of an eligible population.

The same survey must draw the same students every time it is saved with
an unchanged population and percentage, even across restarts. Members are
therefore ranked by a salted SHA-256 of (seed, member id) rather than by
any process-local random state, and the lowest-ranked members are kept.
"""

import hashlib
import math
from typing import Optional, Sequence

from survegio.config import get_settings
from survegio.schemas.survey import clamp_percentage
from survegio.logging_config import get_logger

logger = get_logger(__name__)


class Sampler:
    """Seeded, reproducible sampler for student and class populations.

    Ranking by hash gives a pseudo-random permutation that depends only on
    the seed and each member's identity, so:
    - identical (population, percentage, seed) always yields the same set
    - the result does not depend on the order the population was fetched in
    - growing the percentage only adds members, it never swaps them out
    - different seeds (surveys) sample independently

    Usage example:
        from survegio.services.sampler import Sampler

        selected = Sampler.select(student_ids, survey.student_percentage, survey.id)
    """

    @staticmethod
    def target_size(population_size: int, percentage: float) -> int:
        """
        Number of members to select for a population and percentage.

        ``ceil(size * percentage / 100)`` clamped to ``[0, size]``; the
        percentage is clamped to ``[0, 100]`` first.

        Example:
            >>> Sampler.target_size(30, 50)
            15
            >>> Sampler.target_size(7, 10)
            1
        """
        if population_size <= 0:
            return 0
        percentage = clamp_percentage(percentage)
        # round() absorbs float noise such as 21.000000000000004
        size = math.ceil(round(population_size * percentage / 100, 9))
        return min(population_size, max(0, size))

    @staticmethod
    def rank_key(member_id: int, seed: int, salt: Optional[str] = None) -> bytes:
        """
        Stable ranking key of one member for one seed.

        Args:
            member_id: Population member identifier
            seed: Sampling seed (the survey id)
            salt: Namespace salt (defaults to settings.sampling_salt)

        Returns:
            32-byte SHA-256 digest
        """
        if salt is None:
            salt = get_settings().sampling_salt
        material = f"{salt}:{seed}:{member_id}"
        return hashlib.sha256(material.encode("utf-8")).digest()

    @staticmethod
    def permutation(
        population_ids: Sequence[int],
        seed: int,
        salt: Optional[str] = None
    ) -> list[int]:
        """
        Seeded permutation of the population (a new list, input untouched).
        """
        if salt is None:
            salt = get_settings().sampling_salt
        return sorted(
            population_ids,
            key=lambda member_id: (Sampler.rank_key(member_id, seed, salt), member_id),
        )

    @staticmethod
    def select(
        population_ids: Sequence[int],
        percentage: float,
        seed: int,
        salt: Optional[str] = None
    ) -> list[int]:
        """
        Select a percentage of the population, reproducibly.

        Args:
            population_ids: Eligible member ids (treated as already unique)
            percentage: Share to select, clamped to [0, 100]
            seed: Sampling seed, normally the survey id
            salt: Namespace salt (defaults to settings.sampling_salt)

        Returns:
            Selected member ids in permutation order

        Example:
            >>> first = Sampler.select([1, 2, 3, 4], 50, seed=7)
            >>> first == Sampler.select([4, 3, 2, 1], 50, seed=7)
            True
            >>> len(first)
            2
        """
        size = Sampler.target_size(len(population_ids), percentage)
        if size == 0:
            return []

        selected = Sampler.permutation(population_ids, seed, salt)[:size]
        logger.debug(
            f"Sampled {len(selected)} of {len(population_ids)} members "
            f"at {percentage}% (seed={seed})"
        )
        return selected
