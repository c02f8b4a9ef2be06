"""
Reward tier selection

Weighted random choice of one reward tier for a spin. Pure: no database access,
randomness is injected so tests can pin the draw.

Two weighting modes are supported per room:
- capacity: a tier's weight is the number of prizes it holds; the effective
  weight is what is left after subtracting prizes already awarded, so a tier
  can never be handed out more times than it was defined with.
- probability: a tier's weight is a percentage. Weights are normalised over
  their declared sum, so a spin always lands on a tier even when the
  percentages add up to less than 100.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from random import SystemRandom
from typing import Dict, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

_rng = SystemRandom()


class TierWeightingMode(str, Enum):
    CAPACITY = "capacity"
    PROBABILITY = "probability"


@dataclass(frozen=True)
class RewardTier:
    name: str
    weight: int
    payout_amount: float


def effective_weights(
    tiers: Sequence[RewardTier],
    awarded_counts: Optional[Mapping[str, int]] = None,
    mode: TierWeightingMode = TierWeightingMode.CAPACITY,
) -> List[int]:
    """Selection weight per tier, in tier order, never negative."""
    awarded_counts = awarded_counts or {}
    if mode == TierWeightingMode.PROBABILITY:
        return [max(0, int(tier.weight)) for tier in tiers]
    return [
        max(0, int(tier.weight) - int(awarded_counts.get(tier.name, 0)))
        for tier in tiers
    ]


def remaining_capacity(
    tiers: Sequence[RewardTier], awarded_counts: Optional[Mapping[str, int]] = None
) -> Dict[str, int]:
    return dict(
        zip(
            (tier.name for tier in tiers),
            effective_weights(tiers, awarded_counts, TierWeightingMode.CAPACITY),
        )
    )


def select_reward_tier(
    tiers: Sequence[RewardTier],
    awarded_counts: Optional[Mapping[str, int]] = None,
    mode: TierWeightingMode = TierWeightingMode.CAPACITY,
    rng=None,
) -> Optional[RewardTier]:
    """
    Pick one tier by cumulative-weight sampling.

    Args:
        tiers: The room's tiers in their defined order (must not be empty)
        awarded_counts: Prizes already awarded per tier name (capacity mode)
        mode: How tier weights are interpreted
        rng: Anything with `randrange(n)`; defaults to SystemRandom

    Returns:
        The selected tier, or None when no weight is left to draw from
        (every prize handed out, or all probabilities zero)

    Raises:
        ValueError: If tiers is empty
    """
    if not tiers:
        raise ValueError("At least one reward tier is required")

    weights = effective_weights(tiers, awarded_counts, mode)
    total_remaining = sum(weights)
    if total_remaining <= 0:
        logger.info(f"No reward weight left across {len(tiers)} tiers (mode={mode.value})")
        return None

    r = (rng or _rng).randrange(total_remaining)
    cumulative = 0
    for tier, weight in zip(tiers, weights):
        cumulative += weight
        if cumulative > r:
            logger.debug(f"Tier draw {r}/{total_remaining} -> {tier.name}")
            return tier

    raise AssertionError(f"draw {r} fell outside total weight {total_remaining}")
