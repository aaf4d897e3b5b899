"""
Performance scoring for normalized ads.

The performance score is a 0-100 heuristic built from the four signals a
scrape exposes: longevity (days active), creative variant volume, number of
publisher platforms, and blue verification. Each factor is capped so that
none dominates; the caps sum to 100.

All rounding in this module is half-up (2.5 -> 3), matching how the scores
were originally produced. Python's built-in ``round`` is half-even and is not
used here.
"""

import math
from typing import Optional, Sequence

from ..services.models import BatchStats, NormalizedAd, TopPerformer


# ============================================================================
# Weights and caps
# ============================================================================

POINTS_PER_DAY = 5
MAX_LONGEVITY_POINTS = 40

POINTS_PER_VARIANT = 6
MAX_VARIANT_POINTS = 30

POINTS_PER_PLATFORM = 4
MAX_PLATFORM_POINTS = 20

VERIFIED_POINTS = 10

MIN_SCORE = 0
MAX_SCORE = 100


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round to ``ndigits`` decimals, ties away from zero for positives.

    Returns an int when ``ndigits`` is 0.
    """
    factor = 10 ** ndigits
    rounded = math.floor(value * factor + 0.5) / factor
    if ndigits == 0:
        return int(rounded)
    return rounded


def compute_performance_score(
    active_hours: float,
    variants: int,
    platform_count: int,
    verified: bool
) -> int:
    """
    Compute the heuristic performance score for one ad.

    Args:
        active_hours: Total hours the ad has been active
        variants: Number of creative variants (collation count)
        platform_count: Number of publisher platforms the ad runs on
        verified: Whether the advertiser page is blue-verified

    Returns:
        Integer score in [0, 100]

    Example:
        >>> compute_performance_score(240, 6, 2, True)
        88
    """
    days = max(active_hours, 0) / 24

    score = 0.0
    score += min(MAX_LONGEVITY_POINTS, days * POINTS_PER_DAY)
    score += min(MAX_VARIANT_POINTS, max(variants, 0) * POINTS_PER_VARIANT)
    score += min(MAX_PLATFORM_POINTS, max(platform_count, 0) * POINTS_PER_PLATFORM)
    if verified:
        score += VERIFIED_POINTS

    return max(MIN_SCORE, min(MAX_SCORE, round_half_up(score)))


def _average(values: Sequence[float]) -> float:
    # Empty batches average to 0
    if not values:
        return 0.0
    return sum(values) / len(values)


def compute_batch_stats(ads: Sequence[NormalizedAd]) -> BatchStats:
    """
    Reduce a normalized batch to reporting statistics.

    The top performer is the first ad in ``ads``; callers pass the batch
    already sorted by score.

    Args:
        ads: Normalized ads, sorted by performance_score descending

    Returns:
        BatchStats (all zeros and no top performer for an empty batch)
    """
    top: Optional[TopPerformer] = None
    if ads:
        first = ads[0]
        top = TopPerformer(
            ad_id=first.ad_id,
            title=first.title,
            score=first.performance_score,
            active_hours=first.active_hours,
            variants=first.variants,
        )

    return BatchStats(
        total_ads=len(ads),
        active_ads=sum(1 for ad in ads if ad.is_active),
        average_active_hours=round_half_up(_average([ad.active_hours for ad in ads])),
        video_count=sum(1 for ad in ads if ad.is_video),
        image_count=sum(1 for ad in ads if not ad.is_video),
        average_variants=round_half_up(_average([ad.variants for ad in ads]), 1),
        top_performer=top,
    )
