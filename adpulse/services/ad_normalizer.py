"""
Ad Normalizer - maps raw ad-library scrape items onto NormalizedAd rows.

Raw items come from the Apify facebook-ads-library-scraper actor and have an
inconsistent, deeply nested shape: any key may be missing, null, or of the
wrong type. Every field here is resolved by an ordered list of extraction
rules (paths into the item), taking the first present value and falling back
to a fixed default. Normalization never raises for data-shape reasons.

The batch entry point ``normalize_and_score`` is a pure function: no I/O and
no shared state, so batches can be processed concurrently.

Usage:
    from adpulse.services.ad_normalizer import normalize_and_score

    result = normalize_and_score(items, platform="facebook", job_id=job.id)
    for ad in result.ads:              # best performers first
        print(ad.performance_score, ad.advertiser_name)
    print(result.stats.top_performer)
"""

import logging
import math
import re
import time
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from ..scoring.performance import compute_batch_stats, compute_performance_score, round_half_up
from .models import (
    ActiveStatus,
    AdType,
    NormalizationResult,
    NormalizedAd,
    Platform,
    Verified,
)

logger = logging.getLogger(__name__)


UNKNOWN_ADVERTISER = "Unknown Advertiser"
DEFAULT_CTA_TEXT = "Shop now"
DEFAULT_AD_FORMAT = "UNKNOWN"
NO_REACH_DATA = "No data"
BLUE_VERIFIED = "BLUE_VERIFIED"
SECONDS_PER_HOUR = 3600

HASHTAG_PATTERN = re.compile(r"#\w+")

LIBRARY_URL_TEMPLATES = {
    Platform.FACEBOOK: "https://www.facebook.com/ads/library/?id={ad_id}",
    Platform.TIKTOK: "https://library.tiktok.com/ads/detail/?ad_id={ad_id}",
}

Path = Tuple[Union[str, int], ...]

# Ordered extraction rules: first non-empty value wins
ADVERTISER_PATHS: Tuple[Path, ...] = (
    ("snapshot", "page_name"),
    ("page_name",),
    ("advertiser", "page_name"),
    ("advertiser", "name"),
    ("advertiser", "ad_library_page_info", "page_info", "page_name"),
)

VIDEO_ENTRY_PATHS: Tuple[Path, ...] = (
    ("snapshot", "cards", 0),
    ("snapshot", "videos", 0),
)

IMAGE_URL_PATHS: Tuple[Path, ...] = (
    ("snapshot", "images", 0, "original_image_url"),
    ("snapshot", "cards", 0, "original_image_url"),
)

VERIFICATION_PATH: Path = ("advertiser", "ad_library_page_info", "page_info", "page_verification")


class MediaInfo(NamedTuple):
    """Resolved creative media for one ad."""
    type: AdType
    download_url: str
    thumbnail: str


# ============================================================================
# Extraction helpers
# ============================================================================

def _dig(data: Any, *path: Union[str, int]) -> Any:
    """Follow ``path`` through nested mappings/lists; None if any step is missing."""
    current = data
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, (list, tuple)) or len(current) <= step:
                return None
            current = current[step]
        else:
            if not isinstance(current, Mapping):
                return None
            current = current.get(step)
        if current is None:
            return None
    return current


def _text(value: Any) -> Optional[str]:
    """Non-blank string or None."""
    if isinstance(value, str) and value.strip():
        return value
    return None


def _string(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _number(value: Any) -> float:
    """Finite numeric value of ``value``; 0 for anything else."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return 0.0
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    if isinstance(value, (bool, int, float)):
        return bool(value)
    return False


def _identifier(value: Any) -> Optional[str]:
    """Ad archive IDs arrive as strings or bare integers."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    return _text(value)


def _first_present(item: Mapping, paths: Iterable[Path]) -> Optional[str]:
    for path in paths:
        value = _text(_dig(item, *path))
        if value is not None:
            return value
    return None


def _generate_ad_id() -> str:
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}"


# ============================================================================
# Field resolution
# ============================================================================

def resolve_media(item: Mapping) -> MediaInfo:
    """
    Classify an ad as video or image and pick its media URLs.

    Video: the first card, then the first entry of ``snapshot.videos``, each
    preferring the HD URL over SD. The thumbnail is that entry's preview image.
    Image: the first image's original URL, then the first card's original
    image URL, then the (empty) thumbnail.
    """
    video_url = None
    thumbnail = ""

    for path in VIDEO_ENTRY_PATHS:
        entry = _dig(item, *path)
        if not isinstance(entry, Mapping):
            continue
        url = _text(entry.get("video_hd_url")) or _text(entry.get("video_sd_url"))
        if url:
            video_url = url
            thumbnail = _text(entry.get("video_preview_image_url")) or ""
            break

    if video_url:
        return MediaInfo(AdType.VIDEO, video_url, thumbnail)

    image_url = _first_present(item, IMAGE_URL_PATHS) or thumbnail
    return MediaInfo(AdType.IMAGE, image_url, image_url)


def resolve_advertiser(item: Mapping) -> str:
    """First non-empty advertiser name across the known paths."""
    return _first_present(item, ADVERTISER_PATHS) or UNKNOWN_ADVERTISER


def extract_hashtags(text: Optional[str]) -> str:
    """
    Extract ``#word`` tokens from ad copy.

    Example:
        >>> extract_hashtags("Great deal! #SALE #newyear2024 check it out")
        '#SALE, #newyear2024'
    """
    if not isinstance(text, str):
        return ""
    return ", ".join(HASHTAG_PATTERN.findall(text))


def build_library_url(platform: Union[Platform, str], ad_id: str) -> str:
    """Ad library URL for ``ad_id`` on ``platform``."""
    return LIBRARY_URL_TEMPLATES[Platform(platform)].format(ad_id=ad_id)


def format_reach(item: Mapping) -> str:
    reach = _dig(item, "aaa_info", "eu_total_reach")
    if isinstance(reach, bool) or not isinstance(reach, (int, float, str)) or not reach:
        return NO_REACH_DATA
    if isinstance(reach, float) and reach.is_integer():
        reach = int(reach)
    return f"EU: {reach}k"


def _publisher_platforms(item: Mapping) -> List[str]:
    platforms = item.get("publisher_platform")
    if not isinstance(platforms, (list, tuple)):
        return []
    return [str(p) for p in platforms if p is not None]


# ============================================================================
# Normalization
# ============================================================================

def normalize_ad(
    item: Mapping,
    platform: Union[Platform, str],
    scraped_at: Optional[datetime] = None
) -> NormalizedAd:
    """
    Normalize a single raw ad-library item.

    Args:
        item: Raw item from the scrape provider (any shape)
        platform: Platform of the owning scrape job
        scraped_at: Normalization timestamp (defaults to now, UTC)

    Returns:
        NormalizedAd with every missing field defaulted
    """
    platform = Platform(platform)
    scraped_at = scraped_at or datetime.now(timezone.utc)

    media = resolve_media(item)
    body_text = _string(_dig(item, "snapshot", "body", "text"))

    active_hours = round_half_up(max(_number(item.get("total_active_time")), 0.0) / SECONDS_PER_HOUR)
    variants = max(1, int(_number(item.get("collation_count"))))
    platforms = _publisher_platforms(item)
    platform_count = max(1, len(platforms))
    is_verified = _dig(item, *VERIFICATION_PATH) == BLUE_VERIFIED

    ad_id = _identifier(item.get("ad_archive_id")) or _generate_ad_id()

    return NormalizedAd(
        ad_id=ad_id,
        platform=platform,
        type=media.type,
        url=_text(item.get("ad_library_url")) or build_library_url(platform, ad_id),
        download_url=media.download_url,
        thumbnail=media.thumbnail,
        advertiser_name=resolve_advertiser(item),
        ad_copy=body_text,
        title=_string(_dig(item, "snapshot", "title")),
        cta_text=_text(_dig(item, "snapshot", "cta_text")) or DEFAULT_CTA_TEXT,
        landing_url=_string(_dig(item, "snapshot", "link_url")),
        active_status=ActiveStatus.ACTIVE if _flag(item.get("is_active")) else ActiveStatus.INACTIVE,
        active_hours=active_hours,
        variants=variants,
        platforms_used=", ".join(platforms),
        page_likes=max(0, int(_number(_dig(item, "snapshot", "page_like_count")))),
        verified=Verified.YES if is_verified else Verified.NO,
        performance_score=compute_performance_score(active_hours, variants, platform_count, is_verified),
        est_reach=format_reach(item),
        ad_format=_text(_dig(item, "snapshot", "display_format")) or DEFAULT_AD_FORMAT,
        hashtags=extract_hashtags(body_text),
        raw_data=item,
        scraped_at=scraped_at,
    )


def normalize_and_score(
    raw_items: Optional[Sequence[Any]],
    platform: Union[Platform, str],
    job_id: Optional[str] = None,
    now: Optional[datetime] = None,
    dedupe: bool = False
) -> NormalizationResult:
    """
    Normalize, score and rank one scrape batch.

    Args:
        raw_items: Raw items from the scrape provider (may be empty)
        platform: Platform of the owning job (not inferred from items)
        job_id: Owning job ID, carried through for tracing
        now: Timestamp written to every ad's scraped_at (defaults to now, UTC)
        dedupe: Drop items repeating an earlier ad_archive_id (first wins)

    Returns:
        NormalizationResult with ads sorted by performance_score descending
        (ties keep input order) and batch statistics
    """
    platform = Platform(platform)
    scraped_at = now or datetime.now(timezone.utc)

    ads: List[NormalizedAd] = []
    skipped = 0
    duplicates = 0
    seen_ids = set()

    items = list(raw_items or [])
    logger.info(f"Normalizing {len(items)} {platform.value} ads (job={job_id})")

    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            logger.warning(f"Skipping malformed ad item at index {index}: {type(item).__name__}")
            skipped += 1
            continue

        if dedupe:
            raw_id = _identifier(item.get("ad_archive_id"))
            if raw_id is not None:
                if raw_id in seen_ids:
                    duplicates += 1
                    continue
                seen_ids.add(raw_id)

        ads.append(normalize_ad(item, platform, scraped_at))

    # list.sort is stable, including with reverse=True
    ads.sort(key=lambda ad: ad.performance_score, reverse=True)

    if duplicates:
        logger.info(f"Removed {duplicates} duplicate ads")
    if skipped:
        logger.warning(f"Skipped {skipped} malformed ad items")
    logger.info(f"Normalized {len(ads)} ads (job={job_id})")

    return NormalizationResult(
        job_id=job_id,
        platform=platform,
        ads=ads,
        stats=compute_batch_stats(ads),
        skipped=skipped,
    )
