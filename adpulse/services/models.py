"""
Pydantic models for AdPulse services.

These models provide type-safe, validated data structures for:
- Normalized ad-library records (NormalizedAd)
- Batch reporting (BatchStats, TopPerformer, NormalizationResult)
- Scraping jobs (ScrapingJob, JobStatusReport)
- AI marketing analysis (AnalysisResult, KeyElements, CopyVariation)

All models use Pydantic v2 for validation and serialization.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Enumerations
# ============================================================================

class Platform(str, Enum):
    """Ad platform a scrape job targets."""
    FACEBOOK = "facebook"
    TIKTOK = "tiktok"


class AdType(str, Enum):
    VIDEO = "video"
    IMAGE = "image"


class ActiveStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class Verified(str, Enum):
    YES = "Yes"
    NO = "No"


class JobStatus(str, Enum):
    """Lifecycle of a scraping job row."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# ============================================================================
# Normalized Ads
# ============================================================================

class NormalizedAd(BaseModel):
    """
    Canonical, fixed-schema ad record.

    Built once per raw ad-library item per job run and inserted into the
    scraped_ads table. Never mutated afterwards by normalization; AI analysis
    fields are written to the row separately.
    """

    # Identifiers
    ad_id: str = Field(..., description="Ad archive ID, or a generated fallback")
    platform: Platform = Field(..., description="Platform of the owning scrape job")
    url: str = Field(..., description="Ad library URL")

    # Creative
    type: AdType
    download_url: str = Field("", description="Video URL for video ads, image URL otherwise")
    thumbnail: str = Field("", description="Preview image for video ads, image URL otherwise")
    ad_copy: str = ""
    title: str = ""
    cta_text: str = "Shop now"
    landing_url: str = ""
    ad_format: str = "UNKNOWN"
    hashtags: str = Field("", description="Comma-joined #hashtags found in the ad copy")

    # Advertiser
    advertiser_name: str = "Unknown Advertiser"
    page_likes: int = Field(0, ge=0)
    verified: Verified = Verified.NO

    # Activity
    active_status: ActiveStatus = ActiveStatus.INACTIVE
    active_hours: int = Field(0, ge=0)
    variants: int = Field(1, ge=1)
    platforms_used: str = ""

    # Derived
    performance_score: int = Field(..., ge=0, le=100)
    est_reach: str = "No data"

    # Bookkeeping
    raw_data: Any = Field(None, description="Original raw item, stored verbatim")
    scraped_at: datetime

    @property
    def is_video(self) -> bool:
        return self.type == AdType.VIDEO

    @property
    def is_active(self) -> bool:
        return self.active_status == ActiveStatus.ACTIVE

    def to_row(self) -> Dict[str, Any]:
        """Row dict for insertion into scraped_ads (JSON-ready)."""
        return self.model_dump(mode="json")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "NormalizedAd":
        """Rebuild from a scraped_ads row, ignoring columns added by enrichment."""
        fields = {k: v for k, v in row.items() if k in cls.model_fields and v is not None}
        return cls(**fields)

    model_config = {
        "json_schema_extra": {
            "example": {
                "ad_id": "1234567890",
                "platform": "facebook",
                "url": "https://www.facebook.com/ads/library/?id=1234567890",
                "type": "video",
                "download_url": "https://video.example.com/hd.mp4",
                "thumbnail": "https://img.example.com/preview.jpg",
                "ad_copy": "New year, new gear #SALE",
                "title": "Winter Sale",
                "cta_text": "Shop now",
                "landing_url": "https://shop.example.com",
                "ad_format": "VIDEO",
                "hashtags": "#SALE",
                "advertiser_name": "Example Store",
                "page_likes": 12000,
                "verified": "Yes",
                "active_status": "Active",
                "active_hours": 240,
                "variants": 6,
                "platforms_used": "facebook, instagram",
                "performance_score": 88,
                "est_reach": "EU: 15k",
                "scraped_at": "2024-01-01T00:00:00Z",
            }
        }
    }


class TopPerformer(BaseModel):
    """Summary of the highest scoring ad in a batch."""
    ad_id: str
    title: str
    score: int
    active_hours: int
    variants: int


class BatchStats(BaseModel):
    """Aggregate statistics over one normalized batch (reporting only)."""
    total_ads: int = 0
    active_ads: int = 0
    average_active_hours: int = 0
    video_count: int = 0
    image_count: int = 0
    average_variants: float = 0.0
    top_performer: Optional[TopPerformer] = None


class NormalizationResult(BaseModel):
    """Output of one normalize-and-score pass over a scrape batch."""
    job_id: Optional[str] = None
    platform: Platform
    ads: List[NormalizedAd] = Field(default_factory=list, description="Sorted by performance_score, descending")
    stats: BatchStats = Field(default_factory=BatchStats)
    skipped: int = Field(0, ge=0, description="Malformed entries that were not normalized")


# ============================================================================
# Scraping Jobs
# ============================================================================

class ScrapingJob(BaseModel):
    """Row of the scraping_jobs table."""
    id: str
    apify_run_id: Optional[str] = None
    platform: Platform
    search_query: str = ""
    status: JobStatus = JobStatus.PENDING
    total_ads_found: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class JobStatusReport(BaseModel):
    """Status of a scraping job as reported back to its caller."""
    job_id: str
    status: str
    message: str
    total_ads_found: Optional[int] = None
    stats: Optional[BatchStats] = None


# ============================================================================
# Ad Analysis
# ============================================================================

class KeyElements(BaseModel):
    """Observable creative elements of an ad, computed without AI."""
    has_video: bool
    has_image: bool
    has_cta: bool
    cta_text: str
    copy_length: int
    uses_urgency: bool
    highlights_benefits: bool
    emotional_appeal: bool
    conversational: bool
    advertiser: str
    platform: str


class CopyVariation(BaseModel):
    headline: str
    body: str
    cta: str
    style: str = ""


class AnalysisResult(BaseModel):
    """Marketing analysis of a single ad."""
    visual_analysis: str = ""
    copy_analysis: str = ""
    tone_and_style: str = ""
    target_audience: str = ""
    image_generation_prompt: str = ""
    copy_variations: List[CopyVariation] = Field(default_factory=list)
    key_elements: KeyElements
    provider: str = Field(..., description="Name of the provider that produced the analysis")
    analyzed_at: datetime = Field(default_factory=datetime.now)
