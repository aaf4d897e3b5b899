"""
Services layer for AdPulse.

Separates the pure normalization core (ad_normalizer) from its
collaborators: Supabase stores (ad_store), the Apify scrape provider
(apify_service), job processing (scrape_job_service) and AI analysis
(ad_analysis_service).
"""

from .models import (
    Platform,
    AdType,
    ActiveStatus,
    Verified,
    JobStatus,
    NormalizedAd,
    TopPerformer,
    BatchStats,
    NormalizationResult,
    ScrapingJob,
    JobStatusReport,
    KeyElements,
    CopyVariation,
    AnalysisResult,
)

__all__ = [
    'Platform',
    'AdType',
    'ActiveStatus',
    'Verified',
    'JobStatus',
    'NormalizedAd',
    'TopPerformer',
    'BatchStats',
    'NormalizationResult',
    'ScrapingJob',
    'JobStatusReport',
    'KeyElements',
    'CopyVariation',
    'AnalysisResult',
]
