"""
ScrapeJobService - Turns finished scrape runs into stored, ranked ads.

For a scraping job this service:
- Looks up the job's Apify run
- On success, fetches the run's items, normalizes and scores them, inserts
  one row per ad and marks the job completed
- On run failure, marks the job failed

Fetch and insert failures mark the job failed and raise ScrapeJobError;
nothing is retried here beyond the provider's own retries.
"""

import logging
from typing import Any, Optional, Sequence

from ..core.config import Config
from ..core.exceptions import ScrapeJobError
from ..core.observability import get_logfire
from .ad_normalizer import normalize_and_score
from .ad_store import AdStore, JobStore
from .apify_service import ApifyService, ScrapeProvider
from .models import JobStatus, JobStatusReport, NormalizationResult

logger = logging.getLogger(__name__)


class ScrapeJobService:
    """
    Process scraping jobs against the job and ad stores.

    Example usage:
        client = get_supabase_client()
        service = ScrapeJobService(JobStore(client), AdStore(client))
        report = service.check_job(job_id)
        if report.status == "completed":
            print(report.stats.top_performer)
    """

    def __init__(
        self,
        job_store: JobStore,
        ad_store: AdStore,
        provider: Optional[ScrapeProvider] = None,
        dedupe: Optional[bool] = None
    ):
        """
        Initialize ScrapeJobService.

        Args:
            job_store: Store for scraping job rows
            ad_store: Store for normalized ads
            provider: Scrape provider (ApifyService created lazily if not provided)
            dedupe: Drop repeated ad IDs within a batch (defaults to Config.DEDUPE_ADS)
        """
        self.job_store = job_store
        self.ad_store = ad_store
        self.provider = provider
        self.dedupe = Config.DEDUPE_ADS if dedupe is None else dedupe

    def _get_provider(self) -> ScrapeProvider:
        """Get or create the scrape provider (lazy initialization)."""
        if self.provider is None:
            self.provider = ApifyService()
        return self.provider

    def ingest_items(self, job_id: str, items: Sequence[Any]) -> NormalizationResult:
        """
        Normalize a fetched batch and persist it for a job.

        Args:
            job_id: Owning scraping job ID
            items: Raw items returned by the scrape provider

        Returns:
            NormalizationResult with the ranked ads and batch statistics

        Raises:
            JobNotFoundError: If the job does not exist
            ScrapeJobError: If storing the ads fails (job is marked failed)
        """
        job = self.job_store.get_job(job_id)
        logfire = get_logfire()

        with logfire.span("ingest_scrape_batch", job_id=job_id, platform=job.platform.value):
            result = normalize_and_score(items, job.platform, job_id=job.id, dedupe=self.dedupe)

            try:
                self.ad_store.insert_ads(result.ads)
            except Exception as e:
                logger.error(f"Failed to store ads for job {job_id}: {type(e).__name__}: {e}")
                self.job_store.mark_failed(job_id)
                raise ScrapeJobError(job_id, f"storing ads failed: {e}") from e

            self.job_store.mark_completed(job_id, total_ads_found=len(items))
            logfire.info("Stored {count} ads for job {job_id}", count=len(result.ads), job_id=job_id)

        return result

    def check_job(self, job_id: str) -> JobStatusReport:
        """
        Check a job's scrape run and ingest its results once it has finished.

        Args:
            job_id: Scraping job ID

        Returns:
            JobStatusReport; includes batch statistics when this call
            completed the job

        Raises:
            JobNotFoundError: If the job does not exist
            ScrapeJobError: If fetching or storing the batch fails
        """
        job = self.job_store.get_job(job_id)

        if not job.apify_run_id:
            return JobStatusReport(
                job_id=job_id,
                status=job.status.value,
                message="Job not yet started",
            )

        run = self._get_provider().get_run(job.apify_run_id)

        if run.succeeded:
            if job.status == JobStatus.COMPLETED:
                return JobStatusReport(
                    job_id=job_id,
                    status=JobStatus.COMPLETED.value,
                    message="Scraping already completed",
                    total_ads_found=job.total_ads_found,
                )

            try:
                items = self._get_provider().fetch_items(run.dataset_id)
            except Exception as e:
                logger.error(f"Failed to fetch dataset for job {job_id}: {type(e).__name__}: {e}")
                self.job_store.mark_failed(job_id)
                raise ScrapeJobError(job_id, f"fetching results failed: {e}") from e

            result = self.ingest_items(job_id, items)
            return JobStatusReport(
                job_id=job_id,
                status=JobStatus.COMPLETED.value,
                message="Scraping completed successfully",
                total_ads_found=len(items),
                stats=result.stats,
            )

        if run.failed:
            self.job_store.mark_failed(job_id)
            return JobStatusReport(
                job_id=job_id,
                status=JobStatus.FAILED.value,
                message=f"Scraping failed ({run.status})",
            )

        status = run.status.lower()
        return JobStatusReport(
            job_id=job_id,
            status=status,
            message=f"Scraping is {status}",
        )
