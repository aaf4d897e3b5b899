"""
Supabase-backed stores for scraping jobs and normalized ads.

JobStore wraps the scraping_jobs table and AdStore wraps scraped_ads. Both
take the Supabase client explicitly so callers (and tests) decide which
client is used.

Usage:
    from adpulse.core.database import get_supabase_client
    from adpulse.services.ad_store import AdStore, JobStore

    client = get_supabase_client()
    jobs, ads = JobStore(client), AdStore(client)

    job = jobs.get_job(job_id)
    ads.insert_ads(result.ads)
    jobs.mark_completed(job.id, total_ads_found=len(items))
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from supabase import Client
from tqdm import tqdm

from ..core.config import Config
from ..core.database import get_supabase_client
from ..core.exceptions import AdNotFoundError, JobNotFoundError
from .models import AnalysisResult, JobStatus, NormalizedAd, ScrapingJob

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class JobStore:
    """Read and update scraping job rows."""

    def __init__(self, supabase_client: Optional[Client] = None, table: Optional[str] = None):
        """
        Initialize JobStore.

        Args:
            supabase_client: Supabase client (uses the shared client if not provided)
            table: Table name (defaults to Config.JOBS_TABLE)
        """
        self.client = supabase_client or get_supabase_client()
        self.table = table or Config.JOBS_TABLE

    def get_job(self, job_id: str) -> ScrapingJob:
        """
        Fetch a scraping job.

        Raises:
            JobNotFoundError: If no row has this ID
        """
        result = self.client.table(self.table).select("*").eq("id", job_id).execute()
        if not result.data:
            raise JobNotFoundError(job_id)
        return ScrapingJob(**result.data[0])

    def mark_completed(self, job_id: str, total_ads_found: int) -> None:
        self._update(job_id, {
            "status": JobStatus.COMPLETED.value,
            "total_ads_found": total_ads_found,
            "completed_at": _now_iso(),
        })
        logger.info(f"Job {job_id} completed with {total_ads_found} ads")

    def mark_failed(self, job_id: str) -> None:
        self._update(job_id, {
            "status": JobStatus.FAILED.value,
            "completed_at": _now_iso(),
        })
        logger.warning(f"Job {job_id} marked as failed")

    def _update(self, job_id: str, data: Dict[str, Any]) -> None:
        self.client.table(self.table).update(data).eq("id", job_id).execute()


class AdStore:
    """Persist and query normalized ads."""

    def __init__(
        self,
        supabase_client: Optional[Client] = None,
        table: Optional[str] = None,
        chunk_size: Optional[int] = None
    ):
        """
        Initialize AdStore.

        Args:
            supabase_client: Supabase client (uses the shared client if not provided)
            table: Table name (defaults to Config.ADS_TABLE)
            chunk_size: Rows per insert request (defaults to Config.CHUNK_SIZE_FOR_DB_OPS)
        """
        self.client = supabase_client or get_supabase_client()
        self.table = table or Config.ADS_TABLE
        self.chunk_size = chunk_size or Config.CHUNK_SIZE_FOR_DB_OPS

    def insert_ads(self, ads: Sequence[NormalizedAd]) -> int:
        """
        Insert one row per normalized ad.

        Storage errors propagate; rows from chunks already written stay
        written.

        Args:
            ads: Normalized ads, in the order they should be inserted

        Returns:
            Number of rows inserted
        """
        if not ads:
            logger.warning("No ads to save")
            return 0

        rows = [ad.to_row() for ad in ads]
        chunks = [rows[i:i + self.chunk_size] for i in range(0, len(rows), self.chunk_size)]

        inserted = 0
        for chunk in tqdm(chunks, desc="Saving ads to database", disable=len(chunks) < 2):
            self.client.table(self.table).insert(chunk).execute()
            inserted += len(chunk)

        logger.info(f"Saved {inserted} ads to {self.table}")
        return inserted

    def list_ads(self, analyzed: Optional[bool] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        List stored ads, newest first.

        Args:
            analyzed: If True, only ads with an AI analysis
            limit: Maximum rows to return

        Returns:
            List of row dicts
        """
        query = self.client.table(self.table).select("*")
        if analyzed:
            query = query.eq("analyzed", True)
        query = query.order("scraped_at", desc=True)
        if limit:
            query = query.limit(limit)
        return query.execute().data or []

    def get_ad(self, row_id: str) -> Dict[str, Any]:
        """
        Fetch a single ad row.

        Raises:
            AdNotFoundError: If no row has this ID
        """
        result = self.client.table(self.table).select("*").eq("id", row_id).execute()
        if not result.data:
            raise AdNotFoundError(row_id)
        return result.data[0]

    def ads_for_job(self, job: ScrapingJob) -> List[Dict[str, Any]]:
        """Ads scraped since the job started, best score first."""
        if job.started_at is None:
            return []
        result = (
            self.client.table(self.table)
            .select("*")
            .gte("scraped_at", job.started_at.isoformat())
            .order("performance_score", desc=True)
            .execute()
        )
        return result.data or []

    def save_analysis(self, row_id: str, analysis: AnalysisResult) -> None:
        """Write an AI analysis onto an existing ad row."""
        prompts = analysis.model_dump(mode="json", exclude={"analyzed_at"})
        self.client.table(self.table).update({
            "ai_visual_analysis": analysis.visual_analysis[:500],
            "ai_prompts": prompts,
            "analyzed_at": analysis.analyzed_at.isoformat(),
            "analyzed": True,
        }).eq("id", row_id).execute()
        logger.info(f"Saved {analysis.provider} analysis for ad {row_id}")
