"""
ApifyService - Read access to finished Apify actor runs.

Used as the scrape provider for job processing:
- Looking up the status of an actor run
- Fetching the items of a run's default dataset

Starting actor runs happens elsewhere; this service only reads results.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from apify_client import ApifyClient
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from ..core.config import Config

logger = logging.getLogger(__name__)


SUCCEEDED = "SUCCEEDED"
FAILED_STATUSES = frozenset({"FAILED", "ABORTED", "TIMED-OUT"})


@dataclass
class ApifyRunInfo:
    """Status of an Apify actor run."""
    run_id: str
    status: str
    dataset_id: Optional[str]

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.status in FAILED_STATUSES


class ScrapeProvider(ABC):
    """Source of finished scrape batches, looked up by run ID."""

    @abstractmethod
    def get_run(self, run_id: str) -> ApifyRunInfo:
        ...

    @abstractmethod
    def fetch_items(self, dataset_id: str) -> List[Dict[str, Any]]:
        ...


class ApifyService(ScrapeProvider):
    """
    Scrape provider backed by the Apify API.

    Example usage:
        service = ApifyService()
        run = service.get_run("aBcD1234")
        if run.succeeded:
            items = service.fetch_items(run.dataset_id)
    """

    def __init__(self, apify_token: Optional[str] = None, client: Optional[ApifyClient] = None):
        """
        Initialize ApifyService.

        Args:
            apify_token: Apify API token. If not provided, reads from APIFY_TOKEN env var.
            client: Pre-built ApifyClient (mainly for tests)
        """
        self.apify_token = apify_token or Config.APIFY_TOKEN
        if client is not None:
            self.client = client
        elif not self.apify_token:
            logger.warning("APIFY_TOKEN not set - Apify operations will fail")
            self.client = None
        else:
            logger.info(f"ApifyService initialized with token: {self.apify_token[:8]}...")
            self.client = ApifyClient(self.apify_token)

    def _require_client(self) -> ApifyClient:
        if not self.client:
            raise ValueError("APIFY_TOKEN not configured - check environment variables")
        return self.client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=2, min=2, max=8),
        retry=retry_if_not_exception_type(ValueError),
        reraise=True,
    )
    def get_run(self, run_id: str) -> ApifyRunInfo:
        """
        Look up an actor run.

        Args:
            run_id: Apify run identifier

        Returns:
            ApifyRunInfo with status and default dataset ID

        Raises:
            ValueError: If the run does not exist
        """
        client = self._require_client()

        run: Optional[Dict[str, Any]] = client.run(run_id).get()
        if run is None:
            raise ValueError(f"Apify run not found: {run_id}")

        info = ApifyRunInfo(
            run_id=run_id,
            status=run.get("status", ""),
            dataset_id=run.get("defaultDatasetId"),
        )
        logger.info(f"Apify run {run_id} status: {info.status}")
        return info

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=2, min=2, max=8),
        retry=retry_if_not_exception_type(ValueError),
        reraise=True,
    )
    def fetch_items(self, dataset_id: str) -> List[Dict[str, Any]]:
        """
        Fetch every item of a dataset.

        Args:
            dataset_id: Apify dataset identifier

        Returns:
            List of raw item dicts
        """
        client = self._require_client()

        logger.info(f"Fetching dataset {dataset_id}...")
        items = list(client.dataset(dataset_id).iterate_items())
        logger.info(f"Fetched {len(items)} items from dataset {dataset_id}")

        return items
