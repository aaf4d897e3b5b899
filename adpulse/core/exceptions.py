"""
Domain exceptions for AdPulse.

Normalization itself never raises for data-shape reasons; these cover
the collaborators around it (stores, scrape jobs, analysis providers).
"""


class AdPulseError(Exception):
    """Base class for AdPulse errors."""


class JobNotFoundError(AdPulseError):
    """Raised when a scraping job id does not exist in the job store."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Scraping job not found: {job_id}")


class AdNotFoundError(AdPulseError):
    """Raised when an ad row id does not exist in the ad store."""

    def __init__(self, row_id: str):
        self.row_id = row_id
        super().__init__(f"Ad not found: {row_id}")


class ScrapeJobError(AdPulseError):
    """Raised when fetching or persisting a scrape batch fails.

    The owning job has already been marked ``failed`` when this is raised.
    """

    def __init__(self, job_id: str, message: str):
        self.job_id = job_id
        super().__init__(f"Scraping job {job_id} failed: {message}")


class AnalysisError(AdPulseError):
    """Raised when an analysis provider returns unusable output."""
