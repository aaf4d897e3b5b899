"""
Ads CLI Commands

Commands for normalizing ad-library scrapes, processing scrape jobs
and analyzing stored ads.
"""

import json
import logging
from typing import Any, List, Optional

import click

from ..core.database import get_supabase_client
from ..services.ad_analysis_service import (
    AdAnalysisService,
    GeminiAnalysisProvider,
    HeuristicAnalysisProvider,
)
from ..services.ad_normalizer import normalize_and_score
from ..services.ad_store import AdStore, JobStore
from ..services.models import BatchStats, Platform
from ..services.scrape_job_service import ScrapeJobService


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)

logger = logging.getLogger(__name__)

PLATFORM_CHOICES = [p.value for p in Platform]


def _load_items(path: str) -> List[Any]:
    """Load a JSON array of raw ad items (or an object with an "items" array)."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if isinstance(data, dict) and isinstance(data.get('items'), list):
        data = data['items']
    if not isinstance(data, list):
        raise click.BadParameter(f"{path} must contain a JSON array of ad items")
    return data


def _echo_stats(stats: BatchStats):
    click.echo(f"Total ads:        {stats.total_ads}")
    click.echo(f"Active ads:       {stats.active_ads}")
    click.echo(f"Videos / images:  {stats.video_count} / {stats.image_count}")
    click.echo(f"Avg active hours: {stats.average_active_hours}")
    click.echo(f"Avg variants:     {stats.average_variants}")
    if stats.top_performer:
        top = stats.top_performer
        click.echo(f"Top performer:    {top.ad_id} (score {top.score}, {top.active_hours}h, {top.variants} variants)")


@click.group(name='ads')
def ads_group():
    """Ad library normalization and analysis commands"""
    pass


@ads_group.command('normalize')
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--platform', type=click.Choice(PLATFORM_CHOICES), default='facebook', help='Platform of the scrape')
@click.option('--job-id', default=None, help='Job ID to tag the batch with')
@click.option('--dedupe', is_flag=True, help='Drop repeated ad IDs (first wins)')
@click.option('--top', type=int, default=10, help='Number of ads to preview')
@click.option('--json', 'as_json', is_flag=True, help='Print the full result as JSON')
def normalize(file: str, platform: str, job_id: Optional[str], dedupe: bool, top: int, as_json: bool):
    """
    Normalize and rank a raw scrape batch from a JSON file (no database access)

    Example:
        adpulse ads normalize dataset.json --platform facebook --top 5
    """
    try:
        items = _load_items(file)
        result = normalize_and_score(items, platform, job_id=job_id, dedupe=dedupe)

        if as_json:
            click.echo(result.model_dump_json(indent=2))
            return

        click.echo(f"✅ Normalized {len(result.ads)} ads")
        if result.skipped:
            click.echo(f"⚠️  Skipped {result.skipped} malformed items")
        click.echo()

        click.echo(f"Top {min(top, len(result.ads))} ads:")
        click.echo("-" * 80)
        for i, ad in enumerate(result.ads[:top], 1):
            click.echo(f"{i}. [{ad.performance_score:3d}] {ad.advertiser_name}")
            click.echo(f"   Ad ID: {ad.ad_id}  Type: {ad.type.value}  Status: {ad.active_status.value}")
            click.echo(f"   Active: {ad.active_hours}h  Variants: {ad.variants}  Verified: {ad.verified.value}")
            if ad.hashtags:
                click.echo(f"   Hashtags: {ad.hashtags}")
            click.echo()

        _echo_stats(result.stats)

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        raise


@ads_group.command('ingest')
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--job-id', required=True, help='Scraping job the batch belongs to')
def ingest(file: str, job_id: str):
    """
    Store a raw scrape batch from a JSON file against a scraping job

    Example:
        adpulse ads ingest dataset.json --job-id 3f1c...
    """
    try:
        items = _load_items(file)
        client = get_supabase_client()
        service = ScrapeJobService(JobStore(client), AdStore(client))

        result = service.ingest_items(job_id, items)

        click.echo(f"✅ Saved {len(result.ads)} ads for job {job_id}")
        click.echo()
        _echo_stats(result.stats)

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        raise


@ads_group.command('check-job')
@click.argument('job_id')
def check_job(job_id: str):
    """
    Check a scraping job and store its ads once the run has finished

    Example:
        adpulse ads check-job 3f1c...
    """
    try:
        client = get_supabase_client()
        service = ScrapeJobService(JobStore(client), AdStore(client))

        report = service.check_job(job_id)

        click.echo(f"Job {report.job_id}: {report.status}")
        click.echo(report.message)
        if report.total_ads_found is not None:
            click.echo(f"Ads found: {report.total_ads_found}")
        if report.stats:
            click.echo()
            _echo_stats(report.stats)

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        raise


@ads_group.command('list')
@click.option('--analyzed', is_flag=True, help='Only ads with an AI analysis')
@click.option('--limit', type=int, default=20, help='Max number of ads to show')
def list_ads(analyzed: bool, limit: int):
    """List stored ads, newest first"""
    try:
        store = AdStore(get_supabase_client())
        rows = store.list_ads(analyzed=analyzed or None, limit=limit)

        if not rows:
            click.echo("No ads found")
            return

        for row in rows:
            click.echo(
                f"[{row.get('performance_score') or 0:3d}] {row.get('advertiser_name') or ''} "
                f"({row.get('platform', '')}, {row.get('type', '')}) id={row.get('id')}"
            )

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        raise


@ads_group.command('analyze')
@click.argument('row_id')
@click.option('--provider', type=click.Choice(['heuristic', 'gemini']), default='heuristic', help='Analysis provider')
def analyze(row_id: str, provider: str):
    """
    Analyze a stored ad and save the analysis onto its row

    Example:
        adpulse ads analyze 7b2e... --provider gemini
    """
    try:
        analysis_provider = GeminiAnalysisProvider() if provider == 'gemini' else HeuristicAnalysisProvider()
        service = AdAnalysisService(AdStore(get_supabase_client()), analysis_provider)

        result = service.analyze_ad(row_id)

        click.echo(f"✅ Analyzed ad {row_id} with {result.provider}")
        click.echo()
        click.echo(f"Visual:   {result.visual_analysis}")
        click.echo(f"Copy:     {result.copy_analysis}")
        click.echo(f"Tone:     {result.tone_and_style}")
        click.echo(f"Audience: {result.target_audience}")

    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        raise
