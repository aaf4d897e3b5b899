"""
Main CLI entry point for AdPulse
"""

import click

from ..core.observability import setup_logfire
from .ads import ads_group


@click.group()
@click.version_option(version='0.1.0')
def cli():
    """
    AdPulse - Ad library scrape normalization and scoring

    Normalize Facebook / TikTok ad-library scrapes, rank them by
    performance score and analyze the winners.
    """
    setup_logfire()


# Register command groups
cli.add_command(ads_group)


if __name__ == '__main__':
    cli()
