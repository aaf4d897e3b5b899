"""
AdPulse - Ad library scrape normalization, scoring and analysis.

Turns Facebook / TikTok ad-library scrape batches (via Apify) into a ranked
table of normalized ads, with optional AI marketing analysis.
"""

__version__ = "0.1.0"
