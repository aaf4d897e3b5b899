"""
Setup configuration for adpulse package.
"""

from setuptools import setup, find_packages

setup(
    name="adpulse",
    version="0.1.0",
    description="Ad library scrape normalization, scoring and analysis",
    packages=find_packages(include=["adpulse", "adpulse.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0",
        "supabase>=2.0",
        "python-dotenv>=1.0",
        "apify-client>=1.6",
        "tenacity>=8.2",
        "tqdm>=4.60",
        "click>=8.1",
        "google-genai>=1.0",
        "logfire>=2.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "adpulse=adpulse.cli.main:cli",
        ],
    },
)
