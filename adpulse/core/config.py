"""
Configuration management for AdPulse
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration"""

    # Supabase
    SUPABASE_URL: str = os.getenv('SUPABASE_URL', '')
    SUPABASE_SERVICE_KEY: str = os.getenv('SUPABASE_SERVICE_KEY', '')

    # Apify
    APIFY_TOKEN: str = os.getenv('APIFY_TOKEN', '')

    # Gemini
    GEMINI_API_KEY: str = os.getenv('GEMINI_API_KEY', '')
    GEMINI_MODEL: str = os.getenv('GEMINI_MODEL', 'gemini-2.0-flash')

    # Tables
    JOBS_TABLE: str = os.getenv('JOBS_TABLE', 'scraping_jobs')
    ADS_TABLE: str = os.getenv('ADS_TABLE', 'scraped_ads')

    # Processing
    CHUNK_SIZE_FOR_DB_OPS: int = int(os.getenv('CHUNK_SIZE_FOR_DB_OPS', '1000'))
    DEDUPE_ADS: bool = _env_flag('DEDUPE_ADS')

    @classmethod
    def validate(cls) -> bool:
        """Validate required configuration"""
        required = {
            'SUPABASE_URL': cls.SUPABASE_URL,
            'SUPABASE_SERVICE_KEY': cls.SUPABASE_SERVICE_KEY,
        }

        missing = [k for k, v in required.items() if not v]

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return True
