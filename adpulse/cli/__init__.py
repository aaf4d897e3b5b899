"""Command line interface for AdPulse."""
