"""
Ad performance scoring.

Heuristic 0-100 score and batch statistics for normalized ads.
"""

from .performance import compute_batch_stats, compute_performance_score, round_half_up

__all__ = ['compute_batch_stats', 'compute_performance_score', 'round_half_up']
