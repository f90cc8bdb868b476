"""Spike detection over the stored cost history."""

from .anomaly import SPIKE_MULTIPLIER, TRAILING_WINDOW_DAYS, AnomalyDetector, is_spike

__all__ = ["AnomalyDetector", "SPIKE_MULTIPLIER", "TRAILING_WINDOW_DAYS", "is_spike"]
