"""
Cloud Cost Guard

Daily per-service cost ingestion with trailing-window spike detection
and a small read API over the stored costs and alerts.
"""

__version__ = "1.0.0"
__author__ = "Cost Guard Team"
