"""
Usage accounting for upstream calls.
"""

from .tracker import ApiCallRecord, UsageTracker, GOOGLE_PLACES_SOURCE, MAX_STORED_CALLS

__all__ = ["ApiCallRecord", "UsageTracker", "GOOGLE_PLACES_SOURCE", "MAX_STORED_CALLS"]
