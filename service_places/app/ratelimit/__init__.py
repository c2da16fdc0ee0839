"""
Rate limiting package for the gateway.

Holds the in-process fixed-window limiter that caps how many searches one
caller may trigger per window.
"""

from .fixed_window import FixedWindowRateLimiter, RateLimitDecision, RateLimitEntry

__all__ = ["FixedWindowRateLimiter", "RateLimitDecision", "RateLimitEntry"]
