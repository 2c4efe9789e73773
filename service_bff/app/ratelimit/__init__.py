"""
Rate limiting package for the BFF.

Holds the shared outbound dispatcher that caps upstream concurrency and
request spacing for every tenant and resource family.
"""

from .dispatcher import RateLimitedDispatcher

__all__ = ["RateLimitedDispatcher"]
