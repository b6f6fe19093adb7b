"""
Tiered location cache for a real-estate listing platform.

A Valkey-backed cache and invalidation layer in front of the province ->
city -> suburb location hierarchy:
1. Fallback mode that keeps serving requests through a cache outage
2. Static and dynamic location tiers merged into one page
3. Invalidation that cascades up the hierarchy when listings change
"""

__version__ = "0.1.0"
