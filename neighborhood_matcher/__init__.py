"""
Neighborhood matching service.

Matches weighted lifestyle preferences against a catalog of neighborhoods
whose attributes are derived from free, rate-limited upstream sources.
"""
