"""
Neighborhood catalog building.

Responsibilities:
- Discover neighborhoods around major Indian cities from OpenStreetMap.
- Rebuild a catalog with derived factors from a persisted API cache file.
- Persist the catalog as JSON for the matching engine.
"""
