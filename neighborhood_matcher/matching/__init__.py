"""
Neighborhood matching engine.

Responsibilities:
- Accept user lifestyle preferences (eight factors rated 1-5).
- Select the candidate pool from the neighborhood catalog.
- Optionally enrich candidates from live/cached upstream data, concurrently.
- Rank candidates by weighted cosine similarity with per-factor explanations.
"""
