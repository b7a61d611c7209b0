"""
Weighted cosine similarity ranking with per-factor contributions.
"""
