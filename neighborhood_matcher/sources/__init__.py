"""
Upstream data sources.

Responsibilities:
- Gate every upstream behind a per-source rate limiter.
- Fetch with a bounded timeout and one retry, cache-first.
- Normalize heterogeneous payloads into typed result records.
- Resolve any failure to a static, source-specific fallback.
"""
