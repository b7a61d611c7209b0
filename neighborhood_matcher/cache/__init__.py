"""
Durable TTL cache shielding the rate-limited upstream sources.

Responsibilities:
- Hold one entry per cache key with its own expiry.
- Persist the whole store to a JSON file on every write and reload it at start.
- Sweep expired entries on a fixed period owned by the app lifecycle.
"""
