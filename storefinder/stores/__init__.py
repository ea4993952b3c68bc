"""Data stores for persistence and caching.

Stores handle:
- Repository protocol shared by all backends
- PostgreSQL: DB session, SQL repository
- In-memory: dict-backed repository (local development, tests)
- Redis: result caching, TTL policies

No business/ranking policy in stores - that belongs in services.
"""
