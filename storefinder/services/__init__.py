"""Business logic services.

Services hold the discovery, favorites, photo and store-lifecycle logic and are
called by routes. They take the repository explicitly so the same code runs
against Postgres or the in-memory backend.
"""
