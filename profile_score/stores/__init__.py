"""Data stores for persistence and shared counters.

Stores handle:
- Profiles: the analyzed profile population (JSON file or PostgreSQL)
- PostgreSQL: DB session management for the postgres profile backend
- Redis: shared rate-limit counters

No business/ranking logic in stores - that belongs in services.
"""
