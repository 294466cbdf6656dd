"""SQLAlchemy ORM models.

Models represent database tables:
- profile_records: analyzed profiles used as the ranking population
"""

from profile_score.models.profile_record import ProfileRecordRow

__all__ = ["ProfileRecordRow"]
