"""Analyzed profile population, one row per handle."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Float, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from profile_score.schemas.profile import ProfileRecord
from profile_score.stores.postgres import Base


class ProfileRecordRow(Base):
    __tablename__ = "profile_records"

    # Case-sensitive, exactly as received from the request.
    handle: Mapped[str] = mapped_column(String(100), primary_key=True)

    followers: Mapped[int] = mapped_column(BigInteger)
    posts: Mapped[int] = mapped_column(Integer)
    overall_score: Mapped[float] = mapped_column(Float)

    # {"frequency": 70, "ctaAndLinks": 40, ...}
    criteria: Mapped[dict[str, float] | None] = mapped_column(JSONB)

    analyzed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def to_record(self) -> ProfileRecord:
        return ProfileRecord(
            handle=self.handle,
            followers=self.followers,
            posts=self.posts,
            overall_score=self.overall_score,
            criteria=self.criteria,
            timestamp=self.analyzed_at,
        )
