"""
PatternAnalysis: velocity / trend / momentum snapshot of a project.

Append-only: every refresh inserts a new row, the latest row (by
analysis_date, then id) is the one the scorers read.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Float, DateTime, JSON, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from brain.db.base import Base


class VelocityTrend(str, enum.Enum):
    accelerating = "accelerating"
    stable = "stable"
    decelerating = "decelerating"
    stagnant = "stagnant"


class PatternAnalysis(Base):
    __tablename__ = "pattern_analyses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    analysis_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    velocity_7d: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    velocity_30d: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    velocity_trend: Mapped[str] = mapped_column(String(16), nullable=False)
    blockers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    blockers_recurring: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    decisions_velocity: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
        comment="Decisions created in the trailing 30 days",
    )
    last_activity_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=999,
        comment="999 when the project has no event at all",
    )
    momentum_score: Mapped[float] = mapped_column(Float, nullable=False, default=50)
