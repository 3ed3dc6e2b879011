"""
HealthScore / PortfolioHealth: daily health snapshots.

One row per (project_id, score_date) and one portfolio row per score_date;
same-day re-runs update the existing row instead of inserting.
"""
from datetime import datetime, date
from sqlalchemy import (
    Integer, String, Text, Float, DateTime, Date, JSON, ForeignKey, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column
import enum

from brain.db.base import Base


class HealthGrade(str, enum.Enum):
    excellent = "excellent"
    good = "good"
    warning = "warning"
    critical = "critical"


class HealthScore(Base):
    __tablename__ = "health_scores"
    __table_args__ = (
        UniqueConstraint("project_id", "score_date", name="uq_health_project_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    score_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    overall_score: Mapped[float] = mapped_column(Float, nullable=False)
    completion_score: Mapped[float] = mapped_column(Float, nullable=False)
    velocity_score: Mapped[float] = mapped_column(Float, nullable=False)
    risk_score: Mapped[float] = mapped_column(Float, nullable=False)
    cash_impact_score: Mapped[float] = mapped_column(Float, nullable=False)
    decision_quality_score: Mapped[float] = mapped_column(Float, nullable=False)
    momentum_score: Mapped[float] = mapped_column(Float, nullable=False, default=50)
    grade: Mapped[str] = mapped_column(String(16), nullable=False)
    factors_breakdown: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=dict,
        comment="component -> {score, weight}",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class PortfolioHealth(Base):
    __tablename__ = "portfolio_health"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    score_date: Mapped[date] = mapped_column(Date, nullable=False, unique=True, index=True)
    overall_score: Mapped[float] = mapped_column(Float, nullable=False)
    projects_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    projects_healthy: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    projects_warning: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    projects_critical: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    trend_7d: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    trend_30d: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    top_concern: Mapped[str] = mapped_column(Text, nullable=False, default="")
    top_opportunity: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
