"""
Forward-looking predictions: risks, bottlenecks, completion dates.

Risk and bottleneck rows are tagged status="active" when written; a new
refresh for the same project expires the previous batch. Completion
forecasts are unique per (project_id, forecast_date).
"""
from datetime import datetime, date
from sqlalchemy import (
    Integer, String, Text, Float, DateTime, Date, JSON, ForeignKey, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column
import enum

from brain.db.base import Base


class PredictionStatus(str, enum.Enum):
    active = "active"
    expired = "expired"


class RiskPrediction(Base):
    __tablename__ = "risk_predictions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    risk_type: Mapped[str] = mapped_column(
        String(32), nullable=False,
        comment='"technical" | "administrative" | "financial" | "dispersion"',
    )
    predicted_severity: Mapped[str] = mapped_column(String(16), nullable=False)
    probability_score: Mapped[float] = mapped_column(Float, nullable=False)
    estimated_impact: Mapped[str] = mapped_column(String(16), nullable=False)
    time_horizon_days: Mapped[int] = mapped_column(Integer, nullable=False)
    predicted_occurrence_date: Mapped[date] = mapped_column(Date, nullable=False)
    confidence_level: Mapped[float] = mapped_column(Float, nullable=False)
    factors: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    mitigation_suggestions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=PredictionStatus.active.value, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class BottleneckPrediction(Base):
    __tablename__ = "bottleneck_predictions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    bottleneck_type: Mapped[str] = mapped_column(
        String(32), nullable=False,
        comment='"resource" | "dependency" | "technical" | "decision"',
    )
    bottleneck_description: Mapped[str] = mapped_column(Text, nullable=False)
    probability_score: Mapped[float] = mapped_column(Float, nullable=False)
    estimated_impact_days: Mapped[int] = mapped_column(Integer, nullable=False)
    time_horizon_days: Mapped[int] = mapped_column(Integer, nullable=False)
    predicted_occurrence_date: Mapped[date] = mapped_column(Date, nullable=False)
    mitigation_actions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    priority: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=PredictionStatus.active.value, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class CompletionForecast(Base):
    __tablename__ = "completion_forecasts"
    __table_args__ = (
        UniqueConstraint("project_id", "forecast_date", name="uq_forecast_project_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    forecast_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    current_completion: Mapped[float] = mapped_column(Float, nullable=False)
    predicted_completion_date: Mapped[date] = mapped_column(Date, nullable=False)
    optimistic_date: Mapped[date] = mapped_column(Date, nullable=False)
    realistic_date: Mapped[date] = mapped_column(Date, nullable=False)
    pessimistic_date: Mapped[date] = mapped_column(Date, nullable=False)
    confidence_level: Mapped[float] = mapped_column(Float, nullable=False)
    velocity_assumption: Mapped[float] = mapped_column(
        Float, nullable=False, comment="Completion points per day"
    )
    factors: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    blockers_assumed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
