from datetime import datetime, date
from sqlalchemy import (
    Integer, String, Text, Float, Boolean, DateTime, Date, JSON, Enum, ForeignKey, func,
)
from sqlalchemy.orm import Mapped, mapped_column
import enum

from brain.db.base import Base


class RecommendationStatus(str, enum.Enum):
    active = "active"
    accepted = "accepted"
    rejected = "rejected"
    completed = "completed"


class Recommendation(Base):
    __tablename__ = "recommendations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    category: Mapped[str] = mapped_column(
        String(32), nullable=False,
        comment='"focus" | "decision" | "resource" | "risk_mitigation" | "opportunity"',
    )
    priority: Mapped[int] = mapped_column(
        Integer, nullable=False, index=True, comment="Lower is more urgent"
    )
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    rationale: Mapped[str] = mapped_column(Text, nullable=False, default="")
    expected_impact: Mapped[str] = mapped_column(String(16), nullable=False, default="medium")
    estimated_effort: Mapped[str] = mapped_column(String(16), nullable=False, default="moderate")
    time_sensitive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deadline_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    target_entity_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    target_entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    actionable_steps: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    related_playbook_id: Mapped[int | None] = mapped_column(
        ForeignKey("playbooks.id", ondelete="SET NULL"), nullable=True
    )
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False, default=70)
    status: Mapped[str] = mapped_column(
        Enum(RecommendationStatus, name="recommendation_status_enum"),
        nullable=False,
        default=RecommendationStatus.active,
        index=True,
    )
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    outcome_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    effectiveness_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class RecommendationFeedback(Base):
    """Append-only log of accept / reject decisions on recommendations."""

    __tablename__ = "recommendation_feedback"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    recommendation_id: Mapped[int] = mapped_column(
        ForeignKey("recommendations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    feedback_type: Mapped[str] = mapped_column(String(16), nullable=False)
    feedback_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
