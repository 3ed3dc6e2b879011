"""
Oracle artifacts: weekly, keyed by the Monday of the week.

Trajectories and questions are replaced wholesale on refresh
(delete-then-insert for the week); the summary is upserted on
week_start_date.
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Text, DateTime, Date, JSON, func
from sqlalchemy.orm import Mapped, mapped_column

from brain.db.base import Base


class OracleTrajectory(Base):
    __tablename__ = "oracle_trajectories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    trajectory_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    context: Mapped[str] = mapped_column(Text, nullable=False)
    what_it_means: Mapped[str] = mapped_column(Text, nullable=False)
    tradeoffs: Mapped[str] = mapped_column(Text, nullable=False)
    timeline_estimate: Mapped[str] = mapped_column(String(256), nullable=False)
    focus_allocation: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    questions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    tone: Mapped[str] = mapped_column(
        String(32), nullable=False,
        comment='"opportunity" | "neutral" | "gentle_attention"',
    )
    confidence_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class OracleQuestion(Base):
    __tablename__ = "oracle_questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[str] = mapped_column(Text, nullable=False)
    why_now: Mapped[str] = mapped_column(Text, nullable=False)
    related_entity_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    related_entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    question_type: Mapped[str] = mapped_column(
        String(16), nullable=False,
        comment='"reflection" | "decision" | "priority" | "strategy"',
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class OracleWeeklySummary(Base):
    __tablename__ = "oracle_weekly_summaries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False, unique=True, index=True)
    week_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    overview_narrative: Mapped[str] = mapped_column(Text, nullable=False)
    what_advances: Mapped[str] = mapped_column(Text, nullable=False)
    needs_attention: Mapped[str] = mapped_column(Text, nullable=False)
    decisions_made: Mapped[str] = mapped_column(Text, nullable=False)
    full_summary_markdown: Mapped[str] = mapped_column(Text, nullable=False)
    tone_check: Mapped[str] = mapped_column(String(16), nullable=False, default="calm")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
