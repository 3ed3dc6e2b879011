"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id():
    return sa.Column("id", sa.Integer(), nullable=False)


def _created_at():
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )


def _project_fk():
    return sa.Column(
        "project_id", sa.Integer(),
        sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False,
    )


def upgrade() -> None:
    # --- ENUM types ---
    project_status_enum = sa.Enum(
        "active", "paused", "done", "archived", name="project_status_enum"
    )
    project_status_enum.create(op.get_bind(), checkfirst=True)

    risk_level_enum = sa.Enum("low", "medium", "high", "critical", name="risk_level_enum")
    risk_level_enum.create(op.get_bind(), checkfirst=True)

    decision_status_enum = sa.Enum(
        "pending", "decided", "executed", "cancelled", name="decision_status_enum"
    )
    decision_status_enum.create(op.get_bind(), checkfirst=True)

    recommendation_status_enum = sa.Enum(
        "active", "accepted", "rejected", "completed", name="recommendation_status_enum"
    )
    recommendation_status_enum.create(op.get_bind(), checkfirst=True)

    # --- projects ---
    op.create_table(
        "projects",
        _id(),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("slug", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("completion_percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("cash_impact_score", sa.Numeric(4, 2), nullable=False, server_default="0"),
        sa.Column("risk_level", sa.Enum(
            "low", "medium", "high", "critical", name="risk_level_enum", create_type=False,
        ), nullable=False, server_default="medium"),
        sa.Column("main_blocker", sa.Text(), nullable=True),
        sa.Column("status", sa.Enum(
            "active", "paused", "done", "archived", name="project_status_enum", create_type=False,
        ), nullable=False, server_default="active"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("ix_projects_id", "projects", ["id"])
    op.create_index("ix_projects_status", "projects", ["status"])

    # --- decisions ---
    op.create_table(
        "decisions",
        _id(),
        sa.Column(
            "project_id", sa.Integer(),
            sa.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("rationale", sa.Text(), nullable=True),
        sa.Column("status", sa.Enum(
            "pending", "decided", "executed", "cancelled",
            name="decision_status_enum", create_type=False,
        ), nullable=False, server_default="pending"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_decisions_id", "decisions", ["id"])
    op.create_index("ix_decisions_project_id", "decisions", ["project_id"])
    op.create_index("ix_decisions_status", "decisions", ["status"])

    # --- risks ---
    op.create_table(
        "risks",
        _id(),
        _project_fk(),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("severity", sa.String(16), nullable=False, server_default="medium"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_risks_id", "risks", ["id"])
    op.create_index("ix_risks_project_id", "risks", ["project_id"])
    op.create_index("ix_risks_created_at", "risks", ["created_at"])

    # --- events ---
    op.create_table(
        "events",
        _id(),
        sa.Column("entity_type", sa.String(32), nullable=False, server_default="project"),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("event_type", sa.String(64), nullable=False, server_default="update"),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_entity_id", "events", ["entity_id"])
    op.create_index("ix_events_created_at", "events", ["created_at"])

    # --- playbooks ---
    op.create_table(
        "playbooks",
        _id(),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("rules", sa.JSON(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_playbooks_id", "playbooks", ["id"])

    # --- pattern_analyses ---
    op.create_table(
        "pattern_analyses",
        _id(),
        _project_fk(),
        sa.Column(
            "analysis_date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column("velocity_7d", sa.Float(), nullable=False, server_default="0"),
        sa.Column("velocity_30d", sa.Float(), nullable=False, server_default="0"),
        sa.Column("velocity_trend", sa.String(16), nullable=False),
        sa.Column("blockers_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("blockers_recurring", sa.JSON(), nullable=False),
        sa.Column("decisions_velocity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_activity_days", sa.Integer(), nullable=False, server_default="999"),
        sa.Column("momentum_score", sa.Float(), nullable=False, server_default="50"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_pattern_analyses_id", "pattern_analyses", ["id"])
    op.create_index("ix_pattern_analyses_project_id", "pattern_analyses", ["project_id"])
    op.create_index("ix_pattern_analyses_analysis_date", "pattern_analyses", ["analysis_date"])

    # --- health_scores ---
    op.create_table(
        "health_scores",
        _id(),
        _project_fk(),
        sa.Column("score_date", sa.Date(), nullable=False),
        sa.Column("overall_score", sa.Float(), nullable=False),
        sa.Column("completion_score", sa.Float(), nullable=False),
        sa.Column("velocity_score", sa.Float(), nullable=False),
        sa.Column("risk_score", sa.Float(), nullable=False),
        sa.Column("cash_impact_score", sa.Float(), nullable=False),
        sa.Column("decision_quality_score", sa.Float(), nullable=False),
        sa.Column("momentum_score", sa.Float(), nullable=False, server_default="50"),
        sa.Column("grade", sa.String(16), nullable=False),
        sa.Column("factors_breakdown", sa.JSON(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "score_date", name="uq_health_project_date"),
    )
    op.create_index("ix_health_scores_id", "health_scores", ["id"])
    op.create_index("ix_health_scores_project_id", "health_scores", ["project_id"])
    op.create_index("ix_health_scores_score_date", "health_scores", ["score_date"])

    # --- portfolio_health ---
    op.create_table(
        "portfolio_health",
        _id(),
        sa.Column("score_date", sa.Date(), nullable=False),
        sa.Column("overall_score", sa.Float(), nullable=False),
        sa.Column("projects_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("projects_healthy", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("projects_warning", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("projects_critical", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("trend_7d", sa.Float(), nullable=False, server_default="0"),
        sa.Column("trend_30d", sa.Float(), nullable=False, server_default="0"),
        sa.Column("top_concern", sa.Text(), nullable=False, server_default=""),
        sa.Column("top_opportunity", sa.Text(), nullable=False, server_default=""),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_portfolio_health_id", "portfolio_health", ["id"])
    op.create_index("ix_portfolio_health_score_date", "portfolio_health", ["score_date"], unique=True)

    # --- anomalies ---
    op.create_table(
        "anomalies",
        _id(),
        _project_fk(),
        sa.Column("anomaly_type", sa.String(32), nullable=False),
        sa.Column("severity", sa.String(16), nullable=False),
        sa.Column("metric_name", sa.String(64), nullable=False),
        sa.Column("baseline_value", sa.Float(), nullable=False),
        sa.Column("current_value", sa.Float(), nullable=False),
        sa.Column("deviation_percent", sa.Float(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("is_positive", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "detected_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_anomalies_id", "anomalies", ["id"])
    op.create_index("ix_anomalies_project_id", "anomalies", ["project_id"])
    op.create_index("ix_anomalies_anomaly_type", "anomalies", ["anomaly_type"])
    op.create_index("ix_anomalies_resolved", "anomalies", ["resolved"])

    # --- risk_predictions ---
    op.create_table(
        "risk_predictions",
        _id(),
        _project_fk(),
        sa.Column("risk_type", sa.String(32), nullable=False),
        sa.Column("predicted_severity", sa.String(16), nullable=False),
        sa.Column("probability_score", sa.Float(), nullable=False),
        sa.Column("estimated_impact", sa.String(16), nullable=False),
        sa.Column("time_horizon_days", sa.Integer(), nullable=False),
        sa.Column("predicted_occurrence_date", sa.Date(), nullable=False),
        sa.Column("confidence_level", sa.Float(), nullable=False),
        sa.Column("factors", sa.JSON(), nullable=False),
        sa.Column("mitigation_suggestions", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_risk_predictions_id", "risk_predictions", ["id"])
    op.create_index("ix_risk_predictions_project_id", "risk_predictions", ["project_id"])
    op.create_index("ix_risk_predictions_status", "risk_predictions", ["status"])

    # --- bottleneck_predictions ---
    op.create_table(
        "bottleneck_predictions",
        _id(),
        _project_fk(),
        sa.Column("bottleneck_type", sa.String(32), nullable=False),
        sa.Column("bottleneck_description", sa.Text(), nullable=False),
        sa.Column("probability_score", sa.Float(), nullable=False),
        sa.Column("estimated_impact_days", sa.Integer(), nullable=False),
        sa.Column("time_horizon_days", sa.Integer(), nullable=False),
        sa.Column("predicted_occurrence_date", sa.Date(), nullable=False),
        sa.Column("mitigation_actions", sa.JSON(), nullable=False),
        sa.Column("priority", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bottleneck_predictions_id", "bottleneck_predictions", ["id"])
    op.create_index("ix_bottleneck_predictions_project_id", "bottleneck_predictions", ["project_id"])
    op.create_index("ix_bottleneck_predictions_status", "bottleneck_predictions", ["status"])

    # --- completion_forecasts ---
    op.create_table(
        "completion_forecasts",
        _id(),
        _project_fk(),
        sa.Column("forecast_date", sa.Date(), nullable=False),
        sa.Column("current_completion", sa.Float(), nullable=False),
        sa.Column("predicted_completion_date", sa.Date(), nullable=False),
        sa.Column("optimistic_date", sa.Date(), nullable=False),
        sa.Column("realistic_date", sa.Date(), nullable=False),
        sa.Column("pessimistic_date", sa.Date(), nullable=False),
        sa.Column("confidence_level", sa.Float(), nullable=False),
        sa.Column("velocity_assumption", sa.Float(), nullable=False),
        sa.Column("factors", sa.JSON(), nullable=False),
        sa.Column("blockers_assumed", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "forecast_date", name="uq_forecast_project_date"),
    )
    op.create_index("ix_completion_forecasts_id", "completion_forecasts", ["id"])
    op.create_index("ix_completion_forecasts_project_id", "completion_forecasts", ["project_id"])
    op.create_index("ix_completion_forecasts_forecast_date", "completion_forecasts", ["forecast_date"])

    # --- recommendations ---
    op.create_table(
        "recommendations",
        _id(),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(512), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("rationale", sa.Text(), nullable=False, server_default=""),
        sa.Column("expected_impact", sa.String(16), nullable=False, server_default="medium"),
        sa.Column("estimated_effort", sa.String(16), nullable=False, server_default="moderate"),
        sa.Column("time_sensitive", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deadline_date", sa.Date(), nullable=True),
        sa.Column("target_entity_type", sa.String(16), nullable=True),
        sa.Column("target_entity_id", sa.Integer(), nullable=True),
        sa.Column("actionable_steps", sa.JSON(), nullable=False),
        sa.Column(
            "related_playbook_id", sa.Integer(),
            sa.ForeignKey("playbooks.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("confidence_score", sa.Float(), nullable=False, server_default="70"),
        sa.Column("status", sa.Enum(
            "active", "accepted", "rejected", "completed",
            name="recommendation_status_enum", create_type=False,
        ), nullable=False, server_default="active"),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("outcome_notes", sa.Text(), nullable=True),
        sa.Column("effectiveness_score", sa.Integer(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_recommendations_id", "recommendations", ["id"])
    op.create_index("ix_recommendations_priority", "recommendations", ["priority"])
    op.create_index("ix_recommendations_target_entity_id", "recommendations", ["target_entity_id"])
    op.create_index("ix_recommendations_status", "recommendations", ["status"])

    # --- recommendation_feedback ---
    op.create_table(
        "recommendation_feedback",
        _id(),
        sa.Column(
            "recommendation_id", sa.Integer(),
            sa.ForeignKey("recommendations.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("feedback_type", sa.String(16), nullable=False),
        sa.Column("feedback_notes", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_recommendation_feedback_id", "recommendation_feedback", ["id"])
    op.create_index(
        "ix_recommendation_feedback_recommendation_id",
        "recommendation_feedback", ["recommendation_id"],
    )

    # --- oracle ---
    op.create_table(
        "oracle_trajectories",
        _id(),
        sa.Column("week_start_date", sa.Date(), nullable=False),
        sa.Column("trajectory_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("context", sa.Text(), nullable=False),
        sa.Column("what_it_means", sa.Text(), nullable=False),
        sa.Column("tradeoffs", sa.Text(), nullable=False),
        sa.Column("timeline_estimate", sa.String(256), nullable=False),
        sa.Column("focus_allocation", sa.JSON(), nullable=False),
        sa.Column("questions", sa.JSON(), nullable=False),
        sa.Column("tone", sa.String(32), nullable=False),
        sa.Column("confidence_note", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_oracle_trajectories_id", "oracle_trajectories", ["id"])
    op.create_index("ix_oracle_trajectories_week_start_date", "oracle_trajectories", ["week_start_date"])

    op.create_table(
        "oracle_questions",
        _id(),
        sa.Column("week_start_date", sa.Date(), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("context", sa.Text(), nullable=False),
        sa.Column("why_now", sa.Text(), nullable=False),
        sa.Column("related_entity_type", sa.String(16), nullable=True),
        sa.Column("related_entity_id", sa.Integer(), nullable=True),
        sa.Column("question_type", sa.String(16), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_oracle_questions_id", "oracle_questions", ["id"])
    op.create_index("ix_oracle_questions_week_start_date", "oracle_questions", ["week_start_date"])

    op.create_table(
        "oracle_weekly_summaries",
        _id(),
        sa.Column("week_start_date", sa.Date(), nullable=False),
        sa.Column("week_end_date", sa.Date(), nullable=False),
        sa.Column("overview_narrative", sa.Text(), nullable=False),
        sa.Column("what_advances", sa.Text(), nullable=False),
        sa.Column("needs_attention", sa.Text(), nullable=False),
        sa.Column("decisions_made", sa.Text(), nullable=False),
        sa.Column("full_summary_markdown", sa.Text(), nullable=False),
        sa.Column("tone_check", sa.String(16), nullable=False, server_default="calm"),
        _created_at(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_oracle_weekly_summaries_id", "oracle_weekly_summaries", ["id"])
    op.create_index(
        "ix_oracle_weekly_summaries_week_start_date",
        "oracle_weekly_summaries", ["week_start_date"], unique=True,
    )

    # --- daily_focus ---
    op.create_table(
        "daily_focus",
        _id(),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("priorities", sa.JSON(), nullable=False),
        sa.Column("critical_risk", sa.Text(), nullable=False, server_default=""),
        sa.Column("decision_needed", sa.Text(), nullable=False, server_default=""),
        sa.Column("ignore_today", sa.Text(), nullable=False, server_default=""),
        _created_at(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_daily_focus_id", "daily_focus", ["id"])
    op.create_index("ix_daily_focus_date", "daily_focus", ["date"], unique=True)


def downgrade() -> None:
    for table in (
        "daily_focus",
        "oracle_weekly_summaries",
        "oracle_questions",
        "oracle_trajectories",
        "recommendation_feedback",
        "recommendations",
        "completion_forecasts",
        "bottleneck_predictions",
        "risk_predictions",
        "anomalies",
        "portfolio_health",
        "health_scores",
        "pattern_analyses",
        "playbooks",
        "events",
        "risks",
        "decisions",
        "projects",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_name in (
        "recommendation_status_enum",
        "decision_status_enum",
        "risk_level_enum",
        "project_status_enum",
    ):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
