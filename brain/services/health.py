"""
Health scorer: 0–100 project and portfolio health.

Project score
-------------
  overall = 0.30 × completion
          + 0.25 × velocity          (trend → 90 / 70 / 40 / 10, no pattern → 50)
          + 0.20 × risk              (low 100, medium 60, high 30, critical 0)
          + 0.15 × cash_impact       (cash_impact_score × 10)
          + 0.10 × decision_quality  (mean of executed ratio and rationale depth)

  grade: ≥ 85 excellent, ≥ 70 good, ≥ 50 warning, else critical.

Portfolio score
---------------
  mean of the active projects' overall scores, counts per band, and
  trend deltas against the newest stored portfolio snapshot dated at or
  before now − 7d / now − 30d.

Writes: health_scores (upsert on project_id + score_date) and
portfolio_health (upsert on score_date), only in the save_* functions.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from brain.core.clock import resolve_now
from brain.models.decision import Decision, DecisionStatus
from brain.models.health import HealthGrade, HealthScore, PortfolioHealth
from brain.models.pattern_analysis import PatternAnalysis
from brain.models.project import Project
from brain.services.patterns import latest_pattern
from brain.services.projects import active_projects, get_project

logger = logging.getLogger("brain.health")


# ---------------------------------------------------------------------------
# Weights and maps
# ---------------------------------------------------------------------------

WEIGHTS: dict[str, float] = {
    "completion": 0.30,
    "velocity": 0.25,
    "risk": 0.20,
    "cash_impact": 0.15,
    "decision_quality": 0.10,
}

_VELOCITY_SCORES = {
    "accelerating": 90,
    "stable": 70,
    "decelerating": 40,
    "stagnant": 10,
}
_DEFAULT_VELOCITY_SCORE = 50

_RISK_SCORES = {"low": 100, "medium": 60, "high": 30, "critical": 0}
_DEFAULT_RISK_SCORE = 50

_DEFAULT_DECISION_QUALITY = 50
_RATIONALE_TARGET_LENGTH = 200
_DEFAULT_MOMENTUM = 50

HEALTHY_THRESHOLD = 70
WARNING_THRESHOLD = 50
OPPORTUNITY_CEILING = 80


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class ProjectHealth:
    project_id: int
    overall_score: float
    completion_score: float
    velocity_score: float
    risk_score: float
    cash_impact_score: float
    decision_quality_score: float
    momentum_score: float
    grade: str
    factors_breakdown: dict = field(default_factory=dict)


@dataclass
class PortfolioHealthResult:
    overall_score: float
    projects_count: int
    projects_healthy: int
    projects_warning: int
    projects_critical: int
    trend_7d: float
    trend_30d: float
    top_concern: str
    top_opportunity: str


# ---------------------------------------------------------------------------
# Component scores
# ---------------------------------------------------------------------------

def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def completion_score(project: Project) -> float:
    return float(project.completion_percentage or 0)


def velocity_score(pattern: Optional[PatternAnalysis]) -> float:
    if pattern is None:
        return _DEFAULT_VELOCITY_SCORE
    return _VELOCITY_SCORES.get(pattern.velocity_trend, _DEFAULT_VELOCITY_SCORE)


def risk_score(project: Project) -> float:
    return _RISK_SCORES.get(_ev(project.risk_level), _DEFAULT_RISK_SCORE)


def cash_impact_score(project: Project) -> float:
    return float(project.cash_impact_score or 0) * 10


def decision_quality_score(decisions: list[Decision]) -> float:
    """Average of follow-through (executed ratio) and documented reasoning depth."""
    if not decisions:
        return _DEFAULT_DECISION_QUALITY
    executed = sum(1 for d in decisions if _ev(d.status) == DecisionStatus.executed.value)
    execution = executed / len(decisions) * 100
    avg_rationale = sum(len(d.rationale or "") for d in decisions) / len(decisions)
    rationale = min(100.0, avg_rationale / _RATIONALE_TARGET_LENGTH * 100)
    return (execution + rationale) / 2


def weighted_overall(components: dict[str, float]) -> float:
    return sum(components[name] * weight for name, weight in WEIGHTS.items())


def grade_for(score: float) -> str:
    if score >= 85:
        return HealthGrade.excellent.value
    if score >= HEALTHY_THRESHOLD:
        return HealthGrade.good.value
    if score >= WARNING_THRESHOLD:
        return HealthGrade.warning.value
    return HealthGrade.critical.value


# ---------------------------------------------------------------------------
# Public: project
# ---------------------------------------------------------------------------

def score_project(db: Session, project: Project) -> ProjectHealth:
    pattern = latest_pattern(db, project.id)
    decisions = db.query(Decision).filter(Decision.project_id == project.id).all()

    components = {
        "completion": completion_score(project),
        "velocity": velocity_score(pattern),
        "risk": risk_score(project),
        "cash_impact": cash_impact_score(project),
        "decision_quality": decision_quality_score(decisions),
    }
    overall = round(weighted_overall(components), 2)

    return ProjectHealth(
        project_id=project.id,
        overall_score=overall,
        completion_score=components["completion"],
        velocity_score=components["velocity"],
        risk_score=components["risk"],
        cash_impact_score=components["cash_impact"],
        decision_quality_score=components["decision_quality"],
        momentum_score=pattern.momentum_score if pattern is not None else _DEFAULT_MOMENTUM,
        grade=grade_for(overall),
        factors_breakdown={
            name: {"score": components[name], "weight": weight}
            for name, weight in WEIGHTS.items()
        },
    )


def calculate_project_health(db: Session, project_id: int) -> ProjectHealth:
    """Raises ProjectNotFoundError if the project does not exist."""
    return score_project(db, get_project(db, project_id))


# ---------------------------------------------------------------------------
# Public: portfolio
# ---------------------------------------------------------------------------

def _trend(history: list[PortfolioHealth], days: int, current: float, now: datetime) -> float:
    """current − newest snapshot at or before now − days; 0 without one. history is newest first."""
    target = (now - timedelta(days=days)).date()
    for snapshot in history:
        if snapshot.score_date <= target:
            return current - snapshot.overall_score
    return 0.0


def calculate_portfolio_health(
    db: Session, now: Optional[datetime] = None
) -> tuple[PortfolioHealthResult, list[ProjectHealth]]:
    """
    Score every active project and aggregate.

    Returns (portfolio, per-project scores) so callers can persist both
    without recomputing.
    """
    now = resolve_now(now)
    projects = active_projects(db)

    if not projects:
        return PortfolioHealthResult(
            overall_score=0,
            projects_count=0,
            projects_healthy=0,
            projects_warning=0,
            projects_critical=0,
            trend_7d=0,
            trend_30d=0,
            top_concern="No active projects",
            top_opportunity="N/A",
        ), []

    names = {p.id: p.name for p in projects}
    scores = [score_project(db, p) for p in projects]
    overall = sum(s.overall_score for s in scores) / len(scores)

    history = (
        db.query(PortfolioHealth)
        .order_by(PortfolioHealth.score_date.desc())
        .limit(30)
        .all()
    )

    concern = min(scores, key=lambda s: s.overall_score)
    candidates = [s for s in scores if s.overall_score < OPPORTUNITY_CEILING] or scores[:1]
    opportunity = max(candidates, key=lambda s: s.momentum_score)

    result = PortfolioHealthResult(
        overall_score=round(overall, 2),
        projects_count=len(projects),
        projects_healthy=sum(1 for s in scores if s.overall_score >= HEALTHY_THRESHOLD),
        projects_warning=sum(
            1 for s in scores if WARNING_THRESHOLD <= s.overall_score < HEALTHY_THRESHOLD
        ),
        projects_critical=sum(1 for s in scores if s.overall_score < WARNING_THRESHOLD),
        trend_7d=round(_trend(history, 7, overall, now), 2),
        trend_30d=round(_trend(history, 30, overall, now), 2),
        top_concern=f"{names[concern.project_id]}: {round(concern.overall_score)}/100",
        top_opportunity=(
            f"{names[opportunity.project_id]}: High momentum ({round(opportunity.momentum_score)})"
        ),
    )
    logger.info(
        "Portfolio health %.2f over %d project(s) (trend 7d %+.2f)",
        result.overall_score, result.projects_count, result.trend_7d,
    )
    return result, scores


# ---------------------------------------------------------------------------
# Public: persistence (upsert by date key)
# ---------------------------------------------------------------------------

def save_health_score(
    db: Session, health: ProjectHealth, now: Optional[datetime] = None
) -> HealthScore:
    score_date = resolve_now(now).date()
    row = (
        db.query(HealthScore)
        .filter(HealthScore.project_id == health.project_id, HealthScore.score_date == score_date)
        .first()
    )
    if row is None:
        row = HealthScore(project_id=health.project_id, score_date=score_date)
        db.add(row)
    row.overall_score = health.overall_score
    row.completion_score = health.completion_score
    row.velocity_score = health.velocity_score
    row.risk_score = health.risk_score
    row.cash_impact_score = health.cash_impact_score
    row.decision_quality_score = health.decision_quality_score
    row.momentum_score = health.momentum_score
    row.grade = health.grade
    row.factors_breakdown = health.factors_breakdown
    _commit_upsert(db)
    return row


def save_portfolio_health(
    db: Session, portfolio: PortfolioHealthResult, now: Optional[datetime] = None
) -> PortfolioHealth:
    score_date = resolve_now(now).date()
    row = db.query(PortfolioHealth).filter(PortfolioHealth.score_date == score_date).first()
    if row is None:
        row = PortfolioHealth(score_date=score_date)
        db.add(row)
    row.overall_score = portfolio.overall_score
    row.projects_count = portfolio.projects_count
    row.projects_healthy = portfolio.projects_healthy
    row.projects_warning = portfolio.projects_warning
    row.projects_critical = portfolio.projects_critical
    row.trend_7d = portfolio.trend_7d
    row.trend_30d = portfolio.trend_30d
    row.top_concern = portfolio.top_concern
    row.top_opportunity = portfolio.top_opportunity
    _commit_upsert(db)
    return row


def _commit_upsert(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        # A concurrent refresh inserted the same date key first; its values win.
        db.rollback()
        logger.warning("Concurrent health upsert detected; keeping the stored row")


# ---------------------------------------------------------------------------
# Public: history
# ---------------------------------------------------------------------------

def health_history(db: Session, project_id: int, limit: int = 30) -> list[HealthScore]:
    """Newest first."""
    return (
        db.query(HealthScore)
        .filter(HealthScore.project_id == project_id)
        .order_by(HealthScore.score_date.desc(), HealthScore.id.desc())
        .limit(limit)
        .all()
    )


def latest_health(db: Session, project_id: int) -> HealthScore | None:
    history = health_history(db, project_id, limit=1)
    return history[0] if history else None


def latest_portfolio_health(db: Session) -> PortfolioHealth | None:
    return db.query(PortfolioHealth).order_by(PortfolioHealth.score_date.desc()).first()
