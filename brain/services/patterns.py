"""
Pattern analyzer: velocity, trend and momentum of a project.

Signals
-------
  velocity(days)       completion_percentage / 30 × days
                       (linear extrapolation from the current completion only)
  velocity_trend       ratio = velocity_7d / (velocity_30d / 4.3)
                         both velocities 0 → stagnant
                         ratio > 1.2       → accelerating
                         ratio < 0.8       → decelerating
                         otherwise         → stable
  blockers_count       1 if main_blocker is set (and not "Aucun"), else 0
  blockers_recurring   distinct "blocker" event descriptions, newest first
  decisions_velocity   decisions created in the trailing 30 days
  last_activity_days   days since the newest project event; 999 if none
  momentum_score       baseline 50 adjusted by velocity, decision cadence,
                       inactivity and blockers, clamped to [0, 100]

Reads from: projects, events, decisions, pattern_analyses.
Writes to: pattern_analyses (append-only) in save_pattern_analysis only.

Public API
----------
analyze_project_patterns(db, project_id, now)   -> PatternResult
analyze_all_projects_patterns(db, now)          -> list[PatternResult]
save_pattern_analysis(db, result, now)          -> PatternAnalysis
latest_pattern(db, project_id)                  -> PatternAnalysis | None
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from brain.core.clock import resolve_now, whole_days_between
from brain.models.decision import Decision
from brain.models.event import Event
from brain.models.pattern_analysis import PatternAnalysis, VelocityTrend
from brain.models.project import Project
from brain.services.projects import active_projects, get_project

logger = logging.getLogger("brain.patterns")


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

WEEKS_PER_MONTH = 4.3
ACCELERATING_RATIO = 1.2
DECELERATING_RATIO = 0.8
NO_ACTIVITY_SENTINEL = 999
DECISIONS_WINDOW_DAYS = 30
RECURRING_BLOCKER_LOOKBACK = 10


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass
class PatternResult:
    project_id: int
    velocity_7d: float
    velocity_30d: float
    velocity_trend: str
    blockers_count: int
    decisions_velocity: int
    last_activity_days: int
    momentum_score: float
    blockers_recurring: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Pure formulas
# ---------------------------------------------------------------------------

def calculate_velocity(completion_percentage: float, days: int) -> float:
    """Completion points over `days`, assuming the project progressed linearly over 30 days."""
    return (completion_percentage / 30) * days


def _velocity_ratio(velocity_7d: float, velocity_30d: float) -> float:
    weekly_average = velocity_30d / WEEKS_PER_MONTH
    if weekly_average == 0:
        return math.inf if velocity_7d > 0 else 0.0
    return velocity_7d / weekly_average


def determine_velocity_trend(velocity_7d: float, velocity_30d: float) -> str:
    if velocity_7d == 0 and velocity_30d == 0:
        return VelocityTrend.stagnant.value
    ratio = _velocity_ratio(velocity_7d, velocity_30d)
    if ratio > ACCELERATING_RATIO:
        return VelocityTrend.accelerating.value
    if ratio < DECELERATING_RATIO:
        return VelocityTrend.decelerating.value
    return VelocityTrend.stable.value


def calculate_momentum_score(
    velocity_7d: float,
    velocity_30d: float,
    decisions_velocity: int,
    last_activity_days: int,
    blockers_count: int,
) -> float:
    score = 50.0

    # Velocity (-20 .. +30); a zero monthly average compares against 1
    velocity_ratio = velocity_7d / ((velocity_30d / WEEKS_PER_MONTH) or 1)
    if velocity_ratio > 1.5:
        score += 30
    elif velocity_ratio > 1.2:
        score += 20
    elif velocity_ratio > 0.8:
        score += 10
    elif velocity_ratio < 0.5:
        score -= 20

    # Decision cadence (-10 .. +20)
    if decisions_velocity > 5:
        score += 20
    elif decisions_velocity > 2:
        score += 10
    elif decisions_velocity == 0:
        score -= 10

    # Inactivity (-30 .. 0)
    if last_activity_days > 30:
        score -= 30
    elif last_activity_days > 14:
        score -= 15
    elif last_activity_days > 7:
        score -= 5

    score -= blockers_count * 10

    return max(0.0, min(100.0, score))


# ---------------------------------------------------------------------------
# Store reads
# ---------------------------------------------------------------------------

def _project_events(db: Session, project_id: int):
    return db.query(Event).filter(
        Event.entity_type == "project",
        Event.entity_id == project_id,
    )


def _recurring_blockers(db: Session, project_id: int) -> list[str]:
    rows = (
        _project_events(db, project_id)
        .filter(Event.description.ilike("%blocker%"))
        .order_by(Event.created_at.desc(), Event.id.desc())
        .limit(RECURRING_BLOCKER_LOOKBACK)
        .all()
    )
    # dict preserves first-seen (newest) order
    return list(dict.fromkeys(r.description for r in rows))


def _decisions_velocity(db: Session, project_id: int, now: datetime) -> int:
    cutoff = now - timedelta(days=DECISIONS_WINDOW_DAYS)
    return (
        db.query(func.count(Decision.id))
        .filter(Decision.project_id == project_id, Decision.created_at >= cutoff)
        .scalar()
        or 0
    )


def _last_activity_days(db: Session, project_id: int, now: datetime) -> int:
    latest = (
        _project_events(db, project_id)
        .order_by(Event.created_at.desc())
        .first()
    )
    if latest is None:
        return NO_ACTIVITY_SENTINEL
    return whole_days_between(now, latest.created_at)


# ---------------------------------------------------------------------------
# Public: analysis
# ---------------------------------------------------------------------------

def analyze_project(db: Session, project: Project, now: Optional[datetime] = None) -> PatternResult:
    now = resolve_now(now)
    completion = float(project.completion_percentage or 0)

    velocity_7d = calculate_velocity(completion, 7)
    velocity_30d = calculate_velocity(completion, 30)
    blockers_count = 1 if project.has_blocker else 0
    decisions_velocity = _decisions_velocity(db, project.id, now)
    last_activity_days = _last_activity_days(db, project.id, now)

    return PatternResult(
        project_id=project.id,
        velocity_7d=velocity_7d,
        velocity_30d=velocity_30d,
        velocity_trend=determine_velocity_trend(velocity_7d, velocity_30d),
        blockers_count=blockers_count,
        blockers_recurring=_recurring_blockers(db, project.id),
        decisions_velocity=decisions_velocity,
        last_activity_days=last_activity_days,
        momentum_score=calculate_momentum_score(
            velocity_7d=velocity_7d,
            velocity_30d=velocity_30d,
            decisions_velocity=decisions_velocity,
            last_activity_days=last_activity_days,
            blockers_count=blockers_count,
        ),
    )


def analyze_project_patterns(
    db: Session, project_id: int, now: Optional[datetime] = None
) -> PatternResult:
    """Analyze one project. Raises ProjectNotFoundError if it does not exist."""
    return analyze_project(db, get_project(db, project_id), now)


def analyze_all_projects_patterns(db: Session, now: Optional[datetime] = None) -> list[PatternResult]:
    now = resolve_now(now)
    results = [analyze_project(db, p, now) for p in active_projects(db)]
    logger.info("Analyzed patterns for %d active project(s)", len(results))
    return results


# ---------------------------------------------------------------------------
# Public: persistence and history
# ---------------------------------------------------------------------------

def save_pattern_analysis(
    db: Session, result: PatternResult, now: Optional[datetime] = None
) -> PatternAnalysis:
    row = PatternAnalysis(
        project_id=result.project_id,
        analysis_date=resolve_now(now),
        velocity_7d=result.velocity_7d,
        velocity_30d=result.velocity_30d,
        velocity_trend=result.velocity_trend,
        blockers_count=result.blockers_count,
        blockers_recurring=list(result.blockers_recurring),
        decisions_velocity=result.decisions_velocity,
        last_activity_days=result.last_activity_days,
        momentum_score=result.momentum_score,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def pattern_history(db: Session, project_id: int, limit: int = 30) -> list[PatternAnalysis]:
    """Newest first."""
    return (
        db.query(PatternAnalysis)
        .filter(PatternAnalysis.project_id == project_id)
        .order_by(PatternAnalysis.analysis_date.desc(), PatternAnalysis.id.desc())
        .limit(limit)
        .all()
    )


def latest_pattern(db: Session, project_id: int) -> PatternAnalysis | None:
    history = pattern_history(db, project_id, limit=1)
    return history[0] if history else None


def latest_patterns(db: Session, limit: int = 50) -> list[PatternAnalysis]:
    """Most recent analysis per project, newest projects first."""
    newest = (
        db.query(
            PatternAnalysis.project_id,
            func.max(PatternAnalysis.id).label("max_id"),
        )
        .group_by(PatternAnalysis.project_id)
        .subquery()
    )
    return (
        db.query(PatternAnalysis)
        .join(newest, PatternAnalysis.id == newest.c.max_id)
        .order_by(PatternAnalysis.analysis_date.desc())
        .limit(limit)
        .all()
    )
