"""
Completion forecaster: when a project reaches 100 %, at its current pace.

  daily velocity   velocity_30d / 30
  realistic days   (100 − completion) / daily velocity
  optimistic       realistic × 0.8
  pessimistic      realistic × 1.4

No forecast (None) when the project is already complete, has never been
analyzed, or has no positive velocity. Forecasts are upserted once per
(project_id, forecast_date).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from brain.core.clock import days_from, resolve_now
from brain.models.prediction import CompletionForecast
from brain.models.project import Project
from brain.services.patterns import latest_pattern
from brain.services.projects import active_projects, find_project

logger = logging.getLogger("brain.predictions.completion")

OPTIMISTIC_FACTOR = 0.8
PESSIMISTIC_FACTOR = 1.4

_CONFIDENCE_BY_TREND = {
    "stable": 75,
    "accelerating": 80,
    "decelerating": 50,
    "stagnant": 30,
}
_DEFAULT_CONFIDENCE = 60


@dataclass
class CompletionResult:
    project_id: int
    current_completion: float
    predicted_completion_date: date
    optimistic_date: date
    realistic_date: date
    pessimistic_date: date
    confidence_level: float
    velocity_assumption: float
    blockers_assumed: int
    factors: dict = field(default_factory=dict)


def forecast_for(
    db: Session, project: Project, now: Optional[datetime] = None
) -> Optional[CompletionResult]:
    completion = float(project.completion_percentage or 0)
    if completion >= 100:
        return None
    pattern = latest_pattern(db, project.id)
    if pattern is None:
        return None
    daily_velocity = pattern.velocity_30d / 30
    if daily_velocity <= 0:
        return None

    now = resolve_now(now)
    realistic_days = (100 - completion) / daily_velocity
    realistic = days_from(now, realistic_days)
    return CompletionResult(
        project_id=project.id,
        current_completion=completion,
        predicted_completion_date=realistic,
        optimistic_date=days_from(now, realistic_days * OPTIMISTIC_FACTOR),
        realistic_date=realistic,
        pessimistic_date=days_from(now, realistic_days * PESSIMISTIC_FACTOR),
        confidence_level=_CONFIDENCE_BY_TREND.get(pattern.velocity_trend, _DEFAULT_CONFIDENCE),
        velocity_assumption=daily_velocity,
        blockers_assumed=pattern.blockers_count,
        factors={
            "velocity_trend": pattern.velocity_trend,
            "momentum_score": pattern.momentum_score,
            "blockers_count": pattern.blockers_count,
            "last_activity_days": pattern.last_activity_days,
        },
    )


def forecast_project_completion(
    db: Session, project_id: int, now: Optional[datetime] = None
) -> Optional[CompletionResult]:
    project = find_project(db, project_id)
    if project is None:
        return None
    return forecast_for(db, project, now)


def forecast_all_projects_completion(
    db: Session, now: Optional[datetime] = None
) -> list[CompletionResult]:
    now = resolve_now(now)
    forecasts = []
    for project in active_projects(db):
        forecast = forecast_for(db, project, now)
        if forecast is not None:
            forecasts.append(forecast)
    logger.info("Forecast completion for %d project(s)", len(forecasts))
    return forecasts


def save_completion_forecast(
    db: Session, forecast: CompletionResult, now: Optional[datetime] = None
) -> CompletionForecast:
    forecast_date = resolve_now(now).date()
    row = (
        db.query(CompletionForecast)
        .filter(
            CompletionForecast.project_id == forecast.project_id,
            CompletionForecast.forecast_date == forecast_date,
        )
        .first()
    )
    if row is None:
        row = CompletionForecast(project_id=forecast.project_id, forecast_date=forecast_date)
        db.add(row)
    row.current_completion = forecast.current_completion
    row.predicted_completion_date = forecast.predicted_completion_date
    row.optimistic_date = forecast.optimistic_date
    row.realistic_date = forecast.realistic_date
    row.pessimistic_date = forecast.pessimistic_date
    row.confidence_level = forecast.confidence_level
    row.velocity_assumption = forecast.velocity_assumption
    row.factors = forecast.factors
    row.blockers_assumed = forecast.blockers_assumed
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Concurrent forecast upsert for project %s", forecast.project_id)
    return row


def latest_forecasts(db: Session, limit: int = 50) -> list[CompletionForecast]:
    """Newest forecast_date first; nearest completion first within a date."""
    return (
        db.query(CompletionForecast)
        .order_by(
            CompletionForecast.forecast_date.desc(),
            CompletionForecast.realistic_date.asc(),
        )
        .limit(limit)
        .all()
    )
