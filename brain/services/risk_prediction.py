"""
Risk predictor: stateless threshold rules over pattern, health and project.

Rules (each independent; a project yields 0–4 predictions per run)
------------------------------------------------------------------
  technical       recurring blocker mentions technique / bug / css / tailwind,
                  or the current blocker mentions css
  administrative  trend decelerating or momentum < 40   (needs a pattern)
  dispersion      > 5 decisions / 30d or > 2 blockers   (needs a pattern)
  financial       cash impact > 7 and health < 60       (needs a health score)

Writes: risk_predictions. A fresh batch for a project expires the
project's previously active predictions first.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from brain.core.clock import days_from, resolve_now
from brain.models.health import HealthScore
from brain.models.pattern_analysis import PatternAnalysis
from brain.models.prediction import PredictionStatus, RiskPrediction
from brain.models.project import Project
from brain.services.health import latest_health
from brain.services.patterns import latest_pattern
from brain.services.projects import active_projects, find_project

logger = logging.getLogger("brain.predictions.risks")

TECHNICAL_BLOCKER_KEYWORDS = ("technique", "bug", "css", "tailwind")


@dataclass
class RiskPredictionResult:
    project_id: int
    risk_type: str
    predicted_severity: str
    probability_score: float
    estimated_impact: str
    time_horizon_days: int
    predicted_occurrence_date: object
    confidence_level: float
    factors: dict = field(default_factory=dict)
    mitigation_suggestions: list[str] = field(default_factory=list)


@dataclass
class _Signals:
    project: Project
    pattern: Optional[PatternAnalysis]
    health: Optional[HealthScore]
    now: datetime


Rule = Callable[[_Signals], Optional[RiskPredictionResult]]


def mentions_any(texts, keywords) -> bool:
    return any(k in (t or "").lower() for t in texts for k in keywords)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def _rule_technical(s: _Signals) -> Optional[RiskPredictionResult]:
    recurring = s.pattern.blockers_recurring if s.pattern is not None else []
    recurring_technical = mentions_any(recurring, TECHNICAL_BLOCKER_KEYWORDS)
    css_blocker = "css" in (s.project.main_blocker or "").lower()
    if not (recurring_technical or css_blocker):
        return None
    horizon = 14
    return RiskPredictionResult(
        project_id=s.project.id,
        risk_type="technical",
        predicted_severity="high",
        probability_score=75,
        estimated_impact="major",
        time_horizon_days=horizon,
        predicted_occurrence_date=days_from(s.now, horizon),
        confidence_level=70,
        factors={
            "recurring_blockers": recurring_technical,
            "current_blocker": s.project.main_blocker,
            "velocity_trend": s.pattern.velocity_trend if s.pattern is not None else None,
        },
        mitigation_suggestions=[
            "Allouer temps développeur senior pour résoudre dette technique",
            "Créer sprint dédié résolution blockers techniques",
            "Documenter solutions pour éviter récurrence",
        ],
    )


def _rule_administrative(s: _Signals) -> Optional[RiskPredictionResult]:
    p = s.pattern
    if p is None:
        return None
    if not (p.velocity_trend == "decelerating" or p.momentum_score < 40):
        return None
    horizon = 7 if p.last_activity_days > 7 else 14
    return RiskPredictionResult(
        project_id=s.project.id,
        risk_type="administrative",
        predicted_severity="medium",
        probability_score=80 if p.momentum_score < 30 else 60,
        estimated_impact="moderate",
        time_horizon_days=horizon,
        predicted_occurrence_date=days_from(s.now, horizon),
        confidence_level=65,
        factors={
            "velocity_trend": p.velocity_trend,
            "momentum_score": p.momentum_score,
            "last_activity_days": p.last_activity_days,
        },
        mitigation_suggestions=[
            "Planifier session focus CEO sur ce projet",
            "Identifier et débloquer décisions pending",
            "Réallouer ressources si nécessaire",
        ],
    )


def _rule_dispersion(s: _Signals) -> Optional[RiskPredictionResult]:
    p = s.pattern
    if p is None:
        return None
    if not (p.decisions_velocity > 5 or p.blockers_count > 2):
        return None
    horizon = 21
    return RiskPredictionResult(
        project_id=s.project.id,
        risk_type="dispersion",
        predicted_severity="medium",
        probability_score=55,
        estimated_impact="moderate",
        time_horizon_days=horizon,
        predicted_occurrence_date=days_from(s.now, horizon),
        confidence_level=60,
        factors={
            "decisions_velocity": p.decisions_velocity,
            "blockers_count": p.blockers_count,
        },
        mitigation_suggestions=[
            "Consolider focus sur 1-2 priorités max",
            "Reporter décisions non-critiques",
            "Simplifier scope si possible",
        ],
    )


def _rule_financial(s: _Signals) -> Optional[RiskPredictionResult]:
    if s.health is None:
        return None
    if not (float(s.project.cash_impact_score or 0) > 7 and s.health.overall_score < 60):
        return None
    horizon = 30
    return RiskPredictionResult(
        project_id=s.project.id,
        risk_type="financial",
        predicted_severity="high",
        probability_score=70,
        estimated_impact="major",
        time_horizon_days=horizon,
        predicted_occurrence_date=days_from(s.now, horizon),
        confidence_level=65,
        factors={
            "cash_impact_score": float(s.project.cash_impact_score or 0),
            "overall_health": s.health.overall_score,
            "risk_level": getattr(s.project.risk_level, "value", s.project.risk_level),
        },
        mitigation_suggestions=[
            "Réévaluer allocation budget/ressources",
            "Accélérer ou pauser selon priorités stratégiques",
            "Décision CEO requise sur continuation",
        ],
    )


RULES: tuple[Rule, ...] = (
    _rule_technical,
    _rule_administrative,
    _rule_dispersion,
    _rule_financial,
)


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def predict_risks_for(
    db: Session, project: Project, now: Optional[datetime] = None
) -> list[RiskPredictionResult]:
    signals = _Signals(
        project=project,
        pattern=latest_pattern(db, project.id),
        health=latest_health(db, project.id),
        now=resolve_now(now),
    )
    return [r for r in (rule(signals) for rule in RULES) if r is not None]


def predict_project_risks(
    db: Session, project_id: int, now: Optional[datetime] = None
) -> list[RiskPredictionResult]:
    project = find_project(db, project_id)
    if project is None:
        return []
    return predict_risks_for(db, project, now)


def predict_all_projects_risks(
    db: Session, now: Optional[datetime] = None
) -> list[RiskPredictionResult]:
    now = resolve_now(now)
    results: list[RiskPredictionResult] = []
    for project in active_projects(db):
        results.extend(predict_risks_for(db, project, now))
    logger.info("Predicted %d risk(s)", len(results))
    return results


def expire_active_risk_predictions(db: Session, project_id: int) -> int:
    return (
        db.query(RiskPrediction)
        .filter(
            RiskPrediction.project_id == project_id,
            RiskPrediction.status == PredictionStatus.active.value,
        )
        .update({RiskPrediction.status: PredictionStatus.expired.value}, synchronize_session=False)
    )


def save_risk_prediction(db: Session, prediction: RiskPredictionResult) -> RiskPrediction:
    row = RiskPrediction(
        project_id=prediction.project_id,
        risk_type=prediction.risk_type,
        predicted_severity=prediction.predicted_severity,
        probability_score=prediction.probability_score,
        estimated_impact=prediction.estimated_impact,
        time_horizon_days=prediction.time_horizon_days,
        predicted_occurrence_date=prediction.predicted_occurrence_date,
        confidence_level=prediction.confidence_level,
        factors=prediction.factors,
        mitigation_suggestions=prediction.mitigation_suggestions,
        status=PredictionStatus.active.value,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def save_risk_predictions(
    db: Session,
    predictions: list[RiskPredictionResult],
    project_ids: Iterable[int] = (),
) -> list[RiskPrediction]:
    """
    Replace the active batch of every evaluated project.

    `project_ids` names the projects the run looked at; those that produced
    nothing this time still lose their previous active predictions.
    """
    for project_id in set(project_ids) | {p.project_id for p in predictions}:
        expire_active_risk_predictions(db, project_id)
    return [save_risk_prediction(db, p) for p in predictions]


def list_active_risk_predictions(db: Session, limit: int = 20) -> list[RiskPrediction]:
    return (
        db.query(RiskPrediction)
        .filter(RiskPrediction.status == PredictionStatus.active.value)
        .order_by(RiskPrediction.probability_score.desc(), RiskPrediction.id.desc())
        .limit(limit)
        .all()
    )


def active_risk_predictions_for(db: Session, project_id: int) -> list[RiskPrediction]:
    return (
        db.query(RiskPrediction)
        .filter(
            RiskPrediction.project_id == project_id,
            RiskPrediction.status == PredictionStatus.active.value,
        )
        .order_by(RiskPrediction.id)
        .all()
    )
