"""
Bottleneck predictor: where a project is likely to get stuck next.

  decision   ≥ 2 pending decisions              → impact 3 days each, horizon 7,
                                                  critical above 3 pending
  resource   momentum > 70 and completion < 50  → impact 14 days, horizon 21
  technical  recurring blocker mentions technique / bug / debt
                                                → impact 10 days, horizon 14

resource and technical need a stored pattern analysis.
Writes: bottleneck_predictions (previous active batch of the project expired).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from brain.core.clock import days_from, resolve_now
from brain.models.decision import Decision, DecisionStatus
from brain.models.pattern_analysis import PatternAnalysis
from brain.models.prediction import BottleneckPrediction, PredictionStatus
from brain.models.project import Project
from brain.services.patterns import latest_pattern
from brain.services.projects import active_projects, find_project
from brain.services.risk_prediction import mentions_any

logger = logging.getLogger("brain.predictions.bottlenecks")

TECHNICAL_DEBT_KEYWORDS = ("technique", "bug", "debt")

_PRIORITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}


@dataclass
class BottleneckResult:
    project_id: int
    bottleneck_type: str
    bottleneck_description: str
    probability_score: float
    estimated_impact_days: int
    time_horizon_days: int
    predicted_occurrence_date: date
    priority: str
    mitigation_actions: list[str] = field(default_factory=list)


@dataclass
class _Signals:
    project: Project
    pattern: Optional[PatternAnalysis]
    pending_decisions: int
    now: datetime


Rule = Callable[[_Signals], Optional[BottleneckResult]]


def _rule_decision(s: _Signals) -> Optional[BottleneckResult]:
    pending = s.pending_decisions
    if pending < 2:
        return None
    return BottleneckResult(
        project_id=s.project.id,
        bottleneck_type="decision",
        bottleneck_description=f"{pending} décisions pending bloquent progression",
        probability_score=80,
        estimated_impact_days=pending * 3,
        time_horizon_days=7,
        predicted_occurrence_date=days_from(s.now, 7),
        priority="critical" if pending > 3 else "high",
        mitigation_actions=[
            "Planifier session décisions CEO cette semaine",
            "Prioriser décisions par impact/urgence",
            "Déléguer décisions non-stratégiques si possible",
        ],
    )


def _rule_resource(s: _Signals) -> Optional[BottleneckResult]:
    if s.pattern is None:
        return None
    if not (s.pattern.momentum_score > 70 and float(s.project.completion_percentage or 0) < 50):
        return None
    return BottleneckResult(
        project_id=s.project.id,
        bottleneck_type="resource",
        bottleneck_description="Bon momentum mais progression lente - ressources insuffisantes possible",
        probability_score=60,
        estimated_impact_days=14,
        time_horizon_days=21,
        predicted_occurrence_date=days_from(s.now, 21),
        priority="medium",
        mitigation_actions=[
            "Évaluer allocation ressources actuelles",
            "Considérer augmentation budget/équipe",
            "Identifier tâches parallélisables",
        ],
    )


def _rule_technical(s: _Signals) -> Optional[BottleneckResult]:
    if s.pattern is None:
        return None
    if not mentions_any(s.pattern.blockers_recurring or [], TECHNICAL_DEBT_KEYWORDS):
        return None
    return BottleneckResult(
        project_id=s.project.id,
        bottleneck_type="technical",
        bottleneck_description="Dette technique récurrente ralentit développement",
        probability_score=75,
        estimated_impact_days=10,
        time_horizon_days=14,
        predicted_occurrence_date=days_from(s.now, 14),
        priority="high",
        mitigation_actions=[
            "Sprint dédié résolution dette technique",
            "Refactoring code critique",
            "Documentation solutions pour éviter récurrence",
        ],
    )


RULES: tuple[Rule, ...] = (_rule_decision, _rule_resource, _rule_technical)


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def count_pending_decisions(db: Session, project_id: int) -> int:
    return (
        db.query(func.count(Decision.id))
        .filter(Decision.project_id == project_id, Decision.status == DecisionStatus.pending)
        .scalar()
        or 0
    )


def predict_bottlenecks_for(
    db: Session, project: Project, now: Optional[datetime] = None
) -> list[BottleneckResult]:
    signals = _Signals(
        project=project,
        pattern=latest_pattern(db, project.id),
        pending_decisions=count_pending_decisions(db, project.id),
        now=resolve_now(now),
    )
    return [b for b in (rule(signals) for rule in RULES) if b is not None]


def predict_project_bottlenecks(
    db: Session, project_id: int, now: Optional[datetime] = None
) -> list[BottleneckResult]:
    project = find_project(db, project_id)
    if project is None:
        return []
    return predict_bottlenecks_for(db, project, now)


def predict_all_bottlenecks(db: Session, now: Optional[datetime] = None) -> list[BottleneckResult]:
    now = resolve_now(now)
    results: list[BottleneckResult] = []
    for project in active_projects(db):
        results.extend(predict_bottlenecks_for(db, project, now))
    logger.info("Predicted %d bottleneck(s)", len(results))
    return results


def save_bottleneck_predictions(
    db: Session, bottlenecks: list[BottleneckResult], project_ids: Iterable[int] = ()
) -> list[BottleneckPrediction]:
    """Expires the active rows of every project in `project_ids` or in the batch."""
    for project_id in set(project_ids) | {b.project_id for b in bottlenecks}:
        (
            db.query(BottleneckPrediction)
            .filter(
                BottleneckPrediction.project_id == project_id,
                BottleneckPrediction.status == PredictionStatus.active.value,
            )
            .update(
                {BottleneckPrediction.status: PredictionStatus.expired.value},
                synchronize_session=False,
            )
        )
    rows = [
        BottleneckPrediction(
            project_id=b.project_id,
            bottleneck_type=b.bottleneck_type,
            bottleneck_description=b.bottleneck_description,
            probability_score=b.probability_score,
            estimated_impact_days=b.estimated_impact_days,
            time_horizon_days=b.time_horizon_days,
            predicted_occurrence_date=b.predicted_occurrence_date,
            mitigation_actions=b.mitigation_actions,
            priority=b.priority,
            status=PredictionStatus.active.value,
        )
        for b in bottlenecks
    ]
    db.add_all(rows)
    db.commit()
    return rows


def list_active_bottlenecks(db: Session, limit: int = 20) -> list[BottleneckPrediction]:
    """Most urgent first."""
    rows = (
        db.query(BottleneckPrediction)
        .filter(BottleneckPrediction.status == PredictionStatus.active.value)
        .order_by(BottleneckPrediction.id.desc())
        .all()
    )
    rows.sort(key=lambda r: _PRIORITY_ORDER.get(r.priority, len(_PRIORITY_ORDER)))
    return rows[:limit]
