"""
Anomaly detector: flags deviations of a project from its own baseline.

Rules (independent, each emits at most one anomaly per run)
-----------------------------------------------------------
  1. VELOCITY      |Δ velocity_7d vs previous analysis| > 40 %
                   → high, critical above 60 %; sign picks velocity_drop /
                     velocity_spike (spikes are informational: is_positive)
  2. STAGNATION    last_activity_days > 14 → high, > 30 → critical
  3. HEALTH_DROP   mean(previous 7 health snapshots) − current > 15
                   → medium, high above 20, critical above 30
  4. RISK_SPIKE    > 2 risks created in the trailing 7 days → high, > 4 → critical

Fewer than two health snapshots means there is no baseline yet: the
project yields no anomalies, not an error.

Deduplication
-------------
save_anomaly skips the insert while an unresolved anomaly of the same
(project_id, anomaly_type) exists, so repeated refreshes never open a
second anomaly of one type for one project.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from brain.core.clock import resolve_now
from brain.core.errors import AnomalyNotFoundError
from brain.models.anomaly import Anomaly, AnomalyType
from brain.models.health import HealthScore
from brain.models.pattern_analysis import PatternAnalysis
from brain.models.project import Project
from brain.models.risk import Risk
from brain.services.health import health_history
from brain.services.patterns import pattern_history
from brain.services.projects import active_projects, find_project

logger = logging.getLogger("brain.anomalies")


# Thresholds
_VELOCITY_CHANGE_PCT      = 40
_VELOCITY_CRITICAL_PCT    = 60
_STAGNATION_DAYS          = 14
_STAGNATION_CRITICAL_DAYS = 30
_STAGNATION_BASELINE_DAYS = 7
_HEALTH_DROP_POINTS       = 15
_HEALTH_DROP_HIGH         = 20
_HEALTH_DROP_CRITICAL     = 30
_HEALTH_BASELINE_WINDOW   = 7
_RISK_SPIKE_COUNT         = 2
_RISK_SPIKE_CRITICAL      = 4
_RISK_WINDOW_DAYS         = 7


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass
class AnomalyResult:
    project_id: int
    anomaly_type: str
    severity: str
    metric_name: str
    baseline_value: float
    current_value: float
    deviation_percent: float
    description: str
    is_positive: bool = False


@dataclass
class _Signals:
    """Everything the rules look at for one project, fetched once."""
    project: Project
    health: list[HealthScore]        # newest first, ≥ 2 rows
    patterns: list[PatternAnalysis]  # newest first, may be empty
    new_risks: int


Rule = Callable[[_Signals], Optional[AnomalyResult]]


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def _rule_velocity(s: _Signals) -> Optional[AnomalyResult]:
    if len(s.patterns) < 2:
        return None
    current, previous = s.patterns[0], s.patterns[1]
    change = (current.velocity_7d - previous.velocity_7d) / (previous.velocity_7d or 1) * 100
    if abs(change) <= _VELOCITY_CHANGE_PCT:
        return None
    dropped = change < 0
    return AnomalyResult(
        project_id=s.project.id,
        anomaly_type=AnomalyType.VELOCITY_DROP if dropped else AnomalyType.VELOCITY_SPIKE,
        severity="critical" if abs(change) > _VELOCITY_CRITICAL_PCT else "high",
        metric_name="Velocity 7d",
        baseline_value=previous.velocity_7d,
        current_value=current.velocity_7d,
        deviation_percent=abs(change),
        description=(
            f"Velocity dropped {round(abs(change))}% in last period"
            if dropped
            else f"Velocity increased {round(change)}% - potential acceleration opportunity"
        ),
        is_positive=change > 0,
    )


def _rule_stagnation(s: _Signals) -> Optional[AnomalyResult]:
    if not s.patterns:
        return None
    days = s.patterns[0].last_activity_days
    if days <= _STAGNATION_DAYS:
        return None
    return AnomalyResult(
        project_id=s.project.id,
        anomaly_type=AnomalyType.STAGNATION,
        severity="critical" if days > _STAGNATION_CRITICAL_DAYS else "high",
        metric_name="Last Activity",
        baseline_value=_STAGNATION_BASELINE_DAYS,
        current_value=days,
        deviation_percent=(days - _STAGNATION_BASELINE_DAYS) / _STAGNATION_BASELINE_DAYS * 100,
        description=f"No activity for {days} days - project may be stalled",
    )


def _rule_health_drop(s: _Signals) -> Optional[AnomalyResult]:
    window = s.health[1:1 + _HEALTH_BASELINE_WINDOW]
    if not window:
        return None
    baseline = sum(h.overall_score for h in window) / len(window)
    current = s.health[0].overall_score
    drop = baseline - current
    if drop <= _HEALTH_DROP_POINTS:
        return None
    if drop > _HEALTH_DROP_CRITICAL:
        severity = "critical"
    elif drop > _HEALTH_DROP_HIGH:
        severity = "high"
    else:
        severity = "medium"
    return AnomalyResult(
        project_id=s.project.id,
        anomaly_type=AnomalyType.HEALTH_DROP,
        severity=severity,
        metric_name="Health Score",
        baseline_value=baseline,
        current_value=current,
        deviation_percent=drop / baseline * 100 if baseline else 0.0,
        description=f"Health score dropped {round(drop)} points from baseline",
    )


def _rule_risk_spike(s: _Signals) -> Optional[AnomalyResult]:
    if s.new_risks <= _RISK_SPIKE_COUNT:
        return None
    return AnomalyResult(
        project_id=s.project.id,
        anomaly_type=AnomalyType.RISK_SPIKE,
        severity="critical" if s.new_risks > _RISK_SPIKE_CRITICAL else "high",
        metric_name="New Risks",
        baseline_value=1,
        current_value=s.new_risks,
        deviation_percent=(s.new_risks - 1) / 1 * 100,
        description=f"{s.new_risks} new risks identified in last 7 days - requires attention",
    )


RULES: tuple[Rule, ...] = (
    _rule_velocity,
    _rule_stagnation,
    _rule_health_drop,
    _rule_risk_spike,
)


# ---------------------------------------------------------------------------
# Public: detection
# ---------------------------------------------------------------------------

def _count_new_risks(db: Session, project_id: int, now: datetime) -> int:
    cutoff = now - timedelta(days=_RISK_WINDOW_DAYS)
    return (
        db.query(func.count(Risk.id))
        .filter(Risk.project_id == project_id, Risk.created_at >= cutoff)
        .scalar()
        or 0
    )


def detect_project_anomalies(
    db: Session, project: Project, now: Optional[datetime] = None
) -> list[AnomalyResult]:
    now = resolve_now(now)
    health = health_history(db, project.id, limit=30)
    if len(health) < 2:
        return []

    signals = _Signals(
        project=project,
        health=health,
        patterns=pattern_history(db, project.id, limit=30),
        new_risks=_count_new_risks(db, project.id, now),
    )
    found = []
    for rule in RULES:
        anomaly = rule(signals)
        if anomaly is not None:
            logger.debug("Project %s: %s (%s)", project.id, anomaly.anomaly_type, anomaly.severity)
            found.append(anomaly)
    return found


def detect_anomalies(
    db: Session, project_id: int, now: Optional[datetime] = None
) -> list[AnomalyResult]:
    """Missing project → empty list."""
    project = find_project(db, project_id)
    if project is None:
        return []
    return detect_project_anomalies(db, project, now)


def detect_all_anomalies(db: Session, now: Optional[datetime] = None) -> list[AnomalyResult]:
    now = resolve_now(now)
    results: list[AnomalyResult] = []
    for project in active_projects(db):
        results.extend(detect_project_anomalies(db, project, now))
    logger.info("Detected %d anomaly(ies)", len(results))
    return results


# ---------------------------------------------------------------------------
# Public: persistence
# ---------------------------------------------------------------------------

def _open_anomaly_exists(db: Session, project_id: int, anomaly_type: str) -> bool:
    return (
        db.query(Anomaly.id)
        .filter(
            Anomaly.project_id == project_id,
            Anomaly.anomaly_type == anomaly_type,
            Anomaly.resolved.is_(False),
        )
        .first()
        is not None
    )


def save_anomaly(
    db: Session, anomaly: AnomalyResult, now: Optional[datetime] = None
) -> Optional[Anomaly]:
    """
    Insert unless an unresolved anomaly of the same (project, type) exists.
    Returns the new row, or None when skipped.
    """
    if _open_anomaly_exists(db, anomaly.project_id, anomaly.anomaly_type):
        logger.debug("Skipping duplicate %s for project %s", anomaly.anomaly_type, anomaly.project_id)
        return None

    row = Anomaly(
        project_id=anomaly.project_id,
        anomaly_type=anomaly.anomaly_type,
        severity=anomaly.severity,
        metric_name=anomaly.metric_name,
        baseline_value=anomaly.baseline_value,
        current_value=anomaly.current_value,
        deviation_percent=anomaly.deviation_percent,
        description=anomaly.description,
        is_positive=anomaly.is_positive,
        resolved=False,
        detected_at=resolve_now(now),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def resolve_anomaly(db: Session, anomaly_id: int, now: Optional[datetime] = None) -> Anomaly:
    row = db.get(Anomaly, anomaly_id)
    if row is None:
        raise AnomalyNotFoundError(anomaly_id)
    if not row.resolved:
        row.resolved = True
        row.resolved_at = resolve_now(now)
        db.commit()
        db.refresh(row)
    return row


def list_open_anomalies(db: Session, limit: int = 50) -> list[Anomaly]:
    return (
        db.query(Anomaly)
        .filter(Anomaly.resolved.is_(False))
        .order_by(Anomaly.detected_at.desc(), Anomaly.id.desc())
        .limit(limit)
        .all()
    )
