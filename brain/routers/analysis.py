"""
Analysis router.

GET  /analysis/patterns                    : latest pattern analysis per project
GET  /analysis/health                      : portfolio + per-project health
GET  /analysis/health/projects/{project_id}: live health of one project
GET  /analysis/anomalies                   : unresolved anomalies
POST /analysis/anomalies/{anomaly_id}/resolve
"""
from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from brain.core.errors import DataStoreError
from brain.db.base import get_db
from brain.schemas.analysis import (
    AnomalyListResponse,
    AnomalyResponse,
    HealthOverviewResponse,
    PatternListResponse,
    PatternResponse,
    PortfolioHealthResponse,
    ProjectHealthResponse,
)
from brain.schemas.common import NOT_FOUND, STORE_ERROR
from brain.services.anomalies import (
    detect_all_anomalies,
    list_open_anomalies,
    resolve_anomaly,
    save_anomaly,
)
from brain.services.health import (
    calculate_portfolio_health,
    calculate_project_health,
    latest_health,
    latest_portfolio_health,
    save_health_score,
    save_portfolio_health,
)
from brain.services.patterns import (
    analyze_all_projects_patterns,
    latest_patterns,
    save_pattern_analysis,
)
from brain.services.projects import active_projects

logger = logging.getLogger("brain.api.analysis")

router = APIRouter(prefix="/analysis", tags=["analysis"])

REFRESH = Query(
    default=False,
    description="Recompute from live data and persist before answering.",
)


# ---------------------------------------------------------------------------
# GET /analysis/patterns
# ---------------------------------------------------------------------------

@router.get(
    "/patterns",
    response_model=PatternListResponse,
    summary="Velocity, trend and momentum per project",
    responses=STORE_ERROR,
)
def patterns(refresh: bool = REFRESH, db: Session = Depends(get_db)):
    """
    Without `refresh`, returns the newest stored analysis of each project.

    With `refresh=true`, analyzes every active project, appends one
    `pattern_analyses` row each and returns the fresh results.
    """
    if not refresh:
        return PatternListResponse(
            patterns=[PatternResponse.model_validate(p) for p in latest_patterns(db)]
        )
    try:
        rows = [save_pattern_analysis(db, r) for r in analyze_all_projects_patterns(db)]
    except SQLAlchemyError as exc:
        raise DataStoreError(message=str(exc), operation="analyze_patterns") from exc
    return PatternListResponse(patterns=[PatternResponse.model_validate(r) for r in rows])


# ---------------------------------------------------------------------------
# GET /analysis/health
# ---------------------------------------------------------------------------

@router.get(
    "/health",
    response_model=HealthOverviewResponse,
    summary="Portfolio and project health scores",
    responses=STORE_ERROR,
)
def health(refresh: bool = REFRESH, db: Session = Depends(get_db)):
    """
    Health is a 0–100 weighted score: completion 30 %, velocity 25 %,
    risk 20 %, cash impact 15 %, decision quality 10 %.

    With `refresh=true` every active project is rescored and today's
    snapshots (project and portfolio) are upserted.
    """
    if not refresh:
        portfolio = latest_portfolio_health(db)
        scores = [latest_health(db, p.id) for p in active_projects(db)]
        return HealthOverviewResponse(
            portfolio=PortfolioHealthResponse.model_validate(portfolio) if portfolio else None,
            projects=[ProjectHealthResponse.model_validate(s) for s in scores if s is not None],
        )
    try:
        portfolio, scores = calculate_portfolio_health(db)
        project_rows = [save_health_score(db, s) for s in scores]
        if portfolio.projects_count:
            save_portfolio_health(db, portfolio)
    except SQLAlchemyError as exc:
        raise DataStoreError(message=str(exc), operation="calculate_health") from exc
    return HealthOverviewResponse(
        portfolio=PortfolioHealthResponse(**asdict(portfolio)),
        projects=[ProjectHealthResponse.model_validate(r) for r in project_rows],
    )


@router.get(
    "/health/projects/{project_id}",
    response_model=ProjectHealthResponse,
    summary="Live health score of one project",
    responses=NOT_FOUND,
)
def project_health(project_id: int, db: Session = Depends(get_db)):
    """Computed on the fly; nothing is persisted. **404** for an unknown project."""
    return ProjectHealthResponse(**asdict(calculate_project_health(db, project_id)))


# ---------------------------------------------------------------------------
# Anomalies
# ---------------------------------------------------------------------------

@router.get(
    "/anomalies",
    response_model=AnomalyListResponse,
    summary="Deviations of projects from their own baseline",
    responses=STORE_ERROR,
)
def anomalies(refresh: bool = REFRESH, db: Session = Depends(get_db)):
    """
    Without `refresh`, lists unresolved anomalies, newest first.

    With `refresh=true`, runs detection for every active project and stores
    each hit unless an unresolved anomaly of the same type is already open
    for that project. All detections are returned, stored or not.
    """
    if not refresh:
        return AnomalyListResponse(
            anomalies=[AnomalyResponse.model_validate(a) for a in list_open_anomalies(db)]
        )
    try:
        detected = detect_all_anomalies(db)
        stored = sum(1 for a in detected if save_anomaly(db, a) is not None)
    except SQLAlchemyError as exc:
        raise DataStoreError(message=str(exc), operation="detect_anomalies") from exc
    logger.info("Anomaly refresh: %d detected, %d stored", len(detected), stored)
    return AnomalyListResponse(anomalies=[AnomalyResponse(**asdict(a)) for a in detected])


@router.post(
    "/anomalies/{anomaly_id}/resolve",
    response_model=AnomalyResponse,
    summary="Mark an anomaly as resolved",
    responses=NOT_FOUND,
)
def resolve(anomaly_id: int, db: Session = Depends(get_db)):
    """Idempotent: resolving twice keeps the first `resolved_at`."""
    return AnomalyResponse.model_validate(resolve_anomaly(db, anomaly_id))
