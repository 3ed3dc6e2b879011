"""
Oracle router: the weekly narrative layer.

GET /oracle/trajectories
GET /oracle/questions
GET /oracle/summary     : never answers 500; degrades to a placeholder
"""
from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from brain.core.errors import DataStoreError
from brain.db.base import get_db
from brain.schemas.common import STORE_ERROR
from brain.schemas.oracle import (
    QuestionListResponse,
    QuestionResponse,
    TrajectoryListResponse,
    TrajectoryResponse,
    WeeklySummaryEnvelope,
    WeeklySummaryResponse,
)
from brain.services.oracle_questions import (
    generate_strategic_questions,
    questions_for_week,
    save_strategic_questions,
)
from brain.services.oracle_summary import (
    TONE,
    generate_weekly_summary,
    placeholder_summary,
    save_weekly_summary,
    summary_for_week,
)
from brain.services.oracle_trajectories import (
    generate_weekly_trajectories,
    save_weekly_trajectories,
    trajectories_for_week,
)

logger = logging.getLogger("brain.api.oracle")

router = APIRouter(prefix="/oracle", tags=["oracle"])


@router.get(
    "/trajectories",
    response_model=TrajectoryListResponse,
    summary="Three strategic scenarios for the week",
    responses=STORE_ERROR,
)
def trajectories(
    refresh: bool = Query(default=False, description="Regenerate and replace this week's rows."),
    db: Session = Depends(get_db),
):
    """Concentration, balance, then unblocking or opportunity."""
    if not refresh:
        return TrajectoryListResponse(
            trajectories=[TrajectoryResponse.model_validate(t) for t in trajectories_for_week(db)]
        )
    try:
        generated = generate_weekly_trajectories(db)
        save_weekly_trajectories(db, generated)
    except SQLAlchemyError as exc:
        raise DataStoreError(message=str(exc), operation="generate_trajectories") from exc
    return TrajectoryListResponse(trajectories=[TrajectoryResponse(**asdict(t)) for t in generated])


@router.get(
    "/questions",
    response_model=QuestionListResponse,
    summary="One to three reflective questions",
    responses=STORE_ERROR,
)
def questions(
    refresh: bool = Query(default=False, description="Regenerate and replace this week's rows."),
    db: Session = Depends(get_db),
):
    if not refresh:
        return QuestionListResponse(
            questions=[QuestionResponse.model_validate(q) for q in questions_for_week(db)]
        )
    try:
        generated = generate_strategic_questions(db)
        save_strategic_questions(db, generated)
    except SQLAlchemyError as exc:
        raise DataStoreError(message=str(exc), operation="generate_questions") from exc
    return QuestionListResponse(questions=[QuestionResponse(**asdict(q)) for q in generated])


@router.get(
    "/summary",
    response_model=WeeklySummaryEnvelope,
    summary="Calm weekly digest",
)
def summary(
    refresh: bool = Query(default=False, description="Regenerate and upsert this week's summary."),
    db: Session = Depends(get_db),
):
    """
    Always HTTP 200. When the digest cannot be computed or read, a
    placeholder summary is returned with `degraded: true` so dashboards
    keep rendering and do not retry in a loop.
    """
    try:
        if refresh:
            generated = generate_weekly_summary(db)
            save_weekly_summary(db, generated)
            return WeeklySummaryEnvelope(
                summary=WeeklySummaryResponse(**asdict(generated)),
                tone=TONE,
                message="Résumé hebdomadaire généré",
            )
        stored = summary_for_week(db)
        return WeeklySummaryEnvelope(
            summary=WeeklySummaryResponse.model_validate(stored) if stored else None,
            tone=TONE,
        )
    except Exception:
        logger.exception("Weekly summary unavailable; serving placeholder")
        db.rollback()
        return WeeklySummaryEnvelope(
            summary=WeeklySummaryResponse(**asdict(placeholder_summary())),
            tone=TONE,
            degraded=True,
            message="Résumé temporairement indisponible",
        )
