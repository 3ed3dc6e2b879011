"""
Recommendations router.

GET /recommendations/suggestions                        : ranked actions
PUT /recommendations/{recommendation_id}                : lifecycle update
GET /recommendations/projects/{project_id}/playbooks    : matching playbooks
GET /recommendations/projects/{project_id}/decision-support
"""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from brain.core.errors import DataStoreError
from brain.db.base import get_db
from brain.schemas.common import NOT_FOUND, STORE_ERROR
from brain.schemas.recommendations import (
    DecisionSupportListResponse,
    DecisionSupportResponse,
    PlaybookMatchListResponse,
    PlaybookMatchResponse,
    RecommendationListResponse,
    RecommendationResponse,
    RecommendationUpdateRequest,
)
from brain.services.decision_support import generate_decision_support, save_decision_support
from brain.services.playbooks import match_playbooks_to_situation, save_playbook_recommendation
from brain.services.recommendations import (
    generate_smart_suggestions,
    list_active_recommendations,
    save_recommendation,
    update_recommendation_status,
)

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


@router.get(
    "/suggestions",
    response_model=RecommendationListResponse,
    summary="Top prioritized recommendations",
    responses=STORE_ERROR,
)
def suggestions(
    refresh: bool = Query(
        default=False,
        description="Regenerate from the latest health, patterns and predictions and store them.",
    ),
    db: Session = Depends(get_db),
):
    """
    Recommendations are ranked by ascending `priority` (1 = most urgent).
    Without `refresh`, the active stored recommendations are returned.
    """
    if not refresh:
        return RecommendationListResponse(
            recommendations=[
                RecommendationResponse.model_validate(r) for r in list_active_recommendations(db)
            ]
        )
    try:
        rows = [save_recommendation(db, d) for d in generate_smart_suggestions(db)]
    except SQLAlchemyError as exc:
        raise DataStoreError(message=str(exc), operation="generate_suggestions") from exc
    return RecommendationListResponse(
        recommendations=[RecommendationResponse.model_validate(r) for r in rows]
    )


@router.put(
    "/{recommendation_id}",
    response_model=RecommendationResponse,
    summary="Accept, reject or complete a recommendation",
    responses=NOT_FOUND,
)
def update(recommendation_id: int, payload: RecommendationUpdateRequest, db: Session = Depends(get_db)):
    """
    Sets the timestamp matching the new status. Accepting or rejecting
    also records a feedback entry.
    """
    row = update_recommendation_status(
        db,
        recommendation_id,
        status=payload.status,
        rejection_reason=payload.rejection_reason,
        outcome_notes=payload.outcome_notes,
        effectiveness_score=payload.effectiveness_score,
    )
    return RecommendationResponse.model_validate(row)


@router.get(
    "/projects/{project_id}/playbooks",
    response_model=PlaybookMatchListResponse,
    summary="Playbooks relevant to a project's situation",
    responses=NOT_FOUND,
)
def playbooks(
    project_id: int,
    save: bool = Query(default=False, description="Store each match as a recommendation."),
    db: Session = Depends(get_db),
):
    """Matches scoring below 50/100 are dropped; the rest come best first."""
    matches = match_playbooks_to_situation(db, project_id)
    if save:
        for match in matches:
            save_playbook_recommendation(db, match, project_id)
    return PlaybookMatchListResponse(
        project_id=project_id,
        matches=[PlaybookMatchResponse(**asdict(m)) for m in matches],
    )


@router.get(
    "/projects/{project_id}/decision-support",
    response_model=DecisionSupportListResponse,
    summary="Option sheets for pace and blocker decisions",
    responses=NOT_FOUND,
)
def decision_support(
    project_id: int,
    save: bool = Query(default=False, description="Store each sheet as a recommendation."),
    db: Session = Depends(get_db),
):
    """
    - **Pace** (accelerate / maintain / pause) once the project has a health
      score and a pattern analysis.
    - **Blocker** (resolve / work around / escalate) while a main blocker is set.
    """
    supports = generate_decision_support(db, project_id)
    if save:
        for support in supports:
            save_decision_support(db, support, project_id)
    return DecisionSupportListResponse(
        project_id=project_id,
        supports=[DecisionSupportResponse(**asdict(s)) for s in supports],
    )
