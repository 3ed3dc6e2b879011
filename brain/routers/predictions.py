"""
Predictions router.

GET /predictions/risks       : active risk predictions
GET /predictions/bottlenecks : active bottleneck predictions
GET /predictions/completion  : completion date forecasts
"""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from brain.core.errors import DataStoreError
from brain.db.base import get_db
from brain.schemas.common import STORE_ERROR
from brain.schemas.predictions import (
    BottleneckListResponse,
    BottleneckResponse,
    CompletionForecastListResponse,
    CompletionForecastResponse,
    RiskPredictionListResponse,
    RiskPredictionResponse,
)
from brain.services.bottlenecks import (
    list_active_bottlenecks,
    predict_all_bottlenecks,
    save_bottleneck_predictions,
)
from brain.services.completion import (
    forecast_all_projects_completion,
    latest_forecasts,
    save_completion_forecast,
)
from brain.services.projects import active_projects
from brain.services.risk_prediction import (
    list_active_risk_predictions,
    predict_all_projects_risks,
    save_risk_predictions,
)

router = APIRouter(prefix="/predictions", tags=["predictions"])

REFRESH = Query(
    default=False,
    description="Recompute from the latest analyses and persist before answering.",
)


@router.get(
    "/risks",
    response_model=RiskPredictionListResponse,
    summary="Predicted risks per project",
    responses=STORE_ERROR,
)
def risks(refresh: bool = REFRESH, db: Session = Depends(get_db)):
    """
    Four independent rules (technical, administrative, dispersion,
    financial) read the latest pattern and health of each active project.

    A refresh expires the previous active predictions of every active
    project, including those that yield none this time, before storing the
    new batch.
    """
    if refresh:
        try:
            predictions = predict_all_projects_risks(db)
            save_risk_predictions(db, predictions, [p.id for p in active_projects(db)])
        except SQLAlchemyError as exc:
            raise DataStoreError(message=str(exc), operation="predict_risks") from exc
        return RiskPredictionListResponse(
            predictions=[RiskPredictionResponse(**asdict(p)) for p in predictions]
        )
    return RiskPredictionListResponse(
        predictions=[RiskPredictionResponse.model_validate(r) for r in list_active_risk_predictions(db)]
    )


@router.get(
    "/bottlenecks",
    response_model=BottleneckListResponse,
    summary="Predicted bottlenecks per project",
    responses=STORE_ERROR,
)
def bottlenecks(refresh: bool = REFRESH, db: Session = Depends(get_db)):
    """Pending decisions, resource strain and recurring technical debt."""
    if refresh:
        try:
            found = predict_all_bottlenecks(db)
            save_bottleneck_predictions(db, found, [p.id for p in active_projects(db)])
        except SQLAlchemyError as exc:
            raise DataStoreError(message=str(exc), operation="predict_bottlenecks") from exc
        return BottleneckListResponse(bottlenecks=[BottleneckResponse(**asdict(b)) for b in found])
    return BottleneckListResponse(
        bottlenecks=[BottleneckResponse.model_validate(b) for b in list_active_bottlenecks(db)]
    )


@router.get(
    "/completion",
    response_model=CompletionForecastListResponse,
    summary="Optimistic / realistic / pessimistic completion dates",
    responses=STORE_ERROR,
)
def completion(refresh: bool = REFRESH, db: Session = Depends(get_db)):
    """
    Projects already complete, never analyzed, or without positive velocity
    get no forecast. A refresh upserts one forecast per project per day.
    """
    if refresh:
        try:
            forecasts = forecast_all_projects_completion(db)
            for f in forecasts:
                save_completion_forecast(db, f)
        except SQLAlchemyError as exc:
            raise DataStoreError(message=str(exc), operation="forecast_completion") from exc
        return CompletionForecastListResponse(
            forecasts=[CompletionForecastResponse(**asdict(f)) for f in forecasts]
        )
    return CompletionForecastListResponse(
        forecasts=[CompletionForecastResponse.model_validate(f) for f in latest_forecasts(db, limit=20)]
    )
