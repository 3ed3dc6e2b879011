from datetime import date, datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class RiskPredictionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    project_id: int
    risk_type: str
    predicted_severity: str
    probability_score: float
    estimated_impact: str
    time_horizon_days: int
    predicted_occurrence_date: date
    confidence_level: float
    factors: dict[str, Any] = {}
    mitigation_suggestions: list[str] = []
    status: str = "active"
    created_at: Optional[datetime] = None


class RiskPredictionListResponse(BaseModel):
    predictions: list[RiskPredictionResponse]


class BottleneckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    project_id: int
    bottleneck_type: str
    bottleneck_description: str
    probability_score: float
    estimated_impact_days: int
    time_horizon_days: int
    predicted_occurrence_date: date
    mitigation_actions: list[str] = []
    priority: str
    status: str = "active"


class BottleneckListResponse(BaseModel):
    bottlenecks: list[BottleneckResponse]


class CompletionForecastResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    project_id: int
    forecast_date: Optional[date] = None
    current_completion: float
    predicted_completion_date: date
    optimistic_date: date
    realistic_date: date
    pessimistic_date: date
    confidence_level: float
    velocity_assumption: float
    factors: dict[str, Any] = {}
    blockers_assumed: int = 0


class CompletionForecastListResponse(BaseModel):
    forecasts: list[CompletionForecastResponse]
