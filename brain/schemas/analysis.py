from datetime import date, datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class PatternResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    project_id: int
    analysis_date: Optional[datetime] = None
    velocity_7d: float
    velocity_30d: float
    velocity_trend: str
    blockers_count: int
    blockers_recurring: list[str] = []
    decisions_velocity: int
    last_activity_days: int
    momentum_score: float


class PatternListResponse(BaseModel):
    patterns: list[PatternResponse]


class ProjectHealthResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    project_id: int
    score_date: Optional[date] = None
    overall_score: float
    completion_score: float
    velocity_score: float
    risk_score: float
    cash_impact_score: float
    decision_quality_score: float
    momentum_score: float
    grade: str
    factors_breakdown: dict[str, Any] = {}


class PortfolioHealthResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    score_date: Optional[date] = None
    overall_score: float
    projects_count: int
    projects_healthy: int
    projects_warning: int
    projects_critical: int
    trend_7d: float
    trend_30d: float
    top_concern: Optional[str] = None
    top_opportunity: Optional[str] = None


class HealthOverviewResponse(BaseModel):
    portfolio: Optional[PortfolioHealthResponse]
    projects: list[ProjectHealthResponse]


class AnomalyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    project_id: int
    anomaly_type: str
    severity: str
    metric_name: str
    baseline_value: float
    current_value: float
    deviation_percent: float
    description: str
    is_positive: bool = False
    resolved: bool = False
    detected_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None


class AnomalyListResponse(BaseModel):
    anomalies: list[AnomalyResponse]
