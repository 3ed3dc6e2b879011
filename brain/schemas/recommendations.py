from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from brain.models.recommendation import RecommendationStatus


class RecommendationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    category: str
    priority: int
    title: str
    description: str
    rationale: str
    expected_impact: str
    estimated_effort: str
    time_sensitive: bool
    deadline_date: Optional[date] = None
    target_entity_type: Optional[str] = None
    target_entity_id: Optional[int] = None
    actionable_steps: list[str] = []
    related_playbook_id: Optional[int] = None
    confidence_score: float
    status: RecommendationStatus = RecommendationStatus.active
    accepted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    completed_at: Optional[datetime] = None
    outcome_notes: Optional[str] = None
    effectiveness_score: Optional[int] = None
    created_at: Optional[datetime] = None


class RecommendationListResponse(BaseModel):
    recommendations: list[RecommendationResponse]


class RecommendationUpdateRequest(BaseModel):
    status: RecommendationStatus = Field(
        ..., description="Target lifecycle state.", examples=["accepted"]
    )
    rejection_reason: Optional[str] = Field(default=None, max_length=2000)
    outcome_notes: Optional[str] = Field(default=None, max_length=5000)
    effectiveness_score: Optional[int] = Field(
        default=None, ge=1, le=10, description="Post-hoc rating, 1 (useless) to 10."
    )


class PlaybookMatchResponse(BaseModel):
    playbook_id: int
    playbook_name: str
    match_score: int
    application_context: str
    relevant_rules: list[str] = []
    suggested_adaptations: list[str] = []


class PlaybookMatchListResponse(BaseModel):
    project_id: int
    matches: list[PlaybookMatchResponse]


class DecisionOptionResponse(BaseModel):
    option: str
    risk_level: str
    estimated_impact: str
    pros: list[str] = []
    cons: list[str] = []


class DecisionSupportResponse(BaseModel):
    decision_title: str
    context: str
    recommendation: str
    options: list[DecisionOptionResponse]


class DecisionSupportListResponse(BaseModel):
    project_id: int
    supports: list[DecisionSupportResponse]
