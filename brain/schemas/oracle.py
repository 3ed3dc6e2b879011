from datetime import date
from typing import Optional
from pydantic import BaseModel, ConfigDict


class TrajectoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    trajectory_number: int
    title: str
    context: str
    what_it_means: str
    tradeoffs: str
    timeline_estimate: str
    focus_allocation: dict[str, int]
    questions: list[str]
    tone: str
    confidence_note: Optional[str] = None


class TrajectoryListResponse(BaseModel):
    trajectories: list[TrajectoryResponse]


class QuestionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    question: str
    context: str
    why_now: str
    question_type: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None


class QuestionListResponse(BaseModel):
    questions: list[QuestionResponse]


class WeeklySummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    week_start_date: date
    week_end_date: date
    overview_narrative: str
    what_advances: str
    needs_attention: str
    decisions_made: str
    full_summary_markdown: str


class WeeklySummaryEnvelope(BaseModel):
    summary: Optional[WeeklySummaryResponse]
    tone: str = "calm"
    degraded: bool = False
    message: Optional[str] = None
