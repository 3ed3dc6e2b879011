from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class DailyFocusUpdate(BaseModel):
    priorities: list[str] = Field(
        ..., max_length=3, description="Up to three priorities for the day.",
        examples=[["Signer le contrat", "Revue produit", ""]],
    )
    critical_risk: str = ""
    decision_needed: str = ""
    ignore_today: str = ""


class DailyFocusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    day: date
    priorities: list[str]
    critical_risk: str
    decision_needed: str
    ignore_today: str
    updated_at: Optional[datetime] = None
