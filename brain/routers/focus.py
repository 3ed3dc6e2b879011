"""
Focus router.

GET /focus/today : today's focus (created blank on first access)
PUT /focus/today : overwrite today's focus
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from brain.db.base import get_db
from brain.schemas.focus import DailyFocusResponse, DailyFocusUpdate
from brain.services.focus import get_or_create_today, update_today

router = APIRouter(prefix="/focus", tags=["focus"])


@router.get("/today", response_model=DailyFocusResponse, summary="Today's focus")
def focus_today(db: Session = Depends(get_db)):
    return DailyFocusResponse.model_validate(get_or_create_today(db))


@router.put("/today", response_model=DailyFocusResponse, summary="Update today's focus")
def update_focus_today(payload: DailyFocusUpdate, db: Session = Depends(get_db)):
    """Priorities are padded to three entries."""
    priorities = (payload.priorities + ["", "", ""])[:3]
    focus = update_today(
        db,
        priorities=priorities,
        critical_risk=payload.critical_risk,
        decision_needed=payload.decision_needed,
        ignore_today=payload.ignore_today,
    )
    return DailyFocusResponse.model_validate(focus)
