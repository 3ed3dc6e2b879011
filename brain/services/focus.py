"""
Daily focus: one editable row per calendar day.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from brain.core.clock import utcnow
from brain.models.daily_focus import DailyFocus

logger = logging.getLogger("brain.focus")

EMPTY_PRIORITIES = ["", "", ""]


def _today(today: Optional[date]) -> date:
    return today if today is not None else utcnow().date()


def get_or_create_today(db: Session, today: Optional[date] = None) -> DailyFocus:
    """Return today's focus, creating a blank one on first access."""
    day = _today(today)
    focus = db.query(DailyFocus).filter(DailyFocus.day == day).first()
    if focus is not None:
        return focus

    focus = DailyFocus(
        day=day,
        priorities=list(EMPTY_PRIORITIES),
        critical_risk="",
        decision_needed="",
        ignore_today="",
    )
    db.add(focus)
    try:
        db.commit()
    except IntegrityError:
        # Another request created today's row between our read and insert.
        db.rollback()
        return db.query(DailyFocus).filter(DailyFocus.day == day).one()
    db.refresh(focus)
    logger.info("Created daily focus for %s", day)
    return focus


def update_today(
    db: Session,
    priorities: list[str],
    critical_risk: str = "",
    decision_needed: str = "",
    ignore_today: str = "",
    today: Optional[date] = None,
) -> DailyFocus:
    focus = get_or_create_today(db, today)
    focus.priorities = list(priorities)
    focus.critical_risk = critical_risk
    focus.decision_needed = decision_needed
    focus.ignore_today = ignore_today
    db.commit()
    db.refresh(focus)
    return focus
