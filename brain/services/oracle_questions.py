"""
Strategic questions: one to three open prompts for the week.

Candidates, in fixed order; the first three present are kept:
  1. oldest pending decision
  2. most stagnant project (latest analysis ≥ 14 days without activity)
  3. portfolio dispersion (≥ 3 active projects)
  4. quick win prompt (always present)
  5. pause prompt for the lowest-cash-impact project when its health < 60

Questions ask; they never prescribe.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from brain.core.clock import resolve_now, week_bounds, whole_days_between
from brain.models.decision import Decision, DecisionStatus
from brain.models.oracle import OracleQuestion
from brain.models.pattern_analysis import PatternAnalysis
from brain.models.project import Project
from brain.services.health import latest_health
from brain.services.patterns import latest_patterns
from brain.services.projects import active_projects, find_project
from brain.services.recommendations import fmt_number

logger = logging.getLogger("brain.oracle.questions")

MAX_QUESTIONS = 3
STAGNATION_DAYS = 14
DISPERSION_PROJECTS = 3


@dataclass
class StrategicQuestion:
    question: str
    context: str
    why_now: str
    question_type: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None


def _pending_decision_question(db: Session, now: datetime) -> Optional[StrategicQuestion]:
    oldest = (
        db.query(Decision)
        .filter(Decision.status == DecisionStatus.pending)
        .order_by(Decision.created_at.asc(), Decision.id.asc())
        .first()
    )
    if oldest is None:
        return None
    days = whole_days_between(now, oldest.created_at)
    project = find_project(db, oldest.project_id) if oldest.project_id is not None else None
    return StrategicQuestion(
        question=f'"{oldest.title}" attend depuis {days} jours. Qu\'est-ce qui te retient ?',
        context=f"Décision sur {project.name if project is not None else 'projet'}",
        why_now=f"{days} jours sans résolution. Clarté aide mouvement.",
        related_entity_type="decision",
        related_entity_id=oldest.id,
        question_type="decision",
    )


def _stagnation_question(db: Session) -> Optional[StrategicQuestion]:
    stagnant: list[PatternAnalysis] = [
        p for p in latest_patterns(db) if p.last_activity_days >= STAGNATION_DAYS
    ]
    if not stagnant:
        return None
    pattern = max(stagnant, key=lambda p: p.last_activity_days)
    project = find_project(db, pattern.project_id)
    name = project.name if project is not None else "Un projet"
    return StrategicQuestion(
        question=(
            f"{name} sans mouvement depuis {pattern.last_activity_days} jours. "
            "Silence stratégique ou oubli ?"
        ),
        context="Pas d'activité récente sur ce projet",
        why_now="Clarifier intention aide allocation attention",
        related_entity_type="project",
        related_entity_id=pattern.project_id,
        question_type="reflection",
    )


def _dispersion_question(projects: list[Project]) -> Optional[StrategicQuestion]:
    count = len(projects)
    if count < DISPERSION_PROJECTS:
        return None
    return StrategicQuestion(
        question=(
            f"{count} projets actifs. Si tu devais concentrer 80% énergie sur 1 seul, "
            "lequel et pourquoi ?"
        ),
        context="Attention potentiellement dispersée",
        why_now="Concentration = accélération. Clarifier priorité ultime.",
        related_entity_type="portfolio",
        question_type="priority",
    )


def _quick_win_question() -> StrategicQuestion:
    return StrategicQuestion(
        question="Quel quick win (2-3 jours max) générerait le plus de momentum cette semaine ?",
        context="Opportunité petites victoires rapides",
        why_now="Quick wins créent élan psychologique positif",
        question_type="strategy",
    )


def _pause_question(db: Session, projects: list[Project]) -> Optional[StrategicQuestion]:
    if not projects:
        return None
    project = min(projects, key=lambda p: float(p.cash_impact_score or 0))
    health = latest_health(db, project.id)
    if health is None or health.overall_score >= 60:
        return None
    return StrategicQuestion(
        question=f"{project.name} (cash impact {fmt_number(project.cash_impact_score)}/10) mérite-t-il pause stratégique ?",
        context="Faible impact + health modérée",
        why_now="Libérer ressources pour moteurs prioritaires",
        related_entity_type="project",
        related_entity_id=project.id,
        question_type="strategy",
    )


def generate_strategic_questions(
    db: Session, now: Optional[datetime] = None
) -> list[StrategicQuestion]:
    now = resolve_now(now)
    projects = active_projects(db)
    candidates = [
        _pending_decision_question(db, now),
        _stagnation_question(db),
        _dispersion_question(projects),
        _quick_win_question(),
        _pause_question(db, projects),
    ]
    questions = [q for q in candidates if q is not None][:MAX_QUESTIONS]
    logger.info("Generated %d strategic question(s)", len(questions))
    return questions


def save_strategic_questions(
    db: Session, questions: list[StrategicQuestion], now: Optional[datetime] = None
) -> list[OracleQuestion]:
    week_start, _ = week_bounds(resolve_now(now).date())
    db.query(OracleQuestion).filter(OracleQuestion.week_start_date == week_start).delete(
        synchronize_session=False
    )
    rows = [
        OracleQuestion(
            week_start_date=week_start,
            question=q.question,
            context=q.context,
            why_now=q.why_now,
            related_entity_type=q.related_entity_type,
            related_entity_id=q.related_entity_id,
            question_type=q.question_type,
        )
        for q in questions
    ]
    db.add_all(rows)
    db.commit()
    return rows


def questions_for_week(db: Session, now: Optional[datetime] = None) -> list[OracleQuestion]:
    week_start, _ = week_bounds(resolve_now(now).date())
    return (
        db.query(OracleQuestion)
        .filter(OracleQuestion.week_start_date == week_start)
        .order_by(OracleQuestion.id)
        .all()
    )
