"""
Weekly summary: a calm markdown digest of the current Monday..Sunday week.

Projects fall into:
  advancing        trend accelerating or momentum > 60
  needs attention  > 14 days without activity or health < 60
  stable           neither of the above

A project can be both advancing and in need of attention. Wording stays
calm: the text never uses alarm vocabulary (échec, catastrophe, urgence).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from brain.core.clock import as_utc, resolve_now, week_bounds
from brain.models.decision import Decision
from brain.models.health import HealthScore
from brain.models.oracle import OracleWeeklySummary
from brain.models.pattern_analysis import PatternAnalysis
from brain.models.project import Project
from brain.services.health import latest_health
from brain.services.patterns import latest_pattern
from brain.services.projects import active_projects, find_project
from brain.services.recommendations import fmt_number

logger = logging.getLogger("brain.oracle.summary")

TONE = "calm"

_MONTHS = (
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
)
_MONTHS_SHORT = (
    "janv.", "févr.", "mars", "avr.", "mai", "juin",
    "juil.", "août", "sept.", "oct.", "nov.", "déc.",
)


@dataclass
class WeeklySummary:
    week_start_date: date
    week_end_date: date
    overview_narrative: str
    what_advances: str
    needs_attention: str
    decisions_made: str
    full_summary_markdown: str


@dataclass
class _ProjectView:
    project: Project
    health: Optional[HealthScore]
    pattern: Optional[PatternAnalysis]


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def is_advancing(v: _ProjectView) -> bool:
    return v.pattern is not None and (
        v.pattern.velocity_trend == "accelerating" or v.pattern.momentum_score > 60
    )


def needs_attention(v: _ProjectView) -> bool:
    return (v.pattern is not None and v.pattern.last_activity_days > 14) or (
        v.health is not None and v.health.overall_score < 60
    )


def _plural(count: int, suffix: str) -> str:
    return suffix if count > 1 else ""


# ---------------------------------------------------------------------------
# Narratives
# ---------------------------------------------------------------------------

def _overview(views, advancing, attention, stable) -> str:
    total = len(views)
    average = round(sum(float(v.project.completion_percentage or 0) for v in views) / total)

    parts = []
    if advancing:
        parts.append(f"{len(advancing)} progresse{_plural(len(advancing), 'nt')} bien")
    if attention:
        parts.append(f"{len(attention)} demande{_plural(len(attention), 'nt')} attention")
    if stable:
        parts.append(f"{len(stable)} en rythme stable")

    return (
        f"{total} projet{_plural(total, 's')} en mouvement cette semaine.\n"
        f"{', '.join(parts)}.\n\n"
        f"Completion moyenne : {average}%."
    )


def _advances(advancing: list[_ProjectView]) -> str:
    if not advancing:
        return "Aucun projet en accélération notable."
    return "\n".join(
        f"• {v.project.name} : {fmt_number(v.project.completion_percentage)}% "
        f"(momentum {round(v.pattern.momentum_score) if v.pattern is not None else 50}/100)"
        for v in advancing
    )


def _attention(attention: list[_ProjectView]) -> str:
    if not attention:
        return "Aucun blocage significatif."
    blocks = []
    for v in attention:
        days = v.pattern.last_activity_days if v.pattern is not None else 0
        text = f"• {v.project.name}"
        if days > 14:
            text += f" : {days} jours sans mouvement visible"
        if v.project.has_blocker:
            text += f'\n  Blocker : "{v.project.main_blocker}"'
        if v.pattern is not None and v.pattern.momentum_score > 40:
            text += "\n  Opportunité : Quick win potentiel si déblocage"
        blocks.append(text)
    return "\n\n".join(blocks)


def _decisions(db: Session, decisions: list[Decision]) -> str:
    if not decisions:
        return "Aucune décision formalisée cette semaine."
    blocks = []
    for d in decisions:
        created = as_utc(d.created_at)
        project = find_project(db, d.project_id) if d.project_id is not None else None
        blocks.append(
            f"• {d.title} ({created.day} {_MONTHS_SHORT[created.month - 1]})\n"
            f"  Projet : {project.name if project is not None else 'N/A'}"
        )
    return "\n\n".join(blocks)


def _long_date(day: date, with_year: bool = False) -> str:
    text = f"{day.day} {_MONTHS[day.month - 1]}"
    return f"{text} {day.year}" if with_year else text


def _markdown(
    week_start: date, week_end: date, overview: str, advances: str, attention: str, decisions: str
) -> str:
    return (
        f"# Semaine du {_long_date(week_start)} au {_long_date(week_end, with_year=True)}\n\n"
        f"## Vue d'ensemble\n\n{overview}\n\n---\n\n"
        f"## Ce qui avance\n\n{advances}\n\n---\n\n"
        f"## Ce qui demande attention\n\n{attention}\n\n---\n\n"
        f"## Décisions prises\n\n{decisions}\n\n---\n\n"
        "## Trajectoires possibles\n\n"
        "*Voir section Trajectoires pour les 3 options stratégiques de la semaine.*\n\n---\n\n"
        "## Questions pour toi\n\n"
        "*Voir section Questions Stratégiques pour réflexion.*\n\n---\n\n"
        "*Généré automatiquement par ORACLE • Ton : Calme et accompagnant*\n"
    )


def placeholder_summary(now: Optional[datetime] = None) -> WeeklySummary:
    """The quiet-week digest, also served when a summary cannot be computed."""
    week_start, week_end = week_bounds(resolve_now(now).date())
    return WeeklySummary(
        week_start_date=week_start,
        week_end_date=week_end,
        overview_narrative="Aucun projet actif cette semaine.",
        what_advances="N/A",
        needs_attention="N/A",
        decisions_made="Aucune",
        full_summary_markdown="# Semaine calme\n\nAucune activité significative.",
    )


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def generate_weekly_summary(db: Session, now: Optional[datetime] = None) -> WeeklySummary:
    now = resolve_now(now)
    week_start, week_end = week_bounds(now.date())

    projects = active_projects(db)
    if not projects:
        return placeholder_summary(now)

    views = [
        _ProjectView(project=p, health=latest_health(db, p.id), pattern=latest_pattern(db, p.id))
        for p in projects
    ]
    advancing = [v for v in views if is_advancing(v)]
    attention = [v for v in views if needs_attention(v)]
    stable = [v for v in views if v not in advancing and v not in attention]

    window_start = datetime.combine(week_start, time.min, tzinfo=timezone.utc)
    decisions = (
        db.query(Decision)
        .filter(
            Decision.created_at >= window_start,
            Decision.created_at < window_start + timedelta(days=7),
        )
        .order_by(Decision.created_at.desc())
        .all()
    )

    overview = _overview(views, advancing, attention, stable)
    advances = _advances(advancing)
    attention_text = _attention(attention)
    decisions_text = _decisions(db, decisions)

    logger.info(
        "Weekly summary %s: %d advancing, %d need attention, %d stable",
        week_start, len(advancing), len(attention), len(stable),
    )
    return WeeklySummary(
        week_start_date=week_start,
        week_end_date=week_end,
        overview_narrative=overview,
        what_advances=advances,
        needs_attention=attention_text,
        decisions_made=decisions_text,
        full_summary_markdown=_markdown(
            week_start, week_end, overview, advances, attention_text, decisions_text
        ),
    )


def save_weekly_summary(db: Session, summary: WeeklySummary) -> OracleWeeklySummary:
    row = (
        db.query(OracleWeeklySummary)
        .filter(OracleWeeklySummary.week_start_date == summary.week_start_date)
        .first()
    )
    if row is None:
        row = OracleWeeklySummary(week_start_date=summary.week_start_date)
        db.add(row)
    row.week_end_date = summary.week_end_date
    row.overview_narrative = summary.overview_narrative
    row.what_advances = summary.what_advances
    row.needs_attention = summary.needs_attention
    row.decisions_made = summary.decisions_made
    row.full_summary_markdown = summary.full_summary_markdown
    row.tone_check = TONE
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Concurrent summary upsert for week %s", summary.week_start_date)
    return row


def summary_for_week(db: Session, now: Optional[datetime] = None) -> Optional[OracleWeeklySummary]:
    week_start, _ = week_bounds(resolve_now(now).date())
    return (
        db.query(OracleWeeklySummary)
        .filter(OracleWeeklySummary.week_start_date == week_start)
        .first()
    )
