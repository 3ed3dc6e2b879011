"""
Weekly trajectories: three calm strategic scenarios for the week.

  1  concentration  highest-momentum project, 70 / 30 focus split,
                    timeline ceil(remaining % / 10) weeks
  2  balance        100 points split evenly across every active project
  3  unblocking     first project (by cash impact) with health < 60, 80 / 20
     or opportunity highest cash-impact project, 70 / 30
                    (exploration 30 / maintenance 70 when no project has
                    positive cash impact)

No active project → no trajectories. Saving replaces the week's rows.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from brain.core.clock import resolve_now, week_bounds
from brain.models.health import HealthScore
from brain.models.oracle import OracleTrajectory
from brain.models.pattern_analysis import PatternAnalysis
from brain.models.project import Project
from brain.services.health import latest_health
from brain.services.patterns import latest_pattern
from brain.services.projects import active_projects
from brain.services.recommendations import fmt_number

logger = logging.getLogger("brain.oracle.trajectories")

OTHERS_KEY = "autres"


@dataclass
class Trajectory:
    trajectory_number: int
    title: str
    context: str
    what_it_means: str
    tradeoffs: str
    timeline_estimate: str
    tone: str
    focus_allocation: dict[str, int] = field(default_factory=dict)
    questions: list[str] = field(default_factory=list)
    confidence_note: Optional[str] = None


@dataclass
class _ProjectView:
    project: Project
    health: Optional[HealthScore]
    pattern: Optional[PatternAnalysis]

    @property
    def momentum(self) -> float:
        return self.pattern.momentum_score if self.pattern is not None else 0

    @property
    def cash(self) -> float:
        return float(self.project.cash_impact_score or 0)


def split_evenly(keys: list[str], total: int = 100) -> dict[str, int]:
    """Integer shares summing to `total`; leftover points go to the first keys."""
    if not keys:
        return {}
    base, leftover = divmod(total, len(keys))
    return {key: base + (1 if i < leftover else 0) for i, key in enumerate(keys)}


def _other_names(views: list[_ProjectView], project: Project) -> str:
    return ", ".join(v.project.name for v in views if v.project.id != project.id)


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

def _concentration(view: _ProjectView, views: list[_ProjectView]) -> Trajectory:
    project = view.project
    momentum = view.momentum or 50
    completion = float(project.completion_percentage or 0)
    weeks = math.ceil((100 - completion) / 10)
    return Trajectory(
        trajectory_number=1,
        title=f"Concentration sur {project.name}",
        context=(
            f"{project.name} montre bon momentum ({round(momentum)}/100). "
            f"Progression actuelle : {fmt_number(completion)}%."
        ),
        what_it_means=(
            f"Si focus 70% sur {project.name} cette semaine, delivery probable dans "
            f"~{weeks} semaines. Les autres projets ralentissent mais restent stables."
        ),
        tradeoffs=(
            f"{_other_names(views, project)} progressent ~30% de vélocité normale."
            if len(views) > 1
            else "Aucun autre projet actif."
        ),
        timeline_estimate=f"{weeks} semaines si concentration maintenue",
        focus_allocation={project.slug: 70, OTHERS_KEY: 30},
        questions=[
            f"{project.name} est-il priorité stratégique immédiate ?",
            "As-tu capacité de concentration intense sur 1 moteur ?",
            f"Cash impact {fmt_number(project.cash_impact_score)}/10 justifie-t-il cette concentration ?",
        ],
        tone="opportunity" if momentum > 70 else "neutral",
        confidence_note="Momentum modéré, timeline peut varier" if momentum < 60 else None,
    )


def _balance(views: list[_ProjectView]) -> Trajectory:
    count = len(views)
    average = sum(float(v.project.completion_percentage or 0) for v in views) / count
    return Trajectory(
        trajectory_number=2,
        title="Équilibre multi-projets",
        context=f"{count} projets actifs. Moyenne completion : {round(average)}%.",
        what_it_means=(
            f"Chaque projet avance ~{round(100 / count)}% de vélocité. "
            "Progression parallèle sans priorité dominante."
        ),
        tradeoffs=(
            "Timeline plus longue sur chaque moteur, mais risques distribués. "
            'Pas de "single point of failure".'
        ),
        timeline_estimate="Variable selon projet (4-8 semaines)",
        focus_allocation=split_evenly([v.project.slug for v in views]),
        questions=[
            "As-tu capacité attention divisée efficacement ?",
            "Quel projet bénéficierait le plus de concentration ?",
            "Équilibre actuel te convient-il ou génère-t-il dispersion ?",
        ],
        tone="neutral",
    )


def _unblocking(view: _ProjectView, views: list[_ProjectView]) -> Trajectory:
    project = view.project
    blocker = project.main_blocker or "Blocage non spécifié"
    health = view.health.overall_score if view.health is not None else 50
    return Trajectory(
        trajectory_number=3,
        title=f"Déblocage {project.name}",
        context=(
            f'{project.name} demande attention. Blocker actuel: "{blocker}". '
            f"Health actuelle: {round(health)}/100."
        ),
        what_it_means=(
            "Sprint déblocage ciblé cette semaine. Si blocker résolu, progression reprend "
            "rapidement. Autres projets en mode maintenance."
        ),
        tradeoffs=(
            f"{_other_names(views, project)} en pause 1 semaine, reprennent après déblocage."
            if len(views) > 1
            else "Aucun autre projet actif."
        ),
        timeline_estimate="1 semaine déblocage + reprise normale",
        focus_allocation={project.slug: 80, OTHERS_KEY: 20},
        questions=[
            f'Blocker "{blocker}" peut-il être résolu rapidement ?',
            "Quick win déblocage libère-t-il valeur significative ?",
            f"Vaut-il mieux débloquer maintenant ou laisser {project.name} en silence stratégique ?",
        ],
        tone="gentle_attention",
        confidence_note="Succès dépend de résolution effective du blocker",
    )


def _opportunity(views: list[_ProjectView]) -> Trajectory:
    best: Optional[_ProjectView] = None
    for view in views:
        if view.cash > (best.cash if best is not None else 0):
            best = view

    if best is None:
        return Trajectory(
            trajectory_number=3,
            title="Exploration nouvelle opportunité",
            context="Portefeuille stable. Fenêtre pour exploration.",
            what_it_means="Moment propice pour lancer nouveau moteur ou expérimentation.",
            tradeoffs="Capacité attention disponible pour innovation.",
            timeline_estimate="Variable selon nature exploration",
            focus_allocation={"exploration": 30, "maintenance": 70},
            questions=[
                "Nouvelle idée mérite prototypage rapide ?",
                "Quel quick win pourrait générer momentum ?",
                "Temps pour réflexion stratégique ?",
            ],
            tone="opportunity",
        )

    project = best.project
    return Trajectory(
        trajectory_number=3,
        title=f"Accélération {project.name}",
        context=f"{project.name} a cash impact élevé ({fmt_number(best.cash)}/10).",
        what_it_means="Accélération ciblée sur ROI maximum. Delivery rapide = impact business rapide.",
        tradeoffs="Autres projets ralentis temporairement.",
        timeline_estimate="2-3 semaines delivery si focus",
        focus_allocation={project.slug: 70, OTHERS_KEY: 30},
        questions=[
            "ROI business justifie-t-il priorisation ?",
            f"{project.name} delivery rapide débloque-t-il autres opportunités ?",
            "Momentum market favorable en ce moment ?",
        ],
        tone="opportunity",
    )


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def generate_weekly_trajectories(db: Session) -> list[Trajectory]:
    projects = sorted(
        active_projects(db), key=lambda p: float(p.cash_impact_score or 0), reverse=True
    )
    if not projects:
        return []

    views = [
        _ProjectView(project=p, health=latest_health(db, p.id), pattern=latest_pattern(db, p.id))
        for p in projects
    ]
    leader = max(views, key=lambda v: v.momentum)
    needs_attention = next(
        (v for v in views if v.health is not None and v.health.overall_score < 60), None
    )

    trajectories = [
        _concentration(leader, views),
        _balance(views),
        _unblocking(needs_attention, views) if needs_attention is not None else _opportunity(views),
    ]
    logger.info("Generated %d trajectories over %d project(s)", len(trajectories), len(views))
    return trajectories


def save_weekly_trajectories(
    db: Session, trajectories: list[Trajectory], now: Optional[datetime] = None
) -> list[OracleTrajectory]:
    week_start, _ = week_bounds(resolve_now(now).date())
    db.query(OracleTrajectory).filter(OracleTrajectory.week_start_date == week_start).delete(
        synchronize_session=False
    )
    rows = [
        OracleTrajectory(
            week_start_date=week_start,
            trajectory_number=t.trajectory_number,
            title=t.title,
            context=t.context,
            what_it_means=t.what_it_means,
            tradeoffs=t.tradeoffs,
            timeline_estimate=t.timeline_estimate,
            focus_allocation=dict(t.focus_allocation),
            questions=list(t.questions),
            tone=t.tone,
            confidence_note=t.confidence_note,
        )
        for t in trajectories
    ]
    db.add_all(rows)
    db.commit()
    return rows


def trajectories_for_week(db: Session, now: Optional[datetime] = None) -> list[OracleTrajectory]:
    week_start, _ = week_bounds(resolve_now(now).date())
    return (
        db.query(OracleTrajectory)
        .filter(OracleTrajectory.week_start_date == week_start)
        .order_by(OracleTrajectory.trajectory_number)
        .all()
    )
