"""
Playbook matcher.

A project's situation raises up to four flags; every raised flag whose
keyword appears in a playbook's text (name, description, rules) adds 25
points. Playbooks scoring below 50 are dropped; the rest come best first.

  stagnation   trend stagnant or > 14 days without activity
  risk         latest health risk_score < 50, or project risk_level high
  technique    main_blocker mentions css / technique
  ressource    latest health < 60 and cash impact > 7
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from brain.models.health import HealthScore
from brain.models.pattern_analysis import PatternAnalysis
from brain.models.playbook import Playbook
from brain.models.project import Project
from brain.models.recommendation import Recommendation
from brain.services.health import latest_health
from brain.services.patterns import latest_pattern
from brain.services.projects import get_project
from brain.services.recommendations import RecommendationDraft, save_recommendation

logger = logging.getLogger("brain.playbooks")

POINTS_PER_FLAG = 25
MIN_MATCH_SCORE = 50


@dataclass
class PlaybookMatch:
    playbook_id: int
    playbook_name: str
    match_score: int
    application_context: str
    relevant_rules: list[str] = field(default_factory=list)
    suggested_adaptations: list[str] = field(default_factory=list)


def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def situation_flags(
    project: Project, health: Optional[HealthScore], pattern: Optional[PatternAnalysis]
) -> dict[str, bool]:
    blocker = (project.main_blocker or "").lower()
    return {
        "stagnation": pattern is not None and (
            pattern.velocity_trend == "stagnant" or pattern.last_activity_days > 14
        ),
        "risk": (health is not None and health.risk_score < 50)
                or _ev(project.risk_level) == "high",
        "technique": "css" in blocker or "technique" in blocker,
        "ressource": health is not None
                     and health.overall_score < 60
                     and float(project.cash_impact_score or 0) > 7,
    }


def _playbook_text(playbook: Playbook) -> str:
    rules = " ".join(str(r) for r in (playbook.rules or []))
    return f"{playbook.name} {playbook.description or ''} {rules}".lower()


def score_playbook(
    playbook: Playbook, project: Project, flags: dict[str, bool]
) -> Optional[PlaybookMatch]:
    text = _playbook_text(playbook)
    score = sum(POINTS_PER_FLAG for keyword, raised in flags.items() if raised and keyword in text)
    if score == 0:
        return None

    reasons = []
    if flags["stagnation"]:
        reasons.append("projet en stagnation")
    if flags["risk"]:
        reasons.append("niveau de risque élevé")
    if flags["technique"]:
        reasons.append("blockers techniques")
    if flags["ressource"]:
        reasons.append("besoin ressources")

    adaptations = ["Adapter timeline selon contexte projet"]
    if float(project.completion_percentage or 0) > 50:
        adaptations.append("Focus sur finition plutôt que foundation")

    return PlaybookMatch(
        playbook_id=playbook.id,
        playbook_name=playbook.name,
        match_score=min(100, score),
        application_context=f"Applicable à {project.name} car: {', '.join(reasons)}",
        relevant_rules=[str(r) for r in (playbook.rules or [])[:3]],
        suggested_adaptations=adaptations,
    )


def match_playbooks_to_situation(db: Session, project_id: int) -> list[PlaybookMatch]:
    """Raises ProjectNotFoundError if the project does not exist."""
    project = get_project(db, project_id)
    flags = situation_flags(project, latest_health(db, project_id), latest_pattern(db, project_id))

    playbooks = db.query(Playbook).filter(Playbook.active.is_(True)).order_by(Playbook.id).all()
    matches = []
    for playbook in playbooks:
        match = score_playbook(playbook, project, flags)
        if match is not None and match.match_score >= MIN_MATCH_SCORE:
            matches.append(match)

    matches.sort(key=lambda m: m.match_score, reverse=True)
    logger.debug("Project %s matched %d playbook(s)", project_id, len(matches))
    return matches


def save_playbook_recommendation(
    db: Session, match: PlaybookMatch, project_id: int
) -> Recommendation:
    return save_recommendation(db, RecommendationDraft(
        category="decision",
        priority=3,
        title=f"Appliquer playbook: {match.playbook_name}",
        description=match.application_context,
        rationale=(
            f"Match score: {match.match_score}/100. "
            f"Règles pertinentes: {', '.join(match.relevant_rules)}"
        ),
        expected_impact="high" if match.match_score > 80 else "medium",
        estimated_effort="moderate",
        target_entity_type="project",
        target_entity_id=project_id,
        actionable_steps=list(match.suggested_adaptations),
        related_playbook_id=match.playbook_id,
        confidence_score=match.match_score,
    ))
