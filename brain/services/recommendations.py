"""
Recommendation engine: turns scores and predictions into ranked actions.

Generators (per active project, then once for the portfolio)
-------------------------------------------------------------
  focus            latest health < 60          → priority 1 below 50, else 2
  risk_mitigation  each active risk prediction with probability ≥ 60
                                               → priority 1 at ≥ 75, else 3
  opportunity      momentum > 70, health > 60, completion < 90 → priority 2
  resource         health < 55 and cash > 7    → priority 2 (reinforce or pause)
                   health < 50 and cash < 5    → priority 3 (consider pausing)
  portfolio focus  latest portfolio trend_7d < −5 → priority 1

The combined list is stably sorted by ascending priority and cut to
RECOMMENDATIONS_LIMIT.

Lifecycle
---------
  active → accepted | rejected | completed via update_recommendation_status.
  Accept and reject also append a recommendation_feedback row.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from brain.core.clock import days_from, resolve_now
from brain.core.config import settings
from brain.core.errors import RecommendationNotFoundError
from brain.models.health import HealthScore, PortfolioHealth
from brain.models.pattern_analysis import PatternAnalysis
from brain.models.prediction import RiskPrediction
from brain.models.project import Project
from brain.models.recommendation import (
    Recommendation,
    RecommendationFeedback,
    RecommendationStatus,
)
from brain.services.health import latest_health, latest_portfolio_health
from brain.services.patterns import latest_pattern
from brain.services.projects import active_projects
from brain.services.risk_prediction import active_risk_predictions_for

logger = logging.getLogger("brain.recommendations")

_DEFAULT_MITIGATION_STEPS = [
    "Analyser facteurs de risque en détail",
    "Préparer plan mitigation",
    "Allouer ressources prévention",
]

_FEEDBACK_STATUSES = {RecommendationStatus.accepted, RecommendationStatus.rejected}


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass
class RecommendationDraft:
    """A recommendation before it is stored."""
    category: str
    priority: int
    title: str
    description: str
    rationale: str
    expected_impact: str
    estimated_effort: str
    time_sensitive: bool = False
    deadline_date: Optional[date] = None
    target_entity_type: Optional[str] = None
    target_entity_id: Optional[int] = None
    actionable_steps: list[str] = field(default_factory=list)
    related_playbook_id: Optional[int] = None
    confidence_score: float = 70


def fmt_number(value) -> str:
    """8.0 → "8", 7.5 → "7.5"."""
    return f"{float(value or 0):g}"


# ---------------------------------------------------------------------------
# Generators
# ---------------------------------------------------------------------------

def _focus(
    project: Project, health: Optional[HealthScore], now: datetime
) -> Optional[RecommendationDraft]:
    if health is None or health.overall_score >= 60:
        return None
    critical = health.overall_score < 50
    blocker = f"Blocker actuel: {project.main_blocker}" if project.main_blocker else ""
    return RecommendationDraft(
        category="focus",
        priority=1 if critical else 2,
        title=f"Focus CEO requis sur {project.name}",
        description=(
            f"Health score à {round(health.overall_score)}/100 "
            f"{'(CRITIQUE)' if critical else '(Attention)'}"
        ),
        rationale=(
            f"Facteurs critiques: velocity {round(health.velocity_score)}/100, "
            f"risk {round(health.risk_score)}/100. {blocker}"
        ),
        expected_impact="high",
        estimated_effort="moderate",
        time_sensitive=critical,
        deadline_date=days_from(now, 7) if critical else None,
        target_entity_type="project",
        target_entity_id=project.id,
        actionable_steps=[
            f'Analyser cause root du blocker: "{project.main_blocker or "Non spécifié"}"',
            "Organiser session focus CEO (2h) cette semaine",
            "Identifier décisions pending bloquantes",
            "Définir plan action avec timeline",
            "Allouer ressources si nécessaire",
        ],
        confidence_score=85,
    )


def _risk_mitigations(
    project: Project, predictions: list[RiskPrediction], now: datetime
) -> list[RecommendationDraft]:
    drafts = []
    for prediction in predictions:
        if prediction.probability_score < 60:
            continue
        drafts.append(RecommendationDraft(
            category="risk_mitigation",
            priority=1 if prediction.probability_score >= 75 else 3,
            title=f"Anticiper risque {prediction.risk_type} sur {project.name}",
            description=(
                f"Probabilité {round(prediction.probability_score)}% "
                f"dans {prediction.time_horizon_days} jours"
            ),
            rationale=(
                f"Facteurs: {json.dumps(prediction.factors, ensure_ascii=False)}. "
                f"Impact estimé: {prediction.estimated_impact}"
            ),
            expected_impact=(
                "high" if prediction.estimated_impact in ("major", "severe") else "medium"
            ),
            estimated_effort="moderate",
            time_sensitive=True,
            deadline_date=days_from(now, prediction.time_horizon_days * 0.7),
            target_entity_type="project",
            target_entity_id=project.id,
            actionable_steps=list(prediction.mitigation_suggestions or _DEFAULT_MITIGATION_STEPS),
            confidence_score=prediction.confidence_level or 70,
        ))
    return drafts


def _opportunity(
    project: Project,
    health: Optional[HealthScore],
    pattern: Optional[PatternAnalysis],
    now: datetime,
) -> Optional[RecommendationDraft]:
    if health is None or pattern is None:
        return None
    if not (
        pattern.momentum_score > 70
        and health.overall_score > 60
        and float(project.completion_percentage or 0) < 90
    ):
        return None
    return RecommendationDraft(
        category="opportunity",
        priority=2,
        title=f"Opportunité accélération: {project.name}",
        description=(
            f"Momentum élevé ({round(pattern.momentum_score)}/100) - "
            "potentiel pour delivery rapide"
        ),
        rationale=(
            f"Velocity trend: {pattern.velocity_trend}. "
            f"Health: {round(health.overall_score)}/100. Pas de blockers majeurs."
        ),
        expected_impact="high",
        estimated_effort="moderate",
        time_sensitive=True,
        deadline_date=days_from(now, 14),
        target_entity_type="project",
        target_entity_id=project.id,
        actionable_steps=[
            "Capitaliser sur momentum actuel",
            "Augmenter allocation ressources temporairement",
            "Prioriser ce projet pour les 2 prochaines semaines",
            "Viser delivery avant fin du mois",
            f"Cash impact: {fmt_number(project.cash_impact_score)}/10 - ROI rapide potentiel",
        ],
        confidence_score=75,
    )


def _resource(project: Project, health: Optional[HealthScore]) -> Optional[RecommendationDraft]:
    if health is None:
        return None
    cash = float(project.cash_impact_score or 0)

    if health.overall_score < 55 and cash > 7:
        return RecommendationDraft(
            category="resource",
            priority=2,
            title=f"Décision ressources: {project.name}",
            description=(
                f"Cash impact élevé ({fmt_number(cash)}/10) mais health faible "
                f"({round(health.overall_score)}/100)"
            ),
            rationale=(
                "Projet stratégique sous-performant. "
                "Choix: augmenter ressources OU pauser et réallouer."
            ),
            expected_impact="high",
            estimated_effort="significant",
            time_sensitive=True,
            target_entity_type="project",
            target_entity_id=project.id,
            actionable_steps=[
                "Analyser cause root de la faible performance",
                "Option A: Doubler ressources (budget + équipe) si critique",
                "Option B: Pauser et réallouer vers projets plus performants",
                "Décision CEO requise sous 1 semaine",
                "Documenter rationale dans decisions",
            ],
            confidence_score=80,
        )

    if health.overall_score < 50 and cash < 5:
        return RecommendationDraft(
            category="resource",
            priority=3,
            title=f"Considérer pause: {project.name}",
            description=(
                f"Faible cash impact ({fmt_number(cash)}/10) + faible health "
                f"({round(health.overall_score)}/100)"
            ),
            rationale="Ressources pourraient être mieux utilisées sur projets plus stratégiques.",
            expected_impact="medium",
            estimated_effort="quick_win",
            time_sensitive=False,
            target_entity_type="project",
            target_entity_id=project.id,
            actionable_steps=[
                "Réévaluer ROI stratégique du projet",
                "Comparer avec autres opportunités portefeuille",
                "Si non-critique: pauser et réallouer ressources",
                "Documenter décision et critères de reprise",
            ],
            confidence_score=70,
        )
    return None


def _portfolio(portfolio: Optional[PortfolioHealth], now: datetime) -> Optional[RecommendationDraft]:
    if portfolio is None or portfolio.trend_7d >= -5:
        return None
    return RecommendationDraft(
        category="focus",
        priority=1,
        title="Health portefeuille en baisse",
        description=(
            f"Score global à {round(portfolio.overall_score)}/100 "
            f"({portfolio.trend_7d:.1f} pts cette semaine)"
        ),
        rationale=(
            f"{portfolio.projects_critical} projet(s) critiques. "
            f"Top concern: {portfolio.top_concern}"
        ),
        expected_impact="high",
        estimated_effort="significant",
        time_sensitive=True,
        deadline_date=days_from(now, 3),
        target_entity_type="portfolio",
        actionable_steps=[
            "Session stratégique CEO cette semaine",
            "Review chaque projet critique individuellement",
            "Identifier patterns communs aux problèmes",
            "Réallouer ressources si nécessaire",
            "Définir plan redressement 30 jours",
        ],
        confidence_score=90,
    )


# ---------------------------------------------------------------------------
# Public: generation
# ---------------------------------------------------------------------------

def generate_smart_suggestions(
    db: Session, now: Optional[datetime] = None, limit: Optional[int] = None
) -> list[RecommendationDraft]:
    now = resolve_now(now)
    limit = settings.RECOMMENDATIONS_LIMIT if limit is None else limit

    drafts: list[RecommendationDraft] = []
    for project in active_projects(db):
        health = latest_health(db, project.id)
        pattern = latest_pattern(db, project.id)

        focus = _focus(project, health, now)
        if focus is not None:
            drafts.append(focus)
        drafts.extend(_risk_mitigations(project, active_risk_predictions_for(db, project.id), now))
        for draft in (_opportunity(project, health, pattern, now), _resource(project, health)):
            if draft is not None:
                drafts.append(draft)

    portfolio = _portfolio(latest_portfolio_health(db), now)
    if portfolio is not None:
        drafts.append(portfolio)

    # sorted() is stable: equal priorities keep generation order
    ranked = sorted(drafts, key=lambda d: d.priority)[:limit]
    logger.info("Generated %d suggestion(s), kept %d", len(drafts), len(ranked))
    return ranked


# ---------------------------------------------------------------------------
# Public: persistence and lifecycle
# ---------------------------------------------------------------------------

def save_recommendation(db: Session, draft: RecommendationDraft) -> Recommendation:
    row = Recommendation(
        category=draft.category,
        priority=draft.priority,
        title=draft.title,
        description=draft.description,
        rationale=draft.rationale,
        expected_impact=draft.expected_impact,
        estimated_effort=draft.estimated_effort,
        time_sensitive=draft.time_sensitive,
        deadline_date=draft.deadline_date,
        target_entity_type=draft.target_entity_type,
        target_entity_id=draft.target_entity_id,
        actionable_steps=list(draft.actionable_steps),
        related_playbook_id=draft.related_playbook_id,
        confidence_score=draft.confidence_score,
        status=RecommendationStatus.active,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def list_active_recommendations(db: Session, limit: Optional[int] = None) -> list[Recommendation]:
    limit = settings.RECOMMENDATIONS_LIMIT if limit is None else limit
    return (
        db.query(Recommendation)
        .filter(Recommendation.status == RecommendationStatus.active)
        .order_by(
            Recommendation.priority.asc(),
            Recommendation.created_at.desc(),
            Recommendation.id.desc(),
        )
        .limit(limit)
        .all()
    )


def update_recommendation_status(
    db: Session,
    recommendation_id: int,
    status: RecommendationStatus,
    rejection_reason: Optional[str] = None,
    outcome_notes: Optional[str] = None,
    effectiveness_score: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Recommendation:
    """
    Move a recommendation through its lifecycle.

    The timestamp matching `status` is set to now and the other two are
    cleared. Notes and score are only overwritten when given.
    """
    row = db.get(Recommendation, recommendation_id)
    if row is None:
        raise RecommendationNotFoundError(recommendation_id)

    now = resolve_now(now)
    status = RecommendationStatus(status)
    row.status = status
    row.accepted_at = now if status == RecommendationStatus.accepted else None
    row.rejected_at = now if status == RecommendationStatus.rejected else None
    row.completed_at = now if status == RecommendationStatus.completed else None
    if rejection_reason is not None:
        row.rejection_reason = rejection_reason
    if outcome_notes is not None:
        row.outcome_notes = outcome_notes
    if effectiveness_score is not None:
        row.effectiveness_score = effectiveness_score

    if status in _FEEDBACK_STATUSES:
        db.add(RecommendationFeedback(
            recommendation_id=row.id,
            feedback_type=status.value,
            feedback_notes=rejection_reason or outcome_notes,
        ))

    db.commit()
    db.refresh(row)
    logger.info("Recommendation %s → %s", row.id, status.value)
    return row
