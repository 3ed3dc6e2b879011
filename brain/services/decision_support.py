"""
Decision support: option sheets for the two recurring CEO calls on a project.

  pace     accelerate / maintain / pause; needs a stored health score and
           pattern analysis
  blocker  resolve now / work around / escalate; needs a main blocker
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from brain.models.health import HealthScore
from brain.models.pattern_analysis import PatternAnalysis
from brain.models.project import Project
from brain.models.recommendation import Recommendation
from brain.services.health import latest_health
from brain.services.patterns import latest_pattern
from brain.services.projects import get_project
from brain.services.recommendations import RecommendationDraft, fmt_number, save_recommendation

logger = logging.getLogger("brain.decision_support")


@dataclass
class DecisionOption:
    option: str
    risk_level: str
    estimated_impact: str
    pros: list[str] = field(default_factory=list)
    cons: list[str] = field(default_factory=list)


@dataclass
class DecisionSupport:
    decision_title: str
    context: str
    recommendation: str
    options: list[DecisionOption] = field(default_factory=list)


def _kept(*items: str) -> list[str]:
    return [i for i in items if i]


def pace_decision(project: Project, health: HealthScore, pattern: PatternAnalysis) -> DecisionSupport:
    cash = float(project.cash_impact_score or 0)
    completion = fmt_number(project.completion_percentage)
    decelerating = pattern.velocity_trend == "decelerating"

    options = [
        DecisionOption(
            option="Accélérer (augmenter ressources)",
            pros=_kept(
                f"Health correct ({round(health.overall_score)}/100)",
                f"Cash impact élevé ({fmt_number(cash)}/10)",
                "Momentum positif" if pattern.velocity_trend == "accelerating" else "",
                "Delivery rapide = ROI rapide",
            ),
            cons=_kept(
                "Coût ressources supplémentaires",
                "Risque burnout équipe",
                "Vélocité en baisse" if decelerating else "",
                "Peut impacter autres projets",
            ),
            risk_level="medium" if health.overall_score < 60 else "low",
            estimated_impact="Delivery 30-40% plus rapide",
        ),
        DecisionOption(
            option="Maintenir (status quo)",
            pros=[
                "Pas de changement organisationnel",
                "Équilibre actuel préservé",
                "Risque minimal",
            ],
            cons=_kept(
                "Vélocité pourrait continuer à baisser" if decelerating else "",
                "Health faible non adressée" if health.overall_score < 60 else "",
                "Opportunités d'accélération manquées",
            ),
            risk_level="low",
            estimated_impact="Completion selon timeline actuelle",
        ),
        DecisionOption(
            option="Pauser (réallouer ressources)",
            pros=_kept(
                "Cash impact modéré" if cash < 6 else "",
                "Ressources libérées pour autres projets",
                "Temps pour réflexion stratégique",
            ),
            cons=_kept(
                "Cash impact élevé perdu" if cash > 7 else "",
                "Momentum perdu",
                f"Completion {completion}% déjà investi",
                "Peut être difficile de redémarrer",
            ),
            risk_level="high" if cash > 7 else "medium",
            estimated_impact="Delivery repoussée indéfiniment",
        ),
    ]

    if health.overall_score > 70 and pattern.momentum_score > 70:
        recommendation = "RECOMMANDATION: Accélérer. Projet en bonne santé avec momentum positif."
    elif health.overall_score < 50:
        recommendation = (
            "RECOMMANDATION: Maintenir ou Pauser selon priorité stratégique. "
            "Health faible nécessite investigation."
        )
    else:
        recommendation = "RECOMMANDATION: Maintenir. Velocity stable, pas d'urgence à changer."

    return DecisionSupport(
        decision_title=f"Pace stratégique: {project.name}",
        context=(
            f"Health {round(health.overall_score)}/100, "
            f"Momentum {round(pattern.momentum_score)}/100, Completion {completion}%"
        ),
        options=options,
        recommendation=recommendation,
    )


def blocker_decision(project: Project) -> DecisionSupport:
    return DecisionSupport(
        decision_title=f"Résolution blocker: {project.main_blocker}",
        context=f"Blocker actuel impact progression de {project.name}",
        options=[
            DecisionOption(
                option="Résoudre immédiatement (sprint dédié)",
                pros=["Déblocage rapide progression", "Équipe focus 100%",
                      "Solution permanente si bien fait"],
                cons=["Coût court-terme élevé", "Autres tâches repoussées", "Pression sur équipe"],
                risk_level="low",
                estimated_impact="Blocker résolu en 3-7 jours",
            ),
            DecisionOption(
                option="Contourner (workaround temporaire)",
                pros=["Solution rapide", "Progression immédiate", "Coût faible"],
                cons=["Dette technique créée", "Blocage peut revenir", "Solution non-optimale"],
                risk_level="medium",
                estimated_impact="Progression reprend, résolution permanente à faire plus tard",
            ),
            DecisionOption(
                option="Escalader (external help)",
                pros=["Expertise externe", "Solution professionnelle",
                      "Équipe interne focus sur core"],
                cons=["Coût élevé", "Dépendance externe", "Timeline incertaine"],
                risk_level="medium",
                estimated_impact="Résolution en 1-2 semaines",
            ),
        ],
        recommendation=(
            "RECOMMANDATION: Analyser cause root puis choisir entre Résolution immédiate "
            "(si simple) ou Escalade (si complexe)."
        ),
    )


def generate_decision_support(db: Session, project_id: int) -> list[DecisionSupport]:
    """Raises ProjectNotFoundError if the project does not exist."""
    project = get_project(db, project_id)
    health = latest_health(db, project_id)
    pattern = latest_pattern(db, project_id)

    supports = []
    if health is not None and pattern is not None:
        supports.append(pace_decision(project, health, pattern))
    if project.has_blocker:
        supports.append(blocker_decision(project))
    logger.debug("Project %s: %d decision sheet(s)", project_id, len(supports))
    return supports


def save_decision_support(db: Session, support: DecisionSupport, project_id: int) -> Recommendation:
    return save_recommendation(db, RecommendationDraft(
        category="decision",
        priority=2,
        title=support.decision_title,
        description=support.context,
        rationale=support.recommendation,
        expected_impact="high",
        estimated_effort="moderate",
        target_entity_type="project",
        target_entity_id=project_id,
        actionable_steps=[f"Option: {o.option} - {o.estimated_impact}" for o in support.options],
        confidence_score=75,
    ))
