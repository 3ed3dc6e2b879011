"""
Tests for the recommendation engine, playbook matching and decision support.
"""
import pytest
from datetime import timedelta

from brain.core.clock import as_utc
from brain.core.config import settings
from brain.core.errors import ProjectNotFoundError, RecommendationNotFoundError
from brain.models.health import PortfolioHealth
from brain.models.playbook import Playbook
from brain.models.prediction import RiskPrediction
from brain.models.recommendation import Recommendation, RecommendationFeedback, RecommendationStatus
from brain.services.decision_support import generate_decision_support, save_decision_support
from brain.services.playbooks import match_playbooks_to_situation, save_playbook_recommendation
from brain.services.recommendations import (
    RecommendationDraft,
    fmt_number,
    generate_smart_suggestions,
    list_active_recommendations,
    save_recommendation,
    update_recommendation_status,
)


def _risk(db, project_id, probability, now, risk_type="technical", status="active"):
    db.add(RiskPrediction(
        project_id=project_id,
        risk_type=risk_type,
        predicted_severity="high",
        probability_score=probability,
        estimated_impact="major",
        time_horizon_days=10,
        predicted_occurrence_date=(now + timedelta(days=10)).date(),
        confidence_level=70,
        factors={"velocity_trend": "stable"},
        mitigation_suggestions=["Documenter solutions"],
        status=status,
    ))
    db.commit()


def _draft(**fields) -> RecommendationDraft:
    values = dict(
        category="focus", priority=2, title="Revoir le plan", description="",
        rationale="", expected_impact="medium", estimated_effort="moderate",
    )
    values.update(fields)
    return RecommendationDraft(**values)


class TestFormatting:
    @pytest.mark.parametrize("value, text", [(8, "8"), (7.5, "7.5"), (None, "0"), (0.25, "0.25")])
    def test_fmt_number(self, value, text):
        assert fmt_number(value) == text


class TestGenerators:
    def test_nothing_without_history(self, db, now, make_project):
        make_project()
        assert generate_smart_suggestions(db, now=now) == []

    def test_critical_focus(self, db, now, make_project, make_health):
        project = make_project(name="Atlas", main_blocker="Paiement Stripe", cash_impact_score=6)
        make_health(project.id, 45)
        (focus,) = generate_smart_suggestions(db, now=now)
        assert focus.category == "focus"
        assert focus.priority == 1
        assert focus.time_sensitive is True
        assert focus.deadline_date == (now + timedelta(days=7)).date()
        assert focus.title == "Focus CEO requis sur Atlas"
        assert "(CRITIQUE)" in focus.description
        assert focus.target_entity_id == project.id

    def test_attention_focus(self, db, now, make_project, make_health):
        project = make_project(cash_impact_score=6)
        make_health(project.id, 55)
        (focus,) = generate_smart_suggestions(db, now=now)
        assert focus.priority == 2
        assert focus.deadline_date is None

    def test_risk_mitigation_thresholds(self, db, now, make_project):
        project = make_project()
        _risk(db, project.id, 80, now)
        _risk(db, project.id, 65, now, risk_type="dispersion")
        _risk(db, project.id, 55, now, risk_type="financial")
        _risk(db, project.id, 90, now, risk_type="administrative", status="expired")

        drafts = generate_smart_suggestions(db, now=now)
        assert [(d.category, d.priority) for d in drafts] == [
            ("risk_mitigation", 1), ("risk_mitigation", 3),
        ]
        assert drafts[0].actionable_steps == ["Documenter solutions"]
        assert drafts[0].deadline_date == (now + timedelta(days=7)).date()

    def test_opportunity(self, db, now, make_project, make_health, make_pattern):
        project = make_project(name="Nova", completion_percentage=50, cash_impact_score=8)
        make_health(project.id, 75)
        make_pattern(project.id, momentum_score=80)
        (draft,) = generate_smart_suggestions(db, now=now)
        assert draft.category == "opportunity"
        assert draft.priority == 2
        assert "Cash impact: 8/10 - ROI rapide potentiel" in draft.actionable_steps

    def test_high_cash_low_health_resource(self, db, now, make_project, make_health):
        project = make_project(cash_impact_score=8)
        make_health(project.id, 52)
        drafts = generate_smart_suggestions(db, now=now)
        assert [(d.category, d.priority) for d in drafts] == [("focus", 2), ("resource", 2)]
        assert drafts[1].title.startswith("Décision ressources")

    def test_low_cash_low_health_pause(self, db, now, make_project, make_health):
        project = make_project(cash_impact_score=3)
        make_health(project.id, 45)
        drafts = generate_smart_suggestions(db, now=now)
        assert [(d.category, d.priority) for d in drafts] == [("focus", 1), ("resource", 3)]
        assert drafts[1].title.startswith("Considérer pause")

    def test_portfolio_decline(self, db, now):
        db.add(PortfolioHealth(score_date=now.date(), overall_score=48, trend_7d=-8,
                               projects_critical=2, top_concern="Atlas: 31/100"))
        db.commit()
        (draft,) = generate_smart_suggestions(db, now=now)
        assert draft.priority == 1
        assert draft.target_entity_type == "portfolio"
        assert draft.deadline_date == (now + timedelta(days=3)).date()
        assert "-8.0 pts" in draft.description


class TestRanking:
    def test_sorted_by_priority(self, db, now, make_project, make_health):
        for overall, cash in ((55, 6), (45, 3), (52, 8)):
            project = make_project(cash_impact_score=cash)
            make_health(project.id, overall)
        priorities = [d.priority for d in generate_smart_suggestions(db, now=now)]
        assert priorities == sorted(priorities)
        assert priorities[0] == 1

    def test_equal_priorities_keep_generation_order(self, db, now, make_project, make_health):
        first = make_project(cash_impact_score=6)
        second = make_project(cash_impact_score=6)
        make_health(first.id, 40)
        make_health(second.id, 40)
        drafts = generate_smart_suggestions(db, now=now)
        assert [d.target_entity_id for d in drafts] == [first.id, second.id]

    def test_truncated_to_limit(self, db, now, make_project, make_health):
        for _ in range(settings.RECOMMENDATIONS_LIMIT + 3):
            project = make_project(cash_impact_score=6)
            make_health(project.id, 40)
        assert len(generate_smart_suggestions(db, now=now)) == settings.RECOMMENDATIONS_LIMIT
        assert len(generate_smart_suggestions(db, now=now, limit=2)) == 2


class TestLifecycle:
    def test_active_list_orders_by_priority(self, db):
        save_recommendation(db, _draft(priority=3, title="C"))
        save_recommendation(db, _draft(priority=1, title="A"))
        save_recommendation(db, _draft(priority=2, title="B"))
        assert [r.title for r in list_active_recommendations(db)] == ["A", "B", "C"]

    def test_accept_records_feedback(self, db, now):
        row = save_recommendation(db, _draft())
        updated = update_recommendation_status(db, row.id, RecommendationStatus.accepted, now=now)

        assert updated.status == RecommendationStatus.accepted
        assert as_utc(updated.accepted_at) == now
        assert updated.rejected_at is None
        feedback = db.query(RecommendationFeedback).filter_by(recommendation_id=row.id).all()
        assert [f.feedback_type for f in feedback] == ["accepted"]
        assert list_active_recommendations(db) == []

    def test_reject_with_reason(self, db, now):
        row = save_recommendation(db, _draft())
        updated = update_recommendation_status(
            db, row.id, "rejected", rejection_reason="Hors scope ce trimestre", now=now
        )
        assert as_utc(updated.rejected_at) == now
        assert updated.rejection_reason == "Hors scope ce trimestre"
        (feedback,) = db.query(RecommendationFeedback).all()
        assert feedback.feedback_notes == "Hors scope ce trimestre"

    def test_complete_after_accept(self, db, now):
        row = save_recommendation(db, _draft())
        update_recommendation_status(db, row.id, "accepted", now=now)
        done = update_recommendation_status(
            db, row.id, "completed", outcome_notes="Livré", effectiveness_score=8,
            now=now + timedelta(days=2),
        )
        assert done.accepted_at is None
        assert as_utc(done.completed_at) == now + timedelta(days=2)
        assert done.effectiveness_score == 8
        assert done.outcome_notes == "Livré"
        assert db.query(RecommendationFeedback).count() == 1

    def test_missing_recommendation(self, db):
        with pytest.raises(RecommendationNotFoundError):
            update_recommendation_status(db, 777, "accepted")


class TestPlaybooks:
    @pytest.fixture()
    def troubled_project(self, make_project, make_pattern, make_health):
        project = make_project(risk_level="high", main_blocker="Bug CSS checkout",
                               cash_impact_score=8, completion_percentage=65)
        make_pattern(project.id, velocity_trend="stagnant")
        make_health(project.id, 50, risk_score=30)
        return project

    def test_weak_matches_dropped_best_first(self, db, troubled_project):
        full = Playbook(name="Relance", description="stagnation risk technique ressource",
                        rules=["Geler le scope", "Sprint dédié", "Revue hebdo", "Bilan"])
        partial = Playbook(name="Triage technique", description="risk stagnation", rules=[])
        weak = Playbook(name="Stagnation", description="", rules=[])
        hidden = Playbook(name="Archive", description="stagnation risk technique ressource",
                          rules=[], active=False)
        db.add_all([weak, partial, full, hidden])
        db.commit()

        matches = match_playbooks_to_situation(db, troubled_project.id)
        assert [(m.playbook_name, m.match_score) for m in matches] == [
            ("Relance", 100), ("Triage technique", 75),
        ]
        assert matches[0].relevant_rules == ["Geler le scope", "Sprint dédié", "Revue hebdo"]
        assert "Focus sur finition plutôt que foundation" in matches[0].suggested_adaptations
        assert "projet en stagnation" in matches[0].application_context

    def test_score_of_exactly_fifty_is_kept(self, db, troubled_project):
        two_flags = Playbook(name="Relance", description="stagnation risk", rules=[])
        db.add(two_flags)
        db.commit()

        matches = match_playbooks_to_situation(db, troubled_project.id)
        assert [m.match_score for m in matches] == [50]
        assert matches[0].playbook_id == two_flags.id

    def test_save_as_decision_recommendation(self, db, troubled_project):
        playbook = Playbook(name="Relance", description="stagnation risk technique", rules=[])
        db.add(playbook)
        db.commit()
        (match,) = match_playbooks_to_situation(db, troubled_project.id)

        row = save_playbook_recommendation(db, match, troubled_project.id)
        assert row.category == "decision"
        assert row.priority == 3
        assert row.related_playbook_id == playbook.id
        assert row.title == "Appliquer playbook: Relance"

    def test_unknown_project(self, db):
        with pytest.raises(ProjectNotFoundError):
            match_playbooks_to_situation(db, 9090)


class TestDecisionSupport:
    def test_pace_and_blocker_sheets(self, db, make_project, make_pattern, make_health):
        project = make_project(name="Atlas", main_blocker="API bancaire", cash_impact_score=8)
        make_pattern(project.id, momentum_score=80, velocity_trend="accelerating")
        make_health(project.id, 80)

        pace, blocker = generate_decision_support(db, project.id)
        assert pace.decision_title == "Pace stratégique: Atlas"
        assert [o.option.split(" ")[0] for o in pace.options] == ["Accélérer", "Maintenir", "Pauser"]
        assert pace.recommendation.startswith("RECOMMANDATION: Accélérer")
        assert "Momentum positif" in pace.options[0].pros
        assert pace.options[2].risk_level == "high"
        assert blocker.decision_title == "Résolution blocker: API bancaire"
        assert len(blocker.options) == 3

    def test_low_health_recommends_caution(self, db, make_project, make_pattern, make_health):
        project = make_project()
        make_pattern(project.id)
        make_health(project.id, 40)
        (pace,) = generate_decision_support(db, project.id)
        assert pace.recommendation.startswith("RECOMMANDATION: Maintenir ou Pauser")
        assert "Health faible non adressée" in pace.options[1].cons

    def test_nothing_to_decide(self, db, make_project):
        assert generate_decision_support(db, make_project(main_blocker="Aucun").id) == []

    def test_save_as_recommendation(self, db, make_project):
        project = make_project(main_blocker="Fournisseur en retard")
        (support,) = generate_decision_support(db, project.id)
        row = save_decision_support(db, support, project.id)
        assert row.priority == 2
        assert row.category == "decision"
        assert len(row.actionable_steps) == 3
        assert db.query(Recommendation).count() == 1

    def test_unknown_project(self, db):
        with pytest.raises(ProjectNotFoundError):
            generate_decision_support(db, 9191)
