"""
Tests for the oracle: weekly trajectories, strategic questions and the
calm weekly summary.
"""
import pytest
from datetime import timedelta

from brain.models.oracle import OracleQuestion, OracleTrajectory, OracleWeeklySummary
from brain.services.oracle_questions import (
    generate_strategic_questions,
    questions_for_week,
    save_strategic_questions,
)
from brain.services.oracle_summary import (
    generate_weekly_summary,
    placeholder_summary,
    save_weekly_summary,
    summary_for_week,
)
from brain.services.oracle_trajectories import (
    generate_weekly_trajectories,
    save_weekly_trajectories,
    split_evenly,
    trajectories_for_week,
)

DIRECTIVE_PHRASES = ("tu dois", "il faut", "vous devez", "fais ", "arrête")
ALARM_WORDS = ("échec", "catastrophe", "urgence", "urgent", "alerte", "danger")


# ---------------------------------------------------------------------------
# Trajectories
# ---------------------------------------------------------------------------

class TestSplitEvenly:
    @pytest.mark.parametrize("count", range(1, 8))
    def test_always_totals_hundred(self, count):
        shares = split_evenly([f"p{i}" for i in range(count)])
        assert sum(shares.values()) == 100
        assert max(shares.values()) - min(shares.values()) <= 1

    def test_leftover_goes_first(self):
        assert split_evenly(["a", "b", "c"]) == {"a": 34, "b": 33, "c": 33}

    def test_no_keys(self):
        assert split_evenly([]) == {}


class TestTrajectories:
    def test_no_active_project(self, db, make_project):
        make_project(status="done")
        assert generate_weekly_trajectories(db) == []

    def test_three_numbered_scenarios(self, db, make_project, make_pattern, make_health):
        atlas = make_project(name="Atlas", slug="atlas", completion_percentage=35, cash_impact_score=6)
        nova = make_project(name="Nova", slug="nova", cash_impact_score=9, main_blocker="Contrat")
        orbit = make_project(name="Orbit", slug="orbit", cash_impact_score=2)
        make_pattern(atlas.id, momentum_score=85)
        make_pattern(nova.id, momentum_score=40)
        make_pattern(orbit.id, momentum_score=55)
        make_health(nova.id, 52)
        make_health(orbit.id, 45)

        trajectories = generate_weekly_trajectories(db)

        assert [t.trajectory_number for t in trajectories] == [1, 2, 3]
        for t in trajectories:
            assert 95 <= sum(t.focus_allocation.values()) <= 105
            assert len(t.questions) == 3

        concentration, balance, unblocking = trajectories
        assert concentration.focus_allocation == {"atlas": 70, "autres": 30}
        assert concentration.timeline_estimate == "7 semaines si concentration maintenue"
        assert concentration.tone == "opportunity"
        assert set(balance.focus_allocation) == {"atlas", "nova", "orbit"}
        # highest cash impact first among projects under 60 health
        assert unblocking.title == "Déblocage Nova"
        assert unblocking.focus_allocation == {"nova": 80, "autres": 20}
        assert unblocking.tone == "gentle_attention"
        assert '"Contrat"' in unblocking.context

    def test_opportunity_when_all_healthy(self, db, make_project, make_health):
        calm = make_project(name="Calme", slug="calme", cash_impact_score=4)
        rich = make_project(name="Riche", slug="riche", cash_impact_score=8)
        make_health(calm.id, 75)
        make_health(rich.id, 80)

        *_, third = generate_weekly_trajectories(db)
        assert third.title == "Accélération Riche"
        assert third.focus_allocation == {"riche": 70, "autres": 30}

    def test_exploration_without_cash_impact(self, db, make_project):
        make_project(slug="zero", cash_impact_score=0)
        *_, third = generate_weekly_trajectories(db)
        assert third.focus_allocation == {"exploration": 30, "maintenance": 70}
        assert third.tone == "opportunity"

    def test_single_project_tradeoffs(self, db, make_project):
        make_project(slug="seul")
        first, *_ = generate_weekly_trajectories(db)
        assert first.tradeoffs == "Aucun autre projet actif."
        assert first.confidence_note is not None

    def test_save_replaces_the_week(self, db, now, make_project):
        make_project(slug="solo")
        save_weekly_trajectories(db, generate_weekly_trajectories(db), now=now)
        save_weekly_trajectories(db, generate_weekly_trajectories(db), now=now)

        rows = trajectories_for_week(db, now=now)
        assert [r.trajectory_number for r in rows] == [1, 2, 3]
        assert db.query(OracleTrajectory).count() == 3
        assert rows[0].week_start_date.isoformat() == "2026-03-09"

    def test_other_week_is_kept(self, db, now, make_project):
        make_project(slug="solo")
        generated = generate_weekly_trajectories(db)
        save_weekly_trajectories(db, generated, now=now - timedelta(days=7))
        save_weekly_trajectories(db, generated, now=now)
        assert db.query(OracleTrajectory).count() == 6


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

class TestQuestions:
    def test_empty_portfolio_still_asks_one(self, db, now):
        questions = generate_strategic_questions(db, now=now)
        assert len(questions) == 1
        assert questions[0].question_type == "strategy"

    def test_first_three_candidates_kept(self, db, now, make_project, make_pattern, make_decision):
        atlas = make_project(name="Atlas")
        make_project()
        make_project()
        make_decision(atlas.id, days_ago=12, title="Choisir l'hébergeur")
        make_decision(atlas.id, days_ago=3, title="Recruter un freelance")
        make_pattern(atlas.id, last_activity_days=21)

        questions = generate_strategic_questions(db, now=now)

        assert [q.question_type for q in questions] == ["decision", "reflection", "priority"]
        assert questions[0].question.startswith('"Choisir l\'hébergeur" attend depuis 12 jours')
        assert questions[0].context == "Décision sur Atlas"
        assert questions[1].related_entity_id == atlas.id
        assert "21 jours" in questions[1].question
        assert questions[2].question.startswith("3 projets actifs")

    def test_pause_prompt_for_low_cash_weak_project(self, db, now, make_project, make_health):
        weak = make_project(name="Faible", cash_impact_score=1)
        make_project(cash_impact_score=7)
        make_health(weak.id, 40)

        questions = generate_strategic_questions(db, now=now)
        assert [q.question_type for q in questions] == ["strategy", "strategy"]
        assert questions[1].related_entity_id == weak.id
        assert "cash impact 1/10" in questions[1].question

    def test_questions_never_prescribe(self, db, now, make_project, make_pattern, make_decision, make_health):
        projects = [make_project(cash_impact_score=c) for c in (1, 5, 9)]
        make_decision(projects[0].id, days_ago=30)
        make_pattern(projects[1].id, last_activity_days=40)
        make_health(projects[0].id, 30)

        questions = generate_strategic_questions(db, now=now)
        assert 1 <= len(questions) <= 3
        for q in questions:
            text = q.question.lower()
            assert not any(p in text for p in DIRECTIVE_PHRASES)
            assert q.question.rstrip().endswith("?")

    def test_save_replaces_the_week(self, db, now):
        save_strategic_questions(db, generate_strategic_questions(db, now=now), now=now)
        save_strategic_questions(db, generate_strategic_questions(db, now=now), now=now)
        assert db.query(OracleQuestion).count() == 1
        assert len(questions_for_week(db, now=now)) == 1


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

class TestWeeklySummary:
    def test_placeholder_without_projects(self, db, now):
        summary = generate_weekly_summary(db, now=now)
        assert summary == placeholder_summary(now)
        assert summary.overview_narrative == "Aucun projet actif cette semaine."
        assert summary.week_start_date.isoformat() == "2026-03-09"
        assert summary.week_end_date.isoformat() == "2026-03-15"

    def test_sections(self, db, now, make_project, make_pattern, make_health, make_decision):
        atlas = make_project(name="Atlas", completion_percentage=62.5)
        nova = make_project(name="Nova", main_blocker="Accès API bancaire")
        make_project(name="Orbit")
        make_pattern(atlas.id, momentum_score=78)
        make_pattern(nova.id, momentum_score=45, last_activity_days=18)
        make_health(nova.id, 50)
        make_decision(atlas.id, days_ago=1, title="Lancer la beta")
        make_decision(atlas.id, days_ago=5, title="Décision de la semaine passée")

        summary = generate_weekly_summary(db, now=now)

        assert summary.overview_narrative.startswith("3 projets en mouvement cette semaine.")
        assert "1 progresse bien, 1 demande attention, 1 en rythme stable." in summary.overview_narrative
        assert summary.what_advances == "• Atlas : 62.5% (momentum 78/100)"
        assert "• Nova : 18 jours sans mouvement visible" in summary.needs_attention
        assert 'Blocker : "Accès API bancaire"' in summary.needs_attention
        assert "Opportunité : Quick win potentiel si déblocage" in summary.needs_attention
        assert summary.decisions_made == "• Lancer la beta (10 mars)\n  Projet : Atlas"
        assert summary.full_summary_markdown.startswith(
            "# Semaine du 9 mars au 15 mars 2026\n\n## Vue d'ensemble"
        )

    def test_quiet_sections(self, db, now, make_project):
        make_project()
        summary = generate_weekly_summary(db, now=now)
        assert summary.what_advances == "Aucun projet en accélération notable."
        assert summary.needs_attention == "Aucun blocage significatif."
        assert summary.decisions_made == "Aucune décision formalisée cette semaine."

    def test_tone_stays_calm(self, db, now, make_project, make_pattern, make_health):
        for i in range(3):
            project = make_project(main_blocker="Serveur en panne")
            make_pattern(project.id, momentum_score=5, last_activity_days=60 + i)
            make_health(project.id, 10)

        text = generate_weekly_summary(db, now=now).full_summary_markdown.lower()
        assert not any(word in text for word in ALARM_WORDS)

    def test_save_upserts_on_week(self, db, now, make_project):
        make_project()
        save_weekly_summary(db, generate_weekly_summary(db, now=now))
        stored = save_weekly_summary(db, generate_weekly_summary(db, now=now + timedelta(days=2)))

        assert db.query(OracleWeeklySummary).count() == 1
        assert stored.tone_check == "calm"
        assert summary_for_week(db, now=now).id == stored.id
