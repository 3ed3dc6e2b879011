"""
Tests for the pattern analyzer: velocity, trend boundaries, momentum
score and the signals read from events and decisions.
"""
import pytest
from datetime import timedelta

from brain.core.errors import ProjectNotFoundError
from brain.services.patterns import (
    NO_ACTIVITY_SENTINEL,
    analyze_all_projects_patterns,
    analyze_project_patterns,
    calculate_momentum_score,
    calculate_velocity,
    determine_velocity_trend,
    latest_pattern,
    save_pattern_analysis,
)


class TestFormulas:
    def test_velocity_is_linear_in_days(self):
        assert calculate_velocity(60, 7) == pytest.approx(14.0)
        assert calculate_velocity(60, 30) == pytest.approx(60.0)
        assert calculate_velocity(0, 7) == 0

    @pytest.mark.parametrize("v7, v30, expected", [
        (0, 0, "stagnant"),
        (12.5, 43, "accelerating"),
        (12, 43, "stable"),
        (11, 43, "stable"),
        (9, 43, "stable"),
        (8, 43, "stable"),
        (7, 43, "decelerating"),
        (5, 0, "accelerating"),
    ])
    def test_trend_thresholds(self, v7, v30, expected):
        assert determine_velocity_trend(v7, v30) == expected

    def test_trend_from_extrapolated_velocities_is_stable(self):
        v7, v30 = calculate_velocity(45, 7), calculate_velocity(45, 30)
        assert determine_velocity_trend(v7, v30) == "stable"

    def test_momentum_clamped_at_zero(self):
        score = calculate_momentum_score(
            velocity_7d=0, velocity_30d=0, decisions_velocity=0,
            last_activity_days=NO_ACTIVITY_SENTINEL, blockers_count=1,
        )
        assert score == 0

    def test_momentum_clamped_at_hundred(self):
        score = calculate_momentum_score(
            velocity_7d=20, velocity_30d=43, decisions_velocity=6,
            last_activity_days=1, blockers_count=0,
        )
        assert score == 100

    def test_momentum_components_add_up(self):
        # ratio 1.4 → +20, 6 decisions → +20, 10 days idle → −5
        score = calculate_momentum_score(
            velocity_7d=14, velocity_30d=43, decisions_velocity=6,
            last_activity_days=10, blockers_count=0,
        )
        assert score == pytest.approx(85)

    def test_momentum_blockers_cost_ten_each(self):
        base = calculate_momentum_score(10, 43, 3, 3, 0)
        assert calculate_momentum_score(10, 43, 3, 3, 1) == pytest.approx(base - 10)


class TestAnalyzeProject:
    def test_signals_from_events_and_decisions(
        self, db, now, make_project, make_event, make_decision
    ):
        project = make_project(completion_percentage=60, main_blocker="CSS mobile")
        make_event(project.id, days_ago=3)
        make_event(project.id, days_ago=5, description="blocker: API lente")
        make_event(project.id, days_ago=6, description="blocker: API lente")
        make_event(project.id, days_ago=8, description="Blocker: CSS cassé")
        for days in (2, 10, 20):
            make_decision(project.id, days_ago=days)
        make_decision(project.id, days_ago=40)

        result = analyze_project_patterns(db, project.id, now=now)

        assert result.velocity_7d == pytest.approx(14.0)
        assert result.velocity_30d == pytest.approx(60.0)
        assert result.velocity_trend == "stable"
        assert result.blockers_count == 1
        assert result.blockers_recurring == ["blocker: API lente", "Blocker: CSS cassé"]
        assert result.decisions_velocity == 3
        assert result.last_activity_days == 3
        # ratio ≈ 1.0 → +10, 3 decisions → +10, one blocker → −10
        assert result.momentum_score == pytest.approx(60)

    def test_no_events_means_sentinel(self, db, now, make_project):
        project = make_project()
        result = analyze_project_patterns(db, project.id, now=now)
        assert result.last_activity_days == NO_ACTIVITY_SENTINEL
        assert result.blockers_recurring == []

    def test_aucun_is_not_a_blocker(self, db, now, make_project):
        project = make_project(main_blocker="Aucun")
        assert analyze_project_patterns(db, project.id, now=now).blockers_count == 0

    def test_events_of_other_entities_ignored(self, db, now, make_project, make_event):
        project = make_project()
        other = make_project()
        make_event(other.id, days_ago=1)
        result = analyze_project_patterns(db, project.id, now=now)
        assert result.last_activity_days == NO_ACTIVITY_SENTINEL

    def test_missing_project_raises(self, db, now):
        with pytest.raises(ProjectNotFoundError):
            analyze_project_patterns(db, 424242, now=now)

    def test_only_active_projects_analyzed(self, db, now, make_project):
        active = make_project()
        make_project(status="paused")
        results = analyze_all_projects_patterns(db, now=now)
        assert [r.project_id for r in results] == [active.id]


class TestPersistence:
    def test_latest_pattern_is_newest_row(self, db, now, make_project):
        project = make_project(completion_percentage=30)
        first = analyze_project_patterns(db, project.id, now=now - timedelta(days=7))
        save_pattern_analysis(db, first, now=now - timedelta(days=7))
        project.completion_percentage = 60
        db.commit()
        second = analyze_project_patterns(db, project.id, now=now)
        save_pattern_analysis(db, second, now=now)

        latest = latest_pattern(db, project.id)
        assert latest is not None
        assert latest.velocity_30d == pytest.approx(60.0)

    def test_no_history_is_none(self, db, make_project):
        assert latest_pattern(db, make_project().id) is None
