"""
Tests for the anomaly detector.

Covered:
  - no baseline (fewer than two health snapshots) → nothing detected
  - stagnation beyond 14 / 30 days → high / critical
  - velocity drop and spike, health drop, risk spike severities
  - deduplication of unresolved anomalies and the resolve lifecycle
"""
import pytest
from datetime import timedelta

from brain.core.clock import as_utc
from brain.core.errors import AnomalyNotFoundError
from brain.models.anomaly import Anomaly, AnomalyType
from brain.models.risk import Risk
from brain.services.anomalies import (
    detect_all_anomalies,
    detect_anomalies,
    list_open_anomalies,
    resolve_anomaly,
    save_anomaly,
)


@pytest.fixture()
def baseline_project(make_project, make_health):
    """Active project with two flat health snapshots (a baseline, no drop)."""
    project = make_project()
    make_health(project.id, 60, days_ago=1)
    make_health(project.id, 60, days_ago=0)
    return project


def _add_risks(db, project_id, count, now, days_ago=1):
    for i in range(count):
        db.add(Risk(project_id=project_id, title=f"Risque {i}", created_at=now - timedelta(days=days_ago)))
    db.commit()


class TestBaseline:
    def test_single_snapshot_yields_nothing(self, db, now, make_project, make_health, make_pattern):
        project = make_project()
        make_health(project.id, 60)
        make_pattern(project.id, last_activity_days=60)
        assert detect_anomalies(db, project.id, now=now) == []

    def test_missing_project_yields_nothing(self, db, now):
        assert detect_anomalies(db, 31337, now=now) == []

    def test_quiet_project_yields_nothing(self, db, now, baseline_project, make_pattern):
        make_pattern(baseline_project.id, last_activity_days=3)
        assert detect_anomalies(db, baseline_project.id, now=now) == []


class TestStagnation:
    def test_thirty_five_days_is_one_critical_anomaly(self, db, now, baseline_project, make_pattern):
        make_pattern(baseline_project.id, last_activity_days=35)
        found = detect_anomalies(db, baseline_project.id, now=now)

        assert len(found) == 1
        anomaly = found[0]
        assert anomaly.anomaly_type == AnomalyType.STAGNATION
        assert anomaly.severity == "critical"
        assert anomaly.baseline_value == 7
        assert anomaly.current_value == 35
        assert anomaly.deviation_percent == pytest.approx(400)

    def test_twenty_days_is_high(self, db, now, baseline_project, make_pattern):
        make_pattern(baseline_project.id, last_activity_days=20)
        (anomaly,) = detect_anomalies(db, baseline_project.id, now=now)
        assert anomaly.severity == "high"

    def test_fourteen_days_is_fine(self, db, now, baseline_project, make_pattern):
        make_pattern(baseline_project.id, last_activity_days=14)
        assert detect_anomalies(db, baseline_project.id, now=now) == []


class TestVelocity:
    def test_drop(self, db, now, baseline_project, make_pattern):
        make_pattern(baseline_project.id, analysis_date=now - timedelta(days=7), velocity_7d=10)
        make_pattern(baseline_project.id, analysis_date=now, velocity_7d=5)
        (anomaly,) = detect_anomalies(db, baseline_project.id, now=now)
        assert anomaly.anomaly_type == AnomalyType.VELOCITY_DROP
        assert anomaly.severity == "high"
        assert anomaly.is_positive is False
        assert anomaly.deviation_percent == pytest.approx(50)

    def test_spike_is_positive(self, db, now, baseline_project, make_pattern):
        make_pattern(baseline_project.id, analysis_date=now - timedelta(days=7), velocity_7d=5)
        make_pattern(baseline_project.id, analysis_date=now, velocity_7d=10)
        (anomaly,) = detect_anomalies(db, baseline_project.id, now=now)
        assert anomaly.anomaly_type == AnomalyType.VELOCITY_SPIKE
        assert anomaly.severity == "critical"
        assert anomaly.is_positive is True

    def test_small_change_ignored(self, db, now, baseline_project, make_pattern):
        make_pattern(baseline_project.id, analysis_date=now - timedelta(days=7), velocity_7d=10)
        make_pattern(baseline_project.id, analysis_date=now, velocity_7d=7)
        assert detect_anomalies(db, baseline_project.id, now=now) == []


class TestHealthDrop:
    @pytest.mark.parametrize("previous, severity", [
        (78, "medium"),
        (82, "high"),
        (95, "critical"),
    ])
    def test_severity_scales_with_drop(self, db, now, make_project, make_health, previous, severity):
        project = make_project()
        for days_ago in range(1, 8):
            make_health(project.id, previous, days_ago=days_ago)
        make_health(project.id, 60, days_ago=0)

        (anomaly,) = detect_anomalies(db, project.id, now=now)
        assert anomaly.anomaly_type == AnomalyType.HEALTH_DROP
        assert anomaly.severity == severity
        assert anomaly.baseline_value == pytest.approx(previous)
        assert anomaly.current_value == 60

    def test_baseline_ignores_snapshots_beyond_seven(self, db, now, make_project, make_health):
        project = make_project()
        for days_ago in range(1, 8):
            make_health(project.id, 62, days_ago=days_ago)
        make_health(project.id, 100, days_ago=8)
        make_health(project.id, 60, days_ago=0)
        assert detect_anomalies(db, project.id, now=now) == []


class TestRiskSpike:
    def test_three_new_risks_is_high(self, db, now, baseline_project):
        _add_risks(db, baseline_project.id, 3, now)
        (anomaly,) = detect_anomalies(db, baseline_project.id, now=now)
        assert anomaly.anomaly_type == AnomalyType.RISK_SPIKE
        assert anomaly.severity == "high"

    def test_five_new_risks_is_critical(self, db, now, baseline_project):
        _add_risks(db, baseline_project.id, 5, now)
        (anomaly,) = detect_anomalies(db, baseline_project.id, now=now)
        assert anomaly.severity == "critical"

    def test_old_risks_not_counted(self, db, now, baseline_project):
        _add_risks(db, baseline_project.id, 5, now, days_ago=10)
        assert detect_anomalies(db, baseline_project.id, now=now) == []


class TestPersistence:
    def test_unresolved_duplicate_skipped(self, db, now, baseline_project, make_pattern):
        make_pattern(baseline_project.id, last_activity_days=35)
        (anomaly,) = detect_all_anomalies(db, now=now)

        assert save_anomaly(db, anomaly, now=now) is not None
        assert save_anomaly(db, anomaly, now=now) is None
        assert db.query(Anomaly).count() == 1

    def test_resolving_reopens_the_slot(self, db, now, baseline_project, make_pattern):
        make_pattern(baseline_project.id, last_activity_days=35)
        (anomaly,) = detect_all_anomalies(db, now=now)
        first = save_anomaly(db, anomaly, now=now)

        resolved = resolve_anomaly(db, first.id, now=now)
        assert resolved.resolved is True
        assert as_utc(resolved.resolved_at) == now

        assert save_anomaly(db, anomaly, now=now) is not None
        assert len(list_open_anomalies(db)) == 1

    def test_resolve_is_idempotent(self, db, now, baseline_project, make_pattern):
        make_pattern(baseline_project.id, last_activity_days=35)
        (anomaly,) = detect_all_anomalies(db, now=now)
        row = save_anomaly(db, anomaly, now=now)
        resolve_anomaly(db, row.id, now=now)
        again = resolve_anomaly(db, row.id, now=now + timedelta(days=1))
        assert as_utc(again.resolved_at) == now

    def test_resolve_missing_raises(self, db):
        with pytest.raises(AnomalyNotFoundError):
            resolve_anomaly(db, 404404)
