"""
Integration tests for API endpoints using the SQLite test database.

Endpoints run with the real clock, so assertions here avoid exact dates
and day counts; the services' tests pin those with a fixed `now`.
"""
import pytest

from brain.models.anomaly import Anomaly
from brain.models.health import HealthScore
from brain.models.recommendation import Recommendation, RecommendationFeedback


class TestHealthProbe:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"
        assert r.json()["db"] == "ok"


class TestAnalysis:
    def test_patterns_empty(self, client):
        r = client.get("/analysis/patterns")
        assert r.status_code == 200
        assert r.json() == {"patterns": []}

    def test_patterns_refresh_then_read(self, client, make_project):
        project = make_project(completion_percentage=60)
        r = client.get("/analysis/patterns?refresh=true")
        assert r.status_code == 200
        (pattern,) = r.json()["patterns"]
        assert pattern["project_id"] == project.id
        assert pattern["velocity_7d"] == pytest.approx(14.0)
        assert pattern["last_activity_days"] == 999

        stored = client.get("/analysis/patterns").json()["patterns"]
        assert [p["project_id"] for p in stored] == [project.id]

    def test_health_refresh_worked_example(self, client, db, make_project):
        project = make_project(completion_percentage=40, risk_level="critical", cash_impact_score=9)
        r = client.get("/analysis/health?refresh=true")
        assert r.status_code == 200
        body = r.json()
        (score,) = body["projects"]
        assert score["project_id"] == project.id
        assert score["overall_score"] == pytest.approx(43)
        assert score["grade"] == "critical"
        assert body["portfolio"]["projects_count"] == 1
        assert body["portfolio"]["projects_critical"] == 1

        # same-day refresh updates in place
        client.get("/analysis/health?refresh=true")
        assert db.query(HealthScore).count() == 1

        stored = client.get("/analysis/health").json()
        assert stored["portfolio"]["overall_score"] == pytest.approx(43)

    def test_health_refresh_without_projects(self, client):
        body = client.get("/analysis/health?refresh=true").json()
        assert body["projects"] == []
        assert body["portfolio"]["top_concern"] == "No active projects"
        assert client.get("/analysis/health").json()["portfolio"] is None

    def test_project_health(self, client, make_project):
        project = make_project(risk_level="low")
        r = client.get(f"/analysis/health/projects/{project.id}")
        assert r.status_code == 200
        assert r.json()["risk_score"] == 100

    def test_anomalies_refresh_stores_once(self, client, db, make_project, make_pattern, make_health):
        project = make_project()
        make_health(project.id, 60, days_ago=1)
        make_health(project.id, 60, days_ago=0)
        make_pattern(project.id, last_activity_days=35)

        for _ in range(2):
            r = client.get("/analysis/anomalies?refresh=true")
            assert r.status_code == 200
            assert [a["anomaly_type"] for a in r.json()["anomalies"]] == ["stagnation"]
        assert db.query(Anomaly).count() == 1

        (open_anomaly,) = client.get("/analysis/anomalies").json()["anomalies"]
        r = client.post(f"/analysis/anomalies/{open_anomaly['id']}/resolve")
        assert r.status_code == 200
        assert r.json()["resolved"] is True
        assert client.get("/analysis/anomalies").json()["anomalies"] == []


class TestPredictions:
    def test_risks_refresh(self, client, make_project):
        make_project(main_blocker="Bug CSS")
        r = client.get("/predictions/risks?refresh=true")
        assert r.status_code == 200
        assert [p["risk_type"] for p in r.json()["predictions"]] == ["technical"]

        stored = client.get("/predictions/risks").json()["predictions"]
        assert stored[0]["status"] == "active"

    def test_risks_refresh_clears_resolved_project(self, client, db, make_project):
        project = make_project(main_blocker="Bug CSS")
        client.get("/predictions/risks?refresh=true")
        project.main_blocker = None
        db.commit()

        r = client.get("/predictions/risks?refresh=true")
        assert r.json()["predictions"] == []
        assert client.get("/predictions/risks").json()["predictions"] == []

    def test_bottlenecks_refresh(self, client, make_project, make_decision):
        project = make_project()
        for _ in range(4):
            make_decision(project.id)
        r = client.get("/predictions/bottlenecks?refresh=true")
        assert r.status_code == 200
        assert r.json()["bottlenecks"][0]["priority"] == "critical"
        assert len(client.get("/predictions/bottlenecks").json()["bottlenecks"]) == 1

    def test_completion_refresh(self, client, make_project, make_pattern):
        project = make_project(completion_percentage=40)
        make_pattern(project.id, velocity_30d=30)
        r = client.get("/predictions/completion?refresh=true")
        assert r.status_code == 200
        (forecast,) = r.json()["forecasts"]
        assert forecast["optimistic_date"] <= forecast["realistic_date"] <= forecast["pessimistic_date"]
        assert len(client.get("/predictions/completion").json()["forecasts"]) == 1


class TestRecommendations:
    def test_suggestions_refresh_and_lifecycle(self, client, db, make_project, make_health):
        project = make_project(cash_impact_score=3)
        make_health(project.id, 45)

        r = client.get("/recommendations/suggestions?refresh=true")
        assert r.status_code == 200
        recs = r.json()["recommendations"]
        assert [x["priority"] for x in recs] == [1, 3]

        r = client.put(
            f"/recommendations/{recs[0]['id']}",
            json={"status": "rejected", "rejection_reason": "Déjà planifié"},
        )
        assert r.status_code == 200
        assert r.json()["status"] == "rejected"
        assert r.json()["rejected_at"] is not None
        assert db.query(RecommendationFeedback).count() == 1

        active = client.get("/recommendations/suggestions").json()["recommendations"]
        assert [x["id"] for x in active] == [recs[1]["id"]]

    def test_playbooks_and_save(self, client, db, make_project, make_pattern):
        from brain.models.playbook import Playbook

        project = make_project(risk_level="high", main_blocker="CSS")
        make_pattern(project.id, velocity_trend="stagnant")
        db.add(Playbook(name="Relance", description="stagnation risk technique", rules=["Geler"]))
        db.commit()

        r = client.get(f"/recommendations/projects/{project.id}/playbooks?save=true")
        assert r.status_code == 200
        assert r.json()["project_id"] == project.id
        assert r.json()["matches"][0]["match_score"] == 75
        assert db.query(Recommendation).count() == 1

    def test_decision_support(self, client, make_project):
        project = make_project(main_blocker="Fournisseur")
        r = client.get(f"/recommendations/projects/{project.id}/decision-support")
        assert r.status_code == 200
        (support,) = r.json()["supports"]
        assert len(support["options"]) == 3


class TestOracle:
    def test_trajectories_refresh_then_read(self, client, make_project):
        make_project(slug="atlas")
        r = client.get("/oracle/trajectories?refresh=true")
        assert r.status_code == 200
        assert [t["trajectory_number"] for t in r.json()["trajectories"]] == [1, 2, 3]
        stored = client.get("/oracle/trajectories").json()["trajectories"]
        assert len(stored) == 3

    def test_questions_refresh(self, client):
        r = client.get("/oracle/questions?refresh=true")
        assert r.status_code == 200
        assert 1 <= len(r.json()["questions"]) <= 3
        assert len(client.get("/oracle/questions").json()["questions"]) == len(r.json()["questions"])

    def test_summary_refresh_then_read(self, client, make_project):
        make_project()
        r = client.get("/oracle/summary?refresh=true")
        assert r.status_code == 200
        body = r.json()
        assert body["tone"] == "calm"
        assert body["degraded"] is False
        assert body["summary"]["full_summary_markdown"].startswith("# Semaine du")

        stored = client.get("/oracle/summary").json()
        assert stored["summary"]["week_start_date"] == body["summary"]["week_start_date"]

    def test_summary_not_generated_yet(self, client):
        body = client.get("/oracle/summary").json()
        assert body["summary"] is None
        assert body["degraded"] is False


class TestFocus:
    def test_get_creates_blank(self, client):
        r = client.get("/focus/today")
        assert r.status_code == 200
        assert r.json()["priorities"] == ["", "", ""]
        assert client.get("/focus/today").json()["id"] == r.json()["id"]

    def test_put_pads_priorities(self, client):
        r = client.put("/focus/today", json={"priorities": ["Signer Nova"], "critical_risk": "Cash"})
        assert r.status_code == 200
        assert r.json()["priorities"] == ["Signer Nova", "", ""]
        assert r.json()["critical_risk"] == "Cash"
