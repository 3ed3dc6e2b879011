"""
Tests for the daily focus row.
"""
from datetime import date, timedelta

from brain.models.daily_focus import DailyFocus
from brain.services.focus import get_or_create_today, update_today

DAY = date(2026, 3, 11)


class TestDailyFocus:
    def test_created_blank_once(self, db):
        first = get_or_create_today(db, today=DAY)
        second = get_or_create_today(db, today=DAY)
        assert first.id == second.id
        assert first.priorities == ["", "", ""]
        assert first.critical_risk == ""
        assert db.query(DailyFocus).count() == 1

    def test_each_day_has_its_own_row(self, db):
        get_or_create_today(db, today=DAY)
        get_or_create_today(db, today=DAY + timedelta(days=1))
        assert db.query(DailyFocus).count() == 2

    def test_update_overwrites_fields(self, db):
        focus = update_today(
            db,
            priorities=["Signer Nova", "Revue Atlas", ""],
            critical_risk="Trésorerie fin de mois",
            decision_needed="Recruter ou non",
            ignore_today="Refonte du site",
            today=DAY,
        )
        assert focus.priorities == ["Signer Nova", "Revue Atlas", ""]
        assert focus.decision_needed == "Recruter ou non"

        again = update_today(db, priorities=["Une seule chose", "", ""], today=DAY)
        assert again.id == focus.id
        assert again.critical_risk == ""
        assert again.priorities[0] == "Une seule chose"
