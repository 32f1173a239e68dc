"""Тесты разбора JSON-конфигурации магазина"""
import json
import logging

import pytest

from groombook.errors import ConfigurationError
from groombook.services.shop_config import (
    WeeklySchedule,
    load_closed_dates,
    load_slot_map,
    load_weekly_schedule,
    validate_weekly_schedule,
)


class TestWeeklySchedule:
    def test_empty_uses_default(self):
        schedule = load_weekly_schedule(None)
        assert schedule == WeeklySchedule.default()
        assert schedule.sun.closed
        assert not schedule.mon.closed

    def test_json_string_is_decoded(self):
        raw = json.dumps({"wed": {"open": "10:00", "close": "16:00", "closed": False}})
        schedule = load_weekly_schedule(raw)
        assert schedule.wed.open == "10:00"
        assert schedule.wed.close == "16:00"

    def test_missing_days_take_defaults(self):
        schedule = load_weekly_schedule({"sun": {"open": "10:00", "close": "14:00", "closed": False}})
        assert not schedule.sun.closed
        assert schedule.mon.open == "09:00"

    def test_corrupted_json_falls_back_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            schedule = load_weekly_schedule("{not json", shop_id=7)
        assert schedule == WeeklySchedule.default()
        assert "Магазин 7" in caplog.text

    def test_open_after_close_falls_back(self):
        schedule = load_weekly_schedule({"wed": {"open": "18:00", "close": "09:00", "closed": False}})
        assert schedule == WeeklySchedule.default()

    def test_closed_day_ignores_bounds(self):
        schedule = validate_weekly_schedule({"wed": {"open": "18:00", "close": "09:00", "closed": True}})
        assert schedule.wed.closed

    @pytest.mark.parametrize("raw", [
        [],
        {"mon": {"open": "9:00", "close": "18:00"}},
        {"mon": {"open": "09:00", "close": "09:00", "closed": False}},
    ])
    def test_strict_validation_raises(self, raw):
        with pytest.raises(ConfigurationError):
            validate_weekly_schedule(raw)


class TestClosedDates:
    def test_invalid_entries_are_dropped(self):
        assert load_closed_dates(["2026-10-21", "завтра", "2026-02-30", 5]) == {"2026-10-21"}

    def test_not_a_list(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert load_closed_dates('{"2026-10-21": true}', shop_id=1) == set()
        assert "выходных" in caplog.text

    def test_empty(self):
        assert load_closed_dates(None) == set()


class TestSlotMap:
    def test_values_sorted_and_filtered(self):
        raw = {"2026-10-21": ["14:00", "10:00", "bad", "10:00"]}
        assert load_slot_map(raw) == {"2026-10-21": ["10:00", "14:00"]}

    def test_non_list_value_skipped(self):
        raw = {"2026-10-21": "10:00", "2026-10-22": ["11:00"]}
        assert load_slot_map(raw) == {"2026-10-22": ["11:00"]}

    def test_corrupted_falls_back_to_empty(self):
        assert load_slot_map("[[[", shop_id=3) == {}
