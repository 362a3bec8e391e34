"""Tests for clubawards.engine.sweep — scheduled bulk re-evaluation."""

import logging
import pytest
import redis
from datetime import timedelta
from unittest.mock import patch

from clubawards.engine.ledger import has_grant
from clubawards.engine.sweep import sweep, SweepResult


class TestSweep:
    def test_evaluates_active_members(self, r, attend, frozen_now):
        attend(person_id="p1")
        attend(person_id="p1")
        attend(person_id="p2")
        attend(person_id="stale", starts_at=frozen_now - timedelta(days=200))

        result = sweep(now=frozen_now, r=r)
        assert result.checked == 2
        assert result.awarded >= 1
        assert has_grant("p1", "award_back_to_back", r)
        assert not has_grant("stale", "award_back_to_back", r)

    def test_second_sweep_awards_nothing(self, r, attend, frozen_now):
        for _ in range(5):
            attend()
        first = sweep(now=frozen_now, r=r)
        assert first.awarded > 0

        second = sweep(now=frozen_now, r=r)
        assert second == SweepResult(checked=1, awarded=0)

    def test_nobody_active(self, r, frozen_now):
        assert sweep(now=frozen_now, r=r).to_dict() == {"checked": 0, "awarded": 0}

    def test_listing_failure(self, r, frozen_now):
        with patch("clubawards.engine.sweep.get_active_person_ids",
                   side_effect=redis.ConnectionError("down")):
            assert sweep(now=frozen_now, r=r) == SweepResult()

    def test_logs_summary(self, r, attend, frozen_now, caplog):
        attend()
        attend()
        with caplog.at_level(logging.INFO, logger="clubawards.engine.sweep"):
            result = sweep(now=frozen_now, r=r)

        [record] = [rec for rec in caplog.records if rec.name == "clubawards.engine.sweep"]
        assert record.msg == "Award sweep: checked %d members, granted %d awards"
        assert record.args == (result.checked, result.awarded)
