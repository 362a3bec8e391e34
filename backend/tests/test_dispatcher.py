"""Tests for clubawards.engine.dispatcher — routing, idempotency, fault isolation."""

import pytest
import fakeredis
import redis
import typing
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from unittest.mock import patch

from clubawards.engine.dispatcher import evaluate, evaluate_raw, TRIGGER_EVALUATORS
from clubawards.engine.evaluators import check_milestone_awards
from clubawards.engine.ledger import has_grant, list_grants
from clubawards.models.history import (
    EventRecord, RsvpRecord, PERSON_RSVPS_PREFIX, PERSON_YES_RSVPS_PREFIX,
)
from clubawards.models.triggers import RsvpTrigger, ScheduledTrigger, TriggerContext


def _rsvp(event, **overrides) -> RsvpTrigger:
    defaults = {
        "event_id": event.event_id,
        "response": "yes",
        "event_kind": event.kind,
        "event_starts_at": event.starts_at,
    }
    defaults.update(overrides)
    return RsvpTrigger(**defaults)


def _boom(*args, **kwargs):
    raise RuntimeError("evaluator exploded")


# ═══════════════════════════════════════════════════════════════════════════
# Routing
# ═══════════════════════════════════════════════════════════════════════════


class TestEvaluate:
    def test_every_trigger_kind_is_routed(self):
        union = typing.get_args(TriggerContext)[0]
        assert set(typing.get_args(union)) == set(TRIGGER_EVALUATORS)

    def test_rsvp_trigger(self, r, attend, frozen_now):
        event = attend()
        assert evaluate("p1", _rsvp(event), now=frozen_now, r=r) == ["award_first_dip"]

    def test_cross_cutting_checks_run_for_every_trigger(self, r, attend, frozen_now):
        attend()
        attend()
        granted = evaluate("p1", ScheduledTrigger(), now=frozen_now, r=r)
        assert "award_back_to_back" in granted

    def test_no_trigger_runs_cross_cutting_only(self, r, attend, frozen_now):
        attend()
        attend()
        granted = evaluate("p1", None, now=frozen_now, r=r)
        assert "award_back_to_back" in granted
        assert "award_first_dip" not in granted

    def test_unknown_trigger_type(self, r, attend, frozen_now):
        attend()
        attend()
        assert "award_back_to_back" in evaluate("p1", object(), now=frozen_now, r=r)

    def test_uses_default_client(self, r, attend, frozen_now):
        event = attend()
        with patch("clubawards.engine.dispatcher._get_redis", return_value=r):
            assert evaluate("p1", _rsvp(event), now=frozen_now) == ["award_first_dip"]


# ═══════════════════════════════════════════════════════════════════════════
# Idempotency & Monotonicity
# ═══════════════════════════════════════════════════════════════════════════


class TestIdempotency:
    def test_second_evaluation_grants_nothing(self, r, attend, frozen_now):
        for _ in range(5):
            attend()
        event = attend()
        first = evaluate("p1", _rsvp(event), now=frozen_now, r=r)
        assert "award_sessions_5" in first
        assert evaluate("p1", _rsvp(event), now=frozen_now, r=r) == []

    def test_grants_survive_history_changes(self, r, attend, frozen_now):
        attend()
        attend()
        evaluate("p1", None, now=frozen_now, r=r)
        assert has_grant("p1", "award_back_to_back", r)

        r.delete(f"{PERSON_RSVPS_PREFIX}p1")
        r.delete(f"{PERSON_YES_RSVPS_PREFIX}p1")
        assert evaluate("p1", None, now=frozen_now, r=r) == []
        assert has_grant("p1", "award_back_to_back", r)

    def test_concurrent_triggers_grant_once(self, frozen_now):
        server = fakeredis.FakeServer()
        setup = fakeredis.FakeRedis(server=server, decode_responses=True)
        event = EventRecord(event_id="e1", starts_at_utc=(frozen_now - timedelta(days=1)).isoformat(),
                            location="K2 Crawley")
        event.to_redis(setup)
        RsvpRecord(event_id="e1", person_id="p1",
                   responded_at=(frozen_now - timedelta(days=4)).isoformat()).to_redis(setup)

        def run(_):
            client = fakeredis.FakeRedis(server=server, decode_responses=True)
            return evaluate("p1", _rsvp(event), now=frozen_now, r=client)

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(run, range(8)))

        assert sum(result.count("award_first_dip") for result in results) == 1
        assert [g.award_id for g in list_grants("p1", r=setup)] == ["award_first_dip"]


# ═══════════════════════════════════════════════════════════════════════════
# Fault Isolation
# ═══════════════════════════════════════════════════════════════════════════


class TestFaultIsolation:
    def test_failing_evaluator_does_not_stop_others(self, r, attend, frozen_now):
        attend()
        event = attend()
        with patch.dict("clubawards.engine.dispatcher.TRIGGER_EVALUATORS", {RsvpTrigger: _boom}):
            granted = evaluate("p1", _rsvp(event), now=frozen_now, r=r)
        assert "award_back_to_back" in granted

    def test_failing_cross_cutting_check(self, r, attend, frozen_now):
        for _ in range(5):
            attend()
        with patch("clubawards.engine.dispatcher.ALWAYS_RUN", (_boom, check_milestone_awards)):
            granted = evaluate("p1", None, now=frozen_now, r=r)
        assert granted == ["award_sessions_5"]

    def test_ledger_fault_is_not_raised(self, r, attend, frozen_now):
        event = attend()
        with patch("clubawards.engine.evaluators.insert_if_absent",
                   side_effect=redis.ConnectionError("down")):
            assert evaluate("p1", _rsvp(event), now=frozen_now, r=r) == []
        assert not has_grant("p1", "award_first_dip", r)

    def test_store_down_returns_empty(self, frozen_now):
        broken = fakeredis.FakeRedis(decode_responses=True)
        with patch.object(broken, "hexists", side_effect=redis.ConnectionError("down")):
            assert evaluate("p1", None, now=frozen_now, r=broken) == []

    def test_bad_connection_settings_return_empty(self, frozen_now):
        with patch("clubawards.engine.dispatcher._get_redis",
                   side_effect=ValueError("Redis URL must specify a scheme")):
            assert evaluate("p1", None, now=frozen_now) == []

    def test_unreachable_default_client_returns_empty(self, frozen_now):
        with patch("clubawards.engine.dispatcher._get_redis",
                   side_effect=redis.ConnectionError("down")):
            assert evaluate("p1", ScheduledTrigger(), now=frozen_now) == []


# ═══════════════════════════════════════════════════════════════════════════
# Raw Payloads
# ═══════════════════════════════════════════════════════════════════════════


class TestEvaluateRaw:
    def test_valid_context(self, r, attend, frozen_now):
        event = attend()
        granted = evaluate_raw("p1", "rsvp", {"event_id": event.event_id, "response": "yes"},
                               now=frozen_now, r=r)
        assert granted == ["award_first_dip"]

    def test_malformed_context_runs_cross_cutting_only(self, r, attend, frozen_now):
        attend()
        event = attend()
        granted = evaluate_raw("p1", "rsvp", {"event_id": event.event_id}, now=frozen_now, r=r)
        assert "award_back_to_back" in granted
        assert "award_first_dip" not in granted

    def test_unknown_kind(self, r, frozen_now):
        assert evaluate_raw("p1", "birthday", None, now=frozen_now, r=r) == []
