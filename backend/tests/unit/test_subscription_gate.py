"""
Unit tests for the SubscriptionGate service.

Store interactions go through the in-memory quota store, or an AsyncMock
when a fault has to be injected.
"""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from core.domain.subscription import subscription_status_path, usage_counter_path
from core.exceptions import StorageError
from core.plans import FREE_TIER_LIMIT
from infrastructure.store.memory_store import InMemoryQuotaStore
from services.subscription_gate import SubscriptionGate

pytestmark = pytest.mark.asyncio

NAMESPACE = "gate-tests"
USER = "u1"


def status_path(user_id: str) -> str:
    return subscription_status_path(NAMESPACE, user_id)


def usage_path(user_id: str) -> str:
    return usage_counter_path(NAMESPACE, user_id)


def _gate(store, limit: int = FREE_TIER_LIMIT) -> SubscriptionGate:
    return SubscriptionGate(store=store, namespace=NAMESPACE, free_tier_limit=limit)


def _store(status: dict | None = None, count: int | None = None) -> InMemoryQuotaStore:
    documents = {}
    if status is not None:
        documents[status_path(USER)] = status
    if count is not None:
        documents[usage_path(USER)] = {"count": count}
    return InMemoryQuotaStore(documents)


class TestProTier:
    """Active pro subscriptions."""

    @pytest.mark.parametrize("count", [0, 4, 5, 50])
    async def test_active_pro_always_admitted(self, count):
        store = _store({"tier": "pro", "status": "active"}, count=count)

        decision = await _gate(store).evaluate(USER)

        assert decision.can_proceed is True
        assert decision.reason == "Pro subscription active."

    async def test_active_pro_does_not_touch_counter(self):
        store = _store({"tier": "pro", "status": "active"}, count=3)

        await _gate(store).evaluate(USER)

        assert store.snapshot()[usage_path(USER)] == {"count": 3}

    async def test_active_pro_without_usage_doc_creates_nothing(self):
        store = _store({"tier": "pro", "status": "active"})

        await _gate(store).evaluate(USER)

        assert usage_path(USER) not in store.snapshot()

    @pytest.mark.parametrize("status", ["cancelled", "expired", "unknown", "past_due"])
    async def test_inactive_pro_is_treated_as_free(self, status):
        store = _store({"tier": "pro", "status": status}, count=FREE_TIER_LIMIT)

        decision = await _gate(store).evaluate(USER)

        assert decision.can_proceed is False
        assert "Please upgrade to Pro." in decision.reason

    async def test_inactive_pro_under_limit_is_charged(self):
        store = _store({"tier": "pro", "status": "cancelled"}, count=1)

        decision = await _gate(store).evaluate(USER)

        assert decision.can_proceed is True
        assert store.snapshot()[usage_path(USER)]["count"] == 2


class TestFreeTier:
    """Free-tier counting."""

    @pytest.mark.parametrize("count", range(FREE_TIER_LIMIT))
    async def test_under_limit_admits_and_increments(self, count):
        store = _store({"tier": "free", "status": "unknown"}, count=count)

        decision = await _gate(store).evaluate(USER)

        assert decision.can_proceed is True
        assert decision.reason == f"Free tier usage: {count + 1}/{FREE_TIER_LIMIT} analyses used."
        assert store.snapshot()[usage_path(USER)]["count"] == count + 1

    async def test_increment_stamps_last_use(self):
        store = _store(count=2)

        await _gate(store).evaluate(USER)

        assert isinstance(store.snapshot()[usage_path(USER)]["last_use"], datetime)

    @pytest.mark.parametrize("count", [FREE_TIER_LIMIT, FREE_TIER_LIMIT + 1, 40])
    async def test_at_or_over_limit_denies_without_write(self, count):
        store = _store({"tier": "free"}, count=count)
        before = store.snapshot()

        decision = await _gate(store).evaluate(USER)

        assert decision.can_proceed is False
        assert decision.reason.startswith(
            f"Free tier limit of {FREE_TIER_LIMIT} analyses exceeded. Please upgrade to Pro."
        )
        assert store.snapshot() == before

    async def test_limit_reached_message_shows_usage(self):
        store = _store({"tier": "free"}, count=5)

        decision = await _gate(store).evaluate(USER)

        assert decision.can_proceed is False
        assert "5/5" in decision.reason

    async def test_fresh_subject_gets_defaults_and_first_charge(self):
        store = InMemoryQuotaStore()

        decision = await _gate(store).evaluate(USER)

        assert decision.can_proceed is True
        assert decision.reason == "Free tier usage: 1/5 analyses used."
        assert store.snapshot()[usage_path(USER)]["count"] == 1
        assert status_path(USER) not in store.snapshot()

    async def test_sixth_request_is_denied(self):
        store = InMemoryQuotaStore()
        gate = _gate(store)

        decisions = [await gate.evaluate(USER) for _ in range(FREE_TIER_LIMIT + 1)]

        assert [d.can_proceed for d in decisions] == [True] * FREE_TIER_LIMIT + [False]
        assert store.snapshot()[usage_path(USER)]["count"] == FREE_TIER_LIMIT

    async def test_custom_limit(self):
        store = _store(count=9)

        decision = await _gate(store, limit=10).evaluate(USER)

        assert decision.reason == "Free tier usage: 10/10 analyses used."

    async def test_zero_limit_denies_everyone_free(self):
        decision = await _gate(InMemoryQuotaStore(), limit=0).evaluate(USER)

        assert decision.can_proceed is False

    async def test_unknown_tier_value_is_free(self):
        store = _store({"tier": "platinum", "status": "active"}, count=5)

        decision = await _gate(store).evaluate(USER)

        assert decision.can_proceed is False

    async def test_users_are_counted_independently(self):
        store = InMemoryQuotaStore({usage_path("other"): {"count": 5}})

        decision = await _gate(store).evaluate(USER)

        assert decision.can_proceed is True
        assert store.snapshot()[usage_path("other")] == {"count": 5}


class TestInputAndFailures:
    """Missing subject and storage faults."""

    @pytest.mark.parametrize("subject", [None, ""])
    async def test_missing_subject_denied_without_store_access(self, subject):
        store = AsyncMock()

        decision = await _gate(store).evaluate(subject)

        assert decision.can_proceed is False
        assert decision.reason == "User ID is required for authorization."
        store.get.assert_not_called()
        store.merge_set.assert_not_called()

    async def test_read_failure_denies(self, failing_store):
        decision = await _gate(failing_store).evaluate(USER)

        assert decision.can_proceed is False
        assert decision.reason == "Internal server error during authorization check."

    async def test_write_failure_denies(self):
        store = AsyncMock()
        store.get.return_value = None
        store.merge_set.side_effect = StorageError("write failed")

        decision = await _gate(store).evaluate(USER)

        assert decision.can_proceed is False
        assert decision.reason == "Internal server error during authorization check."
        store.merge_set.assert_awaited_once()

    async def test_corrupt_usage_document_denies(self):
        store = InMemoryQuotaStore({usage_path(USER): {"count": "lots"}})

        decision = await _gate(store).evaluate(USER)

        assert decision.can_proceed is False
        assert decision.reason == "Internal server error during authorization check."

    async def test_reads_both_documents(self):
        store = AsyncMock()
        store.get.return_value = None

        await _gate(store).evaluate(USER)

        read_paths = {call.args[0] for call in store.get.await_args_list}
        assert read_paths == {status_path(USER), usage_path(USER)}
        store.merge_set.assert_awaited_once()
        path, fields = store.merge_set.await_args.args
        assert path == usage_path(USER)
        assert fields["count"] == 1


class TestConcurrency:
    """Documented behaviour of racing evaluations for one user."""

    async def test_concurrent_requests_lose_an_increment(self):
        backing = _store(count=0)
        all_reads_started = asyncio.Event()
        reads = 0

        async def blocking_get(path):
            nonlocal reads
            reads += 1
            # Two evaluations issue two reads each
            if reads == 4:
                all_reads_started.set()
            await all_reads_started.wait()
            return await backing.get(path)

        store = AsyncMock()
        store.get.side_effect = blocking_get
        store.merge_set.side_effect = backing.merge_set
        gate = _gate(store)

        decisions = await asyncio.gather(gate.evaluate(USER), gate.evaluate(USER))

        assert all(d.can_proceed for d in decisions)
        assert [d.reason for d in decisions] == ["Free tier usage: 1/5 analyses used."] * 2
        assert store.merge_set.await_count == 2
        assert backing.snapshot()[usage_path(USER)]["count"] == 1
