import asyncio

import pytest

from goodlife.domain.models import Domain, DomainPlan, Goal
from goodlife.services.async_helper import run_async
from goodlife.services.notifications import NotificationCenter, NotificationLevel
from goodlife.utils.simple_cache import DomainCollectionCache, TTLCache, domain_collection_key


async def _double(value):
    await asyncio.sleep(0)
    return value * 2


def test_run_async_outside_and_inside_an_event_loop():
    assert run_async(_double(2)) == 4
    assert run_async(_double)(5) == 10

    async def nested():
        return run_async(_double(21))

    assert asyncio.run(nested()) == 42

    with pytest.raises(TypeError):
        run_async(42)


def test_notification_listeners_are_isolated():
    center = NotificationCenter(history_size=2)
    received = []

    def broken(_notification):
        raise RuntimeError("listener bug")

    center.subscribe(broken)
    unsubscribe = center.subscribe(received.append)

    center.error("Failed to move goal. Please try again.", domain=Domain.SAFE)
    center.warning("Could not refresh the plan from the server.")
    unsubscribe()
    center.success("Saved")

    assert [n.level for n in received] == [NotificationLevel.ERROR, NotificationLevel.WARNING]
    assert received[0].domain is Domain.SAFE
    assert [n.message for n in center.history] == ["Could not refresh the plan from the server.", "Saved"]


def test_ttl_cache_expiry():
    now = [100.0]
    cache = TTLCache(clock=lambda: now[0])
    assert domain_collection_key(7) == "plans:7:domains"

    cache.set("k", "x", ttl_seconds=60)
    now[0] += 59
    assert cache.get("k") == "x"
    now[0] += 1
    assert cache.get("k") is None
    assert len(cache) == 0


def test_domain_collection_cache_hands_out_copies():
    cache = DomainCollectionCache(ttl_seconds=60)
    original = DomainPlan(plan_id=7, domain=Domain.SAFE, id=1)
    cache.put(7, [original])

    first = cache.get(7)
    first[0].goals.append(Goal(id="g", description="Stay safe online", domain_id=Domain.SAFE))
    assert cache.get(7)[0].goals == []
    assert original.goals == []

    cache.invalidate(7)
    assert cache.get(7) is None


def test_domain_collection_cache_drops_reads_older_than_invalidation():
    cache = DomainCollectionCache(ttl_seconds=60)
    stale_read = cache.generation(7)
    cache.invalidate(7)

    fresh_read = cache.generation(7)
    assert cache.put(7, [DomainPlan(plan_id=7, domain=Domain.SAFE, id=2)], generation=fresh_read)
    assert not cache.put(7, [DomainPlan(plan_id=7, domain=Domain.SAFE, id=1)], generation=stale_read)
    assert [dp.id for dp in cache.get(7)] == [2]
