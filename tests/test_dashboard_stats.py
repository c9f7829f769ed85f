import asyncio

import httpx

from church_admin.services.dashboard_stats import (
    LOAD_ERROR,
    DashboardStatsStore,
    default_stats,
    http_stats_fetcher,
)

STATS = {"totalMembers": 12, "totalMinistries": 3, "upcomingEvents": 0, "recentRegistrations": 2}


def test_refresh_stores_stats_and_notifies_twice():
    async def fetch():
        return {"success": True, "stats": STATS}

    store = DashboardStatsStore(fetch, interval_s=60)
    seen = []
    store.subscribe(lambda: seen.append(store.loading))

    asyncio.run(store.refresh())

    assert store.stats == STATS
    assert store.error is None
    assert store.loading is False
    assert seen == [True, False]


def test_failed_fetch_resets_to_defaults():
    async def fetch():
        raise httpx.ConnectError("down")

    store = DashboardStatsStore(fetch, interval_s=60)
    asyncio.run(store.refresh())

    assert store.stats == default_stats()
    assert store.error == LOAD_ERROR
    assert store.loading is False


def test_unsuccessful_payload_sets_error():
    async def fetch():
        return {"success": False, "error": "boom"}

    store = DashboardStatsStore(fetch, interval_s=60)
    asyncio.run(store.refresh())
    assert store.error == LOAD_ERROR
    assert store.stats == default_stats()


def test_unsubscribe_and_failing_subscriber():
    async def fetch():
        return {"success": True, "stats": STATS}

    store = DashboardStatsStore(fetch, interval_s=60)
    calls = []

    def broken():
        raise RuntimeError("widget crashed")

    store.subscribe(broken)
    unsubscribe = store.subscribe(lambda: calls.append(1))
    asyncio.run(store.refresh())
    assert len(calls) == 2

    unsubscribe()
    asyncio.run(store.refresh())
    assert len(calls) == 2


def test_polling_start_stop():
    fetches = []

    async def fetch():
        fetches.append(1)
        return {"success": True, "stats": STATS}

    async def scenario():
        store = DashboardStatsStore(fetch, interval_s=0.01)
        store.start()
        store.start()
        assert store.running
        await asyncio.sleep(0.05)
        await store.stop()
        return store

    store = asyncio.run(scenario())
    assert not store.running
    assert len(fetches) >= 2


def test_http_fetcher_sends_no_cache_headers():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/dashboard/stats"
        assert request.headers["cache-control"] == "no-cache, no-store, must-revalidate"
        return httpx.Response(200, json={"success": True, "stats": STATS})

    fetch = http_stats_fetcher("http://api.test/", transport=httpx.MockTransport(handler))
    assert asyncio.run(fetch()) == {"success": True, "stats": STATS}


def test_http_fetcher_error_status_marks_store_failed():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"success": False})

    store = DashboardStatsStore(http_stats_fetcher("http://api.test", transport=httpx.MockTransport(handler)))
    asyncio.run(store.refresh())
    assert store.error == LOAD_ERROR
