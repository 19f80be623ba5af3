"""Tests for single-flight request coalescing."""
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from nowplaying.core.coalescer import RequestCoalescer


def test_concurrent_callers_share_one_producer_call():
    coalescer = RequestCoalescer()
    started = threading.Event()
    release = threading.Event()
    calls = []
    result = object()

    def producer():
        calls.append(1)
        started.set()
        release.wait(timeout=5)
        return result

    with ThreadPoolExecutor(max_workers=1) as pool:
        leader = pool.submit(lambda: coalescer.fetch_once("me", producer).result())
        assert started.wait(timeout=5)
        # Callers arriving mid-flight get the pending future back without blocking
        followers = [coalescer.fetch_once("me", producer) for _ in range(7)]
        assert all(not f.done() for f in followers)
        release.set()
        results = [leader.result(timeout=5)] + [f.result(timeout=5) for f in followers]

    assert len(calls) == 1
    assert len({id(f) for f in followers}) == 1
    assert all(r is result for r in results)
    assert not coalescer.in_flight("me")


def test_failure_is_shared_and_registration_cleared():
    coalescer = RequestCoalescer()

    def failing():
        raise RuntimeError("boom")

    future = coalescer.fetch_once("me", failing)
    with pytest.raises(RuntimeError):
        future.result()
    assert not coalescer.in_flight("me")

    # Next call starts a fresh producer instead of reusing the failed one
    assert coalescer.fetch_once("me", lambda: "ok").result() == "ok"


def test_registration_removed_before_waiters_resolve():
    coalescer = RequestCoalescer()
    started = threading.Event()
    release = threading.Event()
    seen = []

    def producer():
        started.set()
        release.wait(timeout=5)
        return "value"

    with ThreadPoolExecutor(max_workers=1) as pool:
        leader = pool.submit(lambda: coalescer.fetch_once("me", producer).result())
        assert started.wait(timeout=5)
        pending = coalescer.fetch_once("me", producer)
        pending.add_done_callback(lambda f: seen.append(coalescer.in_flight("me")))
        release.set()
        assert leader.result(timeout=5) == "value"

    assert seen == [False]


def test_distinct_keys_do_not_coalesce():
    coalescer = RequestCoalescer()
    calls = []

    def producer(tag):
        calls.append(tag)
        return tag

    assert coalescer.fetch_once("a", lambda: producer("a")).result() == "a"
    assert coalescer.fetch_once("b", lambda: producer("b")).result() == "b"
    assert calls == ["a", "b"]
