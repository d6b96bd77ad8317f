import threading
import time

import pytest

from traefik_exposer.cache import STATE_EMPTY, STATE_FRESH, STATE_STALE, DiscoveryCache
from traefik_exposer.errors import RuntimeQueryError

from .conftest import FakeRuntime, snapshot


class BlockingRuntime(FakeRuntime):
    """list_containers blocks until released, to hold a refresh in flight"""

    def __init__(self, containers=None):
        super().__init__(containers)
        self.entered = threading.Event()
        self.release = threading.Event()
        self._calls_lock = threading.Lock()

    def list_containers(self):
        with self._calls_lock:
            self.list_calls += 1
        self.entered.set()
        assert self.release.wait(5), "refresh was never released"
        return list(self.containers)


def test_initial_state_is_empty(runtime, logger):
    cache = DiscoveryCache(runtime, logger)

    assert cache.state == STATE_EMPTY
    assert cache.peek() is None
    assert runtime.list_calls == 0


def test_first_read_refreshes_then_serves_from_cache(logger):
    runtime = FakeRuntime([snapshot('web')])
    cache = DiscoveryCache(runtime, logger)

    first = cache.get_snapshot()
    second = cache.get_snapshot()

    assert first == second
    assert [c.name for c in first] == ['web']
    assert runtime.list_calls == 1
    assert cache.state == STATE_FRESH
    assert cache.refresh_count == 1


def test_mark_stale_triggers_full_refresh(logger):
    runtime = FakeRuntime([snapshot('web')])
    cache = DiscoveryCache(runtime, logger)
    cache.get_snapshot()

    runtime.containers = [snapshot('api')]
    cache.mark_stale()
    assert cache.state == STATE_STALE

    assert [c.name for c in cache.get_snapshot()] == ['api']
    assert runtime.list_calls == 2
    assert cache.state == STATE_FRESH


def test_repeated_mark_stale_coalesces_into_one_refresh(logger):
    runtime = FakeRuntime([snapshot('web')])
    cache = DiscoveryCache(runtime, logger)
    cache.get_snapshot()

    for _ in range(5):
        cache.mark_stale()
    cache.get_snapshot()
    cache.get_snapshot()

    assert runtime.list_calls == 2


def test_refresh_failure_discards_snapshot_and_retries(logger):
    runtime = FakeRuntime([snapshot('web')])
    cache = DiscoveryCache(runtime, logger)
    cache.get_snapshot()

    cache.mark_stale()
    runtime.fail_with = RuntimeQueryError("daemon gone")
    with pytest.raises(RuntimeQueryError):
        cache.get_snapshot()

    assert cache.state == STATE_EMPTY
    assert cache.peek() is None

    # Still failing: the old snapshot is never served
    with pytest.raises(RuntimeQueryError):
        cache.get_snapshot()
    assert runtime.list_calls == 3

    runtime.fail_with = None
    assert [c.name for c in cache.get_snapshot()] == ['web']
    assert runtime.list_calls == 4
    assert cache.state == STATE_FRESH


def test_refresh_failure_on_empty_cache(runtime, logger):
    runtime.fail_with = RuntimeQueryError("boom")
    cache = DiscoveryCache(runtime, logger)

    with pytest.raises(RuntimeQueryError):
        cache.get_snapshot()

    assert cache.state == STATE_EMPTY
    assert cache.is_stale


def test_snapshot_is_replaced_not_mutated(logger):
    runtime = FakeRuntime([snapshot('web')])
    cache = DiscoveryCache(runtime, logger)
    before = cache.get_snapshot()

    runtime.containers = [snapshot('api'), snapshot('db')]
    cache.mark_stale()
    after = cache.get_snapshot()

    assert [c.name for c in before] == ['web']
    assert [c.name for c in after] == ['api', 'db']
    assert isinstance(after, tuple)


def test_concurrent_readers_share_one_refresh(logger):
    runtime = BlockingRuntime([snapshot('web')])
    cache = DiscoveryCache(runtime, logger)
    results = []

    def read():
        results.append(cache.get_snapshot())

    first = threading.Thread(target=read)
    first.start()
    assert runtime.entered.wait(5)

    others = [threading.Thread(target=read) for _ in range(4)]
    for thread in others:
        thread.start()
    time.sleep(0.1)

    runtime.release.set()
    for thread in [first] + others:
        thread.join(5)

    assert runtime.list_calls == 1
    assert len(results) == 5
    assert all(result == results[0] for result in results)


def test_mark_stale_during_refresh_does_not_block_and_forces_next_refresh(logger):
    runtime = BlockingRuntime([snapshot('web')])
    cache = DiscoveryCache(runtime, logger)

    reader = threading.Thread(target=cache.get_snapshot)
    reader.start()
    assert runtime.entered.wait(5)

    started = time.monotonic()
    cache.mark_stale()
    assert time.monotonic() - started < 1

    runtime.release.set()
    reader.join(5)

    assert cache.state == STATE_STALE
    cache.get_snapshot()
    assert runtime.list_calls == 2
    assert cache.state == STATE_FRESH


def test_invalidate_empties_cache(logger):
    runtime = FakeRuntime([snapshot('web')])
    cache = DiscoveryCache(runtime, logger)
    cache.get_snapshot()

    cache.invalidate()

    assert cache.state == STATE_EMPTY
    cache.get_snapshot()
    assert runtime.list_calls == 2
