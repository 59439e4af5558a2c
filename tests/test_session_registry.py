import asyncio

import pytest

from open_meteo_mcp.transports.session_registry import SessionExistsError, SessionRegistry


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock) -> SessionRegistry:
    return SessionRegistry(idle_timeout=1800, sweep_interval=300, clock=clock)


def test_lookup_returns_registered_transport(registry):
    transport, server = object(), object()
    registry.register("abc", transport, server)

    entry = registry.lookup("abc")

    assert entry is not None
    assert entry.transport is transport
    assert entry.server is server
    assert len(registry) == 1


def test_lookup_refreshes_activity(registry, clock):
    registry.register("abc", object(), object())
    clock.advance(60)

    entry = registry.lookup("abc")

    assert entry.last_activity == clock.now
    assert entry.created_at == clock.now - 60


def test_lookup_unknown_session(registry):
    assert registry.lookup("missing") is None


def test_duplicate_session_id_is_rejected(registry):
    registry.register("abc", object(), object())

    with pytest.raises(SessionExistsError):
        registry.register("abc", object(), object())


def test_remove_is_idempotent(registry):
    registry.register("abc", object(), object())

    assert registry.remove("abc") is True
    assert registry.remove("abc") is False
    assert registry.remove("never-existed") is False
    assert len(registry) == 0


def test_sessions_are_independent(registry):
    first, second = object(), object()
    registry.register("one", first, object())
    registry.register("two", second, object())

    registry.remove("one")

    assert registry.lookup("one") is None
    assert registry.lookup("two").transport is second


def test_sweep_removes_idle_sessions_only(registry, clock):
    registry.register("idle", object(), object())
    registry.register("busy", object(), object())
    clock.advance(1700)
    registry.lookup("busy")
    clock.advance(200)

    removed = registry.sweep()

    assert removed == ["idle"]
    assert "idle" not in registry
    assert "busy" in registry


def test_sweep_keeps_session_at_exact_timeout(registry, clock):
    registry.register("abc", object(), object())
    clock.advance(1800)

    assert registry.sweep() == []
    assert "abc" in registry


@pytest.mark.parametrize("kwargs", [{"idle_timeout": 0}, {"sweep_interval": -1}])
def test_rejects_non_positive_intervals(kwargs):
    with pytest.raises(ValueError):
        SessionRegistry(**kwargs)


@pytest.mark.asyncio
async def test_background_sweep_evicts_and_shutdown_clears(clock):
    registry = SessionRegistry(idle_timeout=10, sweep_interval=0.01, clock=clock)
    registry.start()
    assert registry.running

    registry.register("stale", object(), object())
    clock.advance(11)
    await asyncio.sleep(0.05)
    assert "stale" not in registry

    registry.register("fresh", object(), object())
    await registry.shutdown()

    assert not registry.running
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_context_manager_runs_sweep(clock):
    registry = SessionRegistry(idle_timeout=10, sweep_interval=60, clock=clock)

    async with registry:
        assert registry.running
        registry.register("abc", object(), object())

    assert not registry.running
    assert len(registry) == 0
