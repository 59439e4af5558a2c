"""
SSE session registry.

Maps a session identifier to the live connection that owns it (the SDK SSE
transport plus the MCP server running over it) so that out-of-band
``POST /message/{session_id}`` requests reach the right stream.

Lifecycle of an entry:
- ``register`` when a client opens ``GET /sse``
- ``lookup`` on every routed message; this is the only activity signal and
  refreshes ``last_activity``
- ``remove`` when the stream closes, or ``sweep`` once the entry has been
  idle longer than ``idle_timeout``

All mutations are plain synchronous code running on the event loop, so the
background sweep can never interleave with a register/lookup/remove.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from loguru import logger

Clock = Callable[[], float]

DEFAULT_IDLE_TIMEOUT_SECONDS = 30 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60


class SessionExistsError(ValueError):
    """A session with this identifier is already registered."""


@dataclass(slots=True)
class SessionEntry:
    session_id: str
    transport: Any
    server: Any
    created_at: float
    last_activity: float

    def idle_for(self, now: float) -> float:
        return now - self.last_activity


class SessionRegistry:
    """In-memory registry of live SSE sessions with idle eviction.

    The sweep runs as an asyncio task owned by the registry: ``start()`` (or
    ``async with registry``) launches it, ``shutdown()`` cancels it and drops
    every entry. ``clock`` defaults to ``time.monotonic`` and can be replaced
    to drive expiry in tests.
    """

    def __init__(
        self,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT_SECONDS,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        if idle_timeout <= 0 or sweep_interval <= 0:
            raise ValueError("idle_timeout and sweep_interval must be positive.")
        self._idle_timeout = idle_timeout
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._sessions: dict[str, SessionEntry] = {}
        self._sweep_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def register(self, session_id: str, transport: Any, server: Any) -> SessionEntry:
        if session_id in self._sessions:
            raise SessionExistsError(f"Session {session_id} is already registered.")

        now = self._clock()
        entry = SessionEntry(
            session_id=session_id,
            transport=transport,
            server=server,
            created_at=now,
            last_activity=now,
        )
        self._sessions[session_id] = entry
        logger.info(f"[Registry] Registered session {session_id} (total: {len(self)})")
        return entry

    def lookup(self, session_id: str) -> SessionEntry | None:
        """Return the entry and mark it active, or None for unknown/expired ids."""
        entry = self._sessions.get(session_id)
        if entry is not None:
            entry.last_activity = self._clock()
        return entry

    def remove(self, session_id: str) -> bool:
        """Drop a session. Returns False when it was not registered."""
        if self._sessions.pop(session_id, None) is None:
            return False
        logger.info(f"[Registry] Removed session {session_id} (remaining: {len(self)})")
        return True

    def sweep(self) -> list[str]:
        """Remove every session idle for longer than the idle timeout."""
        now = self._clock()
        stale = [
            entry
            for entry in self._sessions.values()
            if entry.idle_for(now) > self._idle_timeout
        ]
        for entry in stale:
            logger.info(
                f"[Registry] Cleaning up stale session {entry.session_id} "
                f"(inactive for {round(entry.idle_for(now) / 60)}min)"
            )
            self.remove(entry.session_id)
        return [entry.session_id for entry in stale]

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[str]:
        """Iterate over a snapshot of the registered session ids."""
        return iter(list(self._sessions))

    # ------------------------------------------------------------------
    # Background sweep
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self.running:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info(
            f"[Registry] Sweep started (every {self._sweep_interval:g}s, "
            f"idle timeout {self._idle_timeout:g}s)"
        )

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("[Registry] Sweep failed")

    async def shutdown(self) -> None:
        """Stop the sweep task and forget every session."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        self._sessions.clear()
        logger.info("[Registry] Shut down")

    async def __aenter__(self) -> SessionRegistry:
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()
