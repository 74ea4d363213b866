"""
runner.py - Autonomous Ecosystem Runner

Owns the authoritative EcosystemState and advances it on a background
thread, independent of any UI. Other contexts read snapshots, subscribe to
post-step notifications, or hand in a replacement state via update_state;
they never step a copy of their own.

Cadences (all fire on the first tick, then whenever more than the interval
has elapsed since they last fired):
    step     every tick_interval_ms
    save     every save_interval_ms      (fire-and-forget, worker thread)
    evolve   every evolve_interval_ms    (guardian intervention)
    codex    every codex_interval_ms     (flavor text)
"""

import copy
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from enum import Enum
from typing import Callable, List, Optional

from config_schema import EcosystemConfig
from ecosystem.cycle import initialize_state, step
from ecosystem.guardian import evolve, generate_flavor_entry
from ecosystem.registry import EntityRegistry
from ecosystem.rng import NumpyRandom, RandomSource
from ecosystem.types_config import get_preset
from ecosystem.types_state import EcosystemState
from receipts import ReceiptJournal, state_hash
from storage import StorageAdapter

logger = logging.getLogger(__name__)

__all__ = ["AutonomousRunner", "RunnerStatus", "Subscriber"]

Subscriber = Callable[[EcosystemState], None]


class RunnerStatus(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    FALLBACK = "fallback"
    ERROR = "error"


class AutonomousRunner:
    """
    Timer-driven stepper with periodic persistence.

    Args:
        storage: Persistence adapter for seeding and periodic saves
        config: EcosystemConfig with cadences and mode
        rng: Random source for the stepper (seeded from config by default)
        registry: Entity registry shared with renderers
        clock: Monotonic seconds, injectable for cadence tests
        journal: Receipt journal (bounded, optionally mirrored to JSONL)
    """

    def __init__(
        self,
        storage: StorageAdapter,
        config: Optional[EcosystemConfig] = None,
        rng: Optional[RandomSource] = None,
        registry: Optional[EntityRegistry] = None,
        clock: Callable[[], float] = time.monotonic,
        journal: Optional[ReceiptJournal] = None,
    ):
        self.storage = storage
        self.config = config or EcosystemConfig()
        self.rng = rng if rng is not None else NumpyRandom(self.config.seed)
        self.registry = registry if registry is not None else EntityRegistry()
        self.journal = journal if journal is not None else ReceiptJournal(path=self.config.journal_path)
        self._clock = clock

        self._state: Optional[EcosystemState] = None
        self._lock = threading.RLock()
        self._subscribers: List[Subscriber] = []
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ecosystem-save")
        self._pending: List[Future] = []

        self._last_save: Optional[float] = None
        self._last_evolve: Optional[float] = None
        self._last_codex: Optional[float] = None
        self.status = RunnerStatus.INACTIVE

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self, initial_state: Optional[EcosystemState] = None) -> None:
        """
        Seed the state and launch the loop. A second call is a no-op.

        Seeding order: persisted state, then ``initial_state``, then a fresh
        ecosystem from the configured preset.
        """
        if self.status in (RunnerStatus.ACTIVE, RunnerStatus.FALLBACK):
            return

        with self._lock:
            self._state = self._seed(initial_state)
            cycle = self._state.cycle

        self.journal.record("runner_start", {"cycle": cycle, "background": self.config.background})
        logger.info("Ecosystem runner started at cycle %d", cycle)

        if not self.config.background:
            self._enter_fallback("background execution disabled")
            return

        self._stop_event.clear()
        self.status = RunnerStatus.ACTIVE
        if not self._launch(self._loop, "ecosystem-runner"):
            self._enter_fallback("worker thread could not be started")

    def stop(self) -> None:
        """Halt the loop. Saves already submitted may still complete."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self._thread = None

        if self.status in (RunnerStatus.ACTIVE, RunnerStatus.FALLBACK):
            self.status = RunnerStatus.INACTIVE
            self.journal.record("runner_stop", {"cycle": self._current_cycle()})
            logger.info("Ecosystem runner stopped")

    def resume(self) -> None:
        """Restart the loop on the current state without re-seeding."""
        if self.status in (RunnerStatus.ACTIVE, RunnerStatus.FALLBACK):
            return
        if self._state is None:
            raise RuntimeError("Runner was never started; call start() first")

        self.journal.record("runner_resume", {"cycle": self._current_cycle()})
        logger.info("Ecosystem runner resumed")

        if not self.config.background:
            self._enter_fallback("background execution disabled", persist=False)
            return

        self._stop_event.clear()
        self.status = RunnerStatus.ACTIVE
        if not self._launch(self._loop, "ecosystem-runner"):
            self._enter_fallback("worker thread could not be started", persist=False)

    def close(self) -> None:
        """Stop the loop and wait for outstanding saves."""
        self.stop()
        self.flush()
        self._executor.shutdown(wait=True)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every submitted save has finished."""
        with self._lock:
            pending, self._pending = self._pending, []
        if pending:
            wait(pending, timeout=timeout)

    @property
    def is_running(self) -> bool:
        return self.status in (RunnerStatus.ACTIVE, RunnerStatus.FALLBACK)

    # -------------------------------------------------------------------------
    # One iteration
    # -------------------------------------------------------------------------

    def tick(self) -> EcosystemState:
        """
        Run one loop iteration synchronously.

        Returns:
            Snapshot of the post-step state
        """
        with self._lock:
            if self._state is None:
                raise RuntimeError("Runner has no state; call start() first")

            step(self._state, self.rng, self.registry)
            now = self._clock()

            if self._due(self._last_save, now, self.config.save_interval_ms):
                self._schedule_save()
                self._last_save = now

            if self._due(self._last_evolve, now, self.config.evolve_interval_ms):
                outcome = evolve(self._state, self.rng, self.registry)
                self._last_evolve = now
                self.journal.record("guardian_evolve", {"cycle": self._state.cycle, "outcome": outcome})

            if self._due(self._last_codex, now, self.config.codex_interval_ms):
                generate_flavor_entry(self._state, self.rng)
                self._last_codex = now

            snapshot = copy.deepcopy(self._state)

        self.journal.record("tick", {"cycle": snapshot.cycle, "entities": len(snapshot.entities)})
        self._notify(snapshot)
        return snapshot

    @staticmethod
    def _due(last: Optional[float], now: float, interval_ms: int) -> bool:
        return last is None or (now - last) * 1000 > interval_ms

    def _loop(self) -> None:
        interval = self.config.tick_interval_ms / 1000.0
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                # The host keeps running; the simulation just stops advancing
                logger.exception("Ecosystem tick failed, runner halted")
                self.status = RunnerStatus.ERROR
                return
            self._stop_event.wait(interval)

    # -------------------------------------------------------------------------
    # Degraded fallback mode
    # -------------------------------------------------------------------------

    def _enter_fallback(self, reason: str, persist: bool = True) -> None:
        """Persist once, then only re-publish the unchanged state."""
        logger.warning("Ecosystem runner in fallback mode: %s", reason)
        self.status = RunnerStatus.FALLBACK
        self.journal.record("fallback_mode", {"cycle": self._current_cycle(), "reason": reason})

        if persist:
            with self._lock:
                self._schedule_save()

        self._stop_event.clear()
        if not self._launch(self._fallback_loop, "ecosystem-fallback"):
            logger.error("Fallback notifier could not be started; publishing once")
            self.notify_subscribers()

    def _fallback_loop(self) -> None:
        interval = self.config.fallback_notify_interval_ms / 1000.0
        while not self._stop_event.wait(interval):
            self.notify_subscribers()

    # -------------------------------------------------------------------------
    # State access
    # -------------------------------------------------------------------------

    def snapshot(self) -> Optional[EcosystemState]:
        with self._lock:
            return copy.deepcopy(self._state)

    def update_state(self, state: EcosystemState) -> None:
        """Replace the owned state; subscribers see the replacement at once."""
        with self._lock:
            self._state = copy.deepcopy(state)
            self._state.recount()
            snapshot = copy.deepcopy(self._state)
        self._notify(snapshot)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a post-tick callback. Returns the matching unsubscribe.

        Each callback receives its own copy of the state.
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def notify_subscribers(self) -> None:
        snapshot = self.snapshot()
        if snapshot is not None:
            self._notify(snapshot)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _seed(self, initial_state: Optional[EcosystemState]) -> EcosystemState:
        try:
            loaded = self.storage.load_state()
        except Exception:
            logger.exception("Could not load saved ecosystem state")
            loaded = None
        if loaded is not None:
            logger.info("Resuming saved ecosystem at cycle %d", loaded.cycle)
            return loaded
        if initial_state is not None:
            return copy.deepcopy(initial_state)
        return initialize_state(get_preset(self.config.preset), self.rng, self.registry)

    def _launch(self, target: Callable[[], None], name: str) -> bool:
        thread = threading.Thread(target=target, name=name, daemon=True)
        try:
            thread.start()
        except RuntimeError as exc:
            logger.error("Could not start %s thread: %s", name, exc)
            return False
        self._thread = thread
        return True

    def _schedule_save(self) -> None:
        # Caller holds self._lock
        if self._state is None:
            return
        snapshot = copy.deepcopy(self._state)
        try:
            future = self._executor.submit(self._save, snapshot)
        except RuntimeError:
            logger.warning("Save executor is shut down; skipping save at cycle %d", snapshot.cycle)
            return
        self._pending = [f for f in self._pending if not f.done()]
        self._pending.append(future)

    def _save(self, snapshot: EcosystemState) -> None:
        started = time.perf_counter()
        try:
            self.storage.save_state(snapshot)
        except Exception:
            logger.exception("Saving ecosystem state failed at cycle %d", snapshot.cycle)
            return
        self.journal.record("state_saved", {
            "cycle": snapshot.cycle,
            "state_hash": state_hash(snapshot.to_dict()),
            "duration_ms": round((time.perf_counter() - started) * 1000, 3),
        })
        logger.info("Ecosystem state saved at cycle %d", snapshot.cycle)

    def _notify(self, snapshot: EcosystemState) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(copy.deepcopy(snapshot))
            except Exception:
                logger.exception("Ecosystem subscriber %r failed", callback)

    def _current_cycle(self) -> Optional[int]:
        with self._lock:
            return self._state.cycle if self._state is not None else None
