"""
Profile watcher: turns file-system noise into one reconcile pass per burst.

Event delivery comes from watchdog; its handler runs on the observer thread
and only enqueues ``(path, time)`` pairs. Everything else (per-path state,
debounce deadlines, retries of locked files, the periodic poll) happens in
``tick()`` on the thread that drives the watcher, so the WatchState map has a
single writer.

Per path:

    IDLE --event--> PENDING --deadline--> PROCESSING --> IDLE
                      ^  |                     |
                      +--+ event (push         | locked file: back to PENDING
                           deadline)           | with a retry deadline

Usage:
    watcher = ProfileWatcher(ProfileDirectory(root), engine)
    watcher.start()
    stop = threading.Event()
    watcher.run_until(stop)
"""

import hashlib
import os
import queue
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ProgressVault.infra.discovery import ProfileDiscovery
from ProgressVault.observers import NullObserver, VaultObserver
from ProgressVault.progress import UNKNOWN_EXPERIENCE, UNKNOWN_LEVEL
from ProgressVault.records.stats_parser import StatsParser
from ProgressVault.utils.atomic_io import decode_exact
from ProgressVault.vault.reconcile import ReconcileEngine, ReconcileOutcome, ReconcileResult
from ProgressVault.vault.snapshot_store import profile_key

class WatchPhase(Enum):
    IDLE = "idle"
    PENDING = "pending"
    PROCESSING = "processing"


@dataclass
class WatchState:
    """Bookkeeping for one watched path. In memory only, never removed."""
    path: Path
    phase: WatchPhase = WatchPhase.IDLE
    last_write_time: Optional[int] = None
    last_size: Optional[int] = None
    last_content_hash: Optional[str] = None
    pending_deadline: Optional[float] = None
    last_accepted_level: int = UNKNOWN_LEVEL
    last_accepted_experience: int = UNKNOWN_EXPERIENCE
    read_attempts: int = 0


def normalize_path(path: Union[str, Path]) -> str:
    return os.path.normcase(os.path.abspath(str(path)))


def read_record(path: Union[str, Path]) -> Tuple[bytes, int, int]:
    """Read a record in one open: (content, mtime_ns, size)."""
    with open(path, "rb") as f:
        st = os.fstat(f.fileno())
        data = f.read()
    return data, st.st_mtime_ns, len(data)


def reconcile_file(
    path: Union[str, Path],
    parser: StatsParser,
    engine: ReconcileEngine,
    data: Optional[bytes] = None,
) -> ReconcileResult:
    """Parse one record and reconcile it against its snapshot."""
    path = Path(path)
    if data is None:
        data, _, _ = read_record(path)
    parsed = parser.parse(decode_exact(data))
    return engine.reconcile(profile_key(path), parsed, path)


class ProfileEventHandler(FileSystemEventHandler):
    """Forwards create/modify/move-to events to the watcher queue."""

    def __init__(self, notify: Callable[[str], None]):
        self.notify = notify

    def on_created(self, event):
        """Called when a file is created."""
        if not event.is_directory:
            self.notify(event.src_path)

    def on_modified(self, event):
        """Called when a file is modified."""
        if not event.is_directory:
            self.notify(event.src_path)

    def on_moved(self, event):
        """Called when a file is renamed; only the destination matters."""
        if not event.is_directory:
            self.notify(event.dest_path)


class ProfileWatcher:
    """Debounced, poll-backed watcher that feeds profiles to the reconcile engine."""

    def __init__(
        self,
        directory: ProfileDiscovery,
        engine: ReconcileEngine,
        parser: Optional[StatsParser] = None,
        debounce_s: float = 0.25,
        poll_interval_s: float = 5.0,
        bootstrap_delay_s: float = 2.0,
        max_read_retries: int = 5,
        retry_delay_s: float = 0.1,
        observer: Optional[VaultObserver] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the watcher.

        Args:
            directory: Discovery collaborator (root, filters, most recent file)
            engine: Reconcile engine
            parser: Stats parser (default-configured if None)
            debounce_s: Quiet period after the last event before a pass runs
            poll_interval_s: Interval of the most-recent-file poll
            bootstrap_delay_s: Delay before the first poll after start()
            max_read_retries: Retries for a file that can't be read yet
            retry_delay_s: Delay between those retries
            observer: Diagnostics sink (no-op if None)
            clock: Monotonic time source, injectable for tests
        """
        self.directory = directory
        self.engine = engine
        self.observer = observer or NullObserver()
        self.parser = parser or StatsParser(observer=self.observer)
        self.debounce_s = debounce_s
        self.poll_interval_s = poll_interval_s
        self.bootstrap_delay_s = bootstrap_delay_s
        self.max_read_retries = max_read_retries
        self.retry_delay_s = retry_delay_s
        self.clock = clock

        self.states: Dict[str, WatchState] = {}
        self.pass_count = 0
        self._events: "queue.Queue[Tuple[str, float]]" = queue.Queue()
        self._next_poll: Optional[float] = None
        self._fs_observer: Optional[Observer] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start watchdog delivery and schedule the first poll."""
        handler = ProfileEventHandler(self.notify)
        self._fs_observer = Observer()
        self._fs_observer.schedule(handler, str(self.directory.root), recursive=False)
        self._fs_observer.start()
        self.schedule_poll(self.bootstrap_delay_s)
        self.observer.info(f"Watching profiles in: {self.directory.root}")

    def stop(self) -> None:
        if self._fs_observer:
            self._fs_observer.stop()
            self._fs_observer.join(timeout=2)
            self._fs_observer = None
        self.observer.info("Profile watcher stopped")

    def schedule_poll(self, delay_s: float, now: Optional[float] = None) -> None:
        now = self.clock() if now is None else now
        self._next_poll = now + delay_s

    def run_until(self, stop_event: threading.Event, max_wait_s: float = 0.5) -> None:
        """Drive tick() until stop_event is set, sleeping until the next deadline."""
        while not stop_event.is_set():
            timeout = self._seconds_until_next_deadline(max_wait_s)
            try:
                item = self._events.get(timeout=timeout)
            except queue.Empty:
                pass
            else:
                self._on_event(*item)
            self.tick()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def notify(self, path: Union[str, Path], at: Optional[float] = None) -> None:
        """Record a change notification. Safe to call from any thread."""
        self._events.put((str(path), self.clock() if at is None else at))

    def tick(self, now: Optional[float] = None) -> List[ReconcileResult]:
        """
        Drain queued events, run due passes and the poll if it is due.

        Returns:
            Results of the reconcile passes that ran during this tick
        """
        now = self.clock() if now is None else now
        while True:
            try:
                path, at = self._events.get_nowait()
            except queue.Empty:
                break
            self._on_event(path, at)

        results: List[ReconcileResult] = []
        due = [
            s for s in self.states.values()
            if s.phase is WatchPhase.PENDING and s.pending_deadline is not None and s.pending_deadline <= now
        ]
        for state in due:
            result = self._run_pass(state, now)
            if result is not None:
                results.append(result)

        if self._next_poll is not None and self._next_poll <= now:
            result = self._poll(now)
            if result is not None:
                results.append(result)
            self._next_poll = now + self.poll_interval_s
        return results

    def _seconds_until_next_deadline(self, cap: float) -> float:
        now = self.clock()
        deadlines = [s.pending_deadline for s in self.states.values()
                     if s.phase is WatchPhase.PENDING and s.pending_deadline is not None]
        if self._next_poll is not None:
            deadlines.append(self._next_poll)
        if not deadlines:
            return cap
        return max(0.0, min(cap, min(deadlines) - now))

    def _state_for(self, path: Union[str, Path]) -> WatchState:
        norm = normalize_path(path)
        state = self.states.get(norm)
        if state is None:
            state = WatchState(path=Path(norm))
            self.states[norm] = state
        return state

    def _tracked(self, path: Union[str, Path]) -> bool:
        return self.directory.is_eligible(path) and not self.directory.is_backup(path)

    def _on_event(self, path: str, at: float) -> None:
        if not self._tracked(path):
            return
        state = self._state_for(path)
        # An event while PROCESSING can't happen on this thread; IDLE and
        # PENDING both (re)arm the deadline.
        state.phase = WatchPhase.PENDING
        state.pending_deadline = at + self.debounce_s
        state.read_attempts = 0

    def _poll(self, now: float) -> Optional[ReconcileResult]:
        path = self.directory.most_recent()
        if path is None or not self._tracked(path):
            return None
        state = self._state_for(path)
        if state.phase is WatchPhase.PENDING:
            return None
        return self._run_pass(state, now)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def _run_pass(self, state: WatchState, now: float) -> Optional[ReconcileResult]:
        state.phase = WatchPhase.PROCESSING
        state.pending_deadline = None
        try:
            data, mtime_ns, size = read_record(state.path)
        except FileNotFoundError:
            self.observer.debug(f"{state.path.name} vanished before it could be read")
            self._to_idle(state)
            return None
        except OSError as e:
            state.read_attempts += 1
            if state.read_attempts <= self.max_read_retries:
                self.observer.debug(
                    f"{state.path.name} locked ({e}); retry {state.read_attempts}/{self.max_read_retries}"
                )
                state.phase = WatchPhase.PENDING
                state.pending_deadline = now + self.retry_delay_s
            else:
                self.observer.warning(f"Giving up on {state.path.name} for now: {e}")
                self._to_idle(state)
            return None

        try:
            return self._process(state, data, mtime_ns, size)
        except Exception as e:
            self.observer.warning(f"Reconcile pass for {state.path.name} failed: {e}")
            return None
        finally:
            self._to_idle(state)

    def _process(self, state: WatchState, data: bytes, mtime_ns: int, size: int) -> Optional[ReconcileResult]:
        digest = hashlib.sha256(data).hexdigest()
        if digest == state.last_content_hash and size == state.last_size:
            state.last_write_time = mtime_ns
            return None

        self.pass_count += 1
        result = reconcile_file(state.path, self.parser, self.engine, data=data)

        if result.io_failed:
            # Leave the content unrecorded so the next event or poll runs the pass again.
            state.last_content_hash = None
            state.last_size = None
            state.last_write_time = mtime_ns
            self.observer.debug(f"{state.path.name}: {result.reason}; will retry on next change or poll")
            return result

        if result.patch is not None and result.patch.written:
            # Record the file as we left it so our own write isn't reprocessed.
            try:
                data, mtime_ns, size = read_record(state.path)
                digest = hashlib.sha256(data).hexdigest()
            except OSError:
                digest = None
        state.last_content_hash = digest
        state.last_write_time = mtime_ns
        state.last_size = size

        if result.snapshot is not None and result.outcome is not ReconcileOutcome.NOOP:
            state.last_accepted_level = result.snapshot.level
            state.last_accepted_experience = result.snapshot.experience
        self.observer.debug(f"{state.path.name}: {result.outcome.value} {result.reason}".rstrip())
        return result

    @staticmethod
    def _to_idle(state: WatchState) -> None:
        if state.phase is WatchPhase.PROCESSING:
            state.phase = WatchPhase.IDLE
            state.read_attempts = 0
