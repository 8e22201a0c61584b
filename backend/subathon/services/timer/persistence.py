"""Durable timer snapshots.

Writes are debounced and serialised through ``SnapshotWriter``; the file
itself is replaced atomically so a crash mid-write leaves the previous
snapshot intact.
"""

import json
import logging
import os
import tempfile
import threading
from typing import Any, Callable, Dict, Optional

from subathon.models import DEFAULT_SECONDS_PER_SUB, TimerState

logger = logging.getLogger(__name__)

DEBOUNCE_SEC = 0.12
FLUSH_WAIT_SEC = 10.0

IDLE = 'idle'
WRITING = 'writing'
WRITING_PENDING = 'writing-pending'


class JsonSnapshotStore:
    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[Dict[str, Any]]:
        try:
            with open(self.path, 'r', encoding='utf-8') as fh:
                data = json.load(fh)
        except FileNotFoundError:
            logger.info(f"[persist-load] no snapshot at {self.path}")
            return None
        except (OSError, ValueError) as exc:
            logger.warning(f"[persist-load] unreadable snapshot at {self.path}: {exc}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"[persist-load] snapshot at {self.path} is not an object")
            return None
        return data

    def save(self, snapshot: Dict[str, Any]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix='.timer-state-', suffix='.tmp', dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(snapshot, fh, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise


def restore_state(raw: Optional[Dict[str, Any]], now_ms: int,
                  seconds_per_sub: int = DEFAULT_SECONDS_PER_SUB) -> TimerState:
    """Rebuild the state from a snapshot, charging time spent offline.

    A timer that was running when the snapshot was taken is assumed to have
    kept counting down while the process was down.
    """
    state = TimerState.from_dict(raw or {}, seconds_per_sub=seconds_per_sub)
    if state.is_running:
        elapsed = max(0, int(now_ms) - state.updated_at) // 1000
        state.remaining_seconds = max(0, state.remaining_seconds - elapsed)
        if state.remaining_seconds == 0:
            state.is_running = False
        logger.info(
            f"[persist-catchup] elapsed={elapsed}s remaining={state.remaining_seconds}s running={state.is_running}"
        )
    return state


class SnapshotWriter:
    """Debounced single-writer for timer snapshots.

    ``request`` arms a short debounce timer unless one is armed already. When
    it fires, a write starts unless one is in flight, in which case the
    request is parked as pending and the in-flight writer loops once more
    with whatever state is current then. At most one write runs at a time
    and the last requested state is always written. After ``flush`` the
    writer is closed and further requests are ignored.
    """

    def __init__(self, store: JsonSnapshotStore, snapshot_fn: Callable[[], Dict[str, Any]],
                 scheduler, debounce: float = DEBOUNCE_SEC):
        self.store = store
        self.snapshot_fn = snapshot_fn
        self.scheduler = scheduler
        self.debounce = debounce
        self.phase = IDLE
        self.closed = False
        self._timer = None
        self._cond = threading.Condition()

    @property
    def scheduled(self) -> bool:
        return self._timer is not None

    def request(self, *_args) -> None:
        # accepts the snapshot when used as an engine listener
        with self._cond:
            if self.closed or self._timer is not None:
                return
            self._timer = self.scheduler.call_later(self.debounce, self._on_debounce)

    def _on_debounce(self) -> None:
        with self._cond:
            self._timer = None
            if self.closed:
                return
            if self.phase != IDLE:
                self.phase = WRITING_PENDING
                return
            self.phase = WRITING
        self.scheduler.spawn(self._write_loop)

    def _write_loop(self) -> None:
        while True:
            self._write_once()
            with self._cond:
                if self.phase == WRITING_PENDING and not self.closed:
                    self.phase = WRITING
                    continue
                # a pending request after close is covered by the final flush
                self.phase = IDLE
                self._cond.notify_all()
                return

    def _write_once(self) -> bool:
        snapshot = self.snapshot_fn()
        try:
            self.store.save(snapshot)
        except (OSError, TypeError, ValueError) as exc:
            logger.error(f"[persist-fail] version={snapshot.get('stateVersion')} error={exc}")
            return False
        logger.debug(f"[persist-ok] version={snapshot.get('stateVersion')}")
        return True

    def flush(self, timeout: Optional[float] = FLUSH_WAIT_SEC) -> bool:
        """Close the writer and write the current state synchronously.

        Waits for an in-flight write to finish first so it cannot land on
        disk after the final snapshot.
        """
        with self._cond:
            self.closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if not self._cond.wait_for(lambda: self.phase == IDLE, timeout):
                logger.warning(f"[persist-flush] in-flight write still running after {timeout}s")
            self.phase = WRITING
        try:
            return self._write_once()
        finally:
            with self._cond:
                self.phase = IDLE
                self._cond.notify_all()
