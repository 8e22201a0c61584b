import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from subathon.models import EVENT_CATEGORIES, Adjustment, TimerState
from subathon.sanitize import to_bool, to_non_negative_int

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], None]

CONTROL_ACTIONS = ('start', 'pause', 'reset', 'set-time', 'set-happy-hour')


class TimerEngine:
    """Sole owner of the live timer state.

    Every operation is total: bad input is clamped to a safe value instead of
    rejected. Each mutation bumps ``state_version`` by one, stamps
    ``updated_at`` and hands the new snapshot to every listener before the
    lock is released, so listeners observe mutations in version order.
    """

    def __init__(self, state: Optional[TimerState] = None, clock: Callable[[], float] = time.time):
        self._state = state if state is not None else TimerState()
        self._clock = clock
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> TimerState:
        return self._state

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return self._state.to_dict()

    def _emit(self) -> Dict[str, Any]:
        # caller holds the lock
        self._state.state_version += 1
        self._state.updated_at = int(self._clock() * 1000)
        snapshot = self._state.to_dict()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"[listener-fail] version={snapshot['stateVersion']}")
        return snapshot

    def apply_adjustment(self, adjustment: Adjustment) -> Dict[str, Any]:
        with self._lock:
            self._state.remaining_seconds += to_non_negative_int(adjustment.add_seconds)
            self._state.subs += to_non_negative_int(adjustment.add_subs)
            self._state.bits += to_non_negative_int(adjustment.add_bits)
            logger.info(
                f"[adjust] reason={adjustment.reason} +{adjustment.add_seconds}s "
                f"+{adjustment.add_subs} subs +{adjustment.add_bits} bits"
            )
            return self._emit()

    def tick(self) -> Optional[Dict[str, Any]]:
        """Count down one second; None when nothing changed."""
        with self._lock:
            if not self._state.is_running:
                return None
            if self._state.remaining_seconds > 0:
                self._state.remaining_seconds -= 1
            if self._state.remaining_seconds == 0:
                self._state.is_running = False
                logger.info("[timer-expired] countdown reached zero")
            return self._emit()

    def start(self) -> Dict[str, Any]:
        with self._lock:
            self._state.is_running = True
            return self._emit()

    def pause(self) -> Dict[str, Any]:
        with self._lock:
            self._state.is_running = False
            return self._emit()

    def reset(self) -> Dict[str, Any]:
        with self._lock:
            self._state.is_running = False
            self._state.remaining_seconds = 0
            return self._emit()

    def set_time(self, seconds: Any) -> Dict[str, Any]:
        """Overwrite the remaining time; ignored (but still versioned) while running."""
        with self._lock:
            if self._state.is_running:
                logger.info("[set-time-ignored] timer is running")
            else:
                self._state.remaining_seconds = to_non_negative_int(seconds)
            return self._emit()

    def set_happy_hour(self, enabled: Any) -> Dict[str, Any]:
        with self._lock:
            self._state.happy_hour = to_bool(enabled)
            return self._emit()

    def update_setting(self, key: Any, value: Any) -> Optional[Dict[str, Any]]:
        if key not in EVENT_CATEGORIES:
            logger.debug(f"[settings-ignored] key={key!r}")
            return None
        with self._lock:
            self._state.event_seconds[key] = to_non_negative_int(value)
            return self._emit()

    def control(self, payload: Any) -> Optional[Dict[str, Any]]:
        """Dispatch a ``timer-control`` message; unknown actions are ignored."""
        if not isinstance(payload, dict):
            payload = {}
        action = payload.get('action')
        if action == 'start':
            return self.start()
        if action == 'pause':
            return self.pause()
        if action == 'reset':
            return self.reset()
        if action == 'set-time':
            return self.set_time(payload.get('remainingSeconds'))
        if action == 'set-happy-hour':
            return self.set_happy_hour(payload.get('happyHour'))
        logger.debug(f"[control-ignored] action={action!r}")
        return None
