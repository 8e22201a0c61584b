import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from subathon.sanitize import first_non_empty, normalize_identity

logger = logging.getLogger(__name__)

IDENTITY_TTL_SEC = 24 * 60 * 60
FINGERPRINT_TTL_SEC = 15
SWEEP_INTERVAL_SEC = 60
FINGERPRINT_SEPARATOR = '|'

# Alternate names providers use for the per-message identity
MESSAGE_ID_FIELDS = ('_id', 'id', 'event_id', 'eventId')
FINGERPRINT_FIELDS = ('type', 'sub_type', 'name', 'gifter', 'receiver', 'amount', 'months', 'sub_plan')


@dataclass
class DedupeEntry:
    key: str
    expires_at: float


def first_message(raw: Dict[str, Any]) -> Dict[str, Any]:
    message = raw.get('message')
    if isinstance(message, list):
        message = message[0] if message else None
    return message if isinstance(message, dict) else {}


def event_identity(raw: Dict[str, Any]) -> str:
    message = first_message(raw)
    return first_non_empty(raw.get('event_id'), *(message.get(name) for name in MESSAGE_ID_FIELDS))


def event_fingerprint(raw: Dict[str, Any]) -> str:
    """Join the identifying fields of an id-less event; '' when they are all empty."""
    message = first_message(raw)
    values = []
    for name in FINGERPRINT_FIELDS:
        value = message.get(name)
        if name == 'type':
            value = first_non_empty(raw.get('type'), value)
        values.append(normalize_identity(value))
    if not any(values):
        return ''
    return FINGERPRINT_SEPARATOR.join(values)


class Deduplicator:
    """Remembers recently applied provider events.

    Events carrying a provider identity are remembered for a day. Events
    without one are keyed by a fingerprint of their fields and remembered for
    15 seconds only; the same viewer repeating the same action after that
    counts again.
    """

    def __init__(self, clock: Callable[[], float] = time.time,
                 identity_ttl: float = IDENTITY_TTL_SEC,
                 fingerprint_ttl: float = FINGERPRINT_TTL_SEC,
                 sweep_interval: float = SWEEP_INTERVAL_SEC):
        self._clock = clock
        self._identity_ttl = identity_ttl
        self._fingerprint_ttl = fingerprint_ttl
        self._sweep_interval = sweep_interval
        self._entries: Dict[str, DedupeEntry] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._entries)

    def key_for(self, raw: Dict[str, Any]) -> Optional[DedupeEntry]:
        now = self._clock()
        identity = event_identity(raw)
        if identity:
            return DedupeEntry(key=f'id:{identity}', expires_at=now + self._identity_ttl)
        fingerprint = event_fingerprint(raw)
        if fingerprint:
            return DedupeEntry(key=f'fp:{fingerprint}', expires_at=now + self._fingerprint_ttl)
        return None

    def is_duplicate(self, raw: Dict[str, Any]) -> bool:
        """Return True when ``raw`` was already seen; record it otherwise."""
        now = self._clock()
        if now - self._last_sweep >= self._sweep_interval:
            self.sweep()

        entry = self.key_for(raw)
        if entry is None:
            return False
        seen = self._entries.get(entry.key)
        if seen is not None and seen.expires_at > now:
            logger.info(f"[dedupe-hit] key={entry.key}")
            return True
        self._entries[entry.key] = entry
        return False

    def sweep(self) -> int:
        now = self._clock()
        self._last_sweep = now
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"[dedupe-sweep] dropped={len(expired)} kept={len(self._entries)}")
        return len(expired)
