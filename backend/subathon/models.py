from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .sanitize import to_bool, to_non_negative_int

EVENT_CATEGORIES = ('bits', 'primeT1', 't2', 't3', 'bomb10', 'bomb20', 'bomb50', 'bomb100')
DEFAULT_SECONDS_PER_SUB = 300


def default_event_seconds(seconds_per_sub: int = DEFAULT_SECONDS_PER_SUB) -> Dict[str, int]:
    per_sub = to_non_negative_int(seconds_per_sub, DEFAULT_SECONDS_PER_SUB)
    seconds = {key: 0 for key in EVENT_CATEGORIES}
    for key in ('primeT1', 't2', 't3'):
        seconds[key] = per_sub
    return seconds


@dataclass
class TimerState:
    remaining_seconds: int = 0
    is_running: bool = False
    subs: int = 0
    bits: int = 0
    happy_hour: bool = False
    event_seconds: Dict[str, int] = field(default_factory=default_event_seconds)
    state_version: int = 0
    updated_at: int = 0  # epoch milliseconds of the last mutation

    def to_dict(self) -> Dict[str, Any]:
        return {
            'remainingSeconds': self.remaining_seconds,
            'isRunning': self.is_running,
            'subs': self.subs,
            'bits': self.bits,
            'happyHour': self.happy_hour,
            'eventSeconds': {key: self.event_seconds.get(key, 0) for key in EVENT_CATEGORIES},
            'stateVersion': self.state_version,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Any, seconds_per_sub: int = DEFAULT_SECONDS_PER_SUB) -> 'TimerState':
        """Build a state from a snapshot dict, defaulting anything missing or malformed."""
        if not isinstance(data, dict):
            data = {}
        event_seconds = default_event_seconds(seconds_per_sub)
        raw_seconds = data.get('eventSeconds')
        if isinstance(raw_seconds, dict):
            for key in EVENT_CATEGORIES:
                if key in raw_seconds:
                    event_seconds[key] = to_non_negative_int(raw_seconds[key], event_seconds[key])
        return cls(
            remaining_seconds=to_non_negative_int(data.get('remainingSeconds')),
            is_running=to_bool(data.get('isRunning', False)),
            subs=to_non_negative_int(data.get('subs')),
            bits=to_non_negative_int(data.get('bits')),
            happy_hour=to_bool(data.get('happyHour', False)),
            event_seconds=event_seconds,
            state_version=to_non_negative_int(data.get('stateVersion')),
            updated_at=to_non_negative_int(data.get('updatedAt')),
        )


@dataclass
class AdjustmentDebug:
    event: str
    sub_seconds: int = 0
    bonus_seconds: int = 0
    total: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event': self.event,
            'subSeconds': self.sub_seconds,
            'bonusSeconds': self.bonus_seconds,
            'total': self.total,
        }


@dataclass
class Adjustment:
    add_seconds: int = 0
    add_subs: int = 0
    add_bits: int = 0
    reason: str = ''
    debug: Optional[AdjustmentDebug] = None

    @classmethod
    def from_payload(cls, data: Any) -> 'Adjustment':
        """Decode a ``manual-adjust`` message."""
        if not isinstance(data, dict):
            data = {}
        return cls(
            add_seconds=to_non_negative_int(data.get('addSeconds')),
            add_subs=to_non_negative_int(data.get('addSubs')),
            add_bits=to_non_negative_int(data.get('addBits')),
            reason=str(data.get('reason') or 'manual'),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {
            'addSeconds': self.add_seconds,
            'addSubs': self.add_subs,
            'addBits': self.add_bits,
            'reason': self.reason,
        }
        if self.debug is not None:
            out['debug'] = self.debug.to_dict()
        return out
