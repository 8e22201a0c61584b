import logging
import threading
import time
from typing import Any, Callable, Optional

from subathon.models import Adjustment
from .dedupe import Deduplicator
from .gift_links import GiftLinkCorrelator
from .normalizer import EventNormalizer

logger = logging.getLogger(__name__)


class EventPipeline:
    """Provider event -> dedupe -> normalise (+ gift links) -> engine.

    Owns the dedupe and gift-link tables. Nothing in here raises: anything it
    cannot use is logged and dropped.
    """

    def __init__(self, engine, clock: Callable[[], float] = time.time, account: Optional[str] = None):
        self.engine = engine
        self.account = account
        self.dedupe = Deduplicator(clock=clock)
        self.links = GiftLinkCorrelator(clock=clock)
        self.normalizer = EventNormalizer(self.links)
        self._lock = threading.Lock()

    def ingest(self, raw: Any) -> Optional[Adjustment]:
        if not isinstance(raw, dict):
            logger.info(f"[event-skip] payload is {type(raw).__name__}")
            return None
        target = raw.get('for')
        if self.account and target and target != self.account:
            logger.debug(f"[event-skip] for={target!r}")
            return None

        with self._lock:
            if self.dedupe.is_duplicate(raw):
                return None
            self.links.prune()
            state = self.engine.state
            adjustment = self.normalizer.map_event(raw, dict(state.event_seconds), state.happy_hour)
        if adjustment is None:
            return None
        self.engine.apply_adjustment(adjustment)
        return adjustment
