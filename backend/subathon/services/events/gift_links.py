import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from subathon.sanitize import normalize_identity, to_non_negative_int

logger = logging.getLogger(__name__)

LINK_TTL_SEC = 120


@dataclass
class MysteryGiftLink:
    gifter: str
    remaining: int
    expires_at: float


class GiftLinkCorrelator:
    """Pairs a bulk gift with the per-recipient gift events that follow it.

    Matching is on the case-folded gifter display name only. Two gifters
    sharing a display name, or a provider that spells the name differently in
    the child events, will be misattributed.
    """

    def __init__(self, clock: Callable[[], float] = time.time, ttl: float = LINK_TTL_SEC):
        self._clock = clock
        self._ttl = ttl
        self._links: Dict[str, MysteryGiftLink] = {}

    def __len__(self) -> int:
        return len(self._links)

    def get(self, gifter) -> Optional[MysteryGiftLink]:
        key = normalize_identity(gifter)
        link = self._links.get(key)
        if link is None:
            return None
        if link.expires_at <= self._clock() or link.remaining <= 0:
            del self._links[key]
            return None
        return link

    def register(self, gifter, count) -> Optional[MysteryGiftLink]:
        """Expect ``count`` child gift events from ``gifter`` within the link window."""
        key = normalize_identity(gifter)
        count = to_non_negative_int(count)
        if not key or count <= 0:
            return None
        link = self.get(key)
        expires_at = self._clock() + self._ttl
        if link is None:
            link = MysteryGiftLink(gifter=key, remaining=count, expires_at=expires_at)
            self._links[key] = link
        else:
            link.remaining += count
            link.expires_at = expires_at
        logger.info(f"[gift-link] gifter={key} remaining={link.remaining}")
        return link

    def consume(self, gifter) -> bool:
        """Return True when a child gift from ``gifter`` is already covered by a bulk gift."""
        link = self.get(gifter)
        if link is None:
            return False
        link.remaining -= 1
        if link.remaining <= 0:
            del self._links[link.gifter]
        logger.info(f"[gift-link-consume] gifter={link.gifter} remaining={link.remaining}")
        return True

    def prune(self) -> None:
        now = self._clock()
        for key in [k for k, link in self._links.items() if link.expires_at <= now or link.remaining <= 0]:
            del self._links[key]
