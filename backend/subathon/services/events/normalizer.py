"""Provider event decoding and scoring.

Streamlabs delivers every kind of support through the same loosely shaped
payload. ``decode_event`` narrows it to one of a few explicit variants, and
``EventNormalizer.map_event`` prices a variant in timer seconds using the
current per-category settings.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from subathon.models import Adjustment, AdjustmentDebug
from subathon.sanitize import first_non_empty, to_non_negative_int
from .dedupe import first_message
from .gift_links import GiftLinkCorrelator

logger = logging.getLogger(__name__)

HAPPY_HOUR_MULTIPLIER = 2
BONUS_CATEGORIES = {10: 'bomb10', 20: 'bomb20', 50: 'bomb50', 100: 'bomb100'}

SUB_NEW = 'new'
SUB_RESUB = 'resub'
SUB_GIFT = 'gift'
SUB_COMMUNITY = 'community'

_EVENT_TYPES = {
    'subscription': 'subscription',
    'resub': 'subscription',
    'bits': 'bits',
    'cheer': 'bits',
    'submysterygift': 'bulk',
    'mysterygift': 'bulk',
    'communitygift': 'bulk',
    'bulkgift': 'bulk',
}
_SUB_TYPES = {
    '': SUB_NEW,
    'sub': SUB_NEW,
    'new': SUB_NEW,
    'prime': SUB_NEW,
    'resub': SUB_RESUB,
    'gift': SUB_GIFT,
    'subgift': SUB_GIFT,
    'anonsubgift': SUB_GIFT,
    'communitygift': SUB_COMMUNITY,
    'submysterygift': SUB_COMMUNITY,
    'mysterygift': SUB_COMMUNITY,
}


def _token(value: Any) -> str:
    return re.sub(r'[^a-z]', '', str(value or '').lower())


@dataclass
class SubscriptionEvent:
    kind: str
    name: str = ''
    gifter: str = ''
    plan: str = ''
    plan_name: str = ''
    count: int = 1


@dataclass
class BulkGiftEvent:
    gifter: str = ''
    plan: str = ''
    plan_name: str = ''
    count: int = 1


@dataclass
class BitsEvent:
    name: str = ''
    amount: int = 0


ProviderEvent = Union[SubscriptionEvent, BulkGiftEvent, BitsEvent]


def _declared_count(message: Mapping[str, Any]) -> int:
    for field_name in ('amount', 'repeat'):
        count = to_non_negative_int(message.get(field_name))
        if count > 0:
            return count
    return 1


def decode_event(raw: Any) -> Optional[ProviderEvent]:
    """Decode a raw provider payload; None when the shape is not recognised."""
    if not isinstance(raw, dict):
        return None
    message = first_message(raw)
    category = _EVENT_TYPES.get(_token(first_non_empty(raw.get('type'), message.get('type'))))
    plan = first_non_empty(message.get('sub_plan'))
    plan_name = first_non_empty(message.get('sub_plan_name'))

    if category == 'bits':
        return BitsEvent(
            name=first_non_empty(message.get('name')),
            amount=to_non_negative_int(message.get('amount')),
        )
    if category == 'bulk':
        return BulkGiftEvent(
            gifter=first_non_empty(message.get('gifter'), message.get('name')),
            plan=plan,
            plan_name=plan_name,
            count=_declared_count(message),
        )
    if category == 'subscription':
        kind = _SUB_TYPES.get(_token(message.get('sub_type')))
        if kind is None:
            return None
        if kind == SUB_COMMUNITY:
            gifter = first_non_empty(message.get('gifter'), message.get('name'))
            count = _declared_count(message)
        else:
            gifter = first_non_empty(message.get('gifter'))
            count = 1
        return SubscriptionEvent(
            kind=kind,
            name=first_non_empty(message.get('name'), message.get('receiver')),
            gifter=gifter,
            plan=plan,
            plan_name=plan_name,
            count=count,
        )
    return None


def classify_tier(plan: Any, plan_name: Any = '') -> str:
    code = str(plan or '').strip().lower()
    text = f"{code} {str(plan_name or '').lower()}"
    if to_non_negative_int(code, -1) == 3000 or 'tier 3' in text or 'tier3' in text:
        return 't3'
    if to_non_negative_int(code, -1) == 2000 or 'tier 2' in text or 'tier2' in text:
        return 't2'
    return 'primeT1'


class EventNormalizer:
    """Turns provider events into timer adjustments.

    Reads the per-category seconds and the happy hour flag it is given; the
    only state it touches is the gift-link table used to avoid counting a
    bulk gift and its per-recipient events twice.
    """

    def __init__(self, links: GiftLinkCorrelator):
        self.links = links

    def map_event(self, raw: Any, event_seconds: Mapping[str, int], happy_hour: bool) -> Optional[Adjustment]:
        event = decode_event(raw)
        if event is None:
            logger.info(f"[event-skip] unrecognised type={_describe(raw)}")
            return None
        multiplier = HAPPY_HOUR_MULTIPLIER if happy_hour else 1

        def seconds_for(category: str) -> int:
            return to_non_negative_int(event_seconds.get(category)) * multiplier

        if isinstance(event, BitsEvent):
            if event.amount <= 0:
                logger.info(f"[event-skip] bits with zero amount from={event.name!r}")
                return None
            total = seconds_for('bits')
            return Adjustment(
                add_seconds=total,
                add_bits=event.amount,
                reason='bits',
                debug=AdjustmentDebug(event='bits', total=total),
            )

        tier = classify_tier(event.plan, event.plan_name)
        tier_seconds = seconds_for(tier)

        if isinstance(event, BulkGiftEvent) or event.kind == SUB_COMMUNITY:
            return self._bulk_gift(event, tier, tier_seconds, seconds_for)

        if event.kind == SUB_GIFT and self.links.consume(event.gifter):
            logger.info(f"[event-skip] gift to={event.name!r} covered by bulk gift from={event.gifter!r}")
            return None

        label = f'sub-{event.kind}:{tier}'
        return Adjustment(
            add_seconds=tier_seconds,
            add_subs=1,
            reason=label,
            debug=AdjustmentDebug(event=label, sub_seconds=tier_seconds, total=tier_seconds),
        )

    def _bulk_gift(self, event, tier, tier_seconds, seconds_for) -> Adjustment:
        count = max(1, event.count)
        bonus_category = BONUS_CATEGORIES.get(count)
        bonus_seconds = seconds_for(bonus_category) if bonus_category else 0
        sub_seconds = tier_seconds * count
        self.links.register(event.gifter, count)
        label = f'bulk-gift:{tier}x{count}'
        return Adjustment(
            add_seconds=sub_seconds + bonus_seconds,
            add_subs=count,
            reason=label,
            debug=AdjustmentDebug(
                event=label,
                sub_seconds=sub_seconds,
                bonus_seconds=bonus_seconds,
                total=sub_seconds + bonus_seconds,
            ),
        )


def _describe(raw: Any) -> str:
    if not isinstance(raw, dict):
        return type(raw).__name__
    message = first_message(raw)
    return f"{raw.get('type')!r}/{message.get('sub_type')!r}"
