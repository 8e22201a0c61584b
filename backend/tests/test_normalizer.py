import pytest
from conftest import FakeClock, bits_event, bulk_gift_event, sub_event

from subathon.models import default_event_seconds
from subathon.services.events.gift_links import GiftLinkCorrelator
from subathon.services.events.normalizer import (
    BitsEvent,
    BulkGiftEvent,
    EventNormalizer,
    SubscriptionEvent,
    classify_tier,
    decode_event,
)


@pytest.fixture()
def normalizer():
    return EventNormalizer(GiftLinkCorrelator(clock=FakeClock()))


def seconds(**overrides):
    values = default_event_seconds(300)
    values.update(overrides)
    return values


@pytest.mark.parametrize('plan, plan_name, expected', [
    ('1000', '', 'primeT1'),
    ('Prime', '', 'primeT1'),
    ('2000', '', 't2'),
    (2000, '', 't2'),
    ('3000', '', 't3'),
    ('', 'Channel Subscription (Tier 3)', 't3'),
    ('', 'tier2 sub', 't2'),
    (None, None, 'primeT1'),
])
def test_classify_tier(plan, plan_name, expected):
    assert classify_tier(plan, plan_name) == expected


def test_decode_variants():
    assert isinstance(decode_event(sub_event('resub')), SubscriptionEvent)
    assert decode_event(sub_event('subgift', gifter='A')).kind == 'gift'
    assert decode_event(sub_event('community_gift', gifter='A', amount=5)).kind == 'community'
    assert isinstance(decode_event(bulk_gift_event('A', 5)), BulkGiftEvent)
    assert isinstance(decode_event(bits_event(10)), BitsEvent)
    assert decode_event({'type': 'donation', 'message': [{}]}) is None
    assert decode_event(sub_event('weird')) is None
    assert decode_event('not a dict') is None


def test_tier1_resub(normalizer):
    adj = normalizer.map_event(sub_event('resub'), seconds(primeT1=300), False)
    assert (adj.add_seconds, adj.add_subs, adj.add_bits) == (300, 1, 0)
    assert adj.debug.total == 300


def test_tier3_new_sub_with_happy_hour(normalizer):
    adj = normalizer.map_event(sub_event('sub', plan='3000'), seconds(t3=600), True)
    assert adj.add_seconds == 1200
    assert adj.add_subs == 1


def test_bits_adds_flat_seconds_and_counts_bits(normalizer):
    adj = normalizer.map_event(bits_event(100), seconds(bits=0), False)
    assert (adj.add_seconds, adj.add_bits, adj.add_subs) == (0, 100, 0)
    adj = normalizer.map_event(bits_event(500), seconds(bits=30), True)
    assert (adj.add_seconds, adj.add_bits) == (60, 500)


def test_zero_bits_and_unknown_events_map_to_nothing(normalizer):
    assert normalizer.map_event(bits_event(0), seconds(), False) is None
    assert normalizer.map_event({'type': 'follow', 'message': [{'name': 'x'}]}, seconds(), False) is None


@pytest.mark.parametrize('count, bonus_key', [(10, 'bomb10'), (20, 'bomb20'), (50, 'bomb50'), (100, 'bomb100')])
def test_bulk_gift_bonus_thresholds(normalizer, count, bonus_key):
    config = seconds(primeT1=10, bomb10=1000, bomb20=2000, bomb50=5000, bomb100=10000)
    adj = normalizer.map_event(bulk_gift_event('Giver', count), config, False)
    assert adj.add_subs == count
    assert adj.debug.bonus_seconds == config[bonus_key]
    assert adj.add_seconds == 10 * count + config[bonus_key]


def test_bulk_gift_without_matching_threshold_has_no_bonus(normalizer):
    config = seconds(primeT1=10, bomb10=1000, bomb20=2000)
    adj = normalizer.map_event(bulk_gift_event('Giver', 15), config, False)
    assert adj.debug.bonus_seconds == 0
    assert adj.add_seconds == 150


def test_community_gift_sub_type_matches_bulk_gift(normalizer):
    config = seconds(t2=100, bomb10=50)
    adj = normalizer.map_event(sub_event('communitygift', plan='2000', gifter='G', amount=10), config, True)
    assert adj.add_subs == 10
    assert adj.add_seconds == (100 * 10 + 50) * 2
    assert normalizer.links.get('g').remaining == 10


def test_gift_covered_by_bulk_gift_is_suppressed(normalizer):
    normalizer.map_event(bulk_gift_event('Alice', 1), seconds(), False)
    assert normalizer.map_event(sub_event('subgift', gifter='ALICE', name='r1'), seconds(), False) is None
    adj = normalizer.map_event(sub_event('subgift', gifter='alice', name='r2'), seconds(), False)
    assert adj.add_subs == 1
