"""Cadence policy decisions for simple touchpoints and follow-up sequences."""

from datetime import timedelta

import pytest

from conftest import NOW, make_customer
from models.touchpoint import Channel, Touchpoint
from services.cadence_policy import CadenceConfig, should_nudge


def _with_follow_ups(channel="email", **follow_ups):
    customer = make_customer()
    sequence = getattr(customer.touchpoints, channel).follow_ups
    for key, value in follow_ups.items():
        setattr(sequence, key, value)
    return customer


def test_enabled_touchpoint_is_never_due():
    customer = make_customer(enable_all=True)
    for touchpoint in Touchpoint:
        decision = should_nudge(customer, touchpoint, NOW)
        assert decision.due is False
        assert decision.reason == "enabled"


def test_simple_touchpoint_never_nudged_is_due():
    decision = should_nudge(make_customer(), Touchpoint.EXTENSION, NOW)
    assert decision.due is True
    assert decision.reason == "never_nudged"
    assert decision.channel_hint is None


@pytest.mark.parametrize(
    "days_ago, due",
    [(6, False), (7, True), (30, True)],
)
def test_simple_touchpoint_waits_seven_days(days_ago, due):
    customer = make_customer(lastNudged={"extension": NOW - timedelta(days=days_ago)})
    assert should_nudge(customer, Touchpoint.EXTENSION, NOW).due is due


def test_simple_interval_is_configurable():
    customer = make_customer(lastNudged={"referralForm": NOW - timedelta(days=3)})
    config = CadenceConfig(simple_interval_days=3)
    assert should_nudge(customer, Touchpoint.REFERRAL_FORM, NOW, config).due is True


def test_abandoned_cart_channels_are_tracked_separately():
    customer = make_customer(lastNudged={"abandonedCartEmail": NOW - timedelta(days=1)})
    assert should_nudge(customer, Touchpoint.ABANDONED_CART_EMAIL, NOW).due is False
    assert should_nudge(customer, Touchpoint.ABANDONED_CART_WHATSAPP, NOW).due is True


def test_sequence_first_touch_uses_fixed_channel():
    decision = should_nudge(make_customer(), Touchpoint.WHATSAPP_FOLLOW_UPS, NOW)
    assert decision.due is True
    assert decision.reason == "first_touch"
    assert decision.channel_hint is Channel.WHATSAPP


@pytest.mark.parametrize(
    "days_ago, due",
    [(50, False), (51, True)],
)
def test_sequence_waits_for_cadence_indexed_by_count(days_ago, due):
    customer = _with_follow_ups(nudge_count=2, last_nudge_date=NOW - timedelta(days=days_ago))
    decision = should_nudge(customer, Touchpoint.EMAIL_FOLLOW_UPS, NOW)
    assert decision.due is due
    assert decision.cadence_index == 2
    assert decision.channel_hint is Channel.EMAIL


def test_sequence_compares_fractional_days():
    customer = _with_follow_ups(
        nudge_count=1, last_nudge_date=NOW - timedelta(days=20, hours=23)
    )
    assert should_nudge(customer, Touchpoint.EMAIL_FOLLOW_UPS, NOW).due is False


def test_sequence_stops_at_max_nudges():
    customer = _with_follow_ups(nudge_count=5, last_nudge_date=NOW - timedelta(days=400))
    decision = should_nudge(customer, Touchpoint.EMAIL_FOLLOW_UPS, NOW)
    assert decision.due is False
    assert decision.reason == "max_nudges_reached"


def test_sequence_uses_customer_cadence_when_set():
    customer = _with_follow_ups(
        channel="whatsapp",
        nudge_count=1,
        cadence_days=[0, 2],
        last_nudge_date=NOW - timedelta(days=2),
    )
    assert should_nudge(customer, Touchpoint.WHATSAPP_FOLLOW_UPS, NOW).due is True


def test_short_cadence_is_exhausted_before_max():
    customer = _with_follow_ups(
        nudge_count=2, cadence_days=[0, 2], last_nudge_date=NOW - timedelta(days=90)
    )
    decision = should_nudge(customer, Touchpoint.EMAIL_FOLLOW_UPS, NOW)
    assert decision.due is False
    assert decision.reason == "cadence_exhausted"


def test_sequence_without_last_date_waits():
    customer = _with_follow_ups(nudge_count=1, last_nudge_date=None)
    decision = should_nudge(customer, Touchpoint.EMAIL_FOLLOW_UPS, NOW)
    assert decision.due is False
    assert decision.reason == "missing_last_nudge_date"


def test_policy_ignores_abandoned_cart_stamp_for_other_touchpoints():
    customer = make_customer(lastNudged={"abandonedCartEmail": NOW})
    assert should_nudge(customer, Touchpoint.REFERRAL_WELCOME_POPUP, NOW).due is True
