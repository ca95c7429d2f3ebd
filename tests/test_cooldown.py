"""Tests for the cooldown policy and the cooldown store."""
from datetime import datetime, timedelta

import pytest

from retailer.models.customer import CustomerCooldown
from retailer.services.cooldown_service import (
    CooldownTracker,
    can_place_order,
    cooldown_status,
    remaining_cooldown,
)

PERIOD = timedelta(minutes=5)
NOW = datetime(2024, 3, 15, 12, 0, 0)


def last_order(ago):
    return CustomerCooldown(customer_id="CUST00001", last_order_time=NOW - ago)


def test_customer_without_history_can_order():
    assert can_place_order(None, PERIOD, NOW)
    assert remaining_cooldown(None, PERIOD, NOW) == timedelta(0)


@pytest.mark.parametrize(
    "ago, allowed",
    [
        (timedelta(0), False),
        (PERIOD - timedelta(milliseconds=1), False),
        (PERIOD, True),
        (PERIOD + timedelta(milliseconds=1), True),
        (timedelta(hours=2), True),
    ],
)
def test_cooldown_boundary(ago, allowed):
    assert can_place_order(last_order(ago), PERIOD, NOW) is allowed


def test_remaining_cooldown():
    assert remaining_cooldown(last_order(timedelta(minutes=2)), PERIOD, NOW) == timedelta(minutes=3)
    assert remaining_cooldown(last_order(timedelta(minutes=7)), PERIOD, NOW) == timedelta(0)


def test_remaining_cooldown_is_clamped_for_future_timestamps():
    # Clock skew between app servers can put the last order slightly ahead
    cooldown = last_order(-timedelta(minutes=1))
    assert remaining_cooldown(cooldown, PERIOD, NOW) == PERIOD


def test_cooldown_status():
    status = cooldown_status(last_order(timedelta(minutes=1, seconds=30)), PERIOD, NOW)

    assert status["can_order"] is False
    assert status["cooldown_remaining_seconds"] == 210
    assert status["cooldown_remaining_minutes"] == 3.5
    assert status["last_order_time"] == NOW - timedelta(minutes=1, seconds=30)


def test_cooldown_status_without_history():
    status = cooldown_status(None, PERIOD, NOW)

    assert status == {
        "can_order": True,
        "cooldown_remaining_seconds": 0,
        "cooldown_remaining_minutes": 0.0,
        "last_order_time": None,
    }


class TestCooldownTracker:

    @pytest.fixture
    def tracker(self, db_session, make_customer):
        make_customer(db_session, "CUST00001")
        return CooldownTracker(db_session)

    def test_get_missing(self, tracker):
        assert tracker.get_by_customer_id("CUST00001") is None

    def test_first_upsert_inserts(self, tracker, db_session):
        assert tracker.upsert("CUST00001", NOW, PERIOD) is True
        db_session.commit()

        assert tracker.get_by_customer_id("CUST00001").last_order_time == NOW

    def test_unconditional_upsert_overwrites(self, tracker, db_session):
        tracker.upsert("CUST00001", NOW)
        db_session.commit()

        assert tracker.upsert("CUST00001", NOW + timedelta(seconds=10)) is True
        db_session.commit()

        assert tracker.get_by_customer_id("CUST00001").last_order_time == NOW + timedelta(seconds=10)

    def test_conditional_upsert_refused_inside_window(self, tracker, db_session):
        tracker.upsert("CUST00001", NOW)
        db_session.commit()

        assert tracker.upsert("CUST00001", NOW + timedelta(minutes=4), PERIOD) is False
        db_session.commit()

        assert tracker.get_by_customer_id("CUST00001").last_order_time == NOW

    def test_conditional_upsert_after_window(self, tracker, db_session):
        tracker.upsert("CUST00001", NOW)
        db_session.commit()

        assert tracker.upsert("CUST00001", NOW + PERIOD, PERIOD) is True
        db_session.commit()

        assert tracker.get_by_customer_id("CUST00001").last_order_time == NOW + PERIOD
