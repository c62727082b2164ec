"""Tests for the adaptive polling interval."""

import pytest

from kanban_sync.sync.polling import AdaptivePollingScheduler


def test_starts_at_base_interval():
    scheduler = AdaptivePollingScheduler(base_interval=5000)

    assert scheduler.get_interval() == 5000
    assert scheduler.get_interval_seconds() == 5.0


def test_idle_below_threshold_holds_interval():
    scheduler = AdaptivePollingScheduler(base_interval=5000, idle_threshold=3)

    scheduler.on_idle()
    scheduler.on_idle()

    assert scheduler.get_interval() == 5000
    assert scheduler.idle_ticks == 2


def test_idle_past_threshold_backs_off_up_to_ceiling():
    scheduler = AdaptivePollingScheduler(
        base_interval=4000, max_interval=10000, idle_threshold=2, backoff_factor=1.5
    )

    scheduler.on_idle()
    assert scheduler.get_interval() == 4000

    scheduler.on_idle()
    assert scheduler.get_interval() == 6000

    scheduler.on_idle()
    assert scheduler.get_interval() == 9000

    scheduler.on_idle()
    assert scheduler.get_interval() == 10000

    scheduler.on_idle()
    assert scheduler.get_interval() == 10000


def test_interval_never_grows_on_activity():
    scheduler = AdaptivePollingScheduler(base_interval=5000, idle_threshold=1)
    for _ in range(5):
        scheduler.on_idle()
    backed_off = scheduler.get_interval()

    scheduler.on_activity()

    assert scheduler.get_interval() <= backed_off
    assert scheduler.get_interval() == 5000
    assert scheduler.idle_ticks == 0


def test_repeated_activity_holds_steady():
    scheduler = AdaptivePollingScheduler(base_interval=5000)

    for _ in range(3):
        scheduler.on_activity()

    assert scheduler.get_interval() == 5000


def test_reset_restores_base_interval():
    scheduler = AdaptivePollingScheduler(base_interval=2000, idle_threshold=1)
    scheduler.on_idle()
    scheduler.on_idle()

    scheduler.reset()

    assert scheduler.get_interval() == 2000
    assert scheduler.idle_ticks == 0


def test_base_interval_is_clamped_to_bounds():
    assert AdaptivePollingScheduler(base_interval=100, min_interval=1000).get_interval() == 1000
    assert AdaptivePollingScheduler(base_interval=90000, max_interval=15000).get_interval() == 15000


def test_min_above_max_is_rejected():
    with pytest.raises(ValueError):
        AdaptivePollingScheduler(min_interval=5000, max_interval=1000)
