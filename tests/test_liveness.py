"""
Liveness Evaluation Test Suite

The expiry boundary decides whether a secret is released, so it is tested
exactly: an owner silent for precisely the heartbeat interval is alive.
"""

import unittest

from deadswitch.liveness import WillState, evaluate_liveness, will_state
from deadswitch.util import ManualClock, SystemClock


class TestEvaluateLiveness(unittest.TestCase):

    def test_fresh_registration_has_full_interval(self):
        lv = evaluate_liveness(last_active=1000, heartbeat_interval=3600, now=1000)
        self.assertEqual(lv.elapsed, 0)
        self.assertEqual(lv.time_remaining, 3600)
        self.assertFalse(lv.is_expired)

    def test_alive_exactly_at_boundary(self):
        lv = evaluate_liveness(last_active=1000, heartbeat_interval=3600, now=4600)
        self.assertEqual(lv.elapsed, 3600)
        self.assertEqual(lv.time_remaining, 0)
        self.assertFalse(lv.is_expired)

    def test_expired_one_second_past_boundary(self):
        lv = evaluate_liveness(last_active=1000, heartbeat_interval=3600, now=4601)
        self.assertTrue(lv.is_expired)
        self.assertEqual(lv.time_remaining, 0)

    def test_time_remaining_never_negative(self):
        lv = evaluate_liveness(last_active=0, heartbeat_interval=10, now=1_000_000)
        self.assertEqual(lv.time_remaining, 0)
        self.assertEqual(lv.elapsed, 1_000_000)

    def test_last_active_in_future_counts_as_zero_elapsed(self):
        lv = evaluate_liveness(last_active=5000, heartbeat_interval=60, now=4000)
        self.assertEqual(lv.elapsed, 0)
        self.assertEqual(lv.time_remaining, 60)
        self.assertFalse(lv.is_expired)

    def test_to_dict(self):
        lv = evaluate_liveness(last_active=0, heartbeat_interval=10, now=4)
        self.assertEqual(lv.to_dict(), {"elapsed": 4, "time_remaining": 6, "is_expired": False})


class TestWillState(unittest.TestCase):

    def test_states(self):
        alive = evaluate_liveness(0, 10, 5)
        dead = evaluate_liveness(0, 10, 11)
        self.assertEqual(will_state(alive, None), WillState.ACTIVE)
        self.assertEqual(will_state(dead, None), WillState.EXPIRED)
        self.assertEqual(will_state(dead, 11), WillState.CLAIMED)


class TestClocks(unittest.TestCase):

    def test_manual_clock(self):
        clock = ManualClock(100)
        self.assertEqual(clock.now(), 100)
        self.assertEqual(clock.advance(5), 105)
        clock.set(50)
        self.assertEqual(clock.now(), 50)

    def test_system_clock_is_monotonic(self):
        clock = SystemClock()
        first = clock.now()
        clock._last = first + 1000
        self.assertGreaterEqual(clock.now(), first + 1000)


if __name__ == "__main__":
    unittest.main()
