import unittest

from deadswitch.rate_limit import RateLimiter


class FakeTime:
    def __init__(self):
        self.t = 1000.0

    def __call__(self):
        return self.t


class TestRateLimiter(unittest.TestCase):

    def setUp(self):
        self.time = FakeTime()
        self.limiter = RateLimiter(rpm=2, window_seconds=60, time_fn=self.time)
        self.key = RateLimiter.key_for("claim", "bob")

    def test_limit_and_window(self):
        self.assertTrue(self.limiter.allow(self.key))
        self.assertTrue(self.limiter.allow(self.key))
        result = self.limiter.check(self.key)
        self.assertFalse(result.allowed)
        self.assertEqual(result.retry_after, 60.0)

        self.time.t += 61
        self.assertTrue(self.limiter.allow(self.key))

    def test_keys_are_independent(self):
        self.limiter.allow(self.key)
        self.limiter.allow(self.key)
        self.assertTrue(self.limiter.allow(RateLimiter.key_for("claim", "carol")))

    def test_rejections_do_not_extend_lockout(self):
        self.limiter.allow(self.key)
        self.limiter.allow(self.key)
        self.time.t += 30
        self.assertFalse(self.limiter.allow(self.key))
        self.time.t += 31
        self.assertTrue(self.limiter.allow(self.key))

    def test_reset(self):
        self.limiter.allow(self.key)
        self.limiter.allow(self.key)
        self.limiter.reset(self.key)
        self.assertTrue(self.limiter.allow(self.key))


if __name__ == "__main__":
    unittest.main()
