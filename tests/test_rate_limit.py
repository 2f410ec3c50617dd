import unittest
from concurrent.futures import ThreadPoolExecutor

from Counsel.app.errors import AdmissionError
from Counsel.app.guard.rate_limit import RateLimiter


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestRateLimiter(unittest.TestCase):
    def test_rejects_after_max_within_window(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=3, window_seconds=60, clock=clock)
        for _ in range(3):
            self.assertTrue(limiter.admit("10.0.0.1").allowed)
        rejected = limiter.admit("10.0.0.1")
        self.assertFalse(rejected.allowed)
        self.assertEqual(rejected.retry_after_seconds, 60)

        clock.now = 30.5
        rejected = limiter.admit("10.0.0.1")
        self.assertFalse(rejected.allowed)
        self.assertEqual(rejected.retry_after_seconds, 30)

    def test_window_expiry_resets_count(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=2, window_seconds=60, clock=clock)
        limiter.admit("client")
        limiter.admit("client")
        self.assertFalse(limiter.admit("client").allowed)

        clock.now = 60
        self.assertTrue(limiter.admit("client").allowed)
        entry = limiter.entry_for("client")
        self.assertEqual(entry.count, 1)
        self.assertEqual(entry.window_reset_at, 120)

    def test_retry_after_is_at_least_one_second(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=1, window_seconds=10, clock=clock)
        limiter.admit("client")
        clock.now = 9.99
        self.assertEqual(limiter.admit("client").retry_after_seconds, 1)

    def test_keys_are_independent(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        self.assertTrue(limiter.admit("a").allowed)
        self.assertFalse(limiter.admit("a").allowed)
        self.assertTrue(limiter.admit("b").allowed)

    def test_expired_entries_evicted_past_high_water(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=5, window_seconds=60, high_water=2, clock=clock)
        for key in ["a", "b", "c"]:
            limiter.admit(key)
        self.assertEqual(len(limiter), 3)
        clock.now = 30
        limiter.admit("d")
        self.assertEqual(len(limiter), 4)
        clock.now = 61
        limiter.admit("e")
        self.assertEqual(len(limiter), 2)
        self.assertIsNone(limiter.entry_for("a"))
        self.assertIsNotNone(limiter.entry_for("d"))

    def test_enforce_raises_admission_error(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        limiter.enforce("client")
        with self.assertRaises(AdmissionError) as context:
            limiter.enforce("client")
        self.assertEqual(context.exception.retry_after_seconds, 60)

    def test_concurrent_requests_do_not_lose_updates(self):
        limiter = RateLimiter(max_requests=50, window_seconds=60, clock=FakeClock())
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: limiter.admit("shared").allowed, range(200)))
        self.assertEqual(sum(results), 50)
        self.assertEqual(limiter.entry_for("shared").count, 50)

    def test_invalid_settings(self):
        with self.assertRaises(ValueError):
            RateLimiter(max_requests=0, window_seconds=60)
        with self.assertRaises(ValueError):
            RateLimiter(max_requests=1, window_seconds=0)


if __name__ == "__main__":
    unittest.main()
