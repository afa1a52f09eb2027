import unittest
from unittest.mock import patch

from quartermaster.ingestion.rate_limit import (
    ErrorBudget,
    RateLimitPolicy,
    parse_retry_after,
)


class RateLimitTests(unittest.TestCase):
    def test_parse_retry_after_seconds(self):
        self.assertEqual(parse_retry_after({"Retry-After": "5"}), 5.0)
        self.assertEqual(parse_retry_after({"retry-after": "2.5"}), 2.5)
        self.assertIsNone(parse_retry_after({}))
        self.assertIsNone(parse_retry_after({"Retry-After": "garbage"}))

    def test_parse_retry_after_date_in_the_past_is_zero(self):
        parsed = parse_retry_after({"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})
        self.assertEqual(parsed, 0.0)

    @patch("quartermaster.ingestion.rate_limit.random.uniform", return_value=0.1)
    def test_next_backoff_doubles_with_jitter(self, mock_uniform):
        policy = RateLimitPolicy(max_retries=2, backoff_base=1.0, backoff_max=4.0, jitter=0.5)
        self.assertAlmostEqual(policy.next_backoff(1, {}), 2.1)
        self.assertAlmostEqual(policy.next_backoff(5, {}), 4.1)
        self.assertEqual(mock_uniform.call_count, 2)

    @patch("quartermaster.ingestion.rate_limit.random.uniform")
    def test_retry_after_not_capped_or_jittered(self, mock_uniform):
        policy = RateLimitPolicy(max_retries=2, backoff_base=1.0, backoff_max=5.0, jitter=0.5)
        self.assertEqual(policy.next_backoff(0, {"Retry-After": "120"}), 120.0)
        mock_uniform.assert_not_called()


class ErrorBudgetTests(unittest.TestCase):
    def test_pauses_until_window_reset_when_low(self):
        budget = ErrorBudget()
        budget.update({"X-ESI-Error-Limit-Remain": "5", "X-ESI-Error-Limit-Reset": "20"}, now=100.0)

        self.assertEqual(budget.remaining, 5)
        self.assertEqual(budget.next_delay(now=105.0), 15.0)
        self.assertEqual(budget.next_delay(now=130.0), 0.0)

    def test_healthy_budget_does_not_pause(self):
        budget = ErrorBudget()
        budget.update({"x-esi-error-limit-remain": "90", "x-esi-error-limit-reset": "40"}, now=0.0)
        budget.update({"Content-Type": "application/json"}, now=1.0)

        self.assertEqual(budget.remaining, 90)
        self.assertEqual(budget.next_delay(now=1.0), 0.0)


if __name__ == "__main__":
    unittest.main()
