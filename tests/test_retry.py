"""
Tests for the retry loop.
"""

import pytest

from cbagent.retry import RetriesExhausted, fixed_sleeper, linear_sleeper, retry_loop

from fakes import SleepRecorder


class TestRetryLoop:
    """Test worker/sleeper interplay."""

    def test_done_on_first_attempt(self):
        """Test: finished worker never consults the sleeper."""
        sleeps = SleepRecorder()
        consulted = []

        def sleeper(attempts):
            consulted.append(attempts)
            return True, 1

        retry_loop(lambda: True, sleeper, sleep=sleeps)

        assert consulted == []
        assert sleeps.calls == []

    def test_retries_until_done(self):
        """Test: worker called again after each sleep."""
        sleeps = SleepRecorder()
        results = iter([False, False, True])

        retry_loop(lambda: next(results), linear_sleeper(10, 10), sleep=sleeps)

        assert sleeps.calls == [10, 20]

    def test_fatal_error_skips_sleeper(self):
        """Test: worker exception propagates immediately."""
        consulted = []

        def worker():
            raise ValueError("bad shape")

        def sleeper(attempts):
            consulted.append(attempts)
            return True, 0

        with pytest.raises(ValueError):
            retry_loop(worker, sleeper, sleep=SleepRecorder())

        assert consulted == []

    def test_exhaustion(self):
        """Test: sleeper refusal raises RetriesExhausted."""
        calls = []

        def worker():
            calls.append(1)
            return False

        with pytest.raises(RetriesExhausted) as excinfo:
            retry_loop(worker, fixed_sleeper(3, 10), sleep=SleepRecorder(), description="Poll")

        assert len(calls) == 3
        assert excinfo.value.attempts == 3
        assert "Poll" in str(excinfo.value)

    def test_attempt_numbers_passed_to_sleeper(self):
        """Test: sleeper sees 1, 2, 3..."""
        seen = []

        def sleeper(attempts):
            seen.append(attempts)
            return attempts < 4, 0

        with pytest.raises(RetriesExhausted):
            retry_loop(lambda: False, sleeper, sleep=SleepRecorder())

        assert seen == [1, 2, 3, 4]


class TestSleepers:
    """Test the backoff schedules."""

    def test_fixed(self):
        sleeper = fixed_sleeper(10, 10)
        assert sleeper(1) == (True, 10)
        assert sleeper(9) == (True, 10)
        assert sleeper(10)[0] is False

    def test_linear(self):
        sleeper = linear_sleeper(10, 100)
        assert sleeper(1) == (True, 100)
        assert sleeper(3) == (True, 300)
        assert sleeper(10)[0] is False

    def test_ten_attempts_sleep_nine_times(self):
        """Test: ten attempts with +10s steps sleep 10..90."""
        sleeps = SleepRecorder()
        with pytest.raises(RetriesExhausted):
            retry_loop(lambda: False, linear_sleeper(10, 10), sleep=sleeps)
        assert sleeps.calls == [10, 20, 30, 40, 50, 60, 70, 80, 90]
