"""Unit tests for Token Bucket algorithm."""

import pytest

from ratewarden.algorithms import TokenBucketStrategy
from ratewarden.models import RateLimitPolicy, StrategyKind, TokenBucketState


class TestTokenBucket:
    """Tests for TokenBucketStrategy."""

    @pytest.fixture
    def bucket(self):
        return TokenBucketStrategy()

    def test_initial_state_is_full(self, bucket, bucket_policy):
        """Test a new bucket starts at burst capacity."""
        state = bucket.initial_state(bucket_policy, 1000)

        assert state.tokens == 5
        assert state.last_refill_at == 1000

    def test_burst_then_deny(self, bucket, bucket_policy):
        """Test five immediate calls pass and the sixth waits one second."""
        state = bucket.initial_state(bucket_policy, 0)

        results = [bucket.evaluate(state, bucket_policy, 0)[0] for _ in range(6)]

        assert [r.admitted for r in results] == [True] * 5 + [False]
        assert [r.remaining for r in results] == [4, 3, 2, 1, 0, 0]
        assert results[5].retry_after == 1
        assert all(r.limit == 5 for r in results)

    def test_refill_after_wait(self, bucket, bucket_policy):
        """Test two more calls pass two seconds after emptying the bucket."""
        state = bucket.initial_state(bucket_policy, 0)
        for _ in range(6):
            bucket.evaluate(state, bucket_policy, 0)

        first, _ = bucket.evaluate(state, bucket_policy, 2000)
        second, _ = bucket.evaluate(state, bucket_policy, 2000)
        third, _ = bucket.evaluate(state, bucket_policy, 2000)

        assert first.admitted is True
        assert second.admitted is True
        assert third.admitted is False

    def test_partial_token_denied(self, bucket, bucket_policy):
        """Test half a token is not enough and retry rounds up."""
        state = TokenBucketState(tokens=0.0, last_refill_at=0.0)

        result, _ = bucket.evaluate(state, bucket_policy, 500)

        assert result.admitted is False
        assert state.tokens == pytest.approx(0.5)
        assert result.retry_after == 1
        assert result.reset_at == pytest.approx(1000)

    def test_never_exceeds_capacity(self, bucket, bucket_policy):
        """Test a long idle period caps tokens at burst capacity."""
        state = TokenBucketState(tokens=2.0, last_refill_at=0.0)

        result, _ = bucket.evaluate(state, bucket_policy, 3_600_000)

        assert result.remaining == 4
        assert state.tokens == 4

    def test_remaining_is_floor(self, bucket, bucket_policy):
        """Test fractional tokens are reported rounded down."""
        state = TokenBucketState(tokens=2.0, last_refill_at=0.0)

        result, _ = bucket.evaluate(state, bucket_policy, 700)

        assert result.admitted is True
        assert state.tokens == pytest.approx(1.7)
        assert result.remaining == 1

    def test_defaults_derive_from_limit_and_window(self, bucket):
        """Test burst defaults to max_requests and rate to max_requests per window."""
        policy = RateLimitPolicy(
            strategy=StrategyKind.TOKEN_BUCKET, max_requests=10, window_ms=20_000
        )
        state = bucket.initial_state(policy, 0)
        for _ in range(10):
            bucket.evaluate(state, policy, 0)

        result, _ = bucket.evaluate(state, policy, 0)

        assert result.admitted is False
        assert result.limit == 10
        assert result.retry_after == 2

    def test_clock_going_backwards(self, bucket, bucket_policy):
        """Test an earlier timestamp does not drain the bucket."""
        state = TokenBucketState(tokens=3.0, last_refill_at=10_000.0)

        result, _ = bucket.evaluate(state, bucket_policy, 9_000)

        assert result.admitted is True
        assert state.tokens == 2

    def test_full_at_tracks_refill(self, bucket, bucket_policy):
        """Test full_at marks when the bucket is full again."""
        state = bucket.initial_state(bucket_policy, 0)

        result, _ = bucket.evaluate(state, bucket_policy, 0)

        assert state.full_at == pytest.approx(1000)
        assert result.reset_at == pytest.approx(1000)
