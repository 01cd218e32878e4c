"""Tests for the store circuit breaker."""
import time

import pytest

from appointment_engine.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from appointment_engine.errors import NotFoundError, StoreUnavailableError


def store_down():
    raise StoreUnavailableError("db down")


class TestCircuitBreaker:
    """Test circuit breaker behavior."""

    def test_allows_requests_when_closed(self):
        """Should allow requests when circuit is closed."""
        cb = CircuitBreaker(failure_threshold=3, timeout=1)

        assert cb.call(lambda: "success") == "success"
        assert cb.state == "closed"

    def test_opens_after_threshold_failures(self):
        """Should open circuit after 3 consecutive store failures."""
        cb = CircuitBreaker(failure_threshold=3, timeout=1)

        for _ in range(3):
            with pytest.raises(StoreUnavailableError):
                cb.call(store_down)

        assert cb.state == "open"

        # Next call fails immediately without attempting
        calls = []
        with pytest.raises(CircuitBreakerOpen):
            cb.call(lambda: calls.append(1))
        assert calls == []

    def test_open_circuit_is_store_unavailable(self):
        """Callers handling StoreUnavailableError also handle fail-fast."""
        assert issubclass(CircuitBreakerOpen, StoreUnavailableError)
        assert CircuitBreakerOpen.status_code == 503

    def test_domain_errors_do_not_count(self):
        """A NotFoundError means the store answered."""
        cb = CircuitBreaker(failure_threshold=2, timeout=1)

        def missing():
            raise NotFoundError("nope")

        for _ in range(5):
            with pytest.raises(NotFoundError):
                cb.call(missing)

        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_success_resets_failure_count(self):
        cb = CircuitBreaker(failure_threshold=3, timeout=1)

        with pytest.raises(StoreUnavailableError):
            cb.call(store_down)
        cb.call(lambda: None)

        assert cb.failure_count == 0

    def test_transitions_to_half_open_after_timeout(self):
        """Failed half-open attempt reopens the circuit."""
        cb = CircuitBreaker(failure_threshold=2, timeout=1)

        for _ in range(2):
            with pytest.raises(StoreUnavailableError):
                cb.call(store_down)

        time.sleep(1.1)

        with pytest.raises(StoreUnavailableError):
            cb.call(store_down)

        assert cb.state == "open"

    def test_closes_on_successful_half_open_attempt(self):
        cb = CircuitBreaker(failure_threshold=2, timeout=1)

        for _ in range(2):
            with pytest.raises(StoreUnavailableError):
                cb.call(store_down)

        time.sleep(1.1)

        assert cb.call(lambda: "recovered") == "recovered"
        assert cb.state == "closed"

    def test_half_open_admits_one_recovery_call(self):
        """Callers arriving while the recovery call runs still fail fast."""
        cb = CircuitBreaker(failure_threshold=2, timeout=1)

        for _ in range(2):
            with pytest.raises(StoreUnavailableError):
                cb.call(store_down)

        time.sleep(1.1)

        def recovery_call():
            assert cb.state == "half_open"
            with pytest.raises(CircuitBreakerOpen):
                cb.call(lambda: "concurrent")
            return "recovered"

        assert cb.call(recovery_call) == "recovered"
        assert cb.state == "closed"
        assert cb.call(lambda: "next") == "next"
