import asyncio

import httpx
import pytest

from tradewiser.services.retry import RetryConfig, RetryService, is_retryable_error


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def http_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://partner.example/receipts/1")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


def flaky(failures):
    """Operation raising the given errors in order, then returning "ok"."""
    calls = {"count": 0}

    async def operation():
        calls["count"] += 1
        if failures:
            raise failures.pop(0)
        return "ok"

    return operation, calls


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def service(sleeper):
    return RetryService(RetryConfig(max_attempts=3, base_delay=1.0, max_delay=30.0, backoff_factor=2.0), sleep=sleeper)


def test_first_attempt_success_does_not_sleep(service, sleeper):
    operation, calls = flaky([])
    result = asyncio.run(service.execute_with_retry(operation))

    assert result.success is True
    assert result.result == "ok"
    assert result.attempts == 1
    assert result.error is None
    assert calls["count"] == 1
    assert sleeper.delays == []


def test_retries_network_errors_with_backoff(service, sleeper):
    operation, calls = flaky([ConnectionError("reset"), TimeoutError("slow")])
    result = asyncio.run(service.execute_with_retry(operation))

    assert result.success is True
    assert result.attempts == 3
    assert sleeper.delays == [1.0, 2.0]
    assert result.total_time >= 0


def test_non_retryable_error_stops_immediately(service, sleeper):
    operation, calls = flaky([ValueError("bad payload"), ConnectionError("never reached")])
    result = asyncio.run(service.execute_with_retry(operation))

    assert result.success is False
    assert isinstance(result.error, ValueError)
    assert result.attempts == 1
    assert calls["count"] == 1
    assert sleeper.delays == []


def test_exhausted_attempts_report_last_error(service, sleeper):
    operation, calls = flaky([ConnectionError("1"), ConnectionError("2"), ConnectionError("3"), ConnectionError("4")])
    result = asyncio.run(service.execute_with_retry(operation))

    assert result.success is False
    assert str(result.error) == "3"
    assert result.attempts == 3
    assert len(sleeper.delays) == 2


def test_overrides_replace_config_fields(service, sleeper):
    operation, calls = flaky([ConnectionError("1"), ConnectionError("2")])
    result = asyncio.run(service.execute_with_retry(operation, max_attempts=2, base_delay=0.5))

    assert result.success is False
    assert result.attempts == 2
    assert sleeper.delays == [0.5]


def test_custom_retry_condition(service, sleeper):
    operation, calls = flaky([ValueError("transient"), ValueError("transient")])
    result = asyncio.run(service.execute_with_retry(operation, retry_condition=lambda e: isinstance(e, ValueError)))

    assert result.success is True
    assert result.attempts == 3


def test_default_predicate_http_status():
    assert is_retryable_error(http_error(503)) is True
    assert is_retryable_error(http_error(500)) is True
    assert is_retryable_error(http_error(404)) is False
    assert is_retryable_error(http_error(400)) is False
    assert is_retryable_error(httpx.ConnectError("refused")) is True
    assert is_retryable_error(asyncio.TimeoutError()) is True
    assert is_retryable_error(KeyError("x")) is False


def test_calculate_delay_is_capped():
    config = RetryConfig(base_delay=2.0, max_delay=30.0, backoff_factor=2.5)
    delays = [RetryService.calculate_delay(i, config) for i in range(5)]
    assert delays == [2.0, 5.0, 12.5, 30.0, 30.0]


def test_webhook_preset_treats_client_errors_as_terminal(sleeper):
    service = RetryService(sleep=sleeper)
    config = service.webhook_config()

    operation, calls = flaky([http_error(422)])
    result = asyncio.run(service.execute_with_retry(operation, config))
    assert result.success is False
    assert result.attempts == 1

    operation, calls = flaky([http_error(502), http_error(502)])
    result = asyncio.run(service.execute_with_retry(operation, config))
    assert result.success is True
    assert result.attempts == 3
    assert sleeper.delays == [1.0, 2.0]


def test_presets():
    service = RetryService()

    outbound = service.outbound_api_config()
    assert outbound.max_attempts == 3
    assert (outbound.base_delay, outbound.max_delay, outbound.backoff_factor) == (2.0, 30.0, 2.5)

    health = service.health_check_config()
    assert (health.max_attempts, health.base_delay, health.max_delay, health.backoff_factor) == (2, 0.5, 2.0, 2.0)

    webhook = service.webhook_config()
    assert (webhook.max_attempts, webhook.base_delay, webhook.max_delay) == (3, 1.0, 10.0)
