import httpx
import pytest

from sitechat.core.retry import RetryPolicy, is_transient


def _status_error(status, headers=None):
    request = httpx.Request("POST", "https://api.test/x")
    response = httpx.Response(status, headers=headers or {}, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class Flaky:
    def __init__(self, errors, value="ok"):
        self.errors = list(errors)
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.value


def test_transient_classification():
    assert is_transient(httpx.ConnectError("refused"))
    assert is_transient(httpx.ReadTimeout("slow"))
    assert is_transient(_status_error(503))
    assert is_transient(_status_error(429))
    assert not is_transient(_status_error(401))
    assert not is_transient(ValueError("bad"))


def test_retries_transient_errors_then_succeeds():
    sleeps = []
    fn = Flaky([httpx.ConnectError("refused"), _status_error(502)])
    policy = RetryPolicy(max_attempts=3, base_delay_s=1.0, sleep=sleeps.append)

    assert policy.call(fn) == "ok"
    assert fn.calls == 3
    assert sleeps == [1.0, 2.0]


def test_gives_up_after_max_attempts():
    fn = Flaky([httpx.ConnectError("refused")] * 5)
    policy = RetryPolicy(max_attempts=2, sleep=lambda s: None)

    with pytest.raises(httpx.ConnectError):
        policy.call(fn)
    assert fn.calls == 2


def test_permanent_errors_are_not_retried():
    fn = Flaky([_status_error(400)])
    with pytest.raises(httpx.HTTPStatusError):
        RetryPolicy(sleep=lambda s: None).call(fn)
    assert fn.calls == 1


def test_retry_after_header_is_honoured():
    sleeps = []
    fn = Flaky([_status_error(429, {"Retry-After": "7"})])
    RetryPolicy(base_delay_s=1.0, sleep=sleeps.append).call(fn)
    assert sleeps == [7.0]


def test_backoff_is_capped():
    policy = RetryPolicy(base_delay_s=10.0, max_delay_s=15.0)
    assert policy.backoff(1) == 10.0
    assert policy.backoff(4) == 15.0


def test_custom_retry_predicate():
    fn = Flaky([KeyError("x")])
    RetryPolicy(sleep=lambda s: None).call(fn, retry_if=lambda e: isinstance(e, KeyError))
    assert fn.calls == 2
