import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

import httpx

from sitechat.config import RETRY

T = TypeVar("T")

_RETRY_STATUS = {429, 500, 502, 503, 504}


def _get_retry_after_seconds(resp: httpx.Response) -> Optional[float]:
    retry_after = resp.headers.get("retry-after")
    if not retry_after:
        return None
    try:
        return float(retry_after)
    except ValueError:
        return None


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRY_STATUS
    return False


@dataclass
class RetryPolicy:
    """Bounded retry with exponential backoff for transient remote failures."""

    max_attempts: int = RETRY["max_attempts"]
    base_delay_s: float = RETRY["base_delay_s"]
    max_delay_s: float = RETRY["max_delay_s"]
    sleep: Callable[[float], None] = time.sleep

    def backoff(self, attempt: int, exc: Optional[BaseException] = None) -> float:
        if isinstance(exc, httpx.HTTPStatusError):
            retry_after = _get_retry_after_seconds(exc.response)
            if retry_after is not None:
                return min(self.max_delay_s, retry_after)
        return min(self.max_delay_s, self.base_delay_s * (2 ** (attempt - 1)))

    def call(
        self,
        fn: Callable[[], T],
        label: str = "call",
        retry_if: Callable[[BaseException], bool] = is_transient,
    ) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return fn()
            except Exception as e:
                if attempt >= self.max_attempts or not retry_if(e):
                    raise
                delay = self.backoff(attempt, e)
                print(
                    f"[Retry] {label} failed ({type(e).__name__}: {e}); "
                    f"attempt {attempt}/{self.max_attempts}, sleeping {delay:.2f}s",
                    flush=True,
                )
                self.sleep(delay)
