import logging
import time
from typing import Any, Callable

import httpx
from openai import APIConnectionError, RateLimitError

_log = logging.getLogger(__name__)

# Errors worth waiting out: provider throttling and flaky connections.
RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    RateLimitError,
    APIConnectionError,
    httpx.TransportError,
)


def call_with_retry(
    fn: Callable[..., Any],
    *args: Any,
    max_retries: int = 4,
    base_wait: float = 5.0,
    retry_on: tuple[type[BaseException], ...] = RETRYABLE_ERRORS,
    **kwargs: Any,
) -> Any:
    """Call `fn` with exponential backoff on the errors listed in `retry_on`.

    With the default base wait this sleeps 5, 10, 20 seconds between the
    four attempts; the last failure is re-raised.
    """
    for attempt in range(max_retries):
        try:
            return fn(*args, **kwargs)
        except retry_on as exc:
            if attempt == max_retries - 1:
                raise
            wait = base_wait * (2 ** attempt)
            _log.warning("%s failed (%s), retrying in %.0fs", getattr(fn, "__name__", fn), exc, wait)
            time.sleep(wait)
