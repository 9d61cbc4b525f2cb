"""HTTP client utilities with bounded timeouts and optional retries.

Pattern: requests.Session with connection pooling, a default timeout on every
request and a tenacity retry wrapper. Retries default to zero: the payment
gateway must not replay non-idempotent calls on its own.
"""
import logging

import requests
from requests.adapters import HTTPAdapter
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log
)
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


def create_http_session(
    max_retries: int = 0,
    timeout: float = 15,
    pool_size: int = 10,
) -> requests.Session:
    """
    Create HTTP session with connection pooling and a default timeout.

    Args:
        max_retries: Retry attempts on connection errors/timeouts (default: 0)
                     Retry delays grow exponentially: 1s, 2s, 4s...
        timeout: Request timeout in seconds unless the caller passes one
        pool_size: Connections kept per host

    Returns:
        Configured requests.Session whose ``request`` applies timeout and retries
    """
    session = requests.Session()

    # urllib3-level retries are disabled; tenacity owns the retry policy
    adapter = HTTPAdapter(
        max_retries=Retry(total=0, raise_on_status=False),
        pool_connections=pool_size,
        pool_maxsize=pool_size,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    original_request = session.request

    @retry(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )
    def request_with_timeout(method, url, **kwargs):
        kwargs.setdefault("timeout", timeout)
        return original_request(method, url, **kwargs)

    session.request = request_with_timeout
    return session
