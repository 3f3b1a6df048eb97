from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import requests

from image_gin.errors import AuthError, NetworkError, ParseError, ServiceError

logger = logging.getLogger(__name__)

USER_AGENT = "image-gin/0.1.0"
DEFAULT_TIMEOUT = 60

RETRY_STATUSES = {429, 500, 502, 503, 504}


class RateLimiter:
    """Keeps at least ``60 / per_minute`` seconds between calls."""

    def __init__(
        self,
        per_minute: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.interval = 60.0 / per_minute if per_minute > 0 else 0.0
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None

    def wait(self) -> None:
        if self.interval and self._last is not None:
            remaining = self.interval - (self._clock() - self._last)
            if remaining > 0:
                self._sleep(remaining)
        self._last = self._clock()


def send(
    session: requests.Session,
    method: str,
    url: str,
    service: str,
    retries: int = 0,
    backoff_delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> requests.Response:
    """Issue a request and map failures onto the error taxonomy.

    429 and 5xx answers are retried ``retries`` times with exponential backoff.
    """
    kwargs.setdefault("timeout", DEFAULT_TIMEOUT)
    headers = {"User-Agent": USER_AGENT}
    headers.update(kwargs.pop("headers", None) or {})

    attempt = 0
    while True:
        try:
            response = session.request(method, url, headers=headers, **kwargs)
        except requests.RequestException as exc:
            if attempt < retries:
                delay = backoff_delay * (2**attempt)
                logger.warning("%s request failed (%s), retrying in %.1fs", service, exc, delay)
                sleep(delay)
                attempt += 1
                continue
            raise NetworkError(f"{service} request failed: {exc}") from exc

        status = response.status_code
        if status in RETRY_STATUSES and attempt < retries:
            delay = backoff_delay * (2**attempt)
            logger.warning("%s answered %s, retrying in %.1fs", service, status, delay)
            sleep(delay)
            attempt += 1
            continue

        if status in (401, 403):
            raise AuthError(f"{service} rejected the credentials ({status}).", status)
        if status >= 400:
            raise ServiceError(service, status, response.text)
        return response


def parse_json(response: requests.Response, service: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise ParseError(f"{service} returned a non-JSON body: {exc}") from exc


def download(
    session: requests.Session, url: str, service: str = "download", **kwargs: Any
) -> bytes:
    response = send(session, "GET", url, service, **kwargs)
    return response.content
