"""
Shared HTTP plumbing for upstream API clients.
"""
import logging
from typing import Any, Dict, Optional

import requests
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from app.errors import ConfigurationError, UpstreamError, UpstreamRateLimitError

from .request_queue import RequestQueue

logger = logging.getLogger("clients.base")


class BaseAPIClient:
    """
    Base class for read-only JSON API clients.

    Subclasses set SERVICE_NAME and build URLs; this class handles
    credentials, the optional request queue, 429 retries and error mapping.
    """

    SERVICE_NAME = "upstream"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str,
        queue: Optional[RequestQueue] = None,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._queue = queue
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _require_key(self) -> str:
        if not self._api_key:
            raise ConfigurationError(f"{self.SERVICE_NAME} API key not found")
        return self._api_key

    def _send(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        """Issue a GET, through the request queue when one is configured."""
        kwargs = {"params": params, "headers": headers, "timeout": self._timeout}
        try:
            if self._queue is not None:
                return self._queue.submit(self._session.get, url, **kwargs)
            return self._session.get(url, **kwargs)
        except requests.RequestException as e:
            raise UpstreamError(f"{self.SERVICE_NAME} request failed: {e}") from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(UpstreamRateLimitError),
        reraise=True,
    )
    def _get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        allow_not_found: bool = False,
    ) -> Optional[requests.Response]:
        """
        GET with retry on 429.

        Returns:
            The response, or None on 404 when allow_not_found is set

        Raises:
            UpstreamError: On any other non-2xx status or transport failure
        """
        response = self._send(url, params=params, headers=headers)

        if response.status_code == 429:
            logger.warning(f"{self.SERVICE_NAME} rate limit hit: {url}")
            raise UpstreamRateLimitError(
                f"{self.SERVICE_NAME} rate limited", status_code=429
            )

        if response.status_code == 404 and allow_not_found:
            return None

        if not response.ok:
            raise UpstreamError(
                f"{self.SERVICE_NAME} API error: {response.status_code}",
                status_code=response.status_code,
            )

        return response
