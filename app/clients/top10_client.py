"""
Top-10 streaming rankings API client.

Authenticates with the X-API-Key header. Payloads are used as returned;
slicing and mapping happen in the refreshers.
"""
import logging
from typing import Any, Dict, List, Optional

import requests

from .base import BaseAPIClient

logger = logging.getLogger("clients.top10")


class Top10Client(BaseAPIClient):
    """Client for the quick rankings and release calendar endpoints."""

    SERVICE_NAME = "Top10"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://top-10-streamings.onrender.com",
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(api_key, base_url, timeout=timeout, session=session)

    def _headers(self) -> Dict[str, str]:
        return {"X-API-Key": self._require_key()}

    def get_quick_overall(self) -> Dict[str, Any]:
        """
        Fetch rankings for every provider plus the global lists.

        Shape:
            {"netflix": [...], ..., "global": {"movies": [...], "series": [...]}}
        where each entry carries position, title, type and tmdb_id.
        """
        response = self._get(
            f"{self._base_url}/api/quick/overall",
            params={"format": "id"},
            headers=self._headers(),
        )
        return response.json()

    def get_calendar_overall(self) -> List[Dict[str, Any]]:
        """Fetch upcoming releases (movies and series) as one list."""
        response = self._get(
            f"{self._base_url}/api/quick/calendar/overall",
            headers=self._headers(),
        )
        data = response.json()
        releases = data.get("releases") or []
        logger.info(f"Received {len(releases)} calendar items")
        return releases
