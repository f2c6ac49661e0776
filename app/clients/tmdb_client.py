"""
TMDB API client.

Read-only access to movie/series details, season episode lists and the
listing endpoints used by the carousels. Requests are serialized through
the shared RequestQueue.
"""
import logging
from typing import Any, Dict, List, Optional

import requests

from app.errors import UpstreamError

from .base import BaseAPIClient
from .request_queue import RequestQueue

logger = logging.getLogger("clients.tmdb")

DETAILS_APPEND = "watch/providers,credits"


def opposite_media_type(media_type: str) -> str:
    return "tv" if media_type == "movie" else "movie"


class TMDBClient(BaseAPIClient):
    """TMDB v3 client."""

    SERVICE_NAME = "TMDB"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.themoviedb.org/3",
        language: str = "pt-BR",
        fallback_language: str = "en-US",
        region: str = "BR",
        queue: Optional[RequestQueue] = None,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(api_key, base_url, queue=queue, timeout=timeout, session=session)
        self.language = language
        self.fallback_language = fallback_language
        self.region = region

    def _params(self, language: Optional[str] = None, **extra) -> Dict[str, Any]:
        params = {"api_key": self._require_key(), "language": language or self.language}
        params.update(extra)
        return params

    # =========================================================================
    # Details
    # =========================================================================

    def get_details(self, tmdb_id: int, media_type: str) -> Dict[str, Any]:
        """
        Fetch the full detail record for a movie or series.

        Falls back to the opposite media type on 404, then to the fallback
        language. The returned record carries media_type.

        Raises:
            UpstreamError: If every lookup fails
        """
        attempts = [
            (media_type, self.language),
            (opposite_media_type(media_type), self.language),
            (media_type, self.fallback_language),
        ]

        for kind, language in attempts:
            response = self._get(
                f"{self._base_url}/{kind}/{tmdb_id}",
                params=self._params(language, append_to_response=DETAILS_APPEND),
                allow_not_found=True,
            )
            if response is None:
                logger.warning(f"TMDB {kind}/{tmdb_id} not found ({language})")
                continue

            data = response.json()
            data.setdefault("media_type", kind)
            return data

        raise UpstreamError(f"TMDB details not found for {media_type}/{tmdb_id}", status_code=404)

    def get_season(self, series_id: int, season_number: int) -> Dict[str, Any]:
        """Fetch one season with its episode list."""
        response = self._get(
            f"{self._base_url}/tv/{series_id}/season/{season_number}",
            params=self._params(),
        )
        return response.json()

    # =========================================================================
    # Listings
    # =========================================================================

    def _list(self, path: str, **extra) -> List[Dict[str, Any]]:
        response = self._get(f"{self._base_url}/{path}", params=self._params(page=1, **extra))
        return response.json().get("results") or []

    def get_now_playing_movies(self) -> List[Dict[str, Any]]:
        return self._list("movie/now_playing", region=self.region)

    def get_popular_movies(self) -> List[Dict[str, Any]]:
        return self._list("movie/popular", region=self.region)

    def get_on_the_air_tv(self) -> List[Dict[str, Any]]:
        return self._list("tv/on_the_air")

    def get_popular_tv(self) -> List[Dict[str, Any]]:
        return self._list("tv/popular")

    def get_trending_all(self) -> List[Dict[str, Any]]:
        """Trending movies and series for the week."""
        return self._list("trending/all/week")
