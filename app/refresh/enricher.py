"""
Enrichment of bare (tmdb_id, media_kind) pairs into full Items.
"""
import time
import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from app.clients.tmdb_client import TMDBClient
from app.errors import ConfigurationError, UpstreamError

from .models import (
    Item,
    NextEpisode,
    BACKDROP_SIZE,
    IMAGE_BASE_URL,
    POSTER_SIZE,
    image_url,
)

logger = logging.getLogger("refresh.enricher")


def _parse_air_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.strptime(value[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def is_season_started(season: Dict[str, Any], today: date) -> bool:
    """True if at least one episode of the season has aired by today."""
    for episode in season.get("episodes") or []:
        air_date = _parse_air_date(episode.get("air_date"))
        if air_date is not None and air_date <= today:
            return True
    return False


def filter_started_seasons(
    client: TMDBClient,
    series_id: int,
    seasons: List[Dict[str, Any]],
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """
    Keep only seasons with at least one already-aired episode.

    Specials (season 0) are skipped. A season whose episode list cannot be
    fetched counts as not started.
    """
    today = today or date.today()
    started = []

    for season in seasons:
        season_number = season.get("season_number")
        if not season_number:
            continue

        try:
            detail = client.get_season(series_id, season_number)
        except UpstreamError as e:
            logger.warning(f"Could not check season {season_number} of series {series_id}: {e}")
            continue

        if is_season_started(detail, today):
            started.append(season)

    return started


class Enricher:
    """
    Expands a ranking entry into a normalized Item via the TMDB details API.

    Failures return None; callers drop the entry and carry on.
    """

    def __init__(
        self,
        client: TMDBClient,
        image_base_url: str = IMAGE_BASE_URL,
        today_fn: Callable[[], date] = date.today,
    ):
        self._client = client
        self._image_base_url = image_base_url
        self._today_fn = today_fn

    def enrich(
        self,
        tmdb_id: int,
        media_kind: str,
        provider_id: Optional[int] = None,
    ) -> Optional[Item]:
        """
        Fetch details and build an Item.

        Args:
            tmdb_id: TMDB ID of the title
            media_kind: "movie" or "tv"
            provider_id: Watch provider ID for per-provider lists

        Returns:
            Item, or None if the fetch failed
        """
        try:
            data = self._client.get_details(tmdb_id, media_kind)
            item = self._build_item(tmdb_id, media_kind, data, provider_id)

            if media_kind == "tv" and data.get("seasons"):
                started = filter_started_seasons(
                    self._client, tmdb_id, data["seasons"], today=self._today_fn()
                )
                item.number_of_seasons = len(started)
                item.number_of_episodes = sum(s.get("episode_count") or 0 for s in started)

            return item
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Error enriching TMDB {media_kind}/{tmdb_id}: {e}")
            return None

    def _build_item(
        self,
        tmdb_id: int,
        media_kind: str,
        data: Dict[str, Any],
        provider_id: Optional[int],
    ) -> Item:
        is_movie = media_kind == "movie"

        next_episode = None
        raw_next = data.get("next_episode_to_air")
        if not is_movie and raw_next:
            next_episode = NextEpisode(
                air_date=raw_next.get("air_date"),
                episode_number=raw_next.get("episode_number"),
                season_number=raw_next.get("season_number"),
            )

        genres = [g["name"] for g in data.get("genres") or [] if g.get("name")]

        # Falsy upstream values are treated as absent
        return Item(
            external_id=tmdb_id,
            media_kind=media_kind,
            title=data.get("title") or data.get("name") or "",
            release_date=data.get("release_date") or data.get("first_air_date") or "",
            list_type="top_rated_provider",
            poster_url=image_url(data.get("poster_path"), POSTER_SIZE, self._image_base_url),
            backdrop_url=image_url(data.get("backdrop_path"), BACKDROP_SIZE, self._image_base_url),
            overview=data.get("overview") or None,
            vote_average=data.get("vote_average") or None,
            vote_count=data.get("vote_count") or None,
            popularity=data.get("popularity") or None,
            original_language=data.get("original_language") or None,
            original_title=data.get("original_title") or data.get("original_name") or None,
            adult=data.get("adult") or None,
            genres=genres or None,
            runtime=data.get("runtime") if is_movie else None,
            number_of_seasons=None if is_movie else data.get("number_of_seasons"),
            number_of_episodes=None if is_movie else data.get("number_of_episodes"),
            next_episode_to_air=next_episode,
            provider_id=provider_id or None,
        )


def enrich_batch(
    enricher: Enricher,
    entries: List[Dict[str, Any]],
    delay_seconds: float,
    provider_id: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> List[Dict[str, Any]]:
    """
    Enrich ranking entries one by one with a fixed pause between calls.

    Entries that fail enrichment are dropped.

    Args:
        entries: Ranking entries with tmdb_id and type
        delay_seconds: Pause after each enrichment call
        provider_id: Attached to every item when given
    """
    documents = []
    for entry in entries:
        media_kind = "movie" if entry.get("type") == "movie" else "tv"
        item = enricher.enrich(entry.get("tmdb_id"), media_kind, provider_id)
        if item is not None:
            documents.append(item.to_document())
        if delay_seconds > 0:
            sleep(delay_seconds)
    return documents
