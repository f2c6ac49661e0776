"""
Cache class refreshers.

Every cache class is refreshed by the same routine, driven by a small
RefreshDescriptor: where the raw listings come from, how many entries to
keep, how slices are named as cache keys, and whether entries are enriched
through the TMDB details API or mapped directly from the listing payload.
"""
import time
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from app.cache.core import CacheClass
from app.cache.store import CacheStore
from app.cache.ttl_policies import (
    CAROUSEL_KEYS,
    CALENDAR_PREFIX,
    GLOBAL_PREFIX,
    PROVIDER_IDS,
    TOP10_PREFIX,
    get_ttl_for_class,
)
from app.clients.tmdb_client import TMDBClient
from app.clients.top10_client import Top10Client
from app.errors import RefreshError

from .enricher import Enricher, enrich_batch
from .models import Item, BACKDROP_SIZE, IMAGE_BASE_URL, POSTER_SIZE, image_url

logger = logging.getLogger("refresh.refreshers")

TOP10_CAP = 10
CAROUSEL_CAP = 20

# Slice = (slice name, raw entries)
Slice = Tuple[str, List[Dict[str, Any]]]


@dataclass
class RefreshDescriptor:
    """
    Parameters of one cache class refresh.

    Attributes:
        name: Label used in logs
        cache_class: Determines the TTL written into each entry
        source: Yields (slice_name, raw_entries) pairs, fetching lazily
        key_for: Maps a slice name to its cache key
        item_cap: Max entries kept per slice (None = no cap)
        enrich: Enrich each entry through the TMDB details API
        map_entry: Direct (slice_name, entry) -> Item mapping when not enriching
        provider_id_for: Provider ID attached to enriched items of a slice
    """
    name: str
    cache_class: CacheClass
    source: Callable[[], Iterable[Slice]]
    key_for: Callable[[str], str]
    item_cap: Optional[int] = None
    enrich: bool = False
    map_entry: Optional[Callable[[str, Dict[str, Any]], Optional[Item]]] = None
    provider_id_for: Optional[Callable[[str], Optional[int]]] = None


# Carousel key -> (TMDBClient method, media kind or None for mixed, list type)
CAROUSEL_SOURCES: Dict[str, Tuple[str, Optional[str], str]] = {
    "now-playing": ("get_now_playing_movies", "movie", "now_playing"),
    "popular-movies": ("get_popular_movies", "movie", "popular"),
    "on-the-air": ("get_on_the_air_tv", "tv", "on_the_air"),
    "popular-tv": ("get_popular_tv", "tv", "popular"),
    "trending": ("get_trending_all", None, "trending"),
}


def map_listing_entry(
    entry: Dict[str, Any],
    media_kind: Optional[str],
    list_type: str,
    image_base_url: str = IMAGE_BASE_URL,
) -> Item:
    """Map a TMDB listing result straight into an Item."""
    if media_kind is None:
        media_kind = "movie" if entry.get("media_type") == "movie" else "tv"

    return Item(
        external_id=entry.get("id"),
        media_kind=media_kind,
        title=entry.get("title") or entry.get("name") or "",
        release_date=entry.get("release_date") or entry.get("first_air_date") or "",
        list_type=list_type,
        poster_url=image_url(entry.get("poster_path"), POSTER_SIZE, image_base_url),
        backdrop_url=image_url(entry.get("backdrop_path"), BACKDROP_SIZE, image_base_url),
        overview=entry.get("overview"),
        vote_average=entry.get("vote_average"),
    )


def map_calendar_entry(entry: Dict[str, Any], image_base_url: str = IMAGE_BASE_URL) -> Item:
    """Map a release calendar entry into an Item."""
    media_kind = "movie" if entry.get("type") == "movie" else "tv"
    return Item(
        external_id=entry["tmdb_id"],
        media_kind=media_kind,
        title=entry.get("title") or "",
        release_date=entry.get("releaseDate") or entry.get("date") or "",
        list_type="upcoming",
        poster_url=image_url(entry.get("poster_path"), POSTER_SIZE, image_base_url),
        backdrop_url=image_url(entry.get("backdrop_path"), BACKDROP_SIZE, image_base_url),
        overview=entry.get("overview"),
        vote_average=entry.get("vote_average"),
        genres=entry.get("genres") or None,
        season_info=entry.get("season_info"),
    )


def partition_calendar(releases: List[Dict[str, Any]]) -> List[Slice]:
    """
    Split calendar releases into movies, tv and overall slices.

    Entries without a TMDB ID or type are counted and skipped.
    """
    usable = []
    skipped = 0
    for entry in releases:
        if entry.get("tmdb_id") and entry.get("type"):
            usable.append(entry)
        else:
            skipped += 1
            if skipped <= 2:
                logger.info(f"Skipping calendar item without tmdb_id: {str(entry)[:150]}")

    if skipped:
        logger.info(f"Skipped {skipped}/{len(releases)} calendar items without tmdb_id")

    movies = [e for e in usable if e.get("type") == "movie"]
    tv = [e for e in usable if e.get("type") != "movie"]
    return [("movies", movies), ("tv", tv), ("overall", usable)]


class ClassRefreshers:
    """
    Builds descriptors for the four cache classes and runs them.
    """

    def __init__(
        self,
        store: CacheStore,
        tmdb: TMDBClient,
        top10: Top10Client,
        enricher: Enricher,
        enrich_delay_seconds: float = 0.1,
        image_base_url: str = IMAGE_BASE_URL,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._store = store
        self._tmdb = tmdb
        self._top10 = top10
        self._enricher = enricher
        self._enrich_delay = enrich_delay_seconds
        self._image_base_url = image_base_url
        self._sleep = sleep

    # =========================================================================
    # Descriptors
    # =========================================================================

    def provider_top10(self, service: str) -> RefreshDescriptor:
        """Top 10 of one streaming service, from the shared quick payload."""
        if service not in PROVIDER_IDS:
            raise RefreshError(f"Unknown streaming service: {service}")

        def source() -> Iterator[Slice]:
            data = self._top10.get_quick_overall()
            entries = data.get(service)
            if entries is None:
                raise RefreshError(f"No rankings for {service} in quick payload")
            logger.info(f"Processing {len(entries)} items for {service}")
            yield service, entries

        return RefreshDescriptor(
            name=f"top10-{service}",
            cache_class=CacheClass.PROVIDER_TOP10,
            source=source,
            key_for=lambda s: f"{TOP10_PREFIX}{s}",
            item_cap=TOP10_CAP,
            enrich=True,
            provider_id_for=PROVIDER_IDS.get,
        )

    def global_top10(self) -> RefreshDescriptor:
        """Global movie and series Top 10s."""

        def source() -> Iterator[Slice]:
            data = self._top10.get_quick_overall()
            global_data = data.get("global") or {}
            for slice_name, kind in (("movies", "movie"), ("series", "tv")):
                entries = global_data.get(slice_name) or []
                yield slice_name, [{**e, "type": kind} for e in entries]

        return RefreshDescriptor(
            name="global",
            cache_class=CacheClass.GLOBAL_TOP10,
            source=source,
            key_for=lambda s: f"global-{s}",
            item_cap=TOP10_CAP,
            enrich=True,
        )

    def carousels(self) -> RefreshDescriptor:
        """The five TMDB listing carousels, fetched one after another."""

        def source() -> Iterator[Slice]:
            for key in CAROUSEL_KEYS:
                method_name = CAROUSEL_SOURCES[key][0]
                yield key, getattr(self._tmdb, method_name)()

        def map_entry(key: str, entry: Dict[str, Any]) -> Item:
            _, media_kind, list_type = CAROUSEL_SOURCES[key]
            return map_listing_entry(entry, media_kind, list_type, self._image_base_url)

        return RefreshDescriptor(
            name="carousels",
            cache_class=CacheClass.CAROUSEL,
            source=source,
            key_for=lambda s: s,
            item_cap=CAROUSEL_CAP,
            map_entry=map_entry,
        )

    def calendar(self) -> RefreshDescriptor:
        """Release calendar, split into movies, tv and overall."""

        def source() -> Iterator[Slice]:
            releases = self._top10.get_calendar_overall()
            yield from partition_calendar(releases)

        return RefreshDescriptor(
            name="calendar",
            cache_class=CacheClass.CALENDAR,
            source=source,
            key_for=lambda s: f"{CALENDAR_PREFIX}{s}",
            map_entry=lambda _, entry: map_calendar_entry(entry, self._image_base_url),
        )

    def descriptor_for_key(self, key: str) -> RefreshDescriptor:
        """
        Pick the refresher responsible for a cache key.

        Raises:
            RefreshError: If no refresher owns the key
        """
        if key.startswith(TOP10_PREFIX):
            return self.provider_top10(key[len(TOP10_PREFIX):])
        if key.startswith(GLOBAL_PREFIX):
            return self.global_top10()
        if key.startswith(CALENDAR_PREFIX):
            return self.calendar()
        if key in CAROUSEL_KEYS:
            return self.carousels()
        raise RefreshError(f"No refresher for cache key: {key}")

    # =========================================================================
    # Refresh routine
    # =========================================================================

    def refresh(self, descriptor: RefreshDescriptor) -> List[str]:
        """
        Fetch, enrich or map, and write every slice of a descriptor.

        Each slice is written as soon as it is ready; a failure part-way
        leaves earlier slices written.

        Returns:
            Update summaries like "top10-netflix (10 items)"
        """
        ttl_ms, _ = get_ttl_for_class(descriptor.cache_class)
        updates = []

        for slice_name, entries in descriptor.source():
            key = descriptor.key_for(slice_name)

            if descriptor.item_cap is not None:
                entries = entries[:descriptor.item_cap]

            if descriptor.enrich:
                provider_id = (
                    descriptor.provider_id_for(slice_name) if descriptor.provider_id_for else None
                )
                documents = enrich_batch(
                    self._enricher,
                    entries,
                    self._enrich_delay,
                    provider_id=provider_id,
                    sleep=self._sleep,
                )
            else:
                documents = []
                for entry in entries:
                    item = descriptor.map_entry(slice_name, entry)
                    if item is not None:
                        documents.append(item.to_document())

            self._store.write_entry(key, documents, ttl_ms)
            updates.append(f"{key} ({len(documents)} items)")
            logger.info(f"Updated {key}")

        return updates

    def refresh_key(self, key: str) -> List[str]:
        """Refresh the cache class that owns a key."""
        return self.refresh(self.descriptor_for_key(key))
