"""
Data models for cached listing items and refresh results.
"""
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any


IMAGE_BASE_URL = "https://image.tmdb.org/t/p"
POSTER_SIZE = "w500"
BACKDROP_SIZE = "original"


def image_url(path: Optional[str], size: str, base_url: str = IMAGE_BASE_URL) -> Optional[str]:
    """Build a TMDB image URL, or None when there is no image path."""
    if not path:
        return None
    return f"{base_url}/{size}{path}"


def strip_absent(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Drop None-valued fields; the cache store rejects them."""
    return {k: v for k, v in doc.items() if v is not None}


@dataclass
class NextEpisode:
    """Next episode scheduled to air for a series."""
    air_date: Optional[str]
    episode_number: Optional[int]
    season_number: Optional[int]

    def to_document(self) -> Dict[str, Any]:
        return strip_absent({
            "airDate": self.air_date,
            "episodeNumber": self.episode_number,
            "seasonNumber": self.season_number,
        })


@dataclass
class Item:
    """
    Normalized content record written into a cache entry.

    Identity is (external_id, media_kind). Any field left as None is
    omitted from the stored document.
    """
    external_id: int
    media_kind: str  # "movie" | "tv"
    title: str
    release_date: str
    list_type: str
    poster_url: Optional[str] = None
    backdrop_url: Optional[str] = None
    overview: Optional[str] = None
    vote_average: Optional[float] = None
    vote_count: Optional[int] = None
    popularity: Optional[float] = None
    original_language: Optional[str] = None
    original_title: Optional[str] = None
    adult: Optional[bool] = None
    genres: Optional[List[str]] = None
    runtime: Optional[int] = None
    number_of_seasons: Optional[int] = None
    number_of_episodes: Optional[int] = None
    next_episode_to_air: Optional[NextEpisode] = None
    provider_id: Optional[int] = None
    season_info: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        """Convert to the camelCase document shape, absent fields omitted."""
        doc = {
            "externalId": self.external_id,
            "mediaKind": self.media_kind,
            "title": self.title,
            "releaseDate": self.release_date,
            "listType": self.list_type,
            "posterUrl": self.poster_url,
            "backdropUrl": self.backdrop_url,
            "overview": self.overview,
            "voteAverage": self.vote_average,
            "voteCount": self.vote_count,
            "popularity": self.popularity,
            "originalLanguage": self.original_language,
            "originalTitle": self.original_title,
            "adult": self.adult,
            "genres": self.genres,
            "runtime": self.runtime,
            "numberOfSeasons": self.number_of_seasons,
            "numberOfEpisodes": self.number_of_episodes,
            "nextEpisodeToAir": (
                self.next_episode_to_air.to_document() if self.next_episode_to_air else None
            ),
            "providerId": self.provider_id,
            "seasonInfo": self.season_info,
        }
        return strip_absent(doc)


@dataclass
class RunResult:
    """Outcome of one scheduler invocation."""
    processed_key: Optional[str] = None
    updates: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    next_key: str = "none"
    elapsed_ms: int = 0

    @property
    def duration_display(self) -> str:
        """Format elapsed time as '12.3s'."""
        return f"{self.elapsed_ms / 1000:.1f}s"
