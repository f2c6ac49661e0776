"""
Cache refresh pipeline: enrichment, class refreshers and the scheduler.
"""
from .models import Item, NextEpisode, RunResult, image_url, strip_absent
from .enricher import Enricher, enrich_batch, filter_started_seasons, is_season_started
from .refreshers import (
    ClassRefreshers,
    RefreshDescriptor,
    map_calendar_entry,
    map_listing_entry,
    partition_calendar,
)
from .scheduler import RefreshScheduler, ALL_FRESH

__all__ = [
    # Models
    "Item",
    "NextEpisode",
    "RunResult",
    "image_url",
    "strip_absent",
    # Enrichment
    "Enricher",
    "enrich_batch",
    "filter_started_seasons",
    "is_season_started",
    # Refreshers
    "ClassRefreshers",
    "RefreshDescriptor",
    "map_calendar_entry",
    "map_listing_entry",
    "partition_calendar",
    # Scheduler
    "RefreshScheduler",
    "ALL_FRESH",
]
