"""
Unit tests for the cache class refreshers.
"""
import pytest

from app.cache.ttl_policies import CAROUSEL_KEYS, HOUR_MS, MINUTE_MS
from app.clients.top10_client import Top10Client
from app.errors import ConfigurationError, RefreshError, UpstreamError
from app.refresh.enricher import Enricher
from app.refresh.refreshers import (
    ClassRefreshers,
    map_calendar_entry,
    map_listing_entry,
    partition_calendar,
)

from fakes import FakeTMDBClient, FakeTop10Client, movie_details, ranking_entries


def listing(ids, **extra):
    return [
        {"id": i, "title": f"Listing {i}", "release_date": "2024-01-01", "poster_path": f"/l{i}.jpg", **extra}
        for i in ids
    ]


@pytest.fixture
def make_refreshers(cache_store):
    def _make(tmdb=None, top10=None):
        tmdb = tmdb or FakeTMDBClient()
        return ClassRefreshers(
            store=cache_store,
            tmdb=tmdb,
            top10=top10 or FakeTop10Client(),
            enricher=Enricher(tmdb),
            enrich_delay_seconds=0,
            sleep=lambda s: None,
        )
    return _make


class TestProviderTop10:
    """Per-provider Top 10 refresh."""

    def test_failed_enrichment_is_dropped(self, cache_store, make_refreshers):
        ids = list(range(1, 11))
        tmdb = FakeTMDBClient(details={
            (i, "movie"): movie_details(i) for i in ids if i != 4
        })
        top10 = FakeTop10Client(quick={"netflix": ranking_entries(ids)})

        updates = make_refreshers(tmdb, top10).refresh_key("top10-netflix")

        entry = cache_store.read_entry("top10-netflix")
        assert updates == ["top10-netflix (9 items)"]
        assert len(entry.items) == 9
        assert 4 not in [item["externalId"] for item in entry.items]
        assert all(item["providerId"] == 8 for item in entry.items)
        assert entry.expires_at - entry.last_updated == 30 * MINUTE_MS

    def test_caps_at_ten_entries(self, cache_store, make_refreshers):
        ids = list(range(1, 16))
        tmdb = FakeTMDBClient(details={(i, "movie"): movie_details(i) for i in ids})
        top10 = FakeTop10Client(quick={"prime": ranking_entries(ids)})

        make_refreshers(tmdb, top10).refresh_key("top10-prime")

        assert len(tmdb.detail_calls) == 10
        assert len(cache_store.read_entry("top10-prime").items) == 10

    def test_missing_provider_slice_raises(self, cache_store, make_refreshers):
        top10 = FakeTop10Client(quick={"netflix": []})

        with pytest.raises(RefreshError):
            make_refreshers(top10=top10).refresh_key("top10-apple")
        assert cache_store.read_entry("top10-apple") is None

    def test_unknown_service_raises(self, make_refreshers):
        with pytest.raises(RefreshError):
            make_refreshers().provider_top10("crunchyroll")

    def test_missing_api_key_raises_configuration_error(self, cache_store, make_refreshers):
        refreshers = make_refreshers(top10=Top10Client(api_key=None))

        with pytest.raises(ConfigurationError):
            refreshers.refresh_key("top10-netflix")
        assert cache_store.read_last_updated() == {}


class TestGlobalTop10:
    """Global movie and series Top 10 refresh."""

    def test_writes_both_slices_with_forced_types(self, cache_store, make_refreshers):
        tmdb = FakeTMDBClient(details={
            (1, "movie"): movie_details(1),
            (2, "tv"): {"name": "Series 2", "first_air_date": "2022-02-02"},
        })
        quick = {"global": {
            "movies": ranking_entries([1], media_type="tv"),
            "series": ranking_entries([2], media_type="movie"),
        }}

        updates = make_refreshers(tmdb, FakeTop10Client(quick=quick)).refresh_key("global-series")

        assert updates == ["global-movies (1 items)", "global-series (1 items)"]
        assert tmdb.detail_calls == [(1, "movie"), (2, "tv")]
        series = cache_store.read_entry("global-series").items
        assert series[0]["mediaKind"] == "tv"
        assert "providerId" not in series[0]

    def test_empty_slice_is_written_empty(self, cache_store, make_refreshers):
        tmdb = FakeTMDBClient(details={(1, "movie"): movie_details(1)})
        quick = {"global": {"movies": ranking_entries([1]), "series": []}}

        refreshers = make_refreshers(tmdb, FakeTop10Client(quick=quick))
        updates = refreshers.refresh(refreshers.global_top10())

        assert updates == ["global-movies (1 items)", "global-series (0 items)"]
        assert cache_store.read_entry("global-series").items == []

    def test_missing_global_block_writes_both_empty(self, cache_store, make_refreshers):
        updates = make_refreshers(top10=FakeTop10Client(quick={"netflix": []})).refresh_key("global-movies")

        assert updates == ["global-movies (0 items)", "global-series (0 items)"]
        assert set(cache_store.read_last_updated()) == {"global-movies", "global-series"}


class TestCarousels:
    """TMDB listing carousels."""

    def test_all_five_written_with_cap_and_mapping(self, cache_store, make_refreshers):
        tmdb = FakeTMDBClient(listings={
            "now-playing": listing(range(1, 26)),
            "popular-movies": listing([30]),
            "on-the-air": [{"id": 40, "name": "Airing", "first_air_date": "2024-02-02"}],
            "popular-tv": [],
            "trending": [
                {"id": 50, "title": "Film", "media_type": "movie"},
                {"id": 51, "name": "Show", "media_type": "tv"},
            ],
        })

        updates = make_refreshers(tmdb).refresh_key("trending")

        assert [u.split(" ")[0] for u in updates] == CAROUSEL_KEYS
        assert len(cache_store.read_entry("now-playing").items) == 20
        assert cache_store.read_entry("popular-tv").items == []

        on_air = cache_store.read_entry("on-the-air").items[0]
        assert on_air["mediaKind"] == "tv"
        assert on_air["listType"] == "on_the_air"
        assert on_air["title"] == "Airing"

        trending = cache_store.read_entry("trending").items
        assert [t["mediaKind"] for t in trending] == ["movie", "tv"]

        entry = cache_store.read_entry("trending")
        assert entry.expires_at - entry.last_updated == HOUR_MS

    def test_failure_keeps_earlier_carousels(self, cache_store, make_refreshers):
        tmdb = FakeTMDBClient(listings={
            "now-playing": listing([1]),
            "popular-movies": listing([2]),
            "on-the-air": UpstreamError("TMDB API error: 500", status_code=500),
        })

        with pytest.raises(UpstreamError):
            make_refreshers(tmdb).refresh_key("now-playing")

        written = set(cache_store.read_last_updated())
        assert written == {"now-playing", "popular-movies"}


class TestCalendar:
    """Release calendar refresh."""

    RELEASES = [
        {"tmdb_id": 1, "type": "movie", "title": "Film", "releaseDate": "2024-07-01"},
        {"tmdb_id": 2, "type": "tv", "title": "Show", "date": "2024-07-02", "season_info": "Season 2"},
        {"title": "No id", "type": "movie"},
        {"tmdb_id": 3, "title": "No type"},
    ]

    def test_writes_three_slices(self, cache_store, make_refreshers):
        top10 = FakeTop10Client(calendar=self.RELEASES)

        updates = make_refreshers(top10=top10).refresh_key("calendar-overall")

        assert updates == [
            "calendar-movies (1 items)",
            "calendar-tv (1 items)",
            "calendar-overall (2 items)",
        ]
        tv = cache_store.read_entry("calendar-tv").items[0]
        assert tv["releaseDate"] == "2024-07-02"
        assert tv["seasonInfo"] == "Season 2"
        assert tv["listType"] == "upcoming"

        entry = cache_store.read_entry("calendar-movies")
        assert entry.expires_at - entry.last_updated == 6 * HOUR_MS

    def test_partition_skips_unusable_entries(self):
        slices = dict(partition_calendar(self.RELEASES))

        assert [e["tmdb_id"] for e in slices["movies"]] == [1]
        assert [e["tmdb_id"] for e in slices["tv"]] == [2]
        assert len(slices["overall"]) == 2


class TestMapping:
    """Direct listing and calendar mapping."""

    def test_listing_entry_omits_missing_images(self):
        doc = map_listing_entry({"id": 9, "title": "X"}, "movie", "popular").to_document()

        assert doc == {
            "externalId": 9,
            "mediaKind": "movie",
            "title": "X",
            "releaseDate": "",
            "listType": "popular",
        }

    def test_calendar_entry_images_and_genres(self):
        item = map_calendar_entry({
            "tmdb_id": 7,
            "type": "movie",
            "title": "Film",
            "releaseDate": "2024-08-01",
            "poster_path": "/p.jpg",
            "genres": ["Drama"],
        })

        assert item.poster_url == "https://image.tmdb.org/t/p/w500/p.jpg"
        assert item.genres == ["Drama"]
        assert item.backdrop_url is None


class TestDescriptorForKey:
    """Key to refresher dispatch."""

    @pytest.mark.parametrize("key,name", [
        ("top10-hbo", "top10-hbo"),
        ("global-movies", "global"),
        ("popular-movies", "carousels"),
        ("calendar-tv", "calendar"),
    ])
    def test_dispatch(self, make_refreshers, key, name):
        assert make_refreshers().descriptor_for_key(key).name == name

    def test_unknown_key(self, make_refreshers):
        with pytest.raises(RefreshError):
            make_refreshers().descriptor_for_key("favorites")
