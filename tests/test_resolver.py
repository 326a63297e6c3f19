"""Tests for search filtering and stream resolution."""

import pytest
import pytest_asyncio

from tidal_cli.api import TrackResolver
from tidal_cli.exceptions import NotAvailable

from .conftest import track_item


@pytest_asyncio.fixture
async def resolver(session_manager, stored_credential):
    await session_manager.start()
    return TrackResolver(session_manager)


@pytest.mark.asyncio
async def test_search_returns_only_requested_categories(fake_tidal, resolver):
    results = await resolver.search("first", limit=5, types=["tracks"])

    assert list(results) == ["tracks"]
    assert [item["title"] for item in results["tracks"]] == ["First", "Second"]


@pytest.mark.asyncio
async def test_search_sends_country_and_paging_parameters(fake_tidal, resolver):
    await resolver.search("first", limit=5, types=["tracks", "albums"], offset=10)

    params = fake_tidal.last_params["search"]
    assert params["query"] == "first"
    assert params["limit"] == "5"
    assert params["offset"] == "10"
    assert params["countryCode"] == "NO"
    assert params["types"] == "TRACKS,ALBUMS"


@pytest.mark.asyncio
async def test_search_with_several_categories(fake_tidal, resolver):
    results = await resolver.search("first", types=["albums", "artists"])

    assert set(results) == {"albums", "artists"}
    assert results["artists"][0]["name"] == "Main Artist"


@pytest.mark.asyncio
async def test_resolve_builds_track_with_stream_url(fake_tidal, resolver):
    descriptor = track_item(
        101,
        "First",
        artists=[
            {"id": 1, "name": "Main Artist", "type": "MAIN"},
            {"id": 2, "name": "Guest One", "type": "FEATURED"},
            {"id": 3, "name": "Guest Two", "type": "FEATURED"},
        ],
    )

    track = await resolver.resolve(descriptor)

    assert track.id == "101"
    assert track.title == "First"
    assert track.artist == "Main Artist"
    assert track.featured_artists == ("Guest One", "Guest Two")
    assert track.album == "Some Album"
    assert track.duration == 200
    assert track.stream_url == "https://cdn.example/stream.flac"

    params = fake_tidal.last_params["stream"]
    assert params["sessionId"] == "session-abc"
    assert params["countryCode"] == "NO"
    assert params["urlusagemode"] == "STREAM"
    assert params["audioquality"] == "HIGH"
    assert params["assetpresentation"] == "FULL"


@pytest.mark.asyncio
async def test_resolve_rejects_non_streamable_without_calling_api(fake_tidal, resolver):
    with pytest.raises(NotAvailable):
        await resolver.resolve(track_item(103, "Blocked", allowStreaming=False))

    assert fake_tidal.calls["stream"] == 0


@pytest.mark.asyncio
async def test_resolve_without_urls_is_not_available(fake_tidal, resolver):
    fake_tidal.stream_urls["104"] = []

    with pytest.raises(NotAvailable):
        await resolver.resolve(track_item(104, "No URL"))


@pytest.mark.asyncio
async def test_find_tracks_skips_unavailable_candidates(fake_tidal, resolver):
    fake_tidal.search_response["tracks"]["items"] = [
        track_item(201, "Region Locked", allowStreaming=False),
        track_item(202, "Playable"),
    ]

    tracks = await resolver.find_tracks("anything", limit=2)

    assert [t.id for t in tracks] == ["202"]
