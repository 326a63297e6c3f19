"""
Resolves a query to a playable file in the content cache, transcoding on a miss.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from rich.markup import escape

from tidal_cli.api.resolver import TrackResolver
from tidal_cli.exceptions import TranscodeError
from tidal_cli.media import FileIntegrityChecker, transcode_to_opus
from tidal_cli.models.track import Track
from tidal_cli.storage.cache import ContentCache

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedTrack:
    """A track whose audio is ready in the cache."""

    track: Track
    path: Path
    from_cache: bool


class TrackLoader:
    """
    Orchestrates search, stream resolution, transcoding and caching for one query.

    The returned path is what the player reads from.
    """

    def __init__(
        self,
        resolver: TrackResolver,
        cache: ContentCache,
        transcode: Callable[[str], Awaitable[bytes]] = transcode_to_opus,
        verify: bool = True,
    ):
        self.resolver = resolver
        self.cache = cache
        self._transcode = transcode
        self._verify = verify

    async def load(self, query: str) -> LoadedTrack | None:
        """
        Finds the first streamable match for a query and makes sure it is cached.

        Returns:
            The loaded track, or None if nothing streamable matched.
        """
        tracks = await self.resolver.find_tracks(query, limit=1)
        if not tracks:
            log.info(f"[yellow]No track was found for '{escape(query)}'.[/yellow]")
            return None
        return await self.load_track(tracks[0])

    async def load_track(self, track: Track) -> LoadedTrack:
        """Returns the cached file for a resolved track, transcoding it if missing."""
        if await self.cache.exists(track.id):
            path = await self.cache.lookup(track.id)
            if path is not None:
                log.debug(f"Track already cached: {track.id}")
                return LoadedTrack(track=track, path=path, from_cache=True)

        data = await self._transcode(track.stream_url)
        if self._verify and not FileIntegrityChecker.check_opus(data, label=track.id):
            raise TranscodeError(f"Transcoded audio for '{track.title}' is not valid Opus.")

        report = await self.cache.insert(track.id, data)
        if report.evicted:
            log.debug(f"Evicted {len(report.evicted)} entries to make room for {track.id}.")
        return LoadedTrack(
            track=track, path=self.cache.path_for(track.id), from_cache=False
        )
