"""
Turns free-text queries into track candidates and resolves their stream URLs.
"""

import logging
from collections.abc import Iterable
from typing import Any

from tidal_cli.exceptions import NotAvailable
from tidal_cli.models.track import Track

from .session import SessionManager

log = logging.getLogger(__name__)


class TrackResolver:
    """Search and stream resolution on top of a SessionManager."""

    def __init__(self, session: SessionManager, audio_quality: str | None = None):
        self._session = session
        self.audio_quality = audio_quality or session.config.audio_quality

    async def search(
        self,
        query: str,
        limit: int = 10,
        types: Iterable[str] = ("tracks",),
        offset: int = 0,
    ) -> dict[str, list[dict[str, Any]]]:
        """
        Searches the catalogue.

        Args:
            query: Free-text query.
            limit: Maximum number of items per category.
            types: Result categories to request, e.g. "tracks", "albums".
            offset: Pagination offset.

        Returns:
            A mapping of each requested category to its ordered items. Categories
            the response carries but were not requested are dropped.
        """
        categories = [t.lower() for t in types]
        identity = self._session.require_identity()
        response = await self._session.authenticated_call(
            "GET",
            self._session.api_url("search"),
            params={
                "query": query,
                "limit": limit,
                "countryCode": identity.country_code,
                "offset": offset,
                "types": ",".join(c.upper() for c in categories),
            },
        )

        results: dict[str, list[dict[str, Any]]] = {}
        for category in categories:
            section = response.get(category)
            if section is None:
                continue
            results[category] = (
                section.get("items", []) if isinstance(section, dict) else list(section)
            )
        return results

    async def resolve(self, descriptor: dict[str, Any]) -> Track:
        """
        Resolves a short-lived stream URL for one search item.

        Raises:
            NotAvailable: If the track cannot be streamed in this region.
        """
        track_id = descriptor["id"]
        if descriptor.get("allowStreaming") is False or descriptor.get("streamReady") is False:
            raise NotAvailable(
                f"'{descriptor.get('title', track_id)}' is not available for streaming."
            )

        identity = self._session.require_identity()
        resolution = await self._session.authenticated_call(
            "GET",
            self._session.api_url(f"tracks/{track_id}/urlpostpaywall"),
            params={
                "sessionId": identity.session_id,
                "countryCode": identity.country_code,
                "urlusagemode": "STREAM",
                "audioquality": self.audio_quality,
                "assetpresentation": "FULL",
            },
        )
        if not resolution.get("urls"):
            raise NotAvailable(
                f"No stream URL returned for '{descriptor.get('title', track_id)}'."
            )
        return Track.from_descriptor(descriptor, resolution)

    async def find_tracks(self, query: str, limit: int = 1) -> list[Track]:
        """Searches for tracks and resolves the streamable ones, in search order."""
        results = await self.search(query, limit=limit, types=("tracks",))
        tracks = []
        for descriptor in results.get("tracks", []):
            try:
                tracks.append(await self.resolve(descriptor))
            except NotAvailable as e:
                log.info(f"[yellow]Skipping: {e}[/yellow]")
        return tracks
