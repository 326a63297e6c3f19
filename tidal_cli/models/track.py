"""
Immutable track value built from a search descriptor and a stream resolution.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Track:
    """A resolved, streamable track. `stream_url` expires quickly; never persist it."""

    id: str
    title: str
    artist: str
    album: str
    duration: int
    stream_url: str = field(repr=False)
    featured_artists: tuple[str, ...] = ()

    @classmethod
    def from_descriptor(
        cls, descriptor: dict[str, Any], resolution: dict[str, Any]
    ) -> "Track":
        """
        Combines a raw search item with its stream resolution payload.

        Args:
            descriptor: A track item from the search endpoint.
            resolution: The urlpostpaywall response for that track.
        """
        artists = descriptor.get("artists") or []
        main_artist = (descriptor.get("artist") or {}).get("name")
        if not main_artist and artists:
            main_artist = artists[0].get("name")

        featured = tuple(
            a["name"]
            for a in artists
            if a.get("type") == "FEATURED" and a.get("name")
        )

        return cls(
            id=str(resolution.get("trackId", descriptor["id"])),
            title=descriptor.get("title", "Unknown Title"),
            artist=main_artist or "Unknown Artist",
            album=(descriptor.get("album") or {}).get("title", "Unknown Album"),
            duration=int(descriptor.get("duration") or 0),
            stream_url=resolution["urls"][0],
            featured_artists=featured,
        )
