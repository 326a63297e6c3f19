"""
Core application engine for turning a query into a playable file.

The `TrackLoader` ties the API layer to the content cache: it resolves a
query, returns a cached file on a hit, and transcodes and stores it on a miss.
"""

from .track_loader import LoadedTrack, TrackLoader

__all__ = ["LoadedTrack", "TrackLoader"]
