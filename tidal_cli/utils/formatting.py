"""
Helper functions for formatting data into human-readable strings.
"""

from tidal_cli.models.track import Track


def format_size(bytes_size: int) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_duration(seconds: int) -> str:
    """Formats a track length as 'mm:ss', or 'hh:mm:ss' from one hour up."""
    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours:02}:{minutes:02}:{secs:02}"
    return f"{minutes:02}:{secs:02}"


def format_track(track: Track) -> str:
    """
    Builds a one-line description, e.g. 'Artist - Title ft. Guest (03:25)'.

    Featured artists are left out when the title already credits them.
    """
    title = track.title
    lowered = title.lower()
    if track.featured_artists and "feat." not in lowered and "ft." not in lowered:
        title = f"{title} ft. {', '.join(track.featured_artists)}"
    return f"{track.artist} - {title} ({format_duration(track.duration)})"
