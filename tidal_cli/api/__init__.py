"""
TIDAL API Layer.

This package handles all communication with the TIDAL API: the OAuth2
device flow, the session lifecycle and track resolution.
"""

from .auth import DeviceAuthenticator
from .resolver import TrackResolver
from .session import SessionManager, SessionState

__all__ = ["DeviceAuthenticator", "SessionManager", "SessionState", "TrackResolver"]
