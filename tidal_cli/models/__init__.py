"""
Data Models Layer.

This package contains the Pydantic models and dataclasses that define the core
data structures used throughout the application, such as configuration,
credentials, tracks and cache statistics.
"""

from .config import TidalConfig
from .session import Credential, DeviceAuthorization, SessionIdentity
from .stats import CacheStats, EvictionReport
from .track import Track

__all__ = [
    "CacheStats",
    "Credential",
    "DeviceAuthorization",
    "EvictionReport",
    "SessionIdentity",
    "TidalConfig",
    "Track",
]
