"""
Storage Layer.

This package handles all data persistence: the configuration file, the
credential file, and the bounded audio cache.
"""

from .cache import ContentCache
from .config_manager import ConfigManager
from .credential_store import CredentialStore

__all__ = ["ConfigManager", "ContentCache", "CredentialStore"]
