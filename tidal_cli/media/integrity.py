"""
Provides methods for checking the integrity of transcoded media before caching it.
"""

import io
import logging

from mutagen import MutagenError
from mutagen.oggopus import OggOpus

log = logging.getLogger(__name__)


class FileIntegrityChecker:
    """A collection of static methods for validating media integrity."""

    @staticmethod
    def check_opus(data: bytes, label: str = "stream") -> bool:
        """
        Performs a basic integrity check on Ogg/Opus bytes.

        Checks if the data can be parsed by mutagen and has a positive duration.

        Args:
            data: The encoded audio.
            label: A name used in log messages.

        Returns:
            True if the data appears to be a valid Ogg/Opus stream, False otherwise.
        """
        try:
            audio = OggOpus(io.BytesIO(data))
            if audio.info and audio.info.length > 0:
                return True
            log.warning(
                f"Opus integrity check failed for '{label}': No valid stream info."
            )
            return False
        except MutagenError as e:
            log.warning(f"Opus integrity check failed for '{label}': {e}")
            return False
