"""
Media Processing Layer.

This package turns resolved stream URLs into cacheable audio: transcoding
with ffmpeg and integrity validation.
"""

from .integrity import FileIntegrityChecker
from .transcoder import transcode_to_opus

__all__ = ["FileIntegrityChecker", "transcode_to_opus"]
