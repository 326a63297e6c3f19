"""
Transcodes a remote audio stream to Ogg/Opus by running ffmpeg as a subprocess.
"""

import asyncio
import logging
import shutil

from tidal_cli.exceptions import TranscodeError

log = logging.getLogger(__name__)


async def transcode_to_opus(url: str, ffmpeg: str = "ffmpeg") -> bytes:
    """
    Downloads and converts an audio stream to Opus in one ffmpeg pass.

    Args:
        url: The stream URL. It expires quickly, so call this right after resolving.
        ffmpeg: The ffmpeg executable name or path.

    Returns:
        The encoded Ogg/Opus bytes.

    Raises:
        TranscodeError: If ffmpeg is missing, fails, or produces no audio.
    """
    executable = shutil.which(ffmpeg)
    if executable is None:
        raise TranscodeError(
            "FFmpeg is not installed or not found in the system PATH."
        )

    process = await asyncio.create_subprocess_exec(
        executable,
        "-i",
        url,
        "-c:a",
        "libopus",
        "-f",
        "opus",
        "pipe:1",
        "-loglevel",
        "error",
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        process.kill()
        await process.wait()
        raise

    if process.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()
        raise TranscodeError(
            f"ffmpeg exited with code {process.returncode}: {message or 'no output'}"
        )
    if not stdout:
        raise TranscodeError("ffmpeg produced no audio.")

    log.debug(f"Transcoded stream to {len(stdout)} bytes of Opus.")
    return stdout
