"""
Persists the OAuth credential as a small JSON file.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from tidal_cli.exceptions import StorageIOError
from tidal_cli.models.session import Credential

log = logging.getLogger(__name__)


class CredentialStore:
    """
    Reads and writes the credential file.

    Writes go to a temporary file in the same directory which is then renamed
    over the target, so a reader never observes a half-written credential.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Credential | None:
        """
        Loads the stored credential.

        Returns:
            The credential, or None if the file is missing or unreadable.
        """
        if not self.path.is_file():
            return None
        try:
            with open(self.path, encoding="utf-8") as f:
                return Credential.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            log.warning(f"Ignoring unreadable credential file '{self.path}': {e}")
            return None

    def save(self, credential: Credential) -> None:
        """Atomically replaces the credential file."""
        payload = json.dumps(credential.model_dump(), indent=2)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            log.debug(f"Credential saved to '{self.path}'.")
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageIOError(
                f"Failed to save credential to '{self.path}': {e}"
            ) from e
