"""File save method.

Persists the init result as one JSON document on local disk. New files are
created exclusively. Overwrites write a sibling temp file and rename it
over the target, so readers see either the old or the new document.
"""
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from vault_init.exceptions import LoadError, SaveError, SaveTargetExistsError
from vault_init.models.config import FileSaveMethodConfig
from vault_init.models.vault import InitResult
from vault_init.save.base import SaveMethod

log = logging.getLogger(__name__)

FILE_MODE = 0o600


class FileSaveMethod(SaveMethod):
    """Save and load init data at a file path."""

    name = "file"

    def __init__(self, path: Path | str, overwrite: bool = False):
        self.path = Path(path)
        self.overwrite = overwrite

    @classmethod
    def from_config(cls, config: FileSaveMethodConfig) -> "FileSaveMethod":
        return cls(path=config.path, overwrite=config.overwrite)

    @property
    def location(self) -> str:
        return str(self.path)

    def save(self, result: InitResult) -> str:
        log.debug(f"Saving init data to file {self.path}")
        payload = result.to_json().encode()

        try:
            if self.overwrite and self.path.exists():
                log.warning(f"Existing file found at {self.path}, overwriting")
                self._replace(payload)
            else:
                self._create(payload)
        except OSError as e:
            raise SaveError(f"Failed to write {self.location}: {e}") from e

        return self.location

    def _create(self, payload: bytes) -> None:
        try:
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, FILE_MODE)
        except FileExistsError as e:
            raise SaveTargetExistsError(self.name, self.location) from e

        with os.fdopen(fd, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())

    def _replace(self, payload: bytes) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def load(self) -> InitResult:
        log.debug(f"Loading init data from file {self.path}")
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError as e:
            raise LoadError(self.name, self.location, "file does not exist") from e
        except OSError as e:
            raise LoadError(self.name, self.location, str(e)) from e

        try:
            return InitResult.model_validate_json(raw)
        except ValidationError as e:
            raise LoadError(
                self.name, self.location, f"invalid init data ({e.error_count()} error(s))"
            ) from e
