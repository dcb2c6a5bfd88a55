"""Output directory holding one published RSS document per bucket."""

import logging
import os
import tempfile
from pathlib import Path

from cinefeed.errors import BuildError, FeedStoreError

logger = logging.getLogger(__name__)


class FeedStore:
    """Reads and atomically replaces ``<directory>/<bucket>.xml`` files."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def check(self) -> None:
        """
        Make sure the directory exists and is writable.

        Raises:
            FeedStoreError: The directory cannot be created or written
        """
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with tempfile.TemporaryFile(dir=self.directory):
                pass
        except OSError as e:
            raise FeedStoreError(f"output directory {self.directory} is not writable: {e}") from e

    def path_for(self, bucket: str) -> Path:
        return self.directory / f"{bucket}.xml"

    def read(self, bucket: str) -> str | None:
        """The currently published document, or None if absent or unreadable."""
        path = self.path_for(bucket)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            error = BuildError(f"cannot read previous feed {path}: {e}")
            logger.warning(f"{error}; treating as absent")
            return None

    def write(self, bucket: str, document: str) -> Path:
        """
        Replace a bucket's document.

        Writes to a temporary file in the same directory and renames it over
        the target, so readers never see a partially written feed.

        Raises:
            FeedStoreError: The document could not be written
        """
        path = self.path_for(bucket)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{bucket}.", suffix=".tmp")
        except OSError as e:
            raise FeedStoreError(f"cannot write {path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(document)
            os.replace(tmp_name, path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise FeedStoreError(f"cannot write {path}: {e}") from e
        logger.info(f"Wrote {path}")
        return path
