import logging
import os
import tempfile
from typing import AsyncIterator, BinaryIO, Optional

from Application.helpers.exceptions import ArchiveError
from Data.interfaces.i_staging_repository import IStagingRepository

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class StagingRepository(IStagingRepository):
    """Stages uploaded archives as plain files under a temp directory."""

    def __init__(self, temp_dir: Optional[str] = None):
        self._dir = temp_dir or tempfile.gettempdir()

    @property
    def directory(self) -> str:
        return self._dir

    def path_for(self, filename: str) -> str:
        return os.path.join(self._dir, filename)

    async def save_stream(self, chunks: AsyncIterator[bytes], path: str) -> int:
        written = 0
        try:
            os.makedirs(self._dir, exist_ok=True)
            with open(path, "wb") as f:
                async for chunk in chunks:
                    if chunk:
                        f.write(chunk)
                        written += len(chunk)
        except OSError as ex:
            self.delete(path)
            raise ArchiveError(f"Unable to save upload to {path}: {ex}") from ex
        except BaseException:
            # client disconnects and cancellations still leave nothing behind
            self.delete(path)
            raise
        logger.debug("Streamed %d bytes to %s", written, path)
        return written

    def save_file(self, source: BinaryIO, path: str) -> int:
        written = 0
        try:
            os.makedirs(self._dir, exist_ok=True)
            with open(path, "wb") as f:
                while True:
                    chunk = source.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)
                    written += len(chunk)
        except OSError as ex:
            self.delete(path)
            raise ArchiveError(f"Unable to save upload to {path}: {ex}") from ex
        except BaseException:
            # client disconnects and cancellations still leave nothing behind
            self.delete(path)
            raise
        logger.debug("Copied %d bytes to %s", written, path)
        return written

    def delete(self, path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError as ex:
            logger.warning("Could not delete staged file %s: %s", path, ex)
            return
        logger.debug("Deleted staged file %s", path)
