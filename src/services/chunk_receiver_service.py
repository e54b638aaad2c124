"""
Chunk Receiver Service.
Writes uploaded chunks at their offsets into a partial file and finalizes it
when the final marker arrives.
"""
import logging
import os
from pathlib import Path
from typing import Optional
from src.core import config
from src.core.exceptions import ForbiddenPathException, StorageException, ValidationException

logger = logging.getLogger(__name__)


class ChunkReceiverService:
    """Service placing chunk bytes into files under the upload root."""

    def __init__(self, upload_root: Optional[str] = None):
        self.upload_root = Path(upload_root or config.settings.upload_root)

    def resolve_target(self, directory: str, file_name: str) -> Path:
        """
        Resolve the destination path for ``file_name`` inside ``directory``.

        Raises:
            ValidationException: If the file name is missing
            ForbiddenPathException: If the directory or file name escapes the root
        """
        if not file_name:
            raise ValidationException("Missing X-File-Name header")

        rel_dir = os.path.normpath((directory or "/").lstrip("/") or ".")
        if ".." in rel_dir:
            raise ForbiddenPathException("Invalid directory")

        clean_name = os.path.normpath(file_name)
        if ".." in clean_name or os.path.isabs(clean_name):
            raise ForbiddenPathException("Invalid filename")

        return self.upload_root / rel_dir / clean_name

    @staticmethod
    def partial_path(target: Path) -> Path:
        return target.parent / f".{target.name}.partial"

    def write_chunk(self, directory: str, file_name: str, offset: int, data: bytes) -> int:
        """
        Write ``data`` at ``offset`` of the partial file for ``file_name``.

        Returns:
            Number of bytes written

        Raises:
            StorageException: If the directory or file cannot be written
        """
        if offset < 0:
            raise ValidationException("Invalid X-Chunk-Offset")

        target = self.resolve_target(directory, file_name)
        partial = self.partial_path(target)
        try:
            partial.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(partial, os.O_CREAT | os.O_WRONLY, 0o644)
            with os.fdopen(fd, 'wb') as f:
                f.seek(offset)
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            logger.error("Failed to write chunk for %s: %s", file_name, e)
            raise StorageException(f"Failed to write chunk: {str(e)}") from e

        logger.info("Chunk written: %s offset=%d size=%d", file_name, offset, len(data))
        return len(data)

    def finalize(self, directory: str, file_name: str) -> None:
        """
        Move the partial file into place.

        Raises:
            StorageException: If the partial file is missing or cannot be renamed
        """
        target = self.resolve_target(directory, file_name)
        partial = self.partial_path(target)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if not partial.exists():
                # Zero-byte files never send a data chunk
                partial.touch()
            os.replace(partial, target)
        except OSError as e:
            logger.error("Failed to finalize %s: %s", file_name, e)
            raise StorageException("Failed to finalize") from e

        logger.info("Upload complete: %s", file_name)
