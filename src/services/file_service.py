"""
File Service for upload selections.
Turns picked files and folders into the ordered FileEntry queue.
"""
import os
from pathlib import Path
from typing import Iterable, List
from src.models.file_entry import FileEntry
from src.core.exceptions import ValidationException


class FileService:
    """Service for building the upload queue from local paths."""

    def collect_files(self, files: Iterable[str] = (), folders: Iterable[str] = ()) -> List[FileEntry]:
        """
        Build the upload queue: single files first, then folder contents.

        Args:
            files: Paths picked as individual files
            folders: Paths picked as folders; every regular file below them is queued

        Returns:
            List of FileEntry in upload order

        Raises:
            ValidationException: If a path does not exist or has the wrong type
        """
        entries = [self.file_entry(path) for path in files]
        for folder in folders:
            entries.extend(self.folder_entries(folder))
        return entries

    def file_entry(self, path: str) -> FileEntry:
        """Entry for a single picked file, displayed by its plain name."""
        file_path = Path(path)
        if not file_path.is_file():
            raise ValidationException(f"Not a file: {path}")
        return FileEntry(path=file_path.name, size=file_path.stat().st_size, source=str(file_path))

    def folder_entries(self, path: str) -> List[FileEntry]:
        """
        Entries for every file below a picked folder.

        Display paths are relative to the folder's parent, so they start with the
        folder name and use forward slashes, e.g. ``photos/2024/img.jpg``.
        """
        root = Path(path).resolve()
        if not root.is_dir():
            raise ValidationException(f"Not a folder: {path}")

        entries = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for filename in sorted(filenames):
                file_path = Path(dirpath) / filename
                if not file_path.is_file():
                    continue
                relative = file_path.relative_to(root.parent).as_posix()
                entries.append(FileEntry(path=relative, size=file_path.stat().st_size, source=str(file_path)))
        return entries
