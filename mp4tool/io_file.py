"""Read-only access to a media file on disk."""

from __future__ import annotations

import os
from typing import BinaryIO


class MediaFile:
    """A file opened for reading whose size is known up front."""

    def __init__(self, path: str | None = None) -> None:
        self.path = path or ""
        self.size = 0
        self._fp: BinaryIO | None = None
        if path is not None:
            self.open(path)

    def __enter__(self) -> MediaFile:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open(self, path: str) -> None:
        """Open ``path`` for reading; raises OSError if it cannot be opened."""
        if self._fp is not None:
            raise ValueError(f"{self.path} is already open")
        fp = open(path, "rb")
        fp.seek(0, os.SEEK_END)
        self.size = fp.tell()
        fp.seek(0, os.SEEK_SET)
        self._fp = fp
        self.path = path

    def is_open(self) -> bool:
        return self._fp is not None

    def _file(self) -> BinaryIO:
        if self._fp is None:
            raise ValueError("file is not open")
        return self._fp

    def position(self) -> int:
        return self._file().tell()

    def seek(self, offset: int, origin: int = os.SEEK_SET) -> int:
        """Move to ``offset`` relative to ``origin`` and return the new position."""
        fp = self._file()
        if origin == os.SEEK_SET and not 0 <= offset <= self.size:
            raise ValueError(f"offset {offset} outside file of size {self.size}")
        if origin == os.SEEK_END and not 0 <= -offset <= self.size:
            raise ValueError(f"offset {offset} from end outside file of size {self.size}")
        return fp.seek(offset, origin)

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes; fewer come back near the end of the file."""
        if size < 1:
            raise ValueError("read size must be at least 1")
        return self._file().read(size)

    def close(self) -> None:
        if self._fp is not None:
            self._fp.close()
            self._fp = None


def open_media_file(path: str) -> MediaFile:
    """Open a media file for reading."""
    return MediaFile(path)