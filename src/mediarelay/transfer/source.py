"""Readable byte sources for chunked transfers."""

import asyncio
import os
from typing import BinaryIO


class ByteSource:
    """Random-access reader over a seekable binary stream.

    Reads run in a worker thread so a slow disk does not stall other
    transfers sharing the event loop.
    """

    def __init__(self, file_data: BinaryIO):
        if not file_data.seekable():
            raise ValueError("file_data must be seekable")
        self._file = file_data

    @property
    def size(self) -> int:
        position = self._file.tell()
        try:
            return self._file.seek(0, os.SEEK_END)
        finally:
            self._file.seek(position)

    def _read_sync(self, start: int, end: int) -> bytes:
        self._file.seek(start)
        data = self._file.read(end - start)
        if len(data) != end - start:
            raise IOError(f"Short read at offset {start}: wanted {end - start}, got {len(data)}")
        return data

    async def read(self, start: int, end: int) -> bytes:
        """Read the half-open byte range [start, end)."""
        return await asyncio.to_thread(self._read_sync, start, end)
