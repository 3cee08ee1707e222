import io
import logging
import os
import struct
import zipfile
import zlib
from typing import Dict, List, Optional

from .errors import (
    FileTooLarge,
    InvalidArchiveFormat,
    InvalidLogicalName,
    InvalidPath,
    TooManyEntries,
)

logger = logging.getLogger(__name__)

# ------------ limits ------------
MAX_ARCHIVE_SIZE = 100 * 1024 * 1024   # whole .odt, checked before parsing
MAX_ENTRY_SIZE = 50 * 1024 * 1024      # one decompressed entry
MAX_ENTRIES = 10000
MAX_NAME_LENGTH = 255

PARENT_MARKER = ".."

LOCAL_HEADER_MAGIC = b"PK\x03\x04"
LOCAL_HEADER_SIZE = 30


# ------------ validators ------------
def validate_path(path: str) -> None:
    if not path:
        raise InvalidPath(path or "", "empty path")
    if PARENT_MARKER in path:
        raise InvalidPath(path, "path traversal detected")


def validate_image_name(name: str) -> None:
    """Image names are a single flat segment; callers add the directory."""
    if not name:
        raise InvalidLogicalName(name or "", "empty name")
    if PARENT_MARKER in name or "/" in name or "\\" in name:
        raise InvalidLogicalName(name, "invalid characters in name")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidLogicalName(name, "name too long")


def check_archive_size(size: int, name: str = "archive") -> None:
    if size > MAX_ARCHIVE_SIZE:
        raise FileTooLarge(name, size, MAX_ARCHIVE_SIZE)


# ------------ reader ------------
class BoundedArchive:
    """Read-only view of a zip archive held in memory.

    Only the central directory is parsed up front; entry bodies are
    decompressed on demand by :meth:`read`, one at a time and never
    beyond ``MAX_ENTRY_SIZE``.
    """

    def __init__(self, data: bytes):
        check_archive_size(len(data))
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, zlib.error, ValueError) as exc:
            raise InvalidArchiveFormat(str(exc)) from exc

        infos = self._zip.infolist()
        if len(infos) > MAX_ENTRIES:
            self._zip.close()
            raise TooManyEntries(len(infos), MAX_ENTRIES)

        self._data = data
        self._index: Dict[str, zipfile.ZipInfo] = {}
        self._order: List[str] = []
        for info in infos:
            if info.filename in self._index:
                continue
            self._index[info.filename] = info
            self._order.append(info.filename)
        logger.debug("opened archive: %d bytes, %d entries", len(data), len(self._order))

    @classmethod
    def from_path(cls, path: str) -> "BoundedArchive":
        validate_path(path)
        try:
            size = os.stat(path).st_size
        except OSError as exc:
            raise InvalidPath(path, f"stat file: {exc}") from exc
        check_archive_size(size, path)
        with open(path, "rb") as f:
            data = f.read(MAX_ARCHIVE_SIZE + 1)
        return cls(data)

    def names(self) -> List[str]:
        return list(self._order)

    def __contains__(self, name: str) -> bool:
        return name in self._index

    def __len__(self) -> int:
        return len(self._order)

    def info(self, name: str) -> Optional[zipfile.ZipInfo]:
        return self._index.get(name)

    def _raw_span(self, info: zipfile.ZipInfo) -> bytes:
        """Compressed bytes of one entry, located through its local header."""
        start = info.header_offset
        header = self._data[start:start + LOCAL_HEADER_SIZE]
        if len(header) != LOCAL_HEADER_SIZE or header[:4] != LOCAL_HEADER_MAGIC:
            raise InvalidArchiveFormat(f"bad local header for {info.filename}")
        name_len, extra_len = struct.unpack("<HH", header[26:30])
        begin = start + LOCAL_HEADER_SIZE + name_len + extra_len
        raw = self._data[begin:begin + info.compress_size]
        if len(raw) != info.compress_size:
            raise InvalidArchiveFormat(f"truncated data for {info.filename}")
        return raw

    def read(self, name: str) -> bytes:
        """Decompress one entry; raises KeyError if it is not in the archive.

        The directory's sizes are not trusted: inflation stops at
        ``MAX_ENTRY_SIZE + 1`` bytes whatever the entry claims, and output
        longer than the declared size is rejected rather than truncated.
        """
        info = self._index[name]
        validate_path(info.filename)

        if info.file_size > MAX_ENTRY_SIZE:
            logger.warning("rejecting %s: declared size %d", name, info.file_size)
            raise FileTooLarge(name, info.file_size, MAX_ENTRY_SIZE)
        if info.flag_bits & 0x1:
            raise InvalidArchiveFormat(f"open file {name}: entry is encrypted")

        raw = self._raw_span(info)
        if info.compress_type == zipfile.ZIP_STORED:
            data = raw
            overrun = False
        elif info.compress_type == zipfile.ZIP_DEFLATED:
            inflater = zlib.decompressobj(-zlib.MAX_WBITS)
            try:
                data = inflater.decompress(raw, MAX_ENTRY_SIZE + 1)
            except zlib.error as exc:
                raise InvalidArchiveFormat(f"read file {name}: {exc}") from exc
            overrun = bool(inflater.unconsumed_tail)
            if not overrun and not inflater.eof:
                raise InvalidArchiveFormat(f"read file {name}: truncated deflate stream")
        else:
            raise InvalidArchiveFormat(f"open file {name}: unsupported compression {info.compress_type}")

        if overrun or len(data) > MAX_ENTRY_SIZE:
            logger.warning("rejecting %s: decompressed past %d bytes", name, MAX_ENTRY_SIZE)
            raise FileTooLarge(name, None, MAX_ENTRY_SIZE)
        if len(data) > info.file_size:
            logger.warning("rejecting %s: %d bytes, directory says %d", name, len(data), info.file_size)
            raise FileTooLarge(name, len(data), info.file_size)
        if len(data) != info.file_size or zlib.crc32(data) != info.CRC:
            raise InvalidArchiveFormat(f"read file {name}: size or CRC mismatch")
        return data

    def close(self):
        self._zip.close()
