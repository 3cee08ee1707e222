import logging
from typing import Dict, List

from .archive import MAX_ENTRY_SIZE, BoundedArchive
from .errors import EntryNotFound, FileTooLarge, InvalidImageData

logger = logging.getLogger(__name__)


def check_payload(name: str, data: bytes) -> None:
    if not data:
        raise InvalidImageData(name)
    if len(data) > MAX_ENTRY_SIZE:
        raise FileTooLarge(name, len(data), MAX_ENTRY_SIZE)


class EntryStore:
    """Pending entry contents layered over the original archive.

    Anything in the overlay replaces the original entry of the same name
    (or is a new entry). Reads of untouched entries go to the archive
    and are not cached.
    """

    def __init__(self, archive: BoundedArchive):
        self.archive = archive
        self._overlay: Dict[str, bytes] = {}

    def get(self, name: str) -> bytes:
        if name in self._overlay:
            return self._overlay[name]
        if name not in self.archive:
            raise EntryNotFound(name)
        return self.archive.read(name)

    def set(self, name: str, data: bytes) -> None:
        check_payload(name, data)
        self._overlay[name] = bytes(data)

    def load_all(self) -> None:
        # read everything first so a failing entry leaves the overlay as it was
        loaded = {}
        for name in self.archive.names():
            if name not in self._overlay:
                loaded[name] = self.archive.read(name)
        self._overlay.update(loaded)
        logger.debug("materialized %d original entries", len(loaded))

    def contains(self, name: str) -> bool:
        return name in self._overlay or name in self.archive

    def is_empty(self) -> bool:
        return not self._overlay

    def names(self) -> List[str]:
        """Original names in archive order, then overlay-only names sorted."""
        names = self.archive.names()
        extra = sorted(n for n in self._overlay if n not in self.archive)
        return names + extra

