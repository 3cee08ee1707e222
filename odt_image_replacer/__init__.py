"""Swap images inside ODT documents by frame name."""

__version__ = "2.0.0"

from .archive import MAX_ARCHIVE_SIZE, MAX_ENTRIES, MAX_ENTRY_SIZE, MAX_NAME_LENGTH
from .document import CONTENT_PART, IMAGE_DIR, MANIFEST_PART, OdtDocument
from .errors import (
    ContentPartMissing,
    EntryNotFound,
    FileTooLarge,
    InvalidArchiveFormat,
    InvalidImageData,
    InvalidLogicalName,
    InvalidPath,
    ManifestPartMissing,
    OdtError,
    SourceError,
    TagNotFound,
    TooManyEntries,
)
