from typing import Optional


class OdtError(Exception):
    """Base class for every failure raised by the document engine."""


class InvalidPath(OdtError):
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"invalid or unsafe file path {path!r}: {reason}")


class InvalidLogicalName(OdtError):
    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"invalid image filename {name!r}: {reason}")


class FileTooLarge(OdtError):
    def __init__(self, name: str, size: Optional[int], limit: int):
        self.name = name
        self.size = size
        self.limit = limit
        if size is None:
            msg = f"{name} exceeds limit after decompression (max: {limit})"
        else:
            msg = f"{name} is {size} bytes (max: {limit})"
        super().__init__(f"file size exceeds maximum allowed limit: {msg}")


class TooManyEntries(OdtError):
    def __init__(self, count: int, limit: int):
        self.count = count
        self.limit = limit
        super().__init__(f"too many files in archive: {count} files (max: {limit})")


class InvalidArchiveFormat(OdtError):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"invalid ODT file format: {detail}")


class ContentPartMissing(OdtError):
    def __init__(self, name: str = "content.xml"):
        self.name = name
        super().__init__(f"{name} not found in ODT file")


class ManifestPartMissing(OdtError):
    def __init__(self, name: str = "META-INF/manifest.xml", detail: str = ""):
        self.name = name
        msg = f"{name} not found in ODT file"
        if detail:
            msg = f"{name} is unusable: {detail}"
        super().__init__(msg)


class TagNotFound(OdtError):
    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f"image with specified tag not found: tag {tag!r}")


class InvalidImageData(OdtError):
    def __init__(self, name: str, detail: str = "image data cannot be empty"):
        self.name = name
        super().__init__(f"{detail}: {name}")


class EntryNotFound(OdtError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"file {name} not found in archive")


class SourceError(OdtError):
    """A template or image could not be fetched or decoded."""
