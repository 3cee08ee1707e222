import io
import logging
import os
import posixpath
import time
import zipfile
from typing import List, Optional

from .archive import BoundedArchive, validate_image_name, validate_path
from .content import find_tags, image_reference, replace_image_reference
from .errors import (
    ContentPartMissing,
    EntryNotFound,
    InvalidArchiveFormat,
    InvalidPath,
    ManifestPartMissing,
    TagNotFound,
)
from .manifest import ensure_manifest_entry
from .overlay import EntryStore, check_payload

logger = logging.getLogger(__name__)

CONTENT_PART = "content.xml"
MANIFEST_PART = "META-INF/manifest.xml"
IMAGE_DIR = "Pictures/"
ODT_MIME = "application/vnd.oasis.opendocument.text"

OUTPUT_FILE_MODE = 0o644

# parts the engine rewrites itself; never a resource target
RESERVED_PARTS = frozenset(("mimetype", CONTENT_PART, MANIFEST_PART))


def check_resource_path(path: str) -> None:
    validate_path(path)
    if path in RESERVED_PARTS:
        raise InvalidPath(path, "reserved package part")
    validate_image_name(posixpath.basename(path))


class OdtDocument:
    """An opened ODT package with pending edits.

    Not safe for concurrent use; give each thread its own instance.
    """

    def __init__(self, archive: BoundedArchive, path: Optional[str] = None):
        self.path = path
        self.archive = archive
        self.store = EntryStore(archive)

    @classmethod
    def open(cls, path: str) -> "OdtDocument":
        return cls(BoundedArchive.from_path(path), path=path)

    @classmethod
    def from_bytes(cls, data: bytes) -> "OdtDocument":
        return cls(BoundedArchive(data))

    def close(self):
        self.archive.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # ------------ reading ------------
    def entry_names(self) -> List[str]:
        return self.archive.names()

    def read_entry(self, name: str) -> bytes:
        validate_path(name)
        return self.store.get(name)

    def _read_text(self, name: str, missing: Exception) -> str:
        try:
            data = self.store.get(name)
        except EntryNotFound as exc:
            raise missing from exc
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidArchiveFormat(f"{name} is not valid UTF-8") from exc

    def content_xml(self) -> str:
        return self._read_text(CONTENT_PART, ContentPartMissing(CONTENT_PART))

    def manifest_xml(self) -> str:
        return self._read_text(MANIFEST_PART, ManifestPartMissing(MANIFEST_PART))

    def find_image_tags(self) -> List[str]:
        return find_tags(self.content_xml())

    def image_reference(self, tag: str) -> str:
        return image_reference(self.content_xml(), tag)

    # ------------ editing ------------
    def _manifest_with(self, path: str) -> Optional[str]:
        manifest = self.manifest_xml()
        try:
            return ensure_manifest_entry(manifest, path)
        except ValueError as exc:
            raise ManifestPartMissing(MANIFEST_PART, str(exc)) from exc

    def replace_image_by_tag(self, tag: str, new_image_path: str, data: bytes) -> None:
        """Point the frame named ``tag`` at ``new_image_path`` and store ``data`` there.

        The content part, the manifest and the image are only written once
        all three are known to succeed.
        """
        if not tag:
            raise TagNotFound(tag or "")
        check_resource_path(new_image_path)
        check_payload(new_image_path, data)

        content = self.content_xml()
        new_content = replace_image_reference(content, tag, new_image_path)
        new_manifest = self._manifest_with(new_image_path)

        self.store.set(CONTENT_PART, new_content.encode("utf-8"))
        if new_manifest is not None:
            self.store.set(MANIFEST_PART, new_manifest.encode("utf-8"))
        self.store.set(new_image_path, data)
        logger.debug("replaced image for tag %r with %s (%d bytes)", tag, new_image_path, len(data))

    def add_resource(self, path: str, data: bytes) -> None:
        check_resource_path(path)
        check_payload(path, data)

        new_manifest = self._manifest_with(path)
        if self.store.is_empty():
            self.store.load_all()

        self.store.set(path, data)
        if new_manifest is not None:
            self.store.set(MANIFEST_PART, new_manifest.encode("utf-8"))
        logger.debug("added %s (%d bytes)", path, len(data))

    def add_image(self, name: str, data: bytes) -> None:
        validate_image_name(name)
        self.add_resource(IMAGE_DIR + name, data)

    # ------------ writing ------------
    def _zip_info(self, name: str) -> zipfile.ZipInfo:
        orig = self.archive.info(name)
        if orig is None:
            zi = zipfile.ZipInfo(name, date_time=time.localtime()[:6])
            zi.compress_type = zipfile.ZIP_DEFLATED
            zi.external_attr = OUTPUT_FILE_MODE << 16
            return zi
        zi = zipfile.ZipInfo(name, date_time=orig.date_time)
        zi.external_attr = orig.external_attr
        if orig.compress_type in (zipfile.ZIP_STORED, zipfile.ZIP_DEFLATED):
            zi.compress_type = orig.compress_type
        else:
            zi.compress_type = zipfile.ZIP_DEFLATED
        return zi

    def write_to(self, fileobj) -> int:
        count = 0
        with zipfile.ZipFile(fileobj, "w", zipfile.ZIP_DEFLATED) as zout:
            for name in self.store.names():
                zout.writestr(self._zip_info(name), self.store.get(name))
                count += 1
        return count

    def save_to_bytes(self) -> bytes:
        buf = io.BytesIO()
        count = self.write_to(buf)
        logger.debug("serialized %d entries (%d bytes)", count, buf.tell())
        return buf.getvalue()

    def save(self, path: str) -> None:
        validate_path(path)
        data = self.save_to_bytes()
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, OUTPUT_FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        logger.debug("saved %s", path)
