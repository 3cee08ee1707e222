import os
import re
from typing import Optional

from .content import attr_escape

DEFAULT_MEDIA_TYPE = "application/octet-stream"

MEDIA_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
}

MANIFEST_END_RE = re.compile(r"</manifest:manifest\s*>", re.IGNORECASE)


def media_type_for(path: str) -> str:
    return MEDIA_TYPES.get(os.path.splitext(path)[1].lower(), DEFAULT_MEDIA_TYPE)


def has_entry(text: str, path: str) -> bool:
    pattern = r'<manifest:file-entry\b[^>]*\smanifest:full-path="%s"[^>]*/>' % re.escape(attr_escape(path))
    return re.search(pattern, text) is not None


def ensure_manifest_entry(text: str, path: str) -> Optional[str]:
    """Return the manifest with a record for ``path`` added.

    Returns ``None`` when a record for that exact path already exists, and
    raises ``ValueError`` if there is no closing ``</manifest:manifest>``.
    """
    if has_entry(text, path):
        return None

    ends = list(MANIFEST_END_RE.finditer(text))
    if not ends:
        raise ValueError("missing </manifest:manifest>")
    end = ends[-1]

    entry = '    <manifest:file-entry manifest:full-path="%s" manifest:media-type="%s" />' % (
        attr_escape(path), media_type_for(path))
    return text[:end.start()] + entry + "\n" + text[end.start():]
