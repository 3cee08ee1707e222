"""Image frame lookup and rewriting on the raw text of ``content.xml``.

The part is handled as text, not as a parsed tree. A frame is the span
from ``<draw:frame ...>`` to the next ``</draw:frame>``; its tag is the
first ``draw:name`` inside it, and its image is the first
``xlink:href`` inside it. Frames written as self-closing elements, tags
repeated across frames, or references quoted with single quotes are not
recognised.
"""
import re
from typing import List
from xml.sax.saxutils import escape, unescape

from .errors import TagNotFound

FRAME_RE = re.compile(r"<draw:frame\b[^>]*(?<!/)>[\s\S]*?</draw:frame>")
FRAME_NAME_RE = re.compile(r'\sdraw:name="([^"]+)"')

# anything up to, but never across, the frame's closing element
_IN_FRAME = r"(?:(?!</draw:frame>)[\s\S])*?"

_ATTR_ESCAPES = {'"': "&quot;"}
_ATTR_UNESCAPES = {"&quot;": '"', "&apos;": "'"}


def attr_escape(value: str) -> str:
    return escape(value, _ATTR_ESCAPES)


def attr_unescape(value: str) -> str:
    return unescape(value, _ATTR_UNESCAPES)


def find_tags(text: str) -> List[str]:
    """Frame tags in order of appearance, duplicates dropped."""
    tags: List[str] = []
    seen = set()
    for frame in FRAME_RE.finditer(text):
        m = FRAME_NAME_RE.search(frame.group(0))
        if not m:
            continue
        tag = attr_unescape(m.group(1))
        if tag not in seen:
            seen.add(tag)
            tags.append(tag)
    return tags


def frame_pattern(tag: str) -> "re.Pattern":
    name = re.escape(attr_escape(tag))
    return re.compile(
        rf'(<draw:frame\b[^>]*\sdraw:name="{name}"[^>]*(?<!/)>{_IN_FRAME}\sxlink:href=")'
        rf'[^"]*'
        rf'("{_IN_FRAME}</draw:frame>)'
    )


def image_reference(text: str, tag: str) -> str:
    """Current ``xlink:href`` of the first frame named ``tag``."""
    m = re.search(
        rf'<draw:frame\b[^>]*\sdraw:name="{re.escape(attr_escape(tag))}"[^>]*(?<!/)>'
        rf'{_IN_FRAME}\sxlink:href="([^"]*)"',
        text,
    )
    if not m:
        raise TagNotFound(tag)
    return attr_unescape(m.group(1))


def replace_image_reference(text: str, tag: str, new_path: str) -> str:
    """Point the first frame named ``tag`` at ``new_path``.

    Only the attribute value changes; everything else in the frame is
    kept byte for byte. Raises :class:`TagNotFound` when no frame matches.
    """
    value = attr_escape(new_path)
    new_text, count = frame_pattern(tag).subn(
        lambda m: m.group(1) + value + m.group(2), text, count=1
    )
    if not count:
        raise TagNotFound(tag)
    return new_text
