import base64
import binascii
import io
import logging
import os
import threading
import urllib.parse
from typing import Optional

import requests
from requests.adapters import HTTPAdapter

from .errors import FileTooLarge, SourceError

logger = logging.getLogger(__name__)

_FETCH_SESSION_LOCAL = threading.local()

CHUNK_SIZE = 64 * 1024

PIL_FORMAT_EXT = {
    "PNG": ".png",
    "JPEG": ".jpg",
    "GIF": ".gif",
    "WEBP": ".webp",
}


def _get_fetch_session() -> requests.Session:
    session = getattr(_FETCH_SESSION_LOCAL, "session", None)
    if session is None:
        session = requests.Session()
        adapter = HTTPAdapter(pool_connections=8, pool_maxsize=8)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        _FETCH_SESSION_LOCAL.session = session
    return session


def fetch_timeout() -> float:
    try:
        return float(os.environ.get("FETCH_TIMEOUT", "30"))
    except ValueError:
        return 30.0


def is_blank(value: Optional[str]) -> bool:
    return value is None or value.strip() in ("", "null")


# ------------ base64 / data URIs ------------
def _b64decode(payload: str) -> bytes:
    data = "".join(payload.split())
    padding = len(data) % 4
    if padding:
        data += "=" * (4 - padding)
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SourceError(f"decode base64: {exc}") from exc


def decode_base64_payload(text: str) -> bytes:
    """Decode raw base64, ``base64:``/``base64,`` prefixed text or a data URI."""
    value = (text or "").strip()
    if not value:
        raise SourceError("invalid base64 data")
    if value.startswith("data:"):
        header, _, payload = value.partition(",")
        if not payload:
            raise SourceError("data URI has no payload")
        if ";base64" in header:
            return _b64decode(payload)
        return urllib.parse.unquote_to_bytes(payload)
    if value.startswith("base64:") or value.startswith("base64,"):
        return _b64decode(value[7:])
    return _b64decode(value)


# ------------ URLs ------------
def fetch_url(url: str, limit: int, session=None) -> bytes:
    if is_blank(url):
        raise SourceError("invalid URL")
    session = session or _get_fetch_session()
    try:
        resp = session.get(url.strip(), timeout=fetch_timeout(), stream=True)
    except requests.RequestException as exc:
        raise SourceError(f"fetch URL {url}: {exc}") from exc

    try:
        if not 200 <= resp.status_code < 300:
            raise SourceError(f"fetch URL {url}: HTTP error {resp.status_code}")
        buf = bytearray()
        try:
            for chunk in resp.iter_content(CHUNK_SIZE):
                buf.extend(chunk)
                if len(buf) > limit:
                    raise FileTooLarge(url, None, limit)
        except requests.RequestException as exc:
            raise SourceError(f"read response from {url}: {exc}") from exc
    finally:
        resp.close()
    logger.debug("fetched %s (%d bytes)", url, len(buf))
    return bytes(buf)


def load_source(url: Optional[str], b64: Optional[str], limit: int, session=None, what: str = "image") -> bytes:
    """URL wins over base64; empty strings and ``"null"`` count as absent."""
    if not is_blank(url):
        return fetch_url(url, limit, session=session)
    if not is_blank(b64):
        data = decode_base64_payload(b64)
        if len(data) > limit:
            raise FileTooLarge(f"decoded {what}", len(data), limit)
        return data
    raise SourceError(f"no valid {what} source provided (URL or base64)")


# ------------ sniffing ------------
def detect_image_extension(data: bytes) -> str:
    if not data:
        return ""
    from PIL import Image as PILImage, UnidentifiedImageError

    try:
        with PILImage.open(io.BytesIO(data)) as img:
            fmt = (img.format or "").upper()
    except (UnidentifiedImageError, OSError, ValueError):
        return ""
    return PIL_FORMAT_EXT.get(fmt, "")
