import io
import zipfile

import pytest
from PIL import Image

CONTENT_XML = """<?xml version="1.0" encoding="UTF-8"?>
<office:document-content xmlns:draw="urn:oasis:names:tc:opendocument:xmlns:drawing:1.0"
    xmlns:xlink="http://www.w3.org/1999/xlink"
    xmlns:svg="urn:oasis:names:tc:opendocument:xmlns:svg-compatible:1.0"
    xmlns:office="urn:oasis:names:tc:opendocument:xmlns:office:1.0">
    <office:body>
        <draw:frame draw:name="image1" draw:style-name="fr1">
            <draw:image xlink:href="Pictures/img1.png" />
            <svg:title>{img1}</svg:title>
        </draw:frame>
        <draw:frame draw:name="photo1" draw:style-name="fr2">
            <draw:image xlink:href="Pictures/photo.jpg" />
        </draw:frame>
    </office:body>
</office:document-content>"""

MANIFEST_XML = """<?xml version="1.0" encoding="UTF-8"?>
<manifest:manifest xmlns:manifest="urn:oasis:names:tc:opendocument:xmlns:manifest:1.0">
    <manifest:file-entry manifest:full-path="/" manifest:media-type="application/vnd.oasis.opendocument.text" />
    <manifest:file-entry manifest:full-path="content.xml" manifest:media-type="text/xml" />
</manifest:manifest>"""

MINIMAL_CONTENT_XML = """<?xml version="1.0" encoding="UTF-8"?>
<office:document-content xmlns:office="urn:oasis:names:tc:opendocument:xmlns:office:1.0">
    <office:body></office:body>
</office:document-content>"""

ODT_MIMETYPE = b"application/vnd.oasis.opendocument.text"


def build_odt(content=CONTENT_XML, manifest=MANIFEST_XML, extra=None) -> bytes:
    """Build an ODT archive in memory; ``None`` leaves a part out."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(zipfile.ZipInfo("mimetype"), ODT_MIMETYPE, compress_type=zipfile.ZIP_STORED)
        if content is not None:
            zf.writestr("content.xml", content)
        if manifest is not None:
            zf.writestr("META-INF/manifest.xml", manifest)
        for name, data in (extra or {}).items():
            zf.writestr(name, data)
    return buf.getvalue()


def zip_names(data: bytes):
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return zf.namelist()


def zip_read(data: bytes, name: str) -> bytes:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return zf.read(name)


@pytest.fixture
def odt_bytes():
    return build_odt(extra={"Pictures/img1.png": b"old png", "Pictures/photo.jpg": b"old jpg"})


@pytest.fixture
def odt_path(tmp_path, odt_bytes):
    path = tmp_path / "test.odt"
    path.write_bytes(odt_bytes)
    return str(path)


@pytest.fixture
def png_bytes():
    bio = io.BytesIO()
    Image.new("RGB", (2, 2), (255, 0, 0)).save(bio, format="PNG")
    return bio.getvalue()


@pytest.fixture
def jpeg_bytes():
    bio = io.BytesIO()
    Image.new("RGB", (2, 2), (0, 0, 255)).save(bio, format="JPEG")
    return bio.getvalue()
