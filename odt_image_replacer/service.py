import logging
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from .archive import MAX_ARCHIVE_SIZE, MAX_ENTRY_SIZE
from .document import IMAGE_DIR, OdtDocument
from .errors import OdtError
from .sources import detect_image_extension, load_source

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_EXT = ".png"


class ImageSource(BaseModel):
    url: Optional[str] = None
    base64: Optional[str] = None


class TemplateSource(BaseModel):
    url: Optional[str] = None
    base64: Optional[str] = None


class ReplaceRequest(BaseModel):
    template: TemplateSource = Field(default_factory=TemplateSource)
    data: Dict[str, ImageSource] = Field(default_factory=dict)


class ReplaceResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    output_base64: Optional[str] = None
    replaced_tags: List[str] = Field(default_factory=list)
    error: Optional[str] = None


def _failed(message: str) -> Tuple[ReplaceResponse, None]:
    return ReplaceResponse(success=False, error=message), None


def image_path_for(tag: str, data: bytes) -> str:
    ext = detect_image_extension(data) or DEFAULT_IMAGE_EXT
    return f"{IMAGE_DIR}{tag}{ext}"


def process_replace_request(req: ReplaceRequest, session=None) -> Tuple[ReplaceResponse, Optional[bytes]]:
    """Apply every tag -> image pair in ``req`` to its template.

    Tags that fail are skipped; the request only fails as a whole when
    the template is unusable or no tag could be replaced.
    """
    if not req.data:
        return _failed("no images to replace")

    try:
        template = load_source(req.template.url, req.template.base64, MAX_ARCHIVE_SIZE,
                               session=session, what="template")
    except OdtError as e:
        return _failed(f"failed to get template: {e}")

    try:
        doc = OdtDocument.from_bytes(template)
    except OdtError as e:
        return _failed(f"failed to parse template: {e}")

    with doc:
        replaced: List[str] = []
        last_err: Optional[str] = None
        for tag, source in req.data.items():
            try:
                image = load_source(source.url, source.base64, MAX_ENTRY_SIZE, session=session)
                doc.replace_image_by_tag(tag, image_path_for(tag, image), image)
            except OdtError as e:
                last_err = f"replace image for tag '{tag}': {e}"
                logger.warning(last_err)
                continue
            replaced.append(tag)

        if not replaced:
            return _failed(f"failed to replace any images: {last_err}")

        try:
            output = doc.save_to_bytes()
        except OdtError as e:
            return _failed(f"failed to save output: {e}")

    logger.info("replaced %d image(s): %s", len(replaced), ", ".join(replaced))
    return ReplaceResponse(
        success=True,
        message=f"Successfully replaced {len(replaced)} image(s)",
        replaced_tags=replaced,
    ), output
