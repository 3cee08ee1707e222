import os
import base64
import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse, Response

from odt_image_replacer import __version__
from odt_image_replacer.document import ODT_MIME
from odt_image_replacer.service import ReplaceRequest, process_replace_request

logger = logging.getLogger(__name__)

SERVICE_NAME = "odt-image-replacer"

app = FastAPI(title="ODT Image Replacer API", version=__version__)

# ------------ light helpers ------------
def ok(d): return JSONResponse(status_code=200, content=d)
def err(m, status=400): return JSONResponse(status_code=status, content={"success": False, "error": str(m)})


def configure_logging():
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


configure_logging()


# ------------ API ------------
@app.get("/healthz")
@app.get("/health")
def healthz():
    return {"status": "healthy", "service": SERVICE_NAME}


@app.get("/info")
def info():
    return {
        "service": "ODT Image Replacer API",
        "version": __version__,
        "description": "Replace images in ODT documents via JSON API",
        "endpoints": {
            "POST /api/replace": "Replace images and return JSON with base64 output",
            "POST /api/replace/download": "Replace images and download ODT file directly",
            "GET  /health": "Health check endpoint",
            "GET  /info": "Service information",
        },
    }


@app.post("/api/replace")
def replace_images(req: ReplaceRequest):
    try:
        response, output = process_replace_request(req)
    except Exception as e:
        logger.exception("replace request failed")
        return err(e, 500)
    if output is None:
        return JSONResponse(status_code=400, content=response.model_dump(exclude_none=True))

    response.output_base64 = base64.b64encode(output).decode("ascii")
    return ok(response.model_dump(exclude_none=True))


@app.post("/api/replace/download")
def replace_images_download(req: ReplaceRequest):
    try:
        response, output = process_replace_request(req)
    except Exception as e:
        logger.exception("replace request failed")
        return err(e, 500)
    if output is None:
        return JSONResponse(status_code=400, content=response.model_dump(exclude_none=True))

    return Response(
        content=output,
        media_type=ODT_MIME,
        headers={"Content-Disposition": "attachment; filename=output.odt"},
    )


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", "8080"))
    host = os.environ.get("HOST", "0.0.0.0")
    uvicorn.run("main:app", host=host, port=port, workers=1, lifespan="off")
