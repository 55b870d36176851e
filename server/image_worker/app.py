"""
Upload/download proxy in front of the flyer image bucket.

GET /{key} streams a stored object back with its content type and
POST /upload stores the first file of a multipart form under a
timestamp-prefixed key.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from image_worker.config import get_worker_settings
from image_worker.storage import BlobStore, InMemoryBlobStore, R2BlobStore

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

_blob_store: BlobStore | None = None


def get_blob_store() -> Optional[BlobStore]:
    """Return the singleton store, or None when no bucket is configured."""
    global _blob_store
    if _blob_store:
        return _blob_store

    settings = get_worker_settings()
    if settings.use_in_memory_storage:
        _blob_store = InMemoryBlobStore()
    elif settings.r2_bucket and settings.r2_endpoint:
        _blob_store = R2BlobStore(
            bucket=settings.r2_bucket,
            endpoint=settings.r2_endpoint,
            access_key_id=settings.r2_access_key_id or "",
            secret_access_key=settings.r2_secret_access_key or "",
            region=settings.r2_region,
        )
    return _blob_store


def make_key(filename: Optional[str], now: Optional[float] = None) -> str:
    millis = int((time.time() if now is None else now) * 1000)
    name = (filename or "upload").replace("\\", "/").rsplit("/", 1)[-1] or "upload"
    return f"{millis}-{name}"


def create_app() -> FastAPI:
    settings = get_worker_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(
        title="ConnectUtahToday image worker",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.exception_handler(StarletteHTTPException)
    async def not_found(request: Request, exc: StarletteHTTPException):
        # Anything that is not GET /{key} or POST /upload is a miss.
        return PlainTextResponse("Not found", status_code=404)

    @app.middleware("http")
    async def cors(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.post("/upload")
    async def upload(request: Request, store: Optional[BlobStore] = Depends(get_blob_store)):
        if store is None:
            logger.error("[POST] Blob store is not configured")
            return JSONResponse(status_code=500, content={"error": "Storage not configured"})
        try:
            form = await request.form()
            upload_file = next(
                (value for _, value in form.multi_items() if isinstance(value, UploadFile)),
                None,
            )
            if upload_file is None:
                return JSONResponse(
                    status_code=400, content={"error": "No file found in form data."}
                )
            key = make_key(upload_file.filename)
            body = await upload_file.read()
            store.put_object(key, body, upload_file.content_type)
        except Exception as exc:
            logger.exception("[POST] Upload failed")
            return JSONResponse(status_code=500, content={"error": str(exc)})

        logger.info("[POST] Stored %s (%d bytes)", key, len(body))
        image_url = f"{get_worker_settings().public_base_url.rstrip('/')}/{key}"
        return {"url": image_url, "message": "Upload received."}

    @app.get("/{key:path}")
    def download(key: str, store: Optional[BlobStore] = Depends(get_blob_store)):
        logger.info("[GET] Request for: /%s", key)
        if not key:
            return PlainTextResponse("Missing key", status_code=400)
        if key == "upload":
            return PlainTextResponse("Not found", status_code=404)
        if store is None:
            logger.error("[GET] Blob store is not configured")
            return PlainTextResponse("Storage not configured", status_code=500)
        try:
            stored = store.get_object(key)
        except Exception as exc:
            logger.exception("[GET] Exception for key %s", key)
            return JSONResponse(status_code=500, content={"error": str(exc)})
        if stored is None:
            logger.warning("[GET] Object not found for key: %s", key)
            return PlainTextResponse("Not found", status_code=404)
        logger.info("[GET] Object found: %s (%d bytes)", key, len(stored.body))
        return Response(content=stored.body, media_type=stored.content_type)

    return app


app = create_app()
