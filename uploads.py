import os
import secrets
import time
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Request, UploadFile

from auth import AuthContext, get_auth_context
from database import utcnow
from errors import ValidationError
from schemas import UploadOut

logger = structlog.get_logger(__name__)

CHUNK_SIZE = 1024 * 1024


def is_allowed_type(content_type: Optional[str]) -> bool:
    content_type = (content_type or "").lower()
    return content_type.startswith("image/") or content_type == "application/pdf"


class UploadStore:
    """Writes receipt files to a directory served under ``url_prefix``."""

    def __init__(self, directory: str, max_bytes: int, url_prefix: str = "/uploads"):
        self.directory = directory
        self.max_bytes = max_bytes
        self.url_prefix = url_prefix.rstrip("/")

    def _filename(self, field: str, original: str) -> str:
        ext = os.path.splitext(original or "")[1].lower()
        suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
        return f"{field}-{suffix}{ext}"

    async def save(self, upload: UploadFile, field: str = "file") -> UploadOut:
        if not is_allowed_type(upload.content_type):
            logger.info("upload_rejected", reason="type", mimetype=upload.content_type)
            raise ValidationError("Only images and PDF files are allowed!")

        os.makedirs(self.directory, exist_ok=True)
        filename = self._filename(field, upload.filename)
        path = os.path.join(self.directory, filename)

        size = 0
        with open(path, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > self.max_bytes:
                    break
                out.write(chunk)

        if size > self.max_bytes:
            os.remove(path)
            logger.info("upload_rejected", reason="size", filename=upload.filename)
            raise ValidationError(
                f"File too large (limit {self.max_bytes // (1024 * 1024)}MB)"
            )

        logger.info("upload_saved", filename=filename, size=size)
        return UploadOut(
            url=f"{self.url_prefix}/{filename}",
            original_name=upload.filename,
            filename=filename,
            size=size,
            mimetype=upload.content_type,
            uploaded_at=utcnow(),
        )


def get_upload_store(request: Request) -> UploadStore:
    return request.app.state.uploads


upload_router = APIRouter()


@upload_router.post("/upload", response_model=UploadOut)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    ctx: AuthContext = Depends(get_auth_context),
    store: UploadStore = Depends(get_upload_store),
):
    if file is None:
        raise ValidationError("No file uploaded")
    return await store.save(file)
