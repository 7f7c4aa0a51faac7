"""Local storage for uploaded files."""

import logging
import re
import uuid
from pathlib import Path
from typing import Dict

from fastapi import UploadFile

from .config import get_settings
from .errors import Invalid

logger = logging.getLogger(__name__)

KINDS = ("assignments", "course-materials")
CHUNK_SIZE = 1024 * 1024
URL_PREFIX = "/uploads"

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def safe_name(filename: str) -> str:
    name = Path(filename or "file").name
    return _UNSAFE.sub("_", name).strip("._") or "file"


def upload_root() -> Path:
    return Path(get_settings().upload_dir)


async def store_upload(upload: UploadFile, kind: str) -> Dict[str, str]:
    """Write ``upload`` under ``<UPLOAD_DIR>/<kind>/`` with a unique prefix.

    Returns the attachment description ``{fileName, fileUrl, fileType}``.
    """
    if kind not in KINDS:
        raise ValueError(f"Unknown upload kind {kind}")
    settings = get_settings()
    directory = upload_root() / kind
    directory.mkdir(parents=True, exist_ok=True)
    stored_name = f"{uuid.uuid4()}-{safe_name(upload.filename)}"
    target = directory / stored_name

    written = 0
    with open(target, "wb") as out:
        while True:
            chunk = await upload.read(CHUNK_SIZE)
            if not chunk:
                break
            written += len(chunk)
            if written > settings.max_upload_size:
                out.close()
                target.unlink(missing_ok=True)
                raise Invalid("file", f"exceeds the maximum upload size of {settings.max_upload_size} bytes")
            out.write(chunk)

    logger.info(f"Stored upload {upload.filename} as {kind}/{stored_name} ({written} bytes)")
    return {
        "fileName": upload.filename or stored_name,
        "fileUrl": f"{URL_PREFIX}/{kind}/{stored_name}",
        "fileType": upload.content_type or "application/octet-stream",
    }
