import os
import uuid
from pathlib import Path
from typing import Tuple
from fastapi import UploadFile, HTTPException
from loguru import logger
from app.core.config import settings


# Define storage location (using Path for OS agnostic handling)
DOCUMENT_DIR = Path(settings.static_dir) / "documents"
DOCUMENT_URL_PREFIX = "/static/documents"
UPLOAD_CHUNK_SIZE = 1024 * 1024

# Allowed file extensions for supply chain documents
ALLOWED_DOCUMENT_EXTENSIONS = {
    "pdf",
    "doc", "docx",
    "xls", "xlsx",
    "csv",
    "txt",
    "png", "jpg", "jpeg",
    "gif", "webp",
}


def file_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if filename and "." in filename else ""


def validate_document_file_extension(filename: str) -> str:
    """
    Validates that the file extension is allowed for document uploads and
    returns it. Raises HTTPException if the extension is not allowed.
    """
    if not filename:
        raise HTTPException(
            status_code=400,
            detail="Filename is required for document uploads."
        )

    ext = file_extension(filename)
    allowed = ", ".join(sorted(ALLOWED_DOCUMENT_EXTENSIONS))

    if not ext:
        raise HTTPException(
            status_code=400,
            detail=f"File must have an extension. Allowed extensions: {allowed}"
        )

    if ext not in ALLOWED_DOCUMENT_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"File extension '.{ext}' is not allowed. Allowed extensions: {allowed}"
        )
    return ext


def save_document_file(upload_file: UploadFile) -> Tuple[str, str, int]:
    """
    Saves an uploaded document under static/documents.

    The upload is streamed to disk in chunks and abandoned as soon as it
    grows past MAX_UPLOAD_SIZE; a partially written file never survives a
    failed save.

    Returns:
        (stored filename, public URL, size in bytes)

    Raises:
        HTTPException(400): Extension not allowed.
        HTTPException(413): File larger than MAX_UPLOAD_SIZE.
    """
    ext = validate_document_file_extension(upload_file.filename or "")

    os.makedirs(DOCUMENT_DIR, exist_ok=True)

    unique_name = f"{uuid.uuid4()}.{ext}"
    file_path = DOCUMENT_DIR / unique_name

    size = 0
    try:
        with open(file_path, "wb") as buffer:
            while True:
                chunk = upload_file.file.read(UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > settings.max_upload_size:
                    raise HTTPException(
                        status_code=413,
                        detail=f"File exceeds the maximum upload size of {settings.max_upload_size} bytes."
                    )
                buffer.write(chunk)
    except HTTPException:
        file_path.unlink(missing_ok=True)
        raise
    except Exception as e:
        file_path.unlink(missing_ok=True)
        logger.error(f"Error saving document {upload_file.filename}: {e}")
        raise e

    return unique_name, f"{settings.public_url}{DOCUMENT_URL_PREFIX}/{unique_name}", size


def delete_document_file(file_name: str) -> None:
    """Removes a stored document; a file that is already gone is ignored."""
    file_path = DOCUMENT_DIR / file_name
    try:
        file_path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not remove document file {file_path}: {e}")
