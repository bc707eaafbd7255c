"""
Storage for uploaded receipt documents
"""

import hashlib
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tradewiser.core.config import settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "image/jpeg",
    "image/png",
    "application/pdf",
    "text/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


class FileUploadError(Exception):
    """Rejected or failed upload"""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class StoredFile:
    file_path: str
    file_name: str
    file_type: str
    size: int


class FileUploadService:
    def __init__(self, upload_dir: Optional[str] = None, max_size: Optional[int] = None):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR).resolve()
        self.max_size = max_size or settings.MAX_UPLOAD_SIZE
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    async def save_uploaded_file(self, original_name: str, content: bytes, content_type: str) -> StoredFile:
        """Write the file under a collision-free name, keeping the original extension"""
        extension = Path(original_name or "").suffix.lower()
        hashed_name = hashlib.md5(f"{original_name}{time.time_ns()}".encode("utf-8")).hexdigest()
        file_name = f"{hashed_name}{extension}"
        file_path = self.upload_dir / file_name

        try:
            file_path.write_bytes(content)
        except OSError as e:
            logger.error(f"Failed to save uploaded file {original_name}: {e}")
            raise FileUploadError(f"Failed to save uploaded file: {e}", status_code=500) from e

        logger.info(f"📎 Saved upload {original_name} -> {file_name} ({len(content)} bytes)")
        return StoredFile(
            file_path=str(file_path),
            file_name=file_name,
            file_type=content_type,
            size=len(content)
        )

    async def handle_receipt_upload(self, original_name: str, content: bytes, content_type: str) -> StoredFile:
        """Validate type and size of a receipt document, then store it"""
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise FileUploadError(
                "Invalid file type. Please upload an image, PDF, CSV, or Excel file.",
                status_code=415
            )

        if len(content) > self.max_size:
            raise FileUploadError(
                f"File is too large. Maximum size is {self.max_size // (1024 * 1024)}MB.",
                status_code=413
            )

        if not content:
            raise FileUploadError("Uploaded file is empty")

        return await self.save_uploaded_file(original_name, content, content_type)

    async def delete_file(self, file_path: str) -> bool:
        """Remove a stored file; False when it does not exist or is outside the upload dir"""
        path = Path(file_path).resolve()
        if self.upload_dir not in path.parents:
            logger.warning(f"Refusing to delete file outside upload dir: {file_path}")
            return False
        if not path.exists():
            return False
        try:
            os.remove(path)
            return True
        except OSError as e:
            logger.error(f"Error deleting file {file_path}: {e}")
            return False
