"""
FridgeLingo Backend — Image Store
==================================

What:  Validates uploaded fridge photos, stores them, serves them back and
       cleans them up.
How:   Extension → size → magic-byte MIME checks, then an async write to a
       date-organized directory under a UUID filename.
Who:   AcquisitionService (upload path) and the images router (read path).

Security Model:
    1. Extension check:  fast rejection of obviously wrong files
    2. Size check:       bounded memory; Content-Length and actual bytes
    3. MIME check:       libmagic inspects the header bytes
    4. UUID filename:    no user input ever reaches the file system path
    5. resolve():        served paths must stay inside the storage root

Directory Structure:
    uploads/
    └── 2025/
        └── 01/
            └── 15/
                └── a1b2c3d4-....jpg
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from fridgelingo.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}

_EXTENSION_MIME = {".png": "image/png", ".jpg": "image/jpeg", ".jpeg": "image/jpeg"}


class ImageStore:
    """
    Photo validation and storage.

    Args:
        storage_root:   directory all images live under (created if missing)
        max_file_size:  upper bound in bytes for one upload
    """

    def __init__(self, storage_root: str, max_file_size: int):
        self.storage_root = Path(storage_root).resolve()
        self.max_file_size = max_file_size
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("ImageStore initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: Optional[str]) -> Optional[str]:
        """
        Returns the normalized extension, or None when the upload has no
        filename extension at all (some camera clients omit it).

        Raises:
            ValidationError: an extension that is not an allowed image type
        """
        ext = Path(filename or "").suffix.lower()
        if not ext:
            return None
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Raises:
            ValidationError: empty upload, or larger than max_file_size
        """
        max_mb = self.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(
                message="The uploaded image is empty.",
                field="image",
            )

        if content_length and content_length > self.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="image",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > self.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="image",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_mime_type(self, content: bytes, extension: Optional[str]) -> str:
        """
        Detect the real content type from the file's magic bytes.

        Returns:
            MIME type, e.g. "image/jpeg"

        Raises:
            ValidationError: content is not PNG or JPEG
        """
        try:
            import magic
            mime_type = magic.from_buffer(content, mime=True)
        except ImportError:
            # libmagic missing (e.g. minimal CI images); trust the extension
            logger.warning(
                "python-magic not available — falling back to extension-based type detection."
            )
            mime_type = _EXTENSION_MIME.get(extension or "", "application/octet-stream")
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    f"The file must be a valid image (PNG or JPEG)."
                ),
                field="image",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES.keys())},
            )
        return mime_type

    def validate(
        self,
        filename: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
    ) -> Tuple[str, str]:
        """
        Run every check, cheapest first.

        Returns:
            (extension to store under, detected MIME type)
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        mime_type = self.validate_mime_type(content, ext)
        return ext or ALLOWED_MIME_TYPES[mime_type], mime_type

    # ── Storage ───────────────────────────────────────────────────────────

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """YYYY/MM/DD/<uuid><ext>; returns (absolute, relative)."""
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        relative_path = f"{date_dir}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    async def store(self, content: bytes, extension: str) -> str:
        """
        Write validated bytes to disk.

        Returns:
            Path relative to the storage root (what gets persisted).

        Raises:
            FileStorageError: directory creation or write failed
        """
        absolute_path, relative_path = self._generate_storage_path(extension)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store image at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": relative_path, "os_error": str(e)},
            )

        logger.info("Image stored: %s (%d bytes)", relative_path, len(content))
        return relative_path

    async def cleanup(self, relative_path: str) -> None:
        """Best-effort removal of a stored image; failures are only logged."""
        try:
            path = self.resolve(relative_path)
        except NotFoundError:
            logger.debug("Cleanup: image already gone: %s", relative_path)
            return
        try:
            os.remove(path)
            logger.info("Cleaned up image: %s", relative_path)
        except OSError as e:
            logger.warning("Failed to clean up image %s: %s", relative_path, str(e))

    def resolve(self, relative_path: str) -> Path:
        """
        Map a stored relative path to an existing file inside the root.

        Raises:
            NotFoundError: unknown file, or a path escaping the storage root
        """
        candidate = (self.storage_root / relative_path).resolve()
        if self.storage_root not in candidate.parents or not candidate.is_file():
            raise NotFoundError(resource="image", resource_id=relative_path)
        return candidate
