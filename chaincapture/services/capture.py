"""
Server-side handling of browser captures.

The browser records a photo (canvas → JPEG) or a video (MediaRecorder →
WebM) and posts the blob; this module validates it and wraps it in a
CapturedMedia for the rest of the pipeline.
"""

import io
import mimetypes
import structlog
from typing import Optional

from PIL import Image, UnidentifiedImageError

from chaincapture import config
from chaincapture.core.errors import MediaValidationError
from chaincapture.core.utils import format_file_size, new_capture_id, now_ms
from chaincapture.models.media import CapturedMedia, IPMetadata, MediaType

logger = structlog.get_logger()

SUPPORTED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp"}
SUPPORTED_VIDEO_TYPES = {"video/webm", "video/mp4", "video/quicktime"}

def detect_media_type(content_type: Optional[str], filename: Optional[str]) -> tuple[str, MediaType]:
    """Resolve the MIME type of an upload and map it to a capture type."""
    content_type = (content_type or "").split(";")[0].strip().lower()
    if not content_type or content_type == "application/octet-stream":
        content_type = (mimetypes.guess_type(filename or "")[0] or "").lower()

    if not content_type:
        raise MediaValidationError("Could not determine file type")

    if content_type in SUPPORTED_IMAGE_TYPES:
        return content_type, MediaType.IMAGE
    if content_type in SUPPORTED_VIDEO_TYPES:
        return content_type, MediaType.VIDEO

    supported = ", ".join(sorted(SUPPORTED_IMAGE_TYPES | SUPPORTED_VIDEO_TYPES))
    raise MediaValidationError(f"Unsupported media type: {content_type}. Supported types: {supported}")

def probe_image(payload: bytes) -> tuple[int, int]:
    """Decode an image header and return ``(width, height)``."""
    try:
        with Image.open(io.BytesIO(payload)) as img:
            size = img.size
            img.verify()
            return size
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise MediaValidationError(f"Captured image could not be decoded: {e}") from e

def check_file_size(size: Optional[int]) -> None:
    """Reject captures over ``MAX_FILE_SIZE``; an unknown size passes."""
    if size is not None and size > config.MAX_FILE_SIZE:
        raise MediaValidationError(
            f"File size exceeds maximum allowed size of {format_file_size(config.MAX_FILE_SIZE)}"
        )

def create_captured_media(payload: bytes, content_type: Optional[str], filename: Optional[str] = None,
                          timestamp_ms: Optional[int] = None) -> CapturedMedia:
    """Validate an uploaded capture and wrap it as CapturedMedia."""
    if not payload:
        raise MediaValidationError("Captured file is empty")
    check_file_size(len(payload))

    resolved_type, media_type = detect_media_type(content_type, filename)
    timestamp = timestamp_ms if timestamp_ms is not None else now_ms()

    width = height = None
    if media_type == MediaType.IMAGE:
        width, height = probe_image(payload)

    media = CapturedMedia(
        id=new_capture_id(media_type.value, timestamp),
        type=media_type,
        payload=payload,
        content_type=resolved_type,
        timestamp=timestamp,
        width=width,
        height=height,
    )

    logger.info("Capture accepted",
               media_id=media.id, media_type=media.type, content_type=resolved_type,
               file_size_human=format_file_size(media.size), width=width, height=height)
    return media

def check_metadata_matches(media: CapturedMedia, metadata: IPMetadata) -> None:
    """The metadata's ipType must describe the capture it accompanies."""
    if metadata.ip_type != media.type:
        raise MediaValidationError(
            f"Metadata ipType '{metadata.ip_type}' does not match captured {media.type}"
        )
