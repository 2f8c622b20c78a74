import hashlib
import json
import re
import time
import structlog
from typing import Any, Dict, Optional

logger = structlog.get_logger()

CAPTURE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "video/webm": "webm",
    "video/mp4": "mp4",
    "video/quicktime": "mov",
}
MAX_FILENAME_STEM = 120

def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)

def new_capture_id(media_type: str, timestamp_ms: Optional[int] = None) -> str:
    """Generate a capture ID such as ``photo-1718000000000`` or ``video-...``."""
    prefix = "photo" if media_type == "image" else "video"
    return f"{prefix}-{timestamp_ms if timestamp_ms is not None else now_ms()}"

def calculate_bytes_hash(payload: bytes, algorithm: str = "sha256") -> str:
    """Calculate hash of an in-memory payload."""
    hash_obj = hashlib.new(algorithm)
    hash_obj.update(payload)
    return hash_obj.hexdigest()

def canonical_json(document: Dict[str, Any]) -> bytes:
    """
    Stable JSON encoding: keys sorted, no extra spaces, ``None`` values dropped.

    The same document always produces the same bytes, so hashes over it are
    deterministic regardless of field order.
    """
    def _strip_none(value):
        if isinstance(value, dict):
            return {k: _strip_none(v) for k, v in value.items() if v is not None}
        if isinstance(value, list):
            return [_strip_none(v) for v in value]
        return value

    return json.dumps(
        _strip_none(document), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")

def hash_metadata(document: Dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON encoding, ``0x``-prefixed (bytes32 hex)."""
    digest = "0x" + calculate_bytes_hash(canonical_json(document))
    logger.debug("Calculated metadata hash", hash=digest)
    return digest

def format_file_size(size_bytes: int) -> str:
    """Format file size in human-readable format."""
    if size_bytes == 0:
        return "0 B"

    size_names = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while size_bytes >= 1024 and i < len(size_names) - 1:
        size_bytes /= 1024.0
        i += 1

    return f"{size_bytes:.1f} {size_names[i]}"

def capture_filename(title: str, content_type: str) -> str:
    """
    Build the upload filename for a capture from its metadata title.

    Whitespace runs become dashes, anything outside ``[A-Za-z0-9_.-]`` is
    dropped and the extension follows the MIME type of the capture:
    ``("Sunset at Pier", "image/jpeg") -> "Sunset-at-Pier.jpg"``.
    """
    stem = re.sub(r"\s+", "-", title.strip())
    stem = re.sub(r"[^\w\-.]", "", stem, flags=re.ASCII).lstrip(".")[:MAX_FILENAME_STEM]
    extension = CAPTURE_EXTENSIONS.get(content_type, "bin")
    return f"{stem or 'capture'}.{extension}"

def explorer_url(base_url: str, ip_id: str) -> str:
    """Block explorer page for an IP Asset."""
    return f"{base_url.rstrip('/')}/ipa/{ip_id}"
