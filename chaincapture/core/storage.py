import asyncio
import base64
import hashlib
import json
import structlog
import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import requests

from chaincapture import config
from chaincapture.core.errors import UploadError
from chaincapture.core.utils import canonical_json, format_file_size

logger = structlog.get_logger()

IPFS_SCHEME = "ipfs://"

# CIDv1 header: version 1, raw codec (0x55), sha2-256 multihash (0x12, 32 bytes)
_CIDV1_RAW_SHA256_PREFIX = bytes([0x01, 0x55, 0x12, 0x20])

def compute_cid(payload: bytes) -> str:
    """CIDv1 (raw codec, sha2-256, base32 multibase) for a payload."""
    digest = hashlib.sha256(payload).digest()
    encoded = base64.b32encode(_CIDV1_RAW_SHA256_PREFIX + digest).decode("ascii")
    return "b" + encoded.lower().rstrip("=")

def ipfs_to_http(uri: str, gateway_url: Optional[str] = None) -> str:
    """Convert an ``ipfs://`` URI to an HTTP gateway URL; other URIs pass through."""
    if uri.startswith(IPFS_SCHEME):
        cid = uri[len(IPFS_SCHEME):]
        gateway = (gateway_url or config.IPFS_GATEWAY_URL).rstrip("/")
        return f"{gateway}/{cid}"
    return uri

class ContentStoreClient:
    """Content-addressed store client for capture media and metadata documents."""

    def __init__(self, provider: Optional[str] = None):
        self.provider = provider or config.IPFS_PROVIDER
        self.session = None
        self.local_dir = None

        if self.provider == "pinata":
            self._initialize_pinata_session()
        elif self.provider == "local":
            self._initialize_local_store()
        else:
            raise UploadError(f"Unsupported IPFS provider: {self.provider}")

        logger.info("Content store client initialized", provider=self.provider)

    def _initialize_pinata_session(self):
        """Initialize HTTP session for the Pinata pinning API."""
        self.session = requests.Session()
        if not config.PINATA_JWT:
            logger.warning("PINATA_JWT not configured - uploads will fail until it is set")
        logger.info("Pinata HTTP session initialized", endpoint=config.PINATA_API_URL)

    def _initialize_local_store(self):
        self.local_dir = Path(config.LOCAL_IPFS_DIR)
        self.local_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Local content store initialized", path=str(self.local_dir))

    def _pinata_headers(self) -> Dict[str, str]:
        if not config.PINATA_JWT:
            raise UploadError("Pinata JWT not configured. Please add PINATA_JWT to your environment")
        return {"Authorization": f"Bearer {config.PINATA_JWT}"}

    def upload_file(self, filename: str, payload: bytes, content_type: str) -> str:
        """
        Upload a media payload.

        Args:
            filename: Name recorded with the pin
            payload: Raw bytes to store
            content_type: MIME type of the payload

        Returns:
            ``ipfs://<cid>`` URI of the stored payload
        """
        logger.info("Starting media upload",
                   filename=filename,
                   file_size_human=format_file_size(len(payload)),
                   content_type=content_type)

        if self.provider == "pinata":
            return self._pin_file_to_pinata(filename, payload, content_type)
        return self._store_local(payload, ".bin")

    def upload_json(self, document: Dict[str, Any], name: str = "metadata.json") -> str:
        """Upload a JSON document and return its ``ipfs://`` URI."""
        logger.info("Starting metadata upload", name=name, keys=sorted(document.keys()))

        if self.provider == "pinata":
            return self._pin_json_to_pinata(document, name)
        return self._store_local(canonical_json(document), ".json")

    async def upload(self, filename: str, payload: bytes, content_type: str,
                     document: Dict[str, Any]) -> Tuple[str, str]:
        """Upload media and metadata concurrently; returns ``(media_uri, metadata_uri)``."""
        media_uri, metadata_uri = await asyncio.gather(
            asyncio.to_thread(self.upload_file, filename, payload, content_type),
            asyncio.to_thread(self.upload_json, document, f"{Path(filename).stem}.json"),
        )
        return media_uri, metadata_uri

    def _pin_file_to_pinata(self, filename: str, payload: bytes, content_type: str) -> str:
        headers = self._pinata_headers()
        endpoint = f"{config.PINATA_API_URL}/pinning/pinFileToIPFS"

        try:
            start_time = time.time()
            response = self.session.post(
                endpoint,
                files={"file": (filename, payload, content_type)},
                data={"pinataMetadata": json.dumps({"name": filename})},
                headers=headers,
                timeout=config.IPFS_UPLOAD_TIMEOUT,
            )
            upload_time = time.time() - start_time
            response.raise_for_status()
            uri = self._uri_from_pinata_response(response)

            logger.info("Pinata file upload completed",
                       filename=filename,
                       storage_uri=uri,
                       upload_time_seconds=round(upload_time, 2))
            return uri

        except requests.exceptions.RequestException as e:
            logger.error("Pinata HTTP error during file upload",
                        filename=filename, error=str(e),
                        status_code=getattr(e.response, 'status_code', None))
            raise UploadError(f"Failed to upload media to IPFS: {e}") from e

    def _pin_json_to_pinata(self, document: Dict[str, Any], name: str) -> str:
        headers = self._pinata_headers()
        endpoint = f"{config.PINATA_API_URL}/pinning/pinJSONToIPFS"

        try:
            response = self.session.post(
                endpoint,
                json={"pinataContent": document, "pinataMetadata": {"name": name}},
                headers=headers,
                timeout=config.IPFS_UPLOAD_TIMEOUT,
            )
            response.raise_for_status()
            uri = self._uri_from_pinata_response(response)

            logger.info("Pinata JSON upload completed", name=name, storage_uri=uri)
            return uri

        except requests.exceptions.RequestException as e:
            logger.error("Pinata HTTP error during JSON upload",
                        name=name, error=str(e),
                        status_code=getattr(e.response, 'status_code', None))
            raise UploadError(f"Failed to upload metadata to IPFS: {e}") from e

    @staticmethod
    def _uri_from_pinata_response(response) -> str:
        try:
            cid = response.json().get("IpfsHash")
        except ValueError as e:
            raise UploadError("Pinata returned a non-JSON response") from e
        if not cid:
            raise UploadError("Pinata upload succeeded but no IpfsHash returned")
        return f"{IPFS_SCHEME}{cid}"

    def _store_local(self, payload: bytes, suffix: str) -> str:
        """Write the payload under its CID; identical content lands on the same path."""
        cid = compute_cid(payload)
        path = self.local_dir / f"{cid}{suffix}"
        try:
            if not path.exists():
                path.write_bytes(payload)
        except OSError as e:
            logger.error("Local content store write failed", path=str(path), error=str(e))
            raise UploadError(f"Failed to write to local content store: {e}") from e

        uri = f"{IPFS_SCHEME}{cid}"
        logger.info("Local upload completed", storage_uri=uri, path=str(path))
        return uri

    def health_check(self) -> Dict[str, Any]:
        """Check the health of the configured provider."""
        health = {"provider": self.provider, "available": False, "error": None}

        if self.provider == "local":
            health["available"] = self.local_dir is not None and self.local_dir.is_dir()
            return health

        if not config.PINATA_JWT:
            health["error"] = "PINATA_JWT not configured"
            return health

        try:
            response = self.session.get(
                f"{config.PINATA_API_URL}/data/testAuthentication",
                headers=self._pinata_headers(),
                timeout=5,
            )
            if response.status_code == 200:
                health["available"] = True
            else:
                health["error"] = f"HTTP {response.status_code}"
        except requests.exceptions.RequestException as e:
            health["error"] = str(e)

        return health
