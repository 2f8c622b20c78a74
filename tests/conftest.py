import io

import pytest
import requests
from PIL import Image

from chaincapture import config

WALLET_A = "0x1111111111111111111111111111111111111111"
WALLET_B = "0x2222222222222222222222222222222222222222"
DEPLOYER = "0x3333333333333333333333333333333333333333"


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}", response=self)


class FakeSession:
    """Records posts and answers them with ``responder(url, kwargs)``."""

    def __init__(self, responder):
        self.responder = responder
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.responder(url, kwargs)

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return FakeResponse({}, 200)


@pytest.fixture
def jpeg_bytes():
    buf = io.BytesIO()
    Image.new("RGB", (4, 3), (200, 10, 10)).save(buf, "JPEG")
    return buf.getvalue()


@pytest.fixture
def local_backends(monkeypatch, tmp_path):
    """Point every client at the offline chain and the on-disk content store."""
    monkeypatch.setattr(config, "CHAIN_BACKEND", "local")
    monkeypatch.setattr(config, "IPFS_PROVIDER", "local")
    monkeypatch.setattr(config, "LOCAL_IPFS_DIR", str(tmp_path / "ipfs"))
    monkeypatch.setattr(config, "WALLET_PRIVATE_KEY", "")
    monkeypatch.setattr(config, "PINATA_JWT", "")
    monkeypatch.setattr(config, "ABV_API_KEY", "test-key")
    return tmp_path


@pytest.fixture
def metadata_doc():
    return {
        "title": "Sunset at Pier",
        "description": "Golden hour over the water",
        "ipType": "image",
        "creators": [WALLET_A],
        "captureDate": "2026-10-18T12:00:00+00:00",
        "tags": ["sunset", "pier"],
    }


def read_stored(store, uri):
    """Bytes a local-provider ``ContentStoreClient`` wrote for ``uri``."""
    cid = uri[len("ipfs://"):]
    (path,) = store.local_dir.glob(f"{cid}*")
    return path.read_bytes()
