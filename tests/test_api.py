import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from chaincapture import config
from chaincapture import main as main_module

from conftest import FakeResponse, FakeSession, WALLET_A, read_stored


@pytest.fixture
def client(local_backends):
    with TestClient(main_module.app) as test_client:
        main_module.remix_client.session = FakeSession(lambda url, kwargs: FakeResponse({
            "id": "trace-abc",
            "choices": [{"message": {"content": "Watercolor take on the pier"}}],
            "usage": {"total_tokens": 500},
        }))
        yield test_client


def upload(client, payload, metadata, content_type="image/jpeg", filename="capture.jpg"):
    return client.post(
        "/api/upload-ipfs",
        files={"file": (filename, payload, content_type)},
        data={"metadata": metadata if isinstance(metadata, str) else json.dumps(metadata)},
    )


def test_root_and_health(client):
    root = client.get("/").json()
    assert root["name"] == "ChainCapture API"
    assert root["chain_backend"] == "local"

    health = client.get("/health")
    assert health.status_code == 200
    body = health.json()
    assert body["status"] == "healthy"
    assert body["components"]["chain"] == "healthy"
    assert body["components"]["storage"] == "healthy"


def test_capture_register_and_lookup(client, jpeg_bytes, metadata_doc):
    uploaded = upload(client, jpeg_bytes, metadata_doc)
    assert uploaded.status_code == 200
    up = uploaded.json()
    assert up["success"] is True
    assert up["mediaUri"].startswith("ipfs://bafkrei")
    assert up["metadataUri"].startswith("ipfs://bafkrei")

    registered = client.post("/api/register-ip", json={
        "mediaUri": up["mediaUri"],
        "metadataUri": up["metadataUri"],
        "metadata": metadata_doc,
    })
    assert registered.status_code == 200
    reg = registered.json()
    assert reg["tokenId"] == "0"
    assert reg["ipId"].startswith("0x")
    assert reg["txHash"].startswith("0x")
    assert reg["explorerUrl"] == f"{config.STORY_EXPLORER_URL.rstrip('/')}/ipa/{reg['ipId']}"

    owner = main_module.chain_client.default_recipient
    assets = client.get("/api/get-ip-assets", params={"address": owner})
    assert assets.status_code == 200
    body = assets.json()
    assert body["count"] == 1
    assert body["balance"] == 1
    assert body["complete"] is True
    asset = body["ipAssets"][0]
    assert asset["tokenId"] == "0"
    assert asset["tokenURI"] == up["mediaUri"]
    assert asset["ipId"] == reg["ipId"]


def test_uploaded_metadata_is_stored(client, jpeg_bytes, metadata_doc):
    up = upload(client, jpeg_bytes, metadata_doc).json()
    stored = json.loads(read_stored(main_module.content_store, up["metadataUri"]))
    assert stored["title"] == "Sunset at Pier"
    assert stored["ipType"] == "image"
    assert stored["tags"] == ["sunset", "pier"]
    assert read_stored(main_module.content_store, up["mediaUri"]) == jpeg_bytes


def test_upload_requires_metadata(client, jpeg_bytes):
    response = client.post("/api/upload-ipfs", files={"file": ("capture.jpg", jpeg_bytes, "image/jpeg")})
    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.parametrize("metadata", [
    "{not json",
    {"title": "", "ipType": "image"},
    {"title": "Too many tags", "ipType": "image", "tags": ["a", "b", "c", "d", "e", "f"]},
    {"title": "Wrong type", "ipType": "video"},
])
def test_upload_rejects_bad_metadata(client, jpeg_bytes, metadata):
    response = upload(client, jpeg_bytes, metadata)
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_upload_rejects_unsupported_type(client, metadata_doc):
    response = upload(client, b"%PDF-1.4", metadata_doc, content_type="application/pdf", filename="doc.pdf")
    assert response.status_code == 400
    assert "Unsupported media type" in response.json()["error"]


def test_upload_without_pinata_jwt(client, jpeg_bytes, metadata_doc, monkeypatch):
    monkeypatch.setattr(config, "IPFS_PROVIDER", "pinata")
    monkeypatch.setattr(main_module, "content_store", main_module.ContentStoreClient())

    response = upload(client, jpeg_bytes, metadata_doc)
    assert response.status_code == 502
    assert "JWT" in response.json()["error"]


def test_register_requires_fields(client):
    response = client.post("/api/register-ip", json={"mediaUri": "ipfs://x"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "metadataUri" in body["error"]


@pytest.mark.parametrize("params", [{}, {"address": "0x1234"}, {"address": "not-a-wallet"}])
def test_get_ip_assets_rejects_bad_address(client, params):
    response = client.get("/api/get-ip-assets", params=params)
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_get_ip_assets_for_empty_wallet(client):
    body = client.get("/api/get-ip-assets", params={"address": WALLET_A}).json()
    assert body["count"] == 0
    assert body["ipAssets"] == []
    assert body["scanLimit"] == config.OWNERSHIP_SCAN_LIMIT


def test_license_then_derivative(client, metadata_doc):
    parent = client.post("/api/register-ip", json={
        "mediaUri": "ipfs://bafkreiparent", "metadataUri": "ipfs://bafkreimeta", "metadata": metadata_doc,
    }).json()

    attached = client.post("/api/attach-license", json={"ipId": parent["ipId"], "licenseTermsId": "3"})
    assert attached.status_code == 200
    assert attached.json()["txHash"].startswith("0x")

    child = client.post("/api/register-derivative", json={
        "mediaUri": "ipfs://bafkreichild",
        "metadataUri": "ipfs://bafkreimeta",
        "metadata": metadata_doc,
        "parentIpIds": [parent["ipId"]],
        "recipient": WALLET_A,
    })
    assert child.status_code == 200
    assert child.json()["tokenId"] == "1"

    owned = client.get("/api/get-ip-assets", params={"address": WALLET_A}).json()
    assert [a["tokenURI"] for a in owned["ipAssets"]] == ["ipfs://bafkreichild"]


def test_derivative_of_unlicensed_parent_fails(client, metadata_doc):
    parent = client.post("/api/register-ip", json={
        "mediaUri": "ipfs://bafkreiparent", "metadataUri": "ipfs://bafkreimeta", "metadata": metadata_doc,
    }).json()

    response = client.post("/api/register-derivative", json={
        "mediaUri": "ipfs://bafkreichild",
        "metadataUri": "ipfs://bafkreimeta",
        "metadata": metadata_doc,
        "parentIpIds": [parent["ipId"]],
    })
    assert response.status_code == 502
    assert response.json()["success"] is False


def test_remix(client):
    response = client.post("/api/remix", json={
        "sourceIPId": "0xparent",
        "remixPrompt": "paint it in watercolor",
        "style": "watercolor",
    })
    assert response.status_code == 200
    body = response.json()
    assert body["description"] == "Watercolor take on the pier"
    assert body["traceId"] == "trace-abc"
    assert body["cost"] == pytest.approx(0.005)

    sent = main_module.remix_client.session.calls[0][1]["json"]
    assert sent["metadata"]["sourceIPId"] == "0xparent"


def test_remix_requires_fields(client):
    response = client.post("/api/remix", json={"sourceIPId": "0xparent"})
    assert response.status_code == 400
    assert "remixPrompt" in response.json()["error"]


def test_remix_with_malformed_gateway_body(client):
    main_module.remix_client.session = FakeSession(lambda url, kwargs: FakeResponse(["oops"]))
    response = client.post("/api/remix", json={"sourceIPId": "0xparent", "remixPrompt": "x"})
    assert response.status_code == 502
    assert "unexpected list body" in response.json()["error"]


def test_health_checks_storage_off_the_event_loop(client, monkeypatch):
    monkeypatch.setattr(config, "IPFS_PROVIDER", "pinata")
    monkeypatch.setattr(config, "PINATA_JWT", "test-jwt")
    on_loop = []

    class LoopAwareSession(FakeSession):
        def get(self, url, **kwargs):
            try:
                asyncio.get_running_loop()
                on_loop.append(True)
            except RuntimeError:
                on_loop.append(False)
            return super().get(url, **kwargs)

    store = main_module.ContentStoreClient()
    store.session = LoopAwareSession(None)
    monkeypatch.setattr(main_module, "content_store", store)

    body = client.get("/health").json()
    assert on_loop == [False]
    assert body["components"]["storage"] == "healthy"


def test_oversized_upload_rejected_before_reading(client, jpeg_bytes, metadata_doc, monkeypatch):
    monkeypatch.setattr(config, "MAX_FILE_SIZE", 16)
    built = []
    monkeypatch.setattr(main_module, "create_captured_media", lambda *args: built.append(args))

    response = upload(client, jpeg_bytes, metadata_doc)
    assert response.status_code == 400
    assert "exceeds maximum" in response.json()["error"]
    assert built == []
