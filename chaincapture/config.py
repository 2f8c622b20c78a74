import os

from dotenv import load_dotenv

load_dotenv()

# Toggle Story Protocol or the in-process token contract
CHAIN_BACKEND = os.getenv("CHAIN_BACKEND", "story")

# Story Protocol (Aeneid testnet defaults)
STORY_CHAIN_ID = int(os.getenv("STORY_CHAIN_ID", "1315"))
STORY_RPC_URL = os.getenv("STORY_RPC_URL", "https://aeneid.storyrpc.io")
STORY_EXPLORER_URL = os.getenv("STORY_EXPLORER_URL", "https://aeneid.explorer.story.foundation")
WALLET_PRIVATE_KEY = os.getenv("WALLET_PRIVATE_KEY", "")
SPG_NFT_CONTRACT = os.getenv("SPG_NFT_CONTRACT", "")

REGISTRATION_WORKFLOWS_ADDRESS = os.getenv(
    "REGISTRATION_WORKFLOWS_ADDRESS", "0xbe39E1C756e921BD25DF86e7AAa31106d1eb0424"
)
DERIVATIVE_WORKFLOWS_ADDRESS = os.getenv(
    "DERIVATIVE_WORKFLOWS_ADDRESS", "0x9e2d496f72C547C2C535B167e06ED8729B374a4f"
)
LICENSING_MODULE_ADDRESS = os.getenv(
    "LICENSING_MODULE_ADDRESS", "0x04fbd8a2e56dd85CFD5500A4A4DfA955B9f1dE6f"
)
IP_ASSET_REGISTRY_ADDRESS = os.getenv(
    "IP_ASSET_REGISTRY_ADDRESS", "0x77319B4031e6eF1250907aa00018B8B1c67a244b"
)
PIL_LICENSE_TEMPLATE_ADDRESS = os.getenv(
    "PIL_LICENSE_TEMPLATE_ADDRESS", "0x2E896b0b2Fdb7457499B56AAaA4AE55BCB4Cd316"
)

# Default PIL license terms ids
PIL_TERMS = {
    "commercial_use": "1",
    "non_commercial": "2",
    "commercial_remix": "3",
}

# Derivative registration caps (Story SDK defaults)
DERIVATIVE_MAX_MINTING_FEE = int(os.getenv("DERIVATIVE_MAX_MINTING_FEE", "0"))  # 0 = no cap
DERIVATIVE_MAX_RTS = int(os.getenv("DERIVATIVE_MAX_RTS", "100000000"))
DERIVATIVE_MAX_REVENUE_SHARE = int(os.getenv("DERIVATIVE_MAX_REVENUE_SHARE", "100"))  # percent

# SPG NFT collection created by scripts/create_spg_collection.py
SPG_COLLECTION_NAME = os.getenv("SPG_COLLECTION_NAME", "ChainCapture")
SPG_COLLECTION_SYMBOL = os.getenv("SPG_COLLECTION_SYMBOL", "CCAP")

# Toggle Pinata or the local content-addressed store
IPFS_PROVIDER = os.getenv("IPFS_PROVIDER", "pinata")
PINATA_JWT = os.getenv("PINATA_JWT", "")
PINATA_API_URL = os.getenv("PINATA_API_URL", "https://api.pinata.cloud")
IPFS_GATEWAY_URL = os.getenv("IPFS_GATEWAY_URL", "https://gateway.pinata.cloud/ipfs")
LOCAL_IPFS_DIR = os.getenv("LOCAL_IPFS_DIR", "ipfs_store")
IPFS_UPLOAD_TIMEOUT = int(os.getenv("IPFS_UPLOAD_TIMEOUT", "300"))

# ABV.dev AI gateway
ABV_API_KEY = os.getenv("ABV_API_KEY", "")
ABV_BASE_URL = os.getenv("ABV_BASE_URL", "https://api.abv.dev")
REMIX_MODEL_NAME = os.getenv("REMIX_MODEL_NAME", "gpt-4o")
REMIX_TIMEOUT = int(os.getenv("REMIX_TIMEOUT", "120"))

# Ownership scan upper bound (token ids 0..N-1)
OWNERSHIP_SCAN_LIMIT = int(os.getenv("OWNERSHIP_SCAN_LIMIT", "100"))

MAX_FILE_SIZE = int(os.getenv("MAX_FILE_SIZE", 100 * 1024 * 1024))  # 100MB default

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
