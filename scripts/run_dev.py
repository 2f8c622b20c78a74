#!/usr/bin/env python3
"""
Development server runner for the ChainCapture API.

Validates the backend configuration, probes the chain backend and then
starts uvicorn with auto-reload.
"""

import importlib.util
import os
import sys
import uvicorn
from pathlib import Path

# Make the chaincapture package importable without installing it
sys.path.append(str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

SECRET_VARS = {"WALLET_PRIVATE_KEY", "PINATA_JWT", "ABV_API_KEY"}
OPTIONAL_VARS = [
    "API_HOST", "API_PORT", "DEBUG",
    "STORY_RPC_URL", "STORY_CHAIN_ID",
    "IPFS_GATEWAY_URL", "LOCAL_IPFS_DIR",
    "ABV_API_KEY", "ABV_BASE_URL",
    "OWNERSHIP_SCAN_LIMIT",
]
# Import names, not distribution names
RUNTIME_MODULES = ["fastapi", "uvicorn", "multipart", "web3", "requests", "PIL", "structlog"]

def required_vars_for(chain_backend: str, ipfs_provider: str) -> list:
    """Variables the selected backends cannot run without."""
    required = []
    if chain_backend == "story":
        required += ["WALLET_PRIVATE_KEY", "SPG_NFT_CONTRACT"]
    if ipfs_provider == "pinata":
        required.append("PINATA_JWT")
    return required

def masked(var: str) -> str:
    value = os.getenv(var)
    if value is None:
        return "(unset)"
    return f"{value[:4]}…" if var in SECRET_VARS else value

def check_environment() -> bool:
    chain_backend = os.getenv("CHAIN_BACKEND", "story")
    ipfs_provider = os.getenv("IPFS_PROVIDER", "pinata")

    missing = [var for var in required_vars_for(chain_backend, ipfs_provider) if not os.getenv(var)]
    if missing:
        print(f"❌ CHAIN_BACKEND={chain_backend} / IPFS_PROVIDER={ipfs_provider} need: {', '.join(missing)}")
        print("   Set them in .env (see .env.example) or switch both backends to 'local'.")
        return False

    print(f"✅ Backends configured (chain={chain_backend}, ipfs={ipfs_provider})")
    print("\n📋 Settings:")
    for var in OPTIONAL_VARS:
        print(f"  {var}: {masked(var)}")
    return True

def check_dependencies() -> bool:
    absent = [name for name in RUNTIME_MODULES if importlib.util.find_spec(name) is None]
    if absent:
        print(f"❌ Not installed: {', '.join(absent)}")
        print("   Run: pip install -e .")
        return False
    return True

def check_chain() -> bool:
    from chaincapture.core.chain import create_chain_client

    try:
        health = create_chain_client().health_check()
    except Exception as e:
        print(f"❌ Could not create chain client: {e}")
        return False

    if not health.get("available"):
        print(f"❌ Chain backend '{health['backend']}' unreachable: {health.get('error')}")
        return False
    print(f"✅ Chain backend '{health['backend']}' reachable")
    return True

def main():
    print("📸 ChainCapture dev server")
    print("-" * 40)

    if not (check_environment() and check_dependencies() and check_chain()):
        sys.exit(1)

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", 8000))
    reload = os.getenv("DEBUG", "true").lower() == "true"

    print(f"\n🚀 http://{host}:{port}  (docs at /docs, reload={reload})")
    print("-" * 40)

    try:
        uvicorn.run(
            "chaincapture.main:app",
            host=host,
            port=port,
            reload=reload,
            log_level="debug" if reload else "info",
            access_log=True,
        )
    except KeyboardInterrupt:
        print("\n🛑 Stopped")

if __name__ == "__main__":
    main()
