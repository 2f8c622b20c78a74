#!/usr/bin/env python3
"""
Create the ChainCapture SPG NFT collection on Story Protocol.

Run once per deployment; the printed SPG_NFT_CONTRACT line goes into .env
so the API can mint and register captures.
"""

import sys
from pathlib import Path

# Make the chaincapture package importable without installing it
sys.path.append(str(Path(__file__).parent.parent))

from chaincapture import config
from chaincapture.core.chain import StoryChain
from chaincapture.core.errors import ChainCaptureError

def main():
    print("🚀 Creating ChainCapture SPG NFT collection")
    print("-" * 40)

    if not config.WALLET_PRIVATE_KEY:
        print("❌ WALLET_PRIVATE_KEY is not set. Add it to .env first.")
        sys.exit(1)
    if config.SPG_NFT_CONTRACT:
        print(f"⚠️  SPG_NFT_CONTRACT is already set ({config.SPG_NFT_CONTRACT}); a new collection will replace it.")

    chain = StoryChain()
    health = chain.health_check()
    if not health.get("available"):
        print(f"❌ Story RPC unreachable ({config.STORY_RPC_URL}): {health.get('error')}")
        sys.exit(1)

    print(f"  Name:    {config.SPG_COLLECTION_NAME}")
    print(f"  Symbol:  {config.SPG_COLLECTION_SYMBOL}")
    print(f"  Owner:   {chain.default_recipient} (only the owner can mint)")
    print(f"  Chain:   {config.STORY_CHAIN_ID} via {config.STORY_RPC_URL}")
    print("\n⏳ Submitting transaction...")

    try:
        result = chain.create_collection(config.SPG_COLLECTION_NAME, config.SPG_COLLECTION_SYMBOL)
    except ChainCaptureError as e:
        print(f"\n❌ Could not create the collection: {e}")
        sys.exit(1)

    explorer = config.STORY_EXPLORER_URL.rstrip("/")
    print("\n✅ Collection created")
    print(f"  Contract: {result['spg_nft_contract']}")
    print(f"  Tx:       {result['tx_hash']}")
    print(f"  Explorer: {explorer}/address/{result['spg_nft_contract']}")
    print("\nAdd this line to .env and restart the API:")
    print("-" * 40)
    print(f"SPG_NFT_CONTRACT={result['spg_nft_contract']}")
    print("-" * 40)

if __name__ == "__main__":
    main()
