"""
Wallet ownership lookup by linear token-id scan.

The NFT contract is not enumerable, so ownership is found by asking
``ownerOf`` for token ids 0..limit-1 in order. The scan stops early once
``balanceOf`` tokens have been found. Tokens above the limit are never
examined; ``OwnershipScan.complete`` reports when that happened.
"""

import structlog
from typing import Optional

from chaincapture import config
from chaincapture.core.errors import InvalidAddressError, TokenNotFoundError
from chaincapture.core.ledger import normalize_address
from chaincapture.core.storage import ipfs_to_http
from chaincapture.models.ip_asset import OwnedAsset, OwnershipScan

logger = structlog.get_logger()

def scan_owned_assets(chain, address: str, limit: Optional[int] = None) -> OwnershipScan:
    """Collect the tokens ``address`` owns among ids ``0..limit-1``."""
    if not address:
        raise InvalidAddressError("Wallet address required")
    wallet = normalize_address(address)
    limit = config.OWNERSHIP_SCAN_LIMIT if limit is None else limit

    balance = chain.balance_of(wallet)
    logger.info("Scanning token ownership",
               address=wallet, balance=balance, scan_limit=limit,
               nft_contract=chain.nft_contract_address)

    scan = OwnershipScan(address=wallet, balance=balance, scan_limit=limit)
    if balance == 0:
        return scan

    for token_id in range(limit):
        if len(scan.assets) >= balance:
            break
        try:
            owner = chain.owner_of(token_id)
        except TokenNotFoundError:
            continue

        if owner.lower() != wallet.lower():
            continue

        token_uri = chain.token_uri(token_id)
        scan.assets.append(OwnedAsset(
            token_id=str(token_id),
            token_uri=token_uri,
            gateway_url=ipfs_to_http(token_uri),
            ip_id=chain.ip_id_for(token_id),
            owner=owner,
            nft_contract=chain.nft_contract_address,
        ))

    if not scan.complete:
        logger.warning("Ownership scan hit its limit before finding every token",
                      address=wallet, balance=balance, found=len(scan.assets), scan_limit=limit)
    else:
        logger.info("Ownership scan completed", address=wallet, found=len(scan.assets))
    return scan
