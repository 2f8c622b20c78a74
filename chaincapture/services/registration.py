"""
IP Asset registration on top of a chain client.

Each call is a single mint-and-register round trip. There is no idempotency
key: calling ``register`` twice mints two tokens.
"""

import structlog
from typing import List, Optional

from chaincapture import config
from chaincapture.core.errors import ChainError, RegistrationError
from chaincapture.core.utils import hash_metadata
from chaincapture.models.ip_asset import IPAsset, RegistrationResult
from chaincapture.models.media import IPMetadata

logger = structlog.get_logger()

def nft_metadata_document(metadata: IPMetadata, media_uri: str) -> dict:
    """ERC-721 style metadata bound to the minted token."""
    return {
        "name": metadata.title,
        "description": metadata.description,
        "image": media_uri,
    }

class IPRegistrationClient:
    """Mints capture NFTs and registers them as IP Assets."""

    def __init__(self, chain):
        self.chain = chain

    def _hashes(self, metadata: IPMetadata, media_uri: str) -> tuple[str, str]:
        return (
            hash_metadata(metadata.to_document()),
            hash_metadata(nft_metadata_document(metadata, media_uri)),
        )

    @staticmethod
    def _check_complete(result: Optional[RegistrationResult]) -> RegistrationResult:
        if result is None or not result.ip_id or result.token_id in (None, "") or not result.tx_hash:
            raise RegistrationError("Incomplete response from Story Protocol")
        return result

    def _build_asset(self, result: RegistrationResult, recipient: str, metadata: IPMetadata,
                     media_uri: str, metadata_uri: str, parent_ip_ids: Optional[List[str]] = None,
                     license_terms_id: Optional[str] = None) -> IPAsset:
        return IPAsset(
            ip_id=result.ip_id,
            nft_contract_address=self.chain.nft_contract_address,
            token_id=result.token_id,
            owner=recipient,
            metadata=metadata,
            content_uri=media_uri,
            metadata_uri=metadata_uri,
            transaction_hash=result.tx_hash,
            parent_ip_ids=parent_ip_ids or [],
            license_terms_id=license_terms_id,
        )

    def register(self, media_uri: str, metadata_uri: str, metadata: IPMetadata,
                 recipient: Optional[str] = None) -> IPAsset:
        """Mint an NFT for the capture and register it as an IP Asset in one call."""
        recipient = recipient or self.chain.default_recipient
        ip_hash, nft_hash = self._hashes(metadata, media_uri)

        logger.info("Registering IP Asset",
                   title=metadata.title, media_uri=media_uri, metadata_uri=metadata_uri,
                   recipient=recipient, nft_contract=self.chain.nft_contract_address)

        try:
            result = self.chain.mint_and_register_ip(
                recipient=recipient,
                ip_metadata_uri=metadata_uri,
                ip_metadata_hash=ip_hash,
                nft_metadata_uri=media_uri,
                nft_metadata_hash=nft_hash,
            )
        except ChainError as e:
            logger.error("IP registration failed; uploaded content is now unreferenced",
                        media_uri=media_uri, metadata_uri=metadata_uri, error=str(e))
            raise RegistrationError(f"Failed to mint and register IP: {e}") from e

        result = self._check_complete(result)
        logger.info("IP Asset registered",
                   ip_id=result.ip_id, token_id=result.token_id, tx_hash=result.tx_hash)
        return self._build_asset(result, recipient, metadata, media_uri, metadata_uri)

    def register_derivative(self, parent_ip_ids: List[str], media_uri: str, metadata_uri: str,
                            metadata: IPMetadata, license_terms_ids: Optional[List[str]] = None,
                            recipient: Optional[str] = None) -> IPAsset:
        """Register a capture as a derivative of existing IP Assets (e.g. an AI remix)."""
        if not parent_ip_ids:
            raise RegistrationError("At least one parent IP is required")
        if license_terms_ids is None:
            license_terms_ids = [config.PIL_TERMS["commercial_remix"]] * len(parent_ip_ids)

        recipient = recipient or self.chain.default_recipient
        ip_hash, nft_hash = self._hashes(metadata, media_uri)

        logger.info("Registering derivative IP Asset",
                   parent_ip_ids=parent_ip_ids, license_terms_ids=license_terms_ids, media_uri=media_uri)

        try:
            result = self.chain.register_derivative(
                recipient=recipient,
                parent_ip_ids=parent_ip_ids,
                license_terms_ids=license_terms_ids,
                ip_metadata_uri=metadata_uri,
                ip_metadata_hash=ip_hash,
                nft_metadata_uri=media_uri,
                nft_metadata_hash=nft_hash,
            )
        except ChainError as e:
            logger.error("Derivative registration failed", parent_ip_ids=parent_ip_ids, error=str(e))
            raise RegistrationError(f"Failed to register derivative: {e}") from e

        result = self._check_complete(result)
        logger.info("Derivative IP Asset registered",
                   ip_id=result.ip_id, token_id=result.token_id, tx_hash=result.tx_hash)
        return self._build_asset(result, recipient, metadata, media_uri, metadata_uri,
                                 parent_ip_ids=parent_ip_ids)

    def attach_license_terms(self, ip_id: str, license_terms_id: str) -> str:
        """Attach PIL license terms to an IP Asset; returns the transaction hash."""
        try:
            tx_hash = self.chain.attach_license_terms(ip_id, license_terms_id)
        except ChainError as e:
            logger.error("Failed to attach license", ip_id=ip_id, license_terms_id=license_terms_id, error=str(e))
            raise RegistrationError(f"Failed to attach license: {e}") from e

        logger.info("License terms attached", ip_id=ip_id, license_terms_id=license_terms_id, tx_hash=tx_hash)
        return tx_hash
