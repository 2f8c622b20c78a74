"""
Pydantic models for registered IP Assets, ownership scans and AI remixes.
"""

from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, Field
from enum import Enum

from .media import IPMetadata

class RemixModel(str, Enum):
    """AI providers the remix gateway can route to."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"

class RegistrationResult(BaseModel):
    """Identifiers returned by a mint-and-register call."""
    ip_id: str = Field(..., description="IP Asset (IP Account) address")
    token_id: str = Field(..., description="Minted token id")
    tx_hash: str = Field(..., description="Transaction hash")

class IPAsset(BaseModel):
    """A registered IP Asset as displayed to the user; never mutated."""
    ip_id: str = Field(..., alias="ipId")
    nft_contract_address: str = Field(..., alias="nftContractAddress")
    token_id: str = Field(..., alias="tokenId")
    owner: str = Field(..., description="Token recipient")
    metadata: IPMetadata
    content_uri: str = Field(..., alias="contentUri", description="ipfs:// URI of the media")
    metadata_uri: str = Field(..., alias="metadataUri", description="ipfs:// URI of the metadata document")
    transaction_hash: str = Field(..., alias="transactionHash")
    registered_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="registeredAt")
    license_terms_id: Optional[str] = Field(None, alias="licenseTermsId")
    parent_ip_ids: List[str] = Field(default_factory=list, alias="parentIpIds")

    class Config:
        populate_by_name = True
        frozen = True

class OwnedAsset(BaseModel):
    """One token found by the ownership scan."""
    token_id: str = Field(..., alias="tokenId")
    token_uri: str = Field(..., alias="tokenURI")
    gateway_url: str = Field(..., alias="gatewayUrl")
    ip_id: str = Field(..., alias="ipId")
    owner: str
    nft_contract: str = Field(..., alias="nftContract")

    class Config:
        populate_by_name = True

class OwnershipScan(BaseModel):
    """Result of a bounded token-id scan for one wallet."""
    address: str
    balance: int = Field(..., ge=0, description="On-chain balanceOf for the wallet")
    scan_limit: int = Field(..., ge=0, description="Token ids 0..scan_limit-1 were examined")
    assets: List[OwnedAsset] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        """False when the wallet owns tokens beyond the scanned range."""
        return len(self.assets) >= self.balance

class RemixRequest(BaseModel):
    """Prompt and source asset for an AI remix."""
    source_ip_id: str = Field(..., min_length=1, alias="sourceIPId")
    remix_prompt: str = Field(..., min_length=1, alias="remixPrompt")
    style: Optional[str] = Field(None, description="Remix style, e.g. 'vintage'")
    model: RemixModel = Field(default=RemixModel.OPENAI, description="Gateway provider")
    source_media_url: str = Field(default="", alias="sourceMediaUrl")

    class Config:
        use_enum_values = True
        populate_by_name = True

class RemixResult(BaseModel):
    """Gateway output; the text stands in for a generated artifact."""
    description: str
    trace_id: Optional[str] = None
    cost: Optional[float] = None
