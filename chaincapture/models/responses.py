"""
Pydantic models for API request bodies and response payloads.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field

from .media import IPMetadata
from .ip_asset import OwnedAsset

class _ApiModel(BaseModel):
    class Config:
        populate_by_name = True

class RegisterIPRequest(_ApiModel):
    """Body of ``POST /api/register-ip``."""
    media_uri: str = Field(..., min_length=1, alias="mediaUri")
    metadata_uri: str = Field(..., min_length=1, alias="metadataUri")
    metadata: IPMetadata
    recipient: Optional[str] = Field(None, description="Token recipient; defaults to the server wallet")

class RegisterDerivativeRequest(RegisterIPRequest):
    """Body of ``POST /api/register-derivative``."""
    parent_ip_ids: List[str] = Field(..., min_length=1, alias="parentIpIds")
    license_terms_ids: Optional[List[str]] = Field(None, alias="licenseTermsIds")

class AttachLicenseRequest(_ApiModel):
    """Body of ``POST /api/attach-license``."""
    ip_id: str = Field(..., min_length=1, alias="ipId")
    license_terms_id: str = Field(..., min_length=1, alias="licenseTermsId")

class UploadResponse(_ApiModel):
    success: bool = True
    media_uri: str = Field(..., alias="mediaUri")
    metadata_uri: str = Field(..., alias="metadataUri")

class RegisterIPResponse(_ApiModel):
    success: bool = True
    ip_id: str = Field(..., alias="ipId")
    token_id: str = Field(..., alias="tokenId")
    tx_hash: str = Field(..., alias="txHash")
    message: str = Field(..., description="Human-readable message")
    explorer_url: str = Field(..., alias="explorerUrl")

class AttachLicenseResponse(_ApiModel):
    success: bool = True
    tx_hash: str = Field(..., alias="txHash")

class RemixResponse(_ApiModel):
    success: bool = True
    description: str = Field(..., description="Generated remix description")
    trace_id: Optional[str] = Field(None, alias="traceId")
    cost: Optional[float] = Field(None, description="Estimated gateway cost in USD")
    message: str = Field(..., description="Human-readable message")

class IPAssetsResponse(_ApiModel):
    success: bool = True
    ip_assets: List[OwnedAsset] = Field(default_factory=list, alias="ipAssets")
    count: int = Field(..., ge=0)
    balance: int = Field(..., ge=0, description="On-chain balanceOf for the wallet")
    scan_limit: int = Field(..., alias="scanLimit")
    complete: bool = Field(..., description="False when tokens beyond the scan range were not examined")

class ErrorResponse(BaseModel):
    """Error response model."""
    success: bool = Field(default=False)
    error: str = Field(..., description="Error message")

class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Overall service status")
    version: str = Field(..., description="API version")
    components: Dict[str, Any] = Field(..., description="Component health status")
