"""
Exception hierarchy shared by the storage, chain and service layers.

Every error carries the HTTP status the API boundary answers with.
"""


class ChainCaptureError(Exception):
    """Base exception for ChainCapture operations."""
    status_code = 500


class ConfigurationError(ChainCaptureError):
    """A required setting (key, contract address, credential) is missing."""
    status_code = 500


class MediaValidationError(ChainCaptureError):
    """Captured media or its metadata was rejected."""
    status_code = 400


class UploadError(ChainCaptureError):
    """Content store upload failed."""
    status_code = 502


class ChainError(ChainCaptureError):
    """Blockchain read or transaction failed."""
    status_code = 502


class TokenNotFoundError(ChainError):
    """Queried token id has never been minted."""
    status_code = 404


class InvalidAddressError(ChainCaptureError):
    """Wallet or contract address is not a valid hex address."""
    status_code = 400


class RegistrationError(ChainCaptureError):
    """IP Asset registration failed or returned an incomplete result."""
    status_code = 502


class RemixError(ChainCaptureError):
    """AI gateway request failed."""
    status_code = 502
