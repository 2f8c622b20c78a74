"""
ChainCapture - capture media, pin it to IPFS and register it as an IP Asset

Browser captures are uploaded to a content-addressed store, minted and
registered on Story Protocol, and can be remixed through an AI gateway.
"""

__version__ = "1.0.0"
__author__ = "ChainCapture Team"
__description__ = "Capture-to-IP Asset registration service"
