"""
In-process model of the ChainCapture ERC-721 token contract.

Tokens are numbered from 0 by a monotonically increasing counter. Each token
remembers the address it was first minted to (its creator); transfers change
the owner but never the creator.
"""

import threading
import time
import structlog
from dataclasses import dataclass
from typing import Dict, List, Optional

from web3 import Web3

from chaincapture.core.errors import ChainError, InvalidAddressError, TokenNotFoundError

logger = structlog.get_logger()

@dataclass(frozen=True)
class MediaMinted:
    """Event emitted for every minted token."""
    token_id: int
    creator: str
    token_uri: str
    timestamp: int

@dataclass
class _Token:
    owner: str
    creator: str
    uri: str

def normalize_address(address: str) -> str:
    """Checksum an address, rejecting anything that is not 20 bytes of hex."""
    if not isinstance(address, str) or not Web3.is_address(address):
        raise InvalidAddressError(f"Invalid address: {address!r}")
    return Web3.to_checksum_address(address)

class ChainCaptureNFT:
    """ERC-721 ledger with creator tracking and batch minting."""

    name = "ChainCapture"
    symbol = "CCAP"

    def __init__(self, owner: str, address: Optional[str] = None):
        self.owner = normalize_address(owner)
        self.address = normalize_address(address) if address else self._derive_address(self.owner)
        self.events: List[MediaMinted] = []
        self._tokens: Dict[int, _Token] = {}
        self._balances: Dict[str, int] = {}
        self._next_token_id = 0
        self._lock = threading.Lock()

    @staticmethod
    def _derive_address(owner: str) -> str:
        digest = Web3.keccak(text=f"{ChainCaptureNFT.name}:{owner}")
        return Web3.to_checksum_address("0x" + bytes(digest[-20:]).hex())

    def get_current_token_id(self) -> int:
        """Id the next mint will receive; equals the number of tokens minted."""
        return self._next_token_id

    def mint(self, to: str, token_uri: str) -> int:
        if not token_uri:
            raise ChainError("Token URI cannot be empty")
        recipient = normalize_address(to)

        with self._lock:
            token_id = self._mint_locked(recipient, token_uri)

        logger.debug("Token minted", token_id=token_id, to=recipient, token_uri=token_uri)
        return token_id

    def mint_batch(self, to: str, token_uris: List[str]) -> List[int]:
        """Mint one token per URI to the same recipient, all or nothing."""
        if not token_uris:
            raise ChainError("Token URI list cannot be empty")
        if any(not uri for uri in token_uris):
            raise ChainError("Token URI cannot be empty")
        recipient = normalize_address(to)

        with self._lock:
            token_ids = [self._mint_locked(recipient, uri) for uri in token_uris]

        logger.debug("Batch minted", count=len(token_ids), to=recipient)
        return token_ids

    def _mint_locked(self, recipient: str, token_uri: str) -> int:
        token_id = self._next_token_id
        self._tokens[token_id] = _Token(owner=recipient, creator=recipient, uri=token_uri)
        self._balances[recipient] = self._balances.get(recipient, 0) + 1
        self._next_token_id += 1
        self.events.append(MediaMinted(token_id, recipient, token_uri, int(time.time())))
        return token_id

    def _require_token(self, token_id: int) -> _Token:
        token = self._tokens.get(int(token_id))
        if token is None:
            raise TokenNotFoundError("Token does not exist")
        return token

    def owner_of(self, token_id: int) -> str:
        return self._require_token(token_id).owner

    def token_uri(self, token_id: int) -> str:
        return self._require_token(token_id).uri

    def creator_of(self, token_id: int) -> str:
        return self._require_token(token_id).creator

    def balance_of(self, owner: str) -> int:
        return self._balances.get(normalize_address(owner), 0)

    def transfer_from(self, from_address: str, to: str, token_id: int) -> None:
        sender = normalize_address(from_address)
        recipient = normalize_address(to)

        with self._lock:
            token = self._require_token(token_id)
            if token.owner != sender:
                raise ChainError("Transfer from incorrect owner")
            token.owner = recipient
            self._balances[sender] -= 1
            self._balances[recipient] = self._balances.get(recipient, 0) + 1

        logger.debug("Token transferred", token_id=token_id, from_address=sender, to=recipient)
