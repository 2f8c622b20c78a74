import threading
import structlog
from typing import Any, Dict, List, Optional

import requests
from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, Web3Exception
from web3.logs import DISCARD

from chaincapture import config
from chaincapture.core.abi import (
    DERIVATIVE_WORKFLOWS_ABI, ERC721_ABI, IP_ASSET_REGISTRY_ABI,
    LICENSING_MODULE_ABI, REGISTRATION_WORKFLOWS_ABI,
)
from chaincapture.core.errors import ChainError, ConfigurationError, TokenNotFoundError
from chaincapture.core.ledger import ChainCaptureNFT, normalize_address
from chaincapture.models.ip_asset import RegistrationResult

logger = structlog.get_logger()

# Errors a JSON-RPC round trip can surface
_RPC_ERRORS = (Web3Exception, requests.exceptions.RequestException, ValueError)

# Revenue share is expressed on chain in millionths of a percent
REVENUE_SHARE_UNIT = 10 ** 6
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
MAX_UINT32 = 2 ** 32 - 1

def derive_ip_id(chain_id: int, token_contract: str, token_id: int) -> str:
    """Deterministic IP Account address for (chain, contract, token)."""
    digest = Web3.solidity_keccak(
        ["uint256", "address", "uint256"],
        [chain_id, Web3.to_checksum_address(token_contract), int(token_id)],
    )
    return Web3.to_checksum_address("0x" + bytes(digest[-20:]).hex())

def _metadata_tuple(ip_metadata_uri: str, ip_metadata_hash: str,
                    nft_metadata_uri: str, nft_metadata_hash: str) -> tuple:
    return (
        ip_metadata_uri,
        Web3.to_bytes(hexstr=ip_metadata_hash),
        nft_metadata_uri,
        Web3.to_bytes(hexstr=nft_metadata_hash),
    )

class StoryChain:
    """Story Protocol client: SPG mint-and-register plus ERC-721 reads."""

    backend = "story"

    def __init__(self):
        self.chain_id = config.STORY_CHAIN_ID
        self._w3 = Web3(Web3.HTTPProvider(config.STORY_RPC_URL))
        self._account = None
        if config.WALLET_PRIVATE_KEY:
            self._account = self._w3.eth.account.from_key(config.WALLET_PRIVATE_KEY)
        else:
            logger.warning("WALLET_PRIVATE_KEY not configured - registration is disabled")

        self._registration = self._contract(config.REGISTRATION_WORKFLOWS_ADDRESS, REGISTRATION_WORKFLOWS_ABI)
        self._derivatives = self._contract(config.DERIVATIVE_WORKFLOWS_ADDRESS, DERIVATIVE_WORKFLOWS_ABI)
        self._licensing = self._contract(config.LICENSING_MODULE_ADDRESS, LICENSING_MODULE_ABI)
        self._registry = self._contract(config.IP_ASSET_REGISTRY_ADDRESS, IP_ASSET_REGISTRY_ABI)

        logger.info("Story Protocol client initialized",
                   rpc_url=config.STORY_RPC_URL, chain_id=self.chain_id,
                   spg_nft_contract=config.SPG_NFT_CONTRACT or None)

    def _contract(self, address: str, abi: List[Dict[str, Any]]):
        return self._w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    @property
    def nft_contract_address(self) -> str:
        if not config.SPG_NFT_CONTRACT:
            raise ConfigurationError("SPG NFT Contract not configured. Set SPG_NFT_CONTRACT")
        return Web3.to_checksum_address(config.SPG_NFT_CONTRACT)

    @property
    def default_recipient(self) -> str:
        return self._require_account().address

    def _require_account(self):
        if self._account is None:
            raise ConfigurationError("WALLET_PRIVATE_KEY not configured in environment variables")
        return self._account

    def _nft(self):
        return self._contract(self.nft_contract_address, ERC721_ABI)

    def _send_transaction(self, contract_fn) -> Dict[str, Any]:
        """Build, sign and send a transaction; returns the mined receipt."""
        account = self._require_account()
        tx = contract_fn.build_transaction({
            "from": account.address,
            "nonce": self._w3.eth.get_transaction_count(account.address, "pending"),
        })
        signed = account.sign_transaction(tx)

        if hasattr(signed, "raw_transaction"):
            raw_tx = signed.raw_transaction
        else:
            raw_tx = signed.rawTransaction

        tx_hash = self._w3.eth.send_raw_transaction(raw_tx)
        receipt = self._w3.eth.wait_for_transaction_receipt(tx_hash)
        if receipt.get("status") != 1:
            raise ChainError(f"Transaction reverted: {Web3.to_hex(tx_hash)}")
        return receipt

    def _registration_from_receipt(self, receipt, token_contract: str) -> RegistrationResult:
        events = self._registry.events.IPRegistered().process_receipt(receipt, errors=DISCARD)
        matching = [e for e in events if e["args"]["tokenContract"] == token_contract]
        if not matching:
            raise ChainError("IPRegistered event not found in transaction receipt")

        args = matching[-1]["args"]
        return RegistrationResult(
            ip_id=args["ipId"],
            token_id=str(args["tokenId"]),
            tx_hash=Web3.to_hex(receipt["transactionHash"]),
        )

    def mint_and_register_ip(self, recipient: str, ip_metadata_uri: str, ip_metadata_hash: str,
                             nft_metadata_uri: str, nft_metadata_hash: str) -> RegistrationResult:
        """Mint an SPG NFT and register it as an IP Asset in one transaction."""
        spg = self.nft_contract_address
        fn = self._registration.functions.mintAndRegisterIp(
            spg,
            normalize_address(recipient),
            _metadata_tuple(ip_metadata_uri, ip_metadata_hash, nft_metadata_uri, nft_metadata_hash),
            True,
        )
        try:
            receipt = self._send_transaction(fn)
        except _RPC_ERRORS as e:
            logger.error("mintAndRegisterIp transaction failed", error=str(e))
            raise ChainError(f"mintAndRegisterIp failed: {e}") from e
        return self._registration_from_receipt(receipt, spg)

    def register_derivative(self, recipient: str, parent_ip_ids: List[str], license_terms_ids: List[str],
                            ip_metadata_uri: str, ip_metadata_hash: str,
                            nft_metadata_uri: str, nft_metadata_hash: str) -> RegistrationResult:
        """Mint, register and link a derivative to its parents in one transaction."""
        spg = self.nft_contract_address
        deriv_data = (
            [normalize_address(p) for p in parent_ip_ids],
            Web3.to_checksum_address(config.PIL_LICENSE_TEMPLATE_ADDRESS),
            [int(t) for t in license_terms_ids],
            b"",
            config.DERIVATIVE_MAX_MINTING_FEE,
            config.DERIVATIVE_MAX_RTS,
            config.DERIVATIVE_MAX_REVENUE_SHARE * REVENUE_SHARE_UNIT,
        )
        fn = self._derivatives.functions.mintAndRegisterIpAndMakeDerivative(
            spg,
            deriv_data,
            _metadata_tuple(ip_metadata_uri, ip_metadata_hash, nft_metadata_uri, nft_metadata_hash),
            normalize_address(recipient),
            True,
        )
        try:
            receipt = self._send_transaction(fn)
        except _RPC_ERRORS as e:
            logger.error("mintAndRegisterIpAndMakeDerivative transaction failed", error=str(e))
            raise ChainError(f"Derivative registration failed: {e}") from e
        return self._registration_from_receipt(receipt, spg)

    def create_collection(self, name: str, symbol: str, owner: Optional[str] = None) -> Dict[str, str]:
        """
        Deploy an SPG NFT collection through RegistrationWorkflows.

        Minting is restricted to the collection owner (the server wallet by
        default), with no supply cap and no mint fee. Returns the new
        collection address and the transaction hash.
        """
        owner = normalize_address(owner) if owner else self._require_account().address
        init_params = (
            name,
            symbol,
            "",
            "",
            MAX_UINT32,
            0,
            ZERO_ADDRESS,
            ZERO_ADDRESS,
            owner,
            True,
            False,
        )
        fn = self._registration.functions.createCollection(init_params)
        try:
            receipt = self._send_transaction(fn)
        except _RPC_ERRORS as e:
            logger.error("createCollection transaction failed", name=name, error=str(e))
            raise ChainError(f"Failed to create SPG collection: {e}") from e

        events = self._registration.events.CollectionCreated().process_receipt(receipt, errors=DISCARD)
        if not events:
            raise ChainError("CollectionCreated event not found in transaction receipt")

        result = {
            "spg_nft_contract": events[-1]["args"]["spgNftContract"],
            "tx_hash": Web3.to_hex(receipt["transactionHash"]),
        }
        logger.info("SPG collection created", name=name, symbol=symbol, owner=owner, **result)
        return result

    def attach_license_terms(self, ip_id: str, license_terms_id: str) -> str:
        fn = self._licensing.functions.attachLicenseTerms(
            normalize_address(ip_id),
            Web3.to_checksum_address(config.PIL_LICENSE_TEMPLATE_ADDRESS),
            int(license_terms_id),
        )
        try:
            receipt = self._send_transaction(fn)
        except _RPC_ERRORS as e:
            logger.error("attachLicenseTerms transaction failed", ip_id=ip_id, error=str(e))
            raise ChainError(f"Failed to attach license: {e}") from e
        return Web3.to_hex(receipt["transactionHash"])

    def balance_of(self, owner: str) -> int:
        try:
            return int(self._nft().functions.balanceOf(normalize_address(owner)).call())
        except _RPC_ERRORS as e:
            raise ChainError(f"balanceOf failed: {e}") from e

    def owner_of(self, token_id: int) -> str:
        try:
            return self._nft().functions.ownerOf(int(token_id)).call()
        except ContractLogicError as e:
            raise TokenNotFoundError(f"Token {token_id} does not exist") from e
        except _RPC_ERRORS as e:
            raise ChainError(f"ownerOf failed: {e}") from e

    def token_uri(self, token_id: int) -> str:
        try:
            return self._nft().functions.tokenURI(int(token_id)).call()
        except ContractLogicError as e:
            raise TokenNotFoundError(f"Token {token_id} does not exist") from e
        except _RPC_ERRORS as e:
            raise ChainError(f"tokenURI failed: {e}") from e

    def ip_id_for(self, token_id: int) -> str:
        try:
            return self._registry.functions.ipId(
                self.chain_id, self.nft_contract_address, int(token_id)
            ).call()
        except _RPC_ERRORS as e:
            raise ChainError(f"ipId lookup failed: {e}") from e

    def health_check(self) -> Dict[str, Any]:
        health = {"backend": self.backend, "available": False, "error": None}
        try:
            health["available"] = self._w3.is_connected()
            if not health["available"]:
                health["error"] = "RPC endpoint unreachable"
        except _RPC_ERRORS as e:
            health["error"] = str(e)
        return health

class LocalChain:
    """
    Offline chain backend built on the in-process ChainCaptureNFT ledger.

    Registration mints into the ledger and records an IP Asset under a
    deterministically derived ipId; reads go straight to the ledger.
    """

    backend = "local"

    def __init__(self, owner: Optional[str] = None, chain_id: Optional[int] = None):
        self.chain_id = chain_id if chain_id is not None else config.STORY_CHAIN_ID
        if owner is None:
            owner = self._wallet_address()
        self.ledger = ChainCaptureNFT(owner=owner)
        self._ip_assets: Dict[str, Dict[str, Any]] = {}
        self._tx_nonce = 0
        self._lock = threading.Lock()

        logger.info("Local chain initialized",
                   chain_id=self.chain_id, nft_contract=self.ledger.address, owner=self.ledger.owner)

    @staticmethod
    def _wallet_address() -> str:
        if config.WALLET_PRIVATE_KEY:
            return Account.from_key(config.WALLET_PRIVATE_KEY).address
        digest = Web3.keccak(text="chaincapture-local-wallet")
        return Web3.to_checksum_address("0x" + bytes(digest[-20:]).hex())

    @property
    def nft_contract_address(self) -> str:
        return self.ledger.address

    @property
    def default_recipient(self) -> str:
        return self.ledger.owner

    def _next_tx_hash(self, label: str) -> str:
        with self._lock:
            self._tx_nonce += 1
            nonce = self._tx_nonce
        return Web3.to_hex(Web3.keccak(text=f"{self.ledger.address}:{label}:{nonce}"))

    def _register(self, recipient: str, nft_metadata_uri: str, ip_metadata_uri: str,
                  ip_metadata_hash: str, parents: List[str]) -> RegistrationResult:
        token_id = self.ledger.mint(recipient, nft_metadata_uri)
        ip_id = derive_ip_id(self.chain_id, self.ledger.address, token_id)
        with self._lock:
            self._ip_assets[ip_id] = {
                "token_id": token_id,
                "metadata_uri": ip_metadata_uri,
                "metadata_hash": ip_metadata_hash,
                "parents": list(parents),
                "license_terms": [],
            }
        return RegistrationResult(ip_id=ip_id, token_id=str(token_id),
                                  tx_hash=self._next_tx_hash(f"register:{token_id}"))

    def mint_and_register_ip(self, recipient: str, ip_metadata_uri: str, ip_metadata_hash: str,
                             nft_metadata_uri: str, nft_metadata_hash: str) -> RegistrationResult:
        return self._register(recipient, nft_metadata_uri, ip_metadata_uri, ip_metadata_hash, [])

    def register_derivative(self, recipient: str, parent_ip_ids: List[str], license_terms_ids: List[str],
                            ip_metadata_uri: str, ip_metadata_hash: str,
                            nft_metadata_uri: str, nft_metadata_hash: str) -> RegistrationResult:
        if len(parent_ip_ids) != len(license_terms_ids):
            raise ChainError("Each parent IP needs exactly one license terms id")

        parents = [normalize_address(p) for p in parent_ip_ids]
        for parent, terms_id in zip(parents, license_terms_ids):
            record = self._ip_assets.get(parent)
            if record is None:
                raise ChainError(f"Parent IP not registered: {parent}")
            if str(terms_id) not in record["license_terms"]:
                raise ChainError(f"License terms {terms_id} not attached to parent IP {parent}")

        return self._register(recipient, nft_metadata_uri, ip_metadata_uri, ip_metadata_hash, parents)

    def attach_license_terms(self, ip_id: str, license_terms_id: str) -> str:
        ip_id = normalize_address(ip_id)
        with self._lock:
            record = self._ip_assets.get(ip_id)
            if record is None:
                raise ChainError(f"IP not registered: {ip_id}")
            if str(license_terms_id) in record["license_terms"]:
                raise ChainError(f"License terms {license_terms_id} already attached to {ip_id}")
            record["license_terms"].append(str(license_terms_id))
        return self._next_tx_hash(f"license:{ip_id}:{license_terms_id}")

    def ip_asset(self, ip_id: str) -> Optional[Dict[str, Any]]:
        """Registered IP record, or None."""
        return self._ip_assets.get(normalize_address(ip_id))

    def balance_of(self, owner: str) -> int:
        return self.ledger.balance_of(owner)

    def owner_of(self, token_id: int) -> str:
        return self.ledger.owner_of(token_id)

    def token_uri(self, token_id: int) -> str:
        return self.ledger.token_uri(token_id)

    def ip_id_for(self, token_id: int) -> str:
        return derive_ip_id(self.chain_id, self.ledger.address, token_id)

    def health_check(self) -> Dict[str, Any]:
        return {"backend": self.backend, "available": True, "error": None,
                "tokens_minted": self.ledger.get_current_token_id()}

def create_chain_client(backend: Optional[str] = None):
    """Build the chain client selected by ``CHAIN_BACKEND``."""
    backend = backend or config.CHAIN_BACKEND
    if backend == "story":
        return StoryChain()
    if backend == "local":
        return LocalChain()
    raise ConfigurationError(f"Unsupported chain backend: {backend}")
