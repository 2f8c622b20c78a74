from types import SimpleNamespace

import pytest
import requests
from web3.exceptions import ContractLogicError

from chaincapture import config
from chaincapture.core.chain import StoryChain
from chaincapture.core.errors import ChainError, ConfigurationError, TokenNotFoundError
from chaincapture.services.ownership import scan_owned_assets

from conftest import WALLET_A, WALLET_B

SPG = "0x4444444444444444444444444444444444444444"
IP_ID = "0x5555555555555555555555555555555555555555"
PARENT_IP = "0x6666666666666666666666666666666666666666"
TX_HASH = b"\xab" * 32
HASH = "0x" + "11" * 32


class FakeCall:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error

    def call(self):
        if self.error:
            raise self.error
        return self.result

    def build_transaction(self, params):
        return dict(params)


class FakeFunctions:
    """Contract functions answered by ``handlers[name](*args)``; calls are recorded."""

    def __init__(self, **handlers):
        self.handlers = handlers
        self.calls = []

    def __getattr__(self, name):
        def invoke(*args):
            self.calls.append((name, args))
            return self.handlers[name](*args)
        return invoke


class FakeEvent:
    def __init__(self, logs):
        self.logs = logs

    def __call__(self):
        return self

    def process_receipt(self, receipt, errors=None):
        return self.logs


def fake_contract(events=None, **handlers):
    return SimpleNamespace(functions=FakeFunctions(**handlers), events=SimpleNamespace(**(events or {})))


class FakeEth:
    def __init__(self, status=1, send_error=None):
        self.status = status
        self.send_error = send_error
        self.nonce_calls = []
        self.sent = []

    def get_transaction_count(self, address, block_identifier="latest"):
        self.nonce_calls.append((address, block_identifier))
        return 7

    def send_raw_transaction(self, raw):
        if self.send_error:
            raise self.send_error
        self.sent.append(raw)
        return TX_HASH

    def wait_for_transaction_receipt(self, tx_hash):
        return {"status": self.status, "transactionHash": tx_hash, "logs": []}


class FakeW3:
    def __init__(self, eth=None, connected=True):
        self.eth = eth or FakeEth()
        self.connected = connected

    def is_connected(self):
        return self.connected


class FakeAccount:
    address = WALLET_A

    def __init__(self):
        self.signed = []

    def sign_transaction(self, tx):
        self.signed.append(tx)
        return SimpleNamespace(raw_transaction=b"signed")


@pytest.fixture
def story(monkeypatch):
    monkeypatch.setattr(config, "WALLET_PRIVATE_KEY", "0x" + "01" * 32)
    monkeypatch.setattr(config, "SPG_NFT_CONTRACT", SPG)
    chain = StoryChain()
    chain._w3 = FakeW3()
    chain._account = FakeAccount()
    return chain


def registered_log(ip_id, token_contract, token_id):
    return {"args": {"ipId": ip_id, "tokenContract": token_contract, "tokenId": token_id}}


def test_mint_and_register_reads_ip_registered_event(story):
    story._registration = fake_contract(mintAndRegisterIp=lambda *args: FakeCall())
    story._registry = fake_contract(events={"IPRegistered": FakeEvent([
        registered_log(PARENT_IP, WALLET_B, 99),
        registered_log(IP_ID, SPG, 7),
    ])})

    result = story.mint_and_register_ip(WALLET_B, "ipfs://meta", HASH, "ipfs://media", HASH)

    assert result.ip_id == IP_ID
    assert result.token_id == "7"
    assert result.tx_hash == "0x" + "ab" * 32

    name, (spg, recipient, metadata, allow_duplicates) = story._registration.functions.calls[0]
    assert name == "mintAndRegisterIp"
    assert (spg, recipient, allow_duplicates) == (SPG, WALLET_B, True)
    assert metadata == ("ipfs://meta", b"\x11" * 32, "ipfs://media", b"\x11" * 32)


def test_transactions_use_pending_nonce(story):
    story._registration = fake_contract(mintAndRegisterIp=lambda *args: FakeCall())
    story._registry = fake_contract(events={"IPRegistered": FakeEvent([registered_log(IP_ID, SPG, 0)])})

    story.mint_and_register_ip(WALLET_A, "ipfs://meta", HASH, "ipfs://media", HASH)

    assert story._w3.eth.nonce_calls == [(WALLET_A, "pending")]
    assert story._account.signed[0]["nonce"] == 7
    assert story._w3.eth.sent == [b"signed"]


def test_missing_ip_registered_event_raises(story):
    story._registration = fake_contract(mintAndRegisterIp=lambda *args: FakeCall())
    story._registry = fake_contract(events={"IPRegistered": FakeEvent([registered_log(IP_ID, WALLET_B, 0)])})

    with pytest.raises(ChainError, match="IPRegistered"):
        story.mint_and_register_ip(WALLET_A, "ipfs://meta", HASH, "ipfs://media", HASH)


def test_reverted_transaction_raises(story):
    story._w3 = FakeW3(FakeEth(status=0))
    story._registration = fake_contract(mintAndRegisterIp=lambda *args: FakeCall())

    with pytest.raises(ChainError, match="reverted"):
        story.mint_and_register_ip(WALLET_A, "ipfs://meta", HASH, "ipfs://media", HASH)


def test_rpc_failure_becomes_chain_error(story):
    story._w3 = FakeW3(FakeEth(send_error=requests.exceptions.ConnectionError("connection refused")))
    story._licensing = fake_contract(attachLicenseTerms=lambda *args: FakeCall())

    with pytest.raises(ChainError, match="connection refused"):
        story.attach_license_terms(IP_ID, "3")


def test_attach_license_returns_tx_hash(story):
    story._licensing = fake_contract(attachLicenseTerms=lambda *args: FakeCall())

    assert story.attach_license_terms(IP_ID, "3") == "0x" + "ab" * 32
    name, (ip_id, template, terms_id) = story._licensing.functions.calls[0]
    assert (ip_id, terms_id) == (IP_ID, 3)
    assert template.lower() == config.PIL_LICENSE_TEMPLATE_ADDRESS.lower()


def test_derivative_uses_default_caps(story):
    story._derivatives = fake_contract(mintAndRegisterIpAndMakeDerivative=lambda *args: FakeCall())
    story._registry = fake_contract(events={"IPRegistered": FakeEvent([registered_log(IP_ID, SPG, 1)])})

    result = story.register_derivative(WALLET_A, [PARENT_IP], ["3"], "ipfs://meta", HASH, "ipfs://media", HASH)

    assert result.ip_id == IP_ID
    _, (spg, deriv_data, _metadata, recipient, _dup) = story._derivatives.functions.calls[0]
    parents, _template, terms, royalty_context, max_fee, max_rts, max_share = deriv_data
    assert (spg, recipient) == (SPG, WALLET_A)
    assert (parents, terms, royalty_context) == ([PARENT_IP], [3], b"")
    assert max_fee == 0
    assert max_rts == 100_000_000
    assert max_share == 100 * 10 ** 6


def test_create_collection(story):
    created = "0x7777777777777777777777777777777777777777"
    story._registration = fake_contract(
        events={"CollectionCreated": FakeEvent([{"args": {"spgNftContract": created}}])},
        createCollection=lambda *args: FakeCall(),
    )

    result = story.create_collection("ChainCapture", "CCAP")

    assert result == {"spg_nft_contract": created, "tx_hash": "0x" + "ab" * 32}
    _, (params,) = story._registration.functions.calls[0]
    name, symbol, _base, _contract_uri, _max_supply, mint_fee, _token, _recipient, owner, mint_open, public = params
    assert (name, symbol, mint_fee, owner) == ("ChainCapture", "CCAP", 0, WALLET_A)
    assert mint_open is True
    assert public is False


def test_owner_of_and_token_uri_map_reverts_to_missing_token(story, monkeypatch):
    revert = ContractLogicError("execution reverted: ERC721NonexistentToken")
    nft = fake_contract(ownerOf=lambda token_id: FakeCall(error=revert),
                        tokenURI=lambda token_id: FakeCall(error=revert))
    monkeypatch.setattr(story, "_nft", lambda: nft)

    with pytest.raises(TokenNotFoundError):
        story.owner_of(3)
    with pytest.raises(TokenNotFoundError):
        story.token_uri(3)


def test_read_transport_failure_is_not_missing_token(story, monkeypatch):
    down = requests.exceptions.ConnectionError("rpc down")
    nft = fake_contract(ownerOf=lambda token_id: FakeCall(error=down),
                        balanceOf=lambda owner: FakeCall(error=down))
    monkeypatch.setattr(story, "_nft", lambda: nft)

    with pytest.raises(ChainError) as excinfo:
        story.owner_of(3)
    assert not isinstance(excinfo.value, TokenNotFoundError)
    with pytest.raises(ChainError, match="balanceOf"):
        story.balance_of(WALLET_A)


def test_ip_id_for_queries_registry(story):
    story._registry = fake_contract(ipId=lambda *args: FakeCall(result=IP_ID))

    assert story.ip_id_for(3) == IP_ID
    assert story._registry.functions.calls == [("ipId", (config.STORY_CHAIN_ID, SPG, 3))]


def test_ownership_scan_over_story_reads(story, monkeypatch):
    owners = {1: WALLET_A, 2: WALLET_B}

    def owner_of(token_id):
        if token_id not in owners:
            return FakeCall(error=ContractLogicError("execution reverted"))
        return FakeCall(result=owners[token_id])

    nft = fake_contract(balanceOf=lambda owner: FakeCall(result=1), ownerOf=owner_of,
                        tokenURI=lambda token_id: FakeCall(result=f"ipfs://QmToken{token_id}"))
    monkeypatch.setattr(story, "_nft", lambda: nft)
    story._registry = fake_contract(ipId=lambda *args: FakeCall(result=IP_ID))

    scan = scan_owned_assets(story, WALLET_A)

    assert [a.token_id for a in scan.assets] == ["1"]
    assert scan.assets[0].ip_id == IP_ID
    assert scan.complete


def test_missing_spg_contract(story, monkeypatch):
    monkeypatch.setattr(config, "SPG_NFT_CONTRACT", "")
    with pytest.raises(ConfigurationError, match="SPG_NFT_CONTRACT"):
        story.mint_and_register_ip(WALLET_A, "ipfs://meta", HASH, "ipfs://media", HASH)


def test_missing_wallet_key(monkeypatch):
    monkeypatch.setattr(config, "WALLET_PRIVATE_KEY", "")
    monkeypatch.setattr(config, "SPG_NFT_CONTRACT", SPG)
    chain = StoryChain()

    with pytest.raises(ConfigurationError, match="WALLET_PRIVATE_KEY"):
        chain.default_recipient
    with pytest.raises(ConfigurationError):
        chain.create_collection("ChainCapture", "CCAP")


def test_health_check(story):
    assert story.health_check()["available"] is True
    story._w3 = FakeW3(connected=False)
    health = story.health_check()
    assert health["available"] is False
    assert health["error"] == "RPC endpoint unreachable"
