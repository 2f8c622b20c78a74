"""
Minimal contract ABIs for the Story Protocol calls ChainCapture makes.
"""

_IP_METADATA_COMPONENTS = [
    {"name": "ipMetadataURI", "type": "string"},
    {"name": "ipMetadataHash", "type": "bytes32"},
    {"name": "nftMetadataURI", "type": "string"},
    {"name": "nftMetadataHash", "type": "bytes32"},
]

ERC721_ABI = [
    {
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "name": "ownerOf",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "name": "tokenURI",
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    },
]

REGISTRATION_WORKFLOWS_ABI = [
    {
        "inputs": [
            {"name": "spgNftContract", "type": "address"},
            {"name": "recipient", "type": "address"},
            {"name": "ipMetadata", "type": "tuple", "components": _IP_METADATA_COMPONENTS},
            {"name": "allowDuplicates", "type": "bool"},
        ],
        "name": "mintAndRegisterIp",
        "outputs": [
            {"name": "ipId", "type": "address"},
            {"name": "tokenId", "type": "uint256"},
        ],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {
                "name": "spgNftInitParams",
                "type": "tuple",
                "components": [
                    {"name": "name", "type": "string"},
                    {"name": "symbol", "type": "string"},
                    {"name": "baseURI", "type": "string"},
                    {"name": "contractURI", "type": "string"},
                    {"name": "maxSupply", "type": "uint32"},
                    {"name": "mintFee", "type": "uint256"},
                    {"name": "mintFeeToken", "type": "address"},
                    {"name": "mintFeeRecipient", "type": "address"},
                    {"name": "owner", "type": "address"},
                    {"name": "mintOpen", "type": "bool"},
                    {"name": "isPublicMinting", "type": "bool"},
                ],
            },
        ],
        "name": "createCollection",
        "outputs": [{"name": "spgNftContract", "type": "address"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [{"indexed": True, "name": "spgNftContract", "type": "address"}],
        "name": "CollectionCreated",
        "type": "event",
    },
]

DERIVATIVE_WORKFLOWS_ABI = [
    {
        "inputs": [
            {"name": "spgNftContract", "type": "address"},
            {
                "name": "derivData",
                "type": "tuple",
                "components": [
                    {"name": "parentIpIds", "type": "address[]"},
                    {"name": "licenseTemplate", "type": "address"},
                    {"name": "licenseTermsIds", "type": "uint256[]"},
                    {"name": "royaltyContext", "type": "bytes"},
                    {"name": "maxMintingFee", "type": "uint256"},
                    {"name": "maxRts", "type": "uint32"},
                    {"name": "maxRevenueShare", "type": "uint32"},
                ],
            },
            {"name": "ipMetadata", "type": "tuple", "components": _IP_METADATA_COMPONENTS},
            {"name": "recipient", "type": "address"},
            {"name": "allowDuplicates", "type": "bool"},
        ],
        "name": "mintAndRegisterIpAndMakeDerivative",
        "outputs": [
            {"name": "ipId", "type": "address"},
            {"name": "tokenId", "type": "uint256"},
        ],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

LICENSING_MODULE_ABI = [
    {
        "inputs": [
            {"name": "ipId", "type": "address"},
            {"name": "licenseTemplate", "type": "address"},
            {"name": "licenseTermsId", "type": "uint256"},
        ],
        "name": "attachLicenseTerms",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

IP_ASSET_REGISTRY_ABI = [
    {
        "inputs": [
            {"name": "chainId", "type": "uint256"},
            {"name": "tokenContract", "type": "address"},
            {"name": "tokenId", "type": "uint256"},
        ],
        "name": "ipId",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": False, "name": "ipId", "type": "address"},
            {"indexed": True, "name": "chainId", "type": "uint256"},
            {"indexed": True, "name": "tokenContract", "type": "address"},
            {"indexed": True, "name": "tokenId", "type": "uint256"},
            {"indexed": False, "name": "name", "type": "string"},
            {"indexed": False, "name": "uri", "type": "string"},
            {"indexed": False, "name": "registrationDate", "type": "uint256"},
        ],
        "name": "IPRegistered",
        "type": "event",
    },
]
