"""
Contract ABIs shared by accounts, modules and call builders.
"""
from typing import Any, Dict, List, Type

from web3 import Web3
from web3.contract import Contract as Web3Contract

ContractAbi = List[Dict[str, Any]]

SMART_ACCOUNT_ABI: ContractAbi = [
    {
        "inputs": [{"internalType": "address", "name": "module", "type": "address"}],
        "name": "enableModule",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "address", "name": "module", "type": "address"}],
        "name": "disableModule",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "address", "name": "setupContract", "type": "address"},
            {"internalType": "bytes", "name": "setupData", "type": "bytes"}
        ],
        "name": "setupAndEnableModule",
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "address", "name": "dest", "type": "address"},
            {"internalType": "uint256", "name": "value", "type": "uint256"},
            {"internalType": "bytes", "name": "func", "type": "bytes"}
        ],
        "name": "executeCall",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "address[]", "name": "dest", "type": "address[]"},
            {"internalType": "uint256[]", "name": "value", "type": "uint256[]"},
            {"internalType": "bytes[]", "name": "func", "type": "bytes[]"}
        ],
        "name": "executeBatchCall",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    }
]

MULTICHAIN_VALIDATOR_ABI: ContractAbi = [
    {
        "inputs": [{"internalType": "address", "name": "eoaOwner", "type": "address"}],
        "name": "initForSmartAccount",
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "nonpayable",
        "type": "function"
    }
]

SESSION_KEY_MANAGER_ABI: ContractAbi = [
    {
        "inputs": [{"internalType": "bytes32", "name": "_merkleRoot", "type": "bytes32"}],
        "name": "setMerkleRoot",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    }
]

ERC20_ABI: ContractAbi = [
    {
        "inputs": [
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"}
        ],
        "name": "transfer",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "address", "name": "spender", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"}
        ],
        "name": "approve",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function"
    }
]

# Offline instance; only used to encode and decode call data
_w3 = Web3()


def contract_codec(abi: ContractAbi) -> Type[Web3Contract]:
    """Address-less web3 contract factory for encoding and decoding calls against ``abi``."""
    return _w3.eth.contract(abi=abi)


SMART_ACCOUNT = contract_codec(SMART_ACCOUNT_ABI)
MULTICHAIN_VALIDATOR = contract_codec(MULTICHAIN_VALIDATOR_ABI)
SESSION_KEY_MANAGER = contract_codec(SESSION_KEY_MANAGER_ABI)
ERC20 = contract_codec(ERC20_ABI)
