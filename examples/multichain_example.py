#!/usr/bin/env python3
"""
Example of authorizing operations on two chains with one owner signature.
"""
import logging
import os

from smartaccount_sdk import (
    Chain,
    Contract,
    EntryPoint,
    LocalSigner,
    MultichainECDSAValidator,
    SmartAccount,
    external,
)
from smartaccount_sdk.abi import ERC20_ABI
from smartaccount_sdk.builders import (
    build_multichain_signatures,
    encode_execute_call,
    encode_init_for_smart_account,
    encode_transfer,
    fill_user_op,
)
from smartaccount_sdk.utils import address_from_label


class DemoToken(Contract):
    """Bare-bones ERC20 so the example has something to move"""
    ABI = ERC20_ABI

    def __init__(self):
        super().__init__()
        self.balances = {}

    @external("transfer")
    def _transfer(self, caller, recipient, amount):
        self.balances[caller] = self.balances.get(caller, 0) - amount
        self.balances[recipient] = self.balances.get(recipient, 0) + amount
        return True


def deploy(network, owner):
    """Deploy EntryPoint, validator, account and token on a fresh in-memory chain."""
    chain = Chain.for_network(network)
    entry_point = EntryPoint.for_network(chain, network)
    validator = MultichainECDSAValidator()
    chain.deploy(validator, label="MultichainECDSAValidator")
    account = SmartAccount.create(
        chain,
        entry_point.address,
        validator.address,
        encode_init_for_smart_account(owner.address),
        label=f"account:{owner.address}",
    )
    token = DemoToken()
    chain.deploy(token, label="DemoToken")
    token.balances[account.address] = 1_000
    return entry_point, account, validator, token


def main():
    """
    Demonstrate a multichain owner signature.

    This example shows how to:
    1. Deploy the same account on two networks
    2. Build one operation per network
    3. Sign the Merkle root of both operation hashes once
    4. Submit each operation with its own proof
    """
    logging.basicConfig(level=logging.INFO)

    private_key = os.environ.get("PRIVATE_KEY")
    owner = LocalSigner(private_key) if private_key else LocalSigner.create()
    print(f"Owner address: {owner.address}")

    recipient = address_from_label("recipient")
    deployments = {network: deploy(network, owner) for network in ("ethereum-sepolia", "base-sepolia")}

    ops = {}
    for network, (entry_point, account, _, token) in deployments.items():
        call_data = encode_execute_call(token.address, 0, encode_transfer(recipient, 25))
        ops[network] = fill_user_op(entry_point, account.address, call_data)
        print(f"{network}: account {account.address}, op hash 0x{entry_point.get_user_op_hash(ops[network]).hex()}")

    networks = list(ops)
    hashes = [deployments[n][0].get_user_op_hash(ops[n]) for n in networks]
    validator_address = deployments[networks[0]][2].address
    signatures = build_multichain_signatures(hashes, owner, validator_address)

    for network, signature in zip(networks, signatures):
        entry_point, _, _, token = deployments[network]
        outcome = entry_point.handle_ops([ops[network].model_copy(update={"signature": signature})], owner.address)
        outcome.raise_for_failures()
        print(f"{network}: recipient balance {token.balances.get(recipient, 0)}")


if __name__ == "__main__":
    main()
