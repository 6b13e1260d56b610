#!/usr/bin/env python3
"""
Example of delegating a capped ERC20 allowance to a session key.
"""
import logging
import time

from smartaccount_sdk import (
    Chain,
    Contract,
    ERC20SessionValidationModule,
    EntryPoint,
    Erc20SessionScope,
    LocalSigner,
    MultichainECDSAValidator,
    SessionKeyManager,
    SessionLeaf,
    SmartAccount,
    external,
)
from smartaccount_sdk.abi import ERC20_ABI
from smartaccount_sdk.builders import (
    build_session_tree,
    encode_enable_module,
    encode_execute_batch_call,
    encode_execute_call,
    encode_init_for_smart_account,
    encode_set_merkle_root,
    encode_transfer,
    fill_user_op,
    sign_session_user_op,
    sign_user_op,
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


def main():
    """
    Demonstrate session keys.

    This example shows how to:
    1. Enable the SessionKeyManager and publish a session root in one owner operation
    2. Spend within the session scope with the session key alone
    3. See an out-of-scope transfer rejected
    """
    logging.basicConfig(level=logging.INFO)

    owner = LocalSigner.create()
    session_key = LocalSigner.create()
    merchant = address_from_label("merchant")

    chain = Chain.for_network("localhost")
    entry_point = EntryPoint.for_network(chain, "localhost")
    validator = MultichainECDSAValidator()
    chain.deploy(validator)
    session_key_manager = SessionKeyManager()
    chain.deploy(session_key_manager)
    erc20_module = ERC20SessionValidationModule()
    chain.deploy(erc20_module)
    token = DemoToken()
    chain.deploy(token)

    account = SmartAccount.create(
        chain, entry_point.address, validator.address, encode_init_for_smart_account(owner.address)
    )
    token.balances[account.address] = 1_000

    # One leaf: at most 100 tokens per call to the merchant, for one day
    leaf = SessionLeaf(
        valid_until=int(time.time()) + 86_400,
        valid_after=0,
        session_validation_module=erc20_module.address,
        session_key=session_key.address,
        scope_data=Erc20SessionScope(token.address, merchant, 100).encode(),
    )
    tree = build_session_tree([leaf])

    setup = fill_user_op(entry_point, account.address, encode_execute_batch_call(
        [account.address, session_key_manager.address],
        [0, 0],
        [encode_enable_module(session_key_manager.address), encode_set_merkle_root(tree.root)],
    ))
    entry_point.handle_ops([sign_user_op(setup, entry_point, owner, validator.address)], owner.address) \
        .raise_for_failures()
    print(f"Session root {tree.hex_root} enabled for {account.address}")

    for amount in (60, 150):
        op = fill_user_op(
            entry_point, account.address,
            encode_execute_call(token.address, 0, encode_transfer(merchant, amount)),
        )
        op = sign_session_user_op(op, entry_point, session_key, leaf, tree, session_key_manager.address)
        result = entry_point.handle_ops([op], session_key.address).results[0]
        status = "executed" if result.success else f"rejected ({result.reason})"
        print(f"Transfer of {amount}: {status}")

    print(f"Merchant balance: {token.balances.get(merchant, 0)}")


if __name__ == "__main__":
    main()
