"""
Minimal ERC20 token living on an in-memory Chain.
"""
from typing import Dict

from smartaccount_sdk.abi import ERC20_ABI
from smartaccount_sdk.chain import Contract, external
from smartaccount_sdk.exceptions import ExecutionError
from smartaccount_sdk.utils import to_checksum


class MockToken(Contract):
    """Balances plus ``transfer``; enough for session scope tests"""
    ABI = ERC20_ABI

    def __init__(self, symbol: str = "MOCK"):
        super().__init__()
        self.symbol = symbol
        self.balances: Dict[str, int] = {}

    def mint(self, to: str, amount: int) -> None:
        to = to_checksum(to)
        self.balances[to] = self.balances.get(to, 0) + amount

    def balance_of(self, owner: str) -> int:
        return self.balances.get(to_checksum(owner), 0)

    @external("transfer")
    def _transfer(self, caller: str, recipient: str, amount: int) -> bool:
        if self.balance_of(caller) < amount:
            raise ExecutionError("ERC20: transfer amount exceeds balance")
        self.balances[caller] = self.balance_of(caller) - amount
        self.mint(recipient, amount)
        return True
