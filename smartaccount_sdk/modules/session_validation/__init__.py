"""
Session validation modules: per-asset-class policies for session keys.
"""
from .base import SessionValidationModule
from .erc20 import ERC20SessionValidationModule, Erc20SessionScope

__all__ = ["SessionValidationModule", "ERC20SessionValidationModule", "Erc20SessionScope"]
