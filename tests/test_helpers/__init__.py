"""
Shared helpers for the SmartAccount SDK tests.
"""
from .clock import FakeClock
from .mock_token import MockToken

# Deterministic keys; never use outside tests
OWNER_PRIV_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
SESSION_PRIV_KEY = "0x1111111111111111111111111111111111111111111111111111111111111111"
STRANGER_PRIV_KEY = "0x2222222222222222222222222222222222222222222222222222222222222222"

START_TIME = 1_700_000_000

__all__ = [
    "FakeClock",
    "MockToken",
    "OWNER_PRIV_KEY",
    "SESSION_PRIV_KEY",
    "STRANGER_PRIV_KEY",
    "START_TIME",
]
