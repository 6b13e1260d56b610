"""
Pytest fixtures for the SmartAccount SDK tests.
"""
import pytest

from smartaccount_sdk import (
    Chain, EntryPoint, MultichainECDSAValidator, SessionKeyManager,
    ERC20SessionValidationModule, SmartAccount, LocalSigner
)
from smartaccount_sdk._rate_limited_log import clear_rate_limit_cache
from smartaccount_sdk.builders import encode_init_for_smart_account
from smartaccount_sdk.config import NetworkConfig
from smartaccount_sdk.utils import address_from_label

from test_helpers import (
    FakeClock, MockToken, OWNER_PRIV_KEY, SESSION_PRIV_KEY, STRANGER_PRIV_KEY, START_TIME
)

TEST_CHAIN_ID = 31337
TEST_TOKEN_SUPPLY = 1_000_000
BENEFICIARY = address_from_label("beneficiary")


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Rejection-log suppression and the network cache must not leak between tests."""
    clear_rate_limit_cache()
    NetworkConfig._networks_cache = None
    yield
    clear_rate_limit_cache()
    NetworkConfig._networks_cache = None


@pytest.fixture
def clock():
    return FakeClock(START_TIME)


@pytest.fixture
def chain(clock):
    return Chain(chain_id=TEST_CHAIN_ID, clock=clock)


@pytest.fixture
def entry_point(chain):
    return EntryPoint(chain)


@pytest.fixture
def owner():
    return LocalSigner(OWNER_PRIV_KEY)


@pytest.fixture
def session_signer():
    return LocalSigner(SESSION_PRIV_KEY)


@pytest.fixture
def stranger():
    return LocalSigner(STRANGER_PRIV_KEY)


@pytest.fixture
def validator(chain):
    module = MultichainECDSAValidator()
    chain.deploy(module, label="MultichainECDSAValidator")
    return module


@pytest.fixture
def session_key_manager(chain):
    module = SessionKeyManager()
    chain.deploy(module, label="SessionKeyManager")
    return module


@pytest.fixture
def erc20_module(chain):
    module = ERC20SessionValidationModule()
    chain.deploy(module, label="ERC20SessionValidationModule")
    return module


@pytest.fixture
def account(chain, entry_point, validator, owner):
    """Account with the multichain validator enabled and ``owner`` bound."""
    return SmartAccount.create(
        chain,
        entry_point.address,
        validator.address,
        encode_init_for_smart_account(owner.address),
        label="account",
    )


@pytest.fixture
def token(chain, account):
    token = MockToken()
    chain.deploy(token, label="MockToken")
    token.mint(account.address, TEST_TOKEN_SUPPLY)
    return token
