"""
End-to-end tests driving accounts and modules through the EntryPoint.
"""
import logging

import pytest

from smartaccount_sdk import (
    Chain, EntryPoint, MultichainECDSAValidator, SmartAccount, FailedOpError
)
from smartaccount_sdk.builders import (
    build_multichain_signatures, build_session_tree, encode_disable_module, encode_enable_module,
    encode_execute_batch_call, encode_execute_call, encode_init_for_smart_account,
    encode_set_merkle_root, encode_transfer, fill_user_op, sign_session_user_op, sign_user_op,
    with_module_address
)
from smartaccount_sdk.config import NetworkConfig
from smartaccount_sdk.entry_point import (
    ACCOUNT_NOT_DEPLOYED, EXPIRED_OR_NOT_DUE, INVALID_NONCE, SIGNATURE_ERROR, failure_reason
)
from smartaccount_sdk.exceptions import ErrorCode, InvalidProofError, SessionExpiredError
from smartaccount_sdk.merkle import MerkleTree
from smartaccount_sdk.models import ValidationResult
from smartaccount_sdk.modules import Erc20SessionScope, MultichainSignature, SessionLeaf
from smartaccount_sdk.utils import address_from_label, keccak

from conftest import BENEFICIARY, TEST_TOKEN_SUPPLY
from test_helpers import MockToken, START_TIME

BOB = address_from_label("bob")
ALLOWED_RECIPIENT = address_from_label("allowed-recipient")
OTHER_RECIPIENT = address_from_label("other-recipient")


def _transfer_call(token, recipient, amount):
    return encode_execute_call(token.address, 0, encode_transfer(recipient, amount))


@pytest.fixture
def signed_transfer(entry_point, account, owner, validator, token):
    op = fill_user_op(entry_point, account.address, _transfer_call(token, BOB, 10))
    return sign_user_op(op, entry_point, owner, validator.address)


class TestHandleOps:
    """Nonces, execution and per-operation isolation"""

    def test_owner_operation_executes(self, entry_point, account, token, signed_transfer):
        outcome = entry_point.handle_ops([signed_transfer], BENEFICIARY)
        assert outcome.all_succeeded
        assert outcome.beneficiary == BENEFICIARY
        result = outcome.results[0]
        assert result.executed
        assert result.user_op_hash == entry_point.get_user_op_hash(signed_transfer)
        assert token.balance_of(BOB) == 10
        assert entry_point.get_nonce(account.address) == 1

    def test_replay_rejected(self, entry_point, account, token, signed_transfer):
        """The same signed operation cannot be executed twice"""
        entry_point.handle_ops([signed_transfer], BENEFICIARY)
        outcome = entry_point.handle_ops([signed_transfer], BENEFICIARY)
        assert outcome.results[0].reason == INVALID_NONCE
        assert token.balance_of(BOB) == 10
        assert entry_point.get_nonce(account.address) == 1

    def test_same_nonce_different_payload(self, entry_point, account, owner, validator, token):
        """Only (sender, nonce) matters to the replay check"""
        first = sign_user_op(
            fill_user_op(entry_point, account.address, _transfer_call(token, BOB, 10)),
            entry_point, owner, validator.address
        )
        second = sign_user_op(
            fill_user_op(entry_point, account.address, _transfer_call(token, BOB, 20)),
            entry_point, owner, validator.address
        )
        assert first.nonce == second.nonce
        outcome = entry_point.handle_ops([first, second], BENEFICIARY)
        assert outcome.results[0].success
        assert outcome.results[1].reason == INVALID_NONCE
        assert token.balance_of(BOB) == 10

    def test_future_nonce_rejected(self, entry_point, account, owner, validator, token):
        op = fill_user_op(entry_point, account.address, _transfer_call(token, BOB, 1), nonce=5)
        op = sign_user_op(op, entry_point, owner, validator.address)
        outcome = entry_point.handle_ops([op], BENEFICIARY)
        assert outcome.results[0].reason == INVALID_NONCE

    def test_account_not_deployed(self, entry_point, owner, validator):
        op = fill_user_op(entry_point, BOB)
        op = sign_user_op(op, entry_point, owner, validator.address)
        outcome = entry_point.handle_ops([op], BENEFICIARY)
        assert outcome.results[0].reason == ACCOUNT_NOT_DEPLOYED

    def test_wrong_signer(self, entry_point, account, stranger, validator, token):
        op = fill_user_op(entry_point, account.address, _transfer_call(token, BOB, 10))
        op = sign_user_op(op, entry_point, stranger, validator.address)
        outcome = entry_point.handle_ops([op], BENEFICIARY)
        result = outcome.results[0]
        assert not result.success
        assert not result.executed
        assert result.reason == SIGNATURE_ERROR
        assert result.error_code == ErrorCode.SIGNATURE_MISMATCH
        assert entry_point.get_nonce(account.address) == 0
        assert token.balance_of(BOB) == 0

    def test_failure_does_not_abort_batch(self, entry_point, account, owner, stranger, validator, token):
        bad = sign_user_op(
            fill_user_op(entry_point, account.address, _transfer_call(token, BOB, 10)),
            entry_point, stranger, validator.address
        )
        good = sign_user_op(
            fill_user_op(entry_point, account.address, _transfer_call(token, BOB, 10)),
            entry_point, owner, validator.address
        )
        outcome = entry_point.handle_ops([bad, good], BENEFICIARY)
        assert [r.success for r in outcome.results] == [False, True]
        assert [r.index for r in outcome.failed_ops] == [0]
        assert token.balance_of(BOB) == 10

    def test_sequential_nonces_in_one_batch(self, entry_point, account, owner, validator, token):
        ops = [
            sign_user_op(
                fill_user_op(entry_point, account.address, _transfer_call(token, BOB, 1), nonce=n),
                entry_point, owner, validator.address
            )
            for n in range(3)
        ]
        outcome = entry_point.handle_ops(ops, BENEFICIARY)
        assert outcome.all_succeeded
        assert entry_point.get_nonce(account.address) == 3
        assert token.balance_of(BOB) == 3

    def test_execution_revert_consumes_nonce(self, entry_point, account, owner, validator, token):
        op = fill_user_op(entry_point, account.address, _transfer_call(token, BOB, TEST_TOKEN_SUPPLY + 1))
        op = sign_user_op(op, entry_point, owner, validator.address)
        outcome = entry_point.handle_ops([op], BENEFICIARY)
        result = outcome.results[0]
        assert result.executed
        assert not result.success
        assert "exceeds balance" in result.reason
        assert entry_point.get_nonce(account.address) == 1

    def test_empty_call_data(self, entry_point, account, owner, validator):
        op = sign_user_op(fill_user_op(entry_point, account.address), entry_point, owner, validator.address)
        outcome = entry_point.handle_ops([op], BENEFICIARY)
        assert outcome.all_succeeded
        assert not outcome.results[0].executed
        assert entry_point.get_nonce(account.address) == 1

    def test_simulate_validation_keeps_state(self, entry_point, account, token, signed_transfer):
        result = entry_point.simulate_validation(signed_transfer)
        assert result.success
        assert entry_point.get_nonce(account.address) == 0
        assert token.balance_of(BOB) == 0

    def test_raise_for_failures(self, entry_point, account, stranger, validator):
        op = sign_user_op(fill_user_op(entry_point, account.address), entry_point, stranger, validator.address)
        outcome = entry_point.handle_ops([op], BENEFICIARY)
        with pytest.raises(FailedOpError) as exc_info:
            outcome.raise_for_failures()
        assert exc_info.value.op_index == 0
        assert exc_info.value.reason == SIGNATURE_ERROR
        assert "AA24" in str(exc_info.value)

    def test_disabled_module(self, chain, entry_point, account, owner, validator, session_key_manager):
        chain.call(account.address, account.address, 0, encode_enable_module(session_key_manager.address))
        chain.call(account.address, account.address, 0, encode_disable_module(validator.address))
        op = sign_user_op(fill_user_op(entry_point, account.address), entry_point, owner, validator.address)
        outcome = entry_point.handle_ops([op], BENEFICIARY)
        assert outcome.results[0].error_code == ErrorCode.MODULE_NOT_ENABLED
        assert entry_point.get_nonce(account.address) == 0

    def test_owner_signature_sent_to_session_manager(self, chain, entry_point, account, owner,
                                                     session_key_manager):
        chain.call(account.address, account.address, 0, encode_enable_module(session_key_manager.address))
        op = sign_user_op(fill_user_op(entry_point, account.address), entry_point, owner,
                          session_key_manager.address)
        result = entry_point.handle_ops([op], BENEFICIARY).results[0]
        assert result.error_code == ErrorCode.MALFORMED_SIGNATURE
        assert result.reason.startswith("AA23 reverted")

    def test_module_not_enabled(self, entry_point, account, owner, session_key_manager):
        op = sign_user_op(fill_user_op(entry_point, account.address), entry_point, owner,
                          session_key_manager.address)
        outcome = entry_point.handle_ops([op], BENEFICIARY)
        assert outcome.results[0].error_code == ErrorCode.MODULE_NOT_ENABLED
        assert outcome.results[0].reason.startswith("AA23 reverted")

    def test_rejections_are_rate_limited(self, entry_point, account, stranger, validator, caplog):
        op = sign_user_op(fill_user_op(entry_point, account.address), entry_point, stranger, validator.address)
        with caplog.at_level(logging.WARNING, logger="smartaccount_sdk.entry_point"):
            entry_point.handle_ops([op, op, op], BENEFICIARY)
        failed_op_logs = [r for r in caplog.records if "FailedOp" in r.getMessage()]
        assert len(failed_op_logs) == 1


class TestUserOpHash:
    """Operation hashes are bound to the dispatcher and the chain"""

    def test_hash_depends_on_chain_id(self, entry_point, account):
        op = fill_user_op(entry_point, account.address)
        assert op.hash(entry_point.address, 1) != op.hash(entry_point.address, 137)

    def test_hash_depends_on_entry_point(self, entry_point, account):
        op = fill_user_op(entry_point, account.address)
        assert op.hash(entry_point.address, 1) != op.hash(address_from_label("other-entry-point"), 1)

    def test_hash_ignores_signature(self, entry_point, signed_transfer):
        unsigned = signed_transfer.model_copy(update={"signature": b""})
        assert entry_point.get_user_op_hash(unsigned) == entry_point.get_user_op_hash(signed_transfer)

    def test_for_network_uses_configured_address(self):
        chain = Chain.for_network("base-sepolia")
        entry_point = EntryPoint.for_network(chain, "base-sepolia")
        assert entry_point.address == NetworkConfig.get_entry_point_address("base-sepolia")
        assert entry_point.chain.chain_id == 84532


class TestFailureReason:
    """Mapping of module errors to reason strings"""

    def test_time_errors(self):
        result = ValidationResult.failure(SessionExpiredError("expired"))
        assert failure_reason(result) == EXPIRED_OR_NOT_DUE

    def test_other_errors(self):
        result = ValidationResult.failure(InvalidProofError("bad proof"))
        assert failure_reason(result) == "AA23 reverted: bad proof"


@pytest.fixture
def second_chain(clock, owner):
    """Polygon-like chain with the same deployment labels, hence the same addresses"""
    chain = Chain(chain_id=137, clock=clock)
    entry_point = EntryPoint(chain)
    validator = MultichainECDSAValidator()
    chain.deploy(validator, label="MultichainECDSAValidator")
    account = SmartAccount.create(
        chain, entry_point.address, validator.address,
        encode_init_for_smart_account(owner.address), label="account",
    )
    token = MockToken()
    chain.deploy(token, label="MockToken")
    token.mint(account.address, TEST_TOKEN_SUPPLY)
    return entry_point, account, validator, token


class TestMultichain:
    """One owner signature authorizing operations on several chains"""

    def test_same_addresses_on_both_chains(self, account, validator, second_chain):
        _, account_b, validator_b, _ = second_chain
        assert account_b.address == account.address
        assert validator_b.address == validator.address

    def test_one_signature_two_chains(self, entry_point, account, owner, validator, token, second_chain):
        entry_point_b, account_b, _, token_b = second_chain
        op_a = fill_user_op(entry_point, account.address, _transfer_call(token, BOB, 10))
        op_b = fill_user_op(entry_point_b, account_b.address, _transfer_call(token_b, BOB, 20))
        hash_a = entry_point.get_user_op_hash(op_a)
        hash_b = entry_point_b.get_user_op_hash(op_b)
        assert hash_a != hash_b

        sig_a, sig_b = build_multichain_signatures([hash_a, hash_b], owner, validator.address)
        op_a = op_a.model_copy(update={"signature": sig_a})
        op_b = op_b.model_copy(update={"signature": sig_b})

        assert entry_point.handle_ops([op_a], BENEFICIARY).all_succeeded
        assert entry_point_b.handle_ops([op_b], BENEFICIARY).all_succeeded
        assert token.balance_of(BOB) == 10
        assert token_b.balance_of(BOB) == 20

        # each leaf is bound to its own chain and nonce
        assert entry_point.handle_ops([op_a], BENEFICIARY).results[0].reason == INVALID_NONCE
        assert entry_point_b.handle_ops([op_b], BENEFICIARY).results[0].reason == INVALID_NONCE

    def test_signature_for_other_chain_rejected(self, entry_point, account, owner, validator, token,
                                                second_chain):
        entry_point_b, account_b, _, token_b = second_chain
        op_a = fill_user_op(entry_point, account.address, _transfer_call(token, BOB, 10))
        op_b = fill_user_op(entry_point_b, account_b.address, _transfer_call(token_b, BOB, 10))
        sig_a, _ = build_multichain_signatures(
            [entry_point.get_user_op_hash(op_a), entry_point_b.get_user_op_hash(op_b)],
            owner, validator.address
        )
        outcome = entry_point_b.handle_ops([op_b.model_copy(update={"signature": sig_a})], BENEFICIARY)
        assert outcome.results[0].error_code == ErrorCode.INVALID_PROOF
        assert token_b.balance_of(BOB) == 0

    def test_decoy_leaves(self, entry_point, account, owner, validator, token):
        """A real operation hidden among unrelated leaves is accepted; a decoy's proof is not"""
        op = fill_user_op(entry_point, account.address, _transfer_call(token, BOB, 10))
        op_hash = entry_point.get_user_op_hash(op)
        decoys = [keccak(bytes.fromhex("b0bb0b")), keccak(bytes.fromhex("b0bb0c")), keccak(bytes.fromhex("b0bb0d"))]
        tree = MerkleTree([decoys[0], op_hash, decoys[1], decoys[2]])
        root_signature = owner.sign_message_hash(tree.root)

        wrong = MultichainSignature(tree.root, tree.get_proof(decoys[0]), root_signature).encode()
        outcome = entry_point.handle_ops(
            [op.model_copy(update={"signature": with_module_address(wrong, validator.address)})], BENEFICIARY
        )
        assert outcome.results[0].error_code == ErrorCode.INVALID_PROOF
        assert entry_point.get_nonce(account.address) == 0

        right = MultichainSignature(tree.root, tree.get_proof(op_hash), root_signature).encode()
        outcome = entry_point.handle_ops(
            [op.model_copy(update={"signature": with_module_address(right, validator.address)})], BENEFICIARY
        )
        assert outcome.all_succeeded
        assert token.balance_of(BOB) == 10


class TestSessionKeys:
    """Owner enables a session key, then the session key transacts within its scope"""

    MAX_AMOUNT = 100

    @pytest.fixture
    def session(self, chain, entry_point, account, owner, validator, session_key_manager, erc20_module,
                session_signer, token):
        leaf = SessionLeaf(
            valid_until=START_TIME + 3600,
            valid_after=0,
            session_validation_module=erc20_module.address,
            session_key=session_signer.address,
            scope_data=Erc20SessionScope(token.address, ALLOWED_RECIPIENT, self.MAX_AMOUNT).encode(),
        )
        tree = build_session_tree([leaf])

        setup = fill_user_op(entry_point, account.address, encode_execute_batch_call(
            [account.address, session_key_manager.address],
            [0, 0],
            [encode_enable_module(session_key_manager.address), encode_set_merkle_root(tree.root)],
        ))
        outcome = entry_point.handle_ops([sign_user_op(setup, entry_point, owner, validator.address)], BENEFICIARY)
        outcome.raise_for_failures()
        return leaf, tree

    def _session_op(self, entry_point, account, session_signer, session_key_manager, session, call_data):
        leaf, tree = session
        op = fill_user_op(entry_point, account.address, call_data)
        return sign_session_user_op(op, entry_point, session_signer, leaf, tree, session_key_manager.address)

    def test_setup_through_owner_operation(self, account, session_key_manager, session):
        _, tree = session
        assert account.is_module_enabled(session_key_manager.address)
        assert session_key_manager.get_session_keys(account.address) == tree.root

    def test_transfer_within_scope(self, entry_point, account, session_signer, session_key_manager, token,
                                   session):
        op = self._session_op(entry_point, account, session_signer, session_key_manager, session,
                              _transfer_call(token, ALLOWED_RECIPIENT, 50))
        assert entry_point.handle_ops([op], BENEFICIARY).all_succeeded
        assert token.balance_of(ALLOWED_RECIPIENT) == 50

    def test_transfer_above_ceiling(self, entry_point, account, session_signer, session_key_manager, token,
                                    session):
        op = self._session_op(entry_point, account, session_signer, session_key_manager, session,
                              _transfer_call(token, ALLOWED_RECIPIENT, 150))
        result = entry_point.handle_ops([op], BENEFICIARY).results[0]
        assert result.error_code == ErrorCode.POLICY_VIOLATION
        assert result.reason.startswith("AA23 reverted")
        assert token.balance_of(ALLOWED_RECIPIENT) == 0

    def test_transfer_to_other_recipient(self, entry_point, account, session_signer, session_key_manager,
                                         token, session):
        op = self._session_op(entry_point, account, session_signer, session_key_manager, session,
                              _transfer_call(token, OTHER_RECIPIENT, 10))
        result = entry_point.handle_ops([op], BENEFICIARY).results[0]
        assert result.error_code == ErrorCode.POLICY_VIOLATION
        assert token.balance_of(OTHER_RECIPIENT) == 0

    def test_expired_session(self, clock, entry_point, account, session_signer, session_key_manager, token,
                             session):
        clock.advance(3601)
        op = self._session_op(entry_point, account, session_signer, session_key_manager, session,
                              _transfer_call(token, ALLOWED_RECIPIENT, 10))
        result = entry_point.handle_ops([op], BENEFICIARY).results[0]
        assert result.reason == EXPIRED_OR_NOT_DUE
        assert result.error_code == ErrorCode.SESSION_EXPIRED

    def test_session_key_signature_mismatch(self, entry_point, account, stranger, session_key_manager, token,
                                            session):
        op = self._session_op(entry_point, account, stranger, session_key_manager, session,
                              _transfer_call(token, ALLOWED_RECIPIENT, 10))
        assert entry_point.handle_ops([op], BENEFICIARY).results[0].reason == SIGNATURE_ERROR

    def test_repeated_transfers_each_checked_alone(self, entry_point, account, session_signer,
                                                   session_key_manager, token, session):
        for _ in range(3):
            op = self._session_op(entry_point, account, session_signer, session_key_manager, session,
                                  _transfer_call(token, ALLOWED_RECIPIENT, self.MAX_AMOUNT))
            assert entry_point.handle_ops([op], BENEFICIARY).all_succeeded
        assert token.balance_of(ALLOWED_RECIPIENT) == 3 * self.MAX_AMOUNT

    def test_owner_revokes_by_replacing_root(self, entry_point, account, owner, validator, session_signer,
                                             session_key_manager, token, session):
        revoke = fill_user_op(entry_point, account.address, encode_execute_call(
            session_key_manager.address, 0, encode_set_merkle_root(keccak(b"empty"))
        ))
        entry_point.handle_ops([sign_user_op(revoke, entry_point, owner, validator.address)], BENEFICIARY)

        op = self._session_op(entry_point, account, session_signer, session_key_manager, session,
                              _transfer_call(token, ALLOWED_RECIPIENT, 10))
        assert entry_point.handle_ops([op], BENEFICIARY).results[0].error_code == ErrorCode.INVALID_PROOF

    def test_owner_signature_still_works(self, entry_point, account, owner, validator, token, session):
        op = sign_user_op(
            fill_user_op(entry_point, account.address, _transfer_call(token, OTHER_RECIPIENT, 500)),
            entry_point, owner, validator.address
        )
        assert entry_point.handle_ops([op], BENEFICIARY).all_succeeded
        assert token.balance_of(OTHER_RECIPIENT) == 500
