"""Tests for EIP-712 authorized re-encryption."""

import pytest
from eth_account import Account

from confidential_amm.access import AccessGate, ReencryptionCapability, reencryption_message
from confidential_amm.errors import AuthenticationError
from confidential_amm.fhe.sealing import REENCRYPT_INFO, decode_value, generate_keypair, open_sealed
from confidential_amm.models.types import normalize_address

CONTRACT = "0x" + "11" * 20
OTHER_CONTRACT = "0x" + "22" * 20


@pytest.fixture
def gate(runtime):
    return AccessGate(runtime, 31337, CONTRACT)


def sign(account, public_key, contract=CONTRACT, chain_id=31337):
    return bytes(account.sign_message(reencryption_message(chain_id, contract, public_key)).signature)


class TestAuthorize:
    """Tests for AccessGate.authorize()."""

    def test_valid_signature(self, gate, signers):
        """A signature by the caller yields a capability for the caller."""
        alice = signers["alice"]
        public_key, _ = generate_keypair()
        capability = gate.authorize(alice.address, public_key, sign(alice, public_key))
        assert capability == ReencryptionCapability(
            contract=CONTRACT, owner=normalize_address(alice.address), public_key=public_key
        )

    def test_signer_is_recoverable(self, signers):
        """The message recovers to the signing account."""
        alice = signers["alice"]
        public_key, _ = generate_keypair()
        message = reencryption_message(31337, CONTRACT, public_key)
        assert Account.recover_message(message, signature=sign(alice, public_key)) == alice.address

    def test_other_signer_rejected(self, gate, signers):
        """Bob cannot present Alice's signature as his own."""
        public_key, _ = generate_keypair()
        with pytest.raises(AuthenticationError):
            gate.authorize(signers["bob"].address, public_key, sign(signers["alice"], public_key))

    def test_signature_for_other_key_rejected(self, gate, signers):
        """The signature is bound to the public key."""
        alice = signers["alice"]
        signed_key, _ = generate_keypair()
        other_key, _ = generate_keypair()
        with pytest.raises(AuthenticationError):
            gate.authorize(alice.address, other_key, sign(alice, signed_key))

    def test_signature_for_other_contract_rejected(self, gate, signers):
        """The signature is bound to the verifying contract."""
        alice = signers["alice"]
        public_key, _ = generate_keypair()
        with pytest.raises(AuthenticationError):
            gate.authorize(alice.address, public_key, sign(alice, public_key, contract=OTHER_CONTRACT))

    def test_signature_for_other_chain_rejected(self, gate, signers):
        """The signature is bound to the chain id."""
        alice = signers["alice"]
        public_key, _ = generate_keypair()
        with pytest.raises(AuthenticationError):
            gate.authorize(alice.address, public_key, sign(alice, public_key, chain_id=1))

    def test_malformed_signature_rejected(self, gate, signers):
        """Garbage signatures are an authentication failure, not a crash."""
        public_key, _ = generate_keypair()
        with pytest.raises(AuthenticationError):
            gate.authorize(signers["alice"].address, public_key, b"\x00" * 10)

    def test_wrong_key_length_rejected(self, gate, signers):
        """Public keys must be 32 bytes."""
        with pytest.raises(AuthenticationError):
            gate.authorize(signers["alice"].address, b"\x01" * 31, b"\x00" * 65)


class TestDisclose:
    """Tests for AccessGate.disclose()."""

    def test_disclose_reencrypts(self, gate, signers, make_int):
        """The value is sealed under the capability's key."""
        alice = signers["alice"]
        public_key, private_key = generate_keypair()
        capability = gate.authorize(alice.address, public_key, sign(alice, public_key))
        blob = gate.disclose(capability, make_int(500))
        assert decode_value(open_sealed(blob, private_key, REENCRYPT_INFO)) == (500, 16)

    def test_capability_for_other_contract_rejected(self, runtime, gate, signers, make_int):
        """A capability issued by one gate is not honored by another."""
        alice = signers["alice"]
        public_key, _ = generate_keypair()
        capability = gate.authorize(alice.address, public_key, sign(alice, public_key))
        other_gate = AccessGate(runtime, 31337, OTHER_CONTRACT)
        with pytest.raises(AuthenticationError):
            other_gate.disclose(capability, make_int(1))
