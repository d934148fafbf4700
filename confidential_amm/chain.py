"""Deterministic host chain for confidential contracts.

Chain stands in for the ledger the contracts are deployed on. It provides the
three things the pool inherits from its host instead of implementing itself:

- identity: the sender of the current call (``msg_sender``), set by calling
  through ``contract.connect(account)`` rather than passed as a parameter
- ordering: a single global order of transactions (one re-entrant lock)
- atomicity: every outermost call snapshots all contract storage and restores
  it if the call raises, then re-raises the original exception unchanged

Contract-to-contract calls made with ``self.call(other)`` join the outer
transaction with ``msg_sender`` set to the calling contract's address.
"""

from __future__ import annotations

import functools
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

import structlog
from eth_abi import encode  # type: ignore[attr-defined]
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import keccak, to_checksum_address

from confidential_amm.constants import DEFAULT_CHAIN_ID
from confidential_amm.errors import CiphertextDecodeError
from confidential_amm.fhe.encrypted_int import EncryptedInt
from confidential_amm.fhe.runtime import FheRuntime
from confidential_amm.models.types import normalize_address

logger = structlog.get_logger()

C = TypeVar("C", bound="Contract")


class Contract(ABC):
    """Base class for contracts deployed on a Chain.

    Subclasses keep their storage in plain attributes and implement
    _snapshot()/_restore() so the chain can revert a failed transaction, and
    _handles() so it can release ciphertexts no storage slot refers to.
    Public methods must be invoked through connect() (or call() from another
    contract) so that a sender is in scope.
    """

    def __init__(self, chain: Chain, address: str, deployer: str) -> None:
        self.chain = chain
        self.address = normalize_address(address)
        self.deployer = normalize_address(deployer)

    @property
    def runtime(self) -> FheRuntime:
        return self.chain.runtime

    @property
    def msg_sender(self) -> str:
        """Sender of the call currently executing."""
        return self.chain.msg_sender

    def connect(self, sender: LocalAccount | str) -> BoundContract:
        """Bind a sender for subsequent calls, like ``contract.connect(signer)``."""
        address = sender if isinstance(sender, str) else sender.address
        return BoundContract(self, normalize_address(address))

    def call(self, other: C) -> BoundContract:
        """Call another contract with this contract as the sender."""
        return BoundContract(other, self.address)

    def encrypted(self, value: bytes | EncryptedInt, bits: int) -> EncryptedInt:
        """Accept a client ciphertext or an in-chain EncryptedInt as a ``bits``-wide value.

        Raises:
            CiphertextDecodeError: If the ciphertext is malformed or wider than ``bits``
        """
        if isinstance(value, EncryptedInt):
            if value.bits > bits:
                raise CiphertextDecodeError(f"Value is {value.bits}-bit, expected at most {bits}-bit")
            return value.widen(bits)
        return EncryptedInt.from_input(self.runtime, bytes(value), bits)

    @abstractmethod
    def _snapshot(self) -> Any:
        """Copy of the contract storage, restorable with _restore()."""

    @abstractmethod
    def _restore(self, snapshot: Any) -> None:
        """Put back storage captured by _snapshot()."""

    @abstractmethod
    def _handles(self) -> Iterable[bytes]:
        """Handles of every ciphertext held in storage."""


class BoundContract:
    """Contract view whose method calls run inside a transaction from ``sender``."""

    def __init__(self, contract: Contract, sender: str) -> None:
        self._contract = contract
        self._sender = sender

    @property
    def contract(self) -> Contract:
        return self._contract

    @property
    def sender(self) -> str:
        return self._sender

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._contract, name)
        if name.startswith("_") or not callable(attr):
            return attr

        @functools.wraps(attr)
        def invoke(*args: Any, **kwargs: Any) -> Any:
            with self._contract.chain.transaction(self._sender):
                return attr(*args, **kwargs)

        return invoke


class Chain:
    """In-process ledger with serialized, all-or-nothing transactions."""

    def __init__(self, runtime: FheRuntime | None = None, chain_id: int = DEFAULT_CHAIN_ID) -> None:
        self.runtime = runtime or FheRuntime()
        self.chain_id = chain_id
        self._contracts: dict[str, Contract] = {}
        self._nonces: dict[str, int] = {}
        self._senders: list[str] = []
        self._lock = threading.RLock()

    # --- Accounts ---

    @staticmethod
    def dev_account(index: int) -> LocalAccount:
        """Deterministic development account for ``index``."""
        return Account.from_key(keccak(text=f"confidential-amm-dev-account-{index}"))

    def dev_accounts(self, names: list[str]) -> dict[str, LocalAccount]:
        """Deterministic named development accounts."""
        return {name: self.dev_account(i) for i, name in enumerate(names)}

    # --- Contracts ---

    def deploy(self, contract_cls: type[C], deployer: LocalAccount | str, *args: Any, **kwargs: Any) -> C:
        """Deploy a contract at an address derived from the deployer and its nonce."""
        deployer_address = normalize_address(deployer if isinstance(deployer, str) else deployer.address)
        with self._lock:
            nonce = self._nonces.get(deployer_address, 0)
            self._nonces[deployer_address] = nonce + 1
            digest = keccak(encode(["address", "uint256"], [to_checksum_address(deployer_address), nonce]))
            address = normalize_address("0x" + digest[12:].hex())

            # Constructors run as a transaction from the deployer
            with self.transaction(deployer_address):
                contract = contract_cls(self, address, deployer_address, *args, **kwargs)
            self._contracts[address] = contract

        logger.info("contract_deployed", contract=contract_cls.__name__, address=address, deployer=deployer_address)
        return contract

    def contract_at(self, address: str) -> Contract:
        """Look up a deployed contract.

        Raises:
            KeyError: If no contract is deployed at ``address``
        """
        try:
            return self._contracts[normalize_address(address)]
        except KeyError:
            raise KeyError(f"No contract deployed at {address}") from None

    def is_contract(self, address: str) -> bool:
        return normalize_address(address) in self._contracts

    # --- Transactions ---

    @property
    def msg_sender(self) -> str:
        """Sender of the innermost active call.

        Raises:
            RuntimeError: If no call is in progress
        """
        if not self._senders:
            raise RuntimeError("No active call; invoke contract methods through connect()")
        return self._senders[-1]

    @property
    def in_transaction(self) -> bool:
        return bool(self._senders)

    @contextmanager
    def transaction(self, sender: str) -> Iterator[None]:
        """Run a call from ``sender``; the outermost call commits or reverts as a whole."""
        with self._lock:
            outermost = not self._senders
            snapshots = {addr: c._snapshot() for addr, c in self._contracts.items()} if outermost else {}
            self._senders.append(normalize_address(sender))
            try:
                yield
            except BaseException as err:
                if outermost:
                    for addr, snapshot in snapshots.items():
                        self._contracts[addr]._restore(snapshot)
                    logger.info("transaction_reverted", sender=sender, error=type(err).__name__)
                raise
            finally:
                self._senders.pop()

    def collect_garbage(self) -> int:
        """Release runtime handles that no contract's storage refers to.

        Only storage is treated as live, so this runs between transactions and
        any EncryptedInt held outside a contract is invalidated.

        Raises:
            RuntimeError: If called while a transaction is open
        """
        with self._lock:
            if self._senders:
                raise RuntimeError("Cannot collect handles inside a transaction")
            live = {handle for contract in self._contracts.values() for handle in contract._handles()}
            released = self.runtime.prune(live)

        logger.debug("handles_released", released=released, live=len(live))
        return released
