"""Transactions and multi-signature signing through an external signer."""

from __future__ import annotations

import base64
import hashlib
import json
from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Callable

from .request import Initiator, SdkError

__all__ = [
    "SignatureInfo",
    "TxInput",
    "TxOutput",
    "RawTransaction",
    "Transaction",
    "Signer",
    "in_auth_require",
]


@dataclass
class SignatureInfo:
    """A public key and the signature it made."""

    public_key: str = ""
    sign: bytes = b""


@dataclass
class TxInput:
    """A spent UTXO."""

    ref_txid: bytes = b""
    ref_offset: int = 0
    from_addr: bytes = b""
    amount: bytes = b""
    frozen_height: int = 0


@dataclass
class TxOutput:
    """A newly created UTXO."""

    amount: bytes = b""
    to_addr: bytes = b""
    frozen_height: int = 0


@dataclass
class RawTransaction:
    """The transaction as sent to the chain."""

    txid: bytes = b""
    tx_inputs: list[TxInput] = field(default_factory=list)
    tx_outputs: list[TxOutput] = field(default_factory=list)
    desc: bytes = b""
    coinbase: bool = False
    nonce: str = ""
    timestamp: int = 0
    version: int = 0
    initiator: str = ""
    auth_require: list[str] = field(default_factory=list)
    initiator_signs: list[SignatureInfo] = field(default_factory=list)
    auth_require_signs: list[SignatureInfo] = field(default_factory=list)
    tx_inputs_ext: list[Any] = field(default_factory=list)
    tx_outputs_ext: list[Any] = field(default_factory=list)
    contract_requests: list[Any] = field(default_factory=list)


@dataclass
class Transaction:
    """A built transaction with its pre-execution results."""

    tx: RawTransaction
    contract_response: Any = None
    bcname: str = ""
    fee: str = ""
    gas_used: int = 0
    digest_hash: bytes | None = None

    def sign(self, account: Initiator | None, signer: Signer) -> None:
        """Add the account's signature and recompute the transaction id.

        The account must already be listed in the transaction's auth list;
        signatures must be added in the order of that list.
        """
        if account is None:
            raise SdkError("Transaction sign account can not be nil")
        if not in_auth_require(self.tx.auth_require, account.auth_require()):
            raise SdkError("this account not in transaction's AuthRequire list")

        if self.digest_hash is None:
            self.digest_hash = _digest_hash(self.tx)

        try:
            signature = signer(account.address, self.digest_hash)
        except Exception as err:
            raise SdkError("sign error") from err

        self.tx.auth_require_signs.append(signature)
        self.tx.initiator_signs.append(signature)
        self.tx.txid = _transaction_id(self.tx)


Signer = Callable[[str, bytes], SignatureInfo]


def in_auth_require(auth_require: list[str], address: str) -> bool:
    """Whether the address, alone or as the last part of an entry, is listed."""
    return any(entry == address or entry.split("/")[-1] == address for entry in auth_require)


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    raise TypeError(f"cannot encode {type(value).__name__}")


def _encode(tx: RawTransaction, include_signatures: bool) -> bytes:
    payload = asdict(tx)
    payload.pop("txid")
    if not include_signatures:
        payload.pop("initiator_signs")
        payload.pop("auth_require_signs")
    return json.dumps(
        payload, default=_json_default, sort_keys=True, separators=(",", ":")
    ).encode("utf-8")


def _double_sha256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def _digest_hash(tx: RawTransaction) -> bytes:
    return _double_sha256(_encode(tx, include_signatures=False))


def _transaction_id(tx: RawTransaction) -> bytes:
    return _double_sha256(_encode(tx, include_signatures=True))