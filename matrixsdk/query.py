"""Read-only queries against a chain node."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .acl import ACL, PermissionModel
from .options import QueryOption, apply_query_options
from .request import SdkError

__all__ = [
    "ChainError",
    "TxNotFoundError",
    "BalanceDetail",
    "query_tx_by_id",
    "query_block_by_id",
    "query_block_by_height",
    "query_account_acl",
    "query_method_acl",
    "query_account_contracts",
    "query_address_contracts",
    "query_balance",
    "query_balance_detail",
    "query_system_status",
    "query_block_chains",
    "query_block_chain_status",
    "query_net_url",
    "query_account_by_ak",
]

_SUCCESS = "SUCCESS"
_HEX = re.compile(r"(?:[0-9a-fA-F]{2})*")
_DECIMAL = re.compile(r"[+-]?[0-9]+")


class ChainError(SdkError):
    """The node answered with an error."""


class TxNotFoundError(ChainError):
    """The node does not know the transaction."""

    def __init__(self, message: str = "tx not found"):
        super().__init__(message)


@dataclass
class BalanceDetail:
    """Balance of an address, split by frozen state."""

    balance: str = ""
    is_frozen: bool = False


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _error_name(value: Any) -> str | None:
    """The error's name, or None when it means success."""
    if value is None or value == 0 or value == _SUCCESS:
        return None
    return str(value)


def _check_header(response: Any) -> None:
    error = _error_name(_field(_field(response, "header"), "error"))
    if error is not None:
        raise ChainError(error)


def _decode_hex(text: str) -> bytes:
    if not _HEX.fullmatch(text):
        raise ValueError(f"invalid hex string: {text!r}")
    return bytes.fromhex(text)


def _acl_from_status(status: Any) -> ACL:
    acl = _field(status, "acl")
    pm = _field(acl, "pm")
    weights = _field(acl, "aks_weight")
    return ACL(
        pm=PermissionModel(
            rule=int(_field(pm, "rule") or 0),
            accept_value=float(_field(pm, "accept_value") or 0.0),
        ),
        aks_weight=None if weights is None else dict(weights),
    )


def query_tx_by_id(node: Any, tx_id: str, *options: QueryOption) -> Any:
    """The transaction with the given hex id."""
    raw = _decode_hex(tx_id)
    opts = apply_query_options(*options)
    response = node.query_tx({"bcname": opts.chain_name(), "txid": raw})
    _check_header(response)
    tx = _field(response, "tx")
    if tx is None:
        raise TxNotFoundError()
    return tx


def query_block_by_id(node: Any, block_id: str, *options: QueryOption) -> Any:
    """The block with the given hex id, with its content."""
    raw = _decode_hex(block_id)
    opts = apply_query_options(*options)
    response = node.get_block(
        {"bcname": opts.chain_name(), "blockid": raw, "need_content": True}
    )
    _check_header(response)
    if _field(response, "block") is None:
        raise ChainError("block not found")
    return response


def query_block_by_height(node: Any, height: int, *options: QueryOption) -> Any:
    """The block at the given height."""
    opts = apply_query_options(*options)
    response = node.get_block_by_height({"bcname": opts.chain_name(), "height": int(height)})
    _check_header(response)
    if _field(response, "block") is None:
        raise ChainError("block not found")
    return response


def query_account_acl(node: Any, account: str, *options: QueryOption) -> ACL:
    """The ACL of a contract account."""
    opts = apply_query_options(*options)
    status = node.query_acl({"bcname": opts.chain_name(), "account_name": account})
    _check_header(status)
    return _acl_from_status(status)


def query_method_acl(node: Any, name: str, method: str, *options: QueryOption) -> ACL | None:
    """The ACL of a contract method, or None when the node returns nothing."""
    opts = apply_query_options(*options)
    status = node.query_acl(
        {"bcname": opts.chain_name(), "contract_name": name, "method_name": method}
    )
    _check_header(status)
    if status is None:
        return None
    return _acl_from_status(status)


def query_account_contracts(node: Any, account: str, *options: QueryOption) -> list[Any]:
    """Status of every contract deployed by a contract account."""
    opts = apply_query_options(*options)
    response = node.get_account_contracts({"bcname": opts.chain_name(), "account": account})
    _check_header(response)
    return list(_field(response, "contracts_status") or ())


def query_address_contracts(node: Any, address: str, *options: QueryOption) -> dict[str, Any]:
    """Contracts of every account an address belongs to, by account."""
    opts = apply_query_options(*options)
    response = node.get_address_contracts({"address": address, "bcname": opts.chain_name()})
    _check_header(response)
    return dict(_field(response, "contracts") or {})


def query_balance(node: Any, address: str, *options: QueryOption) -> int:
    """Balance of an address or contract account."""
    opts = apply_query_options(*options)
    bcname = opts.chain_name()
    reply = node.get_balance({"address": address, "bcs": [{"bcname": bcname}]})
    _check_header(reply)

    for detail in _field(reply, "bcs") or ():
        if (_field(detail, "bcname") or "") != bcname:
            continue
        error = _error_name(_field(detail, "error"))
        if error is not None:
            raise ChainError(error)
        balance = _field(detail, "balance") or ""
        if not balance:
            return 0
        if not _DECIMAL.fullmatch(balance):
            raise ChainError("invalid balance query from chain")
        return int(balance)

    raise ChainError("invalid bcname:" + bcname)


def query_balance_detail(node: Any, address: str, *options: QueryOption) -> list[BalanceDetail]:
    """Frozen and available balances of an address."""
    opts = apply_query_options(*options)
    bcname = opts.chain_name()
    reply = node.get_balance_detail({"address": address, "tfds": [{"bcname": bcname}]})
    _check_header(reply)

    header_error = _field(_field(reply, "header"), "error")
    for details in _field(reply, "tfds") or ():
        if (_field(details, "bcname") or "") != bcname:
            continue
        if _error_name(_field(details, "error")) is not None:
            raise ChainError(str(header_error if header_error is not None else _SUCCESS))
        return [
            BalanceDetail(
                balance=_field(item, "balance") or "",
                is_frozen=bool(_field(item, "is_frozen")),
            )
            for item in _field(details, "tfd") or ()
        ]

    raise ChainError(f"Can not query balance detail for bcname: {bcname}")


def query_system_status(node: Any, *options: QueryOption) -> Any:
    """The node's system status."""
    response = node.get_system_status({})
    _check_header(response)
    return response


def query_block_chains(node: Any, *options: QueryOption) -> list[str]:
    """Names of the chains the node serves."""
    response = node.get_block_chains({})
    _check_header(response)
    return list(_field(response, "blockchains") or ())


def query_block_chain_status(node: Any, *options: QueryOption) -> Any:
    """Status of a chain."""
    opts = apply_query_options(*options)
    response = node.get_block_chain_status({"bcname": opts.chain_name()})
    _check_header(response)
    return response


def query_net_url(node: Any, *options: QueryOption) -> str:
    """The node's network URL."""
    response = node.get_net_url({})
    _check_header(response)
    return _field(response, "raw_url") or ""


def query_account_by_ak(node: Any, address: str, *options: QueryOption) -> list[str]:
    """Contract accounts that an address belongs to."""
    opts = apply_query_options(*options)
    response = node.get_account_by_ak({"bcname": opts.chain_name(), "address": address})
    _check_header(response)
    return list(_field(response, "account") or ())