"""Transaction requests: transfers, contract calls and account administration."""

from __future__ import annotations

import base64
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .acl import ACL, default_acl
from .options import RequestOption, RequestOptions, apply_request_options

__all__ = [
    "NATIVE_CONTRACT_MODULE",
    "WASM_CONTRACT_MODULE",
    "EVM_CONTRACT_MODULE",
    "GO_RUNTIME",
    "C_RUNTIME",
    "JAVA_RUNTIME",
    "EVM_JSON_ENCODED",
    "EVM_JSON_ENCODED_TRUE",
    "XKERNEL_MODULE",
    "XKERNEL3_MODULE",
    "XKERNEL_DEPLOY_METHOD",
    "XKERNEL_UPGRADE_METHOD",
    "XKERNEL_NEW_ACCOUNT_METHOD",
    "XKERNEL_SET_ACCOUNT_ACL_METHOD",
    "XKERNEL_SET_METHOD_ACL_METHOD",
    "ARG_ACCOUNT_NAME",
    "ARG_CONTRACT_NAME",
    "ARG_CONTRACT_CODE",
    "ARG_CONTRACT_DESC",
    "ARG_INIT_ARGS",
    "ARG_CONTRACT_ABI",
    "SdkError",
    "InvalidAccountError",
    "InvalidParamError",
    "InvalidAmountError",
    "InvalidInitiatorError",
    "Initiator",
    "Request",
    "is_valid_amount",
    "new_request",
    "new_transfer_request",
    "new_deploy_contract_request",
    "new_invoke_contract_request",
    "new_upgrade_contract_request",
    "new_create_contract_account_request",
    "new_set_method_acl_request",
    "new_set_account_acl_request",
    "generate_deploy_args",
    "generate_invoke_args",
]

NATIVE_CONTRACT_MODULE = "native"
WASM_CONTRACT_MODULE = "wasm"
EVM_CONTRACT_MODULE = "evm"

GO_RUNTIME = "go"
C_RUNTIME = "c"
JAVA_RUNTIME = "java"

EVM_JSON_ENCODED = "jsonEncoded"
EVM_JSON_ENCODED_TRUE = "true"

XKERNEL_MODULE = "kernel"
XKERNEL3_MODULE = "xkernel"
XKERNEL_DEPLOY_METHOD = "Deploy"
XKERNEL_UPGRADE_METHOD = "Upgrade"
XKERNEL_NEW_ACCOUNT_METHOD = "NewAccount"
XKERNEL_SET_ACCOUNT_ACL_METHOD = "SetAccountAcl"
XKERNEL_SET_METHOD_ACL_METHOD = "SetMethodAcl"

ARG_ACCOUNT_NAME = "account_name"
ARG_CONTRACT_NAME = "contract_name"
ARG_CONTRACT_CODE = "contract_code"
ARG_CONTRACT_DESC = "contract_desc"
ARG_INIT_ARGS = "init_args"
ARG_CONTRACT_ABI = "contract_abi"


class SdkError(Exception):
    """Base error of the SDK."""


class _DefaultMessageError(SdkError):
    default_message = ""

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class InvalidAccountError(_DefaultMessageError):
    """The account cannot be used for this request."""

    default_message = "invalid account"


class InvalidParamError(_DefaultMessageError):
    """A required parameter is missing or wrong."""

    default_message = "invalid param"


class InvalidAmountError(_DefaultMessageError):
    """An amount is not a valid non-negative integer."""

    default_message = "invalid amount"


class InvalidInitiatorError(_DefaultMessageError):
    """The request has no usable initiator."""

    default_message = "invalid initiator"


@dataclass
class Initiator:
    """The account that starts a transaction."""

    address: str
    public_key: str = ""
    private_key: str = ""
    contract_account: str = ""

    def has_contract_account(self) -> bool:
        """Whether a contract account is bound to this address."""
        return bool(self.contract_account)

    def auth_require(self) -> str:
        """The signer entry of this account in a transaction's auth list."""
        if self.contract_account:
            return f"{self.contract_account}/{self.address}"
        return self.address


@dataclass
class Request:
    """A transaction request before it is pre-executed."""

    initiator: Initiator
    module: str = ""
    contract_name: str = ""
    method_name: str = ""
    args: dict[str, bytes] = field(default_factory=dict)
    transfer_to: str = ""
    transfer_amount: str = ""
    options: RequestOptions = field(default_factory=RequestOptions)


def _go_json(value: Any) -> bytes:
    """Compact, key-sorted, HTML-safe JSON as the chain encodes it."""
    text = json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    text = (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )
    return text.encode("utf-8")


def _bytes_map_json(args: Mapping[str, bytes]) -> bytes:
    return _go_json({k: base64.b64encode(v).decode("ascii") for k, v in args.items()})


def _varint(number: int) -> bytes:
    out = bytearray()
    while True:
        byte = number & 0x7F
        number >>= 7
        if number:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _proto_string(field_number: int, value: str) -> bytes:
    if not value:
        return b""
    data = value.encode("utf-8")
    return _varint(field_number << 3 | 2) + _varint(len(data)) + data


def _code_desc(contract_type: str, runtime: str) -> bytes:
    """Wire form of the code description: runtime is field 1, contract type field 5."""
    return _proto_string(1, runtime) + _proto_string(5, contract_type)


def _contract_args(args: Mapping[str, str] | None) -> dict[str, bytes]:
    return {k: v.encode("utf-8") for k, v in (args or {}).items()}


def _evm_args(args: Mapping[str, str] | None) -> dict[str, bytes]:
    return {
        "input": _go_json(dict(args or {})),
        EVM_JSON_ENCODED: EVM_JSON_ENCODED_TRUE.encode("ascii"),
    }


def is_valid_amount(amount: str) -> bool:
    """Whether the amount is a non-negative decimal integer."""
    return bool(amount) and amount.isascii() and amount.isdigit()


def new_request(
    initiator: Initiator | None,
    module: str,
    contract_name: str,
    method_name: str,
    args: Mapping[str, bytes] | None,
    transfer_to: str,
    transfer_amount: str,
    *options: RequestOption,
) -> Request:
    """Build a request from its raw parts and options."""
    if initiator is None:
        raise SdkError("initiator can not be nil")
    opts = apply_request_options(*options)
    if opts.only_fee_from_account and not initiator.has_contract_account():
        raise InvalidAccountError(
            "initiator contract account can not be nil when set fee from account.: invalid account"
        )
    return Request(
        initiator=initiator,
        module=module,
        contract_name=contract_name,
        method_name=method_name,
        args=dict(args or {}),
        transfer_to=transfer_to,
        transfer_amount=transfer_amount,
        options=opts,
    )


def new_transfer_request(
    initiator: Initiator | None, to: str, amount: str, *options: RequestOption
) -> Request:
    """Request to transfer an amount to another address."""
    if initiator is None:
        raise InvalidInitiatorError()
    if not to:
        raise InvalidParamError()
    if not is_valid_amount(amount):
        raise InvalidAmountError()
    return new_request(initiator, "", "", "", None, to, str(int(amount)), *options)


def generate_deploy_args(
    args: Mapping[str, str] | None,
    abi: bytes | None,
    code: bytes,
    module: str,
    runtime: str,
    contract_account: str,
    contract_name: str,
) -> dict[str, bytes]:
    """Arguments of the kernel call that deploys or upgrades a contract."""
    if module == EVM_CONTRACT_MODULE:
        init_args = _evm_args(args)
    else:
        init_args = _contract_args(args)

    result = {
        ARG_ACCOUNT_NAME: contract_account.encode("utf-8"),
        ARG_CONTRACT_NAME: contract_name.encode("utf-8"),
        ARG_CONTRACT_CODE: bytes(code),
        ARG_CONTRACT_DESC: _code_desc(module, runtime),
        ARG_INIT_ARGS: _bytes_map_json(init_args),
    }
    if module == EVM_CONTRACT_MODULE:
        result[ARG_CONTRACT_ABI] = bytes(abi or b"")
    return result


def generate_invoke_args(args: Mapping[str, str] | None, module: str) -> dict[str, bytes]:
    """Arguments of a contract call, JSON-wrapped for EVM contracts."""
    if module == EVM_CONTRACT_MODULE:
        return _evm_args(args)
    return _contract_args(args)


def new_deploy_contract_request(
    initiator: Initiator | None,
    name: str,
    abi: bytes | None,
    code: bytes,
    args: Mapping[str, str] | None,
    contract_type: str,
    runtime: str,
    *options: RequestOption,
) -> Request:
    """Request to deploy a wasm, evm or native contract."""
    if initiator is None or not initiator.has_contract_account():
        raise InvalidAccountError()
    if not name or not contract_type or not code:
        raise InvalidParamError()
    req_args = generate_deploy_args(
        args, abi, code, contract_type, runtime, initiator.contract_account, name
    )
    return new_request(
        initiator, XKERNEL3_MODULE, "", XKERNEL_DEPLOY_METHOD, req_args, "", "", *options
    )


def new_invoke_contract_request(
    initiator: Initiator | None,
    module: str,
    name: str,
    method: str,
    args: Mapping[str, str] | None,
    *options: RequestOption,
) -> Request:
    """Request to invoke a contract method."""
    if initiator is None:
        raise SdkError("invalid initiator")
    if not module and not name and not method:
        raise InvalidParamError()
    req_args = generate_invoke_args(args, module)
    return new_request(initiator, module, name, method, req_args, "", "", *options)


def new_upgrade_contract_request(
    initiator: Initiator | None, module: str, name: str, code: bytes, *options: RequestOption
) -> Request:
    """Request to replace a contract's code."""
    if initiator is None or not initiator.has_contract_account():
        raise InvalidAccountError()
    if not module or not name or not code:
        raise InvalidParamError()
    req_args = generate_deploy_args(None, None, code, module, "", initiator.contract_account, name)
    return new_request(
        initiator, XKERNEL3_MODULE, "", XKERNEL_UPGRADE_METHOD, req_args, "", "", *options
    )


def _account_acl_args(acl: ACL | None, contract_account: str) -> dict[str, bytes]:
    return {
        ARG_ACCOUNT_NAME: contract_account.encode("utf-8"),
        "acl": _acl_json(acl),
    }


def _acl_json(acl: ACL | None) -> bytes:
    return b"null" if acl is None else acl.to_json().encode("utf-8")


def new_create_contract_account_request(
    initiator: Initiator | None, contract_account: str, *options: RequestOption
) -> Request:
    """Request to create a contract account controlled by the initiator."""
    if initiator is None or initiator.has_contract_account():
        raise InvalidAccountError()
    if not contract_account:
        raise InvalidAccountError()
    args = _account_acl_args(default_acl(initiator.address), contract_account)
    return new_request(
        initiator, XKERNEL3_MODULE, "", XKERNEL_NEW_ACCOUNT_METHOD, args, "", "", *options
    )


def new_set_method_acl_request(
    initiator: Initiator | None, name: str, method: str, acl: ACL | None, *options: RequestOption
) -> Request:
    """Request to set the ACL of a contract method."""
    if initiator is None:
        raise InvalidAccountError()
    if acl is None:
        raise SdkError("invalid ACL")
    if not method or not name:
        raise InvalidParamError()
    args = {
        ARG_CONTRACT_NAME: name.encode("utf-8"),
        "method_name": method.encode("utf-8"),
        "acl": _acl_json(acl),
    }
    return new_request(
        initiator, XKERNEL3_MODULE, "", XKERNEL_SET_METHOD_ACL_METHOD, args, "", "", *options
    )


def new_set_account_acl_request(
    initiator: Initiator | None, acl: ACL | None, *options: RequestOption
) -> Request:
    """Request to set the ACL of the initiator's contract account."""
    if initiator is None or not initiator.has_contract_account():
        raise InvalidAccountError()
    args = _account_acl_args(acl, initiator.contract_account)
    return new_request(
        initiator, XKERNEL3_MODULE, "", XKERNEL_SET_ACCOUNT_ACL_METHOD, args, "", "", *options
    )