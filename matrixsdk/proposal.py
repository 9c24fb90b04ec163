"""Proposals: pre-execute a request and build the signed transaction."""

from __future__ import annotations

import base64
import json
import re
import secrets
import time
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any

from .request import InvalidAmountError, Request, SdkError
from .transaction import (
    RawTransaction,
    SignatureInfo,
    Signer,
    Transaction,
    TxInput,
    TxOutput,
    _digest_hash,
    _transaction_id,
)

__all__ = [
    "TX_VERSION",
    "FEE_ADDRESS",
    "ComplianceCheckConfig",
    "CommConfig",
    "Proposal",
]

TX_VERSION = 3
FEE_ADDRESS = "$"

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_DECIMAL = re.compile(r"[+-]?[0-9]+")


@dataclass
class ComplianceCheckConfig:
    """Endorsement settings of an open network."""

    is_need_compliance_check: bool = False
    is_need_compliance_check_fee: bool = False
    compliance_check_endorse_service_fee: int = 0
    compliance_check_endorse_service_fee_addr: str = ""
    compliance_check_endorse_service_addr: str = ""


@dataclass
class CommConfig:
    """Client-wide transaction settings."""

    tx_version: int = 0
    compliance_check: ComplianceCheckConfig = field(default_factory=ComplianceCheckConfig)


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_bytes(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, str):
        return base64.b64decode(value)
    return bytes(value)


def _parse_big(text: str | None) -> int | None:
    if text is None or not _DECIMAL.fullmatch(text):
        return None
    return int(text)


def _parse_int64(text: str) -> int:
    if not _DECIMAL.fullmatch(text):
        raise InvalidAmountError(f'parsing "{text}": invalid syntax')
    number = int(text)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise InvalidAmountError(f'parsing "{text}": value out of range')
    return number


def _int_bytes(number: int) -> bytes:
    magnitude = abs(number)
    return magnitude.to_bytes((magnitude.bit_length() + 7) // 8, "big")


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    raise TypeError(f"cannot encode {type(value).__name__}")


def _to_json(value: Any) -> bytes:
    return json.dumps(value, default=_json_default, separators=(",", ":")).encode("utf-8")


def _nonce() -> str:
    return f"{int(time.time())}{secrets.randbelow(10**8):08d}"


def _signature(value: Any) -> SignatureInfo | None:
    if value is None or isinstance(value, SignatureInfo):
        return value
    return SignatureInfo(
        public_key=_field(value, "public_key") or "",
        sign=_as_bytes(_field(value, "sign")),
    )


def _inputs_from_utxos(utxos: Any) -> list[TxInput]:
    return [
        TxInput(
            ref_txid=_as_bytes(_field(utxo, "ref_txid")),
            ref_offset=int(_field(utxo, "ref_offset") or 0),
            from_addr=_as_bytes(_field(utxo, "to_addr")),
            amount=_as_bytes(_field(utxo, "amount")),
        )
        for utxo in utxos or ()
    ]


class Proposal:
    """A single request turned into a transaction, without posting it.

    ``node`` answers ``pre_exec_with_select_utxo``, ``select_utxo`` and
    ``endorser_call``; ``signer`` signs digests for the initiator.
    """

    def __init__(
        self,
        node: Any,
        request: Request | None,
        cfg: CommConfig | None,
        signer: Signer | None = None,
    ):
        if node is None or request is None or cfg is None:
            raise SdkError("new proposal failed, parameters can not be nil")
        self.node = node
        self.request = request
        self.cfg = cfg
        self.signer = signer
        self.tx_version = (
            cfg.tx_version if cfg.compliance_check.is_need_compliance_check else TX_VERSION
        )
        self.pre_resp: Any = None
        self.fee_pre_resp: Any = None
        self.tx: Transaction | None = None
        self.compliance_check_tx: RawTransaction | None = None

    @property
    def _compliance(self) -> ComplianceCheckConfig:
        return self.cfg.compliance_check

    def build(self) -> Transaction:
        """Pre-execute the request and build the signed transaction."""
        self.pre_exec_with_select_utxo()
        self.tx = self.gen_complete_tx()
        return self.tx

    def pre_exec_with_select_utxo(self) -> None:
        """Pre-execute and select UTXOs, through the endorser when required."""
        req = self._gen_pre_exec_utxo_request()
        opts = self.request.options

        if self._compliance.is_need_compliance_check:
            endorser_request = {
                "request_name": "PreExecWithFee",
                "bc_name": req["bcname"],
                "request_data": _to_json(req),
            }
            try:
                endorser_response = self.node.endorser_call(endorser_request)
            except Exception as err:
                raise SdkError(f"EndorserCall PreExecWithFee failed: {err}") from err
            data = _field(endorser_response, "response_data") or b""
            try:
                response = json.loads(data)
            except ValueError as err:
                raise SdkError(f"invalid endorser response: {err}") from err
        else:
            try:
                response = self.node.pre_exec_with_select_utxo(req)
            except Exception as err:
                raise SdkError(f"PreExecWithSelectUTXO failed: {err}") from err

            if opts.only_fee_from_account:
                amount = _parse_big(opts.fee)
                if amount is None:
                    raise InvalidAmountError("invalid request fee: invalid amount")
                amount += self._gas_used(response)
                fee_req = self._gen_select_utxo_request(
                    self.request.initiator.contract_account, str(amount)
                )
                try:
                    self.fee_pre_resp = self.node.select_utxo(fee_req)
                except Exception as err:
                    raise SdkError(
                        f"SelectUTXO from contract account failed: {err}"
                    ) from err

        for res in self._responses(response):
            status = int(_field(res, "status") or 0)
            if status >= 400:
                raise SdkError(
                    f"contract invoke error status:{status} message:{_field(res, 'message') or ''}"
                )

        self.pre_resp = response

    def gen_complete_tx(self) -> Transaction:
        """Build and sign the transaction from the pre-execution result."""
        if self.pre_resp is None:
            raise SdkError("proposal preResp can not be nil")

        if self._compliance.is_need_compliance_check:
            tx = self._gen_tx_with_compliance_check()
        else:
            tx = self._gen_tx()

        responses = self._responses(self.pre_resp)
        # With endorsement or reserved contracts the last response is this call's.
        contract_response = responses[-1] if responses else None

        digest_hash = self._sign_tx(tx)
        return Transaction(
            tx=tx,
            contract_response=contract_response,
            bcname=self.chain_name(),
            fee=self.request.options.fee,
            gas_used=self._gas_used(self.pre_resp),
            digest_hash=digest_hash,
        )

    def calc_total_amount(self) -> int:
        """Total the initiator must provide: transfer, fee, invoke amount, endorse fee."""
        req = self.request
        opts = req.options
        total = 0
        if req.transfer_amount:
            total += _parse_int64(req.transfer_amount)
        if not opts.only_fee_from_account and opts.fee:
            total += _parse_int64(opts.fee)
        if opts.contract_invoke_amount:
            total += _parse_int64(opts.contract_invoke_amount)
        if self._compliance.is_need_compliance_check and self._compliance.is_need_compliance_check_fee:
            total += int(self._compliance.compliance_check_endorse_service_fee)
        return total

    def initiator(self) -> str:
        """Address whose UTXOs pay for the transaction."""
        account = self.request.initiator
        if self._compliance.is_need_compliance_check or self.request.options.only_fee_from_account:
            return account.address
        if account.has_contract_account():
            return account.contract_account
        return account.address

    def chain_name(self) -> str:
        """The chain the request targets."""
        return self.request.options.chain_name()

    def gen_invoke_rpc_request(self) -> dict[str, Any]:
        """The pre-execution request sent to the node."""
        auth_requires: list[str] = []
        if self._compliance.is_need_compliance_check:
            auth_requires.append(self._compliance.compliance_check_endorse_service_addr)
        auth_requires.append(self.request.initiator.auth_require())
        auth_requires.extend(self.request.options.other_auth_require)
        return {
            "bcname": self.chain_name(),
            "requests": self._gen_invoke_requests(),
            "initiator": self.initiator(),
            "auth_require": auth_requires,
        }

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _invoke_response(response: Any) -> Any:
        return _field(response, "response")

    def _responses(self, response: Any) -> list[Any]:
        return list(_field(self._invoke_response(response), "responses") or ())

    def _gas_used(self, response: Any) -> int:
        return int(_field(self._invoke_response(response), "gas_used") or 0)

    def _gen_invoke_requests(self) -> list[dict[str, Any]]:
        req = self.request
        if not req.contract_name and req.options.contract_invoke_amount:
            raise SdkError("can not set contract invoke amount")
        if not req.module:
            return []
        return [
            {
                "module_name": req.module,
                "contract_name": req.contract_name,
                "method_name": req.method_name,
                "args": dict(req.args),
                "amount": req.options.contract_invoke_amount,
            }
        ]

    def _gen_pre_exec_utxo_request(self) -> dict[str, Any]:
        total_amount = self.calc_total_amount()
        return {
            "bcname": self.chain_name(),
            "address": self.initiator(),
            "total_amount": total_amount,
            "request": self.gen_invoke_rpc_request(),
        }

    def _gen_select_utxo_request(self, address: str, amount: str) -> dict[str, Any]:
        return {"bcname": self.chain_name(), "address": address, "total_need": amount}

    def _sign_tx(self, tx: RawTransaction) -> bytes:
        if self.signer is None:
            raise SdkError("no signer for the initiator")
        digest_hash = _digest_hash(tx)
        try:
            signature = self.signer(self.request.initiator.address, digest_hash)
        except Exception as err:
            raise SdkError("sign error") from err
        tx.initiator_signs = [signature]
        tx.auth_require_signs.append(signature)
        tx.txid = _transaction_id(tx)
        return digest_hash

    def _gen_tx_with_compliance_check(self) -> RawTransaction:
        if self._compliance.is_need_compliance_check_fee:
            self.compliance_check_tx = self._gen_compliance_check_tx()
        tx = self._gen_tx()
        endorser_sign = self._compliance_check(tx)
        tx.auth_require_signs.append(endorser_sign)
        return tx

    def _compliance_check(self, tx: RawTransaction) -> SignatureInfo | None:
        request_data = _to_json({"bcname": self.chain_name(), "tx": tx})
        endorser_request = {
            "request_name": "ComplianceCheck",
            "bc_name": self.chain_name(),
            "fee": self.compliance_check_tx,
            "request_data": request_data,
        }
        try:
            response = self.node.endorser_call(endorser_request)
        except Exception as err:
            raise SdkError(f"EndorserCall ComplianceCheck failed: {err}") from err
        return _signature(_field(response, "endorser_sign"))

    def _gen_compliance_check_tx(self) -> RawTransaction:
        fee = int(self._compliance.compliance_check_endorse_service_fee)
        fee_addr = self._compliance.compliance_check_endorse_service_fee_addr
        utxo_output = _field(self.pre_resp, "utxo_output")

        outputs = self._compliance_check_tx_outputs(fee_addr, str(fee))
        inputs, delta = self._compliance_check_tx_inputs(utxo_output, fee)
        if delta is not None:
            outputs.append(delta)

        initiator = self.initiator()
        tx = RawTransaction(
            desc=b"",
            version=self.tx_version,
            coinbase=False,
            nonce=_nonce(),
            timestamp=time.time_ns(),
            tx_inputs=inputs,
            tx_outputs=outputs,
            initiator=initiator,
            auth_require=[initiator],
        )
        self._sign_tx(tx)
        return tx

    def _compliance_check_tx_outputs(self, to: str, amount: str) -> list[TxOutput]:
        if not to:
            return []
        value = _parse_big(amount)
        if value is None:
            raise InvalidAmountError()
        if value < 0:
            raise SdkError("Invalid negative number")
        if value == 0:
            return []
        return [TxOutput(amount=_int_bytes(value), to_addr=to.encode("utf-8"))]

    def _compliance_check_tx_inputs(
        self, utxo_output: Any, total_need: int
    ) -> tuple[list[TxInput], TxOutput | None]:
        inputs = _inputs_from_utxos(_field(utxo_output, "utxo_list"))
        total_selected = _field(utxo_output, "total_selected") or ""
        total = _parse_big(total_selected)
        if total is None:
            raise SdkError(f"Invalid utxoOutputs.TotalSelected: {total_selected}")
        delta = None
        if total > total_need:
            delta = TxOutput(
                to_addr=self.initiator().encode("utf-8"),
                amount=_int_bytes(total - total_need),
            )
        return inputs, delta

    def _calc_self_amount(self, total_selected: int) -> str:
        opts = self.request.options
        amount = 0
        if opts.contract_invoke_amount:
            invoke = _parse_big(opts.contract_invoke_amount)
            if invoke is None:
                raise InvalidAmountError()
            amount += invoke
        if self.request.transfer_amount:
            transfer = _parse_big(self.request.transfer_amount)
            if transfer is None:
                raise InvalidAmountError()
            amount += transfer
        if not opts.only_fee_from_account:
            if opts.fee:
                fee = _parse_big(opts.fee)
                if fee is None:
                    raise InvalidAmountError()
                amount += fee
            amount += self._gas_used(self.pre_resp)
        return str(total_selected - amount)

    def _gen_tx(self) -> RawTransaction:
        initiator = self.initiator()
        utxos: list[Any] = []
        total_selected = 0

        if self.compliance_check_tx is not None:
            for index, output in enumerate(self.compliance_check_tx.tx_outputs):
                if output.to_addr.decode("utf-8", errors="replace") == initiator:
                    utxos.append(
                        {
                            "amount": output.amount,
                            "to_addr": output.to_addr,
                            "ref_txid": self.compliance_check_tx.txid,
                            "ref_offset": index,
                        }
                    )
                    total_selected += int.from_bytes(output.amount, "big")
        else:
            utxo_output = _field(self.pre_resp, "utxo_output")
            if utxo_output is not None:
                utxos.extend(_field(utxo_output, "utxo_list") or ())
                parsed = _parse_big(_field(utxo_output, "total_selected") or "")
                if parsed is None:
                    raise InvalidAmountError()
                total_selected = parsed
            if self.fee_pre_resp is not None:
                utxos.extend(_field(self.fee_pre_resp, "utxo_list") or ())

        self_amount = self._calc_self_amount(total_selected)
        tx_outputs = self._generate_multi_tx_outputs(self_amount)
        tx_inputs = _inputs_from_utxos(utxos)

        auth_require: list[str] = []
        if self.compliance_check_tx is not None:
            auth_require.append(self._compliance.compliance_check_endorse_service_addr)
        auth_require.append(self.request.initiator.auth_require())
        auth_require.extend(self.request.options.other_auth_require)

        response = self._invoke_response(self.pre_resp)
        return RawTransaction(
            desc=self.request.options.desc.encode("utf-8"),
            version=self.tx_version,
            coinbase=False,
            nonce=_nonce(),
            timestamp=time.time_ns(),
            tx_inputs=tx_inputs,
            tx_outputs=tx_outputs,
            initiator=initiator,
            auth_require=auth_require,
            tx_inputs_ext=list(_field(response, "inputs") or ()),
            tx_outputs_ext=list(_field(response, "outputs") or ()),
            contract_requests=list(_field(response, "requests") or ()),
        )

    def _generate_multi_tx_outputs(self, self_amount: str) -> list[TxOutput]:
        real_self = _parse_big(self_amount)
        if real_self is None:
            raise InvalidAmountError()
        req = self.request
        outputs: list[TxOutput] = []
        if req.transfer_to:
            outputs.append(self._make_tx_output(req.transfer_to, req.transfer_amount))
        if req.options.contract_invoke_amount:
            outputs.append(
                self._make_tx_output(req.contract_name, req.options.contract_invoke_amount)
            )
        if real_self > 0:
            outputs.append(self._make_tx_output(self.initiator(), self_amount))
        outputs.extend(self._make_fee_tx_outputs())
        return outputs

    def _make_fee_tx_outputs(self) -> list[TxOutput]:
        fee = self._calc_all_fee()
        if fee <= 0:
            return []
        outputs = [self._make_tx_output(FEE_ADDRESS, str(fee))]
        if self.request.options.only_fee_from_account and self.fee_pre_resp is not None:
            total = _parse_big(_field(self.fee_pre_resp, "total_selected") or "")
            if total is None:
                raise SdkError("invalid proposal feePreResp totalSelected")
            outputs.append(
                self._make_tx_output(self.request.initiator.contract_account, str(total - fee))
            )
        return outputs

    def _calc_all_fee(self) -> int:
        total = 0
        if self.request.options.fee:
            fee = _parse_big(self.request.options.fee)
            if fee is None:
                raise InvalidAmountError()
            total += fee
        return total + self._gas_used(self.pre_resp)

    @staticmethod
    def _make_tx_output(addr: str, amount: str) -> TxOutput:
        value = _parse_big(amount)
        if value is None:
            raise InvalidAmountError()
        return TxOutput(amount=_int_bytes(value), to_addr=addr.encode("utf-8"))