# matrixsdk

A client-side library for a UTXO-based blockchain node that runs smart
contracts (native, wasm and evm). It builds transfer, deploy, invoke,
upgrade and access-control requests, turns a request into a signed
transaction through a proposal, adds further signatures for multi-sign
transactions, runs read-only queries, and delivers filtered block events.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `matrixsdk.acl`: `ACL` and `PermissionModel`; `new_acl(rule, accept_value)`
  creates an ACL with no addresses, `default_acl(address)` gives one address
  full control, `ACL.add_ak(ak, weight)` adds or replaces a weight and
  `ACL.to_json()` gives the compact JSON form sent to the chain.
- `matrixsdk.options`: `RequestOptions`, `QueryOptions` and `ClientOptions`,
  built from option functions with `apply_request_options`,
  `apply_query_options` and `apply_client_options`. Request options:
  `with_fee`, `with_bcname` (raises `OptionError` for an empty name),
  `with_contract_invoke_amount`, `with_desc`, `with_not_post`,
  `with_fee_from_account` and `with_other_auth_requires`. Query option:
  `with_query_bcname`. Client options: `with_config_file`, `with_grpc_gzip`
  and `with_grpc_tls`. Without a chain name, requests and queries target
  the `xuper` chain.
- `matrixsdk.event`: block filters (`with_block_event_bcname`,
  `with_contract`, `with_event_name`, `with_initiator`, `with_auth_require`,
  `with_from_addr`, `with_to_addr`, `with_block_range`, `with_exclude_tx`,
  `with_exclude_tx_event`, `with_skip_empty_tx`,
  `with_block_chan_buffer_size`) and a `Watcher`. Iterating a watcher yields
  `FilteredBlock` values (with `FilteredTransaction` and `ContractEvent`)
  from its message stream until the stream ends, fails, or `close()` is
  called; with `with_skip_empty_tx` blocks without transactions are left
  out.
- `matrixsdk.request`: `Initiator` (address, keys and an optional contract
  account) and `Request`, with the constructors `new_request`,
  `new_transfer_request`, `new_deploy_contract_request`,
  `new_invoke_contract_request`, `new_upgrade_contract_request`,
  `new_create_contract_account_request`, `new_set_method_acl_request` and
  `new_set_account_acl_request`. Deploy, upgrade and account-ACL requests
  need an initiator with a contract account; creating a contract account
  needs one without.
- `matrixsdk.transaction`: `RawTransaction`, `TxInput`, `TxOutput`,
  `SignatureInfo` and `Transaction`. `Transaction.sign(account, signer)`
  adds one more signature to a multi-sign transaction; the account must
  already be in the transaction's auth list (`in_auth_require`).
- `matrixsdk.proposal`: `Proposal(node, request, cfg, signer)` pre-executes
  a request, selects UTXOs, builds the outputs (transfer, contract invoke
  amount, change, fee) and signs the result; `Proposal.build()` does all of
  it. `CommConfig` and `ComplianceCheckConfig` switch on endorsement, in
  which case pre-execution and the compliance check go through the node's
  `endorser_call`.
- `matrixsdk.query`: `query_tx_by_id`, `query_block_by_id`,
  `query_block_by_height`, `query_account_acl`, `query_method_acl`,
  `query_account_contracts`, `query_address_contracts`, `query_balance`,
  `query_balance_detail` (a list of `BalanceDetail`), `query_system_status`,
  `query_block_chains`, `query_block_chain_status`, `query_net_url` and
  `query_account_by_ak`. An error in a reply raises `ChainError`; an unknown
  transaction raises `TxNotFoundError`.
- `matrixsdk.client`: `XClient(node, event_service=None, cfg=None)` offers
  the same queries as methods and `watch_block_event(...)`, which subscribes
  through `event_service.subscribe(request)` and returns a `Watcher`.
  `contract_account_number` extracts the 16-digit number from a contract
  account such as `XC1111111111111111@xuper`.

## Talking to a node

The package does not open connections itself. You pass in a `node` object
whose methods take a request (a dict) and return a reply; replies may be
mappings or objects with attributes. A header error of `"SUCCESS"`, `0` or
none at all counts as success.

- Queries call `query_tx`, `get_block`, `get_block_by_height`, `query_acl`,
  `get_account_contracts`, `get_address_contracts`, `get_balance`,
  `get_balance_detail`, `get_system_status`, `get_block_chains`,
  `get_block_chain_status`, `get_net_url` and `get_account_by_ak`.
- A `Proposal` calls `pre_exec_with_select_utxo`, `select_utxo` and, with
  endorsement on, `endorser_call`.
- Signing is done by a `signer(address, digest)` callable that returns a
  `SignatureInfo`.

## Example

```python
from matrixsdk.acl import new_acl
from matrixsdk.client import XClient
from matrixsdk.options import with_fee
from matrixsdk.request import Initiator, new_transfer_request

acl = new_acl(1, 1.0)
acl.add_ak("alice-address", 0.6)
acl.add_ak("bob-address", 0.4)

sender = Initiator(address="alice-address")
request = new_transfer_request(sender, "bob-address", "10", with_fee("1"))


class Node:
    def get_balance(self, request):
        return {"header": {"error": "SUCCESS"},
                "bcs": [{"bcname": "xuper", "balance": "100"}]}


client = XClient(Node())
assert client.query_balance("alice-address") == 100
```

Invalid input raises an exception from the `SdkError` family, for example
`InvalidAmountError` for an amount that is not a non-negative integer, or
`InvalidAccountError` when an operation needs a contract account that the
initiator does not have.

## What it does not do

- It has no network transport: no gRPC or HTTP client is included, so a
  `node` and an `event_service` must be supplied by the caller.
- It does no cryptography of its own: key generation and ECDSA signing are
  left to the `signer` callable.
- It does not post transactions. `XClient` offers queries and event
  watching only; transfers, deploys and invokes are built with the
  `request` constructors and `Proposal.build()`, and sending the resulting
  transaction is up to the caller.
- There is no command-line tool.