"""Client facade: block event subscription and chain queries."""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import asdict
from typing import Any

from . import query as _query
from .acl import ACL
from .event import BlockEventOption, Watcher, init_event_options
from .options import QueryOption
from .proposal import CommConfig
from .query import BalanceDetail
from .request import InvalidAccountError, SdkError

__all__ = ["XClient", "contract_account_number"]

_CONTRACT_ACCOUNT = re.compile(r"XC[0-9]{16}")
_ACCOUNT_NUMBER = re.compile(r"[0-9]{16}")


def contract_account_number(contract_account: str) -> str:
    """The 16-digit number of a contract account such as XC8888888899999999@xuper."""
    if not _CONTRACT_ACCOUNT.match(contract_account):
        raise InvalidAccountError("invalid contract account")
    found = _ACCOUNT_NUMBER.search(contract_account)
    # The prefix check guarantees a 16-digit run exists.
    assert found is not None
    return found.group(0)


def _payloads(stream: Any) -> Iterator[Mapping[str, Any]]:
    """Filtered-block messages carried by the subscription's events."""
    try:
        for event in stream:
            payload = event.get("payload") if isinstance(event, Mapping) else None
            yield payload if isinstance(payload, Mapping) else event
    finally:
        closer = getattr(stream, "close", None)
        if callable(closer):
            closer()


class XClient:
    """Entry point for talking to a chain node.

    ``node`` answers the query calls; ``event_service`` answers
    ``subscribe(request)`` with an iterable of filtered-block events.
    """

    def __init__(self, node: Any, event_service: Any = None, cfg: CommConfig | None = None):
        self.node = node
        self.event_service = event_service
        self.cfg = cfg if cfg is not None else CommConfig()

    def watch_block_event(self, *options: BlockEventOption) -> Watcher:
        """Subscribe to block events; iterate the watcher to receive blocks."""
        opts = init_event_options(*options)
        if self.event_service is None:
            raise SdkError("event service is not configured")
        request = {"type": "BLOCK", "filter": asdict(opts.block_filter)}
        stream = self.event_service.subscribe(request)
        return Watcher(opts, _payloads(stream))

    def query_tx_by_id(self, tx_id: str, *options: QueryOption) -> Any:
        """The transaction with the given hex id."""
        return _query.query_tx_by_id(self.node, tx_id, *options)

    def query_block_by_id(self, block_id: str, *options: QueryOption) -> Any:
        """The block with the given hex id."""
        return _query.query_block_by_id(self.node, block_id, *options)

    def query_block_by_height(self, height: int, *options: QueryOption) -> Any:
        """The block at the given height."""
        return _query.query_block_by_height(self.node, height, *options)

    def query_account_acl(self, account: str, *options: QueryOption) -> ACL:
        """The ACL of a contract account."""
        return _query.query_account_acl(self.node, account, *options)

    def query_method_acl(self, name: str, method: str, *options: QueryOption) -> ACL | None:
        """The ACL of a contract method."""
        return _query.query_method_acl(self.node, name, method, *options)

    def query_account_contracts(self, account: str, *options: QueryOption) -> list[Any]:
        """All contracts of a contract account."""
        return _query.query_account_contracts(self.node, account, *options)

    def query_address_contracts(self, address: str, *options: QueryOption) -> dict[str, Any]:
        """Contracts of every account an address belongs to, by account."""
        return _query.query_address_contracts(self.node, address, *options)

    def query_balance(self, address: str, *options: QueryOption) -> int:
        """Balance of an address."""
        return _query.query_balance(self.node, address, *options)

    def query_balance_detail(self, address: str, *options: QueryOption) -> list[BalanceDetail]:
        """Frozen and available balances of an address."""
        return _query.query_balance_detail(self.node, address, *options)

    def query_system_status(self, *options: QueryOption) -> Any:
        """The node's system status."""
        return _query.query_system_status(self.node, *options)

    def query_block_chains(self, *options: QueryOption) -> list[str]:
        """Names of the chains the node serves."""
        return _query.query_block_chains(self.node, *options)

    def query_block_chain_status(self, *options: QueryOption) -> Any:
        """Status of a chain."""
        return _query.query_block_chain_status(self.node, *options)

    def query_net_url(self, *options: QueryOption) -> str:
        """The node's network URL."""
        return _query.query_net_url(self.node, *options)

    def query_account_by_ak(self, address: str, *options: QueryOption) -> list[str]:
        """Contract accounts an address belongs to."""
        return _query.query_account_by_ak(self.node, address, *options)