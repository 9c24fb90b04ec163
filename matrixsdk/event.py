"""Block event subscription: filters, watchers and filtered blocks."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Callable

from .options import DEFAULT_CHAIN_NAME, OptionError

__all__ = [
    "BlockRange",
    "BlockFilter",
    "BlockEventOptions",
    "ContractEvent",
    "FilteredTransaction",
    "FilteredBlock",
    "Watcher",
    "init_event_options",
    "new_watcher",
    "filtered_block_from_message",
    "with_block_chan_buffer_size",
    "with_skip_empty_tx",
    "with_block_event_bcname",
    "with_contract",
    "with_event_name",
    "with_initiator",
    "with_auth_require",
    "with_from_addr",
    "with_to_addr",
    "with_block_range",
    "with_exclude_tx",
    "with_exclude_tx_event",
]

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_BUFFER_SIZE = 100


@dataclass
class BlockRange:
    """Range of blocks to receive."""

    start: str = ""
    end: str = ""


@dataclass
class BlockFilter:
    """Which blocks, transactions and events a subscription receives."""

    bcname: str = DEFAULT_CHAIN_NAME
    range: BlockRange | None = None
    exclude_tx: bool = False
    exclude_tx_event: bool = False
    contract: str = ""
    event_name: str = ""
    initiator: str = ""
    auth_require: str = ""
    from_addr: str = ""
    to_addr: str = ""


@dataclass
class BlockEventOptions:
    """Settings of a block event watcher."""

    block_filter: BlockFilter = field(default_factory=BlockFilter)
    block_chan_buffer_size: int = DEFAULT_BLOCK_BUFFER_SIZE
    skip_empty_tx: bool = False


BlockEventOption = Callable[[BlockEventOptions], None]


@dataclass
class ContractEvent:
    """An event emitted by a contract."""

    contract: str = ""
    name: str = ""
    body: str = ""


@dataclass
class FilteredTransaction:
    """A transaction of a filtered block with its events."""

    txid: str = ""
    events: list[ContractEvent] = field(default_factory=list)


@dataclass
class FilteredBlock:
    """A block as delivered by the event service."""

    bcname: str = ""
    blockid: str = ""
    block_height: int = 0
    txs: list[FilteredTransaction] = field(default_factory=list)


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return "" if value is None else str(value)


def filtered_block_from_message(message: Mapping[str, Any]) -> FilteredBlock:
    """Convert a decoded filtered-block message into a FilteredBlock."""
    return FilteredBlock(
        bcname=message.get("bcname", "") or "",
        blockid=message.get("blockid", "") or "",
        block_height=int(message.get("block_height", 0) or 0),
        txs=[
            FilteredTransaction(
                txid=tx.get("txid", "") or "",
                events=[
                    ContractEvent(
                        contract=event.get("contract", "") or "",
                        name=event.get("name", "") or "",
                        body=_text(event.get("body")),
                    )
                    for event in tx.get("events") or ()
                ],
            )
            for tx in message.get("txs") or ()
        ],
    )


def init_event_options(*options: BlockEventOption) -> BlockEventOptions:
    """Build watcher settings from option callables."""
    opts = BlockEventOptions()
    for option in options:
        try:
            option(opts)
        except OptionError as err:
            raise OptionError(f"event option failed: {err}") from err
    return opts


class Watcher:
    """Yields filtered blocks from an event stream until closed."""

    def __init__(self, options: BlockEventOptions, source: Iterable[Mapping[str, Any]] = ()):
        self.options = options
        self.source = source
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop delivering blocks."""
        self._closed = True

    def __iter__(self) -> Iterator[FilteredBlock]:
        stream = iter(self.source)
        try:
            while not self._closed:
                try:
                    message = next(stream)
                except StopIteration:
                    return
                except Exception as err:  # noqa: BLE001 - stream failures end the watch
                    logger.warning("Get block event err: %s", err)
                    return
                block = filtered_block_from_message(message)
                if self.options.skip_empty_tx and not block.txs:
                    continue
                yield block
        finally:
            closer = getattr(self.source, "close", None)
            if callable(closer):
                try:
                    closer()
                except Exception as err:  # noqa: BLE001
                    logger.warning("Unregister block event failed, close stream error: %s", err)
                else:
                    logger.info("Unregister block event success...")


def new_watcher(*options: BlockEventOption) -> Watcher:
    """Create a watcher with the given settings and no stream yet."""
    return Watcher(init_event_options(*options))


def with_block_chan_buffer_size(size: int) -> BlockEventOption:
    """Number of blocks buffered ahead of the consumer (default 100)."""

    def option(opts: BlockEventOptions) -> None:
        if size < 0:
            raise OptionError("Invalid size for watcher blockChanBufferSize chan")
        opts.block_chan_buffer_size = size

    return option


def with_skip_empty_tx() -> BlockEventOption:
    """Skip blocks that carry no matching transactions."""

    def option(opts: BlockEventOptions) -> None:
        opts.skip_empty_tx = True

    return option


def _filter_setter(attribute: str, value: Any) -> BlockEventOption:
    def option(opts: BlockEventOptions) -> None:
        setattr(opts.block_filter, attribute, value)

    return option


def with_block_event_bcname(name: str) -> BlockEventOption:
    """Watch the named chain."""
    return _filter_setter("bcname", name)


def with_contract(contract: str) -> BlockEventOption:
    """Receive transactions of this contract only."""
    return _filter_setter("contract", contract)


def with_event_name(event_name: str) -> BlockEventOption:
    """Receive events with this name only."""
    return _filter_setter("event_name", event_name)


def with_initiator(initiator: str) -> BlockEventOption:
    """Receive transactions of this initiator only."""
    return _filter_setter("initiator", initiator)


def with_auth_require(auth_require: str) -> BlockEventOption:
    """Receive transactions requiring this signer only."""
    return _filter_setter("auth_require", auth_require)


def with_from_addr(from_addr: str) -> BlockEventOption:
    """Receive transfers from this address only."""
    return _filter_setter("from_addr", from_addr)


def with_to_addr(to_addr: str) -> BlockEventOption:
    """Receive transfers to this address only."""
    return _filter_setter("to_addr", to_addr)


def with_block_range(start_block: str, end_block: str) -> BlockEventOption:
    """Receive blocks within this range."""

    def option(opts: BlockEventOptions) -> None:
        if opts.block_filter.range is None:
            opts.block_filter.range = BlockRange()
        opts.block_filter.range.start = start_block
        opts.block_filter.range.end = end_block

    return option


def with_exclude_tx(exclude_tx: bool) -> BlockEventOption:
    """Leave transactions out of delivered blocks."""
    return _filter_setter("exclude_tx", exclude_tx)


def with_exclude_tx_event(exclude_tx_event: bool) -> BlockEventOption:
    """Leave events out of delivered transactions."""
    return _filter_setter("exclude_tx_event", exclude_tx_event)