"""Options for requests, queries and client connections."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, TypeVar

__all__ = [
    "DEFAULT_CHAIN_NAME",
    "OptionError",
    "RequestOptions",
    "QueryOptions",
    "GrpcTLSConfig",
    "ClientOptions",
    "with_query_bcname",
    "with_config_file",
    "with_grpc_gzip",
    "with_grpc_tls",
    "with_fee_from_account",
    "with_fee",
    "with_bcname",
    "with_contract_invoke_amount",
    "with_desc",
    "with_not_post",
    "with_other_auth_requires",
    "apply_request_options",
    "apply_query_options",
    "apply_client_options",
]

DEFAULT_CHAIN_NAME = "xuper"


class OptionError(ValueError):
    """An option could not be applied."""


@dataclass
class RequestOptions:
    """Settings of a transaction request."""

    only_fee_from_account: bool = False
    fee: str = ""
    bcname: str = ""
    contract_invoke_amount: str = ""
    desc: str = ""
    other_auth_require: list[str] = field(default_factory=list)
    not_post: bool = False

    def chain_name(self) -> str:
        """The chain the request targets, defaulting to the main chain."""
        return self.bcname or DEFAULT_CHAIN_NAME


@dataclass
class QueryOptions:
    """Settings of a query."""

    bcname: str = ""

    def chain_name(self) -> str:
        """The chain the query targets, defaulting to the main chain."""
        return self.bcname or DEFAULT_CHAIN_NAME


@dataclass
class GrpcTLSConfig:
    """TLS certificate settings of the node connection."""

    server_name: str = ""
    cacert_file: str = ""
    cert_file: str = ""
    key_file: str = ""


@dataclass
class ClientOptions:
    """Settings of a client connection."""

    config_file: str = ""
    use_grpc_gzip: bool = False
    grpc_tls: GrpcTLSConfig | None = None


RequestOption = Callable[[RequestOptions], None]
QueryOption = Callable[[QueryOptions], None]
ClientOption = Callable[[ClientOptions], None]

_T = TypeVar("_T")


def _apply(target: _T, options) -> _T:
    for option in options:
        try:
            option(target)
        except OptionError as err:
            raise OptionError(f"option failed: {err}") from err
    return target


def apply_request_options(*options: RequestOption) -> RequestOptions:
    """Build request settings from option callables."""
    return _apply(RequestOptions(), options)


def apply_query_options(*options: QueryOption) -> QueryOptions:
    """Build query settings from option callables."""
    return _apply(QueryOptions(), options)


def apply_client_options(*options: ClientOption) -> ClientOptions:
    """Build client settings from option callables."""
    return _apply(ClientOptions(), options)


def with_query_bcname(bcname: str) -> QueryOption:
    """Query the named chain."""

    def option(opts: QueryOptions) -> None:
        opts.bcname = bcname

    return option


def with_config_file(config_file: str) -> ClientOption:
    """Read client settings from the given file."""

    def option(opts: ClientOptions) -> None:
        opts.config_file = config_file

    return option


def with_grpc_gzip() -> ClientOption:
    """Compress calls to the node with gzip."""

    def option(opts: ClientOptions) -> None:
        opts.use_grpc_gzip = True

    return option


def with_grpc_tls(server_name: str, cacert_file: str, cert_file: str, key_file: str) -> ClientOption:
    """Connect to the node over TLS with these certificates."""

    def option(opts: ClientOptions) -> None:
        if opts.grpc_tls is None:
            opts.grpc_tls = GrpcTLSConfig()
        opts.grpc_tls.server_name = server_name
        opts.grpc_tls.cacert_file = cacert_file
        opts.grpc_tls.cert_file = cert_file
        opts.grpc_tls.key_file = key_file

    return option


def with_fee_from_account() -> RequestOption:
    """Pay fee and gas from the initiator's contract account."""

    def option(opts: RequestOptions) -> None:
        opts.only_fee_from_account = True

    return option


def with_fee(fee: str) -> RequestOption:
    """Set the transaction fee."""

    def option(opts: RequestOptions) -> None:
        opts.fee = fee

    return option


def with_bcname(name: str) -> RequestOption:
    """Send the request to the named chain."""

    def option(opts: RequestOptions) -> None:
        if not name:
            raise OptionError("invalid bcname")
        opts.bcname = name

    return option


def with_contract_invoke_amount(amount: str) -> RequestOption:
    """Transfer this amount to the contract when invoking it."""

    def option(opts: RequestOptions) -> None:
        opts.contract_invoke_amount = amount

    return option


def with_desc(desc: str) -> RequestOption:
    """Set the transaction description."""

    def option(opts: RequestOptions) -> None:
        opts.desc = desc

    return option


def with_not_post() -> RequestOption:
    """Build the transaction only, without posting it."""

    def option(opts: RequestOptions) -> None:
        opts.not_post = True

    return option


def with_other_auth_requires(auth_requires: list[str]) -> RequestOption:
    """Other addresses that must sign, besides the initiator."""

    def option(opts: RequestOptions) -> None:
        opts.other_auth_require = list(auth_requires)

    return option