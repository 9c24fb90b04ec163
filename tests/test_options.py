import pytest

from matrixsdk.options import (
    GrpcTLSConfig,
    OptionError,
    apply_client_options,
    apply_query_options,
    apply_request_options,
    with_bcname,
    with_config_file,
    with_contract_invoke_amount,
    with_desc,
    with_fee,
    with_fee_from_account,
    with_grpc_gzip,
    with_grpc_tls,
    with_not_post,
    with_other_auth_requires,
    with_query_bcname,
)


def test_request_defaults():
    opts = apply_request_options()
    assert opts.chain_name() == "xuper"
    assert opts.only_fee_from_account is False
    assert opts.not_post is False
    assert opts.other_auth_require == []


def test_request_options_applied():
    opts = apply_request_options(
        with_fee("10"),
        with_bcname("chain1"),
        with_contract_invoke_amount("5"),
        with_desc("memo"),
        with_not_post(),
        with_fee_from_account(),
        with_other_auth_requires(["a", "b"]),
    )
    assert opts.fee == "10"
    assert opts.bcname == "chain1"
    assert opts.chain_name() == "chain1"
    assert opts.contract_invoke_amount == "5"
    assert opts.desc == "memo"
    assert opts.not_post is True
    assert opts.only_fee_from_account is True
    assert opts.other_auth_require == ["a", "b"]


def test_empty_bcname_is_rejected():
    with pytest.raises(OptionError, match="^option failed: invalid bcname$"):
        apply_request_options(with_bcname(""))


def test_later_option_wins():
    opts = apply_request_options(with_fee("1"), with_fee("2"))
    assert opts.fee == "2"


def test_other_auth_requires_is_copied():
    signers = ["a"]
    opts = apply_request_options(with_other_auth_requires(signers))
    signers.append("b")
    assert opts.other_auth_require == ["a"]


def test_query_options():
    assert apply_query_options().chain_name() == "xuper"
    opts = apply_query_options(with_query_bcname("side"))
    assert opts.chain_name() == "side"


def test_query_empty_bcname_falls_back_to_default():
    assert apply_query_options(with_query_bcname("")).chain_name() == "xuper"


def test_client_options():
    opts = apply_client_options(
        with_config_file("conf/sdk.yaml"),
        with_grpc_gzip(),
        with_grpc_tls("node", "ca.pem", "cert.pem", "key.pem"),
    )
    assert opts.config_file == "conf/sdk.yaml"
    assert opts.use_grpc_gzip is True
    assert opts.grpc_tls == GrpcTLSConfig("node", "ca.pem", "cert.pem", "key.pem")


def test_client_defaults_have_no_tls():
    opts = apply_client_options()
    assert opts.grpc_tls is None
    assert opts.use_grpc_gzip is False