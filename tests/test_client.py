import pytest

from matrixsdk.client import XClient, contract_account_number
from matrixsdk.event import (
    with_auth_require,
    with_block_range,
    with_contract,
    with_skip_empty_tx,
)
from matrixsdk.options import with_query_bcname
from matrixsdk.query import ChainError, TxNotFoundError
from matrixsdk.request import InvalidAccountError, SdkError

SUCCESS = {"error": "SUCCESS"}


class FakeNode:
    def __init__(self):
        self.calls = []

    def query_tx(self, req):
        self.calls.append(req)
        return {"header": SUCCESS, "tx": {"txid": req["txid"]}}

    def get_block(self, req):
        return {"header": SUCCESS, "blockid": req["blockid"], "block": {"blockid": req["blockid"]}}

    def get_block_by_height(self, req):
        return {"header": SUCCESS, "block": {"height": req["height"]}}

    def query_acl(self, req):
        return {
            "header": SUCCESS,
            "acl": {"pm": {"rule": 1, "accept_value": 1.0}, "aks_weight": {"a": 1.0}},
        }

    def get_account_contracts(self, req):
        return {"header": SUCCESS}

    def get_address_contracts(self, req):
        return {"header": SUCCESS}

    def get_balance(self, req):
        self.calls.append(req)
        return {"header": SUCCESS, "bcs": [{"bcname": "xuper", "balance": "100"}]}

    def get_balance_detail(self, req):
        return {"header": SUCCESS, "tfds": [{"bcname": "xuper", "tfd": [{"balance": "100"}]}]}

    def get_system_status(self, req):
        return {"header": SUCCESS, "systems_status": {}}

    def get_block_chains(self, req):
        return {"header": SUCCESS, "blockchains": ["xuper"]}

    def get_block_chain_status(self, req):
        return {"header": SUCCESS, "bcname": req["bcname"]}

    def get_net_url(self, req):
        return {"header": SUCCESS, "raw_url": "raw"}

    def get_account_by_ak(self, req):
        return {"header": SUCCESS, "account": ["XC1111@xuper"]}


class FakeEvents:
    def __init__(self, events):
        self.events = events
        self.requests = []

    def subscribe(self, request):
        self.requests.append(request)
        return iter(self.events)


def test_contract_account_number_extracts_digits():
    assert contract_account_number("XC1234567887654321@xuper") == "1234567887654321"


@pytest.mark.parametrize("bad", ["abc", "XC123@xuper", "1234567887654321", ""])
def test_contract_account_number_rejects_invalid(bad):
    with pytest.raises(InvalidAccountError):
        contract_account_number(bad)


def test_watch_block_event_passes_filter_and_skips_empty():
    events = FakeEvents(
        [
            {"payload": {"bcname": "xuper", "blockid": "b1", "block_height": 1, "txs": []}},
            {
                "payload": {
                    "bcname": "xuper",
                    "blockid": "b2",
                    "block_height": 2,
                    "txs": [{"txid": "t", "events": [{"contract": "counter", "name": "e", "body": b"ok"}]}],
                }
            },
        ]
    )
    client = XClient(FakeNode(), events)
    watcher = client.watch_block_event(
        with_contract("counter"), with_auth_require("a"), with_block_range("1", "10"), with_skip_empty_tx()
    )
    blocks = list(watcher)
    assert [b.blockid for b in blocks] == ["b2"]
    assert blocks[0].txs[0].events[0].body == "ok"
    sent = events.requests[0]
    assert sent["type"] == "BLOCK"
    assert sent["filter"]["contract"] == "counter"
    assert sent["filter"]["auth_require"] == "a"
    assert sent["filter"]["range"] == {"start": "1", "end": "10"}


def test_watch_block_event_close_stops_delivery():
    events = FakeEvents([{"blockid": str(i), "txs": []} for i in range(5)])
    watcher = XClient(FakeNode(), events).watch_block_event()
    received = []
    for block in watcher:
        received.append(block.blockid)
        watcher.close()
    assert received == ["0"]


def test_watch_block_event_without_service_raises():
    with pytest.raises(SdkError):
        XClient(FakeNode()).watch_block_event()


def test_query_balance_and_bcname():
    node = FakeNode()
    client = XClient(node)
    assert client.query_balance("addr") == 100
    assert node.calls[-1]["bcs"] == [{"bcname": "xuper"}]
    with pytest.raises(ChainError):
        client.query_balance("addr", with_query_bcname("other"))


def test_query_tx_and_blocks():
    client = XClient(FakeNode())
    assert client.query_tx_by_id("abcd")["txid"] == bytes.fromhex("abcd")
    assert client.query_block_by_id("aa")["blockid"] == b"\xaa"
    assert client.query_block_by_height(188)["block"]["height"] == 188
    with pytest.raises(ValueError):
        client.query_tx_by_id("zz")


def test_query_tx_not_found():
    class Empty(FakeNode):
        def query_tx(self, req):
            return {"header": SUCCESS}

    with pytest.raises(TxNotFoundError):
        XClient(Empty()).query_tx_by_id("aa")


def test_query_acls():
    client = XClient(FakeNode())
    acl = client.query_account_acl("XC1111111111111111@xuper")
    assert acl.pm.rule == 1
    assert acl.aks_weight == {"a": 1.0}
    method_acl = client.query_method_acl("counter", "increase")
    assert method_acl.pm.accept_value == 1.0


def test_other_queries():
    client = XClient(FakeNode())
    assert client.query_block_chains() == ["xuper"]
    assert client.query_account_by_ak("addr") == ["XC1111@xuper"]
    assert client.query_account_contracts("XC1111@xuper") == []
    assert client.query_address_contracts("addr") == {}
    details = client.query_balance_detail("addr")
    assert [(d.balance, d.is_frozen) for d in details] == [("100", False)]
    assert client.query_block_chain_status(with_query_bcname("side"))["bcname"] == "side"
    assert client.query_net_url() == "raw"
    assert client.query_system_status()["systems_status"] == {}


def test_query_header_error_raises():
    class Failing(FakeNode):
        def get_block_chains(self, req):
            return {"header": {"error": "CONNECT_REFUSE"}}

    with pytest.raises(ChainError, match="CONNECT_REFUSE"):
        XClient(Failing()).query_block_chains()